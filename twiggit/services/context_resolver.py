"""Resolve free-text identifiers to project roots and worktree paths."""

import difflib
import os
from typing import Iterable, List, Optional, Tuple

from twiggit.config import Config
from twiggit.constants import (
    MAIN_ALIAS,
    SUGGEST_BRANCH,
    SUGGEST_MAIN,
    SUGGEST_PROJECT,
    SUGGEST_WORKTREE,
)
from twiggit.exceptions import (
    IdentifierNotFoundError,
    InvalidInputError,
    ProjectNotFoundError,
    RepositoryNotFoundError,
    TwiggitError,
)
from twiggit.logging_config import get_logger
from twiggit.models.context import (
    Context,
    ContextType,
    PathType,
    ResolutionResult,
    ResolutionSuggestion,
)
from twiggit.models.worktree import WorktreeEntry
from twiggit.services.git.router import GitRouter
from twiggit.utils.cancellation import CancelToken, check_cancelled
from twiggit.utils.paths import contains_path_traversal, is_path_under, normalize_path

logger = get_logger(__name__)


class ContextResolver:
    """Turns identifiers such as `main`, `myproj` or `feature-x` into paths."""

    def __init__(self, config: Config, router: GitRouter):
        self.config = config
        self.router = router

    def resolve_identifier(
        self,
        ctx: Context,
        identifier: str,
        cancel: Optional[CancelToken] = None,
    ) -> ResolutionResult:
        """Resolve identifier relative to ctx.

        Rules, first match wins:
            1. `main` (or the default source branch) inside a project or worktree
            2. the name of a project under the projects root
            3. a branch of the current project that has a worktree
            4. `project/branch` naming a worktree of another project

        Raises:
            InvalidInputError: empty identifier or path traversal
            IdentifierNotFoundError: nothing matched; carries suggestions
        """
        identifier = (identifier or "").strip()
        if not identifier:
            raise InvalidInputError("Identifier cannot be empty")
        if contains_path_traversal(identifier):
            raise InvalidInputError(
                f"Identifier '{identifier}' contains path traversal sequences",
                suggestions=["Use a valid project or branch name without '..'"],
            )
        check_cancelled(cancel, "resolve_identifier")

        if ctx.in_repository and identifier in (MAIN_ALIAS, self.config.default_source_branch):
            return self._resolve_main(ctx, identifier)

        if "/" not in identifier:
            project_path = self._project_path(identifier)
            if self._is_project(project_path, cancel):
                return ResolutionResult(
                    type=PathType.PROJECT,
                    project_name=identifier,
                    resolved_path=project_path,
                    explanation=f"Resolved '{identifier}' to project directory",
                )

        if ctx.in_repository:
            entry = self._find_worktree(self._context_project_path(ctx), identifier, cancel)
            if entry is not None:
                return ResolutionResult(
                    type=PathType.WORKTREE,
                    project_name=ctx.project_name,
                    branch_name=identifier,
                    resolved_path=entry.path,
                    explanation=f"Resolved '{identifier}' to worktree of project '{ctx.project_name}'",
                )

        if "/" in identifier:
            result = self._resolve_cross_project(identifier, cancel)
            if result is not None:
                return result

        suggestions = self._close_matches(ctx, identifier, cancel)
        logger.debug(f"No match for '{identifier}', suggestions: {suggestions}")
        raise IdentifierNotFoundError(identifier, suggestions=suggestions)

    def resolve_project(self, name: str, cancel: Optional[CancelToken] = None) -> str:
        """Return the root of project `name` or raise ProjectNotFoundError."""
        if not name or contains_path_traversal(name) or "/" in name:
            raise InvalidInputError(f"Invalid project name '{name}'")

        project_path = self._project_path(name)
        if not self._is_project(project_path, cancel):
            matches = difflib.get_close_matches(name, self.list_project_names(), n=3)
            raise ProjectNotFoundError(name, path=project_path, suggestions=matches)
        return project_path

    def get_resolution_suggestions(
        self,
        ctx: Context,
        partial: str = "",
        existing_only: bool = False,
        cancel: Optional[CancelToken] = None,
    ) -> List[ResolutionSuggestion]:
        """Completion candidates for partial, in stable order and without duplicates."""
        partial = partial or ""
        suggestions: List[ResolutionSuggestion] = []
        seen = set()

        def add(suggestion: ResolutionSuggestion) -> None:
            if suggestion.text.startswith(partial) and suggestion.text not in seen:
                seen.add(suggestion.text)
                suggestions.append(suggestion)

        if ctx.in_repository:
            if not existing_only:
                add(ResolutionSuggestion(
                    text=MAIN_ALIAS,
                    description=SUGGEST_MAIN,
                    type=PathType.PROJECT,
                    project_name=ctx.project_name,
                ))

            project_path = self._context_project_path(ctx)
            worktrees = self._safe_list_worktrees(project_path, cancel)
            for entry in worktrees:
                if entry.is_main or not entry.branch:
                    continue
                if existing_only and entry.is_orphaned:
                    continue
                add(ResolutionSuggestion(
                    text=entry.branch,
                    description=SUGGEST_WORKTREE.format(branch=entry.branch),
                    type=PathType.WORKTREE,
                    project_name=ctx.project_name,
                    branch_name=entry.branch,
                ))

            if ctx.type == ContextType.PROJECT and not existing_only:
                with_worktrees = {entry.branch for entry in worktrees}
                for branch in self._safe_list_branches(project_path, cancel):
                    if branch.name in with_worktrees:
                        continue
                    add(ResolutionSuggestion(
                        text=branch.name,
                        description=SUGGEST_BRANCH.format(branch=branch.name),
                        type=PathType.PROJECT,
                        project_name=ctx.project_name,
                        branch_name=branch.name,
                    ))

        for name in self.list_project_names():
            add(ResolutionSuggestion(
                text=name,
                description=SUGGEST_PROJECT,
                type=PathType.PROJECT,
                project_name=name,
            ))

        return suggestions

    def _resolve_main(self, ctx: Context, identifier: str) -> ResolutionResult:
        project_path = self._context_project_path(ctx)
        return ResolutionResult(
            type=PathType.PROJECT,
            project_name=ctx.project_name,
            resolved_path=project_path,
            explanation=f"Resolved '{identifier}' to project root '{ctx.project_name}'",
        )

    def _resolve_cross_project(self, identifier: str, cancel: Optional[CancelToken]) -> Optional[ResolutionResult]:
        project, branch = split_worktree_reference(identifier)
        project_path = self._project_path(project)
        if not self._is_project(project_path, cancel):
            return None

        entry = self._find_worktree(project_path, branch, cancel)
        if entry is not None:
            resolved = entry.path
        else:
            # Worktree directory present but not registered with this repository
            canonical = self.worktree_path(project, branch)
            if not os.path.isdir(canonical):
                return None
            resolved = canonical

        return ResolutionResult(
            type=PathType.WORKTREE,
            project_name=project,
            branch_name=branch,
            resolved_path=resolved,
            explanation=f"Resolved '{identifier}' to worktree of project '{project}'",
        )

    def worktree_path(self, project: str, branch: str) -> str:
        """Canonical location of a worktree: <workspaces>/<project>/<branch>."""
        path = os.path.normpath(os.path.join(self.config.workspaces_path, project, branch))
        if not is_path_under(path, self.config.workspaces_path) or path == self.config.workspaces_path:
            raise InvalidInputError("Worktree path is outside the workspaces directory", path=path)
        return path

    def _project_path(self, name: str) -> str:
        return os.path.join(self.config.projects_path, name)

    def _context_project_path(self, ctx: Context) -> str:
        if ctx.project_path:
            return ctx.project_path
        return self._project_path(ctx.project_name)

    def _is_project(self, project_path: str, cancel: Optional[CancelToken]) -> bool:
        if not os.path.isdir(os.path.join(project_path, ".git")):
            return False
        try:
            self.router.validate_repository(project_path, cancel=cancel)
            return True
        except RepositoryNotFoundError:
            return False

    def _find_worktree(
        self,
        project_path: str,
        branch: str,
        cancel: Optional[CancelToken],
    ) -> Optional[WorktreeEntry]:
        for entry in self._safe_list_worktrees(project_path, cancel):
            if not entry.is_main and entry.branch == branch:
                return entry
        return None

    def _safe_list_worktrees(self, project_path: str, cancel: Optional[CancelToken]) -> List[WorktreeEntry]:
        try:
            entries = self.router.list_worktrees(project_path, cancel=cancel)
        except TwiggitError as e:
            logger.warning(f"Could not list worktrees for {project_path}: {e}")
            return []
        for entry in entries:
            if not entry.is_orphaned:
                entry.path = normalize_path(entry.path)
        return entries

    def _safe_list_branches(self, project_path: str, cancel: Optional[CancelToken]):
        try:
            return self.router.list_branches(project_path, cancel=cancel)
        except TwiggitError as e:
            logger.warning(f"Could not list branches for {project_path}: {e}")
            return []

    def list_project_names(self) -> List[str]:
        """Directories under the projects root that hold a .git directory."""
        try:
            names = sorted(
                entry.name for entry in os.scandir(self.config.projects_path)
                if entry.is_dir() and os.path.isdir(os.path.join(entry.path, ".git"))
            )
        except OSError as e:
            logger.debug(f"Could not scan {self.config.projects_path}: {e}")
            return []
        return names

    def _close_matches(self, ctx: Context, identifier: str, cancel: Optional[CancelToken]) -> List[str]:
        candidates: List[str] = list(self.list_project_names())
        if ctx.in_repository:
            candidates.append(MAIN_ALIAS)
            candidates.extend(
                entry.branch
                for entry in self._safe_list_worktrees(self._context_project_path(ctx), cancel)
                if entry.branch and not entry.is_main
            )
        return difflib.get_close_matches(identifier, _unique(candidates), n=3)


def split_worktree_reference(reference: str) -> Tuple[str, str]:
    """Split `project/branch` on the first slash; branches may contain slashes.

    Raises:
        InvalidInputError: no slash, or an empty project or branch
    """
    project, sep, branch = (reference or "").partition("/")
    if not sep or not project or not branch:
        raise InvalidInputError(
            f"Invalid worktree reference '{reference}'",
            suggestions=["Use the format 'project/branch'"],
        )
    return project, branch


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result
