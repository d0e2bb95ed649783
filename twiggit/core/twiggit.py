"""Facade that wires every twiggit service from one Config."""

import os
from typing import List, Optional

from twiggit.config import Config
from twiggit.logging_config import get_logger
from twiggit.models.context import Context, ResolutionResult, ResolutionSuggestion
from twiggit.models.project import ProjectInfo
from twiggit.models.prune import PruneRequest, PruneResult
from twiggit.models.worktree import WorktreeEntry, WorktreeInfo
from twiggit.services.context_detector import ContextDetector
from twiggit.services.context_resolver import ContextResolver
from twiggit.services.discovery_service import DiscoveryService
from twiggit.services.display_service import DisplayService
from twiggit.services.git.router import GitRouter
from twiggit.services.hooks import HookRunner
from twiggit.services.prune_service import PruneService
from twiggit.services.tool_config import ToolConfigCopier
from twiggit.services.worktree_service import WorktreeService
from twiggit.utils.cancellation import CancelToken

logger = get_logger(__name__)


class Twiggit:
    """Entry point for callers such as a command-line front end."""

    def __init__(self, config: Optional[Config] = None, hook_runner: Optional[HookRunner] = None):
        self.config = config or Config()
        self.router = GitRouter(self.config)
        self.detector = ContextDetector(self.router)
        self.resolver = ContextResolver(self.config, self.router)
        self.discovery = DiscoveryService(self.router, concurrency=self.config.discovery_concurrency)
        self.prune_service = PruneService(self.config, self.router, self.resolver, self.detector)
        self.worktrees = WorktreeService(
            self.config,
            self.router,
            self.detector,
            self.resolver,
            copier=ToolConfigCopier(self.config.tool_config_files),
            hook_runner=hook_runner,
        )
        self.display = DisplayService(verbose=self.config.verbose)
        logger.debug(f"Initialized with projects={self.config.projects_path}, workspaces={self.config.workspaces_path}")

    def detect_context(self, path: Optional[str] = None, cancel: Optional[CancelToken] = None) -> Context:
        return self.detector.detect_context(path or os.getcwd(), cancel=cancel)

    def resolve(self, identifier: str, path: Optional[str] = None,
                cancel: Optional[CancelToken] = None) -> ResolutionResult:
        """Resolve identifier relative to the context of path (default: cwd)."""
        ctx = self.detect_context(path, cancel=cancel)
        return self.resolver.resolve_identifier(ctx, identifier, cancel=cancel)

    def suggestions(self, partial: str = "", path: Optional[str] = None,
                    existing_only: bool = False) -> List[ResolutionSuggestion]:
        ctx = self.detect_context(path)
        return self.resolver.get_resolution_suggestions(ctx, partial, existing_only=existing_only)

    def list_projects(self, cancel: Optional[CancelToken] = None) -> List[ProjectInfo]:
        return self.discovery.discover_projects_with_fallback(self.config.projects_path, cancel=cancel)

    def list_worktrees(self, cancel: Optional[CancelToken] = None) -> List[WorktreeInfo]:
        return self.discovery.discover_worktrees_with_fallback(self.config.workspaces_path, cancel=cancel)

    def project_worktrees(self, project: Optional[str] = None, path: Optional[str] = None,
                          cancel: Optional[CancelToken] = None) -> List[WorktreeEntry]:
        ctx = None if project else self.detect_context(path, cancel=cancel)
        return self.worktrees.list_worktrees(ctx=ctx, project=project, cancel=cancel)

    def create(self, project: str, branch: str, source_branch: Optional[str] = None,
               cancel: Optional[CancelToken] = None) -> WorktreeInfo:
        return self.worktrees.create_worktree(project, branch, source_branch, cancel=cancel)

    def delete(self, path: str, force: bool = False, cancel: Optional[CancelToken] = None) -> bool:
        return self.worktrees.delete_worktree(path, force=force, cancel=cancel)

    def prune(self, request: PruneRequest, cancel: Optional[CancelToken] = None) -> PruneResult:
        if request.context is None and not request.specific_worktree and not request.all_projects:
            request.context = self.detect_context(cancel=cancel)
        return self.prune_service.prune_merged_worktrees(request, cancel=cancel)
