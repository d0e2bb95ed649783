"""Display and formatting service for discovery and prune results"""
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from twiggit.constants import CLI_COLORS, PROJECT_COLUMNS, WORKTREE_COLUMNS
from twiggit.formatters import (
    format_age,
    format_date,
    format_prune_outcome,
    format_worktree_state,
    get_prune_style_type,
)
from twiggit.logging_config import get_logger
from twiggit.models.context import ResolutionSuggestion
from twiggit.models.project import ProjectInfo
from twiggit.models.prune import PruneResult
from twiggit.models.worktree import WorktreeInfo

logger = get_logger(__name__)


class DisplayService:
    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console()
        self.verbose = verbose

    def display_projects(self, projects: List[ProjectInfo]) -> None:
        """Display a table of discovered projects."""
        if not projects:
            self.console.print("No projects found.")
            return

        table = Table()
        for col in PROJECT_COLUMNS:
            table.add_column(col.label, min_width=col.width or None)

        for project in projects:
            table.add_row(
                project.name,
                project.repo_path,
                str(len(project.branches)),
                str(len(project.worktrees)),
            )

        self.console.print(table)

    def display_worktrees(self, worktrees: List[WorktreeInfo]) -> None:
        """Display a table of discovered worktrees."""
        if not worktrees:
            self.console.print("No worktrees found.")
            return

        table = Table()
        for col in WORKTREE_COLUMNS:
            table.add_column(col.label, min_width=col.width or None)

        for worktree in worktrees:
            state = format_worktree_state(worktree.is_clean)
            last_commit = format_date(worktree.last_updated)
            if self.verbose and worktree.last_updated is not None:
                last_commit += f" ({format_age(worktree.last_updated)})"
            table.add_row(
                worktree.project_name,
                worktree.branch,
                state,
                last_commit,
                worktree.path,
                style=CLI_COLORS.get(state),
            )

        self.console.print(table)

    def display_suggestions(self, suggestions: List[ResolutionSuggestion]) -> None:
        for suggestion in suggestions:
            self.console.print(f"{suggestion.text}\t[dim]{suggestion.description}[/dim]")

    def display_prune_result(self, result: PruneResult, dry_run: bool = False) -> None:
        """Print each prune category followed by a summary."""
        sections = [
            ("Would delete" if dry_run else "Deleted", "would_delete" if dry_run else "deleted",
             result.would_delete if dry_run else result.deleted_worktrees),
            ("Protected", "protected", result.protected_skipped),
            ("Current worktree", "protected", result.current_worktree_skipped),
            ("Not merged", "skipped", result.unmerged_skipped),
            ("Skipped", "skipped", result.skipped_worktrees),
        ]

        for title, category, entries in sections:
            if not entries:
                continue
            self.console.print(f"\n{title}:")
            for entry in entries:
                style = CLI_COLORS.get(get_prune_style_type(category, entry), "")
                self.console.print(f"  {format_prune_outcome(entry)}", style=style)

        self.console.print("\nSummary:")
        if dry_run:
            self.console.print(f"Worktrees that would be deleted: {len(result.would_delete)}")
        else:
            self.console.print(f"Worktrees deleted: {result.total_deleted}")
            self.console.print(f"Branches deleted: {result.total_branches_deleted}")
        self.console.print(f"Worktrees skipped: {result.total_skipped}")

        if result.navigation_path:
            logger.debug(f"Navigation path: {result.navigation_path}")
            self.console.print(f"Project root: {result.navigation_path}")
