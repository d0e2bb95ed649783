"""Environment handed to post-create hooks."""

from typing import Callable, Dict

from twiggit.constants import (
    ENV_BRANCH_NAME,
    ENV_MAIN_REPO_PATH,
    ENV_PROJECT_NAME,
    ENV_SOURCE_BRANCH,
    ENV_WORKTREE_PATH,
)

# Called as hook_runner(worktree_path, env) after a worktree is created
HookRunner = Callable[[str, Dict[str, str]], None]


def build_hook_environment(
    worktree_path: str,
    project_name: str,
    branch_name: str,
    source_branch: str,
    main_repo_path: str,
) -> Dict[str, str]:
    return {
        ENV_WORKTREE_PATH: worktree_path,
        ENV_PROJECT_NAME: project_name,
        ENV_BRANCH_NAME: branch_name,
        ENV_SOURCE_BRANCH: source_branch,
        ENV_MAIN_REPO_PATH: main_repo_path,
    }
