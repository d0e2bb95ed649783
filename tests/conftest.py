"""Pytest fixtures for twiggit tests"""
import os
import tempfile
from pathlib import Path

import git
import pytest

from twiggit.config import Config
from twiggit.services.context_detector import ContextDetector
from twiggit.services.context_resolver import ContextResolver
from twiggit.services.git.router import GitRouter


def init_repo(repo_path: Path) -> git.Repo:
    """Create a repository with one commit on main."""
    repo_path.mkdir(parents=True, exist_ok=True)
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch('-M', 'main')
    return repo


def commit_file(repo_path: Path, name: str, content: str, message: str) -> None:
    """Commit a file in whatever branch repo_path has checked out."""
    repo = git.Repo(repo_path)
    try:
        (Path(repo_path) / name).write_text(content)
        repo.index.add([name])
        repo.index.commit(message)
    finally:
        repo.close()


@pytest.fixture
def make_repo():
    """Factory for additional repositories."""
    repos = []

    def _make(path: Path) -> git.Repo:
        repo = init_repo(path)
        repos.append(repo)
        return repo

    yield _make
    for repo in repos:
        repo.close()


@pytest.fixture
def commit():
    """The commit_file helper as a fixture."""
    return commit_file


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing (symlinks resolved)."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(os.path.realpath(tmpdir))


@pytest.fixture
def projects_dir(temp_dir):
    path = temp_dir / "projects"
    path.mkdir()
    return path


@pytest.fixture
def workspaces_dir(temp_dir):
    path = temp_dir / "workspaces"
    path.mkdir()
    return path


@pytest.fixture
def config(projects_dir, workspaces_dir):
    return Config(projects_path=str(projects_dir), workspaces_path=str(workspaces_dir))


@pytest.fixture
def project_repo(projects_dir):
    """A project named 'myproj' under the projects root."""
    repo = init_repo(projects_dir / "myproj")
    yield repo
    repo.close()


@pytest.fixture
def add_worktree(project_repo, workspaces_dir):
    """Factory: add a worktree for branch under <workspaces>/myproj/<branch>.

    merged=False adds a commit on the branch that main does not have.
    """
    def _add(branch: str, merged: bool = True) -> Path:
        path = workspaces_dir / "myproj" / branch
        path.parent.mkdir(parents=True, exist_ok=True)
        project_repo.git.worktree("add", "-b", branch, str(path), "main")
        if not merged:
            commit_file(path, f"{branch.replace('/', '-')}.txt", "work in progress\n", f"Work on {branch}")
        return path

    return _add


@pytest.fixture
def router(config):
    return GitRouter(config)


@pytest.fixture
def detector(router):
    return ContextDetector(router)


@pytest.fixture
def resolver(config, router):
    return ContextResolver(config, router)
