"""Tests for DiscoveryService"""
import threading
from unittest.mock import patch

import git
import pytest


from twiggit.exceptions import (
    CLIBackendError,
    FilesystemAccessError,
    LibraryBackendError,
    OperationCancelledError,
)
from twiggit.services.discovery_service import DiscoveryService
from twiggit.utils.cancellation import CancelToken


@pytest.fixture
def discovery(router):
    return DiscoveryService(router)


class TestDiscoverProjects:
    """Test project discovery."""

    def test_finds_repositories(self, discovery, projects_dir, make_repo):
        """Test finds repositories."""
        make_repo(projects_dir / "beta")
        make_repo(projects_dir / "alpha")
        (projects_dir / "notes").mkdir()
        (projects_dir / "file.txt").write_text("x\n")

        projects = discovery.discover_projects(str(projects_dir))

        assert [p.name for p in projects] == ["alpha", "beta"]
        assert projects[0].repo_path == str(projects_dir / "alpha")
        assert [b.name for b in projects[0].branches] == ["main"]

    def test_project_lists_its_worktrees(self, discovery, projects_dir, add_worktree):
        """Test project lists its worktrees."""
        add_worktree("feature-a")

        [project] = discovery.discover_projects(str(projects_dir))

        assert [w.branch for w in project.worktrees] == ["feature-a"]
        assert {b.name for b in project.branches} == {"main", "feature-a"}

    def test_missing_root(self, discovery, temp_dir):
        """Test missing root."""
        assert discovery.discover_projects(str(temp_dir / "missing")) == []

    def test_unreadable_root(self, discovery, projects_dir):
        """Test unreadable root."""
        with patch("twiggit.services.discovery_service.os.scandir", side_effect=PermissionError(13, "denied")):
            with pytest.raises(FilesystemAccessError):
                discovery.discover_projects(str(projects_dir))

    def test_one_failure_does_not_abort_scan(self, discovery, projects_dir, make_repo):
        """Test one failure does not abort scan."""
        make_repo(projects_dir / "good")
        make_repo(projects_dir / "bad")
        real = discovery.router.list_branches

        def list_branches(path, cancel=None):
            if path.endswith("bad"):
                raise LibraryBackendError("list_branches", "corrupt")
            return real(path, cancel=cancel)

        with patch.object(discovery.router, "list_branches", side_effect=list_branches):
            projects = discovery.discover_projects(str(projects_dir))

        assert [p.name for p in projects] == ["good"]

    def test_parallel_matches_sequential(self, router, projects_dir, make_repo):
        """Test parallel matches sequential."""
        for name in ("a", "b", "c", "d", "e"):
            make_repo(projects_dir / name)

        sequential = DiscoveryService(router).discover_projects(str(projects_dir))
        parallel = DiscoveryService(router, concurrency=4).discover_projects(str(projects_dir))

        assert [p.name for p in parallel] == [p.name for p in sequential]

    def test_concurrency_is_bounded(self, router, projects_dir, make_repo):
        """Test concurrency is bounded."""
        for name in ("a", "b", "c", "d", "e", "f"):
            make_repo(projects_dir / name)
        discovery = DiscoveryService(router, concurrency=2)
        lock = threading.Lock()
        active = {"now": 0, "peak": 0}
        real = router.validate_repository

        def validate(path, cancel=None):
            with lock:
                active["now"] += 1
                active["peak"] = max(active["peak"], active["now"])
            try:
                return real(path, cancel=cancel)
            finally:
                with lock:
                    active["now"] -= 1

        with patch.object(router, "validate_repository", side_effect=validate):
            discovery.discover_projects(str(projects_dir))

        assert active["peak"] <= 2

    def test_set_concurrency(self, discovery):
        """Test set concurrency."""
        assert discovery.concurrency == 1
        discovery.set_concurrency(3)
        assert discovery.concurrency == 3
        discovery.set_concurrency(0)
        assert discovery.concurrency >= 1

    def test_cancelled(self, discovery, projects_dir, make_repo):
        """Test discovery with a cancelled token."""
        make_repo(projects_dir / "alpha")
        token = CancelToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            discovery.discover_projects(str(projects_dir), cancel=token)

    def test_expired_deadline(self, discovery, projects_dir, make_repo):
        """Test expired deadline."""
        make_repo(projects_dir / "alpha")

        with pytest.raises(OperationCancelledError):
            discovery.discover_projects(str(projects_dir), cancel=CancelToken(timeout=0))


class TestDiscoverWorktrees:
    """Test worktree discovery."""

    def test_finds_worktrees(self, discovery, workspaces_dir, add_worktree):
        """Test finds worktrees."""
        clean = add_worktree("feature-a")
        dirty = add_worktree("feature-b")
        (dirty / "scratch.txt").write_text("x\n")

        worktrees = discovery.discover_worktrees(str(workspaces_dir))

        assert [(w.project_name, w.branch) for w in worktrees] == [("myproj", "feature-a"), ("myproj", "feature-b")]
        assert worktrees[0].path == str(clean)
        assert worktrees[0].is_clean is True
        assert worktrees[1].is_clean is False
        assert worktrees[0].last_updated is not None

    def test_slash_branch(self, discovery, workspaces_dir, add_worktree):
        """Test slash branch."""
        add_worktree("feature/login")
        worktrees = discovery.discover_worktrees(str(workspaces_dir))
        assert [w.branch for w in worktrees] == ["feature/login"]

    def test_never_lists_main_repository(self, discovery, workspaces_dir, add_worktree, make_repo):
        """Test never lists main repository."""
        add_worktree("feature-a")
        # A full clone sitting where a worktree would be
        make_repo(workspaces_dir / "myproj" / "clone")

        worktrees = discovery.discover_worktrees(str(workspaces_dir))

        assert [w.branch for w in worktrees] == ["feature-a"]

    def test_missing_root(self, discovery, temp_dir):
        """Test missing root."""
        assert discovery.discover_worktrees(str(temp_dir / "missing")) == []


class TestFallback:
    """Test filesystem fallback when the backend fails systemically."""

    def test_projects_fallback(self, discovery, projects_dir, make_repo):
        """Test projects fallback."""
        make_repo(projects_dir / "alpha")
        (projects_dir / "plain").mkdir()

        with patch.object(discovery.router, "validate_repository",
                          side_effect=LibraryBackendError("validate_repository", "git unavailable")):
            assert discovery.discover_projects(str(projects_dir)) == []
            projects = discovery.discover_projects_with_fallback(str(projects_dir))

        assert [p.name for p in projects] == ["alpha"]
        assert projects[0].branches == []

    def test_worktrees_fallback(self, discovery, workspaces_dir, add_worktree):
        """Test worktrees fallback."""
        add_worktree("feature-a")

        with patch.object(discovery.router, "get_repository_status",
                          side_effect=CLIBackendError("get_repository_status", 127, "git: not found")):
            worktrees = discovery.discover_worktrees_with_fallback(str(workspaces_dir))

        assert [(w.project_name, w.branch) for w in worktrees] == [("myproj", "feature-a")]
        assert worktrees[0].is_clean is None
        assert worktrees[0].last_updated is None

    def test_fallback_not_used_when_backend_works(self, discovery, workspaces_dir, add_worktree):
        """Test fallback not used when backend works."""
        add_worktree("feature-a")
        worktrees = discovery.discover_worktrees_with_fallback(str(workspaces_dir))
        assert worktrees[0].is_clean is True

    def test_fallback_on_empty_root(self, discovery, temp_dir):
        """Test fallback on empty root."""
        assert discovery.discover_projects_with_fallback(str(temp_dir / "missing")) == []

    def test_fallback_propagates_root_access_errors(self, discovery, projects_dir):
        """Test fallback propagates root access errors."""
        with patch("twiggit.services.discovery_service.os.scandir", side_effect=PermissionError(13, "denied")):
            with pytest.raises(FilesystemAccessError):
                discovery.discover_projects_with_fallback(str(projects_dir))


class TestMissingGitExecutable:
    """Test discovery when the git executable cannot be found."""

    @pytest.fixture
    def no_git(self, monkeypatch):
        def _break():
            monkeypatch.setattr(git.Git, "GIT_PYTHON_GIT_EXECUTABLE", "/nonexistent/git")
        return _break

    def test_projects_fall_back_to_filesystem(self, discovery, projects_dir, make_repo, no_git):
        """A missing git executable triggers the filesystem scan for projects"""
        make_repo(projects_dir / "alpha")
        (projects_dir / "plain").mkdir()
        no_git()

        assert discovery.discover_projects(str(projects_dir)) == []
        projects = discovery.discover_projects_with_fallback(str(projects_dir))

        assert [p.name for p in projects] == ["alpha"]

    def test_worktrees_fall_back_to_filesystem(self, discovery, workspaces_dir, add_worktree, no_git):
        """A missing git executable triggers the filesystem scan for worktrees"""
        add_worktree("feature-a")
        no_git()

        worktrees = discovery.discover_worktrees_with_fallback(str(workspaces_dir))

        assert [(w.project_name, w.branch) for w in worktrees] == [("myproj", "feature-a")]
        assert worktrees[0].is_clean is None


class TestUnexpectedErrors:
    """Test that errors outside the twiggit hierarchy are not swallowed."""

    def test_unexpected_error_propagates(self, discovery, projects_dir, make_repo):
        """A programming error during inspection aborts the scan"""
        make_repo(projects_dir / "alpha")

        with patch.object(discovery.router, "list_branches", side_effect=KeyError("boom")):
            with pytest.raises(KeyError):
                discovery.discover_projects(str(projects_dir))

    def test_filesystem_error_excludes_entry(self, discovery, projects_dir, make_repo):
        """A twiggit filesystem error excludes only that entry"""
        make_repo(projects_dir / "alpha")
        make_repo(projects_dir / "beta")
        real = discovery.router.list_branches

        def list_branches(path, cancel=None):
            if path.endswith("alpha"):
                raise FilesystemAccessError("denied", path=path)
            return real(path, cancel=cancel)

        with patch.object(discovery.router, "list_branches", side_effect=list_branches):
            projects = discovery.discover_projects_with_fallback(str(projects_dir))

        assert [p.name for p in projects] == ["beta"]
