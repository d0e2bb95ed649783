"""Tests for ContextDetector"""
import os
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from twiggit.exceptions import InvalidInputError, PathNotFoundError
from twiggit.models.context import Context, ContextType
from twiggit.services.context_detector import ContextCache, read_gitdir_link


class TestDetectContext:
    """Test path classification."""

    def test_project_root(self, detector, project_repo, projects_dir):
        """Test detecting a project root."""
        ctx = detector.detect_context(str(projects_dir / "myproj"))
        assert ctx.type == ContextType.PROJECT
        assert ctx.project_name == "myproj"
        assert ctx.path == str(projects_dir / "myproj")
        assert ctx.branch_name == ""

    def test_project_subdirectory(self, detector, project_repo, projects_dir):
        """Test project subdirectory."""
        nested = projects_dir / "myproj" / "src" / "pkg"
        nested.mkdir(parents=True)

        ctx = detector.detect_context(str(nested))

        assert ctx.type == ContextType.PROJECT
        assert ctx.project_name == "myproj"
        assert ctx.project_path == str(projects_dir / "myproj")

    def test_worktree(self, detector, add_worktree, projects_dir):
        """Test detecting a linked worktree."""
        path = add_worktree("feature-x")

        ctx = detector.detect_context(str(path))

        assert ctx.type == ContextType.WORKTREE
        assert ctx.project_name == "myproj"
        assert ctx.branch_name == "feature-x"
        assert ctx.project_path == str(projects_dir / "myproj")

    def test_worktree_subdirectory(self, detector, add_worktree):
        """Test worktree subdirectory."""
        path = add_worktree("feature-x")
        nested = path / "docs"
        nested.mkdir()

        ctx = detector.detect_context(str(nested))

        assert ctx.type == ContextType.WORKTREE
        assert ctx.branch_name == "feature-x"
        assert ctx.path == str(path)

    def test_worktree_with_slash_branch(self, detector, add_worktree):
        """Test worktree with slash branch."""
        path = add_worktree("feature/login")
        ctx = detector.detect_context(str(path))
        assert ctx.branch_name == "feature/login"

    def test_outside_repository(self, detector, temp_dir):
        """Test outside repository."""
        plain = temp_dir / "plain"
        plain.mkdir()

        ctx = detector.detect_context(str(plain))

        assert ctx.type == ContextType.OUTSIDE_REPO
        assert ctx.project_name == ""

    def test_file_path_uses_parent(self, detector, project_repo, projects_dir):
        """Test file path uses parent."""
        ctx = detector.detect_context(str(projects_dir / "myproj" / "README.md"))
        assert ctx.type == ContextType.PROJECT

    def test_empty_path(self, detector):
        """Test empty path."""
        with pytest.raises(InvalidInputError):
            detector.detect_context("")

    def test_missing_path(self, detector, temp_dir):
        """Test detecting a path that does not exist."""
        with pytest.raises(PathNotFoundError):
            detector.detect_context(str(temp_dir / "missing"))

    def test_git_file_without_gitdir_is_not_a_worktree(self, detector, temp_dir):
        """Test git file without gitdir is not a worktree."""
        fake = temp_dir / "fake"
        fake.mkdir()
        (fake / ".git").write_text("not a link\n")

        assert detector.detect_context(str(fake)).type == ContextType.OUTSIDE_REPO


class TestContextCache:
    """Test caching and invalidation."""

    def test_repeated_calls_return_same_object(self, detector, project_repo, projects_dir):
        """Test repeated calls return same object."""
        first = detector.detect_context(str(projects_dir / "myproj"))
        second = detector.detect_context(str(projects_dir / "myproj"))
        assert first is second

    def test_symlink_and_real_path_share_entry(self, detector, project_repo, projects_dir, temp_dir):
        """Test symlink and real path share entry."""
        real = projects_dir / "myproj"
        link = temp_dir / "link-to-myproj"
        os.symlink(real, link)

        via_link = detector.detect_context(str(link))
        via_real = detector.detect_context(str(real))
        assert via_link is via_real

        detector.invalidate_cache_for_repo(str(real))

        fresh = detector.detect_context(str(link))
        assert fresh is not via_link
        assert fresh == via_link

    def test_cached_result_skips_backend(self, detector, add_worktree):
        """Test cached result skips backend."""
        path = add_worktree("feature-x")
        detector.detect_context(str(path))

        with patch.object(detector.router, "get_repository_info") as info:
            detector.detect_context(str(path))
        info.assert_not_called()

    def test_invalidate_only_drops_matching_repo(self, detector, project_repo, projects_dir, temp_dir, make_repo):
        """Test invalidate only drops matching repo."""
        make_repo(projects_dir / "other")
        plain = temp_dir / "plain"
        plain.mkdir()

        mine = detector.detect_context(str(projects_dir / "myproj"))
        other = detector.detect_context(str(projects_dir / "other"))
        outside = detector.detect_context(str(plain))

        dropped = detector.invalidate_cache_for_repo(str(projects_dir / "myproj"))

        assert dropped == 2  # myproj and the outside-repository entry
        assert detector.detect_context(str(projects_dir / "other")) is other
        assert detector.detect_context(str(projects_dir / "myproj")) is not mine
        assert detector.detect_context(str(plain)) is not outside

    def test_invalidate_drops_worktree_entries(self, detector, add_worktree, projects_dir):
        """Test invalidate drops worktree entries."""
        path = add_worktree("feature-x")
        before = detector.detect_context(str(path))

        detector.invalidate_cache_for_repo(str(projects_dir / "myproj"))

        assert detector.detect_context(str(path)) is not before

    def test_clear_cache(self, detector, project_repo, projects_dir):
        """Test clear cache."""
        before = detector.detect_context(str(projects_dir / "myproj"))
        detector.clear_cache()
        assert len(detector.cache) == 0
        assert detector.detect_context(str(projects_dir / "myproj")) is not before

    def test_concurrent_detection_yields_one_object(self, detector, project_repo, projects_dir):
        """Test concurrent detection yields one object."""
        path = str(projects_dir / "myproj")
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: detector.detect_context(path), range(32)))
        assert all(ctx is results[0] for ctx in results)

    def test_put_keeps_first_writer(self):
        """Test put keeps first writer."""
        cache = ContextCache()
        first = Context(type=ContextType.OUTSIDE_REPO, path="/a")
        second = Context(type=ContextType.OUTSIDE_REPO, path="/a")

        assert cache.put("/a", first) is first
        assert cache.put("/a", second) is first


class TestReadGitdirLink:
    """Test parsing of a worktree's .git file."""

    def test_absolute_link(self, temp_dir):
        """Test reading an absolute gitdir link."""
        git_file = temp_dir / ".git"
        git_file.write_text("gitdir: /repo/.git/worktrees/feature\n")
        assert read_gitdir_link(str(git_file)) == "/repo/.git/worktrees/feature"

    def test_relative_link(self, temp_dir):
        """Test reading a relative gitdir link."""
        git_file = temp_dir / ".git"
        git_file.write_text("gitdir: ../repo/.git/worktrees/feature\n")
        expected = os.path.normpath(str(temp_dir / ".." / "repo" / ".git" / "worktrees" / "feature"))
        assert read_gitdir_link(str(git_file)) == expected

    def test_no_link(self, temp_dir):
        """Test .git file without a gitdir line."""
        git_file = temp_dir / ".git"
        git_file.write_text("something else\n")
        assert read_gitdir_link(str(git_file)) is None
