"""Tests for cancellation, path and threading helpers"""
import os
import time
from unittest.mock import patch

import pytest

from twiggit.exceptions import OperationCancelledError
from twiggit.utils.cancellation import CancelToken, check_cancelled
from twiggit.utils.paths import contains_path_traversal, is_path_under, normalize_path
from twiggit.utils.threading import get_optimal_worker_count, resolve_worker_count


class TestCancelToken:
    def test_not_cancelled_by_default(self):
        """Test not cancelled by default."""
        token = CancelToken()
        assert not token.cancelled
        assert token.remaining() is None
        token.raise_if_cancelled("op")

    def test_cancel(self):
        """Test cancelling a token."""
        token = CancelToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(OperationCancelledError, match="was cancelled"):
            token.raise_if_cancelled("op")

    def test_deadline(self):
        """Test a token past its deadline."""
        token = CancelToken(timeout=0.01)
        time.sleep(0.02)
        assert token.cancelled
        assert token.remaining() == 0.0
        with pytest.raises(OperationCancelledError, match="timed out"):
            token.raise_if_cancelled("op")

    def test_remaining_counts_down(self):
        """Test remaining counts down."""
        token = CancelToken(timeout=60)
        assert 0 < token.remaining() <= 60

    def test_check_cancelled_accepts_none(self):
        """Test check cancelled accepts none."""
        check_cancelled(None, "op")


class TestPaths:
    def test_normalize_resolves_symlinks(self, temp_dir):
        """Test normalize resolves symlinks."""
        target = temp_dir / "target"
        target.mkdir()
        link = temp_dir / "link"
        os.symlink(target, link)
        assert normalize_path(str(link)) == str(target)

    def test_normalize_expands_home(self):
        """Test normalize expands home."""
        assert normalize_path("~") == os.path.realpath(os.path.expanduser("~"))

    @pytest.mark.parametrize("path, root, expected", [
        ("/a/b", "/a/b", True),
        ("/a/b/c", "/a/b", True),
        ("/a/bc", "/a/b", False),
        ("/a", "/a/b", False),
        ("/a/b/", "/a/b", True),
    ])
    def test_is_path_under(self, path, root, expected):
        """Test is path under."""
        assert is_path_under(path, root) is expected

    @pytest.mark.parametrize("text", ["..", "../etc", "a/../b", "%2e%2e/x", "%252e%252e", "feature..x"])
    def test_traversal_detected(self, text):
        """Test traversal detected."""
        assert contains_path_traversal(text)

    @pytest.mark.parametrize("text", ["main", "feature/login", "v1.2", "my-proj"])
    def test_plain_names_allowed(self, text):
        """Test plain names allowed."""
        assert not contains_path_traversal(text)


class TestWorkerCount:
    def test_none_is_sequential(self):
        """Test none is sequential."""
        assert resolve_worker_count(None) == 1

    def test_explicit_value(self):
        """Test an explicit worker count."""
        assert resolve_worker_count(6) == 6

    def test_zero_auto_sizes(self):
        """Test zero auto sizes."""
        assert resolve_worker_count(0) == get_optimal_worker_count()

    def test_optimal_count_with_gil(self):
        """Test optimal count with gil."""
        with patch("twiggit.utils.threading.os.cpu_count", return_value=4), \
                patch("twiggit.utils.threading.is_free_threading_enabled", return_value=False):
            assert get_optimal_worker_count() == 8

    def test_optimal_count_free_threaded(self):
        """Test optimal count free threaded."""
        with patch("twiggit.utils.threading.os.cpu_count", return_value=4), \
                patch("twiggit.utils.threading.is_free_threading_enabled", return_value=True):
            assert get_optimal_worker_count() == 8

    def test_optimal_count_is_capped(self):
        """Test optimal count is capped."""
        with patch("twiggit.utils.threading.os.cpu_count", return_value=100), \
                patch("twiggit.utils.threading.is_free_threading_enabled", return_value=False):
            assert get_optimal_worker_count() == 32
