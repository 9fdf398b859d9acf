"""
Tests for permanent link handling and retry (unvm/links.py, unvm/retry.py).
"""

import errno
import os
import sys
from unittest.mock import MagicMock, patch

import pytest

from unvm.errors import ConcurrencyConflict
from unvm.links import link_exists, read_link_version, remove_link, replace_link
from unvm.platforms import PosixPlatform, Win32Platform
from unvm.retry import RetryExhausted, calculate_backoff_delay, retry_call


class TestRetry:
    """retry_call."""

    def test_success_first_try(self):
        """A successful call is not retried."""
        func = MagicMock(return_value=42)
        assert retry_call(func, lambda e: True, sleep=lambda s: None) == 42
        assert func.call_count == 1

    def test_retries_transient_errors(self):
        """Transient failures are retried until success."""
        func = MagicMock(side_effect=[OSError(errno.EPERM, "locked"), OSError(errno.EPERM, "locked"), "ok"])
        sleeps = []
        assert retry_call(func, lambda e: True, attempts=5, sleep=sleeps.append) == "ok"
        assert func.call_count == 3
        assert len(sleeps) == 2

    def test_non_retryable_propagates(self):
        """Errors the predicate rejects are raised unchanged."""
        func = MagicMock(side_effect=ValueError("bad"))
        with pytest.raises(ValueError):
            retry_call(func, lambda e: isinstance(e, OSError), sleep=lambda s: None)
        assert func.call_count == 1

    def test_exhausted(self):
        """Running out of attempts raises RetryExhausted with the last error."""
        error = OSError(errno.EBUSY, "busy")
        func = MagicMock(side_effect=error)
        with pytest.raises(RetryExhausted) as exc_info:
            retry_call(func, lambda e: True, attempts=3, sleep=lambda s: None)
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is error
        assert func.call_count == 3

    def test_backoff_bounded(self):
        """Backoff grows but never exceeds the ceiling plus jitter."""
        assert calculate_backoff_delay(0, 0.05, 2.0) <= 0.06
        assert calculate_backoff_delay(20, 0.05, 2.0) <= 2.4


class TestLinks:
    """Link read/replace/remove."""

    def test_replace_and_read(self, tmp_path, platform):
        """The link points at the bin dir and reports its version."""
        target = tmp_path / "nodejs" / "v20.10.0" / "bin"
        target.mkdir(parents=True)
        link = tmp_path / "nodejs" / "bin"
        replace_link(str(link), str(target), platform)
        assert os.readlink(link) == str(target)
        assert read_link_version(str(link)) == "v20.10.0"
        assert link_exists(str(link))

    def test_replace_existing(self, tmp_path, platform):
        """An existing link is swapped to the new target."""
        old = tmp_path / "v18.20.0" / "bin"
        new = tmp_path / "v20.10.0" / "bin"
        old.mkdir(parents=True)
        new.mkdir(parents=True)
        link = tmp_path / "link"
        replace_link(str(link), str(old), platform)
        replace_link(str(link), str(new), platform)
        assert read_link_version(str(link)) == "v20.10.0"

    def test_read_missing(self, tmp_path):
        """No link means no version."""
        assert read_link_version(str(tmp_path / "nope")) is None

    def test_remove(self, tmp_path, platform):
        """remove_link reports whether anything was removed."""
        target = tmp_path / "v20.10.0"
        target.mkdir()
        link = tmp_path / "link"
        replace_link(str(link), str(target), platform)
        assert remove_link(str(link)) is True
        assert remove_link(str(link)) is False
        assert not os.path.lexists(link)

    def test_lock_contention_becomes_conflict(self, tmp_path):
        """Persistent lock errors surface as ConcurrencyConflict after bounded retries."""
        win = Win32Platform(system="windows", arch="AMD64")
        with patch.object(win, "create_dir_link", side_effect=PermissionError(errno.EPERM, "locked")) as create:
            with pytest.raises(ConcurrencyConflict) as exc_info:
                replace_link(str(tmp_path / "link"), str(tmp_path), win, attempts=3, sleep=lambda s: None)
        assert exc_info.value.attempts == 3
        assert create.call_count == 3

    def test_posix_does_not_retry(self, tmp_path):
        """posix treats the same error as fatal at once."""
        posix = PosixPlatform(system="linux", arch="x86_64")
        with patch("unvm.platforms.os.symlink", side_effect=PermissionError(errno.EPERM, "denied")) as symlink:
            with pytest.raises(PermissionError):
                replace_link(str(tmp_path / "link"), str(tmp_path), posix, sleep=lambda s: None)
        assert symlink.call_count == 1

    def test_plain_directory_has_no_version(self, tmp_path):
        """A real directory at the link path is not a link."""
        (tmp_path / "v20.10.0").mkdir()
        assert read_link_version(str(tmp_path / "v20.10.0")) is None

    def test_junction_target_is_read(self, tmp_path):
        """Long-path junction targets still name the version."""
        link = tmp_path / "link"
        link.mkdir()
        with patch("unvm.links.os.readlink", return_value="\\\\?\\C:\\nvm\\nodejs\\v18.20.0"):
            assert read_link_version(str(link)) == "v18.20.0"


class TestPlatformLinks:
    """Platform specific link creation."""

    def test_posix_symlink(self, tmp_path):
        """posix links are directory symlinks."""
        target = tmp_path / "v20.10.0" / "bin"
        target.mkdir(parents=True)
        PosixPlatform(system="linux", arch="x86_64").create_dir_link(str(target), str(tmp_path / "link"))
        assert os.path.islink(tmp_path / "link")

    def test_win32_creates_junction(self, tmp_path):
        """Windows links are junctions, not symlinks."""
        winapi = MagicMock()
        win = Win32Platform(system="windows", arch="AMD64")
        with patch.dict(sys.modules, {"_winapi": winapi}), patch("unvm.platforms.os.symlink") as symlink:
            replace_link(str(tmp_path / "link"), str(tmp_path / "v20.10.0"), win, sleep=lambda s: None)
        winapi.CreateJunction.assert_called_once_with(
            os.path.abspath(str(tmp_path / "v20.10.0")), os.path.abspath(str(tmp_path / "link"))
        )
        symlink.assert_not_called()
