"""Tests for lock-file guarded updates."""

import pytest

from xgit.core.lockfile import LockFile, write_locked
from xgit.exceptions import LockError


def test_write_locked_replaces_content(tmp_path):
    target = tmp_path / 'file'
    target.write_text('old')
    write_locked(target, 'new')
    assert target.read_text() == 'new'
    assert not (tmp_path / 'file.lock').exists()


def test_existing_lock_raises(tmp_path):
    """Test a held lock fails immediately and leaves the target alone."""
    target = tmp_path / 'file'
    target.write_text('original')
    (tmp_path / 'file.lock').write_text('')

    with pytest.raises(LockError):
        write_locked(target, 'changed')
    assert target.read_text() == 'original'


def test_exception_rolls_back(tmp_path):
    """Test the target is untouched and the lock removed on failure."""
    target = tmp_path / 'file'
    target.write_text('original')

    with pytest.raises(RuntimeError):
        with LockFile(target) as lock:
            lock.write(b'partial')
            raise RuntimeError('boom')

    assert target.read_text() == 'original'
    assert not (tmp_path / 'file.lock').exists()


def test_lock_creates_parent_directories(tmp_path):
    target = tmp_path / 'refs' / 'heads' / 'feature' / 'x'
    write_locked(target, 'abc\n')
    assert target.read_text() == 'abc\n'
