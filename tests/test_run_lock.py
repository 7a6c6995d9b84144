from __future__ import annotations

import os

from newspulse.adapters.run_lock import RunLock, lock_path_for


def test_lock_path_sits_next_to_database() -> None:
    assert lock_path_for("/data/news.db") == "/data/news.db.lock"


def test_second_holder_is_refused_until_release(tmp_path) -> None:
    path = str(tmp_path / "state" / "news.db.lock")
    first = RunLock(path)
    second = RunLock(path)

    assert first.acquire() is True
    assert second.acquire() is False
    assert second.held is False
    with open(path, encoding="utf-8") as handle:
        assert handle.read() == str(os.getpid())

    first.release()
    assert second.acquire() is True
    second.release()


def test_context_manager_releases(tmp_path) -> None:
    path = str(tmp_path / "news.db.lock")
    lock = RunLock(path)
    assert lock.acquire()
    with lock:
        assert lock.held
    assert not lock.held
    assert RunLock(path).acquire() is True
