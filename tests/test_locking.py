"""Tests for the reader/writer lock."""

import threading

import pytest

from scopewire.exceptions import LockRecursionError
from scopewire.locking import ReaderWriterLock


class TestReaderWriterLock:
    def test_read_is_reentrant(self) -> None:
        lock = ReaderWriterLock()

        with lock.read(), lock.read():
            assert lock.is_read_held

        assert not lock.is_read_held

    def test_write_is_reentrant(self) -> None:
        lock = ReaderWriterLock()

        with lock.write(), lock.write():
            assert lock.is_write_held

        assert not lock.is_write_held

    def test_writer_may_read(self) -> None:
        lock = ReaderWriterLock()

        with lock.write(), lock.read():
            assert lock.is_read_held

    def test_write_while_reading_raises(self) -> None:
        lock = ReaderWriterLock()

        with lock.read(), pytest.raises(LockRecursionError):
            lock.acquire_write()

    def test_readers_share_the_lock(self) -> None:
        lock = ReaderWriterLock()
        inside = threading.Barrier(3, timeout=5)

        def read() -> None:
            with lock.read():
                inside.wait()

        threads = [threading.Thread(target=read) for _ in range(2)]
        for t in threads:
            t.start()
        with lock.read():
            inside.wait()
        for t in threads:
            t.join(5)

        assert not lock.is_read_held

    def test_writer_waits_for_readers_to_drain(self) -> None:
        lock = ReaderWriterLock()
        acquired = threading.Event()

        def write() -> None:
            with lock.write():
                acquired.set()

        lock.acquire_read()
        writer = threading.Thread(target=write)
        writer.start()

        assert not acquired.wait(0.1)

        lock.release_read()
        writer.join(5)

        assert acquired.is_set()
