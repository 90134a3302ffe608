from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from scopewire.exceptions import LockRecursionError


class ReaderWriterLock:
    """Shared/exclusive lock guarding a container's scope tree.

    Shared acquisition is reentrant per thread. A thread waiting for exclusive
    access blocks new readers but waits for the current ones to drain. Exclusive
    acquisition is reentrant too, and the owner of the exclusive lock may take
    the shared one.
    """

    __slots__ = ("_condition", "_readers", "_waiting_writers", "_writer", "_writer_depth")

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers: dict[int, int] = {}
        self._writer: int | None = None
        self._writer_depth = 0
        self._waiting_writers = 0

    @property
    def is_read_held(self) -> bool:
        with self._condition:
            return threading.get_ident() in self._readers

    @property
    def is_write_held(self) -> bool:
        with self._condition:
            return self._writer == threading.get_ident()

    def acquire_read(self) -> None:
        ident = threading.get_ident()
        with self._condition:
            depth = self._readers.get(ident)
            if depth is not None:
                self._readers[ident] = depth + 1
                return
            if self._writer != ident:
                while self._writer is not None or self._waiting_writers:
                    self._condition.wait()
            self._readers[ident] = 1

    def release_read(self) -> None:
        ident = threading.get_ident()
        with self._condition:
            depth = self._readers[ident] - 1
            if depth:
                self._readers[ident] = depth
                return
            del self._readers[ident]
            if not self._readers:
                self._condition.notify_all()

    def acquire_write(self) -> None:
        ident = threading.get_ident()
        with self._condition:
            if ident in self._readers:
                msg = "Exclusive lock cannot be acquired by a thread holding the shared lock."
                raise LockRecursionError(msg)
            if self._writer == ident:
                self._writer_depth += 1
                return
            self._waiting_writers += 1
            try:
                while self._writer is not None or self._readers:
                    self._condition.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = ident
            self._writer_depth = 1

    def release_write(self) -> None:
        with self._condition:
            self._writer_depth -= 1
            if self._writer_depth:
                return
            self._writer = None
            self._condition.notify_all()

    @contextmanager
    def read(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
