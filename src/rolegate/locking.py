"""Readers/writer lock guarding the relation store."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writer-preferring: once a writer is waiting, new readers queue behind
    it so a steady stream of access checks cannot starve mutations.
    Not reentrant. A thread that holds the write side and tries to acquire
    again gets ``RuntimeError`` instead of deadlocking.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writer_thread: int | None = None
        self._writers_waiting = 0

    def _check_reentry(self) -> None:
        if self._writer and self._writer_thread == threading.get_ident():
            raise RuntimeError("ReadWriteLock is not reentrant; this thread holds the write lock")

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            self._check_reentry()
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._check_reentry()
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
            self._writer_thread = threading.get_ident()
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._writer_thread = None
                self._cond.notify_all()
