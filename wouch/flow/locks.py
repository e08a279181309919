"""Wouch – per-subject pipeline serialisation.

An in-process registry handing out one :class:`threading.Lock` per
subject. When enabled, the flow controller holds the subject's lock for
the whole read-compute-write pipeline so concurrent submissions for the
same subject observe each other's commits. Subjects never share a lock.

Locks are reference counted and dropped once no caller holds or waits on
them, so the registry only ever contains subjects with a pipeline in
flight.

This only serialises callers inside one process; multiple workers still
race exactly as without it.
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator

from wouch.core.types import SubjectKey


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = Lock()
        self.users = 0


class SubjectLocks:
    """Lazily created, reference-counted lock per subject."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._registry_lock = Lock()
        self._locks: Dict[SubjectKey, _Entry] = {}

    def _acquire_entry(self, subject: SubjectKey) -> _Entry:
        with self._registry_lock:
            entry = self._locks.get(subject)
            if entry is None:
                entry = _Entry()
                self._locks[subject] = entry
            entry.users += 1
            return entry

    def _release_entry(self, subject: SubjectKey, entry: _Entry) -> None:
        with self._registry_lock:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[subject]

    @contextmanager
    def hold(self, subject: SubjectKey) -> Iterator[None]:
        """Hold ``subject``'s lock for the duration of the block.

        A disabled registry yields immediately.
        """

        if not self.enabled:
            yield
            return

        entry = self._acquire_entry(subject)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(subject, entry)

    def __len__(self) -> int:
        """Number of subjects with a pipeline holding or awaiting a lock."""

        with self._registry_lock:
            return len(self._locks)
