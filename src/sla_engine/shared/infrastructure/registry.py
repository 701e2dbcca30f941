"""
Project Registry
================

Per-tenant arena keyed by project id.

Each bounded context keeps its mutable state (policies, task states, queues,
delivery logs, ...) in one container object per project. The registry
creates containers lazily and serializes access to a project behind a
re-entrant lock, so evaluation and queue processing for the same project
never interleave. Different projects never share a lock.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Generic, Iterator, List, TypeVar

from sla_engine.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ProjectRegistry(Generic[T]):
    """
    Lazily populated, lock-guarded map of project id to state container.

    Usage:
        registry = ProjectRegistry(lambda project_id: ProjectSLAState(project_id))
        with registry.locked("proj-1") as state:
            state.breaches.append(record)
    """

    def __init__(self, factory: Callable[[str], T], name: str = "registry"):
        self._factory = factory
        self._name = name
        self._entries: Dict[str, T] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, project_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[project_id] = lock
            return lock

    @contextmanager
    def locked(self, project_id: str) -> Iterator[T]:
        """Hold the project lock and yield its container, creating it if needed."""
        with self._lock_for(project_id):
            entry = self._entries.get(project_id)
            if entry is None:
                entry = self._factory(project_id)
                self._entries[project_id] = entry
            yield entry

    def reset(self, project_id: str) -> bool:
        """Drop all state for a project. Returns True when something was dropped."""
        with self._lock_for(project_id):
            dropped = self._entries.pop(project_id, None) is not None
        logger.info(
            "Project state reset",
            extra={"registry": self._name, "project_id": project_id, "dropped": dropped}
        )
        return dropped

    def project_ids(self) -> List[str]:
        """Projects that currently hold state."""
        with self._guard:
            return list(self._entries.keys())

    def dispose(self) -> None:
        """
        Drop every project's state and forget its lock.

        Only call when no other thread is using the registry (shutdown, test
        teardown); locks are otherwise kept for the registry's lifetime so
        concurrent callers of one project always share a lock.
        """
        for project_id in self.project_ids():
            self.reset(project_id)
        with self._guard:
            self._locks.clear()
