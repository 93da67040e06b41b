"""Application layer - Memoized singleton instances."""

import logging
import threading
from typing import Any, Callable, Dict, Optional

from tether_di.application.locks import ReadWriteLock
from tether_di.domain import BindingKey, CircularDependencyError, format_key

logger = logging.getLogger(__name__)


class _SingletonCell:
    """Holds one singleton and gates its construction."""

    __slots__ = ("lock", "done", "value", "error")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.done = False
        self.value: Any = None
        self.error: Optional[BaseException] = None


class SingletonCache:
    """Per-container store of singleton instances.

    Guarantees the factory for a key runs exactly once, even when many threads
    race to resolve it first. Every waiter observes the same instance, or the
    same exception when construction failed.

    Attributes:
        _cells: One cell per (type, name) key.
        _lock: Reader/writer lock guarding ``_cells``.
        _retry_failed: Whether a failed construction is retried on the next call.
        _owners: Thread currently building each key.
        _waiting: Key each blocked thread is waiting for.
    """

    def __init__(self, retry_failed: bool = False) -> None:
        """Initialize an empty cache.

        Args:
            retry_failed: Retry failed constructions instead of replaying the error.
        """
        self._cells: Dict[BindingKey, _SingletonCell] = {}
        self._lock = ReadWriteLock()
        self._retry_failed = retry_failed
        self._graph_lock = threading.Lock()
        self._owners: Dict[BindingKey, int] = {}
        self._waiting: Dict[int, BindingKey] = {}

    def _cell_for(self, key: BindingKey) -> _SingletonCell:
        with self._lock.read():
            cell = self._cells.get(key)
        if cell is not None:
            return cell

        with self._lock.write():
            # Another thread may have inserted the cell in between
            cell = self._cells.get(key)
            if cell is None:
                cell = _SingletonCell()
                self._cells[key] = cell
        return cell

    def _check_cycle(self, key: BindingKey, me: int) -> None:
        # Caller holds _graph_lock
        waited = [key]
        while True:
            owner = self._owners.get(waited[-1])
            if owner is None:
                return
            if owner == me:
                cycle = [waited[-1]] + waited
                raise CircularDependencyError([format_key(*entry) for entry in cycle])
            next_key = self._waiting.get(owner)
            if next_key is None or next_key in waited:
                return
            waited.append(next_key)

    def _acquire(self, cell: _SingletonCell, key: BindingKey, me: int) -> None:
        if cell.lock.acquire(blocking=False):
            return

        with self._graph_lock:
            self._check_cycle(key, me)
            self._waiting[me] = key
        try:
            cell.lock.acquire()
        finally:
            with self._graph_lock:
                del self._waiting[me]

    def get_or_create(self, key: BindingKey, factory: Callable[[], Any]) -> Any:
        """Return the singleton for ``key``, building it with ``factory`` on first use.

        A thread that would block on a key whose construction is itself
        waiting, directly or through other threads, on a key this thread is
        building gets a ``CircularDependencyError`` instead of deadlocking.

        Args:
            key: The (abstract type, name) pair.
            factory: Builds the instance; called at most once per key.

        Returns:
            The cached instance.

        Raises:
            CircularDependencyError: If waiting for the key would deadlock.
            Exception: Whatever the factory raised, replayed on later calls
                unless the cache retries failures.
        """
        cell = self._cell_for(key)
        me = threading.get_ident()

        self._acquire(cell, key, me)
        try:
            with self._graph_lock:
                claimed = self._owners.get(key) != me
                if claimed:
                    self._owners[key] = me
            try:
                if not cell.done:
                    try:
                        cell.value = factory()
                    except Exception as error:
                        if not self._retry_failed:
                            cell.error = error
                            cell.done = True
                        logger.debug("Singleton construction failed for %s: %s", format_key(*key), error)
                        raise
                    cell.done = True
                    logger.debug("Created singleton for %s", format_key(*key))
            finally:
                if claimed:
                    with self._graph_lock:
                        if self._owners.get(key) == me:
                            del self._owners[key]
        finally:
            cell.lock.release()

        if cell.error is not None:
            raise cell.error
        return cell.value

    def clear(self) -> None:
        """Forget every cached instance and memoized failure."""
        with self._lock.write():
            self._cells.clear()

    def __contains__(self, key: BindingKey) -> bool:
        with self._lock.read():
            cell = self._cells.get(key)
        return cell is not None and cell.done and cell.error is None

    def __len__(self) -> int:
        with self._lock.read():
            return sum(1 for cell in self._cells.values() if cell.done and cell.error is None)
