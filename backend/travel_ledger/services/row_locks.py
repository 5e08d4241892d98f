"""
Row Locks - per-row mutual exclusion for writers inside one process.

Keys are acquired in sorted order so two writers touching the same pair of
rows can never deadlock. A stalled acquisition gives up at the deadline and
raises LockTimeoutError instead of blocking forever.
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from travel_ledger.config import settings
from travel_ledger.errors import LockTimeoutError

logger = logging.getLogger(__name__)


def transaction_key(transaction_id: int) -> str:
    return f"transaction:{transaction_id}"


def invoice_key(invoice_id: int) -> str:
    return f"invoice:{invoice_id}"


class RowLockRegistry:
    """
    Keyed lock table shared by every session in the process.

    An entry lives only while some thread holds or waits for its key.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> (lock, number of threads holding or waiting for it)
        self._locks: Dict[str, Tuple[threading.Lock, int]] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, *keys: str, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold every lock in ``keys`` for the duration of the block.

        Args:
            keys: row keys, e.g. ``transaction_key(5)``
            timeout: seconds to wait in total (defaults to settings.lock_timeout_seconds)
        """
        if timeout is None:
            timeout = settings.lock_timeout_seconds
        deadline = time.monotonic() + timeout
        acquired: List[Tuple[str, threading.Lock]] = []
        try:
            for key in sorted(set(keys)):
                lock = self._checkout(key)
                remaining = max(0.0, deadline - time.monotonic())
                if not lock.acquire(timeout=remaining):
                    self._checkin(key)
                    logger.warning(f"Timed out after {timeout:.2f}s waiting for {key}")
                    raise LockTimeoutError(key, timeout)
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)


row_locks = RowLockRegistry()
