"""
Per-order advisory lock

Serializes mutations of one order so two concurrent requests cannot corrupt
its line items and totals. The lock is keyed by the order's id, taken without
waiting (a held lock means the other request wins and this one gets 409), held
for the duration of the mutation and always released.

Two layers: an in-process registry (threads of this worker) and a PostgreSQL
advisory lock (every worker sharing the database). Callers must load the
order inside the block; a snapshot read before the lock may be stale.
"""
import time
import logging
import threading
from contextlib import contextmanager
from typing import Callable, ContextManager, Dict, Hashable, Optional

from .config import settings
from .database import try_advisory_lock
from .errors import LockFailed

logger = logging.getLogger(__name__)


class OrderMutex:
    """
    Registry of held order locks.

    Locks older than `expires_after` seconds are treated as abandoned and
    may be taken over. `advisory_lock(key)` is a context manager yielding
    whether the cross-process lock was obtained; None keeps the lock
    in-process only.
    """

    def __init__(
        self,
        expires_after: float = 300,
        advisory_lock: Optional[Callable[[Hashable], ContextManager[bool]]] = None,
    ):
        self._held: Dict[Hashable, float] = {}
        self._registry_lock = threading.Lock()
        self.expires_after = expires_after
        self.advisory_lock = advisory_lock

    def acquire(self, order_key: Hashable) -> bool:
        now = time.monotonic()
        with self._registry_lock:
            acquired_at = self._held.get(order_key)
            if acquired_at is not None and now - acquired_at < self.expires_after:
                return False
            if acquired_at is not None:
                logger.warning(f"Taking over stale lock on order {order_key}")
            self._held[order_key] = now
            return True

    def release(self, order_key: Hashable):
        with self._registry_lock:
            self._held.pop(order_key, None)

    def is_locked(self, order_key: Hashable) -> bool:
        with self._registry_lock:
            return order_key in self._held

    @contextmanager
    def with_lock(self, order_key: Hashable):
        """
        Hold the lock for order_key while the block runs.

        Raises:
            LockFailed: if another request or worker holds the lock
        """
        if not self.acquire(order_key):
            logger.warning(f"Could not obtain lock on order {order_key}")
            raise LockFailed(f"Could not obtain lock on order {order_key}")
        try:
            if self.advisory_lock is None:
                yield
                return

            with self.advisory_lock(order_key) as locked:
                if not locked:
                    logger.warning(f"Order {order_key} is locked by another worker")
                    raise LockFailed(f"Could not obtain lock on order {order_key}")
                yield
        finally:
            self.release(order_key)


order_mutex = OrderMutex(advisory_lock=try_advisory_lock if settings.ORDER_LOCK_ADVISORY else None)
