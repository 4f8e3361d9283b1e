from __future__ import annotations

import logging
import threading
from typing import Optional

from evasoil.store.base import InsertCallback, ReadingStore, SubscriptionHandle

LOGGER = logging.getLogger(__name__)


class LiveSubscription:
    """
    Scoped store subscription, acquired once and released exactly once.

    Use as a context manager::

        with LiveSubscription(store, callback):
            ...

    :meth:`release` may be called any number of times (from any thread); only
    the first call reaches ``store.unsubscribe``.
    """

    def __init__(self, store: ReadingStore, callback: InsertCallback):
        self._store = store
        self._callback = callback
        self._handle: Optional[SubscriptionHandle] = None
        self._acquired = False
        self._released = False
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        with self._lock:
            return self._acquired and not self._released

    def acquire(self) -> "LiveSubscription":
        """
        Subscribe to the store.

        Raises
        ------
        RuntimeError
            If this subscription was already acquired. A released
            subscription cannot be reused.
        """
        # release() waits on the lock, so it always sees the handle
        with self._lock:
            if self._acquired:
                raise RuntimeError("LiveSubscription already acquired")
            self._handle = self._store.subscribe(self._callback)
            self._acquired = True
        LOGGER.info("Live subscription acquired (handle %s)", self._handle)
        return self

    def release(self) -> None:
        with self._lock:
            if not self._acquired or self._released:
                return
            self._released = True
            handle = self._handle
        self._store.unsubscribe(handle)
        LOGGER.info("Live subscription released (handle %s)", handle)

    def __enter__(self) -> "LiveSubscription":
        return self.acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
