from __future__ import annotations

from datetime import datetime
from typing import Callable, Hashable, List, Protocol

from evasoil.domain.models import Reading

InsertCallback = Callable[[Reading], None]
SubscriptionHandle = Hashable


class ReadingStore(Protocol):
    """
    Protocol interface for the readings store collaborator.

    The analytics engine only consumes readings that are already persisted.
    Any implementation providing these methods can back the runtime, which
    keeps the engine testable with in-memory fakes.

    Range Semantics
    ---------------
    :meth:`query` is inclusive of both ``start`` and ``end`` and returns
    readings ascending by ``(created_at, id)``.

    Methods
    -------
    query(start, end)
        Range query.
    subscribe(callback)
        Register a callback invoked with each newly inserted reading.
    unsubscribe(handle)
        Release a subscription.
    clear_all()
        Delete every reading.
    clear_device(device_id)
        Delete every reading of one device.
    """

    def query(self, start: datetime, end: datetime) -> List[Reading]:
        ...

    def subscribe(self, callback: InsertCallback) -> SubscriptionHandle:
        ...

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        ...

    def clear_all(self) -> bool:
        ...

    def clear_device(self, device_id: str) -> bool:
        ...
