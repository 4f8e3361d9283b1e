from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

from evasoil.domain.models import AnalyticsView


@dataclass
class ViewStore:
    """
    Thread-safe holder for the most recently published analytics view.

    'ViewStore' is the hand-off point between the controller worker thread
    (producer) and the UI thread (consumer, polling from a QTimer).

    Concurrency Model
    -----------------
    All reads/writes are guarded by a single re-entrant lock
    (`threading.RLock`). Views are immutable, so readers can use the returned
    object without holding the lock.

    Attributes
    ----------
    revision
        Incremented on every publish; lets the UI skip redraws when nothing
        changed since its last refresh.
    """

    revision: int = 0

    _view: Optional[AnalyticsView] = field(default=None, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    def publish(self, view: AnalyticsView) -> None:
        """
        Replace the current view.

        Parameters
        ----------
        view
            Freshly computed analytics view.
        """
        with self._lock:
            self._view = view
            self.revision += 1

    @property
    def current(self) -> Optional[AnalyticsView]:
        """
        Latest published view, or None before the first publication.
        """
        with self._lock:
            return self._view

    def read(self) -> tuple[int, Optional[AnalyticsView]]:
        """
        Read revision and view atomically.

        Returns
        -------
        tuple
            ``(revision, view)``.
        """
        with self._lock:
            return self.revision, self._view
