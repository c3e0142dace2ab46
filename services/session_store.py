"""
In-memory session store for the Medical Document Explainer

Holds the current ``DocumentSession`` snapshot. All writes go through the
store so that subscribers see every transition, and writes tagged with a
superseded cycle are dropped.
"""
import logging
from typing import Callable, List, Optional

from models.session import DocumentSession

logger = logging.getLogger(__name__)

Subscriber = Callable[[DocumentSession], None]
Transition = Callable[[DocumentSession], DocumentSession]


class SessionStore:
    """Single-writer holder of the current session snapshot"""

    def __init__(self, initial: Optional[DocumentSession] = None):
        self._current = initial or DocumentSession()
        self._last_cycle = self._current.cycle
        self._subscribers: List[Subscriber] = []

    @property
    def current(self) -> DocumentSession:
        return self._current

    def next_cycle(self) -> int:
        """Reserve a new cycle id"""
        self._last_cycle += 1
        return self._last_cycle

    def is_current(self, cycle: int) -> bool:
        return self._current.cycle == cycle

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """
        Register a callback that receives every new snapshot

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def replace(self, session: DocumentSession) -> DocumentSession:
        """Install a snapshot unconditionally and notify subscribers"""
        self._current = session
        self._last_cycle = max(self._last_cycle, session.cycle)
        self._notify()
        return session

    def apply(self, transition: Transition, cycle: Optional[int] = None) -> Optional[DocumentSession]:
        """
        Apply a transition to the current snapshot.

        Args:
            transition: Function from the current snapshot to the next one
            cycle: When given, the write is discarded unless it matches the current cycle

        Returns:
            The new snapshot, or None when the write was discarded
        """
        if cycle is not None and not self.is_current(cycle):
            logger.debug(f"Discarding write from stale cycle {cycle} (current cycle {self._current.cycle})")
            return None
        return self.replace(transition(self._current))

    def reset(self) -> DocumentSession:
        return self.replace(DocumentSession(cycle=self._current.cycle))

    def _notify(self) -> None:
        snapshot = self._current
        for subscriber in list(self._subscribers):
            subscriber(snapshot)
