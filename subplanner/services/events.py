import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectionChanged:
    """Emitted after the subscription collection has been persisted."""

    key: str
    action: str
    count: int


Listener = Callable[[CollectionChanged], None]


class ChangeNotifier:
    """Observer channel for collection changes.

    Listeners are called in subscription order. They receive the event only;
    anyone who needs the new collection reads a fresh snapshot from the store.
    """

    def __init__(self):
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: CollectionChanged) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Change listener failed for {event.action} on {event.key}: {e}")
                continue


# Singleton instance
notifier = ChangeNotifier()
