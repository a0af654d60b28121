import logging
import uuid
from collections import Counter
from typing import Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from subplanner.schemas.subscription import Subscription, SubscriptionCreate
from subplanner.services.events import ChangeNotifier, CollectionChanged
from subplanner.services.storage import StorageBackend

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "subplanner_subscriptions"

_collection_adapter = TypeAdapter(list[Subscription])


class SnapshotError(ValueError):
    """The persisted collection could not be parsed."""


def _sort_key(subscription: Subscription) -> tuple[bool, int]:
    # Records without an order go after every ordered record
    if subscription.order is None:
        return (True, 0)
    return (False, subscription.order)


class SubscriptionStore:
    """Owns the subscription collection.

    Every operation starts from the last persisted snapshot. Every mutation
    writes the whole collection back exactly once and then emits exactly one
    ``CollectionChanged`` event.
    """

    def __init__(
        self,
        backend: StorageBackend,
        notifier: Optional[ChangeNotifier] = None,
        key: str = DEFAULT_STORAGE_KEY,
    ):
        self._backend = backend
        self._notifier = notifier or ChangeNotifier()
        self._key = key

    def _load(self) -> list[Subscription]:
        blob = self._backend.get(self._key)
        if not blob:
            return []
        try:
            return _collection_adapter.validate_json(blob)
        except ValidationError as e:
            raise SnapshotError(f"Stored collection under {self._key} is not valid: {e}") from e

    def _commit(self, subscriptions: list[Subscription], action: str) -> None:
        blob = _collection_adapter.dump_json(subscriptions, by_alias=True, exclude_none=True)
        self._backend.set(self._key, blob.decode("utf-8"))
        self._notifier.emit(
            CollectionChanged(key=self._key, action=action, count=len(subscriptions))
        )

    def list_all(self) -> list[Subscription]:
        """Return the collection sorted by display order."""
        return sorted(self._load(), key=_sort_key)

    def get(self, subscription_id: str) -> Optional[Subscription]:
        return next((s for s in self._load() if s.id == subscription_id), None)

    def add(self, data: SubscriptionCreate) -> Subscription:
        subscriptions = self._load()
        max_order = max([0] + [s.order for s in subscriptions if s.order is not None])

        subscription = Subscription(
            id=str(uuid.uuid4()),
            order=max_order + 1,
            is_active=True,
            **data.model_dump(),
        )
        subscriptions.append(subscription)
        self._commit(subscriptions, "add")

        logger.info(f"Added subscription {subscription.id} ({subscription.name})")
        return subscription

    def update(self, subscription: Subscription) -> Optional[Subscription]:
        """Replace the record with the same id. Returns None when there is none."""
        subscriptions = self._load()
        found = False
        for index, existing in enumerate(subscriptions):
            if existing.id == subscription.id:
                subscriptions[index] = subscription
                found = True

        self._commit(subscriptions, "update")

        if not found:
            logger.info(f"Update skipped, subscription {subscription.id} not found")
            return None
        return subscription

    def delete(self, subscription_id: str) -> None:
        subscriptions = self._load()
        remaining = [s for s in subscriptions if s.id != subscription_id]
        self._commit(remaining, "delete")

        if len(remaining) < len(subscriptions):
            logger.info(f"Deleted subscription {subscription_id}")

    def reorder(self, ordered_ids: Iterable[str]) -> list[Subscription]:
        """Set each listed record's order to its index in ``ordered_ids``.

        Records missing from ``ordered_ids`` keep their current order.
        """
        positions = {subscription_id: index for index, subscription_id in enumerate(ordered_ids)}

        subscriptions = [
            s.model_copy(update={"order": positions[s.id]}) if s.id in positions else s
            for s in self._load()
        ]
        self._commit(subscriptions, "reorder")
        return sorted(subscriptions, key=_sort_key)

    def toggle_active(self, subscription_id: str) -> Optional[Subscription]:
        subscriptions = self._load()
        toggled = None
        for index, existing in enumerate(subscriptions):
            if existing.id == subscription_id:
                toggled = existing.model_copy(update={"is_active": not existing.is_active})
                subscriptions[index] = toggled

        self._commit(subscriptions, "toggle_active")
        return toggled

    def replace_all(self, subscriptions: Iterable[Subscription]) -> list[Subscription]:
        replacement = list(subscriptions)
        self._commit(replacement, "replace_all")

        logger.info(f"Replaced collection with {len(replacement)} subscriptions")
        return sorted(replacement, key=_sort_key)

    def append_all(self, subscriptions: Iterable[Subscription]) -> list[Subscription]:
        """Add records after the existing ones without renumbering or deduplicating."""
        merged = self._load() + list(subscriptions)

        duplicates = [sid for sid, count in Counter(s.id for s in merged).items() if count > 1]
        if duplicates:
            logger.warning(f"Appended collection contains duplicate ids: {', '.join(duplicates)}")

        self._commit(merged, "append_all")
        return sorted(merged, key=_sort_key)
