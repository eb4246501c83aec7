"""Entity collections and singleton records persisted through the store."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Generic, TypeVar

import structlog
from pydantic import BaseModel, Field

from scholar_hub.models.profile import ProfileRecord
from scholar_hub.storage.store import DurableStore, StorageKey

logger = structlog.get_logger()


ItemT = TypeVar("ItemT", bound=BaseModel)

NonNegativeInt = Annotated[int, Field(ge=0)]


class Collection(Generic[ItemT]):
    """Insertion-ordered list of uniquely identified items.

    Every mutation rewrites the whole list under its key. ``update`` stores
    the caller's list verbatim; no diffing happens here.

    Args:
        store: Backing store.
        key: Storage key owned by this collection.
        item_type: Pydantic model of one item.
        default: Factory for the value used when the key holds nothing usable.
    """

    def __init__(
        self,
        store: DurableStore,
        key: StorageKey,
        item_type: type[ItemT],
        default: Callable[[], list[ItemT]] = list,
    ):
        self.store = store
        self.key = key
        self.item_type = item_type
        self._default = default

    def list(self) -> list[ItemT]:
        return self.store.get(self.key, self._default(), shape=list[self.item_type])

    def get(self, item_id: str) -> ItemT | None:
        return next((item for item in self.list() if item.id == item_id), None)

    def add(self, item: ItemT) -> list[ItemT]:
        items = self.list()
        if any(existing.id == item.id for existing in items):
            raise ValueError(f"Duplicate id in {self.key}: {item.id}")
        items.append(item)
        self.store.set(self.key, items)
        return items

    def update(self, items: list[ItemT]) -> list[ItemT]:
        """Replace the whole collection. Raises ValueError on a repeated id."""
        items = list(items)
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"Duplicate id in {self.key}: {item.id}")
            seen.add(item.id)
        self.store.set(self.key, items)
        return items

    def remove(self, item_id: str) -> list[ItemT]:
        items = [item for item in self.list() if item.id != item_id]
        self.store.set(self.key, items)
        return items


class ProfileRepository:
    def __init__(self, store: DurableStore):
        self.store = store

    def load(self) -> ProfileRecord:
        return self.store.get(StorageKey.PROFILE, ProfileRecord(), shape=ProfileRecord)

    def save(self, profile: ProfileRecord) -> None:
        self.store.set(StorageKey.PROFILE, profile)


class PointsLedger:
    """Scholar Points balance. Never stored below zero."""

    def __init__(self, store: DurableStore, starting_points: int = 50):
        self.store = store
        self.starting_points = starting_points

    @property
    def balance(self) -> int:
        return self.store.get(StorageKey.POINTS, self.starting_points, shape=NonNegativeInt)

    def credit(self, amount: int) -> int:
        new_balance = self.balance + amount
        self.store.set(StorageKey.POINTS, new_balance)
        logger.info("points_credited", amount=amount, balance=new_balance)
        return new_balance

    def spend(self, amount: int) -> bool:
        """Deduct ``amount`` if affordable. Returns False and changes nothing otherwise."""
        current = self.balance
        if current < amount:
            return False
        self.store.set(StorageKey.POINTS, current - amount)
        logger.info("points_spent", amount=amount, balance=current - amount)
        return True
