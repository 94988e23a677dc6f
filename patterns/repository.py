"""In-memory repository pattern for aggregate access.

Provides a generic base repository with CRUD operations, an id index,
pagination and attribute filters. Domain repositories subclass this to
add their own lookups.

Example: ProjectRepository extending InMemoryRepository.
"""

from typing import Any, Generic, Iterator, TypeVar
from uuid import UUID

from core.models.base import Entity

# ---------------------------------------------------------------------------
# Type variable for model classes
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=Entity)


# ---------------------------------------------------------------------------
# Base repository
# ---------------------------------------------------------------------------

class InMemoryRepository(Generic[ModelT]):
    """Generic repository with CRUD + pagination, keyed by entity id.

    Items are kept in insertion order. Subclass and add queries::

        class UserRepository(InMemoryRepository[User]):
            def find_by_phone(self, phone: str) -> User | None:
                return next(
                    (u for u in self if u.phone_number == phone), None
                )
    """

    _protected_fields = ("id",)

    def __init__(self, items: list[ModelT] | None = None):
        self._items: dict[UUID, ModelT] = {}
        for item in items or []:
            self.add(item)

    def __iter__(self) -> Iterator[ModelT]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    # -- List with pagination --

    def list(
        self,
        page: int = 1,
        limit: int = 50,
        filters: dict[str, Any] | None = None,
    ) -> tuple[list[ModelT], int]:
        """List items with pagination and optional filters.

        Returns (items, total_count).
        """
        items = list(self._items.values())

        if filters:
            for attr, value in filters.items():
                if value is None:
                    continue
                items = [i for i in items if getattr(i, attr, None) == value]

        total = len(items)
        offset = (page - 1) * limit
        return items[offset:offset + limit], total

    # -- Get by ID --

    def get(self, item_id: UUID) -> ModelT | None:
        """Get a single item by ID."""
        return self._items.get(item_id)

    # -- Create --

    def add(self, item: ModelT, first: bool = False) -> ModelT:
        """Store an item. ``first`` puts it ahead of existing items."""
        if first:
            self._items = {item.id: item, **{k: v for k, v in self._items.items() if k != item.id}}
        else:
            self._items[item.id] = item
        return item

    # -- Update --

    def update(self, item_id: UUID, data: dict[str, Any]) -> ModelT | None:
        """Update an existing item. Returns None if not found."""
        item = self._items.get(item_id)
        if item is None:
            return None

        for key, value in data.items():
            if key in type(item).model_fields and key not in self._protected_fields:
                setattr(item, key, value)
        return item

    # -- Delete --

    def delete(self, item_id: UUID) -> bool:
        """Delete an item. Returns True if deleted, False if not found."""
        return self._items.pop(item_id, None) is not None
