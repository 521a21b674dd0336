"""
Dynamic list fields used by the Professional and Education steps.

Entries have no identity beyond their position.
"""
from collections.abc import Callable, Iterable


class DynamicList:
    """Ordered, index-addressed list of form entries."""

    def __init__(self, items: Iterable | None = None, factory: Callable[[], dict] | None = None):
        self._items = list(items or [])
        self._factory = factory

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index: int):
        return self._items[index]

    def append(self, item=None):
        """Add an entry; without an argument a blank entry from the factory is added."""
        if item is None:
            if self._factory is None:
                raise ValueError('No item given and no factory configured')
            item = self._factory()
        self._items.append(item)
        return item

    def remove(self, index: int) -> bool:
        """Remove the entry at `index`. Returns False if the index is out of range."""
        if index < 0 or index >= len(self._items):
            return False
        del self._items[index]
        return True

    def to_list(self) -> list:
        return list(self._items)


class TagList(DynamicList):
    """Free-text tags: trimmed, blank-free and without duplicates."""

    def __init__(self, items: Iterable[str] | None = None):
        super().__init__()
        for item in items or []:
            self.append(item)

    def append(self, item=None) -> str | None:
        tag = str(item).strip() if item is not None else ''
        if not tag or tag in self._items:
            return None
        self._items.append(tag)
        return tag
