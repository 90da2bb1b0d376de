"""Per-session record of items already shown to the user."""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from streamsense.models.schemas import UnifiedContent


class SessionCache:
    """Set of ``"{type}-{id}"`` keys shown during the current session.

    Owned by one user session and passed to the scorer explicitly. Membership
    only grows until :meth:`clear` is called (explicit refresh or session end).
    A :meth:`scope` child sees the parent's keys but its own additions are
    discarded on exit.
    """

    def __init__(self, parent: "SessionCache | None" = None) -> None:
        self._keys: set[str] = set()
        self._parent = parent

    @staticmethod
    def _key(item: UnifiedContent | str) -> str:
        return item if isinstance(item, str) else item.key

    def add(self, item: UnifiedContent | str) -> None:
        self._keys.add(self._key(item))

    def add_many(self, items: Iterable[UnifiedContent | str]) -> None:
        for item in items:
            self.add(item)

    def contains(self, item: UnifiedContent | str) -> bool:
        key = self._key(item)
        if key in self._keys:
            return True
        return self._parent is not None and self._parent.contains(key)

    __contains__ = contains

    def clear(self) -> None:
        self._keys.clear()

    def __len__(self) -> int:
        return len(self._keys) + (len(self._parent) if self._parent is not None else 0)

    @contextmanager
    def scope(self) -> Iterator["SessionCache"]:
        """Temporary child cache, e.g. for previews that must not mark items as shown."""
        child = SessionCache(parent=self)
        try:
            yield child
        finally:
            child.clear()

    def stats(self, sample: int = 10) -> dict:
        return {"size": len(self), "sample": sorted(self._keys)[:sample]}
