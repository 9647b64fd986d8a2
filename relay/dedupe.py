from __future__ import annotations

from collections import OrderedDict

from config.defaults import DEFAULT_DEDUP_CAPACITY


class RecentMessageCache:
    """Bounded FIFO set of recently relayed message texts.

    Eviction follows insertion order only: seeing a duplicate again does not
    refresh its position.
    """

    def __init__(self, capacity: int = DEFAULT_DEDUP_CAPACITY) -> None:
        if int(capacity) < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity!r}")
        self.capacity = int(capacity)
        self._seen: OrderedDict[str, None] = OrderedDict()

    def is_duplicate(self, text: str) -> bool:
        if text in self._seen:
            return True
        if len(self._seen) >= self.capacity:
            self._seen.popitem(last=False)
        self._seen[text] = None
        return False

    def clear(self) -> None:
        self._seen.clear()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, text: object) -> bool:
        return text in self._seen
