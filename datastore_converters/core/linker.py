#!/usr/bin/env python3

"""
Run-scoped record linking.

One RecordLinker belongs to one converter for one run. It guarantees at
most one item per (kind, key) and hands every cached item to the sink
when the run closes.
"""

import logging
from typing import Callable, Dict, Hashable, List, Optional, Set, Tuple, FrozenSet

from .items import Item, ItemSink


class RecordLinker:
    """Keyed get-or-create caches, one per item kind."""

    def __init__(self):
        self._caches: Dict[str, Dict[Hashable, Item]] = {}
        self._order: List[Item] = []
        self._pairs: Dict[str, Set[FrozenSet[str]]] = {}

    def get_or_create(self, kind: str, key: Hashable, initializer: Callable[[], Item]) -> Item:
        """Return the cached item for key, calling initializer only on first sight."""
        cache = self._caches.setdefault(kind, {})
        item = cache.get(key)
        if item is None:
            item = initializer()
            cache[key] = item
            self._order.append(item)
        return item

    def get(self, kind: str, key: Hashable) -> Optional[Item]:
        return self._caches.get(kind, {}).get(key)

    def contains(self, kind: str, key: Hashable) -> bool:
        return key in self._caches.get(kind, {})

    def count(self, kind: str) -> int:
        return len(self._caches.get(kind, {}))

    def values(self, kind: str) -> List[Item]:
        return list(self._caches.get(kind, {}).values())

    def items(self) -> List[Item]:
        """All cached items in creation order."""
        return list(self._order)

    def register_unordered_pair(self, kind: str, first: str, second: str) -> bool:
        """
        Record the unordered pair {first, second}.

        Returns True the first time a pair is seen in either ordering,
        False for every repeat.
        """
        seen = self._pairs.setdefault(kind, set())
        pair = frozenset((first, second))
        if pair in seen:
            return False
        seen.add(pair)
        return True

    def flush(self, sink: ItemSink) -> int:
        """Store every cached item once and clear the caches."""
        stored = 0
        for item in self._order:
            sink.store(item)
            stored += 1
        logging.info(f"Flushed {stored:,} linked items across {len(self._caches)} kinds")
        self._caches.clear()
        self._order.clear()
        self._pairs.clear()
        return stored

    def summary(self) -> List[Tuple[str, int]]:
        return [(kind, len(cache)) for kind, cache in self._caches.items()]
