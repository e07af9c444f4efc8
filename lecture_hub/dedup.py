"""Bounded cache of recently handled Telegram updates."""

import threading
from collections import OrderedDict
from typing import Hashable


class UpdateDeduplicator:
    """Remembers the last ``capacity`` update keys, evicting the oldest first.

    ``seen(key)`` returns True if the key was already recorded and records
    it otherwise, so a redelivered update can be dropped.
    """

    def __init__(self, capacity: int = 1000):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._keys: "OrderedDict[Hashable, None]" = OrderedDict()
        self._lock = threading.Lock()

    def seen(self, key: Hashable) -> bool:
        with self._lock:
            if key in self._keys:
                return True
            self._keys[key] = None
            while len(self._keys) > self.capacity:
                self._keys.popitem(last=False)
            return False

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()
