"""
symbolic_gp/pools.py - Reusable scratch dictionaries for row-wise evaluation
"""
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List


class DictionaryPool:
    """Thread-safe pool of cleared dictionaries.

    Each evaluation task rents one dictionary to hold the current row's
    variable bindings. Returned dictionaries are cleared; beyond ``max_size``
    they are dropped instead of kept.
    """

    def __init__(self, max_size: int = 1000):
        if max_size < 1:
            raise ValueError("Pool size must be at least 1")
        self.max_size = max_size
        self._available: List[Dict[str, Any]] = []
        self._lock = threading.Lock()
        self.created = 0
        self.rentals = 0

    def rent(self) -> Dict[str, Any]:
        with self._lock:
            self.rentals += 1
            if self._available:
                return self._available.pop()
            self.created += 1
        return {}

    def give_back(self, item: Dict[str, Any]) -> None:
        item.clear()
        with self._lock:
            if len(self._available) < self.max_size:
                self._available.append(item)

    @contextmanager
    def rented(self) -> Iterator[Dict[str, Any]]:
        """Rent a dictionary for the duration of a ``with`` block"""
        item = self.rent()
        item.clear()
        try:
            yield item
        finally:
            self.give_back(item)

    @property
    def available(self) -> int:
        with self._lock:
            return len(self._available)

    def get_stats(self) -> Dict[str, int]:
        return {
            'created': self.created,
            'rentals': self.rentals,
            'available': self.available,
            'max_size': self.max_size,
        }
