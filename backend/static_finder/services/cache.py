import time
from typing import Any, Dict, Optional, Tuple


class InMemoryCache:
    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 5000):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.store: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self.store.get(key)
        if not entry:
            return None
        expires_at, value = entry
        if time.time() > expires_at:
            self.store.pop(key, None)
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        if self.ttl_seconds <= 0:
            return
        if len(self.store) >= self.max_entries and key not in self.store:
            # drop the entry closest to expiry
            oldest = min(self.store, key=lambda k: self.store[k][0])
            self.store.pop(oldest, None)
        self.store[key] = (time.time() + self.ttl_seconds, value)
