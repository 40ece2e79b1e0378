"""Deduplication ledgers shared by the workers of one scan run."""

import threading
from urllib.parse import urlsplit


class SeenSet:
    """Set of already-discovered keys with an atomic check-and-insert."""

    def __init__(self) -> None:
        self._seen: set[str] = set()
        self._lock = threading.Lock()

    def normalize(self, key: str) -> str | None:
        """Map a raw key to its ledger form; None means it cannot be recorded."""
        return key

    def mark(self, key: str) -> bool:
        """Record a key. Returns True only the first time it is seen."""
        normalized = self.normalize(key)
        if normalized is None:
            return False

        with self._lock:
            if normalized in self._seen:
                return False
            self._seen.add(normalized)
            return True

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        normalized = self.normalize(key)
        with self._lock:
            return normalized in self._seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)


class HostSeenSet(SeenSet):
    """Hostnames compared case-insensitively, without a trailing dot."""

    def normalize(self, key: str) -> str | None:
        host = key.strip().lower().rstrip(".")
        return host or None


class URLSeenSet(SeenSet):
    """URLs keyed by scheme, host and path; query and fragment are ignored.

    An empty path counts as "/".
    """

    def normalize(self, key: str) -> str | None:
        try:
            parts = urlsplit(key.strip())
        except ValueError:
            return None
        if not parts.scheme or not parts.netloc:
            return None
        return f"{parts.scheme.lower()}://{parts.netloc.lower()}{parts.path or '/'}"
