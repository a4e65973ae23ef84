"""
Ordered key/value store for raw header records.

Keys are normalized to stripped uppercase strings; values are kept exactly as
the source supplied them so the typed model can be rebuilt at any time.
"""

from typing import Dict, Iterator, Optional, Tuple


class HeaderStore:
    """Ordered mapping of uppercase header keys to raw string values."""

    def __init__(self):
        self._records: Dict[str, str] = {}

    @staticmethod
    def normalize_key(key: str) -> str:
        return key.strip().upper()

    def set(self, key: str, value: str) -> None:
        """Store a value; an existing key keeps its position, last write wins."""
        key = self.normalize_key(key)
        if not key:
            return
        self._records[key] = value

    def append(self, key: str, value: str) -> None:
        """Accumulate a commentary record (COMMENT, HISTORY) joined by newlines."""
        key = self.normalize_key(key)
        if not key:
            return
        if key in self._records and self._records[key]:
            self._records[key] = f"{self._records[key]}\n{value}"
        else:
            self._records[key] = value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._records.get(self.normalize_key(key), default)

    def first(self, *keys: str) -> Optional[str]:
        """Return the value of the first key present, in the order given."""
        for key in keys:
            value = self.get(key)
            if value is not None:
                return value
        return None

    def keys_with_prefix(self, prefix: str) -> Iterator[Tuple[str, str]]:
        prefix = self.normalize_key(prefix)
        for key, value in self._records.items():
            if key.startswith(prefix):
                yield key, value

    def to_dict(self) -> Dict[str, str]:
        """Copy of the records, preserving insertion order."""
        return dict(self._records)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.normalize_key(key) in self._records

    def __getitem__(self, key: str) -> str:
        return self._records[self.normalize_key(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"HeaderStore({len(self._records)} records)"
