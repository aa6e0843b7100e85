"""A pool that keeps one shared instance of each distinct string."""

from __future__ import annotations

from collections.abc import Iterator


class UniqueStrings:
    """Interning pool: equal strings added to it come back as the same object."""

    def __init__(self) -> None:
        self._strings: dict[str, str] = {}

    def add_string(self, text: str) -> str:
        """Return the pooled instance equal to ``text``, adding it if new."""
        return self._strings.setdefault(text, text)

    def __len__(self) -> int:
        return len(self._strings)

    def __contains__(self, text: object) -> bool:
        return text in self._strings

    def __iter__(self) -> Iterator[str]:
        return iter(self._strings)