"""Conversion of single-byte names to text, keeping the last few results."""

from __future__ import annotations

from collections import deque
from typing import Union

_SLOTS = 4


class StringConverter:
    """Widens each byte of a name to one character; remembers the last four results."""

    def __init__(self) -> None:
        self._recent: deque[str] = deque(maxlen=_SLOTS)

    @property
    def recent(self) -> tuple[str, ...]:
        """The most recent conversions, oldest first."""
        return tuple(self._recent)

    def convert(self, text: Union[str, bytes, bytearray]) -> str:
        """Return ``text`` as a str, mapping every byte to the character of the same code."""
        result = text.decode("latin-1") if isinstance(text, (bytes, bytearray)) else str(text)
        self._recent.append(result)
        return result