"""Small character helpers limited to ASCII."""

from __future__ import annotations

from typing import Union


def is_ascii(text: Union[str, bytes, bytearray]) -> bool:
    """True if every character is printable ASCII (32 to 126)."""
    codes = text if isinstance(text, (bytes, bytearray)) else map(ord, text)
    return all(32 <= code <= 126 for code in codes)


def to_lowercase(ch: Union[str, int]) -> Union[str, int]:
    """Lower-case an ASCII capital letter; anything else is returned unchanged."""
    if isinstance(ch, int):
        return ch + (ord("a") - ord("A")) if ord("A") <= ch <= ord("Z") else ch
    if len(ch) != 1:
        raise ValueError("Expected a single character.")
    return chr(ord(ch) + (ord("a") - ord("A"))) if "A" <= ch <= "Z" else ch