"""Sequence and path helpers."""

from __future__ import annotations

from typing import Any, Optional, Sequence


def rfind(seq: Sequence[Any], value: Any) -> Optional[int]:
    """Index of the last element equal to ``value``, or None if there is none."""
    for index in reversed(range(len(seq))):
        if seq[index] == value:
            return index
    return None


def find_file_name(file_path: str) -> str:
    """The part of a backslash-separated path after its last separator."""
    index = rfind(file_path, "\\")
    return file_path if index is None else file_path[index + 1:]