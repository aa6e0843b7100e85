"""Helpers for locating objects and strings inside PE sections."""

from __future__ import annotations

from typing import Union

from .coff_full import SectionHeader, read_coff_full
from .mz import PeError

MAX_STRING_LENGTH = 32 * 1024


def find_object_in_raw(data: bytes, obj_va: int, obj_size: int) -> tuple[int, SectionHeader]:
    """Map a virtual address to a file offset; return it with its section."""
    headers = read_coff_full(data)
    for section in headers.sections:
        start = section.virtual_address
        if start <= obj_va < start + section.raw_size:
            obj_raw = section.raw_ptr + (obj_va - start)
            if obj_raw + obj_size > section.raw_ptr + section.raw_size:
                raise PeError("Object does not fit in section raw size.")
            return obj_raw, section
    raise PeError("Object not found in any section.")


def parse_string_rva(data: bytes, str_rva: int) -> str:
    """Read the NUL-terminated ASCII string at a virtual address."""
    if str_rva == 0:
        raise PeError("Invalid string.")
    str_raw, section = find_object_in_raw(data, str_rva, 2)
    return parse_string_raw(data, str_raw, section)


def parse_string_raw(data: bytes, str_raw: int, section: SectionHeader) -> str:
    """Read the NUL-terminated ASCII string at a file offset within ``section``."""
    if str_raw == 0:
        raise PeError("Invalid string.")
    limit = min(MAX_STRING_LENGTH, section.raw_ptr + section.raw_size - str_raw)
    window = data[str_raw:str_raw + max(limit, 0)]
    end = window.find(b"\0")
    found = end != -1
    could_be_out_of_bounds = (
        limit != MAX_STRING_LENGTH and section.virtual_size > section.raw_size
    )
    if not (found or could_be_out_of_bounds):
        raise PeError("Could not find string length.")
    text = window[:end] if found else window
    if len(text) < 1:
        raise PeError("String is too short.")
    if not is_ascii(text):
        raise PeError("String is not ASCII.")
    return text.decode("ascii")


def is_ascii(text: Union[str, bytes, bytearray]) -> bool:
    """True if every character is printable ASCII (32 to 126)."""
    codes = text if isinstance(text, (bytes, bytearray)) else map(ord, text)
    return all(32 <= code <= 126 for code in codes)