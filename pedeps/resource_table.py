"""Resource directory tree of a PE image."""

from __future__ import annotations

import struct
import warnings
from dataclasses import dataclass
from typing import ClassVar, Optional

from .coff_full import DirectoryTable, SectionHeader, read_coff_full
from .mz import PeError
from .optional_windows import PeWarning
from .pe_util import find_object_in_raw

_HIGH_BIT = 1 << 31

_TABLE_LAYOUT = struct.Struct("<IIHHHH")
_ENTRY_LAYOUT = struct.Struct("<II")


@dataclass(frozen=True)
class ResourceDirectoryTable:
    """A resource directory table; ``raw`` is its file offset."""

    SIZE: ClassVar[int] = _TABLE_LAYOUT.size
    ENTRY_SIZE: ClassVar[int] = _ENTRY_LAYOUT.size

    characteristics: int
    time_date_stamp: int
    major_version: int
    minor_version: int
    number_of_name_entries: int
    number_of_id_entries: int
    raw: int

    @property
    def entry_count(self) -> int:
        """Number of entries, named ones first."""
        return self.number_of_name_entries + self.number_of_id_entries

    @classmethod
    def from_bytes(cls, data: bytes, raw: int) -> ResourceDirectoryTable:
        """Decode the table at file offset ``raw``."""
        if raw < 0 or len(data) < raw + cls.SIZE:
            raise PeError("Out of bounds.")
        return cls(*_TABLE_LAYOUT.unpack_from(data, raw), raw=raw)


def _entry(data: bytes, table: ResourceDirectoryTable, index: int) -> tuple[int, int]:
    offset = table.raw + ResourceDirectoryTable.SIZE + index * ResourceDirectoryTable.ENTRY_SIZE
    if len(data) < offset + ResourceDirectoryTable.ENTRY_SIZE:
        raise PeError("Out of bounds.")
    return _ENTRY_LAYOUT.unpack_from(data, offset)


def parse_resource_root_directory_table(
    data: bytes,
) -> Optional[tuple[ResourceDirectoryTable, SectionHeader]]:
    """The root resource table and its section, or None if the image has no resources."""
    headers = read_coff_full(data)
    directory = headers.directory(DirectoryTable.RESOURCE_TABLE)
    if directory is None or directory.va == 0 or directory.size == 0:
        return None
    try:
        raw, section = find_object_in_raw(data, directory.va, directory.size)
    except PeError:
        return None
    table = parse_resource_directory_table(data, section, raw - section.raw_ptr)
    return table, section


def parse_resource_directory_table(
    data: bytes, section: SectionHeader, offset: int
) -> ResourceDirectoryTable:
    """The resource table at ``offset`` from the start of the resource section."""
    if offset >= section.raw_size:
        raise PeError("Out of bounds.")
    if ResourceDirectoryTable.SIZE > section.raw_size - offset:
        raise PeError("Not enough room.")
    table = ResourceDirectoryTable.from_bytes(data, section.raw_ptr + offset)
    if table.characteristics != 0:
        warnings.warn(
            "Resource directory table shall have zero characteristics.", PeWarning, stacklevel=2
        )
    entries_offset = offset + ResourceDirectoryTable.SIZE
    if entries_offset >= section.raw_size:
        raise PeError("Out of bounds.")
    if table.entry_count * ResourceDirectoryTable.ENTRY_SIZE > section.raw_size - entries_offset:
        raise PeError("Not enough room.")
    return table


def parse_resource_directory_id_entry(
    data: bytes, table: ResourceDirectoryTable, idx: int
) -> int:
    """Integer id of the ``idx``-th id entry of ``table``."""
    if not 0 <= idx < table.number_of_id_entries:
        raise IndexError(f"Resource id entry {idx} out of range.")
    entry_id, _ = _entry(data, table, table.number_of_name_entries + idx)
    if entry_id & _HIGH_BIT:
        raise PeError("Resource integer id shall have high bit cleared.")
    return entry_id


def parse_resource_sub_directory_table(
    data: bytes, section: SectionHeader, table: ResourceDirectoryTable, idx: int
) -> ResourceDirectoryTable:
    """The sub-directory that entry ``idx`` (named entries counted first) points to."""
    if not 0 <= idx < table.entry_count:
        raise IndexError(f"Resource entry {idx} out of range.")
    _, target = _entry(data, table, idx)
    if not target & _HIGH_BIT:
        raise PeError("Resource sub directory offset shall have high bit set.")
    return parse_resource_directory_table(data, section, target & ~_HIGH_BIT)