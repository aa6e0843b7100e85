"""Import directory, delay-load descriptors and their lookup tables."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, Optional, Union

from .coff_full import CoffFull, DirectoryTable, read_coff_full
from .mz import PeError
from .pe_util import find_object_in_raw, parse_string_raw, parse_string_rva

MAX_DIRECTORY_ENTRIES = 1024 * 1024
MAX_LOOKUP_ENTRIES = 0xFFFF
MAX_DLL_COUNT = 0xFFFF
MAX_DLL_NAME_LENGTH = 255

_ORDINAL_FLAG_32 = 0x80000000
_ORDINAL_FLAG_64 = 0x8000000000000000

_DIRECTORY_LAYOUT = struct.Struct("<5I")
_DELAY_LAYOUT = struct.Struct("<8I")
_LOOKUP_32 = struct.Struct("<I")
_LOOKUP_64 = struct.Struct("<Q")
_HINT = struct.Struct("<H")


@dataclass(frozen=True)
class ImportDirectoryEntry:
    """One row of the import directory table, describing one imported DLL."""

    SIZE: ClassVar[int] = _DIRECTORY_LAYOUT.size

    import_lookup_table: int
    date_time: int
    forwarder_chain: int
    name: int
    import_address_table: int

    @classmethod
    def from_bytes(cls, data: bytes, offset: int) -> ImportDirectoryEntry:
        """Decode the entry at ``offset``."""
        return cls(*_DIRECTORY_LAYOUT.unpack_from(data, offset))


@dataclass(frozen=True)
class ImportAddressTable:
    """File offset and number of entries of an import lookup table."""

    raw: int
    count: int


@dataclass(frozen=True)
class HintName:
    """A by-name import: the hint into the exporter's name table and the name."""

    hint: int
    name: str


@dataclass(frozen=True)
class DelayLoadDescriptor:
    """One row of the delay-load import table."""

    SIZE: ClassVar[int] = _DELAY_LAYOUT.size

    attributes: int
    dll_name_rva: int
    module_handle_rva: int
    import_address_table_rva: int
    import_name_table_rva: int
    bound_import_address_table_rva: int
    unload_information_table_rva: int
    time_date_stamp: int

    @property
    def is_version_2(self) -> bool:
        """True if the addresses are RVAs rather than VAs."""
        return self.attributes & 1 != 0

    @classmethod
    def from_bytes(cls, data: bytes, offset: int) -> DelayLoadDescriptor:
        """Decode the descriptor at ``offset``."""
        return cls(*_DELAY_LAYOUT.unpack_from(data, offset))


def _count_until_terminator(
    data: bytes, raw: int, layout: struct.Struct, max_count: int
) -> Optional[int]:
    """Number of entries before the first all-zero one, or None if none is found."""
    window = data[raw:raw + max(max_count, 0) * layout.size]
    window = window[:len(window) - len(window) % layout.size]
    for count, values in enumerate(layout.iter_unpack(window)):
        if not any(values):
            return count
    return None


def _lookup_layout(is_32: bool) -> struct.Struct:
    return _LOOKUP_32 if is_32 else _LOOKUP_64


def _image_base_delta(headers: CoffFull, descriptor: DelayLoadDescriptor) -> int:
    if descriptor.is_version_2:
        return 0
    return headers.windows.image_base & 0xFFFFFFFF


def _read_lookup_table(data: bytes, rva: int, is_32: bool, what: str) -> ImportAddressTable:
    layout = _lookup_layout(is_32)
    raw, section = find_object_in_raw(data, rva, layout.size)
    space = section.raw_ptr + section.raw_size - raw
    max_count = min(MAX_LOOKUP_ENTRIES, space // layout.size)
    count = _count_until_terminator(data, raw, layout, max_count)
    if count is None:
        raise PeError(f"Could not find {what} size.")
    return ImportAddressTable(raw, count)


def _lookup_value(data: bytes, table: ImportAddressTable, idx: int, is_32: bool) -> int:
    if not 0 <= idx < table.count:
        raise IndexError(f"Import index {idx} out of range.")
    layout = _lookup_layout(is_32)
    (value,) = layout.unpack_from(data, table.raw + idx * layout.size)
    return value


def _resolve_lookup(data: bytes, value: int, is_32: bool, base: int) -> Union[int, HintName]:
    if is_32:
        if value & _ORDINAL_FLAG_32:
            if value & 0x7FFF0000:
                raise PeError("Bits 30-15 must be 0.")
            return value & 0xFFFF
    else:
        if value & _ORDINAL_FLAG_64:
            if value & 0x7FFFFFFFFFFF0000:
                raise PeError("Bits 62-15 must be 0.")
            return value & 0xFFFF
        if value & 0x7FFFFFFF80000000:
            raise PeError("Bits 62-31 must be 0.")
    hint_name_rva = ((value & 0x7FFFFFFF) - base) & 0xFFFFFFFF
    hint_name_raw, section = find_object_in_raw(data, hint_name_rva, _HINT.size + 2)
    if len(data) < hint_name_raw + _HINT.size:
        raise PeError("Could not parse import address name.")
    (hint,) = _HINT.unpack_from(data, hint_name_raw)
    name = parse_string_raw(data, hint_name_raw + _HINT.size, section)
    return HintName(hint, name)


def parse_import_table(data: bytes) -> tuple[ImportDirectoryEntry, ...]:
    """All entries of the import directory table; empty if the image has none."""
    headers = read_coff_full(data)
    directory = headers.directory(DirectoryTable.IMPORT_TABLE)
    if directory is None or directory.va == 0 or directory.size == 0:
        return ()
    raw, _ = find_object_in_raw(data, directory.va, directory.size)
    max_count = min(MAX_DIRECTORY_ENTRIES, directory.size // ImportDirectoryEntry.SIZE)
    count = _count_until_terminator(data, raw, _DIRECTORY_LAYOUT, max_count)
    if count is None:
        raise PeError("Could not find import directory table size.")
    if count > MAX_DLL_COUNT:
        raise PeError("Too many DLLs.")
    return tuple(
        ImportDirectoryEntry.from_bytes(data, raw + k * ImportDirectoryEntry.SIZE)
        for k in range(count)
    )


def parse_import_dll_name(data: bytes, entry: ImportDirectoryEntry) -> str:
    """Name of the DLL an import directory entry refers to."""
    if entry.name == 0:
        raise PeError("Import directory entry has no DLL name.")
    name = parse_string_rva(data, entry.name)
    if len(name) > MAX_DLL_NAME_LENGTH:
        raise PeError("DLL name is too long.")
    return name


def parse_import_address_table(data: bytes, entry: ImportDirectoryEntry) -> ImportAddressTable:
    """Locate the lookup table of an entry, falling back to its address table."""
    headers = read_coff_full(data)
    rva = entry.import_lookup_table or entry.import_address_table
    if rva == 0:
        raise PeError("Import address table not found.")
    return _read_lookup_table(data, rva, headers.is_32, "import address table")


def parse_import_address(
    data: bytes, iat: ImportAddressTable, idx: int
) -> Union[int, HintName]:
    """Entry ``idx`` of a lookup table: an ordinal, or a hint and name."""
    headers = read_coff_full(data)
    value = _lookup_value(data, iat, idx, headers.is_32)
    return _resolve_lookup(data, value, headers.is_32, 0)


def parse_delay_import_table(data: bytes) -> tuple[DelayLoadDescriptor, ...]:
    """All delay-load descriptors; empty if the image has none or they cannot be found."""
    headers = read_coff_full(data)
    directory = headers.directory(DirectoryTable.DELAY_IMPORT_DESCRIPTOR)
    if directory is None or directory.va == 0 or directory.size == 0:
        return ()
    try:
        raw, _ = find_object_in_raw(data, directory.va, directory.size)
    except PeError:
        return ()
    max_count = min(MAX_DIRECTORY_ENTRIES, directory.size // DelayLoadDescriptor.SIZE)
    count = _count_until_terminator(data, raw, _DELAY_LAYOUT, max_count)
    if count is None:
        raise PeError("Could not find delay import directory table size.")
    if count > MAX_DLL_COUNT:
        raise PeError("Too many delay DLLs.")
    return tuple(
        DelayLoadDescriptor.from_bytes(data, raw + k * DelayLoadDescriptor.SIZE)
        for k in range(count)
    )


def parse_delay_import_dll_name(data: bytes, descriptor: DelayLoadDescriptor) -> str:
    """Name of the DLL a delay-load descriptor refers to."""
    headers = read_coff_full(data)
    if descriptor.dll_name_rva == 0:
        raise PeError("Delay import directory entry has no DLL name.")
    if (
        not headers.is_32
        and not descriptor.is_version_2
        and headers.windows.image_base >= 0xFFFFFFFF
    ):
        raise PeError("Image base is too high.")
    rva = (descriptor.dll_name_rva - _image_base_delta(headers, descriptor)) & 0xFFFFFFFF
    name = parse_string_rva(data, rva)
    if len(name) > MAX_DLL_NAME_LENGTH:
        raise PeError("Delay DLL name is too long.")
    return name


def parse_delay_import_address_table(
    data: bytes, descriptor: DelayLoadDescriptor
) -> ImportAddressTable:
    """Locate the import name table of a delay-load descriptor."""
    headers = read_coff_full(data)
    if descriptor.import_name_table_rva == 0:
        raise PeError("Delay import address table not found.")
    rva = (
        descriptor.import_name_table_rva - _image_base_delta(headers, descriptor)
    ) & 0xFFFFFFFF
    return _read_lookup_table(data, rva, headers.is_32, "delay import address table")


def parse_delay_import_address(
    data: bytes, descriptor: DelayLoadDescriptor, iat: ImportAddressTable, idx: int
) -> Union[int, HintName]:
    """Entry ``idx`` of a delay-load name table: an ordinal, or a hint and name."""
    headers = read_coff_full(data)
    value = _lookup_value(data, iat, idx, headers.is_32)
    return _resolve_lookup(data, value, headers.is_32, _image_base_delta(headers, descriptor))