"""Export directory of a PE image and the tables it points to."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, Optional

from .coff_full import DirectoryTable, read_coff_full
from .import_table import HintName
from .mz import PeError
from .pe_util import find_object_in_raw, parse_string_rva

MAX_ORDINAL = 0xFFFF

_DIRECTORY_LAYOUT = struct.Struct("<IIHHIIIIIII")
_U32 = struct.Struct("<I")
_U16 = struct.Struct("<H")


@dataclass(frozen=True)
class ExportDirectoryEntry:
    """The single row of the export directory table."""

    SIZE: ClassVar[int] = _DIRECTORY_LAYOUT.size

    characteristics: int
    date_time: int
    major: int
    minor: int
    name_rva: int
    ordinal_base: int
    export_address_count: int
    names_count: int
    export_address_table_rva: int
    export_name_table_rva: int
    ordinal_table_rva: int

    @classmethod
    def from_bytes(cls, data: bytes, offset: int) -> ExportDirectoryEntry:
        """Decode the entry at ``offset``."""
        if offset < 0 or len(data) < offset + cls.SIZE:
            raise PeError("File too small to contain export directory table.")
        return cls(*_DIRECTORY_LAYOUT.unpack_from(data, offset))


def _read_table(
    data: bytes, rva: int, count: int, layout: struct.Struct, what: str
) -> tuple[int, ...]:
    size = count * layout.size
    try:
        raw, _ = find_object_in_raw(data, rva, size)
    except PeError as exc:
        raise PeError(f"{what} not found in any section.") from exc
    if len(data) < raw + size:
        raise PeError(f"File too small to contain {what.lower()}.")
    return tuple(value for (value,) in layout.iter_unpack(data[raw:raw + size]))


def parse_export_directory_table(data: bytes) -> Optional[ExportDirectoryEntry]:
    """The export directory entry, or None if the image exports nothing."""
    headers = read_coff_full(data)
    directory = headers.directory(DirectoryTable.EXPORT_TABLE)
    if directory is None or directory.va == 0 or directory.size == 0:
        return None
    try:
        raw, _ = find_object_in_raw(data, directory.va, directory.size)
    except PeError as exc:
        raise PeError("Export directory table not found in any section.") from exc
    edt = ExportDirectoryEntry.from_bytes(data, raw)
    if edt.ordinal_base > MAX_ORDINAL:
        raise PeError("Ordinal base is too high.")
    if edt.export_address_count > MAX_ORDINAL:
        raise PeError("Too many addresses to export.")
    if edt.ordinal_base + edt.export_address_count > MAX_ORDINAL:
        raise PeError("Biggest ordinal is too high.")
    if edt.names_count > edt.export_address_count:
        raise PeError("More names than exported addresses.")
    if edt.names_count != 0 and (edt.export_name_table_rva == 0 or edt.ordinal_table_rva == 0):
        raise PeError(
            "Export name pointer table and export ordinal table are actually two "
            "columns of single table."
        )
    if edt.export_address_count != 0 and edt.export_address_table_rva == 0:
        raise PeError("If export address table has size it must also have body.")
    return edt


def parse_export_name_pointer_table(data: bytes, edt: ExportDirectoryEntry) -> tuple[int, ...]:
    """RVAs of the exported names, in the order of the name pointer table."""
    if edt.export_name_table_rva == 0:
        return ()
    return _read_table(
        data, edt.export_name_table_rva, edt.names_count, _U32, "Export name pointer table"
    )


def parse_export_ordinal_table(data: bytes, edt: ExportDirectoryEntry) -> tuple[int, ...]:
    """Indices into the export address table, parallel to the name pointer table."""
    if edt.ordinal_table_rva == 0:
        return ()
    return _read_table(data, edt.ordinal_table_rva, edt.names_count, _U16, "Export ordinal table")


def parse_export_address_table(data: bytes, edt: ExportDirectoryEntry) -> tuple[int, ...]:
    """Export RVAs, one per ordinal starting at the ordinal base."""
    if edt.export_address_table_rva == 0:
        return ()
    return _read_table(
        data,
        edt.export_address_table_rva,
        edt.export_address_count,
        _U32,
        "Export address table",
    )


def parse_export_address_name(
    data: bytes, enpt: tuple[int, ...], eot: tuple[int, ...], idx: int
) -> Optional[HintName]:
    """Hint and name of export address ``idx``, or None if it is exported by ordinal only."""
    if not enpt:
        return None
    try:
        hint = eot.index(idx)
    except ValueError:
        return None
    name = parse_string_rva(data, enpt[hint])
    return HintName(hint, name)