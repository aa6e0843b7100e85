"""Collect the imports, exports and manifest id of a PE image into tables."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from .coff import IMAGE_FILE_DLL
from .coff_full import CoffFull, DirectoryTable, parse_coff_full
from .export_table import (
    parse_export_address_name,
    parse_export_address_table,
    parse_export_directory_table,
    parse_export_name_pointer_table,
    parse_export_ordinal_table,
)
from .import_table import (
    DelayLoadDescriptor,
    HintName,
    ImportDirectoryEntry,
    parse_delay_import_address,
    parse_delay_import_address_table,
    parse_delay_import_dll_name,
    parse_delay_import_table,
    parse_import_address,
    parse_import_address_table,
    parse_import_dll_name,
    parse_import_table,
)
from .mz import DosHeader, PeError, parse_mz_header
from .pe_util import parse_string_rva
from .resource_table import (
    parse_resource_directory_id_entry,
    parse_resource_root_directory_table,
    parse_resource_sub_directory_table,
)
from .unique_strings import UniqueStrings

RT_MANIFEST = 24
MIN_MANIFEST_ID = 1
MAX_MANIFEST_ID = 16


@dataclass(frozen=True)
class Headers:
    """The validated DOS header and full COFF header of an image."""

    dos: DosHeader
    coff: CoffFull

    @property
    def is_32(self) -> bool:
        """True for a PE32 image."""
        return self.coff.is_32

    @property
    def is_dll(self) -> bool:
        """True if the image is flagged as a DLL."""
        return self.coff.coff.characteristics & IMAGE_FILE_DLL != 0


@dataclass(frozen=True)
class ImportTables:
    """The regular import directory entries and the delay-load descriptors."""

    normal: tuple[ImportDirectoryEntry, ...]
    delay: tuple[DelayLoadDescriptor, ...]

    @property
    def dll_count(self) -> int:
        """Number of imported DLLs, regular ones first."""
        return len(self.normal) + len(self.delay)


@dataclass
class ImportTableInfo:
    """Per-DLL, per-import data; regular DLLs come before delay-loaded ones.

    ``ordinals_or_hints`` holds the ordinal of an import by ordinal and the hint
    of an import by name. ``undecorated_names`` and ``matched_exports`` start
    out as None and are filled in by later stages.
    """

    normal_dll_count: int
    delay_dll_count: int
    import_counts: list[int]
    are_ordinals: list[list[bool]]
    ordinals_or_hints: list[list[int]]
    names: list[list[Optional[str]]]
    undecorated_names: list[list[Optional[str]]]
    matched_exports: list[list[Optional[int]]]
    dll_names: list[str] = field(default_factory=list)

    @property
    def dll_count(self) -> int:
        """Number of imported DLLs."""
        return self.normal_dll_count + self.delay_dll_count


@dataclass
class ExportTableInfo:
    """One row per non-empty export address; ``hints`` is None for unnamed exports.

    ``rvas_or_forwarders`` holds an RVA where ``are_rvas`` is True and a
    forwarder string otherwise.
    """

    count: int
    ordinal_base: int
    ordinals: list[int]
    are_rvas: list[bool]
    rvas_or_forwarders: list[Union[int, str]]
    hints: list[Optional[int]]
    names: list[Optional[str]]
    undecorated_names: list[Optional[str]]
    are_used: list[bool]

    @classmethod
    def empty(cls) -> ExportTableInfo:
        """An export table with no entries."""
        return cls(0, 0, [], [], [], [], [], [], [])


@dataclass(frozen=True)
class PeTables:
    """Everything gathered from one image.

    ``export_name_order`` maps each position of the export name pointer table
    to the export row carrying that name.
    """

    imports: ImportTableInfo
    exports: ExportTableInfo
    export_name_order: tuple[int, ...]
    manifest_id: int
    is_32_bit: bool


def process_headers(data: bytes) -> Headers:
    """Validate the DOS header and the full COFF header."""
    dos = parse_mz_header(data)
    coff = parse_coff_full(data)
    return Headers(dos, coff)


def process_import_tables(data: bytes) -> ImportTables:
    """Read the import directory table and the delay import table."""
    return ImportTables(parse_import_table(data), parse_delay_import_table(data))


def process_import_names(data: bytes, tables: ImportTables, strings: UniqueStrings) -> list[str]:
    """Names of all imported DLLs, pooled in ``strings``."""
    names = [parse_import_dll_name(data, entry) for entry in tables.normal]
    names += [parse_delay_import_dll_name(data, descriptor) for descriptor in tables.delay]
    return [strings.add_string(name) for name in names]


def _import_rows(data: bytes, tables: ImportTables) -> Iterator[list[Union[int, HintName]]]:
    for entry in tables.normal:
        iat = parse_import_address_table(data, entry)
        yield [parse_import_address(data, iat, j) for j in range(iat.count)]
    for descriptor in tables.delay:
        iat = parse_delay_import_address_table(data, descriptor)
        yield [parse_delay_import_address(data, descriptor, iat, j) for j in range(iat.count)]


def _split_row(
    row: Iterable[Union[int, HintName]], strings: UniqueStrings
) -> tuple[list[bool], list[int], list[Optional[str]]]:
    are_ordinals: list[bool] = []
    values: list[int] = []
    names: list[Optional[str]] = []
    for item in row:
        if isinstance(item, HintName):
            are_ordinals.append(False)
            values.append(item.hint)
            names.append(strings.add_string(item.name))
        else:
            are_ordinals.append(True)
            values.append(item)
            names.append(None)
    return are_ordinals, values, names


def process_import_iat(data: bytes, tables: ImportTables, strings: UniqueStrings) -> ImportTableInfo:
    """Read every import of every DLL; ``dll_names`` is left empty."""
    info = ImportTableInfo(len(tables.normal), len(tables.delay), [], [], [], [], [], [])
    for row in _import_rows(data, tables):
        are_ordinals, values, names = _split_row(row, strings)
        info.import_counts.append(len(values))
        info.are_ordinals.append(are_ordinals)
        info.ordinals_or_hints.append(values)
        info.names.append(names)
        info.undecorated_names.append([None] * len(values))
        info.matched_exports.append([None] * len(values))
    return info


def _parse_forwarder(data: bytes, export_rva: int) -> str:
    forwarder = parse_string_rva(data, export_rva)
    if len(forwarder) < 3:
        raise PeError("Export forwarder is too short.")
    if "." not in forwarder:
        raise PeError("Bad export forwarder name format.")
    return forwarder


def process_export_eat(
    data: bytes, headers: Headers, strings: UniqueStrings
) -> tuple[ExportTableInfo, tuple[int, ...]]:
    """Read the export tables; return them with the name-order index."""
    edt = parse_export_directory_table(data)
    if edt is None or edt.export_address_count == 0:
        return ExportTableInfo.empty(), ()

    directory = headers.coff.directory(DirectoryTable.EXPORT_TABLE)
    if directory is None:
        raise PeError("Export directory not present.")
    directory_start = directory.va
    directory_end = directory.va + directory.size

    enpt = parse_export_name_pointer_table(data, edt)
    eot = parse_export_ordinal_table(data, edt)
    if len(enpt) != len(eot):
        raise PeError(
            "Export name pointer table and export ordinal table are in fact two columns "
            "of the same table."
        )
    eat = parse_export_address_table(data, edt)

    ordinal_base = edt.ordinal_base & 0xFFFF
    info = ExportTableInfo.empty()
    info.ordinal_base = ordinal_base
    name_order: list[Optional[int]] = [None] * len(enpt)
    hints_processed = 0

    for i, export_rva in enumerate(eat):
        if export_rva == 0:
            continue
        row = len(info.ordinals)
        hint_name = parse_export_address_name(data, enpt, eot, i)
        is_rva = not directory_start <= export_rva < directory_end
        info.ordinals.append((ordinal_base + i) & 0xFFFF)
        info.are_rvas.append(is_rva)
        info.rvas_or_forwarders.append(
            export_rva if is_rva else strings.add_string(_parse_forwarder(data, export_rva))
        )
        if hint_name is None:
            info.hints.append(None)
            info.names.append(None)
        else:
            info.hints.append(hint_name.hint)
            info.names.append(strings.add_string(hint_name.name))
            if name_order[hint_name.hint] is not None:
                raise PeError("Bad hint.")
            name_order[hint_name.hint] = row
            hints_processed += 1
        info.undecorated_names.append(None)
        info.are_used.append(False)

    if hints_processed != len(enpt):
        raise PeError("Not all names processed.")
    order = tuple(index for index in name_order if index is not None)
    ordered_names = [info.names[index] for index in order]
    if any(b < a for a, b in zip(ordered_names, ordered_names[1:])):  # type: ignore[operator]
        raise PeError("Export name pointer table is not sorted.")

    info.count = len(info.ordinals)
    return info, order


def process_resource_manifest(data: bytes, is_dll: bool) -> int:
    """Id of the manifest resource the loader would use, or 0 if there is none."""
    root = parse_resource_root_directory_table(data)
    if root is None:
        return 0
    table, section = root
    for i in range(table.number_of_id_entries):
        if parse_resource_directory_id_entry(data, table, i) != RT_MANIFEST:
            continue
        manifests = parse_resource_sub_directory_table(
            data, section, table, table.number_of_name_entries + i
        )
        if manifests.number_of_id_entries >= 1:
            name_id = parse_resource_directory_id_entry(data, manifests, 0)
            if MIN_MANIFEST_ID <= name_id <= MAX_MANIFEST_ID:
                if not (is_dll and name_id == 1):
                    return name_id
                if manifests.number_of_id_entries >= 2:
                    name_id = parse_resource_directory_id_entry(data, manifests, 1)
                    if 2 <= name_id <= MAX_MANIFEST_ID:
                        return name_id
        break
    return 0


def process_all(data: bytes, strings: Optional[UniqueStrings] = None) -> PeTables:
    """Validate an image and gather its imports, exports and manifest id."""
    pool = UniqueStrings() if strings is None else strings
    headers = process_headers(data)
    tables = process_import_tables(data)
    dll_names = process_import_names(data, tables, pool)
    imports = replace(process_import_iat(data, tables, pool), dll_names=dll_names)
    exports, order = process_export_eat(data, headers, pool)
    manifest_id = process_resource_manifest(data, headers.is_dll)
    return PeTables(imports, exports, order, manifest_id, headers.is_32)