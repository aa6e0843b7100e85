"""Complete PE header: COFF header, optional header, directories and sections."""

from __future__ import annotations

import enum
import struct
import warnings
from dataclasses import dataclass
from typing import ClassVar, Optional

from .coff import CoffHeader, parse_coff_header
from .mz import DosHeader, PeError
from .optional_standard import (
    OptionalHeaderStandard,
    is_32_bit,
    parse_optional_header_standard,
)
from .optional_windows import (
    OptionalHeaderWindows,
    PeWarning,
    parse_optional_header_windows,
)

MAX_DATA_DIRECTORIES = 16
_SECTION_LIMIT = 0x7FFFFFFF

_DIRECTORY_LAYOUT = struct.Struct("<II")
_SECTION_LAYOUT = struct.Struct("<8sIIIIIIHHI")


class DirectoryTable(enum.IntEnum):
    """Indices of the data directories."""

    EXPORT_TABLE = 0
    IMPORT_TABLE = 1
    RESOURCE_TABLE = 2
    EXCEPTION_TABLE = 3
    CERTIFICATE_TABLE = 4
    BASE_RELOCATION_TABLE = 5
    DEBUG = 6
    ARCHITECTURE = 7
    GLOBAL_PTR = 8
    TLS_TABLE = 9
    LOAD_CONFIG_TABLE = 10
    BOUND_IMPORT = 11
    IAT = 12
    DELAY_IMPORT_DESCRIPTOR = 13
    CLR_RUNTIME_HEADER = 14
    RESERVED = 15


@dataclass(frozen=True)
class DataDirectory:
    """Address and size of one data directory."""

    SIZE: ClassVar[int] = _DIRECTORY_LAYOUT.size

    va: int
    size: int


@dataclass(frozen=True)
class SectionHeader:
    """One entry of the section table; ``name`` has trailing NULs removed."""

    SIZE: ClassVar[int] = _SECTION_LAYOUT.size

    name: bytes
    virtual_size: int
    virtual_address: int
    raw_size: int
    raw_ptr: int
    relocations: int
    line_numbers: int
    relocation_count: int
    line_numbers_count: int
    characteristics: int

    @classmethod
    def from_bytes(cls, data: bytes, offset: int) -> SectionHeader:
        """Decode the section header at ``offset``."""
        name, *rest = _SECTION_LAYOUT.unpack_from(data, offset)
        return cls(name.rstrip(b"\0"), *rest)


@dataclass(frozen=True)
class CoffFull:
    """All headers of a PE image up to and including the section table."""

    dos: DosHeader
    coff: CoffHeader
    standard: OptionalHeaderStandard
    windows: OptionalHeaderWindows
    directories: tuple[DataDirectory, ...]
    sections: tuple[SectionHeader, ...]

    @property
    def is_32(self) -> bool:
        """True for a PE32 image."""
        return is_32_bit(self.standard)

    @property
    def size(self) -> int:
        """Bytes of the COFF header and both optional header parts."""
        return CoffHeader.SIZE + self.standard.size + self.windows.size

    @property
    def data_directory_offset(self) -> int:
        """File offset of the first data directory."""
        return self.dos.pe_offset + self.size

    @property
    def section_table_offset(self) -> int:
        """File offset of the first section header."""
        return self.data_directory_offset + len(self.directories) * DataDirectory.SIZE

    def directory(self, which: DirectoryTable) -> Optional[DataDirectory]:
        """The requested data directory, or None if the image has too few."""
        index = int(which)
        if index >= len(self.directories):
            return None
        return self.directories[index]


def _read_directories(data: bytes, offset: int, count: int) -> tuple[DataDirectory, ...]:
    end = offset + count * DataDirectory.SIZE
    if len(data) < end:
        raise PeError("File too small to contain all directories.")
    return tuple(
        DataDirectory(va, size)
        for va, size in _DIRECTORY_LAYOUT.iter_unpack(data[offset:end])
    )


def _read_sections(data: bytes, offset: int, count: int) -> tuple[SectionHeader, ...]:
    if len(data) < offset + count * SectionHeader.SIZE:
        raise PeError("File too small to contain all section headers.")
    return tuple(
        SectionHeader.from_bytes(data, offset + k * SectionHeader.SIZE) for k in range(count)
    )


def read_coff_full(data: bytes) -> CoffFull:
    """Decode all headers without validating them."""
    dos = DosHeader.from_bytes(data)
    coff = CoffHeader.from_bytes(data, dos.pe_offset)
    standard_offset = dos.pe_offset + CoffHeader.SIZE
    standard = OptionalHeaderStandard.from_bytes(data, standard_offset)
    windows = OptionalHeaderWindows.from_bytes(
        data, standard_offset + standard.size, is_32_bit(standard)
    )
    directory_offset = standard_offset + standard.size + windows.size
    directories = _read_directories(data, directory_offset, windows.data_directory_count)
    sections = _read_sections(
        data, directory_offset + len(directories) * DataDirectory.SIZE, coff.section_count
    )
    return CoffFull(dos, coff, standard, windows, directories, sections)


def _expect(condition: bool, message: str) -> None:
    if not condition:
        warnings.warn(message, PeWarning, stacklevel=3)


def parse_coff_full(data: bytes) -> CoffFull:
    """Decode and validate all headers, directories and section headers."""
    dos = DosHeader.from_bytes(data)
    coff = parse_coff_header(data)
    standard = parse_optional_header_standard(data)
    windows = parse_optional_header_windows(data)

    directory_count = windows.data_directory_count
    if directory_count > MAX_DATA_DIRECTORIES:
        raise PeError("Too many data directories.")
    expected = standard.size + windows.size + directory_count * DataDirectory.SIZE
    if coff.optional_header_size != expected:
        raise PeError("Optional header size is too small to contain coff_full_32_64.")
    union_size = CoffHeader.SIZE + OptionalHeaderStandard.SIZE + OptionalHeaderWindows.SIZE
    if len(data) < dos.pe_offset + union_size:
        raise PeError("File too small to contain coff_full_32_64.")

    directory_offset = dos.pe_offset + CoffHeader.SIZE + standard.size + windows.size
    directories = _read_directories(data, directory_offset, directory_count)
    full = CoffFull(dos, coff, standard, windows, directories, ())

    architecture = full.directory(DirectoryTable.ARCHITECTURE)
    _expect(
        architecture is None or (architecture.va == 0 and architecture.size == 0),
        "Architecture is reserved, must be 0.",
    )
    global_ptr = full.directory(DirectoryTable.GLOBAL_PTR)
    _expect(
        global_ptr is None or global_ptr.size == 0,
        "The size member of Global Ptr structure must be set to zero.",
    )
    reserved = full.directory(DirectoryTable.RESERVED)
    _expect(
        reserved is None or (reserved.va == 0 and reserved.size == 0),
        "Reserved, must be zero.",
    )

    sections = _read_sections(data, full.section_table_offset, coff.section_count)
    for previous, current in zip(sections, sections[1:]):
        if current.virtual_address <= previous.virtual_address:
            raise PeError(
                "VAs for sections must be assigned by the linker so that they are in "
                "ascending order."
            )
    file_size = len(data)
    for section in sections:
        if section.raw_ptr >= _SECTION_LIMIT:
            raise PeError("Section too far away.")
        if section.raw_size >= _SECTION_LIMIT:
            raise PeError("Section too big.")
        if section.raw_size > _SECTION_LIMIT - section.raw_ptr:
            raise PeError("Overflow.")
        if file_size < section.raw_ptr + section.raw_size:
            raise PeError("File too small to contain section.")
    return CoffFull(dos, coff, standard, windows, directories, sections)