"""Windows-specific fields of the PE optional header (PE32 and PE32+)."""

from __future__ import annotations

import enum
import struct
import warnings
from dataclasses import dataclass
from typing import ClassVar

from .coff import CoffHeader
from .mz import DosHeader, PeError
from .optional_standard import OptionalHeaderStandard, is_32_bit

IMAGE_SUBSYSTEM_UNKNOWN = 0
IMAGE_SUBSYSTEM_NATIVE = 1
IMAGE_SUBSYSTEM_WINDOWS_GUI = 2
IMAGE_SUBSYSTEM_WINDOWS_CUI = 3
IMAGE_SUBSYSTEM_OS2_CUI = 5
IMAGE_SUBSYSTEM_POSIX_CUI = 7
IMAGE_SUBSYSTEM_NATIVE_WINDOWS = 8
IMAGE_SUBSYSTEM_WINDOWS_CE_GUI = 9
IMAGE_SUBSYSTEM_EFI_APPLICATION = 10
IMAGE_SUBSYSTEM_EFI_BOOT_SERVICE_DRIVER = 11
IMAGE_SUBSYSTEM_EFI_RUNTIME_DRIVER = 12
IMAGE_SUBSYSTEM_EFI_ROM = 13
IMAGE_SUBSYSTEM_XBOX = 14
IMAGE_SUBSYSTEM_WINDOWS_BOOT_APPLICATION = 16

KNOWN_SUBSYSTEMS = frozenset(
    {
        IMAGE_SUBSYSTEM_UNKNOWN,
        IMAGE_SUBSYSTEM_NATIVE,
        IMAGE_SUBSYSTEM_WINDOWS_GUI,
        IMAGE_SUBSYSTEM_WINDOWS_CUI,
        IMAGE_SUBSYSTEM_OS2_CUI,
        IMAGE_SUBSYSTEM_POSIX_CUI,
        IMAGE_SUBSYSTEM_NATIVE_WINDOWS,
        IMAGE_SUBSYSTEM_WINDOWS_CE_GUI,
        IMAGE_SUBSYSTEM_EFI_APPLICATION,
        IMAGE_SUBSYSTEM_EFI_BOOT_SERVICE_DRIVER,
        IMAGE_SUBSYSTEM_EFI_RUNTIME_DRIVER,
        IMAGE_SUBSYSTEM_EFI_ROM,
        IMAGE_SUBSYSTEM_XBOX,
        IMAGE_SUBSYSTEM_WINDOWS_BOOT_APPLICATION,
    }
)

IMAGE_DLLCHARACTERISTICS_HIGH_ENTROPY_VA = 0x0020
IMAGE_DLLCHARACTERISTICS_DYNAMIC_BASE = 0x0040
IMAGE_DLLCHARACTERISTICS_FORCE_INTEGRITY = 0x0080
IMAGE_DLLCHARACTERISTICS_NX_COMPAT = 0x0100
IMAGE_DLLCHARACTERISTICS_NO_ISOLATION = 0x0200
IMAGE_DLLCHARACTERISTICS_NO_SEH = 0x0400
IMAGE_DLLCHARACTERISTICS_NO_BIND = 0x0800
IMAGE_DLLCHARACTERISTICS_APPCONTAINER = 0x1000
IMAGE_DLLCHARACTERISTICS_WDM_DRIVER = 0x2000
IMAGE_DLLCHARACTERISTICS_GUARD_CF = 0x4000
IMAGE_DLLCHARACTERISTICS_TERMINAL_SERVER_AWARE = 0x8000

RESERVED_DLL_CHARACTERISTICS = frozenset({0x0001, 0x0002, 0x0004, 0x0008, 0x0010})

_LAYOUT_32 = struct.Struct("<IIIHHHHHHIIIIHHIIIIII")
_LAYOUT_64 = struct.Struct("<QIIHHHHHHIIIIHHQQQQII")


class PeWarning(UserWarning):
    """A PE image deviates from the specification in a tolerable way."""


class OptionalWindowsErrorKind(enum.Enum):
    """Reasons the Windows optional header can be rejected."""

    COFF_HAS_WRONG_OPTIONAL = (
        "COFF header contains too small size of coff_optional_header_windows_32_64."
    )
    FILE_TOO_SMALL = "File is too small to contain coff_optional_header_windows_32_64."


class OptionalWindowsError(PeError):
    """The Windows optional header is missing or malformed."""

    def __init__(self, kind: OptionalWindowsErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind


@dataclass(frozen=True)
class OptionalHeaderWindows:
    """Windows-specific optional header fields."""

    SIZE_32: ClassVar[int] = _LAYOUT_32.size
    SIZE_64: ClassVar[int] = _LAYOUT_64.size
    SIZE: ClassVar[int] = max(_LAYOUT_32.size, _LAYOUT_64.size)

    image_base: int
    section_alignment: int
    file_alignment: int
    os_major: int
    os_minor: int
    image_major: int
    image_minor: int
    subsystem_major: int
    subsystem_minor: int
    win32version: int
    image_size: int
    headers_size: int
    check_sum: int
    subsystem: int
    dll_characteristics: int
    stack_reserve: int
    stack_commit: int
    heap_reserve: int
    heap_commit: int
    loader_flags: int
    data_directory_count: int
    is_32: bool = True

    @property
    def size(self) -> int:
        """Bytes this header occupies in the file."""
        return self.SIZE_32 if self.is_32 else self.SIZE_64

    @classmethod
    def from_bytes(cls, data: bytes, offset: int, is_32: bool) -> OptionalHeaderWindows:
        """Decode the header at ``offset`` in the PE32 or PE32+ layout."""
        layout = _LAYOUT_32 if is_32 else _LAYOUT_64
        if offset < 0 or len(data) < offset + layout.size:
            raise OptionalWindowsError(OptionalWindowsErrorKind.FILE_TOO_SMALL)
        return cls(*layout.unpack_from(data, offset), is_32=is_32)


def is_power_of_two(n: int) -> bool:
    """True for zero and for powers of two."""
    return n == 0 or (n & (n - 1)) == 0


def _expect(condition: bool, message: str) -> None:
    if not condition:
        warnings.warn(message, PeWarning, stacklevel=3)


def parse_optional_header_windows(data: bytes) -> OptionalHeaderWindows:
    """Locate the Windows optional header, validate it and warn on oddities."""
    dos = DosHeader.from_bytes(data)
    coff = CoffHeader.from_bytes(data, dos.pe_offset)
    standard_offset = dos.pe_offset + CoffHeader.SIZE
    standard = OptionalHeaderStandard.from_bytes(data, standard_offset)
    is_32 = is_32_bit(standard)
    union_size = OptionalHeaderStandard.SIZE + OptionalHeaderWindows.SIZE
    if coff.optional_header_size < union_size:
        raise OptionalWindowsError(OptionalWindowsErrorKind.COFF_HAS_WRONG_OPTIONAL)
    if len(data) < standard_offset + union_size:
        raise OptionalWindowsError(OptionalWindowsErrorKind.FILE_TOO_SMALL)
    header = OptionalHeaderWindows.from_bytes(data, standard_offset + standard.size, is_32)

    _expect(header.image_base & (64 * 1024 - 1) == 0, "ImageBase must a multiple of 64kB.")
    _expect(
        header.section_alignment >= header.file_alignment,
        "SectionAlignment must be greater or equal to FileAlignment.",
    )
    alignment_message = "FileAlignment should be a power of 2 between 512 and 64 K, inclusive."
    _expect(is_power_of_two(header.file_alignment), alignment_message)
    _expect(header.file_alignment >= 512, alignment_message)
    _expect(header.file_alignment <= 64 * 1024, alignment_message)
    _expect(header.win32version == 0, "Win32VersionValue is reserved, must be zero.")
    _expect(
        header.section_alignment == 0 or header.image_size % header.section_alignment == 0,
        "SizeOfImage must be a multiple of SectionAlignment.",
    )
    _expect(header.subsystem in KNOWN_SUBSYSTEMS, "Unknown subsystem.")
    _expect(
        header.dll_characteristics not in RESERVED_DLL_CHARACTERISTICS,
        "Unknown DLL characteristics.",
    )
    _expect(header.loader_flags == 0, "LoaderFlags is reserved, must be zero.")
    return header