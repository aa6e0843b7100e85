"""COFF file header that follows the PE signature."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar

from .mz import DosHeader, PeError

NE_SIGNATURE = 0x454E
COFF_SIGNATURE = 0x00004550
MAX_SECTIONS = 96

IMAGE_FILE_MACHINE_UNKNOWN = 0x0000
IMAGE_FILE_MACHINE_I386 = 0x014C
IMAGE_FILE_MACHINE_R4000 = 0x0166
IMAGE_FILE_MACHINE_WCEMIPSV2 = 0x0169
IMAGE_FILE_MACHINE_SH3 = 0x01A2
IMAGE_FILE_MACHINE_SH3DSP = 0x01A3
IMAGE_FILE_MACHINE_SH4 = 0x01A6
IMAGE_FILE_MACHINE_SH5 = 0x01A8
IMAGE_FILE_MACHINE_ARM = 0x01C0
IMAGE_FILE_MACHINE_THUMB = 0x01C2
IMAGE_FILE_MACHINE_ARMNT = 0x01C4
IMAGE_FILE_MACHINE_AM33 = 0x01D3
IMAGE_FILE_MACHINE_POWERPC = 0x01F0
IMAGE_FILE_MACHINE_POWERPCFP = 0x01F1
IMAGE_FILE_MACHINE_IA64 = 0x0200
IMAGE_FILE_MACHINE_MIPS16 = 0x0266
IMAGE_FILE_MACHINE_MIPSFPU = 0x0366
IMAGE_FILE_MACHINE_MIPSFPU16 = 0x0466
IMAGE_FILE_MACHINE_EBC = 0x0EBC
IMAGE_FILE_MACHINE_RISCV32 = 0x5032
IMAGE_FILE_MACHINE_RISCV64 = 0x5064
IMAGE_FILE_MACHINE_RISCV128 = 0x5128
IMAGE_FILE_MACHINE_AMD64 = 0x8664
IMAGE_FILE_MACHINE_M32R = 0x9041
IMAGE_FILE_MACHINE_ARM64 = 0xAA64

KNOWN_MACHINES = frozenset(
    {
        IMAGE_FILE_MACHINE_UNKNOWN,
        IMAGE_FILE_MACHINE_I386,
        IMAGE_FILE_MACHINE_R4000,
        IMAGE_FILE_MACHINE_WCEMIPSV2,
        IMAGE_FILE_MACHINE_SH3,
        IMAGE_FILE_MACHINE_SH3DSP,
        IMAGE_FILE_MACHINE_SH4,
        IMAGE_FILE_MACHINE_SH5,
        IMAGE_FILE_MACHINE_ARM,
        IMAGE_FILE_MACHINE_THUMB,
        IMAGE_FILE_MACHINE_ARMNT,
        IMAGE_FILE_MACHINE_AM33,
        IMAGE_FILE_MACHINE_POWERPC,
        IMAGE_FILE_MACHINE_POWERPCFP,
        IMAGE_FILE_MACHINE_IA64,
        IMAGE_FILE_MACHINE_MIPS16,
        IMAGE_FILE_MACHINE_MIPSFPU,
        IMAGE_FILE_MACHINE_MIPSFPU16,
        IMAGE_FILE_MACHINE_EBC,
        IMAGE_FILE_MACHINE_RISCV32,
        IMAGE_FILE_MACHINE_RISCV64,
        IMAGE_FILE_MACHINE_RISCV128,
        IMAGE_FILE_MACHINE_AMD64,
        IMAGE_FILE_MACHINE_M32R,
        IMAGE_FILE_MACHINE_ARM64,
    }
)

IMAGE_FILE_RELOCS_STRIPPED = 0x0001
IMAGE_FILE_EXECUTABLE_IMAGE = 0x0002
IMAGE_FILE_LINE_NUMS_STRIPPED = 0x0004
IMAGE_FILE_LOCAL_SYMS_STRIPPED = 0x0008
IMAGE_FILE_AGGRESSIVE_WS_TRIM = 0x0010
IMAGE_FILE_LARGE_ADDRESS_AWARE = 0x0020
IMAGE_FILE_BYTES_XXX = 0x0040
IMAGE_FILE_BYTES_REVERSED_LO = 0x0080
IMAGE_FILE_32BIT_MACHINE = 0x0100
IMAGE_FILE_DEBUG_STRIPPED = 0x0200
IMAGE_FILE_REMOVABLE_RUN_FROM_SWAP = 0x0400
IMAGE_FILE_NET_RUN_FROM_SWAP = 0x0800
IMAGE_FILE_SYSTEM = 0x1000
IMAGE_FILE_DLL = 0x2000
IMAGE_FILE_UP_SYSTEM_ONLY = 0x4000
IMAGE_FILE_BYTES_REVERSED_HI = 0x8000

_COFF_LAYOUT = struct.Struct("<IHHIIIHH")


class CoffErrorKind(enum.Enum):
    """Reasons the COFF header can be rejected."""

    FILE_TOO_SMALL = "File is too small to contain coff_header."
    FILE_NE = "File is not PE, it is NE."
    FILE_NOT_COFF = "COFF signature not found."
    UNKNOWN_MACHINE_TYPE = "Unknown machine type."
    TOO_MANY_SECTIONS = "Too many sections."


class CoffError(PeError):
    """The COFF header is missing or malformed."""

    def __init__(self, kind: CoffErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind


@dataclass(frozen=True)
class CoffHeader:
    """The 24-byte COFF header, PE signature included."""

    SIZE: ClassVar[int] = _COFF_LAYOUT.size

    signature: int
    machine: int
    section_count: int
    date_time: int
    symbol_table: int
    symbol_table_entries_count: int
    optional_header_size: int
    characteristics: int

    @classmethod
    def from_bytes(cls, data: bytes, offset: int) -> CoffHeader:
        """Decode the header at ``offset`` without validating it."""
        if offset < 0 or len(data) < offset + cls.SIZE:
            raise CoffError(CoffErrorKind.FILE_TOO_SMALL)
        return cls(*_COFF_LAYOUT.unpack_from(data, offset))


def parse_coff_header(data: bytes) -> CoffHeader:
    """Locate the COFF header through the DOS header and validate it."""
    dos = DosHeader.from_bytes(data)
    header = CoffHeader.from_bytes(data, dos.pe_offset)
    if header.signature & 0xFFFF == NE_SIGNATURE:
        raise CoffError(CoffErrorKind.FILE_NE)
    if header.signature != COFF_SIGNATURE:
        raise CoffError(CoffErrorKind.FILE_NOT_COFF)
    if header.machine not in KNOWN_MACHINES:
        raise CoffError(CoffErrorKind.UNKNOWN_MACHINE_TYPE)
    if header.section_count > MAX_SECTIONS:
        raise CoffError(CoffErrorKind.TOO_MANY_SECTIONS)
    return header