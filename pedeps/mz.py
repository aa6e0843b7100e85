"""DOS (MZ) header at the start of a PE image."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar

MZ_SIGNATURE = 0x5A4D

_DOS_LAYOUT = struct.Struct("<14H4H2H10HH")


class PeError(ValueError):
    """Base class of every error raised while reading a PE image."""


class MzErrorKind(enum.Enum):
    """Reasons the DOS header can be rejected."""

    FILE_TOO_SMALL = "File is too small to contain dos_header."
    FILE_NOT_MZ = "MZ signature not found."


class MzError(PeError):
    """The DOS header is missing or malformed."""

    def __init__(self, kind: MzErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind


@dataclass(frozen=True)
class DosHeader:
    """The 62-byte DOS header; ``pe_offset`` points at the COFF header."""

    SIZE: ClassVar[int] = _DOS_LAYOUT.size

    signature: int
    last_size: int
    pages: int
    relocations: int
    header_size: int
    min_alloc: int
    max_alloc: int
    ss: int
    sp: int
    check_sum: int
    ip: int
    cs: int
    relocs: int
    overlay: int
    reserved_1: tuple[int, ...]
    oem_id: int
    oem_info: int
    reserved_2: tuple[int, ...]
    pe_offset: int

    @classmethod
    def from_bytes(cls, data: bytes) -> DosHeader:
        """Decode the header fields without validating them."""
        if len(data) < cls.SIZE:
            raise MzError(MzErrorKind.FILE_TOO_SMALL)
        values = _DOS_LAYOUT.unpack_from(data, 0)
        return cls(
            *values[:14],
            reserved_1=tuple(values[14:18]),
            oem_id=values[18],
            oem_info=values[19],
            reserved_2=tuple(values[20:30]),
            pe_offset=values[30],
        )


def parse_mz_header(data: bytes) -> DosHeader:
    """Decode and validate the DOS header of ``data``."""
    header = DosHeader.from_bytes(data)
    if header.signature != MZ_SIGNATURE:
        raise MzError(MzErrorKind.FILE_NOT_MZ)
    return header