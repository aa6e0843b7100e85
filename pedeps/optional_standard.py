"""Standard fields of the PE optional header (PE32 and PE32+)."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar, Optional

from .coff import CoffHeader
from .mz import DosHeader, PeError

OPTIONAL_SIGNATURE_32 = 0x010B
OPTIONAL_SIGNATURE_64 = 0x020B

_LAYOUT_32 = struct.Struct("<HBBIIIIII")
_LAYOUT_64 = struct.Struct("<HBBIIIII")


class OptionalStandardErrorKind(enum.Enum):
    """Reasons the standard optional header can be rejected."""

    COFF_HAS_WRONG_OPTIONAL = (
        "COFF header contains too small size of coff_optional_header_standard_32_64."
    )
    FILE_TOO_SMALL = "File is too small to contain coff_optional_header_standard_32_64."
    FILE_NOT_COFF_OPTIONAL = "COFF optional signature not found."


class OptionalStandardError(PeError):
    """The standard optional header is missing or malformed."""

    def __init__(self, kind: OptionalStandardErrorKind) -> None:
        super().__init__(kind.value)
        self.kind = kind


@dataclass(frozen=True)
class OptionalHeaderStandard:
    """Standard optional header; ``data_base`` exists only in PE32."""

    SIZE: ClassVar[int] = _LAYOUT_32.size

    signature: int
    linker_major: int
    linker_minor: int
    code_size: int
    initialized_size: int
    uninitialized_size: int
    entry_point: int
    code_base: int
    data_base: Optional[int] = None

    @property
    def size(self) -> int:
        """Bytes this header occupies in the file."""
        return _LAYOUT_32.size if is_32_bit(self) else _LAYOUT_64.size

    @classmethod
    def from_bytes(cls, data: bytes, offset: int) -> OptionalHeaderStandard:
        """Decode the header at ``offset``, choosing the layout by signature."""
        if offset < 0 or len(data) < offset + 2:
            raise OptionalStandardError(OptionalStandardErrorKind.FILE_TOO_SMALL)
        (signature,) = struct.unpack_from("<H", data, offset)
        layout = _LAYOUT_32 if signature == OPTIONAL_SIGNATURE_32 else _LAYOUT_64
        if len(data) < offset + layout.size:
            raise OptionalStandardError(OptionalStandardErrorKind.FILE_TOO_SMALL)
        return cls(*layout.unpack_from(data, offset))


def parse_optional_header_standard(data: bytes) -> OptionalHeaderStandard:
    """Locate the standard optional header and validate it."""
    dos = DosHeader.from_bytes(data)
    coff = CoffHeader.from_bytes(data, dos.pe_offset)
    if coff.optional_header_size < OptionalHeaderStandard.SIZE:
        raise OptionalStandardError(OptionalStandardErrorKind.COFF_HAS_WRONG_OPTIONAL)
    offset = dos.pe_offset + CoffHeader.SIZE
    if len(data) < offset + OptionalHeaderStandard.SIZE:
        raise OptionalStandardError(OptionalStandardErrorKind.FILE_TOO_SMALL)
    header = OptionalHeaderStandard.from_bytes(data, offset)
    if header.signature not in (OPTIONAL_SIGNATURE_32, OPTIONAL_SIGNATURE_64):
        raise OptionalStandardError(OptionalStandardErrorKind.FILE_NOT_COFF_OPTIONAL)
    return header


def is_32_bit(header: OptionalHeaderStandard) -> bool:
    """True for a PE32 image, False for PE32+."""
    return header.signature == OPTIONAL_SIGNATURE_32