import struct

import pytest

from pedeps.export_table import (
    parse_export_address_name,
    parse_export_address_table,
    parse_export_directory_table,
    parse_export_name_pointer_table,
    parse_export_ordinal_table,
)
from pedeps.import_table import HintName
from pedeps.mz import PeError

PE_OFFSET = 0x40
SECTION_VA = 0x1000
SECTION_RAW = 0x200
SECTION_SIZE = 0x200


def build_image(payload, directories):
    dos = struct.pack("<H", 0x5A4D) + bytes(58) + struct.pack("<H", PE_OFFSET)
    coff = struct.pack("<IHHIIIHH", 0x4550, 0x14C, 1, 0, 0, 0, 224, 0x2102)
    standard = struct.pack("<HBBIIIIII", 0x10B, 14, 0, 0, 0, 0, 0, 0, 0)
    windows = struct.pack(
        "<IIIHHHHHHIIIIHHIIIIII",
        0x400000, 0x1000, 0x200, 6, 0, 0, 0, 6, 0,
        0, 0x2000, 0x200, 0, 3, 0, 0, 0, 0, 0, 0, 16,
    )
    dirs = b"".join(struct.pack("<II", *directories.get(i, (0, 0))) for i in range(16))
    section = struct.pack(
        "<8sIIIIIIHHI", b".data", SECTION_SIZE, SECTION_VA, SECTION_SIZE, SECTION_RAW,
        0, 0, 0, 0, 0xC0000040,
    )
    header = dos.ljust(PE_OFFSET, b"\0") + coff + standard + windows + dirs + section
    return header.ljust(SECTION_RAW, b"\0") + bytes(payload).ljust(SECTION_SIZE, b"\0")


def make_exports(ordinal_base=1, address_count=3, names_count=2,
                 eat_rva=0x1040, enpt_rva=0x1050, eot_rva=0x1058):
    payload = bytearray(SECTION_SIZE)
    struct.pack_into(
        "<IIHHIIIIIII", payload, 0, 0, 0, 0, 0, 0,
        ordinal_base, address_count, names_count, eat_rva, enpt_rva, eot_rva,
    )
    struct.pack_into("<III", payload, 0x40, 0x1100, 0, 0x1104)
    struct.pack_into("<II", payload, 0x50, 0x1080, 0x1088)
    struct.pack_into("<HH", payload, 0x58, 2, 0)
    payload[0x80:0x86] = b"alpha\0"
    payload[0x88:0x8D] = b"beta\0"
    return build_image(payload, {0: (0x1000, 0x40)})


def test_directory_entry_decoded():
    edt = parse_export_directory_table(make_exports())
    assert edt.ordinal_base == 1
    assert edt.export_address_count == 3
    assert edt.names_count == 2
    assert edt.export_address_table_rva == 0x1040


def test_directory_entry_last_fields_decoded():
    edt = parse_export_directory_table(make_exports())
    assert edt.export_name_table_rva == 0x1050
    assert edt.ordinal_table_rva == 0x1058


def test_no_export_directory_gives_none():
    assert parse_export_directory_table(build_image(b"", {})) is None


def test_tables_read():
    data = make_exports()
    edt = parse_export_directory_table(data)
    assert parse_export_name_pointer_table(data, edt) == (0x1080, 0x1088)
    assert parse_export_ordinal_table(data, edt) == (2, 0)
    assert parse_export_address_table(data, edt) == (0x1100, 0, 0x1104)


def test_address_names():
    data = make_exports()
    edt = parse_export_directory_table(data)
    enpt = parse_export_name_pointer_table(data, edt)
    eot = parse_export_ordinal_table(data, edt)
    assert parse_export_address_name(data, enpt, eot, 2) == HintName(0, "alpha")
    assert parse_export_address_name(data, enpt, eot, 0) == HintName(1, "beta")
    assert parse_export_address_name(data, enpt, eot, 1) is None


def test_no_names():
    data = make_exports(names_count=0, enpt_rva=0, eot_rva=0)
    edt = parse_export_directory_table(data)
    enpt = parse_export_name_pointer_table(data, edt)
    eot = parse_export_ordinal_table(data, edt)
    assert enpt == () and eot == ()
    assert parse_export_address_name(data, enpt, eot, 0) is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"ordinal_base": 0x10000},
        {"ordinal_base": 0xFFFE},
        {"names_count": 4},
        {"enpt_rva": 0},
        {"eat_rva": 0},
    ],
)
def test_invalid_directory_rejected(kwargs):
    with pytest.raises(PeError):
        parse_export_directory_table(make_exports(**kwargs))


def test_table_outside_sections_rejected():
    data = make_exports(enpt_rva=0x5000)
    edt = parse_export_directory_table(data)
    with pytest.raises(PeError):
        parse_export_name_pointer_table(data, edt)