import struct

import pytest

from pedeps.mz import MzError, MzErrorKind, PeError
from pedeps.processing import (
    ExportTableInfo,
    ImportTableInfo,
    PeTables,
    process_all,
    process_export_eat,
    process_headers,
    process_import_iat,
    process_import_names,
    process_import_tables,
    process_resource_manifest,
)
from pedeps.unique_strings import UniqueStrings

SECTION_RVA = 0x1000
SECTION_RAW = 0x400
SECTION_SIZE = 0x800
PE_OFFSET = 64


def _rva(off):
    return SECTION_RVA + off


def _put(buf, off, payload):
    buf[off:off + len(payload)] = payload


def build_image(
    *,
    is_dll=False,
    manifest_ids=(1,),
    resource_type=24,
    with_resources=True,
    with_exports=True,
    export_names=((b"Alpha", 2), (b"Beta", 0)),
    forwarder=b"NTDLL.RtlFoo",
):
    sec = bytearray(SECTION_SIZE)
    # Regular imports.
    _put(sec, 0x000, struct.pack("<5I", _rva(0x40), 0, 0, _rva(0x80), _rva(0x40)))
    _put(sec, 0x040, struct.pack("<3I", _rva(0x60), 0x80000000 | 7, 0))
    _put(sec, 0x060, struct.pack("<H", 0x42) + b"ExitProcess\0")
    _put(sec, 0x080, b"KERNEL32.dll\0")
    # Delay imports.
    _put(sec, 0x100, struct.pack("<8I", 1, _rva(0x140), 0, 0, _rva(0x160), 0, 0, 0))
    _put(sec, 0x140, b"USER32.dll\0")
    _put(sec, 0x160, struct.pack("<2I", _rva(0x180), 0))
    _put(sec, 0x180, struct.pack("<H", 5) + b"MessageBoxA\0")
    # Exports.
    _put(
        sec,
        0x200,
        struct.pack(
            "<IIHHIIIIIII",
            0, 0, 0, 0, 0, 1, 3, len(export_names), _rva(0x230), _rva(0x240), _rva(0x250),
        ),
    )
    _put(sec, 0x230, struct.pack("<3I", 0x1500, 0, _rva(0x270)))
    for k, (name, eat_index) in enumerate(export_names):
        _put(sec, 0x240 + 4 * k, struct.pack("<I", _rva(0x280 + 8 * k)))
        _put(sec, 0x250 + 2 * k, struct.pack("<H", eat_index))
        _put(sec, 0x280 + 8 * k, name + b"\0")
    _put(sec, 0x270, forwarder + b"\0")
    # Resources.
    _put(sec, 0x400, struct.pack("<IIHHHH", 0, 0, 0, 0, 0, 1))
    _put(sec, 0x410, struct.pack("<II", resource_type, 0x80000000 | 0x418))
    _put(sec, 0x418, struct.pack("<IIHHHH", 0, 0, 0, 0, 0, len(manifest_ids)))
    for k, manifest_id in enumerate(manifest_ids):
        _put(sec, 0x428 + 8 * k, struct.pack("<II", manifest_id, 0x500))

    directories = [(0, 0)] * 16
    if with_exports:
        directories[0] = (_rva(0x200), 0x100)
    directories[1] = (_rva(0x000), 40)
    if with_resources:
        directories[2] = (_rva(0x400), 0x100)
    directories[13] = (_rva(0x100), 64)

    characteristics = 0x0102 | (0x2000 if is_dll else 0)
    dos = bytearray(PE_OFFSET)
    dos[0:2] = b"MZ"
    struct.pack_into("<H", dos, 60, PE_OFFSET)
    coff = struct.pack("<IHHIIIHH", 0x4550, 0x14C, 1, 0, 0, 0, 224, characteristics)
    standard = struct.pack("<HBBIIIIII", 0x10B, 14, 0, 0x200, 0x800, 0, 0x1000, 0x1000, 0x1000)
    windows = struct.pack(
        "<IIIHHHHHHIIIIHHIIIIII",
        0x400000, 0x1000, 0x200,
        6, 0, 0, 0, 6, 0,
        0, 0x2000, 0x400, 0,
        3, 0,
        0x100000, 0x1000, 0x100000, 0x1000, 0, 16,
    )
    dirs = b"".join(struct.pack("<II", *d) for d in directories)
    section = struct.pack(
        "<8sIIIIIIHHI", b".data", SECTION_SIZE, SECTION_RVA, SECTION_SIZE, SECTION_RAW,
        0, 0, 0, 0, 0xC0000040,
    )
    headers = bytes(dos) + coff + standard + windows + dirs + section
    return headers.ljust(SECTION_RAW, b"\0") + bytes(sec)


def test_process_headers_reads_headers():
    headers = process_headers(build_image())
    assert headers.dos.pe_offset == PE_OFFSET
    assert headers.coff.coff.machine == 0x14C
    assert headers.is_32 is True
    assert headers.is_dll is False


def test_process_headers_detects_dll():
    assert process_headers(build_image(is_dll=True)).is_dll is True


def test_process_headers_rejects_non_mz():
    data = b"XX" + build_image()[2:]
    with pytest.raises(MzError) as info:
        process_headers(data)
    assert info.value.kind is MzErrorKind.FILE_NOT_MZ


def test_process_headers_rejects_truncated_file():
    with pytest.raises(MzError) as info:
        process_headers(b"MZ" + b"\0" * 10)
    assert info.value.kind is MzErrorKind.FILE_TOO_SMALL


def test_process_import_tables_counts_dlls():
    tables = process_import_tables(build_image())
    assert len(tables.normal) == 1
    assert len(tables.delay) == 1
    assert tables.dll_count == 2


def test_process_import_names_are_pooled():
    data = build_image()
    strings = UniqueStrings()
    names = process_import_names(data, process_import_tables(data), strings)
    assert names == ["KERNEL32.dll", "USER32.dll"]
    assert "KERNEL32.dll" in strings
    assert strings.add_string("".join(["USER32", ".dll"])) is names[1]


def test_process_import_iat_collects_imports():
    data = build_image()
    strings = UniqueStrings()
    info = process_import_iat(data, process_import_tables(data), strings)
    assert isinstance(info, ImportTableInfo)
    assert info.normal_dll_count == 1
    assert info.delay_dll_count == 1
    assert info.import_counts == [2, 1]
    assert info.are_ordinals == [[False, True], [False]]
    assert info.ordinals_or_hints == [[0x42, 7], [5]]
    assert info.names == [["ExitProcess", None], ["MessageBoxA"]]
    assert info.undecorated_names == [[None, None], [None]]
    assert info.matched_exports == [[None, None], [None]]
    assert "MessageBoxA" in strings


def test_process_export_eat_collects_exports():
    data = build_image()
    strings = UniqueStrings()
    info, order = process_export_eat(data, process_headers(data), strings)
    assert info.count == 2
    assert info.ordinal_base == 1
    assert info.ordinals == [1, 3]
    assert info.are_rvas == [True, False]
    assert info.rvas_or_forwarders == [0x1500, "NTDLL.RtlFoo"]
    assert info.hints == [1, 0]
    assert info.names == ["Beta", "Alpha"]
    assert info.undecorated_names == [None, None]
    assert info.are_used == [False, False]
    assert order == (1, 0)
    assert "NTDLL.RtlFoo" in strings


def test_process_export_eat_name_order_is_sorted():
    data = build_image()
    info, order = process_export_eat(data, process_headers(data), UniqueStrings())
    ordered = [info.names[index] for index in order]
    assert ordered == sorted(ordered)


def test_process_export_eat_without_exports():
    data = build_image(with_exports=False)
    info, order = process_export_eat(data, process_headers(data), UniqueStrings())
    assert info.count == 0
    assert info.names == []
    assert order == ()


def test_process_export_eat_rejects_unsorted_names():
    data = build_image(export_names=((b"Beta", 0), (b"Alpha", 2)))
    with pytest.raises(PeError, match="not sorted"):
        process_export_eat(data, process_headers(data), UniqueStrings())


def test_process_export_eat_rejects_unmatched_names():
    data = build_image(export_names=((b"Alpha", 0), (b"Beta", 0)))
    with pytest.raises(PeError, match="Not all names processed"):
        process_export_eat(data, process_headers(data), UniqueStrings())


def test_process_export_eat_rejects_forwarder_without_dot():
    data = build_image(forwarder=b"NTDLLRtlFoo")
    with pytest.raises(PeError, match="Bad export forwarder name format"):
        process_export_eat(data, process_headers(data), UniqueStrings())


def test_process_export_eat_rejects_short_forwarder():
    data = build_image(forwarder=b"A.")
    with pytest.raises(PeError, match="too short"):
        process_export_eat(data, process_headers(data), UniqueStrings())


@pytest.mark.parametrize(
    ("is_dll", "manifest_ids", "expected"),
    [
        (False, (1,), 1),
        (True, (1,), 0),
        (True, (1, 2), 2),
        (True, (1, 17), 0),
        (True, (2,), 2),
        (False, (3,), 3),
        (False, (17,), 0),
    ],
)
def test_process_resource_manifest(is_dll, manifest_ids, expected):
    data = build_image(is_dll=is_dll, manifest_ids=manifest_ids)
    assert process_resource_manifest(data, is_dll) == expected


def test_process_resource_manifest_ignores_other_types():
    data = build_image(resource_type=3, manifest_ids=(1,))
    assert process_resource_manifest(data, False) == 0


def test_process_resource_manifest_without_resources():
    assert process_resource_manifest(build_image(with_resources=False), False) == 0


def test_process_all_gathers_everything():
    strings = UniqueStrings()
    tables = process_all(build_image(is_dll=True, manifest_ids=(1, 2)), strings)
    assert isinstance(tables, PeTables)
    assert tables.is_32_bit is True
    assert tables.manifest_id == 2
    assert tables.imports.dll_names == ["KERNEL32.dll", "USER32.dll"]
    assert tables.imports.names[0][0] == "ExitProcess"
    assert isinstance(tables.exports, ExportTableInfo)
    assert tables.exports.names == ["Beta", "Alpha"]
    assert tables.export_name_order == (1, 0)
    assert "Alpha" in strings


def test_process_all_uses_own_pool_by_default():
    tables = process_all(build_image())
    assert tables.manifest_id == 1
    assert tables.imports.import_counts == [2, 1]


def test_process_all_propagates_header_errors():
    with pytest.raises(PeError):
        process_all(b"\0" * 100)