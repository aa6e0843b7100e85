import pytest

from pedeps.getters import UNAVAILABLE, get_export_name_processing, get_name_undecorating
from pedeps.getters_export import (
    get_export_entry_point,
    get_export_hint,
    get_export_name,
    get_export_name_undecorated,
    get_export_ordinal,
    get_export_type,
)
from pedeps.processing import ExportTableInfo


@pytest.fixture
def eti():
    return ExportTableInfo(
        count=5,
        ordinal_base=1,
        ordinals=[1, 2, 3, 4, 5],
        are_rvas=[True, False, True, False, True],
        rvas_or_forwarders=[0x1000, "KERNEL32.Foo", 0x2000, "USER32.Bar", 0x3000],
        hints=[0, 1, None, None, None],
        names=["?f@@YAXXZ", "plain", None, None, UNAVAILABLE],
        undecorated_names=[None, None, None, None, None],
        are_used=[False] * 5,
    )


def test_type(eti):
    assert get_export_type(eti, 0) is True
    assert get_export_type(eti, 1) is False


def test_ordinal(eti):
    assert get_export_ordinal(eti, 3) == eti.ordinals[3]


def test_hint(eti):
    assert get_export_hint(eti, 1) == 1
    assert get_export_hint(eti, 2) is None


def test_named_export_name(eti):
    assert get_export_name(eti, 1) == "plain"


def test_unnamed_rva_without_debug_name_is_processing(eti):
    assert get_export_name(eti, 2) is get_export_name_processing()


def test_unnamed_forwarder_without_debug_name_is_none(eti):
    assert get_export_name(eti, 3) is None


def test_unavailable_debug_name_is_none(eti):
    assert get_export_name(eti, 4) is None
    assert get_export_name_undecorated(eti, 4) is None


def test_debug_name_returned(eti):
    eti.names[2] = "debug_fn"
    assert get_export_name(eti, 2) == "debug_fn"
    assert get_export_name_undecorated(eti, 2) == "debug_fn"


def test_undecorated_pending(eti):
    assert get_export_name_undecorated(eti, 0) is get_name_undecorating()


def test_undecorated_ready(eti):
    eti.undecorated_names[0] = "void __cdecl f(void)"
    assert get_export_name_undecorated(eti, 0) == "void __cdecl f(void)"


def test_undecorated_unavailable_falls_back(eti):
    eti.undecorated_names[0] = UNAVAILABLE
    assert get_export_name_undecorated(eti, 0) == "?f@@YAXXZ"


def test_undecorated_plain_name(eti):
    assert get_export_name_undecorated(eti, 1) == "plain"


def test_undecorated_debug_name(eti):
    eti.names[2] = "?dbg@@YAXXZ"
    assert get_export_name_undecorated(eti, 2) is get_name_undecorating()
    eti.undecorated_names[2] = UNAVAILABLE
    assert get_export_name_undecorated(eti, 2) == "?dbg@@YAXXZ"


def test_undecorated_processing(eti):
    assert get_export_name_undecorated(eti, 2) is get_export_name_processing()


def test_entry_point(eti):
    assert get_export_entry_point(eti, 0) == 0x1000
    assert get_export_entry_point(eti, 1) == "KERNEL32.Foo"