from pedeps.string_converter import StringConverter


def test_bytes_converted():
    assert StringConverter().convert(b"KERNEL32.dll") == "KERNEL32.dll"


def test_each_byte_becomes_same_code_point():
    raw = bytes(range(256))
    converted = StringConverter().convert(raw)
    assert [ord(c) for c in converted] == list(raw)


def test_str_passes_through():
    assert StringConverter().convert("user32.dll") == "user32.dll"


def test_recent_keeps_last_four():
    converter = StringConverter()
    for name in ["a", "b", "c", "d", "e"]:
        converter.convert(name)
    assert converter.recent == ("b", "c", "d", "e")


def test_bytearray_converted():
    assert StringConverter().convert(bytearray(b"ntdll.dll")) == "ntdll.dll"