from io import BytesIO
from struct import pack

import pytest
from pytest import mark

from ..cursor import ByteCursor
from ..elem import (
    DEFAULT_SHORT_LENGTH_VRS,
    UNDEFINED_LENGTH,
    DataElem,
    read_explicit_elem,
    read_implicit_elem,
    read_tag,
)
from ..util import TruncatedDataError

from .conftest import explicit_elem, implicit_elem, item


def cursor_after_tag(data):
    """Cursor positioned just after the tag, as the walker leaves it"""
    cursor = ByteCursor(BytesIO(data))
    group, elem = read_tag(cursor)
    return cursor, group, elem


@mark.parametrize("vr", sorted(DEFAULT_SHORT_LENGTH_VRS))
def test_short_length_vrs(vr):
    cursor, group, elem = cursor_after_tag(
        explicit_elem(0x0008, 0x0020, vr, b"abcd") + b"trailing"
    )
    res = read_explicit_elem(cursor, group, elem)
    assert res == DataElem(0x0008, 0x0020, vr, 4, b"abcd")
    # 4 byte tag + 2 byte VR + 2 byte length + value
    assert cursor.tell() == 8 + 4


@mark.parametrize("vr", ["OB", "OW", "UN", "UT", "OF", "UC", "UR"])
def test_long_length_vrs(vr):
    cursor, group, elem = cursor_after_tag(
        explicit_elem(0x7FE0, 0x0010, vr, b"\x01\x02\x03\x04\x05\x06") + b"trailing"
    )
    res = read_explicit_elem(cursor, group, elem)
    assert res.VR == vr
    assert res.length == 6
    assert res.value == b"\x01\x02\x03\x04\x05\x06"
    # 4 byte tag + 2 byte VR + 2 reserved + 4 byte length + value
    assert cursor.tell() == 12 + 6


def test_explicit_sequence_has_no_value():
    content = explicit_elem(0x0008, 0x1150, "UI", b"1.2\x00")
    cursor, group, elem = cursor_after_tag(
        explicit_elem(0x0008, 0x1140, "SQ", length=len(content)) + content
    )
    res = read_explicit_elem(cursor, group, elem)
    assert res.is_sequence
    assert res.value is None
    assert res.length == len(content)
    assert cursor.tell() == 12


def test_custom_short_length_table():
    short_vrs = DEFAULT_SHORT_LENGTH_VRS | {"UV"}
    data = explicit_elem(0x0018, 0x9999, "UV", b"12345678", short_length_vrs=short_vrs)
    cursor, group, elem = cursor_after_tag(data)
    res = read_explicit_elem(cursor, group, elem, short_vrs)
    assert res.value == b"12345678"
    assert cursor.at_end()


def test_implicit_elem():
    cursor, group, elem = cursor_after_tag(implicit_elem(0x0010, 0x0010, b"Doe^John"))
    res = read_implicit_elem(cursor, group, elem)
    assert res == DataElem(0x0010, 0x0010, None, 8, b"Doe^John")
    assert not res.is_sequence
    assert cursor.at_end()


def test_implicit_undefined_length_is_sequence():
    cursor, group, elem = cursor_after_tag(
        implicit_elem(0x0008, 0x1140, length=UNDEFINED_LENGTH)
    )
    res = read_implicit_elem(cursor, group, elem)
    assert res.is_sequence
    assert res.undefined_length
    assert res.value is None


def test_undefined_length_un_is_sequence():
    cursor, group, elem = cursor_after_tag(
        explicit_elem(0x0029, 0x1010, "UN", length=UNDEFINED_LENGTH) + item(8)
    )
    res = read_explicit_elem(cursor, group, elem)
    assert res.is_sequence
    assert res.VR == "UN"
    assert res.value is None
    assert cursor.tell() == 12


def test_defined_length_un_is_not_sequence():
    cursor, group, elem = cursor_after_tag(
        explicit_elem(0x0029, 0x1010, "UN", b"\x01\x02\x03\x04")
    )
    res = read_explicit_elem(cursor, group, elem)
    assert not res.is_sequence
    assert res.value == b"\x01\x02\x03\x04"


def test_truncated_value():
    data = pack("<HH2sH", 0x0010, 0x0010, b"PN", 20) + b"short"
    cursor, group, elem = cursor_after_tag(data)
    with pytest.raises(TruncatedDataError):
        read_explicit_elem(cursor, group, elem)
    cursor, group, elem = cursor_after_tag(implicit_elem(0x0010, 0x0010, length=10))
    with pytest.raises(TruncatedDataError):
        read_implicit_elem(cursor, group, elem)


def test_value_length_invariant():
    with pytest.raises(ValueError):
        DataElem(0x0010, 0x0010, "PN", 4, b"abc")
    elem = DataElem(0x0010, 0x0010, "PN", 4, b"abcd")
    assert elem.tag == (0x0010, 0x0010)
    assert str(elem) == "(0010,0010) PN(4)"
