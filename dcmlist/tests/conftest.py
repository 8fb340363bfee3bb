from struct import pack
from typing import AbstractSet, Optional

from pytest import fixture

from ..elem import DEFAULT_SHORT_LENGTH_VRS, UNDEFINED_LENGTH


IMPLICIT_TS = "1.2.840.10008.1.2"


EXPLICIT_TS = "1.2.840.10008.1.2.1"


def pad_even(value: bytes, pad_byte: bytes = b"\x00") -> bytes:
    if len(value) % 2:
        return value + pad_byte
    return value


def explicit_elem(
    group: int,
    elem: int,
    vr: str,
    value: bytes = b"",
    length: Optional[int] = None,
    short_length_vrs: AbstractSet[str] = DEFAULT_SHORT_LENGTH_VRS,
) -> bytes:
    """Encode an explicit VR little endian element"""
    if length is None:
        length = len(value)
    res = pack("<HH2s", group, elem, vr.encode())
    if vr in short_length_vrs:
        res += pack("<H", length)
    else:
        res += b"\x00\x00" + pack("<L", length)
    return res + value


def implicit_elem(
    group: int, elem: int, value: bytes = b"", length: Optional[int] = None
) -> bytes:
    """Encode an implicit VR little endian element"""
    if length is None:
        length = len(value)
    return pack("<HHL", group, elem, length) + value


def item(length: int = UNDEFINED_LENGTH) -> bytes:
    return pack("<HHL", 0xFFFE, 0xE000, length)


def item_delim() -> bytes:
    return pack("<HHL", 0xFFFE, 0xE00D, 0)


def seq_delim() -> bytes:
    return pack("<HHL", 0xFFFE, 0xE0DD, 0)


def ts_elem(uid: str) -> bytes:
    return explicit_elem(0x0002, 0x0010, "UI", pad_even(uid.encode()))


def make_dicom_bytes(
    meta: bytes, data: bytes = b"", magic: bytes = b"DICM"
) -> bytes:
    return b"\x00" * 128 + magic + meta + data


def build_meta(ts_uid: str, sop_class: str = "1.2.840.10008.5.1.4.1.1.7") -> bytes:
    """Build a file meta group, including a correct group length"""
    body = (
        explicit_elem(0x0002, 0x0001, "OB", b"\x00\x01")
        + explicit_elem(0x0002, 0x0002, "UI", pad_even(sop_class.encode()))
        + explicit_elem(0x0002, 0x0003, "UI", pad_even(b"1.2.3.4.5.6.7"))
        + ts_elem(ts_uid)
    )
    return explicit_elem(0x0002, 0x0000, "UL", pack("<L", len(body))) + body


@fixture
def make_dicom_file(tmp_path):
    """Factory fixture that writes DICOM bytes to a temp file"""
    counter = [0]

    def _make_dicom_file(meta: bytes, data: bytes = b"", magic: bytes = b"DICM"):
        counter[0] += 1
        path = tmp_path / ("test-%d.dcm" % counter[0])
        path.write_bytes(make_dicom_bytes(meta, data, magic))
        return path

    return _make_dicom_file


@fixture
def minimal_implicit():
    """Meta header with only an implicit VR transfer syntax, then end marker"""
    return make_dicom_bytes(ts_elem(IMPLICIT_TS), b"\x00" * 4)
