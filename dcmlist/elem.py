"""Decode individual data elements from a DICOM byte stream"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import AbstractSet, FrozenSet, Optional, Tuple
from typing_extensions import Final

from .cursor import ByteCursor
from .util import fmt_tag


log = logging.getLogger(__name__)


UNDEFINED_LENGTH: Final = 0xFFFFFFFF


DEFAULT_SHORT_LENGTH_VRS: FrozenSet[str] = frozenset(
    (
        "AE", "AS", "AT", "CS", "DA", "DS", "DT", "FL", "FD", "IS", "LO",
        "LT", "PN", "SH", "SL", "SS", "ST", "TM", "UI", "UL", "US",
    )
)
"""VRs that use a 2 byte length field in explicit VR encoding"""


TEXT_VRS: FrozenSet[str] = frozenset(
    (
        "AE", "AS", "CS", "DA", "DS", "DT", "IS", "LO", "LT", "PN", "SH",
        "ST", "TM", "UC", "UI", "UR", "UT",
    )
)


SEQUENCE_VR: Final = "SQ"


UNKNOWN_VR: Final = "UN"


ITEM_TAG: Final = (0xFFFE, 0xE000)
ITEM_DELIM_TAG: Final = (0xFFFE, 0xE00D)
SEQUENCE_DELIM_TAG: Final = (0xFFFE, 0xE0DD)


@dataclass(frozen=True)
class DataElem:
    """A single decoded data element

    The `value` is only populated for leaf elements, sequences and structural
    markers leave it as None.
    """

    group: int

    elem: int

    VR: Optional[str]
    """The value representation, None when decoded in implicit VR mode"""

    length: int
    """The declared length, can be `UNDEFINED_LENGTH` for sequences"""

    value: Optional[bytes] = None

    def __post_init__(self) -> None:
        if self.value is not None and len(self.value) != self.length:
            raise ValueError(
                "Value has %d bytes but declared length is %d"
                % (len(self.value), self.length)
            )

    @property
    def tag(self) -> Tuple[int, int]:
        return (self.group, self.elem)

    @property
    def is_sequence(self) -> bool:
        if self.VR == SEQUENCE_VR:
            return True
        if self.value is not None or self.length != UNDEFINED_LENGTH:
            return False
        return self.VR is None or self.VR == UNKNOWN_VR

    @property
    def undefined_length(self) -> bool:
        return self.length == UNDEFINED_LENGTH

    def __str__(self) -> str:
        return "%s %s(%d)" % (fmt_tag(self.group, self.elem), self.VR or "", self.length)


def read_tag(cursor: ByteCursor) -> Tuple[int, int]:
    """Read a (group, element) pair"""
    group = cursor.read_u16_le()
    elem = cursor.read_u16_le()
    return group, elem


def read_explicit_elem(
    cursor: ByteCursor,
    group: int,
    elem: int,
    short_length_vrs: AbstractSet[str] = DEFAULT_SHORT_LENGTH_VRS,
) -> DataElem:
    """Read the remainder of an explicit VR element whose tag was already read

    Sequences are returned without a value, the caller is responsible for
    walking the nested items. An undefined length `UN` element is also a
    sequence, its content is implicit VR.
    """
    vr = cursor.read_bytes(2).decode("latin-1")
    if vr in short_length_vrs:
        length = cursor.read_u16_le()
    else:
        cursor.read_bytes(2)
        length = cursor.read_u32_le()
    if vr == SEQUENCE_VR or (vr == UNKNOWN_VR and length == UNDEFINED_LENGTH):
        return DataElem(group, elem, vr, length)
    return DataElem(group, elem, vr, length, cursor.read_bytes(length))


def read_implicit_elem(cursor: ByteCursor, group: int, elem: int) -> DataElem:
    """Read the remainder of an implicit VR element whose tag was already read

    An undefined length can only be valid for a sequence, so in that case no
    value is read.
    """
    length = cursor.read_u32_le()
    if length == UNDEFINED_LENGTH:
        log.debug("Treating undefined length element %s as a sequence", fmt_tag(group, elem))
        return DataElem(group, elem, None, length)
    return DataElem(group, elem, None, length, cursor.read_bytes(length))
