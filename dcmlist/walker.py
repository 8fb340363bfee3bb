"""Walk a DICOM file and produce a flat listing of its elements

The file meta information is always explicit VR little endian, after that the
transfer syntax it specifies determines if the data set uses explicit or
implicit VR. Nested sequences are tracked with a `NestingStack` so each entry
knows its depth.
"""
from __future__ import annotations
import logging
from contextlib import closing
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Generator, Iterator, Optional

from pydicom.uid import (
    UID,
    ExplicitVRBigEndian,
    ExplicitVRLittleEndian,
    ImplicitVRLittleEndian,
)

from .conf import DecodeOptions
from .cursor import ByteCursor
from .elem import (
    DataElem,
    ITEM_DELIM_TAG,
    ITEM_TAG,
    SEQUENCE_DELIM_TAG,
    UNKNOWN_VR,
    read_explicit_elem,
    read_implicit_elem,
    read_tag,
)
from .nesting import FrameKind, NestingStack
from .util import FormatError, PathInputType, fmt_tag


log = logging.getLogger(__name__)


PREAMBLE_LENGTH = 128


MAGIC = b"DICM"


META_GROUP = 0x0002


TRANSFER_SYNTAX_TAG = (0x0002, 0x0010)


class WalkState(Enum):
    PREAMBLE = 0
    META_HEADER = 1
    MODE_RESOLVED = 2
    DATA_SET = 3
    DONE = 4


class Section(Enum):
    META = "Meta Header"
    DATA = "Data Set"


class EntryKind(Enum):
    ELEMENT = "element"
    SEQUENCE = "Sequence of Items"
    ITEM = "Sequence Item"
    ITEM_DELIM = "Item Delimitation Item"
    SEQUENCE_DELIM = "Sequence Delimitation Item"

    @property
    def is_marker(self) -> bool:
        return self is not EntryKind.ELEMENT


@dataclass(frozen=True)
class ListingEntry:
    """One line of the listing"""

    kind: EntryKind

    section: Section

    depth: int

    elem: DataElem


def clean_uid(value: bytes) -> str:
    """Strip the padding from a UI value"""
    return value.decode("latin-1").rstrip("\x00 ")


def is_implicit_transfer_syntax(transfer_syntax: Optional[str]) -> bool:
    """Implicit VR is only used for the default transfer syntax, everything
    else (including a missing transfer syntax) is treated as explicit VR
    """
    return transfer_syntax == ImplicitVRLittleEndian


def _log_transfer_syntax(transfer_syntax: Optional[str]) -> None:
    if transfer_syntax is None:
        log.warning("No transfer syntax found in meta header, assuming explicit VR")
        return
    ts_uid = UID(transfer_syntax)
    log.info("Transfer syntax: %s", ts_uid.name)
    if ts_uid == ExplicitVRBigEndian:
        log.warning("Big endian data will be decoded as little endian")
    elif ts_uid not in (ImplicitVRLittleEndian, ExplicitVRLittleEndian):
        log.warning("Unsupported transfer syntax '%s', values are shown raw", ts_uid.name)


class StreamWalker:
    """Decode the elements in a DICOM stream one at a time

    Use `iter_entries` to get a generator producing `ListingEntry` objects.
    Any problem with the input raises a `FormatError`.
    """

    def __init__(self, fp: BinaryIO, opts: Optional[DecodeOptions] = None):
        if opts is None:
            opts = DecodeOptions()
        self._cursor = ByteCursor(fp)
        self._opts = opts
        self._nesting = NestingStack()
        self.state = WalkState.PREAMBLE
        self.transfer_syntax: Optional[str] = None
        self.implicit_vr: Optional[bool] = None

    def _read_explicit(self, group: int, elem: int) -> DataElem:
        return read_explicit_elem(
            self._cursor, group, elem, self._opts.short_length_vrs
        )

    def _read_preamble(self) -> None:
        log.debug("Reading preamble")
        self._cursor.read_bytes(PREAMBLE_LENGTH)
        magic = self._cursor.read_bytes(len(MAGIC))
        if magic != MAGIC:
            raise FormatError("Not a DICOM file, found %r instead of %r" % (magic, MAGIC))
        self.state = WalkState.META_HEADER

    def _walk_meta(self) -> Iterator[ListingEntry]:
        cursor = self._cursor
        while not cursor.at_end():
            group, elem = read_tag(cursor)
            if group != META_GROUP:
                cursor.seek_relative(-4)
                break
            data_elem = self._read_explicit(group, elem)
            if data_elem.is_sequence:
                raise FormatError(
                    "Unexpected sequence %s in meta header" % fmt_tag(group, elem)
                )
            if data_elem.tag == TRANSFER_SYNTAX_TAG and self.transfer_syntax is None:
                if data_elem.value is not None:
                    self.transfer_syntax = clean_uid(data_elem.value)
            yield ListingEntry(EntryKind.ELEMENT, Section.META, 0, data_elem)
        self.state = WalkState.MODE_RESOLVED

    def _resolve_mode(self) -> None:
        _log_transfer_syntax(self.transfer_syntax)
        self.implicit_vr = is_implicit_transfer_syntax(self.transfer_syntax)
        log.debug("Using %s VR for data set", "implicit" if self.implicit_vr else "explicit")
        self.state = WalkState.DATA_SET

    def _read_marker(self, group: int, elem: int) -> DataElem:
        length = self._cursor.read_u32_le()
        return DataElem(group, elem, None, length)

    def _walk_data(self) -> Iterator[ListingEntry]:
        cursor = self._cursor
        nesting = self._nesting
        while not cursor.at_end():
            group, elem = read_tag(cursor)
            tag = (group, elem)
            if tag != ITEM_TAG:
                nesting.close_ended(cursor.tell() - 4)
            if group == 0 and elem == 0:
                log.debug("Found end of stream marker at offset %d", cursor.tell() - 4)
                break
            if tag == ITEM_TAG:
                marker = self._read_marker(group, elem)
                nesting.open_item(marker.length, cursor.tell())
                yield ListingEntry(EntryKind.ITEM, Section.DATA, nesting.depth - 1, marker)
            elif tag == ITEM_DELIM_TAG:
                marker = self._read_marker(group, elem)
                nesting.close_delimited(FrameKind.ITEM)
                yield ListingEntry(EntryKind.ITEM_DELIM, Section.DATA, nesting.depth, marker)
            elif tag == SEQUENCE_DELIM_TAG:
                marker = self._read_marker(group, elem)
                nesting.close_delimited(FrameKind.SEQUENCE)
                yield ListingEntry(
                    EntryKind.SEQUENCE_DELIM, Section.DATA, nesting.depth, marker
                )
            else:
                if self.implicit_vr or nesting.implicit_vr:
                    data_elem = read_implicit_elem(cursor, group, elem)
                else:
                    data_elem = self._read_explicit(group, elem)
                depth = nesting.depth
                if data_elem.is_sequence:
                    nesting.open_sequence(
                        data_elem.tag,
                        data_elem.length,
                        cursor.tell(),
                        implicit_vr=data_elem.VR == UNKNOWN_VR,
                    )
                    yield ListingEntry(EntryKind.SEQUENCE, Section.DATA, depth, data_elem)
                else:
                    yield ListingEntry(EntryKind.ELEMENT, Section.DATA, depth, data_elem)
            nesting.close_finished(cursor.tell())
        else:
            nesting.close_ended(cursor.tell())
        nesting.check_closed()
        self.state = WalkState.DONE

    def iter_entries(self) -> Generator[ListingEntry, None, None]:
        """Generate a `ListingEntry` for every element and structural marker"""
        if self.state is not WalkState.PREAMBLE:
            raise ValueError("The stream has already been walked")
        self._read_preamble()
        yield from self._walk_meta()
        self._resolve_mode()
        yield from self._walk_data()


def iter_listing(
    fp: BinaryIO, opts: Optional[DecodeOptions] = None
) -> Generator[ListingEntry, None, None]:
    """Generate listing entries from the open binary file `fp`"""
    return StreamWalker(fp, opts).iter_entries()


def read_listing(
    path: PathInputType, opts: Optional[DecodeOptions] = None
) -> Generator[ListingEntry, None, None]:
    """Generate listing entries from the file at `path`

    The file is closed when the generator is exhausted, raises, or is closed
    early by the caller.
    """
    with open(path, "rb") as fp:
        with closing(iter_listing(fp, opts)) as entries:
            yield from entries
