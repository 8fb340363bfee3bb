"""Track the open sequences and items while walking a data set

Sequences and items each get a `Frame` on a stack, so the depth of the stack
is the nesting level of whatever is decoded next.

A sequence frame counts down the lengths of the items it contains and is
finished when that count reaches zero. Encoders that count the 8 byte item
headers in the sequence length never get the count to zero, so a sequence
that has reached the end offset implied by its length is closed once the next
tag shows it can't belong to it: any tag other than an item, or an item too
long for the remaining count. An item frame is finished when the stream
reaches its end offset.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .elem import UNDEFINED_LENGTH
from .util import FormatError, fmt_tag


log = logging.getLogger(__name__)


class FrameKind(Enum):
    SEQUENCE = "sequence"
    ITEM = "item"



@dataclass
class Frame:
    kind: FrameKind

    tag: Tuple[int, int]
    """Tag of the element that opened the frame"""

    bytes_remaining: Optional[int]
    """Remaining length, or None if the length is undefined"""

    end_offset: Optional[int]
    """Stream offset where the content ends, None if the length is undefined"""

    implicit_vr: bool = False
    """Content is implicit VR regardless of the transfer syntax"""

    @property
    def undefined_length(self) -> bool:
        return self.bytes_remaining is None

    def consume(self, n_bytes: int) -> None:
        """Subtract `n_bytes` from the remaining length"""
        if self.bytes_remaining is None:
            return
        if n_bytes > self.bytes_remaining:
            raise FormatError(
                "Item of length %d overruns %s %s with %d bytes remaining"
                % (n_bytes, self.kind.value, fmt_tag(*self.tag), self.bytes_remaining)
            )
        self.bytes_remaining -= n_bytes

    def past_end(self, offset: int) -> bool:
        """True if `offset` is at or beyond the end implied by the length"""
        return self.end_offset is not None and offset >= self.end_offset

    def is_finished(self, offset: int) -> bool:
        if self.kind is FrameKind.SEQUENCE:
            return self.bytes_remaining == 0
        if self.end_offset is None:
            return False
        if offset > self.end_offset:
            raise FormatError(
                "Read past the end of item in %s (offset %d > %d)"
                % (fmt_tag(*self.tag), offset, self.end_offset)
            )
        return offset == self.end_offset


def _make_frame(
    kind: FrameKind,
    tag: Tuple[int, int],
    length: int,
    offset: int,
    implicit_vr: bool = False,
) -> Frame:
    if length == UNDEFINED_LENGTH:
        return Frame(kind, tag, None, None, implicit_vr)
    return Frame(kind, tag, length, offset + length, implicit_vr)


class NestingStack:
    """Stack of open sequence/item frames"""

    def __init__(self) -> None:
        self._frames: List[Frame] = []

    def __len__(self) -> int:
        return len(self._frames)

    def __bool__(self) -> bool:
        return len(self._frames) != 0

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def top(self) -> Optional[Frame]:
        if not self._frames:
            return None
        return self._frames[-1]

    @property
    def implicit_vr(self) -> bool:
        """True if the innermost frame holds implicit VR content"""
        return bool(self._frames) and self._frames[-1].implicit_vr

    def _pop(self) -> Frame:
        frame = self._frames.pop()
        log.debug("Closed %s in %s", frame.kind.value, fmt_tag(*frame.tag))
        return frame

    def _close_ended_items(self, offset: int) -> List[Frame]:
        """Pop the outermost item that ends by `offset` and everything in it

        Anything nested inside such an item has to end with it, otherwise
        a FormatError is raised.
        """
        for idx, frame in enumerate(self._frames):
            if frame.kind is FrameKind.ITEM and frame.past_end(offset):
                break
        else:
            return []
        assert frame.end_offset is not None
        if offset > frame.end_offset:
            raise FormatError(
                "Read past the end of item in %s (offset %d > %d)"
                % (fmt_tag(*frame.tag), offset, frame.end_offset)
            )
        for inner in self._frames[idx + 1:]:
            if not inner.past_end(offset):
                raise FormatError(
                    "The %s in %s extends past the end of its item"
                    % (inner.kind.value, fmt_tag(*inner.tag))
                )
        closed = []
        while len(self._frames) > idx:
            closed.append(self._pop())
        return closed

    def open_sequence(
        self,
        tag: Tuple[int, int],
        length: int,
        offset: int,
        implicit_vr: bool = False,
    ) -> Frame:
        """Push a frame for a sequence whose content starts at `offset`

        If `implicit_vr` is set, or the sequence is nested in implicit VR
        content, the items are decoded as implicit VR.
        """
        implicit_vr = implicit_vr or self.implicit_vr
        frame = _make_frame(FrameKind.SEQUENCE, tag, length, offset, implicit_vr)
        log.debug("Opening sequence %s at depth %d", fmt_tag(*tag), self.depth)
        self._frames.append(frame)
        return frame

    def open_item(self, length: int, offset: int) -> Frame:
        """Push a frame for an item whose content starts at `offset`

        The item length is charged against the enclosing sequence. Any items
        that ended before the item header are closed first.
        """
        self._close_ended_items(offset - 8)
        seq = self.top
        if seq is None or seq.kind is not FrameKind.SEQUENCE:
            raise FormatError("Found sequence item outside of a sequence")
        if length != UNDEFINED_LENGTH:
            seq.consume(length)
        frame = _make_frame(FrameKind.ITEM, seq.tag, length, offset, seq.implicit_vr)
        self._frames.append(frame)
        return frame

    def close_delimited(self, kind: FrameKind) -> Frame:
        """Pop an undefined length frame in response to a delimitation item"""
        frame = self.top
        if frame is None or frame.kind is not kind or not frame.undefined_length:
            raise FormatError(
                "Unexpected %s delimitation item" % kind.value
            )
        log.debug("Closing delimited %s in %s", kind.value, fmt_tag(*frame.tag))
        return self._frames.pop()

    def close_finished(self, offset: int) -> List[Frame]:
        """Pop all frames that are finished once the stream is at `offset`"""
        closed = []
        while self._frames and self._frames[-1].is_finished(offset):
            closed.append(self._pop())
        return closed

    def close_ended(self, offset: int) -> List[Frame]:
        """Pop all frames that can't contain a tag starting at `offset`

        On top of the finished frames this closes any sequence that has
        reached the end implied by its length, even if the item lengths
        didn't add up to it (the item headers were counted).
        """
        closed = self._close_ended_items(offset)
        while self._frames:
            frame = self._frames[-1]
            if not frame.is_finished(offset):
                if frame.kind is not FrameKind.SEQUENCE or not frame.past_end(offset):
                    break
            closed.append(self._pop())
        return closed

    def check_closed(self) -> None:
        """Raise a FormatError if any frames are still open"""
        if self._frames:
            frame = self._frames[-1]
            raise FormatError(
                "Stream ended with %d unclosed frame(s), innermost is %s in %s"
                % (len(self._frames), frame.kind.value, fmt_tag(*frame.tag))
            )
