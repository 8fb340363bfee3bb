'''Format listing entries as text lines

When the VR is known we use it to pick between text and numeric display.
Without a VR (implicit VR data sets, or binary VRs) we fall back to guessing
from the value length: 1/2/4/8 bytes are shown as unsigned little endian
integers, anything else as text. This guess is ambiguous (a 4 character
string looks like an integer) so it is only used when nothing better is known.
'''
from struct import Struct
from typing import Iterable, Iterator, Optional

from .conf import RenderOptions
from .elem import DataElem, TEXT_VRS
from .util import fmt_tag
from .walker import EntryKind, ListingEntry, Section


TOO_LONG_MSG = "<Value is too long to display>"


_len_unpackers = {1: Struct("<B").unpack,
                  2: Struct("<H").unpack,
                  4: Struct("<L").unpack,
                  8: Struct("<Q").unpack,
                 }


_float_unpackers = {"FL": (4, Struct("<f").unpack),
                    "FD": (8, Struct("<d").unpack),
                   }


def bytes_to_text(value: bytes) -> str:
    return value.rstrip(b"\x00").decode("latin-1")


def guess_value(value: bytes) -> str:
    '''Format `value` based solely on its length'''
    unpacker = _len_unpackers.get(len(value))
    if unpacker is not None:
        return str(unpacker(value)[0])
    return bytes_to_text(value)


def format_value(elem: DataElem, opts: Optional[RenderOptions] = None) -> str:
    '''Produce the display string for the value of a leaf element'''
    if opts is None:
        opts = RenderOptions()
    if elem.length > opts.max_value_length:
        return TOO_LONG_MSG
    value = elem.value
    if value is None:
        return ""
    if elem.VR in TEXT_VRS:
        return bytes_to_text(value)
    if elem.VR in _float_unpackers:
        n_bytes, unpacker = _float_unpackers[elem.VR]
        if len(value) == n_bytes:
            return str(unpacker(value)[0])
    elif elem.VR == "AT" and len(value) == 4:
        return fmt_tag(*Struct("<HH").unpack(value))
    return guess_value(value)


def render_entry(entry: ListingEntry, opts: Optional[RenderOptions] = None) -> str:
    '''Render a single entry as an indented line'''
    if opts is None:
        opts = RenderOptions()
    elem = entry.elem
    if entry.kind.is_marker:
        vr = elem.VR or "NA"
        desc = "<%s>" % entry.kind.value
    else:
        vr = elem.VR or ""
        desc = format_value(elem, opts)
    return "%s%s %s(%d) %s" % (
        " " * (opts.indent * entry.depth),
        fmt_tag(elem.group, elem.elem),
        vr,
        elem.length,
        desc,
    )


def render_listing(
    entries: Iterable[ListingEntry], opts: Optional[RenderOptions] = None
) -> Iterator[str]:
    '''Render all entries, with a heading line at the start of each section'''
    if opts is None:
        opts = RenderOptions()
    section = None
    for entry in entries:
        if entry.section is not section:
            if section is not None:
                yield ""
            section = entry.section
            yield "%s:" % section.value
        yield render_entry(entry, opts)
