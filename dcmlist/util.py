"""Various utility functions"""
from __future__ import annotations
import os
from typing import Any, Dict, Generic, TypeVar, Union
from typing_extensions import Protocol


class DcmListError(Exception):
    """Base class for all exceptions raised by this package"""


class FormatError(DcmListError):
    """The input is not a well formed DICOM stream"""


class TruncatedDataError(FormatError):
    """The stream ended before the expected number of bytes could be read"""


class InvalidConfigError(DcmListError):
    '''Raised if invalid configuration is detected'''


TC_Type = TypeVar("TC_Type", covariant=True)


class TomlConfigurable(Generic[TC_Type], Protocol):
    """Protocol for objects that are configurable through TOML"""

    @classmethod
    def from_toml_dict(cls, toml_dict: Dict[str, Any]) -> TC_Type:
        return cls(**toml_dict)  # type: ignore


PathInputType = Union[str, "os.PathLike[str]"]


def fmt_tag(group: int, elem: int) -> str:
    """Format a tag the way it appears in a listing, e.g. '(0008,0020)'"""
    return "(%04x,%04x)" % (group, elem)
