"""This package lists the element structure of DICOM files"""
from . import info, conf, cursor, elem, nesting, render, util, walker


__version__ = info.VERSION


__all__ = [
    "conf",
    "cursor",
    "elem",
    "nesting",
    "render",
    "util",
    "walker",
]
