"""DMI viewer core: decode, animate and resize DreamMaker Icon files."""

from .dmi_engine import (
    Animated,
    Direction,
    DirImage,
    LoopMode,
    ParsedDMI,
    ParsedState,
    ResizeFilter,
    Resizing,
    load_parsed_dmi,
)
from .errors import DmiDecodeError, DmiError, EncodeError, ExportError, FrameBoundsExceeded

__all__ = [
    "Animated",
    "DirImage",
    "Direction",
    "DmiDecodeError",
    "DmiError",
    "EncodeError",
    "ExportError",
    "FrameBoundsExceeded",
    "LoopMode",
    "ParsedDMI",
    "ParsedState",
    "ResizeFilter",
    "Resizing",
    "load_parsed_dmi",
]
