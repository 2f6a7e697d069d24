"""DMI Engine - headless decode/compose/resize pipeline.

This package provides:
- Raw decoding of the PNG sheet and its metadata (decoder, metadata)
- Direction mapping (directions)
- Animation synthesis (animation)
- Resize policy and resampling (resize)
- The displayable model (model)
- Export, background loading and folder exploring (export, loader, explorer)

Usage:
    from dmi_viewer.dmi_engine import load_parsed_dmi, Resizing

    dmi = load_parsed_dmi("/path/to/icon.dmi", Resizing.resized(64, 64))
    frame = dmi.get_frame("idle", Direction.SOUTH, 0)

The Qt-based DmiLoader lives in ``dmi_viewer.dmi_engine.loader`` and is not
imported here.
"""

from .animation import Animated, AnimatedFrame, LoopMode, animate
from .decoder import RawIcon, RawState, decode, load_dmi
from .directions import Direction
from .model import DirImage, ParsedDMI, ParsedState, extract_frames, load_parsed_dmi, parse_dmi_bytes
from .resize import ResizeFilter, Resizing, resolve_resizing

__all__ = [
    "Animated",
    "AnimatedFrame",
    "DirImage",
    "Direction",
    "LoopMode",
    "ParsedDMI",
    "ParsedState",
    "RawIcon",
    "RawState",
    "ResizeFilter",
    "Resizing",
    "animate",
    "decode",
    "extract_frames",
    "load_dmi",
    "load_parsed_dmi",
    "parse_dmi_bytes",
    "resolve_resizing",
]
