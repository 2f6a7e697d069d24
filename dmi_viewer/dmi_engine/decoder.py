"""Raw DMI decoding: PNG bytes -> RawIcon.

The sheet is a grid of ``width`` x ``height`` icons read left-to-right,
top-to-bottom. States consume ``dirs * frames`` consecutive icons in file
order; within a state icons are frame-major (all directions of frame 0, then
all directions of frame 1, ...).

A sheet that holds fewer icons than the metadata declares is tolerated: the
affected states get a shorter image list and the frame extractor truncates.
"""

from __future__ import annotations

import io
import os
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from dmi_viewer.errors import DmiDecodeError
from dmi_viewer.logger import get_logger

from .animation import LoopMode
from .metadata import DmiMetadata, StateMeta, parse_metadata

_logger = get_logger("decoder")

DESCRIPTION_KEY = "Description"
DMI_SUFFIX = ".dmi"


@dataclass
class RawState:
    name: str
    dirs: int
    frames: int
    delay: list[float] | None
    loop: LoopMode
    rewind: bool
    movement: bool
    hotspots: list[tuple[int, int, int]] = field(default_factory=list)
    images: list[Image.Image] = field(default_factory=list)


@dataclass
class RawIcon:
    width: int
    height: int
    states: list[RawState] = field(default_factory=list)


def _open_png(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        # ValueError covers text chunks past PngImagePlugin.MAX_TEXT_CHUNK.
        raise DmiDecodeError(f"not a readable image: {exc}") from exc
    if image.format != "PNG":
        raise DmiDecodeError(f"expected a PNG container, got {image.format}")
    return image


def _description(image: Image.Image) -> str:
    text = getattr(image, "text", None) or {}
    value = text.get(DESCRIPTION_KEY) or image.info.get(DESCRIPTION_KEY)
    if not value:
        raise DmiDecodeError("PNG has no DMI Description text chunk")
    return str(value)


def read_metadata(data: bytes) -> DmiMetadata:
    """Parse only the metadata block (no pixel slicing)."""
    with _open_png(data) as image:
        return parse_metadata(_description(image))


def _slice_sheet(sheet: Image.Image, meta: DmiMetadata) -> list[Image.Image]:
    cols = sheet.width // meta.width
    rows = sheet.height // meta.height
    icons: list[Image.Image] = []
    for row in range(rows):
        for col in range(cols):
            left = col * meta.width
            top = row * meta.height
            icons.append(sheet.crop((left, top, left + meta.width, top + meta.height)))
    return icons


def _raw_state(meta: StateMeta, images: list[Image.Image]) -> RawState:
    return RawState(
        name=meta.name,
        dirs=meta.dirs,
        frames=meta.frames,
        delay=list(meta.delay) if meta.delay is not None else None,
        loop=LoopMode.from_dmi(meta.loop),
        rewind=meta.rewind,
        movement=meta.movement,
        hotspots=list(meta.hotspots),
        images=images,
    )


def decode(data: bytes) -> RawIcon:
    """Decode DMI bytes.

    Raises:
        DmiDecodeError: when the bytes are not a PNG or the metadata is absent/malformed.
    """
    with _open_png(data) as image:
        meta = parse_metadata(_description(image))
        sheet = image.convert("RGBA")

    icons = _slice_sheet(sheet, meta)
    states: list[RawState] = []
    cursor = 0
    for state_meta in meta.states:
        wanted = state_meta.image_count
        images = icons[cursor : cursor + wanted]
        if len(images) < wanted:
            _logger.warning(
                "state %r declares %d images but the sheet only holds %d",
                state_meta.name,
                wanted,
                len(images),
            )
        states.append(_raw_state(state_meta, images))
        cursor += wanted

    _logger.debug(
        "decoded DMI %dx%d: %d states, %d icons in sheet", meta.width, meta.height, len(states), len(icons)
    )
    return RawIcon(width=meta.width, height=meta.height, states=states)


def read_dmi_bytes(path: str | os.PathLike[str]) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise DmiDecodeError(f"cannot read file: {exc.strerror or exc}", path=str(path)) from exc


def load_dmi(path: str | os.PathLike[str]) -> RawIcon:
    """Read and decode a DMI file; decode errors carry the file path."""
    data = read_dmi_bytes(path)
    try:
        return decode(data)
    except DmiDecodeError as exc:
        exc.path = str(path)
        raise
