"""Export helpers for "copy/save" actions.

Still frames are written as PNG; animations are written as their already
encoded GIF bytes. Files are written to a temporary sibling and renamed into
place so a failed export never leaves a half-written destination.
"""

from __future__ import annotations

import contextlib
import io
import os
import tempfile
from pathlib import Path

from PIL import Image

from dmi_viewer.errors import ExportError
from dmi_viewer.logger import get_logger
from dmi_viewer.path_utils import abs_path

from .animation import Animated
from .decoder import load_dmi
from .directions import Direction
from .model import ParsedDMI

_logger = get_logger("export")


def encode_frame_to_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    try:
        image.save(buf, format="PNG")
    except (OSError, ValueError) as exc:
        raise ExportError(f"PNG encoding failed: {exc}") from exc
    return buf.getvalue()


def write_bytes_atomic(data: bytes, dest: str | os.PathLike[str]) -> Path:
    """Write ``data`` to ``dest`` via a temp file in the same directory."""
    target = abs_path(dest)
    tmp_name: str | None = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, target)
    except OSError as exc:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        _logger.error("export to %s failed: %s", target, exc)
        raise ExportError(f"cannot write file: {exc.strerror or exc}", path=str(target)) from exc
    _logger.debug("exported %d bytes to %s", len(data), target)
    return target


def save_frame(image: Image.Image, dest: str | os.PathLike[str]) -> Path:
    return write_bytes_atomic(encode_frame_to_png(image), dest)


def save_animated(animated: Animated, dest: str | os.PathLike[str]) -> Path:
    return write_bytes_atomic(animated.data, dest)


def frame_bytes(
    dmi: ParsedDMI, state: str, direction: Direction | int, frame: int, original: bool = False
) -> bytes | None:
    """PNG bytes of one frame (displayed or original), or None when it does not exist."""
    if original:
        image = dmi.get_original_frame(state, direction, frame)
    else:
        image = dmi.get_frame(state, direction, frame)
    return None if image is None else encode_frame_to_png(image)


def animated_bytes(dmi: ParsedDMI, state: str, direction: Direction | int, original: bool = False) -> bytes | None:
    """GIF bytes of one direction's animation (displayed or original), or None."""
    animated = dmi.get_original_animated(state, direction) if original else dmi.get_animated(state, direction)
    return None if animated is None else animated.data


def extract_state_image(
    input_path: str | os.PathLike[str], state_name: str, output_path: str | os.PathLike[str]
) -> bool:
    """Save the first image of ``state_name`` from a DMI file as PNG.

    When several states share the name the last one wins. Returns False when the
    state does not exist or has no image.

    Raises:
        DmiDecodeError: when the DMI cannot be loaded.
        ExportError: when the output cannot be written.
    """
    raw = load_dmi(input_path)
    image: Image.Image | None = None
    found = False
    for state in raw.states:
        if state.name == state_name:
            found = True
            image = state.images[0] if state.images else None
    if image is None:
        _logger.info(
            "nothing to extract from %s: state %r %s", input_path, state_name, "has no image" if found else "not found"
        )
        return False
    save_frame(image, output_path)
    return True
