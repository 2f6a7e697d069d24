"""Pytest configuration.

Provides in-memory DMI builders so tests never depend on binary fixtures, and
creates a single QCoreApplication for the session when PySide6 is available
(the background loader uses Qt signals).
"""

from __future__ import annotations

import io
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

_APP: Any | None = None


def pytest_configure(config) -> None:  # noqa: ARG001
    """Ensure a QCoreApplication exists before collecting/running tests."""

    # Import lazily so non-Qt environments can still import this conftest.
    try:
        from PySide6.QtCore import QCoreApplication
    except ImportError:
        return

    global _APP

    app = QCoreApplication.instance()
    # Keep a strong ref so it isn't GC'd mid-session.
    _APP = QCoreApplication([]) if app is None else app


@dataclass
class StateSpec:
    name: str
    dirs: int = 1
    frames: int = 1
    delay: Sequence[float] | None = None
    loop: int = 0
    rewind: bool = False
    movement: bool = False
    extra: list[str] = field(default_factory=list)


def icon_color(index: int) -> tuple[int, int, int, int]:
    """Distinct opaque color for the icon at ``index`` in the sheet."""
    return ((index * 40 + 10) % 256, (255 - index * 25) % 256, (index * 67 + 90) % 256, 255)


def description_for(states: Sequence[StateSpec], width: int, height: int) -> str:
    lines = ["# BEGIN DMI", "version = 4.0", f"\twidth = {width}", f"\theight = {height}"]
    for s in states:
        lines.append(f'state = "{s.name}"')
        lines.append(f"\tdirs = {s.dirs}")
        lines.append(f"\tframes = {s.frames}")
        if s.delay is not None:
            lines.append("\tdelay = " + ",".join(str(d) for d in s.delay))
        if s.loop:
            lines.append(f"\tloop = {s.loop}")
        if s.rewind:
            lines.append("\trewind = 1")
        if s.movement:
            lines.append("\tmovement = 1")
        lines.extend(f"\t{x}" for x in s.extra)
    lines.append("# END DMI")
    return "\n".join(lines) + "\n"


def build_dmi(
    states: Sequence[StateSpec],
    width: int = 32,
    height: int = 32,
    image_count: int | None = None,
    description: str | None = None,
    color: tuple[int, int, int, int] | None = None,
) -> bytes:
    """PNG bytes of a DMI sheet; ``image_count`` overrides how many icons are drawn.

    Every icon gets its own color unless ``color`` paints them all the same.
    """
    total = sum(s.dirs * s.frames for s in states) if image_count is None else image_count
    sheet = Image.new("RGBA", (max(1, total) * width, height), (0, 0, 0, 0))
    for i in range(total):
        sheet.paste(Image.new("RGBA", (width, height), color or icon_color(i)), (i * width, 0))
    info = PngInfo()
    info.add_text("Description", description or description_for(states, width, height), zip=True)
    buf = io.BytesIO()
    sheet.save(buf, format="PNG", pnginfo=info)
    return buf.getvalue()


@pytest.fixture
def dmi_bytes() -> Callable[..., bytes]:
    return build_dmi


@pytest.fixture
def write_dmi(tmp_path) -> Callable[..., Any]:
    def _write(name: str, states: Sequence[StateSpec], **kwargs: Any):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(build_dmi(states, **kwargs))
        return path

    return _write


@pytest.fixture
def solid_frames() -> Callable[[int, tuple[int, int]], list[Image.Image]]:
    def _make(count: int, size: tuple[int, int] = (8, 8)) -> list[Image.Image]:
        return [Image.new("RGBA", size, icon_color(i)) for i in range(count)]

    return _make


@pytest.fixture
def state_spec() -> type[StateSpec]:
    return StateSpec
