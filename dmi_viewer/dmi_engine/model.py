"""Displayable DMI model: ParsedDMI -> ParsedState -> DirImage.

Original frames and their animation are kept for the lifetime of the model;
resizing only replaces the ``resized_*`` derivatives.
"""

from __future__ import annotations

import os
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from PIL import Image

from dmi_viewer.errors import DmiError, EncodeError, FrameBoundsExceeded
from dmi_viewer.logger import get_logger

from .animation import Animated, LoopMode, synthesize
from .decoder import RawIcon, RawState, decode, load_dmi
from .directions import Direction, directions_for
from .resize import ResizeFilter, Resizing, displayed_size, resize_frames, resolve_resizing

_logger = get_logger("model")


def extract_frames(images: Sequence[Image.Image], dirs: int, frames: int, direction: Direction | int) -> list[Image.Image]:
    """Collect the frames of one direction from a frame-major image list.

    Frame ``f`` lives at ``direction + f * dirs``. Extraction stops at the first
    index past the end of ``images``.
    """
    out: list[Image.Image] = []
    for frame in range(frames):
        index = int(direction) + frame * dirs
        if index >= len(images):
            break
        out.append(images[index].copy())
    return out


def _as_direction(direction: Direction | int) -> Direction | None:
    try:
        return Direction(int(direction))
    except ValueError:
        return None


def _pick(frames: Sequence[Image.Image], index: int) -> Image.Image | None:
    if 0 <= index < len(frames):
        return frames[index]
    return None


@dataclass
class DirImage:
    original_frames: list[Image.Image] = field(default_factory=list)
    resized_frames: list[Image.Image] | None = None
    original_animated: Animated | None = None
    resized_animated: Animated | None = None

    @classmethod
    def from_frames(
        cls,
        frames: list[Image.Image],
        loop: LoopMode,
        delay: Sequence[float] | None,
        resizing: Resizing,
        filter_type: ResizeFilter,
        *,
        state: str | None = None,
        direction: Direction | None = None,
    ) -> DirImage:
        if not frames:
            return cls()
        dir_image = cls(
            original_frames=frames,
            original_animated=synthesize(frames, loop, delay, state=state, direction=direction),
        )
        dir_image.resize(loop, delay, resizing, filter_type, state=state, direction=direction)
        return dir_image

    @property
    def frame_count(self) -> int:
        return len(self.original_frames)

    def clear_resized(self) -> None:
        self.resized_frames = None
        self.resized_animated = None

    def resize(
        self,
        loop: LoopMode,
        delay: Sequence[float] | None,
        resizing: Resizing,
        filter_type: ResizeFilter,
        *,
        state: str | None = None,
        direction: Direction | None = None,
    ) -> None:
        """Rebuild the resized derivative for an already-resolved request."""
        if resizing.is_original or not self.original_frames:
            self.clear_resized()
            return
        try:
            frames = resize_frames(self.original_frames, int(resizing.height), int(resizing.width), filter_type)  # type: ignore[arg-type]
        except EncodeError as exc:
            exc.state = state
            exc.direction = direction
            _logger.warning("resize skipped: %s", exc.message())
            self.clear_resized()
            return
        self.resized_frames = frames
        self.resized_animated = synthesize(frames, loop, delay, state=state, direction=direction)

    def get_frame(self, frame: int) -> Image.Image | None:
        if self.resized_frames is not None:
            return _pick(self.resized_frames, frame)
        return _pick(self.original_frames, frame)

    def get_original_frame(self, frame: int) -> Image.Image | None:
        return _pick(self.original_frames, frame)

    def get_animated(self) -> Animated | None:
        if self.resized_animated is not None:
            return self.resized_animated
        return self.original_animated

    def get_original_animated(self) -> Animated | None:
        return self.original_animated


@dataclass
class ParsedState:
    name: str
    delay: list[float] | None = None
    loop: LoopMode = field(default_factory=LoopMode.infinite)
    rewind: bool = False
    frames: int = 1
    movement: bool = False
    hotspots: list[tuple[int, int, int]] = field(default_factory=list)
    dirs: dict[Direction, DirImage] = field(default_factory=dict)
    issues: list[DmiError] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: RawState, resizing: Resizing, filter_type: ResizeFilter) -> ParsedState:
        state = cls(
            name=raw.name,
            delay=raw.delay,
            loop=raw.loop,
            rewind=raw.rewind,
            frames=raw.frames,
            movement=raw.movement,
            hotspots=list(raw.hotspots),
        )
        for direction in directions_for(raw.dirs):
            frames = extract_frames(raw.images, raw.dirs, raw.frames, direction)
            if len(frames) < raw.frames:
                issue = FrameBoundsExceeded(
                    f"found {len(frames)} of {raw.frames} frames",
                    expected=raw.frames,
                    found=len(frames),
                    state=raw.name,
                    direction=direction,
                )
                _logger.warning("frames truncated: %s", issue.message())
                state.issues.append(issue)
            state.dirs[direction] = DirImage.from_frames(
                frames, raw.loop, raw.delay, resizing, filter_type, state=raw.name, direction=direction
            )
        return state

    def resize(self, resizing: Resizing, filter_type: ResizeFilter) -> None:
        for direction, dir_image in self.dirs.items():
            dir_image.resize(self.loop, self.delay, resizing, filter_type, state=self.name, direction=direction)

    def _dir(self, direction: Direction | int) -> DirImage | None:
        key = _as_direction(direction)
        return None if key is None else self.dirs.get(key)

    def get_frame(self, direction: Direction | int, frame: int) -> Image.Image | None:
        dir_image = self._dir(direction)
        return None if dir_image is None else dir_image.get_frame(frame)

    def get_original_frame(self, direction: Direction | int, frame: int) -> Image.Image | None:
        dir_image = self._dir(direction)
        return None if dir_image is None else dir_image.get_original_frame(frame)

    def get_animated(self, direction: Direction | int) -> Animated | None:
        dir_image = self._dir(direction)
        return None if dir_image is None else dir_image.get_animated()

    def get_original_animated(self, direction: Direction | int) -> Animated | None:
        dir_image = self._dir(direction)
        return None if dir_image is None else dir_image.get_original_animated()


@dataclass
class ParsedDMI:
    original_height: int = 0
    original_width: int = 0
    displayed_height: int = 0
    displayed_width: int = 0
    states: dict[str, ParsedState] = field(default_factory=dict)
    resizing: Resizing = field(default_factory=Resizing.original)
    filter_type: ResizeFilter = ResizeFilter.NEAREST

    @classmethod
    def from_raw(
        cls,
        raw: RawIcon,
        resizing: Resizing | None = None,
        filter_type: ResizeFilter = ResizeFilter.NEAREST,
    ) -> ParsedDMI:
        effective = resolve_resizing(resizing or Resizing.original(), raw.height, raw.width)
        height, width = displayed_size(effective, raw.height, raw.width)
        dmi = cls(
            original_height=raw.height,
            original_width=raw.width,
            displayed_height=height,
            displayed_width=width,
            resizing=effective,
            filter_type=filter_type,
        )
        for raw_state in raw.states:
            if raw_state.name in dmi.states:
                _logger.debug("duplicate state name %r, keeping the last one", raw_state.name)
            dmi.states[raw_state.name] = ParsedState.from_raw(raw_state, effective, filter_type)
        return dmi

    def resize(self, resizing: Resizing, filter_type: ResizeFilter = ResizeFilter.NEAREST) -> Resizing:
        """Apply a size request in place and return the effective (clamped) request."""
        effective = resolve_resizing(resizing, self.original_height, self.original_width)
        self.displayed_height, self.displayed_width = displayed_size(
            effective, self.original_height, self.original_width
        )
        self.resizing = effective
        self.filter_type = filter_type
        for state in self.states.values():
            state.resize(effective, filter_type)
        _logger.debug("resized to %s with %s (requested %s)", effective, filter_type.label, resizing)
        return effective

    @property
    def issues(self) -> list[DmiError]:
        return [issue for state in self.states.values() for issue in state.issues]

    def state_names(self) -> list[str]:
        return list(self.states)

    def get_state(self, state: str) -> ParsedState | None:
        return self.states.get(state)

    def get_frame(self, state: str, direction: Direction | int, frame: int) -> Image.Image | None:
        parsed = self.states.get(state)
        return None if parsed is None else parsed.get_frame(direction, frame)

    def get_original_frame(self, state: str, direction: Direction | int, frame: int) -> Image.Image | None:
        parsed = self.states.get(state)
        return None if parsed is None else parsed.get_original_frame(direction, frame)

    def get_animated(self, state: str, direction: Direction | int) -> Animated | None:
        parsed = self.states.get(state)
        return None if parsed is None else parsed.get_animated(direction)

    def get_original_animated(self, state: str, direction: Direction | int) -> Animated | None:
        parsed = self.states.get(state)
        return None if parsed is None else parsed.get_original_animated(direction)


def parse_dmi_bytes(
    data: bytes, resizing: Resizing | None = None, filter_type: ResizeFilter = ResizeFilter.NEAREST
) -> ParsedDMI:
    return ParsedDMI.from_raw(decode(data), resizing, filter_type)


def load_parsed_dmi(
    path: str | os.PathLike[str],
    resizing: Resizing | None = None,
    filter_type: ResizeFilter = ResizeFilter.NEAREST,
) -> ParsedDMI:
    """Load a DMI file and build the displayable model.

    Raises:
        DmiDecodeError: when the file cannot be read or decoded.
    """
    start = time.perf_counter()
    dmi = ParsedDMI.from_raw(load_dmi(path), resizing, filter_type)
    for issue in dmi.issues:
        issue.path = str(path)
    _logger.debug("DMI %s parsed in %.1fms", path, (time.perf_counter() - start) * 1000.0)
    return dmi
