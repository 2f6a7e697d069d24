"""Animation synthesis: DMI frames + delays + loop mode -> animated GIF.

DMI delays are measured in ticks (1 tick = 0.1 s); the GIF container stores
milliseconds (rounded to centiseconds on disk).
"""

from __future__ import annotations

import io
import math
import struct
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from PIL import GifImagePlugin, Image, ImageSequence, UnidentifiedImageError

from dmi_viewer.errors import EncodeError
from dmi_viewer.logger import get_logger

_logger = get_logger("animation")

DEFAULT_TICK = 1.0
MS_PER_TICK = 100
GIF_INFINITE_LOOP = 0
GIF_MAX_LOOP = 0xFFFF
MAX_GIF_COLORS = 255
TRANSPARENT_INDEX = 255
ALPHA_CUTOFF = 128


@dataclass(frozen=True)
class LoopMode:
    """Either infinite repetition (``count is None``) or a finite repeat count >= 1."""

    count: int | None = None

    @classmethod
    def infinite(cls) -> LoopMode:
        return cls(None)

    @classmethod
    def finite(cls, count: int) -> LoopMode:
        if int(count) < 1:
            raise ValueError(f"finite loop count must be >= 1, got {count}")
        return cls(int(count))

    @classmethod
    def from_dmi(cls, loop: int) -> LoopMode:
        """DMI ``loop = 0`` (or absent) loops forever, ``loop = n`` plays n times."""
        return cls.infinite() if int(loop) <= 0 else cls.finite(loop)

    @property
    def is_infinite(self) -> bool:
        return self.count is None

    @property
    def gif_loop(self) -> int:
        return GIF_INFINITE_LOOP if self.count is None else self.count

    def __str__(self) -> str:
        return "Infinite" if self.count is None else f"FiniteCount({self.count})"


@dataclass(frozen=True)
class AnimatedFrame:
    image: Image.Image
    duration_ms: int


@dataclass
class Animated:
    """Encoded GIF bytes plus the playable frames decoded from those same bytes."""

    data: bytes
    frames: list[AnimatedFrame]
    loop: int | None

    @classmethod
    def from_bytes(cls, data: bytes) -> Animated:
        try:
            with Image.open(io.BytesIO(data)) as im:
                loop = im.info.get("loop")
                frames = [
                    AnimatedFrame(frame.convert("RGBA"), int(frame.info.get("duration", 0)))
                    for frame in ImageSequence.Iterator(im)
                ]
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise EncodeError(f"encoded animation is not decodable: {exc}") from exc
        if not frames:
            raise EncodeError("encoded animation has no frames")
        return cls(data=bytes(data), frames=frames, loop=loop)

    @property
    def durations(self) -> list[int]:
        return [f.duration_ms for f in self.frames]

    @property
    def size(self) -> tuple[int, int]:
        return self.frames[0].image.size

    def __len__(self) -> int:
        return len(self.frames)


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def frame_durations(frame_count: int, delay: Sequence[float] | None) -> list[int]:
    """Per-frame durations in milliseconds; missing delay entries default to one tick."""
    ticks = list(delay or [])
    out: list[int] = []
    for i in range(frame_count):
        tick = ticks[i] if i < len(ticks) else DEFAULT_TICK
        out.append(max(0, _round_half_away(tick * MS_PER_TICK)))
    return out


def _palettize(image: Image.Image) -> Image.Image:
    """RGBA frame -> "P" frame with its own palette; index 255 is transparent."""
    rgba = np.asarray(image.convert("RGBA"))
    opaque = rgba[..., 3] >= ALPHA_CUTOFF
    rgb = np.ascontiguousarray(rgba[..., :3])
    indices = np.full(opaque.shape, TRANSPARENT_INDEX, dtype=np.uint8)
    palette: list[int] = []
    if opaque.any():
        colors, inverse = np.unique(rgb[opaque], axis=0, return_inverse=True)
        if len(colors) <= MAX_GIF_COLORS:
            indices[opaque] = inverse.reshape(-1).astype(np.uint8)
            palette = colors.astype(np.uint8).reshape(-1).tolist()
        else:
            quantized = Image.fromarray(rgb).quantize(colors=MAX_GIF_COLORS)
            indices[opaque] = np.asarray(quantized, dtype=np.uint8)[opaque]
            palette = (quantized.getpalette() or [])[: MAX_GIF_COLORS * 3]
    palette += [0] * (768 - len(palette))
    frame = Image.frombytes("P", (rgba.shape[1], rgba.shape[0]), indices.tobytes())
    frame.putpalette(palette)
    return frame


def animate(frames: Sequence[Image.Image], loop: LoopMode, delay: Sequence[float] | None) -> bytes:
    """Encode frames into an animated GIF, one GIF frame per input frame.

    The stream is assembled block by block: Pillow's ``save_all`` folds
    identical consecutive frames together, which would change both the frame
    count and the per-frame timing.

    Raises:
        EncodeError: when there are no frames or the encoder rejects the input.
    """
    if not frames:
        raise EncodeError("no frames to encode")
    if loop.gif_loop > GIF_MAX_LOOP:
        raise EncodeError(f"loop count {loop.gif_loop} does not fit the GIF repeat field")

    durations = frame_durations(len(frames), delay)
    buf = io.BytesIO()
    try:
        palettized = [_palettize(f) for f in frames]
        header, _ = GifImagePlugin.getheader(
            palettized[0], info={"loop": loop.gif_loop, "transparency": TRANSPARENT_INDEX}
        )
        for block in header:
            buf.write(block)
        for frame, duration in zip(palettized, durations):
            for block in GifImagePlugin.getdata(
                frame,
                duration=duration,
                disposal=2,
                transparency=TRANSPARENT_INDEX,
                include_color_table=True,
            ):
                buf.write(block)
        buf.write(b";")
    except (OSError, ValueError, struct.error) as exc:
        raise EncodeError(f"GIF encoding failed: {exc}") from exc
    return buf.getvalue()


def synthesize(
    frames: Sequence[Image.Image],
    loop: LoopMode,
    delay: Sequence[float] | None,
    *,
    state: str | None = None,
    direction: object = None,
) -> Animated | None:
    """animate() + decode, returning None (and logging) instead of raising."""
    try:
        animated = Animated.from_bytes(animate(frames, loop, delay))
        if len(animated) != len(frames):
            raise EncodeError(f"encoded {len(animated)} frames, expected {len(frames)}")
        return animated
    except EncodeError as exc:
        exc.state = state
        exc.direction = direction
        _logger.warning("animation skipped: %s", exc.message())
        return None
