"""Resize policy and frame resampling.

Resizing is upscale-only: a request that does not exceed the original size in
either dimension resolves to ``Resizing.original()``.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np
from PIL import Image

from dmi_viewer.errors import EncodeError
from dmi_viewer.logger import get_logger

_logger = get_logger("resize")

GAUSSIAN_SIGMA = 0.5
GAUSSIAN_SUPPORT = 3.0


class ResizeFilter(Enum):
    NEAREST = "nearest"
    TRIANGLE = "triangle"
    CATMULL_ROM = "catmull_rom"
    GAUSSIAN = "gaussian"
    LANCZOS3 = "lanczos3"

    @classmethod
    def from_name(cls, name: str | ResizeFilter | None) -> ResizeFilter:
        """Lenient lookup by value or member name; unknown names fall back to NEAREST."""
        if isinstance(name, ResizeFilter):
            return name
        key = str(name or "").strip().lower().replace("-", "_").replace(" ", "_")
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        _logger.debug("unknown resize filter %r, using nearest", name)
        return cls.NEAREST

    @property
    def label(self) -> str:
        return _FILTER_LABELS[self]

    def __str__(self) -> str:
        return self.label


_FILTER_LABELS = {
    ResizeFilter.NEAREST: "Nearest Neighbor",
    ResizeFilter.TRIANGLE: "Linear Filter",
    ResizeFilter.CATMULL_ROM: "Cubic Filter",
    ResizeFilter.GAUSSIAN: "Gaussian Filter",
    ResizeFilter.LANCZOS3: "Lanczos with window 3",
}

# Pillow's BICUBIC uses a = -0.5, which is the Catmull-Rom spline.
_PIL_RESAMPLE = {
    ResizeFilter.NEAREST: Image.Resampling.NEAREST,
    ResizeFilter.TRIANGLE: Image.Resampling.BILINEAR,
    ResizeFilter.CATMULL_ROM: Image.Resampling.BICUBIC,
    ResizeFilter.LANCZOS3: Image.Resampling.LANCZOS,
}


@dataclass(frozen=True)
class Resizing:
    """A size request: original size (both fields None) or a target box."""

    height: int | None = None
    width: int | None = None

    @classmethod
    def original(cls) -> Resizing:
        return cls()

    @classmethod
    def resized(cls, height: int, width: int) -> Resizing:
        if int(height) < 1 or int(width) < 1:
            raise ValueError(f"resize target must be positive, got {height}x{width}")
        return cls(int(height), int(width))

    @property
    def is_original(self) -> bool:
        return self.height is None or self.width is None

    def __str__(self) -> str:
        return "Original" if self.is_original else f"Resized(height={self.height}, width={self.width})"


def resolve_resizing(request: Resizing, original_height: int, original_width: int) -> Resizing:
    """Clamp a size request against the original size.

    A dimension that does not grow is pinned to the original; when neither grows
    the request collapses to ``Resizing.original()``.
    """
    if request.is_original:
        return Resizing.original()
    height, width = int(request.height), int(request.width)  # type: ignore[arg-type]
    grows_h = height > original_height
    grows_w = width > original_width
    if grows_h and grows_w:
        return Resizing(height, width)
    if grows_h:
        return Resizing(height, original_width)
    if grows_w:
        return Resizing(original_height, width)
    return Resizing.original()


def displayed_size(effective: Resizing, original_height: int, original_width: int) -> tuple[int, int]:
    """(height, width) presented for an already-resolved request."""
    if effective.is_original:
        return original_height, original_width
    return int(effective.height), int(effective.width)  # type: ignore[arg-type]


def _gaussian(x: np.ndarray) -> np.ndarray:
    return np.exp(-(x**2) / (2.0 * GAUSSIAN_SIGMA**2)) / (math.sqrt(2.0 * math.pi) * GAUSSIAN_SIGMA)


def _weights(src: int, dst: int, kernel: Callable[[np.ndarray], np.ndarray], support: float) -> np.ndarray:
    """Row-normalized (dst, src) sampling matrix for one axis."""
    ratio = src / dst
    sratio = max(ratio, 1.0)
    src_support = support * sratio
    matrix = np.zeros((dst, src), dtype=np.float64)
    for out in range(dst):
        center = (out + 0.5) * ratio
        left = min(max(math.floor(center - src_support), 0), src - 1)
        right = min(max(math.ceil(center + src_support), left + 1), src)
        idx = np.arange(left, right, dtype=np.float64)
        w = kernel((idx - (center - 0.5)) / sratio)
        total = float(w.sum())
        if total > 0:
            matrix[out, left:right] = w / total
        else:
            matrix[out, min(int(center), src - 1)] = 1.0
    return matrix


def _resize_gaussian(image: Image.Image, height: int, width: int) -> Image.Image:
    arr = np.asarray(image.convert("RGBA"), dtype=np.float64)
    src_h, src_w = arr.shape[:2]
    wx = _weights(src_w, width, _gaussian, GAUSSIAN_SUPPORT)
    wy = _weights(src_h, height, _gaussian, GAUSSIAN_SUPPORT)
    tmp = np.einsum("ow,hwc->hoc", wx, arr)
    out = np.einsum("oh,hwc->owc", wy, tmp)
    out = np.clip(np.rint(out), 0, 255).astype(np.uint8)
    return Image.fromarray(out, "RGBA")


def resize_frame(image: Image.Image, height: int, width: int, filter_type: ResizeFilter) -> Image.Image:
    """Stretch one frame to exactly ``width`` x ``height`` (aspect ratio is not kept)."""
    if filter_type is ResizeFilter.GAUSSIAN:
        return _resize_gaussian(image, height, width)
    return image.convert("RGBA").resize((width, height), resample=_PIL_RESAMPLE[filter_type])


def resize_frames(
    frames: Sequence[Image.Image], height: int, width: int, filter_type: ResizeFilter
) -> list[Image.Image]:
    """Resize every frame independently.

    Raises:
        EncodeError: when the resampling backend rejects a frame.
    """
    try:
        return [resize_frame(f, height, width, filter_type) for f in frames]
    except (ValueError, OSError, MemoryError) as exc:
        raise EncodeError(f"resampling to {width}x{height} with {filter_type.label} failed: {exc}") from exc
