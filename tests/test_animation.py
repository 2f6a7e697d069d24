from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from dmi_viewer.dmi_engine.animation import Animated, LoopMode, animate, frame_durations, synthesize
from dmi_viewer.errors import EncodeError
from conftest import icon_color


def test_missing_delay_defaults_to_one_tick(solid_frames) -> None:
    animated = Animated.from_bytes(animate(solid_frames(3), LoopMode.infinite(), None))
    assert animated.durations == [100, 100, 100]


def test_short_delay_list_is_padded_with_default(solid_frames) -> None:
    animated = Animated.from_bytes(animate(solid_frames(3), LoopMode.infinite(), [2.0, 0.5]))
    assert animated.durations == [200, 50, 100]


def test_frame_durations_rounding() -> None:
    assert frame_durations(4, [0.25, 1.5, 0.125, -1]) == [25, 150, 13, 0]
    assert frame_durations(2, []) == [100, 100]


def test_loop_mode_mapping(solid_frames) -> None:
    frames = solid_frames(2)
    assert Animated.from_bytes(animate(frames, LoopMode.infinite(), None)).loop == 0
    assert Animated.from_bytes(animate(frames, LoopMode.finite(3), None)).loop == 3


def test_loop_mode_from_dmi() -> None:
    assert LoopMode.from_dmi(0).is_infinite
    assert LoopMode.from_dmi(1) == LoopMode.finite(1)
    assert str(LoopMode.from_dmi(4)) == "FiniteCount(4)"
    with pytest.raises(ValueError):
        LoopMode.finite(0)


def test_decoded_frames_come_from_the_same_bytes(solid_frames) -> None:
    data = animate(solid_frames(2), LoopMode.infinite(), [1, 1])
    animated = Animated.from_bytes(data)
    assert animated.data == data
    assert len(animated) == 2
    assert animated.size == (8, 8)
    assert animated.frames[0].image.getpixel((0, 0)) == icon_color(0)
    assert animated.frames[1].image.getpixel((7, 7)) == icon_color(1)


def test_encoding_is_deterministic(solid_frames) -> None:
    frames = solid_frames(3)
    assert animate(frames, LoopMode.finite(2), [1, 2, 3]) == animate(frames, LoopMode.finite(2), [1, 2, 3])


def test_zero_frames_fail_to_encode() -> None:
    with pytest.raises(EncodeError):
        animate([], LoopMode.infinite(), None)


def test_oversized_loop_count_fails_to_encode(solid_frames) -> None:
    with pytest.raises(EncodeError):
        animate(solid_frames(1), LoopMode.finite(70000), None)


def test_synthesize_returns_none_on_failure() -> None:
    assert synthesize([], LoopMode.infinite(), None, state="idle") is None


def test_transparent_frames_encode() -> None:
    frames = [Image.new("RGBA", (4, 4), (0, 0, 0, 0)), Image.new("RGBA", (4, 4), (255, 0, 0, 255))]
    animated = Animated.from_bytes(animate(frames, LoopMode.infinite(), None))
    assert len(animated) == 2
    assert animated.frames[1].image.getpixel((0, 0)) == (255, 0, 0, 255)


def test_identical_frames_are_not_folded_together() -> None:
    frames = [Image.new("RGBA", (8, 8), (10, 20, 30, 255)) for _ in range(3)]

    animated = Animated.from_bytes(animate(frames, LoopMode.infinite(), None))
    assert animated.durations == [100, 100, 100]

    animated = Animated.from_bytes(animate(frames, LoopMode.infinite(), [2.0, 0.5]))
    assert animated.durations == [200, 50, 100]
    assert all(f.image.getpixel((3, 3)) == (10, 20, 30, 255) for f in animated.frames)


def test_synthesize_keeps_one_frame_per_input() -> None:
    frame = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    animated = synthesize([frame, frame.copy()], LoopMode.finite(1), None)
    assert animated is not None
    assert len(animated) == 2
    assert animated.frames[0].image.getpixel((0, 0))[3] == 0


def test_frame_with_more_than_255_colors_is_quantized() -> None:
    x, y = np.meshgrid(np.arange(32, dtype=np.uint8) * 8, np.arange(32, dtype=np.uint8) * 8)
    pixels = np.dstack([x, y, (x // 2 + y // 2), np.full_like(x, 255)])
    frame = Image.fromarray(pixels.astype(np.uint8))

    animated = Animated.from_bytes(animate([frame, frame], LoopMode.infinite(), None))
    assert len(animated) == 2
    assert animated.size == (32, 32)
