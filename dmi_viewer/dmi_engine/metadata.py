"""Parser for the DMI description block embedded in the PNG text chunk.

The block looks like::

    # BEGIN DMI
    version = 4.0
    	width = 32
    	height = 32
    state = "walk"
    	dirs = 4
    	frames = 2
    	delay = 1,1
    # END DMI

Entries are separated by newlines (a ``;`` outside of a quoted string also ends
an entry). Keys that belong to the header come before the first ``state`` key;
everything after a ``state`` key describes that state.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from dmi_viewer.errors import DmiDecodeError
from dmi_viewer.logger import get_logger

from .directions import VALID_DIR_COUNTS

_logger = get_logger("metadata")

BEGIN_MARKER = "# BEGIN DMI"
END_MARKER = "# END DMI"
SUPPORTED_VERSION = "4.0"
DEFAULT_ICON_SIZE = 32
_HOTSPOT_PARTS = 3
_QUOTED_MIN_LEN = 2


@dataclass
class StateMeta:
    name: str
    dirs: int = 1
    frames: int = 1
    delay: list[float] | None = None
    loop: int = 0
    rewind: bool = False
    movement: bool = False
    hotspots: list[tuple[int, int, int]] = field(default_factory=list)

    @property
    def image_count(self) -> int:
        return self.dirs * self.frames


@dataclass
class DmiMetadata:
    version: str
    width: int = DEFAULT_ICON_SIZE
    height: int = DEFAULT_ICON_SIZE
    states: list[StateMeta] = field(default_factory=list)

    @property
    def state_names(self) -> list[str]:
        return [s.name for s in self.states]


def _split_entries(text: str) -> list[str]:
    entries: list[str] = []
    for line in text.splitlines():
        current: list[str] = []
        in_quotes = False
        escaped = False
        for ch in line:
            if escaped:
                current.append(ch)
                escaped = False
                continue
            if ch == "\\" and in_quotes:
                current.append(ch)
                escaped = True
                continue
            if ch == '"':
                in_quotes = not in_quotes
            if ch == ";" and not in_quotes:
                entries.append("".join(current))
                current = []
                continue
            current.append(ch)
        entries.append("".join(current))
    return [e.strip() for e in entries if e.strip()]


def _unquote(value: str) -> str:
    if len(value) < _QUOTED_MIN_LEN or not (value.startswith('"') and value.endswith('"')):
        raise DmiDecodeError(f"state name is not a quoted string: {value!r}")
    out: list[str] = []
    chars = iter(value[1:-1])
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append("\n" if nxt == "n" else nxt)
        else:
            out.append(ch)
    return "".join(out)


def _parse_int(key: str, value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise DmiDecodeError(f"{key} is not an integer: {value!r}") from None


def _parse_flag(key: str, value: str) -> bool:
    return _parse_int(key, value) != 0


def _parse_delay(value: str) -> list[float]:
    try:
        return [float(part) for part in value.split(",") if part.strip()]
    except ValueError:
        raise DmiDecodeError(f"delay is not a list of numbers: {value!r}") from None


def _parse_hotspot(value: str) -> tuple[int, int, int]:
    parts = [p.strip() for p in value.split(",")]
    if len(parts) != _HOTSPOT_PARTS:
        raise DmiDecodeError(f"hotspot must be x,y,frame: {value!r}")
    x, y, frame = (_parse_int("hotspot", p) for p in parts)
    return x, y, frame


def _apply_state_key(state: StateMeta, key: str, value: str) -> None:
    if key == "dirs":
        dirs = _parse_int(key, value)
        if dirs not in VALID_DIR_COUNTS:
            raise DmiDecodeError(f"dirs must be one of {VALID_DIR_COUNTS}, got {dirs}", state=state.name)
        state.dirs = dirs
    elif key == "frames":
        frames = _parse_int(key, value)
        if frames < 1:
            raise DmiDecodeError(f"frames must be positive, got {frames}", state=state.name)
        state.frames = frames
    elif key == "delay":
        state.delay = _parse_delay(value)
    elif key == "loop":
        loop = _parse_int(key, value)
        if loop < 0:
            raise DmiDecodeError(f"loop must not be negative, got {loop}", state=state.name)
        state.loop = loop
    elif key == "rewind":
        state.rewind = _parse_flag(key, value)
    elif key == "movement":
        state.movement = _parse_flag(key, value)
    elif key == "hotspot":
        state.hotspots.append(_parse_hotspot(value))
    else:
        _logger.debug("ignoring unknown state key %r in state %r", key, state.name)


def parse_metadata(text: str) -> DmiMetadata:
    """Parse a DMI description block.

    Raises:
        DmiDecodeError: on a missing marker, unsupported version or a malformed value.
    """
    begin = text.find(BEGIN_MARKER)
    end = text.find(END_MARKER)
    if begin < 0 or end < 0 or end < begin:
        raise DmiDecodeError("DMI description block not found")

    body = text[begin + len(BEGIN_MARKER) : end]
    meta: DmiMetadata | None = None
    current: StateMeta | None = None

    for entry in _split_entries(body):
        if entry.startswith("#"):
            continue
        key, sep, value = entry.partition("=")
        if not sep:
            raise DmiDecodeError(f"malformed entry: {entry!r}")
        key = key.strip()
        value = value.strip()

        if meta is None:
            if key != "version":
                raise DmiDecodeError(f"expected version before {key!r}")
            if value != SUPPORTED_VERSION:
                raise DmiDecodeError(f"unsupported DMI version {value!r}")
            meta = DmiMetadata(version=value)
            continue

        if key == "state":
            current = StateMeta(name=_unquote(value))
            meta.states.append(current)
            continue

        if current is None:
            if key in ("width", "height"):
                size = _parse_int(key, value)
                if size < 1:
                    raise DmiDecodeError(f"{key} must be positive, got {size}")
                setattr(meta, key, size)
            else:
                _logger.debug("ignoring unknown header key %r", key)
            continue

        _apply_state_key(current, key, value)

    if meta is None:
        raise DmiDecodeError("DMI description block has no version")
    return meta
