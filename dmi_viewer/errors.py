"""Error types raised and recorded by the DMI pipeline.

Every error carries enough context (file path, state name, direction) for the
UI layer to render a notification without inspecting the traceback.
"""

from __future__ import annotations

from typing import Any


class DmiError(Exception):
    """Base class for all DMI pipeline errors."""

    kind = "dmi"

    def __init__(
        self,
        reason: str,
        *,
        path: str | None = None,
        state: str | None = None,
        direction: Any = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.path = path
        self.state = state
        self.direction = direction

    def context(self) -> dict[str, str]:
        ctx: dict[str, str] = {}
        if self.path is not None:
            ctx["path"] = str(self.path)
        if self.state is not None:
            ctx["state"] = self.state
        if self.direction is not None:
            ctx["direction"] = str(self.direction)
        return ctx

    def message(self) -> str:
        """Human-readable one-liner: ``kind: reason (path=..., state=...)``."""
        ctx = self.context()
        if not ctx:
            return f"{self.kind}: {self.reason}"
        details = ", ".join(f"{k}={v}" for k, v in ctx.items())
        return f"{self.kind}: {self.reason} ({details})"

    def __str__(self) -> str:
        return self.message()


class DmiDecodeError(DmiError):
    """Source bytes are not a PNG or the DMI metadata is absent/malformed."""

    kind = "decode"


class FrameBoundsExceeded(DmiError):
    """Declared frames/directions exceed the images present in the sheet.

    Recorded on the state, never raised out of the model builder.
    """

    kind = "frame_bounds"

    def __init__(self, reason: str, *, expected: int = 0, found: int = 0, **kwargs: Any) -> None:
        super().__init__(reason, **kwargs)
        self.expected = expected
        self.found = found


class EncodeError(DmiError):
    """Animation synthesis (or resampling) failed for one direction."""

    kind = "encode"


class ExportError(DmiError):
    """Writing an exported frame or animation failed."""

    kind = "export"
