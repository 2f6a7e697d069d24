from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from .dmi_engine.resize import ResizeFilter, Resizing
from .logger import get_logger
from .path_utils import folder_of

_logger = get_logger("settings")

_SETTINGS_ENV = "DMI_VIEWER_SETTINGS"
_SETTINGS_BASENAME = "settings.json"


def default_settings_path() -> str:
    """Settings file location; DMI_VIEWER_SETTINGS overrides the per-user default."""
    override = (os.getenv(_SETTINGS_ENV) or "").strip()
    if override:
        return override
    base = os.getenv("XDG_CONFIG_HOME") or os.getenv("APPDATA") or str(Path.home() / ".config")
    return str(Path(base) / "dmi_viewer" / _SETTINGS_BASENAME)


class SettingsManager:
    def __init__(self, settings_path: str | None = None):
        self.settings_path = settings_path or default_settings_path()
        self._settings: dict[str, Any] = {}
        self.load()

    DEFAULTS: dict[str, Any] = {
        "resize_filter": "nearest",
        "resize_mode": "original",
        "resize_width": 64,
        "resize_height": 64,
        "explorer_delimiter": ", ",
        "explorer_page_size": 20,
        "explorer_recursion_depth": 20,
        "last_open_dir": None,
    }

    def load(self) -> None:
        try:
            if os.path.exists(self.settings_path):
                with open(self.settings_path, encoding="utf-8") as f:
                    data = json.load(f)
                    if isinstance(data, dict):
                        self._settings = data
                        _logger.debug("settings loaded: %s", self.settings_path)
                        return
        except (OSError, ValueError) as e:
            _logger.warning("settings load failed: %s", e)
        self._settings = {}

    def save(self) -> None:
        try:
            parent = os.path.dirname(self.settings_path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            with open(self.settings_path, "w", encoding="utf-8") as f:
                json.dump(self._settings, f, ensure_ascii=False, indent=2)
            _logger.debug("settings saved: %s", self.settings_path)
        except OSError as e:
            _logger.error("settings save failed: %s", e)

    def get(self, key: str, default: Any = None) -> Any:
        if key in self._settings:
            return self._settings[key]
        if default is not None:
            return default
        return self.DEFAULTS.get(key)

    def has(self, key: str) -> bool:
        return key in self._settings

    def set(self, key: str, value: Any) -> None:
        if key == "last_open_dir" and value is not None:
            value = folder_of(value)
        self._settings[key] = value
        self.save()

    def reset(self) -> None:
        self._settings = {}
        self.save()

    @property
    def data(self) -> dict[str, Any]:
        return self._settings

    def _get_int(self, key: str) -> int:
        try:
            return int(self.get(key))
        except (TypeError, ValueError):
            _logger.debug("invalid %s=%r, using default", key, self._settings.get(key))
            return int(self.DEFAULTS[key])

    @property
    def resize_filter(self) -> ResizeFilter:
        return ResizeFilter.from_name(self.get("resize_filter"))

    @property
    def resizing(self) -> Resizing:
        if str(self.get("resize_mode")).lower() != "resized":
            return Resizing.original()
        try:
            return Resizing.resized(self._get_int("resize_height"), self._get_int("resize_width"))
        except ValueError as e:
            _logger.debug("invalid resize target: %s", e)
            return Resizing.original()

    def set_resizing(self, resizing: Resizing) -> None:
        if resizing.is_original:
            self._settings["resize_mode"] = "original"
        else:
            self._settings["resize_mode"] = "resized"
            self._settings["resize_height"] = resizing.height
            self._settings["resize_width"] = resizing.width
        self.save()

    @property
    def explorer_delimiter(self) -> str:
        val = self.get("explorer_delimiter")
        return val if isinstance(val, str) else self.DEFAULTS["explorer_delimiter"]

    @property
    def explorer_page_size(self) -> int:
        return max(1, self._get_int("explorer_page_size"))

    @property
    def explorer_recursion_depth(self) -> int:
        return max(0, self._get_int("explorer_recursion_depth"))

    @property
    def last_open_dir(self) -> str | None:
        val = self.get("last_open_dir")
        return val if isinstance(val, str) and os.path.isdir(val) else None
