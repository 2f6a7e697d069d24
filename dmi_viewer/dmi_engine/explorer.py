"""DMI explorer: discover DMI files and list their state names.

Only the metadata block is decoded here, so scanning large folders stays cheap.
"""

from __future__ import annotations

import math
import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from dmi_viewer.errors import DmiError
from dmi_viewer.logger import get_logger
from dmi_viewer.path_utils import abs_path, path_key

from .decoder import DMI_SUFFIX, read_dmi_bytes, read_metadata

_logger = get_logger("explorer")

DEFAULT_RECURSION_DEPTH = 20
DEFAULT_PAGE_SIZE = 20
DEFAULT_DELIMITER = ", "


def _is_dmi(path: Path) -> bool:
    return path.suffix.lower() == DMI_SUFFIX


def iter_dmi_files(root: str | os.PathLike[str], max_depth: int = DEFAULT_RECURSION_DEPTH) -> Iterator[Path]:
    """Yield ``.dmi`` files under ``root`` (sorted per directory), at most ``max_depth`` levels deep.

    ``root`` itself is depth 0. A ``.dmi`` file passed as root yields itself.
    """
    start = abs_path(root)
    if start.is_file():
        if _is_dmi(start):
            yield start
        return

    def _walk(folder: Path, depth: int) -> Iterator[Path]:
        try:
            children = sorted(folder.iterdir())
        except OSError as exc:
            _logger.warning("cannot list %s: %s", folder, exc)
            return
        for child in children:
            if child.is_dir():
                if depth < max_depth:
                    yield from _walk(child, depth + 1)
            elif _is_dmi(child):
                yield child

    if start.is_dir():
        yield from _walk(start, 0)


def read_state_names(path: str | os.PathLike[str]) -> list[str]:
    """State names in file order (duplicates included).

    Raises:
        DmiDecodeError: when the file cannot be read or has no valid metadata.
    """
    try:
        return read_metadata(read_dmi_bytes(path)).state_names
    except DmiError as exc:
        exc.path = str(path)
        raise


@dataclass
class CatalogEntry:
    path: str
    states: list[str] = field(default_factory=list)


class DmiCatalog:
    """Loaded DMI files and their state names, with text filtering and paging."""

    def __init__(self) -> None:
        self._entries: dict[str, CatalogEntry] = {}
        self.failures: dict[str, str] = {}

    @property
    def entries(self) -> list[CatalogEntry]:
        return [self._entries[k] for k in sorted(self._entries)]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, os.PathLike)) and path_key(path) in self._entries

    def add(self, path: str | os.PathLike[str]) -> CatalogEntry | None:
        """Load state names for ``path``; failures are recorded and return None."""
        key = path_key(path)
        try:
            names = read_state_names(path)
        except DmiError as exc:
            _logger.warning("failed to load DMI: %s", exc.message())
            self.failures[key] = exc.message()
            return None
        self.failures.pop(key, None)
        entry = CatalogEntry(path=key, states=names)
        self._entries[key] = entry
        return entry

    def add_folder(self, root: str | os.PathLike[str], max_depth: int = DEFAULT_RECURSION_DEPTH) -> int:
        """Add every DMI under ``root`` that is not loaded yet; returns how many were added."""
        added = 0
        for dmi_path in iter_dmi_files(root, max_depth):
            if dmi_path in self:
                continue
            if self.add(dmi_path) is not None:
                added += 1
        return added

    def remove(self, path: str | os.PathLike[str]) -> bool:
        return self._entries.pop(path_key(path), None) is not None

    def clear(self) -> None:
        self._entries.clear()
        self.failures.clear()

    def joined_states(self, path: str | os.PathLike[str], delimiter: str = DEFAULT_DELIMITER) -> str:
        entry = self._entries.get(path_key(path))
        return "" if entry is None else delimiter.join(entry.states)

    def filter(self, text: str) -> list[CatalogEntry]:
        """Entries whose path or state names contain ``text``.

        A path match keeps all states; otherwise only the matching states are kept.
        """
        if not text:
            return self.entries
        out: list[CatalogEntry] = []
        for entry in self.entries:
            if text in entry.path:
                out.append(CatalogEntry(entry.path, list(entry.states)))
                continue
            matching = [s for s in entry.states if text in s]
            if matching:
                out.append(CatalogEntry(entry.path, matching))
        return out

    @staticmethod
    def page_count(total: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
        return max(1, math.ceil(total / max(1, page_size)))

    def page(self, index: int, page_size: int = DEFAULT_PAGE_SIZE, text: str = "") -> list[CatalogEntry]:
        """One page of (optionally filtered) entries; out-of-range pages are empty."""
        items = self.filter(text)
        size = max(1, page_size)
        if index < 0:
            return []
        return items[index * size : (index + 1) * size]
