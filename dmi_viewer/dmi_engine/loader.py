"""Background DMI loading and resizing.

The decode/build/animate pipeline is synchronous; this module only moves it off
the UI thread. Results are delivered through Qt signals as
``(path, ParsedDMI | None, error | None)`` triples.
"""

from __future__ import annotations

import contextlib
import os
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor

from PySide6.QtCore import QObject, Signal

from dmi_viewer.errors import DmiError
from dmi_viewer.logger import get_logger

from .model import ParsedDMI, load_parsed_dmi
from .resize import ResizeFilter, Resizing

_logger = get_logger("loader")

LoadFn = Callable[[str, Resizing, ResizeFilter], ParsedDMI]


class DmiLoader(QObject):
    """Runs DMI loads and resizes on a worker pool.

    The load_fn has the form ``(path, resizing, filter_type) -> ParsedDMI`` and
    raises DmiError on failure.
    """

    dmi_loaded = Signal(str, object, object)  # path, ParsedDMI, error
    dmi_resized = Signal(object, object, object)  # ParsedDMI, effective Resizing, error

    def __init__(self, load_fn: LoadFn = load_parsed_dmi, max_workers: int | None = None):
        super().__init__()
        self._load_fn = load_fn
        workers = max_workers or max(2, min(4, (os.cpu_count() or 2)))
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dmi-loader")
        self._pending: set[str] = set()
        self._next_id = 1
        self._latest_id: dict[str, int] = {}
        self._latest_params: dict[str, tuple[Resizing, ResizeFilter]] = {}
        self._resizing: set[int] = set()
        self._lock = threading.Lock()
        _logger.debug("DmiLoader init: workers=%s", workers)

    # ---- loading ---------------------------------------------------
    def _run_load(
        self, path: str, resizing: Resizing, filter_type: ResizeFilter, req_id: int
    ) -> tuple[str, ParsedDMI | None, str | None, int]:
        try:
            return path, self._load_fn(path, resizing, filter_type), None, req_id
        except DmiError as exc:
            _logger.warning("load failed: %s", exc.message())
            return path, None, exc.message(), req_id

    def request_load(
        self,
        path: str,
        resizing: Resizing | None = None,
        filter_type: ResizeFilter = ResizeFilter.NEAREST,
    ) -> Future | None:
        """Queue a load; returns None when an identical request is already pending."""
        params = (resizing or Resizing.original(), filter_type)
        with self._lock:
            if path in self._pending and self._latest_params.get(path) == params:
                _logger.debug("request_load dedupe(pending): path=%s params=%s", path, params)
                return None
            # A re-request with different params makes the earlier result stale.
            self._pending.add(path)
            req_id = self._next_id
            self._next_id += 1
            self._latest_id[path] = req_id
            self._latest_params[path] = params
        _logger.debug("request_load queued: path=%s id=%s resizing=%s filter=%s", path, req_id, *params)
        future = self.executor.submit(self._run_load, path, params[0], params[1], req_id)
        with contextlib.suppress(AttributeError):
            future._path = path  # type: ignore[attr-defined]
            future._req_id = req_id  # type: ignore[attr-defined]
        future.add_done_callback(self.on_load_finished)
        return future

    def on_load_finished(self, future: Future) -> None:
        try:
            path, dmi, error, req_id = future.result()
        except Exception as e:
            _logger.exception("load future failed")
            path = getattr(future, "_path", "<unknown>")
            req_id = getattr(future, "_req_id", None)
            with self._lock:
                latest = self._latest_id.get(path)
                if req_id is not None and latest is not None and req_id != latest:
                    _logger.debug("load_failed stale: path=%s id=%s latest=%s (dropped)", path, req_id, latest)
                    return
                self._pending.discard(path)
                self._latest_params.pop(path, None)
            self.dmi_loaded.emit(path, None, str(e))
            return
        with self._lock:
            latest = self._latest_id.get(path)
            if latest is not None and req_id != latest:
                _logger.debug("load_finished stale: path=%s id=%s latest=%s (dropped)", path, req_id, latest)
                return
            self._pending.discard(path)
            self._latest_params.pop(path, None)
        _logger.debug("load_finished emit: path=%s id=%s err=%s", path, req_id, error)
        self.dmi_loaded.emit(path, dmi, error)

    def is_pending(self, path: str) -> bool:
        with self._lock:
            return path in self._pending

    # ---- resizing --------------------------------------------------
    def _run_resize(self, dmi: ParsedDMI, resizing: Resizing, filter_type: ResizeFilter) -> Resizing:
        try:
            return dmi.resize(resizing, filter_type)
        finally:
            with self._lock:
                self._resizing.discard(id(dmi))

    def request_resize(
        self, dmi: ParsedDMI, resizing: Resizing, filter_type: ResizeFilter = ResizeFilter.NEAREST
    ) -> Future | None:
        """Resize ``dmi`` in place off-thread; returns None while another resize of it runs."""
        with self._lock:
            if id(dmi) in self._resizing:
                _logger.debug("request_resize skip(busy): %s", resizing)
                return None
            self._resizing.add(id(dmi))
        future = self.executor.submit(self._run_resize, dmi, resizing, filter_type)

        def _done(f: Future) -> None:
            try:
                effective = f.result()
            except Exception as e:
                _logger.exception("resize future failed")
                self.dmi_resized.emit(dmi, None, str(e))
                return
            self.dmi_resized.emit(dmi, effective, None)

        future.add_done_callback(_done)
        return future

    def is_resizing(self, dmi: ParsedDMI) -> bool:
        with self._lock:
            return id(dmi) in self._resizing

    def clear_pending(self) -> None:
        with self._lock:
            self._pending.clear()
            self._latest_id.clear()
            self._latest_params.clear()

    def shutdown(self, wait: bool = False) -> None:
        self.executor.shutdown(wait=wait, cancel_futures=True)
