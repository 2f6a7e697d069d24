import logging
import os
import sys

BASE_LOGGER = "dmi_viewer"
LEVEL_ENV = "DMI_VIEWER_LOG_LEVEL"
CATEGORIES_ENV = "DMI_VIEWER_LOG_CATS"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class CategoryFilter(logging.Filter):
    """Pass records whose last logger name part (``decoder``, ``loader``, ...) is allowed."""

    def __init__(self, categories: set[str]):
        super().__init__()
        self.categories = categories

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.rsplit(".", 1)[-1] in self.categories


def _env_level(default: int) -> int:
    return _LEVELS.get((os.getenv(LEVEL_ENV) or "").strip().lower(), default)


def _env_categories() -> set[str]:
    raw = os.getenv(CATEGORIES_ENV) or ""
    return {c.strip() for c in raw.split(",") if c.strip()}


def _stderr_handler(logger: logging.Logger) -> logging.StreamHandler:
    for h in logger.handlers:
        if isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr:
            return h
    handler = logging.StreamHandler(stream=sys.stderr)
    logger.addHandler(handler)
    return handler


def setup_logger(level: int = logging.INFO, name: str = BASE_LOGGER) -> logging.Logger:
    """Create or update the project logger.

    Env overrides are re-read on every call, so a host application can change
    DMI_VIEWER_LOG_LEVEL / DMI_VIEWER_LOG_CATS after import. Repeated calls keep
    a single stderr handler.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_env_level(level))

    handler = _stderr_handler(logger)
    handler.setFormatter(logging.Formatter(fmt="[%(asctime)s] %(levelname)s: %(message)s", datefmt="%H:%M:%S"))
    handler.filters.clear()
    categories = _env_categories()
    if categories:
        handler.addFilter(CategoryFilter(categories))

    logger.propagate = False
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Project logger, or its ``name`` child (e.g. ``dmi_viewer.decoder``)."""
    base = setup_logger()
    return base if not name else base.getChild(name)
