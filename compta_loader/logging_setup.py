"""
Logging for the entry loader.

Modules log through ``get_logger(<module>)``; the batch driver wraps its
logger with ``for_source`` so every line says which file (or sheet, or
upload) it is about.  ``configure_logging`` installs the handlers on the
``compta_loader`` namespace; it can be called again to change the level or
add a log file.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, Optional, Tuple

ROOT_LOGGER = "compta_loader"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks the handlers installed here, to tell them from ones added by the host.
_OWNED = "_compta_loader_handler"


def _owned_handlers(root: logging.Logger) -> list:
    return [h for h in root.handlers if getattr(h, _OWNED, False)]


def _install(root: logging.Logger, handler: logging.Handler) -> None:
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    setattr(handler, _OWNED, True)
    root.addHandler(handler)


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """Set up the ``compta_loader`` logger and return it.

    Parameters
    ----------
    level:
        Minimum severity to emit.  A later call only changes the level.
    log_file:
        Also write to this file.  Each distinct path is attached once.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)

    owned = _owned_handlers(root)
    if not owned:
        root.propagate = False
        _install(root, logging.StreamHandler(sys.stdout))

    if log_file:
        attached = {getattr(h, "baseFilename", None) for h in owned}
        handler = logging.FileHandler(log_file, encoding="utf-8")
        if handler.baseFilename in attached:
            handler.close()
        else:
            _install(root, handler)

    return root


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under the ``compta_loader`` namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class SourceAdapter(logging.LoggerAdapter):
    """Prefixes messages with the name of the source being loaded."""

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['source']}] {msg}", kwargs


def for_source(logger: logging.Logger, source: str) -> SourceAdapter:
    return SourceAdapter(logger, {"source": source})
