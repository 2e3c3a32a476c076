"""Logging setup for mdloc.

Library modules only create module-level loggers; applications embedding the
engine call `configure_logging()` once (or configure logging themselves).
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from .config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    level: Union[int, str, None] = None, *, settings: Optional[Settings] = None
) -> None:
    """Attach a stream handler to the ``mdloc`` logger.

    The level defaults to ``settings.app.log_level``.
    """
    if level is None:
        level = (settings or Settings()).app.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger("mdloc")
    root.setLevel(level)
    if not any(getattr(h, "_mdloc", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._mdloc = True  # type: ignore[attr-defined]
        root.addHandler(handler)
