from __future__ import annotations

import logging
import os
from pathlib import Path

from .config import DIR_MODE

logger = logging.getLogger(__name__)


def ensure_dir(path: str | os.PathLike[str]) -> None:
    """Create path and any missing parents (mode 0755) unless it already exists.

    An existing path is left untouched, whether or not it is a directory.
    """
    target = Path(path)
    if target.exists():
        return
    target.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    logger.info("Created directory: %s", target)
