"""Process-wide log handlers: stdout always, plus a file per run when asked."""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _run_log_file(log_dir: Path) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(tz=timezone.utc).strftime("%Y%m%d_%H%M%S")
    return log_dir / f"notepad_{stamp}.log"


def setup_logging(
    log_dir: Optional[Union[Path, str]] = None,
    level: int = logging.INFO,
) -> Optional[Path]:
    """Install the root handlers and return the log file path, if any.

    Handlers from earlier calls are closed and replaced.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    log_file = None
    if log_dir is not None:
        log_file = _run_log_file(Path(log_dir))
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )
    return log_file


def ensure_logging(log_dir: Optional[Union[Path, str]] = None, level: int = logging.INFO) -> bool:
    """Set up logging only when nothing has configured the root logger yet.

    Covers processes that build the app without going through ``main()``,
    such as the uvicorn reload worker. Returns True if handlers were installed.
    """
    if logging.getLogger().handlers:
        return False
    setup_logging(log_dir, level)
    return True
