"""File logging for the HUDLayout logger tree."""
from __future__ import annotations

import logging
import os
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator, Optional

ROOT_LOGGER_NAME = "HUDLayout"
LOG_FILENAME = "hud-layout.log"
LOG_DIR_ENV_VAR = "HUD_LAYOUT_LOG_DIR"
_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
_HANDLER_MARKER = "_hud_layout_handler"


def _log_dir_candidates(config_dir: Path) -> Iterator[Path]:
    env_override = os.environ.get(LOG_DIR_ENV_VAR)
    if env_override:
        yield Path(env_override).expanduser()
    yield Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state")) / "hud-layout" / "logs"
    yield Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache")) / "hud-layout" / "logs"
    yield Path(config_dir).resolve() / "logs"


def resolve_logs_dir(config_dir: Path, log_dir_name: str = "HUDLayout") -> Path:
    """
    Pick the first writable log folder.

    Order: ``$HUD_LAYOUT_LOG_DIR``, XDG state, XDG cache, ``<config_dir>/logs``,
    and finally the system temp dir.
    """
    for base in _log_dir_candidates(config_dir):
        target = base / log_dir_name
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError:
            continue
        return target

    fallback = Path(tempfile.gettempdir()) / "hud-layout" / log_dir_name
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


def build_rotating_file_handler(
    log_dir: Path,
    filename: str = LOG_FILENAME,
    *,
    retention: int = 5,
    max_bytes: int = 512 * 1024,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """``retention`` counts files kept, including the live one."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_dir / filename,
        maxBytes=max_bytes,
        backupCount=max(1, retention) - 1,
        encoding="utf-8",
    )
    handler.setFormatter(formatter or logging.Formatter(_LOG_FORMAT))
    return handler


def resolve_log_level(debug_enabled: bool) -> int:
    return logging.DEBUG if debug_enabled else logging.INFO


def configure_logging(
    log_dir: Path,
    *,
    debug_enabled: bool = False,
    retention: int = 5,
    propagate: bool = False,
) -> logging.Logger:
    """Route the ``HUDLayout`` logger tree to a rotating file.

    Calling it again swaps the previous handler rather than stacking a second one.
    """

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolve_log_level(debug_enabled))
    logger.propagate = propagate
    for existing in [handler for handler in logger.handlers if getattr(handler, _HANDLER_MARKER, False)]:
        logger.removeHandler(existing)
        existing.close()
    handler = build_rotating_file_handler(log_dir, retention=retention)
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)
    return logger
