"""JSON-backed editor preferences (snap tuning, nudge steps, logging)."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

PREFERENCES_FILE = "editor_settings.json"

SNAP_THRESHOLD_DEFAULT = 8.0
PROXIMITY_WINDOW_DEFAULT = 100.0
MAX_SNAP_SEARCH_DISTANCE_DEFAULT = 100.0
POSITION_TOLERANCE_BASE_DEFAULT = 2.0
SNAP_LINE_DISPLAY_MS_DEFAULT = 1000

_LOGGER = logging.getLogger("HUDLayout.Config")


def _coerce_float(raw: Any, fallback: float, *, minimum: float, maximum: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        value = fallback
    if value != value:
        value = fallback
    return max(minimum, min(value, maximum))


def _coerce_int(raw: Any, fallback: int, *, minimum: int, maximum: int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = fallback
    return max(minimum, min(value, maximum))


@dataclass
class EditorPreferences:
    """Simple JSON-backed preferences store."""

    config_dir: Path
    snap_threshold: float = SNAP_THRESHOLD_DEFAULT
    proximity_window: float = PROXIMITY_WINDOW_DEFAULT
    max_snap_search_distance: float = MAX_SNAP_SEARCH_DISTANCE_DEFAULT
    nudge_step: int = 1
    nudge_step_large: int = 10
    position_tolerance_base: float = POSITION_TOLERANCE_BASE_DEFAULT
    snap_line_display_ms: int = SNAP_LINE_DISPLAY_MS_DEFAULT
    log_retention: int = 5
    debug_logging: bool = False

    def __post_init__(self) -> None:
        self.config_dir = Path(self.config_dir)
        self._path = self.config_dir / PREFERENCES_FILE
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    # Persistence ---------------------------------------------------------

    def _load(self) -> None:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, ValueError, RecursionError) as exc:
            _LOGGER.warning("Ignoring unreadable preferences file %s: %s", self._path, exc)
            return
        if not isinstance(data, dict):
            return
        self.snap_threshold = _coerce_float(
            data.get("snap_threshold"), SNAP_THRESHOLD_DEFAULT, minimum=1.0, maximum=64.0
        )
        self.proximity_window = _coerce_float(
            data.get("proximity_window"), PROXIMITY_WINDOW_DEFAULT, minimum=0.0, maximum=1000.0
        )
        self.max_snap_search_distance = _coerce_float(
            data.get("max_snap_search_distance"), MAX_SNAP_SEARCH_DISTANCE_DEFAULT, minimum=2.0, maximum=2000.0
        )
        self.nudge_step = _coerce_int(data.get("nudge_step"), 1, minimum=1, maximum=100)
        self.nudge_step_large = _coerce_int(
            data.get("nudge_step_large"), 10, minimum=self.nudge_step, maximum=500
        )
        self.position_tolerance_base = _coerce_float(
            data.get("position_tolerance_base"), POSITION_TOLERANCE_BASE_DEFAULT, minimum=0.0, maximum=50.0
        )
        self.snap_line_display_ms = _coerce_int(
            data.get("snap_line_display_ms"), SNAP_LINE_DISPLAY_MS_DEFAULT, minimum=0, maximum=10000
        )
        self.log_retention = _coerce_int(data.get("log_retention"), 5, minimum=1, maximum=20)
        self.debug_logging = bool(data.get("debug_logging", False))

    def save(self) -> None:
        payload: Dict[str, Any] = {
            "snap_threshold": float(self.snap_threshold),
            "proximity_window": float(self.proximity_window),
            "max_snap_search_distance": float(self.max_snap_search_distance),
            "nudge_step": int(self.nudge_step),
            "nudge_step_large": int(self.nudge_step_large),
            "position_tolerance_base": float(self.position_tolerance_base),
            "snap_line_display_ms": int(self.snap_line_display_ms),
            "log_retention": int(self.log_retention),
            "debug_logging": bool(self.debug_logging),
        }
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def write_defaults_if_missing(self) -> bool:
        """Write the current values when no preferences file exists yet."""
        if self._path.exists():
            return False
        try:
            self.save()
        except OSError as exc:
            _LOGGER.warning("Failed to write preferences file %s: %s", self._path, exc)
            return False
        _LOGGER.info("Wrote default editor preferences to %s", self._path)
        return True
