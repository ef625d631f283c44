"""Dev-build toggles (relayout tracing, editor guides) and troubleshooting flags."""

from __future__ import annotations

import json
import logging
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from hud_layout.version import __version__, is_dev_build

DEBUG_CONFIG_ENABLED = is_dev_build(__version__)
LOG_RETENTION_MIN = 1
LOG_RETENTION_MAX = 20

_LOGGER = logging.getLogger("HUDLayout.Config")

_DEV_SETTING_DEFAULTS: Dict[str, Any] = {
    "trace_relayout": False,
    "trace_widget_ids": [],
    "snap_guides": True,
    "outline_widgets": False,
}


@dataclass(frozen=True)
class TroubleshootingConfig:
    logs_to_keep: Optional[int] = None


@dataclass(frozen=True)
class DebugConfig:
    trace_relayout: bool = False
    trace_widget_ids: Tuple[str, ...] = ()
    snap_guides: bool = True
    outline_widgets: bool = False

    def traces(self, widget_id: str) -> bool:
        """True when relayout decisions for ``widget_id`` should be logged."""

        if not self.trace_relayout:
            return False
        return not self.trace_widget_ids or widget_id in self.trace_widget_ids


def _coerce_log_retention(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        numeric = int(value)
    except (TypeError, ValueError):
        return None
    return max(LOG_RETENTION_MIN, min(numeric, LOG_RETENTION_MAX))


def _coerce_widget_ids(value: Any) -> Tuple[str, ...]:
    if isinstance(value, (list, tuple, set)):
        cleaned = (str(item).strip() for item in value if isinstance(item, (str, int)))
        return tuple(item for item in cleaned if item)
    if value is None:
        return ()
    single = str(value).strip()
    return (single,) if single else ()


def _read_json_object(path: Path) -> Optional[Dict[str, Any]]:
    try:
        loaded = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    return loaded if isinstance(loaded, dict) else None


def load_troubleshooting_config(path: Path, *, enabled: bool) -> TroubleshootingConfig:
    """Read user-facing troubleshooting flags (log retention) from debug.json."""

    if not enabled:
        return TroubleshootingConfig()
    data = _read_json_object(path) or {}
    return TroubleshootingConfig(logs_to_keep=_coerce_log_retention(data.get("logs_to_keep")))


def load_dev_settings(path: Path, *, enabled: Optional[bool] = None) -> DebugConfig:
    """Load dev-mode-only flags from dev_settings.json, writing back missing defaults."""

    if not (DEBUG_CONFIG_ENABLED if enabled is None else enabled):
        return DebugConfig()
    loaded = _read_json_object(path)
    data: Dict[str, Any] = deepcopy(loaded) if loaded is not None else {}
    missing = [key for key in _DEV_SETTING_DEFAULTS if key not in data]
    for key in missing:
        data[key] = deepcopy(_DEV_SETTING_DEFAULTS[key])

    config = DebugConfig(
        trace_relayout=bool(data.get("trace_relayout")),
        trace_widget_ids=_coerce_widget_ids(data.get("trace_widget_ids")),
        snap_guides=bool(data.get("snap_guides")),
        outline_widgets=bool(data.get("outline_widgets")),
    )

    if loaded is None or missing:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        except OSError as exc:
            _LOGGER.debug("Could not write dev settings to %s: %s", path, exc)
    return config
