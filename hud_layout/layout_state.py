"""Persisted layout state: per-widget configs plus the global layout settings."""
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from hud_layout.descriptors import (
    MINIMAP_SHAPES,
    SPEEDOMETER_TYPES,
    STATUS_DESIGNS,
    LayoutOptions,
    WidgetDescriptor,
)
from hud_layout.geometry import Point

LAYOUT_STATE_VERSION = 1
DEFAULT_GRID_SIZE = 10


class LayoutStateError(ValueError):
    """Raised when a persisted layout blob cannot be trusted."""


@dataclass(frozen=True)
class ResolvedWidgetConfig:
    id: str
    type: str
    position: Point
    visible: bool
    scale: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "position": {"x": self.position.x, "y": self.position.y},
            "visible": self.visible,
            "scale": self.scale,
        }


@dataclass(frozen=True)
class LayoutState:
    widgets: Tuple[ResolvedWidgetConfig, ...] = ()
    edit_mode: bool = False
    snap_to_grid: bool = True
    grid_size: int = DEFAULT_GRID_SIZE
    status_design: str = "circular"
    hud_scale: float = 1.0
    speedometer_type: str = "car"
    minimap_shape: str = "square"
    widgets_distributed: bool = False

    @property
    def options(self) -> LayoutOptions:
        return LayoutOptions(
            status_design=self.status_design,
            minimap_shape=self.minimap_shape,
            speedometer_type=self.speedometer_type,
        )

    def widget(self, widget_id: str) -> ResolvedWidgetConfig | None:
        for config in self.widgets:
            if config.id == widget_id:
                return config
        return None

    def with_widgets(self, widgets: Sequence[ResolvedWidgetConfig]) -> "LayoutState":
        return replace(self, widgets=tuple(widgets))

    def to_blob(self) -> Dict[str, Any]:
        """Serializable form; edit mode never leaves the session."""

        return {
            "version": LAYOUT_STATE_VERSION,
            "widgets": [config.to_dict() for config in self.widgets],
            "snap_to_grid": self.snap_to_grid,
            "grid_size": self.grid_size,
            "status_design": self.status_design,
            "hud_scale": self.hud_scale,
            "speedometer_type": self.speedometer_type,
            "minimap_shape": self.minimap_shape,
            "widgets_distributed": self.widgets_distributed,
        }


def default_widget_configs(descriptors: Sequence[WidgetDescriptor]) -> List[ResolvedWidgetConfig]:
    return [
        ResolvedWidgetConfig(
            id=descriptor.id,
            type=descriptor.type,
            position=Point(0.0, 0.0),
            visible=descriptor.default_visible,
            scale=descriptor.default_scale,
        )
        for descriptor in descriptors
    ]


def default_layout_state(descriptors: Sequence[WidgetDescriptor]) -> LayoutState:
    return LayoutState(widgets=tuple(default_widget_configs(descriptors)))


def _number(raw: Any, label: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise LayoutStateError(f"{label} must be a number, got {raw!r}")
    value = float(raw)
    if not math.isfinite(value):
        raise LayoutStateError(f"{label} must be finite")
    return value


def _choice(raw: Any, choices: Sequence[str], label: str) -> str:
    if raw not in choices:
        raise LayoutStateError(f"{label} must be one of {', '.join(choices)}, got {raw!r}")
    return str(raw)


def _parse_widget(raw: Any) -> ResolvedWidgetConfig:
    if not isinstance(raw, Mapping):
        raise LayoutStateError(f"widget entry must be an object, got {type(raw).__name__}")
    widget_id = raw.get("id")
    if not isinstance(widget_id, str) or not widget_id:
        raise LayoutStateError("widget entry is missing an id")
    position = raw.get("position")
    if not isinstance(position, Mapping):
        raise LayoutStateError(f"widget '{widget_id}' has no position")
    visible = raw.get("visible", True)
    if not isinstance(visible, bool):
        raise LayoutStateError(f"widget '{widget_id}' visibility must be a boolean")
    scale = _number(raw.get("scale", 1.0), f"widget '{widget_id}' scale")
    if scale <= 0:
        raise LayoutStateError(f"widget '{widget_id}' scale must be positive")
    return ResolvedWidgetConfig(
        id=widget_id,
        type=str(raw.get("type") or widget_id),
        position=Point(
            _number(position.get("x"), f"widget '{widget_id}' x"),
            _number(position.get("y"), f"widget '{widget_id}' y"),
        ),
        visible=visible,
        scale=scale,
    )


@dataclass
class MergeResult:
    state: LayoutState
    dropped: List[str] = field(default_factory=list)
    appended: List[str] = field(default_factory=list)


def parse_layout_blob(raw: Any, descriptors: Sequence[WidgetDescriptor]) -> MergeResult:
    """Strictly parse a persisted blob and merge it with the descriptor set.

    Any malformed value raises :class:`LayoutStateError`; nothing is partially
    trusted. Unknown widgets are dropped and new descriptors are appended with
    their defaults (positions are filled in by the store).
    """

    if not isinstance(raw, Mapping):
        raise LayoutStateError("layout blob must be an object")
    widgets_raw = raw.get("widgets")
    if not isinstance(widgets_raw, list):
        raise LayoutStateError("layout blob has no widget list")
    parsed: Dict[str, ResolvedWidgetConfig] = {}
    for entry in widgets_raw:
        config = _parse_widget(entry)
        if config.id in parsed:
            raise LayoutStateError(f"widget '{config.id}' appears twice")
        parsed[config.id] = config

    grid_size = raw.get("grid_size", DEFAULT_GRID_SIZE)
    if isinstance(grid_size, bool) or not isinstance(grid_size, int) or grid_size <= 0:
        raise LayoutStateError(f"grid_size must be a positive integer, got {grid_size!r}")
    snap_to_grid = raw.get("snap_to_grid", True)
    if not isinstance(snap_to_grid, bool):
        raise LayoutStateError("snap_to_grid must be a boolean")
    hud_scale = _number(raw.get("hud_scale", 1.0), "hud_scale")

    known = {descriptor.id for descriptor in descriptors}
    result = MergeResult(state=LayoutState())
    result.dropped = [widget_id for widget_id in parsed if widget_id not in known]
    widgets: List[ResolvedWidgetConfig] = [config for config in parsed.values() if config.id in known]
    for default in default_widget_configs(descriptors):
        if default.id not in parsed:
            widgets.append(default)
            result.appended.append(default.id)

    result.state = LayoutState(
        widgets=tuple(widgets),
        edit_mode=False,
        snap_to_grid=snap_to_grid,
        grid_size=grid_size,
        status_design=_choice(raw.get("status_design", "circular"), STATUS_DESIGNS, "status_design"),
        hud_scale=hud_scale,
        speedometer_type=_choice(raw.get("speedometer_type", "car"), SPEEDOMETER_TYPES, "speedometer_type"),
        minimap_shape=_choice(raw.get("minimap_shape", "square"), MINIMAP_SHAPES, "minimap_shape"),
        widgets_distributed=True,
    )
    return result
