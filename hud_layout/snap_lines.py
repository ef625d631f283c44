"""Snap-to-neighbor geometry used while dragging and nudging widgets (pure, no Qt)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple

from hud_layout.geometry import Point, Rect
from hud_layout.preferences import (
    MAX_SNAP_SEARCH_DISTANCE_DEFAULT,
    PROXIMITY_WINDOW_DEFAULT,
    SNAP_THRESHOLD_DEFAULT,
)
from hud_layout.widget_catalog import WIDGET_GAP

SNAP_THRESHOLD = SNAP_THRESHOLD_DEFAULT
MAX_SNAP_SEARCH_DISTANCE = MAX_SNAP_SEARCH_DISTANCE_DEFAULT
PROXIMITY_WINDOW = PROXIMITY_WINDOW_DEFAULT
MIN_JUMP_DISTANCE = 1.0

DIRECTIONS = ("up", "down", "left", "right")


@dataclass(frozen=True)
class WidgetEdges:
    left: float
    right: float
    center_x: float
    top: float
    bottom: float
    center_y: float

    @classmethod
    def from_rect(cls, rect: Rect) -> "WidgetEdges":
        return cls(
            left=rect.x,
            right=rect.right,
            center_x=rect.center_x,
            top=rect.y,
            bottom=rect.bottom,
            center_y=rect.center_y,
        )

    def value(self, edge: str) -> float:
        return getattr(self, edge)


@dataclass(frozen=True)
class SnapLine:
    type: str
    position: float
    edge: str
    source_widget_id: str
    target_widget_id: str
    snap_type: str


@dataclass(frozen=True)
class SnapResult:
    snap_lines: Tuple[SnapLine, ...]
    snapped_position: Point


@dataclass(frozen=True)
class NextSnapResult:
    found: bool
    position: Optional[Point] = None
    snap_line: Optional[SnapLine] = None


# (dragging edge, target edge); gap rules also carry the sign applied to the gap.
_X_DIRECT = (
    ("left", "left"),
    ("left", "right"),
    ("right", "left"),
    ("right", "right"),
    ("center_x", "center_x"),
)
_Y_DIRECT = (
    ("top", "top"),
    ("top", "bottom"),
    ("bottom", "top"),
    ("bottom", "bottom"),
    ("center_y", "center_y"),
)
_X_GAP = (("left", "right", 1.0), ("right", "left", -1.0))
_Y_GAP = (("top", "bottom", 1.0), ("bottom", "top", -1.0))


def widget_edges(rect: Rect) -> WidgetEdges:
    return WidgetEdges.from_rect(rect)


def are_in_proximity(a: WidgetEdges, b: WidgetEdges, window: float = PROXIMITY_WINDOW) -> bool:
    """True when the two widgets overlap or sit within ``window`` px on both axes."""

    horizontal = a.right + window >= b.left and a.left - window <= b.right
    vertical = a.bottom + window >= b.top and a.top - window <= b.bottom
    return horizontal and vertical


def _axis_rules(
    dragging: WidgetEdges,
    target: WidgetEdges,
    direct: Iterable[Tuple[str, str]],
    gap_rules: Iterable[Tuple[str, str, float]],
    in_proximity: bool,
    gap: float,
) -> List[Tuple[str, float, float, str]]:
    """Return (target edge, dragging value, target value, snap type) tuples."""

    rules = [
        (target_edge, dragging.value(drag_edge), target.value(target_edge), "direct")
        for drag_edge, target_edge in direct
    ]
    if in_proximity:
        rules.extend(
            (target_edge, dragging.value(drag_edge), target.value(target_edge) + sign * gap, "gap")
            for drag_edge, target_edge, sign in gap_rules
        )
    return rules


def find_snap_lines(
    dragging_id: str,
    position: Point,
    widget_ids: Iterable[str],
    rects: Mapping[str, Rect],
    threshold: float = SNAP_THRESHOLD,
    *,
    exclude_ids: Iterable[str] = (),
    proximity_window: float = PROXIMITY_WINDOW,
    gap: float = WIDGET_GAP,
) -> SnapResult:
    """Snap ``dragging_id`` placed at ``position`` against every other widget.

    Each axis is resolved on its own: the smallest correction under
    ``threshold`` wins, and every rule under the threshold yields a guide line.
    """

    base = rects.get(dragging_id)
    if base is None:
        return SnapResult((), position)
    dragging = widget_edges(base.moved_to(position))
    excluded = set(exclude_ids)
    excluded.add(dragging_id)

    lines: List[SnapLine] = []
    best_dx: Optional[float] = None
    best_dy: Optional[float] = None
    for target_id in widget_ids:
        if target_id in excluded:
            continue
        target_rect = rects.get(target_id)
        if target_rect is None:
            continue
        target = widget_edges(target_rect)
        near = are_in_proximity(dragging, target, proximity_window)

        for edge, drag_value, target_value, snap_type in _axis_rules(dragging, target, _X_DIRECT, _X_GAP, near, gap):
            offset = target_value - drag_value
            if abs(offset) >= threshold:
                continue
            lines.append(SnapLine("vertical", target_value, edge, dragging_id, target_id, snap_type))
            if best_dx is None or abs(offset) < abs(best_dx):
                best_dx = offset

        for edge, drag_value, target_value, snap_type in _axis_rules(dragging, target, _Y_DIRECT, _Y_GAP, near, gap):
            offset = target_value - drag_value
            if abs(offset) >= threshold:
                continue
            lines.append(SnapLine("horizontal", target_value, edge, dragging_id, target_id, snap_type))
            if best_dy is None or abs(offset) < abs(best_dy):
                best_dy = offset

    snapped = Point(
        position.x + (best_dx if best_dx is not None else 0.0),
        position.y + (best_dy if best_dy is not None else 0.0),
    )
    return SnapResult(tuple(lines), snapped)


def _jump_rules(widget: WidgetEdges, target: WidgetEdges, horizontal: bool, gap: float):
    """Yield (dragging edge, guide position, new origin, snap type) for one axis."""

    if horizontal:
        extent = widget.right - widget.left
        near, far, center = target.left, target.right, target.center_x
        lead, trail, middle = "left", "right", "center_x"
    else:
        extent = widget.bottom - widget.top
        near, far, center = target.top, target.bottom, target.center_y
        lead, trail, middle = "top", "bottom", "center_y"
    return (
        (lead, near, near, "direct"),
        (lead, far, far, "direct"),
        (lead, far + gap, far + gap, "gap"),
        (trail, near, near - extent, "direct"),
        (trail, far, far - extent, "direct"),
        (trail, near - gap, near - gap - extent, "gap"),
        (middle, center, center - extent / 2.0, "direct"),
    )


def find_next_snap_position(
    widget_id: str,
    position: Point,
    direction: str,
    widget_ids: Iterable[str],
    rects: Mapping[str, Rect],
    *,
    exclude_ids: Iterable[str] = (),
    max_distance: float = MAX_SNAP_SEARCH_DISTANCE,
    gap: float = WIDGET_GAP,
) -> NextSnapResult:
    """Find the closest snap stop strictly in ``direction`` within ``max_distance`` px."""

    if direction not in DIRECTIONS:
        raise ValueError(f"Unknown snap direction '{direction}'")
    base = rects.get(widget_id)
    if base is None:
        return NextSnapResult(False)
    widget = widget_edges(base.moved_to(position))
    excluded = set(exclude_ids)
    excluded.add(widget_id)
    horizontal = direction in ("left", "right")
    forward = direction in ("right", "down")
    current = position.x if horizontal else position.y

    best: Optional[Tuple[float, Point, SnapLine]] = None
    for target_id in widget_ids:
        if target_id in excluded:
            continue
        target_rect = rects.get(target_id)
        if target_rect is None:
            continue
        target = widget_edges(target_rect)
        for edge, guide, new_origin, snap_type in _jump_rules(widget, target, horizontal, gap):
            distance = new_origin - current
            valid = distance > MIN_JUMP_DISTANCE if forward else distance < -MIN_JUMP_DISTANCE
            if not valid or abs(distance) > max_distance:
                continue
            if best is not None and abs(distance) >= best[0]:
                continue
            new_position = Point(new_origin, position.y) if horizontal else Point(position.x, new_origin)
            line = SnapLine(
                "vertical" if horizontal else "horizontal",
                guide,
                edge,
                widget_id,
                target_id,
                snap_type,
            )
            best = (abs(distance), new_position, line)

    if best is None:
        return NextSnapResult(False)
    return NextSnapResult(True, best[1], best[2])
