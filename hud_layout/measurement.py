"""Measurement capability used by the resolver to ask for on-screen widget geometry."""
from __future__ import annotations

from typing import Dict, Mapping, Optional, Protocol, Tuple

from hud_layout.geometry import Point, Rect, Size


class WidgetMeasurer(Protocol):
    """Answers "how big is this widget and where is it right now"."""

    def widget_size(self, widget_id: str) -> Optional[Size]:
        """Unscaled rendered size, or None when the widget is not mounted."""

    def widget_rect(self, widget_id: str) -> Optional[Rect]:
        """Live on-screen rectangle, or None when the widget is not mounted."""


class StaticMeasurer:
    """Dict-backed measurer with synthetic geometry for headless runs and tests."""

    def __init__(
        self,
        sizes: Optional[Mapping[str, Tuple[float, float]]] = None,
        positions: Optional[Mapping[str, Tuple[float, float]]] = None,
    ) -> None:
        self._sizes: Dict[str, Size] = {}
        self._positions: Dict[str, Point] = {}
        for widget_id, (width, height) in (sizes or {}).items():
            self._sizes[widget_id] = Size(float(width), float(height))
        for widget_id, (x, y) in (positions or {}).items():
            self._positions[widget_id] = Point(float(x), float(y))

    def set_size(self, widget_id: str, width: float, height: float) -> None:
        self._sizes[widget_id] = Size(float(width), float(height))

    def set_position(self, widget_id: str, point: Point) -> None:
        self._positions[widget_id] = point

    def unmount(self, widget_id: str) -> None:
        self._sizes.pop(widget_id, None)
        self._positions.pop(widget_id, None)

    def widget_size(self, widget_id: str) -> Optional[Size]:
        return self._sizes.get(widget_id)

    def widget_rect(self, widget_id: str) -> Optional[Rect]:
        size = self._sizes.get(widget_id)
        position = self._positions.get(widget_id)
        if size is None or position is None:
            return None
        return Rect.at(position, size)
