"""Measure HUD widget frames through their live ``QWidget`` geometry."""
from __future__ import annotations

from typing import Dict, Optional

from PyQt6.QtWidgets import QWidget

from hud_layout.geometry import Rect, Size


class QtWidgetMeasurer:
    """Measurer over registered widget frames.

    ``widget_size`` reports the unscaled natural size (the frame's size hint);
    ``widget_rect`` reports where the frame currently sits inside its parent.
    Hidden or unregistered frames count as not mounted.
    """

    def __init__(self) -> None:
        self._frames: Dict[str, QWidget] = {}

    def register(self, widget_id: str, frame: QWidget) -> None:
        self._frames[widget_id] = frame

    def unregister(self, widget_id: str) -> None:
        self._frames.pop(widget_id, None)

    def frame(self, widget_id: str) -> Optional[QWidget]:
        return self._frames.get(widget_id)

    def widget_size(self, widget_id: str) -> Optional[Size]:
        frame = self._frames.get(widget_id)
        if frame is None:
            return None
        hint = frame.sizeHint()
        if not hint.isValid():
            hint = frame.size()
        return Size(float(hint.width()), float(hint.height()))

    def widget_rect(self, widget_id: str) -> Optional[Rect]:
        frame = self._frames.get(widget_id)
        if frame is None or frame.isHidden():
            return None
        geometry = frame.geometry()
        return Rect(float(geometry.x()), float(geometry.y()), float(geometry.width()), float(geometry.height()))
