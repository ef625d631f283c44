"""Static widget descriptors and the resolver capability handed to position functions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from hud_layout.geometry import Point, Rect, Screen, Size

STATUS_DESIGNS = ("circular", "bar", "vertical", "minimal", "arc")
MINIMAP_SHAPES = ("square", "circle")
SPEEDOMETER_TYPES = ("car", "plane", "boat", "helicopter")


@dataclass(frozen=True)
class LayoutOptions:
    """Layout-affecting settings visible to position functions."""

    status_design: str = "circular"
    minimap_shape: str = "square"
    speedometer_type: str = "car"


DEFAULT_LAYOUT_OPTIONS = LayoutOptions()


class PositionResolver(Protocol):
    screen: Screen
    has_signaled_ready: bool
    options: LayoutOptions

    def get_widget_rect(self, widget_id: str) -> Optional[Rect]:
        """Default rect resolved so far in this pass, or None."""

    def get_widget_current_rect(self, widget_id: str) -> Optional[Rect]:
        """Live measured rect when mounted, else the resolved default."""

    def get_widget_size(self, widget_id: str) -> Size:
        """Measured size (zero when not mounted)."""

    def is_widget_disabled(self, widget_id: str) -> bool:
        ...


PositionFn = Callable[[str, Size, PositionResolver], Point]


@dataclass(frozen=True)
class WidgetDescriptor:
    id: str
    type: str
    position_fn: PositionFn
    default_visible: bool = True
    default_scale: float = 1.0
