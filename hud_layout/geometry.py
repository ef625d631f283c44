"""Rectangle and viewport helpers shared by the layout engine (pure, no Qt)."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Tuple


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def offset(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    def scaled(self, scale: float) -> "Size":
        return Size(self.width * scale, self.height * scale)


ZERO_SIZE = Size(0.0, 0.0)


@dataclass(frozen=True)
class Screen:
    width: float
    height: float


ViewportFn = Callable[[], Screen]


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in viewport coordinates.

    ``right`` and ``bottom`` are stored alongside the origin so edge comparisons
    never have to recompute them.
    """

    x: float
    y: float
    width: float
    height: float
    right: float = field(init=False)
    bottom: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "right", self.x + self.width)
        object.__setattr__(self, "bottom", self.y + self.height)

    @classmethod
    def at(cls, point: Point, size: Size) -> "Rect":
        return cls(point.x, point.y, size.width, size.height)

    @classmethod
    def from_edges(cls, left: float, top: float, right: float, bottom: float) -> "Rect":
        return cls(min(left, right), min(top, bottom), abs(right - left), abs(bottom - top))

    @property
    def origin(self) -> Point:
        return Point(self.x, self.y)

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2.0

    def moved_to(self, point: Point) -> "Rect":
        return Rect(point.x, point.y, self.width, self.height)

    def contains(self, point: Point) -> bool:
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom

    def intersects(self, other: "Rect") -> bool:
        # Open interval: rects that only share an edge do not intersect.
        return (
            self.x < other.right
            and self.right > other.x
            and self.y < other.bottom
            and self.bottom > other.y
        )


def _finite(value: float, fallback: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return number


def clamp_position(point: Point, screen: Screen) -> Point:
    """Clamp a widget origin into ``[0, width] x [0, height]``."""

    width = max(0.0, _finite(screen.width))
    height = max(0.0, _finite(screen.height))
    x = _finite(point.x)
    y = _finite(point.y)
    return Point(max(0.0, min(width, x)), max(0.0, min(height, y)))


def snap_to_grid(point: Point, grid_size: float) -> Point:
    if grid_size <= 0:
        return point
    return Point(round(point.x / grid_size) * grid_size, round(point.y / grid_size) * grid_size)


def bounding_rect(rects: Iterable[Rect]) -> Optional[Rect]:
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for rect in rects:
        min_x = min(min_x, rect.x)
        min_y = min(min_y, rect.y)
        max_x = max(max_x, rect.right)
        max_y = max(max_y, rect.bottom)
    if min_x == math.inf:
        return None
    return Rect.from_edges(min_x, min_y, max_x, max_y)


def calc_group_clamp_adjust(
    widget_ids: Iterable[str],
    new_positions: Mapping[str, Point],
    rects: Mapping[str, Rect],
    screen: Screen,
) -> Tuple[float, float]:
    """Return one shared (dx, dy) that pushes the whole group back into the viewport."""

    moved = []
    for widget_id in widget_ids:
        position = new_positions.get(widget_id)
        rect = rects.get(widget_id)
        if position is None or rect is None:
            continue
        moved.append(rect.moved_to(position))
    box = bounding_rect(moved)
    if box is None:
        return 0.0, 0.0
    return _axis_adjust(box.x, box.right, screen.width), _axis_adjust(box.y, box.bottom, screen.height)


def _axis_adjust(low: float, high: float, limit: float) -> float:
    if low < 0:
        return -low
    if high > limit:
        return limit - high
    return 0.0


def is_position_close(a: Point, b: Point, tolerance: float) -> bool:
    return abs(a.x - b.x) <= tolerance and abs(a.y - b.y) <= tolerance
