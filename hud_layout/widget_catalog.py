"""Default widget set for the HUD and the settings that change widget geometry.

Declaration order matters for readability only: the engine derives the real
resolution order from the extracted dependency graph.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from hud_layout.descriptors import DEFAULT_LAYOUT_OPTIONS, LayoutOptions, PositionResolver, WidgetDescriptor
from hud_layout.geometry import Point, Rect, Size

SCREEN_MARGIN = 20.0
WIDGET_GAP = 10.0
MINIMAP_FALLBACK_SIZE = Size(260.0, 200.0)

STATUS_WIDGET_IDS: Tuple[str, ...] = (
    "health",
    "armor",
    "hunger",
    "thirst",
    "stamina",
    "stress",
    "oxygen",
)

LAYOUT_SETTING_ANCHORS: Dict[str, Tuple[str, ...]] = {
    "status_design": STATUS_WIDGET_IDS,
    "minimap_shape": ("minimap",),
    "speedometer_type": ("speedometer",),
}

LOCKED_WIDGETS: FrozenSet[str] = frozenset({"minimap"})
WIDGETS_EXCLUDED_FROM_MULTI_SELECT: FrozenSet[str] = frozenset({"minimap"})


def is_widget_locked(widget_id: str) -> bool:
    return widget_id in LOCKED_WIDGETS


def is_excluded_from_multi_select(widget_id: str) -> bool:
    return widget_id in WIDGETS_EXCLUDED_FROM_MULTI_SELECT


def _minimap(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    height = element.height
    if height <= 0 and not resolver.has_signaled_ready:
        height = MINIMAP_FALLBACK_SIZE.height
    return Point(SCREEN_MARGIN, resolver.screen.height - height - SCREEN_MARGIN)


def _minimap_anchor(resolver: PositionResolver) -> Rect:
    rect = resolver.get_widget_rect("minimap")
    if rect is not None and rect.width > 0:
        return rect
    screen = resolver.screen
    return Rect(
        SCREEN_MARGIN,
        screen.height - MINIMAP_FALLBACK_SIZE.height - SCREEN_MARGIN,
        MINIMAP_FALLBACK_SIZE.width,
        MINIMAP_FALLBACK_SIZE.height,
    )


def _location(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    anchor = _minimap_anchor(resolver)
    return Point(anchor.x, anchor.y - element.height - WIDGET_GAP)


def _previous_status(widget_id: str, resolver: PositionResolver) -> Optional[Rect]:
    index = STATUS_WIDGET_IDS.index(widget_id)
    for previous_id in reversed(STATUS_WIDGET_IDS[:index]):
        if resolver.is_widget_disabled(previous_id):
            continue
        rect = resolver.get_widget_rect(previous_id)
        if rect is not None:
            return rect
    return None


def _status(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    previous = _previous_status(widget_id, resolver)
    if previous is not None:
        return Point(previous.right + WIDGET_GAP, previous.bottom - element.height)
    anchor = _minimap_anchor(resolver)
    return Point(anchor.right + WIDGET_GAP, anchor.bottom - element.height)


def _voice(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    screen = resolver.screen
    return Point((screen.width - element.width) / 2.0, screen.height - element.height - SCREEN_MARGIN)


def _speedometer(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    screen = resolver.screen
    return Point(
        screen.width - element.width - SCREEN_MARGIN * 2,
        screen.height - element.height - SCREEN_MARGIN * 2,
    )


def _vehicle_name(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    anchor = resolver.get_widget_rect("speedometer")
    if anchor is None:
        screen = resolver.screen
        return Point(screen.width - element.width - SCREEN_MARGIN, screen.height / 2.0)
    return Point(anchor.center_x - element.width / 2.0, anchor.y - element.height - WIDGET_GAP)


def _compass(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    return Point((resolver.screen.width - element.width) / 2.0, SCREEN_MARGIN)


def _clock(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    return Point(resolver.screen.width - element.width - SCREEN_MARGIN, SCREEN_MARGIN)


def _below_right_aligned(anchor_id: str):
    def _position(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
        anchor = resolver.get_widget_rect(anchor_id)
        if anchor is None:
            return Point(resolver.screen.width - element.width - SCREEN_MARGIN, SCREEN_MARGIN)
        return Point(anchor.right - element.width, anchor.bottom + WIDGET_GAP)

    return _position


def _notifications(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    return Point(SCREEN_MARGIN, resolver.screen.height * 0.35)


def _chat(widget_id: str, element: Size, resolver: PositionResolver) -> Point:
    return Point(SCREEN_MARGIN, SCREEN_MARGIN)


def default_widget_descriptors() -> List[WidgetDescriptor]:
    descriptors = [
        WidgetDescriptor("minimap", "minimap", _minimap),
        WidgetDescriptor("location", "location", _location),
    ]
    for status_id in STATUS_WIDGET_IDS:
        descriptors.append(
            WidgetDescriptor(
                status_id,
                status_id,
                _status,
                default_visible=status_id not in {"stress", "oxygen"},
            )
        )
    descriptors.extend(
        [
            WidgetDescriptor("voice", "voice", _voice),
            WidgetDescriptor("speedometer", "speedometer", _speedometer),
            WidgetDescriptor("vehicle_name", "vehicle_name", _vehicle_name),
            WidgetDescriptor("compass", "compass", _compass),
            WidgetDescriptor("clock", "clock", _clock),
            WidgetDescriptor("money", "money", _below_right_aligned("clock")),
            WidgetDescriptor("server_info", "server_info", _below_right_aligned("money"), default_visible=False),
            WidgetDescriptor("notifications", "notifications", _notifications),
            WidgetDescriptor("chat", "chat", _chat),
        ]
    )
    return descriptors


def anchors_for_setting(setting: str) -> Sequence[str]:
    return LAYOUT_SETTING_ANCHORS.get(setting, ())


# Nominal rendered sizes used by the editor frames and the CLI when nothing is measured.
STATUS_SIZES: Dict[str, Size] = {
    "circular": Size(48.0, 48.0),
    "bar": Size(160.0, 14.0),
    "vertical": Size(14.0, 60.0),
    "minimal": Size(36.0, 36.0),
    "arc": Size(56.0, 40.0),
}
MINIMAP_SIZES: Dict[str, Size] = {
    "square": MINIMAP_FALLBACK_SIZE,
    "circle": Size(220.0, 220.0),
}
SPEEDOMETER_SIZES: Dict[str, Size] = {
    "car": Size(180.0, 90.0),
    "boat": Size(180.0, 90.0),
    "plane": Size(200.0, 120.0),
    "helicopter": Size(200.0, 120.0),
}
FIXED_SIZES: Dict[str, Size] = {
    "location": Size(260.0, 40.0),
    "voice": Size(120.0, 32.0),
    "vehicle_name": Size(180.0, 24.0),
    "compass": Size(400.0, 40.0),
    "clock": Size(120.0, 32.0),
    "money": Size(160.0, 56.0),
    "server_info": Size(200.0, 48.0),
    "notifications": Size(320.0, 160.0),
    "chat": Size(420.0, 240.0),
}


def nominal_widget_size(widget_id: str, options: LayoutOptions = DEFAULT_LAYOUT_OPTIONS) -> Optional[Size]:
    if widget_id in STATUS_WIDGET_IDS:
        return STATUS_SIZES.get(options.status_design)
    if widget_id == "minimap":
        return MINIMAP_SIZES.get(options.minimap_shape)
    if widget_id == "speedometer":
        return SPEEDOMETER_SIZES.get(options.speedometer_type)
    return FIXED_SIZES.get(widget_id)
