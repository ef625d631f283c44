"""Resolve every widget's default rectangle in one dependency-respecting pass."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from hud_layout.dependency_graph import DependencyGraph, extract_dependencies
from hud_layout.descriptors import DEFAULT_LAYOUT_OPTIONS, LayoutOptions, WidgetDescriptor
from hud_layout.geometry import ZERO_SIZE, Point, Rect, Screen, Size, ViewportFn, clamp_position
from hud_layout.measurement import WidgetMeasurer

_LOGGER = logging.getLogger("HUDLayout.Engine")

DisabledFn = Callable[[str], bool]


def _never_disabled(widget_id: str) -> bool:
    return False


class LiveResolver:
    """Resolver backed by the rects computed so far in the current pass."""

    def __init__(
        self,
        resolved: Mapping[str, Rect],
        measurer: WidgetMeasurer,
        screen: Screen,
        *,
        is_disabled: DisabledFn,
        has_signaled_ready: bool,
        options: LayoutOptions,
    ) -> None:
        self._resolved = resolved
        self._measurer = measurer
        self.screen = screen
        self._is_disabled = is_disabled
        self.has_signaled_ready = has_signaled_ready
        self.options = options

    def get_widget_rect(self, widget_id: str) -> Optional[Rect]:
        return self._resolved.get(widget_id)

    def get_widget_current_rect(self, widget_id: str) -> Optional[Rect]:
        try:
            live = self._measurer.widget_rect(widget_id)
        except Exception:
            _LOGGER.debug("Measuring live rect for '%s' failed", widget_id, exc_info=True)
            live = None
        if live is not None:
            return live
        return self._resolved.get(widget_id)

    def get_widget_size(self, widget_id: str) -> Size:
        return measure_size(self._measurer, widget_id)

    def is_widget_disabled(self, widget_id: str) -> bool:
        try:
            return bool(self._is_disabled(widget_id))
        except Exception:
            return False


def measure_size(measurer: WidgetMeasurer, widget_id: str) -> Size:
    try:
        size = measurer.widget_size(widget_id)
    except Exception:
        _LOGGER.debug("Measuring size for '%s' failed", widget_id, exc_info=True)
        return ZERO_SIZE
    return size if size is not None else ZERO_SIZE


def resolve_defaults(
    descriptors: Sequence[WidgetDescriptor],
    measurer: WidgetMeasurer,
    screen: Screen,
    *,
    is_disabled: Optional[DisabledFn] = None,
    has_signaled_ready: bool = False,
    options: LayoutOptions = DEFAULT_LAYOUT_OPTIONS,
    order: Optional[Sequence[str]] = None,
    previous: Optional[Mapping[str, Rect]] = None,
) -> Dict[str, Rect]:
    """Compute default rects for ``descriptors`` in ``order`` (declaration order when omitted).

    A position function that raises keeps ``previous[id]`` (or the origin) so
    that every other widget still resolves.
    """

    by_id = {descriptor.id: descriptor for descriptor in descriptors}
    sequence = list(order) if order is not None else [descriptor.id for descriptor in descriptors]
    resolved: Dict[str, Rect] = {}
    resolver = LiveResolver(
        resolved,
        measurer,
        screen,
        is_disabled=is_disabled or _never_disabled,
        has_signaled_ready=has_signaled_ready,
        options=options,
    )
    for widget_id in sequence:
        descriptor = by_id.get(widget_id)
        if descriptor is None:
            continue
        size = measure_size(measurer, widget_id).scaled(descriptor.default_scale)
        try:
            point = descriptor.position_fn(widget_id, size, resolver)
        except Exception:
            _LOGGER.warning("Position function for widget '%s' failed; using fallback", widget_id, exc_info=True)
            fallback = (previous or {}).get(widget_id)
            point = fallback.origin if fallback is not None else Point(0.0, 0.0)
        resolved[widget_id] = Rect.at(clamp_position(point, screen), size)
    return resolved


class LayoutEngine:
    """Descriptor set, extracted dependency graph, measurer and viewport bundled together."""

    def __init__(
        self,
        descriptors: Sequence[WidgetDescriptor],
        measurer: WidgetMeasurer,
        viewport: ViewportFn,
        *,
        graph: Optional[DependencyGraph] = None,
    ) -> None:
        ids = [descriptor.id for descriptor in descriptors]
        if len(set(ids)) != len(ids):
            duplicates = sorted({widget_id for widget_id in ids if ids.count(widget_id) > 1})
            raise ValueError(f"Duplicate widget ids in descriptor set: {', '.join(duplicates)}")
        self._descriptors: Tuple[WidgetDescriptor, ...] = tuple(descriptors)
        self._by_id = {descriptor.id: descriptor for descriptor in self._descriptors}
        self.measurer = measurer
        self._viewport = viewport
        self.graph = graph if graph is not None else extract_dependencies(self._descriptors)
        self.order = self.graph.resolution_order()
        self._last_resolved: Dict[str, Rect] = {}

    @property
    def descriptors(self) -> Tuple[WidgetDescriptor, ...]:
        return self._descriptors

    @property
    def widget_ids(self) -> Tuple[str, ...]:
        return tuple(descriptor.id for descriptor in self._descriptors)

    def descriptor(self, widget_id: str) -> Optional[WidgetDescriptor]:
        return self._by_id.get(widget_id)

    def screen(self) -> Screen:
        return self._viewport()

    def dependents_of(self, widget_ids: Iterable[str]) -> Tuple[str, ...]:
        return self.graph.dependents_of(widget_ids)

    def resolve_defaults(
        self,
        *,
        options: LayoutOptions = DEFAULT_LAYOUT_OPTIONS,
        is_disabled: Optional[DisabledFn] = None,
        has_signaled_ready: bool = False,
    ) -> Dict[str, Rect]:
        resolved = resolve_defaults(
            self._descriptors,
            self.measurer,
            self._viewport(),
            is_disabled=is_disabled,
            has_signaled_ready=has_signaled_ready,
            options=options,
            order=self.order,
            previous=self._last_resolved,
        )
        self._last_resolved = dict(resolved)
        return resolved
