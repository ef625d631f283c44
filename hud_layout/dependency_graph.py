"""Discover which widgets each default position reads, and who must follow whom.

Every position function is dry-run once against a recording resolver. The ids
it queries become its direct dependencies; the reverse transitive closure of
that map tells the relayout code which widgets to reconsider when an anchor
changes size.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from hud_layout.descriptors import DEFAULT_LAYOUT_OPTIONS, LayoutOptions, WidgetDescriptor
from hud_layout.geometry import Rect, Screen, Size

_LOGGER = logging.getLogger("HUDLayout.Engine")

MOCK_RECT = Rect(0.0, 0.0, 100.0, 100.0)
MOCK_SIZE = Size(100.0, 100.0)
MOCK_SCREEN = Screen(1920.0, 1080.0)


class DependencyCycleError(RuntimeError):
    """Raised when widget position functions depend on each other in a loop."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle: Tuple[str, ...] = tuple(cycle)
        super().__init__("Widget position dependency cycle: " + " -> ".join(self.cycle))


class RecordingResolver:
    """Resolver stand-in that records every widget id a position function asks about."""

    def __init__(self, options: LayoutOptions = DEFAULT_LAYOUT_OPTIONS) -> None:
        self.screen = MOCK_SCREEN
        self.has_signaled_ready = False
        self.options = options
        self.trace: List[str] = []

    def get_widget_rect(self, widget_id: str) -> Rect:
        self.trace.append(widget_id)
        return MOCK_RECT

    def get_widget_current_rect(self, widget_id: str) -> Rect:
        self.trace.append(widget_id)
        return MOCK_RECT

    def get_widget_size(self, widget_id: str) -> Size:
        return MOCK_SIZE

    def is_widget_disabled(self, widget_id: str) -> bool:
        return False


@dataclass(frozen=True)
class DependencyGraph:
    order: Tuple[str, ...]
    direct: Mapping[str, FrozenSet[str]]
    dependents: Mapping[str, Tuple[str, ...]]

    def dependencies_of(self, widget_id: str) -> FrozenSet[str]:
        return self.direct.get(widget_id, frozenset())

    def dependents_of(self, widget_ids: Iterable[str]) -> Tuple[str, ...]:
        """Everything that follows any of ``widget_ids``, excluding the anchors themselves."""

        anchors = set(widget_ids)
        found: Set[str] = set()
        for anchor in anchors:
            found.update(self.dependents.get(anchor, ()))
        found -= anchors
        return tuple(widget_id for widget_id in self.order if widget_id in found)

    def resolution_order(self) -> Tuple[str, ...]:
        """Topological order, ties broken by declaration order."""

        position = {widget_id: index for index, widget_id in enumerate(self.order)}
        remaining: Dict[str, Set[str]] = {
            widget_id: set(self.direct.get(widget_id, ())) for widget_id in self.order
        }
        resolved: List[str] = []
        done: Set[str] = set()
        while remaining:
            ready = [widget_id for widget_id, deps in remaining.items() if deps <= done]
            if not ready:
                raise DependencyCycleError(self._find_cycle(remaining))
            ready.sort(key=position.__getitem__)
            for widget_id in ready:
                resolved.append(widget_id)
                done.add(widget_id)
                del remaining[widget_id]
        return tuple(resolved)

    def _find_cycle(self, remaining: Mapping[str, Set[str]]) -> List[str]:
        start = min(remaining, key=self.order.index)
        path: List[str] = []
        seen: Dict[str, int] = {}
        current: Optional[str] = start
        while current is not None and current not in seen:
            seen[current] = len(path)
            path.append(current)
            candidates = [dep for dep in self.order if dep in remaining.get(current, ()) and dep in remaining]
            current = candidates[0] if candidates else None
        if current is None:
            return path
        return path[seen[current]:] + [current]


def _record_dependencies(descriptor: WidgetDescriptor, options: LayoutOptions) -> Set[str]:
    resolver = RecordingResolver(options)
    try:
        descriptor.position_fn(descriptor.id, MOCK_SIZE, resolver)
    except Exception:
        _LOGGER.warning(
            "Position function for widget '%s' raised during dependency extraction; treating as independent",
            descriptor.id,
            exc_info=True,
        )
        return set()
    return {widget_id for widget_id in resolver.trace if widget_id != descriptor.id}


def reverse_closure(order: Sequence[str], direct: Mapping[str, Iterable[str]]) -> Dict[str, Tuple[str, ...]]:
    """Invert ``direct`` and propagate until no new edges appear."""

    reverse: Dict[str, Set[str]] = {widget_id: set() for widget_id in order}
    for widget_id, deps in direct.items():
        for dep in deps:
            reverse.setdefault(dep, set()).add(widget_id)
    changed = True
    while changed:
        changed = False
        for anchor, followers in reverse.items():
            extra: Set[str] = set()
            for follower in followers:
                extra.update(reverse.get(follower, ()))
            extra -= followers
            extra.discard(anchor)
            if extra:
                followers.update(extra)
                changed = True
    return {
        anchor: tuple(widget_id for widget_id in order if widget_id in reverse.get(anchor, ()))
        for anchor in order
    }


def extract_dependencies(
    descriptors: Sequence[WidgetDescriptor],
    options: LayoutOptions = DEFAULT_LAYOUT_OPTIONS,
) -> DependencyGraph:
    order = tuple(descriptor.id for descriptor in descriptors)
    known = set(order)
    direct: Dict[str, FrozenSet[str]] = {}
    for descriptor in descriptors:
        deps = _record_dependencies(descriptor, options)
        unknown = deps - known
        if unknown:
            _LOGGER.warning(
                "Widget '%s' reads unknown widget ids %s; ignoring them",
                descriptor.id,
                ", ".join(sorted(unknown)),
            )
        direct[descriptor.id] = frozenset(deps & known)
    dependents = reverse_closure(order, direct)
    _LOGGER.debug(
        "Extracted widget dependencies: %s",
        ", ".join(f"{widget_id}<-{sorted(deps)}" for widget_id, deps in direct.items() if deps) or "none",
    )
    return DependencyGraph(order=order, direct=direct, dependents=dependents)
