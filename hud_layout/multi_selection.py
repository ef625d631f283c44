"""Selection, marquee, group drag and keyboard nudging for the layout editor."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from hud_layout.geometry import Point, Rect, calc_group_clamp_adjust, snap_to_grid
from hud_layout.layout_state import LayoutState
from hud_layout.layout_store import LayoutStore
from hud_layout.preferences import (
    MAX_SNAP_SEARCH_DISTANCE_DEFAULT,
    PROXIMITY_WINDOW_DEFAULT,
    SNAP_THRESHOLD_DEFAULT,
    EditorPreferences,
)
from hud_layout.snap_lines import DIRECTIONS, SnapLine, find_next_snap_position, find_snap_lines
from hud_layout.widget_catalog import is_excluded_from_multi_select, is_widget_locked

_LOGGER = logging.getLogger("HUDLayout.Selection")

_DIRECTION_VECTORS = {
    "up": (0.0, -1.0),
    "down": (0.0, 1.0),
    "left": (-1.0, 0.0),
    "right": (1.0, 0.0),
}


@dataclass(frozen=True)
class MarqueeBox:
    start: Point
    end: Point

    @property
    def rect(self) -> Rect:
        return Rect.from_edges(
            min(self.start.x, self.end.x),
            min(self.start.y, self.end.y),
            max(self.start.x, self.end.x),
            max(self.start.y, self.end.y),
        )


@dataclass(frozen=True)
class NudgeResult:
    moved: bool
    found: bool = True
    positions: Dict[str, Point] = field(default_factory=dict)
    snap_lines: Tuple[SnapLine, ...] = ()


@dataclass
class _DragSession:
    primary_id: str
    start_positions: Dict[str, Point]
    rects: Dict[str, Rect]
    positions: Dict[str, Point] = field(default_factory=dict)


@dataclass
class _NudgeSession:
    start_positions: Dict[str, Point]
    positions: Dict[str, Point]
    reason: str = "nudge"


class MultiSelectionController:
    """Tracks the editor selection and turns pointer/keyboard input into group moves.

    Drag moves stay transient (``display_position``) until :meth:`end_drag`
    commits them to the store in one batch. Keyboard nudges and jumps are staged
    the same way until :meth:`commit_nudge` (key release).
    """

    def __init__(
        self,
        store: LayoutStore,
        *,
        snap_threshold: float = SNAP_THRESHOLD_DEFAULT,
        proximity_window: float = PROXIMITY_WINDOW_DEFAULT,
        max_snap_search_distance: float = MAX_SNAP_SEARCH_DISTANCE_DEFAULT,
        nudge_step: float = 1.0,
        nudge_step_large: float = 10.0,
    ) -> None:
        self._store = store
        self.snap_threshold = snap_threshold
        self.proximity_window = proximity_window
        self.max_snap_search_distance = max_snap_search_distance
        self.nudge_step = nudge_step
        self.nudge_step_large = nudge_step_large
        self._selected: List[str] = []
        self._marquee: Optional[MarqueeBox] = None
        self._marquee_base: Tuple[str, ...] = ()
        self._drag: Optional[_DragSession] = None
        self._nudge: Optional[_NudgeSession] = None
        self.active_snap_lines: Tuple[SnapLine, ...] = ()
        self._edit_mode = store.state.edit_mode
        store.subscribe(self._on_state_changed)

    @classmethod
    def from_preferences(cls, store: LayoutStore, preferences: EditorPreferences) -> "MultiSelectionController":
        return cls(
            store,
            snap_threshold=preferences.snap_threshold,
            proximity_window=preferences.proximity_window,
            max_snap_search_distance=preferences.max_snap_search_distance,
            nudge_step=preferences.nudge_step,
            nudge_step_large=preferences.nudge_step_large,
        )

    def _on_state_changed(self, state: LayoutState) -> None:
        if self._nudge is not None and self._nudge_is_stale():
            _LOGGER.debug("Dropping staged keyboard move after an external layout change")
            self._nudge = None
        if self._edit_mode and not state.edit_mode:
            self._nudge = None
            self.clear_selection()
            self.cancel_drag()
            self.cancel_marquee()
        self._edit_mode = state.edit_mode

    # Selection -------------------------------------------------------------

    @property
    def selected_ids(self) -> Tuple[str, ...]:
        return tuple(self._selected)

    def is_selected(self, widget_id: str) -> bool:
        return widget_id in self._selected

    def set_selection(self, widget_ids: Iterable[str]) -> None:
        self.commit_nudge()
        selection: List[str] = []
        for widget_id in widget_ids:
            if widget_id not in selection and self._store.is_widget_rendered(widget_id):
                selection.append(widget_id)
        if len(selection) > 1:
            selection = [widget_id for widget_id in selection if not is_excluded_from_multi_select(widget_id)]
        self._selected = selection

    def clear_selection(self) -> None:
        self.commit_nudge()
        self._selected = []

    def select_widget(self, widget_id: str, additive: bool = False) -> None:
        """Click semantics: modifier toggles membership, a plain click on an unselected widget replaces."""

        if not self._store.state.edit_mode or self._store.get_widget(widget_id) is None:
            return
        self.commit_nudge()
        if additive:
            if widget_id in self._selected:
                self._selected.remove(widget_id)
            elif is_excluded_from_multi_select(widget_id):
                _LOGGER.debug("Widget '%s' cannot join a multi-selection", widget_id)
            else:
                self._selected = [
                    selected for selected in self._selected if not is_excluded_from_multi_select(selected)
                ]
                self._selected.append(widget_id)
            return
        if widget_id not in self._selected:
            self._selected = [widget_id]

    def widget_at(self, point: Point) -> Optional[str]:
        """Topmost rendered widget under ``point`` (later widgets paint above earlier ones)."""

        rects = self._rects()
        for widget_id in reversed(self._store.rendered_widget_ids()):
            rect = rects.get(widget_id)
            if rect is not None and rect.contains(point):
                return widget_id
        return None

    # Marquee ---------------------------------------------------------------

    @property
    def marquee(self) -> Optional[MarqueeBox]:
        return self._marquee

    def begin_marquee(self, point: Point, additive: bool = False) -> bool:
        if not self._store.state.edit_mode or self.widget_at(point) is not None:
            return False
        self.commit_nudge()
        self._marquee = MarqueeBox(point, point)
        self._marquee_base = tuple(self._selected) if additive else ()
        if not additive:
            self.clear_selection()
        return True

    def update_marquee(self, point: Point) -> None:
        if self._marquee is not None:
            self._marquee = MarqueeBox(self._marquee.start, point)

    def end_marquee(self) -> Tuple[str, ...]:
        if self._marquee is None:
            return self.selected_ids
        box = self._marquee.rect
        rects = self._rects()
        hits = [
            widget_id
            for widget_id in self._store.rendered_widget_ids()
            if widget_id in rects
            and rects[widget_id].intersects(box)
            and not is_excluded_from_multi_select(widget_id)
        ]
        base = list(self._marquee_base)
        self.set_selection(base + [widget_id for widget_id in hits if widget_id not in base])
        self.cancel_marquee()
        _LOGGER.debug("Marquee selected %d widget(s)", len(self._selected))
        return self.selected_ids

    def cancel_marquee(self) -> None:
        self._marquee = None
        self._marquee_base = ()

    # Group drag ------------------------------------------------------------

    def _rects(self) -> Dict[str, Rect]:
        return self._store.widget_rects()

    def _group_for(self, primary_id: str) -> List[str]:
        members = list(self._selected) if primary_id in self._selected else [primary_id]
        return [widget_id for widget_id in members if not is_widget_locked(widget_id)]

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    def begin_drag(self, primary_id: str) -> bool:
        if not self._store.state.edit_mode or is_widget_locked(primary_id):
            return False
        self.commit_nudge()
        group = self._group_for(primary_id)
        starts = {}
        for widget_id in group:
            config = self._store.get_widget(widget_id)
            if config is not None:
                starts[widget_id] = config.position
        if primary_id not in starts:
            return False
        self._drag = _DragSession(primary_id=primary_id, start_positions=starts, rects=self._rects())
        self._drag.positions = dict(starts)
        return True

    def drag_move(self, dx: float, dy: float, snap: bool = False) -> Dict[str, Point]:
        """Move the dragged group by the pointer delta since :meth:`begin_drag`.

        Only the primary widget is aligned (snap lines when ``snap``, else the
        grid when enabled); the resulting offset and one shared clamp apply to
        the whole group.
        """

        session = self._drag
        if session is None:
            return {}
        raw = {widget_id: start.offset(dx, dy) for widget_id, start in session.start_positions.items()}
        primary_raw = raw[session.primary_id]
        primary = primary_raw
        lines: Tuple[SnapLine, ...] = ()
        state = self._store.state
        if snap:
            result = find_snap_lines(
                session.primary_id,
                primary_raw,
                self._store.rendered_widget_ids(),
                session.rects,
                self.snap_threshold,
                exclude_ids=session.start_positions.keys(),
                proximity_window=self.proximity_window,
            )
            primary = result.snapped_position
            lines = result.snap_lines
        elif state.snap_to_grid:
            primary = snap_to_grid(primary_raw, state.grid_size)
        offset_x = primary.x - primary_raw.x
        offset_y = primary.y - primary_raw.y
        moved = {widget_id: point.offset(offset_x, offset_y) for widget_id, point in raw.items()}
        session.positions = self._clamp_group(moved, session.rects)
        self.active_snap_lines = lines
        return dict(session.positions)

    def display_position(self, widget_id: str) -> Optional[Point]:
        if self._drag is not None and widget_id in self._drag.positions:
            return self._drag.positions[widget_id]
        if self._nudge is not None and widget_id in self._nudge.positions:
            return self._nudge.positions[widget_id]
        config = self._store.get_widget(widget_id)
        return config.position if config is not None else None

    def end_drag(self) -> Dict[str, Point]:
        session = self._drag
        self._drag = None
        self.active_snap_lines = ()
        if session is None:
            return {}
        changed = {
            widget_id: point
            for widget_id, point in session.positions.items()
            if point != session.start_positions.get(widget_id)
        }
        if changed:
            self._store.update_widget_positions(changed, reason="group_drag")
        return changed

    def cancel_drag(self) -> None:
        self._drag = None
        self.active_snap_lines = ()

    def _clamp_group(self, positions: Mapping[str, Point], rects: Mapping[str, Rect]) -> Dict[str, Point]:
        adjust_x, adjust_y = calc_group_clamp_adjust(positions.keys(), positions, rects, self._store.engine.screen())
        return {widget_id: point.offset(adjust_x, adjust_y) for widget_id, point in positions.items()}

    # Keyboard ----------------------------------------------------------------

    def _keyboard_group(self, primary_id: Optional[str]) -> Tuple[Optional[str], List[str]]:
        movable = [widget_id for widget_id in self._selected if not is_widget_locked(widget_id)]
        if not movable:
            return None, []
        if primary_id not in movable:
            primary_id = movable[-1]
        return primary_id, movable

    def _stage_offset(self, group: Iterable[str], dx: float, dy: float, reason: str) -> Dict[str, Point]:
        session = self._nudge
        if session is None or set(session.positions) != set(group):
            self.commit_nudge()
            starts = {}
            for widget_id in group:
                config = self._store.get_widget(widget_id)
                if config is not None:
                    starts[widget_id] = config.position
            session = _NudgeSession(start_positions=starts, positions=dict(starts))
        moved = {widget_id: point.offset(dx, dy) for widget_id, point in session.positions.items()}
        positions = self._clamp_group(moved, self._rects())
        changed = {
            widget_id: point for widget_id, point in positions.items() if point != session.positions[widget_id]
        }
        session.positions = positions
        session.reason = reason
        self._nudge = session
        return changed

    def _nudge_is_stale(self) -> bool:
        session = self._nudge
        for widget_id, start in session.start_positions.items():
            config = self._store.get_widget(widget_id)
            if config is None or config.position != start:
                return True
        return False

    @property
    def has_pending_nudge(self) -> bool:
        return self._nudge is not None

    def commit_nudge(self) -> Dict[str, Point]:
        """Write staged keyboard moves to the store as one change."""

        session = self._nudge
        self._nudge = None
        if session is None:
            return {}
        changed = {
            widget_id: point
            for widget_id, point in session.positions.items()
            if point != session.start_positions.get(widget_id)
        }
        if changed:
            self._store.update_widget_positions(changed, reason=session.reason)
        return changed

    def cancel_nudge(self) -> None:
        self._nudge = None

    def nudge(self, direction: str, large: bool = False) -> NudgeResult:
        """Stage a step move of the selection; the store sees it on :meth:`commit_nudge`."""

        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown nudge direction '{direction}'")
        if not self._store.state.edit_mode:
            return NudgeResult(moved=False)
        _primary, group = self._keyboard_group(None)
        if not group:
            return NudgeResult(moved=False)
        step = self.nudge_step_large if large else self.nudge_step
        unit_x, unit_y = _DIRECTION_VECTORS[direction]
        changed = self._stage_offset(group, unit_x * step, unit_y * step, "nudge")
        return NudgeResult(moved=bool(changed), positions=changed)

    def jump(self, direction: str, primary_id: Optional[str] = None) -> NudgeResult:
        """Move the selection to the next alignment stop in ``direction``.

        Staged like :meth:`nudge`. ``found=False`` leaves every position untouched.
        """

        if direction not in DIRECTIONS:
            raise ValueError(f"Unknown jump direction '{direction}'")
        if not self._store.state.edit_mode:
            return NudgeResult(moved=False, found=False)
        primary_id, group = self._keyboard_group(primary_id)
        if primary_id is None:
            return NudgeResult(moved=False, found=False)
        origin = self.display_position(primary_id)
        result = find_next_snap_position(
            primary_id,
            origin,
            direction,
            self._store.rendered_widget_ids(),
            self._rects(),
            exclude_ids=group,
            max_distance=self.max_snap_search_distance,
        )
        if not result.found or result.position is None:
            _LOGGER.debug("No snap stop %s of '%s'", direction, primary_id)
            return NudgeResult(moved=False, found=False)
        changed = self._stage_offset(group, result.position.x - origin.x, result.position.y - origin.y, "jump")
        lines: Tuple[SnapLine, ...] = (result.snap_line,) if result.snap_line is not None else ()
        self.active_snap_lines = lines
        return NudgeResult(moved=bool(changed), found=True, positions=changed, snap_lines=lines)

    def clear_snap_lines(self) -> None:
        self.active_snap_lines = ()
