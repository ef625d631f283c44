from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Deque, Dict, Iterable, Optional, Sequence, Tuple

from hud_layout.debug_config import DebugConfig
from hud_layout.geometry import Point, Rect, is_position_close

if TYPE_CHECKING:
    from hud_layout.layout_store import LayoutStore

_LOGGER = logging.getLogger("HUDLayout.Relayout")

AfterLayoutFn = Callable[[Callable[[], None]], object]


def run_immediately(callback: Callable[[], None]) -> object:
    """Continuation for headless use: there is no render pass to wait for."""

    callback()
    return None


@dataclass
class RelayoutSession:
    setting: str
    anchors: Tuple[str, ...]
    old_defaults: Dict[str, Rect]
    tolerance: float
    candidates: Tuple[str, ...] = ()
    hidden: Tuple[str, ...] = ()
    moved: Dict[str, Point] = field(default_factory=dict)


@dataclass(frozen=True)
class _PendingChange:
    setting: str
    affected_ids: Tuple[str, ...]
    apply: Callable[[], None]


class AutoRelayoutCoordinator:
    """Re-flows widgets still sitting at their default after a size-affecting setting changes.

    A change runs in three steps: capture the current defaults of the anchors and
    everything that depends on them, apply the setting, then (once the rendering
    layer has had a chance to re-measure) move only the widgets whose position
    still matches the captured default. Changes requested while a session is
    pending are queued and run in order after its commit.
    """

    def __init__(
        self,
        store: "LayoutStore",
        after_layout: AfterLayoutFn = run_immediately,
        *,
        debug_config: DebugConfig = DebugConfig(),
    ) -> None:
        self._store = store
        self._after_layout = after_layout
        self._debug = debug_config
        self._pending: Optional[RelayoutSession] = None
        self._queue: Deque[_PendingChange] = deque()
        self.last_session: Optional[RelayoutSession] = None

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    def change_setting(self, setting: str, affected_ids: Sequence[str], apply: Callable[[], None]) -> None:
        change = _PendingChange(setting, tuple(affected_ids), apply)
        if self._pending is not None:
            _LOGGER.debug("Queueing %s change behind pending %s relayout", setting, self._pending.setting)
            self._queue.append(change)
            return
        self._start(change)

    def _start(self, change: _PendingChange) -> None:
        session = self.start_auto_relayout(change.affected_ids, change.setting)
        self._pending = session
        try:
            change.apply()
        except Exception:
            self._store.show_widgets(session.hidden)
            self._pending = None
            raise
        self._after_layout(lambda: self.run_auto_relayout(session))

    def start_auto_relayout(self, affected_ids: Iterable[str], setting: str = "") -> RelayoutSession:
        """Capture old defaults and hide the widgets that are still sitting on them."""

        anchors = tuple(dict.fromkeys(affected_ids))
        scope = anchors + self._store.engine.dependents_of(anchors)
        old_defaults = self._store.capture_default_rects(scope)
        tolerance = self._store.position_tolerance()
        candidates = []
        for widget_id in scope:
            config = self._store.get_widget(widget_id)
            old = old_defaults.get(widget_id)
            if config is None or old is None:
                continue
            at_default = is_position_close(config.position, old.origin, tolerance)
            self._trace(
                widget_id,
                "capture %s: position=%s default=%s candidate=%s",
                setting,
                config.position,
                old.origin,
                at_default,
            )
            if at_default:
                candidates.append(widget_id)
        session = RelayoutSession(
            setting=setting,
            anchors=anchors,
            old_defaults=old_defaults,
            tolerance=tolerance,
            candidates=tuple(candidates),
            hidden=tuple(candidates),
        )
        self._store.hide_widgets(session.hidden)
        _LOGGER.debug(
            "Auto-relayout for %s: scope=%s candidates=%s",
            setting or "<direct>",
            ", ".join(scope) or "-",
            ", ".join(candidates) or "-",
        )
        return session

    def run_auto_relayout(self, session: RelayoutSession) -> Dict[str, Point]:
        """Recompute defaults and move candidates that are still at their captured default."""

        try:
            moves = self._commit(session)
        finally:
            self._store.show_widgets(session.hidden)
            if self._pending is session:
                self._pending = None
            self.last_session = session
        self._drain()
        return moves

    def _commit(self, session: RelayoutSession) -> Dict[str, Point]:
        new_defaults = self._store.resolve_defaults()
        moves: Dict[str, Point] = {}
        for widget_id in session.candidates:
            config = self._store.get_widget(widget_id)
            old = session.old_defaults.get(widget_id)
            new = new_defaults.get(widget_id)
            if config is None or old is None or new is None:
                continue
            if not is_position_close(config.position, old.origin, session.tolerance):
                self._trace(widget_id, "skip: moved by user to %s since capture", config.position)
                continue
            if new.origin != config.position:
                moves[widget_id] = new.origin
                self._trace(widget_id, "move %s -> %s", config.position, new.origin)
        if moves:
            self._store.update_widget_positions(moves, reason="auto_relayout")
        session.moved = moves
        _LOGGER.debug("Auto-relayout for %s moved %d widget(s)", session.setting or "<direct>", len(moves))
        return moves

    def _drain(self) -> None:
        if self._pending is not None or not self._queue:
            return
        self._start(self._queue.popleft())

    def _trace(self, widget_id: str, message: str, *args: object) -> None:
        if self._debug.traces(widget_id):
            _LOGGER.debug("[%s] " + message, widget_id, *args)
