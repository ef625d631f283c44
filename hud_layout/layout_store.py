"""Mutable layout state with persistence, resets and auto-relayout orchestration."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from hud_layout.auto_relayout import AfterLayoutFn, AutoRelayoutCoordinator, run_immediately
from hud_layout.debug_config import DebugConfig
from hud_layout.descriptors import MINIMAP_SHAPES, SPEEDOMETER_TYPES, STATUS_DESIGNS
from hud_layout.geometry import Point, Rect, clamp_position
from hud_layout.layout_persistence import LayoutPersistence
from hud_layout.layout_state import (
    LayoutState,
    LayoutStateError,
    ResolvedWidgetConfig,
    default_layout_state,
    default_widget_configs,
    parse_layout_blob,
)
from hud_layout.position_resolver import LayoutEngine, measure_size
from hud_layout.preferences import POSITION_TOLERANCE_BASE_DEFAULT
from hud_layout.widget_catalog import anchors_for_setting

_LOGGER = logging.getLogger("HUDLayout.Store")

Listener = Callable[[LayoutState], None]
HostNotifier = Callable[[str, object], None]


class LayoutStore:
    """Owns the single :class:`LayoutState`; every mutation goes through here."""

    def __init__(
        self,
        engine: LayoutEngine,
        persistence: Optional[LayoutPersistence] = None,
        *,
        after_layout: AfterLayoutFn = run_immediately,
        is_disabled: Optional[Callable[[str], bool]] = None,
        host_notifier: Optional[HostNotifier] = None,
        position_tolerance_base: float = POSITION_TOLERANCE_BASE_DEFAULT,
        debug_config: DebugConfig = DebugConfig(),
    ) -> None:
        self._engine = engine
        self._persistence = persistence
        self._is_disabled = is_disabled
        self._host_notifier = host_notifier
        self._tolerance_base = max(0.0, float(position_tolerance_base))
        self._listeners: List[Listener] = []
        self._hidden: Set[str] = set()
        self.has_signaled_ready = False
        self._state = self._load_initial_state()
        self.relayout = AutoRelayoutCoordinator(self, after_layout, debug_config=debug_config)

    # State access --------------------------------------------------------

    @property
    def state(self) -> LayoutState:
        return self._state

    @property
    def engine(self) -> LayoutEngine:
        return self._engine

    @property
    def widgets(self) -> Tuple[ResolvedWidgetConfig, ...]:
        return self._state.widgets

    def get_widget(self, widget_id: str) -> Optional[ResolvedWidgetConfig]:
        return self._state.widget(widget_id)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def position_tolerance(self) -> float:
        """Pixel slack for "still at its default" checks; grid rounding widens it."""

        if self._state.snap_to_grid:
            return self._tolerance_base + float(self._state.grid_size)
        return self._tolerance_base

    def widget_rects(self) -> Dict[str, Rect]:
        """Current rect per widget: stored position plus live (or measured) size."""

        rects: Dict[str, Rect] = {}
        measurer = self._engine.measurer
        for config in self._state.widgets:
            try:
                live = measurer.widget_rect(config.id)
            except Exception:
                live = None
            size = live.size if live is not None else measure_size(measurer, config.id).scaled(config.scale)
            rects[config.id] = Rect.at(config.position, size)
        return rects

    # Loading / persistence ------------------------------------------------

    def _load_initial_state(self) -> LayoutState:
        descriptors = self._engine.descriptors
        defaults = default_layout_state(descriptors)
        if self._persistence is None:
            return defaults
        raw = self._persistence.load()
        if raw is None:
            return defaults
        try:
            merged = parse_layout_blob(raw, descriptors)
        except LayoutStateError as exc:
            _LOGGER.warning("Discarding persisted layout (%s); falling back to defaults", exc)
            return defaults
        state = merged.state
        if merged.dropped:
            _LOGGER.info("Dropped unknown widgets from persisted layout: %s", ", ".join(merged.dropped))
        if merged.appended:
            resolved = self._resolve(state)
            appended = set(merged.appended)
            state = state.with_widgets(
                [
                    replace(config, position=resolved[config.id].origin)
                    if config.id in appended and config.id in resolved
                    else config
                    for config in state.widgets
                ]
            )
            _LOGGER.info("Added new widgets at their defaults: %s", ", ".join(merged.appended))
        return self._clamped(state)

    def _commit(self, state: LayoutState, reason: str) -> None:
        if state == self._state:
            return
        self._state = state
        _LOGGER.debug("Layout state updated (%s)", reason)
        if self._persistence is not None:
            self._persistence.save(state.to_blob())
        self._emit(reason)

    def _emit(self, reason: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                _LOGGER.exception("Layout listener failed after %s", reason)

    def _notify_host(self, setting: str, value: object) -> None:
        if self._host_notifier is None:
            return
        try:
            self._host_notifier(setting, value)
        except Exception:
            _LOGGER.warning("Host notification for %s=%s failed", setting, value, exc_info=True)

    # Defaults ------------------------------------------------------------

    def _resolve(self, state: LayoutState) -> Dict[str, Rect]:
        return self._engine.resolve_defaults(
            options=state.options,
            is_disabled=self._is_disabled,
            has_signaled_ready=self.has_signaled_ready,
        )

    def resolve_defaults(self) -> Dict[str, Rect]:
        return self._resolve(self._state)

    def capture_default_rects(self, widget_ids: Iterable[str]) -> Dict[str, Rect]:
        wanted = set(widget_ids)
        return {widget_id: rect for widget_id, rect in self.resolve_defaults().items() if widget_id in wanted}

    def mark_ready(self) -> None:
        self.has_signaled_ready = True

    def _clamp(self, point: Point) -> Point:
        return clamp_position(point, self._engine.screen())

    def _clamped(self, state: LayoutState) -> LayoutState:
        return state.with_widgets([replace(config, position=self._clamp(config.position)) for config in state.widgets])

    # Widget edits --------------------------------------------------------

    def _replace_widgets(self, updates: Mapping[str, Mapping[str, object]], reason: str) -> bool:
        known = {config.id for config in self._state.widgets}
        unknown = [widget_id for widget_id in updates if widget_id not in known]
        if unknown:
            _LOGGER.debug("Ignoring %s for unknown widgets: %s", reason, ", ".join(unknown))
        if len(unknown) == len(updates):
            return False
        widgets = [
            replace(config, **updates[config.id]) if config.id in updates else config
            for config in self._state.widgets
        ]
        self._commit(self._state.with_widgets(widgets), reason)
        return True

    def update_widget_position(self, widget_id: str, position: Point) -> bool:
        return self._replace_widgets({widget_id: {"position": self._clamp(position)}}, "update_widget_position")

    def update_widget_positions(self, positions: Mapping[str, Point], *, reason: str = "update_widget_positions") -> bool:
        """Commit several positions as one state change (group drag, relayout)."""

        if not positions:
            return False
        updates = {widget_id: {"position": self._clamp(point)} for widget_id, point in positions.items()}
        return self._replace_widgets(updates, reason)

    def update_widget_scale(self, widget_id: str, scale: float) -> bool:
        if scale <= 0:
            raise ValueError(f"Widget scale must be positive, got {scale}")
        return self._replace_widgets({widget_id: {"scale": float(scale)}}, "update_widget_scale")

    def toggle_widget_visibility(self, widget_id: str) -> bool:
        config = self.get_widget(widget_id)
        if config is None:
            _LOGGER.debug("Ignoring visibility toggle for unknown widget '%s'", widget_id)
            return False
        return self._replace_widgets({widget_id: {"visible": not config.visible}}, "toggle_widget_visibility")

    def reset_widget(self, widget_id: str) -> bool:
        descriptor = self._engine.descriptor(widget_id)
        config = self.get_widget(widget_id)
        if descriptor is None or config is None:
            _LOGGER.debug("Ignoring reset for unknown widget '%s'", widget_id)
            return False
        rect = self.resolve_defaults().get(widget_id)
        position = self._clamp(rect.origin) if rect is not None else config.position
        return self._replace_widgets(
            {widget_id: {"position": position, "scale": descriptor.default_scale}},
            "reset_widget",
        )

    def distribute_widgets(self) -> None:
        """First-run placement: move every widget to its resolved default."""

        resolved = self.resolve_defaults()
        widgets = [
            replace(config, position=self._clamp(resolved[config.id].origin)) if config.id in resolved else config
            for config in self._state.widgets
        ]
        self._commit(replace(self._state.with_widgets(widgets), widgets_distributed=True), "distribute_widgets")

    def reset_layout(self, force: bool = False) -> bool:
        """Rebuild the whole widget set at its defaults.

        Outside edit mode only a forced (host-initiated) reset is honoured.
        """

        if not force and not self._state.edit_mode:
            _LOGGER.debug("Layout reset ignored outside edit mode")
            return False
        resolved = self.resolve_defaults()
        widgets = [
            replace(config, position=self._clamp(resolved[config.id].origin)) if config.id in resolved else config
            for config in default_widget_configs(self._engine.descriptors)
        ]
        self._commit(
            replace(
                self._state,
                widgets=tuple(widgets),
                edit_mode=True,
                widgets_distributed=True,
            ),
            "reset_layout",
        )
        _LOGGER.info("Layout reset to defaults (force=%s)", force)
        return True

    # Global settings -----------------------------------------------------

    def toggle_edit_mode(self) -> None:
        self._commit(replace(self._state, edit_mode=not self._state.edit_mode), "toggle_edit_mode")

    def set_edit_mode(self, enabled: bool) -> None:
        self._commit(replace(self._state, edit_mode=bool(enabled)), "set_edit_mode")

    def set_snap_to_grid(self, enabled: bool) -> None:
        self._commit(replace(self._state, snap_to_grid=bool(enabled)), "set_snap_to_grid")

    def set_grid_size(self, grid_size: int) -> None:
        if grid_size <= 0:
            raise ValueError(f"Grid size must be positive, got {grid_size}")
        self._commit(replace(self._state, grid_size=int(grid_size)), "set_grid_size")

    def set_hud_scale(self, scale: float) -> None:
        if scale <= 0:
            raise ValueError(f"HUD scale must be positive, got {scale}")
        self._commit(replace(self._state, hud_scale=float(scale)), "set_hud_scale")

    def set_status_design(self, design: str) -> None:
        self._change_layout_setting("status_design", design, STATUS_DESIGNS)

    def set_minimap_shape(self, shape: str) -> None:
        self._change_layout_setting("minimap_shape", shape, MINIMAP_SHAPES)

    def set_speedometer_type(self, speedometer_type: str) -> None:
        self._change_layout_setting("speedometer_type", speedometer_type, SPEEDOMETER_TYPES)

    def _change_layout_setting(self, setting: str, value: str, choices: Sequence[str]) -> None:
        if value not in choices:
            raise ValueError(f"Unknown {setting} '{value}'; expected one of {', '.join(choices)}")

        def _apply() -> None:
            if getattr(self._state, setting) == value:
                return
            self._commit(replace(self._state, **{setting: value}), f"set_{setting}")
            self._notify_host(setting, value)

        self.relayout.change_setting(setting, anchors_for_setting(setting), _apply)

    # Transient visibility --------------------------------------------------

    def hide_widgets(self, widget_ids: Iterable[str]) -> None:
        ids = set(widget_ids) - self._hidden
        if ids:
            self._hidden.update(ids)
            self._emit("hide_widgets")

    def show_widgets(self, widget_ids: Iterable[str]) -> None:
        ids = set(widget_ids) & self._hidden
        if ids:
            self._hidden.difference_update(ids)
            self._emit("show_widgets")

    @property
    def hidden_ids(self) -> frozenset:
        return frozenset(self._hidden)

    def is_widget_rendered(self, widget_id: str) -> bool:
        config = self.get_widget(widget_id)
        return config is not None and config.visible and widget_id not in self._hidden

    def rendered_widget_ids(self) -> List[str]:
        return [config.id for config in self._state.widgets if config.visible and config.id not in self._hidden]
