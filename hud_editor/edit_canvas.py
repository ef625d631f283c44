from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Sequence

from PyQt6.QtCore import QPointF, QRectF, QSize, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QColor, QFocusEvent, QKeyEvent, QMouseEvent, QPainter, QPaintEvent, QPen, QResizeEvent
from PyQt6.QtWidgets import QFrame, QLabel, QVBoxLayout, QWidget

from hud_editor.input_bindings import BindingConfig, BindingManager
from hud_editor.qt_measurer import QtWidgetMeasurer
from hud_layout.debug_config import DebugConfig
from hud_layout.descriptors import LayoutOptions, WidgetDescriptor
from hud_layout.geometry import Point, Screen, Size
from hud_layout.layout_state import LayoutState
from hud_layout.layout_store import LayoutStore
from hud_layout.multi_selection import MultiSelectionController
from hud_layout.preferences import SNAP_LINE_DISPLAY_MS_DEFAULT
from hud_layout.snap_lines import SnapLine
from hud_layout.widget_catalog import nominal_widget_size

_LOGGER = logging.getLogger("HUDLayout.Editor")

SizeFn = Callable[[str, LayoutOptions], Optional[Size]]

_GRID_COLOR = QColor(255, 255, 255, 18)
_SELECTION_COLOR = QColor(80, 170, 255)
_MARQUEE_FILL = QColor(80, 170, 255, 40)
_DIRECT_LINE_COLOR = QColor(255, 90, 200)
_GAP_LINE_COLOR = QColor(90, 230, 140)


class WidgetFrame(QFrame):
    """Placeholder frame standing in for one HUD widget's rendered content."""

    def __init__(self, widget_id: str, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.widget_id = widget_id
        self._base_size = QSize(0, 0)
        self.setObjectName(f"hud-widget-{widget_id}")
        self.setFrameShape(QFrame.Shape.Box)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(2, 2, 2, 2)
        label = QLabel(widget_id, self)
        label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(label)

    def set_base_size(self, size: Size) -> None:
        self._base_size = QSize(int(round(size.width)), int(round(size.height)))
        self.updateGeometry()

    def sizeHint(self) -> QSize:  # noqa: N802 - Qt override
        return QSize(self._base_size)


class EditCanvas(QWidget):
    """Full-screen surface hosting widget frames and routing edit input to the selection controller."""

    snap_failed = pyqtSignal(str)

    def __init__(
        self,
        descriptors: Sequence[WidgetDescriptor],
        *,
        size_fn: SizeFn = nominal_widget_size,
        debug_config: DebugConfig = DebugConfig(),
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMouseTracking(False)
        self._size_fn = size_fn
        self._debug = debug_config
        self.measurer = QtWidgetMeasurer()
        self._frames: Dict[str, WidgetFrame] = {}
        for descriptor in descriptors:
            frame = WidgetFrame(descriptor.id, self)
            self._frames[descriptor.id] = frame
            self.measurer.register(descriptor.id, frame)
        self.store: Optional[LayoutStore] = None
        self.controller: Optional[MultiSelectionController] = None
        self.bindings: Optional[BindingManager] = None
        self._press_point: Optional[QPointF] = None
        self._dragging = False
        self._snap_line_ms = SNAP_LINE_DISPLAY_MS_DEFAULT
        self._snap_line_timer = QTimer(self)
        self._snap_line_timer.setSingleShot(True)
        self._snap_line_timer.timeout.connect(self._clear_snap_lines)
        self._options: Optional[LayoutOptions] = None

    def viewport(self) -> Screen:
        return Screen(float(self.width()), float(self.height()))

    def frame(self, widget_id: str) -> Optional[WidgetFrame]:
        return self._frames.get(widget_id)

    def apply_options(self, options: LayoutOptions) -> None:
        """Give every frame its natural size for the current layout options."""

        self._options = options
        for widget_id, frame in self._frames.items():
            size = self._size_fn(widget_id, options)
            if size is not None:
                frame.set_base_size(size)

    def attach(
        self,
        store: LayoutStore,
        controller: MultiSelectionController,
        *,
        bindings: Optional[BindingConfig] = None,
        snap_line_display_ms: int = SNAP_LINE_DISPLAY_MS_DEFAULT,
    ) -> None:
        self.store = store
        self.controller = controller
        self._snap_line_ms = max(0, int(snap_line_display_ms))
        self.apply_options(store.state.options)
        store.subscribe(self._on_state_changed)
        if bindings is not None:
            self.bindings = BindingManager(self, bindings)
            self._register_actions(self.bindings)
            self.bindings.activate()
        self.sync_frames()

    def _register_actions(self, manager: BindingManager) -> None:
        for direction in ("left", "right", "up", "down"):
            manager.register_action(f"nudge_{direction}", lambda d=direction: self.nudge(d, large=False))
            manager.register_action(f"nudge_{direction}_large", lambda d=direction: self.nudge(d, large=True))
            manager.register_action(f"jump_{direction}", lambda d=direction: self.jump(d))
        manager.register_action("toggle_edit_mode", self._toggle_edit_mode)
        manager.register_action("reset_layout", self._reset_layout)
        manager.register_action("clear_selection", self._clear_selection)

    # Store sync ----------------------------------------------------------

    def _on_state_changed(self, state: LayoutState) -> None:
        if state.options != self._options:
            self.apply_options(state.options)
        self.sync_frames()

    def sync_frames(self) -> None:
        if self.store is None or self.controller is None:
            return
        for widget_id, frame in self._frames.items():
            config = self.store.get_widget(widget_id)
            position = self.controller.display_position(widget_id)
            if config is None or position is None:
                frame.hide()
                continue
            hint = frame.sizeHint()
            frame.setGeometry(
                int(round(position.x)),
                int(round(position.y)),
                int(round(hint.width() * config.scale)),
                int(round(hint.height() * config.scale)),
            )
            frame.setVisible(self.store.is_widget_rendered(widget_id))
        self.update()

    # Mouse ---------------------------------------------------------------

    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt override
        if self.controller is None or event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        point = _point(event.position())
        additive = bool(event.modifiers() & Qt.KeyboardModifier.ControlModifier)
        widget_id = self.controller.widget_at(point)
        self._press_point = event.position()
        if widget_id is not None:
            self.controller.select_widget(widget_id, additive=additive)
            self._dragging = self.controller.begin_drag(widget_id)
        else:
            self._dragging = False
            self.controller.begin_marquee(point, additive=additive)
        self.setFocus()
        self.update()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt override
        if self.controller is None or self._press_point is None:
            super().mouseMoveEvent(event)
            return
        if self._dragging:
            delta = event.position() - self._press_point
            snap = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
            self.controller.drag_move(delta.x(), delta.y(), snap=snap)
            self.sync_frames()
            return
        self.controller.update_marquee(_point(event.position()))
        self.update()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802 - Qt override
        if self.controller is None or self._press_point is None:
            super().mouseReleaseEvent(event)
            return
        if self._dragging:
            self.controller.end_drag()
        else:
            self.controller.end_marquee()
        self._press_point = None
        self._dragging = False
        self.sync_frames()

    # Keyboard actions ------------------------------------------------------

    def nudge(self, direction: str, *, large: bool = False) -> None:
        if self.controller is None or self._dragging:
            return
        self.controller.nudge(direction, large=large)
        self.sync_frames()

    def jump(self, direction: str) -> None:
        if self.controller is None or self._dragging:
            return
        result = self.controller.jump(direction)
        if not result.found:
            self.snap_failed.emit(direction)
            return
        if result.snap_lines:
            self._snap_line_timer.start(self._snap_line_ms)
        self.sync_frames()

    def keyReleaseEvent(self, event: QKeyEvent) -> None:  # noqa: N802 - Qt override
        if not event.isAutoRepeat():
            self._commit_keyboard_moves()
        super().keyReleaseEvent(event)

    def focusOutEvent(self, event: QFocusEvent) -> None:  # noqa: N802 - Qt override
        self._commit_keyboard_moves()
        super().focusOutEvent(event)

    def _commit_keyboard_moves(self) -> None:
        if self.controller is not None and self.controller.has_pending_nudge:
            self.controller.commit_nudge()
            self.sync_frames()

    def _clear_snap_lines(self) -> None:
        if self.controller is not None and not self.controller.is_dragging:
            self.controller.clear_snap_lines()
            self.update()

    def _toggle_edit_mode(self) -> None:
        if self.store is not None:
            self._commit_keyboard_moves()
            self.store.toggle_edit_mode()

    def _reset_layout(self) -> None:
        if self.store is not None and not self.store.reset_layout():
            _LOGGER.debug("Reset shortcut ignored outside edit mode")

    def _clear_selection(self) -> None:
        if self.controller is not None:
            self.controller.clear_selection()
            self.update()

    # Painting --------------------------------------------------------------

    def resizeEvent(self, event: QResizeEvent) -> None:  # noqa: N802 - Qt override
        super().resizeEvent(event)
        self.update()

    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802 - Qt override
        if self.store is None or self.controller is None or not self.store.state.edit_mode:
            return
        painter = QPainter(self)
        try:
            painter.setRenderHint(QPainter.RenderHint.Antialiasing, False)
            state = self.store.state
            if state.snap_to_grid and state.grid_size > 0:
                self._paint_grid(painter, state.grid_size)
            self._paint_selection(painter)
            marquee = self.controller.marquee
            if marquee is not None:
                box = marquee.rect
                painter.setPen(QPen(_SELECTION_COLOR, 1, Qt.PenStyle.DashLine))
                painter.setBrush(_MARQUEE_FILL)
                painter.drawRect(QRectF(box.x, box.y, box.width, box.height))
            if self._debug.snap_guides:
                for line in self.controller.active_snap_lines:
                    self._paint_snap_line(painter, line)
        finally:
            painter.end()

    def _paint_grid(self, painter: QPainter, grid_size: int) -> None:
        # Sparse grid; every fifth line keeps large viewports readable.
        step = grid_size * 5
        painter.setPen(QPen(_GRID_COLOR, 1))
        for x in range(0, self.width(), step):
            painter.drawLine(x, 0, x, self.height())
        for y in range(0, self.height(), step):
            painter.drawLine(0, y, self.width(), y)

    def _paint_selection(self, painter: QPainter) -> None:
        painter.setBrush(Qt.BrushStyle.NoBrush)
        for widget_id in self.controller.selected_ids:
            frame = self._frames.get(widget_id)
            if frame is None or frame.isHidden():
                continue
            painter.setPen(QPen(_SELECTION_COLOR, 2))
            painter.drawRect(frame.geometry().adjusted(-2, -2, 1, 1))
        if self._debug.outline_widgets:
            painter.setPen(QPen(QColor(255, 255, 255, 60), 1, Qt.PenStyle.DotLine))
            for frame in self._frames.values():
                if not frame.isHidden():
                    painter.drawRect(frame.geometry())

    def _paint_snap_line(self, painter: QPainter, line: SnapLine) -> None:
        color = _GAP_LINE_COLOR if line.snap_type == "gap" else _DIRECT_LINE_COLOR
        painter.setPen(QPen(color, 1))
        if line.type == "vertical":
            painter.drawLine(QPointF(line.position, 0.0), QPointF(line.position, float(self.height())))
        else:
            painter.drawLine(QPointF(0.0, line.position), QPointF(float(self.width()), line.position))


def _point(position: QPointF) -> Point:
    return Point(float(position.x()), float(position.y()))
