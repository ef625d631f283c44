from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QApplication

from hud_editor.edit_canvas import EditCanvas
from hud_editor.input_bindings import KEYBINDINGS_FILE, BindingConfig
from hud_editor.qt_scheduler import qt_after_layout
from hud_layout.debug_config import (
    DEBUG_CONFIG_ENABLED,
    load_dev_settings,
    load_troubleshooting_config,
)
from hud_layout.layout_persistence import LayoutPersistence, resolve_layout_path
from hud_layout.layout_store import LayoutStore
from hud_layout.logging_utils import configure_logging, resolve_logs_dir
from hud_layout.multi_selection import MultiSelectionController
from hud_layout.position_resolver import LayoutEngine
from hud_layout.preferences import EditorPreferences
from hud_layout.version import DEV_MODE_ENV_VAR
from hud_layout.widget_catalog import default_widget_descriptors

_LOGGER = logging.getLogger("HUDLayout.Editor")


def resolve_config_dir(value: Optional[str]) -> Path:
    if value:
        return Path(value).expanduser().resolve()
    env_override = os.getenv("HUD_LAYOUT_CONFIG_DIR")
    if env_override:
        return Path(env_override).expanduser().resolve()
    xdg = os.getenv("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return (base / "hud-layout").resolve()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="HUD widget layout editor")
    parser.add_argument("--config-dir", help="Folder holding the layout, preferences and keybindings")
    parser.add_argument("--width", type=int, default=1280, help="Initial canvas width")
    parser.add_argument("--height", type=int, default=720, help="Initial canvas height")
    args = parser.parse_args(argv)

    config_dir = resolve_config_dir(args.config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)
    preferences = EditorPreferences(config_dir)
    troubleshooting = load_troubleshooting_config(config_dir / "debug.json", enabled=DEBUG_CONFIG_ENABLED)
    retention = troubleshooting.logs_to_keep or preferences.log_retention
    configure_logging(
        resolve_logs_dir(config_dir),
        debug_enabled=preferences.debug_logging or DEBUG_CONFIG_ENABLED,
        retention=retention,
    )
    preferences.write_defaults_if_missing()
    debug_config = load_dev_settings(config_dir / "dev_settings.json")
    if not DEBUG_CONFIG_ENABLED:
        _LOGGER.debug(
            "dev_settings.json ignored (release mode). Export %s=1 or use a -dev version to enable trace toggles.",
            DEV_MODE_ENV_VAR,
        )

    app = QApplication.instance() or QApplication([])
    descriptors = default_widget_descriptors()
    canvas = EditCanvas(descriptors, debug_config=debug_config)
    canvas.resize(args.width, args.height)
    engine = LayoutEngine(descriptors, canvas.measurer, canvas.viewport)
    store = LayoutStore(
        engine,
        LayoutPersistence(resolve_layout_path(config_dir)),
        after_layout=qt_after_layout,
        position_tolerance_base=preferences.position_tolerance_base,
        debug_config=debug_config,
    )
    controller = MultiSelectionController.from_preferences(store, preferences)
    canvas.attach(
        store,
        controller,
        bindings=BindingConfig.load(config_dir / KEYBINDINGS_FILE),
        snap_line_display_ms=preferences.snap_line_display_ms,
    )
    canvas.setWindowTitle("HUD Layout Editor")
    canvas.show()

    def _on_ready() -> None:
        store.mark_ready()
        if not store.state.widgets_distributed:
            store.distribute_widgets()
        store.set_edit_mode(True)
        _LOGGER.info("Editor ready with %d widgets", len(store.widgets))

    qt_after_layout(_on_ready)
    QTimer.singleShot(0, canvas.setFocus)
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
