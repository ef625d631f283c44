"""Configurable key bindings for the layout editor."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional

if TYPE_CHECKING:
    from PyQt6.QtWidgets import QWidget

_LOGGER = logging.getLogger("HUDLayout.Editor")

KEYBINDINGS_FILE = "keybindings.json"
DEFAULT_SCHEME = "keyboard_default"

DEFAULT_BINDINGS: Dict[str, List[str]] = {
    "nudge_left": ["Left"],
    "nudge_right": ["Right"],
    "nudge_up": ["Up"],
    "nudge_down": ["Down"],
    "nudge_left_large": ["Ctrl+Left"],
    "nudge_right_large": ["Ctrl+Right"],
    "nudge_up_large": ["Ctrl+Up"],
    "nudge_down_large": ["Ctrl+Down"],
    "jump_left": ["Shift+Left"],
    "jump_right": ["Shift+Right"],
    "jump_up": ["Shift+Up"],
    "jump_down": ["Shift+Down"],
    "toggle_edit_mode": ["F7"],
    "reset_layout": ["Ctrl+Shift+R"],
    "clear_selection": ["Escape"],
}

DEFAULT_CONFIG = {
    "active_scheme": DEFAULT_SCHEME,
    "schemes": {
        DEFAULT_SCHEME: {
            "device_type": "keyboard",
            "display_name": "Keyboard (default)",
            "bindings": DEFAULT_BINDINGS,
        }
    },
}

ShortcutFactory = Callable[[str, "QWidget", Callable[[], None]], object]


@dataclass
class ControlScheme:
    name: str
    device_type: str
    display_name: str
    bindings: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, name: str, entry: Mapping[str, Any]) -> "ControlScheme":
        raw_bindings = entry.get("bindings") or {}
        return cls(
            name=name,
            device_type=str(entry.get("device_type", "keyboard")),
            display_name=str(entry.get("display_name", name)),
            bindings={str(action): [str(seq) for seq in (sequences or [])] for action, sequences in raw_bindings.items()},
        )

    def sequences_for(self, action: str) -> List[str]:
        """Bound sequences, falling back to the defaults for actions the file predates."""

        if action in self.bindings:
            return list(self.bindings[action])
        return list(DEFAULT_BINDINGS.get(action, ()))


@dataclass
class BindingConfig:
    """Representation of the keybindings file contents."""

    schemes: Dict[str, ControlScheme]
    active_scheme: str
    source_path: Path

    @classmethod
    def load(cls, path: Path) -> "BindingConfig":
        """Load config from disk, creating the default file if missing."""

        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(DEFAULT_CONFIG, indent=2), encoding="utf-8")
            _LOGGER.info("Wrote default key bindings to %s", path)

        payload = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"Keybindings file {path} must contain a JSON object")
        schemes = {
            str(name): ControlScheme.from_payload(str(name), entry)
            for name, entry in (payload.get("schemes") or {}).items()
            if isinstance(entry, Mapping)
        }
        active = payload.get("active_scheme")
        if active not in schemes:
            raise ValueError(f"Active scheme '{active}' is not defined in keybindings file {path}")
        return cls(schemes=schemes, active_scheme=active, source_path=path)

    def get_scheme(self, name: Optional[str] = None) -> ControlScheme:
        scheme_name = name or self.active_scheme
        scheme = self.schemes.get(scheme_name)
        if scheme is None:
            raise ValueError(f"Unknown control scheme '{scheme_name}'")
        return scheme


def qt_shortcut(sequence: str, widget: "QWidget", handler: Callable[[], None]) -> object:
    from PyQt6.QtCore import Qt
    from PyQt6.QtGui import QKeySequence, QShortcut

    key_sequence = QKeySequence(sequence)
    if key_sequence.isEmpty():
        raise ValueError(f"Unrecognised key sequence '{sequence}'")
    shortcut = QShortcut(key_sequence, widget)
    shortcut.setContext(Qt.ShortcutContext.WidgetWithChildrenShortcut)
    shortcut.activated.connect(handler)
    return shortcut


class BindingManager:
    """Installs one shortcut per bound sequence for every registered editor action."""

    def __init__(
        self,
        widget: "QWidget",
        config: BindingConfig,
        *,
        shortcut_factory: ShortcutFactory = qt_shortcut,
    ) -> None:
        self.widget = widget
        self.config = config
        self._factory = shortcut_factory
        self._handlers: Dict[str, Callable[[], None]] = {}
        self._shortcuts: List[object] = []

    def register_action(self, action_name: str, handler: Callable[[], None]) -> None:
        self._handlers[action_name] = handler

    def activate(self, scheme_name: Optional[str] = None) -> None:
        self.deactivate()
        scheme = self.config.get_scheme(scheme_name)
        for action, handler in self._handlers.items():
            for sequence in scheme.sequences_for(action):
                normalized = sequence.strip()
                if not normalized:
                    _LOGGER.warning("Skipping invalid binding '%s' for action %s", sequence, action)
                    continue
                try:
                    shortcut = self._factory(normalized, self.widget, handler)
                except ValueError as exc:
                    _LOGGER.warning("Skipping invalid binding '%s' for action %s: %s", normalized, action, exc)
                    continue
                self._shortcuts.append(shortcut)
        _LOGGER.debug("Activated %d shortcut(s) from scheme '%s'", len(self._shortcuts), scheme.name)

    def deactivate(self) -> None:
        for shortcut in self._shortcuts:
            set_enabled = getattr(shortcut, "setEnabled", None)
            if callable(set_enabled):
                set_enabled(False)
            delete_later = getattr(shortcut, "deleteLater", None)
            if callable(delete_later):
                delete_later()
        self._shortcuts.clear()

    @property
    def active_shortcuts(self) -> int:
        return len(self._shortcuts)
