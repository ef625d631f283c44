from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from hud_editor.input_bindings import (
    DEFAULT_CONFIG,
    KEYBINDINGS_FILE,
    BindingConfig,
    BindingManager,
    ControlScheme,
)


class FakeShortcuts:
    """Shortcut factory stand-in that records sequences and can simulate rejects."""

    def __init__(self, *, fail_sequences: set[str] | None = None) -> None:
        self.created: list[str] = []
        self.fail_sequences = fail_sequences or set()

    def __call__(self, sequence, widget, handler):
        if sequence in self.fail_sequences:
            raise ValueError(f"Unrecognised key sequence '{sequence}'")
        self.created.append(sequence)
        return _FakeShortcut(sequence)


class _FakeShortcut:
    def __init__(self, sequence: str) -> None:
        self.sequence = sequence
        self.enabled = True
        self.deleted = False

    def setEnabled(self, value: bool) -> None:  # noqa: N802 - mirrors QShortcut
        self.enabled = value

    def deleteLater(self) -> None:  # noqa: N802 - mirrors QShortcut
        self.deleted = True


def _make_config(bindings: dict[str, list[str]]) -> BindingConfig:
    scheme = ControlScheme(
        name="test",
        device_type="keyboard",
        display_name="Test",
        bindings=bindings,
    )
    return BindingConfig(
        schemes={"test": scheme},
        active_scheme="test",
        source_path=Path("dummy"),
    )


def test_activate_skips_invalid_sequences_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    factory = FakeShortcuts(fail_sequences={"Hyper+Q"})
    config = _make_config({"jump_left": ["Shift+Left", "Hyper+Q"]})
    manager = BindingManager(object(), config, shortcut_factory=factory)
    manager.register_action("jump_left", lambda: None)

    with caplog.at_level(logging.WARNING, logger="HUDLayout.Editor"):
        manager.activate()

    assert factory.created == ["Shift+Left"]
    assert manager.active_shortcuts == 1
    assert any("Hyper+Q" in record.getMessage() for record in caplog.records)


def test_activate_skips_empty_sequences(caplog: pytest.LogCaptureFixture) -> None:
    factory = FakeShortcuts()
    config = _make_config({"nudge_left": ["", "   ", "Left"]})
    manager = BindingManager(object(), config, shortcut_factory=factory)
    manager.register_action("nudge_left", lambda: None)

    with caplog.at_level(logging.WARNING, logger="HUDLayout.Editor"):
        manager.activate()

    assert factory.created == ["Left"]
    empty_warnings = [record for record in caplog.records if "Skipping invalid binding" in record.getMessage()]
    assert len(empty_warnings) == 2


def test_unregistered_actions_are_ignored_and_deactivate_releases() -> None:
    factory = FakeShortcuts()
    config = _make_config({"nudge_left": ["Left"], "reset_layout": ["Ctrl+Shift+R"]})
    manager = BindingManager(object(), config, shortcut_factory=factory)
    manager.register_action("nudge_left", lambda: None)
    manager.activate()
    assert factory.created == ["Left"]

    manager.deactivate()
    assert manager.active_shortcuts == 0


def test_load_creates_default_file(tmp_path: Path) -> None:
    path = tmp_path / "config" / KEYBINDINGS_FILE
    config = BindingConfig.load(path)
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8")) == DEFAULT_CONFIG
    scheme = config.get_scheme()
    assert scheme.bindings["toggle_edit_mode"] == ["F7"]
    assert scheme.bindings["jump_left"] == ["Shift+Left"]


def test_load_rejects_unknown_active_scheme(tmp_path: Path) -> None:
    path = tmp_path / KEYBINDINGS_FILE
    path.write_text(json.dumps({"active_scheme": "pad", "schemes": {}}), encoding="utf-8")
    with pytest.raises(ValueError):
        BindingConfig.load(path)


def test_get_scheme_unknown_name_raises() -> None:
    config = _make_config({})
    with pytest.raises(ValueError):
        config.get_scheme("missing")


def test_actions_missing_from_scheme_use_default_sequences() -> None:
    factory = FakeShortcuts()
    config = _make_config({"nudge_left": ["A"]})
    manager = BindingManager(object(), config, shortcut_factory=factory)
    manager.register_action("nudge_left", lambda: None)
    manager.register_action("clear_selection", lambda: None)
    manager.activate()
    assert factory.created == ["A", "Escape"]
