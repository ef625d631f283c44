"""JSON file storage for the layout blob."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

LAYOUT_FILENAME = "hud_layout.json"

_LOGGER = logging.getLogger("HUDLayout.Store")


class LayoutPersistence:
    """Reads and atomically writes a single layout blob."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[Any]:
        """Return the decoded blob, or None when missing or unreadable."""

        try:
            raw_text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            _LOGGER.warning("Failed to read layout file %s: %s", self._path, exc)
            return None
        try:
            return json.loads(raw_text)
        except (ValueError, RecursionError) as exc:
            _LOGGER.warning("Layout file %s is not valid JSON: %s", self._path, exc)
            return None

    def save(self, blob: Mapping[str, Any]) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(json.dumps(blob, indent=2, sort_keys=True), encoding="utf-8")
            tmp_path.replace(self._path)
            return True
        except Exception as exc:
            _LOGGER.warning("Failed to write layout file %s: %s", self._path, exc)
            return False


def resolve_layout_path(root: Optional[Path] = None) -> Path:
    """Return the layout file path rooted at the given folder."""

    base = root if root is not None else Path.cwd()
    return base / LAYOUT_FILENAME
