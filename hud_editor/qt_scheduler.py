from __future__ import annotations

from typing import Callable

from PyQt6.QtCore import QTimer

LAYOUT_PASSES = 2


def qt_after_layout(callback: Callable[[], None], passes: int = LAYOUT_PASSES) -> object:
    """Run ``callback`` once Qt has drained ``passes`` rounds of posted events.

    Resize and layout-request events posted by a setting change are processed
    before a zero-timeout timer fires, so the chained hops let frames pick up
    their new size hints before the relayout re-measures them.
    """

    def _step(remaining: int) -> None:
        if remaining <= 0:
            callback()
            return
        QTimer.singleShot(0, lambda: _step(remaining - 1))

    _step(max(1, int(passes)))
    return None
