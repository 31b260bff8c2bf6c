"""Pointer and keyboard events through pyautogui.

pyautogui is imported lazily: it needs a display at import time, and the
rest of the service (tests included) must load without one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from models.agent_models import Point

LOGGER = logging.getLogger(__name__)


def _pyautogui():
    import pyautogui

    # Slamming the pointer into a screen corner aborts automation.
    pyautogui.FAILSAFE = True
    # Pauses are managed by the callers.
    pyautogui.PAUSE = 0.0
    return pyautogui


class PyAutoGuiInputSynthesizer:
    """Emit synthesized input at absolute screen coordinates."""

    async def warp_pointer(self, point: Point) -> None:
        await asyncio.to_thread(lambda: _pyautogui().moveTo(point.x, point.y))

    async def press(self, point: Point, button: str = "left") -> None:
        await asyncio.to_thread(lambda: _pyautogui().mouseDown(x=point.x, y=point.y, button=button))

    async def release(self, point: Point, button: str = "left") -> None:
        await asyncio.to_thread(lambda: _pyautogui().mouseUp(x=point.x, y=point.y, button=button))

    async def key_press(self, key: str, modifiers: Sequence[str] = ()) -> None:
        def _down() -> None:
            gui = _pyautogui()
            for modifier in modifiers:
                gui.keyDown(modifier)
            gui.keyDown(key)

        await asyncio.to_thread(_down)

    async def key_release(self, key: str, modifiers: Sequence[str] = ()) -> None:
        def _up() -> None:
            gui = _pyautogui()
            gui.keyUp(key)
            for modifier in reversed(modifiers):
                gui.keyUp(modifier)

        await asyncio.to_thread(_up)

    async def type_text(self, text: str, interval: float = 0.05) -> None:
        await asyncio.to_thread(lambda: _pyautogui().write(text, interval=interval))

    async def scroll(self, vertical: int = 0, horizontal: int = 0) -> None:
        """Post scroll-wheel events at the current pointer position.

        Positive `vertical` scrolls up and positive `horizontal` scrolls left,
        matching the wheel deltas macOS reports.
        """

        def _scroll() -> None:
            gui = _pyautogui()
            if vertical:
                gui.scroll(vertical)
            if horizontal:
                gui.hscroll(horizontal)

        await asyncio.to_thread(_scroll)

    async def beep(self) -> None:
        print("\a", end="", flush=True)
