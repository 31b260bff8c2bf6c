"""Operator-driven input against the mirror window.

These actions bypass the model: coordinates are relative to the mirror
window's top-left corner and every action brings the window to the front
first so the events land in it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Sequence, Tuple

from models.agent_models import Direction, Point
from models.task_errors import CaptureUnavailable

LOGGER = logging.getLogger(__name__)

KEY_ALIASES = {
    "cmd": "command",
    "opt": "option",
    "alt": "option",
    "ctrl": "ctrl",
    "return": "enter",
}

# Up and down swipes ignore the intensity.
VERTICAL_SWIPE_DELTA = 50
VERTICAL_SWIPE_EVENTS = 5

# Home screen, app switcher and Spotlight in iPhone Mirroring.
NAMED_SHORTCUTS = {
    "home": "cmd+1",
    "app_switcher": "cmd+2",
    "spotlight": "cmd+3",
}


def parse_key_combo(combo: str) -> Tuple[str, List[str]]:
    """Split `cmd+shift+a` into (`a`, [`command`, `shift`])."""
    combo = NAMED_SHORTCUTS.get(combo.strip().lower(), combo)
    parts = [part.strip().lower() for part in combo.split("+") if part.strip()]
    if not parts:
        raise ValueError("Key combination must not be empty")
    keys = [KEY_ALIASES.get(part, part) for part in parts]
    return keys[-1], keys[:-1]


class ManualControls:
    """Click, swipe, type and send shortcuts to the mirror window.

    Args:
        capture: Provider used to find and focus the window.
        synthesizer: Input synthesizer emitting the events.
        settle_seconds: Wait after activating the window.
        click_interval: Gap between the two clicks of a double click.
        scroll_interval: Gap between the scroll events of a swipe.
        hold_seconds: How long a click or key is held down.
    """

    def __init__(
        self,
        capture: Any,
        synthesizer: Any,
        *,
        settle_seconds: float = 0.2,
        click_interval: float = 0.1,
        scroll_interval: float = 0.05,
        hold_seconds: float = 0.05,
        sleep=asyncio.sleep,
    ) -> None:
        self.capture = capture
        self.synthesizer = synthesizer
        self.settle_seconds = settle_seconds
        self.click_interval = click_interval
        self.scroll_interval = scroll_interval
        self.hold_seconds = hold_seconds
        self.sleep = sleep

    async def _activate(self):
        window = await self.capture.find_target_window()
        if window is None:
            raise CaptureUnavailable("Mirror window not found")
        await self.capture.focus(window)
        await self.sleep(self.settle_seconds)
        return window

    async def _click_once(self, point: Point) -> None:
        await self.synthesizer.warp_pointer(point)
        await self.synthesizer.press(point)
        await self.sleep(self.hold_seconds)
        await self.synthesizer.release(point)

    async def click(self, x: int, y: int) -> Dict[str, Any]:
        window = await self._activate()
        point = window.rect.clamp(Point(window.rect.left + x, window.rect.top + y))
        await self._click_once(point)
        LOGGER.info("Manual click at (%d, %d)", point.x, point.y)
        return {"action": "click", "x": point.x, "y": point.y}

    async def double_click(self, x: int, y: int) -> Dict[str, Any]:
        window = await self._activate()
        point = window.rect.clamp(Point(window.rect.left + x, window.rect.top + y))
        await self._click_once(point)
        await self.sleep(self.click_interval)
        await self._click_once(point)
        LOGGER.info("Manual double click at (%d, %d)", point.x, point.y)
        return {"action": "double_click", "x": point.x, "y": point.y}

    async def swipe(self, direction: str, intensity: int = 100, multiplier: int = 2) -> Dict[str, Any]:
        """Scroll the mirror window, which iPhone Mirroring turns into a swipe.

        Left and right post `multiplier` horizontal scrolls of `intensity`
        pixels. Up and down always post five vertical scrolls of 50 pixels.
        """
        parsed = Direction.parse(direction)
        if intensity <= 0 or multiplier <= 0:
            raise ValueError("intensity and multiplier must be positive")
        if parsed in (Direction.LEFT, Direction.RIGHT):
            delta = intensity if parsed is Direction.LEFT else -intensity
            events = [(0, delta)] * multiplier
        else:
            delta = VERTICAL_SWIPE_DELTA if parsed is Direction.UP else -VERTICAL_SWIPE_DELTA
            events = [(delta, 0)] * VERTICAL_SWIPE_EVENTS

        await self.synthesizer.beep()
        await self._activate()
        for vertical, horizontal in events:
            await self.synthesizer.scroll(vertical=vertical, horizontal=horizontal)
            await self.sleep(self.scroll_interval)
        LOGGER.info("Manual swipe %s: %d scroll events of %d", parsed.value, len(events), delta)
        return {
            "action": "swipe",
            "direction": parsed.value,
            "events": len(events),
            "delta": delta,
        }

    async def type_text(self, text: str, press_return: bool = False) -> Dict[str, Any]:
        await self._activate()
        for char in text:
            await self.synthesizer.type_text(char)
        if press_return:
            await self.press_keys("enter", [])
        return {"action": "text", "characters": len(text), "return": press_return}

    async def press_keys(self, key: str, modifiers: Sequence[str]) -> None:
        await self.synthesizer.key_press(key, modifiers)
        await self.sleep(self.hold_seconds)
        await self.synthesizer.key_release(key, modifiers)

    async def key_combo(self, combo: str) -> Dict[str, Any]:
        key, modifiers = parse_key_combo(combo)
        await self._activate()
        await self.press_keys(key, modifiers)
        LOGGER.info("Manual key combo %s", "+".join([*modifiers, key]))
        return {"action": "key", "key": key, "modifiers": modifiers}
