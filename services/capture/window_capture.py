"""Locate and capture the device mirror window.

Window discovery uses the Quartz window list on macOS and the window list
bundled with pyautogui elsewhere. Pixels come from `pyautogui.screenshot`,
which shares its coordinate space (top-left origin, Y downward) with the
pointer functions used by `services.control.input_synthesizer`.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
import sys
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from PIL import Image

from models.agent_models import ScreenRect
from utils.config import DEFAULT_WINDOW_TITLES

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class WindowHandle:
    window_id: int
    title: str
    owner: str
    rect: ScreenRect


@dataclass(frozen=True)
class CaptureResult:
    image: Image.Image
    rect: ScreenRect


def _matches(titles: Iterable[str], *candidates: str) -> bool:
    lowered = [c.lower() for c in candidates if c]
    return any(title.lower() in c for title in titles for c in lowered)


def _quartz_windows(titles: Sequence[str]) -> List[WindowHandle]:
    import Quartz

    options = Quartz.kCGWindowListOptionOnScreenOnly | Quartz.kCGWindowListExcludeDesktopElements
    infos = Quartz.CGWindowListCopyWindowInfo(options, Quartz.kCGNullWindowID) or []
    handles: List[WindowHandle] = []
    for info in infos:
        owner = str(info.get(Quartz.kCGWindowOwnerName, "") or "")
        title = str(info.get(Quartz.kCGWindowName, "") or "")
        if not _matches(titles, owner, title):
            continue
        bounds = info.get(Quartz.kCGWindowBounds, {}) or {}
        rect = ScreenRect(
            left=int(bounds.get("X", 0)),
            top=int(bounds.get("Y", 0)),
            width=int(bounds.get("Width", 0)),
            height=int(bounds.get("Height", 0)),
        )
        if rect.width <= 0 or rect.height <= 0:
            continue
        handles.append(
            WindowHandle(window_id=int(info.get(Quartz.kCGWindowNumber, 0)), title=title, owner=owner, rect=rect)
        )
    return handles


def _pyautogui_windows(titles: Sequence[str]) -> List[WindowHandle]:
    import pyautogui

    getter = getattr(pyautogui, "getWindowsWithTitle", None)
    if getter is None:
        LOGGER.error("Window discovery is not supported on %s", sys.platform)
        return []
    handles: List[WindowHandle] = []
    for title in titles:
        for window in getter(title):
            if window.width <= 0 or window.height <= 0:
                continue
            rect = ScreenRect(left=window.left, top=window.top, width=window.width, height=window.height)
            handles.append(
                WindowHandle(window_id=int(getattr(window, "_hWnd", 0) or 0), title=window.title, owner="", rect=rect)
            )
    return handles


class WindowCaptureProvider:
    """Find the mirror window and grab its pixels.

    Args:
        titles: Substrings matched against window titles and owning app names.
    """

    def __init__(self, titles: Sequence[str] = DEFAULT_WINDOW_TITLES) -> None:
        self.titles = tuple(titles)

    def _list_windows(self) -> List[WindowHandle]:
        if sys.platform == "darwin":
            return _quartz_windows(self.titles)
        return _pyautogui_windows(self.titles)

    async def find_target_window(self) -> Optional[WindowHandle]:
        """Return the first on-screen window matching `titles`, or None."""
        try:
            windows = await asyncio.to_thread(self._list_windows)
        except Exception as exc:
            LOGGER.error("Error finding mirror window: %s", exc)
            return None
        return windows[0] if windows else None

    async def _refresh(self, handle: WindowHandle) -> WindowHandle:
        """Return the handle with its current rectangle (the window may have moved)."""
        for window in await asyncio.to_thread(self._list_windows):
            if window.window_id == handle.window_id:
                return window
        return handle

    async def capture(self, handle: WindowHandle) -> Optional[CaptureResult]:
        """Capture the window's current pixels and screen rectangle, or None on failure."""
        try:
            current = await self._refresh(handle)
            rect = current.rect
            image = await asyncio.to_thread(
                self._screenshot, (rect.left, rect.top, rect.width, rect.height)
            )
        except Exception as exc:
            LOGGER.error("Screen capture error: %s", exc)
            return None
        return CaptureResult(image=image, rect=rect)

    @staticmethod
    def _screenshot(region: Any) -> Image.Image:
        import pyautogui

        return pyautogui.screenshot(region=region)

    async def focus(self, handle: WindowHandle) -> bool:
        """Bring the mirror window to the front so synthesized input reaches it."""
        try:
            return await asyncio.to_thread(self._focus_sync, handle)
        except Exception as exc:
            LOGGER.warning("Failed to activate mirror window: %s", exc)
            return False

    def _focus_sync(self, handle: WindowHandle) -> bool:
        if sys.platform == "darwin":
            app_name = handle.owner or self.titles[0]
            result = subprocess.run(
                ["osascript", "-e", f'tell application "{app_name}" to activate'],
                capture_output=True,
                text=True,
                check=False,
            )
            if result.returncode != 0:
                LOGGER.warning("osascript activation failed: %s", result.stderr.strip())
            return result.returncode == 0

        import pyautogui

        for window in pyautogui.getWindowsWithTitle(handle.title):
            window.activate()
            return True
        return False
