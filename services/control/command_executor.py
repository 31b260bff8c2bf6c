"""Execute model-issued commands against the input synthesizer."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from models.agent_models import ClickCursor, Command, Direction, Done, MoveCursor, Point, ScreenRect
from models.task_errors import InvalidDirection
from services.task.session_logger import log_quietly

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    text: str
    cursor: Point


class CommandExecutor:
    """Turn MoveCursor and ClickCursor commands into pointer events.

    The executor does not own the cursor position; callers pass the tracked
    position in and store the one returned in `ExecutionResult`.

    Args:
        synthesizer: Object exposing async `warp_pointer`, `press` and `release`.
        session_logger: Audit sink; every execution is mirrored to it.
        click_hold_seconds: Delay between press and release.
    """

    def __init__(self, synthesizer: Any, session_logger: Any, click_hold_seconds: float = 0.05) -> None:
        self.synthesizer = synthesizer
        self.session_logger = session_logger
        self.click_hold_seconds = click_hold_seconds

    async def execute(self, command: Command, cursor: Point, bounds: Optional[ScreenRect] = None) -> ExecutionResult:
        """Run `command` and return its result text and the new cursor position."""
        if isinstance(command, MoveCursor):
            result = await self._move(command, cursor, bounds)
        elif isinstance(command, ClickCursor):
            result = await self._click(cursor)
        elif isinstance(command, Done):
            raise ValueError("Done commands are handled by the task session, not executed.")
        else:
            raise ValueError(f"Unsupported command: {command!r}")

        await log_quietly(self.session_logger.log_command_execution, command, result.text)
        return result

    async def _move(self, command: MoveCursor, cursor: Point, bounds: Optional[ScreenRect]) -> ExecutionResult:
        try:
            direction = Direction.parse(command.direction)
            if command.distance <= 0:
                raise InvalidDirection(f"Distance must be a positive number of pixels, got {command.distance}")
        except InvalidDirection as exc:
            LOGGER.warning("Rejected move command %s: %s", command.tool_use_id, exc)
            return ExecutionResult(text=f"Error: {exc}. Cursor unchanged at ({cursor.x}, {cursor.y}).", cursor=cursor)

        target = cursor.offset(direction, command.distance)
        clamped = bounds.clamp(target) if bounds else target
        await self.synthesizer.warp_pointer(clamped)

        text = f"Moved cursor {direction.value} by {command.distance} pixels to ({clamped.x}, {clamped.y})."
        if clamped != target:
            text += " The cursor stopped at the edge of the screen."
        return ExecutionResult(text=text, cursor=clamped)

    async def _click(self, cursor: Point) -> ExecutionResult:
        await self.synthesizer.press(cursor)
        await asyncio.sleep(self.click_hold_seconds)
        await self.synthesizer.release(cursor)
        return ExecutionResult(text=f"Clicked at ({cursor.x}, {cursor.y}).", cursor=cursor)
