"""The agent loop for one natural-language task.

A `TaskSession` owns the conversation, the tracked cursor position and
the Idle/Running/Paused/terminal state machine. `start()` spawns a single
asyncio task that repeats capture, model call and command execution until
the model reports it is done, a step fails, or the operator cancels.

Suspension points are the capture call, the model call, command
execution and the timed waits. Timed waits wake immediately on cancel;
the other steps are allowed to finish, and their results are discarded
once the session is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from models.agent_models import (
    Done,
    ImageBlock,
    Message,
    ModelReply,
    Role,
    ScreenRect,
    TextBlock,
    ToolResultBlock,
)
from models.session_models import SessionState, TaskOutcome, TaskState
from models.task_errors import (
    AlreadyRunning,
    CaptureUnavailable,
    ConversationTooLong,
    GatewayOverloaded,
    GatewayRequestFailed,
)
from services.capture.cursor_overlay import overlay_cursor
from services.capture.image_codec import ImageCodec
from services.model.agent_prompts import build_task_prompt
from utils.config import AgentSettings

LOGGER = logging.getLogger(__name__)

NO_USABLE_RESPONSE = "NoUsableResponse"
UNEXPECTED_ERROR = "UnexpectedError"


async def log_start_signal(session: "TaskSession") -> None:
    """Default "starting" signal: a terminal bell and a log line."""
    print("\a", end="", flush=True)
    LOGGER.info(
        "Task %s starting in %.1fs: %s",
        session.state.session_id,
        session.settings.settle_delay_seconds,
        session.state.task_description,
    )


class TaskSession:
    """Run one task through the capture, model and executor collaborators.

    Args:
        capture: Provider with async `find_target_window`, `capture` and `focus`.
        gateway: Model gateway with async `send(conversation, task_description=, screenshot=)`.
        executor: Command executor with async `execute(command, cursor, bounds)`.
        settings: Delays, conversation ceiling and image budget.
        codec: Codec used to compress screenshots for the model.
        alert: Coroutine function called with the session when a task starts.
    """

    def __init__(
        self,
        capture: Any,
        gateway: Any,
        executor: Any,
        settings: Optional[AgentSettings] = None,
        *,
        codec: Optional[ImageCodec] = None,
        alert: Callable[["TaskSession"], Awaitable[None]] = log_start_signal,
    ) -> None:
        self.capture = capture
        self.gateway = gateway
        self.executor = executor
        self.settings = settings or AgentSettings()
        self.codec = codec or ImageCodec()
        self.alert = alert
        self.state = SessionState()
        self._cancelled = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Controls

    @property
    def session_id(self) -> str:
        return self.state.session_id

    @property
    def status(self) -> TaskState:
        return self.state.state

    @property
    def conversation(self) -> Tuple[Message, ...]:
        return tuple(self.state.conversation)

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def start(self, description: str) -> asyncio.Task:
        """Start the loop for `description` and return its asyncio task.

        Raises:
            AlreadyRunning: The session has already been started.
            ValueError: The description is empty.
        """
        if self.state.state is not TaskState.IDLE:
            raise AlreadyRunning(f"Session {self.session_id} is {self.state.state.value}")
        description = description.strip()
        if not description:
            raise ValueError("Task description must not be empty")

        self.state.task_description = description
        self.state.conversation = []
        self.state.cursor_position = None
        self.state.outcome = None
        self.state.state = TaskState.RUNNING
        self.state.last_action = "Starting"
        self._task = asyncio.create_task(self._run(), name=f"task-session-{self.session_id}")
        return self._task

    def pause(self) -> bool:
        if self.state.state is not TaskState.RUNNING:
            return False
        self.state.state = TaskState.PAUSED
        LOGGER.info("Task %s paused", self.session_id)
        return True

    def resume(self) -> bool:
        if self.state.state is not TaskState.PAUSED:
            return False
        self.state.state = TaskState.RUNNING
        LOGGER.info("Task %s resumed", self.session_id)
        return True

    def cancel(self) -> bool:
        if self.state.state.terminal:
            return False
        self._finish(TaskState.CANCELLED, TaskOutcome(kind="Cancelled", reason="cancelled by operator"))
        return True

    async def wait(self) -> None:
        """Wait for the loop task to end."""
        if self._task is not None:
            await asyncio.shield(self._task)

    # ------------------------------------------------------------------
    # Status

    def status_text(self) -> str:
        """Return a one-line human-readable status."""
        state = self.state
        if state.state is TaskState.IDLE:
            return "Idle"
        if state.state is TaskState.COMPLETED:
            reason = state.outcome.reason if state.outcome else ""
            return f"Completed: {reason}" if reason else "Completed"
        if state.state is TaskState.FAILED:
            return f"Failed: {state.outcome.describe() if state.outcome else 'unknown error'}"
        if state.state is TaskState.CANCELLED:
            return "Cancelled"
        label = "Paused" if state.state is TaskState.PAUSED else "Running"
        detail = state.last_action or state.last_message
        return f"{label} (step {state.step}): {detail}" if detail else f"{label} (step {state.step})"

    def snapshot(self) -> Dict[str, Any]:
        """Return a read-only view of the session for status displays."""
        state = self.state
        cursor = state.cursor_position
        return {
            "session_id": state.session_id,
            "task": state.task_description,
            "state": state.state.value,
            "status": self.status_text(),
            "step": state.step,
            "message_count": len(state.conversation),
            "cursor": {"x": cursor.x, "y": cursor.y} if cursor else None,
            "last_message": state.last_message,
            "last_action": state.last_action,
            "outcome": (
                {"kind": state.outcome.kind, "reason": state.outcome.reason} if state.outcome else None
            ),
        }

    # ------------------------------------------------------------------
    # Loop

    def _finish(self, state: TaskState, outcome: TaskOutcome) -> None:
        if self.state.state.terminal:
            return
        self.state.state = state
        self.state.outcome = outcome
        self._cancelled.set()
        log = LOGGER.info if state is not TaskState.FAILED else LOGGER.warning
        log("Task %s ended %s: %s", self.session_id, state.value, outcome.describe())

    def _fail(self, kind: str, reason: str) -> None:
        self._finish(TaskState.FAILED, TaskOutcome(kind=kind, reason=reason))

    async def _sleep(self, seconds: float) -> bool:
        """Sleep unless the session ends first. Returns False once it has ended."""
        if seconds > 0 and not self._cancelled.is_set():
            try:
                await asyncio.wait_for(self._cancelled.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                pass
        return not self.state.state.terminal

    async def _checkpoint(self) -> bool:
        """Hold while paused. Returns True when the loop may take another step."""
        while self.state.state is TaskState.PAUSED:
            if not await self._sleep(self.settings.pause_poll_seconds):
                return False
        return self.state.state is TaskState.RUNNING

    async def _run(self) -> None:
        try:
            await self.alert(self)
            if not await self._sleep(self.settings.settle_delay_seconds):
                return
            await self._loop()
        except asyncio.CancelledError:
            self._finish(TaskState.CANCELLED, TaskOutcome(kind="Cancelled", reason="task stopped"))
            raise
        except Exception as exc:
            LOGGER.exception("Unexpected error in task %s", self.session_id)
            self._fail(UNEXPECTED_ERROR, str(exc) or type(exc).__name__)

    async def _loop(self) -> None:
        window = await self.capture.find_target_window()
        if window is None:
            self._fail(CaptureUnavailable.kind, "capture failed: mirror window not found")
            return
        await self.capture.focus(window)

        pending: List[ToolResultBlock] = []
        while await self._checkpoint():
            frame = await self._capture(window)
            if frame is None:
                self._fail(CaptureUnavailable.kind, "capture failed")
                return
            screenshot, rect = frame
            if self.state.state.terminal:
                return
            if self.state.state is TaskState.PAUSED:
                # Paused mid-capture: drop the frame and take a fresh one after resume.
                continue

            if pending:
                content = (*pending, ImageBlock(data=screenshot))
            else:
                content = (
                    TextBlock(text=build_task_prompt(self.state.task_description)),
                    ImageBlock(data=screenshot),
                )
            # Room is needed for this user turn and the assistant reply.
            if len(self.state.conversation) + 2 > self.settings.max_conversation_messages:
                self._fail(ConversationTooLong.kind, "conversation too long")
                return
            self.state.conversation.append(Message(role=Role.USER, content=content))

            self.state.step += 1
            self.state.last_action = "Waiting for the model"
            try:
                reply = await self.gateway.send(
                    self.conversation,
                    task_description=self.state.task_description,
                    screenshot=screenshot,
                )
            except (GatewayOverloaded, GatewayRequestFailed) as exc:
                self._fail(exc.kind, f"no response ({exc})")
                return

            self.state.conversation.append(Message(role=Role.ASSISTANT, content=reply.raw_content))
            self.state.last_message = reply.message
            if self.state.state.terminal:
                return
            if not reply.commands:
                self._fail(NO_USABLE_RESPONSE, "no usable response")
                return

            pending = await self._execute(reply, rect)
            if self.state.state.terminal:
                return
            if not await self._sleep(self.settings.step_delay_seconds):
                return

    async def _capture(self, window: Any) -> Optional[Tuple[bytes, ScreenRect]]:
        """Capture the window, draw the cursor marker and compress the frame."""
        result = await self.capture.capture(window)
        if result is None:
            return None
        if self.state.cursor_position is None:
            self.state.cursor_position = result.rect.center
        image_point = result.rect.to_image_point(self.state.cursor_position, result.image.size)
        annotated = overlay_cursor(result.image, image_point)
        data = await asyncio.to_thread(
            self.codec.compress,
            annotated,
            self.settings.image_byte_ceiling,
            self.settings.image_start_quality,
        )
        return data, result.rect

    async def _execute(self, reply: ModelReply, rect: ScreenRect) -> List[ToolResultBlock]:
        """Execute the reply's commands and answer each of its tool calls.

        Commands before the first Done are executed; the Done ends the session.
        A pause holds before each command, so only the command already in
        progress finishes.
        """
        done = reply.first_done()
        commands = reply.commands[: reply.commands.index(done)] if done else reply.commands

        results: Dict[str, str] = {}
        for command in commands:
            if not await self._checkpoint():
                return []
            cursor = self.state.cursor_position or rect.center
            outcome = await self.executor.execute(command, cursor, rect)
            self.state.cursor_position = outcome.cursor
            self.state.last_action = outcome.text
            results[command.tool_use_id] = outcome.text

        if done is not None:
            if not await self._checkpoint():
                return []
            if done.completed:
                self._finish(TaskState.COMPLETED, TaskOutcome(kind="Done", reason=done.reason))
            else:
                self._fail("Done", done.reason or "model reported failure")
            return []

        tool_results: List[ToolResultBlock] = []
        for block in Message(role=Role.ASSISTANT, content=reply.raw_content).tool_uses():
            text = results.get(block.id, f"Unknown tool '{block.name}' ignored.")
            tool_results.append(ToolResultBlock(tool_use_id=block.id, text=text))
        return tool_results
