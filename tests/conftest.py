import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

import pytest
from PIL import Image

from models.agent_models import ModelReply, Point, ScreenRect
from services.capture.window_capture import CaptureResult, WindowHandle
from services.credential_store import ANTHROPIC_API_KEY
from services.model.response_parser import parse_reply
from utils.config import AgentSettings

WINDOW_RECT = ScreenRect(left=0, top=0, width=400, height=800)


def make_reply(*blocks: dict, stop_reason: str = "tool_use") -> ModelReply:
    """Build a ModelReply from wire-format content blocks."""
    return parse_reply({"content": list(blocks), "stop_reason": stop_reason})


def tool_use(tool_id: str, name: str, **arguments: Any) -> dict:
    return {"type": "tool_use", "id": tool_id, "name": name, "input": arguments}


def text(value: str) -> dict:
    return {"type": "text", "text": value}


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


class FakeCapture:
    def __init__(self, rect: ScreenRect = WINDOW_RECT, window: bool = True, fail_after: Optional[int] = None):
        self.rect = rect
        self.window = window
        self.fail_after = fail_after
        self.captures = 0
        self.focused = 0

    async def find_target_window(self) -> Optional[WindowHandle]:
        if not self.window:
            return None
        return WindowHandle(window_id=1, title="iPhone Mirroring", owner="iPhone Mirroring", rect=self.rect)

    async def capture(self, handle: WindowHandle) -> Optional[CaptureResult]:
        if self.fail_after is not None and self.captures >= self.fail_after:
            return None
        self.captures += 1
        image = Image.new("RGB", (self.rect.width, self.rect.height), (30, 30, 30))
        return CaptureResult(image=image, rect=self.rect)

    async def focus(self, handle: WindowHandle) -> bool:
        self.focused += 1
        return True


class FakeSynthesizer:
    def __init__(self) -> None:
        self.calls: List[tuple] = []

    async def warp_pointer(self, point: Point) -> None:
        self.calls.append(("warp", point))

    async def press(self, point: Point, button: str = "left") -> None:
        self.calls.append(("press", point))

    async def release(self, point: Point, button: str = "left") -> None:
        self.calls.append(("release", point))

    async def key_press(self, key: str, modifiers: Sequence[str] = ()) -> None:
        self.calls.append(("key_press", key, tuple(modifiers)))

    async def key_release(self, key: str, modifiers: Sequence[str] = ()) -> None:
        self.calls.append(("key_release", key, tuple(modifiers)))

    async def type_text(self, value: str, interval: float = 0.05) -> None:
        self.calls.append(("type", value))

    async def scroll(self, vertical: int = 0, horizontal: int = 0) -> None:
        self.calls.append(("scroll", vertical, horizontal))

    async def beep(self) -> None:
        self.calls.append(("beep",))


@dataclass
class FakeSessionLogger:
    requests: List[tuple] = field(default_factory=list)
    responses: List[Any] = field(default_factory=list)
    commands: List[tuple] = field(default_factory=list)

    async def log_request(self, task_description: str, credential: str, screenshot: bytes) -> None:
        self.requests.append((task_description, credential, screenshot))

    async def log_response(self, result: Any) -> None:
        self.responses.append(result)

    async def log_command_execution(self, command: Any, result: str) -> None:
        self.commands.append((command, result))


class FakeGateway:
    """Returns scripted replies (or raises scripted errors) in order."""

    def __init__(self, *replies: Any, on_send: Optional[Callable[[int], None]] = None):
        self.replies = list(replies)
        self.on_send = on_send
        self.calls: List[list] = []

    async def send(self, conversation, *, task_description: str, screenshot: bytes) -> ModelReply:
        self.calls.append(list(conversation))
        if self.on_send is not None:
            self.on_send(len(self.calls))
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class FakeMessages:
    def __init__(self, outcomes: List[Any]):
        self.outcomes = outcomes
        self.payloads: List[dict] = []

    async def create(self, **payload: Any) -> Any:
        self.payloads.append(payload)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeAnthropicClient:
    def __init__(self, *outcomes: Any):
        self.messages = FakeMessages(list(outcomes))
        self.closed = False

    async def close(self) -> None:
        self.closed = True


class OverloadedError(Exception):
    status_code = 529


@pytest.fixture
def fast_settings(tmp_path) -> AgentSettings:
    return AgentSettings(
        settle_delay_seconds=0,
        step_delay_seconds=0,
        pause_poll_seconds=0.01,
        database_dir=tmp_path / "database",
        credentials_file=tmp_path / ".env",
    )


@pytest.fixture
def fake_capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def fake_synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def fake_session_logger() -> FakeSessionLogger:
    return FakeSessionLogger()


async def silent_alert(session) -> None:
    return None


@pytest.fixture(autouse=True)
def isolated_api_key(monkeypatch):
    """Keep ANTHROPIC_API_KEY out of tests and undo any write made through CredentialStore."""
    monkeypatch.setenv(ANTHROPIC_API_KEY, "")
    monkeypatch.delenv(ANTHROPIC_API_KEY)
