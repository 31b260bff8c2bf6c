import pytest

from conftest import FakeAnthropicClient, FakeSessionLogger, OverloadedError
from models.agent_models import ImageBlock, Message, MoveCursor, Role, TextBlock
from models.task_errors import GatewayOverloaded, GatewayRequestFailed
from services.model.model_gateway import ModelGateway, is_overloaded

SUCCESS = {
    "content": [
        {"type": "text", "text": "Moving to the icon."},
        {"type": "tool_use", "id": "tu_1", "name": "move_cursor", "input": {"direction": "up", "distance": 40}},
    ],
    "stop_reason": "tool_use",
}


class BodyOverloaded(Exception):
    def __init__(self):
        super().__init__("Overloaded")
        self.body = {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


def conversation():
    return [Message(role=Role.USER, content=(TextBlock(text="Task: open settings"), ImageBlock(data=b"jpeg")))]


def build_gateway(client, session_logger=None, sleep=None, **kwargs):
    return ModelGateway(
        client,
        session_logger or FakeSessionLogger(),
        api_key="sk-ant-1234567890abcd",
        model="claude-test",
        sleep=sleep or RecordingSleep(),
        **kwargs,
    )


async def test_request_body_has_the_fixed_fields():
    client = FakeAnthropicClient(SUCCESS)
    gateway = build_gateway(client, max_tokens=512, temperature=0.2)

    reply = await gateway.send(conversation(), task_description="open settings", screenshot=b"jpeg")

    payload = client.messages.payloads[0]
    assert set(payload) == {"model", "max_tokens", "temperature", "system", "tools", "messages"}
    assert payload["model"] == "claude-test"
    assert payload["max_tokens"] == 512
    assert payload["temperature"] == 0.2
    assert [tool["name"] for tool in payload["tools"]] == ["move_cursor", "click_cursor", "done"]
    image = payload["messages"][0]["content"][1]
    assert image["type"] == "image"
    assert image["source"] == {"type": "base64", "media_type": "image/jpeg", "data": "anBlZw=="}
    assert "cursor" in payload["system"]
    assert reply.message == "Moving to the icon."
    assert reply.commands == (MoveCursor(tool_use_id="tu_1", direction="up", distance=40),)


async def test_three_overloads_then_success_waits_one_two_four():
    client = FakeAnthropicClient(OverloadedError("busy"), BodyOverloaded(), OverloadedError("busy"), SUCCESS)
    sleep = RecordingSleep()
    gateway = build_gateway(client, sleep=sleep)

    reply = await gateway.send(conversation(), task_description="open settings", screenshot=b"jpeg")

    assert len(reply.commands) == 1
    assert sleep.delays == [1.0, 2.0, 4.0]
    assert sum(sleep.delays) == 7.0
    assert len(client.messages.payloads) == 4


async def test_exhausted_retries_raise_overloaded_and_are_logged():
    client = FakeAnthropicClient(*[OverloadedError("busy") for _ in range(4)])
    session_logger = FakeSessionLogger()
    sleep = RecordingSleep()
    gateway = build_gateway(client, session_logger=session_logger, sleep=sleep)

    with pytest.raises(GatewayOverloaded):
        await gateway.send(conversation(), task_description="open settings", screenshot=b"jpeg")

    assert sleep.delays == [1.0, 2.0, 4.0]
    assert isinstance(session_logger.responses[0], GatewayOverloaded)


async def test_other_errors_are_not_retried():
    client = FakeAnthropicClient(ConnectionError("connection reset"), SUCCESS)
    sleep = RecordingSleep()
    gateway = build_gateway(client, sleep=sleep)

    with pytest.raises(GatewayRequestFailed):
        await gateway.send(conversation(), task_description="open settings", screenshot=b"jpeg")

    assert sleep.delays == []
    assert len(client.messages.payloads) == 1


async def test_malformed_response_is_a_request_failure():
    client = FakeAnthropicClient({"stop_reason": "end_turn"})
    gateway = build_gateway(client)

    with pytest.raises(GatewayRequestFailed):
        await gateway.send(conversation(), task_description="open settings", screenshot=b"jpeg")


async def test_request_is_logged_with_redacted_credential():
    client = FakeAnthropicClient(SUCCESS)
    session_logger = FakeSessionLogger()
    gateway = build_gateway(client, session_logger=session_logger)

    reply = await gateway.send(conversation(), task_description="open settings", screenshot=b"jpeg")

    task, credential, screenshot = session_logger.requests[0]
    assert task == "open settings"
    assert credential == "sk-a...abcd"
    assert screenshot == b"jpeg"
    assert session_logger.responses == [reply]


async def test_logging_failures_do_not_abort_the_call():
    class BrokenLogger(FakeSessionLogger):
        async def log_request(self, *args):
            raise OSError("disk full")

        async def log_response(self, result):
            raise OSError("disk full")

    gateway = build_gateway(FakeAnthropicClient(SUCCESS), session_logger=BrokenLogger())

    reply = await gateway.send(conversation(), task_description="open settings", screenshot=b"jpeg")

    assert len(reply.commands) == 1


def test_overload_detection():
    assert is_overloaded(OverloadedError())
    assert is_overloaded(BodyOverloaded())
    assert not is_overloaded(ValueError("nope"))
