import logging
from types import SimpleNamespace

import pytest

from models.agent_models import ClickCursor, Done, MoveCursor, OpaqueBlock, ToolUseBlock
from models.task_errors import GatewayRequestFailed
from services.model.response_parser import extract_usage, parse_reply


def test_text_and_tool_blocks_are_mapped():
    reply = parse_reply(
        {
            "content": [
                {"type": "text", "text": "First I move."},
                {"type": "tool_use", "id": "a", "name": "move_cursor", "input": {"direction": "left", "distance": "15"}},
                {"type": "text", "text": "Then I click."},
                {"type": "tool_use", "id": "b", "name": "click_cursor", "input": {}},
            ],
            "stop_reason": "tool_use",
        }
    )

    assert reply.message == "First I move.\nThen I click."
    assert reply.commands == (MoveCursor("a", "left", 15), ClickCursor("b"))
    assert reply.stop_reason == "tool_use"
    assert len(reply.raw_content) == 4


def test_unknown_tool_is_dropped_with_a_warning(caplog):
    with caplog.at_level(logging.WARNING):
        reply = parse_reply(
            {
                "content": [
                    {"type": "tool_use", "id": "x", "name": "swipe", "input": {"direction": "up"}},
                    {"type": "tool_use", "id": "y", "name": "click_cursor", "input": {}},
                ],
                "stop_reason": "tool_use",
            }
        )

    assert reply.commands == (ClickCursor("y"),)
    assert isinstance(reply.raw_content[0], ToolUseBlock)
    assert "swipe" in caplog.text


def test_done_with_unknown_status_counts_as_failed():
    reply = parse_reply(
        {"content": [{"type": "tool_use", "id": "d", "name": "done", "input": {"status": "maybe"}}]}
    )

    assert reply.commands == (Done("d", "failed", ""),)
    assert reply.first_done() is reply.commands[0]


def test_sdk_style_objects_are_supported():
    block = SimpleNamespace(type="tool_use", id="t", name="done", input={"status": "completed", "reason": "ok"})
    unknown = SimpleNamespace(type="server_tool_use", model_dump=lambda exclude_none: {"type": "server_tool_use"})
    response = SimpleNamespace(
        content=[block, unknown],
        stop_reason="tool_use",
        usage=SimpleNamespace(input_tokens=10, output_tokens=3),
    )

    reply = parse_reply(response)

    assert reply.commands == (Done("t", "completed", "ok"),)
    assert reply.raw_content[1] == OpaqueBlock(payload={"type": "server_tool_use"})
    assert extract_usage(response) == {"input_tokens": 10, "output_tokens": 3}


def test_bad_distance_becomes_zero():
    reply = parse_reply(
        {"content": [{"type": "tool_use", "id": "m", "name": "move_cursor", "input": {"direction": "up", "distance": "far"}}]}
    )

    assert reply.commands[0].distance == 0


def test_missing_content_is_rejected():
    with pytest.raises(GatewayRequestFailed):
        parse_reply({"stop_reason": "end_turn"})
