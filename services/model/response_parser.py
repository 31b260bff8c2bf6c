"""Helpers to parse Messages API replies into ModelReply objects."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from models.agent_models import (
    ClickCursor,
    Command,
    ContentBlock,
    Done,
    ModelReply,
    MoveCursor,
    OpaqueBlock,
    TextBlock,
    ToolUseBlock,
)
from models.task_errors import GatewayRequestFailed
from services.model.tool_schema import CLICK_CURSOR, DONE, MOVE_CURSOR

LOGGER = logging.getLogger(__name__)


def _field(item: Any, name: str, default: Any = None) -> Any:
    """Read `name` from an SDK object or a plain dict."""
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def _dump(item: Any) -> Dict[str, Any]:
    if isinstance(item, Mapping):
        return dict(item)
    if hasattr(item, "model_dump"):
        return item.model_dump(exclude_none=True)
    if hasattr(item, "to_dict"):
        return item.to_dict()
    return {"type": _field(item, "type", "unknown")}


def _to_distance(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _move_cursor(block: ToolUseBlock) -> Command:
    return MoveCursor(
        tool_use_id=block.id,
        direction=str(block.input.get("direction", "")),
        distance=_to_distance(block.input.get("distance")),
    )


def _click_cursor(block: ToolUseBlock) -> Command:
    return ClickCursor(tool_use_id=block.id)


def _done(block: ToolUseBlock) -> Command:
    status = str(block.input.get("status", "")).strip().lower()
    reason = str(block.input.get("reason", "") or "")
    if status not in ("completed", "failed"):
        LOGGER.warning("Done call %s has unknown status %r; treating it as failed", block.id, status)
        status = "failed"
    return Done(tool_use_id=block.id, status=status, reason=reason)


COMMAND_PARSERS: Dict[str, Callable[[ToolUseBlock], Command]] = {
    MOVE_CURSOR: _move_cursor,
    CLICK_CURSOR: _click_cursor,
    DONE: _done,
}


def parse_content_block(item: Any) -> ContentBlock:
    """Map one provider block to the conversation model, keeping unknown blocks verbatim."""
    block_type = _field(item, "type")
    if block_type == "text":
        return TextBlock(text=str(_field(item, "text", "") or ""))
    if block_type == "tool_use":
        raw_input = _field(item, "input", {}) or {}
        return ToolUseBlock(
            id=str(_field(item, "id", "")),
            name=str(_field(item, "name", "")),
            input=dict(raw_input) if isinstance(raw_input, Mapping) else {},
        )
    return OpaqueBlock(payload=_dump(item))


def parse_reply(response: Any) -> ModelReply:
    """Parse a Messages API response.

    Text blocks are joined into `message`; tool_use blocks become commands
    by tool name. Tool calls with unknown names are logged and skipped, but
    every block stays in `raw_content` so the turn can be replayed as sent.

    Raises:
        GatewayRequestFailed: If the response has no content list.
    """
    content = _field(response, "content")
    if content is None or isinstance(content, (str, bytes)):
        raise GatewayRequestFailed("Malformed model response: missing content blocks")

    raw_content: List[ContentBlock] = [parse_content_block(item) for item in content]
    texts: List[str] = []
    commands: List[Command] = []
    for block in raw_content:
        if isinstance(block, TextBlock):
            if block.text:
                texts.append(block.text)
        elif isinstance(block, ToolUseBlock):
            parser = COMMAND_PARSERS.get(block.name)
            if parser is None:
                LOGGER.warning("Skipping unknown tool '%s' (id %s)", block.name, block.id)
                continue
            commands.append(parser(block))

    stop_reason: Optional[str] = _field(response, "stop_reason")
    return ModelReply(
        message="\n".join(texts),
        commands=tuple(commands),
        stop_reason=stop_reason,
        raw_content=tuple(raw_content),
    )


def extract_text(response: Any) -> str:
    """Return the joined text blocks of a response."""
    return "\n".join(
        str(_field(item, "text", "") or "") for item in (_field(response, "content") or []) if _field(item, "type") == "text"
    )


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage if present."""
    usage = _field(response, "usage")
    return {
        "input_tokens": _field(usage, "input_tokens") if usage else None,
        "output_tokens": _field(usage, "output_tokens") if usage else None,
    }
