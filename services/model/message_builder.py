"""Build Messages API request bodies from the conversation model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from models.agent_models import (
    ContentBlock,
    ImageBlock,
    Message,
    OpaqueBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from services.capture.image_codec import ImageCodec


def block_to_wire(block: ContentBlock) -> Dict[str, Any]:
    """Return the wire form of one content block."""
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ImageBlock):
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": block.media_type,
                "data": ImageCodec.encode(block.data),
            },
        }
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": dict(block.input)}
    if isinstance(block, ToolResultBlock):
        return {"type": "tool_result", "tool_use_id": block.tool_use_id, "content": block.text}
    if isinstance(block, OpaqueBlock):
        return dict(block.payload)
    raise TypeError(f"Unsupported content block: {block!r}")


def message_to_wire(message: Message) -> Dict[str, Any]:
    return {"role": message.role.value, "content": [block_to_wire(block) for block in message.content]}


@dataclass(frozen=True)
class ModelRequest:
    """The fixed request body sent on every agent step."""

    model: str
    max_tokens: int
    temperature: float
    system: str
    tools: Sequence[Dict[str, Any]]
    messages: Sequence[Message] = field(default_factory=tuple)

    def to_payload(self) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = [message_to_wire(message) for message in self.messages]
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system": self.system,
            "tools": [dict(tool) for tool in self.tools],
            "messages": messages,
        }
