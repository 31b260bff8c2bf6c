"""Conversation, command and geometry types shared by the agent loop.

These types are vendor-agnostic. Translation to and from the model
provider's wire format lives in `services.model.message_builder` and
`services.model.response_parser`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from models.task_errors import InvalidDirection


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        """Return the matching direction or raise InvalidDirection."""
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidDirection(f"Unknown direction '{value}'") from exc


@dataclass(frozen=True)
class Point:
    """A point in screen space. Origin top-left, Y grows downward."""

    x: int
    y: int

    def offset(self, direction: Direction, distance: int) -> "Point":
        if direction is Direction.UP:
            return Point(self.x, self.y - distance)
        if direction is Direction.DOWN:
            return Point(self.x, self.y + distance)
        if direction is Direction.LEFT:
            return Point(self.x - distance, self.y)
        return Point(self.x + distance, self.y)


@dataclass(frozen=True)
class ScreenRect:
    """Screen rectangle of the mirror window, in the same space as Point."""

    left: int
    top: int
    width: int
    height: int

    @property
    def center(self) -> Point:
        return Point(self.left + self.width // 2, self.top + self.height // 2)

    def clamp(self, point: Point) -> Point:
        """Return the closest point that lies inside the rectangle."""
        x = min(max(point.x, self.left), self.left + self.width - 1)
        y = min(max(point.y, self.top), self.top + self.height - 1)
        return Point(x, y)

    def to_image_point(self, point: Point, image_size: Tuple[int, int]) -> Tuple[int, int]:
        """Convert a screen point to pixel coordinates of a capture of this rectangle.

        This is the single conversion between pointer space and image space.
        Both use a top-left origin with Y growing downward; only the offset
        and the capture scale (e.g. 2x on HiDPI displays) differ.
        """
        image_width, image_height = image_size
        scale_x = image_width / self.width if self.width else 1.0
        scale_y = image_height / self.height if self.height else 1.0
        return (
            round((point.x - self.left) * scale_x),
            round((point.y - self.top) * scale_y),
        )


# Content blocks


@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class ImageBlock:
    data: bytes
    media_type: str = "image/jpeg"


@dataclass(frozen=True)
class ToolUseBlock:
    id: str
    name: str
    input: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultBlock:
    tool_use_id: str
    text: str


@dataclass(frozen=True)
class OpaqueBlock:
    """A provider block the parser does not model, kept verbatim for replay."""

    payload: Mapping[str, Any]


ContentBlock = Union[TextBlock, ImageBlock, ToolUseBlock, ToolResultBlock, OpaqueBlock]


@dataclass(frozen=True)
class Message:
    role: Role
    content: Tuple[ContentBlock, ...]

    def tool_uses(self) -> Tuple[ToolUseBlock, ...]:
        return tuple(block for block in self.content if isinstance(block, ToolUseBlock))

    def tool_results(self) -> Tuple[ToolResultBlock, ...]:
        return tuple(block for block in self.content if isinstance(block, ToolResultBlock))


# Commands


@dataclass(frozen=True)
class MoveCursor:
    tool_use_id: str
    direction: str
    distance: int


@dataclass(frozen=True)
class ClickCursor:
    tool_use_id: str


@dataclass(frozen=True)
class Done:
    tool_use_id: str
    status: str
    reason: str

    @property
    def completed(self) -> bool:
        return self.status == "completed"


Command = Union[MoveCursor, ClickCursor, Done]


def command_arguments(command: Command) -> Dict[str, Any]:
    """Return the command payload as a plain dict (for logs and the audit trail)."""
    if isinstance(command, MoveCursor):
        return {"direction": command.direction, "distance": command.distance}
    if isinstance(command, Done):
        return {"status": command.status, "reason": command.reason}
    return {}


@dataclass(frozen=True)
class ModelReply:
    """Parsed output of one model call."""

    message: str
    commands: Tuple[Command, ...]
    stop_reason: Optional[str]
    raw_content: Tuple[ContentBlock, ...]

    def first_done(self) -> Optional[Done]:
        for command in self.commands:
            if isinstance(command, Done):
                return command
        return None
