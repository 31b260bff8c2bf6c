from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class RequestRecord:
    """In-memory representation of a row in the TASK_REQUEST table.

    Attributes:
        id: Primary key (None for new records).
        session_id: Task session the request belongs to.
        task_description: Natural-language task sent with the request.
        credential: Redacted API key used for the call.
        screenshot_path: Location of the full screenshot on disk, if saved.
        screenshot_thumbnail: Optional PNG thumbnail bytes.
        created_at: Unix timestamp (seconds) when the row was inserted.
    """

    id: Optional[int]
    session_id: str
    task_description: str
    credential: Optional[str] = None
    screenshot_path: Optional[str] = None
    screenshot_thumbnail: Optional[bytes] = None
    created_at: Optional[int] = None


@dataclass
class ResponseRecord:
    """A model reply or the error that replaced it."""

    id: Optional[int]
    session_id: str
    message: Optional[str] = None
    commands_json: Optional[str] = None
    stop_reason: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[int] = None


@dataclass
class CommandRecord:
    """One executed command and the text fed back to the model."""

    id: Optional[int]
    session_id: str
    tool_use_id: str
    command_type: str
    arguments_json: Optional[str] = None
    result: Optional[str] = None
    created_at: Optional[int] = None
