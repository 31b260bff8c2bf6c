"""Audit trail for agent sessions.

`SQLiteSessionLogger` writes each model request (with its screenshot saved
to disk and a thumbnail kept in the database), each model response or
error, and each executed command. One logger is created per session and
injected into the session, the model gateway and the command executor.

Audit failures must never break the agent loop; callers go through
`log_quietly`.
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Union

import aiofiles
from PIL import Image

from dal.audit_dal import AuditDAL
from models.agent_models import Command, ModelReply, command_arguments
from models.audit_record import CommandRecord, RequestRecord, ResponseRecord
from services.capture.image_codec import ImageCodec

LOGGER = logging.getLogger(__name__)


async def log_quietly(action: Callable[..., Awaitable[Any]], *args: Any) -> None:
    """Run an audit call, logging and discarding any failure."""
    try:
        await action(*args)
    except Exception as exc:
        LOGGER.warning("Audit logging failed in %s: %s", getattr(action, "__name__", action), exc)


def describe_commands(reply: ModelReply) -> str:
    """Serialize the reply's commands as JSON for storage."""
    return json.dumps(
        [
            {"type": type(command).__name__, "tool_use_id": command.tool_use_id, **command_arguments(command)}
            for command in reply.commands
        ]
    )


class SQLiteSessionLogger:
    """Session logger backed by the audit database.

    Args:
        dal: Audit data access layer.
        session_id: Session every record is attached to.
        screenshot_dir: Directory for full-size screenshots.
        codec: Codec used to build stored thumbnails.
    """

    def __init__(
        self,
        dal: AuditDAL,
        session_id: str,
        screenshot_dir: Path,
        codec: ImageCodec | None = None,
    ) -> None:
        self.dal = dal
        self.session_id = session_id
        self.screenshot_dir = Path(screenshot_dir)
        self.codec = codec or ImageCodec()
        self._request_count = 0

    async def _save_screenshot(self, screenshot: bytes) -> str:
        self._request_count += 1
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)
        path = self.screenshot_dir / f"{self.session_id}_{self._request_count:03d}.jpg"
        async with aiofiles.open(path, "wb") as f:
            await f.write(screenshot)
        return str(path)

    def _thumbnail(self, screenshot: bytes) -> bytes:
        with Image.open(io.BytesIO(screenshot)) as img:
            return self.codec.thumbnail(img)

    async def log_request(self, task_description: str, credential: str, screenshot: bytes) -> None:
        path = await self._save_screenshot(screenshot) if screenshot else None
        thumbnail = await asyncio.to_thread(self._thumbnail, screenshot) if screenshot else None
        await self.dal.create_request(
            RequestRecord(
                id=None,
                session_id=self.session_id,
                task_description=task_description,
                credential=credential,
                screenshot_path=path,
                screenshot_thumbnail=thumbnail,
            )
        )

    async def log_response(self, result: Union[ModelReply, BaseException]) -> None:
        if isinstance(result, BaseException):
            record = ResponseRecord(
                id=None,
                session_id=self.session_id,
                error=f"{getattr(result, 'kind', type(result).__name__)}: {result}",
            )
        else:
            record = ResponseRecord(
                id=None,
                session_id=self.session_id,
                message=result.message,
                commands_json=describe_commands(result),
                stop_reason=result.stop_reason,
            )
        await self.dal.create_response(record)

    async def log_command_execution(self, command: Command, result: str) -> None:
        await self.dal.create_command(
            CommandRecord(
                id=None,
                session_id=self.session_id,
                tool_use_id=command.tool_use_id,
                command_type=type(command).__name__,
                arguments_json=json.dumps(command_arguments(command)),
                result=result,
            )
        )
