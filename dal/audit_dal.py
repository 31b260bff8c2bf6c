"""Async Data Access Layer for the agent audit trail.

Provides AuditDAL with async insert and list operations over the
TASK_REQUEST, TASK_RESPONSE and COMMAND_EXECUTION tables created by
`utils.database_init.AsyncDatabaseInitializer`.
"""

from __future__ import annotations

import time
from typing import List, Sequence

from models.audit_record import CommandRecord, RequestRecord, ResponseRecord
from utils.database_init import AsyncDatabaseInitializer


class AuditDAL:
    """Data access layer for audit records.

    The constructor accepts an `AsyncDatabaseInitializer` (or any object
    exposing an async `connection()` context manager that yields an
    `aiosqlite.Connection`).
    """

    _REQUEST_COLUMNS = (
        "id",
        "session_id",
        "task_description",
        "credential",
        "screenshot_path",
        "screenshot_thumbnail",
        "created_at",
    )
    _RESPONSE_COLUMNS = ("id", "session_id", "message", "commands_json", "stop_reason", "error", "created_at")
    _COMMAND_COLUMNS = (
        "id",
        "session_id",
        "tool_use_id",
        "command_type",
        "arguments_json",
        "result",
        "created_at",
    )

    def __init__(self, db_initializer: AsyncDatabaseInitializer) -> None:
        self._db = db_initializer

    async def _insert(self, table: str, columns: Sequence[str], values: Sequence[object]) -> int:
        placeholders = ", ".join("?" for _ in columns)
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})",
                tuple(values),
            )
            await conn.commit()
            return cur.lastrowid

    async def _select(self, table: str, columns: Sequence[str], session_id: str) -> List[Sequence[object]]:
        async with self._db.connection() as conn:
            cur = await conn.execute(
                f"SELECT {', '.join(columns)} FROM {table} WHERE session_id = ? ORDER BY id ASC",
                (session_id,),
            )
            return list(await cur.fetchall())

    async def create_request(self, record: RequestRecord) -> int:
        """Insert a TASK_REQUEST row and return the new id."""
        return await self._insert(
            "TASK_REQUEST",
            self._REQUEST_COLUMNS[1:],
            (
                record.session_id,
                record.task_description,
                record.credential,
                record.screenshot_path,
                record.screenshot_thumbnail,
                record.created_at or int(time.time()),
            ),
        )

    async def create_response(self, record: ResponseRecord) -> int:
        """Insert a TASK_RESPONSE row and return the new id."""
        return await self._insert(
            "TASK_RESPONSE",
            self._RESPONSE_COLUMNS[1:],
            (
                record.session_id,
                record.message,
                record.commands_json,
                record.stop_reason,
                record.error,
                record.created_at or int(time.time()),
            ),
        )

    async def create_command(self, record: CommandRecord) -> int:
        """Insert a COMMAND_EXECUTION row and return the new id."""
        return await self._insert(
            "COMMAND_EXECUTION",
            self._COMMAND_COLUMNS[1:],
            (
                record.session_id,
                record.tool_use_id,
                record.command_type,
                record.arguments_json,
                record.result,
                record.created_at or int(time.time()),
            ),
        )

    async def list_requests(self, session_id: str) -> List[RequestRecord]:
        rows = await self._select("TASK_REQUEST", self._REQUEST_COLUMNS, session_id)
        return [RequestRecord(*row) for row in rows]

    async def list_responses(self, session_id: str) -> List[ResponseRecord]:
        rows = await self._select("TASK_RESPONSE", self._RESPONSE_COLUMNS, session_id)
        return [ResponseRecord(*row) for row in rows]

    async def list_commands(self, session_id: str) -> List[CommandRecord]:
        rows = await self._select("COMMAND_EXECUTION", self._COMMAND_COLUMNS, session_id)
        return [CommandRecord(*row) for row in rows]
