import io
import json
from pathlib import Path

import pytest
from PIL import Image

from dal.audit_dal import AuditDAL
from models.agent_models import MoveCursor
from models.task_errors import GatewayOverloaded
from services.task.session_logger import SQLiteSessionLogger
from utils.database_init import AsyncDatabaseInitializer

from conftest import make_reply, text, tool_use


def jpeg_bytes():
    out = io.BytesIO()
    Image.new("RGB", (320, 640), (200, 10, 10)).save(out, format="JPEG")
    return out.getvalue()


@pytest.fixture
async def audit(tmp_path):
    db_initializer = AsyncDatabaseInitializer(tmp_path / "db")
    await db_initializer.ensure_database()
    dal = AuditDAL(db_initializer)
    return dal, SQLiteSessionLogger(dal, "session-1", db_initializer.screenshot_dir)


async def test_request_saves_screenshot_and_thumbnail(audit):
    dal, session_logger = audit
    await session_logger.log_request("open settings", "sk-a...abcd", jpeg_bytes())

    [record] = await dal.list_requests("session-1")
    assert record.task_description == "open settings"
    assert record.credential == "sk-a...abcd"
    assert Path(record.screenshot_path).name == "session-1_001.jpg"
    assert Path(record.screenshot_path).read_bytes() == jpeg_bytes()
    with Image.open(io.BytesIO(record.screenshot_thumbnail)) as thumb:
        assert max(thumb.size) <= 160


async def test_responses_and_errors_are_recorded(audit):
    dal, session_logger = audit
    reply = make_reply(text("moving"), tool_use("tu_1", "move_cursor", direction="up", distance=10))

    await session_logger.log_response(reply)
    await session_logger.log_response(GatewayOverloaded("still busy"))

    ok, failed = await dal.list_responses("session-1")
    assert ok.message == "moving"
    assert json.loads(ok.commands_json) == [
        {"type": "MoveCursor", "tool_use_id": "tu_1", "direction": "up", "distance": 10}
    ]
    assert ok.error is None
    assert failed.error == "GatewayOverloaded: still busy"


async def test_command_executions_are_recorded(audit):
    dal, session_logger = audit
    await session_logger.log_command_execution(MoveCursor("tu_1", "left", 5), "Moved cursor left by 5 pixels to (1, 2).")

    [record] = await dal.list_commands("session-1")
    assert record.command_type == "MoveCursor"
    assert json.loads(record.arguments_json) == {"direction": "left", "distance": 5}
    assert record.result.startswith("Moved cursor left")
    assert await dal.list_commands("other-session") == []
