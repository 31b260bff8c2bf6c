import pytest

from models.agent_models import ClickCursor, Done, MoveCursor, Point, ScreenRect
from services.control.command_executor import CommandExecutor

BOUNDS = ScreenRect(left=100, top=100, width=300, height=600)


@pytest.fixture
def executor(fake_synthesizer, fake_session_logger):
    return CommandExecutor(fake_synthesizer, fake_session_logger, click_hold_seconds=0)


@pytest.mark.parametrize(
    "direction, expected",
    [("up", Point(200, 370)), ("down", Point(200, 430)), ("left", Point(170, 400)), ("RIGHT", Point(230, 400))],
)
async def test_move_offsets_in_screen_space(executor, fake_synthesizer, direction, expected):
    result = await executor.execute(MoveCursor("m", direction, 30), Point(200, 400), BOUNDS)

    assert result.cursor == expected
    assert fake_synthesizer.calls == [("warp", expected)]
    assert f"by 30 pixels to ({expected.x}, {expected.y})" in result.text


async def test_move_is_clamped_to_the_window(executor):
    result = await executor.execute(MoveCursor("m", "up", 5000), Point(200, 400), BOUNDS)

    assert result.cursor == Point(200, 100)
    assert "edge" in result.text


async def test_invalid_move_leaves_cursor_alone(executor, fake_synthesizer, fake_session_logger):
    bad_direction = await executor.execute(MoveCursor("m1", "diagonal", 10), Point(5, 6))
    bad_distance = await executor.execute(MoveCursor("m2", "up", 0), Point(5, 6))

    assert bad_direction.text.startswith("Error: Unknown direction 'diagonal'")
    assert bad_distance.cursor == Point(5, 6)
    assert "Cursor unchanged at (5, 6)" in bad_distance.text
    assert fake_synthesizer.calls == []
    assert len(fake_session_logger.commands) == 2


async def test_click_presses_and_releases_in_place(executor, fake_synthesizer, fake_session_logger):
    result = await executor.execute(ClickCursor("c"), Point(12, 34))

    assert fake_synthesizer.calls == [("press", Point(12, 34)), ("release", Point(12, 34))]
    assert result.text == "Clicked at (12, 34)."
    command, logged = fake_session_logger.commands[0]
    assert command == ClickCursor("c")
    assert logged == result.text


async def test_done_is_not_executed(executor):
    with pytest.raises(ValueError):
        await executor.execute(Done("d", "completed", "ok"), Point(0, 0))


async def test_logger_failure_does_not_break_execution(fake_synthesizer):
    class BrokenLogger:
        async def log_command_execution(self, command, result):
            raise RuntimeError("db locked")

    executor = CommandExecutor(fake_synthesizer, BrokenLogger(), click_hold_seconds=0)
    result = await executor.execute(ClickCursor("c"), Point(1, 1))

    assert result.text == "Clicked at (1, 1)."
