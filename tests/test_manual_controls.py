import pytest

from conftest import FakeCapture, WINDOW_RECT
from models.agent_models import Point
from models.task_errors import CaptureUnavailable, InvalidDirection
from services.control.manual_controls import ManualControls, parse_key_combo


async def no_sleep(seconds):
    return None


@pytest.fixture
def controls(fake_capture, fake_synthesizer):
    return ManualControls(fake_capture, fake_synthesizer, sleep=no_sleep)


async def test_click_is_window_relative(controls, fake_capture, fake_synthesizer):
    result = await controls.click(10, 20)

    point = Point(WINDOW_RECT.left + 10, WINDOW_RECT.top + 20)
    assert fake_capture.focused == 1
    assert fake_synthesizer.calls == [("warp", point), ("press", point), ("release", point)]
    assert result == {"action": "click", "x": point.x, "y": point.y}


async def test_double_click_clicks_twice(controls, fake_synthesizer):
    await controls.double_click(5, 5)

    assert [call[0] for call in fake_synthesizer.calls] == ["warp", "press", "release"] * 2


async def test_horizontal_swipe_scrolls_multiplier_times(controls, fake_synthesizer):
    result = await controls.swipe("left", intensity=120, multiplier=3)

    assert fake_synthesizer.calls[0] == ("beep",)
    assert fake_synthesizer.calls[1:] == [("scroll", 0, 120)] * 3
    assert result == {"action": "swipe", "direction": "left", "events": 3, "delta": 120}


async def test_swipe_right_uses_the_default_intensity(controls, fake_synthesizer):
    await controls.swipe("right")

    assert fake_synthesizer.calls[1:] == [("scroll", 0, -100)] * 2


async def test_vertical_swipe_ignores_intensity(controls, fake_synthesizer):
    result = await controls.swipe("down", intensity=400, multiplier=4)

    assert fake_synthesizer.calls[1:] == [("scroll", -50, 0)] * 5
    assert not any(call[0] in ("warp", "press", "release") for call in fake_synthesizer.calls)
    assert result["events"] == 5


async def test_swipe_waits_between_scroll_events(fake_capture, fake_synthesizer):
    waits = []

    async def record_sleep(seconds):
        waits.append(seconds)

    controls = ManualControls(fake_capture, fake_synthesizer, settle_seconds=0.2, sleep=record_sleep)
    await controls.swipe("up")

    assert waits == [0.2] + [0.05] * 5


async def test_swipe_rejects_bad_direction(controls):
    with pytest.raises(InvalidDirection):
        await controls.swipe("sideways")


async def test_text_is_typed_per_character(controls, fake_synthesizer):
    await controls.type_text("hi", press_return=True)

    assert fake_synthesizer.calls == [
        ("type", "h"),
        ("type", "i"),
        ("key_press", "enter", ()),
        ("key_release", "enter", ()),
    ]


async def test_key_combo(controls, fake_synthesizer):
    result = await controls.key_combo("cmd+1")

    assert fake_synthesizer.calls == [("key_press", "1", ("command",)), ("key_release", "1", ("command",))]
    assert result["modifiers"] == ["command"]


def test_named_shortcuts():
    assert parse_key_combo("home") == ("1", ["command"])
    assert parse_key_combo("Spotlight") == ("3", ["command"])
    with pytest.raises(ValueError):
        parse_key_combo(" + ")


async def test_missing_window(fake_synthesizer):
    controls = ManualControls(FakeCapture(window=False), fake_synthesizer, sleep=no_sleep)

    with pytest.raises(CaptureUnavailable):
        await controls.click(1, 1)
