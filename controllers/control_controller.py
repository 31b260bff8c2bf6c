"""Manual input handlers."""

from typing import Any, Awaitable, Dict

from fastapi import Request

from models.task_errors import TaskError
from services.control.manual_controls import ManualControls
from utils.http_errors import to_http_exception


async def _run(action: Awaitable[Dict[str, Any]]) -> Dict[str, Any]:
	try:
		return await action
	except (TaskError, ValueError) as exc:
		raise to_http_exception(exc) from exc


def _controls(request: Request) -> ManualControls:
	return request.app.state.manual_controls


async def click(request: Request, x: int, y: int) -> Dict[str, Any]:
	return await _run(_controls(request).click(x, y))


async def double_click(request: Request, x: int, y: int) -> Dict[str, Any]:
	return await _run(_controls(request).double_click(x, y))


async def swipe(request: Request, direction: str, intensity: int, multiplier: int) -> Dict[str, Any]:
	return await _run(_controls(request).swipe(direction, intensity, multiplier))


async def type_text(request: Request, text: str, press_return: bool) -> Dict[str, Any]:
	return await _run(_controls(request).type_text(text, press_return))


async def key_combo(request: Request, combo: str) -> Dict[str, Any]:
	return await _run(_controls(request).key_combo(combo))
