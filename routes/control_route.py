"""FastAPI routes for manual input on the mirror window."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from controllers.control_controller import click, double_click, key_combo, swipe, type_text

router = APIRouter(prefix="/controls")


class PointPayload(BaseModel):
	x: int = Field(ge=0)
	y: int = Field(ge=0)


class SwipePayload(BaseModel):
	direction: str
	intensity: int = 100
	multiplier: int = 2


class TextPayload(BaseModel):
	text: str
	press_return: bool = False


class KeyPayload(BaseModel):
	combo: str


@router.post("/click")
async def click_route(request: Request, payload: PointPayload):
	try:
		return await click(request, payload.x, payload.y)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/double-click")
async def double_click_route(request: Request, payload: PointPayload):
	try:
		return await double_click(request, payload.x, payload.y)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/swipe")
async def swipe_route(request: Request, payload: SwipePayload):
	try:
		return await swipe(request, payload.direction, payload.intensity, payload.multiplier)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/text")
async def text_route(request: Request, payload: TextPayload):
	try:
		return await type_text(request, payload.text, payload.press_return)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/key")
async def key_route(request: Request, payload: KeyPayload):
	"""Send a shortcut such as `cmd+1` or a named one (`home`, `app_switcher`, `spotlight`)."""
	try:
		return await key_combo(request, payload.combo)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
