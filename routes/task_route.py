"""FastAPI routes for agent tasks."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.task_controller import (
	cancel_task,
	pause_task,
	resume_task,
	start_task,
	task_audit,
	task_status,
)

router = APIRouter(prefix="/tasks")


class StartTaskPayload(BaseModel):
	description: str
	api_key: Optional[str] = None


@router.post("")
async def start_task_route(request: Request, payload: StartTaskPayload):
	try:
		return await start_task(request, payload.description, payload.api_key)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/pause")
async def pause_task_route(request: Request):
	try:
		return await pause_task(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/resume")
async def resume_task_route(request: Request):
	try:
		return await resume_task(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("/cancel")
async def cancel_task_route(request: Request):
	try:
		return await cancel_task(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/status")
async def task_status_route(request: Request):
	try:
		return await task_status(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/{session_id}/audit")
async def task_audit_route(request: Request, session_id: str):
	"""Return the request, response and command records of one session."""
	try:
		return await task_audit(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
