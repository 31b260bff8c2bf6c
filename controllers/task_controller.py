"""Task lifecycle handlers for the agent loop."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request

from dal.audit_dal import AuditDAL
from models.task_errors import TaskError
from services.task.task_manager import TaskManager
from utils.http_errors import to_http_exception


def _manager(request: Request) -> TaskManager:
	return request.app.state.task_manager


async def start_task(request: Request, description: str, api_key: Optional[str] = None) -> Dict[str, Any]:
	"""Start a task and return the new session's status."""
	manager = _manager(request)
	try:
		session = manager.start(description, api_key)
	except (TaskError, ValueError) as exc:
		raise to_http_exception(exc) from exc
	return session.snapshot()


async def pause_task(request: Request) -> Dict[str, Any]:
	manager = _manager(request)
	changed = manager.pause()
	return {"changed": changed, **manager.status()}


async def resume_task(request: Request) -> Dict[str, Any]:
	manager = _manager(request)
	changed = manager.resume()
	return {"changed": changed, **manager.status()}


async def cancel_task(request: Request) -> Dict[str, Any]:
	manager = _manager(request)
	changed = manager.cancel()
	return {"changed": changed, **manager.status()}


async def task_status(request: Request) -> Dict[str, Any]:
	return _manager(request).status()


async def task_audit(request: Request, session_id: str) -> Dict[str, Any]:
	"""Return the audit trail of one session, without screenshot blobs."""
	dal = AuditDAL(request.app.state.db_initializer)
	requests = await dal.list_requests(session_id)
	if not requests:
		raise HTTPException(status_code=404, detail=f"No audit records for session {session_id}")
	responses = await dal.list_responses(session_id)
	commands = await dal.list_commands(session_id)

	request_rows: List[Dict[str, Any]] = [
		{
			"id": record.id,
			"task_description": record.task_description,
			"credential": record.credential,
			"screenshot_path": record.screenshot_path,
			"created_at": record.created_at,
		}
		for record in requests
	]
	return {
		"session_id": session_id,
		"requests": request_rows,
		"responses": [vars(record) for record in responses],
		"commands": [vars(record) for record in commands],
	}
