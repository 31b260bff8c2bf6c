from typing import Any, Dict

from fastapi import HTTPException, Request

from services.credential_store import ANTHROPIC_API_KEY, CredentialStore, redact_credential


async def store_anthropic_key(request: Request, api_key: str) -> Dict[str, Any]:
	"""Persist the Anthropic API key used by new tasks."""
	store: CredentialStore = request.app.state.credentials
	try:
		store.set(ANTHROPIC_API_KEY, api_key)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return {"name": ANTHROPIC_API_KEY, "stored": True, "value": redact_credential(api_key.strip())}


async def anthropic_key_status(request: Request) -> Dict[str, Any]:
	store: CredentialStore = request.app.state.credentials
	value = store.get(ANTHROPIC_API_KEY)
	return {"name": ANTHROPIC_API_KEY, "configured": bool(value), "value": redact_credential(value)}
