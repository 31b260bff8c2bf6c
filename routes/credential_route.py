from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.credential_controller import anthropic_key_status, store_anthropic_key

router = APIRouter(prefix="/credentials")


class ApiKeyPayload(BaseModel):
	api_key: str


@router.post("/anthropic")
async def store_anthropic_key_route(request: Request, payload: ApiKeyPayload):
	try:
		return await store_anthropic_key(request, payload.api_key)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/anthropic")
async def anthropic_key_status_route(request: Request):
	try:
		return await anthropic_key_status(request)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
