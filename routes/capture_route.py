from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from controllers.capture_controller import (
    analyze_screen,
    compression_stats,
    screenshot,
    screenshot_with_cursor,
)

router = APIRouter(prefix="/capture")


class AnalyzePayload(BaseModel):
    api_key: Optional[str] = None


@router.get("")
async def screenshot_route(request: Request):
    """Return the mirror window as PNG."""
    try:
        return await screenshot(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/cursor")
async def screenshot_cursor_route(request: Request):
    """Return the mirror window as PNG with the cursor marker drawn in."""
    try:
        return await screenshot_with_cursor(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.get("/compression")
async def compression_route(request: Request):
    try:
        return await compression_stats(request)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@router.post("/analyze")
async def analyze_route(request: Request, payload: Optional[AnalyzePayload] = None):
    try:
        return await analyze_screen(request, payload.api_key if payload else None)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
