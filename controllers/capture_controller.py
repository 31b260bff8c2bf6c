import asyncio
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import Response

from models.task_errors import CaptureUnavailable, TaskError
from services.capture.cursor_overlay import overlay_cursor
from services.capture.image_codec import ImageCodec
from services.capture.window_capture import CaptureResult
from services.model.screen_analyzer import ScreenAnalyzer
from services.task.task_manager import close_client
from utils.http_errors import to_http_exception


async def _capture_window(request: Request) -> CaptureResult:
    capture = request.app.state.capture
    window = await capture.find_target_window()
    if window is None:
        raise to_http_exception(CaptureUnavailable("Mirror window not found"))
    result = await capture.capture(window)
    if result is None:
        raise to_http_exception(CaptureUnavailable("capture failed"))
    return result


async def screenshot(request: Request) -> Response:
    """Return a PNG screenshot of the mirror window."""
    result = await _capture_window(request)
    png = await asyncio.to_thread(ImageCodec.to_png, result.image)
    return Response(content=png, media_type="image/png")


async def screenshot_with_cursor(request: Request) -> Response:
    """Return a PNG screenshot with the cursor marker at the tracked position.

    Without an active task the marker is drawn at the window centre.
    """
    result = await _capture_window(request)
    session = request.app.state.task_manager.current
    cursor = session.state.cursor_position if session is not None else None
    point = result.rect.to_image_point(cursor or result.rect.center, result.image.size)
    annotated = overlay_cursor(result.image, point)
    png = await asyncio.to_thread(ImageCodec.to_png, annotated)
    return Response(content=png, media_type="image/png")


async def compression_stats(request: Request) -> Dict[str, Any]:
    """Compress a fresh capture the way the agent does and report the sizes."""
    settings = request.app.state.settings
    result = await _capture_window(request)
    original = await asyncio.to_thread(ImageCodec.to_png, result.image)
    compressed, attempts = await asyncio.to_thread(
        ImageCodec().compress_with_attempts, result.image, settings.image_byte_ceiling, settings.image_start_quality
    )
    return {
        "width": result.image.width,
        "height": result.image.height,
        "original_bytes": len(original),
        "compressed_bytes": len(compressed),
        "ratio": round(len(compressed) / len(original), 4) if original else None,
        "byte_ceiling": settings.image_byte_ceiling,
        "within_ceiling": len(compressed) <= settings.image_byte_ceiling,
        "attempts": [{"quality": a.quality, "size": a.size} for a in attempts],
    }


async def analyze_screen(request: Request, api_key: Optional[str] = None) -> Dict[str, Any]:
    """Ask the model to describe what is currently on the mirrored screen."""
    settings = request.app.state.settings
    manager = request.app.state.task_manager
    result = await _capture_window(request)
    jpeg = await asyncio.to_thread(
        ImageCodec().compress, result.image, settings.image_byte_ceiling, settings.image_start_quality
    )

    try:
        client = manager.create_client(api_key)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    analyzer = ScreenAnalyzer(
        client,
        model=settings.model,
        max_tokens=settings.max_tokens,
        max_retries=settings.overload_max_retries,
        base_delay=settings.overload_base_delay_seconds,
    )
    try:
        return await analyzer.describe(jpeg)
    except TaskError as exc:
        raise to_http_exception(exc) from exc
    finally:
        await close_client(client)
