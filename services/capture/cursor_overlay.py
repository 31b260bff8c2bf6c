"""Draw the synthesized pointer onto a captured frame so the model can see it."""

from __future__ import annotations

from typing import Tuple

from PIL import Image, ImageDraw

ACCENT_COLOR = (255, 45, 85)
CIRCLE_RADIUS = 18
CROSSHAIR_LENGTH = 28
STROKE_WIDTH = 3


def overlay_cursor(
    image: Image.Image,
    point: Tuple[int, int],
    *,
    radius: int = CIRCLE_RADIUS,
    length: int = CROSSHAIR_LENGTH,
    color: Tuple[int, int, int] = ACCENT_COLOR,
    width: int = STROKE_WIDTH,
) -> Image.Image:
    """Return a copy of `image` with a circle and crosshair centred on `point`.

    Args:
        image: Captured frame. Never modified.
        point: Pixel coordinates in `image` (origin top-left, Y downward).
            Convert from screen space with `ScreenRect.to_image_point` first.
        radius: Circle radius in pixels.
        length: Full length of each crosshair segment in pixels.
        color: RGB stroke colour.
        width: Stroke width in pixels.

    Returns:
        A new RGB image with the marker composited on top.
    """
    annotated = image.convert("RGB") if image.mode != "RGB" else image.copy()
    draw = ImageDraw.Draw(annotated)
    x, y = point
    half = length // 2

    draw.ellipse((x - radius, y - radius, x + radius, y + radius), outline=color, width=width)
    draw.line((x - half, y, x + half, y), fill=color, width=width)
    draw.line((x, y - half, x, y + half), fill=color, width=width)
    return annotated
