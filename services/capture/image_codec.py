"""Image codec for model transport and the audit trail.

Provides a small OOP wrapper around Pillow that squeezes a captured frame
under a byte budget by re-encoding JPEG at decreasing quality, plus the
base64 transport encoding and a PNG thumbnail for stored screenshots.

Public class: `ImageCodec`

Example:
    codec = ImageCodec()
    jpeg = codec.compress(frame, byte_ceiling=1_000_000, start_quality=90)
    payload = codec.encode(jpeg)
"""
from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from typing import List, Tuple

from PIL import Image

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompressionAttempt:
    quality: int
    size: int


class ImageCodec:
    """Compress frames to a byte ceiling and encode them for transport.

    Args:
        decay: Factor applied to the JPEG quality after each oversized attempt. Must be in (0, 1).
        quality_floor: Lowest quality tried before giving up on the ceiling.
        thumbnail_size: Maximum width and height for audit thumbnails.
        background: Colour used when flattening images with alpha to RGB.
    """

    def __init__(
        self,
        decay: float = 0.8,
        quality_floor: int = 10,
        thumbnail_size: Tuple[int, int] = (160, 160),
        background: Tuple[int, int, int] | None = None,
    ):
        if not 0 < decay < 1:
            raise ValueError("decay must be between 0 and 1")
        self.decay = decay
        self.quality_floor = quality_floor
        self.thumbnail_size = thumbnail_size
        self.background = background or (255, 255, 255)

    def _flatten(self, image: Image.Image) -> Image.Image:
        """Return an RGB copy, flattening any alpha against the background colour."""
        if image.mode == "RGB":
            return image
        src = image.convert("RGBA")
        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])
        return background

    def _encode_jpeg(self, image: Image.Image, quality: int) -> bytes:
        out_io = io.BytesIO()
        image.save(out_io, format="JPEG", quality=quality, optimize=True)
        return out_io.getvalue()

    def compress(self, image: Image.Image, byte_ceiling: int, start_quality: int = 90) -> bytes:
        """Encode `image` as JPEG at or below `byte_ceiling` bytes when possible.

        See `compress_with_attempts` for the quality schedule.
        """
        data, _ = self.compress_with_attempts(image, byte_ceiling, start_quality)
        return data

    def compress_with_attempts(
        self, image: Image.Image, byte_ceiling: int, start_quality: int = 90
    ) -> Tuple[bytes, List[CompressionAttempt]]:
        """Compress `image` and also return every encoding that was tried.

        Quality starts at `start_quality` and is multiplied by `decay` after
        every attempt that is too large. The first attempt that fits is
        returned. When the quality would drop below `quality_floor`, the last
        (smallest) attempt is returned even though it is over budget.

        Args:
            image: Frame to encode. Not modified.
            byte_ceiling: Maximum encoded size in bytes.
            start_quality: JPEG quality (1-100) of the first attempt.

        Returns:
            The encoded JPEG bytes and the attempts in the order they were made.
        """
        rgb = self._flatten(image)
        attempts: List[CompressionAttempt] = []
        quality = max(1, min(int(start_quality), 100))

        while True:
            data = self._encode_jpeg(rgb, quality)
            attempts.append(CompressionAttempt(quality=quality, size=len(data)))
            if len(data) <= byte_ceiling:
                return data, attempts
            next_quality = int(quality * self.decay)
            if next_quality < self.quality_floor or next_quality == quality:
                LOGGER.warning(
                    "Could not compress frame under %d bytes; returning %d bytes at quality %d",
                    byte_ceiling,
                    len(data),
                    quality,
                )
                return data, attempts
            quality = next_quality

    @staticmethod
    def encode(data: bytes) -> str:
        """Return `data` as a base64 string suitable for JSON embedding."""
        return base64.b64encode(data).decode("utf-8")

    @staticmethod
    def to_png(image: Image.Image) -> bytes:
        """Return lossless PNG bytes of `image`."""
        out_io = io.BytesIO()
        image.save(out_io, format="PNG")
        return out_io.getvalue()

    def thumbnail(self, image: Image.Image) -> bytes:
        """Return PNG bytes of a thumbnail that fits within `thumbnail_size`."""
        src = self._flatten(image).copy()
        src.thumbnail(self.thumbnail_size, Image.LANCZOS)
        out_io = io.BytesIO()
        src.save(out_io, format="PNG", optimize=True)
        return out_io.getvalue()
