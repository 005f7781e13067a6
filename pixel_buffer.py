#!/usr/bin/env python3
"""
Pixel buffer loading and downscaling.

Every analysis pass takes a PixelBuffer: an immutable RGBA uint8 array with
origin top-left. Loading accepts a file path, raw encoded bytes, or a data URL.
"""

import asyncio
import base64
import binascii
import io
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote_to_bytes

import numpy as np
from PIL import Image, UnidentifiedImageError


# =============================================================================
# Constants
# =============================================================================

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side


# =============================================================================
# Errors
# =============================================================================

class AnalysisError(ValueError):
    """Base class for analysis failures."""


class DecodeError(AnalysisError):
    """Image bytes could not be turned into a pixel buffer."""


class EmptyInputError(AnalysisError):
    """A pass received no samples to work on."""


class InvalidParameterError(AnalysisError):
    """A parameter is outside the range a pass can work with."""


# =============================================================================
# Utilities
# =============================================================================

def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


# =============================================================================
# Pixel Buffer
# =============================================================================

@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Read-only RGBA pixels, shape (height, width, 4)."""
    pixels: np.ndarray

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'PixelBuffer':
        """Build a buffer from an (h, w, 3) or (h, w, 4) array.

        Values are clipped to 0-255. RGB input gets an opaque alpha channel.
        """
        arr = np.asarray(array)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise DecodeError(f"Expected an (h, w, 3|4) array, got shape {arr.shape}")
        h, w = arr.shape[:2]
        if h == 0 or w == 0:
            raise DecodeError(f"Image has no pixels ({w}x{h})")

        if arr.dtype != np.uint8:
            arr = np.clip(np.rint(arr.astype(np.float64)), 0, 255).astype(np.uint8)
        if arr.shape[2] == 3:
            alpha = np.full((h, w, 1), 255, dtype=np.uint8)
            arr = np.concatenate([arr, alpha], axis=2)
        else:
            arr = arr.copy()

        arr.setflags(write=False)
        return cls(pixels=arr)

    @classmethod
    def from_image(cls, img: Image.Image) -> 'PixelBuffer':
        """Build a buffer from a PIL image in any mode."""
        return cls.from_array(np.array(img.convert('RGBA')))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def rgb(self) -> np.ndarray:
        """RGB channels as float64, shape (h, w, 3)."""
        return self.pixels[:, :, :3].astype(np.float64)

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels))


# =============================================================================
# Loading
# =============================================================================

ImageSource = Union[str, Path, bytes]


def _decode_data_url(url: str) -> bytes:
    """Extract the payload of a data: URL."""
    header, sep, payload = url.partition(',')
    if not sep:
        raise DecodeError("Malformed data URL: missing ',' separator")
    if header.endswith(';base64'):
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Malformed data URL payload: {e}") from e
    return unquote_to_bytes(payload)


def _open_source(source: ImageSource) -> Image.Image:
    if isinstance(source, (bytes, bytearray)):
        return Image.open(io.BytesIO(bytes(source)))
    if isinstance(source, str) and source.startswith('data:'):
        return Image.open(io.BytesIO(_decode_data_url(source)))

    path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"Image not found: {path}")
    return Image.open(path)


def load_image(source: ImageSource, max_width: Optional[int] = None) -> PixelBuffer:
    """
    Decode an image into a PixelBuffer, optionally capped at max_width.

    Raises:
        FileNotFoundError: If a path source doesn't exist
        DecodeError: If the data is not a decodable image or exceeds size limits
    """
    try:
        with _open_source(source) as img:
            # Validate image dimensions before decoding pixel data
            width, height = img.size
            if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
                raise DecodeError(
                    f"Image dimensions {width}x{height} exceed maximum "
                    f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
                )
            if width * height > MAX_IMAGE_PIXELS:
                raise DecodeError(
                    f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
                )
            buffer = PixelBuffer.from_image(img)
    except FileNotFoundError:
        raise
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Could not decode image: {e}") from e

    if max_width is not None:
        buffer = downscale(buffer, max_width)
    return buffer


async def load_image_async(source: ImageSource, max_width: Optional[int] = None) -> PixelBuffer:
    """Decode an image in a worker thread; the only suspension point."""
    return await asyncio.to_thread(load_image, source, max_width)


# =============================================================================
# Downscaling
# =============================================================================

def scaled_size(width: int, height: int, max_width: int) -> tuple[int, int]:
    """Aspect-preserving size with width <= max_width, at least 1px each side."""
    if max_width < 1:
        raise InvalidParameterError(f"max_width must be >= 1, got {max_width}")
    if width <= max_width:
        return width, height
    scale = max_width / width
    return max(1, round_half_up(width * scale)), max(1, round_half_up(height * scale))


def downscale(buffer: PixelBuffer, max_width: int) -> PixelBuffer:
    """Return buffer scaled down to max_width, or buffer itself if it fits."""
    new_w, new_h = scaled_size(buffer.width, buffer.height, max_width)
    if (new_w, new_h) == (buffer.width, buffer.height):
        return buffer
    resized = buffer.to_image().resize((new_w, new_h), Image.Resampling.BILINEAR)
    return PixelBuffer.from_image(resized)
