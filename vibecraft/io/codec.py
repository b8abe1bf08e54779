"""
Bitmap codec boundary.

The enhancement engine only needs decode(bytes) -> RGBA buffer and
encode(buffer) -> bytes. PillowCodec is the bundled implementation.
"""

import io
import logging
from abc import ABC, abstractmethod

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..errors import DecodeError

logger = logging.getLogger(__name__)

# Formats without an alpha channel are written as RGB
_OPAQUE_FORMATS = {'JPEG', 'JPG', 'BMP'}


def as_rgba(pixels: np.ndarray) -> np.ndarray:
    """
    Normalize a pixel array to a new uint8 RGBA buffer.

    Accepts grayscale (H, W), RGB (H, W, 3) or RGBA (H, W, 4) arrays.
    Float arrays are treated as [0, 1] data.

    Raises:
        DecodeError: If the array shape is not an image
    """
    array = np.asarray(pixels)
    if np.issubdtype(array.dtype, np.floating):
        array = np.clip(np.floor(array * 255.0 + 0.5), 0, 255)
    array = array.astype(np.uint8)

    if array.ndim == 2:
        array = np.stack([array] * 3, axis=-1)
    if array.ndim != 3 or array.shape[2] not in (3, 4) or array.shape[0] == 0 or array.shape[1] == 0:
        raise DecodeError(f"Unsupported pixel array shape: {np.asarray(pixels).shape}")
    if array.shape[2] == 3:
        alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
        array = np.concatenate([array, alpha], axis=-1)
    return array.copy()


class BitmapCodec(ABC):
    """Abstract image codec."""

    @abstractmethod
    def decode(self, data: bytes) -> np.ndarray:
        """
        Decode encoded image bytes.

        Returns:
            uint8 RGBA array of shape (H, W, 4)

        Raises:
            DecodeError: If the bytes are not a readable image
        """
        pass

    @abstractmethod
    def encode(self, pixels: np.ndarray, fmt: str = 'PNG', quality: int = 92) -> bytes:
        """Encode an RGBA buffer to bytes in the given format."""
        pass


class PillowCodec(BitmapCodec):
    """Codec backed by Pillow."""

    def decode(self, data: bytes) -> np.ndarray:
        if not data:
            raise DecodeError("Empty image data")
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                rgba = img.convert('RGBA')
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise DecodeError(f"Could not decode image: {e}") from e
        return np.array(rgba, dtype=np.uint8)

    def encode(self, pixels: np.ndarray, fmt: str = 'PNG', quality: int = 92) -> bytes:
        fmt = fmt.upper()
        if fmt == 'JPG':
            fmt = 'JPEG'
        img = Image.fromarray(as_rgba(pixels))
        if fmt in _OPAQUE_FORMATS:
            img = img.convert('RGB')

        buffer = io.BytesIO()
        save_kwargs = {'quality': quality} if fmt in ('JPEG', 'WEBP') else {}
        img.save(buffer, format=fmt, **save_kwargs)
        logger.debug(f"Encoded {img.size[0]}x{img.size[1]} image as {fmt}")
        return buffer.getvalue()
