import numpy as np
import pytest

from pixel_buffer import PixelBuffer


@pytest.fixture
def solid():
    """Factory for a single-color buffer."""
    def make(color, width=16, height=16, alpha=255):
        arr = np.zeros((height, width, 4), dtype=np.uint8)
        arr[:, :, :3] = color
        arr[:, :, 3] = alpha
        return PixelBuffer.from_array(arr)
    return make


@pytest.fixture
def checkerboard():
    """Factory for a 1px black/white checkerboard."""
    def make(width=64, height=64, dark=(0, 0, 0), light=(255, 255, 255)):
        yy, xx = np.mgrid[0:height, 0:width]
        mask = (xx + yy) % 2 == 1
        arr = np.zeros((height, width, 3), dtype=np.uint8)
        arr[~mask] = dark
        arr[mask] = light
        return PixelBuffer.from_array(arr)
    return make


@pytest.fixture
def split():
    """Factory for a buffer with a left and right half in two colors."""
    def make(left, right, width=20, height=10):
        arr = np.zeros((height, width, 3), dtype=np.uint8)
        arr[:, :width // 2] = left
        arr[:, width // 2:] = right
        return PixelBuffer.from_array(arr)
    return make


@pytest.fixture
def png_bytes():
    """Factory encoding a buffer as PNG bytes."""
    import io

    def make(buffer):
        out = io.BytesIO()
        buffer.to_image().save(out, format='PNG')
        return out.getvalue()
    return make
