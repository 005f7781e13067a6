#!/usr/bin/env python3
"""
Tiled local-contrast scan.

Flat tiles (low luminance standard deviation) are where foreground content is
likely to sink into the background.
"""

from dataclasses import dataclass

import numpy as np

from pixel_buffer import PixelBuffer, InvalidParameterError, downscale, round_half_up
from contrast import LUMINANCE_WEIGHTS


# =============================================================================
# Constants
# =============================================================================

SCAN_MAX_WIDTH = 800
TILE_SIZE = 32
LOW_RMS_CONTRAST = 0.08


@dataclass
class LocalContrastRisk:
    """Share of tiles whose RMS contrast is below the threshold."""
    low_contrast_pct: int  # 0-100
    low_tiles: int
    total_tiles: int


def rms_contrast(rgb: np.ndarray) -> float:
    """Standard deviation of weighted 0-255 brightness, divided by 255."""
    y = np.asarray(rgb, dtype=np.float64).reshape(-1, 3) @ LUMINANCE_WEIGHTS
    mean = y.mean()
    variance = max(0.0, float((y * y).mean() - mean * mean))
    return variance ** 0.5 / 255


def compute_local_contrast_risk(buffer: PixelBuffer,
                                max_width: int = SCAN_MAX_WIDTH,
                                tile: int = TILE_SIZE,
                                threshold: float = LOW_RMS_CONTRAST) -> LocalContrastRisk:
    """Scan non-overlapping tiles (clipped at the edges) and count the flat ones."""
    if tile < 1:
        raise InvalidParameterError(f"tile must be >= 1, got {tile}")

    scanned = downscale(buffer, max_width)
    rgb = scanned.pixels[:, :, :3]
    h, w = rgb.shape[:2]

    low = 0
    total = 0
    for y in range(0, h, tile):
        for x in range(0, w, tile):
            if rms_contrast(rgb[y:y + tile, x:x + tile]) < threshold:
                low += 1
            total += 1

    pct = round_half_up(low / max(1, total) * 100)
    return LocalContrastRisk(low_contrast_pct=pct, low_tiles=low, total_tiles=total)
