#!/usr/bin/env python3
"""
Relative luminance and WCAG contrast.

Also hosts the small color helpers shared by the other passes (hex and HSL
conversion, hue distance) and the foreground/background estimate used when
no explicit text colors are known.
"""

import colorsys
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from pixel_buffer import PixelBuffer, InvalidParameterError, round_half_up


# =============================================================================
# Constants
# =============================================================================

LUMINANCE_WEIGHTS = np.array([0.2126, 0.7152, 0.0722])
SRGB_LINEAR_THRESHOLD = 0.03928

# (minimum ratio, level, comment), checked top-down
CONTRAST_LEVELS = [
    (7.0, "AAA", "Highly legible, fine even for small text."),
    (4.5, "AA", "Legible for normal body text."),
    (3.0, "A", "Slightly weak contrast, acceptable for large text only."),
]
FAILING_LEVEL = ("NG", "Text and background are too close in brightness to read comfortably.")

TEXT_SAMPLE_STRIDE = 10  # Every Nth pixel when estimating text colors

ColorPoint = tuple  # (r, g, b), 0-255 ints
ColorLike = Union[Sequence[int], str]


# =============================================================================
# Color Helpers
# =============================================================================

def clamp_color(rgb) -> ColorPoint:
    """Round and clamp a color to integer channels in 0-255."""
    return tuple(int(min(255, max(0, round_half_up(float(v))))) for v in rgb[:3])


def rgb_to_hex(rgb) -> str:
    r, g, b = clamp_color(rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(hex_color: str) -> ColorPoint:
    """Parse '#rrggbb' or '#rgb' into a color tuple."""
    h = hex_color.strip().lstrip('#')
    if len(h) == 3:
        h = ''.join(c * 2 for c in h)
    if len(h) != 6:
        raise InvalidParameterError(f"Not a hex color: {hex_color!r}")
    try:
        return tuple(int(h[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError as e:
        raise InvalidParameterError(f"Not a hex color: {hex_color!r}") from e


def to_color(color: ColorLike) -> ColorPoint:
    """Accept either a hex string or an RGB sequence."""
    if isinstance(color, str):
        return hex_to_rgb(color)
    return clamp_color(color)


def rgb_to_hsl(rgb) -> tuple:
    """Convert RGB (0-255) to HSL with hue 0-360 and saturation/lightness 0-100."""
    r, g, b = (v / 255.0 for v in clamp_color(rgb))
    h, l, s = colorsys.rgb_to_hls(r, g, b)
    return h * 360.0, s * 100.0, l * 100.0


def circular_hue_distance(hue1: float, hue2: float) -> float:
    """Compute minimum angular distance between two hues (0-180)."""
    diff = abs((hue1 % 360) - (hue2 % 360))
    return min(diff, 360 - diff)


# =============================================================================
# Luminance
# =============================================================================

def luminance_array(rgb: np.ndarray) -> np.ndarray:
    """Relative luminance for an array of RGB values (0-255), shape (..., 3)."""
    norm = np.asarray(rgb, dtype=np.float64) / 255.0
    linear = np.where(
        norm <= SRGB_LINEAR_THRESHOLD,
        norm / 12.92,
        ((norm + 0.055) / 1.055) ** 2.4,
    )
    return np.clip(linear @ LUMINANCE_WEIGHTS, 0.0, 1.0)


def relative_luminance(color: ColorLike) -> float:
    """WCAG relative luminance of a single color, in [0, 1]."""
    return float(luminance_array(np.array(to_color(color), dtype=np.float64)))


def simple_luminance_array(rgb: np.ndarray) -> np.ndarray:
    """Weighted brightness without sRGB linearization, in [0, 1]."""
    return (np.asarray(rgb, dtype=np.float64) / 255.0) @ LUMINANCE_WEIGHTS


# =============================================================================
# Contrast
# =============================================================================

@dataclass
class ContrastResult:
    """WCAG contrast between two colors."""
    ratio: float  # >= 1.0
    level: str  # 'AAA', 'AA', 'A', 'NG'
    comment: str


def classify_ratio(ratio: float) -> tuple:
    """Map a contrast ratio to (level, comment)."""
    for minimum, level, comment in CONTRAST_LEVELS:
        if ratio >= minimum:
            return level, comment
    return FAILING_LEVEL


def contrast_of(fg: ColorLike, bg: ColorLike) -> ContrastResult:
    """Compute the WCAG contrast ratio and level of two colors."""
    l1 = relative_luminance(fg)
    l2 = relative_luminance(bg)

    lighter = max(l1, l2)
    darker = min(l1, l2)
    ratio = (lighter + 0.05) / (darker + 0.05)

    level, comment = classify_ratio(ratio)
    return ContrastResult(ratio=ratio, level=level, comment=comment)


@dataclass
class TextContrastEstimate:
    """Guessed text/background pair and their contrast."""
    foreground: ColorPoint
    background: ColorPoint
    contrast: ContrastResult


def estimate_text_colors(buffer: PixelBuffer,
                         stride: int = TEXT_SAMPLE_STRIDE) -> TextContrastEstimate:
    """
    Guess background and text colors from the brightness distribution.

    Samples every `stride`-th pixel in row-major order. The darkest sample is
    taken as background and the brightest as foreground.
    """
    if stride < 1:
        raise InvalidParameterError(f"stride must be >= 1, got {stride}")

    samples = buffer.pixels[:, :, :3].reshape(-1, 3)[::stride]
    order = np.argsort(simple_luminance_array(samples), kind='stable')

    background = clamp_color(samples[order[0]])
    foreground = clamp_color(samples[order[-1]])

    return TextContrastEstimate(
        foreground=foreground,
        background=background,
        contrast=contrast_of(foreground, background),
    )
