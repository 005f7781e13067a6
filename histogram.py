#!/usr/bin/env python3
"""
Quantized color histogram and the global accessibility heuristics.

Each channel is truncated to its top 3 bits, giving 8x8x8 = 512 buckets.
The same single pass also collects average luminance and the share of
horizontally adjacent pixel pairs whose luminance is nearly equal.
"""

from dataclasses import dataclass, field

import numpy as np

from pixel_buffer import PixelBuffer, InvalidParameterError, round_half_up
from contrast import luminance_array, rgb_to_hex


# =============================================================================
# Constants
# =============================================================================

QUANT_BITS = 3
QUANT_LEVELS = 1 << QUANT_BITS  # 8 levels per channel
NUM_BUCKETS = QUANT_LEVELS ** 3  # 512
QUANT_SHIFT = 8 - QUANT_BITS

ADJACENT_LUMINANCE_DELTA = 0.06  # Neighbor pairs closer than this count as flat
TOP_COLOR_COUNT = 5

# Score heuristic
BASE_SCORE = 90
MAX_CONTRAST_PENALTY = 30
MAX_COLOR_BONUS = 10
COLORS_PER_BONUS_POINT = 50
LUMINANCE_PENALTY_WEIGHT = 20

# Advice thresholds
LOW_CONTRAST_SEVERE_PCT = 35
LOW_CONTRAST_MILD_PCT = 20
DARK_LUMINANCE = 0.3
BRIGHT_LUMINANCE = 0.85
FEW_COLORS = 40
MANY_COLORS = 200


# =============================================================================
# Quantization
# =============================================================================

def quantize(rgb) -> int:
    """Bucket index of a single color."""
    r, g, b = (int(v) >> QUANT_SHIFT for v in rgb[:3])
    return r * QUANT_LEVELS * QUANT_LEVELS + g * QUANT_LEVELS + b


def quantize_array(rgb: np.ndarray) -> np.ndarray:
    """Bucket indices for an array of uint8 colors, shape (..., 3)."""
    q = np.asarray(rgb).astype(np.int32) >> QUANT_SHIFT
    return q[..., 0] * QUANT_LEVELS * QUANT_LEVELS + q[..., 1] * QUANT_LEVELS + q[..., 2]


def dequantize(bucket: int) -> tuple:
    """Representative color of a bucket: each level q maps to round(q / 7 * 255)."""
    if not 0 <= bucket < NUM_BUCKETS:
        raise InvalidParameterError(f"Bucket {bucket} outside 0-{NUM_BUCKETS - 1}")
    top = QUANT_LEVELS - 1
    levels = ((bucket >> (2 * QUANT_BITS)) & top,
              (bucket >> QUANT_BITS) & top,
              bucket & top)
    return tuple(round_half_up(q / top * 255) for q in levels)


# =============================================================================
# Histogram Pass
# =============================================================================

@dataclass
class HistogramMetrics:
    """Global statistics of one pass over the buffer."""
    avg_luminance: float  # 0-1
    distinct_colors: int  # Non-empty buckets
    low_contrast_pct: int  # 0-100
    top_colors: list  # De-quantized colors, most frequent first
    histogram: np.ndarray = field(repr=False)  # NUM_BUCKETS counts
    low_contrast_pairs: int = 0
    adjacent_pairs: int = 0


def top_buckets(buckets: np.ndarray, counts: np.ndarray, n: int) -> list:
    """
    Return the n most frequent buckets.

    Ties are broken by the order in which buckets are first encountered in
    the row-major pixel scan.
    """
    flat = buckets.ravel()
    present, first_seen = np.unique(flat, return_index=True)
    ranked = sorted(zip(present.tolist(), first_seen.tolist()),
                    key=lambda item: (-counts[item[0]], item[1]))
    return [bucket for bucket, _ in ranked[:n]]


def compute_histogram_metrics(buffer: PixelBuffer, top_n: int = TOP_COLOR_COUNT) -> HistogramMetrics:
    """Walk every pixel once: luminance sum, bucket histogram, flat neighbor pairs."""
    rgb = buffer.pixels[:, :, :3]
    lum = luminance_array(rgb)

    buckets = quantize_array(rgb)
    counts = np.bincount(buckets.ravel(), minlength=NUM_BUCKETS)

    # Right-neighbor comparison only
    h, w = lum.shape
    adjacent_pairs = h * (w - 1)
    low_pairs = int(np.count_nonzero(np.abs(np.diff(lum, axis=1)) < ADJACENT_LUMINANCE_DELTA))
    low_contrast_pct = round_half_up(100 * low_pairs / adjacent_pairs) if adjacent_pairs else 0

    top = top_buckets(buckets, counts, top_n)

    return HistogramMetrics(
        avg_luminance=float(lum.sum() / buffer.pixel_count),
        distinct_colors=int(np.count_nonzero(counts)),
        low_contrast_pct=low_contrast_pct,
        top_colors=[dequantize(b) for b in top],
        histogram=counts,
        low_contrast_pairs=low_pairs,
        adjacent_pairs=adjacent_pairs,
    )


# =============================================================================
# Score and Advice
# =============================================================================

def compute_score(metrics: HistogramMetrics) -> int:
    """Additive global heuristic, rounded to the nearest integer."""
    score = (
        BASE_SCORE
        - min(MAX_CONTRAST_PENALTY, metrics.low_contrast_pct / 2)
        + min(MAX_COLOR_BONUS, metrics.distinct_colors / COLORS_PER_BONUS_POINT)
        - abs(metrics.avg_luminance - 0.5) * LUMINANCE_PENALTY_WEIGHT
    )
    return round_half_up(score)


def generate_advice(metrics: HistogramMetrics) -> list:
    """One message per rule (contrast, luminance, color count) plus the top colors."""
    advice = []

    pct = metrics.low_contrast_pct
    if pct > LOW_CONTRAST_SEVERE_PCT:
        advice.append(
            f"Text and background brightness are close: about {pct}% of the image lacks contrast. "
            f"Outlining text or changing the background brightness will improve legibility a lot."
        )
    elif pct > LOW_CONTRAST_MILD_PCT:
        advice.append(
            "Mostly easy to see, but contrast is weak in places. "
            "A little more difference in lightness or saturation will make it read more clearly."
        )
    else:
        advice.append("Contrast is well balanced. Visibility is good.")

    avg = metrics.avg_luminance
    if avg < DARK_LUMINANCE:
        advice.append("The image is rather dark overall. Brighten the background or move text toward white.")
    elif avg > BRIGHT_LUMINANCE:
        advice.append(
            "The image is very bright overall. Pale text on white should be bolder or outlined."
        )
    else:
        advice.append("Luminance is balanced and reads naturally.")

    colors = metrics.distinct_colors
    if colors < FEW_COLORS:
        advice.append("Few colors are used. A restrained accent color can help structure the layout.")
    elif colors > MANY_COLORS:
        advice.append(
            "Many colors are used. Similar colors are hard to tell apart, so consolidate related shades."
        )
    else:
        advice.append("The number of colors is well balanced and conveys priority naturally.")

    palette = ", ".join(rgb_to_hex(c) for c in metrics.top_colors)
    advice.append(
        f"The main colors appear to be {palette}. Separating primary and supporting colors is effective."
    )
    return advice


# =============================================================================
# Color Balance
# =============================================================================

@dataclass
class ColorBalance:
    """Whether the average color leans toward one channel."""
    dominant_channel: str  # 'red', 'green', 'blue', 'balanced'
    warning: bool
    message: str


def assess_color_balance(buffer: PixelBuffer) -> ColorBalance:
    """Flag images whose mean color is dominated by red or green."""
    avg_r, avg_g, avg_b = buffer.rgb.reshape(-1, 3).mean(axis=0)

    if avg_r > avg_g and avg_r > avg_b:
        dominant = 'red'
    elif avg_g > avg_r and avg_g > avg_b:
        dominant = 'green'
    elif avg_b > avg_r and avg_b > avg_g:
        dominant = 'blue'
    else:
        dominant = 'balanced'

    warning = dominant in ('red', 'green')
    if warning:
        message = f"The overall tint leans toward {dominant}. Consider rebalancing the palette."
    else:
        message = "No particular color cast. The palette is well balanced."

    return ColorBalance(dominant_channel=dominant, warning=warning, message=message)
