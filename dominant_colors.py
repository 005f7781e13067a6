#!/usr/bin/env python3
"""
Dominant color extraction with fixed-budget k-means (scipy) in RGB space,
and a check for palettes whose colors are too similar to tell apart.
"""

import warnings
from dataclasses import dataclass, field
from typing import Sequence, Union

import numpy as np
from scipy.cluster.vq import kmeans2

from pixel_buffer import PixelBuffer, EmptyInputError, InvalidParameterError, downscale
from contrast import ColorLike, clamp_color, circular_hue_distance, rgb_to_hsl, to_color


# =============================================================================
# Constants
# =============================================================================

DEFAULT_CLUSTERS = 5
KMEANS_ITERATIONS = 8
SAMPLE_MAX_WIDTH = 160  # Downscale before sampling to bound point count
MIN_ALPHA = 10  # Pixels at or below this alpha are ignored
NEUTRAL_COLOR = (255, 255, 255)

# Similarity gates (HSL, saturation/lightness in percent)
SIMILAR_LIGHTNESS_DELTA = 15
SIMILAR_SATURATION_DELTA = 20
MANY_SIMILAR_PAIRS = 3

RandomSource = Union[None, int, np.random.Generator]


def _resolve_rng(rng: RandomSource):
    """Accept None, an int seed, or anything with a numpy-style choice()."""
    if rng is None or isinstance(rng, (int, np.integer)):
        return np.random.default_rng(rng)
    return rng


# =============================================================================
# K-Means
# =============================================================================

def kmeans(points: np.ndarray, k: int, iterations: int = KMEANS_ITERATIONS,
           rng: RandomSource = None) -> np.ndarray:
    """
    Cluster RGB points into at most k centers.

    Centers start at k distinct randomly chosen points (fewer if there are
    fewer points). Each round assigns every point to its nearest center by
    squared distance, lowest index winning ties, then moves each center to the
    mean of its points. A center with no points keeps its previous value.

    Args:
        points: Array of shape (n, 3)
        k: Number of clusters
        iterations: Fixed number of assign/update rounds
        rng: Seed or generator for the initial center choice

    Returns:
        Float array of shape (min(k, n), 3)

    Raises:
        EmptyInputError: If points is empty
        InvalidParameterError: If k < 1
    """
    if k < 1:
        raise InvalidParameterError(f"k must be >= 1, got {k}")
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    n = len(points)
    if n == 0:
        raise EmptyInputError("No points to cluster")

    k_eff = min(k, n)
    init = _resolve_rng(rng).choice(n, size=k_eff, replace=False)

    # Empty clusters keep their previous center; kmeans2 only warns about them
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', UserWarning)
        centers, _ = kmeans2(points, points[np.asarray(init)].copy(),
                             iter=iterations, minit='matrix')
    return centers


def dominant_colors(buffer: PixelBuffer, k: int = DEFAULT_CLUSTERS,
                    rng: RandomSource = None,
                    max_width: int = SAMPLE_MAX_WIDTH) -> list:
    """
    Representative colors of the visible pixels, in cluster order.

    Duplicated centers are dropped. A buffer with no visible pixels yields k
    white points.
    """
    if k < 1:
        raise InvalidParameterError(f"k must be >= 1, got {k}")

    sampled = downscale(buffer, max_width)
    pixels = sampled.pixels.reshape(-1, 4)
    points = pixels[pixels[:, 3] > MIN_ALPHA, :3]

    try:
        centers = kmeans(points, k, rng=rng)
    except EmptyInputError:
        return [NEUTRAL_COLOR] * k

    colors = []
    for center in centers:
        color = clamp_color(center)
        if color not in colors:
            colors.append(color)
    return colors


# =============================================================================
# Similarity
# =============================================================================

@dataclass
class SimilarityAssessment:
    """Count of near-identical color pairs and any resulting warning."""
    similar_pairs: int
    warnings: list = field(default_factory=list)
    pair_deltas: list = field(default_factory=list)  # (i, j, dH, dS, dL) for every pair


def assess_color_similarity(colors: Sequence[ColorLike]) -> SimilarityAssessment:
    """
    Count color pairs that differ little in lightness and saturation.

    Hue distance is computed for each pair but does not gate the count.
    """
    hsl = [rgb_to_hsl(to_color(c)) for c in colors]
    similar_pairs = 0
    pair_deltas = []

    for i in range(len(hsl)):
        for j in range(i + 1, len(hsl)):
            h1, s1, l1 = hsl[i]
            h2, s2, l2 = hsl[j]
            delta_h = circular_hue_distance(h1, h2)
            delta_s = abs(s1 - s2)
            delta_l = abs(l1 - l2)
            pair_deltas.append((i, j, delta_h, delta_s, delta_l))
            if delta_l < SIMILAR_LIGHTNESS_DELTA and delta_s < SIMILAR_SATURATION_DELTA:
                similar_pairs += 1

    warnings = []
    if similar_pairs >= MANY_SIMILAR_PAIRS:
        warnings.append(
            "Many colors are similar, so elements may be hard to tell apart. "
            "Consider reducing the number of colors."
        )
    elif similar_pairs >= 1:
        warnings.append("Some color pairs are close, so information may get lost.")

    return SimilarityAssessment(similar_pairs=similar_pairs, warnings=warnings,
                                pair_deltas=pair_deltas)
