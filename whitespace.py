#!/usr/bin/env python3
"""
Whitespace and density scoring from OCR text boxes.

Spacing is judged by the median nearest-neighbor distance between box centers
relative to the median box height (a proxy for glyph size).
"""

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Union

import numpy as np

from pixel_buffer import InvalidParameterError, round_half_up


# =============================================================================
# Constants
# =============================================================================

MAX_DENSITY_SCORE = 20
NEUTRAL_DENSITY_SCORE = 10

COMFORT_MIN_RATIO = 1.2
COMFORT_MAX_RATIO = 2.5
COMFORT_BASE_SCORE = 18
CROWDED_MIN_SCORE = 4
SPARSE_MIN_SCORE = 6
SPARSE_SLOPE = 4

COMMENT_LOW_CONFIDENCE = "Little text was detected, so this is a rough estimate."
COMMENT_COMFORTABLE = "Spacing between elements is about right."
COMMENT_CROWDED = "Content may look crammed. Widen the spacing between elements a little."
COMMENT_SPARSE = "Elements are far apart and the eye may wander. Tighten the spacing a little."


@dataclass(frozen=True)
class BoundingBox:
    """Text box in image pixel coordinates."""
    x0: float
    y0: float
    x1: float
    y1: float

    def __post_init__(self):
        if self.x1 < self.x0 or self.y1 < self.y0:
            raise InvalidParameterError(
                f"Invalid box ({self.x0}, {self.y0}, {self.x1}, {self.y1}): "
                f"need x1 >= x0 and y1 >= y0"
            )

    @classmethod
    def from_mapping(cls, data: Mapping) -> 'BoundingBox':
        """Build from an OCR-style dict with x0/y0/x1/y1 keys."""
        try:
            return cls(float(data['x0']), float(data['y0']), float(data['x1']), float(data['y1']))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidParameterError(f"Malformed bounding box {data!r}: {e}") from e

    @property
    def center(self) -> tuple:
        return (self.x0 + self.x1) / 2, (self.y0 + self.y1) / 2

    @property
    def height(self) -> float:
        return self.y1 - self.y0


BoxLike = Union[BoundingBox, Mapping]


def to_boxes(boxes: Iterable[BoxLike]) -> list:
    return [b if isinstance(b, BoundingBox) else BoundingBox.from_mapping(b) for b in boxes]


@dataclass
class WhitespaceMetrics:
    """Density score (0-20, higher is better) with a comment."""
    density_score: int
    comment: str
    ratio: Optional[float] = None  # Median neighbor distance / median height


def median(values) -> float:
    """Median of values, 0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.median(values))


def nearest_neighbor_distances(centers: list) -> list:
    """Distance from each center to its closest other center; lone centers are skipped."""
    dists = []
    for i, (x, y) in enumerate(centers):
        best = math.inf
        for j, (ox, oy) in enumerate(centers):
            if i == j:
                continue
            best = min(best, math.hypot(x - ox, y - oy))
        if math.isfinite(best):
            dists.append(best)
    return dists


def compute_whitespace_metrics(boxes: Iterable[BoxLike]) -> WhitespaceMetrics:
    """Score text spacing; no boxes gives a neutral low-confidence result."""
    boxes = to_boxes(boxes)
    if not boxes:
        return WhitespaceMetrics(density_score=NEUTRAL_DENSITY_SCORE, comment=COMMENT_LOW_CONFIDENCE)

    distance = median(nearest_neighbor_distances([b.center for b in boxes]))
    height = median([b.height for b in boxes]) or 1.0
    ratio = distance / height

    if COMFORT_MIN_RATIO <= ratio <= COMFORT_MAX_RATIO:
        score = COMFORT_BASE_SCORE + min(2, (ratio - COMFORT_MIN_RATIO) * 1.5)
        comment = COMMENT_COMFORTABLE
    elif ratio < COMFORT_MIN_RATIO:
        score = max(CROWDED_MIN_SCORE, round_half_up(MAX_DENSITY_SCORE * ratio / COMFORT_MIN_RATIO) - 2)
        comment = COMMENT_CROWDED
    else:
        score = max(SPARSE_MIN_SCORE,
                    round_half_up(MAX_DENSITY_SCORE - (ratio - COMFORT_MAX_RATIO) * SPARSE_SLOPE))
        comment = COMMENT_SPARSE

    score = min(MAX_DENSITY_SCORE, max(0, round_half_up(score)))
    return WhitespaceMetrics(density_score=score, comment=comment, ratio=ratio)
