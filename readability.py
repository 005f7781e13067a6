#!/usr/bin/env python3
"""Readability score from OCR text length, background flatness and contrast."""

import re
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from pixel_buffer import PixelBuffer, InvalidParameterError, round_half_up
from contrast import ContrastResult, estimate_text_colors, simple_luminance_array


# =============================================================================
# Constants
# =============================================================================

BACKGROUND_SAMPLE_STRIDE = 40
LONG_TEXT_LENGTH = 50
SMALL_TEXT_LENGTH = 500  # Length at which text is assumed to be at its smallest
VARIANCE_PENALTY = 1000

CONTRAST_LEVEL_SCORES = {'AAA': 100, 'AA': 80, 'A': 60}
FAILING_CONTRAST_SCORE = 30

TEXT_SCORE_THRESHOLD = 50
BACKGROUND_SCORE_THRESHOLD = 60
CONTRAST_SCORE_THRESHOLD = 70


@dataclass
class ReadabilityResult:
    text_score: float  # 10-100
    background_score: float  # 0-100
    contrast_score: int  # 30, 60, 80 or 100
    score: int  # Rounded mean of the three
    comments: list = field(default_factory=list)


def normalize_ocr_text(text: str) -> str:
    """Collapse whitespace runs from OCR output."""
    return re.sub(r'\s+', ' ', text or '').strip()


def text_size_score(text_length: int) -> float:
    """Longer recognized text is taken as a sign of smaller type."""
    size_ratio = min(1.0, max(0.0, 1 - text_length / SMALL_TEXT_LENGTH))
    if text_length > LONG_TEXT_LENGTH:
        return 60 * size_ratio + 40
    return 90 * size_ratio + 10


def background_flatness_score(buffer: PixelBuffer, stride: int = BACKGROUND_SAMPLE_STRIDE) -> float:
    """Lower brightness variance across sampled pixels scores higher."""
    if stride < 1:
        raise InvalidParameterError(f"stride must be >= 1, got {stride}")
    samples = buffer.pixels[:, :, :3].reshape(-1, 3)[::stride]
    variance = float(np.var(simple_luminance_array(samples)))
    return min(100.0, max(0.0, 100 - variance * VARIANCE_PENALTY))


def contrast_level_score(level: str) -> int:
    return CONTRAST_LEVEL_SCORES.get(level, FAILING_CONTRAST_SCORE)


def analyze_readability(buffer: PixelBuffer, ocr_text: str,
                        contrast: Optional[ContrastResult] = None,
                        stride: int = BACKGROUND_SAMPLE_STRIDE) -> ReadabilityResult:
    """
    Combine three sub-scores into a readability score with comments.

    When contrast is not given, it is estimated from the darkest and
    brightest sampled pixels.
    """
    text = normalize_ocr_text(ocr_text)
    if contrast is None:
        contrast = estimate_text_colors(buffer).contrast

    text_score = text_size_score(len(text))
    background_score = background_flatness_score(buffer, stride)
    contrast_score = contrast_level_score(contrast.level)

    comments = []
    if text_score < TEXT_SCORE_THRESHOLD:
        comments.append("Text may be small (under about 12pt).")
    else:
        comments.append("Text size looks fine.")

    if background_score < BACKGROUND_SCORE_THRESHOLD:
        comments.append("Background brightness varies, so text may get lost in it.")
    else:
        comments.append("Background brightness is stable.")

    if contrast_score < CONTRAST_SCORE_THRESHOLD:
        comments.append("Contrast is somewhat low. Emphasizing the text color will help.")
    else:
        comments.append("Contrast is good.")

    return ReadabilityResult(
        text_score=text_score,
        background_score=background_score,
        contrast_score=contrast_score,
        score=round_half_up((text_score + background_score + contrast_score) / 3),
        comments=comments,
    )
