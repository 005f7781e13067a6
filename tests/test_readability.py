import numpy as np
import pytest

from pixel_buffer import PixelBuffer
from contrast import ContrastResult
from readability import (
    analyze_readability, background_flatness_score, normalize_ocr_text, text_size_score,
)


def top_bottom(width=40, height=40):
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[height // 2:] = 255
    return PixelBuffer.from_array(arr)


def test_normalize_ocr_text():
    assert normalize_ocr_text("  Hello \n\n  world\t!  ") == "Hello world !"
    assert normalize_ocr_text("") == ""


@pytest.mark.parametrize("length, expected", [
    (0, 100.0), (30, 94.6), (50, 91.0), (51, 93.88), (100, 88.0), (480, 42.4), (800, 40.0),
])
def test_text_size_score(length, expected):
    assert text_size_score(length) == pytest.approx(expected)


def test_flat_background_scores_full(solid):
    assert background_flatness_score(solid((50, 50, 50), width=80, height=80)) == 100


def test_busy_background_scores_zero():
    # Samples land on both halves: variance 0.25
    assert background_flatness_score(top_bottom()) == 0


def test_supplied_contrast_level():
    contrast = ContrastResult(ratio=3.2, level="A", comment="")
    result = analyze_readability(top_bottom(), "short text", contrast=contrast)
    assert result.contrast_score == 60
    assert "Contrast is somewhat low" in result.comments[2]


def test_contrast_estimated_from_buffer(solid):
    result = analyze_readability(solid((128, 128, 128)), "hello")
    assert result.contrast_score == 30
    assert result.background_score == 100


def test_one_comment_per_sub_score(solid):
    result = analyze_readability(solid((0, 0, 0)), "x" * 480,
                                 contrast=ContrastResult(ratio=21, level="AAA", comment=""))
    assert result.comments == [
        "Text may be small (under about 12pt).",
        "Background brightness is stable.",
        "Contrast is good.",
    ]


def test_combined_score(solid):
    contrast = ContrastResult(ratio=5, level="AA", comment="")
    result = analyze_readability(solid((255, 255, 255)), "", contrast=contrast)
    # (100 + 100 + 80) / 3
    assert result.score == 93


def test_whitespace_does_not_count_toward_length(solid):
    padded = analyze_readability(solid((0, 0, 0)), "  a  " * 30)
    compact = analyze_readability(solid((0, 0, 0)), " ".join(["a"] * 30))
    assert padded.text_score == compact.text_score
