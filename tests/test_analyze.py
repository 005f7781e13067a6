import json

import numpy as np
import pytest

from pixel_buffer import PixelBuffer, DecodeError, InvalidParameterError
from readability import background_flatness_score
from analyze import analyze_buffer, analyze_image, render, result_to_dict


@pytest.fixture
def gray(solid):
    return solid((128, 128, 128), width=100, height=100)


class TestAnalyzeBuffer:
    def test_mid_gray_end_to_end(self, gray):
        result = analyze_buffer(gray, rng=0)
        assert result.score == 54
        assert result.avg_luminance == pytest.approx(0.21586, abs=1e-4)
        assert result.distinct_colors == 1
        assert result.low_contrast_pct == 100
        assert result.top_colors == [(146, 146, 146)]

    def test_mid_gray_advice(self, gray):
        advice = analyze_buffer(gray, rng=0).advice
        assert len(advice) == 4
        assert "100%" in advice[0]
        assert "dark" in advice[1]
        assert "Few colors" in advice[2]
        assert "#929292" in advice[3]

    def test_optional_inputs_absent(self, gray):
        result = analyze_buffer(gray, rng=0)
        assert result.whitespace is None
        assert result.readability is None
        assert result.skipped == []
        assert result.dominant_colors == [(128, 128, 128)]
        assert result.color_similarity.similar_pairs == 0
        assert result.local_contrast.low_contrast_pct == 100
        assert result.color_balance.dominant_channel == 'balanced'

    def test_with_ocr_inputs(self, gray):
        boxes = [{"x0": 0, "y0": 0, "x1": 10, "y1": 10}, {"x0": 15, "y0": 0, "x1": 25, "y1": 10}]
        result = analyze_buffer(gray, ocr_text="Sale today", boxes=boxes, rng=0)
        assert result.whitespace.density_score == 18
        assert result.readability.contrast_score == 30
        assert result.advice[4] == result.whitespace.comment
        assert result.advice[5:] == result.readability.comments

    def test_empty_boxes_give_neutral_density(self, gray):
        result = analyze_buffer(gray, boxes=[], rng=0)
        assert result.whitespace.density_score == 10
        assert result.whitespace.comment in result.advice

    def test_failing_optional_pass_is_omitted(self, gray):
        result = analyze_buffer(gray, boxes=[{"x0": 10, "y0": 0, "x1": 0, "y1": 5}], rng=0)
        assert result.score == 54
        assert result.whitespace is None
        assert result.dominant_colors == [(128, 128, 128)]
        assert [name for name, _ in result.skipped] == ['whitespace']

    def test_invalid_k_fails_fast(self, gray):
        with pytest.raises(InvalidParameterError):
            analyze_buffer(gray, k=0, rng=0)

    def test_readability_uses_full_resolution(self):
        # 1px stripes: every 40th pixel of a 1200px row lands on an even column
        arr = np.full((20, 1200, 3), 128, dtype=np.uint8)
        arr[:, 1::2] = 77
        buffer = PixelBuffer.from_array(arr)
        assert background_flatness_score(buffer) == 100
        result = analyze_buffer(buffer, ocr_text="hello", rng=0)
        assert result.readability.background_score == 100

    def test_color_advice_added(self):
        arr = np.zeros((20, 20, 3), dtype=np.uint8)
        arr[:, :] = (220, 40, 40)
        arr[::2, ::2] = (200, 30, 30)
        result = analyze_buffer(PixelBuffer.from_array(arr), k=2, rng=0)
        assert any("leans toward red" in a for a in result.advice)

    def test_large_buffer_is_downscaled(self, solid):
        result = analyze_buffer(solid((128, 128, 128), width=1800, height=200), rng=0)
        assert result.score == 54

    def test_input_buffer_not_modified(self, checkerboard):
        buffer = checkerboard(32, 32)
        before = buffer.pixels.copy()
        analyze_buffer(buffer, ocr_text="abc", boxes=[], rng=0)
        assert np.array_equal(buffer.pixels, before)


class TestAnalyzeImage:
    def test_from_png_bytes(self, gray, png_bytes):
        assert analyze_image(png_bytes(gray), rng=0).score == 54

    def test_undecodable(self):
        with pytest.raises(DecodeError):
            analyze_image(b"\x89PNG broken")


class TestRender:
    def test_prose(self, gray):
        text = render(analyze_buffer(gray, ocr_text="hello", boxes=[], rng=0))
        assert text.startswith("SCORE: 54")
        assert "Top colors: #929292" in text
        assert "Density score: 10/20" in text
        assert "ADVICE:" in text

    def test_json_ready(self, gray):
        data = result_to_dict(analyze_buffer(gray, ocr_text="hello", boxes=[], rng=0))
        decoded = json.loads(json.dumps(data))
        assert decoded['score'] == 54
        assert decoded['top_colors'] == ['#929292']
        assert decoded['dominant_colors'] == ['#808080']
