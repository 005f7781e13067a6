import numpy as np
import pytest

from pixel_buffer import PixelBuffer, InvalidParameterError
from contrast import relative_luminance
from histogram import (
    NUM_BUCKETS, HistogramMetrics,
    assess_color_balance, compute_histogram_metrics, compute_score,
    dequantize, generate_advice, quantize,
)


def metrics(avg=0.5, distinct=100, pct=10, top=None):
    return HistogramMetrics(
        avg_luminance=avg, distinct_colors=distinct, low_contrast_pct=pct,
        top_colors=top or [(0, 0, 0)], histogram=np.zeros(NUM_BUCKETS, dtype=np.int64),
    )


class TestQuantization:
    def test_bucket_layout(self):
        assert quantize((0, 0, 0)) == 0
        assert quantize((255, 255, 255)) == 511
        assert quantize((255, 0, 0)) == 7 * 64
        assert quantize((0, 32, 0)) == 8
        assert quantize((0, 0, 31)) == 0

    def test_dequantize_representatives(self):
        assert dequantize(0) == (0, 0, 0)
        assert dequantize(511) == (255, 255, 255)
        assert dequantize(1 * 64 + 2 * 8 + 3) == (36, 73, 109)

    def test_round_trip_every_bucket(self):
        for bucket in range(NUM_BUCKETS):
            assert quantize(dequantize(bucket)) == bucket

    def test_dequantize_out_of_range(self):
        with pytest.raises(InvalidParameterError):
            dequantize(NUM_BUCKETS)


class TestHistogramMetrics:
    @pytest.mark.parametrize("color", [(128, 128, 128), (12, 200, 90), (255, 255, 255)])
    @pytest.mark.parametrize("size", [(2, 1), (7, 3), (50, 40)])
    def test_uniform_buffer(self, solid, color, size):
        result = compute_histogram_metrics(solid(color, width=size[0], height=size[1]))
        assert result.distinct_colors == 1
        assert result.low_contrast_pct == 100
        assert result.avg_luminance == pytest.approx(relative_luminance(color))
        assert result.top_colors == [dequantize(quantize(color))]

    def test_single_column_has_no_pairs(self, solid):
        result = compute_histogram_metrics(solid((0, 0, 0), width=1, height=5))
        assert result.adjacent_pairs == 0
        assert result.low_contrast_pct == 0

    def test_checkerboard_has_no_flat_pairs(self, checkerboard):
        result = compute_histogram_metrics(checkerboard(8, 8))
        assert result.low_contrast_pct == 0
        assert result.distinct_colors == 2
        assert result.avg_luminance == pytest.approx(0.5)

    def test_only_right_neighbors_are_compared(self):
        # Rows alternate black/white: every vertical pair differs, every horizontal pair matches
        arr = np.zeros((4, 6, 3), dtype=np.uint8)
        arr[1::2] = 255
        result = compute_histogram_metrics(PixelBuffer.from_array(arr))
        assert result.low_contrast_pct == 100

    def test_top_colors_by_count_then_encounter(self):
        blue, red, green = (0, 0, 255), (255, 0, 0), (0, 255, 0)
        arr = np.array([[blue, red, blue, red, green, green, green]], dtype=np.uint8)
        result = compute_histogram_metrics(PixelBuffer.from_array(arr))
        # blue and red tie on count; blue is encountered first
        assert result.top_colors == [green, blue, red]

    def test_top_colors_capped(self):
        rng = np.random.default_rng(3)
        arr = rng.integers(0, 256, size=(30, 30, 3)).astype(np.uint8)
        result = compute_histogram_metrics(PixelBuffer.from_array(arr))
        assert len(result.top_colors) == 5
        assert result.distinct_colors == int(np.count_nonzero(result.histogram))


class TestScore:
    def test_mid_gray(self, solid):
        result = compute_histogram_metrics(solid((128, 128, 128), width=100, height=100))
        # 90 - 30 + 0.02 - |0.21586 - 0.5| * 20 = 54.337
        assert compute_score(result) == 54

    def test_ideal_image(self):
        assert compute_score(metrics(avg=0.5, distinct=500, pct=0)) == 100

    def test_penalties_are_capped(self):
        assert compute_score(metrics(avg=0.5, distinct=0, pct=100)) == 60

    def test_luminance_penalty(self):
        assert compute_score(metrics(avg=1.0, distinct=0, pct=0)) == 80


class TestAdvice:
    def test_always_four_messages(self):
        assert len(generate_advice(metrics())) == 4

    def test_severe_contrast_cites_percentage(self):
        advice = generate_advice(metrics(pct=42))
        assert "42%" in advice[0]

    @pytest.mark.parametrize("pct, fragment", [(36, "lacks contrast"), (21, "weak"), (20, "well balanced")])
    def test_contrast_rule(self, pct, fragment):
        assert fragment in generate_advice(metrics(pct=pct))[0]

    @pytest.mark.parametrize("avg, fragment", [(0.29, "dark"), (0.86, "bright"), (0.5, "balanced")])
    def test_luminance_rule(self, avg, fragment):
        assert fragment in generate_advice(metrics(avg=avg))[1]

    @pytest.mark.parametrize("distinct, fragment", [(39, "Few colors"), (201, "Many colors"), (120, "well balanced")])
    def test_color_count_rule(self, distinct, fragment):
        assert fragment in generate_advice(metrics(distinct=distinct))[2]

    def test_top_colors_listed(self):
        advice = generate_advice(metrics(top=[(255, 0, 0), (0, 0, 0)]))
        assert "#ff0000, #000000" in advice[3]


class TestColorBalance:
    def test_red_cast_warns(self, solid):
        balance = assess_color_balance(solid((200, 50, 50)))
        assert balance.dominant_channel == 'red'
        assert balance.warning

    def test_blue_cast_is_fine(self, solid):
        balance = assess_color_balance(solid((20, 40, 200)))
        assert balance.dominant_channel == 'blue'
        assert not balance.warning

    def test_gray_is_balanced(self, solid):
        balance = assess_color_balance(solid((128, 128, 128)))
        assert balance.dominant_channel == 'balanced'
        assert not balance.warning
