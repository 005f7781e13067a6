#!/usr/bin/env python3
"""
Unified accessibility analysis pipeline.

Scores a rendered visual (screenshot or uploaded image) and produces advice.
Stages: Load → Global Metrics → Optional Passes → Render
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from pixel_buffer import (
    PixelBuffer, AnalysisError, ImageSource, InvalidParameterError, downscale, load_image,
)
from contrast import TextContrastEstimate, estimate_text_colors, rgb_to_hex
from histogram import (
    ColorBalance, HistogramMetrics,
    assess_color_balance, compute_histogram_metrics, compute_score, generate_advice,
)
from dominant_colors import (
    DEFAULT_CLUSTERS, RandomSource, SimilarityAssessment,
    assess_color_similarity, dominant_colors,
)
from local_contrast import LocalContrastRisk, compute_local_contrast_risk
from whitespace import BoxLike, WhitespaceMetrics, compute_whitespace_metrics
from readability import ReadabilityResult, analyze_readability


# =============================================================================
# Constants
# =============================================================================

ANALYSIS_MAX_WIDTH = 900  # Global pass runs on at most this width


# =============================================================================
# Result
# =============================================================================

@dataclass
class AnalysisResult:
    """Output of one analysis run."""
    score: int
    avg_luminance: float  # 0-1
    distinct_colors: int
    low_contrast_pct: int  # 0-100
    top_colors: list  # (r, g, b) tuples, most frequent first
    advice: list = field(default_factory=list)

    # Optional passes; None when not run or failed
    dominant_colors: Optional[list] = None
    color_similarity: Optional[SimilarityAssessment] = None
    local_contrast: Optional[LocalContrastRisk] = None
    text_contrast: Optional[TextContrastEstimate] = None
    color_balance: Optional[ColorBalance] = None
    whitespace: Optional[WhitespaceMetrics] = None
    readability: Optional[ReadabilityResult] = None
    skipped: list = field(default_factory=list)  # (pass name, error message)


def _optional(result: AnalysisResult, name: str, fn, *args, **kwargs):
    """Run an optional pass; on AnalysisError record it and return None."""
    try:
        return fn(*args, **kwargs)
    except AnalysisError as e:
        result.skipped.append((name, str(e)))
        return None


# =============================================================================
# Main Pipeline
# =============================================================================

def analyze_buffer(buffer: PixelBuffer,
                   ocr_text: Optional[str] = None,
                   boxes: Optional[Iterable[BoxLike]] = None,
                   rng: RandomSource = None,
                   max_width: int = ANALYSIS_MAX_WIDTH,
                   k: int = DEFAULT_CLUSTERS) -> AnalysisResult:
    """
    Run every applicable pass over a buffer.

    Whitespace runs only when boxes is given, readability only when ocr_text
    is given. A failing optional pass is left out instead of aborting, but a
    bad k is a caller error and raises InvalidParameterError up front.
    """
    if k < 1:
        raise InvalidParameterError(f"k must be >= 1, got {k}")

    # Global metrics
    scaled = downscale(buffer, max_width)
    metrics: HistogramMetrics = compute_histogram_metrics(scaled)

    result = AnalysisResult(
        score=compute_score(metrics),
        avg_luminance=metrics.avg_luminance,
        distinct_colors=metrics.distinct_colors,
        low_contrast_pct=metrics.low_contrast_pct,
        top_colors=metrics.top_colors,
        advice=generate_advice(metrics),
    )

    # Optional passes
    result.dominant_colors = _optional(result, 'dominant_colors', dominant_colors, buffer, k, rng)
    if result.dominant_colors is not None:
        result.color_similarity = _optional(
            result, 'color_similarity', assess_color_similarity, result.dominant_colors
        )
    result.local_contrast = _optional(result, 'local_contrast', compute_local_contrast_risk, buffer)
    result.text_contrast = _optional(result, 'text_contrast', estimate_text_colors, scaled)
    result.color_balance = _optional(result, 'color_balance', assess_color_balance, scaled)

    if boxes is not None:
        result.whitespace = _optional(result, 'whitespace', compute_whitespace_metrics, boxes)
    if ocr_text is not None:
        contrast = result.text_contrast.contrast if result.text_contrast else None
        result.readability = _optional(
            result, 'readability', analyze_readability, buffer, ocr_text, contrast
        )

    # Advice, in pass order
    if result.color_similarity:
        result.advice.extend(result.color_similarity.warnings)
    if result.color_balance and result.color_balance.warning:
        result.advice.append(result.color_balance.message)
    if result.whitespace:
        result.advice.append(result.whitespace.comment)
    if result.readability:
        result.advice.extend(result.readability.comments)

    return result


def analyze_image(source: ImageSource, **kwargs) -> AnalysisResult:
    """Load an image (path, bytes or data URL) and analyze it."""
    return analyze_buffer(load_image(source), **kwargs)


# =============================================================================
# Render
# =============================================================================

def render(result: AnalysisResult) -> str:
    """Render an analysis result as prose."""
    lines = []

    # Header
    lines.append(f"SCORE: {result.score}")
    lines.append(f"Average luminance: {result.avg_luminance:.3f} | "
                 f"Distinct colors: {result.distinct_colors} | "
                 f"Low-contrast neighbors: {result.low_contrast_pct}%")
    lines.append(f"Top colors: {', '.join(rgb_to_hex(c) for c in result.top_colors)}")
    lines.append("")

    # Metrics section
    lines.append("METRICS:")
    lines.append("")

    if result.dominant_colors is not None:
        lines.append(f"Dominant colors: {', '.join(rgb_to_hex(c) for c in result.dominant_colors)}")
    if result.color_similarity is not None:
        lines.append(f"  Similar color pairs: {result.color_similarity.similar_pairs}")
    if result.local_contrast is not None:
        lc = result.local_contrast
        lines.append(f"Flat regions: {lc.low_contrast_pct}% ({lc.low_tiles}/{lc.total_tiles} tiles)")
    if result.text_contrast is not None:
        tc = result.text_contrast
        lines.append(f"Estimated text/background: {rgb_to_hex(tc.foreground)} / {rgb_to_hex(tc.background)}: "
                     f"Ratio {tc.contrast.ratio:.2f}:1 ({tc.contrast.level}) | {tc.contrast.comment}")
    if result.color_balance is not None:
        lines.append(f"Color balance: {result.color_balance.dominant_channel}")
    if result.whitespace is not None:
        ws = result.whitespace
        ratio = f" | Spacing ratio {ws.ratio:.2f}" if ws.ratio is not None else ""
        lines.append(f"Density score: {ws.density_score}/20{ratio}")
    if result.readability is not None:
        rd = result.readability
        lines.append(f"Readability: {rd.score} (text {rd.text_score:.0f}, "
                     f"background {rd.background_score:.0f}, contrast {rd.contrast_score})")
    for name, error in result.skipped:
        lines.append(f"Skipped {name}: {error}")
    lines.append("")

    # Advice section
    lines.append("ADVICE:")
    lines.append("")
    for item in result.advice:
        lines.append(f"  - {item}")

    return "\n".join(lines)


def result_to_dict(result: AnalysisResult) -> dict:
    """Plain-data form of a result, for JSON output."""
    data = asdict(result)
    data['top_colors'] = [rgb_to_hex(c) for c in result.top_colors]
    if result.dominant_colors is not None:
        data['dominant_colors'] = [rgb_to_hex(c) for c in result.dominant_colors]
    if result.text_contrast is not None:
        data['text_contrast']['foreground'] = rgb_to_hex(result.text_contrast.foreground)
        data['text_contrast']['background'] = rgb_to_hex(result.text_contrast.background)
    return data


def load_boxes(path) -> list:
    """Read OCR boxes from a JSON list of {x0, y0, x1, y1} objects."""
    data = json.loads(Path(path).read_text())
    if isinstance(data, dict):
        data = data.get('boxes', [])
    return data


# =============================================================================
# CLI
# =============================================================================

if __name__ == '__main__':
    import argparse
    import sys

    parser = argparse.ArgumentParser(
        description='Analyze a screenshot or image for visual accessibility.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Path to the image file'
    )
    parser.add_argument(
        '--ocr-text',
        default=None,
        help='Text file with OCR output for the image (enables readability)'
    )
    parser.add_argument(
        '--boxes',
        default=None,
        help='JSON file with OCR text boxes as [{x0, y0, x1, y1}, ...] (enables density)'
    )
    parser.add_argument(
        '--colors', '-k',
        type=int,
        default=DEFAULT_CLUSTERS,
        help='Number of dominant colors to extract (default: 5)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for dominant color clustering'
    )
    parser.add_argument(
        '--max-width',
        type=int,
        default=ANALYSIS_MAX_WIDTH,
        help='Downscale width for the global pass (default: 900)'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the result as JSON instead of prose'
    )

    args = parser.parse_args()
    image_path = Path(args.input)

    try:
        ocr_text = Path(args.ocr_text).read_text() if args.ocr_text else None
        boxes = load_boxes(args.boxes) if args.boxes else None
    except (OSError, ValueError) as e:
        print(f"Error reading OCR input: {e}", file=sys.stderr)
        sys.exit(1)

    # Run analysis
    try:
        result = analyze_image(str(image_path), ocr_text=ocr_text, boxes=boxes,
                               rng=args.seed, max_width=args.max_width, k=args.colors)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(json.dumps(result_to_dict(result), indent=2, ensure_ascii=False))
    else:
        print(render(result))
