#!/usr/bin/env python3
"""
Time each analysis pass and rank them by cost.

Every pass runs on the same input it gets inside analyze_buffer: the global
metrics on the downscaled copy, the rest on the full buffer. Simulations are
included since they are the heaviest per-pixel work.
"""

import argparse
import cProfile
import io
import pstats
import sys
import time
from pathlib import Path

from pixel_buffer import load_image, downscale
from contrast import estimate_text_colors
from histogram import assess_color_balance, compute_histogram_metrics
from color_vision import blur_stage, simulate_color_vision, yellow_cast_stage
from dominant_colors import dominant_colors
from local_contrast import compute_local_contrast_risk
from readability import background_flatness_score
from analyze import ANALYSIS_MAX_WIDTH, analyze_buffer
from batch_analyze import find_images


# Each pass takes (full buffer, downscaled buffer)
PASSES = [
    ('downscale', lambda full, scaled: downscale(full, ANALYSIS_MAX_WIDTH)),
    ('histogram', lambda full, scaled: compute_histogram_metrics(scaled)),
    ('dominant_colors', lambda full, scaled: dominant_colors(full, rng=0)),
    ('local_contrast', lambda full, scaled: compute_local_contrast_risk(full)),
    ('text_contrast', lambda full, scaled: estimate_text_colors(scaled)),
    ('color_balance', lambda full, scaled: assess_color_balance(scaled)),
    ('background_flatness', lambda full, scaled: background_flatness_score(full)),
    ('protan', lambda full, scaled: simulate_color_vision(full, 'protan')),
    ('deutan', lambda full, scaled: simulate_color_vision(full, 'deutan')),
    ('tritan', lambda full, scaled: simulate_color_vision(full, 'tritan')),
    ('aging_blur', lambda full, scaled: blur_stage(full)),
    ('aging_yellow', lambda full, scaled: yellow_cast_stage(full)),
]


def time_passes(buffer, repeat: int = 3) -> dict:
    """Best-of-repeat wall time for every pass, in seconds."""
    scaled = downscale(buffer, ANALYSIS_MAX_WIDTH)
    timings = {}
    for name, run in PASSES:
        best = float('inf')
        for _ in range(repeat):
            start = time.perf_counter()
            run(buffer, scaled)
            best = min(best, time.perf_counter() - start)
        timings[name] = best
    return timings


def rank(totals: dict) -> list:
    """Lines ranking passes by time, with each pass's share of the total."""
    grand = sum(totals.values()) or 1.0
    lines = []
    for name, seconds in sorted(totals.items(), key=lambda kv: kv[1], reverse=True):
        share = seconds / grand
        lines.append(f"  {name:<20} {seconds * 1000:9.1f} ms  {share:6.1%}  {'#' * round(share * 40)}")
    return lines


def profile_full_analysis(buffer, top: int) -> str:
    """cProfile of one analyze_buffer call, top functions by cumulative time."""
    profiler = cProfile.Profile()
    profiler.enable()
    analyze_buffer(buffer, ocr_text="", boxes=[], rng=0)
    profiler.disable()

    stream = io.StringIO()
    pstats.Stats(profiler, stream=stream).sort_stats('cumulative').print_stats(top)
    return stream.getvalue()


def main():
    parser = argparse.ArgumentParser(description='Rank analysis passes by running time.')
    parser.add_argument('paths', nargs='*', default=['source_images'],
                        help='Image files or directories (default: source_images)')
    parser.add_argument('--repeat', type=int, default=3,
                        help='Runs per pass; the fastest is kept (default: 3)')
    parser.add_argument('--cprofile', type=int, default=0, metavar='N',
                        help='Also cProfile a full analysis of the first image, showing N functions')
    args = parser.parse_args()

    images = []
    for raw in args.paths:
        path = Path(raw)
        images.extend(find_images(path) if path.is_dir() else [path])
    if not images:
        print(f"Error: No images found in {', '.join(args.paths)}", file=sys.stderr)
        sys.exit(1)

    totals = {name: 0.0 for name, _ in PASSES}
    first = None
    for image_path in images:
        try:
            buffer = load_image(image_path)
        except (OSError, ValueError) as e:
            print(f"Error: {image_path}: {e}", file=sys.stderr)
            continue
        first = first or buffer

        timings = time_passes(buffer, args.repeat)
        slowest = max(timings, key=timings.get)
        print(f"{image_path.name}: {buffer.width}x{buffer.height}, "
              f"{sum(timings.values()) * 1000:.1f} ms total, slowest {slowest}")
        for name, seconds in timings.items():
            totals[name] += seconds

    if first is None:
        sys.exit(1)

    print(f"\nPasses by cost over {len(images)} image(s):")
    for line in rank(totals):
        print(line)

    if args.cprofile:
        print(profile_full_analysis(first, args.cprofile))


if __name__ == '__main__':
    main()
