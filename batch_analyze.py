#!/usr/bin/env python3
"""
Analyze every image in a directory and write one report per image.

OCR output is picked up from sidecar files next to each image when present:
`<stem>.txt` for recognized text and `<stem>.boxes.json` for text boxes.
A `summary.json` index ranks the images by score.
"""

import argparse
import json
import statistics
import sys
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Optional

from analyze import analyze_image, load_boxes, render, result_to_dict


# =============================================================================
# Constants
# =============================================================================

IMAGE_SUFFIXES = {'.jpg', '.jpeg', '.png', '.webp', '.gif', '.bmp'}
DEFAULT_MIN_SCORE = 60  # Images below this are listed as needing attention
SUMMARY_NAME = 'summary.json'


@dataclass
class BatchEntry:
    """Outcome for one image in a batch."""
    name: str
    score: Optional[int] = None
    advice_count: int = 0
    skipped: list = field(default_factory=list)  # Names of passes left out
    used_ocr: bool = False
    seconds: float = 0.0
    error: Optional[str] = None


def find_images(directory: Path) -> list[Path]:
    """Image files directly inside directory, by name."""
    return sorted(p for p in directory.iterdir()
                  if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES)


def read_sidecars(image_path: Path) -> tuple:
    """OCR text and boxes stored beside an image, or None for each missing file."""
    text_path = image_path.with_suffix('.txt')
    boxes_path = image_path.with_name(f"{image_path.stem}.boxes.json")
    ocr_text = text_path.read_text() if text_path.is_file() else None
    boxes = load_boxes(boxes_path) if boxes_path.is_file() else None
    return ocr_text, boxes


def process_image(image_path: Path, output_dir: Path, as_json: bool,
                  seed: Optional[int] = None) -> BatchEntry:
    """Analyze one image, write its report and return a summary entry."""
    entry = BatchEntry(name=image_path.name)
    start = time.perf_counter()

    ocr_text, boxes = read_sidecars(image_path)
    entry.used_ocr = ocr_text is not None or boxes is not None
    result = analyze_image(str(image_path), ocr_text=ocr_text, boxes=boxes, rng=seed)

    if as_json:
        report = json.dumps(result_to_dict(result), indent=2, ensure_ascii=False)
    else:
        report = render(result)
    (output_dir / f"{image_path.stem}-a11y.{'json' if as_json else 'txt'}").write_text(report)

    entry.score = result.score
    entry.advice_count = len(result.advice)
    entry.skipped = [name for name, _ in result.skipped]
    entry.seconds = time.perf_counter() - start
    return entry


def summarize(entries: list, min_score: int = DEFAULT_MIN_SCORE) -> list:
    """Summary lines: score spread, low scorers and passes that were skipped."""
    scored = [e for e in entries if e.score is not None]
    lines = [f"Analyzed {len(scored)}/{len(entries)} images"]
    if scored:
        scores = [e.score for e in scored]
        lines.append(f"Scores: mean {statistics.mean(scores):.1f}, "
                     f"median {statistics.median(scores):g}, "
                     f"range {min(scores)}-{max(scores)}")

    low = sorted((e for e in scored if e.score < min_score), key=lambda e: e.score)
    if low:
        lines.append(f"Below {min_score} ({len(low)}):")
        lines.extend(f"  {e.score:3d}  {e.name} ({e.advice_count} advice items)" for e in low)

    skip_counts = {}
    for e in scored:
        for name in e.skipped:
            skip_counts[name] = skip_counts.get(name, 0) + 1
    for name, count in sorted(skip_counts.items()):
        lines.append(f"Pass '{name}' skipped on {count} image(s)")
    return lines


def main():
    parser = argparse.ArgumentParser(
        description='Analyze a directory of images for visual accessibility.'
    )
    parser.add_argument('--input', '-i', required=True,
                        help='Directory containing images (and optional OCR sidecars)')
    parser.add_argument('--output', '-o', required=True,
                        help='Directory for per-image reports and summary.json')
    parser.add_argument('--json', action='store_true',
                        help='Write JSON reports instead of prose')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for dominant color clustering')
    parser.add_argument('--min-score', type=int, default=DEFAULT_MIN_SCORE,
                        help=f'Flag images scoring below this (default: {DEFAULT_MIN_SCORE})')
    args = parser.parse_args()

    input_dir = Path(args.input)
    output_dir = Path(args.output)
    if not input_dir.is_dir():
        print(f"Error: Input directory not found: {input_dir}", file=sys.stderr)
        sys.exit(2)

    images = find_images(input_dir)
    if not images:
        print(f"Error: No images in {input_dir}", file=sys.stderr)
        sys.exit(2)
    output_dir.mkdir(parents=True, exist_ok=True)

    entries = []
    for i, image_path in enumerate(images, 1):
        try:
            entry = process_image(image_path, output_dir, args.json, args.seed)
        except (OSError, ValueError) as e:
            entry = BatchEntry(name=image_path.name, error=f"{type(e).__name__}: {e}")
            print(f"[{i}/{len(images)}] {image_path.name}: {entry.error}", file=sys.stderr)
        else:
            ocr = " +ocr" if entry.used_ocr else ""
            skipped = f", skipped {', '.join(entry.skipped)}" if entry.skipped else ""
            print(f"[{i}/{len(images)}] {entry.name}{ocr}: score {entry.score}, "
                  f"{entry.advice_count} advice{skipped} ({entry.seconds:.2f}s)")
        entries.append(entry)

    ranked = sorted(entries, key=lambda e: (e.score is None, e.score if e.score is not None else 0))
    (output_dir / SUMMARY_NAME).write_text(
        json.dumps([asdict(e) for e in ranked], indent=2, ensure_ascii=False)
    )

    print()
    for line in summarize(entries, args.min_score):
        print(line)

    errors = [e for e in entries if e.error]
    if errors:
        print(f"{len(errors)} image(s) failed:", file=sys.stderr)
        for e in errors:
            print(f"  {e.name}: {e.error}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
