#!/usr/bin/env python3
"""
Color vision simulation.

Dichromatic types (protan, deutan, tritan) are a fixed 3x3 matrix applied to
every pixel. Aging is a separate two-stage pipeline: a Gaussian blur followed
by a yellow cast, each stage usable on its own.
"""

from typing import Callable, Optional

import numpy as np
from scipy.ndimage import gaussian_filter

from pixel_buffer import PixelBuffer, InvalidParameterError


# =============================================================================
# Constants
# =============================================================================

VISION_TYPES = ('normal', 'protan', 'deutan', 'tritan', 'aging')

# Row-major: out_i = sum_j M[i][j] * in_j over (R, G, B)
CVD_MATRICES = {
    'protan': np.array([
        [0.56667, 0.43333, 0.0],
        [0.55833, 0.44167, 0.0],
        [0.0, 0.24167, 0.75833],
    ]),
    'deutan': np.array([
        [0.625, 0.375, 0.0],
        [0.7, 0.3, 0.0],
        [0.0, 0.3, 0.7],
    ]),
    'tritan': np.array([
        [0.95, 0.05, 0.0],
        [0.0, 0.43333, 0.56667],
        [0.0, 0.475, 0.525],
    ]),
}

DEFAULT_AGING_INTENSITY = 40.0  # Percent
DEFAULT_BLUR_RADIUS = 3.0  # Pixels
MAX_BLUR_RADIUS = 10.0

# Channel shift at 100% aging intensity
YELLOW_SHIFT = np.array([20.0, 15.0, -25.0])

BlurFn = Callable[[np.ndarray, float], np.ndarray]


def _with_rgb(buffer: PixelBuffer, rgb: np.ndarray) -> PixelBuffer:
    """New buffer with rgb (float, any range) and the original alpha."""
    out = np.empty(buffer.pixels.shape, dtype=np.uint8)
    out[:, :, :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    out[:, :, 3] = buffer.alpha
    return PixelBuffer.from_array(out)


# =============================================================================
# Dichromacy
# =============================================================================

def simulate_color_vision(buffer: PixelBuffer, vision_type: str) -> PixelBuffer:
    """
    Simulate protan/deutan/tritan perception.

    'normal' returns the input buffer itself. Aging is not a matrix transform;
    use simulate_aging for it.
    """
    if vision_type == 'normal':
        return buffer
    matrix = CVD_MATRICES.get(vision_type)
    if matrix is None:
        raise InvalidParameterError(
            f"Unknown matrix vision type {vision_type!r}; expected normal, protan, deutan or tritan"
        )
    return _with_rgb(buffer, buffer.rgb @ matrix.T)


# =============================================================================
# Aging
# =============================================================================

def gaussian_blur(rgb: np.ndarray, radius: float) -> np.ndarray:
    """Blur each color channel with sigma = radius pixels."""
    return gaussian_filter(rgb, sigma=(radius, radius, 0), mode='nearest')


def blur_stage(buffer: PixelBuffer, blur_radius: float = DEFAULT_BLUR_RADIUS,
               blur: Optional[BlurFn] = None) -> PixelBuffer:
    """Stage 1 of aging: blur. Radius is clamped to 0-10; 0 is a no-op."""
    radius = min(MAX_BLUR_RADIUS, max(0.0, float(blur_radius)))
    if radius == 0:
        return buffer
    blur = blur or gaussian_blur
    return _with_rgb(buffer, blur(buffer.rgb, radius))


def yellow_cast_stage(buffer: PixelBuffer,
                      aging_intensity: float = DEFAULT_AGING_INTENSITY) -> PixelBuffer:
    """Stage 2 of aging: raise red/green and lower blue in proportion to intensity (0-100%)."""
    factor = min(100.0, max(0.0, float(aging_intensity))) / 100.0
    return _with_rgb(buffer, buffer.rgb + YELLOW_SHIFT * factor)


def simulate_aging(buffer: PixelBuffer,
                   aging_intensity: float = DEFAULT_AGING_INTENSITY,
                   blur_radius: float = DEFAULT_BLUR_RADIUS,
                   blur: Optional[BlurFn] = None) -> PixelBuffer:
    """Blur, then yellow cast."""
    return yellow_cast_stage(blur_stage(buffer, blur_radius, blur), aging_intensity)


def render_vision(buffer: PixelBuffer, vision_type: str,
                  aging_intensity: float = DEFAULT_AGING_INTENSITY,
                  blur_radius: float = DEFAULT_BLUR_RADIUS) -> PixelBuffer:
    """Dispatch any of VISION_TYPES to the matching simulation."""
    if vision_type == 'aging':
        return simulate_aging(buffer, aging_intensity, blur_radius)
    return simulate_color_vision(buffer, vision_type)


# =============================================================================
# CLI
# =============================================================================

if __name__ == '__main__':
    import argparse
    import sys
    from pathlib import Path

    from pixel_buffer import load_image

    parser = argparse.ArgumentParser(
        description='Render an image as seen with a color vision deficiency or aging eyes.'
    )
    parser.add_argument('--input', '-i', required=True, help='Path to the image file')
    parser.add_argument('--type', '-t', required=True, choices=VISION_TYPES,
                        help='Vision type to simulate')
    parser.add_argument('--output', '-o', default=None,
                        help='Output image path (default: <input>-<type>.png)')
    parser.add_argument('--aging-intensity', type=float, default=DEFAULT_AGING_INTENSITY,
                        help='Yellowing strength for aging, 0-100 (default: 40)')
    parser.add_argument('--blur', type=float, default=DEFAULT_BLUR_RADIUS,
                        help='Blur radius for aging, 0-10 px (default: 3)')

    args = parser.parse_args()
    image_path = Path(args.input)

    try:
        source = load_image(image_path)
        simulated = render_vision(source, args.type, args.aging_intensity, args.blur)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    output_path = Path(args.output) if args.output else image_path.with_name(
        f"{image_path.stem}-{args.type}.png"
    )
    try:
        simulated.to_image().save(output_path)
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"Wrote: {output_path}")
