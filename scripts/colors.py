#!/usr/bin/env python3
"""
Portfolio Colors - Dominant color extraction for ambient glow theming.

Photo pages tint their background glow and UI accent from the photograph.
Colors are taken from a small cover-cropped thumbnail, averaged, and nudged
into a range that reads well on a dark background.
"""

import io
import json
import math
import sys
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests
from PIL import Image, ImageOps, ImageStat

from config import REPO_ROOT
from utils import retry_with_backoff


@dataclass
class DominantColor:
    r: int
    g: int
    b: int
    hex: str


# Cool blue-gray used whenever extraction fails
FALLBACK_COLOR = DominantColor(r=58, g=68, b=71, hex='#3a4447')

FETCH_TIMEOUT = 15


def _round(value: float) -> int:
    # Half-up, so 0.5 boundaries don't flip with banker's rounding
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def to_hex(r: int, g: int, b: int) -> str:
    return f"#{r:02x}{g:02x}{b:02x}"


def rgb_to_hsl(r: float, g: float, b: float) -> Tuple[float, float, float]:
    """RGB (0-255) to HSL with hue in degrees and saturation/lightness in percent."""
    r, g, b = r / 255, g / 255, b / 255
    high = max(r, g, b)
    low = min(r, g, b)
    h = s = 0.0
    l = (high + low) / 2

    if high != low:
        d = high - low
        s = d / (2 - high - low) if l > 0.5 else d / (high + low)
        if high == r:
            h = ((g - b) / d + (6 if g < b else 0)) / 6
        elif high == g:
            h = ((b - r) / d + 2) / 6
        else:
            h = ((r - g) / d + 4) / 6

    return h * 360, s * 100, l * 100


def hsl_to_rgb(h: float, s: float, l: float) -> Tuple[int, int, int]:
    """Inverse of rgb_to_hsl; returns rounded 0-255 channels."""
    h, s, l = h / 360, s / 100, l / 100

    if s == 0:
        r = g = b = l
    else:
        def hue_to_rgb(p, q, t):
            if t < 0:
                t += 1
            if t > 1:
                t -= 1
            if t < 1 / 6:
                return p + (q - p) * 6 * t
            if t < 1 / 2:
                return q
            if t < 2 / 3:
                return p + (q - p) * (2 / 3 - t) * 6
            return p

        q = l * (1 + s) if l < 0.5 else l + s - l * s
        p = 2 * l - q
        r = hue_to_rgb(p, q, h + 1 / 3)
        g = hue_to_rgb(p, q, h)
        b = hue_to_rgb(p, q, h - 1 / 3)

    return _round(r * 255), _round(g * 255), _round(b * 255)


def derive_accent_from_glow(r: int, g: int, b: int) -> Dict[str, int]:
    """
    Accent HSL values for UI elements that follow the photo's glow color.

    Hue is kept; saturation is clamped to 35-60% and lightness to 55-70% so
    the accent stays readable on dark backgrounds.
    """
    h, s, l = rgb_to_hsl(r, g, b)
    return {
        'hue': _round(h),
        'saturation': _round(_clamp(s, 35, 60)),
        'lightness': _round(_clamp(l, 55, 70)),
    }


def normalize_glow_color(r: int, g: int, b: int) -> DominantColor:
    """Keep the hue, boost saturation and pull lightness into a mid range for a consistent glow."""
    h, s, l = rgb_to_hsl(r, g, b)

    s = _clamp(s * 1.3, 40, 70)
    l = _clamp(l + 15 if l < 50 else l - 5, 45, 65)

    nr, ng, nb = hsl_to_rgb(h, s, l)
    return DominantColor(r=nr, g=ng, b=nb, hex=to_hex(nr, ng, nb))


def is_remote(image_path: str) -> bool:
    return image_path.startswith('http://') or image_path.startswith('https://')


@retry_with_backoff(max_retries=2, initial_delay=1.0)
def fetch_image_bytes(url: str) -> bytes:
    """Download a remote image."""
    response = requests.get(url, timeout=FETCH_TIMEOUT)
    response.raise_for_status()
    return response.content


def _open_image(image_path: str, public_dir: Optional[Path]) -> Image.Image:
    if is_remote(image_path):
        return Image.open(io.BytesIO(fetch_image_bytes(image_path)))
    public_dir = public_dir or REPO_ROOT / 'public'
    return Image.open(public_dir / image_path.lstrip('/'))


def _channel_means(image_path: str, public_dir: Optional[Path], size: int) -> List[float]:
    with _open_image(image_path, public_dir) as img:
        thumb = ImageOps.fit(img.convert('RGB'), (size, size), Image.Resampling.LANCZOS)
    return ImageStat.Stat(thumb).mean


def extract_dominant_color(image_path: str, public_dir: Optional[Path] = None) -> DominantColor:
    """
    Extract the normalized average color of an image.

    Args:
        image_path: Web path under the public directory, or an http(s) URL
        public_dir: Directory local web paths resolve against

    Returns:
        DominantColor, or FALLBACK_COLOR if the image can't be read or fetched
    """
    try:
        r, g, b = (_round(mean) for mean in _channel_means(image_path, public_dir, 100))
        return normalize_glow_color(r, g, b)
    except Exception as e:
        print(f"Error extracting color from {image_path}: {e}", file=sys.stderr)
        return FALLBACK_COLOR


def extract_color_palette(
    image_path: str,
    public_dir: Optional[Path] = None,
    num_colors: int = 5
) -> List[DominantColor]:
    """
    Rough palette from per-channel means, one color per channel.

    Each channel's mean becomes a pure single-channel color; the hex value is
    the matching gray. Returns [FALLBACK_COLOR] on failure.
    """
    try:
        means = _channel_means(image_path, public_dir, 150)
        colors = []
        for idx, mean in enumerate(means):
            avg = _round(mean)
            colors.append(DominantColor(
                r=avg if idx == 0 else 0,
                g=avg if idx == 1 else 0,
                b=avg if idx == 2 else 0,
                hex=to_hex(avg, avg, avg),
            ))
        return colors[:num_colors]
    except Exception as e:
        print(f"Error extracting palette from {image_path}: {e}", file=sys.stderr)
        return [FALLBACK_COLOR]


def main():
    """CLI interface: print the glow color and accent for an image."""
    if len(sys.argv) != 2:
        print("Usage: colors.py <web_path_or_url>", file=sys.stderr)
        sys.exit(1)

    color = extract_dominant_color(sys.argv[1])
    result = {
        'glow': asdict(color),
        'accent': derive_accent_from_glow(color.r, color.g, color.b),
    }
    print(json.dumps(result, indent=2))


if __name__ == '__main__':
    main()
