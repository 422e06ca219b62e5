#!/usr/bin/env python3
"""
Portfolio Variants - Responsive image rendition builder.
Resizes a source image to each configured width and encodes every configured format.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List

from PIL import Image, ImageOps

from config import OptimizerConfig
from manifest import Variant


@dataclass
class VariantResult:
    """Variants written for one source, plus its displayed dimensions."""

    width: int
    height: int
    variants: List[Variant] = field(default_factory=list)


class VariantGenerator:
    """Writes width x format renditions of source images into the output directory."""

    def __init__(self, config: OptimizerConfig):
        self.config = config

    def target_widths(self, source_width: int) -> List[int]:
        """Configured widths the source can serve without upscaling."""
        ceiling = source_width or self.config.default_source_width
        return [w for w in self.config.widths if w <= ceiling]

    def _normalize_mode(self, img: Image.Image) -> Image.Image:
        if img.mode in ('RGB', 'RGBA'):
            return img
        has_alpha = 'A' in img.mode or img.info.get('transparency') is not None
        return img.convert('RGBA' if has_alpha else 'RGB')

    def _resize(self, img: Image.Image, width: int) -> Image.Image:
        if not img.width or width >= img.width:
            return img
        height = max(1, round(img.height * width / img.width))
        return img.resize((width, height), Image.Resampling.LANCZOS)

    def generate(self, source_path: Path) -> VariantResult:
        """
        Produce every variant for a source image.

        Args:
            source_path: Path to the source image

        Returns:
            VariantResult with variants in width-major, format-minor order
        """
        output_dir = self.config.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        stem = source_path.stem

        with Image.open(source_path) as opened:
            # Honour camera orientation so width/height match what the browser shows
            img = self._normalize_mode(ImageOps.exif_transpose(opened))

        result = VariantResult(width=img.width or 0, height=img.height or 0)

        for width in self.target_widths(img.width):
            resized = self._resize(img, width)

            for fmt in self.config.formats:
                settings = dict(self.config.encoders[fmt])
                pil_format = settings.pop('format')

                output_path = output_dir / f"{stem}-{width}.{fmt}"
                encoded = resized.convert('RGB') if fmt == 'jpg' and resized.mode != 'RGB' else resized
                encoded.save(output_path, pil_format, **settings)

                result.variants.append(Variant(
                    width=width,
                    format=fmt,
                    path=self.config.to_web_path(output_path),
                    size=output_path.stat().st_size,
                ))

        return result


def compose_srcset(variants: Iterable[Variant], formats: Iterable[str]) -> Dict[str, str]:
    """
    Build one srcset descriptor per format, widths ascending.

    >>> compose_srcset([Variant(800, 'webp', '/a-800.webp', 1), Variant(400, 'webp', '/a-400.webp', 1)], ['webp'])
    {'webp': '/a-400.webp 400w, /a-800.webp 800w'}
    """
    variants = list(variants)
    srcset = {}

    for fmt in formats:
        matching = sorted((v for v in variants if v.format == fmt), key=lambda v: v.width)
        srcset[fmt] = ', '.join(f"{v.path} {v.width}w" for v in matching)

    return srcset
