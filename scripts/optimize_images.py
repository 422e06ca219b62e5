#!/usr/bin/env python3
"""
Portfolio Image Optimizer - Main Orchestrator
Builds responsive variants for uploaded photographs and updates the image manifest.

Run: python scripts/optimize_images.py
"""

import argparse
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from config import OptimizerConfig, load_config
from manifest import ImageEntry, Manifest, ManifestStore, needs_regeneration, source_mtime
from utils import format_bytes
from variants import VariantGenerator, compose_srcset


IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.avif', '.tiff'}


@dataclass
class RunSummary:
    """Counts reported at the end of a run."""

    total: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    removed: int = 0
    saved_bytes: int = 0


class ImageOptimizer:
    """Batch driver: decides which images are stale, rebuilds them, and persists the manifest."""

    def __init__(self, config: OptimizerConfig, force: bool = False):
        """Initialize the optimizer."""
        self.config = config
        self.force = force
        self.store = ManifestStore(config.manifest_path)
        self.generator = VariantGenerator(config)

    def find_images(self) -> List[Path]:
        """Find all source images under the input directory."""
        if not self.config.input_dir.exists():
            return []

        images = []
        for file_path in self.config.input_dir.rglob('*'):
            if not file_path.is_file() or file_path.name.startswith('.'):
                continue
            if file_path.suffix.lower() in IMAGE_EXTENSIONS:
                images.append(file_path)

        return sorted(images)

    def build_entry(self, image_path: Path, key: str) -> ImageEntry:
        """
        Generate all variants for one image and describe them as a manifest entry.

        Args:
            image_path: Path to the source image
            key: Web path of the source image

        Returns:
            Fresh ImageEntry for the manifest
        """
        # Stat before encoding so an edit made mid-run still looks newer next time
        mtime = source_mtime(image_path)
        result = self.generator.generate(image_path)

        if result.width and result.height:
            aspect_ratio = round(result.width / result.height, 2)
        else:
            aspect_ratio = 1.0

        return ImageEntry(
            original=key,
            width=result.width,
            height=result.height,
            aspect_ratio=aspect_ratio,
            variants=result.variants,
            srcset=compose_srcset(result.variants, self.config.formats),
            mtime=mtime,
        )

    def estimate_savings(self, image_path: Path, entry: ImageEntry) -> int:
        """Bytes saved by serving the reference variant instead of the original."""
        ref_format, ref_width = self.config.savings_reference
        for variant in entry.variants:
            if variant.format == ref_format and variant.width == ref_width:
                return image_path.stat().st_size - variant.size
        return 0

    def collect_garbage(self, manifest: Manifest) -> int:
        """Drop entries whose source file has been deleted. Returns how many were removed."""
        removed = 0
        for key in list(manifest):
            if not self.config.from_web_path(key).exists():
                print(f"  Removing from manifest: {key} (source deleted)")
                del manifest[key]
                removed += 1
        return removed

    def process_image(self, image_path: Path, key: str, manifest: Manifest) -> bool:
        """
        Rebuild one image and store its entry in the manifest.

        Returns:
            True if successful, False otherwise
        """
        print(f"Processing: {image_path.name}...")

        try:
            entry = self.build_entry(image_path, key)
        except Exception as e:
            print(f"  ✗ Error processing {image_path.name}: {e}", file=sys.stderr)
            traceback.print_exc()
            return False

        manifest[key] = entry
        print(f"  ✓ Generated {len(entry.variants)} variants")
        return True

    def run(self) -> RunSummary:
        """Run the complete optimization pass."""
        print("\n" + "=" * 60)
        print("Image Optimization")
        print("=" * 60 + "\n")

        existing = self.store.load()
        images = self.find_images()
        print(f"Found {len(images)} image(s) in {self.config.input_dir}\n")

        # Start from the loaded manifest so unchanged images keep their entries
        manifest: Manifest = dict(existing)
        summary = RunSummary(total=len(images))

        for image_path in images:
            try:
                key = self.config.to_web_path(image_path)
            except ValueError as e:
                print(f"  ✗ Error processing {image_path.name}: {e}", file=sys.stderr)
                summary.failed += 1
                continue

            if not self.force and not needs_regeneration(image_path, key, existing, self.config.public_dir):
                print(f"Skipping: {image_path.name} (unchanged)")
                summary.skipped += 1
                continue

            if self.process_image(image_path, key, manifest):
                summary.processed += 1
                summary.saved_bytes += self.estimate_savings(image_path, manifest[key])
            else:
                summary.failed += 1

        summary.removed = self.collect_garbage(manifest)
        self.store.save(manifest)

        print("\n" + "=" * 60)
        print("Optimization Summary")
        print("=" * 60)
        print(f"  Total images: {summary.total}")
        print(f"  Processed: {summary.processed} | Skipped (cached): {summary.skipped} | Failed: {summary.failed}")
        if summary.removed:
            print(f"  Removed from manifest: {summary.removed}")
        if summary.processed:
            print(f"  Estimated savings: {format_bytes(summary.saved_bytes)}")
        print(f"  Manifest saved to: {self.config.manifest_path}")
        print("=" * 60 + "\n")

        return summary


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the optimizer."""
    parser = argparse.ArgumentParser(
        description="Generate responsive image variants and the image manifest."
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Site repository root (default: the repository containing scripts/)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate every image, ignoring the manifest cache",
    )
    args = parser.parse_args(argv)

    try:
        config = load_config(args.root)
        ImageOptimizer(config, force=args.force).run()
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        traceback.print_exc()
        return 1

    return 0


if __name__ == '__main__':
    raise SystemExit(main())
