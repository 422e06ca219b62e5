#!/usr/bin/env python3
"""
Portfolio Manifest - Persisted record of generated image variants.

The manifest maps each source image (by web path) to its variants and srcset
strings. The page renderer reads it; the optimizer uses it as a build cache.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List


@dataclass
class Variant:
    """One resized, re-encoded rendition of a source image."""

    width: int
    format: str
    path: str
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'width': self.width,
            'format': self.format,
            'path': self.path,
            'size': self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Variant':
        return cls(
            width=int(data['width']),
            format=str(data['format']),
            path=str(data['path']),
            size=int(data['size']),
        )


@dataclass
class ImageEntry:
    """Everything the site needs to render one source image responsively."""

    original: str
    width: int
    height: int
    aspect_ratio: float
    variants: List[Variant] = field(default_factory=list)
    srcset: Dict[str, str] = field(default_factory=dict)
    mtime: float = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'original': self.original,
            'width': self.width,
            'height': self.height,
            'aspectRatio': self.aspect_ratio,
            'variants': [variant.to_dict() for variant in self.variants],
            'srcset': dict(self.srcset),
            'mtime': self.mtime,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageEntry':
        variants = data.get('variants') or []
        srcset = data.get('srcset') or {}
        if not isinstance(variants, list):
            raise ValueError(f"variants must be a list, got {type(variants).__name__}")
        if not isinstance(srcset, dict):
            raise ValueError(f"srcset must be an object, got {type(srcset).__name__}")

        return cls(
            original=str(data['original']),
            width=int(data.get('width') or 0),
            height=int(data.get('height') or 0),
            aspect_ratio=float(data.get('aspectRatio') or 1),
            variants=[Variant.from_dict(v) for v in variants],
            srcset={str(k): str(v) for k, v in srcset.items()},
            mtime=float(data.get('mtime') or 0),
        )


Manifest = Dict[str, ImageEntry]


def source_mtime(path: Path) -> float:
    """Modification time in milliseconds, the unit stored in the manifest."""
    return path.stat().st_mtime_ns / 1_000_000


class ManifestStore:
    """Loads and saves the manifest as a single JSON document."""

    def __init__(self, manifest_path: Path):
        self.manifest_path = Path(manifest_path)

    def load(self) -> Manifest:
        """
        Read the manifest from disk.

        A missing or unreadable manifest yields an empty mapping, which makes
        the next run regenerate every image instead of aborting.
        """
        if not self.manifest_path.exists():
            return {}

        try:
            with open(self.manifest_path, encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            return {key: ImageEntry.from_dict(value) for key, value in data.items()}
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            print(f"Warning: Could not load existing manifest ({e}), will regenerate all images",
                  file=sys.stderr)
            return {}

    def save(self, manifest: Manifest):
        """Rewrite the whole manifest. The previous file stays intact until the final replace."""
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {key: entry.to_dict() for key, entry in manifest.items()}

        tmp_path = self.manifest_path.with_suffix(self.manifest_path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
            f.write('\n')
        os.replace(tmp_path, self.manifest_path)


def needs_regeneration(source_path: Path, key: str, manifest: Manifest, public_dir: Path) -> bool:
    """
    Decide whether a source image has to be (re)processed.

    Args:
        source_path: Path to the source image on disk
        key: Web path the image is stored under in the manifest
        manifest: Manifest loaded at the start of the run
        public_dir: Directory that variant web paths are relative to

    Returns:
        True if the entry is missing, has no mtime, is older than the source,
        or references a variant file that no longer exists
    """
    existing = manifest.get(key)
    if existing is None or not existing.mtime:
        return True

    if source_mtime(source_path) > existing.mtime:
        return True

    for variant in existing.variants:
        if not (public_dir / variant.path.lstrip('/')).exists():
            return True

    return False
