#!/usr/bin/env python3
"""
Portfolio Config - Paths and encoder settings for the image optimizer.

Defaults follow the site layout (public/images/uploads -> public/images/optimized).
A few values can be overridden through environment variables or a .env file
at the repository root.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

from dotenv import load_dotenv


REPO_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_WIDTHS = [400, 800, 1200, 2400]
DEFAULT_FORMATS = ('avif', 'webp', 'jpg')

# Pillow save() options per output format
ENCODER_SETTINGS: Dict[str, Dict[str, Any]] = {
    'avif': {'format': 'AVIF', 'quality': 75, 'speed': 6},
    'webp': {'format': 'WEBP', 'quality': 80, 'method': 4},
    'jpg': {'format': 'JPEG', 'quality': 85, 'optimize': True, 'progressive': True},
}

# Used when the source's intrinsic width cannot be read, so no width is skipped
DEFAULT_SOURCE_WIDTH = 2400


def _relative_to(path: Path, base: Path) -> Path:
    # Lexical, so symlinked uploads keep the web path they were found under
    return Path(os.path.abspath(path)).relative_to(os.path.abspath(base))


@dataclass
class OptimizerConfig:
    """Everything the image optimizer needs to know about paths and encoders."""

    root: Path
    public_dir: Path
    input_dir: Path
    output_dir: Path
    manifest_path: Path
    widths: List[int] = field(default_factory=lambda: list(DEFAULT_WIDTHS))
    formats: Tuple[str, ...] = DEFAULT_FORMATS
    encoders: Dict[str, Dict[str, Any]] = field(default_factory=lambda: dict(ENCODER_SETTINGS))
    default_source_width: int = DEFAULT_SOURCE_WIDTH
    savings_reference: Tuple[str, int] = ('avif', 1200)

    def __post_init__(self):
        unknown = [fmt for fmt in self.formats if fmt not in self.encoders]
        if unknown:
            raise ValueError(f"No encoder settings for format(s): {', '.join(unknown)}")
        if not self.widths or any(w <= 0 for w in self.widths):
            raise ValueError(f"Widths must be positive integers, got {self.widths}")
        for label, directory in (('input_dir', self.input_dir), ('output_dir', self.output_dir)):
            try:
                _relative_to(directory, self.public_dir)
            except ValueError:
                raise ValueError(f"{label} must be inside {self.public_dir}: {directory}") from None

    @classmethod
    def for_root(cls, root: Path, **overrides) -> 'OptimizerConfig':
        """Build a config with the standard site layout under ``root``."""
        root = Path(root)
        public_dir = root / 'public'
        values = {
            'root': root,
            'public_dir': public_dir,
            'input_dir': public_dir / 'images' / 'uploads',
            'output_dir': public_dir / 'images' / 'optimized',
            'manifest_path': root / 'src' / 'data' / 'image-manifest.json',
        }
        values.update(overrides)
        return cls(**values)

    def to_web_path(self, path: Path) -> str:
        """Path as the site serves it, e.g. /images/uploads/harbour.jpg."""
        relative = _relative_to(path, self.public_dir)
        return '/' + relative.as_posix()

    def from_web_path(self, web_path: str) -> Path:
        return self.public_dir / web_path.lstrip('/')


def _parse_widths(value: str) -> List[int]:
    try:
        widths = [int(part.strip()) for part in value.split(',') if part.strip()]
    except ValueError:
        raise ValueError(f"Invalid OPTIMIZE_WIDTHS '{value}'. Example: 400,800,1200") from None
    if not widths:
        raise ValueError(f"Invalid OPTIMIZE_WIDTHS '{value}'. Example: 400,800,1200")
    return widths


def _parse_formats(value: str) -> Tuple[str, ...]:
    formats = tuple(part.strip().lower() for part in value.split(',') if part.strip())
    unsupported = [fmt for fmt in formats if fmt not in ENCODER_SETTINGS]
    if not formats or unsupported:
        raise ValueError(
            f"Invalid OPTIMIZE_FORMATS '{value}'. Supported: {', '.join(ENCODER_SETTINGS)}"
        )
    return formats


def load_config(root: Optional[Path] = None) -> OptimizerConfig:
    """Load the optimizer config, applying .env and environment overrides."""
    root = Path(root) if root else REPO_ROOT
    load_dotenv(root / '.env')

    overrides: Dict[str, Any] = {}
    for env_name, key in (
        ('OPTIMIZE_INPUT_DIR', 'input_dir'),
        ('OPTIMIZE_OUTPUT_DIR', 'output_dir'),
        ('OPTIMIZE_MANIFEST_PATH', 'manifest_path'),
    ):
        value = os.getenv(env_name)
        if value:
            path = Path(value)
            overrides[key] = path if path.is_absolute() else root / path

    widths = os.getenv('OPTIMIZE_WIDTHS')
    if widths:
        overrides['widths'] = _parse_widths(widths)

    formats = os.getenv('OPTIMIZE_FORMATS')
    if formats:
        overrides['formats'] = _parse_formats(formats)

    return OptimizerConfig.for_root(root, **overrides)
