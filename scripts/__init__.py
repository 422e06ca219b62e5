"""
Portfolio build scripts - Responsive image pipeline for the photography site

Components:
- optimize_images.py: Orchestrates a variant build and updates the image manifest
- variants.py: Resizes and encodes width x format renditions
- manifest.py: Loads/saves the manifest and decides which images are stale
- colors.py: Extracts glow and accent colors from photographs
- config.py: Paths and encoder settings, with .env overrides
"""

__version__ = '1.0.0'
