"""Tests for manifest module."""

import json
import os
import sys
from pathlib import Path

import pytest

# Add scripts to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'scripts'))

from manifest import ImageEntry, ManifestStore, Variant, needs_regeneration, source_mtime


def make_entry(key, variants, mtime):
    return ImageEntry(
        original=key,
        width=1000,
        height=500,
        aspect_ratio=2.0,
        variants=variants,
        srcset={'webp': ''},
        mtime=mtime,
    )


@pytest.fixture
def public_dir(temp_site):
    return temp_site / 'public'


@pytest.fixture
def source(make_image):
    return make_image('harbour.jpg')


@pytest.fixture
def variant_file(public_dir):
    """An on-disk variant for harbour.jpg."""
    path = public_dir / 'images' / 'optimized' / 'harbour-400.webp'
    path.parent.mkdir(parents=True)
    path.write_bytes(b'RIFF')
    return path


class TestManifestStore:
    """Tests for loading and saving the manifest."""

    def test_load_missing_returns_empty(self, temp_site):
        """No manifest on disk means an empty mapping."""
        store = ManifestStore(temp_site / 'src' / 'data' / 'image-manifest.json')

        assert store.load() == {}

    def test_load_corrupt_returns_empty(self, temp_site, capsys):
        """Unparseable JSON should fail open with a warning."""
        path = temp_site / 'src' / 'data' / 'image-manifest.json'
        path.write_text('{"broken": ')

        assert ManifestStore(path).load() == {}
        assert 'Could not load existing manifest' in capsys.readouterr().err

    def test_load_wrong_shape_returns_empty(self, temp_site):
        """A JSON document that isn't an object is treated as corrupt."""
        path = temp_site / 'src' / 'data' / 'image-manifest.json'
        path.write_text('[1, 2, 3]')

        assert ManifestStore(path).load() == {}

    def test_load_entry_missing_fields_returns_empty(self, temp_site):
        """Entries without an original path are treated as corrupt."""
        path = temp_site / 'src' / 'data' / 'image-manifest.json'
        path.write_text(json.dumps({'/images/uploads/a.jpg': {'width': 10}}))

        assert ManifestStore(path).load() == {}

    @pytest.mark.parametrize("field, value", [
        ('srcset', ['/images/optimized/a-400.webp 400w']),
        ('srcset', 'broken'),
        ('variants', {'width': 400}),
        ('mtime', 'yesterday'),
        ('aspectRatio', 'wide'),
    ])
    def test_load_malformed_field_returns_empty(self, temp_site, capsys, field, value):
        """A field of the wrong type fails open like any other corruption."""
        path = temp_site / 'src' / 'data' / 'image-manifest.json'
        raw = make_entry('/images/uploads/a.jpg', [], 1700000000000.0).to_dict()
        raw[field] = value
        path.write_text(json.dumps({'/images/uploads/a.jpg': raw}))

        assert ManifestStore(path).load() == {}
        assert 'Could not load existing manifest' in capsys.readouterr().err

    def test_load_coerces_numeric_strings(self, temp_site, source):
        """Hand-edited numbers stored as strings load as floats."""
        path = temp_site / 'src' / 'data' / 'image-manifest.json'
        key = '/images/uploads/harbour.jpg'
        raw = make_entry(key, [], 0).to_dict()
        raw['mtime'] = '1700000000000'
        raw['aspectRatio'] = '1.5'
        path.write_text(json.dumps({key: raw}))

        manifest = ManifestStore(path).load()

        assert manifest[key].mtime == 1700000000000.0
        assert manifest[key].aspect_ratio == 1.5
        # Comparing against the source mtime must not raise
        assert needs_regeneration(source, key, manifest, temp_site / 'public')

    def test_save_then_load(self, temp_site):
        """Saved entries should load back as equal dataclasses."""
        path = temp_site / 'src' / 'data' / 'image-manifest.json'
        entry = make_entry(
            '/images/uploads/harbour.jpg',
            [Variant(400, 'webp', '/images/optimized/harbour-400.webp', 1234)],
            1700000000123.5,
        )
        store = ManifestStore(path)

        store.save({entry.original: entry})

        assert store.load() == {entry.original: entry}

    def test_save_uses_site_keys(self, temp_site):
        """The JSON document uses the keys the page renderer reads."""
        path = temp_site / 'src' / 'data' / 'image-manifest.json'
        entry = make_entry('/images/uploads/harbour.jpg', [], 1.0)

        ManifestStore(path).save({entry.original: entry})

        with open(path) as f:
            saved = json.load(f)
        assert set(saved['/images/uploads/harbour.jpg']) == {
            'original', 'width', 'height', 'aspectRatio', 'variants', 'srcset', 'mtime'
        }

    def test_save_creates_parent_dirs(self, temp_site):
        """Saving into a missing directory should create it."""
        path = temp_site / 'nested' / 'data' / 'image-manifest.json'

        ManifestStore(path).save({})

        assert path.exists()
        assert not (path.parent / 'image-manifest.json.tmp').exists()

    def test_save_overwrites(self, temp_site):
        """Each save replaces the whole document."""
        path = temp_site / 'src' / 'data' / 'image-manifest.json'
        store = ManifestStore(path)
        first = make_entry('/images/uploads/a.jpg', [], 1.0)
        second = make_entry('/images/uploads/b.jpg', [], 1.0)

        store.save({first.original: first})
        store.save({second.original: second})

        assert list(store.load()) == ['/images/uploads/b.jpg']


class TestNeedsRegeneration:
    """Tests for the staleness decision."""

    def test_missing_entry(self, source, public_dir):
        """Images not in the manifest need processing."""
        assert needs_regeneration(source, '/images/uploads/harbour.jpg', {}, public_dir)

    def test_entry_without_mtime(self, source, public_dir):
        """Entries without a recorded mtime need processing."""
        key = '/images/uploads/harbour.jpg'
        manifest = {key: make_entry(key, [], 0)}

        assert needs_regeneration(source, key, manifest, public_dir)

    def test_source_newer_than_entry(self, source, public_dir, variant_file):
        """A source modified after the entry was written is stale."""
        key = '/images/uploads/harbour.jpg'
        variants = [Variant(400, 'webp', '/images/optimized/harbour-400.webp', 4)]
        manifest = {key: make_entry(key, variants, source_mtime(source) - 1000)}

        assert needs_regeneration(source, key, manifest, public_dir)

    def test_missing_variant_file(self, source, public_dir, variant_file):
        """An entry pointing at a deleted variant is stale."""
        key = '/images/uploads/harbour.jpg'
        variants = [
            Variant(400, 'webp', '/images/optimized/harbour-400.webp', 4),
            Variant(800, 'webp', '/images/optimized/harbour-800.webp', 4),
        ]
        manifest = {key: make_entry(key, variants, source_mtime(source))}

        assert needs_regeneration(source, key, manifest, public_dir)

    def test_up_to_date_entry_is_skipped(self, source, public_dir, variant_file):
        """Matching mtime and all variants present means nothing to do."""
        key = '/images/uploads/harbour.jpg'
        variants = [Variant(400, 'webp', '/images/optimized/harbour-400.webp', 4)]
        manifest = {key: make_entry(key, variants, source_mtime(source))}

        assert not needs_regeneration(source, key, manifest, public_dir)

    def test_touching_source_makes_it_stale(self, source, public_dir, variant_file):
        """Bumping the source mtime forward invalidates the entry."""
        key = '/images/uploads/harbour.jpg'
        variants = [Variant(400, 'webp', '/images/optimized/harbour-400.webp', 4)]
        manifest = {key: make_entry(key, variants, source_mtime(source))}

        stat = source.stat()
        os.utime(source, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

        assert needs_regeneration(source, key, manifest, public_dir)

    def test_does_not_mutate_manifest(self, source, public_dir):
        """The decision only reads the manifest."""
        key = '/images/uploads/harbour.jpg'
        manifest = {key: make_entry(key, [], 0)}

        needs_regeneration(source, key, manifest, public_dir)

        assert manifest == {key: make_entry(key, [], 0)}
