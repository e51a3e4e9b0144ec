"""Tests for grid layout and corpus index construction."""

import os

import numpy as np
import pytest

from fingerprint_search.config import SearchConfig
from fingerprint_search.fingerprints import compute_fingerprint
from fingerprint_search.index_builder import build_index, fingerprint_image, grid_anchors
from fingerprint_search.perceptual import compute_phash

from conftest import write_rgb


class TestGridAnchors:
    """Tests for grid cell placement."""

    def test_exact_multiple(self):
        anchors = list(grid_anchors(100, 100, 50))
        assert anchors == [
            (50, 50, 50),     # interior
            (50, 100, 50),    # bottom strip
            (100, 50, 100),   # right strip
            (100, 100, 100),  # corner
        ]

    def test_remainder_strips_covered(self):
        anchors = list(grid_anchors(130, 130, 50))
        interior = [(x, y) for x, y, _ in anchors if x < 130 and y < 130]
        bottom = [(x, y) for x, y, _ in anchors if y == 130 and x < 130]
        right = [(x, y) for x, y, _ in anchors if x == 130 and y < 130]
        corner = [(x, y) for x, y, _ in anchors if x == 130 and y == 130]

        assert interior == [(50, 50), (50, 100), (100, 50), (100, 100)]
        assert bottom == [(50, 130), (100, 130)]
        assert right == [(130, 50), (130, 100)]
        assert corner == [(130, 130)]

    def test_markers_are_trailing_x(self):
        for x, y, marker in grid_anchors(130, 90, 50):
            assert marker == x

    def test_non_square_image(self):
        anchors = list(grid_anchors(200, 60, 50))
        # x steps 50, 100, 150 with one interior row each, plus bottom,
        # then one right-edge cell and the corner
        assert len(anchors) == 3 * 2 + 1 + 1

    def test_image_smaller_than_region(self):
        assert list(grid_anchors(30, 20, 50)) == [(30, 20, 30)]


class TestFingerprintImage:
    """Tests for per-image fingerprinting."""

    def test_one_entry_per_anchor(self, noise_image):
        config = SearchConfig(region_size=50)
        pairs = fingerprint_image(noise_image, config)
        assert len(pairs) == len(list(grid_anchors(200, 200, 50)))

    def test_interior_cell_matches_crop(self, noise_image):
        config = SearchConfig(region_size=50)
        fp, marker = fingerprint_image(noise_image, config)[0]
        assert marker == 50
        assert fp == compute_fingerprint(noise_image[0:50, 0:50])

    def test_corner_cell_matches_crop(self, noise_image):
        config = SearchConfig(region_size=50)
        fp, marker = fingerprint_image(noise_image, config)[-1]
        assert marker == 200
        assert fp == compute_fingerprint(noise_image[150:200, 150:200])

    def test_small_image_uses_whole_image(self):
        img = np.full((20, 30, 3), (5, 6, 7), dtype=np.uint8)
        pairs = fingerprint_image(img, SearchConfig(region_size=50))
        assert pairs == [((5 << 16) | (6 << 8) | 7, 30)]

    def test_legacy_channels_applied(self):
        img = np.full((50, 50, 3), (5, 6, 7), dtype=np.uint8)
        pairs = fingerprint_image(img, SearchConfig(region_size=50, legacy_channels=True))
        assert {fp for fp, _ in pairs} == {(5 << 16) | (6 << 8) | 5}


class TestBuildIndex:
    """Tests for corpus scanning."""

    def test_indexes_every_decodable_image(self, corpus_dir):
        index = build_index(str(corpus_dir), SearchConfig(region_size=50))
        names = sorted(os.path.basename(p) for p in index.images)
        assert names == ["a_gradient.png", "b_noise.png", "c_other.png"]
        assert len(index.hashes) == 3

    def test_skips_undecodable_files(self, corpus_dir):
        index = build_index(str(corpus_dir), SearchConfig(region_size=50))
        assert not any(p.endswith("notes.txt") for p in index.hashes.values())

    def test_entry_count_matches_grid(self, tmp_path, gradient_image):
        write_rgb(tmp_path / "a.png", gradient_image)
        index = build_index(str(tmp_path), SearchConfig(region_size=50))
        # One interior cell, one bottom, one right, one corner
        assert len(index) == 4
        positions = sorted(e.position for items in index.entries.values() for e in items)
        assert positions == [50, 50, 100, 100]

    def test_130px_image_has_edge_entries(self, tmp_path):
        rng = np.random.RandomState(3)
        write_rgb(tmp_path / "odd.png", rng.randint(0, 255, (130, 130, 3), dtype=np.uint8))
        index = build_index(str(tmp_path), SearchConfig(region_size=50))
        assert len(index) == 9
        positions = [e.position for items in index.entries.values() for e in items]
        assert positions.count(130) == 3

    def test_records_perceptual_hash(self, tmp_path, noise_image):
        path = write_rgb(tmp_path / "n.png", noise_image)
        index = build_index(str(tmp_path), SearchConfig(region_size=50))
        assert index.exact_match(compute_phash(noise_image)) == path

    def test_duplicate_hash_last_write_wins(self, tmp_path, noise_image):
        write_rgb(tmp_path / "first.png", noise_image)
        second = write_rgb(tmp_path / "second.png", noise_image)
        index = build_index(str(tmp_path), SearchConfig(region_size=50))
        assert list(index.hashes.values()) == [second]
        # Both still contribute region entries
        assert len(index.images) == 2

    def test_records_config(self, tmp_path, gradient_image):
        write_rgb(tmp_path / "a.png", gradient_image)
        index = build_index(str(tmp_path), SearchConfig(region_size=25, legacy_channels=True))
        assert index.region_size == 25
        assert index.legacy_channels is True

    def test_empty_directory(self, tmp_path):
        index = build_index(str(tmp_path), SearchConfig())
        assert len(index) == 0
        assert len(index.hashes) == 0

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            build_index(str(tmp_path / "missing"), SearchConfig())

    def test_build_is_deterministic(self, corpus_dir):
        config = SearchConfig(region_size=40)
        assert build_index(str(corpus_dir), config) == build_index(str(corpus_dir), config)
