"""Shared test fixtures for fingerprint search tests."""

import os

import numpy as np
import cv2
import pytest


def write_rgb(path, image_rgb):
    """Write an RGB array to disk as a lossless PNG."""
    ok = cv2.imwrite(str(path), cv2.cvtColor(image_rgb, cv2.COLOR_RGB2BGR))
    assert ok, f"could not write {path}"
    return str(path)


@pytest.fixture
def noise_image():
    """Generate a 200x200 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 255, (200, 200, 3), dtype=np.uint8)


@pytest.fixture
def other_noise_image():
    """A second, unrelated 200x200 noise image."""
    rng = np.random.RandomState(7)
    return rng.randint(0, 255, (200, 200, 3), dtype=np.uint8)


@pytest.fixture
def gradient_image():
    """Generate a 100x100 image with horizontal, vertical and diagonal ramps."""
    ys, xs = np.mgrid[0:100, 0:100]
    img = np.zeros((100, 100, 3), dtype=np.uint8)
    img[..., 0] = xs * 2
    img[..., 1] = ys * 2
    img[..., 2] = (xs + ys) % 256
    return img


@pytest.fixture
def corpus_dir(tmp_path, noise_image, other_noise_image, gradient_image):
    """A corpus directory with three images and one undecodable file."""
    corpus = tmp_path / "corpus"
    corpus.mkdir()
    write_rgb(corpus / "a_gradient.png", gradient_image)
    write_rgb(corpus / "b_noise.png", noise_image)
    write_rgb(corpus / "c_other.png", other_noise_image)
    (corpus / "notes.txt").write_text("not an image", encoding="utf-8")
    os.mkdir(corpus / "nested")
    return corpus
