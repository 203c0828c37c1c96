"""
Pytest fixtures for perio_landmarks tests.

Provides synthetic radiographs and landmark sets with known geometry.
"""

import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from perio_landmarks.models import LandmarkTriple, Point2D


BAR_WIDTH = 200
BAR_HEIGHT = 300


@pytest.fixture
def bar_image():
    """
    200x300 grayscale image with one bright vertical bar.

    The bar spans x in [90, 110) and y in [60, 240), i.e. 20%-80% of the
    height, centered horizontally. Background is black.

    Returns:
        np.ndarray: (300, 200) uint8 array
    """
    image = np.zeros((BAR_HEIGHT, BAR_WIDTH), dtype=np.uint8)
    image[60:240, 90:110] = 255
    return image


@pytest.fixture
def bar_image_rgba(bar_image):
    """Same bar as an opaque RGBA buffer."""
    rgba = np.zeros(bar_image.shape + (4,), dtype=np.uint8)
    rgba[:, :, 0] = bar_image
    rgba[:, :, 1] = bar_image
    rgba[:, :, 2] = bar_image
    rgba[:, :, 3] = 255
    return rgba


@pytest.fixture
def blank_image():
    """Uniform mid-gray RGB image."""
    return np.full((BAR_HEIGHT, BAR_WIDTH, 3), 128, dtype=np.uint8)


@pytest.fixture
def noise_image():
    """Deterministic random noise image."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(64, 64), dtype=np.uint8)


@pytest.fixture
def valid_triple():
    """Landmarks in a 200x256 image that pass every geometric check."""
    return LandmarkTriple(cej=Point2D(100, 50), bone=Point2D(102, 120), apex=Point2D(98, 190))
