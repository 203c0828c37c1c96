"""
Tests for overlay drawing.

Run with: pytest tests/test_visualization.py -v
"""

import numpy as np
import pytest

from perio_landmarks import detect_landmarks
from perio_landmarks.utils import LandmarkVisualizer


@pytest.fixture
def visualizer():
    return LandmarkVisualizer({})


def test_overlay_is_bgr_and_leaves_input_untouched(visualizer, bar_image):
    original = bar_image.copy()
    result = detect_landmarks(bar_image)

    overlay = visualizer.create_overlay(bar_image, result, pixels_per_mm=7.0, show_debug=True)

    assert overlay.shape == bar_image.shape + (3,)
    assert overlay.dtype == np.uint8
    assert np.array_equal(bar_image, original)
    assert not np.array_equal(overlay[:, :, 0], bar_image)


def test_cej_marker_uses_configured_color(bar_image):
    visualizer = LandmarkVisualizer({'visualization': {'colors': {'cej': [1, 2, 3]},
                                                       'show_guides': False}})
    result = detect_landmarks(bar_image)
    cej = result.landmarks.cej

    overlay = visualizer.create_overlay(bar_image, result)

    assert overlay[cej.y, cej.x].tolist() == [1, 2, 3]


def test_failed_result_still_renders(visualizer, blank_image):
    result = detect_landmarks(blank_image)

    overlay = visualizer.create_overlay(blank_image, result)

    assert overlay.shape == blank_image.shape


def test_processing_stages_figure_is_saved(visualizer, bar_image, tmp_path):
    path = tmp_path / "stages.png"

    visualizer.plot_processing_stages({'Original': bar_image,
                                       'Overlay': visualizer.to_bgr(bar_image)},
                                      save_path=str(path))

    assert path.exists()
