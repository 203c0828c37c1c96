"""
End-to-end tests for the landmark detection pipeline.

Run with: pytest tests/test_pipeline.py -v
"""

from pathlib import Path

import numpy as np
import pytest
from loguru import logger

from perio_landmarks import LandmarkDetector, detect_landmarks
from perio_landmarks.core import EdgeDetector, ImageProcessor, detect_landmarks_batch
from perio_landmarks.core.pipeline import (
    MANUAL_MARKING_WARNING,
    PROCESSING_ERROR_WARNING,
)
from perio_landmarks.core.validation import REJECTED_PROPORTIONS
from perio_landmarks.models import Point2D
from perio_landmarks.utils import load_config

CONFIG_PATH = Path(__file__).parent.parent / "config" / "landmark_detection.yaml"


class TestSuccessfulDetection:

    def test_bar_yields_ordered_landmarks(self, bar_image):
        result = detect_landmarks(bar_image)

        assert result.success
        assert result.warnings == []
        landmarks = result.landmarks
        assert landmarks.cej.y < landmarks.bone.y < landmarks.apex.y
        for point in (landmarks.cej, landmarks.bone, landmarks.apex):
            assert 0 <= point.x < bar_image.shape[1]
            assert 0 <= point.y < bar_image.shape[0]

    def test_bar_landmarks_sit_on_bar_edge(self, bar_image):
        result = detect_landmarks(bar_image)

        assert result.landmarks.cej == Point2D(90, 105)
        assert result.landmarks.bone == Point2D(90, 165)
        assert result.landmarks.apex == Point2D(90, 225)

    def test_rgba_matches_grayscale(self, bar_image, bar_image_rgba):
        gray = detect_landmarks(bar_image)
        rgba = detect_landmarks(bar_image_rgba)

        assert rgba.landmarks == gray.landmarks

    def test_decision_trace_ends_with_acceptance(self, bar_image):
        result = detect_landmarks(bar_image)

        stages = [d.stage for d in result.decisions]
        assert stages == ["edges", "vertical_filter", "segmentation",
                          "tooth_selection", "landmarks", "validation"]
        assert result.find_decision("validation").outcome == "accepted"

    def test_debug_artifacts_attached_on_success(self, bar_image):
        result = detect_landmarks(bar_image)

        assert result.debug is not None
        assert result.debug.edges
        assert result.debug.clusters
        assert 'debug' in result.to_dict(include_debug=True)

    def test_repository_config_matches_defaults(self, bar_image):
        config = load_config(CONFIG_PATH)

        result = detect_landmarks(bar_image, config)

        assert result.success
        assert result.landmarks == detect_landmarks(bar_image).landmarks


class TestFailures:

    def test_blank_image_asks_for_manual_marking(self, blank_image):
        result = detect_landmarks(blank_image)

        assert not result.success
        assert result.warnings == [MANUAL_MARKING_WARNING]
        assert result.find_decision("edges").outcome == "insufficient"
        assert result.debug is None

    @pytest.mark.parametrize("image", [
        np.zeros((2, 2), dtype=np.uint8),
        np.zeros((10, 10), dtype=np.uint8),
        "not an image",
    ])
    def test_invalid_input_is_reported_not_raised(self, image):
        result = detect_landmarks(image)

        assert not result.success
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("Invalid radiograph image")
        assert result.find_decision("input").outcome == "invalid"

    def test_sixteen_bit_radiograph_is_an_input_error(self, bar_image):
        wide = np.where(bar_image > 0, 54000, 3000).astype(np.uint16)

        result = detect_landmarks(wide)

        assert not result.success
        assert result.warnings[0].startswith("Invalid radiograph image")
        assert result.find_decision("input").outcome == "invalid"
        assert result.find_decision("edges") is None

    def test_minimum_size_image_fails_gracefully(self):
        detector = LandmarkDetector({'input': {'min_image_size': 3}})
        image = np.array([[0, 255, 0], [255, 0, 255], [0, 255, 0]], dtype=np.uint8)

        result = detector.detect_landmarks(image)

        assert not result.success
        assert result.warnings

    def test_validation_rejection_is_traced(self, bar_image, monkeypatch):
        detector = LandmarkDetector()
        monkeypatch.setattr(detector.validator, "validate",
                            lambda *args, **kwargs: (False, REJECTED_PROPORTIONS))

        result = detector.detect_landmarks(bar_image)

        assert not result.success
        assert result.warnings == [MANUAL_MARKING_WARNING]
        decision = result.find_decision("validation")
        assert decision.outcome == "rejected"
        assert decision.details['reason'] == REJECTED_PROPORTIONS

    def test_internal_error_becomes_warning(self, bar_image, monkeypatch):
        detector = LandmarkDetector()

        def explode(image):
            raise RuntimeError("boom")

        monkeypatch.setattr(detector.edge_detector, "detect_edges", explode)

        result = detector.detect_landmarks(bar_image)

        assert not result.success
        assert result.warnings == [PROCESSING_ERROR_WARNING]
        assert result.find_decision("pipeline").outcome == "error"


class TestStatelessness:

    def test_repeated_calls_are_identical(self, bar_image):
        detector = LandmarkDetector()

        first = detector.detect_landmarks(bar_image)
        second = detector.detect_landmarks(bar_image)

        assert first.to_dict(include_debug=True) == second.to_dict(include_debug=True)

    def test_detection_is_deterministic_across_many_runs(self, bar_image):
        results = [detect_landmarks(bar_image.copy()) for _ in range(8)]

        first = results[0]
        assert first.success
        for result in results[1:]:
            assert result.debug.edges == first.debug.edges
            assert result.landmarks == first.landmarks
            assert result.info['edge_detection'] == first.info['edge_detection']

    def test_plateau_magnitudes_are_bitwise_equal(self, bar_image):
        enhanced = ImageProcessor({}).enhance_contrast(bar_image)
        detector = EdgeDetector({})

        runs = [detector.compute_gradients(enhanced) for _ in range(6)]

        for magnitude in runs[1:]:
            assert np.array_equal(magnitude, runs[0])
        assert runs[0][150, 89] == runs[0][150, 90] == 127.5

    def test_input_is_not_modified(self, bar_image_rgba):
        original = bar_image_rgba.copy()

        detect_landmarks(bar_image_rgba)

        assert np.array_equal(bar_image_rgba, original)

    def test_batch_preserves_order(self, bar_image, blank_image):
        results = detect_landmarks_batch([bar_image, blank_image, bar_image], max_workers=2)

        assert [r.success for r in results] == [True, False, True]
        assert results[0].landmarks == results[2].landmarks


def test_log_records_carry_stage_names(bar_image):
    stages = []
    handler_id = logger.add(lambda message: stages.append(message.record["extra"].get("stage")),
                            level="DEBUG")
    try:
        detect_landmarks(bar_image)
    finally:
        logger.remove(handler_id)

    assert "edges" in stages
    assert "validation" in stages
