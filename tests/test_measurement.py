"""
Tests for periodontal measurements and staging.

Run with: pytest tests/test_measurement.py -v
"""

import pytest

from perio_landmarks.core import calculate_measurements, classify_periodontal_stage
from perio_landmarks.core.measurement import PERIODONTAL_STAGES
from perio_landmarks.models import LandmarkTriple, Point2D


@pytest.fixture
def vertical_triple():
    return LandmarkTriple(Point2D(100, 50), Point2D(100, 120), Point2D(100, 190))


def test_measurements_in_millimeters(vertical_triple):
    measurements = calculate_measurements(vertical_triple, pixels_per_mm=7.0)

    assert measurements['root_length_mm'] == 20.0
    assert measurements['bone_loss_mm'] == 10.0
    assert measurements['bone_to_apex_mm'] == 10.0
    assert measurements['bone_loss_percentage'] == 50.0
    assert measurements['cej_y_mm'] == 7.1
    assert measurements['periodontal_stage'] == 'stage_iii'
    assert measurements['stage_label'] == PERIODONTAL_STAGES['stage_iii']['label']
    assert measurements['prognosis'] == 'Questionable'


def test_scale_changes_lengths_not_percentage(vertical_triple):
    measurements = calculate_measurements(vertical_triple, pixels_per_mm=14.0)

    assert measurements['root_length_mm'] == 10.0
    assert measurements['bone_loss_percentage'] == 50.0


def test_non_positive_scale_is_rejected(vertical_triple):
    with pytest.raises(ValueError):
        calculate_measurements(vertical_triple, pixels_per_mm=0)


@pytest.mark.parametrize("percentage, millimeters, expected", [
    (10, 1, 'none'),
    (15, 2, 'stage_i'),
    (20, 2.5, 'stage_ii'),
    (40, 2, 'stage_iii'),
    (60, 1, 'stage_iv'),
    (10, 6, 'stage_iv'),
])
def test_classify_periodontal_stage(percentage, millimeters, expected):
    assert classify_periodontal_stage(percentage, millimeters) == expected


def test_every_stage_has_display_fields():
    for stage in PERIODONTAL_STAGES.values():
        assert {'label', 'prognosis', 'range', 'description', 'recommendations'} <= set(stage)
