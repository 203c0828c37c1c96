"""
Tests for landmark region search and extraction.

Run with: pytest tests/test_landmark_extractor.py -v
"""

import pytest

from perio_landmarks.core import LandmarkExtractor, score_candidate
from perio_landmarks.models import Point2D, ToothColumn


@pytest.fixture
def extractor():
    return LandmarkExtractor({})


def test_score_candidate_literal():
    # 基础分 0 + 2个邻居 × 5，位于轴线上居中系数为 2
    assert score_candidate(Point2D(50, 100), 100, 50, 20, 2) == pytest.approx(20.0)


def test_score_candidate_penalizes_horizontal_offset():
    centered = score_candidate(Point2D(50, 100), 100, 50, 20, 0)
    offset = score_candidate(Point2D(55, 95), 100, 50, 20, 0)

    assert centered == pytest.approx(0.0)
    # -(5 + 10) × (1 + 0.75)
    assert offset == pytest.approx(-26.25)


class TestFindPointInRegion:

    def test_picks_point_nearest_target(self, extractor):
        points = [Point2D(50, y) for y in range(80, 130, 10)]

        best = extractor.find_point_in_region(points, target_y=100, target_x=50, max_distance=20)

        assert best == Point2D(50, 100)

    def test_horizontal_range_excludes_far_points(self, extractor):
        points = [Point2D(90, 100), Point2D(90, 105), Point2D(90, 110)]

        assert extractor.find_point_in_region(points, 100, 50, 20) is None

    def test_fallback_extends_below_target_above_column(self, extractor):
        # 目标 y=60 在最上方的点之上，常规搜索带 [30, 90] 为空
        points = [Point2D(50, 100), Point2D(50, 110), Point2D(50, 120)]

        best = extractor.find_point_in_region(points, target_y=60, target_x=50, max_distance=20)

        assert best == Point2D(50, 100)

    def test_no_fallback_below_topmost_point(self, extractor):
        points = [Point2D(50, 100), Point2D(50, 110), Point2D(50, 120)]

        assert extractor.find_point_in_region(points, target_y=300, target_x=50,
                                              max_distance=20) is None

    def test_empty_points(self, extractor):
        assert extractor.find_point_in_region([], 100, 50, 20) is None


class TestExtractLandmarks:

    def test_target_heights(self, extractor):
        assert extractor.target_heights() == {'cej': 0.35, 'bone': 0.55, 'apex': 0.75}

    def test_dense_column_yields_targets(self, extractor):
        tooth = ToothColumn([Point2D(100, y) for y in range(60, 240)])

        landmarks = extractor.extract_landmarks(tooth, image_height=300, max_tooth_width=50)

        assert landmarks == {
            'cej': Point2D(100, 105),
            'bone': Point2D(100, 165),
            'apex': Point2D(100, 225),
        }

    def test_missing_region_returns_none(self, extractor):
        # 只覆盖图像上部，根尖区域没有点
        tooth = ToothColumn([Point2D(100, y) for y in range(60, 140)])

        landmarks = extractor.extract_landmarks(tooth, image_height=300, max_tooth_width=50)

        assert landmarks['cej'] is not None
        assert landmarks['apex'] is None
