"""
垂直结构过滤模块

牙齿和牙根轮廓在牙片中近似垂直。本模块去除缺少垂直方向邻居的边缘点，
并将候选点限制在图像中央的水平带内，排除背景纹理。
"""

import numpy as np
from typing import List, Sequence
from loguru import logger
from scipy.spatial import cKDTree

from ..models import Point2D
from ..utils.math_utils import points_to_array


class VerticalStructureFilter:
    """垂直结构过滤器"""

    def __init__(self, config: dict):
        """
        初始化过滤器

        Args:
            config: 配置参数字典
        """
        self.config = config
        self.filter_config = config.get('vertical_filter', {})
        self.min_offset = self.filter_config.get('min_vertical_offset', 5)
        self.max_offset = self.filter_config.get('max_vertical_offset', 20)
        self.log = logger.bind(stage="vertical_filter")

    def _search_radius(self, x_tolerance: float) -> float:
        return float(np.hypot(x_tolerance, self.max_offset)) + 1e-6

    def prefilter_vertical_neighbors(self, edges: Sequence[Point2D]) -> List[Point2D]:
        """
        保留至少有一个垂直方向邻居的边缘点

        邻居条件: |dx| <= neighbor_x_tolerance 且 min_offset < |dy| <= max_offset

        Args:
            edges: 边缘点

        Returns:
            过滤后的边缘点（保持原顺序）
        """
        if len(edges) == 0:
            return []

        x_tolerance = self.filter_config.get('neighbor_x_tolerance', 5)
        coords = points_to_array(edges)
        tree = cKDTree(coords)
        neighbor_lists = tree.query_ball_point(coords, r=self._search_radius(x_tolerance))

        kept = []
        for i, neighbors in enumerate(neighbor_lists):
            if not neighbors:
                continue
            neighbors = np.asarray(neighbors)
            dx = np.abs(coords[neighbors, 0] - coords[i, 0])
            dy = np.abs(coords[neighbors, 1] - coords[i, 1])
            if np.any((dx <= x_tolerance) & (dy > self.min_offset) & (dy <= self.max_offset)):
                kept.append(edges[i])

        self.log.debug(f"垂直邻居预过滤: {len(edges)} -> {len(kept)}")
        return kept

    def has_intermediate_points(self, tree: cKDTree, coords: np.ndarray,
                                i: int, j: int) -> bool:
        """
        判断两点之间是否连续

        两点足够近，或存在第三个点 p 使 d(p1,p) + d(p,p2) <= d(p1,p2) × 容差。

        Args:
            tree: 全部边缘点的KD树
            coords: 全部边缘点坐标
            i: 第一个点的索引
            j: 第二个点的索引

        Returns:
            是否连续
        """
        link_distance = self.filter_config.get('direct_link_distance', 10)
        tolerance = self.filter_config.get('intermediate_tolerance', 1.1)

        p1, p2 = coords[i], coords[j]
        distance = float(np.hypot(*(p2 - p1)))
        if distance <= link_distance:
            return True

        # 满足条件的点都在以中点为圆心、半长轴为半径的圆内
        limit = distance * tolerance
        midpoint = (p1 + p2) / 2.0
        for k in tree.query_ball_point(midpoint, r=limit / 2.0 + 1e-6):
            if k == i or k == j:
                continue
            d1 = np.hypot(*(coords[k] - p1))
            d2 = np.hypot(*(coords[k] - p2))
            if d1 + d2 <= limit:
                return True
        return False

    def is_vertical_structure(self, tree: cKDTree, coords: np.ndarray,
                              neighbors: Sequence[int], i: int) -> bool:
        """
        判断一个点是否位于垂直结构上

        上下方都有邻居，或至少有 min_connections 个连续的垂直邻居。
        """
        x_tolerance = self.filter_config.get('structure_x_tolerance', 7)
        min_connections = self.filter_config.get('min_connections', 2)

        has_upper = False
        has_lower = False
        connections = 0

        for j in neighbors:
            if j == i:
                continue
            dx = abs(coords[j, 0] - coords[i, 0])
            dy = coords[j, 1] - coords[i, 1]
            if dx > x_tolerance:
                continue

            if self.min_offset < dy <= self.max_offset:
                has_lower = True
            elif -self.max_offset <= dy < -self.min_offset:
                has_upper = True
            else:
                continue

            if has_upper and has_lower:
                return True
            if connections < min_connections and self.has_intermediate_points(tree, coords, i, j):
                connections += 1

        return connections >= min_connections

    def filter_edges(self, edges: Sequence[Point2D], width: int) -> List[Point2D]:
        """
        完整的垂直结构过滤

        Args:
            edges: 经过预过滤的边缘点
            width: 图像宽度

        Returns:
            位于中央带内且属于垂直结构的点
        """
        if len(edges) == 0:
            return []

        band_fraction = self.filter_config.get('central_band_fraction', 0.4)
        x_tolerance = self.filter_config.get('structure_x_tolerance', 7)

        center_x = width / 2
        half_band = width * band_fraction / 2
        min_x = center_x - half_band
        max_x = center_x + half_band

        coords = points_to_array(edges)
        tree = cKDTree(coords)
        radius = self._search_radius(x_tolerance)

        filtered = []
        for i, point in enumerate(edges):
            if point.x < min_x or point.x > max_x:
                continue
            neighbors = tree.query_ball_point(coords[i], r=radius)
            if self.is_vertical_structure(tree, coords, sorted(neighbors), i):
                filtered.append(point)

        self.log.info(f"垂直结构过滤: {len(edges)} -> {len(filtered)} "
                      f"(中央带 x∈[{min_x:.0f}, {max_x:.0f}])")
        return filtered
