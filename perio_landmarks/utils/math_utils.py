"""
数学计算工具模块

提供点集几何计算、邻域统计等数学工具函数。
"""

import numpy as np
from typing import Iterable, Sequence
from scipy.spatial.distance import cdist

from ..models import Point2D


def calculate_distance(point1: Point2D, point2: Point2D) -> float:
    """
    计算两点之间的欧氏距离

    Args:
        point1: 第一个点
        point2: 第二个点

    Returns:
        距离（像素）
    """
    return float(np.hypot(point2.x - point1.x, point2.y - point1.y))


def points_to_array(points: Iterable[Point2D]) -> np.ndarray:
    """
    将点列表转换为 (N, 2) 数组，列顺序为 (x, y)
    """
    array = np.array([(p.x, p.y) for p in points], dtype=np.float64)
    return array.reshape(-1, 2)


def count_box_neighbors(points: Sequence[Point2D], radius: float) -> np.ndarray:
    """
    统计每个点在 |dx|<=radius 且 |dy|<=radius 的方形邻域内的其他点数

    Args:
        points: 点集
        radius: 邻域半宽

    Returns:
        每个点的邻居数量 (N,)
    """
    if len(points) == 0:
        return np.zeros(0, dtype=int)

    coords = points_to_array(points)
    # 切比雪夫距离即方形邻域
    distances = cdist(coords, coords, metric='chebyshev')
    counts = np.count_nonzero(distances <= radius, axis=1) - 1
    return counts


def any_within_box(points_a: Sequence[Point2D], points_b: Sequence[Point2D],
                   radius: float) -> bool:
    """
    判断两个点集中是否存在一对点同时满足 |dx|<=radius 且 |dy|<=radius
    """
    if len(points_a) == 0 or len(points_b) == 0:
        return False

    distances = cdist(points_to_array(points_a), points_to_array(points_b),
                      metric='chebyshev')
    return bool(np.any(distances <= radius))
