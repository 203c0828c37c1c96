"""
垂直片段生长模块

将过滤后的边缘点通过广度优先搜索生长为垂直片段，
按垂直跨度、点数和居中程度评分，保留得分最高的片段并合并为聚类。
"""

import numpy as np
from collections import deque
from typing import List, Sequence, Tuple
from loguru import logger
from scipy.spatial import cKDTree

from ..models import Point2D, Segment
from ..utils.math_utils import points_to_array, any_within_box


def score_segment(segment: Segment, width: int, height: int,
                  centrality_weight: float = 2.0) -> float:
    """
    片段评分: 垂直跨度比例 × 点数 × 居中系数 × 权重

    居中系数 = 1 - |平均x - 图像中心| / (宽度/2)，远离中心的片段得分降低。

    Args:
        segment: 片段
        width: 图像宽度
        height: 图像高度
        centrality_weight: 居中权重

    Returns:
        片段得分
    """
    center_x = width / 2
    spread = segment.vertical_spread / height
    centrality = 1 - abs(segment.mean_x - center_x) / center_x
    return spread * len(segment) * centrality * centrality_weight


class SegmentGrower:
    """垂直片段生长器"""

    def __init__(self, config: dict):
        """
        初始化片段生长器

        Args:
            config: 配置参数字典
        """
        self.config = config
        self.segment_config = config.get('segmentation', {})
        self.max_dx = self.segment_config.get('max_horizontal_deviation', 7)
        self.max_dy = self.segment_config.get('max_vertical_reach', 25)
        self.min_segment_size = self.segment_config.get('min_segment_size', 3)
        self.log = logger.bind(stage="segmentation")

    def grow_segments(self, points: Sequence[Point2D]) -> List[Segment]:
        """
        将点集生长为垂直片段

        一个点在 |dx| <= max_dx 且 |dy| <= max_dy 时加入当前片段。
        点数少于 min_segment_size 的片段被丢弃。

        Args:
            points: 过滤后的边缘点

        Returns:
            片段列表
        """
        if len(points) == 0:
            return []

        coords = points_to_array(points)
        tree = cKDTree(coords)
        radius = float(np.hypot(self.max_dx, self.max_dy)) + 1e-6
        visited = np.zeros(len(points), dtype=bool)

        segments = []
        for start in range(len(points)):
            if visited[start]:
                continue

            members = []
            queue = deque([start])
            visited[start] = True

            # 广度优先生长
            while queue:
                current = queue.popleft()
                members.append(points[current])

                for j in sorted(tree.query_ball_point(coords[current], r=radius)):
                    if visited[j]:
                        continue
                    if (abs(coords[j, 0] - coords[current, 0]) <= self.max_dx and
                            abs(coords[j, 1] - coords[current, 1]) <= self.max_dy):
                        visited[j] = True
                        queue.append(j)

            if len(members) >= self.min_segment_size:
                segments.append(Segment(members))

        self.log.debug(f"生长得到 {len(segments)} 个垂直片段")
        return segments

    def select_top_segments(self, segments: List[Segment], width: int,
                            height: int) -> List[Segment]:
        """
        对片段评分并保留得分最高的若干个

        Args:
            segments: 片段列表
            width: 图像宽度
            height: 图像高度

        Returns:
            得分从高到低排列的片段
        """
        top_n = self.segment_config.get('top_segments', 5)
        weight = self.segment_config.get('centrality_weight', 2.0)

        for segment in segments:
            segment.score = score_segment(segment, width, height, weight)

        # sorted 是稳定排序，得分相同时保持生长顺序
        ranked = sorted(segments, key=lambda s: s.score, reverse=True)
        return ranked[:top_n]

    def merge_segments(self, segments: List[Segment]) -> List[List[Point2D]]:
        """
        合并相邻片段

        两个片段中存在 |dx|, |dy| 均不超过 merge_distance 的点对时视为相邻，
        相邻关系传递合并，得到互不重叠的聚类。

        Args:
            segments: 保留的片段

        Returns:
            聚类列表
        """
        merge_distance = self.segment_config.get('merge_distance', 15)

        # 并查集
        parent = list(range(len(segments)))

        def find(i: int) -> int:
            while parent[i] != i:
                parent[i] = parent[parent[i]]
                i = parent[i]
            return i

        for i in range(len(segments)):
            for j in range(i + 1, len(segments)):
                if find(i) == find(j):
                    continue
                if any_within_box(segments[i].points, segments[j].points, merge_distance):
                    parent[find(j)] = find(i)

        groups = {}
        for i, segment in enumerate(segments):
            groups.setdefault(find(i), []).extend(segment.points)

        clusters = [cluster for cluster in groups.values()
                    if len(cluster) >= self.min_segment_size]
        return clusters

    def find_landmark_points(self, points: Sequence[Point2D], width: int,
                             height: int) -> Tuple[List[Point2D], dict]:
        """
        完整的片段生长与聚类流程

        Args:
            points: 过滤后的边缘点
            width: 图像宽度
            height: 图像高度

        Returns:
            聚类展开后的点集，以及处理信息
        """
        segments = self.grow_segments(points)
        top_segments = self.select_top_segments(segments, width, height)
        clusters = self.merge_segments(top_segments)

        pool = [p for cluster in clusters for p in cluster]

        info = {
            'segments': len(segments),
            'top_segment_scores': [round(s.score, 3) for s in top_segments],
            'clusters': len(clusters),
            'pool_points': len(pool),
        }
        self.log.info(f"片段: {info['segments']}, 聚类: {info['clusters']}, "
                      f"候选点: {info['pool_points']}")
        return pool, info
