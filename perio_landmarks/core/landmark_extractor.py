"""
标志点提取模块

在选中的牙齿列内，分别在CEJ、牙槽骨嵴和根尖的目标高度附近搜索最合适的点。
"""

from typing import Dict, List, Optional, Sequence
from loguru import logger

from ..models import Point2D, ToothColumn
from ..utils.math_utils import count_box_neighbors


def score_candidate(point: Point2D, target_y: float, target_x: float,
                    max_distance: float, neighbor_count: int,
                    x_weight: float = 2.0, neighbor_bonus: float = 5.0) -> float:
    """
    候选点评分

    基础分 -(dy + x_weight·dx) 加上邻居奖励，再乘以居中系数 (1 + (1 - dx/max_distance))。

    Args:
        point: 候选点
        target_y: 目标y
        target_x: 目标x
        max_distance: 水平搜索范围
        neighbor_count: 邻域内的其他候选点数
        x_weight: 水平距离权重
        neighbor_bonus: 每个邻居的奖励

    Returns:
        得分
    """
    y_dist = abs(point.y - target_y)
    x_dist = abs(point.x - target_x)

    score = -(y_dist + x_dist * x_weight)
    score += neighbor_count * neighbor_bonus

    center_bonus = 1 - x_dist / max_distance
    return score * (1 + center_bonus)


class LandmarkExtractor:
    """标志点提取器"""

    def __init__(self, config: dict):
        """
        初始化提取器

        Args:
            config: 配置参数字典
        """
        self.config = config
        self.landmark_config = config.get('landmarks', {})
        self.log = logger.bind(stage="landmarks")

    def target_heights(self) -> Dict[str, float]:
        """三个标志点的目标高度比例"""
        return {
            'cej': self.landmark_config.get('cej_height', 0.35),
            'bone': self.landmark_config.get('bone_height', 0.55),
            'apex': self.landmark_config.get('apex_height', 0.75),
        }

    def select_region_points(self, points: Sequence[Point2D], min_y: float, max_y: float,
                             target_x: float, max_distance: float) -> List[Point2D]:
        return [p for p in points
                if min_y <= p.y <= max_y and abs(p.x - target_x) <= max_distance]

    def find_point_in_region(self, points: Sequence[Point2D], target_y: float,
                             target_x: float, max_distance: float) -> Optional[Point2D]:
        """
        在目标高度附近寻找得分最高的点

        目标位于最上方的点之上时（通常是CEJ），搜索带放宽；
        若仍无候选，向下扩展搜索带并放宽水平范围重试一次。

        Args:
            points: 按y排序的牙齿列点
            target_y: 目标y
            target_x: 目标x（牙齿轴线）
            max_distance: 水平搜索范围

        Returns:
            最佳点，没有候选时返回None
        """
        if len(points) == 0:
            return None

        above_top = target_y < points[0].y
        ratio_key = 'expanded_region_ratio' if above_top else 'region_height_ratio'
        default_ratio = 0.5 if above_top else 0.3
        region_height = target_y * self.landmark_config.get(ratio_key, default_ratio)

        min_y = target_y - region_height
        max_y = target_y + region_height
        region_points = self.select_region_points(points, min_y, max_y, target_x, max_distance)

        if not region_points and above_top:
            depth_factor = self.landmark_config.get('fallback_depth_factor', 2.0)
            width_factor = self.landmark_config.get('fallback_width_factor', 1.5)
            self.log.debug(f"y={target_y:.0f} 附近无候选点，扩大搜索范围")
            region_points = self.select_region_points(
                points, min_y, target_y + region_height * depth_factor,
                target_x, max_distance * width_factor)

        if not region_points:
            self.log.debug(f"区域 y={target_y:.0f}±{region_height:.0f} 内没有候选点")
            return None

        radius = self.landmark_config.get('neighbor_radius', 10)
        x_weight = self.landmark_config.get('x_distance_weight', 2.0)
        neighbor_bonus = self.landmark_config.get('neighbor_bonus', 5.0)
        neighbor_counts = count_box_neighbors(region_points, radius)

        best_point = None
        best_score = float('-inf')
        for point, count in zip(region_points, neighbor_counts):
            score = score_candidate(point, target_y, target_x, max_distance, int(count),
                                    x_weight=x_weight, neighbor_bonus=neighbor_bonus)
            # 严格大于，得分相同时保留靠上的点
            if score > best_score:
                best_point, best_score = point, score

        return best_point

    def extract_landmarks(self, tooth: ToothColumn, image_height: int,
                          max_tooth_width: float) -> Dict[str, Optional[Point2D]]:
        """
        提取CEJ、牙槽骨嵴和根尖候选点

        Args:
            tooth: 选中的牙齿列
            image_height: 图像高度
            max_tooth_width: 最大牙齿宽度

        Returns:
            {'cej': 点或None, 'bone': ..., 'apex': ...}
        """
        sorted_points = sorted(tooth.points, key=lambda p: p.y)
        axis_x = tooth.mean_x
        max_distance = max_tooth_width * self.landmark_config.get('search_width_fraction', 0.4)

        landmarks = {}
        for name, fraction in self.target_heights().items():
            landmarks[name] = self.find_point_in_region(
                sorted_points, image_height * fraction, axis_x, max_distance)

        self.log.info("标志点候选: " + ", ".join(
            f"{name}={tuple(point) if point else None}" for name, point in landmarks.items()))
        return landmarks
