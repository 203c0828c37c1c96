"""
牙齿分组与选择模块

按x坐标将候选点划分为若干牙齿列，根据垂直覆盖和水平对齐程度评分，选出最可能的单颗牙齿。
"""

from typing import List, Optional, Sequence, Tuple
from loguru import logger

from ..models import Point2D, ToothColumn


def score_tooth(points: Sequence[Point2D], image_height: int,
                upper_band: float = 0.4, lower_band: float = 0.7,
                spread_range: Tuple[float, float] = (0.4, 0.9),
                spread_bonus: float = 1.5,
                alignment_penalty: float = 0.1) -> float:
    """
    牙齿列评分

    上、中、下三个区域各有点时各加1分；垂直跨度比例落在 spread_range 内乘以 spread_bonus；
    最后除以水平对齐惩罚 (1 + 最大水平偏差 × alignment_penalty)。

    Args:
        points: 牙齿列中的点
        image_height: 图像高度
        upper_band: 上区下界（高度比例）
        lower_band: 下区上界（高度比例）
        spread_range: 获得奖励的跨度比例范围
        spread_bonus: 跨度奖励倍数
        alignment_penalty: 水平偏差惩罚系数

    Returns:
        得分
    """
    column = ToothColumn(list(points))
    ratios = [p.y / image_height for p in column.points]

    has_top = any(r < upper_band for r in ratios)
    has_middle = any(upper_band <= r < lower_band for r in ratios)
    has_bottom = any(r >= lower_band for r in ratios)
    score = float(has_top + has_middle + has_bottom)

    spread = column.vertical_spread / image_height
    if spread_range[0] <= spread <= spread_range[1]:
        score *= spread_bonus

    alignment = 1 / (1 + column.max_x_deviation * alignment_penalty)
    return score * alignment


class ToothSelector:
    """牙齿列分组与选择器"""

    def __init__(self, config: dict):
        """
        初始化选择器

        Args:
            config: 配置参数字典
        """
        self.config = config
        self.tooth_config = config.get('tooth_selection', {})
        self.min_points = self.tooth_config.get('min_column_points', 3)
        self.log = logger.bind(stage="tooth_selection")

    def max_tooth_width(self, image_width: int) -> float:
        """最大可能牙齿宽度（像素）"""
        return image_width * self.tooth_config.get('max_tooth_width_fraction', 0.25)

    def group_points_into_teeth(self, points: Sequence[Point2D],
                                max_width: float) -> List[ToothColumn]:
        """
        按x坐标贪心划分牙齿列

        点的x与当前列第一个点的x相差不超过 max_width/2 时加入当前列，否则开始新列。
        点数不足的列被丢弃。

        Args:
            points: 候选点
            max_width: 最大牙齿宽度

        Returns:
            牙齿列列表
        """
        if len(points) == 0:
            return []

        sorted_points = sorted(points, key=lambda p: p.x)

        teeth = []
        current_x = sorted_points[0].x
        current = []

        for point in sorted_points:
            if abs(point.x - current_x) <= max_width * 0.5:
                current.append(point)
            else:
                if len(current) >= self.min_points:
                    teeth.append(ToothColumn(current))
                current = [point]
                current_x = point.x

        if len(current) >= self.min_points:
            teeth.append(ToothColumn(current))

        return teeth

    def find_best_tooth(self, teeth: List[ToothColumn],
                        image_height: int) -> Optional[ToothColumn]:
        """
        选出得分最高的牙齿列

        Args:
            teeth: 牙齿列
            image_height: 图像高度

        Returns:
            最佳牙齿列，没有候选时返回None
        """
        if not teeth:
            return None

        spread_range = tuple(self.tooth_config.get('spread_range', [0.4, 0.9]))
        for tooth in teeth:
            tooth.score = score_tooth(
                tooth.points, image_height,
                upper_band=self.tooth_config.get('upper_band', 0.4),
                lower_band=self.tooth_config.get('lower_band', 0.7),
                spread_range=spread_range,
                spread_bonus=self.tooth_config.get('spread_bonus', 1.5),
                alignment_penalty=self.tooth_config.get('alignment_penalty', 0.1),
            )
            self.log.debug(f"牙齿列得分: {tooth.score:.3f} ({len(tooth)} 个点, 平均x={tooth.mean_x:.1f})")

        # 得分相同时取第一个
        return max(teeth, key=lambda t: t.score)

    def select_tooth(self, points: Sequence[Point2D], image_width: int,
                     image_height: int) -> Tuple[Optional[ToothColumn], List[ToothColumn]]:
        """
        完整的分组与选择流程

        Args:
            points: 聚类后的候选点
            image_width: 图像宽度
            image_height: 图像高度

        Returns:
            最佳牙齿列（可能为None）和全部候选牙齿列
        """
        teeth = self.group_points_into_teeth(points, self.max_tooth_width(image_width))
        best = self.find_best_tooth(teeth, image_height)

        if best is None:
            self.log.warning("没有满足最少点数的牙齿列")
        else:
            self.log.info(f"候选牙齿列: {len(teeth)}, 最佳列 {len(best)} 个点, 得分 {best.score:.3f}")
        return best, teeth
