"""
标志点几何校验模块

检查CEJ、牙槽骨嵴、根尖三点的垂直顺序、水平共线性和比例关系。
"""

from typing import Tuple
from loguru import logger

from ..models import Point2D, PointGroup
from ..utils.math_utils import calculate_distance


ACCEPTED = "accepted"
REJECTED_ORDERING = "ordering"
REJECTED_ALIGNMENT = "alignment"
REJECTED_PROPORTIONS = "proportions"


def check_ordering(cej: Point2D, bone: Point2D, apex: Point2D, min_gap: float) -> bool:
    """从上到下依次为CEJ、牙槽骨嵴、根尖，且相邻两点的间距大于 min_gap"""
    return cej.y + min_gap < bone.y and bone.y + min_gap < apex.y


def check_alignment(cej: Point2D, bone: Point2D, apex: Point2D, max_deviation: float) -> bool:
    """三个点的x坐标偏离平均值都不超过 max_deviation"""
    return PointGroup([cej, bone, apex]).max_x_deviation <= max_deviation


def check_proportions(total: float, cej_to_bone: float, bone_to_apex: float,
                      min_cej_bone: float = 0.1, max_cej_bone: float = 0.7,
                      min_bone_apex: float = 0.2) -> bool:
    """CEJ到骨嵴、骨嵴到根尖的距离占总长的比例符合正常解剖关系"""
    return (total * min_cej_bone < cej_to_bone < total * max_cej_bone and
            bone_to_apex > total * min_bone_apex)


class AlignmentValidator:
    """标志点三元组校验器"""

    def __init__(self, config: dict):
        """
        初始化校验器

        Args:
            config: 配置参数字典
        """
        self.config = config
        self.validation_config = config.get('validation', {})
        self.log = logger.bind(stage="validation")

    def validate(self, cej: Point2D, bone: Point2D, apex: Point2D,
                 max_tooth_width: float) -> Tuple[bool, str]:
        """
        校验三个候选点

        Args:
            cej: CEJ候选点
            bone: 牙槽骨嵴候选点
            apex: 根尖候选点
            max_tooth_width: 最大牙齿宽度

        Returns:
            (是否通过, 原因)，原因为 accepted / ordering / alignment / proportions
        """
        cfg = self.validation_config

        total = calculate_distance(cej, apex)
        cej_to_bone = calculate_distance(cej, bone)
        bone_to_apex = calculate_distance(bone, apex)

        if total > 0:
            self.log.debug(f"校验: 总长={total:.1f}, CEJ-骨嵴={cej_to_bone:.1f} "
                           f"({cej_to_bone / total:.2f}), 骨嵴-根尖={bone_to_apex:.1f} "
                           f"({bone_to_apex / total:.2f})")

        # 最小间距随总长变化，上限固定
        min_gap = min(total * cfg.get('min_gap_ratio', 0.15), cfg.get('min_gap_cap', 20))
        if not check_ordering(cej, bone, apex, min_gap):
            self.log.info(f"垂直顺序校验失败: y=({cej.y}, {bone.y}, {apex.y}), 最小间距={min_gap:.1f}")
            return False, REJECTED_ORDERING

        max_deviation = min(max_tooth_width * cfg.get('max_deviation_width_ratio', 0.4),
                            total * cfg.get('max_deviation_span_ratio', 0.25))
        if not check_alignment(cej, bone, apex, max_deviation):
            self.log.info(f"水平对齐校验失败: x=({cej.x}, {bone.x}, {apex.x}), "
                          f"允许偏差={max_deviation:.1f}")
            return False, REJECTED_ALIGNMENT

        if not check_proportions(total, cej_to_bone, bone_to_apex,
                                 min_cej_bone=cfg.get('min_cej_bone_ratio', 0.1),
                                 max_cej_bone=cfg.get('max_cej_bone_ratio', 0.7),
                                 min_bone_apex=cfg.get('min_bone_apex_ratio', 0.2)):
            self.log.info("比例校验失败")
            return False, REJECTED_PROPORTIONS

        return True, ACCEPTED
