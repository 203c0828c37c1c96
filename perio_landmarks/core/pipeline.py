"""
牙周标志点检测流程

依次执行 对比度增强 -> 边缘检测 -> 垂直结构过滤 -> 片段生长 -> 牙齿选择 -> 标志点提取 -> 几何校验。
任一阶段候选不足或校验失败时直接结束，返回需要手动标注的提示；不会换参数重试。

检测器只保存配置，不持有跨调用状态，可在多个线程中并行使用。
"""

import numpy as np
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence
from loguru import logger

from ..models import DebugArtifacts, DetectionResult, LandmarkTriple
from .image_processor import ImageProcessor, InvalidImageError
from .edge_detector import EdgeDetector
from .vertical_filter import VerticalStructureFilter
from .segmentation import SegmentGrower
from .tooth_selector import ToothSelector
from .landmark_extractor import LandmarkExtractor
from .validation import AlignmentValidator


MANUAL_MARKING_WARNING = "Could not detect valid landmarks. Please mark them manually."
PROCESSING_ERROR_WARNING = "Error detecting landmarks. Please try manual marking."
INVALID_IMAGE_WARNING = "Invalid radiograph image: {reason}. Please mark landmarks manually."


class LandmarkDetector:
    """CEJ / 牙槽骨嵴 / 根尖 自动检测器"""

    def __init__(self, config: Optional[dict] = None):
        """
        初始化检测器

        Args:
            config: 配置参数字典，缺省项使用默认值
        """
        self.config = config or {}
        self.image_processor = ImageProcessor(self.config)
        self.edge_detector = EdgeDetector(self.config)
        self.vertical_filter = VerticalStructureFilter(self.config)
        self.segment_grower = SegmentGrower(self.config)
        self.tooth_selector = ToothSelector(self.config)
        self.landmark_extractor = LandmarkExtractor(self.config)
        self.validator = AlignmentValidator(self.config)
        self.log = logger.bind(stage="pipeline")

    def detect_landmarks(self, image: np.ndarray) -> DetectionResult:
        """
        检测一张牙片中的三个标志点

        所有异常都转换为警告信息，不会向调用方抛出。

        Args:
            image: 像素缓冲区 (H, W)、(H, W, 3) 或 (H, W, 4)，不会被修改

        Returns:
            检测结果
        """
        result = DetectionResult()
        self.log.info("开始标志点检测")

        try:
            self._run(image, result)
        except InvalidImageError as e:
            self.log.warning(f"输入图像无效: {e}")
            result.record("input", "invalid", reason=str(e))
            result.warnings.append(INVALID_IMAGE_WARNING.format(reason=e))
            return result
        except Exception as e:
            self.log.exception(f"标志点检测出错: {e}")
            result.record("pipeline", "error", error=repr(e))
            result.landmarks = None
            result.debug = None
            result.warnings.append(PROCESSING_ERROR_WARNING)
            return result

        if result.success:
            self.log.info(f"检测成功: {result.landmarks.to_dict()}")
        else:
            result.warnings.append(MANUAL_MARKING_WARNING)
        return result

    def _shortfall(self, result: DetectionResult, stage: str, **details) -> None:
        self.log.warning(f"{stage} 阶段候选不足: {details}")
        result.record(stage, "insufficient", **details)

    def _run(self, image: np.ndarray, result: DetectionResult) -> None:
        self.image_processor.validate_image(image)

        # 在副本上处理，调用方的缓冲区保持不变
        working = np.array(image, copy=True)
        height, width = working.shape[:2]
        result.info['image_size'] = {'width': width, 'height': height}

        # 1. 对比度增强
        enhanced = self.image_processor.enhance_contrast(working)

        # 2. 边缘检测
        edges, edge_info = self.edge_detector.detect_edges(enhanced)
        result.info['edge_detection'] = edge_info
        if not edges:
            self._shortfall(result, "edges", count=0)
            return
        result.record("edges", "detected", count=len(edges))

        # 3. 垂直结构过滤
        accepted_edges = self.vertical_filter.prefilter_vertical_neighbors(edges)
        structure_points = self.vertical_filter.filter_edges(accepted_edges, width)
        result.info['vertical_filter'] = {
            'accepted_edges': len(accepted_edges),
            'structure_points': len(structure_points),
        }
        if not structure_points:
            self._shortfall(result, "vertical_filter", count=0)
            return
        result.record("vertical_filter", "filtered", count=len(structure_points))

        # 4. 片段生长与聚类
        pool, segment_info = self.segment_grower.find_landmark_points(
            structure_points, width, height)
        result.info['segmentation'] = segment_info
        if len(pool) < self.tooth_selector.min_points:
            self._shortfall(result, "segmentation", points=len(pool))
            return
        result.record("segmentation", "clustered", points=len(pool),
                      clusters=segment_info['clusters'])

        # 5. 牙齿分组与选择
        best_tooth, teeth = self.tooth_selector.select_tooth(pool, width, height)
        result.info['tooth_selection'] = {'columns': len(teeth)}
        if best_tooth is None:
            self._shortfall(result, "tooth_selection", columns=0)
            return
        result.record("tooth_selection", "selected", columns=len(teeth),
                      points=len(best_tooth), score=round(best_tooth.score, 3))

        # 6. 标志点提取
        max_tooth_width = self.tooth_selector.max_tooth_width(width)
        candidates = self.landmark_extractor.extract_landmarks(best_tooth, height, max_tooth_width)
        missing = [name for name, point in candidates.items() if point is None]
        if missing:
            self._shortfall(result, "landmarks", missing=missing)
            return
        result.record("landmarks", "found",
                      **{name: tuple(point) for name, point in candidates.items()})

        # 7. 几何校验
        accepted, reason = self.validator.validate(
            candidates['cej'], candidates['bone'], candidates['apex'], max_tooth_width)
        if not accepted:
            result.record("validation", "rejected", reason=reason)
            return
        result.record("validation", "accepted", reason=reason)

        result.landmarks = LandmarkTriple(candidates['cej'], candidates['bone'], candidates['apex'])
        result.debug = DebugArtifacts(
            edges=accepted_edges,
            clusters=[tooth.points for tooth in teeth],
        )


def detect_landmarks(image: np.ndarray, config: Optional[dict] = None) -> DetectionResult:
    """
    便捷函数：使用给定配置检测单张图像

    Args:
        image: 像素缓冲区
        config: 配置参数字典

    Returns:
        检测结果
    """
    return LandmarkDetector(config).detect_landmarks(image)


def detect_landmarks_batch(images: Sequence[np.ndarray], config: Optional[dict] = None,
                           max_workers: int = 4) -> List[DetectionResult]:
    """
    多线程并行检测多张图像

    每张图像的中间数据互不共享，结果顺序与输入一致。

    Args:
        images: 图像列表
        config: 配置参数字典
        max_workers: 最大线程数

    Returns:
        检测结果列表
    """
    detector = LandmarkDetector(config)
    if max_workers <= 1 or len(images) <= 1:
        return [detector.detect_landmarks(image) for image in images]

    logger.info(f"并行检测 {len(images)} 张图像 (线程数={max_workers})")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(detector.detect_landmarks, images))
