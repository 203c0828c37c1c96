"""
核心算法模块

包含对比度增强、边缘检测、垂直结构过滤、片段生长、牙齿选择、
标志点提取、几何校验和牙周测量的实现。
"""

from .image_processor import ImageProcessor, InvalidImageError
from .edge_detector import EdgeDetector
from .vertical_filter import VerticalStructureFilter
from .segmentation import SegmentGrower, score_segment
from .tooth_selector import ToothSelector, score_tooth
from .landmark_extractor import LandmarkExtractor, score_candidate
from .validation import AlignmentValidator
from .measurement import calculate_measurements, classify_periodontal_stage
from .pipeline import LandmarkDetector, detect_landmarks, detect_landmarks_batch

__all__ = [
    "ImageProcessor",
    "InvalidImageError",
    "EdgeDetector",
    "VerticalStructureFilter",
    "SegmentGrower",
    "score_segment",
    "ToothSelector",
    "score_tooth",
    "LandmarkExtractor",
    "score_candidate",
    "AlignmentValidator",
    "calculate_measurements",
    "classify_periodontal_stage",
    "LandmarkDetector",
    "detect_landmarks",
    "detect_landmarks_batch",
]
