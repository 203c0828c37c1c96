"""
数据模型模块

包含点、片段、牙齿列、标志点三元组和检测结果等数据结构。
"""

from .landmarks import (
    Point2D,
    Decision,
    PointGroup,
    Segment,
    ToothColumn,
    LandmarkTriple,
    DebugArtifacts,
    DetectionResult,
)

__all__ = [
    "Point2D",
    "Decision",
    "PointGroup",
    "Segment",
    "ToothColumn",
    "LandmarkTriple",
    "DebugArtifacts",
    "DetectionResult",
]
