"""
牙片牙周标志点自动检测包

在牙片上定位CEJ、牙槽骨嵴和根尖，供骨吸收测量和叠加图使用。
"""

__version__ = "0.1.0"
__author__ = "Developer"

from . import core, models, utils
from .core import LandmarkDetector, detect_landmarks
from .models import DetectionResult, LandmarkTriple, Point2D

__all__ = [
    "core",
    "models",
    "utils",
    "LandmarkDetector",
    "detect_landmarks",
    "DetectionResult",
    "LandmarkTriple",
    "Point2D",
]
