"""
工具函数模块

包含文件I/O、日志配置、可视化、数学计算等辅助工具。
"""

from .file_io import load_config, save_results, get_image_files
from .logging_setup import setup_logging
from .visualization import LandmarkVisualizer
from .math_utils import calculate_distance

__all__ = [
    "load_config",
    "save_results",
    "get_image_files",
    "setup_logging",
    "LandmarkVisualizer",
    "calculate_distance",
]
