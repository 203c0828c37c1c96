"""
可视化工具模块

在牙片上绘制标志点、测量连线、区域参考线和调试边缘/聚类。
输入图像为 RGB/RGBA/灰度，输出为 OpenCV 使用的 BGR 图像。
"""

import cv2
import numpy as np
import matplotlib.pyplot as plt
from typing import Dict, Optional, Sequence, Tuple
from loguru import logger

from ..models import DebugArtifacts, DetectionResult, LandmarkTriple, Point2D
from .math_utils import calculate_distance


DEFAULT_COLORS = {
    'cej': [246, 130, 59],
    'bone': [94, 197, 34],
    'apex': [68, 68, 239],
    'edges': [0, 255, 255],
    'guides': [0, 200, 200],
    'text': [255, 255, 255],
}

LANDMARK_LABELS = {'cej': 'CEJ', 'bone': 'Bone', 'apex': 'Apex'}


class LandmarkVisualizer:
    """标志点可视化工具类"""

    def __init__(self, config: dict):
        """
        初始化可视化器

        Args:
            config: 配置参数
        """
        self.config = config
        self.vis_config = config.get('visualization', {})
        self.line_thickness = self.vis_config.get('line_thickness', 2)
        self.point_radius = self.vis_config.get('point_radius', 6)
        self.font_scale = self.vis_config.get('font_scale', 0.6)
        self.colors = dict(DEFAULT_COLORS)
        self.colors.update(self.vis_config.get('colors', {}))

    def _color(self, name: str) -> Tuple[int, int, int]:
        return tuple(int(c) for c in self.colors[name])

    @staticmethod
    def to_bgr(image: np.ndarray) -> np.ndarray:
        """
        将输入图像转换为3通道BGR uint8图像（返回新数组）
        """
        canvas = np.clip(image, 0, 255).astype(np.uint8)
        if canvas.ndim == 3 and canvas.shape[2] == 1:
            canvas = canvas[:, :, 0]

        if canvas.ndim == 2:
            return cv2.cvtColor(canvas, cv2.COLOR_GRAY2BGR)
        if canvas.shape[2] == 4:
            return cv2.cvtColor(canvas, cv2.COLOR_RGBA2BGR)
        return cv2.cvtColor(canvas, cv2.COLOR_RGB2BGR)

    def draw_region_guides(self, canvas: np.ndarray) -> np.ndarray:
        """
        绘制三个目标高度的参考线和牙齿宽度参考线

        Args:
            canvas: BGR图像（原地绘制）

        Returns:
            绘制后的图像
        """
        h, w = canvas.shape[:2]
        landmark_config = self.config.get('landmarks', {})
        tooth_config = self.config.get('tooth_selection', {})
        color = self._color('guides')

        regions = [
            (landmark_config.get('cej_height', 0.35), 'CEJ Region'),
            (landmark_config.get('bone_height', 0.55), 'Bone Region'),
            (landmark_config.get('apex_height', 0.75), 'Apex Region'),
        ]
        for fraction, label in regions:
            y = int(round(h * fraction))
            cv2.line(canvas, (0, y), (w - 1, y), color, 1, cv2.LINE_AA)
            cv2.putText(canvas, label, (10, max(y - 5, 12)),
                        cv2.FONT_HERSHEY_SIMPLEX, self.font_scale * 0.7, color, 1, cv2.LINE_AA)

        center_x = w / 2
        max_width = w * tooth_config.get('max_tooth_width_fraction', 0.25)
        for x in (center_x - max_width, center_x + max_width):
            x = int(round(x))
            cv2.line(canvas, (x, 0), (x, h - 1), color, 1, cv2.LINE_AA)

        return canvas

    def draw_debug(self, canvas: np.ndarray, debug: DebugArtifacts) -> np.ndarray:
        """
        绘制检测到的边缘点和候选牙齿列（不同色调）

        Args:
            canvas: BGR图像（原地绘制）
            debug: 调试数据

        Returns:
            绘制后的图像
        """
        draw_points(canvas, debug.edges, self._color('edges'), radius=1)

        for index, cluster in enumerate(debug.clusters):
            hue = (index * 30) % 180
            hsv = np.uint8([[[hue, 255, 255]]])
            color = tuple(int(c) for c in cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)[0, 0])
            draw_points(canvas, cluster, color, radius=2)

        return canvas

    def draw_landmarks(self, canvas: np.ndarray, landmarks: LandmarkTriple,
                       pixels_per_mm: Optional[float] = None) -> np.ndarray:
        """
        绘制标志点、连线及距离标注

        Args:
            canvas: BGR图像（原地绘制）
            landmarks: 标志点
            pixels_per_mm: 像素/毫米比例，为空时以像素标注

        Returns:
            绘制后的图像
        """
        points = landmarks.as_dict()

        for start, end, color_name in (('cej', 'bone', 'cej'), ('bone', 'apex', 'bone')):
            self._draw_measurement_line(canvas, points[start], points[end],
                                        self._color(color_name), pixels_per_mm)

        for name, point in points.items():
            center = (int(point.x), int(point.y))
            cv2.circle(canvas, center, self.point_radius + 2, self._color('text'), -1, cv2.LINE_AA)
            cv2.circle(canvas, center, self.point_radius, self._color(name), -1, cv2.LINE_AA)
            cv2.putText(canvas, LANDMARK_LABELS[name],
                        (center[0] + self.point_radius * 2, center[1]),
                        cv2.FONT_HERSHEY_SIMPLEX, self.font_scale, self._color(name),
                        self.line_thickness, cv2.LINE_AA)

        return canvas

    def _draw_measurement_line(self, canvas: np.ndarray, start: Point2D, end: Point2D,
                               color: Tuple[int, int, int],
                               pixels_per_mm: Optional[float]) -> None:
        cv2.line(canvas, tuple(start), tuple(end), self._color('text'),
                 self.line_thickness + 2, cv2.LINE_AA)
        cv2.line(canvas, tuple(start), tuple(end), color, self.line_thickness, cv2.LINE_AA)

        distance = calculate_distance(start, end)
        if pixels_per_mm:
            label = f"{distance / pixels_per_mm:.1f}mm"
        else:
            label = f"{distance:.0f}px"

        mid = ((start.x + end.x) // 2 + 8, (start.y + end.y) // 2)
        cv2.putText(canvas, label, mid, cv2.FONT_HERSHEY_SIMPLEX,
                    self.font_scale * 0.8, self._color('text'), 1, cv2.LINE_AA)

    def create_overlay(self, image: np.ndarray, result: DetectionResult,
                       pixels_per_mm: Optional[float] = None,
                       show_guides: Optional[bool] = None,
                       show_debug: Optional[bool] = None) -> np.ndarray:
        """
        创建完整的测量叠加图

        Args:
            image: 原始图像
            result: 检测结果
            pixels_per_mm: 像素/毫米比例
            show_guides: 是否绘制区域参考线
            show_debug: 是否绘制调试边缘和聚类

        Returns:
            BGR叠加图
        """
        if show_guides is None:
            show_guides = self.vis_config.get('show_guides', True)
        if show_debug is None:
            show_debug = self.vis_config.get('show_debug', False)

        canvas = self.to_bgr(image)

        if show_guides:
            self.draw_region_guides(canvas)
        if show_debug and result.debug is not None:
            self.draw_debug(canvas, result.debug)
        if result.landmarks is not None:
            self.draw_landmarks(canvas, result.landmarks, pixels_per_mm)
        else:
            for i, warning in enumerate(result.warnings):
                cv2.putText(canvas, warning, (10, 25 + i * 22), cv2.FONT_HERSHEY_SIMPLEX,
                            self.font_scale * 0.7, (0, 0, 255), 1, cv2.LINE_AA)

        return canvas

    def plot_processing_stages(self, stages_data: Dict[str, np.ndarray],
                               save_path: Optional[str] = None) -> None:
        """
        使用matplotlib绘制处理阶段结果

        Args:
            stages_data: 各阶段数据字典 {'stage_name': BGR或灰度图像, ...}
            save_path: 保存路径
        """
        n_stages = len(stages_data)
        fig, axes = plt.subplots(1, max(n_stages, 1), figsize=(5 * max(n_stages, 1), 5))
        axes = np.atleast_1d(axes).ravel()

        for ax, (stage_name, image) in zip(axes, stages_data.items()):
            if image.ndim == 3:
                ax.imshow(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
            else:
                ax.imshow(image, cmap='gray')
            ax.set_title(stage_name)
            ax.axis('off')

        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches='tight')
            logger.info(f"处理阶段图表已保存: {save_path}")

        plt.close(fig)


def draw_points(canvas: np.ndarray, points: Sequence[Point2D],
                color: Tuple[int, int, int], radius: int = 1) -> np.ndarray:
    """在图像上绘制点集"""
    for point in points:
        cv2.circle(canvas, (int(point.x), int(point.y)), radius, color, -1)
    return canvas
