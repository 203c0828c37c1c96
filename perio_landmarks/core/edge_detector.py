"""
边缘检测模块

基于Sobel梯度的双阈值边缘检测，适用于牙片中牙根轮廓的提取。
与标准Canny的区别：
1. 非极大值抑制使用8邻域局部最大值，不依赖梯度方向
2. 弱边缘只要邻域中存在强梯度即被保留，不做全局边缘跟踪
3. 阈值来自配置，便于针对不同成像设备重新标定
"""

import cv2
import numpy as np
from typing import List, Tuple
from loguru import logger

from ..models import Point2D


# 8邻域（不含中心）
NEIGHBOR_KERNEL = np.array([[1, 1, 1],
                            [1, 0, 1],
                            [1, 1, 1]], dtype=np.uint8)


class EdgeDetector:
    """双阈值Sobel边缘检测器"""

    def __init__(self, config: dict):
        """
        初始化边缘检测器

        Args:
            config: 配置参数字典
        """
        self.config = config
        self.edge_config = config.get('edge_detection', {})
        self.strong_threshold = float(self.edge_config.get('strong_threshold', 40))
        self.weak_threshold = float(self.edge_config.get('weak_threshold', 15))
        self.log = logger.bind(stage="edges")

    def compute_gradients(self, image: np.ndarray) -> np.ndarray:
        """
        计算梯度幅值

        使用3×3 Sobel算子，结果按核权重和缩放（默认1/8）。
        最外圈1像素没有完整邻域，幅值置零。

        Args:
            image: 增强后的灰度图

        Returns:
            梯度幅值 (H, W)，float64
        """
        scale = self.edge_config.get('gradient_scale', 0.125)
        source = image.astype(np.float64)

        grad_x = cv2.Sobel(source, cv2.CV_64F, 1, 0, ksize=3, scale=scale)
        grad_y = cv2.Sobel(source, cv2.CV_64F, 0, 1, ksize=3, scale=scale)
        # 平台区域的相等幅值必须逐位相等，否则局部最大值判断会抖动
        magnitude = np.sqrt(grad_x ** 2 + grad_y ** 2)

        magnitude[0, :] = 0
        magnitude[-1, :] = 0
        magnitude[:, 0] = 0
        magnitude[:, -1] = 0

        return magnitude

    def non_maximum_suppression(self, magnitude: np.ndarray) -> np.ndarray:
        """
        非极大值抑制

        8邻域中没有严格更大幅值的像素视为局部最大值（允许平台）。

        Args:
            magnitude: 梯度幅值

        Returns:
            局部最大值掩码
        """
        kernel = np.ones((3, 3), dtype=np.uint8)
        neighborhood_max = cv2.dilate(magnitude, kernel)
        return magnitude >= neighborhood_max

    def double_threshold(self, magnitude: np.ndarray, local_max: np.ndarray) -> np.ndarray:
        """
        双阈值处理

        强边缘直接保留；弱边缘仅在8邻域存在强梯度时保留。

        Args:
            magnitude: 梯度幅值
            local_max: 局部最大值掩码

        Returns:
            边缘掩码
        """
        self.log.debug(f"双阈值: 弱阈值={self.weak_threshold:.2f}, 强阈值={self.strong_threshold:.2f}")

        strongest_neighbor = cv2.dilate(magnitude, NEIGHBOR_KERNEL)

        candidates = (magnitude > self.weak_threshold) & local_max
        connected = (magnitude > self.strong_threshold) | (strongest_neighbor > self.strong_threshold)

        edges = candidates & connected

        # 边界像素不参与
        edges[0, :] = False
        edges[-1, :] = False
        edges[:, 0] = False
        edges[:, -1] = False
        return edges

    def limit_edge_count(self, edges: np.ndarray, magnitude: np.ndarray) -> np.ndarray:
        """
        限制边缘点数量，保留梯度最强的点

        后续邻域搜索为O(n²)，噪声图像可能产生大量边缘。

        Args:
            edges: 边缘掩码
            magnitude: 梯度幅值

        Returns:
            裁剪后的边缘掩码
        """
        max_points = self.edge_config.get('max_edge_points', 20000)
        flat_indices = np.flatnonzero(edges)

        if max_points is None or len(flat_indices) <= max_points:
            return edges

        order = np.argsort(-magnitude.ravel()[flat_indices], kind='stable')
        kept = np.sort(flat_indices[order[:max_points]])

        limited = np.zeros(edges.size, dtype=bool)
        limited[kept] = True

        self.log.warning(f"边缘点过多 ({len(flat_indices)})，仅保留最强的 {max_points} 个")
        return limited.reshape(edges.shape)

    def detect_edges(self, image: np.ndarray) -> Tuple[List[Point2D], dict]:
        """
        完整的边缘检测流程

        Args:
            image: 增强后的灰度图

        Returns:
            按行优先顺序排列的边缘点列表，以及检测信息
        """
        self.log.info("开始边缘检测")

        # 1. 计算梯度
        magnitude = self.compute_gradients(image)

        # 2. 非极大值抑制
        local_max = self.non_maximum_suppression(magnitude)

        # 3. 双阈值处理
        edges = self.double_threshold(magnitude, local_max)
        edges = self.limit_edge_count(edges, magnitude)

        ys, xs = np.nonzero(edges)
        points = [Point2D(int(x), int(y)) for y, x in zip(ys, xs)]

        info = {
            'total_pixels': int(edges.size),
            'edge_pixels': len(points),
            'edge_ratio': len(points) / edges.size,
            'max_gradient': float(magnitude.max()),
        }

        self.log.info(f"边缘检测完成: 边缘像素={info['edge_pixels']}, "
                      f"边缘比例={info['edge_ratio']:.3f}")

        return points, info
