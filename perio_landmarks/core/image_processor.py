"""
图像预处理模块

负责牙片图像的加载、输入校验以及对比度增强（灰度化、直方图均衡、线性拉伸）。
"""

import cv2
import numpy as np
from loguru import logger


# 3×3 Sobel 需要完整邻域，图像至少为 3×3
MIN_SUPPORTED_SIZE = 3


class InvalidImageError(ValueError):
    """输入像素缓冲区格式错误或尺寸过小"""


class ImageProcessor:
    """图像预处理器"""

    def __init__(self, config: dict):
        """
        初始化图像处理器

        Args:
            config: 配置参数字典
        """
        self.config = config
        self.input_config = config.get('input', {})
        self.enhancement_config = config.get('enhancement', {})
        self.log = logger.bind(stage="enhancement")

    def load_image(self, image_path: str) -> np.ndarray:
        """
        加载图像文件

        Args:
            image_path: 图像文件路径

        Returns:
            加载的图像数组 (RGB格式)
        """
        try:
            image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
            if image is None:
                raise ValueError(f"无法加载图像: {image_path}")
            image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
            self.log.info(f"成功加载图像: {image_path}, 尺寸: {image.shape}")
            return image
        except Exception as e:
            self.log.error(f"加载图像失败: {e}")
            raise

    def validate_image(self, image: np.ndarray) -> None:
        """
        校验像素缓冲区

        支持 (H, W) 灰度、(H, W, 1)、(H, W, 3) RGB 和 (H, W, 4) RGBA。

        Args:
            image: 输入图像

        Raises:
            InvalidImageError: 格式错误、采样值超出8位范围或尺寸小于最小边长
        """
        if not isinstance(image, np.ndarray):
            raise InvalidImageError(f"expected a numpy array, got {type(image).__name__}")

        if image.ndim not in (2, 3):
            raise InvalidImageError(f"unsupported array shape {image.shape}")

        if image.ndim == 3 and image.shape[2] not in (1, 3, 4):
            raise InvalidImageError(f"unsupported channel count {image.shape[2]}")

        if image.size == 0:
            raise InvalidImageError("image is empty")

        if not (np.issubdtype(image.dtype, np.integer) or np.issubdtype(image.dtype, np.floating)):
            raise InvalidImageError(f"unsupported pixel type {image.dtype}")

        if np.issubdtype(image.dtype, np.floating) and not np.all(np.isfinite(image)):
            raise InvalidImageError("image contains non-finite values")

        # 只处理8位强度，其它类型的采样值也必须落在 [0, 255]
        if image.dtype != np.uint8:
            low, high = float(image.min()), float(image.max())
            if low < 0 or high > 255:
                raise InvalidImageError(
                    f"pixel values [{low:g}, {high:g}] are outside the 8-bit range [0, 255]"
                )
            if np.issubdtype(image.dtype, np.floating) and high <= 1.0:
                raise InvalidImageError(
                    "floating-point samples look normalized to [0, 1]; scale them to [0, 255]"
                )

        min_size = max(MIN_SUPPORTED_SIZE, int(self.input_config.get('min_image_size', 16)))
        h, w = image.shape[:2]
        if h < min_size or w < min_size:
            raise InvalidImageError(
                f"image {w}x{h} is smaller than the minimum size {min_size}x{min_size}"
            )

    def to_grayscale(self, image: np.ndarray) -> np.ndarray:
        """
        计算每个像素的亮度

        使用感知权重 0.299/0.587/0.114 对 RGB 加权求和，Alpha 通道忽略。
        原始缓冲区不会被修改。

        Args:
            image: 输入图像

        Returns:
            uint8 灰度图 (H, W)
        """
        if image.ndim == 3 and image.shape[2] == 1:
            image = image[:, :, 0]

        if image.ndim == 2:
            gray = np.clip(image.astype(np.float64), 0, 255)
        else:
            weights = self.enhancement_config.get('luminance_weights', [0.299, 0.587, 0.114])
            rgb = image[:, :, :3].astype(np.float64)
            gray = rgb @ np.asarray(weights, dtype=np.float64)

        # 四舍五入（0.5向上）
        return np.clip(np.floor(gray + 0.5), 0, 255).astype(np.uint8)

    def equalization_lut(self, gray: np.ndarray) -> np.ndarray:
        """
        基于累积分布构建直方图均衡查找表

        以第一个非零CDF值为下限、最大值为上限归一化；
        CDF范围为零（单一灰度）时返回恒等映射。

        Args:
            gray: uint8 灰度图

        Returns:
            256项查找表
        """
        histogram = np.bincount(gray.ravel(), minlength=256)
        cdf = np.cumsum(histogram)

        cdf_min = cdf[np.nonzero(cdf)[0][0]]
        cdf_max = cdf[-1]
        cdf_range = cdf_max - cdf_min

        if cdf_range == 0:
            self.log.debug("CDF范围为零，使用恒等查找表")
            return np.arange(256, dtype=np.uint8)

        lut = np.floor((cdf - cdf_min) / cdf_range * 255 + 0.5)
        return np.clip(lut, 0, 255).astype(np.uint8)

    def adjust_contrast(self, gray: np.ndarray) -> np.ndarray:
        """
        以中灰为轴心的线性对比度拉伸

        Args:
            gray: 灰度图

        Returns:
            拉伸后的 uint8 灰度图
        """
        factor = self.enhancement_config.get('contrast_factor', 2.0)
        pivot = self.enhancement_config.get('contrast_pivot', 128)

        stretched = (gray.astype(np.float64) - pivot) * factor + pivot
        return np.clip(np.floor(stretched + 0.5), 0, 255).astype(np.uint8)

    def enhance_contrast(self, image: np.ndarray) -> np.ndarray:
        """
        完整的对比度增强流程：灰度化 -> 直方图均衡 -> 对比度拉伸

        Args:
            image: 输入像素缓冲区

        Returns:
            增强后的灰度强度数组，取值 [0, 255]
        """
        gray = self.to_grayscale(image)
        lut = self.equalization_lut(gray)
        equalized = cv2.LUT(gray, lut)
        enhanced = self.adjust_contrast(equalized)

        self.log.debug(f"对比度增强完成: 均值 {gray.mean():.1f} -> {enhanced.mean():.1f}")
        return enhanced
