"""
命令行入口

对单张牙片或目录中的全部牙片执行标志点检测，保存结果、测量值和叠加图。

用法:
    perio-landmarks radiograph.png --output output/
    perio-landmarks images/ --config config/landmark_detection.yaml --workers 4 --overlay
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

import cv2
from loguru import logger

from .core import ImageProcessor, LandmarkDetector, calculate_measurements, detect_landmarks_batch
from .utils import (
    LandmarkVisualizer,
    get_image_files,
    load_config,
    save_results,
    setup_logging,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perio-landmarks",
        description="Detect CEJ, alveolar bone crest and root apex on dental radiographs.",
    )
    parser.add_argument("input", help="radiograph image file or directory of images")
    parser.add_argument("--config", help="YAML/JSON configuration file")
    parser.add_argument("--output", default="output", help="output directory (default: output)")
    parser.add_argument("--format", choices=["json", "yaml"], default="json",
                        help="result file format")
    parser.add_argument("--overlay", action="store_true", help="write measurement overlay images")
    parser.add_argument("--stages", action="store_true",
                        help="write a figure with the enhanced image and overlay")
    parser.add_argument("--debug", action="store_true",
                        help="include debug edges/clusters in results and overlays")
    parser.add_argument("--workers", type=int, default=1, help="number of worker threads")
    parser.add_argument("--log-level", default="INFO", help="console log level")
    parser.add_argument("--log-file", help="optional log file")
    return parser


def collect_inputs(path: Path) -> List[Path]:
    if path.is_dir():
        return get_image_files(path)
    if path.is_file():
        return [path]
    return []


def main(argv: Optional[List[str]] = None) -> int:
    """主函数"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    logger.info("=== 牙周标志点检测启动 ===")

    try:
        config = load_config(args.config) if args.config else {}
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"配置文件无法使用: {e}")
        return 1

    image_paths = collect_inputs(Path(args.input))
    if not image_paths:
        logger.error(f"没有找到可处理的图像: {args.input}")
        return 1

    processor = ImageProcessor(config)
    images = []
    try:
        for path in image_paths:
            images.append(processor.load_image(str(path)))
    except ValueError as e:
        logger.error(f"图像读取失败: {e}")
        return 1

    results = detect_landmarks_batch(images, config, max_workers=args.workers)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)
    visualizer = LandmarkVisualizer(config)
    pixels_per_mm = config.get('measurement', {}).get('pixels_per_mm', 7.0)

    detected = 0
    for path, image, result in zip(image_paths, images, results):
        data = result.to_dict(include_debug=args.debug)
        data['image'] = str(path)

        if result.success:
            detected += 1
            data['measurements'] = calculate_measurements(result.landmarks, pixels_per_mm)
        else:
            for warning in result.warnings:
                logger.warning(f"{path.name}: {warning}")

        save_results(data, output_dir / f"{path.stem}.{args.format}", args.format)

        if args.overlay or args.stages:
            overlay = visualizer.create_overlay(image, result, pixels_per_mm,
                                                show_debug=args.debug)
            if args.overlay:
                cv2.imwrite(str(output_dir / f"{path.stem}_overlay.png"), overlay)
            if args.stages:
                enhanced = processor.enhance_contrast(image)
                visualizer.plot_processing_stages(
                    {'Original': visualizer.to_bgr(image), 'Enhanced': enhanced, 'Overlay': overlay},
                    save_path=str(output_dir / f"{path.stem}_stages.png"))

    logger.info(f"=== 完成: {detected}/{len(image_paths)} 张图像检测到有效标志点 ===")
    logger.info(f"结果已保存到: {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
