"""
文件I/O工具模块

读取检测配置、写出检测结果、查找待处理的牙片。
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml
from loguru import logger


IMAGE_SUFFIXES = ('.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff')

_CONFIG_READERS = {
    '.yaml': yaml.safe_load,
    '.yml': yaml.safe_load,
    '.json': json.load,
}


def _write_json(data: Dict[str, Any], stream) -> None:
    json.dump(data, stream, indent=2, ensure_ascii=False, default=str)


def _write_yaml(data: Dict[str, Any], stream) -> None:
    yaml.safe_dump(data, stream, allow_unicode=True, sort_keys=False)


_RESULT_WRITERS = {
    'json': _write_json,
    'yaml': _write_yaml,
    'yml': _write_yaml,
}


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    读取检测配置

    空文件等同于全部使用默认值。

    Args:
        config_path: .yaml / .yml / .json 文件

    Returns:
        嵌套配置字典

    Raises:
        FileNotFoundError: 文件不存在
        ValueError: 后缀不支持、内容无法解析或顶层不是字典
    """
    config_path = Path(config_path)
    reader = _CONFIG_READERS.get(config_path.suffix.lower())

    if not config_path.is_file():
        logger.error(f"配置文件不存在: {config_path}")
        raise FileNotFoundError(f"配置文件不存在: {config_path}")
    if reader is None:
        logger.error(f"不支持的配置文件格式: {config_path.suffix}")
        raise ValueError(f"不支持的配置文件格式: {config_path.suffix}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = reader(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"配置文件解析失败: {e}")
        raise ValueError(f"配置文件解析失败: {config_path}") from e

    if not isinstance(config, dict):
        logger.error(f"配置文件顶层必须是字典: {config_path}")
        raise ValueError(f"配置文件顶层必须是字典: {config_path}")

    logger.info(f"已加载配置: {config_path} ({', '.join(map(str, config)) or '全部默认值'})")
    return config


def save_results(data: Dict[str, Any], output_path: Union[str, Path],
                 format_type: str = 'json') -> Path:
    """
    写出一张牙片的检测结果，父目录不存在时自动创建

    Returns:
        写出的文件路径
    """
    writer = _RESULT_WRITERS.get(format_type.lower())
    if writer is None:
        raise ValueError(f"不支持的输出格式: {format_type}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        writer(data, f)

    logger.debug(f"结果已写出: {output_path}")
    return output_path


def get_image_files(directory: Union[str, Path],
                    extensions: Optional[Iterable[str]] = None) -> List[Path]:
    """
    列出目录下的牙片文件（不递归，后缀不区分大小写，按文件名排序）
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning(f"目录不存在: {directory}")
        return []

    wanted = {ext.lower() for ext in (extensions or IMAGE_SUFFIXES)}
    image_files = sorted(path for path in directory.iterdir()
                         if path.is_file() and path.suffix.lower() in wanted)

    logger.info(f"{directory} 中共有 {len(image_files)} 张牙片")
    return image_files
