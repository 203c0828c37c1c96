"""
日志配置

命令行入口使用；库代码本身只通过 loguru 的 logger 输出，不配置sink。
"""

import sys
from pathlib import Path
from typing import Optional, Union
from loguru import logger


def setup_logging(level: str = "INFO",
                  log_file: Optional[Union[str, Path]] = None) -> None:
    """
    配置loguru日志输出

    Args:
        level: 控制台日志级别
        log_file: 可选的日志文件路径（按1 MB轮转）
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper(),
               format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
                      "<cyan>{extra[stage]}</cyan> | {message}")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(log_file), rotation="1 MB", level="DEBUG")
    # 未绑定阶段名的日志使用默认值
    logger.configure(extra={"stage": "main"})
