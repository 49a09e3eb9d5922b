"""日志配置模块

控制台输出彩色结构化日志，可选写入按大小轮转的日志文件。
"""
import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

# 控制台格式
CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level:<8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# 文件格式 - 纯文本
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
    "{level:<8} | "
    "{name}:{function}:{line} | "
    "{message}"
)


def setup_logging(
    level: str = "INFO",
    log_path: Optional[Path] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    enable_console: bool = True,
) -> None:
    """配置日志系统

    Args:
        level: 控制台日志级别，环境变量 LOG_LEVEL 优先
        log_path: 日志目录，为空时不写文件
        rotation: 日志轮转策略 (如 "10 MB", "1 day")
        retention: 日志保留策略 (如 "7 days")
        enable_console: 是否输出到 stderr
    """
    logger.remove()

    console_level = os.environ.get("LOG_LEVEL", level).upper()

    if enable_console:
        logger.add(
            sys.stderr,
            level=console_level,
            format=CONSOLE_FORMAT,
            colorize=True,
            backtrace=False,
            diagnose=False,
        )

    if log_path:
        log_path = Path(log_path)
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / "tableroller_{time:YYYY-MM-DD}.log",
            level="DEBUG",
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            encoding="utf-8",
        )


def get_logger(name: Optional[str] = None):
    """获取绑定了模块名的 logger"""
    if name:
        return logger.bind(name=name)
    return logger
