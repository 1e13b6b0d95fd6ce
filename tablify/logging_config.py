"""
日志配置 - 为 tablify 命名空间安装处理器

使用方式：
    from tablify.config import get_config
    from tablify.logging_config import setup_logging

    setup_logging(get_config().logging)
"""

from __future__ import annotations

import logging
import sys

from .config import LoggingConfig

LOGGER_NAME = "tablify"


def setup_logging(config: LoggingConfig | None = None) -> logging.Logger:
    """
    配置 tablify 日志

    Args:
        config: 日志配置，缺省时使用 LoggingConfig 默认值

    Returns:
        tablify 根日志器
    """
    config = config or LoggingConfig()
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # 避免重复安装处理器
    if logger.handlers:
        logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.log_to_file:
        file_handler = logging.FileHandler(config.log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug(f"日志已初始化: level={config.log_level}")
    return logger
