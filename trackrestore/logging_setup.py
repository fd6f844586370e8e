# -*- coding: utf-8 -*-
"""
日志配置

模块内使用:
    from trackrestore.logging_setup import get_logger
    logger = get_logger(__name__)

命令行或应用入口调用一次 setup_logging() 以输出到控制台/文件；
作为库使用时不配置任何处理器，由调用方决定。
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from . import config

PACKAGE_LOGGER_NAME = 'trackrestore'

logging.getLogger(PACKAGE_LOGGER_NAME).addHandler(logging.NullHandler())


def get_logger(name: str) -> logging.Logger:
    """
    获取模块日志器

    参数:
        name: 模块名（通常为 __name__）

    返回:
        logging.Logger 对象
    """
    return logging.getLogger(name)


def setup_logging(level: Union[int, str] = config.LOG_LEVEL,
                  log_dir: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    配置包日志器的控制台和文件处理器（重复调用不会重复添加处理器）

    参数:
        level: 日志级别
        log_dir: 日志文件目录（None 表示只输出到控制台）

    返回:
        包日志器
    """
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    # 避免重复添加
    if any(not isinstance(h, logging.NullHandler) for h in logger.handlers):
        return logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / config.LOG_FILE_NAME, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(config.LOG_FORMAT,
                                                    datefmt='%Y-%m-%d %H:%M:%S'))
        logger.addHandler(file_handler)

    return logger
