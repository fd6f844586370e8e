# -*- coding: utf-8 -*-
"""
接口层
提供命令行接口
"""

from .cli import main as cli_main, create_parser

__all__ = [
    'cli_main',
    'create_parser'
]
