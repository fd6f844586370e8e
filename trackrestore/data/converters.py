# -*- coding: utf-8 -*-
"""
单位与代码转换模块
提供里程标记 (K12+345.600) 与米之间的转换、限制方向代码映射、布尔文本转换
"""

import re
from typing import Union

from ..exceptions import ValidationError

# 限制方向代码: 0=双向, 1=左, 2=右, 3=高低
DIRECTION_CODES = {
    0: 'both',
    1: 'left',
    2: 'right',
    3: 'vertical',
}
DIRECTION_NAMES = {name: code for code, name in DIRECTION_CODES.items()}

_KILOMETER_PATTERN = re.compile(r'^\s*K?(\d+)\+(\d+(?:\.\d+)?)\s*$', re.IGNORECASE)


# ==================== 里程转换 ====================

def format_kilometer(position_m: float, decimals: int = 3) -> str:
    """
    米转换为里程标记

    示例: 12345.6 -> 'K12+345.600'

    参数:
        position_m: 位置 (m)，不能为负
        decimals: 小数位数

    返回:
        里程标记字符串
    """
    if position_m < 0:
        raise ValidationError(f"里程不能为负: {position_m}")
    rounded = round(position_m, decimals)
    km = int(rounded // 1000)
    metres = rounded - km * 1000
    width = 4 + decimals if decimals > 0 else 3
    return f"K{km}+{metres:0{width}.{decimals}f}"


def parse_kilometer(text: Union[str, float, int]) -> float:
    """
    里程标记转换为米，纯数字按米处理

    参数:
        text: 'K12+345.6' 或数字

    返回:
        位置 (m)

    抛出:
        ValidationError: 格式无法识别
    """
    if isinstance(text, (int, float)):
        return float(text)

    match = _KILOMETER_PATTERN.match(text)
    if match:
        return int(match.group(1)) * 1000.0 + float(match.group(2))

    try:
        return float(text)
    except ValueError:
        raise ValidationError(f"无法识别的里程: {text!r}") from None


# ==================== 代码转换 ====================

def direction_from_code(code: Union[int, str]) -> str:
    """
    限制方向代码转换为方向名

    抛出:
        ValidationError: 未知代码
    """
    try:
        return DIRECTION_CODES[int(code)]
    except (KeyError, ValueError):
        raise ValidationError(f"未知限制方向代码: {code!r}") from None


def direction_to_code(direction: str) -> int:
    """方向名转换为限制方向代码"""
    if direction not in DIRECTION_NAMES:
        raise ValidationError(f"未知限制方向: {direction!r}")
    return DIRECTION_NAMES[direction]


def bool_to_text(value: bool) -> str:
    """布尔值转换为 TRUE/FALSE"""
    return 'TRUE' if value else 'FALSE'


def text_to_bool(text: str) -> bool:
    """
    TRUE/FALSE 文本转换为布尔值

    抛出:
        ValidationError: 无法识别
    """
    normalized = text.strip().upper()
    if normalized in ('TRUE', '1', 'YES'):
        return True
    if normalized in ('FALSE', '0', 'NO'):
        return False
    raise ValidationError(f"无法识别的布尔值: {text!r}")
