# -*- coding: utf-8 -*-
"""
零交叉点检测
检测复原波形穿越零值的位置，作为计划线的特征点
"""

from typing import List, Tuple

import numpy as np

from .. import config
from ..data.models import Series, ZeroCrossing


def _crossing_type(prev: float, curr: float) -> str:
    if prev < 0 <= curr:
        return 'up'
    if curr < 0 <= prev:
        return 'down'
    return 'neutral'


def find_zero_crossings(series: Series,
                        threshold: float = config.ZERO_CROSS_THRESHOLD,
                        min_interval: float = config.ZERO_CROSS_MIN_INTERVAL
                        ) -> Tuple[ZeroCrossing, ...]:
    """
    检测零交叉点

    相邻两点符号相反，或一点在阈值内而另一点超出阈值时视为交叉；
    两点都在阈值内不算交叉。交叉位置按线性插值计算，
    与上一个交叉点距离小于 min_interval 的交叉被忽略。

    参数:
        series: 复原波形
        threshold: 零值判定阈值 (mm)
        min_interval: 相邻交叉点最小间距 (m)

    返回:
        ZeroCrossing 元组（按位置递增）
    """
    if len(series) < 2:
        return ()

    prev = series.values[:-1]
    curr = series.values[1:]
    prev_small = np.abs(prev) <= threshold
    curr_small = np.abs(curr) <= threshold

    candidate = (prev * curr < 0) | (prev_small != curr_small)
    candidate &= ~(prev_small & curr_small)

    crossings: List[ZeroCrossing] = []
    last_position = -np.inf
    for i in np.flatnonzero(candidate):
        p0, p1 = series.positions[i], series.positions[i + 1]
        v0, v1 = prev[i], curr[i]
        ratio = abs(v0) / (abs(v0) + abs(v1))
        position = float(p0 + ratio * (p1 - p0))
        if position - last_position < min_interval:
            continue
        crossings.append(ZeroCrossing(position, int(i), _crossing_type(v0, v1)))
        last_position = position

    return tuple(crossings)
