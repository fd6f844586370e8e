# -*- coding: utf-8 -*-
"""
竖曲线除去模块（仅高低通道）
在复原前从高低测量值中分离出坡度变化引起的长波趋势

processed + excluded == original
"""

import math
from typing import Optional

import numpy as np
from scipy.ndimage import convolve1d, uniform_filter1d

from .. import config
from ..data.models import Channel, ExclusionResult, Series, VerticalCurveConfig
from ..exceptions import ValidationError
from .restoration import calculate_improvement_rate, calculate_statistics


def resolve_window(n: int, interval: float, chord_length: float,
                   window: Optional[int] = None) -> int:
    """
    移动平均窗口（采样点数，奇数，不超过序列长度）

    未指定时为 round(弦长 / 采样间隔)
    """
    if window is None:
        window = int(round(chord_length / interval))
    window = max(1, int(window))
    if window % 2 == 0:
        window += 1
    if window > n:
        window = n if n % 2 == 1 else n - 1
    return max(1, window)


def moving_average_trend(values: np.ndarray, window: int) -> np.ndarray:
    """
    居中移动平均

    两端做点对称延拓，线性坡度在端部也能被完整还原
    """
    values = np.asarray(values, dtype=np.float64)
    if values.size < 2 or window <= 1:
        return values.copy()

    half = window // 2
    padded = np.pad(values, half, mode='reflect', reflect_type='odd')
    averaged = uniform_filter1d(padded, size=window, mode='nearest')
    return averaged[half:half + values.size]


def polynomial_trend(positions: np.ndarray, values: np.ndarray, order: int) -> np.ndarray:
    """最小二乘多项式趋势"""
    if values.size == 0:
        return np.zeros(0)
    degree = min(order, values.size - 1)
    fitted = np.polynomial.Polynomial.fit(positions, values, deg=degree)
    return fitted(positions)


def parametric_trend(positions: np.ndarray, curves, chord_length: float) -> np.ndarray:
    """
    按竖曲线参数构造弦测正矢趋势

    曲线范围内为正矢值，两端各在一个弦长内线性过渡
    """
    trend = np.zeros_like(positions, dtype=np.float64)
    half = chord_length / 2.0
    for curve in curves:
        versine = curve.versine(chord_length)
        if versine == 0:
            continue
        rise = (positions - (curve.start - half)) / chord_length
        fall = ((curve.end + half) - positions) / chord_length
        weight = np.clip(np.minimum(rise, fall), 0.0, 1.0)
        trend += versine * weight
    return trend


def smooth_trend(trend: np.ndarray, smoothing_factor: float) -> np.ndarray:
    """
    [0.25, 0.5, 0.25] 核平滑，迭代 ceil(5 × 平滑系数) 次
    """
    passes = int(math.ceil(smoothing_factor * config.SMOOTHING_PASSES_PER_FACTOR))
    if passes <= 0 or trend.size < 3:
        return trend
    kernel = np.asarray(config.SMOOTHING_KERNEL)
    smoothed = trend
    for _ in range(passes):
        smoothed = convolve1d(smoothed, kernel, mode='nearest')
    return smoothed


def exclude_vertical_curve(series: Series,
                           exclusion_config: Optional[VerticalCurveConfig] = None) -> ExclusionResult:
    """
    竖曲线除去

    参数:
        series: 高低测量序列
        exclusion_config: 除去方法配置（默认移动平均，窗口 = 弦长 / 采样间隔）

    返回:
        ExclusionResult，processed 为除去后的序列，excluded 为被除去的趋势

    抛出:
        ValidationError: 非高低通道
    """
    if series.channel is not None and series.channel != Channel.LEVEL:
        raise ValidationError(f"竖曲线除去仅适用于高低通道: {series.channel.value}")
    if exclusion_config is None:
        exclusion_config = VerticalCurveConfig()

    original = series.values
    method = exclusion_config.method

    if method == 'moving_average':
        window = resolve_window(len(series), series.interval,
                                exclusion_config.chord_length, exclusion_config.window)
        trend = moving_average_trend(original, window)
    elif method == 'polynomial':
        trend = polynomial_trend(series.positions, original, exclusion_config.polynomial_order)
    else:
        trend = parametric_trend(series.positions, exclusion_config.curves,
                                 exclusion_config.chord_length)

    trend = smooth_trend(trend, exclusion_config.smoothing_factor)
    processed = original - trend

    before = calculate_statistics(original)
    after = calculate_statistics(processed)
    statistics = {
        'original': before.to_dict(),
        'processed': after.to_dict(),
        'max_excluded': float(np.max(np.abs(trend))) if trend.size else 0.0,
        'improvement': calculate_improvement_rate(before.sigma, after.sigma)
    }

    return ExclusionResult(
        processed=series.with_values(processed),
        excluded=series.with_values(trend),
        method=method,
        statistics=statistics
    )
