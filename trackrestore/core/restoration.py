# -*- coding: utf-8 -*-
"""
复原波形模块
FFT 带通滤波：只保留波长位于复原波长范围内的分量
"""

import numpy as np
from scipy.fft import irfft, rfft

from ..data.models import RestorationResult, Series, WaveformStatistics, WavelengthBand


def bin_wavelengths(n: int, interval: float) -> np.ndarray:
    """
    各频率分量对应的波长 (m)

    第 k 个分量波长为 n × interval / k，直流分量记为无穷大

    参数:
        n: 序列长度
        interval: 采样间隔 (m)

    返回:
        长度为 n // 2 + 1 的数组
    """
    k = np.arange(n // 2 + 1, dtype=np.float64)
    wavelengths = np.full(k.shape, np.inf)
    wavelengths[1:] = n * interval / k[1:]
    return wavelengths


def restore_waveform(series: Series, band: WavelengthBand) -> Series:
    """
    计算复原波形

    参数:
        series: 等间距测量序列
        band: 复原波长范围

    返回:
        位置相同的新序列；长度 0 或 1 时原样返回
    """
    n = len(series)
    if n <= 1:
        return series.with_values(series.values)

    spectrum = rfft(series.values)
    wavelengths = bin_wavelengths(n, series.interval)
    keep = (wavelengths >= band.lower) & (wavelengths <= band.upper)
    spectrum = np.where(keep, spectrum, 0.0)

    return series.with_values(irfft(spectrum, n=n))


def calculate_statistics(values) -> WaveformStatistics:
    """
    计算波形统计量

    参数:
        values: 数值数组或 Series

    返回:
        WaveformStatistics（sigma 为总体标准差）
    """
    if isinstance(values, Series):
        values = values.values
    values = np.asarray(values, dtype=np.float64)

    if values.size == 0:
        return WaveformStatistics(0.0, 0.0, 0.0, 0.0, 0.0, 0)

    return WaveformStatistics(
        mean=float(np.mean(values)),
        sigma=float(np.std(values)),
        rms=float(np.sqrt(np.mean(values ** 2))),
        min=float(np.min(values)),
        max=float(np.max(values)),
        count=int(values.size)
    )


def calculate_improvement_rate(sigma_before: float, sigma_after: float) -> float:
    """
    改善率 (%) = (σ前 - σ后) / σ前 × 100，σ前为 0 时返回 0
    """
    if sigma_before == 0:
        return 0.0
    return (sigma_before - sigma_after) / sigma_before * 100.0


def run_restoration(series: Series, band: WavelengthBand) -> RestorationResult:
    """
    计算复原波形并附带统计量

    参数:
        series: 等间距测量序列
        band: 复原波长范围

    返回:
        RestorationResult 对象
    """
    restored = restore_waveform(series, band)
    return RestorationResult(
        restored=restored,
        band=band,
        statistics=calculate_statistics(restored),
        original_statistics=calculate_statistics(series)
    )
