# -*- coding: utf-8 -*-
"""
正矢梯形模块（仅方向通道）
由平曲线要素计算理论弦测正矢，在复原前扣除、生成计划线后加回
"""

from typing import Iterable, Union

import numpy as np

from .. import config
from ..data.models import (
    Channel,
    CurveConfig,
    CurveElement,
    CurveSubtractionResult,
    Series,
    validate_curve_elements
)
from ..exceptions import NumericDegenerateCaseError, ValidationError


def circular_versine(radius: float, chord_length: float) -> float:
    """
    圆曲线弦测正矢 (mm) = L² × 1000 / (8R)

    抛出:
        NumericDegenerateCaseError: 半径非正
    """
    if radius <= 0:
        raise NumericDegenerateCaseError(f"曲线半径必须为正: {radius}")
    return chord_length * chord_length * 1000.0 / (8.0 * radius)


def transition_offset(x: Union[float, np.ndarray], radius: float,
                      transition_length: float) -> Union[float, np.ndarray]:
    """
    三次抛物线缓和曲线偏距 (mm) = x³ × 1000 / (6RT)，x ∈ [0, T]

    缓和曲线长度为 0 时偏距为 0

    抛出:
        NumericDegenerateCaseError: 半径非正
    """
    if radius <= 0:
        raise NumericDegenerateCaseError(f"曲线半径必须为正: {radius}")
    if transition_length <= 0:
        return np.zeros_like(x, dtype=np.float64) if np.ndim(x) else 0.0
    x = np.clip(x, 0.0, transition_length)
    return x ** 3 * 1000.0 / (6.0 * radius * transition_length)


class CurveTrapezoidModel:
    """
    正矢梯形模型

    每个采样点的理论正矢为覆盖该点的所有曲线要素贡献之和：
    圆曲线段为 ±v，缓和曲线段按偏距比例从 0 过渡到 ±v（左正右负）
    """

    def __init__(self,
                 elements: Iterable[CurveElement] = (),
                 chord_length: float = config.DEFAULT_CHORD_LENGTH,
                 d6_correction: bool = True):
        """
        初始化正矢梯形模型

        参数:
            elements: 平曲线要素
            chord_length: 弦长 (10/20/40 m)
            d6_correction: 缓和曲线按三次偏距过渡；关闭时线性过渡

        抛出:
            ValidationError: 弦长不合法
            OverlappingCurveElementsError: 曲线要素重叠
        """
        if chord_length not in config.VALID_CHORD_LENGTHS:
            raise ValidationError(f"弦长必须为 10/20/40 m: {chord_length}")
        self.chord_length = float(chord_length)
        self.d6_correction = d6_correction
        self.elements = validate_curve_elements(elements)

    @classmethod
    def from_config(cls, curve_config: CurveConfig) -> 'CurveTrapezoidModel':
        """由配置对象创建"""
        return cls(curve_config.elements, curve_config.chord_length, curve_config.d6_correction)

    def _transition_ratio(self, x: np.ndarray, element: CurveElement) -> np.ndarray:
        """缓和曲线段正矢占圆曲线正矢的比例，x=0 时为 0，x=T 时为 1"""
        T = element.transition_length
        if self.d6_correction:
            full = transition_offset(T, element.radius, T)
            return transition_offset(x, element.radius, T) / full
        return np.clip(x / T, 0.0, 1.0)

    def element_versine(self, element: CurveElement, positions: np.ndarray) -> np.ndarray:
        """
        单个曲线要素在各位置的理论正矢 (mm)

        参数:
            element: 曲线要素
            positions: 位置数组 (m)

        返回:
            与 positions 同长的数组，范围外为 0
        """
        positions = np.asarray(positions, dtype=np.float64)
        versine = element.sign * circular_versine(element.radius, self.chord_length)
        inside = (positions >= element.start_km) & (positions <= element.end_km)

        shape = np.where(inside, 1.0, 0.0)
        if element.has_transitions:
            # 距最近曲线端点的距离
            x = np.minimum(positions - element.start_km, element.end_km - positions)
            in_transition = inside & (x < element.transition_length)
            shape = np.where(in_transition, self._transition_ratio(x, element), shape)

        return versine * shape

    def theoretical(self, series: Series) -> Series:
        """
        理论正矢梯形序列

        参数:
            series: 方向测量序列（仅使用位置）

        返回:
            位置相同的理论正矢序列
        """
        total = np.zeros(len(series), dtype=np.float64)
        for element in self.elements:
            total += self.element_versine(element, series.positions)
        return series.with_values(total)

    def subtract(self, series: Series) -> CurveSubtractionResult:
        """
        从方向测量值中扣除理论正矢

        返回:
            CurveSubtractionResult(corrected, theoretical)

        抛出:
            ValidationError: 非方向通道
        """
        if series.channel is not None and series.channel != Channel.ALIGNMENT:
            raise ValidationError(f"正矢梯形仅适用于方向通道: {series.channel.value}")
        theoretical = self.theoretical(series)
        return CurveSubtractionResult(
            corrected=series.with_values(series.values - theoretical.values),
            theoretical=theoretical
        )

    @staticmethod
    def recombine(corrected_plan: Series, theoretical: Series) -> Series:
        """
        计划线加回理论正矢

        抛出:
            ValidationError: 两序列位置不一致
        """
        if not np.array_equal(corrected_plan.positions, theoretical.positions):
            raise ValidationError("计划线与理论正矢的位置不一致")
        return corrected_plan.with_values(corrected_plan.values + theoretical.values)
