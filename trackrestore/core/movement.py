# -*- coding: utf-8 -*-
"""
移动量计算模块
移动量 = 计划线 - 复原波形，并按移动量限制区间约束
"""

from typing import Iterable, List, Optional, Union

import numpy as np

from .. import config
from ..data.models import (
    Channel,
    ConstraintWarning,
    MovementResult,
    Restriction,
    Series
)
from ..exceptions import ValidationError
from ..logging_setup import get_logger
from .restoration import calculate_improvement_rate, calculate_statistics

logger = get_logger(__name__)


def restriction_bounds(positions: np.ndarray,
                       restrictions: Iterable[Restriction],
                       axis: Optional[str] = None):
    """
    计算各位置的移动量上下限

    多个限制区间重叠时取交集；固定区间不按方向筛选，任何通道在区间内移动量均为 0

    参数:
        positions: 位置数组
        restrictions: 限制区间
        axis: 'vertical' / 'lateral'，None 表示不按方向筛选（仅作用于非固定区间）

    返回:
        (下限数组, 上限数组, 固定点掩码)
    """
    lower = np.full(positions.shape, -np.inf)
    upper = np.full(positions.shape, np.inf)
    fixed = np.zeros(positions.shape, dtype=bool)

    for restriction in restrictions:
        covered = (positions >= restriction.start_km) & (positions <= restriction.end_km)
        if not covered.any():
            continue
        if restriction.is_fixed:
            fixed |= covered
            continue
        if axis is not None and restriction.axis != axis:
            continue
        r_lower, r_upper = restriction.limits()
        lower = np.where(covered, np.maximum(lower, r_lower), lower)
        upper = np.where(covered, np.minimum(upper, r_upper), upper)

    return lower, upper, fixed


def check_movement_limits(movement: Series,
                          standard: float = config.MOVEMENT_STANDARD_LIMIT,
                          maximum: float = config.MOVEMENT_MAXIMUM_LIMIT
                          ) -> List[ConstraintWarning]:
    """
    检查移动量是否超过标准值/最大值（仅告警）

    返回:
        ConstraintWarning 列表
    """
    warnings = []
    magnitude = np.abs(movement.values)

    over_maximum = magnitude > maximum
    over_standard = (magnitude > standard) & ~over_maximum
    if over_maximum.any():
        warnings.append(ConstraintWarning(
            'movement_limit',
            f"{int(over_maximum.sum())} 点移动量超过最大值 {maximum} mm",
            tuple(float(p) for p in movement.positions[over_maximum])
        ))
    if over_standard.any():
        warnings.append(ConstraintWarning(
            'movement_limit',
            f"{int(over_standard.sum())} 点移动量超过标准值 {standard} mm",
            tuple(float(p) for p in movement.positions[over_standard])
        ))
    return warnings


def calculate_movement(restored: Series,
                       plan_line: Series,
                       restrictions: Iterable[Restriction] = (),
                       channel: Optional[Union[Channel, str]] = None) -> MovementResult:
    """
    计算移动量

    固定区间内移动量强制为 0，其余限制区间内裁剪到区间允许范围；
    非固定限制只应用与通道移动方向一致的部分（高低/水平 -> vertical，方向/轨距 -> 左/右/双向）

    参数:
        restored: 复原波形
        plan_line: 计划线
        restrictions: 移动量限制区间
        channel: 通道（默认取复原波形的通道；均未指定时应用全部限制）

    返回:
        MovementResult 对象

    抛出:
        ValidationError: 计划线与复原波形位置不一致
    """
    if not np.array_equal(restored.positions, plan_line.positions):
        raise ValidationError("计划线与复原波形的位置不一致")

    if channel is None:
        channel = restored.channel
    axis = Channel(channel).axis if channel is not None else None

    raw = plan_line.values - restored.values
    lower, upper, fixed = restriction_bounds(restored.positions, restrictions, axis)
    movement = np.where(fixed, 0.0, np.clip(raw, lower, upper))
    clamped = movement != raw
    clamped.setflags(write=False)

    movement_series = restored.with_values(movement)
    predicted = restored.with_values(restored.values + movement)

    warnings = []
    if clamped.any():
        warnings.append(ConstraintWarning(
            'restriction_clamped',
            f"{int(clamped.sum())} 点移动量受限制区间约束",
            tuple(float(p) for p in restored.positions[clamped])
        ))
        logger.info(warnings[-1].message)
    warnings.extend(check_movement_limits(movement_series))

    stats_restored = calculate_statistics(restored)
    stats_predicted = calculate_statistics(predicted)
    statistics = {
        'restored': stats_restored.to_dict(),
        'predicted': stats_predicted.to_dict(),
        'movement': calculate_statistics(movement).to_dict()
    }

    return MovementResult(
        movement=movement_series,
        clamped=clamped,
        predicted=predicted,
        improvement_rate=calculate_improvement_rate(stats_restored.sigma, stats_predicted.sigma),
        statistics=statistics,
        warnings=tuple(warnings)
    )
