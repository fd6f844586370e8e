# -*- coding: utf-8 -*-
"""
前后接续处理模块
在作业区间两端的接续区内按缓和函数将移动量从 0 平滑过渡到区内值，
可选叠加捣固车 D 点 / C 点修正
"""

from typing import List, Optional, Union

import numpy as np

from .. import config
from ..data.models import (
    AXIS_LATERAL,
    AXIS_VERTICAL,
    BoundaryConfig,
    BoundaryResult,
    ConstraintWarning,
    MachineParameters,
    MovementRecord,
    Series,
    WorkSection
)
from ..exceptions import ValidationError
from ..logging_setup import get_logger

logger = get_logger(__name__)

EASING_TYPES = ('linear', 'quadratic', 'cubic', 'cosine', 'exponential', 'mtt')


# ==================== 缓和函数 ====================

def mtt_easing(t: Union[float, np.ndarray], machine_type: str) -> np.ndarray:
    """
    捣固车专用缓和函数

    MTT-15 使用五次平滑 t³(10 - 15t + 6t²)；
    其余型号为 t^a × (k - (k - 1) × t^b)；未登记型号使用 t²(3 - 2t)
    """
    t = np.asarray(t, dtype=np.float64)
    if machine_type == 'MTT-15':
        return t ** 3 * (10.0 - 15.0 * t + 6.0 * t ** 2)
    if machine_type in config.MTT_EASING_PARAMETERS:
        a, b, k = config.MTT_EASING_PARAMETERS[machine_type]
        return t ** a * (k - (k - 1.0) * t ** b)
    return t * t * (3.0 - 2.0 * t)


def easing_factor(t: Union[float, np.ndarray],
                  easing: str = 'cubic',
                  machine_type: str = config.DEFAULT_MACHINE_TYPE) -> Union[float, np.ndarray]:
    """
    缓和系数，t 裁剪到 [0, 1]，满足 factor(0) = 0、factor(1) = 1

    参数:
        t: 接续区内相对位置
        easing: 缓和函数类型
        machine_type: 捣固车型号（easing='mtt' 时使用）

    返回:
        与输入类型一致的系数

    抛出:
        ValidationError: 未知缓和函数
    """
    is_scalar = np.ndim(t) == 0
    t = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0)

    if easing == 'linear':
        factor = t
    elif easing == 'quadratic':
        factor = t * t
    elif easing == 'cubic':
        factor = t * t * (3.0 - 2.0 * t)
    elif easing == 'cosine':
        factor = (1.0 - np.cos(np.pi * t)) / 2.0
    elif easing == 'exponential':
        factor = t ** 2.5
    elif easing == 'mtt':
        factor = mtt_easing(t, machine_type)
    else:
        raise ValidationError(f"未知缓和函数: {easing}")

    return float(factor) if is_scalar else factor


# ==================== 捣固车修正 ====================

def d_point_effect(positions: np.ndarray, d_point: float) -> np.ndarray:
    """D 点效应 = 0.5 × sin(π × (p mod d) / d)"""
    return config.D_POINT_AMPLITUDE * np.sin(np.pi * np.mod(positions, d_point) / d_point)


def c_point_effect(positions: np.ndarray, c_point: float) -> np.ndarray:
    """C 点效应 = 0.3 × cos(2π × (p mod c) / c)"""
    return config.C_POINT_AMPLITUDE * np.cos(2.0 * np.pi * np.mod(positions, c_point) / c_point)


def machine_correction(positions: np.ndarray, machine: MachineParameters, axis: str) -> np.ndarray:
    """
    捣固车修正倍率

    方向: 1 + 0.1 × D点效应；高低: 1 + 0.15 × C点效应
    """
    if axis == AXIS_LATERAL:
        return 1.0 + config.LATERAL_CORRECTION_GAIN * d_point_effect(positions, machine.d_point)
    return 1.0 + config.VERTICAL_CORRECTION_GAIN * c_point_effect(positions, machine.c_point)


# ==================== 接续处理 ====================

def _apply_zone(values: np.ndarray, t: np.ndarray, zone: np.ndarray, edge: int,
                boundary_config: BoundaryConfig) -> np.ndarray:
    factor = easing_factor(t, boundary_config.easing, boundary_config.machine_type)
    return np.where(zone, factor * values[edge], values)


def _validate_zone(positions: np.ndarray, values: np.ndarray, zone: np.ndarray,
                   name: str) -> List[ConstraintWarning]:
    """接续区内峰值检查"""
    warnings = []
    peak = np.abs(values[zone])
    if peak.size and peak.max() > config.BOUNDARY_PEAK_LIMIT:
        warnings.append(ConstraintWarning(
            'boundary_peak',
            f"{name}接续区最大移动量 {peak.max():.2f} mm 超过 {config.BOUNDARY_PEAK_LIMIT} mm",
            tuple(float(p) for p in positions[zone][peak > config.BOUNDARY_PEAK_LIMIT])
        ))
    return warnings


def _check_jumps(positions: np.ndarray, values: np.ndarray) -> List[ConstraintWarning]:
    """整条移动量序列的相邻点跳变检查"""
    bad = np.abs(np.diff(values)) > config.BOUNDARY_JUMP_LIMIT
    if not bad.any():
        return []
    return [ConstraintWarning(
        'boundary_jump',
        f"移动量有 {int(bad.sum())} 处相邻点跳变超过 {config.BOUNDARY_JUMP_LIMIT} mm",
        tuple(float(p) for p in positions[:-1][bad])
    )]


def smooth_boundaries(movement: Series,
                      work_section: WorkSection,
                      boundary_config: Optional[BoundaryConfig] = None,
                      axis: Optional[str] = None) -> BoundaryResult:
    """
    前后接续平滑

    前方接续区 [起点, 起点 + 前方长度] 内 movement(p) = factor(t) × movement(远端)，
    t 以区内离起点最远的采样点为 1，使该点取值不变；后方接续区从终点对称处理。
    区间外的采样点不变。

    参数:
        movement: 移动量序列
        work_section: 作业区间
        boundary_config: 缓和函数及捣固车配置
        axis: 'vertical' / 'lateral'（默认按序列通道判断，无通道时为 vertical）

    返回:
        BoundaryResult 对象

    抛出:
        ValidationError: 未知缓和函数或捣固车型号
    """
    if boundary_config is None:
        boundary_config = BoundaryConfig()
    if boundary_config.easing not in EASING_TYPES:
        raise ValidationError(f"未知缓和函数: {boundary_config.easing}")
    machine = MachineParameters.for_type(boundary_config.machine_type)
    if axis is None:
        axis = movement.channel.axis if movement.channel is not None else AXIS_VERTICAL
    if axis not in (AXIS_VERTICAL, AXIS_LATERAL):
        raise ValidationError(f"未知移动方向: {axis}")

    p = movement.positions
    values = movement.values.copy()
    factors = np.full(p.shape, np.nan)
    connection = np.full(p.shape, 'none', dtype=object)
    warnings: List[ConstraintWarning] = []
    zones = []

    start = work_section.start_km
    front = (p >= start) & (p <= start + work_section.front_length)
    if work_section.front_length > 0 and front.any():
        edge = int(np.flatnonzero(front)[-1])
        span = p[edge] - start
        if span > 0:
            t = np.clip((p - start) / span, 0.0, 1.0)
            values = _apply_zone(values, t, front, edge, boundary_config)
            factors[front] = easing_factor(t[front], boundary_config.easing,
                                           boundary_config.machine_type)
            connection[front] = 'front'
            zones.append(('前方', front))

    end = work_section.end_km
    rear = (p >= end - work_section.rear_length) & (p <= end)
    if work_section.rear_length > 0 and rear.any():
        edge = int(np.flatnonzero(rear)[0])
        span = end - p[edge]
        if span > 0:
            t = np.clip((end - p) / span, 0.0, 1.0)
            values = _apply_zone(values, t, rear, edge, boundary_config)
            factors[rear] = easing_factor(t[rear], boundary_config.easing,
                                          boundary_config.machine_type)
            connection[rear] = 'rear'
            zones.append(('后方', rear))

    if boundary_config.apply_machine_correction:
        in_zone = connection != 'none'
        values = np.where(in_zone, values * machine_correction(p, machine, axis), values)

    for name, zone in zones:
        warnings.extend(_validate_zone(p, values, zone, name))
    warnings.extend(_check_jumps(p, values))
    for w in warnings:
        logger.warning(w.message)

    records = []
    for i, position in enumerate(p):
        value = float(values[i])
        records.append(MovementRecord(
            position=float(position),
            lateral_movement=value if axis == AXIS_LATERAL else None,
            vertical_movement=value if axis == AXIS_VERTICAL else None,
            connection_type=connection[i],
            connection_factor=None if np.isnan(factors[i]) else float(factors[i])
        ))

    return BoundaryResult(
        movement=movement.with_values(values),
        records=tuple(records),
        warnings=tuple(warnings)
    )
