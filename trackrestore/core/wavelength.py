# -*- coding: utf-8 -*-
"""
复原波长范围选择
根据线路最高速度、线路类别和通道确定带通滤波的波长范围
"""

from typing import List, Union

from .. import config
from ..data.models import (
    Channel,
    ConstraintWarning,
    TrackClass,
    WavelengthBand,
    WavelengthConfig
)
from ..exceptions import InvalidSpeedError, ValidationError


def select_wavelength_band(max_speed_kmh: float,
                           track_class: Union[TrackClass, str],
                           channel: Union[Channel, str],
                           speed_coefficient: float = config.SPEED_COEFFICIENT_DEFAULT,
                           short_wavelength_mode: bool = False,
                           alignment_lower_limit_15m: bool = False) -> WavelengthBand:
    """
    选择复原波长范围

    上限 = 最高速度 × 速度系数（新干线封顶 200 m），下限 6 m；
    轨距通道上限 ×0.625、下限 ×0.5；
    新干线高低短波长模式固定为 [3.5, 6.0]；
    新干线方向启用 15m 下限时下限为 15 m。
    结果保留一位小数。

    参数:
        max_speed_kmh: 最高速度 (km/h)
        track_class: 线路类别
        channel: 通道
        speed_coefficient: 速度系数，范围 [1.5, 2.0]
        short_wavelength_mode: 新干线高低短波长模式
        alignment_lower_limit_15m: 新干线方向 15m 下限

    返回:
        WavelengthBand 对象

    抛出:
        InvalidSpeedError: 速度非正，或速度过低导致上限不大于下限
        ValidationError: 速度系数超出范围
    """
    track_class = TrackClass(track_class)
    channel = Channel(channel)

    if max_speed_kmh <= 0:
        raise InvalidSpeedError(f"最高速度必须为正: {max_speed_kmh}")
    if not config.SPEED_COEFFICIENT_MIN <= speed_coefficient <= config.SPEED_COEFFICIENT_MAX:
        raise ValidationError(
            f"速度系数必须在 [{config.SPEED_COEFFICIENT_MIN}, "
            f"{config.SPEED_COEFFICIENT_MAX}] 内: {speed_coefficient}")

    highspeed = track_class == TrackClass.HIGHSPEED

    if highspeed and channel == Channel.LEVEL and short_wavelength_mode:
        return WavelengthBand(config.SHINKANSEN_SHORT_LOWER, config.SHINKANSEN_SHORT_UPPER)

    lower = config.CONVENTIONAL_LOWER_WAVELENGTH
    upper = max_speed_kmh * speed_coefficient
    if highspeed:
        upper = min(upper, config.HIGHSPEED_UPPER_CAP)

    if channel == Channel.GAUGE:
        upper *= config.GAUGE_UPPER_RATIO
        lower *= config.GAUGE_LOWER_RATIO

    if highspeed and channel == Channel.ALIGNMENT and alignment_lower_limit_15m:
        lower = config.ALIGNMENT_LOWER_LIMIT_15M

    lower = round(lower, 1)
    upper = round(upper, 1)
    if upper <= lower:
        raise InvalidSpeedError(
            f"最高速度 {max_speed_kmh} km/h 过低，上限波长 {upper} m 不大于下限 {lower} m")
    return WavelengthBand(lower, upper)


def band_for_config(wavelength_config: WavelengthConfig,
                    channel: Union[Channel, str]) -> WavelengthBand:
    """按配置对象选择波长范围"""
    return select_wavelength_band(
        wavelength_config.max_speed_kmh,
        wavelength_config.track_class,
        channel,
        speed_coefficient=wavelength_config.speed_coefficient,
        short_wavelength_mode=wavelength_config.short_wavelength_mode,
        alignment_lower_limit_15m=wavelength_config.alignment_lower_limit_15m
    )


def validate_wavelength_band(band: WavelengthBand) -> List[ConstraintWarning]:
    """
    检查波长范围是否在常用区间内（仅给出建议，不抛出异常）

    参数:
        band: 波长范围

    返回:
        ConstraintWarning 列表
    """
    warnings = []

    def warn(message: str) -> None:
        warnings.append(ConstraintWarning('wavelength_range', message))

    if band.lower < config.WAVELENGTH_LOWER_MIN:
        warn(f"下限波长 {band.lower} m 小于 {config.WAVELENGTH_LOWER_MIN} m")
    elif band.lower > config.WAVELENGTH_LOWER_WARN:
        warn(f"下限波长 {band.lower} m 大于 {config.WAVELENGTH_LOWER_WARN} m")

    if band.upper < config.WAVELENGTH_UPPER_MIN:
        warn(f"上限波长 {band.upper} m 小于 {config.WAVELENGTH_UPPER_MIN} m")
    elif band.upper > config.WAVELENGTH_UPPER_WARN:
        warn(f"上限波长 {band.upper} m 大于 {config.WAVELENGTH_UPPER_WARN} m")

    if band.upper / band.lower < config.WAVELENGTH_MIN_RATIO:
        warn(f"上下限波长比 {band.upper / band.lower:.2f} 小于 {config.WAVELENGTH_MIN_RATIO}")

    return warnings
