# -*- coding: utf-8 -*-
"""
复原处理服务
提供单通道完整流程: 预处理 -> 复原 -> 计划线 -> 移动量 -> 前后接续
"""

from pathlib import Path
from typing import Optional, Union

from .. import config
from ..data.io import load_prm, read_series_csv, save_prm, save_series_csv
from ..data.models import (
    Channel,
    PipelineResult,
    ProcessingParameters,
    Series,
    WavelengthBand,
    WorkSection
)
from ..core.wavelength import band_for_config, validate_wavelength_band
from ..core.restoration import run_restoration
from ..core.vertical_curve import exclude_vertical_curve
from ..core.curve_trapezoid import CurveTrapezoidModel
from ..core.plan_line import generate_plan_line
from ..core.movement import calculate_movement
from ..core.boundary import smooth_boundaries
from ..exceptions import EmptySeriesError, ValidationError
from ..logging_setup import get_logger
from .result_cache import ResultCache, make_key

logger = get_logger(__name__)


class RestorationService:
    """
    复原处理服务

    一次 process 调用处理一个作业区间的一个通道，返回完整结果或抛出单一类型的错误
    """

    def __init__(self,
                 parameters: Optional[ProcessingParameters] = None,
                 cache: Optional[ResultCache] = None):
        """
        初始化复原处理服务

        参数:
            parameters: 处理参数
            cache: 结果缓存（可选）
        """
        self._parameters = parameters
        self.cache = cache

    def load_parameters(self, prm_path: Union[str, Path]) -> ProcessingParameters:
        """
        加载 PRM 参数文件

        参数:
            prm_path: PRM 文件路径

        返回:
            加载的参数
        """
        self._parameters = load_prm(prm_path)
        logger.info("加载参数文件: %s", prm_path)
        return self._parameters

    def save_parameters(self, output_path: Union[str, Path]) -> str:
        """
        保存当前参数为 PRM 文件

        抛出:
            ValidationError: 参数未设置
        """
        return save_prm(self.parameters, output_path)

    def set_parameters(self, parameters: ProcessingParameters) -> None:
        """设置处理参数"""
        self._parameters = parameters

    @property
    def parameters(self) -> ProcessingParameters:
        """获取当前参数"""
        if self._parameters is None:
            raise ValidationError("处理参数未设置")
        return self._parameters

    @property
    def parameters_loaded(self) -> bool:
        """参数是否已设置"""
        return self._parameters is not None

    def band_for(self, channel: Union[Channel, str]) -> WavelengthBand:
        """
        通道的复原波长范围（参数中指定的范围优先）
        """
        params = self.parameters
        if params.band is not None:
            return params.band
        return band_for_config(params.wavelength, channel)

    def process(self, series: Series,
                channel: Optional[Union[Channel, str]] = None) -> PipelineResult:
        """
        处理单通道测量序列

        参数:
            series: 等间距测量序列
            channel: 通道（默认取序列自带的通道）

        返回:
            PipelineResult 对象

        抛出:
            ValidationError: 参数未设置或通道未知
            EmptySeriesError: 采样点少于 2 个
        """
        params = self.parameters
        if channel is None:
            channel = series.channel
        if channel is None:
            raise ValidationError("未指定测量通道")
        channel = Channel(channel)
        if len(series) < 2:
            raise EmptySeriesError(f"采样点不足: {len(series)}")
        if series.channel != channel:
            series = Series(series.positions, series.values, channel)

        if self.cache is None:
            return self._run(series, channel, params)

        key = make_key('pipeline', series, channel.value, params)
        return self.cache.get_or_compute(key, lambda: self._run(series, channel, params))

    def _run(self, series: Series, channel: Channel,
             params: ProcessingParameters) -> PipelineResult:
        logger.info("处理通道 %s: %d 点, 间隔 %.3f m", channel.value, len(series), series.interval)

        exclusion = None
        curve_subtraction = None
        model = None
        working = series
        if channel == Channel.LEVEL:
            exclusion = exclude_vertical_curve(series, params.vertical_curve)
            working = exclusion.processed
        elif channel == Channel.ALIGNMENT and params.curves.elements:
            model = CurveTrapezoidModel.from_config(params.curves)
            curve_subtraction = model.subtract(series)
            working = curve_subtraction.corrected

        band = self.band_for(channel)
        for warning in validate_wavelength_band(band):
            logger.info("波长范围提示: %s", warning.message)

        restoration = run_restoration(working, band)
        plan = generate_plan_line(restoration.restored, params.plan_line)
        movement = calculate_movement(restoration.restored, plan.plan_line,
                                      params.restrictions, channel)
        boundary = smooth_boundaries(movement.movement, params.work_section,
                                     params.boundary, axis=channel.axis)

        recombined = None
        if curve_subtraction is not None:
            recombined = model.recombine(plan.plan_line, curve_subtraction.theoretical)

        logger.info("通道 %s 完成: 波长 [%.1f, %.1f] m, 起道比例 %.3f, 迭代 %d 次",
                    channel.value, band.lower, band.upper,
                    plan.statistics.upward_ratio, plan.statistics.iterations)

        return PipelineResult(
            channel=channel,
            band=band,
            restoration=restoration,
            plan=plan,
            movement=movement,
            boundary=boundary,
            exclusion=exclusion,
            curve_subtraction=curve_subtraction,
            recombined_plan=recombined
        )

    def process_file(self,
                     csv_path: Union[str, Path],
                     channel: Union[Channel, str],
                     output_path: Optional[Union[str, Path]] = None) -> PipelineResult:
        """
        处理测量序列 CSV 文件

        参数:
            csv_path: 输入 CSV（position,value）
            channel: 通道
            output_path: 最终移动量输出 CSV（可选）

        返回:
            PipelineResult 对象
        """
        series = read_series_csv(csv_path, channel=Channel(channel))
        result = self.process(series)
        if output_path:
            save_series_csv(result.boundary.movement, output_path)
        return result


def default_parameters(series: Series, **overrides) -> ProcessingParameters:
    """
    以序列范围为作业区间生成默认参数

    接续长度取默认值与区间长度二者的较小值
    """
    start = float(series.positions[0])
    end = float(series.positions[-1])
    length = end - start
    front = min(overrides.pop('front_length', config.DEFAULT_CONNECTION_LENGTH), length)
    rear = min(overrides.pop('rear_length', config.DEFAULT_CONNECTION_LENGTH), length)
    work_section = WorkSection(start, end, front_length=front, rear_length=rear)
    return ProcessingParameters(work_section=work_section,
                                sampling_interval=series.interval, **overrides)
