# -*- coding: utf-8 -*-
"""
轨道几何复原波形与起拨道量计算系统 - trackrestore

版本: v1.0
架构: 分层架构（数据层/核心层/服务层/接口层）

快速开始:
    from trackrestore import RestorationService, load_prm, read_series_csv

    # 加载参数并处理高低测量数据
    service = RestorationService()
    service.load_parameters('section.prm')
    series = read_series_csv('level.csv', channel='level')
    result = service.process(series)
    print(result.stats)

    # 批量处理
    batch = BatchService(service.parameters, max_workers=4)
    report = batch.run_directory('./input', './output', 'alignment')
"""

__version__ = '1.0.0'
__author__ = 'Track Restoration Team'

# 服务层 API（推荐使用）
from .services import (
    RestorationService,
    BatchService,
    PipelineJob,
    ResultCache
)

# 数据模型
from .data.models import (
    Channel,
    TrackClass,
    Sample,
    Series,
    WavelengthBand,
    CurveElement,
    VerticalCurve,
    Restriction,
    WorkSection,
    MovementRecord,
    ConstraintWarning,
    PipelineResult,
    BatchProcessResult,
    # 配置类
    WavelengthConfig,
    CurveConfig,
    VerticalCurveConfig,
    PlanLineConfig,
    BoundaryConfig,
    ProcessingParameters
)

# 数据IO
from .data.io import (
    read_series_csv,
    save_series_csv,
    read_curve_csv,
    read_restriction_csv,
    load_prm,
    save_prm
)

# 核心算法（高级用户）
from .core import (
    select_wavelength_band,
    restore_waveform,
    exclude_vertical_curve,
    CurveTrapezoidModel,
    generate_plan_line,
    calculate_movement,
    smooth_boundaries
)

# 异常
from .exceptions import (
    TrackRestoreError,
    ValidationError,
    InvalidSpeedError,
    OverlappingCurveElementsError,
    NumericDegenerateCaseError,
    EmptySeriesError
)

__all__ = [
    # Version
    '__version__',
    # Services (主要API)
    'RestorationService',
    'BatchService',
    'PipelineJob',
    'ResultCache',
    # Models
    'Channel',
    'TrackClass',
    'Sample',
    'Series',
    'WavelengthBand',
    'CurveElement',
    'VerticalCurve',
    'Restriction',
    'WorkSection',
    'MovementRecord',
    'ConstraintWarning',
    'PipelineResult',
    'BatchProcessResult',
    # Configs
    'WavelengthConfig',
    'CurveConfig',
    'VerticalCurveConfig',
    'PlanLineConfig',
    'BoundaryConfig',
    'ProcessingParameters',
    # IO
    'read_series_csv',
    'save_series_csv',
    'read_curve_csv',
    'read_restriction_csv',
    'load_prm',
    'save_prm',
    # Core (advanced)
    'select_wavelength_band',
    'restore_waveform',
    'exclude_vertical_curve',
    'CurveTrapezoidModel',
    'generate_plan_line',
    'calculate_movement',
    'smooth_boundaries',
    # Errors
    'TrackRestoreError',
    'ValidationError',
    'InvalidSpeedError',
    'OverlappingCurveElementsError',
    'NumericDegenerateCaseError',
    'EmptySeriesError'
]
