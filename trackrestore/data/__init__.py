# -*- coding: utf-8 -*-
"""
数据层模块
提供数据模型定义、文件读写、里程与代码转换功能
"""

from .models import (
    Channel,
    TrackClass,
    Sample,
    Series,
    WavelengthBand,
    CurveElement,
    VerticalCurve,
    Restriction,
    WorkSection,
    MachineParameters,
    WavelengthConfig,
    CurveConfig,
    VerticalCurveConfig,
    PlanLineConfig,
    BoundaryConfig,
    ProcessingParameters,
    ConstraintWarning,
    MovementRecord,
    PipelineResult,
    BatchProcessResult
)

from .io import (
    read_series_csv,
    save_series_csv,
    read_curve_csv,
    save_curve_csv,
    read_restriction_csv,
    save_restriction_csv,
    format_prm,
    parse_prm,
    save_prm,
    load_prm
)

from .converters import (
    format_kilometer,
    parse_kilometer,
    direction_from_code,
    direction_to_code
)

__all__ = [
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
    'MachineParameters',
    'WavelengthConfig',
    'CurveConfig',
    'VerticalCurveConfig',
    'PlanLineConfig',
    'BoundaryConfig',
    'ProcessingParameters',
    'ConstraintWarning',
    'MovementRecord',
    'PipelineResult',
    'BatchProcessResult',
    # IO
    'read_series_csv',
    'save_series_csv',
    'read_curve_csv',
    'save_curve_csv',
    'read_restriction_csv',
    'save_restriction_csv',
    'format_prm',
    'parse_prm',
    'save_prm',
    'load_prm',
    # Converters
    'format_kilometer',
    'parse_kilometer',
    'direction_from_code',
    'direction_to_code'
]
