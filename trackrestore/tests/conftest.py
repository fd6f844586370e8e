# -*- coding: utf-8 -*-
"""
pytest 配置和共享 fixtures
"""

import pytest
import numpy as np

from trackrestore.data.models import (
    Channel,
    CurveConfig,
    CurveElement,
    PlanLineConfig,
    ProcessingParameters,
    Restriction,
    Series,
    VerticalCurve,
    VerticalCurveConfig,
    WavelengthBand,
    WorkSection
)


@pytest.fixture
def positions():
    """401 个采样点，间隔 0.25 m（0 - 100 m）"""
    return np.arange(401) * 0.25


@pytest.fixture
def sine_series(positions):
    """创建正弦波序列的工厂函数"""
    def _make(wavelength=20.0, amplitude=5.0, channel=None, offset=0.0):
        values = amplitude * np.sin(2 * np.pi * positions / wavelength) + offset
        return Series(positions, values, channel)
    return _make


@pytest.fixture
def level_series(positions):
    """高低测量序列: 20m 正弦缺陷 + 5‰ 坡度 + 2m 短波噪声"""
    values = (5.0 * np.sin(2 * np.pi * positions / 20.0)
              + 5.0 * positions
              + 0.5 * np.sin(2 * np.pi * positions / 2.0))
    return Series(positions, values, Channel.LEVEL)


@pytest.fixture
def alignment_series(positions):
    """方向测量序列: 20m 正弦缺陷"""
    values = 3.0 * np.sin(2 * np.pi * positions / 20.0)
    return Series(positions, values, Channel.ALIGNMENT)


@pytest.fixture
def work_section():
    """与采样范围一致的作业区间"""
    return WorkSection(0.0, 100.0, direction='up', front_length=20.0, rear_length=20.0)


@pytest.fixture
def sample_curves():
    """两个互不重叠的曲线要素"""
    return (
        CurveElement(10.0, 40.0, 400.0, 'left', 'transition', transition_length=10.0,
                     cant=105.0, speed=90.0, notes='R400'),
        CurveElement(60.0, 90.0, 800.0, 'right', 'circular', cant=50.0, speed=120.0),
    )


@pytest.fixture
def sample_parameters(work_section, sample_curves):
    """完整的处理参数"""
    return ProcessingParameters(
        work_section=work_section,
        band=WavelengthBand(6.0, 40.0),
        plan_line=PlanLineConfig(max_upward_mm=50.0, max_downward_mm=10.0,
                                 iteration_limit=50),
        curves=CurveConfig(chord_length=20.0, elements=sample_curves),
        vertical_curve=VerticalCurveConfig(
            method='moving_average',
            curves=(VerticalCurve(30.0, 50.0, 40.0, -5.0, 3.0, 3000.0),)
        ),
        restrictions=(
            Restriction(45.0, 50.0, 'both', 0.0, is_fixed=True),
            Restriction(70.0, 80.0, 'vertical', 2.0),
        )
    )


@pytest.fixture
def temp_series_file(level_series, tmp_path):
    """创建临时测量序列 CSV"""
    csv_path = tmp_path / 'level.csv'
    with open(csv_path, 'w', encoding='utf-8') as f:
        f.write('position,value\n')
        for p, v in zip(level_series.positions, level_series.values):
            f.write(f'{float(p)!r},{float(v)!r}\n')
    return str(csv_path)


@pytest.fixture
def temp_prm_file(sample_parameters, tmp_path):
    """创建临时 PRM 参数文件"""
    from trackrestore.data.io import save_prm
    return save_prm(sample_parameters, tmp_path / 'section.prm')


@pytest.fixture
def temp_output_dir(tmp_path):
    """创建临时输出目录"""
    output_dir = tmp_path / 'output'
    output_dir.mkdir()
    return str(output_dir)
