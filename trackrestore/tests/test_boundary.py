# -*- coding: utf-8 -*-
"""
前后接续处理模块测试
"""

import pytest
import numpy as np

from trackrestore import config
from trackrestore.core.boundary import (
    EASING_TYPES,
    easing_factor,
    machine_correction,
    smooth_boundaries
)
from trackrestore.data.models import (
    BoundaryConfig,
    Channel,
    MachineParameters,
    Series,
    WorkSection
)
from trackrestore.exceptions import ValidationError


def _constant(positions, value, channel=Channel.LEVEL):
    return Series(positions, np.full(positions.size, value), channel)


def _at(values, positions, position):
    return values[np.searchsorted(positions, position)]


class TestEasingFactor:
    """缓和函数测试"""

    @pytest.mark.parametrize('easing', EASING_TYPES)
    def test_endpoints(self, easing):
        """测试 factor(0) = 0, factor(1) = 1"""
        assert easing_factor(0.0, easing) == pytest.approx(0.0)
        assert easing_factor(1.0, easing) == pytest.approx(1.0)

    @pytest.mark.parametrize('machine_type', sorted(config.MACHINE_PARAMETERS))
    def test_mtt_endpoints(self, machine_type):
        """测试各捣固车型号的缓和函数端点"""
        assert easing_factor(0.0, 'mtt', machine_type) == pytest.approx(0.0)
        assert easing_factor(1.0, 'mtt', machine_type) == pytest.approx(1.0)

    def test_cubic_midpoint(self):
        """测试三次缓和中点"""
        assert easing_factor(0.5, 'cubic') == pytest.approx(0.5)

    def test_clipped(self):
        """测试 t 超出 [0, 1] 时裁剪"""
        np.testing.assert_allclose(easing_factor(np.array([-1.0, 2.0]), 'linear'), [0.0, 1.0])

    def test_unknown_easing(self):
        """测试未知缓和函数"""
        with pytest.raises(ValidationError):
            easing_factor(0.5, 'bezier')


class TestMachineCorrection:
    """捣固车修正测试"""

    def test_lateral_uses_d_point(self):
        """测试方向使用 D 点效应"""
        machine = MachineParameters.for_type('08-475')
        positions = np.array([0.0, 5.6])
        correction = machine_correction(positions, machine, 'lateral')
        np.testing.assert_allclose(correction, [1.0, 1.05])

    def test_vertical_uses_c_point(self):
        """测试高低使用 C 点效应"""
        machine = MachineParameters.for_type('08-475')
        correction = machine_correction(np.array([0.0]), machine, 'vertical')
        np.testing.assert_allclose(correction, [1.045])

    def test_unknown_machine(self):
        """测试未知型号"""
        with pytest.raises(ValidationError):
            MachineParameters.for_type('XYZ')
        with pytest.raises(ValidationError):
            BoundaryConfig(machine_type='XYZ')


class TestSmoothBoundaries:
    """smooth_boundaries 测试"""

    def test_ends_reach_zero(self, positions, work_section):
        """测试作业区间端点移动量为 0"""
        result = smooth_boundaries(_constant(positions, 10.0), work_section)
        values = result.movement.values

        assert values[0] == pytest.approx(0.0)
        assert values[-1] == pytest.approx(0.0)

    def test_far_edge_continuity(self, positions, work_section):
        """测试接续区远端取值不变"""
        result = smooth_boundaries(_constant(positions, 10.0), work_section)
        values = result.movement.values

        assert _at(values, positions, 20.0) == pytest.approx(10.0)
        assert _at(values, positions, 80.0) == pytest.approx(10.0)
        assert _at(values, positions, 50.0) == 10.0

    def test_cubic_profile(self, positions, work_section):
        """测试三次缓和中点为一半"""
        result = smooth_boundaries(_constant(positions, 10.0), work_section,
                                   BoundaryConfig(easing='cubic'))
        assert _at(result.movement.values, positions, 10.0) == pytest.approx(5.0)
        assert _at(result.movement.values, positions, 90.0) == pytest.approx(5.0)

    def test_monotonic_in_zone(self, positions, work_section):
        """测试接续区内单调过渡"""
        result = smooth_boundaries(_constant(positions, 10.0), work_section,
                                   BoundaryConfig(easing='cosine'))
        front = result.movement.values[positions <= 20.0]
        assert np.all(np.diff(front) >= 0)

    def test_outside_section_untouched(self, positions):
        """测试作业区间外不变"""
        section = WorkSection(20.0, 80.0, front_length=10.0, rear_length=10.0)
        result = smooth_boundaries(_constant(positions, 10.0), section)
        values = result.movement.values

        assert _at(values, positions, 5.0) == 10.0
        assert _at(values, positions, 95.0) == 10.0
        assert _at(values, positions, 20.0) == pytest.approx(0.0)
        assert _at(values, positions, 80.0) == pytest.approx(0.0)

    def test_zero_length_zone(self, positions):
        """测试接续长度为 0 时不处理"""
        section = WorkSection(0.0, 100.0, front_length=0.0, rear_length=0.0)
        result = smooth_boundaries(_constant(positions, 10.0), section)

        assert np.all(result.movement.values == 10.0)
        assert all(r.connection_type == 'none' for r in result.records)

    def test_machine_correction_only_in_zones(self, positions, work_section):
        """测试捣固车修正只作用于接续区"""
        movement = _constant(positions, 10.0, Channel.ALIGNMENT)
        plain = smooth_boundaries(movement, work_section, BoundaryConfig())
        corrected = smooth_boundaries(movement, work_section,
                                      BoundaryConfig(apply_machine_correction=True))

        assert _at(corrected.movement.values, positions, 50.0) == 10.0
        assert _at(corrected.movement.values, positions, 10.0) != pytest.approx(
            _at(plain.movement.values, positions, 10.0))

    def test_records(self, positions, work_section):
        """测试移动量记录"""
        result = smooth_boundaries(_constant(positions, 10.0, Channel.ALIGNMENT), work_section)
        records = result.records

        assert len(records) == len(positions)
        assert records[0].connection_type == 'front'
        assert records[0].connection_factor == pytest.approx(0.0)
        assert records[200].connection_type == 'none'
        assert records[200].connection_factor is None
        assert records[-1].connection_type == 'rear'
        assert records[200].lateral_movement == 10.0
        assert records[200].vertical_movement is None

    def test_peak_and_jump_warnings(self, positions):
        """测试接续区峰值和跳变告警"""
        section = WorkSection(0.0, 100.0, front_length=1.0, rear_length=1.0)
        result = smooth_boundaries(_constant(positions, 60.0), section)
        kinds = {w.kind for w in result.warnings}

        assert kinds == {'boundary_peak', 'boundary_jump'}

    def test_jump_outside_zones(self, positions):
        """测试接续区以外的跳变同样告警"""
        section = WorkSection(0.0, 100.0, front_length=10.0, rear_length=10.0)
        values = np.where(positions < 50.0, 0.0, 30.0)
        result = smooth_boundaries(Series(positions, values, Channel.LEVEL), section)
        jumps = [w for w in result.warnings if w.kind == 'boundary_jump']

        assert len(jumps) == 1
        assert 50.0 - 1.0 < jumps[0].positions[0] < 50.0

    def test_no_warnings_for_gentle_zone(self, positions, work_section):
        """测试平缓接续无告警"""
        result = smooth_boundaries(_constant(positions, 10.0), work_section)
        assert result.warnings == ()

    def test_unknown_easing(self, positions, work_section):
        """测试未知缓和函数"""
        with pytest.raises(ValidationError):
            smooth_boundaries(_constant(positions, 1.0), work_section,
                              BoundaryConfig(easing='bezier'))

    def test_input_not_modified(self, positions, work_section):
        """测试输入不被修改"""
        movement = _constant(positions, 10.0)
        smooth_boundaries(movement, work_section)
        assert np.all(movement.values == 10.0)
