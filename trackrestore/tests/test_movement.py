# -*- coding: utf-8 -*-
"""
移动量计算模块测试
"""

import pytest
import numpy as np

from trackrestore.core.movement import calculate_movement, check_movement_limits, restriction_bounds
from trackrestore.data.models import Channel, Restriction, Series
from trackrestore.exceptions import ValidationError


@pytest.fixture
def flat_restored(positions):
    """复原波形为 0 的高低序列"""
    return Series(positions, np.zeros_like(positions), Channel.LEVEL)


def _plan(restored, value):
    return restored.with_values(np.full(len(restored), value))


def _at(series, position):
    return series.values[np.searchsorted(series.positions, position)]


class TestCalculateMovement:
    """calculate_movement 测试"""

    def test_unrestricted_movement(self, flat_restored):
        """测试移动量 = 计划线 - 复原波形"""
        result = calculate_movement(flat_restored, _plan(flat_restored, 5.0))

        np.testing.assert_allclose(result.movement.values, 5.0)
        assert not result.clamped.any()
        assert result.warnings == ()

    def test_predicted_waveform(self, sine_series):
        """测试预测波形 = 复原波形 + 移动量"""
        restored = sine_series(channel=Channel.LEVEL)
        plan = restored.with_values(np.zeros(len(restored)))
        result = calculate_movement(restored, plan)

        np.testing.assert_allclose(result.predicted.values,
                                   restored.values + result.movement.values)
        np.testing.assert_allclose(result.predicted.values, 0.0, atol=1e-12)
        assert result.improvement_rate == pytest.approx(100.0)

    def test_fixed_restriction(self, flat_restored):
        """测试固定区间移动量为 0"""
        restriction = Restriction(45.0, 50.0, 'both', 0.0, is_fixed=True)
        result = calculate_movement(flat_restored, _plan(flat_restored, 5.0), [restriction])

        inside = (flat_restored.positions >= 45.0) & (flat_restored.positions <= 50.0)
        assert np.all(result.movement.values[inside] == 0.0)
        assert np.all(result.clamped[inside])
        assert not result.clamped[~inside].any()
        assert result.warnings[0].kind == 'restriction_clamped'

    @pytest.mark.parametrize('channel', list(Channel))
    def test_fixed_restriction_any_channel(self, positions, channel):
        """测试固定区间对所有通道生效，与方向代码无关"""
        restored = Series(positions, np.zeros_like(positions), channel)
        restriction = Restriction(40.0, 60.0, 'both', 0.0, is_fixed=True)
        result = calculate_movement(restored, _plan(restored, 5.0), [restriction])

        inside = (positions >= 40.0) & (positions <= 60.0)
        assert np.all(result.movement.values[inside] == 0.0)
        np.testing.assert_allclose(result.movement.values[~inside], 5.0)

    def test_vertical_restriction_caps(self, flat_restored):
        """测试高低限制量"""
        restriction = Restriction(70.0, 80.0, 'vertical', 2.0)
        result = calculate_movement(flat_restored, _plan(flat_restored, 5.0), [restriction])

        assert _at(result.movement, 75.0) == 2.0
        assert _at(result.movement, 60.0) == 5.0

    def test_vertical_restriction_ignored_for_alignment(self, positions):
        """测试方向通道忽略高低限制"""
        restored = Series(positions, np.zeros_like(positions), Channel.ALIGNMENT)
        restriction = Restriction(70.0, 80.0, 'vertical', 2.0)
        result = calculate_movement(restored, _plan(restored, 5.0), [restriction])

        assert _at(result.movement, 75.0) == 5.0

    def test_lateral_restriction_ignored_for_level(self, flat_restored):
        """测试高低通道忽略方向限制"""
        restriction = Restriction(70.0, 80.0, 'both', 1.0)
        result = calculate_movement(flat_restored, _plan(flat_restored, 5.0), [restriction])

        assert _at(result.movement, 75.0) == 5.0

    def test_no_channel_applies_all(self, positions):
        """测试无通道时应用全部限制"""
        restored = Series(positions, np.zeros_like(positions))
        restrictions = [Restriction(10.0, 20.0, 'vertical', 2.0),
                        Restriction(30.0, 40.0, 'both', 1.0)]
        result = calculate_movement(restored, _plan(restored, 5.0), restrictions)

        assert _at(result.movement, 15.0) == 2.0
        assert _at(result.movement, 35.0) == 1.0

    def test_one_sided_limits(self, positions):
        """测试单侧限制只约束一个方向"""
        restored = Series(positions, np.zeros_like(positions), Channel.ALIGNMENT)
        left = Restriction(0.0, 100.0, 'left', 2.0)
        right = Restriction(0.0, 100.0, 'right', 2.0)

        assert _at(calculate_movement(restored, _plan(restored, 5.0), [left]).movement, 50.0) == 2.0
        assert _at(calculate_movement(restored, _plan(restored, -5.0), [left]).movement, 50.0) == -5.0
        assert _at(calculate_movement(restored, _plan(restored, 5.0), [right]).movement, 50.0) == 5.0
        assert _at(calculate_movement(restored, _plan(restored, -5.0), [right]).movement, 50.0) == -2.0

    def test_overlapping_restrictions_intersect(self, positions):
        """测试重叠限制取交集"""
        bounds = restriction_bounds(positions, [Restriction(0.0, 50.0, 'both', 3.0),
                                                Restriction(25.0, 75.0, 'left', 1.0)])
        lower, upper, fixed = bounds
        i = np.searchsorted(positions, 30.0)

        assert (lower[i], upper[i]) == (-3.0, 1.0)
        assert not fixed.any()

    def test_fixed_zone_ignores_axis(self, positions):
        """测试按方向筛选时固定区间仍计入掩码"""
        lower, upper, fixed = restriction_bounds(
            positions,
            [Restriction(45.0, 50.0, 'left', 0.0, is_fixed=True),
             Restriction(70.0, 80.0, 'both', 1.0)],
            axis='vertical'
        )

        assert fixed[np.searchsorted(positions, 47.0)]
        assert np.all(np.isinf(upper))

    def test_position_mismatch(self, flat_restored, positions):
        """测试位置不一致报错"""
        plan = Series(positions + 0.1, np.zeros_like(positions))
        with pytest.raises(ValidationError):
            calculate_movement(flat_restored, plan)

    def test_input_not_modified(self, flat_restored):
        """测试输入不被修改"""
        plan = _plan(flat_restored, 5.0)
        calculate_movement(flat_restored, plan, [Restriction(0.0, 10.0, 'vertical', 1.0)])
        assert np.all(plan.values == 5.0)


class TestMovementLimits:
    """移动量标准值/最大值检查测试"""

    def test_standard_exceeded(self, flat_restored):
        """测试超过标准值"""
        warnings = check_movement_limits(_plan(flat_restored, 40.0))
        assert len(warnings) == 1
        assert '30' in warnings[0].message

    def test_maximum_exceeded(self, flat_restored):
        """测试超过最大值"""
        warnings = check_movement_limits(_plan(flat_restored, -60.0))
        assert len(warnings) == 1
        assert '50' in warnings[0].message
        assert len(warnings[0].positions) == len(flat_restored)

    def test_within_limits(self, flat_restored):
        """测试未超限"""
        assert check_movement_limits(_plan(flat_restored, 10.0)) == []

    def test_reported_by_calculate_movement(self, flat_restored):
        """测试计算移动量时附带超限告警"""
        result = calculate_movement(flat_restored, _plan(flat_restored, 40.0))
        assert [w.kind for w in result.warnings] == ['movement_limit']
