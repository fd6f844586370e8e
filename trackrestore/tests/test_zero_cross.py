# -*- coding: utf-8 -*-
"""
零交叉点检测测试
"""

import pytest
import numpy as np

from trackrestore.core.zero_cross import find_zero_crossings
from trackrestore.data.models import Series


def _series(values, step=1.0):
    values = np.asarray(values, dtype=float)
    return Series(np.arange(values.size) * step, values)


class TestFindZeroCrossings:
    """find_zero_crossings 测试"""

    def test_upward_crossing(self):
        """测试上升交叉及线性插值"""
        crossings = find_zero_crossings(_series([-1.0, 1.0]))

        assert len(crossings) == 1
        assert crossings[0].position == pytest.approx(0.5)
        assert crossings[0].index == 0
        assert crossings[0].direction == 'up'

    def test_downward_crossing(self):
        """测试下降交叉"""
        crossings = find_zero_crossings(_series([1.0, -3.0], step=2.0))

        assert crossings[0].position == pytest.approx(0.5)
        assert crossings[0].direction == 'down'

    def test_both_within_threshold_ignored(self):
        """测试两点都在阈值内不算交叉"""
        assert find_zero_crossings(_series([0.005, -0.008, 0.001])) == ()

    def test_leaving_zero_is_neutral(self):
        """测试从零值离开记为 neutral"""
        crossings = find_zero_crossings(_series([0.0, 2.0]))

        assert len(crossings) == 1
        assert crossings[0].position == 0.0
        assert crossings[0].direction == 'neutral'

    def test_min_interval(self):
        """测试间距过小的交叉被忽略"""
        values = [1.0, -1.0, 1.0, -1.0]
        assert len(find_zero_crossings(_series(values, step=0.25))) == 1
        assert len(find_zero_crossings(_series(values, step=0.25), min_interval=0.1)) == 3

    def test_sine_crossings(self, sine_series):
        """测试 20m 正弦每 10m 一个交叉点"""
        crossings = find_zero_crossings(sine_series())

        assert len(crossings) == 11
        np.testing.assert_allclose([c.position for c in crossings],
                                   np.arange(0.0, 101.0, 10.0), atol=1e-6)

    def test_short_series(self):
        """测试少于两个采样点"""
        assert find_zero_crossings(_series([1.0])) == ()
