# -*- coding: utf-8 -*-
"""
服务层测试
"""

import os
from pathlib import Path

import pytest
import numpy as np

from trackrestore.data.io import read_series_csv, save_series_csv
from trackrestore.data.models import Channel, ProcessingParameters, Series, WavelengthBand
from trackrestore.exceptions import EmptySeriesError, ValidationError
from trackrestore.services import (
    BatchService,
    PipelineJob,
    RestorationService,
    ResultCache,
    default_parameters,
    make_key
)


class TestRestorationService:
    """RestorationService 测试"""

    def test_init_without_parameters(self):
        """测试无参数初始化"""
        service = RestorationService()

        assert not service.parameters_loaded
        with pytest.raises(ValidationError, match='参数未设置'):
            service.parameters

    def test_load_parameters(self, temp_prm_file, sample_parameters):
        """测试加载参数文件"""
        service = RestorationService()
        params = service.load_parameters(temp_prm_file)

        assert service.parameters_loaded
        assert params == sample_parameters

    def test_save_parameters(self, sample_parameters, temp_output_dir):
        """测试保存参数文件"""
        service = RestorationService(sample_parameters)
        path = service.save_parameters(os.path.join(temp_output_dir, 'out.prm'))

        assert os.path.exists(path)
        assert RestorationService().load_parameters(path) == sample_parameters

    def test_band_for(self, sample_parameters, work_section):
        """测试波长范围选择"""
        assert RestorationService(sample_parameters).band_for('level') == WavelengthBand(6.0, 40.0)

        service = RestorationService(ProcessingParameters(work_section=work_section))
        assert service.band_for('level') == WavelengthBand(6.0, 210.0)

    def test_level_pipeline(self, level_series, sample_parameters):
        """测试高低通道完整流程"""
        result = RestorationService(sample_parameters).process(level_series)

        assert result.channel == Channel.LEVEL
        assert result.exclusion is not None
        assert result.curve_subtraction is None
        assert not result.plan.ratio_not_reached
        assert result.plan.statistics.upward_ratio >= 0.7
        assert result.plan.statistics.iterations <= 50

        restored = result.restoration.restored.values
        slope = np.polyfit(level_series.positions, restored, 1)[0]
        assert abs(slope) < 0.05

        assert len(result.boundary.movement) == len(level_series)
        np.testing.assert_array_equal(result.final_plan.values, result.plan.plan_line.values)

    def test_level_pipeline_restrictions(self, level_series, sample_parameters):
        """测试高低通道应用高低限制与固定区间"""
        result = RestorationService(sample_parameters).process(level_series)
        movement = result.movement.movement
        p = movement.positions

        in_vertical = (p >= 70.0) & (p <= 80.0)
        assert np.all(np.abs(movement.values[in_vertical]) <= 2.0 + 1e-9)

        in_fixed = (p >= 45.0) & (p <= 50.0)
        assert in_fixed.any()
        assert np.all(movement.values[in_fixed] == 0.0)

    def test_alignment_recombine(self, alignment_series, sample_parameters):
        """测试方向通道加回理论正矢"""
        result = RestorationService(sample_parameters).process(alignment_series)

        assert result.exclusion is None
        assert result.curve_subtraction is not None
        theoretical = result.curve_subtraction.theoretical.values
        assert theoretical.max() == pytest.approx(125.0)
        assert theoretical.min() == pytest.approx(-62.5)
        np.testing.assert_allclose(result.final_plan.values,
                                   result.plan.plan_line.values + theoretical)

    def test_alignment_fixed_restriction(self, alignment_series, sample_parameters):
        """测试方向通道固定区间移动量为 0"""
        result = RestorationService(sample_parameters).process(alignment_series)
        movement = result.movement.movement
        fixed = (movement.positions >= 45.0) & (movement.positions <= 50.0)

        assert np.all(movement.values[fixed] == 0.0)

    def test_boundary_applied(self, level_series, sample_parameters):
        """测试作业区间两端移动量为 0"""
        result = RestorationService(sample_parameters).process(level_series)
        values = result.boundary.movement.values

        assert values[0] == pytest.approx(0.0)
        assert values[-1] == pytest.approx(0.0)

    def test_stats(self, level_series, sample_parameters):
        """测试统计信息"""
        stats = RestorationService(sample_parameters).process(level_series).stats

        assert stats['channel'] == 'level'
        assert stats['band'] == (6.0, 40.0)
        assert 'improvement_rate' in stats
        assert stats['warnings'] >= 0

    def test_channel_argument(self, positions, sample_parameters):
        """测试通过参数指定通道"""
        series = Series(positions, np.sin(2 * np.pi * positions / 20.0))
        result = RestorationService(sample_parameters).process(series, 'gauge')
        assert result.channel == Channel.GAUGE

    def test_missing_channel(self, positions, sample_parameters):
        """测试未指定通道"""
        series = Series(positions, np.zeros_like(positions))
        with pytest.raises(ValidationError, match='通道'):
            RestorationService(sample_parameters).process(series)

    def test_too_short(self, sample_parameters):
        """测试采样点不足"""
        series = Series(np.array([0.0]), np.array([1.0]), Channel.LEVEL)
        with pytest.raises(EmptySeriesError):
            RestorationService(sample_parameters).process(series)

    def test_process_without_parameters(self, level_series):
        """测试未设置参数时处理"""
        with pytest.raises(ValidationError):
            RestorationService().process(level_series)

    def test_cache_hit(self, level_series, sample_parameters):
        """测试重复处理命中缓存"""
        cache = ResultCache()
        service = RestorationService(sample_parameters, cache=cache)

        first = service.process(level_series)
        second = service.process(level_series)

        assert second is first
        assert cache.stats['hits'] == 1
        assert len(cache) == 1

    def test_process_file(self, temp_series_file, sample_parameters, temp_output_dir):
        """测试处理文件并保存移动量"""
        output_path = os.path.join(temp_output_dir, 'movement.csv')
        result = RestorationService(sample_parameters).process_file(
            temp_series_file, 'level', output_path)

        saved = read_series_csv(output_path)
        np.testing.assert_array_equal(saved.values, result.boundary.movement.values)

    def test_default_parameters(self, level_series):
        """测试按序列范围生成默认参数"""
        params = default_parameters(level_series)

        assert params.work_section.start_km == 0.0
        assert params.work_section.end_km == 100.0
        assert params.work_section.front_length == 50.0
        assert params.sampling_interval == 0.25

    def test_default_parameters_short_section(self, positions):
        """测试区间短于接续长度"""
        series = Series(positions[:41], np.zeros(41))
        params = default_parameters(series)
        assert params.work_section.front_length == 10.0


class TestBatchService:
    """BatchService 测试"""

    def test_results_in_job_order(self, level_series, alignment_series, sample_parameters):
        """测试结果按任务顺序排列"""
        jobs = [PipelineJob('a', alignment_series),
                PipelineJob('b', level_series),
                PipelineJob('c', level_series, Channel.GAUGE)]
        result = BatchService(sample_parameters, max_workers=3).run(jobs)

        assert result.total_jobs == 3
        assert result.processed_jobs == 3
        assert [name for name, _ in result.results] == ['a', 'b', 'c']
        assert result.results[2][1].channel == Channel.GAUGE

    def test_failure_isolated(self, level_series, sample_parameters):
        """测试单个任务失败不影响其他任务"""
        bad = Series(np.array([0.0]), np.array([1.0]), Channel.LEVEL)
        jobs = [PipelineJob('good1', level_series),
                PipelineJob('bad', bad),
                PipelineJob('good2', level_series)]
        result = BatchService(sample_parameters, max_workers=2).run(jobs)

        assert result.processed_jobs == 2
        assert result.failed_jobs == 1
        assert result.errors[0][0] == 'bad'
        assert [name for name, _ in result.results] == ['good1', 'good2']

    def test_progress_callback(self, level_series, sample_parameters):
        """测试进度回调"""
        calls = []
        jobs = [PipelineJob(f'job{i}', level_series) for i in range(3)]
        BatchService(sample_parameters).run(
            jobs, progress_callback=lambda current, total, message: calls.append((current, total)))

        assert sorted(calls) == [(1, 3), (2, 3), (3, 3)]

    def test_default_parameters_per_job(self, level_series):
        """测试无参数时按序列生成默认参数"""
        result = BatchService().run([PipelineJob('x', level_series)])

        assert result.failed_jobs == 0
        assert result.results[0][1].band.lower == 6.0

    def test_job_parameters_override(self, level_series, sample_parameters, work_section):
        """测试任务参数优先"""
        own = ProcessingParameters(work_section=work_section, band=WavelengthBand(8.0, 30.0))
        result = BatchService(sample_parameters).run([PipelineJob('x', level_series,
                                                                  parameters=own)])
        assert result.results[0][1].band == WavelengthBand(8.0, 30.0)

    def test_invalid_workers(self):
        """测试并发数不合法"""
        with pytest.raises(ValidationError):
            BatchService(max_workers=0)

    def test_shared_cache(self, level_series, sample_parameters):
        """测试任务共享缓存"""
        cache = ResultCache()
        service = BatchService(sample_parameters, max_workers=1, cache=cache)
        service.run([PipelineJob('a', level_series), PipelineJob('b', level_series)])

        assert len(cache) == 1
        assert cache.stats['hits'] == 1

    def test_run_directory(self, level_series, sample_parameters, tmp_path):
        """测试处理目录"""
        input_dir = tmp_path / 'input'
        output_dir = tmp_path / 'output'
        input_dir.mkdir()
        save_series_csv(level_series, input_dir / 'good.csv')
        (input_dir / 'bad.csv').write_text('position,value\n0,1\n1,2\n3,3\n', encoding='utf-8')

        result = BatchService(sample_parameters).run_directory(input_dir, output_dir, 'level')

        assert result.total_jobs == 2
        assert result.processed_jobs == 1
        assert result.failed_jobs == 1
        assert result.errors[0][0] == 'bad.csv'
        assert (output_dir / 'good.csv').exists()
        assert not (output_dir / 'bad.csv').exists()

    def test_run_directory_missing(self, tmp_path):
        """测试输入目录不存在"""
        with pytest.raises(FileNotFoundError):
            BatchService().run_directory(tmp_path / 'none', tmp_path / 'out', 'level')

    def test_run_directory_empty(self, tmp_path):
        """测试目录下没有 CSV"""
        with pytest.raises(FileNotFoundError):
            BatchService().run_directory(tmp_path, tmp_path / 'out', 'level')


class TestResultCache:
    """ResultCache 测试"""

    def test_get_set(self):
        """测试读写"""
        cache = ResultCache()
        cache.set('k', 1)

        assert cache.get('k') == 1
        assert 'k' in cache
        assert cache.get('missing') is None
        assert cache.stats == {'hits': 1, 'misses': 1, 'size': 1, 'max_entries': 128}

    def test_lru_eviction(self):
        """测试超出容量时淘汰最久未使用的条目"""
        cache = ResultCache(max_entries=2)
        cache.set('a', 1)
        cache.set('b', 2)
        cache.get('a')
        cache.set('c', 3)

        assert 'a' in cache
        assert 'b' not in cache
        assert 'c' in cache

    def test_ttl_expiry(self):
        """测试过期"""
        now = [0.0]
        cache = ResultCache(ttl_seconds=10.0, clock=lambda: now[0])
        cache.set('k', 1)

        now[0] = 9.9
        assert cache.get('k') == 1
        now[0] = 10.0
        assert cache.get('k') is None
        assert len(cache) == 0

    def test_get_or_compute(self):
        """测试未命中时计算"""
        cache = ResultCache()
        calls = []

        def compute():
            calls.append(1)
            return 'value'

        assert cache.get_or_compute('k', compute) == 'value'
        assert cache.get_or_compute('k', compute) == 'value'
        assert len(calls) == 1

    def test_clear(self):
        """测试清空"""
        cache = ResultCache()
        cache.set('k', 1)
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.parametrize('kwargs', [{'max_entries': 0}, {'ttl_seconds': 0}])
    def test_invalid_settings(self, kwargs):
        """测试参数不合法"""
        with pytest.raises(ValidationError):
            ResultCache(**kwargs)


class TestMakeKey:
    """make_key 测试"""

    def test_same_input_same_key(self, level_series, sample_parameters):
        """测试相同输入键相同"""
        copy = Series(level_series.positions.copy(), level_series.values.copy(), Channel.LEVEL)
        assert (make_key('pipeline', level_series, sample_parameters)
                == make_key('pipeline', copy, sample_parameters))

    def test_different_values(self, level_series):
        """测试数据不同键不同"""
        other = level_series.with_values(level_series.values + 1e-9)
        assert make_key('pipeline', level_series) != make_key('pipeline', other)

    def test_kind_matters(self, level_series):
        """测试结果类型参与计算"""
        assert make_key('a', level_series) != make_key('b', level_series)

    def test_array_part(self):
        """测试数组输入"""
        assert make_key('x', np.arange(3.0)) != make_key('x', np.arange(3))
