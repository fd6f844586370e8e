# -*- coding: utf-8 -*-
"""
批量处理服务
多个作业区间/通道/文件在有界线程池中并行处理，单个任务失败不影响其他任务
"""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from .. import config
from ..data.io import read_series_csv, save_series_csv
from ..data.models import BatchProcessResult, Channel, ProcessingParameters, Series
from ..exceptions import ValidationError
from ..logging_setup import get_logger
from .restoration_service import RestorationService, default_parameters
from .result_cache import ResultCache

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class PipelineJob:
    """
    单个批处理任务

    parameters 为 None 时使用服务的默认参数
    """
    name: str
    series: Series
    channel: Optional[Channel] = None
    parameters: Optional[ProcessingParameters] = None


class BatchService:
    """
    批量处理服务

    任务之间不共享可变数据；唯一共享的资源是可选的结果缓存
    """

    def __init__(self,
                 parameters: Optional[ProcessingParameters] = None,
                 max_workers: int = config.BATCH_MAX_WORKERS,
                 cache: Optional[ResultCache] = None):
        """
        初始化批量处理服务

        参数:
            parameters: 默认处理参数（None 表示按各序列范围生成默认参数）
            max_workers: 最大并发数
            cache: 结果缓存（可选）
        """
        if max_workers < 1:
            raise ValidationError(f"并发数必须为正: {max_workers}")
        self.parameters = parameters
        self.max_workers = max_workers
        self.cache = cache

    def _run_job(self, job: PipelineJob):
        parameters = job.parameters or self.parameters or default_parameters(job.series)
        service = RestorationService(parameters, cache=self.cache)
        return service.process(job.series, job.channel)

    def run(self,
            jobs: Iterable[PipelineJob],
            progress_callback: Optional[Callable[[int, int, str], None]] = None
            ) -> BatchProcessResult:
        """
        并行执行批处理任务

        参数:
            jobs: 任务列表
            progress_callback: 进度回调函数 (current, total, message)

        返回:
            BatchProcessResult，results 按任务顺序排列
        """
        jobs = list(jobs)
        total_count = len(jobs)
        outcomes = [None] * total_count
        errors: List[tuple] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self._run_job, job): i for i, job in enumerate(jobs)}
            for done, future in enumerate(as_completed(futures), start=1):
                index = futures[future]
                name = jobs[index].name
                try:
                    outcomes[index] = future.result()
                except Exception as e:
                    logger.error("任务 %s 失败: %s", name, e)
                    errors.append((index, name, str(e)))
                if progress_callback:
                    progress_callback(done, total_count, f"完成: {name}")

        results = [(jobs[i].name, outcome) for i, outcome in enumerate(outcomes)
                   if outcome is not None]
        errors.sort()

        return BatchProcessResult(
            total_jobs=total_count,
            processed_jobs=len(results),
            failed_jobs=len(errors),
            results=results,
            errors=[(name, message) for _, name, message in errors]
        )

    def run_directory(self,
                      input_dir: Union[str, Path],
                      output_dir: Union[str, Path],
                      channel: Union[Channel, str],
                      progress_callback: Optional[Callable[[int, int, str], None]] = None
                      ) -> BatchProcessResult:
        """
        处理目录下全部测量序列 CSV，移动量写入输出目录的同名文件

        读取失败的文件与处理失败的任务一样记入 errors

        抛出:
            FileNotFoundError: 输入目录不存在或没有 CSV 文件
        """
        input_dir = Path(input_dir)
        if not input_dir.is_dir():
            raise FileNotFoundError(f"输入目录不存在: {input_dir}")
        csv_files = sorted(input_dir.glob('*.csv'))
        if not csv_files:
            raise FileNotFoundError(f"未找到CSV文件: {input_dir}")

        os.makedirs(output_dir, exist_ok=True)
        channel = Channel(channel)

        jobs = []
        read_errors = []
        for csv_path in csv_files:
            try:
                jobs.append(PipelineJob(csv_path.name, read_series_csv(csv_path, channel), channel))
            except (OSError, ValueError) as e:
                logger.error("读取 %s 失败: %s", csv_path.name, e)
                read_errors.append((csv_path.name, str(e)))

        result = self.run(jobs, progress_callback=progress_callback)
        for name, pipeline_result in result.results:
            save_series_csv(pipeline_result.boundary.movement, Path(output_dir) / name)

        result.total_jobs += len(read_errors)
        result.failed_jobs += len(read_errors)
        result.errors = read_errors + result.errors
        return result
