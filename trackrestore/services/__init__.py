# -*- coding: utf-8 -*-
"""
服务层
提供业务流程编排和高级API
"""

from .restoration_service import RestorationService, default_parameters
from .batch_service import BatchService, PipelineJob
from .result_cache import ResultCache, make_key

__all__ = [
    'RestorationService',
    'default_parameters',
    'BatchService',
    'PipelineJob',
    'ResultCache',
    'make_key'
]
