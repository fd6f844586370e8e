# -*- coding: utf-8 -*-
"""
异常定义
所有流水线阶段抛出的错误均继承自 TrackRestoreError
"""


class TrackRestoreError(Exception):
    """所有轨道复原相关错误的基类"""


# ==================== 校验错误 ====================

class ValidationError(TrackRestoreError, ValueError):
    """输入参数或数据不合法（在计算开始前抛出）"""


class InvalidSpeedError(ValidationError):
    """最高速度非正，或速度过低导致波长范围为空"""


class OverlappingCurveElementsError(ValidationError):
    """曲线要素的里程范围相互重叠"""

    def __init__(self, message: str, pairs=None):
        super().__init__(message)
        self.pairs = list(pairs or [])


# ==================== 数值错误 ====================

class NumericDegenerateCaseError(TrackRestoreError, ArithmeticError):
    """数值计算遇到退化情况（如半径为零）"""


class EmptySeriesError(NumericDegenerateCaseError):
    """序列采样点不足，无法完成该阶段计算"""
