# -*- coding: utf-8 -*-
"""
数据模型定义
使用不可变 dataclass 定义清晰的数据结构，各处理阶段只返回新对象，不修改输入
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Tuple

import numpy as np

from .. import config
from ..exceptions import OverlappingCurveElementsError, ValidationError


# ==================== 枚举 ====================

class Channel(str, Enum):
    """测量通道"""
    LEVEL = 'level'
    ALIGNMENT = 'alignment'
    GAUGE = 'gauge'
    CROSS_LEVEL = 'crossLevel'

    @property
    def axis(self) -> str:
        """对应的移动方向: 高低/水平 -> vertical，方向/轨距 -> lateral"""
        if self in (Channel.LEVEL, Channel.CROSS_LEVEL):
            return AXIS_VERTICAL
        return AXIS_LATERAL


class TrackClass(str, Enum):
    """线路类别"""
    CONVENTIONAL = 'conventional'
    HIGHSPEED = 'highspeed'


AXIS_VERTICAL = 'vertical'
AXIS_LATERAL = 'lateral'

CURVE_DIRECTIONS = ('left', 'right')
CURVE_TYPES = ('circular', 'transition', 'compound')
RESTRICTION_DIRECTIONS = ('left', 'right', 'both', 'vertical')
WORK_DIRECTIONS = ('up', 'down')
CONNECTION_TYPES = ('front', 'rear', 'none')


# ==================== 序列 ====================

class Sample(NamedTuple):
    """单个采样点: 位置 (m)，值 (mm)"""
    position: float
    value: float


@dataclass(frozen=True, eq=False)
class Series:
    """
    按位置严格递增的采样序列

    positions/values 在构造时复制为只读 float64 数组
    """
    positions: np.ndarray = field(repr=False)
    values: np.ndarray = field(repr=False)
    channel: Optional[Channel] = None

    def __post_init__(self) -> None:
        p = np.array(self.positions, dtype=np.float64)
        v = np.array(self.values, dtype=np.float64)

        if p.ndim != 1 or v.ndim != 1:
            raise ValidationError(f"位置和值必须是一维数组: {p.shape}, {v.shape}")
        if p.size != v.size:
            raise ValidationError(f"位置和值长度不一致: {p.size} vs {v.size}")
        if not (np.isfinite(p).all() and np.isfinite(v).all()):
            raise ValidationError("序列包含非有限值 (NaN/Inf)")
        if p.size > 1 and np.any(np.diff(p) <= 0):
            raise ValidationError("位置必须严格递增")

        p.setflags(write=False)
        v.setflags(write=False)
        object.__setattr__(self, 'positions', p)
        object.__setattr__(self, 'values', v)
        if self.channel is not None:
            object.__setattr__(self, 'channel', Channel(self.channel))

    def __len__(self) -> int:
        return int(self.positions.size)

    @property
    def interval(self) -> float:
        """采样间隔 (m)，不足两个采样点时返回默认间隔"""
        if self.positions.size < 2:
            return config.DEFAULT_SAMPLING_INTERVAL
        return float(self.positions[1] - self.positions[0])

    def is_uniform(self, rtol: float = config.UNIFORM_SPACING_RTOL) -> bool:
        """是否为等间距采样"""
        if self.positions.size < 3:
            return True
        steps = np.diff(self.positions)
        return bool(np.allclose(steps, steps[0], rtol=rtol, atol=0.0))

    def with_values(self, values: Iterable[float]) -> 'Series':
        """在相同位置上创建新序列"""
        return Series(self.positions, np.asarray(values, dtype=np.float64), self.channel)

    def samples(self) -> List[Sample]:
        """转换为采样点列表"""
        return [Sample(float(p), float(v)) for p, v in zip(self.positions, self.values)]

    @classmethod
    def from_samples(cls, samples: Iterable[Tuple[float, float]],
                     channel: Optional[Channel] = None,
                     require_uniform: bool = False) -> 'Series':
        """
        由采样点创建序列

        参数:
            samples: (位置, 值) 序列
            channel: 通道
            require_uniform: 是否要求等间距（数据导入时使用）

        抛出:
            ValidationError: 位置不递增或间距不均匀
        """
        pairs = [(float(p), float(v)) for p, v in samples]
        positions = [p for p, _ in pairs]
        values = [v for _, v in pairs]
        series = cls(np.asarray(positions), np.asarray(values), channel)
        if require_uniform and not series.is_uniform():
            raise ValidationError("采样间距不均匀")
        return series


# ==================== 线路要素 ====================

@dataclass(frozen=True)
class WavelengthBand:
    """复原波长范围 (m)"""
    lower: float
    upper: float

    def __post_init__(self) -> None:
        if not (0 < self.lower < self.upper):
            raise ValidationError(f"波长范围不合法: [{self.lower}, {self.upper}]")

    def contains(self, wavelength: float) -> bool:
        return self.lower <= wavelength <= self.upper


@dataclass(frozen=True)
class CurveElement:
    """
    平曲线要素

    里程与序列位置使用同一单位 (m)；缓和曲线长度在曲线两端各占一段
    """
    start_km: float
    end_km: float
    radius: float
    direction: str
    curve_type: str = 'circular'
    transition_length: float = 0.0
    cant: float = 0.0
    speed: float = 0.0
    notes: str = field(default='', compare=False)

    def __post_init__(self) -> None:
        if not self.start_km < self.end_km:
            raise ValidationError(f"曲线起点必须小于终点: {self.start_km} >= {self.end_km}")
        if not self.radius > 0:
            raise ValidationError(f"曲线半径必须为正: {self.radius}")
        if self.direction not in CURVE_DIRECTIONS:
            raise ValidationError(f"未知曲线方向: {self.direction}")
        if self.curve_type not in CURVE_TYPES:
            raise ValidationError(f"未知曲线类型: {self.curve_type}")
        if self.transition_length < 0:
            raise ValidationError(f"缓和曲线长度不能为负: {self.transition_length}")
        if 2 * self.transition_length > self.length + 1e-9:
            raise ValidationError(
                f"缓和曲线总长超过曲线长度: 2×{self.transition_length} > {self.length}")

    @property
    def length(self) -> float:
        return self.end_km - self.start_km

    @property
    def sign(self) -> float:
        """左曲线为正，右曲线为负"""
        return 1.0 if self.direction == 'left' else -1.0

    @property
    def has_transitions(self) -> bool:
        return self.curve_type != 'circular' and self.transition_length > 0

    def covers(self, position: float) -> bool:
        return self.start_km <= position <= self.end_km

    def overlaps(self, other: 'CurveElement') -> bool:
        return self.start_km < other.end_km and self.end_km > other.start_km


def find_overlapping_pairs(elements: Iterable[CurveElement]) -> List[Tuple[int, int]]:
    """返回里程范围重叠的曲线要素下标对（首尾相接不算重叠）"""
    items = list(elements)
    pairs = []
    for i in range(len(items)):
        for j in range(i + 1, len(items)):
            if items[i].overlaps(items[j]):
                pairs.append((i, j))
    return pairs


def validate_curve_elements(elements: Iterable[CurveElement]) -> Tuple[CurveElement, ...]:
    """
    校验曲线要素互不重叠，返回按起点排序的元组

    抛出:
        OverlappingCurveElementsError: 存在重叠
    """
    items = tuple(elements)
    pairs = find_overlapping_pairs(items)
    if pairs:
        i, j = pairs[0]
        raise OverlappingCurveElementsError(
            f"曲线要素重叠: [{items[i].start_km}, {items[i].end_km}] 与 "
            f"[{items[j].start_km}, {items[j].end_km}]",
            pairs=pairs
        )
    return tuple(sorted(items, key=lambda e: e.start_km))


@dataclass(frozen=True)
class VerticalCurve:
    """竖曲线（坡度单位 ‰）"""
    start: float
    end: float
    grade_change_point: float
    grade_before: float
    grade_after: float
    radius: float = config.VERTICAL_CURVE_DEFAULT_RADIUS

    def __post_init__(self) -> None:
        if not self.start < self.end:
            raise ValidationError(f"竖曲线起点必须小于终点: {self.start} >= {self.end}")
        if not self.start <= self.grade_change_point <= self.end:
            raise ValidationError(f"变坡点不在竖曲线范围内: {self.grade_change_point}")
        if not self.radius > 0:
            raise ValidationError(f"竖曲线半径必须为正: {self.radius}")

    @property
    def grade_change(self) -> float:
        return self.grade_after - self.grade_before

    @property
    def curve_type(self) -> str:
        """凹形 sag / 凸形 crest / 平 flat"""
        if self.grade_change > 0:
            return 'sag'
        if self.grade_change < 0:
            return 'crest'
        return 'flat'

    def versine(self, chord_length: float) -> float:
        """弦测正矢 (mm)，凹形为正、凸形为负"""
        value = chord_length * chord_length * 1000.0 / (8.0 * self.radius)
        if self.curve_type == 'sag':
            return value
        if self.curve_type == 'crest':
            return -value
        return 0.0

    @staticmethod
    def default_radius(grade_change: float,
                       horizontal_radius: Optional[float] = None) -> float:
        """
        竖曲线默认半径

        坡差较大且位于小半径平曲线上时采用较大半径
        """
        if (abs(grade_change) >= config.VERTICAL_CURVE_LARGE_GRADE_CHANGE
                and horizontal_radius is not None
                and horizontal_radius <= config.VERTICAL_CURVE_SMALL_HORIZONTAL_RADIUS):
            return config.VERTICAL_CURVE_LARGE_RADIUS
        return config.VERTICAL_CURVE_DEFAULT_RADIUS


@dataclass(frozen=True)
class Restriction:
    """
    移动量限制区间

    is_fixed 为真时区间内移动量强制为 0；方向为正表示向左移动
    """
    start_km: float
    end_km: float
    direction: str
    restriction_amount: float
    is_fixed: bool = False
    notes: str = field(default='', compare=False)

    def __post_init__(self) -> None:
        if self.start_km > self.end_km:
            raise ValidationError(f"限制区间起点大于终点: {self.start_km} > {self.end_km}")
        if self.direction not in RESTRICTION_DIRECTIONS:
            raise ValidationError(f"未知限制方向: {self.direction}")
        if self.restriction_amount < 0:
            raise ValidationError(f"限制量不能为负: {self.restriction_amount}")

    @property
    def axis(self) -> str:
        return AXIS_VERTICAL if self.direction == 'vertical' else AXIS_LATERAL

    def covers(self, position: float) -> bool:
        return self.start_km <= position <= self.end_km

    def limits(self) -> Tuple[float, float]:
        """允许的移动量区间 (下限, 上限)"""
        if self.is_fixed:
            return (0.0, 0.0)
        amount = self.restriction_amount
        if self.direction == 'left':
            return (-math.inf, amount)
        if self.direction == 'right':
            return (-amount, math.inf)
        return (-amount, amount)


@dataclass(frozen=True)
class WorkSection:
    """作业区间及前后接续长度 (m)"""
    start_km: float
    end_km: float
    direction: str = 'up'
    front_length: float = config.DEFAULT_CONNECTION_LENGTH
    rear_length: float = config.DEFAULT_CONNECTION_LENGTH

    def __post_init__(self) -> None:
        if not self.end_km > self.start_km:
            raise ValidationError(f"作业区间终点必须大于起点: {self.start_km} - {self.end_km}")
        if self.direction not in WORK_DIRECTIONS:
            raise ValidationError(f"未知作业方向: {self.direction}")
        for name, value in (('front_length', self.front_length),
                            ('rear_length', self.rear_length)):
            if not 0 <= value <= self.length:
                raise ValidationError(f"{name} 超出作业区间范围: {value}")

    @property
    def length(self) -> float:
        return self.end_km - self.start_km


@dataclass(frozen=True)
class MachineParameters:
    """捣固车参数"""
    machine_type: str
    d_point: float
    c_point: float
    lift_points: int
    line_points: int

    @classmethod
    def for_type(cls, machine_type: str) -> 'MachineParameters':
        """
        按型号获取捣固车参数

        抛出:
            ValidationError: 未知型号
        """
        if machine_type not in config.MACHINE_PARAMETERS:
            raise ValidationError(f"未知捣固车型号: {machine_type}")
        d_point, c_point, lift_points, line_points = config.MACHINE_PARAMETERS[machine_type]
        return cls(machine_type, d_point, c_point, lift_points, line_points)


# ==================== 配置类 ====================

@dataclass(frozen=True)
class WavelengthConfig:
    """复原波长选择配置"""
    max_speed_kmh: float = 120.0
    track_class: TrackClass = TrackClass.CONVENTIONAL
    speed_coefficient: float = config.SPEED_COEFFICIENT_DEFAULT
    short_wavelength_mode: bool = False
    alignment_lower_limit_15m: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, 'track_class', TrackClass(self.track_class))


@dataclass(frozen=True)
class CurveConfig:
    """平曲线（正矢梯形）配置"""
    chord_length: float = config.DEFAULT_CHORD_LENGTH
    d6_correction: bool = True
    elements: Tuple[CurveElement, ...] = ()

    def __post_init__(self) -> None:
        if self.chord_length not in config.VALID_CHORD_LENGTHS:
            raise ValidationError(f"弦长必须为 10/20/40 m: {self.chord_length}")
        object.__setattr__(self, 'elements', validate_curve_elements(self.elements))


@dataclass(frozen=True)
class VerticalCurveConfig:
    """竖曲线除去配置"""
    method: str = 'moving_average'
    chord_length: float = config.DEFAULT_CHORD_LENGTH
    window: Optional[int] = None
    polynomial_order: int = config.POLYNOMIAL_DEFAULT_ORDER
    smoothing_factor: float = 0.0
    curves: Tuple[VerticalCurve, ...] = ()

    def __post_init__(self) -> None:
        if self.method not in ('moving_average', 'polynomial', 'parametric'):
            raise ValidationError(f"未知竖曲线除去方法: {self.method}")
        if self.chord_length <= 0:
            raise ValidationError(f"弦长必须为正: {self.chord_length}")
        if self.window is not None and self.window < 1:
            raise ValidationError(f"窗口必须为正整数: {self.window}")
        if self.polynomial_order < 0:
            raise ValidationError(f"多项式阶数不能为负: {self.polynomial_order}")
        if self.smoothing_factor < 0:
            raise ValidationError(f"平滑系数不能为负: {self.smoothing_factor}")
        object.__setattr__(self, 'curves', tuple(self.curves))


@dataclass(frozen=True)
class PlanLineConfig:
    """计划线生成配置"""
    max_upward_mm: float = config.MAX_UPWARD_MM
    max_downward_mm: float = config.MAX_DOWNWARD_MM
    target_upward_ratio: float = config.TARGET_UPWARD_RATIO
    iteration_limit: int = config.ITERATION_LIMIT
    smoothing_window: int = config.SMOOTHING_WINDOW
    lift_step_mm: float = config.LIFT_STEP_MM

    def __post_init__(self) -> None:
        if self.max_upward_mm < 0 or self.max_downward_mm < 0:
            raise ValidationError("起道/落道上限不能为负")
        if not 0 <= self.target_upward_ratio <= 1:
            raise ValidationError(f"目标起道比例必须在 [0, 1] 内: {self.target_upward_ratio}")
        if self.iteration_limit < 0:
            raise ValidationError(f"迭代次数不能为负: {self.iteration_limit}")
        if self.smoothing_window < 1:
            raise ValidationError(f"平滑窗口必须为正: {self.smoothing_window}")
        if self.lift_step_mm <= 0:
            raise ValidationError(f"抬升步长必须为正: {self.lift_step_mm}")


@dataclass(frozen=True)
class BoundaryConfig:
    """前后接续配置"""
    easing: str = 'cubic'
    machine_type: str = config.DEFAULT_MACHINE_TYPE
    apply_machine_correction: bool = False

    def __post_init__(self) -> None:
        if self.machine_type not in config.MACHINE_PARAMETERS:
            raise ValidationError(f"未知捣固车型号: {self.machine_type}")


@dataclass(frozen=True)
class ProcessingParameters:
    """
    一个作业区间的全部处理参数（PRM 文件内容）
    """
    work_section: WorkSection
    wavelength: WavelengthConfig = field(default_factory=WavelengthConfig)
    band: Optional[WavelengthBand] = None       # 指定时覆盖按速度计算的波长范围
    sampling_interval: float = config.DEFAULT_SAMPLING_INTERVAL
    plan_line: PlanLineConfig = field(default_factory=PlanLineConfig)
    curves: CurveConfig = field(default_factory=CurveConfig)
    vertical_curve: VerticalCurveConfig = field(default_factory=VerticalCurveConfig)
    boundary: BoundaryConfig = field(default_factory=BoundaryConfig)
    restrictions: Tuple[Restriction, ...] = ()

    def __post_init__(self) -> None:
        if self.sampling_interval <= 0:
            raise ValidationError(f"采样间隔必须为正: {self.sampling_interval}")
        object.__setattr__(self, 'restrictions', tuple(self.restrictions))


# ==================== 结果类 ====================

@dataclass(frozen=True)
class ConstraintWarning:
    """非致命约束告警，作为结果数据返回"""
    kind: str
    message: str
    positions: Tuple[float, ...] = ()


@dataclass(frozen=True)
class ImportResult:
    """
    CSV 导入结果

    accepted 为通过校验的记录，rejected 为 (行号, 原因)
    """
    accepted: tuple
    rejected: Tuple[Tuple[int, str], ...] = ()

    @property
    def success(self) -> bool:
        return not self.rejected


@dataclass(frozen=True)
class WaveformStatistics:
    """波形统计量 (mm)"""
    mean: float
    sigma: float
    rms: float
    min: float
    max: float
    count: int

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            'mean': self.mean,
            'sigma': self.sigma,
            'rms': self.rms,
            'min': self.min,
            'max': self.max,
            'count': self.count
        }


@dataclass(frozen=True, eq=False)
class RestorationResult:
    """复原波形结果"""
    restored: Series
    band: WavelengthBand
    statistics: WaveformStatistics
    original_statistics: WaveformStatistics


@dataclass(frozen=True, eq=False)
class ExclusionResult:
    """竖曲线除去结果: processed + excluded == original"""
    processed: Series
    excluded: Series
    method: str
    statistics: dict


@dataclass(frozen=True, eq=False)
class CurveSubtractionResult:
    """正矢梯形扣除结果"""
    corrected: Series
    theoretical: Series


@dataclass(frozen=True)
class ZeroCrossing:
    """零交叉点"""
    position: float
    index: int          # 交叉发生在 index 与 index+1 之间
    direction: str      # 'up' 上升 / 'down' 下降


@dataclass(frozen=True)
class PlanLineStatistics:
    """计划线统计"""
    upward_ratio: float
    iterations: int
    upward_points: int
    downward_points: int
    max_upward: float
    max_downward: float
    total_movement: float

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            'upward_ratio': self.upward_ratio,
            'iterations': self.iterations,
            'upward_points': self.upward_points,
            'downward_points': self.downward_points,
            'max_upward': self.max_upward,
            'max_downward': self.max_downward,
            'total_movement': self.total_movement
        }


@dataclass(frozen=True, eq=False)
class PlanLineResult:
    """计划线生成结果"""
    plan_line: Series
    statistics: PlanLineStatistics
    ratio_not_reached: bool
    crossings: Tuple[ZeroCrossing, ...] = ()
    warnings: Tuple[ConstraintWarning, ...] = ()


@dataclass(frozen=True, eq=False)
class MovementResult:
    """移动量计算结果"""
    movement: Series
    clamped: np.ndarray = field(repr=False)
    predicted: Series
    improvement_rate: float
    statistics: dict
    warnings: Tuple[ConstraintWarning, ...] = ()


@dataclass(frozen=True)
class MovementRecord:
    """单点移动量记录 (mm)"""
    position: float
    lateral_movement: Optional[float] = None
    vertical_movement: Optional[float] = None
    connection_type: str = 'none'
    connection_factor: Optional[float] = None


@dataclass(frozen=True, eq=False)
class BoundaryResult:
    """前后接续处理结果"""
    movement: Series
    records: Tuple[MovementRecord, ...]
    warnings: Tuple[ConstraintWarning, ...] = ()


@dataclass(frozen=True, eq=False)
class PipelineResult:
    """
    单通道完整处理结果
    """
    channel: Channel
    band: WavelengthBand
    restoration: RestorationResult
    plan: PlanLineResult
    movement: MovementResult
    boundary: BoundaryResult
    exclusion: Optional[ExclusionResult] = None
    curve_subtraction: Optional[CurveSubtractionResult] = None
    recombined_plan: Optional[Series] = None    # 方向通道加回理论正矢后的计划线

    @property
    def final_plan(self) -> Series:
        """测量坐标下的计划线"""
        if self.recombined_plan is not None:
            return self.recombined_plan
        return self.plan.plan_line

    @property
    def warnings(self) -> List[ConstraintWarning]:
        """汇总各阶段告警"""
        return (list(self.plan.warnings) + list(self.movement.warnings)
                + list(self.boundary.warnings))

    @property
    def stats(self) -> dict:
        """获取统计信息字典"""
        return {
            'channel': self.channel.value,
            'band': (self.band.lower, self.band.upper),
            'restored': self.restoration.statistics.to_dict(),
            'plan_line': self.plan.statistics.to_dict(),
            'ratio_not_reached': self.plan.ratio_not_reached,
            'improvement_rate': self.movement.improvement_rate,
            'clamped_points': int(np.sum(self.movement.clamped)),
            'warnings': len(self.warnings)
        }


@dataclass
class BatchProcessResult:
    """
    批量处理结果
    """
    total_jobs: int
    processed_jobs: int
    failed_jobs: int
    results: List[Tuple[str, PipelineResult]] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)  # (job_name, error_message)
