# -*- coding: utf-8 -*-
"""
计划线生成模块（起道优先）

1. 以零交叉点（值为 0）和两端的移动平均值为节点，构造折线初始计划线
2. 在各零交叉区间中点设置抬升节点，抬升量线性插值到各采样点
3. 每次迭代在"单个节点抬升一步"与"全部节点抬升一步"中选择起道比例最高者，
   比例相同时取总移动量最小者，再相同取下标最小者
4. 达到目标起道比例或迭代次数上限时停止；无候选能提高比例时停止
"""

from typing import Optional, Tuple

import numpy as np
from scipy.ndimage import uniform_filter1d

from ..data.models import (
    ConstraintWarning,
    PlanLineConfig,
    PlanLineResult,
    PlanLineStatistics,
    Series,
    ZeroCrossing
)
from ..exceptions import EmptySeriesError
from ..logging_setup import get_logger
from .zero_cross import find_zero_crossings

logger = get_logger(__name__)


def moving_average(values: np.ndarray, window: int) -> np.ndarray:
    """居中移动平均（端部取最近值延拓）"""
    values = np.asarray(values, dtype=np.float64)
    window = max(1, min(int(window), values.size))
    if values.size == 0 or window == 1:
        return values.copy()
    return uniform_filter1d(values, size=window, mode='nearest')


def seed_plan_line(restored: Series,
                   crossings: Tuple[ZeroCrossing, ...],
                   smoothing_window: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    初始计划线

    参数:
        restored: 复原波形
        crossings: 零交叉点
        smoothing_window: 移动平均窗口（采样点数）

    返回:
        (初始计划线数组, 折线节点位置数组)
    """
    positions = restored.positions
    averaged = moving_average(restored.values, smoothing_window)
    first, last = positions[0], positions[-1]

    inner = [c.position for c in crossings if first < c.position < last]
    knots = np.asarray([first] + inner + [last])
    if not inner:
        return averaged, knots

    knot_values = np.asarray([averaged[0]] + [0.0] * len(inner) + [averaged[-1]])
    return np.interp(positions, knots, knot_values), knots


class _PlanEvaluator:
    """计算给定节点抬升量下的计划线、起道比例和总移动量"""

    def __init__(self, restored: np.ndarray, positions: np.ndarray, seed: np.ndarray,
                 nodes: np.ndarray, plan_config: PlanLineConfig):
        self.restored = restored
        self.positions = positions
        self.seed = seed
        self.nodes = nodes
        self.lower = restored - plan_config.max_downward_mm
        self.upper = restored + plan_config.max_upward_mm

    def __call__(self, lifts: np.ndarray) -> Tuple[np.ndarray, float, float]:
        lift_curve = np.interp(self.positions, self.nodes, lifts)
        plan = np.clip(self.seed + lift_curve, self.lower, self.upper)
        ratio = float(np.mean(plan > self.restored))
        total = float(np.sum(np.abs(plan - self.restored)))
        return plan, ratio, total


def _candidates(lifts: np.ndarray, step: float, max_lift: float):
    """生成候选抬升方案: 各单节点抬升，最后为全部节点抬升"""
    for j in range(lifts.size):
        raised = min(lifts[j] + step, max_lift)
        if raised > lifts[j]:
            candidate = lifts.copy()
            candidate[j] = raised
            yield candidate
        else:
            yield None
    candidate = np.minimum(lifts + step, max_lift)
    yield candidate if np.any(candidate > lifts) else None


def _best_step(evaluate: _PlanEvaluator, lifts: np.ndarray, ratio: float,
               step: float, max_lift: float):
    """
    选择本次迭代的最佳候选；当前步长无改善时步长加倍重试

    返回:
        (lifts, plan, ratio, total) 或 None
    """
    while True:
        best_key = None
        best = None
        for index, candidate in enumerate(_candidates(lifts, step, max_lift)):
            if candidate is None:
                continue
            plan, cand_ratio, total = evaluate(candidate)
            key = (-cand_ratio, total, index)
            if best_key is None or key < best_key:
                best_key = key
                best = (candidate, plan, cand_ratio, total)
        if best is not None and best[2] > ratio:
            return best
        if step >= max_lift:
            return None
        step = min(step * 2.0, max_lift)


def generate_plan_line(restored: Series,
                       plan_config: Optional[PlanLineConfig] = None) -> PlanLineResult:
    """
    生成起道优先计划线

    参数:
        restored: 复原波形
        plan_config: 计划线配置

    返回:
        PlanLineResult；未达到目标起道比例时 ratio_not_reached 为真并附带告警

    抛出:
        EmptySeriesError: 复原波形为空
    """
    if plan_config is None:
        plan_config = PlanLineConfig()
    n = len(restored)
    if n == 0:
        raise EmptySeriesError("复原波形为空，无法生成计划线")

    r = restored.values
    crossings = find_zero_crossings(restored)
    seed, knots = seed_plan_line(restored, crossings, plan_config.smoothing_window)
    nodes = (knots[:-1] + knots[1:]) / 2.0

    evaluate = _PlanEvaluator(r, restored.positions, seed, nodes, plan_config)
    lifts = np.zeros(nodes.size)
    plan, ratio, total = evaluate(lifts)

    iterations = 0
    while ratio < plan_config.target_upward_ratio and iterations < plan_config.iteration_limit:
        best = _best_step(evaluate, lifts, ratio, plan_config.lift_step_mm,
                          plan_config.max_upward_mm)
        if best is None:
            logger.debug("计划线迭代无改善，第%d次停止", iterations)
            break
        lifts, plan, ratio, total = best
        iterations += 1

    ratio_not_reached = ratio < plan_config.target_upward_ratio
    warnings = ()
    if ratio_not_reached:
        warnings = (ConstraintWarning(
            'ratio_not_reached',
            f"起道比例 {ratio:.3f} 未达到目标 {plan_config.target_upward_ratio}"
            f"（迭代 {iterations} 次）"),)
        logger.warning(warnings[0].message)

    diff = plan - r
    statistics = PlanLineStatistics(
        upward_ratio=ratio,
        iterations=iterations,
        upward_points=int(np.sum(diff > 0)),
        downward_points=int(np.sum(diff < 0)),
        max_upward=float(max(np.max(diff), 0.0)),
        max_downward=float(max(-np.min(diff), 0.0)),
        total_movement=total
    )

    return PlanLineResult(
        plan_line=restored.with_values(plan),
        statistics=statistics,
        ratio_not_reached=ratio_not_reached,
        crossings=crossings,
        warnings=warnings
    )
