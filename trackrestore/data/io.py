# -*- coding: utf-8 -*-
"""
文件读写模块
提供测量序列、曲线要素、移动量限制的 CSV 读写，以及 PRM 参数文件的读写
"""

import csv
from pathlib import Path
from typing import Dict, List, Optional, Union

from .. import config
from ..exceptions import ValidationError
from ..logging_setup import get_logger
from .converters import (
    bool_to_text,
    direction_from_code,
    direction_to_code,
    parse_kilometer,
    text_to_bool
)
from .models import (
    BoundaryConfig,
    Channel,
    CurveConfig,
    CurveElement,
    ImportResult,
    MachineParameters,
    PlanLineConfig,
    ProcessingParameters,
    Restriction,
    Series,
    TrackClass,
    VerticalCurve,
    VerticalCurveConfig,
    WavelengthBand,
    WavelengthConfig,
    WorkSection,
    validate_curve_elements
)

logger = get_logger(__name__)

SERIES_COLUMNS = ['position', 'value']
CURVE_COLUMNS = ['startKm', 'endKm', 'radius', 'direction', 'transitionLength',
                 'cant', 'speed', 'notes']
RESTRICTION_COLUMNS = ['startKm', 'endKm', 'directionCode', 'restrictionAmount', 'notes']

_DIRECTION_ALIASES = {
    'left': 'left', 'l': 'left', '左': 'left',
    'right': 'right', 'r': 'right', '右': 'right',
}


def _fmt(value: float) -> str:
    """浮点数格式化（repr 保证读回后完全相等）"""
    return repr(float(value))


def _read_rows(csv_path: Union[str, Path], required: List[str]) -> List[Dict[str, str]]:
    """
    读取 CSV 并检查表头

    抛出:
        FileNotFoundError: 文件不存在
        ValidationError: 缺少必需列
    """
    csv_path = Path(csv_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV文件不存在: {csv_path}")

    with open(csv_path, 'r', encoding='utf-8-sig', newline='') as f:
        reader = csv.DictReader(f)
        header = [name.strip() for name in (reader.fieldnames or [])]
        missing = [name for name in required if name not in header]
        if missing:
            raise ValidationError(f"CSV表头缺少列: {', '.join(missing)} ({csv_path})")
        reader.fieldnames = header
        return list(reader)


# ==================== 测量序列 ====================

def read_series_csv(csv_path: Union[str, Path],
                    channel: Optional[Channel] = None) -> Series:
    """
    读取测量序列 CSV（position,value）

    参数:
        csv_path: CSV文件路径
        channel: 通道

    返回:
        Series 对象（已校验位置递增且等间距）

    抛出:
        ValidationError: 表头缺失、数值无法解析或间距不均匀
    """
    rows = _read_rows(csv_path, SERIES_COLUMNS)
    samples = []
    for line_no, row in enumerate(rows, start=2):
        try:
            samples.append((float(row['position']), float(row['value'])))
        except (TypeError, ValueError):
            raise ValidationError(f"第{line_no}行数值无法解析: {row}") from None

    series = Series.from_samples(samples, channel=channel, require_uniform=True)
    logger.debug("读取序列 %s: %d 点, 间隔 %.4f m", csv_path, len(series), series.interval)
    return series


def save_series_csv(series: Series,
                    output_path: Union[str, Path],
                    create_dir: bool = True) -> str:
    """
    保存测量序列 CSV

    返回:
        实际保存路径
    """
    output_path = Path(output_path)
    if create_dir:
        output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(SERIES_COLUMNS)
        for position, value in zip(series.positions, series.values):
            writer.writerow([_fmt(position), _fmt(value)])
    return str(output_path)


# ==================== 曲线要素 ====================

def _parse_curve_row(row: Dict[str, str]) -> CurveElement:
    transition = float(row.get('transitionLength') or 0.0)
    direction_text = (row.get('direction') or '').strip()
    direction = _DIRECTION_ALIASES.get(direction_text.lower(), direction_text)
    curve_type = (row.get('type') or '').strip()
    if not curve_type:
        curve_type = 'transition' if transition > 0 else 'circular'

    return CurveElement(
        start_km=parse_kilometer(row['startKm']),
        end_km=parse_kilometer(row['endKm']),
        radius=float(row['radius']),
        direction=direction,
        curve_type=curve_type,
        transition_length=transition,
        cant=float(row.get('cant') or 0.0),
        speed=float(row.get('speed') or 0.0),
        notes=(row.get('notes') or '').strip()
    )


def read_curve_csv(csv_path: Union[str, Path]) -> ImportResult:
    """
    读取曲线要素 CSV

    列: startKm,endKm,radius,direction,transitionLength,cant,speed,notes[,type]
    无法解析的行单独拒绝并记录，其余行继续导入
    startKm/endKm 可为米或里程标记 (K12+345.6)

    参数:
        csv_path: CSV文件路径

    返回:
        ImportResult，accepted 为按起点排序的 CurveElement 元组

    抛出:
        ValidationError: 表头缺失
        OverlappingCurveElementsError: 导入的要素相互重叠
    """
    rows = _read_rows(csv_path, CURVE_COLUMNS[:4])
    accepted = []
    rejected = []
    for line_no, row in enumerate(rows, start=2):
        try:
            accepted.append(_parse_curve_row(row))
        except (TypeError, ValueError) as e:
            rejected.append((line_no, str(e)))
            logger.warning("曲线要素第%d行被拒绝: %s", line_no, e)

    return ImportResult(accepted=validate_curve_elements(accepted), rejected=tuple(rejected))


def save_curve_csv(elements, output_path: Union[str, Path], create_dir: bool = True) -> str:
    """
    保存曲线要素 CSV（附加 type 列）

    返回:
        实际保存路径
    """
    output_path = Path(output_path)
    if create_dir:
        output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(CURVE_COLUMNS + ['type'])
        for e in elements:
            writer.writerow([
                _fmt(e.start_km), _fmt(e.end_km), _fmt(e.radius), e.direction,
                _fmt(e.transition_length), _fmt(e.cant), _fmt(e.speed), e.notes,
                e.curve_type
            ])
    return str(output_path)


# ==================== 移动量限制 ====================

def read_restriction_csv(csv_path: Union[str, Path]) -> ImportResult:
    """
    读取移动量限制 CSV

    列: startKm,endKm,directionCode,restrictionAmount,notes
    方向代码: 0=双向, 1=左, 2=右, 3=高低；限制量为 0 表示固定点
    startKm/endKm 可为米或里程标记

    返回:
        ImportResult，accepted 为 Restriction 元组
    """
    rows = _read_rows(csv_path, RESTRICTION_COLUMNS[:4])
    accepted = []
    rejected = []
    for line_no, row in enumerate(rows, start=2):
        try:
            amount = float(row['restrictionAmount'])
            accepted.append(Restriction(
                start_km=parse_kilometer(row['startKm']),
                end_km=parse_kilometer(row['endKm']),
                direction=direction_from_code(row['directionCode']),
                restriction_amount=amount,
                is_fixed=(amount == 0),
                notes=(row.get('notes') or '').strip()
            ))
        except (TypeError, ValueError) as e:
            rejected.append((line_no, str(e)))
            logger.warning("移动量限制第%d行被拒绝: %s", line_no, e)

    return ImportResult(accepted=tuple(accepted), rejected=tuple(rejected))


def save_restriction_csv(restrictions, output_path: Union[str, Path],
                         create_dir: bool = True) -> str:
    """
    保存移动量限制 CSV（固定点写出限制量 0）

    返回:
        实际保存路径
    """
    output_path = Path(output_path)
    if create_dir:
        output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(RESTRICTION_COLUMNS)
        for r in restrictions:
            amount = 0.0 if r.is_fixed else r.restriction_amount
            writer.writerow([_fmt(r.start_km), _fmt(r.end_km), direction_to_code(r.direction),
                             _fmt(amount), r.notes])
    return str(output_path)


# ==================== PRM 参数文件 ====================

def format_prm(params: ProcessingParameters) -> str:
    """
    生成 PRM 参数文件文本

    参数:
        params: 处理参数

    返回:
        PRM 文本（'*' 开头为注释，[SECTION] 下为 KEY=VALUE）
    """
    ws = params.work_section
    wl = params.wavelength
    pl = params.plan_line
    cv = params.curves
    vc = params.vertical_curve
    bd = params.boundary
    machine = MachineParameters.for_type(bd.machine_type)

    lines = [
        '*' * 60,
        '* trackrestore 作业参数文件',
        '*' * 60,
        '',
        '[WORK_SECTION]',
        f'START_KM={_fmt(ws.start_km)}',
        f'END_KM={_fmt(ws.end_km)}',
        f'DIRECTION={ws.direction}',
        '',
        '[RESTORATION_WAVE]',
        'METHOD=FFT',
        f'MAX_SPEED={_fmt(wl.max_speed_kmh)}',
        f'TRACK_CLASS={wl.track_class.value}',
        f'SPEED_COEFFICIENT={_fmt(wl.speed_coefficient)}',
        f'SHORT_WAVELENGTH_MODE={bool_to_text(wl.short_wavelength_mode)}',
        f'ALIGNMENT_LOWER_15M={bool_to_text(wl.alignment_lower_limit_15m)}',
    ]
    if params.band is not None:
        lines.append(f'MIN_WAVELENGTH={_fmt(params.band.lower)}')
        lines.append(f'MAX_WAVELENGTH={_fmt(params.band.upper)}')
    lines += [
        f'SAMPLING_INTERVAL={_fmt(params.sampling_interval)}',
        '',
        '[PLAN_LINE]',
        'GENERATION_METHOD=CONVEX',
        'PRIORITY_MODE=UPWARD',
        f'MAX_UPWARD={_fmt(pl.max_upward_mm)}',
        f'MAX_DOWNWARD={_fmt(pl.max_downward_mm)}',
        f'TARGET_UPWARD_RATIO={_fmt(pl.target_upward_ratio)}',
        f'ITERATION_LIMIT={pl.iteration_limit}',
        f'SMOOTHING_WINDOW={pl.smoothing_window}',
        f'LIFT_STEP={_fmt(pl.lift_step_mm)}',
        '',
        '[CURVE_ELEMENTS]',
        f'CHORD_LENGTH={_fmt(cv.chord_length)}',
        f'D6_CORRECTION={bool_to_text(cv.d6_correction)}',
        f'CURVE_COUNT={len(cv.elements)}',
    ]
    for i, e in enumerate(cv.elements, start=1):
        lines.append(
            f'CURVE_{i}={_fmt(e.start_km)},{_fmt(e.end_km)},{_fmt(e.radius)},{e.direction},'
            f'{e.curve_type},{_fmt(e.transition_length)},{_fmt(e.cant)},{_fmt(e.speed)}'
        )
    lines += [
        '',
        '[VERTICAL_CURVE]',
        f'METHOD={vc.method}',
        f'CHORD_LENGTH={_fmt(vc.chord_length)}',
        f'WINDOW={"AUTO" if vc.window is None else vc.window}',
        f'POLYNOMIAL_ORDER={vc.polynomial_order}',
        f'SMOOTHING_FACTOR={_fmt(vc.smoothing_factor)}',
        f'CURVE_COUNT={len(vc.curves)}',
    ]
    for i, c in enumerate(vc.curves, start=1):
        lines.append(
            f'VCURVE_{i}={_fmt(c.start)},{_fmt(c.end)},{_fmt(c.grade_change_point)},'
            f'{_fmt(c.grade_before)},{_fmt(c.grade_after)},{_fmt(c.radius)}'
        )
    lines += [
        '',
        '[MOVEMENT_RESTRICTION]',
        f'RESTRICTION_COUNT={len(params.restrictions)}',
    ]
    for i, r in enumerate(params.restrictions, start=1):
        lines.append(
            f'RESTRICTION_{i}={_fmt(r.start_km)},{_fmt(r.end_km)},{r.direction},'
            f'{_fmt(r.restriction_amount)},{"FIXED" if r.is_fixed else "LIMITED"}'
        )
    lines += [
        '',
        '[MTT_SETTINGS]',
        f'MTT_TYPE={bd.machine_type}',
        f'D_POINT_DISTANCE={_fmt(machine.d_point)}',
        f'C_POINT_DISTANCE={_fmt(machine.c_point)}',
        f'APPLY_CORRECTION={bool_to_text(bd.apply_machine_correction)}',
        '',
        '[CONNECTION_SETTINGS]',
        f'FRONT_LENGTH={_fmt(ws.front_length)}',
        f'REAR_LENGTH={_fmt(ws.rear_length)}',
        f'CONNECTION_TYPE={bd.easing}',
        '',
    ]
    return '\n'.join(lines)


def _split_sections(text: str) -> Dict[str, Dict[str, str]]:
    """PRM 文本拆分为 {SECTION: {KEY: VALUE}}"""
    sections: Dict[str, Dict[str, str]] = {}
    current: Optional[Dict[str, str]] = None
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith('*') or line.startswith(';'):
            continue
        if line.startswith('[') and line.endswith(']'):
            current = sections.setdefault(line[1:-1].strip().upper(), {})
            continue
        if '=' not in line or current is None:
            raise ValidationError(f"PRM第{line_no}行格式错误: {raw!r}")
        key, value = line.split('=', 1)
        current[key.strip().upper()] = value.strip()
    return sections


def _get(section: Dict[str, str], key: str, convert, default):
    if key not in section:
        return default
    try:
        return convert(section[key])
    except ValueError as e:
        raise ValidationError(f"PRM参数 {key} 无法解析: {section[key]!r}") from e


def _numbered(section: Dict[str, str], prefix: str, count_key: str, build) -> list:
    """按 PREFIX_1..PREFIX_n 解析编号条目，任一条目无法解析时报告其参数名"""
    count = _get(section, count_key, int, 0)
    items = []
    for i in range(1, count + 1):
        key = f'{prefix}_{i}'
        if key not in section:
            raise ValidationError(f"PRM缺少参数: {key}")
        parts = [part.strip() for part in section[key].split(',')]
        try:
            items.append(build(parts))
        except ValueError as e:
            raise ValidationError(f"PRM参数 {key} 无法解析: {section[key]!r} ({e})") from e
    return items


def _prm_curve(parts: List[str]) -> CurveElement:
    if len(parts) < 4:
        raise ValidationError(f"曲线要素字段不足: {len(parts)}")
    padded = parts + [''] * (8 - len(parts))
    transition = float(padded[5] or 0.0)
    return CurveElement(
        start_km=parse_kilometer(padded[0]),
        end_km=parse_kilometer(padded[1]),
        radius=float(padded[2]),
        direction=padded[3],
        curve_type=padded[4] or ('transition' if transition > 0 else 'circular'),
        transition_length=transition,
        cant=float(padded[6] or 0.0),
        speed=float(padded[7] or 0.0)
    )


def _prm_vertical_curve(parts: List[str]) -> VerticalCurve:
    if len(parts) != 6:
        raise ValidationError(f"竖曲线字段数错误: {len(parts)}")
    return VerticalCurve(*[float(p) for p in parts])


def _prm_restriction(parts: List[str]) -> Restriction:
    if len(parts) != 5:
        raise ValidationError(f"移动量限制字段数错误: {len(parts)}")
    return Restriction(
        start_km=parse_kilometer(parts[0]),
        end_km=parse_kilometer(parts[1]),
        direction=parts[2],
        restriction_amount=float(parts[3]),
        is_fixed=(parts[4].upper() == 'FIXED')
    )


def parse_prm(text: str) -> ProcessingParameters:
    """
    解析 PRM 参数文件文本

    参数:
        text: PRM 文本（区间起终点可写为里程标记）

    返回:
        ProcessingParameters 对象

    抛出:
        ValidationError: 缺少 [WORK_SECTION] 或参数无法解析
    """
    sections = _split_sections(text)
    if 'WORK_SECTION' not in sections:
        raise ValidationError("PRM缺少 [WORK_SECTION]")

    ws_sec = sections['WORK_SECTION']
    for key in ('START_KM', 'END_KM'):
        if key not in ws_sec:
            raise ValidationError(f"PRM缺少参数: {key}")
    conn = sections.get('CONNECTION_SETTINGS', {})
    work_section = WorkSection(
        start_km=_get(ws_sec, 'START_KM', parse_kilometer, None),
        end_km=_get(ws_sec, 'END_KM', parse_kilometer, None),
        direction=_get(ws_sec, 'DIRECTION', str, 'up'),
        front_length=_get(conn, 'FRONT_LENGTH', float, config.DEFAULT_CONNECTION_LENGTH),
        rear_length=_get(conn, 'REAR_LENGTH', float, config.DEFAULT_CONNECTION_LENGTH)
    )

    wave = sections.get('RESTORATION_WAVE', {})
    defaults = WavelengthConfig()
    wavelength = WavelengthConfig(
        max_speed_kmh=_get(wave, 'MAX_SPEED', float, defaults.max_speed_kmh),
        track_class=_get(wave, 'TRACK_CLASS', TrackClass, defaults.track_class),
        speed_coefficient=_get(wave, 'SPEED_COEFFICIENT', float, defaults.speed_coefficient),
        short_wavelength_mode=_get(wave, 'SHORT_WAVELENGTH_MODE', text_to_bool, False),
        alignment_lower_limit_15m=_get(wave, 'ALIGNMENT_LOWER_15M', text_to_bool, False)
    )
    band = None
    if 'MIN_WAVELENGTH' in wave or 'MAX_WAVELENGTH' in wave:
        band = WavelengthBand(_get(wave, 'MIN_WAVELENGTH', float, None),
                              _get(wave, 'MAX_WAVELENGTH', float, None))

    plan = sections.get('PLAN_LINE', {})
    plan_defaults = PlanLineConfig()
    plan_line = PlanLineConfig(
        max_upward_mm=_get(plan, 'MAX_UPWARD', float, plan_defaults.max_upward_mm),
        max_downward_mm=_get(plan, 'MAX_DOWNWARD', float, plan_defaults.max_downward_mm),
        target_upward_ratio=_get(plan, 'TARGET_UPWARD_RATIO', float,
                                 plan_defaults.target_upward_ratio),
        iteration_limit=_get(plan, 'ITERATION_LIMIT', int, plan_defaults.iteration_limit),
        smoothing_window=_get(plan, 'SMOOTHING_WINDOW', int, plan_defaults.smoothing_window),
        lift_step_mm=_get(plan, 'LIFT_STEP', float, plan_defaults.lift_step_mm)
    )

    curve_sec = sections.get('CURVE_ELEMENTS', {})
    elements = _numbered(curve_sec, 'CURVE', 'CURVE_COUNT', _prm_curve)
    curves = CurveConfig(
        chord_length=_get(curve_sec, 'CHORD_LENGTH', float, config.DEFAULT_CHORD_LENGTH),
        d6_correction=_get(curve_sec, 'D6_CORRECTION', text_to_bool, True),
        elements=tuple(elements)
    )

    vc_sec = sections.get('VERTICAL_CURVE', {})
    vcurves = _numbered(vc_sec, 'VCURVE', 'CURVE_COUNT', _prm_vertical_curve)
    window_text = vc_sec.get('WINDOW', 'AUTO')
    vertical_curve = VerticalCurveConfig(
        method=_get(vc_sec, 'METHOD', str, 'moving_average'),
        chord_length=_get(vc_sec, 'CHORD_LENGTH', float, config.DEFAULT_CHORD_LENGTH),
        window=None if window_text.upper() == 'AUTO' else _get(vc_sec, 'WINDOW', int, None),
        polynomial_order=_get(vc_sec, 'POLYNOMIAL_ORDER', int, config.POLYNOMIAL_DEFAULT_ORDER),
        smoothing_factor=_get(vc_sec, 'SMOOTHING_FACTOR', float, 0.0),
        curves=tuple(vcurves)
    )

    rs_sec = sections.get('MOVEMENT_RESTRICTION', {})
    restrictions = _numbered(rs_sec, 'RESTRICTION', 'RESTRICTION_COUNT',
                             _prm_restriction)

    mtt = sections.get('MTT_SETTINGS', {})
    boundary = BoundaryConfig(
        easing=_get(conn, 'CONNECTION_TYPE', str, 'cubic'),
        machine_type=_get(mtt, 'MTT_TYPE', str, config.DEFAULT_MACHINE_TYPE),
        apply_machine_correction=_get(mtt, 'APPLY_CORRECTION', text_to_bool, False)
    )

    return ProcessingParameters(
        work_section=work_section,
        wavelength=wavelength,
        band=band,
        sampling_interval=_get(wave, 'SAMPLING_INTERVAL', float,
                               config.DEFAULT_SAMPLING_INTERVAL),
        plan_line=plan_line,
        curves=curves,
        vertical_curve=vertical_curve,
        boundary=boundary,
        restrictions=tuple(restrictions)
    )


def save_prm(params: ProcessingParameters,
             output_path: Union[str, Path],
             create_dir: bool = True) -> str:
    """
    保存 PRM 参数文件

    返回:
        实际保存路径
    """
    output_path = Path(output_path)
    if create_dir:
        output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(format_prm(params), encoding='utf-8')
    return str(output_path)


def load_prm(prm_path: Union[str, Path]) -> ProcessingParameters:
    """
    加载 PRM 参数文件

    抛出:
        FileNotFoundError: 文件不存在
        ValidationError: 内容不合法
    """
    prm_path = Path(prm_path)
    if not prm_path.exists():
        raise FileNotFoundError(f"PRM文件不存在: {prm_path}")
    return parse_prm(prm_path.read_text(encoding='utf-8-sig'))
