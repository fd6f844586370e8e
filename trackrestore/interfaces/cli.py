# -*- coding: utf-8 -*-
"""
命令行接口
提供命令行工具入口
"""

import argparse
import sys
from typing import Optional

from .. import config
from ..core.wavelength import select_wavelength_band, validate_wavelength_band
from ..data.converters import format_kilometer
from ..data.io import load_prm, read_series_csv, save_prm, save_series_csv
from ..data.models import (
    Channel,
    ProcessingParameters,
    TrackClass,
    WavelengthConfig,
    WorkSection
)
from ..exceptions import TrackRestoreError
from ..logging_setup import setup_logging
from ..services import BatchService, RestorationService
from ..services.restoration_service import default_parameters

CHANNEL_CHOICES = [c.value for c in Channel]
TRACK_CLASS_CHOICES = [c.value for c in TrackClass]


def create_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='trackrestore',
        description='轨道几何复原波形与起拨道量计算工具',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
示例:
  # 查询复原波长范围
  python -m trackrestore band --speed 130 --channel level

  # 处理单个测量文件
  python -m trackrestore restore -i level.csv -c level -p section.prm -o movement.csv

  # 生成参数文件模板 / 查看参数文件
  python -m trackrestore params --template section.prm --start 1000 --end 1500
  python -m trackrestore params --show section.prm

  # 批量处理目录
  python -m trackrestore batch -i ./input -o ./output -c alignment -p section.prm
        '''
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='输出调试日志')
    parser.add_argument('--log-dir', help='日志文件目录')

    subparsers = parser.add_subparsers(dest='command', help='可用命令')

    # band 子命令
    band_parser = subparsers.add_parser('band', help='计算复原波长范围')
    band_parser.add_argument('--speed', type=float, required=True, help='最高速度 (km/h)')
    band_parser.add_argument('--track-class', choices=TRACK_CLASS_CHOICES,
                             default='conventional', help='线路类别')
    band_parser.add_argument('--channel', choices=CHANNEL_CHOICES, default='level', help='通道')
    band_parser.add_argument('--coefficient', type=float, default=config.SPEED_COEFFICIENT_DEFAULT,
                             help='速度系数')
    band_parser.add_argument('--short-wavelength', action='store_true', help='新干线高低短波长模式')
    band_parser.add_argument('--alignment-15m', action='store_true', help='新干线方向15m下限')

    # restore 子命令
    restore_parser = subparsers.add_parser('restore', help='处理单个测量序列')
    restore_parser.add_argument('-i', '--input', required=True, help='测量序列CSV (position,value)')
    restore_parser.add_argument('-c', '--channel', choices=CHANNEL_CHOICES, required=True,
                                help='通道')
    restore_parser.add_argument('-p', '--params', help='PRM参数文件（默认按序列范围生成）')
    restore_parser.add_argument('-o', '--output', help='移动量输出CSV')
    restore_parser.add_argument('--plan-output', help='计划线输出CSV')

    # params 子命令
    params_parser = subparsers.add_parser('params', help='生成或查看PRM参数文件')
    group = params_parser.add_mutually_exclusive_group(required=True)
    group.add_argument('--template', help='生成参数文件模板的路径')
    group.add_argument('--show', help='要查看的参数文件')
    params_parser.add_argument('--start', type=float, default=0.0, help='作业起点 (m)')
    params_parser.add_argument('--end', type=float, default=1000.0, help='作业终点 (m)')
    params_parser.add_argument('--speed', type=float, default=120.0, help='最高速度 (km/h)')

    # batch 子命令
    batch_parser = subparsers.add_parser('batch', help='批量处理目录下的测量序列')
    batch_parser.add_argument('-i', '--input', required=True, help='输入目录')
    batch_parser.add_argument('-o', '--output', required=True, help='输出目录')
    batch_parser.add_argument('-c', '--channel', choices=CHANNEL_CHOICES, required=True,
                              help='通道')
    batch_parser.add_argument('-p', '--params', help='PRM参数文件')
    batch_parser.add_argument('-j', '--workers', type=int, default=config.BATCH_MAX_WORKERS,
                              help='并发数')

    return parser


def progress_callback(current: int, total: int, message: str) -> None:
    """命令行进度回调"""
    print(f"[{current}/{total}] {message}")


def run_band(args) -> int:
    """执行波长范围计算命令"""
    try:
        band = select_wavelength_band(
            args.speed,
            args.track_class,
            args.channel,
            speed_coefficient=args.coefficient,
            short_wavelength_mode=args.short_wavelength,
            alignment_lower_limit_15m=args.alignment_15m
        )
    except TrackRestoreError as e:
        print(f"错误: {e}")
        return 1

    print(f"复原波长范围: {band.lower} m - {band.upper} m")
    for warning in validate_wavelength_band(band):
        print(f"  提示: {warning.message}")
    return 0


def run_restore(args) -> int:
    """执行单文件处理命令"""
    print("=" * 60)
    print("轨道复原 - 单文件处理")
    print("=" * 60)

    try:
        series = read_series_csv(args.input, channel=Channel(args.channel))
        print(f"\n输入文件: {args.input}")
        print(f"采样点数: {len(series)}，间隔 {series.interval} m")

        if args.params:
            parameters = load_prm(args.params)
            print(f"参数文件: {args.params}")
        else:
            parameters = default_parameters(series)

        service = RestorationService(parameters)
        result = service.process(series)

        stats = result.stats
        print(f"\n结果:")
        print(f"  复原波长: {result.band.lower} m - {result.band.upper} m")
        print(f"  复原波形σ: {stats['restored']['sigma']:.3f} mm")
        print(f"  起道比例: {stats['plan_line']['upward_ratio']:.3f}"
              f"（迭代 {stats['plan_line']['iterations']} 次）")
        print(f"  良化率: {stats['improvement_rate']:.2f}%")
        print(f"  受限点数: {stats['clamped_points']}")
        for warning in result.warnings:
            print(f"  警告: {warning.message}")

        if args.output:
            save_series_csv(result.boundary.movement, args.output)
            print(f"\n移动量已保存: {args.output}")
        if args.plan_output:
            save_series_csv(result.final_plan, args.plan_output)
            print(f"计划线已保存: {args.plan_output}")
        return 0

    except (TrackRestoreError, OSError) as e:
        print(f"\n错误: {e}")
        return 1


def run_params(args) -> int:
    """执行参数文件命令"""
    try:
        if args.template:
            taper = min(config.DEFAULT_CONNECTION_LENGTH, args.end - args.start)
            parameters = ProcessingParameters(
                work_section=WorkSection(args.start, args.end,
                                         front_length=taper, rear_length=taper),
                wavelength=WavelengthConfig(max_speed_kmh=args.speed)
            )
            path = save_prm(parameters, args.template)
            print(f"参数文件已生成: {path}")
            return 0

        parameters = load_prm(args.show)
        ws = parameters.work_section
        print(f"作业区间: {format_kilometer(ws.start_km)} - {format_kilometer(ws.end_km)} "
              f"({ws.direction})")
    except (TrackRestoreError, OSError) as e:
        print(f"错误: {e}")
        return 1

    print(f"接续长度: 前方 {ws.front_length} m, 后方 {ws.rear_length} m")
    print(f"最高速度: {parameters.wavelength.max_speed_kmh} km/h "
          f"({parameters.wavelength.track_class.value})")
    if parameters.band is not None:
        print(f"指定波长: {parameters.band.lower} - {parameters.band.upper} m")
    print(f"起道上限/落道上限: {parameters.plan_line.max_upward_mm} / "
          f"{parameters.plan_line.max_downward_mm} mm")
    print(f"曲线要素: {len(parameters.curves.elements)} 个, "
          f"弦长 {parameters.curves.chord_length} m")
    print(f"移动量限制: {len(parameters.restrictions)} 个")
    print(f"捣固车: {parameters.boundary.machine_type}, 缓和函数 {parameters.boundary.easing}")
    return 0


def run_batch(args) -> int:
    """执行批量处理命令"""
    print("=" * 60)
    print("轨道复原 - 批量处理")
    print("=" * 60)

    try:
        parameters = load_prm(args.params) if args.params else None
        service = BatchService(parameters, max_workers=args.workers)

        print(f"\n输入目录: {args.input}")
        print(f"输出目录: {args.output}")

        result = service.run_directory(args.input, args.output, args.channel,
                                       progress_callback=progress_callback)
    except (TrackRestoreError, OSError, ValueError) as e:
        print(f"\n错误: {e}")
        return 1

    print(f"\n处理完成:")
    print(f"  成功: {result.processed_jobs}")
    print(f"  失败: {result.failed_jobs}")
    for name, message in result.errors:
        print(f"    {name}: {message}")
    return 0 if result.failed_jobs == 0 else 1


def main(args: Optional[list] = None) -> int:
    """主入口"""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    setup_logging('DEBUG' if parsed_args.verbose else 'WARNING', parsed_args.log_dir)

    commands = {
        'band': run_band,
        'restore': run_restore,
        'params': run_params,
        'batch': run_batch
    }

    handler = commands.get(parsed_args.command)
    if handler:
        return handler(parsed_args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
