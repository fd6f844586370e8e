# -*- coding: utf-8 -*-
"""
核心算法层
提供波长选择、复原滤波、竖曲线除去、正矢梯形、计划线、移动量、前后接续等核心算法
"""

from .wavelength import (
    select_wavelength_band,
    band_for_config,
    validate_wavelength_band
)

from .restoration import (
    restore_waveform,
    run_restoration,
    bin_wavelengths,
    calculate_statistics,
    calculate_improvement_rate
)

from .vertical_curve import (
    exclude_vertical_curve,
    moving_average_trend,
    polynomial_trend,
    parametric_trend,
    smooth_trend
)

from .curve_trapezoid import (
    CurveTrapezoidModel,
    circular_versine,
    transition_offset
)

from .zero_cross import find_zero_crossings

from .plan_line import (
    generate_plan_line,
    seed_plan_line
)

from .movement import (
    calculate_movement,
    check_movement_limits,
    restriction_bounds
)

from .boundary import (
    smooth_boundaries,
    easing_factor,
    mtt_easing,
    machine_correction,
    EASING_TYPES
)

__all__ = [
    # Wavelength
    'select_wavelength_band',
    'band_for_config',
    'validate_wavelength_band',
    # Restoration
    'restore_waveform',
    'run_restoration',
    'bin_wavelengths',
    'calculate_statistics',
    'calculate_improvement_rate',
    # Vertical curve
    'exclude_vertical_curve',
    'moving_average_trend',
    'polynomial_trend',
    'parametric_trend',
    'smooth_trend',
    # Curve trapezoid
    'CurveTrapezoidModel',
    'circular_versine',
    'transition_offset',
    # Plan line
    'find_zero_crossings',
    'generate_plan_line',
    'seed_plan_line',
    # Movement
    'calculate_movement',
    'check_movement_limits',
    'restriction_bounds',
    # Boundary
    'smooth_boundaries',
    'easing_factor',
    'mtt_easing',
    'machine_correction',
    'EASING_TYPES'
]
