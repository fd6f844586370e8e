# -*- coding: utf-8 -*-
"""
配置文件 - 所有参数集中管理
"""

# ========================
# 采样配置
# ========================
DEFAULT_SAMPLING_INTERVAL = 0.25    # 默认采样间隔 (m)
UNIFORM_SPACING_RTOL = 1e-6         # 等间距判定相对容差

# ========================
# 复原波长配置
# ========================
CONVENTIONAL_LOWER_WAVELENGTH = 6.0     # 常规线下限波长 (m)
SHINKANSEN_SHORT_LOWER = 3.5            # 新干线高低短波长模式下限 (m)
SHINKANSEN_SHORT_UPPER = 6.0            # 新干线高低短波长模式上限 (m)
ALIGNMENT_LOWER_LIMIT_15M = 15.0        # 新干线方向15m下限 (m)
HIGHSPEED_UPPER_CAP = 200.0             # 新干线上限波长封顶 (m)
GAUGE_UPPER_RATIO = 0.625               # 轨距上限系数
GAUGE_LOWER_RATIO = 0.5                 # 轨距下限系数
SPEED_COEFFICIENT_MIN = 1.5             # 速度系数下限
SPEED_COEFFICIENT_MAX = 2.0             # 速度系数上限
SPEED_COEFFICIENT_DEFAULT = 1.75        # 速度系数默认值

# 波长范围校验阈值 (m)
WAVELENGTH_LOWER_MIN = 3.5
WAVELENGTH_LOWER_WARN = 20.0
WAVELENGTH_UPPER_MIN = 40.0
WAVELENGTH_UPPER_WARN = 200.0
WAVELENGTH_MIN_RATIO = 5.0

# ========================
# 曲线与竖曲线配置
# ========================
VALID_CHORD_LENGTHS = (10.0, 20.0, 40.0)    # 允许的弦长 (m)
DEFAULT_CHORD_LENGTH = 10.0                 # 默认弦长 (m)
VERTICAL_CURVE_DEFAULT_RADIUS = 3000.0      # 竖曲线默认半径 (m)
VERTICAL_CURVE_LARGE_RADIUS = 4000.0        # 大坡差小半径曲线时竖曲线半径 (m)
VERTICAL_CURVE_LARGE_GRADE_CHANGE = 10.0    # 大坡差阈值 (‰)
VERTICAL_CURVE_SMALL_HORIZONTAL_RADIUS = 800.0  # 小半径平曲线阈值 (m)
POLYNOMIAL_DEFAULT_ORDER = 3                # 多项式拟合默认阶数
SMOOTHING_KERNEL = (0.25, 0.5, 0.25)        # 平滑卷积核
SMOOTHING_PASSES_PER_FACTOR = 5             # 每单位平滑系数对应的迭代次数

# ========================
# 计划线配置
# ========================
MAX_UPWARD_MM = 50.0            # 最大起道量 (mm)
MAX_DOWNWARD_MM = 10.0          # 最大落道量 (mm)
TARGET_UPWARD_RATIO = 0.7       # 目标起道比例
ITERATION_LIMIT = 100           # 最大迭代次数
SMOOTHING_WINDOW = 20           # 初始计划线平滑窗口（采样点数）
LIFT_STEP_MM = 0.5              # 每次迭代抬升步长 (mm)

# 零交叉检测
ZERO_CROSS_THRESHOLD = 0.01     # 零值判定阈值 (mm)
ZERO_CROSS_MIN_INTERVAL = 1.0   # 相邻交叉点最小间距 (m)

# ========================
# 移动量配置
# ========================
MOVEMENT_STANDARD_LIMIT = 30.0  # 标准移动量限制 (mm)
MOVEMENT_MAXIMUM_LIMIT = 50.0   # 最大移动量限制 (mm)

# ========================
# 前后接续配置
# ========================
DEFAULT_CONNECTION_LENGTH = 50.0    # 默认接续长度 (m)
BOUNDARY_PEAK_LIMIT = 50.0          # 接续区内最大移动量告警阈值 (mm)
BOUNDARY_JUMP_LIMIT = 10.0          # 相邻点跳变告警阈值 (mm)
LATERAL_CORRECTION_GAIN = 0.1       # D点修正增益（方向）
VERTICAL_CORRECTION_GAIN = 0.15     # C点修正增益（高低）
D_POINT_AMPLITUDE = 0.5             # D点效应幅值
C_POINT_AMPLITUDE = 0.3             # C点效应幅值

# 捣固车参数: 型号 -> (D点距离, C点距离, 起道点数, 拨道点数)
MACHINE_PARAMETERS = {
    '08-475': (11.2, 5.6, 3, 2),
    '08-275': (9.8, 4.9, 3, 2),
    '09-16': (12.0, 6.0, 4, 2),
    '09-32': (13.5, 6.75, 4, 3),
    'MTT-15': (15.0, 7.5, 4, 3),
}
DEFAULT_MACHINE_TYPE = '08-475'

# MTT缓和曲线参数: 型号 -> (前指数, 后指数, 增益)
# 因子 = t^a * (k - (k - 1) * t^b)
MTT_EASING_PARAMETERS = {
    '08-475': (2.2, 0.8, 3.0),
    '08-275': (2.2, 0.8, 3.0),
    '09-16': (2.5, 0.7, 3.5),
    '09-32': (2.5, 0.7, 3.5),
}

# ========================
# 批处理与缓存配置
# ========================
BATCH_MAX_WORKERS = 4           # 批处理最大并发数
CACHE_MAX_ENTRIES = 128         # 缓存最大条目数
CACHE_TTL_SECONDS = 3600.0      # 缓存有效期 (s)

# ========================
# 日志配置
# ========================
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FILE_NAME = 'trackrestore.log'
