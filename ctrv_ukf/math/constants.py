"""
Mathematical constants, filter dimensions and default tuning.
"""

import math

# Mathematical constants
PI = math.pi
TWO_PI = 2 * math.pi

# Time conversion
MICROSECONDS_PER_SECOND = 1000000.0

# Filter dimensions
N_X = 5                      # [px, py, v, yaw, yaw_rate]
N_AUG = 7                    # state + longitudinal accel noise + yaw accel noise
N_SIGMA = 2 * N_AUG + 1
LAMBDA = 3 - N_AUG           # sigma point spreading parameter
YAW_INDEX = 3

# Numerical guards
YAW_RATE_EPSILON = 1e-3      # below this the CTRV model drives straight
MIN_RANGE = 1e-3             # divisor clamp for range-rate projection (m)
COVARIANCE_REGULARIZATION = 1e-6
MAX_CONDITION_NUMBER = 1e12  # innovation covariance above this is treated as singular

# Default process noise
STD_A = 0.5          # longitudinal acceleration noise (m/s²)
STD_YAWDD = 1.0      # yaw acceleration noise (rad/s²)

# Default position sensor noise
STD_LASPX = 0.15     # m
STD_LASPY = 0.15     # m

# Default range/bearing/range-rate sensor noise
STD_RADR = 0.3       # m
STD_RADPHI = 0.03    # rad
STD_RADRD = 0.3      # m/s

# Chi-square 95% quantiles by degrees of freedom, for NIS checks
CHI2_95 = {
    1: 3.841,
    2: 5.991,
    3: 7.815,
    4: 9.488,
    5: 11.070,
}
