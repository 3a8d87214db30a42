"""
Mathematical utilities for the CTRV unscented Kalman filter.
"""

from .utils import normalize_angle, polar_to_cartesian
from .constants import *

__all__ = ["normalize_angle", "polar_to_cartesian"]
