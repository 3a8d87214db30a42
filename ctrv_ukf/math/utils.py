"""
Mathematical utility functions for the unscented Kalman filter.
"""

import numpy as np
import math

from .constants import PI, TWO_PI

def normalize_angle(angle):
    """
    Normalize angle to (-pi, pi] range.

    Works on scalars and numpy arrays alike. Scalars come back as float.

    Args:
        angle (float or np.ndarray): Angle(s) in radians

    Returns:
        float or np.ndarray: Normalized angle(s) in (-pi, pi]
    """
    wrapped = PI - np.mod(PI - np.asarray(angle, dtype=float), TWO_PI)
    # np.mod can round up to exactly 2*pi for tiny negative inputs
    wrapped = np.where(wrapped <= -PI, wrapped + TWO_PI, wrapped)

    if wrapped.ndim == 0:
        return float(wrapped)
    return wrapped

def polar_to_cartesian(rho, phi):
    """
    Convert a range/bearing pair to Cartesian coordinates.

    Args:
        rho (float): Range in meters
        phi (float): Bearing in radians

    Returns:
        tuple: (x, y) in meters
    """
    return rho * math.cos(phi), rho * math.sin(phi)
