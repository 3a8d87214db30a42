"""
Sensor fusion core for tracking a moving object.

This module provides implementations of:
- Unscented Kalman Filter with a CTRV motion model
- Position and range/bearing/range-rate measurement models
- Mathematical utilities
"""

__version__ = "1.0.0"

from .ukf import UnscentedKalmanFilter, CTRVState, StateEstimate
from .sensors import SensorType, MeasurementPackage
from .math import normalize_angle
from .config import Config

__all__ = [
    "UnscentedKalmanFilter",
    "CTRVState",
    "StateEstimate",
    "SensorType",
    "MeasurementPackage",
    "normalize_angle",
    "Config"
]
