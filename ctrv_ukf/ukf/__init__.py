"""
Unscented Kalman Filter implementation for CTRV target tracking.
"""

from .ukf import UnscentedKalmanFilter
from .state import CTRVState, StateEstimate
from .models import (
    MotionModel,
    MeasurementModel,
    PositionMeasurementModel,
    RangeBearingRateMeasurementModel,
    measurement_model_for,
)
from .update import UpdateResult, unscented_update
from .consistency import NISMonitor, NISRecord
from .errors import (
    FilterError,
    NonPositiveDefiniteCovariance,
    SingularInnovationCovariance,
    NonMonotonicTimestamp,
)

__all__ = [
    "UnscentedKalmanFilter",
    "CTRVState",
    "StateEstimate",
    "MotionModel",
    "MeasurementModel",
    "PositionMeasurementModel",
    "RangeBearingRateMeasurementModel",
    "measurement_model_for",
    "UpdateResult",
    "unscented_update",
    "NISMonitor",
    "NISRecord",
    "FilterError",
    "NonPositiveDefiniteCovariance",
    "SingularInnovationCovariance",
    "NonMonotonicTimestamp",
]
