"""
Motion and measurement models for the unscented Kalman filter.
"""

import numpy as np
import math
from abc import ABC, abstractmethod
from typing import Dict, Optional

from ..math.constants import *
from ..math.utils import normalize_angle
from ..sensors.measurement import SensorType

class MotionModel:
    """
    Constant turn rate and velocity (CTRV) motion model.

    State: [px, py, v, yaw, yaw_rate]
    Augmented sigma column: [px, py, v, yaw, yaw_rate, nu_a, nu_yawdd]
    """

    @staticmethod
    def predict_sigma_point(sigma_point: np.ndarray, dt: float) -> np.ndarray:
        """
        Propagate one augmented sigma point over a time step.

        Args:
            sigma_point: Augmented column [px, py, v, yaw, yaw_rate, nu_a, nu_yawdd]
            dt: Time step in seconds

        Returns:
            Predicted state column [px, py, v, yaw, yaw_rate]
        """
        if dt < 0:
            raise ValueError(f"Time step must be non-negative, got {dt}")

        px, py, v, yaw, yaw_rate, nu_a, nu_yawdd = sigma_point

        # Position update, straight line when the turn rate vanishes
        if abs(yaw_rate) > YAW_RATE_EPSILON:
            px_p = px + v / yaw_rate * (math.sin(yaw + yaw_rate * dt) - math.sin(yaw))
            py_p = py + v / yaw_rate * (math.cos(yaw) - math.cos(yaw + yaw_rate * dt))
        else:
            px_p = px + v * dt * math.cos(yaw)
            py_p = py + v * dt * math.sin(yaw)

        v_p = v
        yaw_p = yaw + yaw_rate * dt
        yaw_rate_p = yaw_rate

        # Process noise
        px_p += 0.5 * nu_a * dt**2 * math.cos(yaw)
        py_p += 0.5 * nu_a * dt**2 * math.sin(yaw)
        v_p += nu_a * dt
        yaw_p += 0.5 * nu_yawdd * dt**2
        yaw_rate_p += nu_yawdd * dt

        return np.array([px_p, py_p, v_p, yaw_p, yaw_rate_p])

    @staticmethod
    def predict_sigma_points(Xsig_aug: np.ndarray, dt: float) -> np.ndarray:
        """
        Propagate every augmented sigma point.

        Args:
            Xsig_aug: 7 x n_sigma augmented sigma points
            dt: Time step in seconds

        Returns:
            5 x n_sigma predicted sigma points
        """
        Xsig_pred = np.empty((N_X, Xsig_aug.shape[1]))
        for i in range(Xsig_aug.shape[1]):
            Xsig_pred[:, i] = MotionModel.predict_sigma_point(Xsig_aug[:, i], dt)
        return Xsig_pred

class MeasurementModel(ABC):
    """
    Projection of predicted states into one sensor's observation space.
    """

    sensor_type: SensorType
    dimension: int

    @abstractmethod
    def project(self, Xsig: np.ndarray) -> np.ndarray:
        """
        Project state column(s) into measurement space.

        Args:
            Xsig: State vector (5,) or matrix of state columns (5, n)

        Returns:
            Measurement vector (n_z,) or matrix (n_z, n)
        """

    @abstractmethod
    def noise_covariance(self) -> np.ndarray:
        """Additive measurement noise covariance R (n_z x n_z)."""

    def residual(self, z: np.ndarray, z_ref: np.ndarray) -> np.ndarray:
        """
        Subtract two measurements (or columns of measurements).

        Args:
            z: Measurement(s)
            z_ref: Reference measurement(s), broadcast against z

        Returns:
            z - z_ref
        """
        return np.asarray(z, dtype=float) - np.asarray(z_ref, dtype=float)

class PositionMeasurementModel(MeasurementModel):
    """
    Linear position sensor (lidar) - directly observes [px, py].
    """

    sensor_type = SensorType.POSITION
    dimension = 2

    def __init__(self, std_px: float = STD_LASPX, std_py: float = STD_LASPY):
        self.std_px = std_px
        self.std_py = std_py
        self._R = np.diag([std_px**2, std_py**2])

    def project(self, Xsig: np.ndarray) -> np.ndarray:
        Xsig = np.asarray(Xsig, dtype=float)
        return Xsig[:2].copy()

    def noise_covariance(self) -> np.ndarray:
        return self._R.copy()

class RangeBearingRateMeasurementModel(MeasurementModel):
    """
    Nonlinear radar sensor observing [range, bearing, range rate].

    The range used as a divisor for the range rate is clamped to
    ``min_range`` so that states at the sensor origin project to a
    finite measurement.
    """

    sensor_type = SensorType.RANGE_BEARING_RATE
    dimension = 3
    BEARING_INDEX = 1

    def __init__(self, std_r: float = STD_RADR, std_phi: float = STD_RADPHI,
                 std_rd: float = STD_RADRD, min_range: float = MIN_RANGE):
        if min_range <= 0:
            raise ValueError(f"Minimum range must be positive, got {min_range}")

        self.std_r = std_r
        self.std_phi = std_phi
        self.std_rd = std_rd
        self.min_range = min_range
        self._R = np.diag([std_r**2, std_phi**2, std_rd**2])

    def project(self, Xsig: np.ndarray) -> np.ndarray:
        Xsig = np.asarray(Xsig, dtype=float)
        px, py, v, yaw = Xsig[0], Xsig[1], Xsig[2], Xsig[3]

        r = np.hypot(px, py)
        phi = np.arctan2(py, px)
        r_dot = (px * v * np.cos(yaw) + py * v * np.sin(yaw)) / np.maximum(r, self.min_range)

        return np.array([r, phi, r_dot])

    def noise_covariance(self) -> np.ndarray:
        return self._R.copy()

    def residual(self, z: np.ndarray, z_ref: np.ndarray) -> np.ndarray:
        diff = super().residual(z, z_ref)
        diff[self.BEARING_INDEX] = normalize_angle(diff[self.BEARING_INDEX])
        return diff

def measurement_model_for(sensor_type: SensorType,
                          measurement_noise: Optional[Dict[str, float]] = None) -> MeasurementModel:
    """
    Build the measurement model for a sensor type.

    Args:
        sensor_type: Sensor producing the measurements
        measurement_noise: Noise parameters (std_laspx, std_laspy,
            std_radr, std_radphi, std_radrd, min_range)

    Returns:
        Measurement model instance
    """
    params = measurement_noise or {}
    sensor_type = SensorType(sensor_type)

    if sensor_type is SensorType.POSITION:
        return PositionMeasurementModel(
            std_px=params.get('std_laspx', STD_LASPX),
            std_py=params.get('std_laspy', STD_LASPY)
        )

    elif sensor_type is SensorType.RANGE_BEARING_RATE:
        return RangeBearingRateMeasurementModel(
            std_r=params.get('std_radr', STD_RADR),
            std_phi=params.get('std_radphi', STD_RADPHI),
            std_rd=params.get('std_radrd', STD_RADRD),
            min_range=params.get('min_range', MIN_RANGE)
        )

    else:
        raise ValueError(f"Unknown sensor type: {sensor_type}")
