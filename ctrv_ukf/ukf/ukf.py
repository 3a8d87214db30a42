"""
Unscented Kalman Filter fusing position and range/bearing/range-rate sensors.
"""

import logging
import numpy as np
from typing import Optional, Dict, Any, Tuple

from .consistency import NISMonitor, NISRecord
from .errors import FilterError, NonPositiveDefiniteCovariance, NonMonotonicTimestamp
from .models import MotionModel, MeasurementModel, measurement_model_for
from .state import CTRVState, StateEstimate
from .unscented import (
    sigma_point_weights,
    generate_augmented_sigma_points,
    predict_mean_and_covariance,
)
from .update import UpdateResult, unscented_update
from ..math.constants import *
from ..math.utils import normalize_angle, polar_to_cartesian
from ..sensors.measurement import SensorType, MeasurementPackage

logger = logging.getLogger(__name__)

class UnscentedKalmanFilter:
    """
    Unscented Kalman Filter for a CTRV target observed by a position
    sensor and a range/bearing/range-rate sensor.

    The filter starts uninitialized. The first measurement sets the
    state directly; every later one runs a predict over the elapsed time
    followed by an update with the matching measurement model. A cycle is
    committed only when it completes, so a numerical failure leaves the
    previous estimate untouched.
    """

    def __init__(self,
                 process_noise: Dict[str, float] = None,
                 measurement_noise: Dict[str, float] = None,
                 use_position: bool = True,
                 use_range_bearing_rate: bool = True,
                 regularization: float = COVARIANCE_REGULARIZATION):
        """
        Initialize the Unscented Kalman Filter.

        Args:
            process_noise: Process noise parameters (std_a, std_yawdd)
            measurement_noise: Measurement noise parameters
            use_position: Update with position measurements
            use_range_bearing_rate: Update with range/bearing/range-rate measurements
            regularization: Diagonal loading applied when the augmented
                covariance cannot be factorized
        """
        # Noise parameters
        self.Q_params = {'std_a': STD_A, 'std_yawdd': STD_YAWDD}
        self.Q_params.update(process_noise or {})

        self.R_params = {
            'std_laspx': STD_LASPX,
            'std_laspy': STD_LASPY,
            'std_radr': STD_RADR,
            'std_radphi': STD_RADPHI,
            'std_radrd': STD_RADRD,
            'min_range': MIN_RANGE
        }
        self.R_params.update(measurement_noise or {})

        if regularization <= 0:
            raise ValueError(f"Regularization must be positive, got {regularization}")
        self.regularization = regularization

        # Models
        self.motion_model = MotionModel()
        self.measurement_models: Dict[SensorType, MeasurementModel] = {
            sensor_type: measurement_model_for(sensor_type, self.R_params)
            for sensor_type in SensorType
        }
        self.sensor_enabled = {
            SensorType.POSITION: use_position,
            SensorType.RANGE_BEARING_RATE: use_range_bearing_rate
        }

        # Sigma point parameters
        self.lam = LAMBDA
        self.weights = sigma_point_weights(N_AUG, self.lam)

        self.nis_monitor = NISMonitor()
        self.reset()

    @classmethod
    def from_config(cls, config) -> 'UnscentedKalmanFilter':
        """Create a filter from a Config instance."""
        return cls(
            process_noise=config.process_noise,
            measurement_noise=config.measurement_noise,
            use_position=config.use_position,
            use_range_bearing_rate=config.use_range_bearing_rate,
            regularization=config.regularization
        )

    @property
    def std_a(self) -> float:
        return self.Q_params['std_a']

    @property
    def std_yawdd(self) -> float:
        return self.Q_params['std_yawdd']

    def reset(self):
        """Return to the uninitialized state."""
        self.x = np.zeros(N_X)
        self.P = np.eye(N_X)
        self.Xsig_pred = np.zeros((N_X, N_SIGMA))
        self.previous_timestamp: Optional[int] = None
        self.is_initialized = False
        self._prediction_pending = False

        # Statistics
        self.prediction_count = 0
        self.update_counts = {sensor_type: 0 for sensor_type in SensorType}
        self.ignored_count = 0
        self.failed_cycle_count = 0
        self.nis_monitor.clear()

        logger.info("UKF reset")

    def initialize(self, meas_package: MeasurementPackage) -> StateEstimate:
        """
        Set the state directly from a first measurement.

        Args:
            meas_package: First measurement of the stream (any sensor)

        Returns:
            Estimate after initialization
        """
        z = meas_package.raw_measurements
        x = np.zeros(N_X)

        if meas_package.sensor_type is SensorType.RANGE_BEARING_RATE:
            rho, phi, rho_dot = z
            x[0], x[1] = polar_to_cartesian(rho, phi)
            # With yaw seeded at zero, v is the x component of the radial
            # velocity; its sign keeps an approaching target approaching
            x[2] = rho_dot * np.cos(phi)
        else:
            x[0], x[1] = z

        self.x = x
        self.P = np.eye(N_X)
        self.previous_timestamp = meas_package.timestamp
        self.is_initialized = True
        self._prediction_pending = False

        logger.info("UKF initialized from %s at t=%dus: %s",
                    meas_package.sensor_type.name, meas_package.timestamp,
                    CTRVState.from_vector(self.x))

        return self._estimate(meas_package)

    def process_measurement(self, meas_package: MeasurementPackage) -> StateEstimate:
        """
        Run one full filter cycle for a measurement.

        Args:
            meas_package: Next measurement, strictly later than the previous one

        Returns:
            Estimate after the cycle; nis is set when an update ran

        Raises:
            NonMonotonicTimestamp: If the record does not advance time
            NonPositiveDefiniteCovariance: If sigma points cannot be drawn
                even after regularization
            SingularInnovationCovariance: If the update cannot invert S
        """
        if not self.is_initialized:
            return self.initialize(meas_package)

        dt = self._time_step(meas_package.timestamp)
        sensor_type = meas_package.sensor_type

        try:
            x, P, Xsig_pred = self._predicted(dt)

            result = None
            if self.sensor_enabled[sensor_type]:
                result = unscented_update(Xsig_pred, x, P, self.weights,
                                          self.measurement_models[sensor_type],
                                          meas_package.raw_measurements)
        except FilterError as e:
            self.failed_cycle_count += 1
            logger.warning("Filter cycle at t=%dus failed, holding previous estimate: %s",
                           meas_package.timestamp, e)
            raise

        # Commit
        self.Xsig_pred = Xsig_pred
        self.previous_timestamp = meas_package.timestamp
        self.prediction_count += 1
        self._prediction_pending = False

        if result is None:
            self.x, self.P = x, P
            self.ignored_count += 1
            logger.warning("%s measurement ignored (sensor disabled), dt=%.3fs",
                           sensor_type.name, dt)
            return self._estimate(meas_package)

        self.x, self.P = result.x, result.P
        self._record_update(meas_package, result)
        logger.debug("%s update, dt=%.3fs, NIS=%.3f", sensor_type.name, dt, result.nis)

        return self._estimate(meas_package, result.nis)

    def predict(self, dt: float) -> CTRVState:
        """
        Prediction step of the filter.

        Advances the filter clock by dt, so a later process_measurement()
        only predicts over the remaining interval.

        Args:
            dt: Time step in seconds

        Returns:
            Predicted state
        """
        if dt < 0:
            raise ValueError(f"Time step must be non-negative, got {dt}")

        self.x, self.P, self.Xsig_pred = self._predicted(dt)
        self.prediction_count += 1
        if self.previous_timestamp is not None:
            self.previous_timestamp += int(round(dt * MICROSECONDS_PER_SECOND))
        self._prediction_pending = True

        return CTRVState.from_vector(self.x)

    def update(self, meas_package: MeasurementPackage) -> UpdateResult:
        """
        Update step with a measurement, using the sigma points of the
        preceding predict() call.

        Args:
            meas_package: Measurement of either sensor

        Returns:
            Update result including the NIS
        """
        if not self._prediction_pending:
            raise RuntimeError("update() requires a preceding predict()")

        result = unscented_update(self.Xsig_pred, self.x, self.P, self.weights,
                                  self.measurement_models[meas_package.sensor_type],
                                  meas_package.raw_measurements)

        self.x, self.P = result.x, result.P
        self._prediction_pending = False
        self._record_update(meas_package, result)

        return result

    def _time_step(self, timestamp: int) -> float:
        """Elapsed time since the last committed record, in seconds."""
        if timestamp <= self.previous_timestamp:
            raise NonMonotonicTimestamp(timestamp, self.previous_timestamp)
        return (timestamp - self.previous_timestamp) / MICROSECONDS_PER_SECOND

    def _predicted(self, dt: float) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Compute the predicted mean, covariance and sigma points without
        modifying the filter.
        """
        try:
            Xsig_aug = generate_augmented_sigma_points(self.x, self.P, self.std_a,
                                                       self.std_yawdd, self.lam)
        except NonPositiveDefiniteCovariance as e:
            logger.warning("Regularizing covariance by %.1e: %s", self.regularization, e)
            Xsig_aug = generate_augmented_sigma_points(self.x, self.P, self.std_a,
                                                       self.std_yawdd, self.lam,
                                                       self.regularization)

        Xsig_pred = self.motion_model.predict_sigma_points(Xsig_aug, dt)
        x, P = predict_mean_and_covariance(Xsig_pred, self.weights)
        x[YAW_INDEX] = normalize_angle(x[YAW_INDEX])

        return x, P, Xsig_pred

    def _record_update(self, meas_package: MeasurementPackage, result: UpdateResult):
        self.update_counts[meas_package.sensor_type] += 1
        self.nis_monitor.add(NISRecord(
            sensor_type=meas_package.sensor_type,
            timestamp=meas_package.timestamp,
            nis=result.nis
        ))

    def _estimate(self, meas_package: MeasurementPackage, nis: Optional[float] = None) -> StateEstimate:
        return StateEstimate(
            timestamp=meas_package.timestamp,
            sensor_type=meas_package.sensor_type,
            x=self.x.copy(),
            P=self.P.copy(),
            nis=nis,
            updated=nis is not None
        )

    def get_current_state(self) -> CTRVState:
        """Get current estimated state."""
        return CTRVState.from_vector(self.x, self.previous_timestamp)

    def get_uncertainty(self) -> np.ndarray:
        """Get current state uncertainty (standard deviations)."""
        return np.sqrt(np.clip(np.diag(self.P), 0.0, None))

    def get_position_uncertainty(self) -> float:
        """Get position uncertainty (2D RMS error)."""
        pos_var = self.P[0, 0] + self.P[1, 1]
        return float(np.sqrt(max(pos_var, 0.0)))

    def get_statistics(self) -> Dict[str, Any]:
        """Get filter statistics."""
        return {
            'predictions': self.prediction_count,
            'position_updates': self.update_counts[SensorType.POSITION],
            'range_bearing_rate_updates': self.update_counts[SensorType.RANGE_BEARING_RATE],
            'ignored_measurements': self.ignored_count,
            'failed_cycles': self.failed_cycle_count,
            'position_uncertainty': self.get_position_uncertainty(),
            'state_uncertainty': self.get_uncertainty().tolist(),
            'nis': self.nis_monitor.summary()
        }
