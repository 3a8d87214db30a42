"""
Unscented measurement update (Kalman gain correction).
"""

import numpy as np
from dataclasses import dataclass

from .errors import SingularInnovationCovariance
from .models import MeasurementModel
from ..math.constants import YAW_INDEX, MAX_CONDITION_NUMBER
from ..math.utils import normalize_angle

@dataclass(frozen=True)
class UpdateResult:
    """Corrected estimate and diagnostics from one measurement update."""

    x: np.ndarray
    P: np.ndarray
    nis: float
    innovation: np.ndarray
    z_pred: np.ndarray
    S: np.ndarray
    K: np.ndarray

def invert_innovation_covariance(S: np.ndarray) -> np.ndarray:
    """
    Invert the innovation covariance.

    Raises:
        SingularInnovationCovariance: If S is non-finite, singular or too
            ill-conditioned to invert reliably
    """
    if not np.all(np.isfinite(S)):
        raise SingularInnovationCovariance("Innovation covariance contains NaN or infinite values")

    cond = np.linalg.cond(S)
    if not np.isfinite(cond) or cond > MAX_CONDITION_NUMBER:
        raise SingularInnovationCovariance(f"Innovation covariance is ill-conditioned: cond={cond:.2e}")

    try:
        return np.linalg.inv(S)
    except np.linalg.LinAlgError as e:
        raise SingularInnovationCovariance(f"Innovation covariance is singular: {e}") from e

def unscented_update(Xsig_pred: np.ndarray, x_pred: np.ndarray, P_pred: np.ndarray,
                     weights: np.ndarray, model: MeasurementModel,
                     z: np.ndarray) -> UpdateResult:
    """
    Correct a predicted estimate with one measurement.

    Args:
        Xsig_pred: 5 x n_sigma predicted sigma points
        x_pred: Predicted state mean
        P_pred: Predicted state covariance
        weights: Sigma point weights
        model: Measurement model of the sensor that produced z
        z: Actual measurement

    Returns:
        UpdateResult with the corrected state, covariance and NIS

    Raises:
        SingularInnovationCovariance: If S cannot be inverted
    """
    z = np.asarray(z, dtype=float)
    if len(z) != model.dimension:
        raise ValueError(f"Measurement must have {model.dimension} elements, got {len(z)}")

    # Sigma points in measurement space and their mean
    Zsig = model.project(Xsig_pred)
    z_pred = Zsig @ weights

    z_diff = model.residual(Zsig, z_pred[:, np.newaxis])
    x_diff = Xsig_pred - x_pred[:, np.newaxis]
    x_diff[YAW_INDEX] = normalize_angle(x_diff[YAW_INDEX])

    # Innovation covariance and cross correlation
    S = (weights * z_diff) @ z_diff.T + model.noise_covariance()
    Tc = (weights * x_diff) @ z_diff.T

    S_inv = invert_innovation_covariance(S)
    K = Tc @ S_inv

    innovation = model.residual(z, z_pred)

    x = x_pred + K @ innovation
    x[YAW_INDEX] = normalize_angle(x[YAW_INDEX])

    P = P_pred - K @ S @ K.T
    P = 0.5 * (P + P.T)

    nis = float(innovation @ S_inv @ innovation)

    return UpdateResult(x=x, P=P, nis=nis, innovation=innovation, z_pred=z_pred, S=S, K=K)
