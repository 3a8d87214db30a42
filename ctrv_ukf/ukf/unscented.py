"""
Sigma point sampling and recombination for the unscented transform.
"""

import numpy as np
from typing import Optional, Tuple

from .errors import NonPositiveDefiniteCovariance
from ..math.constants import N_X, N_AUG, LAMBDA, YAW_INDEX
from ..math.utils import normalize_angle

def sigma_point_weights(n_aug: int = N_AUG, lam: Optional[float] = None) -> np.ndarray:
    """
    Compute the weights used to recombine 2*n_aug+1 sigma points.

    Args:
        n_aug: Augmented state dimension
        lam: Spreading parameter (defaults to 3 - n_aug)

    Returns:
        Weight vector of length 2*n_aug+1
    """
    if lam is None:
        lam = 3 - n_aug
    if lam + n_aug == 0:
        raise ValueError(f"Spreading parameter {lam} cancels augmented dimension {n_aug}")

    weights = np.full(2 * n_aug + 1, 0.5 / (lam + n_aug))
    weights[0] = lam / (lam + n_aug)
    return weights

def augment_state(x: np.ndarray, P: np.ndarray,
                  std_a: float, std_yawdd: float,
                  regularization: float = 0.0) -> Tuple[np.ndarray, np.ndarray]:
    """
    Extend state and covariance with the two process noise terms.

    Args:
        x: State vector [px, py, v, yaw, yaw_rate]
        P: 5x5 state covariance
        std_a: Longitudinal acceleration noise standard deviation
        std_yawdd: Yaw acceleration noise standard deviation
        regularization: Diagonal loading added to the whole augmented covariance

    Returns:
        (x_aug, P_aug) of shapes (7,) and (7, 7)
    """
    x_aug = np.zeros(N_AUG)
    x_aug[:N_X] = x

    P_aug = np.zeros((N_AUG, N_AUG))
    P_aug[:N_X, :N_X] = P
    P_aug[N_X, N_X] = std_a ** 2
    P_aug[N_X + 1, N_X + 1] = std_yawdd ** 2
    if regularization:
        P_aug += regularization * np.eye(N_AUG)

    return x_aug, P_aug

def generate_augmented_sigma_points(x: np.ndarray, P: np.ndarray,
                                    std_a: float, std_yawdd: float,
                                    lam: float = LAMBDA,
                                    regularization: float = 0.0) -> np.ndarray:
    """
    Generate augmented sigma points around the current estimate.

    Column 0 is the augmented mean, columns 1..n_aug and n_aug+1..2*n_aug
    are the mean plus and minus the scaled columns of the lower Cholesky
    factor of the augmented covariance.

    Args:
        x: State vector
        P: State covariance
        std_a: Longitudinal acceleration noise standard deviation
        std_yawdd: Yaw acceleration noise standard deviation
        lam: Spreading parameter
        regularization: Diagonal loading of the augmented covariance, used
            when the unloaded matrix cannot be factorized

    Returns:
        7x15 matrix of augmented sigma points

    Raises:
        NonPositiveDefiniteCovariance: If the augmented covariance cannot
            be factorized
    """
    x_aug, P_aug = augment_state(x, P, std_a, std_yawdd, regularization)
    n_aug = len(x_aug)

    if not np.all(np.isfinite(P_aug)):
        raise NonPositiveDefiniteCovariance("Augmented covariance contains NaN or infinite values")

    try:
        L = np.linalg.cholesky(P_aug)
    except np.linalg.LinAlgError as e:
        raise NonPositiveDefiniteCovariance(
            f"Augmented covariance is not positive definite: {e}"
        ) from e

    spread = np.sqrt(lam + n_aug) * L

    Xsig_aug = np.empty((n_aug, 2 * n_aug + 1))
    Xsig_aug[:, 0] = x_aug
    Xsig_aug[:, 1:n_aug + 1] = x_aug[:, np.newaxis] + spread
    Xsig_aug[:, n_aug + 1:] = x_aug[:, np.newaxis] - spread

    return Xsig_aug

def predict_mean_and_covariance(Xsig_pred: np.ndarray, weights: np.ndarray,
                                angle_index: int = YAW_INDEX) -> Tuple[np.ndarray, np.ndarray]:
    """
    Collapse propagated sigma points into a mean and covariance.

    The angle row of every deviation is normalized before the outer
    products are accumulated.

    Args:
        Xsig_pred: n x (2*n_aug+1) predicted sigma points
        weights: Sigma point weights
        angle_index: Row holding an angle, or None

    Returns:
        (x, P) predicted mean and covariance
    """
    x = Xsig_pred @ weights

    x_diff = Xsig_pred - x[:, np.newaxis]
    if angle_index is not None:
        x_diff[angle_index] = normalize_angle(x_diff[angle_index])

    P = (weights * x_diff) @ x_diff.T
    P = 0.5 * (P + P.T)

    return x, P
