#!/usr/bin/env python3
"""
Unit tests for the unscented Kalman filter components.
"""

import unittest
import numpy as np
import sys
import os

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ctrv_ukf.math import normalize_angle, polar_to_cartesian
from ctrv_ukf.math.constants import N_X, N_AUG, N_SIGMA, LAMBDA, CHI2_95
from ctrv_ukf.sensors import SensorType, MeasurementPackage
from ctrv_ukf.ukf import (
    CTRVState,
    MotionModel,
    PositionMeasurementModel,
    RangeBearingRateMeasurementModel,
    measurement_model_for,
    unscented_update,
    NISMonitor,
    NISRecord,
    NonPositiveDefiniteCovariance,
    SingularInnovationCovariance,
)
from ctrv_ukf.ukf.unscented import (
    sigma_point_weights,
    augment_state,
    generate_augmented_sigma_points,
    predict_mean_and_covariance,
)

def random_covariance(rng, n=N_X, scale=0.2, floor=0.1):
    """Random symmetric positive definite matrix."""
    M = rng.standard_normal((n, n)) * scale
    return M @ M.T + floor * np.eye(n)

class TestNormalizeAngle(unittest.TestCase):
    """Test angle normalization."""

    def test_range_over_many_turns(self):
        """Angles spanning (-10pi, 10pi) land in (-pi, pi]."""
        rng = np.random.default_rng(0)
        angles = rng.uniform(-10 * np.pi, 10 * np.pi, 10000)

        wrapped = normalize_angle(angles)

        self.assertTrue(np.all(wrapped > -np.pi))
        self.assertTrue(np.all(wrapped <= np.pi))
        np.testing.assert_allclose(np.cos(wrapped), np.cos(angles), atol=1e-9)
        np.testing.assert_allclose(np.sin(wrapped), np.sin(angles), atol=1e-9)

    def test_boundaries(self):
        """Both ends of the circle map to +pi."""
        self.assertEqual(normalize_angle(np.pi), np.pi)
        self.assertEqual(normalize_angle(-np.pi), np.pi)
        self.assertAlmostEqual(normalize_angle(3 * np.pi), np.pi)
        self.assertEqual(normalize_angle(0.0), 0.0)
        self.assertAlmostEqual(normalize_angle(-0.5), -0.5)

    def test_scalar_returns_float(self):
        self.assertIsInstance(normalize_angle(7.0), float)

    def test_polar_to_cartesian(self):
        x, y = polar_to_cartesian(2.0, np.pi / 2)
        self.assertAlmostEqual(x, 0.0)
        self.assertAlmostEqual(y, 2.0)

class TestCTRVState(unittest.TestCase):
    """Test CTRVState class."""

    def test_state_vector_property(self):
        """Test state vector conversion."""
        state = CTRVState(px=1.0, py=2.0, v=3.0, yaw=0.5, yaw_rate=0.1)

        np.testing.assert_array_equal(state.state_vector, [1.0, 2.0, 3.0, 0.5, 0.1])

        state.state_vector = np.array([10.0, 20.0, 30.0, 1.5, 0.2])
        self.assertEqual(state.px, 10.0)
        self.assertEqual(state.py, 20.0)
        self.assertEqual(state.v, 30.0)
        self.assertEqual(state.yaw, 1.5)
        self.assertEqual(state.yaw_rate, 0.2)

    def test_wrong_length_rejected(self):
        state = CTRVState()
        with self.assertRaises(ValueError):
            state.state_vector = np.zeros(6)

    def test_velocity(self):
        """Cartesian velocity follows the heading."""
        state = CTRVState(v=2.0, yaw=np.pi / 2)
        np.testing.assert_allclose(state.velocity, [0.0, 2.0], atol=1e-12)
        self.assertAlmostEqual(state.speed, 2.0)

    def test_copy(self):
        original = CTRVState(px=1.0, py=2.0, v=3.0, yaw=0.5, yaw_rate=0.1, timestamp=7)
        copy = original.copy()

        self.assertEqual(copy, original)
        copy.px = 100.0
        self.assertNotEqual(copy.px, original.px)

class TestMeasurementPackage(unittest.TestCase):
    """Test measurement record validation."""

    def test_position_record(self):
        package = MeasurementPackage(SensorType.POSITION, 1000, [1.0, 2.0])
        self.assertIsInstance(package.raw_measurements, np.ndarray)
        self.assertAlmostEqual(package.timestamp_s, 0.001)

    def test_sensor_type_from_value(self):
        package = MeasurementPackage("range_bearing_rate", 0, [1.0, 0.0, 0.0])
        self.assertIs(package.sensor_type, SensorType.RANGE_BEARING_RATE)

    def test_wrong_dimension(self):
        with self.assertRaises(ValueError):
            MeasurementPackage(SensorType.POSITION, 0, [1.0, 2.0, 3.0])
        with self.assertRaises(ValueError):
            MeasurementPackage(SensorType.RANGE_BEARING_RATE, 0, [1.0, 2.0])

    def test_non_finite_rejected(self):
        with self.assertRaises(ValueError):
            MeasurementPackage(SensorType.POSITION, 0, [np.nan, 2.0])

class TestSigmaPoints(unittest.TestCase):
    """Test sigma point generation and recombination."""

    def setUp(self):
        self.rng = np.random.default_rng(1)
        self.x = np.array([1.0, -2.0, 3.0, 0.4, 0.05])
        self.P = random_covariance(self.rng)

    def test_weights_sum_to_one(self):
        """Weights sum to one for any spreading configuration."""
        for n_aug, lam in [(7, LAMBDA), (5, -2), (3, 0), (7, 1.5), (2, 10)]:
            weights = sigma_point_weights(n_aug, lam)
            self.assertEqual(len(weights), 2 * n_aug + 1)
            self.assertAlmostEqual(weights.sum(), 1.0, places=12)

    def test_default_weights(self):
        weights = sigma_point_weights()
        self.assertAlmostEqual(weights[0], LAMBDA / (LAMBDA + N_AUG))
        np.testing.assert_allclose(weights[1:], 0.5 / (LAMBDA + N_AUG))

    def test_augmentation(self):
        x_aug, P_aug = augment_state(self.x, self.P, 0.5, 1.0)

        np.testing.assert_array_equal(x_aug[:N_X], self.x)
        np.testing.assert_array_equal(x_aug[N_X:], [0.0, 0.0])
        np.testing.assert_array_equal(P_aug[:N_X, :N_X], self.P)
        self.assertAlmostEqual(P_aug[5, 5], 0.25)
        self.assertAlmostEqual(P_aug[6, 6], 1.0)
        self.assertTrue(np.all(P_aug[:N_X, N_X:] == 0.0))

    def test_sigma_point_layout(self):
        """Columns are the mean and symmetric scaled Cholesky offsets."""
        Xsig_aug = generate_augmented_sigma_points(self.x, self.P, 0.5, 1.0)
        x_aug, P_aug = augment_state(self.x, self.P, 0.5, 1.0)
        L = np.linalg.cholesky(P_aug)

        self.assertEqual(Xsig_aug.shape, (N_AUG, N_SIGMA))
        np.testing.assert_allclose(Xsig_aug[:, 0], x_aug)
        for i in range(N_AUG):
            np.testing.assert_allclose(Xsig_aug[:, i + 1] - x_aug, np.sqrt(3.0) * L[:, i])
            np.testing.assert_allclose(Xsig_aug[:, i + 1 + N_AUG] - x_aug, -np.sqrt(3.0) * L[:, i])

    def test_mean_and_covariance_round_trip(self):
        """Recombining raw sigma points reproduces the augmented Gaussian."""
        weights = sigma_point_weights()
        Xsig_aug = generate_augmented_sigma_points(self.x, self.P, 0.5, 1.0)
        x_aug, P_aug = augment_state(self.x, self.P, 0.5, 1.0)

        x_rec, P_rec = predict_mean_and_covariance(Xsig_aug, weights, angle_index=None)

        np.testing.assert_allclose(x_rec, x_aug, atol=1e-12)
        np.testing.assert_allclose(P_rec, P_aug, atol=1e-12)

    def test_not_positive_definite(self):
        """A non positive definite covariance raises instead of producing NaNs."""
        with self.assertRaises(NonPositiveDefiniteCovariance):
            generate_augmented_sigma_points(self.x, -np.eye(N_X), 0.5, 1.0)

        with self.assertRaises(NonPositiveDefiniteCovariance):
            generate_augmented_sigma_points(self.x, np.full((N_X, N_X), np.nan), 0.5, 1.0)

    def test_regularization_loads_noise_block(self):
        """Zero process noise factorizes once the augmented diagonal is loaded."""
        with self.assertRaises(NonPositiveDefiniteCovariance):
            generate_augmented_sigma_points(self.x, np.eye(N_X), 0.5, 0.0)

        _, P_aug = augment_state(self.x, np.eye(N_X), 0.5, 0.0, regularization=1e-6)
        self.assertAlmostEqual(P_aug[N_X + 1, N_X + 1], 1e-6)
        self.assertAlmostEqual(P_aug[N_X, N_X], 0.25 + 1e-6)

        Xsig_aug = generate_augmented_sigma_points(self.x, np.eye(N_X), 0.5, 0.0,
                                                   regularization=1e-6)
        self.assertEqual(Xsig_aug.shape, (N_AUG, N_SIGMA))
        self.assertTrue(np.all(np.isfinite(Xsig_aug)))

    def test_predicted_covariance_is_psd(self):
        """Predicted covariance stays symmetric PSD over random valid inputs."""
        weights = sigma_point_weights()

        for _ in range(50):
            x = np.array([
                self.rng.uniform(-10, 10),
                self.rng.uniform(-10, 10),
                self.rng.uniform(0, 5),
                self.rng.uniform(-np.pi, np.pi),
                self.rng.uniform(-0.5, 0.5)
            ])
            P = random_covariance(self.rng)
            dt = self.rng.uniform(0, 0.1)

            Xsig_aug = generate_augmented_sigma_points(x, P, 0.5, 1.0)
            Xsig_pred = MotionModel.predict_sigma_points(Xsig_aug, dt)
            _, P_pred = predict_mean_and_covariance(Xsig_pred, weights)

            np.testing.assert_allclose(P_pred, P_pred.T, atol=1e-12)
            self.assertGreaterEqual(np.linalg.eigvalsh(P_pred).min(), -1e-9)

class TestMotionModel(unittest.TestCase):
    """Test CTRV propagation."""

    def test_straight_line(self):
        """Zero turn rate drives straight along the heading."""
        sigma = np.array([0.0, 0.0, 2.0, 0.0, 0.0, 0.0, 0.0])
        predicted = MotionModel.predict_sigma_point(sigma, 1.0)
        np.testing.assert_allclose(predicted, [2.0, 0.0, 2.0, 0.0, 0.0])

    def test_quarter_turn(self):
        """A quarter circle in one second at unit speed."""
        sigma = np.array([0.0, 0.0, 1.0, 0.0, np.pi / 2, 0.0, 0.0])
        predicted = MotionModel.predict_sigma_point(sigma, 1.0)

        np.testing.assert_allclose(predicted[:2], [2 / np.pi, 2 / np.pi])
        self.assertAlmostEqual(predicted[2], 1.0)
        self.assertAlmostEqual(predicted[3], np.pi / 2)
        self.assertAlmostEqual(predicted[4], np.pi / 2)

    def test_noise_injection(self):
        sigma = np.array([0.0, 0.0, 0.0, 0.0, 0.0, 2.0, 1.0])
        predicted = MotionModel.predict_sigma_point(sigma, 0.5)
        np.testing.assert_allclose(predicted, [0.25, 0.0, 1.0, 0.125, 0.5])

    def test_zero_time_step(self):
        sigma = np.array([1.0, 2.0, 3.0, 0.4, 0.3, 5.0, 5.0])
        predicted = MotionModel.predict_sigma_point(sigma, 0.0)
        np.testing.assert_allclose(predicted, sigma[:N_X])

    def test_negative_time_step(self):
        with self.assertRaises(ValueError):
            MotionModel.predict_sigma_point(np.zeros(N_AUG), -0.1)

    def test_small_turn_rate_limit(self):
        """The turning branch converges to the straight line as the turn rate vanishes."""
        v, yaw, dt = 10.0, 0.3, 0.1
        straight = np.array([v * dt * np.cos(yaw), v * dt * np.sin(yaw)])

        errors = []
        for yaw_rate in [1e-1, 1e-2, 2e-3, 1.0001e-3]:
            sigma = np.array([0.0, 0.0, v, yaw, yaw_rate, 0.0, 0.0])
            predicted = MotionModel.predict_sigma_point(sigma, dt)
            errors.append(np.linalg.norm(predicted[:2] - straight))

        self.assertTrue(all(a > b for a, b in zip(errors, errors[1:])))
        self.assertLess(errors[-1], 1e-4)

    def test_predict_sigma_points_shape(self):
        Xsig_aug = np.zeros((N_AUG, N_SIGMA))
        Xsig_aug[2] = 1.0
        Xsig_pred = MotionModel.predict_sigma_points(Xsig_aug, 0.1)

        self.assertEqual(Xsig_pred.shape, (N_X, N_SIGMA))
        np.testing.assert_allclose(Xsig_pred[0], 0.1)

class TestMeasurementModels(unittest.TestCase):
    """Test position and range/bearing/range-rate models."""

    def test_position_projection(self):
        model = PositionMeasurementModel()
        state = np.array([1.0, 2.0, 3.0, 4.0, 5.0])

        np.testing.assert_array_equal(model.project(state), [1.0, 2.0])
        self.assertEqual(model.project(np.tile(state[:, None], (1, N_SIGMA))).shape, (2, N_SIGMA))
        self.assertEqual(model.dimension, 2)

    def test_position_noise(self):
        R = PositionMeasurementModel(std_px=0.15, std_py=0.3).noise_covariance()
        np.testing.assert_allclose(R, np.diag([0.0225, 0.09]))

    def test_range_bearing_rate_projection(self):
        model = RangeBearingRateMeasurementModel()
        state = np.array([3.0, 4.0, 2.0, np.arctan2(4.0, 3.0), 0.0])

        z = model.project(state)

        self.assertAlmostEqual(z[0], 5.0)
        self.assertAlmostEqual(z[1], np.arctan2(4.0, 3.0))
        self.assertAlmostEqual(z[2], 2.0)

    def test_range_bearing_rate_noise(self):
        R = RangeBearingRateMeasurementModel(std_r=0.3, std_phi=0.03, std_rd=0.3).noise_covariance()
        np.testing.assert_allclose(R, np.diag([0.09, 0.0009, 0.09]))

    def test_degenerate_range_is_finite(self):
        """States at the sensor origin project to finite measurements."""
        model = RangeBearingRateMeasurementModel(min_range=1e-3)

        z = model.project(np.array([0.0, 0.0, 1.0, 0.0, 0.0]))
        self.assertTrue(np.all(np.isfinite(z)))
        self.assertEqual(z[2], 0.0)

        z = model.project(np.array([1e-5, 0.0, 1.0, 0.0, 0.0]))
        self.assertAlmostEqual(z[0], 1e-5)
        self.assertAlmostEqual(z[2], 1e-2)

    def test_invalid_min_range(self):
        with self.assertRaises(ValueError):
            RangeBearingRateMeasurementModel(min_range=0.0)

    def test_bearing_residual_wraps(self):
        model = RangeBearingRateMeasurementModel()

        diff = model.residual([1.0, np.pi - 0.1, 0.0], [1.0, -np.pi + 0.1, 0.0])
        self.assertAlmostEqual(diff[1], -0.2)

        rng = np.random.default_rng(2)
        for angle in rng.uniform(-10 * np.pi, 10 * np.pi, 200):
            diff = model.residual([1.0, angle, 0.0], [0.5, 0.0, 0.0])
            self.assertGreater(diff[1], -np.pi)
            self.assertLessEqual(diff[1], np.pi)
            self.assertAlmostEqual(diff[0], 0.5)

    def test_position_residual_is_plain(self):
        diff = PositionMeasurementModel().residual([10.0, -10.0], [0.0, 0.0])
        np.testing.assert_array_equal(diff, [10.0, -10.0])

    def test_factory(self):
        model = measurement_model_for(SensorType.RANGE_BEARING_RATE, {'std_radr': 1.0})
        self.assertIsInstance(model, RangeBearingRateMeasurementModel)
        self.assertAlmostEqual(model.noise_covariance()[0, 0], 1.0)
        self.assertAlmostEqual(model.noise_covariance()[1, 1], 0.03**2)

        model = measurement_model_for(SensorType.POSITION)
        self.assertIsInstance(model, PositionMeasurementModel)

class TestUnscentedUpdate(unittest.TestCase):
    """Test the measurement update."""

    def setUp(self):
        self.weights = sigma_point_weights()
        x = np.array([1.0, 1.0, 1.0, 0.1, 0.01])
        P = 0.5 * np.eye(N_X)
        Xsig_aug = generate_augmented_sigma_points(x, P, 0.5, 1.0)
        self.Xsig_pred = MotionModel.predict_sigma_points(Xsig_aug, 0.1)
        self.x_pred, self.P_pred = predict_mean_and_covariance(self.Xsig_pred, self.weights)

    def test_position_update(self):
        z = self.x_pred[:2] + np.array([0.3, -0.2])

        result = unscented_update(self.Xsig_pred, self.x_pred, self.P_pred, self.weights,
                                  PositionMeasurementModel(), z)

        self.assertEqual(result.K.shape, (N_X, 2))
        self.assertEqual(result.S.shape, (2, 2))
        np.testing.assert_allclose(result.P, result.P.T)
        self.assertLess(np.trace(result.P), np.trace(self.P_pred))
        self.assertGreaterEqual(result.nis, 0.0)

        # Moves toward the measurement without overshooting it
        move = result.x[:2] - self.x_pred[:2]
        np.testing.assert_array_less(np.zeros(2), move * np.sign(z - self.x_pred[:2]))
        np.testing.assert_array_less(np.abs(move), np.abs(z - self.x_pred[:2]))

    def test_nis_matches_definition(self):
        z = self.x_pred[:2] + np.array([0.1, 0.1])
        result = unscented_update(self.Xsig_pred, self.x_pred, self.P_pred, self.weights,
                                  PositionMeasurementModel(), z)

        expected = result.innovation @ np.linalg.inv(result.S) @ result.innovation
        self.assertAlmostEqual(result.nis, expected)

    def test_range_bearing_rate_update(self):
        model = RangeBearingRateMeasurementModel()
        z = model.project(self.x_pred) + np.array([0.1, 0.01, -0.1])

        result = unscented_update(self.Xsig_pred, self.x_pred, self.P_pred, self.weights, model, z)

        self.assertEqual(result.K.shape, (N_X, 3))
        self.assertTrue(np.all(np.isfinite(result.x)))
        self.assertGreater(result.x[3], -np.pi)
        self.assertLessEqual(result.x[3], np.pi)
        self.assertLess(np.trace(result.P), np.trace(self.P_pred))

    def test_bearing_innovation_wraps(self):
        """A measurement across the +-pi seam produces a small innovation."""
        x = np.array([-5.0, 0.01, 0.0, 0.0, 0.0])
        Xsig_aug = generate_augmented_sigma_points(x, 1e-6 * np.eye(N_X), 0.5, 1.0)
        Xsig_pred = MotionModel.predict_sigma_points(Xsig_aug, 0.1)
        x_pred, P_pred = predict_mean_and_covariance(Xsig_pred, self.weights)

        z = np.array([5.0, -np.pi + 0.001, 0.0])
        result = unscented_update(Xsig_pred, x_pred, P_pred, self.weights,
                                  RangeBearingRateMeasurementModel(), z)

        self.assertLess(abs(result.innovation[1]), 0.1)

    def test_singular_innovation_covariance(self):
        """Zero spread and zero noise give a singular S."""
        Xsig_pred = np.tile(self.x_pred[:, None], (1, N_SIGMA))
        model = PositionMeasurementModel(std_px=0.0, std_py=0.0)

        with self.assertRaises(SingularInnovationCovariance):
            unscented_update(Xsig_pred, self.x_pred, self.P_pred, self.weights, model,
                             np.array([1.0, 1.0]))

    def test_wrong_measurement_length(self):
        with self.assertRaises(ValueError):
            unscented_update(self.Xsig_pred, self.x_pred, self.P_pred, self.weights,
                             PositionMeasurementModel(), np.zeros(3))

class TestNISMonitor(unittest.TestCase):
    """Test NIS bookkeeping."""

    def test_summary(self):
        monitor = NISMonitor()
        for i, nis in enumerate([1.0, 2.0, 3.0, 10.0]):
            monitor.add(NISRecord(SensorType.POSITION, i, nis))
        monitor.add(NISRecord(SensorType.RANGE_BEARING_RATE, 5, 8.0))

        self.assertAlmostEqual(monitor.mean(SensorType.POSITION), 4.0)
        self.assertAlmostEqual(monitor.fraction_above_threshold(SensorType.POSITION), 0.25)
        self.assertAlmostEqual(monitor.fraction_above_threshold(SensorType.RANGE_BEARING_RATE), 1.0)

        summary = monitor.summary()
        self.assertEqual(summary['position']['count'], 4)
        self.assertEqual(summary['range_bearing_rate']['threshold'], CHI2_95[3])

    def test_empty(self):
        monitor = NISMonitor()
        self.assertIsNone(monitor.mean(SensorType.POSITION))
        self.assertIsNone(monitor.fraction_above_threshold(SensorType.POSITION))
        self.assertEqual(len(monitor.values()), 0)

    def test_record_threshold(self):
        record = NISRecord(SensorType.RANGE_BEARING_RATE, 0, 7.9)
        self.assertAlmostEqual(record.threshold, 7.815)
        self.assertTrue(record.exceeds_threshold)

    def test_history_is_bounded(self):
        """Old records are dropped while the running totals cover every update."""
        monitor = NISMonitor(max_records=100)
        for i in range(5000):
            monitor.add(NISRecord(SensorType.POSITION, i, 10.0 if i % 10 == 0 else 1.0))

        self.assertEqual(len(monitor.records), 100)
        self.assertEqual(monitor.records[0].timestamp, 4900)
        self.assertEqual(monitor.count(SensorType.POSITION), 5000)
        self.assertAlmostEqual(monitor.mean(SensorType.POSITION), 1.9)
        self.assertAlmostEqual(monitor.fraction_above_threshold(SensorType.POSITION), 0.1)
        self.assertEqual(monitor.summary()['position']['count'], 5000)

        monitor.clear()
        self.assertEqual(len(monitor.records), 0)
        self.assertEqual(monitor.count(SensorType.POSITION), 0)

    def test_invalid_max_records(self):
        with self.assertRaises(ValueError):
            NISMonitor(max_records=0)

if __name__ == '__main__':
    unittest.main()
