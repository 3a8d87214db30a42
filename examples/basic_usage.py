#!/usr/bin/env python3
"""
Basic usage example of the unscented Kalman filter.

This example feeds simulated position (lidar) and range/bearing/range-rate
(radar) measurements of a turning object through the filter.
"""

import sys
import os
import logging
import numpy as np

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from ctrv_ukf import UnscentedKalmanFilter, SensorType, MeasurementPackage, Config
from ctrv_ukf.ukf import FilterError

def simulate_object_motion(duration=20.0, dt=0.05, seed=0):
    """
    Simulate an object moving on a circle, observed by alternating sensors.

    Args:
        duration: Simulation duration in seconds
        dt: Time between measurements in seconds
        seed: Random seed for the measurement noise

    Yields:
        (truth, measurement) tuples where truth is [px, py, v, yaw, yaw_rate]
    """
    rng = np.random.default_rng(seed)

    # Object motion parameters
    speed = 5.0         # m/s
    turn_radius = 25.0  # meters
    yaw_rate = speed / turn_radius

    # Noise parameters (match the filter defaults)
    lidar_noise = 0.15
    radar_noise = np.array([0.3, 0.03, 0.3])

    t = 0.0
    k = 0
    while t < duration:
        yaw = yaw_rate * t
        px = 10.0 + turn_radius * np.sin(yaw)
        py = 5.0 + turn_radius * (1 - np.cos(yaw))
        vx = speed * np.cos(yaw)
        vy = speed * np.sin(yaw)
        truth = np.array([px, py, speed, yaw, yaw_rate])

        timestamp = int(round(t * 1e6))

        if k % 2 == 0:
            z = np.array([px, py]) + rng.normal(0, lidar_noise, 2)
            measurement = MeasurementPackage(SensorType.POSITION, timestamp, z)
        else:
            rho = np.hypot(px, py)
            z = np.array([rho, np.arctan2(py, px), (px * vx + py * vy) / rho])
            z += rng.normal(0, radar_noise)
            measurement = MeasurementPackage(SensorType.RANGE_BEARING_RATE, timestamp, z)

        yield truth, measurement

        k += 1
        t = k * dt

def main():
    """Main example function."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    print("CTRV Unscented Kalman Filter - Basic Usage Example")
    print("=" * 50)

    config = Config(sys.argv[1] if len(sys.argv) > 1 else None)
    ukf = UnscentedKalmanFilter.from_config(config)

    print("Starting simulation (circular motion, 20 seconds)...")

    errors = []
    last_print_time = -np.inf
    print_interval = 5.0  # Print status every 5 seconds

    for truth, measurement in simulate_object_motion():
        try:
            estimate = ukf.process_measurement(measurement)
        except FilterError as e:
            print(f"Skipping measurement at {measurement.timestamp_s:.2f}s: {e}")
            continue

        errors.append(estimate.x[:2] - truth[:2])

        if measurement.timestamp_s - last_print_time >= print_interval:
            print_status(estimate, truth, ukf)
            last_print_time = measurement.timestamp_s

    print("\nSimulation completed!")

    rmse = np.sqrt(np.mean(np.square(errors), axis=0))
    stats = ukf.get_statistics()
    print("\n=== Final Statistics ===")
    print(f"Predictions: {stats['predictions']}")
    print(f"Position updates: {stats['position_updates']}")
    print(f"Range/bearing/rate updates: {stats['range_bearing_rate_updates']}")
    print(f"Position RMSE: [{rmse[0]:.3f}, {rmse[1]:.3f}] m")
    for sensor, nis in stats['nis'].items():
        if nis['count']:
            print(f"NIS {sensor}: mean {nis['mean']:.2f}, "
                  f"{100 * nis['fraction_above']:.1f}% above {nis['threshold']}")

def print_status(estimate, truth, ukf: UnscentedKalmanFilter):
    """Print current system status."""
    state = estimate.state

    print(f"Time: {estimate.timestamp / 1e6:.1f}s")
    print(f"  Position: [{state.px:6.2f}, {state.py:6.2f}] m (truth [{truth[0]:6.2f}, {truth[1]:6.2f}])")
    print(f"  Speed:    {state.v:5.2f} m/s (truth {truth[2]:5.2f})")
    print(f"  Heading:  {state.yaw:6.3f} rad ({np.degrees(state.yaw):6.1f}°)")
    print(f"  Uncertainty: {ukf.get_position_uncertainty():5.2f} m")
    print()

if __name__ == "__main__":
    main()
