"""
Measurement records for the position and range/bearing/range-rate sensors.
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum

class SensorType(Enum):
    """Sensor that produced a measurement."""

    POSITION = "position"                        # lidar: [px, py]
    RANGE_BEARING_RATE = "range_bearing_rate"    # radar: [rho, phi, rho_dot]

    @property
    def dimension(self) -> int:
        """Number of values a measurement of this sensor carries."""
        return 2 if self is SensorType.POSITION else 3

@dataclass
class MeasurementPackage:
    """
    One time-stamped sensor observation.

    - sensor_type: Sensor that produced the reading
    - timestamp: Microseconds since an arbitrary epoch
    - raw_measurements: [px, py] for POSITION,
      [rho, phi, rho_dot] for RANGE_BEARING_RATE
    """

    sensor_type: SensorType
    timestamp: int
    raw_measurements: np.ndarray

    def __post_init__(self):
        self.sensor_type = SensorType(self.sensor_type)
        self.timestamp = int(self.timestamp)
        self.raw_measurements = np.asarray(self.raw_measurements, dtype=float).reshape(-1)

        expected = self.sensor_type.dimension
        if len(self.raw_measurements) != expected:
            raise ValueError(
                f"{self.sensor_type.name} measurement must have {expected} elements, "
                f"got {len(self.raw_measurements)}"
            )
        if not np.all(np.isfinite(self.raw_measurements)):
            raise ValueError("Measurement contains NaN or infinite values")

    @property
    def timestamp_s(self) -> float:
        """Timestamp in seconds."""
        return self.timestamp / 1e6

    def __str__(self) -> str:
        values = ", ".join(f"{v:.3f}" for v in self.raw_measurements)
        return f"MeasurementPackage({self.sensor_type.name}, t={self.timestamp}us, z=[{values}])"
