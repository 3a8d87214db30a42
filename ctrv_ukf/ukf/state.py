"""
CTRV state representation and per-record filter output.
"""

import numpy as np
import math
from dataclasses import dataclass, replace
from typing import Optional

from ..sensors.measurement import SensorType

@dataclass
class CTRVState:
    """
    Represents the tracked object state.

    State vector: [px, py, v, yaw, yaw_rate]
    - px, py: Position in meters
    - v: Speed along the heading in m/s
    - yaw: Heading in radians
    - yaw_rate: Turn rate in rad/s
    """

    # Position (meters)
    px: float = 0.0
    py: float = 0.0

    # Speed (m/s)
    v: float = 0.0

    # Orientation (radians)
    yaw: float = 0.0
    yaw_rate: float = 0.0

    # Timestamp (microseconds)
    timestamp: Optional[int] = None

    @property
    def state_vector(self) -> np.ndarray:
        """Get state as numpy vector."""
        return np.array([
            self.px,
            self.py,
            self.v,
            self.yaw,
            self.yaw_rate
        ], dtype=float)

    @state_vector.setter
    def state_vector(self, vector: np.ndarray):
        """Set state from numpy vector."""
        if len(vector) != 5:
            raise ValueError("State vector must have 5 elements")

        self.px = float(vector[0])
        self.py = float(vector[1])
        self.v = float(vector[2])
        self.yaw = float(vector[3])
        self.yaw_rate = float(vector[4])

    @classmethod
    def from_vector(cls, vector: np.ndarray, timestamp: Optional[int] = None) -> 'CTRVState':
        state = cls(timestamp=timestamp)
        state.state_vector = vector
        return state

    @property
    def position(self) -> np.ndarray:
        """Get position as [px, py] vector."""
        return np.array([self.px, self.py])

    @property
    def velocity(self) -> np.ndarray:
        """Get Cartesian velocity [vx, vy] from speed and heading."""
        return np.array([self.v * math.cos(self.yaw), self.v * math.sin(self.yaw)])

    @property
    def speed(self) -> float:
        return abs(self.v)

    def copy(self) -> 'CTRVState':
        """Create a copy of the state."""
        return replace(self)

    def __str__(self) -> str:
        return (
            f"CTRVState(pos=[{self.px:.2f}, {self.py:.2f}], "
            f"v={self.v:.2f}, "
            f"yaw={self.yaw:.3f}, "
            f"yaw_rate={self.yaw_rate:.3f})"
        )

@dataclass(frozen=True)
class StateEstimate:
    """Filter output after one measurement record has been processed."""

    timestamp: int
    sensor_type: SensorType
    x: np.ndarray
    P: np.ndarray
    nis: Optional[float] = None
    updated: bool = False

    @property
    def state(self) -> CTRVState:
        return CTRVState.from_vector(self.x, self.timestamp)
