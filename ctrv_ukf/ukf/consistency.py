"""
Normalized innovation squared (NIS) bookkeeping for filter tuning.
"""

import numpy as np
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Any, Optional

from ..math.constants import CHI2_95
from ..sensors.measurement import SensorType

DEFAULT_MAX_RECORDS = 1000

@dataclass(frozen=True)
class NISRecord:
    """NIS of one update, tagged with the sensor that produced it."""

    sensor_type: SensorType
    timestamp: int
    nis: float

    @property
    def threshold(self) -> float:
        """95% chi-square bound for this sensor's measurement dimension."""
        return CHI2_95[self.sensor_type.dimension]

    @property
    def exceeds_threshold(self) -> bool:
        return self.nis > self.threshold

class NISMonitor:
    """
    Collects NIS values per sensor.

    A consistent filter keeps roughly 5% of the NIS values above the
    95% chi-square bound. Much more means the noise is underestimated,
    much less means it is overestimated.

    Only the most recent records are kept; count, mean and exceedance
    fraction are running totals over every record added since the last
    clear().
    """

    def __init__(self, max_records: int = DEFAULT_MAX_RECORDS):
        if max_records < 1:
            raise ValueError(f"max_records must be at least 1, got {max_records}")
        self.records: Deque[NISRecord] = deque(maxlen=max_records)
        self.clear()

    def add(self, record: NISRecord):
        self.records.append(record)
        self._count[record.sensor_type] += 1
        self._sum[record.sensor_type] += record.nis
        if record.exceeds_threshold:
            self._above[record.sensor_type] += 1

    def values(self, sensor_type: Optional[SensorType] = None) -> np.ndarray:
        """Retained NIS values, optionally restricted to one sensor."""
        return np.array([
            r.nis for r in self.records
            if sensor_type is None or r.sensor_type is sensor_type
        ], dtype=float)

    def count(self, sensor_type: SensorType) -> int:
        return self._count[sensor_type]

    def mean(self, sensor_type: SensorType) -> Optional[float]:
        if self._count[sensor_type] == 0:
            return None
        return self._sum[sensor_type] / self._count[sensor_type]

    def fraction_above_threshold(self, sensor_type: SensorType) -> Optional[float]:
        """Share of this sensor's NIS values above the 95% bound."""
        if self._count[sensor_type] == 0:
            return None
        return self._above[sensor_type] / self._count[sensor_type]

    def clear(self):
        self.records.clear()
        self._count: Dict[SensorType, int] = {sensor_type: 0 for sensor_type in SensorType}
        self._sum: Dict[SensorType, float] = {sensor_type: 0.0 for sensor_type in SensorType}
        self._above: Dict[SensorType, int] = {sensor_type: 0 for sensor_type in SensorType}

    def summary(self) -> Dict[str, Any]:
        """Per-sensor count, mean and exceedance fraction."""
        return {
            sensor_type.value: {
                'count': self.count(sensor_type),
                'mean': self.mean(sensor_type),
                'threshold': CHI2_95[sensor_type.dimension],
                'fraction_above': self.fraction_above_threshold(sensor_type)
            }
            for sensor_type in SensorType
        }
