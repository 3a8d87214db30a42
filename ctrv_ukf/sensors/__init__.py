"""
Sensor measurement records consumed by the filter.
"""

from .measurement import SensorType, MeasurementPackage

__all__ = ["SensorType", "MeasurementPackage"]
