"""
Numerical failure conditions raised by the filter.
"""

class FilterError(Exception):
    """Base class for estimator failures."""

class NonPositiveDefiniteCovariance(FilterError):
    """Cholesky factorization of the augmented covariance failed (filter divergence)."""

class SingularInnovationCovariance(FilterError):
    """Innovation covariance S could not be inverted."""

class NonMonotonicTimestamp(FilterError, ValueError):
    """A non-initial record did not advance time."""

    def __init__(self, timestamp: int, previous_timestamp: int):
        super().__init__(
            f"Measurement timestamp {timestamp}us does not advance past {previous_timestamp}us"
        )
        self.timestamp = timestamp
        self.previous_timestamp = previous_timestamp
