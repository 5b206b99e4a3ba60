"""Custom exceptions for estimation module."""

from __future__ import annotations


class OutOfRangeError(ValueError):
    """
    Raised when a value falls outside its admissible range.

    This can happen when:
    - An estimate is outside [0, 1]
    - An interval is inverted (low > high)
    - A colluders fraction is negative or above 1
    """

    def __init__(self, value: float, low: float, high: float):
        super().__init__(f"Value {value} out of range [{low}, {high}]")
        self.value = value
        self.low = low
        self.high = high
