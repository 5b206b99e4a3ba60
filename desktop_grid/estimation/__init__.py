"""
Estimation module with the probability value type used across the package.

Usage:
    from desktop_grid.estimation import Estimator

    fraction = Estimator(0.31, 0.2)
    if fraction.is_confident(max_error=1 / 3):
        print(fraction.estimate)
"""

from .errors import OutOfRangeError
from .models import Estimator

__all__ = [
    "Estimator",
    "OutOfRangeError",
]
