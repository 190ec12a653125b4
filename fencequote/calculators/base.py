"""
Abstract base class for job calculators.

Input: JobSpec
Output: MaterialQuantities
"""

import logging
import math
from abc import ABC, abstractmethod

from ..exceptions import InvalidQuantity

logger = logging.getLogger(__name__)


class BaseCalculator(ABC):
    """All job calculators inherit from this."""

    @abstractmethod
    def calculate(self, job):
        """
        Takes the JobSpec for one quoting session.
        Returns MaterialQuantities.
        """
        pass

    # --- Helper methods for all calculators ---

    def m_to_mm(self, metres: float) -> int:
        """Convert metres to whole millimetres."""
        return m_to_mm(metres)


def require_positive(value, name: str):
    """Zero, negative and NaN inputs are fatal for a calculator function."""
    if value is None or isinstance(value, bool):
        raise InvalidQuantity(f"{name} is required, got {value!r}")
    if isinstance(value, float) and math.isnan(value):
        raise InvalidQuantity(f"{name} must be a number, got NaN")
    if value <= 0:
        raise InvalidQuantity(f"{name} must be positive, got {value}")
    return value


def require_non_negative(value, name: str):
    if value is None or isinstance(value, bool):
        raise InvalidQuantity(f"{name} is required, got {value!r}")
    if value < 0:
        raise InvalidQuantity(f"{name} must not be negative, got {value}")
    return value


def m_to_mm(metres: float) -> int:
    # Rounded so 4.73m is 4730mm, not 4730.000000000001
    return int(round(metres * 1000))


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer ceiling division — always rounds UP, no float drift."""
    return -(-numerator // denominator)


def round_up_to_even(numerator: int, denominator: int) -> int:
    """ceil(numerator / denominator) rounded UP to the next even integer."""
    return ceil_div(numerator, 2 * denominator) * 2
