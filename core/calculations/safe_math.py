"""
Numeric guards shared by the KPI calculations.

Missing or non-finite inputs become 0 and division by zero yields 0, so a
metric is never NaN or infinite.
"""

from decimal import Decimal
from typing import Optional

import numpy as np


def clamp_number(value, default: float = 0.0) -> float:
    """
    Coerce a possibly missing or non-finite number to a finite float.

    Args:
        value: int, float, Decimal, numpy scalar, numeric string or None
        default: Returned for missing, unparseable, NaN or infinite values

    Returns:
        float
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        value = float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not np.isfinite(number):
        return default
    return number


def safe_div(numerator: float, denominator: float) -> float:
    """
    Divide, returning 0.0 when the denominator is zero or non-finite
    or the quotient overflows.

    Example:
        >>> safe_div(15, 20)
        0.75
        >>> safe_div(15, 0)
        0.0
    """
    numerator = clamp_number(numerator)
    denominator = clamp_number(denominator)
    if denominator == 0:
        return 0.0
    return clamp_number(numerator / denominator)


def cap(value: float, upper: float, lower: Optional[float] = 0.0) -> float:
    """Clip value into [lower, upper]; lower=None leaves the bottom open"""
    return float(np.clip(value, -np.inf if lower is None else lower, upper))
