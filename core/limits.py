"""
Checks for the search knobs every caller passes around: a radius in meters
and a result limit. Both raise ValidationError naming the offending field.
"""

import math
from numbers import Real
from typing import Any

from .errors import ValidationError


def require_radius(value: Any, field: str = "radius_meters") -> float:
    # bool is a Real, but True meters is not a radius
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value) or value <= 0:
        raise ValidationError(f"radius must be a finite number > 0 meters, got {value!r}", field=field)
    return float(value)


def require_limit(value: Any, field: str = "limit") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"limit must be a whole number >= 1, got {value!r}", field=field)
    return value
