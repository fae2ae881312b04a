# storefront/utils/validators.py
import math
from decimal import Decimal


def coerce_quantity(v) -> int:
    """max(1, floor(v)); wartosc nienumeryczna, NaN lub inf daje 1."""
    if isinstance(v, bool) or v is None:
        return 1
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return 1
    try:
        n = float(Decimal(str(v)))
    except (ArithmeticError, ValueError, TypeError):
        return 1
    if math.isnan(n) or math.isinf(n):
        return 1
    return max(1, math.floor(n))

