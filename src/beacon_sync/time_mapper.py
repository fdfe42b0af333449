"""
Time Mapper - apply a Fit snapshot to beacon timestamps

Stateless: works from a Fit copy, so mappings stay valid after the
regressor has moved on (e.g. against historical events).
"""

import math

from .regressor import Fit, NS_PER_US, NS_PER_MS

INT64_MIN = -2**63
INT64_MAX = 2**63 - 1


class MappingRangeError(OverflowError):
    """Mapped time does not fit a signed 64-bit nanosecond value"""


def _predict_ns(fit: Fit, beacon_micros: int) -> float:
    return fit.alpha + fit.beta * (beacon_micros * NS_PER_US)


def map_beacon_to_receiver_ns(fit: Fit, beacon_micros: int) -> int:
    """
    Beacon time (us) -> receiver timeline (ns): round(alpha + beta * beacon_ns)

    Raises:
        MappingRangeError: result is not finite or outside int64
    """
    predicted = _predict_ns(fit, beacon_micros)
    if not math.isfinite(predicted):
        raise MappingRangeError(f"Mapped time is not finite: {predicted} (fit={fit})")
    mapped = round(predicted)
    if not INT64_MIN <= mapped <= INT64_MAX:
        raise MappingRangeError(f"Mapped time {mapped} ns outside int64 range (fit={fit})")
    return mapped


def map_beacon_to_receiver_ms(fit: Fit, beacon_micros: int) -> float:
    """Same as map_beacon_to_receiver_ns, in milliseconds"""
    return map_beacon_to_receiver_ns(fit, beacon_micros) / NS_PER_MS


def residual_ms(fit: Fit, beacon_micros: int, receiver_nanos: int) -> float:
    """|receiver_nanos - predicted| in ms: how well one sample fits the model"""
    return abs(receiver_nanos - _predict_ns(fit, beacon_micros)) / NS_PER_MS
