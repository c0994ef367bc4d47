"""
Common utility functions for the Axon backend.

Rounding and timestamp helpers shared by scoring, progress and storage code.
"""

import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[int, float]


def round_half_up(value: Number, digits: int = 0) -> float:
    """
    Round a number with halves going up (12.5 -> 13, 86.65 -> 86.7).

    Python's built-in ``round`` uses banker's rounding, which would make
    stored scores depend on parity.

    Args:
        value: Number to round
        digits: Decimal places to keep

    Returns:
        Rounded value
    """
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_int(value: Number) -> int:
    """Round half up to the nearest integer."""
    return int(round_half_up(value, 0))


def round1(value: Number) -> float:
    """Round half up to one decimal place."""
    return round_half_up(value, 1)


def utc_now() -> datetime.datetime:
    """
    Current UTC time as a naive datetime.

    Timestamps are stored without timezone so they compare the same way on
    every database backend.
    """
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def utc_date(moment: datetime.datetime) -> datetime.date:
    """
    Calendar date of a timestamp in UTC.

    Naive datetimes are taken to already be UTC.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(datetime.timezone.utc)
    return moment.date()
