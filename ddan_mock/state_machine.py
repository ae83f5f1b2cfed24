"""
Poll-driven advancement of scan records.

A record in ``scanning`` state is resolved by a single uniform draw in
``[0, 1)``. The interval is split in this fixed order, first match wins:

  [0.00, 0.15)  done / infected
  [0.15, 0.50)  done / clean
  [0.50, 0.60)  error / unknown
  [0.60, 1.00)  scanning / unknown  (no change)

Records already in ``done`` or ``error`` are returned untouched.
"""

import random
from typing import Callable

from ddan_mock.models import ScanRecord, ScanResult, ScanStatus

DONE_RATE = 0.5
ERROR_RATE = 0.1
# Infected draws are a sub-range of the done range, not a share of it.
INFECTION_RATE = 0.15

Draw = Callable[[], float]

draw: Draw = random.random


def classify(value: float) -> tuple[ScanStatus, ScanResult]:
    if not 0.0 <= value < 1.0:
        raise ValueError(f"Draw must be in [0, 1), got {value!r}")

    if value < DONE_RATE:
        if value < INFECTION_RATE:
            return ScanStatus.DONE, ScanResult.INFECTED
        return ScanStatus.DONE, ScanResult.CLEAN
    if value < DONE_RATE + ERROR_RATE:
        return ScanStatus.ERROR, ScanResult.UNKNOWN
    return ScanStatus.SCANNING, ScanResult.UNKNOWN


def advance(record: ScanRecord, value: float) -> ScanRecord:
    """Apply one poll to ``record`` in place and return it."""
    if record.is_terminal:
        return record

    status, result = classify(value)
    record.status = status
    record.result = result
    return record
