# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Playback rate: messages per unit of time, converted to a tick schedule."""

import logging
import math

from geomsim.utils.status import InvalidRateError

logger = logging.getLogger(__name__)

SECONDS_PER_UNIT = {
    "seconds": 1,
    "minutes": 60,
    "hours": 60 * 60,
    "days": 24 * 60 * 60,
    "weeks": 7 * 24 * 60 * 60,
}
DEFAULT_UNIT = "seconds"


def normalize_unit(unit) -> str:
    """Map a unit name to one of SECONDS_PER_UNIT, defaulting to seconds."""
    if unit is None:
        return DEFAULT_UNIT
    name = str(unit).strip().lower()
    if name in SECONDS_PER_UNIT:
        return name
    if f"{name}s" in SECONDS_PER_UNIT:
        return f"{name}s"
    logger.warning(f"Unknown time unit '{unit}', using {DEFAULT_UNIT}")
    return DEFAULT_UNIT


def tick_interval_ms(count: float, time_count: float = 1, unit: str = DEFAULT_UNIT) -> int:
    """Milliseconds between ticks for <count> messages per <time_count> <unit>."""
    seconds = time_count * SECONDS_PER_UNIT[normalize_unit(unit)]
    interval = seconds / count * 1000 + 0.5
    if not math.isfinite(interval):
        raise InvalidRateError(f"{count:g} per {time_count:g} {unit} is out of range")
    return max(1, int(interval))


class RateModel:
    """Converts a user-facing rate into a tick interval and batch size.

    Example:
        rate = RateModel()
        rate.set_frequency(50, 6, "minutes")  # 50 messages every 6 minutes
        rate.tick_interval_ms                  # 7200
    """

    def __init__(self, count: float = 1.0, time_count: float = 1.0,
                 unit: str = DEFAULT_UNIT, throughput: int = 1):
        self._count = 1.0
        self._time_count = 1.0
        self._unit = DEFAULT_UNIT
        self._interval_ms = 1000
        self._throughput = 1
        self.set_frequency(count, time_count, unit)
        self.set_throughput(throughput)

    @property
    def count(self) -> float:
        return self._count

    @property
    def time_count(self) -> float:
        return self._time_count

    @property
    def unit(self) -> str:
        return self._unit

    @property
    def tick_interval_ms(self) -> int:
        return self._interval_ms

    @property
    def throughput(self) -> int:
        return self._throughput

    def set_frequency(self, count: float, time_count: float = 1,
                      unit: str = DEFAULT_UNIT) -> int:
        """Set the rate to <count> messages per <time_count> <unit>.

        Args:
            count: Messages per period (must be > 0)
            time_count: Length of the period in units (must be > 0)
            unit: seconds, minutes, hours, days or weeks

        Returns:
            The new tick interval in milliseconds
        """
        try:
            count = float(count)
            time_count = float(time_count)
        except (TypeError, ValueError):
            raise InvalidRateError(f"frequency and time count must be numbers, got {count!r}, {time_count!r}")
        if not (count > 0 and math.isfinite(count)):
            raise InvalidRateError(f"frequency must be a positive finite number, got {count}")
        if not (time_count > 0 and math.isfinite(time_count)):
            raise InvalidRateError(f"time count must be a positive finite number, got {time_count}")

        unit = normalize_unit(unit)
        self._interval_ms = tick_interval_ms(count, time_count, unit)
        self._count, self._time_count, self._unit = count, time_count, unit
        logger.debug(f"Rate set to {count:g} per {time_count:g} {unit} ({self._interval_ms} ms/tick)")
        return self._interval_ms

    def set_throughput(self, throughput: int):
        """Set the number of messages sent per tick."""
        try:
            valid = (not isinstance(throughput, bool)
                     and int(throughput) == throughput and throughput >= 1)
        except (TypeError, ValueError, OverflowError):
            valid = False
        if not valid:
            raise InvalidRateError(f"throughput must be a whole number >= 1, got {throughput!r}")
        throughput = int(throughput)
        if throughput > 1:
            logger.warning(
                f"Throughput {throughput} sends several messages per broadcast; "
                "many consumers (e.g. GeoEvent Processor) expect 1"
            )
        self._throughput = throughput

    def message_frequency(self) -> float:
        """Messages per second at the current rate."""
        return self._count / (self._time_count * SECONDS_PER_UNIT[self._unit])

    def __str__(self) -> str:
        return (f"RateModel({self._count:g} per {self._time_count:g} {self._unit}, "
                f"{self._interval_ms} ms x {self._throughput})")
