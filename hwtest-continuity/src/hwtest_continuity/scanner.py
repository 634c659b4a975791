"""Continuity scanner.

Drives one harness line at a time and records which lines on both units
follow it low.

For every single-pin test the unit owning the pin is *active* and the
other unit is *passive*:

1. Reset the harness logic so no latched state from the previous test
   survives.
2. Active unit: pull-ups off and direction output on the tested pin only;
   every other pin is an input with its pull-up on. After reset the output
   latch is low, so the tested pin drives its net low.
3. Passive unit: every pin is an input with its pull-up on, giving unwired
   lines a defined high level instead of a floating one.
4. Wait for the lines to settle, then read both units. A line reading low
   shares a net with the tested pin.

The order West pins 0-15 then East pins 0-15 is part of the signature
layout and must not change.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from hwtest_continuity.interfaces import ExpanderDevice, ResetController
from hwtest_continuity.types import (
    ALL_ONES,
    PINS_PER_UNIT,
    ConnectivityMatrix,
    PinReading,
    Unit,
    select_pin_mask,
    unpack_bank,
)

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_TIME = 0.010


def _read_unit(device: ExpanderDevice) -> tuple[bool, ...]:
    low, high = device.read_values()
    return unpack_bank(low) + unpack_bank(high)


class ContinuityScanner:
    """Runs single-pin continuity tests across the West and East units.

    The scanner has exclusive use of both expanders and the reset controller
    while a test runs; nothing else may talk to them on the bus meanwhile.

    Args:
        west: Expander wired to the West side of the harness.
        east: Expander wired to the East side of the harness.
        resetter: Controller pulsed before every single-pin test.
        settle_time: Seconds to wait between configuring and reading.
        sleep: Blocking delay function.
    """

    def __init__(
        self,
        west: ExpanderDevice,
        east: ExpanderDevice,
        resetter: ResetController,
        settle_time: float = DEFAULT_SETTLE_TIME,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if settle_time < 0:
            raise ValueError(f"settle_time must be >= 0, got {settle_time}")
        self._units: tuple[ExpanderDevice, ExpanderDevice] = (west, east)
        self._resetter = resetter
        self._settle_time = settle_time
        self._sleep = sleep
        self._lock = threading.Lock()

    @property
    def settle_time(self) -> float:
        """Return the settle delay in seconds."""
        return self._settle_time

    def check(self, unit: Unit, pin: int) -> PinReading:
        """Drive one pin and read back both units.

        Args:
            unit: Unit owning the pin under test.
            pin: Pin index (0-15).

        Returns:
            Flags of every line seen low on West and East.

        Raises:
            InvalidPinError: If pin is outside 0-15. Nothing is touched.
            BusError: If any device read or write fails.
        """
        with self._lock:
            return self._check(Unit(unit), pin)

    def _check(self, unit: Unit, pin: int) -> PinReading:
        low, high = select_pin_mask(pin)
        active = self._units[unit]
        passive = self._units[unit.opposite]

        self._resetter.reset()
        active.set_pullups(low, high)
        passive.set_pullups(ALL_ONES, ALL_ONES)
        active.set_direction(low, high)
        passive.set_direction(ALL_ONES, ALL_ONES)
        self._sleep(self._settle_time)

        reading = PinReading(
            west=_read_unit(self._units[Unit.WEST]),
            east=_read_unit(self._units[Unit.EAST]),
        )
        logger.debug("%s pin %X: %d line(s) low", unit.name, pin, reading.count())
        return reading

    def scan(self) -> ConnectivityMatrix:
        """Test every pin of both units.

        Returns:
            The full 2 x 16 connectivity matrix.

        Raises:
            BusError: If any test fails. No partial matrix is returned.
        """
        with self._lock:
            started = time.monotonic()
            readings = tuple(
                tuple(self._check(unit, pin) for pin in range(PINS_PER_UNIT))
                for unit in Unit
            )
            matrix = ConnectivityMatrix(readings=(readings[0], readings[1]))
            logger.info("Scan complete in %.3f s", time.monotonic() - started)
            return matrix
