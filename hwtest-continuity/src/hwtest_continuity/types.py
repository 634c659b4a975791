"""Core data types for continuity scanning.

A scan probes every line of both units one at a time. Each probe yields a
PinReading: which of the 32 lines read low while that one line was driven.
The 32 readings together form the ConnectivityMatrix.

Pin numbering follows the MCP23017: pins 0-7 live in the low bank (port A)
and pins 8-15 in the high bank (port B).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator

from hwtest_continuity.errors import InvalidPinError

PINS_PER_UNIT = 16
PINS_PER_BANK = 8
ALL_ONES = 0xFF


class Unit(IntEnum):
    """One of the two expander-backed line groups.

    The numeric order is part of the signature layout.
    """

    WEST = 0
    EAST = 1

    @property
    def opposite(self) -> Unit:
        """Return the other unit."""
        return Unit.EAST if self is Unit.WEST else Unit.WEST


class Bank(IntEnum):
    """8-bit register bank of an expander."""

    LOW = 0  # pins 0-7 (port A)
    HIGH = 1  # pins 8-15 (port B)


def pin_location(pin: int) -> tuple[Bank, int]:
    """Map a pin index to its bank and bit offset.

    Args:
        pin: Pin index (0-15).

    Returns:
        Tuple of (bank, offset within bank).

    Raises:
        InvalidPinError: If pin is outside 0-15.
    """
    if not 0 <= pin < PINS_PER_UNIT:
        raise InvalidPinError(pin)
    return Bank(pin // PINS_PER_BANK), pin % PINS_PER_BANK


def select_pin_mask(pin: int) -> tuple[int, int]:
    """Build the (low, high) bank masks that single out one pin.

    Every bit is 1 (passive) except the tested pin's bit, which is 0.

    Raises:
        InvalidPinError: If pin is outside 0-15.
    """
    bank, offset = pin_location(pin)
    masks = [ALL_ONES, ALL_ONES]
    masks[bank] &= ~(1 << offset) & ALL_ONES
    return masks[0], masks[1]


def unpack_bank(value: int) -> tuple[bool, ...]:
    """Unpack an 8-bit port value into "pulled low" flags, bit 0 first."""
    return tuple(not value & (1 << i) for i in range(PINS_PER_BANK))


@dataclass(frozen=True)
class PinReading:
    """Lines seen low on both units while one line was driven.

    Attributes:
        west: 16 flags for West pins 0-15, True if the line read low.
        east: 16 flags for East pins 0-15, True if the line read low.
    """

    west: tuple[bool, ...]
    east: tuple[bool, ...]

    def __post_init__(self) -> None:
        for name in ("west", "east"):
            flags = getattr(self, name)
            if len(flags) != PINS_PER_UNIT:
                raise ValueError(
                    f"{name} must have {PINS_PER_UNIT} flags, got {len(flags)}"
                )

    def for_unit(self, unit: Unit) -> tuple[bool, ...]:
        """Return the flags observed on the given unit."""
        return self.west if unit is Unit.WEST else self.east

    def count(self) -> int:
        """Return the number of lines seen low on both units."""
        return sum(self.west) + sum(self.east)


@dataclass(frozen=True)
class ConnectivityMatrix:
    """Result of a full scan: one PinReading per (unit, pin).

    Attributes:
        readings: Two tuples (West, East) of 16 readings each, by pin.
    """

    readings: tuple[tuple[PinReading, ...], tuple[PinReading, ...]]

    def __post_init__(self) -> None:
        if len(self.readings) != len(Unit):
            raise ValueError(f"expected readings for {len(Unit)} units")
        for unit in Unit:
            if len(self.readings[unit]) != PINS_PER_UNIT:
                raise ValueError(
                    f"{unit.name} must have {PINS_PER_UNIT} readings, "
                    f"got {len(self.readings[unit])}"
                )

    def reading(self, unit: Unit, pin: int) -> PinReading:
        """Return the reading taken while driving the given pin."""
        pin_location(pin)
        return self.readings[unit][pin]

    def __iter__(self) -> Iterator[tuple[Unit, int, PinReading]]:
        """Yield (unit, pin, reading) in scan order."""
        for unit in Unit:
            for pin, reading in enumerate(self.readings[unit]):
                yield unit, pin, reading
