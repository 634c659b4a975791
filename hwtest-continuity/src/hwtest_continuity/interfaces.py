"""Protocols for the hardware collaborators of the scanner.

Protocols:
    I2cBus: Byte-level register access on an I2C bus (smbus2 surface).
    ExpanderDevice: A 16-line I/O expander seen as two 8-bit banks.
    ResetController: Brings the harness logic to a known state.
"""

# pylint: disable=unnecessary-ellipsis  # Ellipsis required for Protocol method stubs

from __future__ import annotations

from typing import Protocol


class I2cBus(Protocol):
    """Subset of ``smbus2.SMBus`` used by the drivers.

    Implementations raise ``OSError`` when a transfer fails.
    """

    def write_byte(self, i2c_addr: int, value: int) -> None:
        """Write a single byte to a device."""
        ...

    def write_byte_data(self, i2c_addr: int, register: int, value: int) -> None:
        """Write a byte to a device register."""
        ...

    def read_byte_data(self, i2c_addr: int, register: int) -> int:
        """Read a byte from a device register."""
        ...

    def read_i2c_block_data(self, i2c_addr: int, register: int, length: int) -> list[int]:
        """Read ``length`` consecutive bytes starting at a device register."""
        ...

    def close(self) -> None:
        """Release the bus."""
        ...


class ExpanderDevice(Protocol):
    """A 16-line I/O expander with low (0-7) and high (8-15) banks.

    Every setter takes one optional mask per bank. A bank passed as None is
    left untouched. Bus failures surface as BusError.
    """

    def set_pullups(self, low: int | None = None, high: int | None = None) -> None:
        """Set pull-up enables (1 = enabled)."""
        ...

    def set_direction(self, low: int | None = None, high: int | None = None) -> None:
        """Set pin directions (1 = input, 0 = output)."""
        ...

    def read_values(self) -> tuple[int, int]:
        """Read the (low, high) port values."""
        ...


class ResetController(Protocol):
    """Issues a reset pulse to the harness logic.

    ``reset()`` blocks until the pulse has completed. Any exception it
    raises is fatal to the scan in progress.
    """

    def reset(self) -> None:
        """Pulse the reset and wait for it to complete."""
        ...
