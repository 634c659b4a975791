"""MCP23017 I2C GPIO expander driver for continuity scanning.

Each harness unit is wired to one MCP23017. The scanner configures whole
banks at a time, so this driver works on (low, high) bank masks rather than
single pins:

- Port A holds pins 0-7 (low bank), port B holds pins 8-15 (high bank)
- Direction register: 1 = input, 0 = output (power-on 0xFF)
- Pull-up register: 1 = 100k pull-up enabled (power-on 0x00)

Default I2C address is 0x20, configurable via A0-A2 pins (0x20-0x27).

Example:
    >>> with Mcp23017(Mcp23017Config(i2c_bus=1, address=0x21)) as unit:
    ...     unit.set_pullups(0xFF, 0xFF)
    ...     unit.set_direction(0xFF, 0xFF)
    ...     low, high = unit.read_values()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from hwtest_continuity.bus import open_bus
from hwtest_continuity.errors import BusError

logger = logging.getLogger(__name__)


class Mcp23017Register(IntEnum):
    """MCP23017 register addresses in IOCON.BANK=0 mode.

    Registers are paired, port A at the even address and port B right after
    it, so a two-byte block read starting at the A register returns both.
    """

    IODIRA = 0x00  # I/O direction port A (1=input, 0=output)
    IODIRB = 0x01  # I/O direction port B
    GPPUA = 0x0C  # Pull-up resistor enable port A
    GPPUB = 0x0D  # Pull-up resistor enable port B
    GPIOA = 0x12  # GPIO port A
    GPIOB = 0x13  # GPIO port B
    OLATA = 0x14  # Output latch port A
    OLATB = 0x15  # Output latch port B


@dataclass(frozen=True)
class Mcp23017Config:
    """Configuration for one MCP23017 expander.

    Attributes:
        i2c_bus: I2C bus number (typically 1 on Raspberry Pi).
        address: I2C address (0x20-0x27, configurable via A0-A2 pins).

    Raises:
        ValueError: If address is not in valid range 0x20-0x27.
    """

    i2c_bus: int = 1
    address: int = 0x20

    def __post_init__(self) -> None:
        if not 0x20 <= self.address <= 0x27:
            raise ValueError(f"address must be 0x20-0x27, got {hex(self.address)}")


@dataclass(frozen=True)
class ExpanderRegisters:
    """Snapshot of an expander's configuration and port values.

    Each field is a (port A, port B) pair.
    """

    address: int
    directions: tuple[int, int]
    pullups: tuple[int, int]
    values: tuple[int, int]


def _check_mask(name: str, value: int | None) -> None:
    if value is not None and not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must be 0x00-0xFF, got {value!r}")


class Mcp23017:
    """Bank-oriented driver for the MCP23017 16-bit I2C GPIO expander.

    The device must be opened before use. A bus passed in at construction is
    shared with other devices and is left open by close(); a bus the driver
    opened itself is closed with it.

    Bus failures are raised as BusError and never retried here.
    """

    def __init__(
        self,
        config: Mcp23017Config | None = None,
        bus: Any | None = None,
    ) -> None:
        """Initialize the MCP23017 driver.

        Args:
            config: Device configuration. Uses defaults if None.
            bus: Optional already-open I2C bus (shared bus, or a mock/simulator).
        """
        self._config = config or Mcp23017Config()
        self._bus = bus
        self._owns_bus = bus is None
        self._opened = False

    @property
    def config(self) -> Mcp23017Config:
        """Return the device configuration."""
        return self._config

    @property
    def address(self) -> int:
        """Return the device I2C address."""
        return self._config.address

    @property
    def is_open(self) -> bool:
        """Return True if the device is open."""
        return self._opened

    def open(self) -> None:
        """Open the I2C bus if needed and put every pin into input mode.

        Raises:
            RuntimeError: If the device is already open.
            ImportError: If smbus2 is not available.
            BusError: If the device does not respond.
        """
        if self._opened:
            raise RuntimeError("Device already open")

        if self._bus is None:
            self._bus = open_bus(self._config.i2c_bus)

        self._opened = True

        # All inputs, pull-ups disabled, latches low (power-on state)
        try:
            self.set_direction(0xFF, 0xFF)
            self.set_pullups(0x00, 0x00)
            self.set_outputs(0x00, 0x00)
        except BusError:
            self.close()
            raise
        logger.debug("MCP23017 at 0x%02x opened", self.address)

    def close(self) -> None:
        """Release the device. Safe to call more than once."""
        if not self._opened:
            return

        self._opened = False
        if self._owns_bus and self._bus is not None:
            try:
                self._bus.close()
            except OSError as exc:
                logger.debug("Error closing I2C bus: %s", exc)
            self._bus = None

    def __enter__(self) -> Mcp23017:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _require_open(self) -> None:
        if not self._opened:
            raise RuntimeError("Device not open")

    def _write_register(self, register: Mcp23017Register, value: int) -> None:
        assert self._bus is not None
        try:
            self._bus.write_byte_data(self.address, register, value)
        except OSError as exc:
            raise BusError(
                f"I2C write to 0x{self.address:02x} register {register.name} failed: {exc}"
            ) from exc

    def _read_pair(self, register: Mcp23017Register) -> tuple[int, int]:
        """Read a port A/B register pair with one block transfer."""
        assert self._bus is not None
        try:
            data = self._bus.read_i2c_block_data(self.address, register, 2)
        except OSError as exc:
            raise BusError(
                f"I2C read from 0x{self.address:02x} register {register.name} failed: {exc}"
            ) from exc
        if len(data) != 2:
            raise BusError(
                f"I2C read from 0x{self.address:02x} register {register.name} "
                f"returned {len(data)} bytes, expected 2"
            )
        return data[0] & 0xFF, data[1] & 0xFF

    def _write_pair(
        self,
        register_a: Mcp23017Register,
        register_b: Mcp23017Register,
        low: int | None,
        high: int | None,
    ) -> None:
        self._require_open()
        _check_mask("low", low)
        _check_mask("high", high)
        if low is not None:
            self._write_register(register_a, low)
        if high is not None:
            self._write_register(register_b, high)

    def set_pullups(self, low: int | None = None, high: int | None = None) -> None:
        """Set the pull-up enables of each bank.

        Args:
            low: Port A mask (1 = pull-up enabled), or None to leave unchanged.
            high: Port B mask, or None to leave unchanged.

        Raises:
            RuntimeError: If device is not open.
            ValueError: If a mask is not 8-bit.
            BusError: If the write fails.
        """
        self._write_pair(Mcp23017Register.GPPUA, Mcp23017Register.GPPUB, low, high)

    def set_direction(self, low: int | None = None, high: int | None = None) -> None:
        """Set the direction of each bank.

        Args:
            low: Port A mask (1 = input, 0 = output), or None to leave unchanged.
            high: Port B mask, or None to leave unchanged.

        Raises:
            RuntimeError: If device is not open.
            ValueError: If a mask is not 8-bit.
            BusError: If the write fails.
        """
        self._write_pair(Mcp23017Register.IODIRA, Mcp23017Register.IODIRB, low, high)

    def set_outputs(self, low: int | None = None, high: int | None = None) -> None:
        """Set the output latches of each bank (1 = high, 0 = low)."""
        self._write_pair(Mcp23017Register.OLATA, Mcp23017Register.OLATB, low, high)

    def read_values(self) -> tuple[int, int]:
        """Read the current level of all 16 pins.

        Returns:
            (port A, port B) values; a set bit means the line is high.

        Raises:
            RuntimeError: If device is not open.
            BusError: If the read fails or returns too few bytes.
        """
        self._require_open()
        return self._read_pair(Mcp23017Register.GPIOA)

    def read_registers(self) -> ExpanderRegisters:
        """Read direction, pull-up and port registers for diagnostics."""
        self._require_open()
        return ExpanderRegisters(
            address=self.address,
            directions=self._read_pair(Mcp23017Register.IODIRA),
            pullups=self._read_pair(Mcp23017Register.GPPUA),
            values=self._read_pair(Mcp23017Register.GPIOA),
        )
