"""Reset controllers for the harness logic.

Before every single-pin test the expanders are reset so that no latched
state from the previous test can make a line read as connected.

Two controllers are provided:

- GpioResetter: pulses a Raspberry Pi GPIO line (active low) via lgpio.
- I2cResetter: sends a reset command to a small I2C reset/flag device. The
  same device exposes flag registers that external hardware sets to signal
  that a harness is ready to be tested.
"""

# pylint: disable=broad-exception-caught  # lgpio raises its own error type

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

from hwtest_continuity.bus import open_bus
from hwtest_continuity.errors import BusError, ResetError

logger = logging.getLogger(__name__)


class GpioResetter:
    """Reset controller driving an active-low GPIO line.

    The line idles high. ``reset()`` pulls it low for ``pulse_width``
    seconds, releases it and waits another ``pulse_width`` for the
    expanders to come out of reset.

    Args:
        pin: BCM pin number of the reset line.
        chip: GPIO chip number (default 0 for main GPIO).
        pulse_width: Low and recovery time in seconds.
        lgpio_module: Optional lgpio module replacement for testing.
        sleep: Blocking delay function.
    """

    DEFAULT_PIN = 4
    DEFAULT_PULSE_WIDTH = 0.001

    def __init__(
        self,
        pin: int = DEFAULT_PIN,
        chip: int = 0,
        pulse_width: float = DEFAULT_PULSE_WIDTH,
        lgpio_module: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._pin = pin
        self._chip = chip
        self._pulse_width = pulse_width
        self._lgpio = lgpio_module
        self._sleep = sleep
        self._handle: int | None = None

    @property
    def pin(self) -> int:
        """Return the BCM pin number of the reset line."""
        return self._pin

    @property
    def is_open(self) -> bool:
        """Return True if the GPIO line is claimed."""
        return self._handle is not None

    def open(self) -> None:
        """Claim the reset line as an output, idle high.

        Raises:
            ImportError: If lgpio is not available.
            ResetError: If the chip or line cannot be claimed.
        """
        if self._handle is not None:
            return

        if self._lgpio is None:
            try:
                import lgpio  # type: ignore[import-not-found]  # pylint: disable=import-outside-toplevel
            except ImportError as exc:
                raise ImportError(
                    "lgpio library is not installed. Install with: pip install lgpio"
                ) from exc
            self._lgpio = lgpio

        try:
            handle = self._lgpio.gpiochip_open(self._chip)
        except Exception as exc:
            raise ResetError(f"Failed to open GPIO chip {self._chip}: {exc}") from exc

        try:
            self._lgpio.gpio_claim_output(handle, self._pin, 1)
        except Exception as exc:
            self._lgpio.gpiochip_close(handle)
            raise ResetError(f"Failed to claim reset pin {self._pin}: {exc}") from exc

        self._handle = handle

    def close(self) -> None:
        """Release the reset line and the GPIO chip."""
        if self._handle is None:
            return

        handle, self._handle = self._handle, None
        try:
            self._lgpio.gpio_free(handle, self._pin)
            self._lgpio.gpiochip_close(handle)
        except Exception as exc:
            logger.debug("Error releasing reset pin %d: %s", self._pin, exc)

    def __enter__(self) -> GpioResetter:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def reset(self) -> None:
        """Pulse the reset line low, then high.

        Raises:
            ResetError: If the line is not open or a write fails.
        """
        if self._handle is None:
            raise ResetError("Reset line not open")

        try:
            self._lgpio.gpio_write(self._handle, self._pin, 0)
            self._sleep(self._pulse_width)
            self._lgpio.gpio_write(self._handle, self._pin, 1)
            self._sleep(self._pulse_width)
        except Exception as exc:
            raise ResetError(f"Reset pulse on pin {self._pin} failed: {exc}") from exc


class I2cResetter:
    """Reset controller and ready-flag source on the I2C bus.

    Writing the reset command resets the harness logic. Registers 0x01 and
    0x02 hold flags: external hardware sets flag 1 when a harness is seated,
    and the tester clears it once the harness has been tested.

    Args:
        address: I2C address of the reset device.
        bus: Optional already-open I2C bus (shared bus, mock or simulator).
        i2c_bus: Bus number to open when no bus is given.
        wait: Time in seconds to wait after the reset command.
        sleep: Blocking delay function.
    """

    DEFAULT_ADDRESS = 0x0F
    DEFAULT_WAIT = 0.01
    RESET_COMMAND = 0x00
    FLAG_ADDRESSES = range(0x01, 0x03)

    def __init__(
        self,
        address: int = DEFAULT_ADDRESS,
        bus: Any | None = None,
        i2c_bus: int = 1,
        wait: float = DEFAULT_WAIT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._address = address
        self._bus = bus
        self._owns_bus = bus is None
        self._i2c_bus = i2c_bus
        self._wait = wait
        self._sleep = sleep

    @property
    def address(self) -> int:
        """Return the I2C address of the reset device."""
        return self._address

    def open(self) -> None:
        """Open the I2C bus if none was supplied."""
        if self._bus is None:
            self._bus = open_bus(self._i2c_bus)

    def close(self) -> None:
        """Close the bus if this controller opened it."""
        if self._owns_bus and self._bus is not None:
            try:
                self._bus.close()
            except OSError as exc:
                logger.debug("Error closing I2C bus: %s", exc)
            self._bus = None

    def __enter__(self) -> I2cResetter:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get_bus(self) -> Any:
        if self._bus is None:
            raise RuntimeError("I2C bus not open")
        return self._bus

    def reset(self) -> None:
        """Send the reset command and wait for the logic to settle.

        Raises:
            BusError: If the command cannot be written.
        """
        bus = self._get_bus()
        try:
            bus.write_byte(self._address, self.RESET_COMMAND)
        except OSError as exc:
            raise BusError(f"Reset command to 0x{self._address:02x} failed: {exc}") from exc
        self._sleep(self._wait)

    def _check_flag_address(self, flag: int) -> None:
        if flag not in self.FLAG_ADDRESSES:
            raise ValueError(f"Invalid flag address: {flag}")

    def set_flag(self, flag: int, value: int) -> None:
        """Write a flag register.

        Raises:
            ValueError: If flag is not a flag register address.
            BusError: If the write fails.
        """
        self._check_flag_address(flag)
        bus = self._get_bus()
        try:
            bus.write_byte_data(self._address, flag, value)
        except OSError as exc:
            raise BusError(f"Setting flag {flag} on 0x{self._address:02x} failed: {exc}") from exc

    def get_flag(self, flag: int) -> int:
        """Read a flag register.

        Raises:
            ValueError: If flag is not a flag register address.
            BusError: If the read fails.
        """
        self._check_flag_address(flag)
        bus = self._get_bus()
        try:
            value: int = bus.read_byte_data(self._address, flag)
        except OSError as exc:
            raise BusError(f"Reading flag {flag} on 0x{self._address:02x} failed: {exc}") from exc
        return value

    def wait_flag(
        self,
        flag: int,
        poll_interval: float = 0.01,
        timeout: float | None = None,
        stop_event: threading.Event | None = None,
    ) -> bool:
        """Block until a flag reads 1, then clear it.

        Polls every ``poll_interval`` seconds. The wait happens on
        ``stop_event`` so another thread can end it early.

        Args:
            flag: Flag register address.
            poll_interval: Seconds between polls.
            timeout: Give up after this many seconds, or None to wait forever.
            stop_event: Event that ends the wait when set.

        Returns:
            True if the flag was seen and cleared, False on stop or timeout.

        Raises:
            ValueError: If flag is not a flag register address.
            BusError: If polling fails.
        """
        self._check_flag_address(flag)
        stop = stop_event or threading.Event()
        deadline = None if timeout is None else time.monotonic() + timeout

        while not stop.wait(poll_interval):
            if self.get_flag(flag) == 1:
                self.set_flag(flag, 0)
                return True
            if deadline is not None and time.monotonic() >= deadline:
                logger.debug("Timed out waiting for flag %d", flag)
                return False
        return False
