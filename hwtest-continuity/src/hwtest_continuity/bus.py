"""I2C bus access."""

from __future__ import annotations

from typing import Any


def open_bus(bus_number: int = 1) -> Any:
    """Open an I2C bus via smbus2.

    Args:
        bus_number: I2C bus number (typically 1 on Raspberry Pi).

    Returns:
        An open ``smbus2.SMBus``.

    Raises:
        ImportError: If smbus2 is not available.
        OSError: If the bus device cannot be opened.
    """
    try:
        import smbus2  # pylint: disable=import-outside-toplevel
    except ImportError as exc:
        raise ImportError(
            "smbus2 library is not installed. Install with: pip install smbus2"
        ) from exc

    return smbus2.SMBus(bus_number)
