"""Tester configuration loading.

Every key is optional; a missing file section falls back to the defaults
below, which match the standard tester build (two expanders at 0x20/0x21 and
the reset/flag device at 0x0f on bus 1).

Example YAML:
    bus: 1

    units:
      west: 0x20
      east: 0x21

    reset:
      type: i2c          # or "gpio"
      address: 0x0f
      wait: 0.01
      gpio_chip: 0
      gpio_pin: 4
      pulse_width: 0.001

    scan:
      settle_time: 0.01

    signature:
      bit_order: msb_first
      include_same_unit: false

    catalog:
      path: signatures.dat

    ready:
      flag: 1
      poll_interval: 0.01

    simulation:
      wires: ["W0-E3", "W1-E1"]
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from hwtest_continuity.catalog import DEFAULT_CATALOG_PATH
from hwtest_continuity.signature import BitOrder, SignatureCodec

CONFIG_ENV_VAR = "HWTEST_CONTINUITY_CONFIG"

RESET_TYPES = ("i2c", "gpio")


@dataclass(frozen=True)
class UnitAddresses:
    """I2C addresses of the West and East expanders."""

    west: int = 0x20
    east: int = 0x21

    def __post_init__(self) -> None:
        for name in ("west", "east"):
            address = getattr(self, name)
            if not 0x20 <= address <= 0x27:
                raise ValueError(f"units.{name} must be 0x20-0x27, got {hex(address)}")
        if self.west == self.east:
            raise ValueError("units.west and units.east must differ")


@dataclass(frozen=True)
class ResetConfig:
    """Reset controller selection and timing.

    Attributes:
        type: "i2c" for the I2C reset/flag device, "gpio" for a GPIO line.
        address: I2C address of the reset device.
        wait: Delay after the I2C reset command in seconds.
        gpio_chip: GPIO chip number.
        gpio_pin: BCM pin number of the reset line.
        pulse_width: GPIO pulse width in seconds.
    """

    type: str = "i2c"
    address: int = 0x0F
    wait: float = 0.01
    gpio_chip: int = 0
    gpio_pin: int = 4
    pulse_width: float = 0.001

    def __post_init__(self) -> None:
        if self.type not in RESET_TYPES:
            raise ValueError(f"reset.type must be one of {RESET_TYPES}, got {self.type!r}")
        if self.wait < 0 or self.pulse_width < 0:
            raise ValueError("reset timings must be >= 0")


@dataclass(frozen=True)
class ReadyConfig:
    """Ready flag polled between scans in loop mode."""

    flag: int = 1
    poll_interval: float = 0.01

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError(f"ready.poll_interval must be > 0, got {self.poll_interval}")


@dataclass(frozen=True)
class TesterConfig:
    """Complete tester configuration.

    Attributes:
        bus: I2C bus number shared by all devices.
        units: Expander addresses.
        reset: Reset controller settings.
        settle_time: Delay between configuring and reading, in seconds.
        codec: Signature encoding.
        catalog_path: Signature catalog file.
        ready: Ready flag settings for loop mode.
        simulated_wires: Wire specs for the simulated harness.
    """

    bus: int = 1
    units: UnitAddresses = field(default_factory=UnitAddresses)
    reset: ResetConfig = field(default_factory=ResetConfig)
    settle_time: float = 0.01
    codec: SignatureCodec = field(default_factory=SignatureCodec)
    catalog_path: Path = Path(DEFAULT_CATALOG_PATH)
    ready: ReadyConfig = field(default_factory=ReadyConfig)
    simulated_wires: tuple[str, ...] = ()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{name} must be a mapping")
    return section


def _parse_codec(data: dict[str, Any]) -> SignatureCodec:
    bit_order = data.get("bit_order", BitOrder.MSB_FIRST.value)
    try:
        order = BitOrder(bit_order)
    except ValueError as exc:
        raise ValueError(
            f"signature.bit_order must be msb_first or lsb_first, got {bit_order!r}"
        ) from exc
    include_same_unit = data.get("include_same_unit", False)
    if not isinstance(include_same_unit, bool):
        raise ValueError(
            f"signature.include_same_unit must be true or false, got {include_same_unit!r}"
        )
    return SignatureCodec(bit_order=order, include_same_unit=include_same_unit)


def parse_tester_config(data: dict[str, Any]) -> TesterConfig:
    """Build a TesterConfig from parsed YAML data.

    Raises:
        ValueError: If a section has the wrong shape or a value is invalid.
    """
    units = _section(data, "units")
    reset = _section(data, "reset")
    scan = _section(data, "scan")
    ready = _section(data, "ready")
    catalog = _section(data, "catalog")
    simulation = _section(data, "simulation")

    settle_time = float(scan.get("settle_time", 0.01))
    if settle_time < 0:
        raise ValueError(f"scan.settle_time must be >= 0, got {settle_time}")

    wires = simulation.get("wires", [])
    if not isinstance(wires, list):
        raise ValueError("simulation.wires must be a list")

    return TesterConfig(
        bus=int(data.get("bus", 1)),
        units=UnitAddresses(
            west=int(units.get("west", 0x20)),
            east=int(units.get("east", 0x21)),
        ),
        reset=ResetConfig(
            type=str(reset.get("type", "i2c")),
            address=int(reset.get("address", 0x0F)),
            wait=float(reset.get("wait", 0.01)),
            gpio_chip=int(reset.get("gpio_chip", 0)),
            gpio_pin=int(reset.get("gpio_pin", 4)),
            pulse_width=float(reset.get("pulse_width", 0.001)),
        ),
        settle_time=settle_time,
        codec=_parse_codec(_section(data, "signature")),
        catalog_path=Path(catalog.get("path", DEFAULT_CATALOG_PATH)),
        ready=ReadyConfig(
            flag=int(ready.get("flag", 1)),
            poll_interval=float(ready.get("poll_interval", 0.01)),
        ),
        simulated_wires=tuple(str(w) for w in wires),
    )


def load_tester_config(path: str | Path | None = None) -> TesterConfig:
    """Load the tester configuration.

    Args:
        path: YAML file to load. When None, the path in the
            HWTEST_CONTINUITY_CONFIG environment variable is used, and
            without that the built-in defaults.

    Returns:
        Parsed TesterConfig.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValueError: If the file is not a mapping or holds invalid values.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if not env_path:
            return TesterConfig()
        path = env_path

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Tester config not found: {path}")

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("Tester config must be a YAML mapping")

    return parse_tester_config(data)
