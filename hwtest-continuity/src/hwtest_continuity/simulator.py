"""Simulated harness for running the tester without hardware.

SimulatedHarness stands in for the I2C bus. It answers for the West and East
expander addresses with MCP23017 register behaviour and models the harness
electrically: lines joined by wires form a net, and every line on a net
reads the net's level.

Net level rules:
    - any member configured as output with its latch low pulls the net low
    - otherwise any member driven high makes it high
    - otherwise any member with its pull-up enabled makes it high
    - otherwise the net floats and reads ``floating_high``

Example:
    >>> harness = SimulatedHarness(["W0-E3"])
    >>> west = Mcp23017(Mcp23017Config(address=0x20), bus=harness)
"""

from __future__ import annotations

import errno
import re
from typing import Iterable, Union

from hwtest_continuity.mcp23017 import Mcp23017Register
from hwtest_continuity.types import PINS_PER_UNIT, Unit, pin_location

Line = tuple[Unit, int]
Wire = tuple[Line, Line]
WireSpec = Union[str, Wire]

_WIRE_RE = re.compile(r"^\s*([WE])(\d{1,2})\s*-\s*([WE])(\d{1,2})\s*$", re.IGNORECASE)
_UNIT_PREFIX = {"W": Unit.WEST, "E": Unit.EAST}

_POWER_ON = {
    Mcp23017Register.IODIRA: 0xFF,
    Mcp23017Register.IODIRB: 0xFF,
    Mcp23017Register.GPPUA: 0x00,
    Mcp23017Register.GPPUB: 0x00,
    Mcp23017Register.OLATA: 0x00,
    Mcp23017Register.OLATB: 0x00,
}


def parse_wire(spec: str) -> Wire:
    """Parse a wire spec such as ``"W0-E3"``.

    Raises:
        ValueError: If the spec is malformed.
        InvalidPinError: If a pin is outside 0-15.
    """
    match = _WIRE_RE.match(spec)
    if match is None:
        raise ValueError(f"Invalid wire spec: {spec!r} (expected e.g. 'W0-E3')")
    unit_a, pin_a, unit_b, pin_b = match.groups()
    line_a = (_UNIT_PREFIX[unit_a.upper()], int(pin_a))
    line_b = (_UNIT_PREFIX[unit_b.upper()], int(pin_b))
    pin_location(line_a[1])
    pin_location(line_b[1])
    return line_a, line_b


class SimulatedHarness:
    """I2C bus double with two MCP23017s joined by a wiring harness.

    Args:
        wires: Wire specs ("W0-E3") or ((unit, pin), (unit, pin)) pairs.
        west_address: I2C address answering as the West expander.
        east_address: I2C address answering as the East expander.
        floating_high: Level read on a net with no driver and no pull-up.
    """

    def __init__(
        self,
        wires: Iterable[WireSpec] = (),
        west_address: int = 0x20,
        east_address: int = 0x21,
        floating_high: bool = False,
    ) -> None:
        self._addresses = {west_address: Unit.WEST, east_address: Unit.EAST}
        self._floating_high = floating_high
        self._registers: dict[Unit, dict[int, int]] = {}
        self._nets = self._build_nets(
            parse_wire(w) if isinstance(w, str) else w for w in wires
        )
        self.closed = False
        self.reset()

    @staticmethod
    def _build_nets(wires: Iterable[Wire]) -> dict[Line, frozenset[Line]]:
        parent: dict[Line, Line] = {
            (unit, pin): (unit, pin) for unit in Unit for pin in range(PINS_PER_UNIT)
        }

        def find(line: Line) -> Line:
            while parent[line] != line:
                parent[line] = parent[parent[line]]
                line = parent[line]
            return line

        for line_a, line_b in wires:
            parent[find(line_a)] = find(line_b)

        groups: dict[Line, set[Line]] = {}
        for line in parent:
            groups.setdefault(find(line), set()).add(line)
        return {line: frozenset(groups[find(line)]) for line in parent}

    def reset(self) -> None:
        """Return both expanders to their power-on register state."""
        for unit in Unit:
            self._registers[unit] = dict(_POWER_ON)

    def connected(self, unit: Unit, pin: int) -> frozenset[Line]:
        """Return every line on the same net as the given line."""
        return self._nets[(unit, pin)]

    def _unit(self, address: int) -> Unit:
        try:
            return self._addresses[address]
        except KeyError:
            raise OSError(errno.EREMOTEIO, f"No device at 0x{address:02x}") from None

    def _bit(self, unit: Unit, register_a: Mcp23017Register, pin: int) -> bool:
        bank, offset = pin_location(pin)
        return bool(self._registers[unit][register_a + bank] & (1 << offset))

    def _is_output(self, line: Line) -> bool:
        return not self._bit(line[0], Mcp23017Register.IODIRA, line[1])

    def _level(self, unit: Unit, pin: int) -> bool:
        net = self._nets[(unit, pin)]
        driven = [
            self._bit(u, Mcp23017Register.OLATA, p) for u, p in net if self._is_output((u, p))
        ]
        if driven:
            return all(driven)
        if any(self._bit(u, Mcp23017Register.GPPUA, p) for u, p in net):
            return True
        return self._floating_high

    def _port_value(self, unit: Unit, bank: int) -> int:
        value = 0
        for offset in range(8):
            if self._level(unit, bank * 8 + offset):
                value |= 1 << offset
        return value

    def write_byte(self, i2c_addr: int, value: int) -> None:
        self._unit(i2c_addr)

    def write_byte_data(self, i2c_addr: int, register: int, value: int) -> None:
        unit = self._unit(i2c_addr)
        if register in (Mcp23017Register.GPIOA, Mcp23017Register.GPIOB):
            # Writing GPIO writes the output latch
            register += Mcp23017Register.OLATA - Mcp23017Register.GPIOA
        self._registers[unit][register] = value & 0xFF

    def read_byte_data(self, i2c_addr: int, register: int) -> int:
        unit = self._unit(i2c_addr)
        if register == Mcp23017Register.GPIOA:
            return self._port_value(unit, 0)
        if register == Mcp23017Register.GPIOB:
            return self._port_value(unit, 1)
        return self._registers[unit].get(register, 0x00)

    def read_i2c_block_data(self, i2c_addr: int, register: int, length: int) -> list[int]:
        return [self.read_byte_data(i2c_addr, register + i) for i in range(length)]

    def close(self) -> None:
        self.closed = True


class SimulatedResetter:
    """Reset controller that resets a SimulatedHarness."""

    def __init__(self, harness: SimulatedHarness) -> None:
        self._harness = harness
        self.reset_count = 0

    def reset(self) -> None:
        self._harness.reset()
        self.reset_count += 1
