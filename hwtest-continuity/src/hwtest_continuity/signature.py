"""Signature encoding and matrix diagrams.

A signature is the harness fingerprint used for catalog lookup: two
space-separated lowercase hex halves, West then East. Each half holds one
4-digit code per pin 0-15 of that unit, folding the 16 flags read on the
opposite unit while the pin was driven.

The fold shifts an accumulator left once per flag, index 0 first, so flag 0
ends up in bit 15 and flag 15 in bit 0::

    >>> fold_bits([True] + [False] * 15)
    32768

Changing the fold order or the scan order changes every signature and
invalidates every catalog entry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from hwtest_continuity.types import ConnectivityMatrix, PinReading, Unit

SIGNATURE_PATTERN = re.compile(r"^[0-9a-f]{64} [0-9a-f]{64}$")

NORMAL_MARK = " -"
ANOMALY_MARK = " *"
EMPTY_MARK = "  "


class BitOrder(Enum):
    """Which end of a flag vector becomes the most significant bit."""

    MSB_FIRST = "msb_first"  # index 0 -> bit 15
    LSB_FIRST = "lsb_first"  # index 0 -> bit 0


def fold_bits(flags: Sequence[bool], bit_order: BitOrder = BitOrder.MSB_FIRST) -> int:
    """Fold a flag vector into an integer, one bit per flag."""
    ordered = flags if bit_order is BitOrder.MSB_FIRST else reversed(flags)
    acc = 0
    for flag in ordered:
        acc = (acc << 1) | (1 if flag else 0)
    return acc


@dataclass(frozen=True)
class SignatureCodec:
    """Encodes connectivity matrices as signatures.

    Attributes:
        bit_order: Fold orientation of each 16-flag vector.
        include_same_unit: Also encode the flags read on the probed pin's own
            unit, giving two codes per pin, West then East. Together with
            ``BitOrder.LSB_FIRST`` this reads catalogs written by the first
            generation of the tester.
    """

    bit_order: BitOrder = BitOrder.MSB_FIRST
    include_same_unit: bool = False

    def pin_codes(self, unit: Unit, reading: PinReading) -> list[int]:
        """Return the codes contributed by one pin of ``unit``."""
        if self.include_same_unit:
            destinations = list(Unit)
        else:
            destinations = [unit.opposite]
        return [fold_bits(reading.for_unit(dest), self.bit_order) for dest in destinations]

    def encode(self, matrix: ConnectivityMatrix) -> str:
        """Encode a matrix as a signature string."""
        halves = []
        for unit in Unit:
            codes = []
            for reading in matrix.readings[unit]:
                codes.extend(self.pin_codes(unit, reading))
            halves.append("".join(f"{code:04x}" for code in codes))
        return " ".join(halves)


DEFAULT_CODEC = SignatureCodec()


def to_signature(matrix: ConnectivityMatrix) -> str:
    """Encode a matrix with the default codec."""
    return DEFAULT_CODEC.encode(matrix)


def to_matrix_diagram(matrix: ConnectivityMatrix) -> str:
    """Render a matrix as a grid for the operator.

    One row per driven pin, grouped by unit, with West and East columns.
    Lines seen low are marked ``-`` when exactly one line other than the
    driven pin itself followed it (a plain 1:1 wire) and ``*`` otherwise
    (open or shorted). The driven output always reads its own low level, so
    it never counts as a connection. The marks are diagnostic only; matching
    uses the signature.
    """
    columns = " ".join(f"{pin:X}" for pin in range(16))
    lines = [f"    {columns}   {columns}"]
    for unit in Unit:
        for pin, reading in enumerate(matrix.readings[unit]):
            connections = reading.count() - int(reading.for_unit(unit)[pin])
            mark = NORMAL_MARK if connections == 1 else ANOMALY_MARK
            west = "".join(mark if flag else EMPTY_MARK for flag in reading.west)
            east = "".join(mark if flag else EMPTY_MARK for flag in reading.east)
            lines.append(f"{pin:X}  {west}  {east}")
        lines.append("")
    return "\n".join(lines) + "\n"
