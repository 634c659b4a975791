"""Unit tests for signature encoding and matrix diagrams."""

from __future__ import annotations

import pytest

from hwtest_continuity.mcp23017 import Mcp23017, Mcp23017Config
from hwtest_continuity.scanner import ContinuityScanner
from hwtest_continuity.signature import (
    ANOMALY_MARK,
    NORMAL_MARK,
    SIGNATURE_PATTERN,
    BitOrder,
    SignatureCodec,
    fold_bits,
    to_matrix_diagram,
    to_signature,
)
from hwtest_continuity.simulator import SimulatedHarness, SimulatedResetter
from hwtest_continuity.types import ConnectivityMatrix, PinReading, Unit

NONE = (False,) * 16


def _flags(*indices: int) -> tuple[bool, ...]:
    return tuple(i in indices for i in range(16))


def _matrix(rows: dict[tuple[Unit, int], PinReading] | None = None) -> ConnectivityMatrix:
    """Build a matrix that is blank except for the given rows."""
    rows = rows or {}
    readings = tuple(
        tuple(rows.get((unit, pin), PinReading(west=NONE, east=NONE)) for pin in range(16))
        for unit in Unit
    )
    return ConnectivityMatrix(readings=(readings[0], readings[1]))


def _west0_to_east3() -> ConnectivityMatrix:
    return _matrix(
        {
            (Unit.WEST, 0): PinReading(west=NONE, east=_flags(3)),
            (Unit.EAST, 3): PinReading(west=_flags(0), east=NONE),
        }
    )


class TestFoldBits:
    def test_index_zero_is_high_bit(self) -> None:
        assert fold_bits(_flags(0)) == 0x8000

    def test_index_fifteen_is_low_bit(self) -> None:
        assert fold_bits(_flags(15)) == 0x0001

    def test_index_three(self) -> None:
        assert fold_bits(_flags(3)) == 0x1000

    def test_all_and_none(self) -> None:
        assert fold_bits((True,) * 16) == 0xFFFF
        assert fold_bits(NONE) == 0

    def test_lsb_first_reverses(self) -> None:
        assert fold_bits(_flags(0), BitOrder.LSB_FIRST) == 0x0001
        assert fold_bits(_flags(15), BitOrder.LSB_FIRST) == 0x8000


class TestToSignature:
    def test_blank_matrix(self) -> None:
        assert to_signature(_matrix()) == "0" * 64 + " " + "0" * 64

    def test_format(self) -> None:
        signature = to_signature(_west0_to_east3())
        assert SIGNATURE_PATTERN.match(signature)
        assert len(signature) == 129

    def test_deterministic(self) -> None:
        assert to_signature(_west0_to_east3()) == to_signature(_west0_to_east3())

    def test_single_wire_codes(self) -> None:
        west, east = to_signature(_west0_to_east3()).split(" ")
        # West pin 0 sees East line 3; East pin 3 sees West line 0
        assert west[0:4] == "1000"
        assert west[4:] == "0" * 60
        assert east[12:16] == "8000"
        assert east[:12] == "0" * 12
        assert east[16:] == "0" * 48

    def test_same_unit_flags_ignored_by_default(self) -> None:
        matrix = _matrix({(Unit.WEST, 0): PinReading(west=_flags(0, 1), east=_flags(3))})
        assert to_signature(matrix).split(" ")[0][:4] == "1000"

    def test_lowercase_hex(self) -> None:
        matrix = _matrix({(Unit.WEST, 5): PinReading(west=NONE, east=(True,) * 16)})
        west = to_signature(matrix).split(" ")[0]
        assert west[20:24] == "ffff"


class TestSignatureCodec:
    def test_default_codec_matches_module_function(self) -> None:
        assert SignatureCodec().encode(_west0_to_east3()) == to_signature(_west0_to_east3())

    def test_legacy_layout(self) -> None:
        """Both destination units per pin, reversed fold."""
        codec = SignatureCodec(bit_order=BitOrder.LSB_FIRST, include_same_unit=True)
        matrix = _matrix({(Unit.WEST, 0): PinReading(west=_flags(0), east=_flags(3))})

        west, east = codec.encode(matrix).split(" ")

        assert len(west) == 128
        assert len(east) == 128
        assert west[0:4] == "0001"
        assert west[4:8] == "0008"
        assert west[8:] == "0" * 120

    def test_pin_codes(self) -> None:
        reading = PinReading(west=_flags(1), east=_flags(2))
        assert SignatureCodec().pin_codes(Unit.EAST, reading) == [0x4000]
        assert SignatureCodec(include_same_unit=True).pin_codes(Unit.EAST, reading) == [
            0x4000,
            0x2000,
        ]


class TestMatrixDiagram:
    def test_layout(self) -> None:
        lines = to_matrix_diagram(_matrix()).split("\n")
        header = "    0 1 2 3 4 5 6 7 8 9 A B C D E F   0 1 2 3 4 5 6 7 8 9 A B C D E F"
        assert lines[0] == header
        # header + 16 rows + blank, twice, plus trailing newline
        assert len(lines) == 1 + 2 * 17 + 1
        assert lines[1] == "0  " + " " * 32 + "  " + " " * 32
        assert lines[16].startswith("F  ")
        assert lines[17] == ""

    def test_marks_align_with_header(self) -> None:
        diagram = to_matrix_diagram(_west0_to_east3())
        header, west0 = diagram.split("\n")[:2]
        column = west0.index("-")
        # East line 3, right of the West block
        assert header[column] == "3"
        assert column > header.index("F")

    @pytest.mark.parametrize(
        ("reading", "expected_marks"),
        [
            (PinReading(west=NONE, east=_flags(7)), {NORMAL_MARK: 1, ANOMALY_MARK: 0}),
            (PinReading(west=NONE, east=NONE), {NORMAL_MARK: 0, ANOMALY_MARK: 0}),
            (PinReading(west=NONE, east=_flags(7, 9)), {NORMAL_MARK: 0, ANOMALY_MARK: 2}),
        ],
        ids=["one_to_one", "open", "shorted"],
    )
    def test_row_marks(self, reading: PinReading, expected_marks: dict[str, int]) -> None:
        row = to_matrix_diagram(_matrix({(Unit.WEST, 4): reading})).split("\n")[5]
        cells = row[3:]
        assert row.startswith("4  ")
        assert cells.count(NORMAL_MARK) == expected_marks[NORMAL_MARK]
        assert cells.count(ANOMALY_MARK) == expected_marks[ANOMALY_MARK]

    def test_driven_line_not_counted_as_connection(self) -> None:
        """A wired line plus the driven line reading low is still 1:1."""
        reading = PinReading(west=_flags(2), east=_flags(11))
        row = to_matrix_diagram(_matrix({(Unit.WEST, 2): reading})).split("\n")[3]
        assert row.count(NORMAL_MARK) == 2
        assert ANOMALY_MARK not in row

    def test_simulated_scan_marks(self) -> None:
        """On a real scan a wired pin is normal and an open pin anomalous."""
        harness = SimulatedHarness(["W0-E3"])
        west = Mcp23017(Mcp23017Config(address=0x20), bus=harness)
        east = Mcp23017(Mcp23017Config(address=0x21), bus=harness)
        west.open()
        east.open()
        scanner = ContinuityScanner(west, east, SimulatedResetter(harness), settle_time=0.0)

        lines = to_matrix_diagram(scanner.scan()).split("\n")

        west0, west1, east3 = lines[1], lines[2], lines[18 + 3]
        assert west0.count(NORMAL_MARK) == 2
        assert ANOMALY_MARK not in west0
        assert west1.count(ANOMALY_MARK) == 1
        assert NORMAL_MARK not in west1
        assert east3.count(NORMAL_MARK) == 2

    def test_east_rows_follow_west(self) -> None:
        diagram = to_matrix_diagram(_west0_to_east3())
        east3 = diagram.split("\n")[18 + 3]
        assert east3.startswith("3  ")
        assert NORMAL_MARK in east3
