"""Tests for the hwtest-continuity command line."""

from __future__ import annotations

import textwrap
from contextlib import ExitStack
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from hwtest_continuity.cli import build_simulation, main, parse_args
from hwtest_continuity.config import TesterConfig
from hwtest_continuity.types import Unit

STRAIGHT_WIRES = [f"W{pin}-E{pin}" for pin in range(16)]


def _write_config(tmp_path: Path, wires: list[str]) -> Path:
    config = tmp_path / "tester.yaml"
    wire_list = ", ".join(f'"{w}"' for w in wires)
    config.write_text(
        textwrap.dedent(f"""\
        ready:
          poll_interval: 0.001
        simulation:
          wires: [{wire_list}]
        """)
    )
    return config


def _create_mock_bus() -> MagicMock:
    mock = MagicMock()
    mock.read_i2c_block_data.return_value = [0xFF, 0xFF]
    return mock


class TestParseArgs:
    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.config is None
        assert args.catalog is None
        assert not args.loop
        assert not args.verbose
        assert not args.simulate

    def test_flags(self) -> None:
        args = parse_args(["-l", "-v", "--catalog", "x.dat", "-c", "t.yaml"])
        assert args.loop
        assert args.verbose
        assert args.catalog == "x.dat"
        assert args.config == "t.yaml"


class TestSimulatedRun:
    def test_unknown_harness_then_known(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = _write_config(tmp_path, STRAIGHT_WIRES)
        catalog = tmp_path / "signatures.dat"
        catalog.write_text("# empty\n")

        assert main(["--simulate", "-c", str(config), "--catalog", str(catalog)]) == 0

        out = capsys.readouterr().out
        assert out.startswith("Ready!\nNotFound:\n")
        signature = out.rstrip("\n").splitlines()[-1]
        west, east = signature.split(" ")
        # Straight harness: pin n sees opposite line n only
        assert west[0:4] == "8000"
        assert west[60:64] == "0001"
        assert east == west

        catalog.write_text(f"{signature} Straight-16\n")
        assert main(["--simulate", "-c", str(config), "--catalog", str(catalog)]) == 0
        assert capsys.readouterr().out == "Ready!\nFound:\n  - Straight-16\n"

    def test_verbose_found_prints_diagram(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = _write_config(tmp_path, [])
        catalog = tmp_path / "signatures.dat"
        catalog.write_text(f"{'0' * 64} {'0' * 64} Unwired\n")

        assert main(["--simulate", "-v", "-c", str(config), "--catalog", str(catalog)]) == 0

        out = capsys.readouterr().out
        assert "Found:\n  - Unwired\n" in out
        assert "0 1 2 3 4 5 6 7 8 9 A B C D E F" in out

    def test_loop_cannot_be_simulated(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = _write_config(tmp_path, [])
        catalog = tmp_path / "signatures.dat"
        catalog.write_text("")

        assert main(["--simulate", "--loop", "-c", str(config), "--catalog", str(catalog)]) == 1
        assert "cannot be simulated" in capsys.readouterr().out


class TestStartupErrors:
    def test_missing_catalog(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = _write_config(tmp_path, [])
        assert main(["--simulate", "-c", str(config), "--catalog", str(tmp_path / "no.dat")]) == 1
        assert "Signature catalog not found" in capsys.readouterr().out

    def test_unreadable_catalog(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = _write_config(tmp_path, [])
        catalog_dir = tmp_path / "signatures.dat"
        catalog_dir.mkdir()

        assert main(["--simulate", "-c", str(config), "--catalog", str(catalog_dir)]) == 1
        assert capsys.readouterr().out.startswith("Error:")

    def test_missing_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["-c", str(tmp_path / "missing.yaml")]) == 1
        assert "Tester config not found" in capsys.readouterr().out


class TestHardwareRun:
    """Runs against a mocked I2C bus."""

    def test_single_shot(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = _write_config(tmp_path, [])
        catalog = tmp_path / "signatures.dat"
        catalog.write_text("")
        mock_bus = _create_mock_bus()

        with patch("hwtest_continuity.cli.open_bus", return_value=mock_bus):
            assert main(["-c", str(config), "--catalog", str(catalog)]) == 0

        assert "NotFound:" in capsys.readouterr().out
        # One I2C reset command per single-pin test
        assert mock_bus.write_byte.call_count == 32
        mock_bus.write_byte.assert_called_with(0x0F, 0x00)
        mock_bus.close.assert_called_once()

    def test_loop_waits_for_ready_flag(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        config = _write_config(tmp_path, [])
        catalog = tmp_path / "signatures.dat"
        catalog.write_text("")
        mock_bus = _create_mock_bus()
        # Harness ready once, then the operator hits Ctrl-C
        mock_bus.read_byte_data.side_effect = [0, 1, KeyboardInterrupt()]

        with patch("hwtest_continuity.cli.open_bus", return_value=mock_bus):
            assert main(["--loop", "-c", str(config), "--catalog", str(catalog)]) == 0

        out = capsys.readouterr().out
        assert out.count("NotFound:") == 1
        assert mock_bus.write_byte.call_count == 32
        # Flag cleared on detection and again after the scan
        flag_writes = [c for c in mock_bus.write_byte_data.call_args_list if c.args[0] == 0x0F]
        assert [c.args for c in flag_writes] == [(0x0F, 1, 0), (0x0F, 1, 0)]

    def test_bus_error_exits_nonzero(self, tmp_path: Path) -> None:
        config = _write_config(tmp_path, [])
        catalog = tmp_path / "signatures.dat"
        catalog.write_text("")
        mock_bus = _create_mock_bus()
        mock_bus.read_i2c_block_data.side_effect = OSError(121, "Remote I/O error")

        with patch("hwtest_continuity.cli.open_bus", return_value=mock_bus):
            assert main(["-c", str(config), "--catalog", str(catalog)]) == 1

        mock_bus.close.assert_called_once()


class TestBuildSimulation:
    def test_devices_closed_with_stack(self) -> None:
        config = TesterConfig(simulated_wires=("W0-E3",))

        with ExitStack() as stack:
            scanner = build_simulation(config, stack)
            assert scanner.check(Unit.WEST, 0).east[3]

        with pytest.raises(RuntimeError, match="Device not open"):
            scanner.check(Unit.WEST, 0)
