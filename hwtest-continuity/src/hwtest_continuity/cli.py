"""Command-line interface for hwtest-continuity.

Scans the harness seated in the tester, looks the signature up in the
catalog and prints the result.

Usage:
    # Test one harness
    hwtest-continuity --catalog signatures.dat

    # Test harnesses as the fixture reports them ready, until Ctrl-C
    hwtest-continuity --loop

    # Run against the simulated harness from the config file
    hwtest-continuity --simulate --config tester.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import ExitStack

from hwtest_continuity.bus import open_bus
from hwtest_continuity.catalog import SignatureCatalog
from hwtest_continuity.config import TesterConfig, load_tester_config
from hwtest_continuity.errors import ContinuityError
from hwtest_continuity.interfaces import ResetController
from hwtest_continuity.mcp23017 import Mcp23017, Mcp23017Config
from hwtest_continuity.report import build_report
from hwtest_continuity.reset import GpioResetter, I2cResetter
from hwtest_continuity.scanner import ContinuityScanner
from hwtest_continuity.simulator import SimulatedHarness, SimulatedResetter

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_hardware(
    config: TesterConfig, stack: ExitStack, need_flags: bool
) -> tuple[ContinuityScanner, I2cResetter | None]:
    """Open the bus, expanders and reset controller described by config.

    Everything opened is registered on ``stack`` for closing.

    Returns:
        Tuple of (scanner, ready flag device or None).
    """
    bus = open_bus(config.bus)
    stack.callback(bus.close)

    units = []
    for address in (config.units.west, config.units.east):
        device = Mcp23017(Mcp23017Config(i2c_bus=config.bus, address=address), bus=bus)
        device.open()
        stack.callback(device.close)
        units.append(device)

    flag_device: I2cResetter | None = None
    if config.reset.type == "i2c" or need_flags:
        flag_device = I2cResetter(config.reset.address, bus=bus, wait=config.reset.wait)

    resetter: ResetController
    if config.reset.type == "gpio":
        gpio = GpioResetter(
            pin=config.reset.gpio_pin,
            chip=config.reset.gpio_chip,
            pulse_width=config.reset.pulse_width,
        )
        gpio.open()
        stack.callback(gpio.close)
        resetter = gpio
    else:
        assert flag_device is not None
        resetter = flag_device

    scanner = ContinuityScanner(units[0], units[1], resetter, settle_time=config.settle_time)
    return scanner, flag_device


def build_simulation(config: TesterConfig, stack: ExitStack) -> ContinuityScanner:
    """Build a scanner wired to a SimulatedHarness.

    The expanders are registered on ``stack`` for closing.
    """
    harness = SimulatedHarness(
        config.simulated_wires,
        west_address=config.units.west,
        east_address=config.units.east,
    )
    west = Mcp23017(Mcp23017Config(address=config.units.west), bus=harness)
    east = Mcp23017(Mcp23017Config(address=config.units.east), bus=harness)
    for device in (west, east):
        device.open()
        stack.callback(device.close)
    logger.info("Simulating harness with %d wire(s)", len(config.simulated_wires))
    return ContinuityScanner(west, east, SimulatedResetter(harness), settle_time=0.0)


def run_once(
    scanner: ContinuityScanner,
    catalog: SignatureCatalog,
    config: TesterConfig,
    verbose: bool,
) -> bool:
    """Scan, classify and print one harness. Returns True if found."""
    matrix = scanner.scan()
    report = build_report(matrix, catalog, config.codec)
    print(report.render(verbose=verbose), end="")
    if report.found:
        logger.info("Harness recognised: %s", ", ".join(report.labels))
    else:
        logger.warning("Harness not found in catalog: %s", report.signature)
    return report.found


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Wiring harness continuity tester",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config", "-c",
        help="Tester config YAML (default: $HWTEST_CONTINUITY_CONFIG or built-in defaults)",
    )
    parser.add_argument(
        "--catalog",
        help="Signature catalog file (overrides catalog.path from the config)",
    )
    parser.add_argument(
        "--loop", "-l", action="store_true",
        help="Wait for the ready flag before each scan and repeat until interrupted",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Print the matrix and signature for recognised harnesses too",
    )
    parser.add_argument(
        "--simulate", action="store_true",
        help="Scan the simulated harness from simulation.wires instead of hardware",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.debug)

    try:
        config = load_tester_config(args.config)
    except (FileNotFoundError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    catalog_path = args.catalog or config.catalog_path
    try:
        catalog = SignatureCatalog.load(catalog_path)
    except OSError as exc:
        print(f"Error: {exc}")
        return 1

    if args.simulate and args.loop:
        print("Error: --loop needs the hardware ready flag and cannot be simulated")
        return 1

    flags: I2cResetter | None = None
    with ExitStack() as stack:
        try:
            if args.simulate:
                scanner = build_simulation(config, stack)
            else:
                scanner, flags = build_hardware(config, stack, need_flags=args.loop)

            print("Ready!")
            while True:
                if args.loop:
                    assert flags is not None
                    flags.wait_flag(config.ready.flag, poll_interval=config.ready.poll_interval)

                run_once(scanner, catalog, config, args.verbose)

                if not args.loop:
                    break
                assert flags is not None
                flags.set_flag(config.ready.flag, 0)
        except (ContinuityError, OSError) as exc:
            logger.error("Scan aborted: %s", exc)
            return 1
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
