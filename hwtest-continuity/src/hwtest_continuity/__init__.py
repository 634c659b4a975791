"""hwtest-continuity: wiring harness continuity tester.

Tests a harness joining two 16-line units, each behind an MCP23017 I2C GPIO
expander. Every line is driven in turn and the lines that follow it low are
recorded; the resulting matrix is folded into a signature and looked up in a
catalog of known-good harnesses.

- ContinuityScanner drives the single-pin tests
- SignatureCodec turns the matrix into a signature
- SignatureCatalog classifies the signature
- SimulatedHarness runs everything without hardware
"""

from hwtest_continuity.catalog import CatalogEntry, SignatureCatalog
from hwtest_continuity.errors import (
    BusError,
    CatalogParseWarning,
    ContinuityError,
    InvalidPinError,
    ResetError,
)
from hwtest_continuity.mcp23017 import Mcp23017, Mcp23017Config
from hwtest_continuity.report import ScanReport, build_report
from hwtest_continuity.reset import GpioResetter, I2cResetter
from hwtest_continuity.scanner import ContinuityScanner
from hwtest_continuity.signature import (
    BitOrder,
    SignatureCodec,
    fold_bits,
    to_matrix_diagram,
    to_signature,
)
from hwtest_continuity.simulator import SimulatedHarness, SimulatedResetter
from hwtest_continuity.types import ConnectivityMatrix, PinReading, Unit

__version__ = "0.1.0"

__all__ = [
    # Errors
    "BusError",
    "CatalogParseWarning",
    "ContinuityError",
    "InvalidPinError",
    "ResetError",
    # Types
    "ConnectivityMatrix",
    "PinReading",
    "Unit",
    # Hardware
    "GpioResetter",
    "I2cResetter",
    "Mcp23017",
    "Mcp23017Config",
    # Scanning
    "ContinuityScanner",
    # Signatures
    "BitOrder",
    "SignatureCodec",
    "fold_bits",
    "to_matrix_diagram",
    "to_signature",
    # Catalog
    "CatalogEntry",
    "ScanReport",
    "SignatureCatalog",
    "build_report",
    # Simulation
    "SimulatedHarness",
    "SimulatedResetter",
]
