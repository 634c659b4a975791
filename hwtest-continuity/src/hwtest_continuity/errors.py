"""Exception types for hwtest-continuity.

All tester exceptions inherit from ContinuityError, allowing callers to catch
every tester-specific failure with a single except clause.

Exception hierarchy:
    ContinuityError (base)
    +-- InvalidPinError: Pin index outside 0-15
    +-- BusError: Failed I2C read or write
    +-- ResetError: Reset line unavailable or failed

CatalogParseWarning is not raised. It is recorded for each catalog line that
could not be parsed so the operator can review the file.
"""

from __future__ import annotations


class ContinuityError(Exception):
    """Base exception for all continuity tester errors."""


class InvalidPinError(ContinuityError):
    """Raised when a pin index is outside 0-15.

    Raised before any hardware is touched. This is a programming error and
    is never retried.
    """

    def __init__(self, pin: int) -> None:
        super().__init__(f"Invalid pin: {pin} (must be 0-15)")
        self.pin = pin


class BusError(ContinuityError):
    """Raised when a device read or write on the I2C bus fails.

    Covers timeouts, NACKs and short reads. The scan aborts rather than
    substituting a default reading, since a made-up reading would corrupt
    the signature without any visible sign.
    """


class ResetError(ContinuityError):
    """Raised when the harness reset line cannot be driven."""


class CatalogParseWarning(UserWarning):
    """A catalog line that is neither an entry, a comment, nor blank.

    Attributes:
        line_number: 1-based line number in the catalog source.
        line: The offending line without its trailing newline.
    """

    def __init__(self, line_number: int, line: str) -> None:
        super().__init__(f"Unknown signature line {line_number}: {line!r}")
        self.line_number = line_number
        self.line = line
