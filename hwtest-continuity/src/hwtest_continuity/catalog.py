"""Catalog of known-good harness signatures.

The catalog is a text file with one entry per line::

    # comments and blank lines are ignored
    <west half> <east half> <label>

Signatures are matched exactly after lower-casing the hex digits and
collapsing the whitespace between the halves. Several labels may share one
signature when harness variants are wired identically.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from hwtest_continuity.errors import CatalogParseWarning

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = "signatures.dat"

_ENTRY_RE = re.compile(r"^([0-9a-f]+)\s+([0-9a-f]+)\s+(.+)$", re.IGNORECASE)


def normalize_signature(signature: str) -> str:
    """Lower-case a signature and join its halves with a single space."""
    return " ".join(signature.split()).lower()


@dataclass(frozen=True)
class CatalogEntry:
    """A known-good signature and the harness it identifies."""

    signature: str
    label: str


def _decode(raw: str | bytes) -> tuple[str, bool]:
    if isinstance(raw, str):
        return raw, True
    try:
        return raw.decode("utf-8"), True
    except UnicodeDecodeError:
        return raw.decode("utf-8", errors="replace"), False


def parse_catalog(
    lines: Iterable[str | bytes],
) -> tuple[list[CatalogEntry], list[CatalogParseWarning]]:
    """Parse catalog lines.

    Lines given as bytes are decoded as UTF-8 one at a time. A line that
    does not decode is treated like any other malformed line, so a stray
    byte only costs that line.

    Args:
        lines: Catalog text, one entry per line.

    Returns:
        Tuple of (entries in file order, warnings for skipped lines).
    """
    entries: list[CatalogEntry] = []
    warnings: list[CatalogParseWarning] = []

    for number, raw in enumerate(lines, start=1):
        text, decoded = _decode(raw)
        line = text.strip()
        if not line or line.startswith("#"):
            continue

        match = _ENTRY_RE.match(line) if decoded else None
        if match is None:
            warning = CatalogParseWarning(number, line)
            logger.warning("%s", warning)
            warnings.append(warning)
            continue

        west, east, label = match.groups()
        entries.append(CatalogEntry(signature=normalize_signature(f"{west} {east}"), label=label))

    return entries, warnings


class SignatureCatalog:
    """Read-only collection of catalog entries.

    Immutable once built, so one instance may be shared freely.
    """

    def __init__(
        self,
        entries: Iterable[CatalogEntry] = (),
        warnings: Iterable[CatalogParseWarning] = (),
    ) -> None:
        self._entries = tuple(entries)
        self._warnings = tuple(warnings)

    @classmethod
    def from_lines(cls, lines: Iterable[str]) -> SignatureCatalog:
        """Build a catalog from text lines."""
        entries, warnings = parse_catalog(lines)
        return cls(entries, warnings)

    @classmethod
    def load(cls, path: str | Path = DEFAULT_CATALOG_PATH) -> SignatureCatalog:
        """Load a catalog file.

        Raises:
            FileNotFoundError: If the catalog file doesn't exist.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Signature catalog not found: {path}")

        with open(path, "rb") as f:
            entries, warnings = parse_catalog(f)

        logger.info(
            "Loaded %d signature(s) from %s (%d line(s) skipped)",
            len(entries),
            path,
            len(warnings),
        )
        return cls(entries, warnings)

    @property
    def entries(self) -> tuple[CatalogEntry, ...]:
        """Return all entries in file order."""
        return self._entries

    @property
    def warnings(self) -> tuple[CatalogParseWarning, ...]:
        """Return warnings for lines skipped while parsing."""
        return self._warnings

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries)

    def search(self, signature: str) -> list[str]:
        """Return the labels of every entry matching a signature.

        Args:
            signature: Signature to look up, in any letter case.

        Returns:
            Matching labels in catalog order; empty if none match.
        """
        target = normalize_signature(signature)
        return [entry.label for entry in self._entries if entry.signature == target]
