"""Operator-facing scan report."""

from __future__ import annotations

from dataclasses import dataclass

from hwtest_continuity.catalog import SignatureCatalog
from hwtest_continuity.signature import DEFAULT_CODEC, SignatureCodec, to_matrix_diagram
from hwtest_continuity.types import ConnectivityMatrix


@dataclass(frozen=True)
class ScanReport:
    """Outcome of classifying one scan.

    Attributes:
        signature: Signature computed from the scan.
        labels: Catalog labels matching the signature.
        diagram: Rendered connectivity matrix.
    """

    signature: str
    labels: tuple[str, ...]
    diagram: str

    @property
    def found(self) -> bool:
        """Return True if the harness matched at least one catalog entry."""
        return bool(self.labels)

    def render(self, verbose: bool = False) -> str:
        """Render the report as printed to the operator.

        A harness that is not found always carries the diagram and the raw
        signature so it can be added to the catalog by hand. ``verbose``
        adds them to found reports as well.
        """
        lines: list[str] = []
        if self.found:
            lines.append("Found:")
            lines.extend(f"  - {label}" for label in self.labels)
            if not verbose:
                return "\n".join(lines) + "\n"
        else:
            lines.append("NotFound:")
        lines.append(self.diagram.rstrip("\n"))
        lines.append("")
        lines.append(self.signature)
        lines.append("")
        return "\n".join(lines) + "\n"


def build_report(
    matrix: ConnectivityMatrix,
    catalog: SignatureCatalog,
    codec: SignatureCodec = DEFAULT_CODEC,
) -> ScanReport:
    """Encode a matrix, look it up and bundle the result."""
    signature = codec.encode(matrix)
    return ScanReport(
        signature=signature,
        labels=tuple(catalog.search(signature)),
        diagram=to_matrix_diagram(matrix),
    )
