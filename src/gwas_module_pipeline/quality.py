"""Data-quality bookkeeping accumulated over a pipeline run.

Malformed input rows, loci without any candidate gene, and orphan symbols are
not fatal: they are collected here and reported once the run finishes.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


@dataclass
class MalformedRow:
    """A skipped input row.

    Attributes:
        row_number: 1-based line number in the source file (header is line 1)
        reason: Human-readable reason the row was skipped
    """
    row_number: int
    reason: str


@dataclass
class MalformedRowReport:
    """Rows skipped while parsing one input table."""
    table: str
    total_rows: int = 0
    rows: list[MalformedRow] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rows)

    def add(self, row_number: int, reason: str) -> None:
        self.rows.append(MalformedRow(row_number=row_number, reason=reason))


@dataclass
class DataQualityReport:
    """Non-fatal issues gathered across all pipeline steps.

    Attributes:
        malformed: Per-table malformed row reports
        loci_without_candidates: Loci with no overlapping or neighbouring gene
        distance_filtered: Assignments dropped by the distance cutoff
        unmatched_by_lookup: Symbols the homolog service did not map to a probe
        orphans: Symbols still unmapped after merging manual overrides
    """
    malformed: dict[str, MalformedRowReport] = field(default_factory=dict)
    loci_without_candidates: list[str] = field(default_factory=list)
    distance_filtered: int = 0
    unmatched_by_lookup: list[str] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)

    def add_malformed(self, report: MalformedRowReport) -> None:
        self.malformed[report.table] = report

    @property
    def malformed_count(self) -> int:
        return sum(r.count for r in self.malformed.values())

    def summary_lines(self) -> list[str]:
        lines = []
        for table, report in self.malformed.items():
            lines.append(
                f"{table}: skipped {report.count}/{report.total_rows} malformed rows"
            )
        lines.append(
            f"Loci without overlapping or neighbouring genes: "
            f"{len(self.loci_without_candidates)}"
        )
        lines.append(
            f"Assignments dropped by distance cutoff: {self.distance_filtered}"
        )
        lines.append(
            f"Symbols unmatched by homolog lookup: {len(self.unmatched_by_lookup)}"
        )
        lines.append(
            f"Orphan symbols after manual overrides: {len(self.orphans)}"
        )
        return lines

    def log_summary(self) -> None:
        for line in self.summary_lines():
            logger.info(line)

    def to_dict(self) -> dict:
        return {
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "malformed_rows": {
                table: {
                    "total_rows": report.total_rows,
                    "skipped": report.count,
                    "rows": [
                        {"row_number": r.row_number, "reason": r.reason}
                        for r in report.rows
                    ],
                }
                for table, report in self.malformed.items()
            },
            "loci_without_candidates": list(self.loci_without_candidates),
            "distance_filtered": self.distance_filtered,
            "unmatched_by_lookup": list(self.unmatched_by_lookup),
            "orphans": list(self.orphans),
        }

    def save(self, output_path: Path) -> Path:
        """Write the report as YAML for manual review."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved data quality report to {output_path}")
        return output_path
