"""Validation gates for homolog mapping quality control.

Checks the fraction of annotated genes that reached a target-species probe and
writes the orphan symbols to a file for manual curation.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from gwas_module_pipeline.gene_mapping.merge import HomologMergeResult

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes:
        passed: Whether validation passed
        messages: List of validation messages (warnings, errors)
        coverage: Homolog coverage rate (0-1)
    """
    passed: bool
    messages: list[str] = field(default_factory=list)
    coverage: float = 0.0


class HomologValidator:
    """Validator for homolog merge results.

    Orphans are expected (some symbols need hand-curated overrides), so the
    default minimum coverage is 0 and low coverage only warns.
    """

    def __init__(
        self,
        min_coverage: float = 0.0,
        warn_coverage: float = 0.8
    ):
        """Initialize homolog validator.

        Args:
            min_coverage: Minimum fraction of symbols with a probe to pass (default: 0.0)
            warn_coverage: Coverage below this triggers warning (default: 0.8)
        """
        self.min_coverage = min_coverage
        self.warn_coverage = warn_coverage
        logger.info(
            f"Initialized HomologValidator: min_coverage={min_coverage}, "
            f"warn_coverage={warn_coverage}"
        )

    @classmethod
    def from_config(cls, config: "PipelineConfig") -> "HomologValidator":
        return cls(
            min_coverage=config.homolog.min_coverage,
            warn_coverage=config.homolog.warn_coverage,
        )

    def validate(self, result: HomologMergeResult) -> ValidationResult:
        """Validate homolog coverage.

        Args:
            result: HomologMergeResult from merge_homologs

        Returns:
            ValidationResult with pass/fail status and messages
        """
        messages: list[str] = []
        coverage = result.coverage
        total = len(result.input_symbols)

        if coverage < self.min_coverage:
            messages.append(
                f"FAILED: Homolog coverage {coverage:.1%} is below "
                f"minimum threshold {self.min_coverage:.1%}"
            )
            messages.append(
                f"Mapped {result.mapped_symbols}/{total} symbols to probes"
            )
            passed = False
        elif coverage < self.warn_coverage:
            messages.append(
                f"WARNING: Homolog coverage {coverage:.1%} is below "
                f"warning threshold {self.warn_coverage:.1%}"
            )
            messages.append(
                f"Consider curating overrides for {len(result.orphans)} orphan symbols"
            )
            passed = True
        else:
            messages.append(
                f"PASSED: Homolog coverage {coverage:.1%} "
                f"({result.mapped_symbols}/{total} symbols)"
            )
            passed = True

        messages.append(
            f"Unmatched by lookup: {len(result.unmatched_by_lookup)}; "
            f"orphans after overrides: {len(result.orphans)}"
        )

        logger.info(
            f"Homolog validation: {'PASSED' if passed else 'FAILED'} "
            f"(coverage: {coverage:.1%})"
        )

        return ValidationResult(
            passed=passed,
            messages=messages,
            coverage=coverage,
        )

    def save_orphan_report(
        self,
        result: HomologMergeResult,
        output_path: Path
    ) -> Path:
        """Save orphan symbols to file for manual curation.

        Args:
            result: HomologMergeResult containing orphan symbols
            output_path: Path to output file

        Returns:
            Path of the written report
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

        with output_path.open('w') as f:
            f.write("# Orphan gene symbols (no homolog probe after overrides)\n")
            f.write(f"# Generated: {timestamp}\n")
            f.write(f"# Total orphans: {len(result.orphans)}\n")
            f.write(f"# Coverage: {result.coverage:.1%}\n")
            f.write("#\n")
            for symbol in result.orphans:
                f.write(f"{symbol}\n")

        logger.info(
            f"Saved {len(result.orphans)} orphan symbols to {output_path}"
        )
        return output_path
