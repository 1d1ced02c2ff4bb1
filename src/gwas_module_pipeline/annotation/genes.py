"""Reference gene table loading: symbol filtering and longest-transcript reduction."""

from pathlib import Path
from typing import Callable, Iterable

import polars as pl
import structlog

from gwas_module_pipeline.annotation.models import (
    DEFAULT_SYMBOL_BLOCKLIST,
    GENE_COLUMN_VARIANTS,
    GENE_INTEGER_COLUMNS,
    VALID_STRANDS,
    GeneRecord,
)
from gwas_module_pipeline.quality import MalformedRowReport
from gwas_module_pipeline.tables import read_table

logger = structlog.get_logger()


def make_symbol_filter(
    patterns: Iterable[str] = DEFAULT_SYMBOL_BLOCKLIST,
) -> Callable[[str], bool]:
    """Build a predicate that keeps symbols containing none of ``patterns``.

    Matching is case-sensitive substring containment.

    Args:
        patterns: Blocked substrings (e.g. DEFAULT_SYMBOL_BLOCKLIST)

    Returns:
        Function returning True when the symbol should be kept
    """
    blocked = tuple(p for p in patterns if p)

    def keep(symbol: str) -> bool:
        return not any(p in symbol for p in blocked)

    return keep


def symbol_filter_expr(
    patterns: Iterable[str] = DEFAULT_SYMBOL_BLOCKLIST,
    column: str = "symbol",
) -> pl.Expr:
    """Polars expression form of make_symbol_filter over ``column``."""
    blocked = [p for p in patterns if p]
    if not blocked:
        return pl.lit(True)
    return ~pl.col(column).str.contains_any(blocked)


def is_primary_chromosome(chromosome: str) -> bool:
    """Alternate haplotypes and unplaced scaffolds carry an underscore (chr6_cox_hap2)."""
    return "_" not in chromosome


def filter_gene_table(
    df: pl.DataFrame,
    patterns: Iterable[str] = DEFAULT_SYMBOL_BLOCKLIST,
) -> pl.DataFrame:
    """Drop block-listed symbols and non-primary chromosomes.

    Args:
        df: Gene table with standardized ``symbol`` and ``chromosome`` columns
        patterns: Blocked symbol substrings

    Returns:
        Filtered DataFrame (row order preserved)
    """
    patterns = list(patterns)

    filtered = df.filter(
        symbol_filter_expr(patterns)
        & ~pl.col("chromosome").str.contains("_", literal=True)
    )

    logger.info(
        "filter_gene_table_complete",
        input_rows=df.height,
        output_rows=filtered.height,
        blocklist=patterns,
    )

    return filtered


def collapse_to_longest_transcript(df: pl.DataFrame) -> pl.DataFrame:
    """Keep one row per symbol: the transcript with maximal |end - start|.

    Ties are broken by input order (the first transcript seen wins) since the
    length sort is stable. Output is sorted by (chromosome, transcript_start).

    Args:
        df: Filtered gene table, one row per transcript

    Returns:
        DataFrame with one row per symbol and a ``transcript_length`` column
    """
    collapsed = (
        df
        .with_columns(
            (pl.col("transcript_end") - pl.col("transcript_start"))
            .abs()
            .alias("transcript_length")
        )
        .sort("transcript_length", descending=True, maintain_order=True)
        .unique(subset="symbol", keep="first", maintain_order=True)
        .sort(["chromosome", "transcript_start", "symbol"])
    )

    logger.info(
        "collapse_to_longest_transcript_complete",
        transcripts=df.height,
        genes=collapsed.height,
    )

    return collapsed


def frame_to_gene_records(df: pl.DataFrame) -> list[GeneRecord]:
    """Convert a collapsed gene table into GeneRecord value objects."""
    return [
        GeneRecord(
            symbol=row["symbol"],
            chromosome=row["chromosome"],
            transcript_start=row["transcript_start"],
            transcript_end=row["transcript_end"],
            coding_start=row["coding_start"],
            strand=row["strand"],
            transcript_length=row["transcript_length"],
        )
        for row in df.iter_rows(named=True)
    ]


def gene_records_to_frame(genes: list[GeneRecord]) -> pl.DataFrame:
    """Inverse of frame_to_gene_records, used for checkpoints."""
    return pl.DataFrame(
        {
            "symbol": [g.symbol for g in genes],
            "chromosome": [g.chromosome for g in genes],
            "transcript_start": [g.transcript_start for g in genes],
            "transcript_end": [g.transcript_end for g in genes],
            "coding_start": [g.coding_start for g in genes],
            "strand": [g.strand for g in genes],
            "transcript_length": [g.transcript_length for g in genes],
        },
        schema={
            "symbol": pl.String,
            "chromosome": pl.String,
            "transcript_start": pl.Int64,
            "transcript_end": pl.Int64,
            "coding_start": pl.Int64,
            "strand": pl.String,
            "transcript_length": pl.Int64,
        },
    )


def read_gene_table(path: Path | str) -> tuple[pl.DataFrame, MalformedRowReport]:
    """Parse a reference gene annotation table (one row per transcript).

    Rows with missing fields, unparseable or reversed coordinates, or a strand
    other than '+'/'-' are skipped and reported.
    """
    return read_table(
        path,
        GENE_COLUMN_VARIANTS,
        integer_columns=GENE_INTEGER_COLUMNS,
        invalid_when={
            "strand not '+' or '-'": ~pl.col("strand").is_in(list(VALID_STRANDS)),
            "transcript_end before transcript_start": (
                pl.col("transcript_end") < pl.col("transcript_start")
            ),
        },
        table="gene_annotation",
    )


def load_gene_records(
    path: Path | str,
    patterns: Iterable[str] = DEFAULT_SYMBOL_BLOCKLIST,
) -> tuple[list[GeneRecord], MalformedRowReport]:
    """Load the reference gene table as one GeneRecord per symbol.

    Args:
        path: Gene annotation TSV/CSV (UCSC refGene layout or aliases)
        patterns: Blocked symbol substrings

    Returns:
        Tuple of (GeneRecords sorted by chromosome and start, MalformedRowReport)
    """
    raw, report = read_gene_table(path)
    collapsed = collapse_to_longest_transcript(filter_gene_table(raw, patterns))
    genes = frame_to_gene_records(collapsed)

    logger.info(
        "load_gene_records_complete",
        path=str(path),
        genes=len(genes),
        chromosomes=collapsed["chromosome"].n_unique(),
        malformed_rows=report.count,
    )

    return genes, report
