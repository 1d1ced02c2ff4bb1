"""GWAS locus table parsing."""

from pathlib import Path

import polars as pl
import structlog

from gwas_module_pipeline.annotation.models import (
    LOCUS_COLUMN_VARIANTS,
    LOCUS_INTEGER_COLUMNS,
    GwasLocus,
)
from gwas_module_pipeline.quality import MalformedRowReport
from gwas_module_pipeline.tables import read_table

logger = structlog.get_logger()


def normalize_chromosome(df: pl.DataFrame, prefix: str = "chr") -> pl.DataFrame:
    """Prefix bare chromosome names ('1', 'X') so they match the gene table."""
    if not prefix:
        return df
    return df.with_columns(
        pl.when(pl.col("chromosome").str.starts_with(prefix))
        .then(pl.col("chromosome"))
        .otherwise(pl.lit(prefix) + pl.col("chromosome"))
        .alias("chromosome")
    )


def read_loci_table(
    path: Path | str,
    chromosome_prefix: str = "chr",
) -> tuple[pl.DataFrame, MalformedRowReport]:
    """Parse the LD-expanded GWAS locus table.

    Rows with missing fields, unparseable coordinates, or a left bound after
    the right bound are skipped and reported.

    Returns:
        Tuple of (DataFrame with locus_id, chromosome, position, start, end;
        MalformedRowReport)
    """
    df, report = read_table(
        path,
        LOCUS_COLUMN_VARIANTS,
        integer_columns=LOCUS_INTEGER_COLUMNS,
        invalid_when={
            "interval start after end": pl.col("start") > pl.col("end"),
        },
        table="gwas_loci",
    )
    return normalize_chromosome(df, chromosome_prefix), report


def frame_to_loci(df: pl.DataFrame) -> list[GwasLocus]:
    """Convert a parsed locus table into GwasLocus value objects (row order kept)."""
    return [
        GwasLocus(
            chromosome=row["chromosome"],
            start=row["start"],
            end=row["end"],
            locus_id=row["locus_id"],
            position=row["position"],
        )
        for row in df.iter_rows(named=True)
    ]


def load_loci(
    path: Path | str,
    chromosome_prefix: str = "chr",
) -> tuple[list[GwasLocus], MalformedRowReport]:
    """Load GWAS loci as value objects in input order."""
    df, report = read_loci_table(path, chromosome_prefix)
    loci = frame_to_loci(df)

    logger.info(
        "load_loci_complete",
        path=str(path),
        loci=len(loci),
        malformed_rows=report.count,
    )

    return loci, report
