"""Load locus annotation tables to DuckDB with provenance tracking."""

import polars as pl
import structlog

from gwas_module_pipeline.annotation.models import (
    ASSIGNMENT_TABLE_NAME,
    GENE_TABLE_NAME,
    LOCI_TABLE_NAME,
)
from gwas_module_pipeline.persistence import PipelineStore, ProvenanceTracker

logger = structlog.get_logger()


def load_to_duckdb(
    genes: pl.DataFrame,
    loci: pl.DataFrame,
    assignments: pl.DataFrame,
    store: PipelineStore,
    provenance: ProvenanceTracker,
) -> None:
    """Save gene, locus and assignment tables to DuckDB with provenance.

    Creates or replaces the tables (idempotent) and records one provenance
    step with summary statistics.

    Args:
        genes: Collapsed gene annotation (one row per symbol)
        loci: Parsed GWAS loci
        assignments: Flattened locus-gene assignments
        store: PipelineStore instance for DuckDB persistence
        provenance: ProvenanceTracker instance for metadata recording
    """
    logger.info(
        "annotation_load_start",
        genes=genes.height,
        loci=loci.height,
        assignments=assignments.height,
    )

    store.save_dataframe(
        df=genes,
        table_name=GENE_TABLE_NAME,
        description="Reference genes collapsed to longest transcript per symbol",
    )
    store.save_dataframe(
        df=loci,
        table_name=LOCI_TABLE_NAME,
        description="LD-expanded GWAS loci",
    )
    store.save_dataframe(
        df=assignments,
        table_name=ASSIGNMENT_TABLE_NAME,
        description="Locus-gene assignments (overlap with neighbour fallback, distance filtered)",
    )

    if assignments.height > 0:
        genes_per_locus = (
            assignments.group_by("locus_id").agg(pl.len()).select(pl.col("len").mean()).item()
        )
        median_distance = assignments.select(pl.col("distance").median()).item()
    else:
        genes_per_locus = 0.0
        median_distance = None

    provenance.record_step("load_locus_annotation", {
        "gene_count": genes.height,
        "locus_count": loci.height,
        "assignment_count": assignments.height,
        "assigned_loci": assignments["locus_id"].n_unique() if assignments.height else 0,
        "assigned_genes": assignments["symbol"].n_unique() if assignments.height else 0,
        "mean_genes_per_locus": round(genes_per_locus, 2),
        "median_distance": median_distance,
    })

    logger.info(
        "annotation_load_complete",
        assignments=assignments.height,
    )
