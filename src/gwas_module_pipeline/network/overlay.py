"""Overlay homolog-mapped genes onto co-expression network modules.

A network probe is kept when it matches the homolog mappings on its probe ID,
its gene symbol, or its gene ID. Probes outside any module (module 0) are
dropped.
"""

from pathlib import Path

import polars as pl
import structlog

from gwas_module_pipeline.network.join import JoinKey, multi_key_join
from gwas_module_pipeline.quality import MalformedRowReport
from gwas_module_pipeline.tables import read_table

logger = structlog.get_logger()

MODULE_GENE_TABLE_NAME = "module_genes"
NETWORK_TABLE_NAME = "network"

UNASSIGNED_MODULE = 0

NETWORK_COLUMN_VARIANTS = {
    "probe_id": ["probe_id", "ProbeID", "probe", "substanceBXH"],
    "symbol": ["symbol", "gene_symbol", "gene_name"],
    "gene_id": ["gene_id", "entrez_id", "LocusLinkID"],
    "module_id": ["module_id", "module"],
}

NETWORK_JOIN_KEYS = [
    JoinKey(name="probe_id", target_column="probe_id", reference_column="probe_id"),
    JoinKey(name="symbol", target_column="symbol", reference_column="mouse_symbol"),
    JoinKey(name="gene_id", target_column="gene_id", reference_column="mouse_gene_id"),
]

TRACE_COLUMNS = ["probe_id", "module_id", "human_symbol", "locus_id", "distance"]


def load_network_table(path: Path | str) -> tuple[pl.DataFrame, MalformedRowReport]:
    """Parse the network probe table.

    Probe ID and module ID are required; symbol and gene ID may be empty
    since many array probes are unannotated.

    Returns:
        Tuple of (DataFrame with probe_id, symbol, gene_id, module_id;
        MalformedRowReport)
    """
    return read_table(
        path,
        NETWORK_COLUMN_VARIANTS,
        integer_columns=("module_id",),
        optional_columns=("symbol", "gene_id"),
        table=NETWORK_TABLE_NAME,
    )


def overlay_network(
    mappings: pl.DataFrame,
    network: pl.DataFrame,
    keys: list[JoinKey] = NETWORK_JOIN_KEYS,
) -> pl.DataFrame:
    """Network probes matching a homolog mapping on any key, in assigned modules.

    Args:
        mappings: Probe-level homolog mappings (HomologMergeResult.mappings)
        network: Parsed network table
        keys: Join keys, in precedence order

    Returns:
        Network rows (one per probe_id) with module_id != 0 plus ``matched_on``
    """
    matched = multi_key_join(network, mappings, keys, dedup_on="probe_id")
    module_genes = matched.filter(pl.col("module_id") != UNASSIGNED_MODULE)

    logger.info(
        "overlay_network_complete",
        network_probes=network.height,
        matched_probes=matched.height,
        unassigned_dropped=matched.height - module_genes.height,
        module_genes=module_genes.height,
        modules=module_genes["module_id"].n_unique(),
    )

    return module_genes


def trace_module_genes(
    module_genes: pl.DataFrame,
    mappings: pl.DataFrame,
    assignments: pl.DataFrame,
    keys: list[JoinKey] = NETWORK_JOIN_KEYS,
) -> pl.DataFrame:
    """Link each module probe back to the GWAS loci that implicated it.

    A probe can trace to several human symbols (through different keys) and
    each symbol to several loci, so the result is long format with one row
    per (probe, symbol, locus).

    Args:
        module_genes: overlay_network output
        mappings: Probe-level homolog mappings
        assignments: Locus-gene assignment frame (assignments_to_frame output)
        keys: Join keys used for the overlay

    Returns:
        DataFrame with TRACE_COLUMNS sorted by module, probe, symbol, locus
    """
    links = []
    for key in keys:
        probes = module_genes.select(
            "probe_id",
            "module_id",
            pl.col(key.target_column).cast(pl.String).alias("_key"),
        ).drop_nulls("_key")
        reference = mappings.select(
            pl.col(key.reference_column).cast(pl.String).alias("_key"),
            "human_symbol",
        ).drop_nulls("_key")
        links.append(probes.join(reference, on="_key", how="inner").drop("_key"))

    if not links:
        links.append(pl.DataFrame(schema={
            "probe_id": module_genes.schema["probe_id"],
            "module_id": module_genes.schema["module_id"],
            "human_symbol": mappings.schema["human_symbol"],
        }))

    loci = assignments.select(
        pl.col("symbol").alias("human_symbol"),
        "locus_id",
        "distance",
    )

    trace = (
        pl.concat(links)
        .unique(subset=["probe_id", "human_symbol"], maintain_order=True)
        .join(loci, on="human_symbol", how="inner")
        .select(TRACE_COLUMNS)
        .unique()
        .sort(["module_id", "probe_id", "human_symbol", "locus_id"])
    )

    logger.info(
        "trace_module_genes_complete",
        module_genes=module_genes.height,
        evidence_rows=trace.height,
        loci=trace["locus_id"].n_unique(),
    )

    return trace
