"""Module gene tables as TSV + Parquet with a YAML provenance sidecar."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import polars as pl
import yaml

SORT_COLUMNS = ["module_id", "probe_id"]


def module_statistics(df: pl.DataFrame) -> dict:
    """Summary counts for a module gene (or trace) table.

    ``genes_per_module`` counts distinct probes. ``matched_on`` and
    ``loci_per_module`` are included when the table carries those columns.
    """
    per_module = (
        df.group_by("module_id")
        .agg(pl.col("probe_id").n_unique().alias("genes"))
        .sort("module_id")
    )
    genes_per_module = {int(m): int(n) for m, n in per_module.iter_rows()}

    stats = {
        "total_rows": df.height,
        "module_count": len(genes_per_module),
        "genes_per_module": genes_per_module,
    }

    if "matched_on" in df.columns:
        counts = df.group_by("matched_on").len().sort("matched_on")
        stats["matched_on"] = {str(key): int(n) for key, n in counts.iter_rows()}

    if "locus_id" in df.columns:
        loci = (
            df.group_by("module_id")
            .agg(pl.col("locus_id").n_unique().alias("loci"))
            .sort("module_id")
        )
        stats["loci_per_module"] = {int(m): int(n) for m, n in loci.iter_rows()}

    return stats


def write_module_gene_output(
    df: pl.DataFrame | pl.LazyFrame,
    output_dir: Path,
    filename_base: str = "module_genes",
    network_name: Optional[str] = None,
) -> dict:
    """
    Write a module gene table twice (TSV for people, Parquet for tools).

    Rows are sorted by (module_id, probe_id) so reruns produce identical files.

    Args:
        df: overlay_network or trace_module_genes output; needs module_id and
            probe_id
        output_dir: Created if missing
        filename_base: File stem shared by the three outputs
        network_name: Network label recorded in the sidecar

    Returns:
        Dict with "tsv", "parquet" and "provenance" paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if isinstance(df, pl.LazyFrame):
        df = df.collect()
    df = df.sort(SORT_COLUMNS)

    paths = {
        "tsv": output_dir / f"{filename_base}.tsv",
        "parquet": output_dir / f"{filename_base}.parquet",
        "provenance": output_dir / f"{filename_base}.provenance.yaml",
    }

    df.write_csv(paths["tsv"], separator="\t", include_header=True)
    df.write_parquet(paths["parquet"], compression="snappy", use_pyarrow=True)

    sidecar = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "network": network_name,
        "output_files": [paths["tsv"].name, paths["parquet"].name],
        "statistics": module_statistics(df),
        "column_count": len(df.columns),
        "column_names": df.columns,
    }
    with open(paths["provenance"], "w") as f:
        yaml.dump(sidecar, f, default_flow_style=False, sort_keys=False)

    return paths
