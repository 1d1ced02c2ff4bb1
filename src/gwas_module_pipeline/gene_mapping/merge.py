"""Merge homolog lookup results with manual overrides into probe-level mappings."""

import logging
from dataclasses import dataclass, field
from typing import Iterable

import polars as pl

from gwas_module_pipeline.gene_mapping.overrides import (
    ManualOverride,
    overrides_to_lookup_frame,
)

logger = logging.getLogger(__name__)

HOMOLOG_TABLE_NAME = "homolog_mappings"

MAPPING_SCHEMA = {
    "human_symbol": pl.String,
    "mouse_gene_id": pl.String,
    "mouse_symbol": pl.String,
    "probe_id": pl.String,
    "source": pl.String,
}


@dataclass
class HomologMergeResult:
    """Result of merging lookup rows and manual overrides.

    Attributes:
        mappings: One row per probe_id (columns of MAPPING_SCHEMA)
        input_symbols: Distinct symbols submitted to the lookup
        unmatched_by_lookup: Symbols with no probe-level lookup row
        orphans: Symbols with no mapping after the override merge
    """
    mappings: pl.DataFrame
    input_symbols: list[str] = field(default_factory=list)
    unmatched_by_lookup: list[str] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)

    @property
    def mapped_symbols(self) -> int:
        return len(self.input_symbols) - len(self.orphans)

    @property
    def coverage(self) -> float:
        """Fraction of input symbols with at least one mapped probe."""
        if not self.input_symbols:
            return 0.0
        return self.mapped_symbols / len(self.input_symbols)


def _with_probe(df: pl.DataFrame) -> pl.DataFrame:
    """Rows with a non-empty probe ID, first occurrence per probe."""
    return (
        df
        .filter(
            pl.col("target_probe_id").is_not_null()
            & (pl.col("target_probe_id").str.strip_chars() != "")
        )
        .unique(subset="target_probe_id", keep="first", maintain_order=True)
    )


def merge_homologs(
    symbols: Iterable[str],
    lookup_rows: pl.DataFrame,
    overrides: list[ManualOverride],
    restrict_overrides_to_input: bool = False,
) -> HomologMergeResult:
    """Build probe-level homolog mappings for the annotated genes.

    Lookup rows without a probe are dropped and the rest deduplicated by probe
    (first wins). Symbols absent at this point are recorded as unmatched by
    the lookup. Overrides are then appended unconditionally (or only for
    input symbols when ``restrict_overrides_to_input``) and the union is
    deduplicated by probe again, so lookup rows take precedence over an
    override for the same probe.

    Args:
        symbols: Distinct annotated source symbols
        lookup_rows: HomologLookup.lookup_homologs output
        overrides: Curated mappings from load_overrides
        restrict_overrides_to_input: Skip overrides for symbols not in ``symbols``

    Returns:
        HomologMergeResult
    """
    symbols = list(dict.fromkeys(symbols))

    from_lookup = _with_probe(lookup_rows)
    matched = set(from_lookup["source_symbol"].to_list())
    unmatched = [s for s in symbols if s not in matched]

    manual = overrides_to_lookup_frame(overrides)
    if restrict_overrides_to_input:
        manual = manual.filter(pl.col("source_symbol").is_in(symbols))

    merged = _with_probe(
        pl.concat([
            from_lookup.with_columns(pl.lit("lookup").alias("source")),
            manual.with_columns(pl.lit("manual").alias("source")),
        ])
    )

    mappings = merged.select(
        pl.col("source_symbol").alias("human_symbol"),
        pl.col("target_gene_id").alias("mouse_gene_id"),
        pl.col("target_symbol").alias("mouse_symbol"),
        pl.col("target_probe_id").alias("probe_id"),
        pl.col("source"),
    ).cast(MAPPING_SCHEMA)

    mapped = set(mappings["human_symbol"].to_list())
    orphans = [s for s in symbols if s not in mapped]

    logger.info(
        f"Homolog merge: {mappings.height} probe mappings "
        f"({(mappings['source'] == 'manual').sum()} manual), "
        f"{len(unmatched)} symbols unmatched by lookup, {len(orphans)} orphans"
    )
    if orphans:
        logger.warning(
            f"{len(orphans)} symbols have no homolog mapping "
            f"(first 10: {orphans[:10]}); consider adding manual overrides"
        )

    return HomologMergeResult(
        mappings=mappings,
        input_symbols=symbols,
        unmatched_by_lookup=unmatched,
        orphans=orphans,
    )
