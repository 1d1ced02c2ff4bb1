"""End-to-end orchestration: loci -> genes -> homolog probes -> network modules.

Each step is a pure transform over the previous step's output; this module
wires them together, checkpoints intermediate tables in DuckDB, and writes
the run's output files.
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import polars as pl

from gwas_module_pipeline.annotation import (
    AnnotationResult,
    IntervalIndex,
    annotate_loci,
    assignments_to_frame,
    frame_to_loci,
    gene_records_to_frame,
    load_gene_records,
    load_to_duckdb,
    read_loci_table,
)
from gwas_module_pipeline.config.schema import PipelineConfig
from gwas_module_pipeline.gene_mapping import (
    HOMOLOG_TABLE_NAME,
    LOOKUP_SCHEMA,
    HomologLookup,
    HomologMergeResult,
    HomologValidator,
    ValidationResult,
    load_overrides,
    merge_homologs,
)
from gwas_module_pipeline.network import (
    MODULE_GENE_TABLE_NAME,
    load_network_table,
    overlay_network,
    trace_module_genes,
)
from gwas_module_pipeline.output import write_module_gene_output
from gwas_module_pipeline.persistence import PipelineStore, ProvenanceTracker
from gwas_module_pipeline.quality import DataQualityReport

logger = logging.getLogger(__name__)

LOOKUP_TABLE_NAME = "homolog_lookup"
LOOKUP_QUERY_TABLE_NAME = "homolog_lookup_queries"
ASSIGNMENT_OUTPUT = "locus_gene_assignments.tsv"
TRACE_OUTPUT_BASE = "module_gene_loci"
ORPHAN_REPORT = "orphan_symbols.txt"
QUALITY_REPORT = "quality_report.yaml"


@dataclass
class AnnotationStep:
    """Locus annotation output with the frames persisted to DuckDB."""
    genes: pl.DataFrame
    loci: pl.DataFrame
    result: AnnotationResult
    assignments: pl.DataFrame


@dataclass
class PipelineResult:
    """Everything a full run produced.

    Attributes:
        annotation: Locus annotation step output
        merge: Homolog merge result (mappings, orphans)
        validation: Homolog coverage validation
        module_genes: Network probes in assigned modules
        trace: Module probe -> locus evidence table
        quality: Non-fatal data-quality issues
        outputs: Output name -> written file path
        lookup_from_checkpoint: Whether the homolog lookup was reused
    """
    annotation: AnnotationStep
    merge: HomologMergeResult
    validation: ValidationResult
    module_genes: pl.DataFrame
    trace: pl.DataFrame
    quality: DataQualityReport
    outputs: dict[str, Path] = field(default_factory=dict)
    lookup_from_checkpoint: bool = False


def run_annotation(
    config: PipelineConfig,
    genes_path: Path,
    loci_path: Path,
    quality: DataQualityReport,
) -> AnnotationStep:
    """Load genes and loci and assign each locus to its candidate genes."""
    genes, gene_report = load_gene_records(genes_path, config.annotation.symbol_blocklist)
    quality.add_malformed(gene_report)

    loci_df, loci_report = read_loci_table(loci_path, config.annotation.chromosome_prefix)
    quality.add_malformed(loci_report)

    index = IntervalIndex(genes)
    result = annotate_loci(
        frame_to_loci(loci_df),
        index,
        max_distance=config.annotation.max_distance,
    )
    quality.loci_without_candidates = list(result.loci_without_candidates)
    quality.distance_filtered = result.distance_filtered

    logger.info(
        f"Annotated {loci_df.height} loci against {len(index)} genes: "
        f"{len(result.assignments)} assignments, {len(result.symbols)} distinct genes"
    )

    return AnnotationStep(
        genes=gene_records_to_frame(genes),
        loci=loci_df,
        result=result,
        assignments=assignments_to_frame(result.assignments),
    )


def lookup_fingerprint(config: PipelineConfig) -> str:
    """Hash of the settings a homolog lookup checkpoint depends on."""
    settings = {
        "source_species": config.homolog.source_species,
        "target_species": config.homolog.target_species,
        "probe_platform": config.versions.probe_platform,
    }
    return hashlib.sha256(json.dumps(settings, sort_keys=True).encode()).hexdigest()


def _load_lookup_checkpoint(
    store: PipelineStore,
    fingerprint: str,
) -> tuple[Optional[pl.DataFrame], set[str]]:
    """Checkpointed lookup rows and the symbols they cover, or (None, empty set)."""
    tables = (LOOKUP_TABLE_NAME, LOOKUP_QUERY_TABLE_NAME)
    if not all(store.has_checkpoint(table) for table in tables):
        return None, set()

    if any(store.checkpoint_fingerprint(table) != fingerprint for table in tables):
        logger.info("Homolog settings changed since the lookup checkpoint; re-querying")
        return None, set()

    cached = store.load_dataframe(LOOKUP_TABLE_NAME)
    queried = store.load_dataframe(LOOKUP_QUERY_TABLE_NAME)
    if cached is None or queried is None:
        return None, set()

    return cached.cast(LOOKUP_SCHEMA), set(queried["source_symbol"].to_list())


def lookup_homologs(
    config: PipelineConfig,
    symbols: list[str],
    store: PipelineStore,
    force: bool = False,
) -> tuple[pl.DataFrame, bool]:
    """Raw homolog lookup rows, reused from the DuckDB checkpoint when present.

    A checkpoint is reused only if it was made with the same species and probe
    platform. Alongside the rows, the checkpoint records every symbol it has
    queried (including symbols with no homolog). Symbols outside that set are
    queried in one batch and appended to the checkpoint.

    Returns:
        Tuple of (lookup rows for ``symbols``, whether no query was needed)

    Raises:
        HomologLookupError: If the homolog service fails
    """
    fingerprint = lookup_fingerprint(config)
    if force:
        cached, covered = None, set()
    else:
        cached, covered = _load_lookup_checkpoint(store, fingerprint)

    missing = [s for s in dict.fromkeys(symbols) if s not in covered]

    if cached is not None and not missing:
        rows = cached.filter(pl.col("source_symbol").is_in(symbols))
        logger.info(
            f"Reusing homolog lookup checkpoint ({rows.height} rows for "
            f"{len(symbols)} symbols); use --force to re-query"
        )
        return rows, True

    if cached is not None:
        logger.info(
            f"Homolog lookup checkpoint covers {len(symbols) - len(missing)} of "
            f"{len(symbols)} symbols; querying the other {len(missing)}"
        )

    fetched = HomologLookup.from_config(config).lookup_homologs(missing)

    if cached is not None:
        all_rows = pl.concat([cached, fetched])
        all_queried = sorted(covered | set(missing))
    else:
        all_rows = fetched
        all_queried = missing

    description = (
        f"mygene homolog lookup taxid {config.homolog.source_species} -> "
        f"{config.homolog.target_species} ({config.versions.probe_platform})"
    )
    store.save_dataframe(
        df=all_rows,
        table_name=LOOKUP_TABLE_NAME,
        description=description,
        fingerprint=fingerprint,
    )
    store.save_dataframe(
        df=pl.DataFrame({"source_symbol": all_queried}, schema={"source_symbol": pl.String}),
        table_name=LOOKUP_QUERY_TABLE_NAME,
        description=f"Symbols queried for {LOOKUP_TABLE_NAME}",
        fingerprint=fingerprint,
    )

    return all_rows.filter(pl.col("source_symbol").is_in(symbols)), False


def run_pipeline(
    config: PipelineConfig,
    loci_path: Path,
    genes_path: Path,
    network_path: Path,
    output_dir: Optional[Path] = None,
    force: bool = False,
) -> PipelineResult:
    """Run annotation, homolog merge and network overlay, writing all outputs.

    Args:
        config: Pipeline configuration
        loci_path: LD-expanded GWAS locus table
        genes_path: Reference gene annotation table
        network_path: Co-expression network probe table
        output_dir: Output directory (default: config.output_dir)
        force: Re-query the homolog service even if a checkpoint exists

    Returns:
        PipelineResult

    Raises:
        HomologLookupError: If the homolog service fails (fatal)
        FileNotFoundError: If an input table or the override file is missing
        ValueError: If an input table lacks a required column
    """
    output_dir = Path(output_dir or config.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    quality = DataQualityReport()
    provenance = ProvenanceTracker.from_config(config)
    provenance.record_input("loci", loci_path)
    provenance.record_input("genes", genes_path)
    provenance.record_input("network", network_path)
    if config.homolog.overrides_path is not None and Path(config.homolog.overrides_path).exists():
        provenance.record_input("overrides", config.homolog.overrides_path)

    with PipelineStore.from_config(config) as store:
        annotation = run_annotation(config, genes_path, loci_path, quality)
        load_to_duckdb(
            annotation.genes,
            annotation.loci,
            annotation.assignments,
            store,
            provenance,
        )

        network, network_report = load_network_table(network_path)
        quality.add_malformed(network_report)

        symbols = annotation.result.symbols
        lookup_rows, from_checkpoint = lookup_homologs(config, symbols, store, force)
        provenance.record_step("homolog_lookup", {
            "symbols": len(symbols),
            "rows": lookup_rows.height,
            "from_checkpoint": from_checkpoint,
        })

        overrides = load_overrides(config.homolog.overrides_path)
        merge = merge_homologs(
            symbols,
            lookup_rows,
            overrides,
            restrict_overrides_to_input=config.homolog.restrict_overrides_to_input,
        )
        quality.unmatched_by_lookup = list(merge.unmatched_by_lookup)
        quality.orphans = list(merge.orphans)

        validator = HomologValidator.from_config(config)
        validation = validator.validate(merge)
        for message in validation.messages:
            logger.info(message)

        store.save_dataframe(
            df=merge.mappings,
            table_name=HOMOLOG_TABLE_NAME,
            description="Probe-level homolog mappings (lookup plus manual overrides)",
        )
        provenance.record_step("merge_homologs", {
            "probe_mappings": merge.mappings.height,
            "manual_overrides": len(overrides),
            "unmatched_by_lookup": len(merge.unmatched_by_lookup),
            "orphans": len(merge.orphans),
            "coverage": f"{merge.coverage:.1%}",
        })

        module_genes = overlay_network(merge.mappings, network)
        trace = trace_module_genes(module_genes, merge.mappings, annotation.assignments)

        store.save_dataframe(
            df=module_genes,
            table_name=MODULE_GENE_TABLE_NAME,
            description=f"Network probes in assigned modules ({config.versions.network_name})",
        )
        provenance.record_step("overlay_network", {
            "network_probes": network.height,
            "module_genes": module_genes.height,
            "modules": module_genes["module_id"].n_unique(),
            "evidence_rows": trace.height,
        })

        outputs = {}
        written = write_module_gene_output(
            module_genes, output_dir, network_name=config.versions.network_name
        )
        outputs.update({f"module_genes_{k}": v for k, v in written.items()})
        written = write_module_gene_output(
            trace,
            output_dir,
            filename_base=TRACE_OUTPUT_BASE,
            network_name=config.versions.network_name,
        )
        outputs.update({f"trace_{k}": v for k, v in written.items()})

        assignment_path = output_dir / ASSIGNMENT_OUTPUT
        annotation.assignments.write_csv(assignment_path, separator="\t")
        outputs["assignments"] = assignment_path

        outputs["orphans"] = validator.save_orphan_report(merge, output_dir / ORPHAN_REPORT)
        outputs["quality"] = quality.save(output_dir / QUALITY_REPORT)
        quality.log_summary()

        outputs["provenance"] = provenance.save_sidecar(output_dir / "pipeline")
        provenance.save_to_store(store)

    logger.info(
        f"Pipeline complete: {module_genes.height} module genes in "
        f"{module_genes['module_id'].n_unique()} modules"
    )

    return PipelineResult(
        annotation=annotation,
        merge=merge,
        validation=validation,
        module_genes=module_genes,
        trace=trace,
        quality=quality,
        outputs=outputs,
        lookup_from_checkpoint=from_checkpoint,
    )
