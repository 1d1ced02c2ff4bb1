"""Annotate command: assign GWAS loci to candidate genes.

Runs only the locus annotation stage (no external service):
1. Load config
2. Load gene annotation and GWAS loci
3. Annotate loci (overlap + neighbour fallback + distance cutoff)
4. Save tables to DuckDB and the assignments TSV
"""

import logging
import sys
from pathlib import Path

import click

from gwas_module_pipeline.annotation import load_to_duckdb
from gwas_module_pipeline.config.loader import load_config_with_overrides
from gwas_module_pipeline.persistence import PipelineStore, ProvenanceTracker
from gwas_module_pipeline.pipeline import ASSIGNMENT_OUTPUT, QUALITY_REPORT, run_annotation
from gwas_module_pipeline.quality import DataQualityReport

logger = logging.getLogger(__name__)


@click.command('annotate')
@click.option(
    '--loci',
    'loci_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='LD-expanded GWAS locus table (TSV, or CSV by suffix)'
)
@click.option(
    '--genes',
    'genes_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='Reference gene annotation table (UCSC refGene layout)'
)
@click.option(
    '--max-distance',
    type=click.IntRange(min=0),
    default=None,
    help='Override annotation.max_distance (bp) from config'
)
@click.option(
    '--output-dir',
    type=click.Path(path_type=Path),
    default=None,
    help='Output directory (default: output_dir from config)'
)
@click.pass_context
def annotate(ctx, loci_path, genes_path, max_distance, output_dir):
    """Assign GWAS loci to overlapping and neighbouring genes.

    Writes locus_gene_assignments.tsv and the gene_annotation, gwas_loci and
    locus_gene_assignments DuckDB tables.
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Locus Annotation ===", bold=True))
    click.echo()

    try:
        click.echo("Loading configuration...")
        config = load_config_with_overrides(
            config_path,
            {"annotation.max_distance": max_distance},
        )
        click.echo(click.style(f"  Config loaded: {config_path}", fg='green'))
        click.echo(f"  Genome Build: {config.versions.genome_build}")
        click.echo(f"  Max Distance: {config.annotation.max_distance:,} bp")
        click.echo()

        output_dir = Path(output_dir or config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        store = PipelineStore.from_config(config)
        provenance = ProvenanceTracker.from_config(config)
        provenance.record_input("loci", loci_path)
        provenance.record_input("genes", genes_path)
        quality = DataQualityReport()

        click.echo("Annotating loci...")
        step = run_annotation(config, genes_path, loci_path, quality)
        click.echo(click.style(
            f"  {len(step.result.assignments)} assignments to "
            f"{len(step.result.symbols)} genes from {step.loci.height} loci",
            fg='green'
        ))
        if step.result.loci_without_candidates:
            click.echo(click.style(
                f"  {len(step.result.loci_without_candidates)} loci without candidate genes",
                fg='yellow'
            ))
        if quality.malformed_count:
            click.echo(click.style(
                f"  Skipped {quality.malformed_count} malformed input rows",
                fg='yellow'
            ))
        click.echo()

        click.echo("Saving results...")
        load_to_duckdb(step.genes, step.loci, step.assignments, store, provenance)

        assignment_path = output_dir / ASSIGNMENT_OUTPUT
        step.assignments.write_csv(assignment_path, separator="\t")
        quality_path = quality.save(output_dir / QUALITY_REPORT)
        provenance_path = provenance.save_sidecar(output_dir / "annotate")
        provenance.save_to_store(store)

        click.echo(click.style(f"  Assignments: {assignment_path}", fg='green'))
        click.echo(f"  Quality report: {quality_path}")
        click.echo(f"  Provenance: {provenance_path}")
        click.echo()
        click.echo(click.style("Annotation complete!", fg='green', bold=True))

    except Exception as e:
        click.echo(click.style(f"Annotation failed: {e}", fg='red'), err=True)
        logger.exception("Annotate command failed")
        sys.exit(1)
    finally:
        if 'store' in locals():
            store.close()
