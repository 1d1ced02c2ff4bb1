"""Run command: full locus -> module pipeline.

Orchestrates:
1. Load config
2. Annotate GWAS loci with candidate genes
3. Look up mouse homolog probes (checkpointed) and merge manual overrides
4. Overlay the mapped probes onto network modules
5. Write module genes, evidence trace, orphan and quality reports
"""

import logging
import sys
from pathlib import Path

import click

from gwas_module_pipeline.config.loader import load_config_with_overrides
from gwas_module_pipeline.gene_mapping import HomologLookupError
from gwas_module_pipeline.pipeline import run_pipeline

logger = logging.getLogger(__name__)

EXIT_LOOKUP_FAILED = 2


@click.command('run')
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
    '--network',
    'network_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='Co-expression network probe table with module assignments'
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
@click.option(
    '--force',
    is_flag=True,
    help='Re-query the homolog service even if a lookup checkpoint exists'
)
@click.pass_context
def run(ctx, loci_path, genes_path, network_path, max_distance, output_dir, force):
    """Map GWAS loci to network module genes.

    Annotates loci with candidate genes, maps them to mouse array probes via
    mygene plus the manual override list, and keeps network probes assigned
    to a module.

    Examples:

        # Full run with default config
        gwas-module-pipeline run --loci loci.tsv --genes refGene.txt --network modules.tsv

        # Re-query homologs after changing the locus set
        gwas-module-pipeline run --loci loci.tsv --genes refGene.txt --network modules.tsv --force
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== GWAS Module Pipeline ===", bold=True))
    click.echo()

    try:
        click.echo("Loading configuration...")
        config = load_config_with_overrides(
            config_path,
            {"annotation.max_distance": max_distance},
        )
        click.echo(click.style(f"  Config loaded: {config_path}", fg='green'))
        click.echo(f"  Network: {config.versions.network_name}")
        click.echo(f"  Probe Platform: {config.versions.probe_platform}")
        click.echo()

        click.echo("Running pipeline...")
        result = run_pipeline(
            config,
            loci_path=loci_path,
            genes_path=genes_path,
            network_path=network_path,
            output_dir=output_dir,
            force=force,
        )
        if result.lookup_from_checkpoint:
            click.echo(click.style(
                "  Homolog lookup checkpoint reused (use --force to re-query)",
                fg='yellow'
            ))
        click.echo()

        click.echo(click.style("Homolog validation:", bold=True))
        for msg in result.validation.messages:
            if 'FAILED' in msg:
                click.echo(click.style(f"  {msg}", fg='red'))
            elif 'WARNING' in msg:
                click.echo(click.style(f"  {msg}", fg='yellow'))
            else:
                click.echo(f"  {msg}")
        click.echo()

        click.echo(click.style("Data quality:", bold=True))
        for line in result.quality.summary_lines():
            click.echo(f"  {line}")
        click.echo()

        click.echo(click.style("=== Run Summary ===", bold=True))
        click.echo(f"Loci: {result.annotation.loci.height}")
        click.echo(f"Candidate genes: {len(result.annotation.result.symbols)}")
        click.echo(f"Probe mappings: {result.merge.mappings.height}")
        click.echo(
            f"Module genes: {result.module_genes.height} in "
            f"{result.module_genes['module_id'].n_unique()} modules"
        )
        click.echo(f"Output: {result.outputs['module_genes_tsv']}")
        click.echo(f"Orphans: {result.outputs['orphans']}")
        click.echo(f"Provenance: {result.outputs['provenance']}")
        click.echo()

        if not result.validation.passed:
            click.echo(click.style(
                "Homolog coverage below minimum; see orphan report",
                fg='red'
            ), err=True)
            sys.exit(1)

        click.echo(click.style("Pipeline complete!", fg='green', bold=True))

    except HomologLookupError as e:
        click.echo(click.style(f"Homolog lookup failed: {e}", fg='red'), err=True)
        logger.exception("Homolog lookup failed")
        sys.exit(EXIT_LOOKUP_FAILED)
    except Exception as e:
        click.echo(click.style(f"Pipeline failed: {e}", fg='red'), err=True)
        logger.exception("Run command failed")
        sys.exit(1)
