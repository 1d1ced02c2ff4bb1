"""Main CLI entry point for gwas-module-pipeline.

Provides command group with global options and subcommands for pipeline operations.
"""

import logging
from pathlib import Path

import click

from gwas_module_pipeline import __version__
from gwas_module_pipeline.config.loader import load_config
from gwas_module_pipeline.cli.annotate_cmd import annotate
from gwas_module_pipeline.cli.run_cmd import run
from gwas_module_pipeline.persistence import PipelineStore


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to pipeline configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """gwas-module-pipeline: map GWAS loci to genes and onto co-expression modules.

    Assigns LD-expanded loci to nearby genes, maps the genes to mouse array
    probes, and keeps the probes that belong to a network module.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display pipeline information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"GWAS Module Pipeline v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Data Source Versions:", bold=True))
        click.echo(f"  Genome Build:    {config.versions.genome_build}")
        click.echo(f"  Gene Annotation: {config.versions.gene_annotation}")
        click.echo(f"  Network:         {config.versions.network_name}")
        click.echo(f"  Probe Platform:  {config.versions.probe_platform}")
        click.echo()

        click.echo(click.style("Annotation:", bold=True))
        click.echo(f"  Max Distance: {config.annotation.max_distance:,} bp")
        click.echo(f"  Symbol Block-list: {', '.join(config.annotation.symbol_blocklist)}")
        click.echo(f"  Chromosome Prefix: {config.annotation.chromosome_prefix!r}")
        click.echo()

        click.echo(click.style("Homolog Mapping:", bold=True))
        click.echo(
            f"  Species: {config.homolog.source_species} -> {config.homolog.target_species}"
        )
        click.echo(f"  Overrides: {config.homolog.overrides_path or '(none)'}")
        click.echo(f"  Max Retries: {config.api.max_retries}")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Data Directory: {config.data_dir}")
        click.echo(f"  Output Directory: {config.output_dir}")
        click.echo(f"  DuckDB Path: {config.duckdb_path}")

        if Path(config.duckdb_path).exists():
            with PipelineStore.from_config(config) as store:
                checkpoints = store.list_checkpoints()
            click.echo()
            click.echo(click.style("Checkpoints:", bold=True))
            if not checkpoints:
                click.echo("  (none)")
            for checkpoint in checkpoints:
                click.echo(
                    f"  {checkpoint['table_name']}: {checkpoint['row_count']} rows "
                    f"({checkpoint['created_at']})"
                )

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


cli.add_command(annotate)
cli.add_command(run)


if __name__ == '__main__':
    cli()
