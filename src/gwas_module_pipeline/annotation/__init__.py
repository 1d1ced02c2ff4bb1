"""Locus-to-gene annotation.

Loads the reference gene table (one longest transcript per symbol on primary
chromosomes), indexes it per chromosome, and assigns each LD-expanded GWAS
locus to overlapping genes with a nearest-neighbour fallback and a distance
cutoff.
"""

from gwas_module_pipeline.annotation.models import (
    ASSIGNMENT_TABLE_NAME,
    DEFAULT_SYMBOL_BLOCKLIST,
    GENE_TABLE_NAME,
    LOCI_TABLE_NAME,
    MAX_LOCUS_GENE_DISTANCE,
    GeneRecord,
    GenomicInterval,
    GwasLocus,
    LocusGeneAssignment,
)
from gwas_module_pipeline.annotation.genes import (
    collapse_to_longest_transcript,
    filter_gene_table,
    frame_to_gene_records,
    gene_records_to_frame,
    is_primary_chromosome,
    load_gene_records,
    make_symbol_filter,
    read_gene_table,
    symbol_filter_expr,
)
from gwas_module_pipeline.annotation.loci import (
    frame_to_loci,
    load_loci,
    read_loci_table,
)
from gwas_module_pipeline.annotation.index import IntervalIndex
from gwas_module_pipeline.annotation.annotator import (
    AnnotationResult,
    annotate_loci,
    assignments_to_frame,
    candidate_genes,
)
from gwas_module_pipeline.annotation.load import load_to_duckdb

__all__ = [
    "ASSIGNMENT_TABLE_NAME",
    "DEFAULT_SYMBOL_BLOCKLIST",
    "GENE_TABLE_NAME",
    "LOCI_TABLE_NAME",
    "MAX_LOCUS_GENE_DISTANCE",
    "GeneRecord",
    "GenomicInterval",
    "GwasLocus",
    "LocusGeneAssignment",
    "collapse_to_longest_transcript",
    "filter_gene_table",
    "frame_to_gene_records",
    "gene_records_to_frame",
    "is_primary_chromosome",
    "load_gene_records",
    "make_symbol_filter",
    "read_gene_table",
    "symbol_filter_expr",
    "frame_to_loci",
    "load_loci",
    "read_loci_table",
    "IntervalIndex",
    "AnnotationResult",
    "annotate_loci",
    "assignments_to_frame",
    "candidate_genes",
    "load_to_duckdb",
]
