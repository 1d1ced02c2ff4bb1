"""GWAS locus to co-expression module mapping pipeline."""

__version__ = "0.1.0"
