"""Output generation: dual-format module gene files with provenance sidecar."""

from gwas_module_pipeline.output.writers import module_statistics, write_module_gene_output

__all__ = [
    "module_statistics",
    "write_module_gene_output",
]
