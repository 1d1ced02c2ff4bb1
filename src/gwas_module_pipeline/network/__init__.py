"""Co-expression network overlay.

Joins probe-level homolog mappings against network probes on probe ID, symbol
and gene ID, and keeps probes assigned to a module.
"""

from gwas_module_pipeline.network.join import JoinKey, multi_key_join
from gwas_module_pipeline.network.overlay import (
    MODULE_GENE_TABLE_NAME,
    NETWORK_COLUMN_VARIANTS,
    NETWORK_JOIN_KEYS,
    NETWORK_TABLE_NAME,
    TRACE_COLUMNS,
    load_network_table,
    overlay_network,
    trace_module_genes,
)

__all__ = [
    "JoinKey",
    "multi_key_join",
    "MODULE_GENE_TABLE_NAME",
    "NETWORK_COLUMN_VARIANTS",
    "NETWORK_JOIN_KEYS",
    "NETWORK_TABLE_NAME",
    "TRACE_COLUMNS",
    "load_network_table",
    "overlay_network",
    "trace_module_genes",
]
