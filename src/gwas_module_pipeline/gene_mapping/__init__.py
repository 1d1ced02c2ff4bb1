"""Cross-species homolog mapping module.

Provides the batched mygene homolog lookup, manual override loading,
probe-level merge, and coverage validation.
"""

from gwas_module_pipeline.gene_mapping.lookup import (
    HomologLookup,
    HomologLookupError,
    LOOKUP_SCHEMA,
)
from gwas_module_pipeline.gene_mapping.overrides import (
    ManualOverride,
    OverrideList,
    load_overrides,
    overrides_to_lookup_frame,
)
from gwas_module_pipeline.gene_mapping.merge import (
    HOMOLOG_TABLE_NAME,
    MAPPING_SCHEMA,
    HomologMergeResult,
    merge_homologs,
)
from gwas_module_pipeline.gene_mapping.validator import (
    HomologValidator,
    ValidationResult,
)

__all__ = [
    "HomologLookup",
    "HomologLookupError",
    "LOOKUP_SCHEMA",
    "ManualOverride",
    "OverrideList",
    "load_overrides",
    "overrides_to_lookup_frame",
    "HOMOLOG_TABLE_NAME",
    "MAPPING_SCHEMA",
    "HomologMergeResult",
    "merge_homologs",
    "HomologValidator",
    "ValidationResult",
]
