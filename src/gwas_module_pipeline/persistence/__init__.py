"""Persistence layer for pipeline checkpoints and provenance tracking."""

from gwas_module_pipeline.persistence.duckdb_store import PipelineStore
from gwas_module_pipeline.persistence.provenance import ProvenanceTracker

__all__ = ["PipelineStore", "ProvenanceTracker"]
