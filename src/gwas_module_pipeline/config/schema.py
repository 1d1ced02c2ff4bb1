"""Pydantic models for pipeline configuration."""

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from gwas_module_pipeline.annotation.models import (
    DEFAULT_SYMBOL_BLOCKLIST,
    MAX_LOCUS_GENE_DISTANCE,
)


class DataSourceVersions(BaseModel):
    """Version information for the input data sources."""

    genome_build: str = Field(
        default="hg19",
        description="Reference genome build shared by loci and gene table",
    )
    gene_annotation: str = Field(
        default="refGene",
        description="Gene annotation table name/release",
    )
    network_name: str = Field(
        ...,
        description="Co-expression network identifier",
    )
    probe_platform: str = Field(
        default="Mouse430_2",
        description="Expression array platform used for probe identifiers",
    )


class AnnotationConfig(BaseModel):
    """Settings for locus-to-gene annotation."""

    symbol_blocklist: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SYMBOL_BLOCKLIST),
        description="Case-sensitive substrings; matching gene symbols are dropped",
    )
    max_distance: int = Field(
        default=MAX_LOCUS_GENE_DISTANCE,
        ge=0,
        description="Maximum |position - coding start| for a locus-gene assignment",
    )
    chromosome_prefix: str = Field(
        default="chr",
        description="Prefix added to bare locus chromosome names ('' disables)",
    )


class HomologConfig(BaseModel):
    """Settings for cross-species homolog mapping."""

    source_species: int = Field(
        default=9606,
        description="NCBI taxonomy ID of the GWAS species",
    )
    target_species: int = Field(
        default=10090,
        description="NCBI taxonomy ID of the network species",
    )
    overrides_path: Path | None = Field(
        default=None,
        description="YAML file with manually curated homolog mappings",
    )
    restrict_overrides_to_input: bool = Field(
        default=False,
        description="Only merge overrides whose human symbol was annotated",
    )
    min_coverage: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Homolog coverage below this fails validation",
    )
    warn_coverage: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Homolog coverage below this triggers a warning",
    )

    @model_validator(mode="after")
    def check_thresholds(self) -> "HomologConfig":
        if self.warn_coverage < self.min_coverage:
            raise ValueError(
                f"warn_coverage ({self.warn_coverage}) must be >= "
                f"min_coverage ({self.min_coverage})"
            )
        return self


class APIConfig(BaseModel):
    """Configuration for the external homolog service."""

    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts before the homolog lookup is declared failed",
    )


class PipelineConfig(BaseModel):
    """Main pipeline configuration."""

    data_dir: Path = Field(
        ...,
        description="Directory for intermediate data and reports",
    )
    output_dir: Path = Field(
        ...,
        description="Directory for the final module-gene tables",
    )
    duckdb_path: Path = Field(
        ...,
        description="Path to DuckDB checkpoint database",
    )
    versions: DataSourceVersions = Field(
        ...,
        description="Data source version information",
    )
    annotation: AnnotationConfig = Field(
        default_factory=AnnotationConfig,
        description="Locus annotation settings",
    )
    homolog: HomologConfig = Field(
        default_factory=HomologConfig,
        description="Homolog mapping settings",
    )
    api: APIConfig = Field(
        default_factory=APIConfig,
        description="External service configuration",
    )

    @field_validator("data_dir", "output_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        useful for tracking config changes between runs.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
