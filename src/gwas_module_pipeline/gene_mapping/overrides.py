"""Manually curated homolog mappings loaded from a versioned YAML file."""

import logging
from pathlib import Path
from typing import Optional

import polars as pl
import pydantic_yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from gwas_module_pipeline.gene_mapping.lookup import LOOKUP_SCHEMA

logger = logging.getLogger(__name__)


class ManualOverride(BaseModel):
    """One curated source-symbol to target-probe mapping."""

    human_symbol: str = Field(..., min_length=1, description="Source gene symbol")
    mouse_gene_id: str = Field(..., min_length=1, description="Target Entrez gene ID")
    mouse_symbol: str = Field(..., min_length=1, description="Target gene symbol")
    mouse_symbol_alt: Optional[str] = Field(
        None,
        description="Alternative target symbol (defaults to mouse_symbol)",
    )
    probe_id: str = Field(..., min_length=1, description="Target array probe ID")

    @field_validator("mouse_gene_id", "probe_id", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        """YAML reads unquoted Entrez IDs as integers."""
        if isinstance(v, int):
            return str(v)
        return v

    @model_validator(mode="after")
    def default_alt_symbol(self) -> "ManualOverride":
        if not self.mouse_symbol_alt:
            self.mouse_symbol_alt = self.mouse_symbol
        return self


class OverrideList(BaseModel):
    """Top-level layout of the override YAML file."""

    version: str = Field(..., description="Curation version/date of the list")
    curator: Optional[str] = Field(None, description="Who maintains the list")
    overrides: list[ManualOverride] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, v):
        # Unquoted dates and numbers are parsed by YAML as non-strings
        if v is not None and not isinstance(v, str):
            return str(v)
        return v


def load_overrides(path: Path | str | None) -> list[ManualOverride]:
    """Load manual homolog overrides.

    Args:
        path: YAML override file, or None for no overrides

    Returns:
        Validated overrides in file order

    Raises:
        FileNotFoundError: If path is given but does not exist
        pydantic.ValidationError: If the file does not match OverrideList
    """
    if path is None:
        return []

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Override file not found: {path}")

    with open(path, "r") as f:
        override_list = pydantic_yaml.parse_yaml_raw_as(OverrideList, f.read())

    logger.info(
        f"Loaded {len(override_list.overrides)} manual homolog overrides "
        f"(version {override_list.version}) from {path}"
    )

    return override_list.overrides


def overrides_to_lookup_frame(overrides: list[ManualOverride]) -> pl.DataFrame:
    """Shape overrides like HomologLookup.lookup_homologs output."""
    return pl.DataFrame(
        {
            "source_symbol": [o.human_symbol for o in overrides],
            "target_gene_id": [o.mouse_gene_id for o in overrides],
            "target_symbol": [o.mouse_symbol for o in overrides],
            "target_symbol_alt": [o.mouse_symbol_alt for o in overrides],
            "target_probe_id": [o.probe_id for o in overrides],
        },
        schema=LOOKUP_SCHEMA,
    )
