"""Configuration loading with YAML parsing and validation."""

from pathlib import Path
from typing import Any

import pydantic_yaml

from .schema import PipelineConfig


def load_config(config_path: Path | str) -> PipelineConfig:
    """
    Parse and validate a pipeline YAML config.

    A relative ``homolog.overrides_path`` is resolved against the directory
    holding the config file, so the override list can be versioned next to it.

    Raises:
        FileNotFoundError: If config file doesn't exist
        pydantic.ValidationError: If config is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    config = pydantic_yaml.parse_yaml_raw_as(PipelineConfig, config_path.read_text())

    overrides_path = config.homolog.overrides_path
    if overrides_path is not None and not overrides_path.is_absolute():
        config.homolog.overrides_path = config_path.parent / overrides_path

    return config


def load_config_with_overrides(
    config_path: Path | str,
    overrides: dict[str, Any],
) -> PipelineConfig:
    """
    Load a config and replace individual values, e.g. from CLI flags.

    Args:
        config_path: Path to YAML configuration file
        overrides: Dotted key -> value, e.g. {"annotation.max_distance": 500000}.
            None values are ignored so unset CLI options can be passed through.

    Returns:
        PipelineConfig re-validated after the overrides are applied

    Raises:
        KeyError: If a dotted key names an unknown section
        pydantic.ValidationError: If an overridden value is invalid
    """
    config = load_config(config_path)
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if not overrides:
        return config

    config_dict = config.model_dump()
    for key, value in overrides.items():
        *sections, field_name = key.split(".")
        target = config_dict
        for section in sections:
            target = target[section]
        target[field_name] = value

    return PipelineConfig.model_validate(config_dict)
