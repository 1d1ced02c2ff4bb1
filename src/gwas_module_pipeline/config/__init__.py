from .loader import load_config, load_config_with_overrides
from .schema import (
    PipelineConfig,
    DataSourceVersions,
    AnnotationConfig,
    HomologConfig,
    APIConfig,
)

__all__ = [
    "load_config",
    "load_config_with_overrides",
    "PipelineConfig",
    "DataSourceVersions",
    "AnnotationConfig",
    "HomologConfig",
    "APIConfig",
]
