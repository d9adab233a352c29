from .loader import load_config
from .models import (
    OutputConfig,
    RegistrarConfig,
    SchemaConfig,
    SourcesConfig,
    TemplateConfig,
)

__all__ = [
    "OutputConfig",
    "RegistrarConfig",
    "SchemaConfig",
    "SourcesConfig",
    "TemplateConfig",
    "load_config",
]
