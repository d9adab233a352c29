"""registrar - schema-directed transformation of document frontmatter into one registry artifact."""

from registrar.aggregation import Aggregator, FinalResult
from registrar.config import RegistrarConfig, load_config
from registrar.ir import IRBuilder, PathAddress, TemplateScope, resolve
from registrar.pipeline import Pipeline, RunContext, build
from registrar.processing import DataProcessingFacade
from registrar.schema import classify, extract_directives, load_schema, load_schema_file
from registrar.template import TemplateDomainFacade, TemplateRenderer

__version__ = "0.1.0"

__all__ = [
    "Aggregator",
    "DataProcessingFacade",
    "FinalResult",
    "IRBuilder",
    "PathAddress",
    "Pipeline",
    "RegistrarConfig",
    "RunContext",
    "TemplateDomainFacade",
    "TemplateRenderer",
    "TemplateScope",
    "build",
    "classify",
    "extract_directives",
    "load_config",
    "load_schema",
    "load_schema_file",
    "resolve",
]
