"""Schema subsystem: $ref resolution and directive classification."""

from registrar.schema.directives import build_tree, classify, extract_directives
from registrar.schema.loader import DEFAULT_MAX_DEPTH, load_schema, load_schema_file
from registrar.schema.models import (
    Directive,
    DirectiveKind,
    DirectiveSet,
    Intent,
    ResolvedSchema,
    SchemaNode,
    Timing,
)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "Directive",
    "DirectiveKind",
    "DirectiveSet",
    "Intent",
    "ResolvedSchema",
    "SchemaNode",
    "Timing",
    "build_tree",
    "classify",
    "extract_directives",
    "load_schema",
    "load_schema_file",
]
