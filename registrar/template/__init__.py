"""Template subsystem: tokenizing, loading and scoped rendering."""

from registrar.template.loader import TemplateDomainFacade, load_template_file
from registrar.template.models import (
    ItemsMarker,
    LiteralText,
    Template,
    TemplateBundle,
    TemplateKind,
    Token,
    Variable,
)
from registrar.template.parser import compile_template, parse_template
from registrar.template.renderer import TemplateRenderer, to_text

__all__ = [
    "ItemsMarker",
    "LiteralText",
    "Template",
    "TemplateBundle",
    "TemplateDomainFacade",
    "TemplateKind",
    "TemplateRenderer",
    "Token",
    "Variable",
    "compile_template",
    "load_template_file",
    "parse_template",
    "to_text",
]
