"""Directive processing: individual and aggregate phases over the IR."""

from registrar.processing.engine import DataProcessingFacade, DirectiveProcessor
from registrar.processing.handlers import search
from registrar.processing.models import (
    DirectiveFailure,
    DocumentFailure,
    DocumentState,
    ProcessedDocument,
)

__all__ = [
    "DataProcessingFacade",
    "DirectiveFailure",
    "DirectiveProcessor",
    "DocumentFailure",
    "DocumentState",
    "ProcessedDocument",
    "search",
]
