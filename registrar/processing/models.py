"""Per-document processing state and failure records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from registrar.errors import ProcessingError, StateTransitionError
from registrar.ir.nodes import IRBuilder, IRNode
from registrar.schema.models import Directive


class DocumentState(str, Enum):
    """Lifecycle states for one document inside the engine."""

    uninitialized = "uninitialized"
    initialized = "initialized"
    processing = "processing"
    processed = "processed"
    failed = "failed"


class ProcessedDocument:
    """State machine for one document's data.

    Mutable: only the processing engine drives transitions. Disallowed
    transitions raise StateTransitionError.
    """

    def __init__(self, doc_id: str) -> None:
        self.doc_id = doc_id
        self.state = DocumentState.uninitialized
        self.raw: Any = None
        self.node: IRNode | None = None
        self.error: Exception | None = None

    def _guard(self, action: str, *allowed: DocumentState) -> None:
        if self.state not in allowed:
            raise StateTransitionError(f"Document {self.doc_id!r}", self.state.value, action)

    def initialize(self, raw: Any) -> None:
        self._guard("initialize", DocumentState.uninitialized, DocumentState.failed)
        self.raw = raw
        self.node = None
        self.error = None
        self.state = DocumentState.initialized

    def begin(self) -> IRNode:
        """Build the document IR and enter PROCESSING."""
        self._guard("begin processing", DocumentState.initialized)
        self.node = IRBuilder.from_data(self.raw)
        self.state = DocumentState.processing
        return self.node

    def update(self, node: IRNode) -> None:
        self._guard("update", DocumentState.processing)
        self.node = node

    def complete(self) -> IRNode:
        self._guard("complete", DocumentState.processing)
        self.state = DocumentState.processed
        return self.node

    def fail(self, error: Exception) -> None:
        self._guard("fail", DocumentState.initialized, DocumentState.processing)
        self.error = error
        self.node = None
        self.state = DocumentState.failed

    @property
    def is_processed(self) -> bool:
        return self.state is DocumentState.processed

    def __repr__(self) -> str:
        return f"ProcessedDocument({self.doc_id!r}, {self.state.value})"


@dataclass(frozen=True)
class DocumentFailure:
    """A document excluded from the output, with the directive kind that failed it."""

    doc_id: str
    kind: str | None
    message: str

    @classmethod
    def from_error(cls, doc_id: str, error: Exception) -> DocumentFailure:
        kind = getattr(error, "kind", None) if isinstance(error, ProcessingError) else None
        return cls(doc_id=doc_id, kind=kind, message=str(error))


@dataclass(frozen=True)
class DirectiveFailure:
    """An aggregate directive that could not be applied; only its field is affected."""

    path: str
    kind: str
    message: str

    @classmethod
    def from_error(cls, directive: Directive, error: Exception) -> DirectiveFailure:
        return cls(path=str(directive.path), kind=directive.kind.value, message=str(error))
