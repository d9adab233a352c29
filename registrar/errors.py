"""Exception hierarchy shared by every registrar subsystem.

Errors that are fatal to a run (schema and template loading) propagate to the
caller. Errors scoped to one document or one field are caught by the
processing engine and recorded instead of aborting the batch.
"""

from __future__ import annotations

from typing import Any


class RegistrarError(Exception):
    """Base class for all expected registrar errors."""


# -- schema ------------------------------------------------------------------


class SchemaError(RegistrarError):
    """Problem with the schema itself; fatal to the run."""


class CircularReferenceError(SchemaError):
    def __init__(self, ref: str, chain: tuple[str, ...] = ()) -> None:
        self.ref = ref
        self.chain = chain
        cycle = " -> ".join((*chain, ref)) if chain else ref
        super().__init__(f"Circular $ref detected: {cycle}")


class MaxDepthExceededError(SchemaError):
    def __init__(self, max_depth: int, ref: str | None = None) -> None:
        self.max_depth = max_depth
        self.ref = ref
        where = f" while resolving {ref!r}" if ref else ""
        super().__init__(f"Schema nesting exceeds max depth {max_depth}{where}")


class RefResolutionError(SchemaError):
    def __init__(self, ref: Any, reason: str) -> None:
        self.ref = ref
        self.reason = reason
        super().__init__(f"Cannot resolve $ref {ref!r}: {reason}")


# -- processing --------------------------------------------------------------


class ProcessingError(RegistrarError):
    """Failure while applying data directives; scoped to a document or field."""

    kind: str | None = None


class InvalidDirectiveError(SchemaError, ProcessingError):
    """A directive value does not have the shape its kind requires."""

    def __init__(self, kind: str, path: str, value: Any, expected: str) -> None:
        self.kind = kind
        self.path = path
        self.value = value
        self.expected = expected
        where = path or "<root>"
        super().__init__(f"{kind} at {where}: expected {expected}, got {value!r}")


class PathNotFoundError(ProcessingError, LookupError):
    def __init__(self, path: str, reason: str = "") -> None:
        self.path = path
        msg = f"Path not found: {path or '<root>'}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class TransformationFailedError(ProcessingError):
    def __init__(self, kind: str, path: str, reason: str) -> None:
        self.kind = kind
        self.path = path
        super().__init__(f"{kind} at {path or '<root>'} failed: {reason}")


class StateTransitionError(ProcessingError):
    def __init__(self, entity: str, current: str, action: str) -> None:
        self.entity = entity
        self.current = current
        self.action = action
        super().__init__(f"{entity}: cannot {action} while {current}")


# -- templates ---------------------------------------------------------------


class TemplateError(RegistrarError):
    pass


class TemplateLoadError(TemplateError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot load template {path}: {reason}")


# -- aggregation / serialization --------------------------------------------


class AggregationStateError(StateTransitionError):
    def __init__(self, current: str, action: str) -> None:
        super().__init__("Aggregator", current, action)


class SerializationError(RegistrarError):
    pass


class UnsupportedFormatError(SerializationError):
    def __init__(self, fmt: str, reason: str = "") -> None:
        self.format = fmt
        msg = f"Unsupported output format: {fmt!r}"
        super().__init__(f"{msg} ({reason})" if reason else msg)


class SerializationCircularReferenceError(SerializationError):
    def __init__(self) -> None:
        super().__init__("Artifact contains a circular reference")


# -- collaborators -----------------------------------------------------------


class ExtractError(RegistrarError):
    """No usable frontmatter block in a document."""


class ParseError(RegistrarError):
    def __init__(self, fmt: str, reason: str) -> None:
        self.format = fmt
        super().__init__(f"Invalid {fmt} frontmatter: {reason}")


# -- run ---------------------------------------------------------------------


class RunCancelledError(RegistrarError):
    def __init__(self) -> None:
        super().__init__("Run cancelled before every document was extracted")
