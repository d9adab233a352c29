"""Data models for the schema subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from registrar.errors import InvalidDirectiveError
from registrar.ir.path import PathAddress


class DirectiveKind(str, Enum):
    """Known ``x-*`` schema keys. Declaration order is application order within a node."""

    frontmatter_part = "x-frontmatter-part"
    template = "x-template"
    template_items = "x-template-items"
    template_format = "x-template-format"
    flatten_arrays = "x-flatten-arrays"
    jmespath_filter = "x-jmespath-filter"
    derived_from = "x-derived-from"
    derived_unique = "x-derived-unique"

    @classmethod
    def from_key(cls, key: str) -> DirectiveKind | None:
        try:
            return cls(key)
        except ValueError:
            return None


class Intent(str, Enum):
    extraction = "extraction"
    template = "template"
    processing = "processing"


class Timing(str, Enum):
    individual = "individual"
    aggregate = "aggregate"


INTENT_BY_KIND: dict[DirectiveKind, Intent] = {
    DirectiveKind.frontmatter_part: Intent.extraction,
    DirectiveKind.template: Intent.template,
    DirectiveKind.template_items: Intent.template,
    DirectiveKind.template_format: Intent.template,
    DirectiveKind.flatten_arrays: Intent.processing,
    DirectiveKind.jmespath_filter: Intent.processing,
    DirectiveKind.derived_from: Intent.processing,
    DirectiveKind.derived_unique: Intent.processing,
}

TIMING_BY_KIND: dict[DirectiveKind, Timing] = {
    DirectiveKind.flatten_arrays: Timing.individual,
    DirectiveKind.jmespath_filter: Timing.individual,
    DirectiveKind.derived_from: Timing.aggregate,
    DirectiveKind.derived_unique: Timing.aggregate,
}

TEMPLATE_FORMATS = ("json", "yaml", "markdown")


@dataclass(frozen=True)
class Directive:
    """One ``x-*`` instruction attached to the schema node at *path*.

    The value is kept raw; its shape is checked by ``validate()`` when the
    directive is applied, not when it is extracted.
    """

    kind: DirectiveKind
    path: PathAddress
    value: Any

    @property
    def intent(self) -> Intent:
        return INTENT_BY_KIND[self.kind]

    @property
    def timing(self) -> Timing | None:
        return TIMING_BY_KIND.get(self.kind)

    def validate(self) -> Any:
        """Return the value if its shape matches the kind, else raise InvalidDirectiveError."""
        value = self.value
        kind = self.kind
        if kind in (DirectiveKind.frontmatter_part, DirectiveKind.derived_unique):
            ok, expected = isinstance(value, bool), "a boolean"
        elif kind is DirectiveKind.template_format:
            ok, expected = value in TEMPLATE_FORMATS, "one of " + ", ".join(TEMPLATE_FORMATS)
        elif kind is DirectiveKind.flatten_arrays:
            ok = value is True or (isinstance(value, str) and bool(value.strip()))
            expected = "a non-empty path or true"
        else:
            ok, expected = isinstance(value, str) and bool(value.strip()), "a non-empty string"
        if not ok:
            raise InvalidDirectiveError(kind.value, str(self.path), value, expected)
        return value

    def __str__(self) -> str:
        return f"{self.kind.value}@{self.path or '<root>'}={self.value!r}"


@dataclass(frozen=True)
class SchemaNode:
    """Resolved schema subtree with its directives split out."""

    path: PathAddress
    type: str | None = None
    directives: dict[DirectiveKind, Any] = field(default_factory=dict)
    properties: tuple[tuple[str, SchemaNode], ...] = ()
    items: SchemaNode | None = None

    @property
    def children(self) -> tuple[SchemaNode, ...]:
        kids = tuple(node for _, node in self.properties)
        return (*kids, self.items) if self.items is not None else kids

    def walk(self):
        """Pre-order traversal: self, properties in declaration order, then items."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class ResolvedSchema:
    """Schema with every ``$ref`` inlined."""

    root: Any
    base_path: Path = field(default_factory=Path.cwd)


@dataclass(frozen=True)
class DirectiveSet:
    """Directives partitioned by intent; each consumer receives only its group."""

    extraction: tuple[Directive, ...] = ()
    template: tuple[Directive, ...] = ()
    processing: tuple[Directive, ...] = ()
    item_path: PathAddress | None = None

    def __len__(self) -> int:
        return len(self.extraction) + len(self.template) + len(self.processing)

    def all(self) -> tuple[Directive, ...]:
        return (*self.extraction, *self.template, *self.processing)
