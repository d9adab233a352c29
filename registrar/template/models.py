"""Data models for the template subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from registrar.ir.path import PathAddress


class TemplateKind(str, Enum):
    structured = "structured"  # .json / .yaml: parsed, string leaves tokenized
    text = "text"  # anything else: one token stream


@dataclass(frozen=True)
class LiteralText:
    text: str


@dataclass(frozen=True)
class Variable:
    """``{path}`` placeholder; ``raw`` is the text between the braces."""

    raw: str
    path: PathAddress

    @property
    def placeholder(self) -> str:
        return "{" + self.raw + "}"


@dataclass(frozen=True)
class ItemsMarker:
    """``{@items}``: where the rendered items are spliced in."""

    placeholder: str = "{@items}"


Token = Union[LiteralText, Variable, ItemsMarker]


@dataclass(frozen=True)
class Template:
    """Loaded template: content plus what the renderer needs to know about it."""

    name: str
    content: str
    kind: TemplateKind
    body: Any
    variables: tuple[str, ...] = ()
    has_items_marker: bool = False


@dataclass(frozen=True)
class TemplateBundle:
    main_template: Template | None = None
    items_template: Template | None = None
    output_format: str = "json"
