"""Placeholder tokenizer and template compilation."""

from __future__ import annotations

import re
from typing import Any

import yaml

from registrar.errors import TemplateLoadError
from registrar.ir.path import PathAddress
from registrar.template.models import (
    ItemsMarker,
    LiteralText,
    Template,
    TemplateKind,
    Token,
    Variable,
)

ITEMS_KEYWORD = "@items"

# {@items} or {path} where path is PathAddress syntax; anything else stays literal
_PLACEHOLDER = r"\{(@items|[A-Za-z_$][\w$-]*(?:\[\d*\]|\.[A-Za-z_$][\w$-]*)*)\}"
_PLACEHOLDER_RE = re.compile(_PLACEHOLDER)

# a YAML value that is nothing but a placeholder, e.g. `name: {title}` or `- {@items}`;
# unquoted, YAML would read it as a flow mapping
_BARE_PLACEHOLDER_RE = re.compile(
    r"^(?P<lead>[ \t]*(?:-[ \t]+)*(?:[^\s#{-][^#\n]*?:[ \t]+)?)"
    r"(?P<value>" + _PLACEHOLDER + r")"
    r"(?P<trail>[ \t]*(?:#.*)?\r?)$",
    re.M,
)

STRUCTURED_SUFFIXES = (".json", ".yaml", ".yml")


def parse_template(text: str) -> tuple[Token, ...]:
    """Split *text* into literal, variable and items-marker tokens, in order."""
    tokens: list[Token] = []
    pos = 0
    for match in _PLACEHOLDER_RE.finditer(text):
        if match.start() > pos:
            tokens.append(LiteralText(text[pos:match.start()]))
        name = match.group(1)
        if name == ITEMS_KEYWORD:
            tokens.append(ItemsMarker())
        else:
            tokens.append(Variable(raw=name, path=PathAddress.parse(name)))
        pos = match.end()
    if pos < len(text):
        tokens.append(LiteralText(text[pos:]))
    return tuple(tokens)


def kind_for(name: str) -> TemplateKind:
    return TemplateKind.structured if name.lower().endswith(STRUCTURED_SUFFIXES) else TemplateKind.text


def compile_template(name: str, content: str, kind: TemplateKind | None = None) -> Template:
    """Build a Template from raw file content.

    Structured templates are parsed first and each string leaf becomes a token
    tuple; text templates are a single token tuple.
    """
    kind = kind or kind_for(name)
    if kind is TemplateKind.structured:
        try:
            data = yaml.safe_load(_quote_bare_placeholders(content))
        except yaml.YAMLError as e:
            raise TemplateLoadError(name, f"invalid structured template: {e}") from e
        body = _tokenize_leaves(data)
    else:
        body = parse_template(content)

    variables: list[str] = []
    has_items = False
    for token in _iter_tokens(body):
        if isinstance(token, ItemsMarker):
            has_items = True
        elif isinstance(token, Variable) and token.raw not in variables:
            variables.append(token.raw)

    return Template(
        name=name,
        content=content,
        kind=kind,
        body=body,
        variables=tuple(variables),
        has_items_marker=has_items,
    )


def _quote_bare_placeholders(content: str) -> str:
    return _BARE_PLACEHOLDER_RE.sub(r"\g<lead>'\g<value>'\g<trail>", content)


def _tokenize_leaves(data: Any) -> Any:
    if isinstance(data, str):
        return parse_template(data)
    if isinstance(data, dict):
        return {key: _tokenize_leaves(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_tokenize_leaves(value) for value in data]
    return data


def _iter_tokens(body: Any):
    if isinstance(body, tuple):
        yield from body
    elif isinstance(body, dict):
        for value in body.values():
            yield from _iter_tokens(value)
    elif isinstance(body, list):
        for value in body:
            yield from _iter_tokens(value)
