"""Template rendering against a scoped view of the IR."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from typing import Any, Iterable, Literal

from registrar.errors import PathNotFoundError
from registrar.ir.nodes import IRNode, IRScalar
from registrar.ir.scope import TemplateScope
from registrar.template.models import ItemsMarker, LiteralText, Template, TemplateKind, Token, Variable

logger = logging.getLogger(__name__)

MissingPolicy = Literal["empty", "keep"]


def to_text(value: Any) -> str:
    """Canonical string form: JSON-style primitives, ISO dates, compact JSON otherwise."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return json.dumps(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=_json_default)


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


class TemplateRenderer:
    """Renders Templates; unresolved variables take the *missing* fallback."""

    def __init__(self, missing: MissingPolicy = "empty") -> None:
        self.missing = missing

    # -- entry points ------------------------------------------------------

    def render(self, template: Template, scope: TemplateScope, items: list[Any] | None = None) -> Any:
        """Render *template* in *scope*. ``{@items}`` is replaced by *items*."""
        items = items if items is not None else []
        if template.kind is TemplateKind.structured:
            return self._render_structure(template.body, scope, items)
        return self._render_tokens(template.body, scope, items)

    def render_item(self, template: Template | None, scope: TemplateScope, element: IRNode) -> Any:
        """Render one array element in its own child scope; no template means its data."""
        if template is None:
            return element.to_data()
        return self.render(template, scope.descend(element))

    def render_items(self, template: Template | None, scope: TemplateScope, elements: Iterable[IRNode]) -> list[Any]:
        return [self.render_item(template, scope, element) for element in elements]

    # -- resolution --------------------------------------------------------

    def _lookup(self, variable: Variable, scope: TemplateScope) -> IRNode | None:
        try:
            return scope.resolve_relative(variable.path)
        except PathNotFoundError:
            logger.debug("unresolved template variable %s", variable.placeholder)
            return None

    def _fallback(self, variable: Variable) -> str:
        return variable.placeholder if self.missing == "keep" else ""

    # -- text --------------------------------------------------------------

    def _render_tokens(self, tokens: tuple[Token, ...], scope: TemplateScope, items: list[Any]) -> str:
        parts: list[str] = []
        for token in tokens:
            if isinstance(token, LiteralText):
                parts.append(token.text)
            elif isinstance(token, ItemsMarker):
                parts.append("\n".join(to_text(item) for item in items))
            else:
                node = self._lookup(token, scope)
                parts.append(self._fallback(token) if node is None else _node_text(node))
        return "".join(parts)

    # -- structured --------------------------------------------------------

    def _render_structure(self, body: Any, scope: TemplateScope, items: list[Any]) -> Any:
        if isinstance(body, tuple):
            return self._render_leaf(body, scope, items)
        if isinstance(body, dict):
            return {key: self._render_structure(value, scope, items) for key, value in body.items()}
        if isinstance(body, list):
            return [self._render_structure(value, scope, items) for value in body]
        return body

    def _render_leaf(self, tokens: tuple[Token, ...], scope: TemplateScope, items: list[Any]) -> Any:
        if len(tokens) == 1:
            token = tokens[0]
            if isinstance(token, ItemsMarker):
                return list(items)
            if isinstance(token, Variable):
                node = self._lookup(token, scope)
                return self._fallback(token) if node is None else node.to_data()
        return self._render_tokens(tokens, scope, items)


def _node_text(node: IRNode) -> str:
    if isinstance(node, IRScalar):
        return to_text(node.value)
    return to_text(node.to_data())
