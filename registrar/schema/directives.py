"""Directive extraction and intent classification."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from registrar.ir.path import PathAddress
from registrar.schema.models import (
    Directive,
    DirectiveKind,
    DirectiveSet,
    Intent,
    ResolvedSchema,
    SchemaNode,
)

logger = logging.getLogger(__name__)


def build_tree(raw: Any, path: PathAddress | None = None) -> SchemaNode:
    """Decompose a resolved schema into SchemaNodes.

    ``properties`` become named children and ``items`` becomes an array-marker
    child, so a node below an array is addressed ``commands[].c1``.
    """
    path = PathAddress.root() if path is None else path
    if not isinstance(raw, dict):
        return SchemaNode(path=path)

    directives: dict[DirectiveKind, Any] = {}
    for key, value in raw.items():
        if not isinstance(key, str) or not key.startswith("x-"):
            continue
        kind = DirectiveKind.from_key(key)
        if kind is None:
            logger.debug("ignoring unknown extension %s at %s", key, path or "<root>")
            continue
        directives[kind] = value

    properties: list[tuple[str, SchemaNode]] = []
    props = raw.get("properties")
    if isinstance(props, dict):
        for name, sub in props.items():
            properties.append((str(name), build_tree(sub, path.child(str(name)))))

    items = raw.get("items")
    items_node = build_tree(items, path.marker()) if isinstance(items, dict) else None

    node_type = raw.get("type")
    if isinstance(node_type, list):
        node_type = "|".join(str(t) for t in node_type)

    return SchemaNode(
        path=path,
        type=node_type,
        directives=directives,
        properties=tuple(properties),
        items=items_node,
    )


def extract_directives(schema: ResolvedSchema | SchemaNode | dict) -> list[Directive]:
    """Collect every known directive in pre-order.

    Within one node directives follow ``DirectiveKind`` declaration order.
    Values are not validated here.
    """
    if isinstance(schema, ResolvedSchema):
        tree = build_tree(schema.root)
    elif isinstance(schema, SchemaNode):
        tree = schema
    else:
        tree = build_tree(schema)

    found: list[Directive] = []
    for node in tree.walk():
        for kind in DirectiveKind:
            if kind in node.directives:
                found.append(Directive(kind=kind, path=node.path, value=node.directives[kind]))
    return found


def classify(directives: Iterable[Directive]) -> DirectiveSet:
    """Partition directives by intent and locate the per-document item path."""
    groups: dict[Intent, list[Directive]] = {intent: [] for intent in Intent}
    for directive in directives:
        groups[directive.intent].append(directive)

    item_path = None
    for directive in groups[Intent.extraction]:
        if directive.value is True and directive.path.has_marker:
            logger.warning("x-frontmatter-part below an array is not supported: %s", directive.path)
        elif directive.value is True:
            if item_path is None:
                item_path = directive.path
            else:
                logger.warning(
                    "multiple x-frontmatter-part targets; using %s, ignoring %s",
                    item_path, directive.path,
                )
        elif directive.value is not False:
            logger.warning("ignoring non-boolean x-frontmatter-part at %s", directive.path or "<root>")

    result = DirectiveSet(
        extraction=tuple(groups[Intent.extraction]),
        template=tuple(groups[Intent.template]),
        processing=tuple(groups[Intent.processing]),
        item_path=item_path,
    )
    logger.debug(
        "classified %d directives (extraction=%d template=%d processing=%d item_path=%s)",
        len(result), len(result.extraction), len(result.template), len(result.processing), item_path,
    )
    return result
