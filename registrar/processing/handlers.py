"""Transformations behind the data directives.

Each handler takes IR and returns new IR; nothing is modified in place.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import jmespath
from jmespath.exceptions import JMESPathError, JMESPathTypeError

from registrar.errors import InvalidDirectiveError, TransformationFailedError
from registrar.ir.nodes import IRArray, IRBuilder, IRNode, find
from registrar.ir.path import PathAddress

logger = logging.getLogger(__name__)

_DESCENT_RE = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)(.*)", re.S)


# ---------------------------------------------------------------------------
# x-flatten-arrays
# ---------------------------------------------------------------------------


def flatten_node(node: IRNode | None) -> IRNode | None:
    """Concatenate nested arrays into one flat array, any depth. Non-arrays pass through."""
    if not isinstance(node, IRArray):
        return node
    flat: list[IRNode] = []
    _flatten_into(node, flat)
    return IRBuilder.array(node.path, flat)


def _flatten_into(node: IRArray, out: list[IRNode]) -> None:
    for item in node.items:
        if isinstance(item, IRArray):
            _flatten_into(item, out)
        else:
            out.append(item)


# ---------------------------------------------------------------------------
# x-jmespath-filter
# ---------------------------------------------------------------------------


def _descent_split(expression: str) -> int:
    """Index of the first ``..`` outside a quoted string or literal, or -1."""
    quote = None
    i = 0
    while i < len(expression) - 1:
        char = expression[i]
        if quote:
            if char == "\\":
                i += 1
            elif char == quote:
                quote = None
        elif char in "'\"`":
            quote = char
        elif expression.startswith("..", i):
            return i
        i += 1
    return -1


def search(expression: str, data: Any) -> Any:
    """``jmespath.search`` plus ``..name`` recursive descent.

    ``a..name`` evaluates ``a`` (or the whole input when empty), then collects
    every value stored under ``name`` at any depth. What follows the name is
    applied to the collected list when it starts with ``[`` or ``..`` and to
    each collected value when it starts with ``.``.
    """
    split = _descent_split(expression)
    if split < 0:
        return jmespath.search(expression, data)
    head, tail = expression[:split], expression[split + 2:]

    base = jmespath.search(head, data) if head.strip() else data
    match = _DESCENT_RE.fullmatch(tail)
    if match is None:
        raise ValueError(f"expected a field name after '..' in {expression!r}")
    name, rest = match.group(1), match.group(2).strip()

    found = list(_descend(base, name))
    if not rest:
        return found
    if rest.startswith("["):
        return jmespath.search("@" + rest, found)
    if rest.startswith(".."):
        return search(rest, found)
    if rest.startswith("."):
        mapped = (search(rest[1:], value) for value in found)
        return [value for value in mapped if value is not None]
    raise ValueError(f"unexpected {rest!r} after '..{name}'")


def _descend(value: Any, name: str):
    if isinstance(value, dict):
        if name in value:
            yield value[name]
        for child in value.values():
            yield from _descend(child, name)
    elif isinstance(value, list):
        for child in value:
            yield from _descend(child, name)


def apply_filter(node: IRNode | None, expression: str, kind: str, path: str) -> IRNode | None:
    """Replace *node* with the result of *expression* evaluated on its data."""
    if node is None:
        return None
    try:
        result = search(expression, node.to_data())
    except JMESPathTypeError as e:
        raise TransformationFailedError(kind, path, str(e)) from e
    except (JMESPathError, ValueError) as e:
        raise InvalidDirectiveError(kind, path, expression, f"a valid JMESPath expression ({e})") from e
    return IRBuilder.from_data(result, node.path)


# ---------------------------------------------------------------------------
# x-derived-from / x-derived-unique
# ---------------------------------------------------------------------------


def derive_values(collection: IRNode, source: PathAddress) -> list[Any]:
    """Collect what *source* resolves to across the collection, one level flattened."""
    found = find(collection, source)
    if found is None:
        logger.debug("derived-from source %s matched nothing", source)
        return []
    if not isinstance(found, IRArray):
        return [found.to_data()]
    values: list[Any] = []
    for item in found.items:
        if isinstance(item, IRArray):
            values.extend(child.to_data() for child in item.items)
        else:
            values.append(item.to_data())
    return values


def _identity_key(value: Any) -> tuple:
    """Structural key; values of different types never share one."""
    if isinstance(value, dict):
        entries = sorted((_identity_key(k), _identity_key(v)) for k, v in value.items())
        return ("object", tuple(entries))
    if isinstance(value, list):
        return ("array", tuple(_identity_key(v) for v in value))
    return (type(value).__name__, value)


def unique_node(node: IRNode | None) -> IRNode | None:
    """Drop structurally equal repeats from an array, keeping first-seen order."""
    if not isinstance(node, IRArray):
        return node
    seen: set[tuple] = set()
    kept: list[IRNode] = []
    for item in node.items:
        key = _identity_key(item.to_data())
        if key in seen:
            continue
        seen.add(key)
        kept.append(item)
    if len(kept) == len(node.items):
        return node
    return IRBuilder.array(node.path, kept)
