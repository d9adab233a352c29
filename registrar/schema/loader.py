"""Schema loading with ``$ref`` resolution."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from registrar.errors import (
    CircularReferenceError,
    MaxDepthExceededError,
    RefResolutionError,
    SchemaError,
)
from registrar.schema.models import ResolvedSchema

if TYPE_CHECKING:
    from registrar.pipeline import RunContext

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100


def load_schema(
    raw: Any,
    base_path: str | Path | None = None,
    context: RunContext | None = None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    source: str = "<root>",
) -> ResolvedSchema:
    """Inline every ``$ref`` in *raw* and return the resolved schema.

    *base_path* is the directory external file references are resolved
    against. Resolved references are memoized in ``context.ref_cache`` so a
    target used from several places is only resolved once per run.
    """
    base = Path(base_path) if base_path is not None else Path.cwd()
    cache = context.ref_cache if context is not None else {}
    resolver = _RefResolver(cache=cache, max_depth=max_depth)
    root = resolver.resolve_document(raw, _Document(source, base, raw))
    logger.debug("resolved schema (%d refs cached)", len(cache))
    return ResolvedSchema(root=root, base_path=base)


def load_schema_file(
    path: str | Path,
    context: RunContext | None = None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> ResolvedSchema:
    """Read a JSON or YAML schema from disk and resolve it."""
    path = Path(path)
    if not path.is_file():
        raise SchemaError(f"Schema file not found: {path}")
    try:
        raw = _parse_document(path)
    except (ValueError, yaml.YAMLError) as e:
        raise SchemaError(f"Invalid schema in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise SchemaError(f"Schema root in {path} must be an object")
    logger.info("loading schema %s", path)
    return load_schema(raw, path.parent, context, max_depth=max_depth, source=str(path.resolve()))


def _parse_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        return json.loads(text)
    # YAML is a superset of JSON, so anything else goes through it
    return yaml.safe_load(text)


def _unescape(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


class _Document:
    """A parsed schema document that local pointers are evaluated against."""

    def __init__(self, name: str, base: Path, root: Any) -> None:
        self.name = name
        self.base = base
        self.root = root


class _RefResolver:
    def __init__(self, cache: dict[str, Any], max_depth: int) -> None:
        self.cache = cache
        self.max_depth = max_depth
        self._documents: dict[Path, _Document] = {}

    def resolve_document(self, raw: Any, doc: _Document) -> Any:
        return self._resolve(raw, doc, 0, ())

    # -- recursion ---------------------------------------------------------

    def _resolve(self, node: Any, doc: _Document, depth: int, resolving: tuple[str, ...]) -> Any:
        if depth > self.max_depth:
            raise MaxDepthExceededError(self.max_depth, resolving[-1] if resolving else None)

        if isinstance(node, dict):
            if "$ref" in node:
                return self._resolve_ref(node, doc, depth, resolving)
            return {k: self._resolve(v, doc, depth + 1, resolving) for k, v in node.items()}
        if isinstance(node, list):
            return [self._resolve(v, doc, depth + 1, resolving) for v in node]
        return node

    def _resolve_ref(self, node: dict, doc: _Document, depth: int, resolving: tuple[str, ...]) -> Any:
        ref = node["$ref"]
        if not isinstance(ref, str):
            raise RefResolutionError(ref, "$ref must be a string")

        target_doc, pointer = self._locate(ref, doc)
        key = f"{target_doc.name}#{pointer}"
        if key in resolving:
            raise CircularReferenceError(ref, resolving)

        if key in self.cache:
            resolved = self.cache[key]
        else:
            target = self._evaluate_pointer(target_doc.root, pointer, ref)
            resolved = self._resolve(target, target_doc, depth + 1, (*resolving, key))
            self.cache[key] = resolved

        siblings = {k: v for k, v in node.items() if k != "$ref"}
        if not siblings:
            return resolved
        overlay = {k: self._resolve(v, doc, depth + 1, resolving) for k, v in siblings.items()}
        if not isinstance(resolved, dict):
            logger.warning("ignoring keys %s next to $ref %s (target is not an object)", sorted(siblings), ref)
            return resolved
        return {**resolved, **overlay}

    # -- lookup ------------------------------------------------------------

    def _locate(self, ref: str, doc: _Document) -> tuple[_Document, str]:
        """Split *ref* into (document, json pointer)."""
        file_part, _, pointer = ref.partition("#")
        if not file_part:
            return doc, pointer

        path = (doc.base / file_part).resolve()
        if path not in self._documents:
            if not path.is_file():
                raise RefResolutionError(ref, f"file not found: {path}")
            try:
                raw = _parse_document(path)
            except (ValueError, yaml.YAMLError) as e:
                raise RefResolutionError(ref, f"cannot parse {path}: {e}") from e
            self._documents[path] = _Document(str(path), path.parent, raw)
            logger.debug("loaded external schema %s", path)
        return self._documents[path], pointer

    @staticmethod
    def _evaluate_pointer(root: Any, pointer: str, ref: str) -> Any:
        if pointer in ("", "/"):
            return root
        if not pointer.startswith("/"):
            raise RefResolutionError(ref, "only JSON pointers are supported after '#'")

        current = root
        for token in (_unescape(t) for t in pointer[1:].split("/")):
            if isinstance(current, dict) and token in current:
                current = current[token]
            elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
                current = current[int(token)]
            else:
                raise RefResolutionError(ref, f"pointer segment {token!r} not found")
        return current
