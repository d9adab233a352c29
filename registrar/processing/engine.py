"""Directive Processing Engine: per-document phase, barrier, then collection phase."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from registrar.errors import (
    InvalidDirectiveError,
    PathNotFoundError,
    ProcessingError,
)
from registrar.ir.nodes import IRBuilder, IRNode, IRObject, replace_at, resolve, update_at
from registrar.ir.path import ARRAY_MARKER, ArrayMarker, PathAddress, PathSyntaxError
from registrar.processing.handlers import apply_filter, derive_values, flatten_node, unique_node
from registrar.processing.models import (
    DirectiveFailure,
    DocumentFailure,
    DocumentState,
    ProcessedDocument,
)
from registrar.schema.models import Directive, DirectiveKind, DirectiveSet, Timing

logger = logging.getLogger(__name__)

_EACH = PathAddress((ARRAY_MARKER,))


def _parse_path(directive: Directive, text: str) -> PathAddress:
    try:
        return PathAddress.parse(text)
    except PathSyntaxError as e:
        raise InvalidDirectiveError(directive.kind.value, str(directive.path), text, f"a valid path ({e})") from e


class DirectiveProcessor:
    """Applies processing directives in timing order.

    Individual-timing directives (flatten, jmespath) run on one document's IR.
    Aggregate-timing directives (derived-from, derived-unique) run once on the
    collection IR after every document finished its individual phase.
    Declaration order is kept inside each group.
    """

    def __init__(self, directives: Iterable[Directive], item_path: PathAddress | None = None) -> None:
        self.item_path = item_path
        self.individual: list[tuple[Directive, PathAddress]] = []
        self.aggregate: list[Directive] = []

        for directive in directives:
            if directive.timing is Timing.individual:
                local = self._document_path(directive.path)
                if local is None:
                    logger.warning(
                        "%s at %s is outside the per-document data under %s; skipped",
                        directive.kind.value, directive.path or "<root>", item_path,
                    )
                    continue
                self.individual.append((directive, local))
            elif directive.timing is Timing.aggregate:
                self.aggregate.append(directive)

    def _document_path(self, path: PathAddress) -> PathAddress | None:
        """Schema path -> path inside one document, or None when not per-document."""
        if self.item_path is None:
            return path
        prefix = self.item_path.marker()
        if path.startswith(prefix):
            return path.relative_to(prefix)
        return None

    # -- individual phase --------------------------------------------------

    def process_document(self, node: IRNode) -> IRNode:
        """Run the individual-timing directives on one document. Raises ProcessingError."""
        for directive, local in self.individual:
            node = self._apply_individual(node, directive, local)
        return node

    def _apply_individual(self, node: IRNode, directive: Directive, local: PathAddress) -> IRNode:
        value = directive.validate()
        kind = directive.kind.value
        if directive.kind is DirectiveKind.flatten_arrays:
            target = local if value is True else local.join(_parse_path(directive, value))
            fn = flatten_node
        else:
            target = local

            def fn(current: IRNode | None) -> IRNode | None:
                return apply_filter(current, value, kind, str(directive.path))

        try:
            return update_at(node, target, fn)
        except PathNotFoundError:
            logger.debug("%s target %s missing; no-op", kind, target or "<root>")
            return node

    # -- aggregate phase ---------------------------------------------------

    def build_collection(self, documents: list[IRNode]) -> IRNode:
        """Place processed documents at the item path (or a bare array without one)."""
        root = PathAddress.root()
        if self.item_path is None:
            return IRBuilder.array(root, documents)
        docs = IRBuilder.array(self.item_path, documents)
        return update_at(IRObject(root), self.item_path, lambda _: docs, create=True)

    def process_collection(self, collection: IRNode) -> tuple[IRNode, list[DirectiveFailure]]:
        """Run the aggregate-timing directives; a failing directive only affects its field."""
        failures: list[DirectiveFailure] = []
        for directive in self.aggregate:
            try:
                collection = self._apply_aggregate(collection, directive)
            except ProcessingError as e:
                logger.warning("%s", e)
                failures.append(DirectiveFailure.from_error(directive, e))
        return collection, failures

    def _apply_aggregate(self, collection: IRNode, directive: Directive) -> IRNode:
        value = directive.validate()
        target = self._collection_target(directive)

        if directive.kind is DirectiveKind.derived_from:
            source = _parse_path(directive, value)
            if self.item_path is None and not (source.segments and isinstance(source.segments[0], ArrayMarker)):
                source = _EACH.join(source)
            values = derive_values(collection, source)
            logger.debug("derived %d values for %s from %s", len(values), directive.path, value)
            return replace_at(collection, target, values, create=True)

        if value is False:
            return collection
        try:
            return update_at(collection, target, unique_node)
        except PathNotFoundError:
            logger.debug("x-derived-unique target %s missing; no-op", directive.path)
            return collection

    def _collection_target(self, directive: Directive) -> PathAddress:
        path = directive.path
        if self.item_path is None:
            if path.is_root:
                raise InvalidDirectiveError(
                    directive.kind.value, str(path), directive.value, "a target below the document root"
                )
            return _EACH.join(path)
        if self.item_path.startswith(path):
            raise InvalidDirectiveError(
                directive.kind.value, str(path), directive.value,
                f"a target that is not {self.item_path} or one of its parents",
            )
        return path


class DataProcessingFacade:
    """Path-keyed access to processed document data.

    Callers hand in extracted data and directives, then read results only
    through ``call_method`` / ``node``. Processing runs lazily on first access
    and is cached until the inputs change.
    """

    def __init__(self) -> None:
        self._documents: dict[str, ProcessedDocument] = {}
        self._processor = DirectiveProcessor(())
        self._collection: IRNode | None = None
        self._failures: list[DocumentFailure] = []
        self._directive_failures: list[DirectiveFailure] = []

    def initialize(self, extracted: Mapping[str, Any]) -> None:
        """Register each document's extracted data under its id, in order."""
        documents: dict[str, ProcessedDocument] = {}
        for doc_id, data in extracted.items():
            doc = ProcessedDocument(doc_id)
            doc.initialize(data)
            documents[doc_id] = doc
        self._documents = documents
        self._reset()
        logger.debug("initialized %d documents", len(documents))

    def set_directives(
        self,
        directives: DirectiveSet | Iterable[Directive],
        item_path: PathAddress | None = None,
    ) -> None:
        if isinstance(directives, DirectiveSet):
            item_path = directives.item_path
            directives = directives.processing
        self._processor = DirectiveProcessor(directives, item_path)
        self._reset()

    def _reset(self) -> None:
        self._collection = None
        self._failures = []
        self._directive_failures = []

    @property
    def item_path(self) -> PathAddress | None:
        return self._processor.item_path

    # -- processing --------------------------------------------------------

    def process(self) -> IRNode:
        """Run both phases once and return the collection IR."""
        if self._collection is not None:
            return self._collection

        processed: list[IRNode] = []
        for doc_id, doc in list(self._documents.items()):
            if doc.state is not DocumentState.initialized:
                # leftover from an earlier run; start over from the raw data
                fresh = ProcessedDocument(doc_id)
                fresh.initialize(doc.raw)
                doc = self._documents[doc_id] = fresh
            node = doc.begin()
            try:
                doc.update(self._processor.process_document(node))
            except ProcessingError as e:
                logger.warning("document %s failed: %s", doc.doc_id, e)
                doc.fail(e)
                self._failures.append(DocumentFailure.from_error(doc.doc_id, e))
                continue
            processed.append(doc.complete())

        # barrier: every document has left the individual phase
        collection = self._processor.build_collection(processed)
        collection, self._directive_failures = self._processor.process_collection(collection)
        self._collection = collection
        logger.info(
            "processed %d documents (%d failed, %d directive errors)",
            len(processed), len(self._failures), len(self._directive_failures),
        )
        return collection

    def call_method(self, schema_path: PathAddress | str = "") -> Any:
        """Plain data at *schema_path* in the processed collection."""
        return self.node(schema_path).to_data()

    def node(self, schema_path: PathAddress | str = "") -> IRNode:
        return resolve(self.process(), schema_path)

    def documents(self) -> Iterator[tuple[str, PathAddress]]:
        """``(doc_id, path)`` for every processed document, in input order."""
        self.process()
        base = self.item_path if self.item_path is not None else PathAddress.root()
        processed = [doc for doc in self._documents.values() if doc.is_processed]
        for index, doc in enumerate(processed):
            yield doc.doc_id, base.index(index)

    @property
    def failures(self) -> list[DocumentFailure]:
        self.process()
        return list(self._failures)

    @property
    def directive_failures(self) -> list[DirectiveFailure]:
        self.process()
        return list(self._directive_failures)
