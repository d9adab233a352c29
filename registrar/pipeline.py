"""Run orchestration: extraction, processing, rendering and aggregation."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from registrar.aggregation.aggregator import Aggregator, Envelope
from registrar.aggregation.models import FinalResult
from registrar.config.models import RegistrarConfig
from registrar.errors import (
    ExtractError,
    ParseError,
    RunCancelledError,
    SchemaError,
    SerializationError,
)
from registrar.frontmatter.files import list_files, read_file
from registrar.frontmatter.parsers import parse_frontmatter
from registrar.frontmatter.reader import extract
from registrar.ir.nodes import IRNode, replace_at
from registrar.ir.path import PathAddress
from registrar.ir.scope import TemplateScope
from registrar.processing.engine import DataProcessingFacade
from registrar.schema.directives import classify, extract_directives
from registrar.schema.loader import load_schema_file
from registrar.schema.models import DirectiveSet, ResolvedSchema
from registrar.template.loader import TemplateDomainFacade
from registrar.template.models import TemplateBundle
from registrar.template.renderer import TemplateRenderer

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """State scoped to one run: the ``$ref`` cache, cancellation and timing."""

    ref_cache: dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        """Stop issuing new extraction work. Work already running finishes and is dropped."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


@dataclass(frozen=True)
class ExtractionOutcome:
    doc_id: str
    data: dict[str, Any] | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunResult:
    """FinalResult plus its serialized form; ``output`` is None when serialization failed."""

    result: FinalResult
    output: str | None = None
    error: SerializationError | None = None
    directives: DirectiveSet | None = None


# ---------------------------------------------------------------------------
# Extraction (bounded parallel)
# ---------------------------------------------------------------------------


def extract_document(path: Path, encoding: str = "utf-8") -> dict[str, Any]:
    """Read one file and parse its frontmatter. Raises ExtractError / ParseError."""
    try:
        text = read_file(path, encoding)
    except (OSError, UnicodeDecodeError) as e:
        raise ExtractError(f"cannot read {path}: {e}") from e
    return parse_frontmatter(extract(text))


def _doc_id(path: Path, root: Path | None) -> str:
    if root is not None:
        try:
            return path.resolve().relative_to(root.resolve()).as_posix()
        except ValueError:
            pass
    return path.as_posix()


async def extract_documents(
    paths: list[Path],
    context: RunContext,
    *,
    max_workers: int = 8,
    timeout: float = 10.0,
    encoding: str = "utf-8",
    root: Path | None = None,
) -> list[ExtractionOutcome]:
    """Extract frontmatter from *paths* with at most *max_workers* reads in flight.

    Results keep the input order. A document that fails or exceeds *timeout*
    yields an outcome carrying the error. After ``context.cancel()`` no new
    document is started and the run raises RunCancelledError.
    """
    semaphore = asyncio.Semaphore(max_workers)

    def _release(read: asyncio.Future) -> None:
        semaphore.release()
        # a read that outlived its timeout was already reported as a failure
        if not read.cancelled():
            read.exception()

    async def _one(path: Path) -> ExtractionOutcome | None:
        doc_id = _doc_id(path, root)
        await semaphore.acquire()
        if context.cancelled:
            semaphore.release()
            return None
        # the slot is held until the worker thread returns, even past a timeout
        read = asyncio.ensure_future(asyncio.to_thread(extract_document, path, encoding))
        read.add_done_callback(_release)
        done, _ = await asyncio.wait({read}, timeout=timeout)
        if not done:
            error = ExtractError(f"timed out after {timeout}s reading {doc_id}")
            logger.warning("%s", error)
            return ExtractionOutcome(doc_id, error=error)
        try:
            data = read.result()
        except (ExtractError, ParseError) as e:
            logger.warning("skipping %s: %s", doc_id, e)
            return ExtractionOutcome(doc_id, error=e)
        return ExtractionOutcome(doc_id, data=data)

    outcomes = await asyncio.gather(*(_one(p) for p in paths))
    if context.cancelled:
        raise RunCancelledError()
    return [o for o in outcomes if o is not None]


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class Pipeline:
    """One build: schema -> directives -> extraction -> processing -> artifact."""

    def __init__(self, config: RegistrarConfig | None = None, context: RunContext | None = None) -> None:
        self.config = config or RegistrarConfig()
        self.context = context or RunContext()
        self.renderer = TemplateRenderer(missing=self.config.template.missing)

    def load_schema(self, schema_path: str | Path | None = None) -> tuple[ResolvedSchema, DirectiveSet]:
        path = schema_path or self.config.schema_config.path
        if not path:
            raise SchemaError("No schema given (pass a schema path or set schema.path)")
        schema = load_schema_file(path, self.context, max_depth=self.config.schema_config.max_ref_depth)
        return schema, classify(extract_directives(schema))

    def discover(self) -> list[Path]:
        sources = self.config.sources
        return list_files(sources.patterns, sources.root)

    async def run(
        self,
        schema_path: str | Path | None = None,
        paths: list[Path] | None = None,
    ) -> RunResult:
        schema, directives = self.load_schema(schema_path)
        bundle = TemplateDomainFacade().load_templates(schema, directives.template)
        output_format = self.config.output.format or bundle.output_format

        sources = self.config.sources
        paths = self.discover() if paths is None else [Path(p) for p in paths]
        logger.info("extracting frontmatter from %d documents", len(paths))
        outcomes = await extract_documents(
            paths,
            self.context,
            max_workers=sources.max_workers,
            timeout=sources.timeout,
            encoding=sources.encoding,
            root=Path(sources.root),
        )

        facade = DataProcessingFacade()
        facade.initialize({o.doc_id: o.data for o in outcomes if o.ok})
        facade.set_directives(directives)
        collection = facade.process()

        aggregator = Aggregator()
        aggregator.initialize(len(outcomes), output_format)
        for outcome in outcomes:
            if not outcome.ok:
                aggregator.record_failure(outcome.doc_id, outcome.error)
        for failure in facade.failures:
            aggregator.record_failure(failure.doc_id, failure)
        for failure in facade.directive_failures:
            aggregator.record_directive_error(failure)

        scope = TemplateScope.at_root(collection)
        for doc_id, doc_path in facade.documents():
            element = facade.node(doc_path)
            aggregator.integrate(doc_id, self.renderer.render_item(bundle.items_template, scope, element))

        envelope = self._envelope(bundle, collection, facade.item_path, scope, output_format)
        result = aggregator.finalize(envelope)

        try:
            output = aggregator.serialize(indent=self.config.output.indent)
        except SerializationError as e:
            logger.error("serialization failed: %s", e)
            return RunResult(result=result, error=e, directives=directives)
        return RunResult(result=result, output=output, directives=directives)

    def _envelope(
        self,
        bundle: TemplateBundle,
        collection: IRNode,
        item_path: PathAddress | None,
        scope: TemplateScope,
        output_format: str,
    ) -> Envelope | None:
        """How integrated items become the artifact.

        The main template renders with ``{@items}`` bound to the items.
        Without one, the collection data is emitted with the item array
        replaced by the rendered items.
        """
        main = bundle.main_template
        if main is not None:
            return lambda items: self.renderer.render(main, scope, items)
        if item_path is None or output_format == "markdown":
            return None

        def _wrap(items: list[Any]) -> Any:
            return replace_at(collection, item_path, items).to_data()

        return _wrap


def build(
    config: RegistrarConfig | None = None,
    schema_path: str | Path | None = None,
    paths: list[Path] | None = None,
    context: RunContext | None = None,
) -> RunResult:
    """Synchronous entry point around ``Pipeline.run``."""
    return asyncio.run(Pipeline(config, context).run(schema_path, paths))

