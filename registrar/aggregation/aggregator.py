"""Aggregator: folds per-document results into one artifact with statistics."""

from __future__ import annotations

import json
import logging
import time
from collections import defaultdict
from datetime import date, datetime
from typing import Any, Callable

import yaml

from registrar.aggregation.models import (
    AggregatorState,
    DirectiveErrorRecord,
    FailureRecord,
    FinalResult,
    RunStatistics,
)
from registrar.errors import (
    AggregationStateError,
    SerializationCircularReferenceError,
    SerializationError,
    UnsupportedFormatError,
)
from registrar.processing.models import DirectiveFailure, DocumentFailure
from registrar.template.renderer import to_text

logger = logging.getLogger(__name__)

SERIALIZABLE_FORMATS = ("json", "yaml", "markdown")

Envelope = Callable[[list[Any]], Any]


def _value_key(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def _json_default(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _check_acyclic(value: Any, active: set[int] | None = None) -> None:
    """Raise SerializationCircularReferenceError if a container contains itself."""
    if not isinstance(value, (dict, list, tuple)):
        return
    active = set() if active is None else active
    marker = id(value)
    if marker in active:
        raise SerializationCircularReferenceError()
    active.add(marker)
    children = value.values() if isinstance(value, dict) else value
    for child in children:
        _check_acyclic(child, active)
    active.discard(marker)


class Aggregator:
    """Collects rendered items and failures, then produces a FinalResult.

    Lifecycle: UNINITIALIZED -> COLLECTING (``initialize``) -> FINALIZED
    (``finalize``). Calls outside their state raise AggregationStateError.
    """

    def __init__(self) -> None:
        self.state = AggregatorState.uninitialized
        self.total = 0
        self.output_format = "json"
        self._items: list[tuple[str, Any]] = []
        self._failures: list[FailureRecord] = []
        self._directive_errors: list[DirectiveErrorRecord] = []
        self._unique_values: dict[str, set[str]] = defaultdict(set)
        self._null_counts: dict[str, int] = defaultdict(int)
        self._started = 0.0
        self._result: FinalResult | None = None

    def _require(self, action: str, state: AggregatorState) -> None:
        if self.state is not state:
            raise AggregationStateError(self.state.value, action)

    # -- lifecycle ---------------------------------------------------------

    def initialize(self, total: int, output_format: str = "json") -> None:
        self._require("initialize", AggregatorState.uninitialized)
        self.total = total
        self.output_format = output_format
        self._started = time.monotonic()
        self.state = AggregatorState.collecting
        logger.debug("aggregator collecting %d documents as %s", total, output_format)

    def integrate(self, doc_id: str, rendered: Any) -> None:
        self._require("integrate", AggregatorState.collecting)
        self._items.append((doc_id, rendered))
        if isinstance(rendered, dict):
            for field, value in rendered.items():
                if value is None:
                    self._null_counts[field] += 1
                else:
                    self._unique_values[field].add(_value_key(value))

    def record_failure(self, doc_id: str, error: Exception | DocumentFailure | str) -> None:
        self._require("record failure", AggregatorState.collecting)
        if isinstance(error, DocumentFailure):
            record = FailureRecord(doc_id=doc_id, kind=error.kind, message=error.message)
        elif isinstance(error, Exception):
            record = FailureRecord(doc_id=doc_id, kind=getattr(error, "kind", None), message=str(error))
        else:
            record = FailureRecord(doc_id=doc_id, message=str(error))
        self._failures.append(record)
        logger.debug("recorded failure for %s: %s", doc_id, record.message)

    def record_directive_error(self, failure: DirectiveFailure) -> None:
        self._require("record directive error", AggregatorState.collecting)
        self._directive_errors.append(
            DirectiveErrorRecord(path=failure.path, kind=failure.kind, message=failure.message)
        )

    def finalize(self, envelope: Envelope | None = None) -> FinalResult:
        """Close collection and build the artifact.

        *envelope* receives the integrated items in order and returns the
        artifact. Without one the artifact is the item list, or the items
        joined by newlines for markdown output.
        """
        self._require("finalize", AggregatorState.collecting)
        items = [rendered for _, rendered in self._items]
        if envelope is not None:
            artifact = envelope(items)
        elif self.output_format == "markdown":
            artifact = "\n".join(to_text(item) for item in items)
        else:
            artifact = items

        processed = len(self._items)
        failed = len(self._failures)
        total = max(self.total, processed + failed)
        stats = RunStatistics(
            total=total,
            processed=processed,
            failed=failed,
            success_rate=processed / total if total else 0.0,
            duration_seconds=time.monotonic() - self._started,
            unique_value_counts={k: len(v) for k, v in self._unique_values.items()},
            null_counts=dict(self._null_counts),
        )
        self._result = FinalResult(
            artifact=artifact,
            statistics=stats,
            failures=list(self._failures),
            directive_errors=list(self._directive_errors),
            output_format=self.output_format,
        )
        self.state = AggregatorState.finalized
        logger.info("aggregated %d/%d documents (%d failed)", processed, total, failed)
        return self._result

    @property
    def result(self) -> FinalResult:
        self._require("read result", AggregatorState.finalized)
        return self._result

    # -- serialization -----------------------------------------------------

    def serialize(self, indent: int = 2) -> str:
        """Render the artifact in the configured output format."""
        self._require("serialize", AggregatorState.finalized)
        return serialize_artifact(self._result.artifact, self.output_format, indent=indent)


def serialize_artifact(artifact: Any, fmt: str, *, indent: int = 2) -> str:
    if fmt not in SERIALIZABLE_FORMATS:
        raise UnsupportedFormatError(fmt)
    if fmt == "markdown":
        if not isinstance(artifact, str):
            raise UnsupportedFormatError(fmt, "artifact is not text; use a text main template")
        return artifact

    _check_acyclic(artifact)
    try:
        if fmt == "json":
            return json.dumps(artifact, indent=indent, ensure_ascii=False, default=_json_default) + "\n"
        return yaml.safe_dump(artifact, default_flow_style=False, sort_keys=False, allow_unicode=True, indent=indent)
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise SerializationError(f"Cannot serialize artifact as {fmt}: {e}") from e
