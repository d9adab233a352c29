"""Pydantic models for aggregation results."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AggregatorState(str, Enum):
    uninitialized = "uninitialized"
    collecting = "collecting"
    finalized = "finalized"


class FailureRecord(BaseModel):
    """A document that did not make it into the artifact."""

    doc_id: str
    kind: str | None = None
    message: str


class DirectiveErrorRecord(BaseModel):
    """An aggregate directive that failed; only its field is affected."""

    path: str
    kind: str
    message: str


class RunStatistics(BaseModel):
    total: int = Field(default=0, ge=0)
    processed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    duration_seconds: float = Field(default=0.0, ge=0.0)
    unique_value_counts: dict[str, int] = Field(default_factory=dict)
    null_counts: dict[str, int] = Field(default_factory=dict)


class FinalResult(BaseModel):
    """Everything a run produced; stays valid even if serialization fails."""

    artifact: Any = None
    statistics: RunStatistics = Field(default_factory=RunStatistics)
    failures: list[FailureRecord] = Field(default_factory=list)
    directive_errors: list[DirectiveErrorRecord] = Field(default_factory=list)
    output_format: str = "json"
