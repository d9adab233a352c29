"""Aggregation subsystem: statistics and the final artifact."""

from registrar.aggregation.aggregator import Aggregator, serialize_artifact
from registrar.aggregation.models import (
    AggregatorState,
    DirectiveErrorRecord,
    FailureRecord,
    FinalResult,
    RunStatistics,
)

__all__ = [
    "Aggregator",
    "AggregatorState",
    "DirectiveErrorRecord",
    "FailureRecord",
    "FinalResult",
    "RunStatistics",
    "serialize_artifact",
]
