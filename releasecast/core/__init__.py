"""Releasecast core: tag derivation, task graph, bounded scheduling, orchestration."""

from releasecast.core.aggregator import FailureAggregator
from releasecast.core.orchestrator import Orchestrator
from releasecast.core.scheduler import BatchOutcome, BoundedScheduler, ConcurrencyBudget

__all__ = [
    "BatchOutcome",
    "BoundedScheduler",
    "ConcurrencyBudget",
    "FailureAggregator",
    "Orchestrator",
]
