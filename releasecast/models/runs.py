"""Orchestrator run state machine models.

The run lifecycle is linear and non-cyclic::

    IDLE -> DERIVING_TAGS -> RUNNING_PHASE1 -> PHASE1_FAILED
                                            -> AGGREGATING_KEYS -> RUNNING_PHASE2 -> PHASE2_FAILED
                                                                                 -> SUCCEEDED
                                            -> SUCCEEDED  (single-phase runs)
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RunState(str, Enum):
    """Strict state model for one orchestrator run."""

    IDLE = "idle"
    DERIVING_TAGS = "deriving_tags"
    INPUT_FAILED = "input_failed"
    RUNNING_PHASE1 = "running_phase1"
    PHASE1_FAILED = "phase1_failed"
    AGGREGATING_KEYS = "aggregating_keys"
    RUNNING_PHASE2 = "running_phase2"
    PHASE2_FAILED = "phase2_failed"
    SUCCEEDED = "succeeded"


# Valid state transitions: enforced structurally by RunStateMachine.
# Terminal states have no outgoing transitions.
VALID_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.IDLE: {RunState.DERIVING_TAGS},
    RunState.DERIVING_TAGS: {RunState.RUNNING_PHASE1, RunState.INPUT_FAILED},
    RunState.RUNNING_PHASE1: {
        RunState.PHASE1_FAILED,
        RunState.AGGREGATING_KEYS,
        RunState.SUCCEEDED,
    },
    RunState.AGGREGATING_KEYS: {RunState.RUNNING_PHASE2},
    RunState.RUNNING_PHASE2: {RunState.PHASE2_FAILED, RunState.SUCCEEDED},
    RunState.INPUT_FAILED: set(),  # terminal
    RunState.PHASE1_FAILED: set(),  # terminal
    RunState.PHASE2_FAILED: set(),  # terminal
    RunState.SUCCEEDED: set(),  # terminal
}

TERMINAL_STATES: frozenset[RunState] = frozenset(
    state for state, targets in VALID_TRANSITIONS.items() if not targets
)


class RunTransition(BaseModel):
    """Records a single run state transition."""

    model_config = ConfigDict(frozen=True)

    from_state: RunState
    to_state: RunState
    reason: str | None = None
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RunReport(BaseModel):
    """Outcome of one orchestrator run.

    ``outputs`` maps task ids to the output each action returned and is
    only populated for batches that completed without failure; outputs
    of tasks that finished after a sibling failed are discarded.
    ``published`` lists the task ids of phases that fully succeeded, so
    operators can see what stayed live after a later failure.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"rc-{uuid.uuid4().hex[:12]}")
    state: RunState = RunState.IDLE
    outputs: dict[str, str] = Field(default_factory=dict)
    published: list[str] = Field(default_factory=list)
    history: list[RunTransition] = Field(default_factory=list)
    error: str | None = None
    failed_task: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == RunState.SUCCEEDED
