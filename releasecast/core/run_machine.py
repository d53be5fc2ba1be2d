"""Deterministic run state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Terminal states are final
- Every transition recorded in the run history
"""

from __future__ import annotations

import logging

from releasecast.core.errors import InvalidTransitionError
from releasecast.models.runs import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    RunState,
    RunTransition,
)

logger = logging.getLogger(__name__)


class RunStateMachine:
    """Tracks one orchestrator run through its linear lifecycle.

    Parameters
    ----------
    run_id:
        Identifier used in log messages.
    """

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self._state = RunState.IDLE
        self._history: list[RunTransition] = []

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def history(self) -> list[RunTransition]:
        return list(self._history)

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def transition(self, target_state: RunState, reason: str | None = None) -> RunTransition:
        """Move to *target_state*, recording the transition.

        Raises
        ------
        InvalidTransitionError
            If the transition is not allowed from the current state.
        """
        current = self._state
        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition run {self.run_id} from {current.value} to "
                f"{target_state.value}. Allowed: {sorted(s.value for s in allowed)}"
            )

        record = RunTransition(from_state=current, to_state=target_state, reason=reason)
        self._history.append(record)
        self._state = target_state
        logger.debug(
            "Run %s: %s -> %s%s",
            self.run_id,
            current.value,
            target_state.value,
            f" ({reason})" if reason else "",
        )
        return record
