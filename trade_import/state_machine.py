"""
Trade Import - Pipeline State Machine.

============================================================
STATE MACHINE
============================================================

    IDLE
      │
      ▼
    READING ───────────────────────┐
      │                            │ (no rows)
      ▼                            ▼
    MAPPING ◄──────┐         PREVIEW_COMPLETE
      │            │         EXECUTE_COMPLETE
      ▼            │
    CLASSIFYING ───┤ (next row)
      │            │
      ▼            │
    PERSISTING ────┘ (execute only)
      │
      ▼
    EXECUTE_COMPLETE

    Any non-terminal state can transition to FAILED.

INVARIANTS:
- One machine per preview/execute call, never reused
- Terminal states are final
- All transitions are logged at debug level

============================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Set

from trade_import.errors import StateTransitionError


logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """Phase of one import pass."""
    IDLE = "idle"
    READING = "reading"
    MAPPING = "mapping"
    CLASSIFYING = "classifying"
    PERSISTING = "persisting"
    PREVIEW_COMPLETE = "preview_complete"
    EXECUTE_COMPLETE = "execute_complete"
    FAILED = "failed"


_COMPLETE = {PipelineState.PREVIEW_COMPLETE, PipelineState.EXECUTE_COMPLETE}

VALID_TRANSITIONS: Dict[PipelineState, Set[PipelineState]] = {
    PipelineState.IDLE: {PipelineState.READING, PipelineState.FAILED},
    PipelineState.READING: {PipelineState.MAPPING, PipelineState.FAILED} | _COMPLETE,
    PipelineState.MAPPING: {PipelineState.CLASSIFYING, PipelineState.FAILED},
    PipelineState.CLASSIFYING: {
        PipelineState.MAPPING,
        PipelineState.PERSISTING,
        PipelineState.FAILED,
    } | _COMPLETE,
    PipelineState.PERSISTING: {
        PipelineState.MAPPING,
        PipelineState.EXECUTE_COMPLETE,
        PipelineState.FAILED,
    },
    # Terminal states - no transitions out
    PipelineState.PREVIEW_COMPLETE: set(),
    PipelineState.EXECUTE_COMPLETE: set(),
    PipelineState.FAILED: set(),
}

TERMINAL_STATES = {s for s, targets in VALID_TRANSITIONS.items() if not targets}


@dataclass
class PipelineStateMachine:
    """Tracks the state of one import pass."""

    state: PipelineState = PipelineState.IDLE
    history: List[PipelineState] = field(default_factory=list)
    entered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def can_transition(self, to_state: PipelineState) -> bool:
        return to_state in VALID_TRANSITIONS[self.state]

    def transition(self, to_state: PipelineState) -> None:
        """
        Move to a new state.

        Raises:
            StateTransitionError: transition not allowed
        """
        if not self.can_transition(to_state):
            raise StateTransitionError(self.state.value, to_state.value)
        logger.debug(f"Pipeline state {self.state.value} -> {to_state.value}")
        self.history.append(self.state)
        self.state = to_state
        self.entered_at = datetime.now(timezone.utc)

    def fail(self) -> None:
        if not self.is_terminal:
            self.transition(PipelineState.FAILED)
