"""
TurnSession schema — transient state of one autonomous turn.

A session exists from "turn started" until the orchestrator hands the
turn back to the engine. It is owned by the orchestrator alone and is
discarded on Ending; nothing here is persisted.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from .decision import DecisionOutcome
from .participant import PurchaseCandidate


MAX_ROLLS = 3


class TurnPhase(str, Enum):
    """Phase state machine for a single CPU turn."""
    IDLE = "idle"                            # No turn in progress
    ROLL_PENDING = "roll_pending"            # Next roll scheduled or in flight
    AWAITING_DECISION = "awaiting_decision"  # Dice settled, provider consulted
    PURCHASING = "purchasing"                # Walking the purchase queue
    ENDING = "ending"                        # End-turn scheduled


class TurnSession(BaseModel):
    """
    One participant's in-progress turn.

    pending and watchdog hold opaque timer handles; they are runtime-only
    and excluded from serialization.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str = Field(default_factory=lambda: str(uuid4())[:8])
    participant_id: str
    phase: TurnPhase = TurnPhase.IDLE
    roll_number: int = 1
    rolls_remaining: int = 0
    roll_invocations: int = 0
    purchase_queue: list[PurchaseCandidate] = Field(default_factory=list)
    purchase_cursor: int = 0
    queue_built: bool = False

    decisions: list[DecisionOutcome] = Field(default_factory=list)
    purchases: list[str] = Field(default_factory=list)
    end_reason: str = ""
    started_at: datetime = Field(default_factory=datetime.now)

    pending: Any = Field(default=None, exclude=True)
    watchdog: Any = Field(default=None, exclude=True)

    @property
    def is_active(self) -> bool:
        return self.phase != TurnPhase.IDLE

    @property
    def next_purchase(self) -> PurchaseCandidate | None:
        """Candidate under the cursor, or None when the queue is exhausted."""
        if self.purchase_cursor < len(self.purchase_queue):
            return self.purchase_queue[self.purchase_cursor]
        return None

    def summary(self) -> dict:
        """Compact record of the turn, published on completion."""
        return {
            "session_id": self.session_id,
            "participant_id": self.participant_id,
            "rolls": self.roll_invocations,
            "decisions": [
                {
                    "action": d.result.action.value,
                    "confidence": d.result.confidence,
                    "status": d.status,
                }
                for d in self.decisions
            ],
            "purchases": list(self.purchases),
            "end_reason": self.end_reason,
        }
