"""
Decision schemas — the contract between the orchestrator and providers.

A provider answers a DecisionRequest with a DecisionResult. The resolver
wraps that answer (or its fallback substitute) in a DecisionOutcome so
the caller always sees whether the decision came from the provider or
from the fallback path.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from .participant import Participant


class DecisionAction(str, Enum):
    """Canonical roll actions."""
    REROLL = "reroll"
    KEEP = "keep"
    END_ROLL = "end_roll"


class DecisionRequest(BaseModel):
    """Everything a provider gets to decide on one roll."""
    dice_faces: list[str] = Field(default_factory=list)
    rolls_remaining: int = 0
    roll_number: int = 1
    participant: Participant
    game_state: dict[str, Any] = Field(default_factory=dict)


class DecisionResult(BaseModel):
    """
    A validated roll decision.

    action is always canonical once it leaves the resolver; providers may
    hand back legacy strings and the resolver normalizes them.
    """
    action: DecisionAction = DecisionAction.END_ROLL
    keep_indices: set[int] = Field(default_factory=set)
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reason: str = ""


OutcomeStatus = Literal["resolved", "timed_out", "errored"]


class DecisionOutcome(BaseModel):
    """
    Result type returned by the resolver.

    status tells the caller which path produced result; a fallback result
    is never silently passed off as a provider answer.
    """
    result: DecisionResult
    status: OutcomeStatus = "resolved"
    elapsed_ms: float = 0.0
    error: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.status != "resolved"

    @property
    def action(self) -> DecisionAction:
        return self.result.action
