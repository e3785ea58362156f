"""
Schema contracts for the CPU turn engine.

    DecisionRequest → DecisionResult → DecisionOutcome
    TurnSession (phase machine state)
    FeedbackEvent (ephemeral presentation side channel)

All schemas are Pydantic BaseModel for validation and JSON serialization.
"""

from .participant import (
    Participant,
    ParticipantKind,
    DiceState,
    PurchaseCandidate,
    PurchaseOutcome,
    DefensiveAssessment,
)
from .decision import (
    DecisionAction,
    DecisionRequest,
    DecisionResult,
    DecisionOutcome,
)
from .feedback import FeedbackCategory, FeedbackEvent, PRIORITY_CATEGORIES
from .session import TurnPhase, TurnSession, MAX_ROLLS

__all__ = [
    # Engine-facing
    "Participant",
    "ParticipantKind",
    "DiceState",
    "PurchaseCandidate",
    "PurchaseOutcome",
    "DefensiveAssessment",
    # Decisions
    "DecisionAction",
    "DecisionRequest",
    "DecisionResult",
    "DecisionOutcome",
    # Feedback
    "FeedbackCategory",
    "FeedbackEvent",
    "PRIORITY_CATEGORIES",
    # Sessions
    "TurnPhase",
    "TurnSession",
    "MAX_ROLLS",
]
