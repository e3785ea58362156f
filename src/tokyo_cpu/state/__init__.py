"""State, schemas and notifications for the CPU turn engine."""

from .schemas import (
    Participant,
    ParticipantKind,
    DiceState,
    PurchaseCandidate,
    PurchaseOutcome,
    DefensiveAssessment,
    DecisionAction,
    DecisionRequest,
    DecisionResult,
    DecisionOutcome,
    FeedbackCategory,
    FeedbackEvent,
    PRIORITY_CATEGORIES,
    TurnPhase,
    TurnSession,
    MAX_ROLLS,
)
from .event_bus import (
    EventBus,
    EventType,
    GameEvent,
    get_event_bus,
    reset_event_bus,
)

__all__ = [
    "Participant",
    "ParticipantKind",
    "DiceState",
    "PurchaseCandidate",
    "PurchaseOutcome",
    "DefensiveAssessment",
    "DecisionAction",
    "DecisionRequest",
    "DecisionResult",
    "DecisionOutcome",
    "FeedbackCategory",
    "FeedbackEvent",
    "PRIORITY_CATEGORIES",
    "TurnPhase",
    "TurnSession",
    "MAX_ROLLS",
    # Event bus
    "EventBus",
    "EventType",
    "GameEvent",
    "get_event_bus",
    "reset_event_bus",
]
