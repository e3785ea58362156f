"""
CPU turn systems.

Leaf-first: timers, feedback pacing, decision resolution, purchase
planning, and the orchestrator that sequences them.
"""

from .timers import TimerRegistry, TimerHandle, asyncio_call_later
from .feedback import (
    FeedbackAdmissionController,
    FeedbackSink,
    BusFeedbackSink,
    PacingState,
    DEFAULT_LIMITS,
)
from .phrases import PhraseBook, DEFAULT_PHRASES
from .decisions import DecisionResolver, DecisionMetrics, LEGACY_ACTIONS
from .purchases import build_purchase_queue
from .turns import (
    CpuTurnOrchestrator,
    TurnError,
    InvalidPhaseError,
    VALID_TRANSITIONS,
    DEFAULT_TIMINGS,
    SPEED_SCALES,
    confidence_category,
)

__all__ = [
    "TimerRegistry",
    "TimerHandle",
    "asyncio_call_later",
    # Feedback
    "FeedbackAdmissionController",
    "FeedbackSink",
    "BusFeedbackSink",
    "PacingState",
    "DEFAULT_LIMITS",
    "PhraseBook",
    "DEFAULT_PHRASES",
    # Decisions
    "DecisionResolver",
    "DecisionMetrics",
    "LEGACY_ACTIONS",
    "build_purchase_queue",
    # Orchestration
    "CpuTurnOrchestrator",
    "TurnError",
    "InvalidPhaseError",
    "VALID_TRANSITIONS",
    "DEFAULT_TIMINGS",
    "SPEED_SCALES",
    "confidence_category",
]
