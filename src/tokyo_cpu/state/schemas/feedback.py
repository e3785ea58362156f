"""
FeedbackEvent schema — ephemeral "thought bubble" notifications.

Feedback events are created by orchestrator steps, filtered by the
admission controller, shown by the presentation sink, and expire on
their own. They are never persisted.
"""

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class FeedbackCategory(str, Enum):
    """What a feedback event is about."""
    PLANNING = "planning"
    CONFIDENT = "confident"
    CONSIDERING = "considering"
    UNCERTAIN = "uncertain"
    PURCHASE = "purchase"
    TURN_END = "turn_end"
    DAMAGE = "damage"
    ELIMINATION = "elimination"


# Exempt from per-entity pacing
PRIORITY_CATEGORIES: frozenset[FeedbackCategory] = frozenset({
    FeedbackCategory.DAMAGE,
    FeedbackCategory.ELIMINATION,
})


class FeedbackEvent(BaseModel):
    """
    A single admitted feedback event.

    Times are milliseconds on the admission controller's clock.
    """
    event_id: str = Field(default_factory=lambda: str(uuid4())[:8])
    entity_id: str
    category: FeedbackCategory
    content: str
    created_at: float
    expires_at: float

    @property
    def is_priority(self) -> bool:
        return self.category in PRIORITY_CATEGORIES

    @property
    def duration_ms(self) -> float:
        return self.expires_at - self.created_at
