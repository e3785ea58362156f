"""
Participant and engine-facing schemas.

These are the read-only views the orchestrator receives from the game
engine. Resource counters are opaque here: the orchestrator only reads
the configured currency to decide whether a purchase is affordable.
"""

from enum import Enum

from pydantic import BaseModel, Field


class ParticipantKind(str, Enum):
    """Who drives a participant's turn."""
    HUMAN = "human"
    AUTONOMOUS = "autonomous"


class Participant(BaseModel):
    """
    A player seat as seen by the orchestrator.

    personality maps a feedback tone ("aggressive", "cautious", ...) to a
    weight; heavier tones get their lines duplicated in the feedback
    selection pool.
    """
    id: str
    name: str = ""
    kind: ParticipantKind = ParticipantKind.HUMAN
    eliminated: bool = False
    resources: dict[str, int] = Field(default_factory=dict)
    personality: dict[str, int] = Field(default_factory=dict)

    @property
    def is_autonomous(self) -> bool:
        return self.kind == ParticipantKind.AUTONOMOUS

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def budget(self, currency: str = "energy") -> int:
        """Amount of the purchase currency this participant holds."""
        return int(self.resources.get(currency, 0))


class DiceState(BaseModel):
    """Current dice tray as reported by the engine."""
    faces: list[str] = Field(default_factory=list)
    rolls_remaining: int = 0
    can_roll: bool = True  # False when every die is kept or the engine is busy


class PurchaseCandidate(BaseModel):
    """An item the participant could buy this turn."""
    id: str
    name: str = ""
    cost: int = 0
    priority: float = 0.0  # Higher is bought first


class PurchaseOutcome(BaseModel):
    """Engine response to a purchase attempt."""
    success: bool
    error: str | None = None


class DefensiveAssessment(BaseModel):
    """
    Whether buying a card is worth it just to deny it to opponents.

    Returned by decision providers that evaluate defensive purchases.
    """
    should_buy: bool = False
    value: float = 0.0
    reason: str = ""
