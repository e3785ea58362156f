"""
Base decision provider abstraction.

Defines the interface every decision provider implements. Only the
input/output contract matters to the orchestrator; how a provider picks
its move is its own business.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable

from ..state.schemas import (
    DecisionRequest,
    DecisionResult,
    DefensiveAssessment,
    Participant,
    PurchaseCandidate,
)


# Providers may return a DecisionResult, a plain dict in the legacy shape
# ({"action": "endRoll", "keepDice": [...]}) or an awaitable of either.
RawDecision = DecisionResult | dict[str, Any] | None


class DecisionProvider(ABC):
    """
    Abstract base class for decision providers.

    All providers must implement:
    - make_decision(): Answer one roll, synchronously or as an awaitable

    Providers may override:
    - plan_portfolio(): Which shop items to buy, in order
    - evaluate_defensive(): Whether an item is worth buying to deny it
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def make_decision(
        self,
        request: DecisionRequest,
    ) -> RawDecision | Awaitable[RawDecision]:
        """
        Decide what to do with the current roll.

        Args:
            request: Dice, rolls remaining, participant and game snapshot

        Returns:
            A decision (or awaitable of one). Unknown actions are coerced
            to END_ROLL by the resolver.
        """
        pass

    def plan_portfolio(
        self,
        candidates: list[PurchaseCandidate],
        participant: Participant,
        budget: int,
    ) -> list[PurchaseCandidate]:
        """
        Pick the items worth buying this turn.

        Default: greedy by priority (then cheapest first) within budget.
        """
        chosen: list[PurchaseCandidate] = []
        spent = 0
        for item in sorted(candidates, key=lambda c: (-c.priority, c.cost)):
            if spent + item.cost <= budget:
                chosen.append(item)
                spent += item.cost
        return chosen

    def evaluate_defensive(
        self,
        candidate: PurchaseCandidate,
        participant: Participant,
    ) -> DefensiveAssessment | None:
        """Assess buying candidate to deny it. Default: never."""
        return None
