"""
Heuristic decision provider.

A small seeded rule-of-thumb player used by the harness. It keeps the
faces its personality likes, rerolls the rest while rolls remain, and
occasionally buys a card just so nobody else gets it.
"""

import asyncio
import logging
import random
from collections import Counter

from ..state.schemas import (
    DecisionAction,
    DecisionRequest,
    DecisionResult,
    DefensiveAssessment,
    Participant,
    PurchaseCandidate,
)
from .base import DecisionProvider

logger = logging.getLogger(__name__)


# Face preference per personality tone
TONE_FACES: dict[str, str] = {
    "aggressive": "claw",
    "cautious": "heart",
    "greedy": "energy",
}

DEFENSIVE_PRIORITY = 3.0


class HeuristicDecisionProvider(DecisionProvider):
    """
    Seeded heuristic player.

    Args:
        seed: RNG seed for reproducible games
        think_ms: Simulated thinking time; 0 answers synchronously
    """

    def __init__(self, seed: int | None = None, think_ms: float = 0.0):
        self._rng = random.Random(seed)
        self.think_ms = think_ms

    @property
    def name(self) -> str:
        return "heuristic"

    def make_decision(self, request: DecisionRequest):
        result = self._decide(request)
        if self.think_ms <= 0:
            return result
        return self._think(result)

    async def _think(self, result: DecisionResult) -> DecisionResult:
        await asyncio.sleep(self.think_ms / 1000.0)
        return result

    def _decide(self, request: DecisionRequest) -> DecisionResult:
        faces = request.dice_faces
        favourite = self._favourite_face(request.participant, faces)
        keep = {i for i, face in enumerate(faces) if face == favourite}
        ratio = len(keep) / len(faces) if faces else 1.0

        if not faces or request.rolls_remaining <= 0 or len(keep) == len(faces):
            action = DecisionAction.END_ROLL
        elif ratio >= 0.5 and self._rng.random() < 0.5:
            action = DecisionAction.KEEP
        else:
            action = DecisionAction.REROLL

        confidence = min(1.0, 0.25 + ratio + self._rng.uniform(-0.1, 0.1))
        return DecisionResult(
            action=action,
            keep_indices=keep,
            confidence=max(0.0, confidence),
            reason=f"keeping {len(keep)} x {favourite}",
        )

    def _favourite_face(self, participant: Participant, faces: list[str]) -> str:
        if participant.personality:
            tone = max(participant.personality, key=lambda t: participant.personality[t])
            if tone in TONE_FACES:
                return TONE_FACES[tone]
        counts = Counter(faces)
        return counts.most_common(1)[0][0] if counts else "energy"

    def evaluate_defensive(
        self,
        candidate: PurchaseCandidate,
        participant: Participant,
    ) -> DefensiveAssessment | None:
        if candidate.priority < DEFENSIVE_PRIORITY:
            return DefensiveAssessment(should_buy=False, reason="not a threat")
        value = candidate.priority - candidate.cost / 10.0
        return DefensiveAssessment(
            should_buy=value > 0,
            value=value,
            reason=f"deny {candidate.name or candidate.id}",
        )
