"""
Simulated rules engine.

A deliberately small stand-in for the real game: six dice, three rolls,
energy to spend in a three-card shop, claws to hurt everyone else. It
exists so the orchestrator can be exercised end to end (harness, tests)
without the real rules.

Roll completion is announced on the event bus after roll_ms, the way a
dice animation would finish on a real table.
"""

import asyncio
import logging
import random
from collections import Counter
from typing import Any

from ..state.event_bus import EventBus, EventType, get_event_bus
from ..state.schemas import (
    DiceState,
    Participant,
    ParticipantKind,
    PurchaseCandidate,
    PurchaseOutcome,
)
from .base import GameEngine

logger = logging.getLogger(__name__)


FACES = ("1", "2", "3", "claw", "heart", "energy")
DICE_COUNT = 6
ROLLS_PER_TURN = 3
MAX_HEALTH = 10
SHOP_SIZE = 3

# (id, name, cost, priority)
DEFAULT_DECK: list[tuple[str, str, int, float]] = [
    ("extra_head", "Extra Head", 7, 4.0),
    ("giant_brain", "Giant Brain", 5, 3.0),
    ("acid_attack", "Acid Attack", 6, 3.5),
    ("energize", "Energize", 8, 2.5),
    ("heal", "Heal", 3, 1.5),
    ("nova_breath", "Nova Breath", 7, 4.5),
    ("solar_powered", "Solar Powered", 2, 1.0),
    ("friend_of_children", "Friend of Children", 3, 2.0),
    ("spiked_tail", "Spiked Tail", 5, 3.0),
    ("jets", "Jets", 5, 2.0),
    ("armor_plating", "Armor Plating", 4, 2.5),
    ("fire_blast", "Fire Blast", 3, 1.5),
]


class SimulatedGameEngine(GameEngine):
    """
    Minimal dice/energy/shop game implementing GameEngine.

    Usage:
        engine = SimulatedGameEngine(players, seed=7, max_turns=12)
        engine.begin()            # emits turn.started for the first player
        await engine.finished.wait()
    """

    def __init__(
        self,
        participants: list[Participant],
        seed: int | None = None,
        max_turns: int = 10,
        roll_ms: float = 600,
        bus: EventBus | None = None,
        deck: list[tuple[str, str, int, float]] | None = None,
    ):
        if not participants:
            raise ValueError("At least one participant is required")

        self._participants = {p.id: p.model_copy(deep=True) for p in participants}
        self._order = [p.id for p in participants]
        for p in self._participants.values():
            p.resources.setdefault("energy", 0)
            p.resources.setdefault("health", MAX_HEALTH)
            p.resources.setdefault("vp", 0)

        self._rng = random.Random(seed)
        self._bus = bus or get_event_bus()
        self.roll_ms = roll_ms
        self.max_turns = max_turns

        deck = list(deck or DEFAULT_DECK)
        self._rng.shuffle(deck)
        self._deck = [PurchaseCandidate(id=i, name=n, cost=c, priority=p) for i, n, c, p in deck]
        self._shop: list[PurchaseCandidate] = []
        self._refill_shop()

        self._current = 0
        self.turns_played = 0
        self.game_over = False
        self.finished = asyncio.Event()
        self.log: list[str] = []
        self._reset_dice()

    # ─── Game Flow ───────────────────────────────────────────────

    def begin(self) -> None:
        """Announce the first turn."""
        self._announce_turn()

    def get_current_participant(self) -> Participant | None:
        if self.game_over:
            return None
        return self._participants[self._order[self._current]].model_copy(deep=True)

    def get_participant(self, participant_id: str) -> Participant | None:
        participant = self._participants.get(participant_id)
        return participant.model_copy(deep=True) if participant is not None else None

    def participants(self) -> list[Participant]:
        return [self._participants[pid].model_copy(deep=True) for pid in self._order]

    def end_turn(self) -> None:
        if self.game_over:
            return
        self._resolve_dice()
        self.turns_played += 1

        alive = [pid for pid in self._order if not self._participants[pid].eliminated]
        if self.turns_played >= self.max_turns or len(alive) <= 1:
            self._finish()
            return

        for _ in range(len(self._order)):
            self._current = (self._current + 1) % len(self._order)
            if not self._participants[self._order[self._current]].eliminated:
                break
        self._reset_dice()
        self._announce_turn()

    # ─── Dice ────────────────────────────────────────────────────

    def start_roll(self) -> None:
        if self._rolling:
            raise RuntimeError("Dice are already rolling")
        if self._rolls_remaining <= 0:
            raise RuntimeError("No rolls remaining")

        for i in range(DICE_COUNT):
            if i not in self._kept:
                self._faces[i] = self._rng.choice(FACES)
        self._rolls_remaining -= 1
        self._rolling = True
        participant_id = self._order[self._current]

        if self.roll_ms <= 0:
            self._roll_settled(participant_id)
        else:
            asyncio.get_running_loop().call_later(
                self.roll_ms / 1000.0, self._roll_settled, participant_id,
            )

    def _roll_settled(self, participant_id: str) -> None:
        self._rolling = False
        self._bus.emit(
            EventType.ROLL_COMPLETE,
            participant_id=participant_id,
            faces=list(self._faces),
            rolls_remaining=self._rolls_remaining,
        )

    def get_dice_state(self) -> DiceState:
        return DiceState(
            faces=list(self._faces),
            rolls_remaining=self._rolls_remaining,
            can_roll=(
                not self._rolling
                and self._rolls_remaining > 0
                and len(self._kept) < DICE_COUNT
            ),
        )

    def apply_keep_selection(self, indices: set[int]) -> None:
        self._kept = {i for i in indices if 0 <= i < DICE_COUNT}

    # ─── Shop ────────────────────────────────────────────────────

    def list_purchase_candidates(self) -> list[PurchaseCandidate]:
        # Energy from this turn's dice is available before shopping
        self._resolve_dice()
        return [c.model_copy() for c in self._shop]

    def attempt_purchase(self, participant_id: str, item_id: str) -> PurchaseOutcome:
        participant = self._participants.get(participant_id)
        if participant is None:
            return PurchaseOutcome(success=False, error=f"unknown participant {participant_id}")

        item = next((c for c in self._shop if c.id == item_id), None)
        if item is None:
            return PurchaseOutcome(success=False, error=f"{item_id} is not in the shop")
        if participant.resources["energy"] < item.cost:
            return PurchaseOutcome(success=False, error="not enough energy")

        participant.resources["energy"] -= item.cost
        self._shop.remove(item)
        self._refill_shop()
        self._record(f"{participant.name or participant.id} bought {item.name}")
        return PurchaseOutcome(success=True)

    def get_game_snapshot(self) -> dict[str, Any]:
        return {
            "turn": self.turns_played + 1,
            "participants": [
                {
                    "id": p.id,
                    "eliminated": p.eliminated,
                    **p.resources,
                }
                for p in (self._participants[pid] for pid in self._order)
            ],
            "shop": [c.model_dump() for c in self._shop],
        }

    # ─── Internals ───────────────────────────────────────────────

    def _reset_dice(self) -> None:
        self._faces: list[str] = [""] * DICE_COUNT
        self._kept: set[int] = set()
        self._rolls_remaining = ROLLS_PER_TURN
        self._rolling = False
        self._resolved = False

    def _refill_shop(self) -> None:
        while len(self._shop) < SHOP_SIZE and self._deck:
            self._shop.append(self._deck.pop())

    def _announce_turn(self) -> None:
        participant = self._participants[self._order[self._current]]
        self._bus.emit(
            EventType.TURN_STARTED,
            participant_id=participant.id,
            turn=self.turns_played + 1,
        )

    def _resolve_dice(self) -> None:
        if self._resolved or not any(self._faces):
            return
        self._resolved = True

        roller = self._participants[self._order[self._current]]
        counts = Counter(self._faces)

        roller.resources["energy"] += counts["energy"]
        roller.resources["health"] = min(MAX_HEALTH, roller.resources["health"] + counts["heart"])
        for number in ("1", "2", "3"):
            if counts[number] >= 3:
                roller.resources["vp"] += int(number) + counts[number] - 3

        claws = counts["claw"]
        if claws:
            for pid in self._order:
                target = self._participants[pid]
                if pid == roller.id or target.eliminated:
                    continue
                self._damage(target, claws)

    def _damage(self, target: Participant, amount: int) -> None:
        target.resources["health"] = max(0, target.resources["health"] - amount)
        self._bus.emit(
            EventType.PARTICIPANT_DAMAGED,
            participant_id=target.id,
            name=target.name,
            amount=amount,
        )
        if target.resources["health"] == 0:
            target.eliminated = True
            self._record(f"{target.name or target.id} is eliminated")
            self._bus.emit(
                EventType.PARTICIPANT_ELIMINATED,
                participant_id=target.id,
                name=target.name,
            )

    def _finish(self) -> None:
        self.game_over = True
        standings = sorted(
            self._participants.values(),
            key=lambda p: (not p.eliminated, p.resources["vp"], p.resources["health"]),
            reverse=True,
        )
        self._record(f"Game over after {self.turns_played} turns; leader {standings[0].id}")
        self.finished.set()

    def _record(self, line: str) -> None:
        logger.info(line)
        self.log.append(line)


def make_participants(count: int, autonomous: bool = True) -> list[Participant]:
    """Seats p1..pN with rotating personalities."""
    tones = ["aggressive", "cautious", "greedy"]
    names = ["Kraken", "Meka Dragon", "Alienoid", "Cyber Kitty", "Giga Zaur", "The King"]
    kind = ParticipantKind.AUTONOMOUS if autonomous else ParticipantKind.HUMAN
    return [
        Participant(
            id=f"p{i + 1}",
            name=names[i % len(names)],
            kind=kind,
            personality={tones[i % len(tones)]: 2},
        )
        for i in range(count)
    ]
