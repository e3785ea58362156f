"""
Pytest fixtures for tokyo-cpu tests.

Provides a manual timer host, a scriptable fake engine and helpers for
driving the orchestrator on a real event loop with tiny delays.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable

import pytest

from tokyo_cpu.engine.base import GameEngine
from tokyo_cpu.providers import MockDecisionProvider
from tokyo_cpu.state.event_bus import EventBus, EventType, reset_event_bus
from tokyo_cpu.state.schemas import (
    DiceState,
    Participant,
    ParticipantKind,
    PurchaseCandidate,
    PurchaseOutcome,
)
from tokyo_cpu.systems import (
    CpuTurnOrchestrator,
    DecisionResolver,
    FeedbackAdmissionController,
    TimerRegistry,
)


# Step delays small enough for tests, watchdog long enough not to race them
FAST_TIMINGS = {
    "turn_start_delay_ms": 1,
    "settle_delay_ms": 1,
    "next_roll_delay_ms": 1,
    "decision_thinking_ms": 0,
    "thinking_jitter_ms": 0,
    "purchase_delay_ms": 1,
    "end_turn_delay_ms": 1,
    "roll_watchdog_ms": 500,
}


# -----------------------------------------------------------------------------
# Manual timer host
# -----------------------------------------------------------------------------

@dataclass
class FakeTimer:
    due: float
    fn: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualTimerHost:
    """call_later stand-in driven by advance(); time is in milliseconds."""

    def __init__(self):
        self.now = 0.0
        self._timers: list[FakeTimer] = []

    def clock(self) -> float:
        return self.now

    def call_later(self, delay_s: float, fn: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(due=self.now + delay_s * 1000.0, fn=fn)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, ms: float) -> None:
        """Move time forward, firing due callbacks in order."""
        target = self.now + ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.now = timer.due
            timer.fn()
        self.now = target


# -----------------------------------------------------------------------------
# Fake engine
# -----------------------------------------------------------------------------

class FakeEngine(GameEngine):
    """
    Scriptable GameEngine.

    Rolls complete on the next loop iteration unless auto_complete is off,
    in which case the test calls complete_roll() itself.
    """

    def __init__(
        self,
        bus: EventBus,
        participants: list[Participant],
        faces: list[str] | None = None,
        rolls: int = 3,
        auto_complete: bool = True,
        shop: list[PurchaseCandidate] | None = None,
    ):
        self.bus = bus
        self.participants = {p.id: p for p in participants}
        self.order = [p.id for p in participants]
        self.current = 0
        self.faces = faces or ["1", "2", "3", "claw", "heart", "energy"]
        self.rolls_per_turn = rolls
        self.rolls_remaining = rolls
        self.auto_complete = auto_complete
        self.can_roll = True
        self.shop = shop or []
        self.purchase_results: dict[str, object] = {}
        self.roll_error: Exception | None = None

        self.roll_calls = 0
        self.kept: set[int] = set()
        self.attempted: list[str] = []
        self.ended = 0

    @property
    def current_id(self) -> str:
        return self.order[self.current]

    def get_current_participant(self) -> Participant | None:
        return self.participants[self.current_id].model_copy(deep=True)

    def get_participant(self, participant_id: str) -> Participant | None:
        participant = self.participants.get(participant_id)
        return participant.model_copy(deep=True) if participant is not None else None

    def start_roll(self) -> None:
        if self.roll_error is not None:
            raise self.roll_error
        self.roll_calls += 1
        self.rolls_remaining -= 1
        if self.auto_complete:
            asyncio.get_running_loop().call_soon(self.complete_roll)

    def complete_roll(self) -> None:
        self.bus.emit(EventType.ROLL_COMPLETE, participant_id=self.current_id)

    def get_dice_state(self) -> DiceState:
        return DiceState(
            faces=list(self.faces),
            rolls_remaining=self.rolls_remaining,
            can_roll=self.can_roll,
        )

    def apply_keep_selection(self, indices: set[int]) -> None:
        self.kept = set(indices)

    def list_purchase_candidates(self) -> list[PurchaseCandidate]:
        return list(self.shop)

    def attempt_purchase(self, participant_id: str, item_id: str):
        self.attempted.append(item_id)
        if item_id in self.purchase_results:
            return self.purchase_results[item_id]
        item = next(c for c in self.shop if c.id == item_id)
        self.participants[participant_id].resources["energy"] -= item.cost
        return PurchaseOutcome(success=True)

    def end_turn(self) -> None:
        self.ended += 1
        self.rolls_remaining = self.rolls_per_turn

    def get_game_snapshot(self) -> dict:
        return {"turn": self.ended + 1}


def cpu(participant_id: str = "cpu", energy: int = 0, **kwargs) -> Participant:
    return Participant(
        id=participant_id,
        name=kwargs.pop("name", "Kraken"),
        kind=ParticipantKind.AUTONOMOUS,
        resources={"energy": energy},
        **kwargs,
    )


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Spin the loop until predicate() holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.002)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def fresh_global_bus():
    """Keep the global event bus from leaking between tests."""
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def host():
    return ManualTimerHost()


@pytest.fixture
def manual_timers(host):
    """Timer registry driven by the manual host."""
    return TimerRegistry(call_later=host.call_later, clock=host.clock)


@pytest.fixture
def build(bus):
    """
    Factory for an attached orchestrator over a FakeEngine.

    Must be called from inside a running event loop.
    """
    def _build(
        participants: list[Participant] | None = None,
        responses: list | None = None,
        provider=None,
        timings: dict | None = None,
        feedback: bool = False,
        timeout_ms: float = 1200,
        **engine_kwargs,
    ):
        engine = FakeEngine(bus, participants or [cpu()], **engine_kwargs)
        provider = provider or MockDecisionProvider(responses or ["end_roll"])
        timers = TimerRegistry()
        controller = FeedbackAdmissionController(timers=timers) if feedback else None
        orchestrator = CpuTurnOrchestrator(
            engine,
            provider,
            timers=timers,
            resolver=DecisionResolver(default_timeout_ms=timeout_ms),
            feedback=controller,
            bus=bus,
            timings={**FAST_TIMINGS, **(timings or {})},
        )
        orchestrator.attach()
        return orchestrator, engine, provider

    return _build
