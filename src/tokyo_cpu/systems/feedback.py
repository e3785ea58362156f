"""
Feedback admission control — pacing for CPU "thought bubbles".

Every orchestrator step may want to say something; only a few lines
should actually reach the screen. try_emit() applies four rules in order,
first failure rejects:

    1. global active count   < max_global_active
    2. entity active count   < max_per_entity_active   (after eviction)
    3. since last emission   ≥ global_min_interval_ms   (skipped if none yet)
    4. since entity emission ≥ per_entity_min_interval_ms (priority bypasses)

A new bubble evicts the entity's oldest one when the entity is at its
cap, so rule 2 only rejects when the cap is zero. Eviction happens only
once every rule passes, so a rejected emission leaves the screen alone.

Admitted events expire after a random display duration. Expiry runs from
the timer registry, and is also enforced lazily by clock on every
admission check so a paused registry can never leak active slots.
"""

import logging
import random
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Mapping, Sequence, TypedDict

from ..state.event_bus import EventBus, EventType
from ..state.schemas import PRIORITY_CATEGORIES, FeedbackCategory, FeedbackEvent
from .timers import TimerHandle, TimerRegistry

logger = logging.getLogger(__name__)


# Candidates are either plain lines or tone → lines
ContentCandidates = Sequence[str] | Mapping[str, Sequence[str]]


class PacingLimits(TypedDict):
    """Admission limits; any subset can be overridden."""
    max_global_active: int
    max_per_entity_active: int
    global_min_interval_ms: float
    per_entity_min_interval_ms: float
    min_duration_ms: float
    max_duration_ms: float
    history_size: int
    max_selection_attempts: int


DEFAULT_LIMITS: PacingLimits = {
    "max_global_active": 2,
    "max_per_entity_active": 1,
    "global_min_interval_ms": 900,
    "per_entity_min_interval_ms": 2200,
    "min_duration_ms": 3000,
    "max_duration_ms": 5000,
    "history_size": 4,
    "max_selection_attempts": 5,
}


class FeedbackSink(ABC):
    """Presentation side of the feedback channel."""

    @abstractmethod
    def on_feedback_event(self, event: FeedbackEvent) -> None:
        """Show an admitted event."""
        pass

    @abstractmethod
    def on_feedback_expired(self, event_id: str) -> None:
        """Hide an event whose display time is over (or that was evicted)."""
        pass


class BusFeedbackSink(FeedbackSink):
    """Republishes feedback on the event bus."""

    def __init__(self, bus: EventBus):
        self.bus = bus

    def on_feedback_event(self, event: FeedbackEvent) -> None:
        self.bus.emit(
            EventType.FEEDBACK_SHOWN,
            event_id=event.event_id,
            entity_id=event.entity_id,
            category=event.category.value,
            content=event.content,
            duration_ms=event.duration_ms,
        )

    def on_feedback_expired(self, event_id: str) -> None:
        self.bus.emit(EventType.FEEDBACK_EXPIRED, event_id=event_id)


@dataclass
class EntityPacing:
    last_emit: float | None = None
    last_category_emit: dict[FeedbackCategory, float] = field(default_factory=dict)
    history: deque = field(default_factory=deque)


@dataclass
class PacingState:
    """
    Everything the admission rules look at.

    Mutated only by FeedbackAdmissionController; lives until clear().
    """
    last_global_emit: float | None = None
    entities: dict[str, EntityPacing] = field(default_factory=dict)
    active: dict[str, FeedbackEvent] = field(default_factory=dict)  # insertion ordered

    @property
    def global_active(self) -> int:
        return len(self.active)

    def entity_active(self, entity_id: str) -> list[FeedbackEvent]:
        """Active events for entity, oldest first."""
        return [e for e in self.active.values() if e.entity_id == entity_id]


class FeedbackAdmissionController:
    """
    Rate limiter and cap for ephemeral feedback events.

    Usage:
        controller = FeedbackAdmissionController(timers=registry)
        controller.add_sink(my_sink)
        event = controller.try_emit("p2", FeedbackCategory.PLANNING, ["Hmm..."])
        if event is None:
            ...  # dropped by pacing; nothing to do
    """

    def __init__(
        self,
        timers: TimerRegistry | None = None,
        limits: Mapping[str, float] | None = None,
        speed_multiplier: float = 1.0,
        enabled: bool = True,
        clock: Callable[[], float] | None = None,
        rng: random.Random | None = None,
    ):
        self.timers = timers
        self.limits: PacingLimits = {**DEFAULT_LIMITS, **(limits or {})}  # type: ignore[typeddict-item]
        self.speed_multiplier = speed_multiplier if speed_multiplier > 0 else 1.0
        self.enabled = enabled
        self.state = PacingState()
        self._clock = clock or (lambda: time.monotonic() * 1000.0)
        self._rng = rng or random.Random()
        self._sinks: list[FeedbackSink] = []
        self._expiry: dict[str, TimerHandle] = {}

    # ─── Sinks ───────────────────────────────────────────────────

    def add_sink(self, sink: FeedbackSink) -> None:
        if sink not in self._sinks:
            self._sinks.append(sink)

    def remove_sink(self, sink: FeedbackSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    # ─── Admission ───────────────────────────────────────────────

    def try_emit(
        self,
        entity_id: str,
        category: FeedbackCategory,
        content_candidates: ContentCandidates,
        personality: Mapping[str, int] | None = None,
    ) -> FeedbackEvent | None:
        """
        Admit one feedback event if pacing allows.

        Args:
            entity_id: Participant the bubble belongs to
            category: What the bubble is about
            content_candidates: Lines to choose from, flat or grouped by tone
            personality: tone → weight; favoured tones are picked more often

        Returns:
            The admitted event, or None when rejected
        """
        if not self.enabled:
            return None

        now = self._clock()
        self._purge_expired(now)

        state = self.state
        limits = self.limits
        priority = category in PRIORITY_CATEGORIES
        entity_events = state.entity_active(entity_id)

        # The entity's oldest bubbles make way for the new one
        evict: list[FeedbackEvent] = []
        entity_cap = int(limits["max_per_entity_active"])
        if entity_cap > 0 and len(entity_events) >= entity_cap:
            evict = entity_events[:len(entity_events) - entity_cap + 1]

        # Rule 1
        if state.global_active - len(evict) >= limits["max_global_active"]:
            return self._reject(entity_id, category, "global cap")

        # Rule 2
        if len(entity_events) - len(evict) >= limits["max_per_entity_active"]:
            return self._reject(entity_id, category, "entity cap")

        # Rule 3
        if state.last_global_emit is not None:
            if now - state.last_global_emit < limits["global_min_interval_ms"]:
                return self._reject(entity_id, category, "global interval")

        # Rule 4
        pacing = state.entities.get(entity_id)
        if not priority and pacing is not None and pacing.last_emit is not None:
            if now - pacing.last_emit < limits["per_entity_min_interval_ms"]:
                return self._reject(entity_id, category, "entity interval")

        if pacing is None:
            pacing = EntityPacing(history=deque(maxlen=int(limits["history_size"])))

        content = self._select_content(content_candidates, personality, pacing.history)
        if content is None:
            return self._reject(entity_id, category, "no content")

        for old in evict:
            logger.debug("Evicting feedback %s for %s", old.event_id, entity_id)
            self._expire(old.event_id)

        duration = self._rng.uniform(limits["min_duration_ms"], limits["max_duration_ms"])
        duration /= self.speed_multiplier
        event = FeedbackEvent(
            entity_id=entity_id,
            category=category,
            content=content,
            created_at=now,
            expires_at=now + duration,
        )

        # Record only on admission
        state.entities[entity_id] = pacing
        state.last_global_emit = now
        pacing.last_emit = now
        pacing.last_category_emit[category] = now
        pacing.history.append(content)
        state.active[event.event_id] = event

        if self.timers is not None:
            handle = self.timers.schedule(
                duration,
                lambda: self._expire(event.event_id),
                label=f"feedback-expire:{event.event_id}",
            )
            if handle is not None:
                self._expiry[event.event_id] = handle

        for sink in list(self._sinks):
            try:
                sink.on_feedback_event(event)
            except Exception:
                logger.exception("Feedback sink failed on event %s", event.event_id)

        return event

    def active_events(self, entity_id: str | None = None) -> list[FeedbackEvent]:
        """Currently displayed events, oldest first."""
        self._purge_expired(self._clock())
        if entity_id is None:
            return list(self.state.active.values())
        return self.state.entity_active(entity_id)

    def clear(self) -> None:
        """Expire everything and forget all pacing history."""
        for event_id in list(self.state.active):
            self._expire(event_id)
        self.state = PacingState()

    # ─── Internals ───────────────────────────────────────────────

    def _reject(self, entity_id: str, category: FeedbackCategory, why: str) -> None:
        logger.debug("Feedback %s for %s rejected: %s", category.value, entity_id, why)
        return None

    def _select_content(
        self,
        candidates: ContentCandidates,
        personality: Mapping[str, int] | None,
        history: deque,
    ) -> str | None:
        pool = self._build_pool(candidates, personality)
        if not pool:
            return None

        choice = self._rng.choice(pool)
        for _ in range(max(0, int(self.limits["max_selection_attempts"]) - 1)):
            if choice not in history:
                break
            choice = self._rng.choice(pool)
        return choice

    def _build_pool(
        self,
        candidates: ContentCandidates,
        personality: Mapping[str, int] | None,
    ) -> list[str]:
        if isinstance(candidates, Mapping):
            pool: list[str] = []
            for tone, lines in candidates.items():
                weight = 1 + max(0, int((personality or {}).get(tone, 0)))
                for line in lines:
                    pool.extend([line] * weight)
            return [line for line in pool if line]
        if isinstance(candidates, str):
            return [candidates] if candidates else []
        return [line for line in candidates if line]

    def _purge_expired(self, now: float) -> None:
        for event_id, event in list(self.state.active.items()):
            if event.expires_at <= now:
                self._expire(event_id)

    def _expire(self, event_id: str) -> None:
        event = self.state.active.pop(event_id, None)
        handle = self._expiry.pop(event_id, None)
        if self.timers is not None and handle is not None:
            self.timers.cancel(handle)
        if event is None:
            return
        for sink in list(self._sinks):
            try:
                sink.on_feedback_expired(event_id)
            except Exception:
                logger.exception("Feedback sink failed on expiry of %s", event_id)
