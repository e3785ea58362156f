"""
CPU turn orchestrator.

Drives an autonomous participant through its turn on top of an external
rules engine and decision provider:

    IDLE → ROLL_PENDING → AWAITING_DECISION → (ROLL_PENDING | PURCHASING) → ENDING → IDLE

Design principles:
- Orchestrator sequences and delegates. Dice, purchases and turn order
  belong to the engine; move choice belongs to the provider.
- Every step is a discrete callback dispatched by the timer registry, so
  a global pause cancels everything still waiting.
- Each scheduled step carries its session id; a callback that fires for
  a discarded or replaced session does nothing.
- Any stage that cannot make progress degrades toward ENDING. Runtime
  failures are logged, never raised to the host.

Usage:
    orchestrator = CpuTurnOrchestrator(engine, provider)
    orchestrator.attach()      # listen for turn.started / dice.roll_complete

    # Host pause control
    orchestrator.pause()
    orchestrator.resume()      # best-effort re-entry
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Callable, Mapping, TypedDict

from ..engine.base import GameEngine
from ..providers.base import DecisionProvider
from ..state.event_bus import EventBus, EventType, GameEvent, get_event_bus
from ..state.schemas import (
    MAX_ROLLS,
    DecisionAction,
    DecisionOutcome,
    DecisionRequest,
    FeedbackCategory,
    Participant,
    TurnPhase,
    TurnSession,
)
from .decisions import DecisionResolver
from .feedback import FeedbackAdmissionController
from .phrases import PhraseBook
from .purchases import build_purchase_queue
from .timers import TimerRegistry

logger = logging.getLogger(__name__)


# Valid phase transitions — each phase maps to allowed next phases
VALID_TRANSITIONS: dict[TurnPhase, set[TurnPhase]] = {
    TurnPhase.IDLE: {TurnPhase.ROLL_PENDING},
    TurnPhase.ROLL_PENDING: {TurnPhase.AWAITING_DECISION, TurnPhase.PURCHASING, TurnPhase.ENDING},
    TurnPhase.AWAITING_DECISION: {TurnPhase.ROLL_PENDING, TurnPhase.PURCHASING, TurnPhase.ENDING},
    TurnPhase.PURCHASING: {TurnPhase.ENDING},
    TurnPhase.ENDING: {TurnPhase.IDLE},
}


class TurnTimings(TypedDict):
    """Step delays in milliseconds (before speed scaling)."""
    turn_start_delay_ms: float
    settle_delay_ms: float
    next_roll_delay_ms: float
    decision_thinking_ms: float
    thinking_jitter_ms: float
    purchase_delay_ms: float
    end_turn_delay_ms: float
    roll_watchdog_ms: float


DEFAULT_TIMINGS: TurnTimings = {
    "turn_start_delay_ms": 1800,
    "settle_delay_ms": 1200,       # dice animation 600 + post-animation 600
    "next_roll_delay_ms": 400,
    "decision_thinking_ms": 300,
    "thinking_jitter_ms": 100,
    "purchase_delay_ms": 900,
    "end_turn_delay_ms": 2000,
    "roll_watchdog_ms": 5000,      # not speed scaled
}

# Delay multipliers per CPU speed preset (normal = 400ms between rolls)
SPEED_SCALES: dict[str, float] = {
    "slow": 2.0,
    "normal": 1.0,
    "fast": 0.375,
}

CONFIDENT_THRESHOLD = 0.75
CONSIDERING_THRESHOLD = 0.45


class TurnError(Exception):
    """Error during CPU turn processing."""
    pass


class InvalidPhaseError(TurnError):
    """Attempted operation not valid in current phase."""
    def __init__(self, current: TurnPhase, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} during {current.value} phase."
        )


def confidence_category(confidence: float) -> FeedbackCategory:
    """Feedback category for a decision's confidence."""
    if confidence >= CONFIDENT_THRESHOLD:
        return FeedbackCategory.CONFIDENT
    if confidence >= CONSIDERING_THRESHOLD:
        return FeedbackCategory.CONSIDERING
    return FeedbackCategory.UNCERTAIN


class CpuTurnOrchestrator:
    """
    Sequences autonomous turns. Delegates, never resolves.

    Responsibilities:
    - Phase state machine per participant session
    - Bounded reroll loop (at most MAX_ROLLS roll invocations per turn)
    - Purchase queue execution with fresh affordability checks
    - Pause/resume with best-effort re-entry
    - Feedback and bus notifications at each step

    NOT responsible for:
    - Rolling or scoring dice (GameEngine)
    - Choosing moves (DecisionProvider)
    - Pacing feedback (FeedbackAdmissionController)
    """

    def __init__(
        self,
        engine: GameEngine,
        provider: DecisionProvider,
        timers: TimerRegistry | None = None,
        resolver: DecisionResolver | None = None,
        feedback: FeedbackAdmissionController | None = None,
        phrases: PhraseBook | None = None,
        bus: EventBus | None = None,
        timings: Mapping[str, float] | None = None,
        cpu_speed: str = "normal",
        decision_timeout_ms: float | None = None,
        currency: str = "energy",
        rng: random.Random | None = None,
    ):
        if cpu_speed not in SPEED_SCALES:
            raise ValueError(f"Unknown cpu_speed {cpu_speed!r}; expected one of {sorted(SPEED_SCALES)}")

        self.engine = engine
        self.provider = provider
        self.timers = timers or TimerRegistry()
        self.resolver = resolver or DecisionResolver()
        self.feedback = feedback
        self.phrases = phrases or PhraseBook()
        self.timings: TurnTimings = {**DEFAULT_TIMINGS, **(timings or {})}  # type: ignore[typeddict-item]
        self.cpu_speed = cpu_speed
        self.decision_timeout_ms = decision_timeout_ms
        self.currency = currency
        self._bus = bus or get_event_bus()
        self._rng = rng or random.Random()
        self._sessions: dict[str, TurnSession] = {}
        self._decision_tasks: dict[str, asyncio.Task] = {}
        self._attached = False

    # ─── Wiring ──────────────────────────────────────────────────

    def attach(self) -> None:
        """Subscribe to engine and pause notifications."""
        if self._attached:
            return
        self._bus.on(EventType.TURN_STARTED, self._on_turn_started)
        self._bus.on(EventType.ROLL_COMPLETE, self._on_roll_complete)
        self._bus.on(EventType.PARTICIPANT_DAMAGED, self._on_participant_damaged)
        self._bus.on(EventType.PARTICIPANT_ELIMINATED, self._on_participant_eliminated)
        self._bus.on(EventType.GAME_PAUSED, self._on_game_paused)
        self._bus.on(EventType.GAME_RESUMED, self._on_game_resumed)
        self._attached = True

    def detach(self) -> None:
        """Unsubscribe and drop every session without ending turns."""
        self._bus.off(EventType.TURN_STARTED, self._on_turn_started)
        self._bus.off(EventType.ROLL_COMPLETE, self._on_roll_complete)
        self._bus.off(EventType.PARTICIPANT_DAMAGED, self._on_participant_damaged)
        self._bus.off(EventType.PARTICIPANT_ELIMINATED, self._on_participant_eliminated)
        self._bus.off(EventType.GAME_PAUSED, self._on_game_paused)
        self._bus.off(EventType.GAME_RESUMED, self._on_game_resumed)
        self._attached = False
        for session in list(self._sessions.values()):
            self._discard(session, "detached")

    # ─── Introspection ───────────────────────────────────────────

    @property
    def speed_scale(self) -> float:
        return SPEED_SCALES[self.cpu_speed]

    def get_session(self, participant_id: str) -> TurnSession | None:
        return self._sessions.get(participant_id)

    @property
    def active_sessions(self) -> list[TurnSession]:
        return list(self._sessions.values())

    def is_paused(self) -> bool:
        return self.timers.is_paused()

    # ─── Turn Entry ──────────────────────────────────────────────

    def start_turn(self, participant: Participant | None = None) -> TurnSession | None:
        """
        Begin an autonomous turn for participant (default: engine's current).

        Returns:
            The new session, or None when the participant is not eligible
            (human, eliminated, or already mid-turn)
        """
        if participant is None:
            participant = self._current_participant()
        if participant is None or not participant.is_autonomous or participant.eliminated:
            return None

        existing = self._sessions.get(participant.id)
        if existing is not None and existing.is_active:
            logger.debug("Turn already in progress for %s; ignoring", participant.id)
            return None

        session = TurnSession(participant_id=participant.id, rolls_remaining=MAX_ROLLS)
        self._sessions[participant.id] = session
        self._transition(session, TurnPhase.ROLL_PENDING)
        logger.info("CPU turn started for %s (session %s)", participant.id, session.session_id)

        self._say(participant, FeedbackCategory.PLANNING)
        self._schedule(session, self._delay("turn_start_delay_ms"), self._do_roll, "first-roll")
        return session

    # ─── Pause Control ───────────────────────────────────────────

    def pause(self) -> None:
        """Cancel every pending step. In-flight decisions finish but are not applied."""
        cancelled = self.timers.pause_all()
        logger.info("CPU orchestrator paused (%d step(s) cancelled)", cancelled)

    def resume(self) -> None:
        """
        Clear pause and re-drive whatever was interrupted.

        Sessions whose participant is no longer current are discarded; the
        current participant's session continues from its recorded phase;
        an idle autonomous current participant gets a fresh turn. When
        nothing was paused, only the fresh-turn case applies.
        """
        was_paused = self.timers.is_paused()
        self.timers.resume()
        current = self._current_participant()

        if not was_paused:
            if current is not None and current.id not in self._sessions:
                self.start_turn(current)
            return

        for participant_id, session in list(self._sessions.items()):
            if current is None or participant_id != current.id:
                self._discard(session, "participant no longer current")

        if current is None:
            return

        session = self._sessions.get(current.id)
        if session is None:
            self.start_turn(current)
            return

        logger.info("Resuming %s from %s", current.id, session.phase.value)
        if session.phase == TurnPhase.ROLL_PENDING:
            if session.roll_invocations >= session.roll_number:
                # Roll already started; treat the dice as settled
                self._schedule(session, self._delay("settle_delay_ms"), self._decide, "resume-decide")
            else:
                self._schedule(session, self._delay("next_roll_delay_ms"), self._do_roll, "resume-roll")
        elif session.phase == TurnPhase.AWAITING_DECISION:
            task = self._decision_tasks.get(session.session_id)
            if task is None or task.done():
                self._request_decision(session)
        elif session.phase == TurnPhase.PURCHASING:
            self._schedule(session, self._delay("purchase_delay_ms"), self._purchase_next, "resume-purchase")
        elif session.phase == TurnPhase.ENDING:
            self._schedule(session, self._delay("end_turn_delay_ms"), self._finish_turn, "resume-end")

    # ─── Steps ───────────────────────────────────────────────────

    def _do_roll(self, session: TurnSession) -> None:
        if self.timers.is_paused():
            return
        if session.phase != TurnPhase.ROLL_PENDING:
            return

        if session.roll_number > MAX_ROLLS or session.roll_invocations >= MAX_ROLLS:
            logger.warning("Roll limit reached for %s; moving to purchases", session.participant_id)
            self._begin_purchasing(session)
            return

        # Counted and guarded before the call: the engine may report
        # completion synchronously from inside start_roll()
        session.roll_invocations += 1
        session.watchdog = self.timers.schedule(
            self.timings["roll_watchdog_ms"],
            self._step(session, self._on_roll_watchdog, slot="watchdog"),
            label=f"roll-watchdog:{session.session_id}",
        )

        try:
            self.engine.start_roll()
        except Exception as e:
            logger.warning("Engine failed to roll for %s: %s", session.participant_id, e)
            self._begin_ending(session, "engine error")

    def _on_roll_watchdog(self, session: TurnSession) -> None:
        if session.phase != TurnPhase.ROLL_PENDING:
            return
        logger.warning(
            "No roll-complete for %s within %.0fms; ending turn",
            session.participant_id, self.timings["roll_watchdog_ms"],
        )
        self._begin_ending(session, "roll watchdog")

    def _decide(self, session: TurnSession) -> None:
        if session.phase != TurnPhase.ROLL_PENDING:
            return
        self.timers.cancel(session.watchdog)
        session.watchdog = None
        self._transition(session, TurnPhase.AWAITING_DECISION)
        self._request_decision(session)

    def _request_decision(self, session: TurnSession) -> None:
        participant = self._current_participant()
        if participant is None or participant.id != session.participant_id:
            self._begin_ending(session, "participant changed")
            return

        try:
            dice = self.engine.get_dice_state()
            snapshot = self.engine.get_game_snapshot()
        except Exception as e:
            logger.warning("Engine failed to report dice for %s: %s", session.participant_id, e)
            self._begin_ending(session, "engine error")
            return

        session.rolls_remaining = dice.rolls_remaining
        request = DecisionRequest(
            dice_faces=list(dice.faces),
            rolls_remaining=dice.rolls_remaining,
            roll_number=session.roll_number,
            participant=participant,
            game_state=snapshot,
        )

        task = asyncio.get_running_loop().create_task(
            self._resolve_and_continue(session.session_id, session.participant_id, request)
        )
        self._decision_tasks[session.session_id] = task
        task.add_done_callback(lambda t, sid=session.session_id: self._forget_task(sid, t))

    async def _resolve_and_continue(
        self,
        session_id: str,
        participant_id: str,
        request: DecisionRequest,
    ) -> None:
        outcome = await self.resolver.resolve(request, self.provider, self.decision_timeout_ms)

        session = self._sessions.get(participant_id)
        if session is None or session.session_id != session_id:
            logger.debug("Dropping decision for stale session %s", session_id)
            return
        if session.phase != TurnPhase.AWAITING_DECISION:
            return
        if self.timers.is_paused():
            logger.debug("Paused; decision for %s held until resume", participant_id)
            return

        try:
            self._apply_decision(session, outcome, request.participant)
        except TurnError:
            raise
        except Exception:
            logger.exception("Applying decision failed for %s", participant_id)
            self._begin_ending(session, "error")

    def _apply_decision(
        self,
        session: TurnSession,
        outcome: DecisionOutcome,
        participant: Participant,
    ) -> None:
        result = outcome.result
        session.decisions.append(outcome)
        logger.info(
            "%s roll %d: %s (confidence %.2f, %s)",
            session.participant_id, session.roll_number, result.action.value,
            result.confidence, outcome.status,
        )
        self._bus.emit(
            EventType.CPU_DECISION,
            participant_id=session.participant_id,
            session_id=session.session_id,
            roll_number=session.roll_number,
            action=result.action.value,
            keep_indices=sorted(result.keep_indices),
            confidence=result.confidence,
            reason=result.reason,
            status=outcome.status,
        )

        # The selection is authoritative: an empty set releases earlier keeps
        try:
            self.engine.apply_keep_selection(set(result.keep_indices))
        except Exception as e:
            logger.warning("Engine rejected keep selection for %s: %s", session.participant_id, e)

        self._say(
            participant,
            confidence_category(result.confidence),
            roll_number=session.roll_number,
            confidence=result.confidence,
        )

        try:
            dice = self.engine.get_dice_state()
            can_roll = dice.can_roll
            session.rolls_remaining = dice.rolls_remaining
        except Exception as e:
            logger.warning("Engine failed to report dice for %s: %s", session.participant_id, e)
            can_roll = False

        if (
            result.action == DecisionAction.REROLL
            and session.roll_number < MAX_ROLLS
            and session.rolls_remaining > 0
            and can_roll
        ):
            session.roll_number += 1
            self._transition(session, TurnPhase.ROLL_PENDING)
            delay = self._delay("next_roll_delay_ms") + self._thinking_delay()
            self._schedule(session, delay, self._do_roll, "next-roll")
        else:
            self._begin_purchasing(session)

    def _begin_purchasing(self, session: TurnSession) -> None:
        self._transition(session, TurnPhase.PURCHASING)

        if not session.queue_built:
            participant = self._current_participant()
            candidates = []
            if participant is not None and participant.id == session.participant_id:
                try:
                    candidates = self.engine.list_purchase_candidates()
                except Exception as e:
                    logger.warning("Engine failed to list purchases: %s", e)
                session.purchase_queue = build_purchase_queue(
                    self.provider, candidates, participant, self.currency,
                )
            session.queue_built = True

        self._purchase_next(session)

    def _purchase_next(self, session: TurnSession) -> None:
        if self.timers.is_paused():
            return
        if session.phase != TurnPhase.PURCHASING:
            return

        item = session.next_purchase
        if item is None:
            self._begin_ending(session, "purchases complete" if session.purchases else "no purchases")
            return

        participant = self._current_participant()
        if participant is None or participant.id != session.participant_id:
            self._begin_ending(session, "participant changed")
            return

        budget = participant.budget(self.currency)
        if budget < item.cost:
            logger.info(
                "%s cannot afford %s (%d < %d); stopping purchases",
                session.participant_id, item.id, budget, item.cost,
            )
            self._begin_ending(session, "unaffordable")
            return

        try:
            outcome = self.engine.attempt_purchase(session.participant_id, item.id)
        except Exception as e:
            logger.warning("Engine failed purchasing %s: %s", item.id, e)
            outcome = None

        if outcome is None or not outcome.success:
            logger.info(
                "Purchase of %s failed for %s: %s",
                item.id, session.participant_id,
                outcome.error if outcome is not None else "no response",
            )
            self._begin_ending(session, "purchase failed")
            return

        session.purchase_cursor += 1
        session.purchases.append(item.id)
        logger.info("%s bought %s for %d", session.participant_id, item.id, item.cost)
        self._bus.emit(
            EventType.CPU_PURCHASE,
            participant_id=session.participant_id,
            session_id=session.session_id,
            item_id=item.id,
            cost=item.cost,
        )
        self._say(participant, FeedbackCategory.PURCHASE, item=item.name or item.id)
        self._schedule(session, self._delay("purchase_delay_ms"), self._purchase_next, "next-purchase")

    def _begin_ending(self, session: TurnSession, reason: str) -> None:
        if session.phase == TurnPhase.ENDING:
            return
        self._cancel_timers(session)
        self._transition(session, TurnPhase.ENDING)
        session.end_reason = reason
        logger.info("Ending CPU turn for %s: %s", session.participant_id, reason)

        participant = self._current_participant()
        if participant is not None and participant.id == session.participant_id:
            self._say(participant, FeedbackCategory.TURN_END)

        self._schedule(session, self._delay("end_turn_delay_ms"), self._finish_turn, "end-turn")

    def _finish_turn(self, session: TurnSession) -> None:
        if session.phase != TurnPhase.ENDING:
            return
        self._cancel_timers(session)
        self._sessions.pop(session.participant_id, None)
        self._transition(session, TurnPhase.IDLE)
        self._bus.emit(EventType.CPU_TURN_COMPLETED, **session.summary())

        try:
            self.engine.end_turn()
        except Exception as e:
            logger.warning("Engine failed to end turn for %s: %s", session.participant_id, e)

    # ─── Bus Handlers ────────────────────────────────────────────

    def _on_turn_started(self, event: GameEvent) -> None:
        participant = self._current_participant()
        participant_id = event.data.get("participant_id")
        if participant is None or (participant_id and participant.id != participant_id):
            return
        if self.timers.is_paused():
            logger.debug("Paused; %s's turn will start on resume", participant.id)
            return
        self.start_turn(participant)

    def _on_roll_complete(self, event: GameEvent) -> None:
        participant_id = event.data.get("participant_id")
        if participant_id is None:
            current = self._current_participant()
            participant_id = current.id if current is not None else None
        session = self._sessions.get(participant_id) if participant_id else None

        if session is None or session.phase != TurnPhase.ROLL_PENDING:
            return
        if session.roll_invocations < session.roll_number:
            return  # not a roll this session started

        self.timers.cancel(session.watchdog)
        session.watchdog = None
        if self.timers.is_paused():
            return
        self._schedule(session, self._delay("settle_delay_ms"), self._decide, "settle")

    def _on_participant_damaged(self, event: GameEvent) -> None:
        participant_id = event.data.get("participant_id")
        if not participant_id:
            return
        name = event.data.get("name") or participant_id
        self._say_for(
            participant_id,
            FeedbackCategory.DAMAGE,
            name=name,
            amount=event.data.get("amount", 0),
        )

    def _on_participant_eliminated(self, event: GameEvent) -> None:
        participant_id = event.data.get("participant_id")
        if not participant_id:
            return
        name = event.data.get("name") or participant_id
        self._say_for(participant_id, FeedbackCategory.ELIMINATION, name=name)

        session = self._sessions.get(participant_id)
        if session is not None and session.phase not in (TurnPhase.IDLE, TurnPhase.ENDING):
            self._begin_ending(session, "eliminated")

    def _on_game_paused(self, event: GameEvent) -> None:
        self.pause()

    def _on_game_resumed(self, event: GameEvent) -> None:
        self.resume()

    # ─── Helpers ─────────────────────────────────────────────────

    def _transition(self, session: TurnSession, to: TurnPhase) -> None:
        """Transition session to a new phase, enforcing valid transitions."""
        if to not in VALID_TRANSITIONS.get(session.phase, set()):
            raise InvalidPhaseError(session.phase, f"transition to {to.value}")
        previous = session.phase
        session.phase = to
        self._bus.emit(
            EventType.CPU_PHASE_CHANGED,
            participant_id=session.participant_id,
            session_id=session.session_id,
            from_phase=previous.value,
            to_phase=to.value,
            roll_number=session.roll_number,
        )

    def _step(
        self,
        session: TurnSession,
        fn: Callable[[TurnSession], None],
        slot: str = "pending",
    ) -> Callable[[], None]:
        """Wrap fn so it only runs for the session it was scheduled for."""
        session_id = session.session_id
        participant_id = session.participant_id

        def run() -> None:
            current = self._sessions.get(participant_id)
            if current is None or current.session_id != session_id:
                logger.debug("Ignoring stale %s for session %s", fn.__name__, session_id)
                return
            setattr(current, slot, None)
            if self.timers.is_paused():
                return
            try:
                fn(current)
            except TurnError:
                raise
            except Exception:
                logger.exception("CPU step %s failed for %s", fn.__name__, participant_id)
                if current.phase == TurnPhase.ENDING:
                    self._abandon(current)
                else:
                    self._begin_ending(current, "error")

        return run

    def _schedule(
        self,
        session: TurnSession,
        delay_ms: float,
        fn: Callable[[TurnSession], None],
        label: str,
    ) -> None:
        # At most one continuation per session
        self.timers.cancel(session.pending)
        session.pending = self.timers.schedule(
            delay_ms,
            self._step(session, fn),
            label=f"{label}:{session.session_id}",
        )

    def _cancel_timers(self, session: TurnSession) -> None:
        self.timers.cancel(session.pending)
        self.timers.cancel(session.watchdog)
        session.pending = None
        session.watchdog = None

    def _discard(self, session: TurnSession, reason: str) -> None:
        logger.info("Discarding CPU session %s for %s: %s", session.session_id, session.participant_id, reason)
        self._cancel_timers(session)
        self._sessions.pop(session.participant_id, None)
        task = self._decision_tasks.pop(session.session_id, None)
        if task is not None and not task.done():
            task.cancel()

    def _abandon(self, session: TurnSession) -> None:
        """Drop a session whose ending step itself failed."""
        self._cancel_timers(session)
        self._sessions.pop(session.participant_id, None)
        session.phase = TurnPhase.IDLE

    def _forget_task(self, session_id: str, task: asyncio.Task) -> None:
        if self._decision_tasks.get(session_id) is task:
            del self._decision_tasks[session_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Decision task for session %s failed: %s", session_id, task.exception())

    def _current_participant(self) -> Participant | None:
        try:
            return self.engine.get_current_participant()
        except Exception as e:
            logger.warning("Engine failed to report current participant: %s", e)
            return None

    def _delay(self, key: str) -> float:
        return self.timings[key] * self.speed_scale  # type: ignore[literal-required]

    def _thinking_delay(self) -> float:
        jitter = self.timings["thinking_jitter_ms"]
        base = self.timings["decision_thinking_ms"]
        if jitter > 0:
            base += self._rng.uniform(-jitter, jitter)
        return max(0.0, base) * self.speed_scale

    def _say(self, participant: Participant, category: FeedbackCategory, **context: Any) -> None:
        if self.feedback is None:
            return
        lines = self.phrases.render(category, {"name": participant.display_name, **context})
        self.feedback.try_emit(participant.id, category, lines, participant.personality)

    def _say_for(self, participant_id: str, category: FeedbackCategory, **context: Any) -> None:
        if self.feedback is None:
            return
        try:
            participant = self.engine.get_participant(participant_id)
        except Exception as e:
            logger.warning("Engine failed to look up %s: %s", participant_id, e)
            participant = None
        personality = participant.personality if participant is not None else None
        lines = self.phrases.render(category, context)
        self.feedback.try_emit(participant_id, category, lines, personality)
