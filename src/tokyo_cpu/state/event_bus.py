"""
Event bus for CPU turn notifications.

Carries engine notifications into the orchestrator ("turn started",
"roll complete", damage, elimination) and publishes orchestrator
progress back out (phase changes, decisions, purchases, feedback).

Usage:
    from .event_bus import get_event_bus, EventType

    bus = get_event_bus()
    bus.on(EventType.CPU_DECISION, my_handler)

    # Engine side, once the dice have settled
    bus.emit(EventType.ROLL_COMPLETE, participant_id="p2")

    def my_handler(event: GameEvent):
        print(event.data["action"])
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Game events that can be published."""

    # Engine → orchestrator
    TURN_STARTED = "turn.started"
    ROLL_COMPLETE = "dice.roll_complete"
    PARTICIPANT_DAMAGED = "participant.damaged"
    PARTICIPANT_ELIMINATED = "participant.eliminated"

    # Host pause control
    GAME_PAUSED = "game.paused"
    GAME_RESUMED = "game.resumed"

    # Orchestrator → observers
    CPU_PHASE_CHANGED = "cpu.phase_changed"
    CPU_DECISION = "cpu.decision"
    CPU_PURCHASE = "cpu.purchase"
    CPU_TURN_COMPLETED = "cpu.turn_completed"

    # Feedback side channel
    FEEDBACK_SHOWN = "feedback.shown"
    FEEDBACK_EXPIRED = "feedback.expired"


@dataclass
class GameEvent:
    """
    Event payload for the event bus.

    Attributes:
        type: The event type (from EventType enum)
        data: Event-specific payload as dict
        timestamp: When the event was emitted
    """

    type: EventType
    data: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.type.value}] {self.data}"


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """
    Synchronous event bus.

    Listeners are called immediately on emit(). A listener that raises is
    logged and skipped; the remaining listeners still run.
    """

    def __init__(self, history_limit: int = 100):
        self._listeners: dict[EventType, list[EventHandler]] = {}
        self._history: list[GameEvent] = []
        self._history_limit = history_limit

    def on(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to an event type."""
        if event_type not in self._listeners:
            self._listeners[event_type] = []
        if handler not in self._listeners[event_type]:
            self._listeners[event_type].append(handler)

    def off(self, event_type: EventType, handler: EventHandler) -> None:
        """Unsubscribe from an event type."""
        if event_type in self._listeners and handler in self._listeners[event_type]:
            self._listeners[event_type].remove(handler)

    def emit(self, event_type: EventType, **data) -> GameEvent:
        """
        Emit an event to all subscribers.

        Returns:
            The emitted GameEvent (for chaining/testing)
        """
        event = GameEvent(type=event_type, data=data)

        self._history.append(event)
        if len(self._history) > self._history_limit:
            self._history = self._history[-self._history_limit :]

        # Copy: handlers may subscribe/unsubscribe while we iterate
        for handler in list(self._listeners.get(event_type, [])):
            try:
                handler(event)
            except Exception:
                logger.exception("Error in handler for %s", event_type.value)

        return event

    def clear(self) -> None:
        """Clear all listeners. Useful for testing."""
        self._listeners.clear()

    def get_history(self, event_type: EventType | None = None) -> list[GameEvent]:
        """Recent events, optionally filtered by type."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.type == event_type]

    def listener_count(self, event_type: EventType) -> int:
        """Get number of listeners for an event type."""
        return len(self._listeners.get(event_type, []))


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """
    Get the global event bus instance.

    Returns the same instance across all calls (singleton pattern).
    """
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global event bus. Useful for testing."""
    global _event_bus
    _event_bus = None
