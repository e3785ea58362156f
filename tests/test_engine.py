"""Tests for the event bus and the simulated engine."""

import asyncio
import logging

import pytest

from tokyo_cpu.engine import SimulatedGameEngine, make_participants
from tokyo_cpu.state.event_bus import EventBus, EventType, get_event_bus, reset_event_bus


class TestEventBus:
    """Test publish/subscribe."""

    def test_emit_reaches_listener(self, bus):
        received = []
        bus.on(EventType.CPU_DECISION, received.append)

        event = bus.emit(EventType.CPU_DECISION, action="reroll")

        assert received == [event]
        assert event.data == {"action": "reroll"}
        assert str(event).startswith("[cpu.decision]")

    def test_off_unsubscribes(self, bus):
        received = []
        bus.on(EventType.CPU_DECISION, received.append)
        bus.off(EventType.CPU_DECISION, received.append)
        bus.emit(EventType.CPU_DECISION)
        assert received == []
        assert bus.listener_count(EventType.CPU_DECISION) == 0

    def test_failing_listener_isolated(self, bus, caplog):
        """A raising handler is logged and the rest still run."""
        received = []

        def broken(event):
            raise RuntimeError("listener bug")

        bus.on(EventType.TURN_STARTED, broken)
        bus.on(EventType.TURN_STARTED, received.append)

        with caplog.at_level(logging.ERROR):
            bus.emit(EventType.TURN_STARTED, participant_id="p1")

        assert len(received) == 1
        assert "turn.started" in caplog.text

    def test_history_limit(self):
        bus = EventBus(history_limit=3)
        for i in range(5):
            bus.emit(EventType.CPU_PURCHASE, item_id=str(i))
        assert [e.data["item_id"] for e in bus.get_history()] == ["2", "3", "4"]

    def test_singleton(self):
        assert get_event_bus() is get_event_bus()
        first = get_event_bus()
        reset_event_bus()
        assert get_event_bus() is not first


@pytest.fixture
def engine(bus):
    return SimulatedGameEngine(make_participants(2), seed=4, max_turns=3, roll_ms=0, bus=bus)


class TestSimulatedEngine:
    """Test the stand-in rules."""

    def test_begin_announces_first_player(self, engine, bus):
        engine.begin()
        started = bus.get_history(EventType.TURN_STARTED)
        assert started[0].data["participant_id"] == "p1"

    def test_roll_completes_immediately_without_animation(self, engine, bus):
        engine.start_roll()

        complete = bus.get_history(EventType.ROLL_COMPLETE)
        assert len(complete) == 1
        state = engine.get_dice_state()
        assert state.rolls_remaining == 2
        assert all(state.faces)

    def test_roll_completes_after_animation(self, bus):
        async def scenario():
            engine = SimulatedGameEngine(make_participants(2), seed=4, roll_ms=10, bus=bus)
            engine.start_roll()
            assert engine.get_dice_state().can_roll is False
            await asyncio.sleep(0.05)
            return engine

        engine = asyncio.run(scenario())
        assert len(bus.get_history(EventType.ROLL_COMPLETE)) == 1
        assert engine.get_dice_state().can_roll is True

    def test_kept_dice_do_not_change(self, engine):
        engine.start_roll()
        before = engine.get_dice_state().faces
        engine.apply_keep_selection({0, 1, 2})
        engine.start_roll()
        after = engine.get_dice_state().faces
        assert after[:3] == before[:3]

    def test_no_rolls_left(self, engine):
        for _ in range(3):
            engine.start_roll()
        assert engine.get_dice_state().can_roll is False
        with pytest.raises(RuntimeError):
            engine.start_roll()

    def test_purchase_spends_energy(self, engine):
        engine._participants["p1"].resources["energy"] = 20
        item = engine.list_purchase_candidates()[0]

        outcome = engine.attempt_purchase("p1", item.id)

        assert outcome.success is True
        assert engine.get_current_participant().resources["energy"] == 20 - item.cost
        assert item.id not in [c.id for c in engine.list_purchase_candidates()]

    def test_purchase_rejected_without_energy(self, engine):
        item = engine.list_purchase_candidates()[0]
        outcome = engine.attempt_purchase("p1", item.id)
        assert outcome.success is False
        assert outcome.error == "not enough energy"

    def test_end_turn_advances(self, engine, bus):
        engine.end_turn()
        assert engine.get_current_participant().id == "p2"
        assert bus.get_history(EventType.TURN_STARTED)[-1].data["participant_id"] == "p2"
        assert engine.get_dice_state().rolls_remaining == 3

    def test_game_finishes_after_max_turns(self, engine):
        for _ in range(3):
            engine.end_turn()
        assert engine.game_over is True
        assert engine.finished.is_set()
        assert engine.get_current_participant() is None

    def test_claws_damage_others(self, bus):
        engine = SimulatedGameEngine(make_participants(2), seed=1, roll_ms=0, bus=bus)
        engine._faces = ["claw"] * 6
        engine.end_turn()

        damaged = bus.get_history(EventType.PARTICIPANT_DAMAGED)
        assert damaged[0].data == {"participant_id": "p2", "name": "Meka Dragon", "amount": 6}

    def test_elimination(self, bus):
        engine = SimulatedGameEngine(make_participants(2), seed=1, roll_ms=0, bus=bus)
        engine._participants["p2"].resources["health"] = 3
        engine._faces = ["claw"] * 6
        engine.end_turn()

        eliminated = bus.get_history(EventType.PARTICIPANT_ELIMINATED)
        assert eliminated[0].data["participant_id"] == "p2"
        assert engine.game_over is True

    def test_get_participant(self, engine):
        assert engine.get_participant("p2").name == "Meka Dragon"
        assert engine.get_participant("nobody") is None

    def test_snapshot(self, engine):
        snapshot = engine.get_game_snapshot()
        assert snapshot["turn"] == 1
        assert [p["id"] for p in snapshot["participants"]] == ["p1", "p2"]
        assert len(snapshot["shop"]) == 3

    def test_needs_participants(self, bus):
        with pytest.raises(ValueError):
            SimulatedGameEngine([], bus=bus)
