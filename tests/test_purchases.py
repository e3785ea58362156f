"""Tests for purchase planning and the reference providers."""

import asyncio

import pytest

from tokyo_cpu.providers import HeuristicDecisionProvider, MockDecisionProvider, create_provider
from tokyo_cpu.state.schemas import (
    DecisionAction,
    DecisionRequest,
    DefensiveAssessment,
    Participant,
    PurchaseCandidate,
)
from tokyo_cpu.systems import build_purchase_queue


def card(item_id: str, cost: int, priority: float = 1.0) -> PurchaseCandidate:
    return PurchaseCandidate(id=item_id, name=item_id.title(), cost=cost, priority=priority)


def player(energy: int, **kwargs) -> Participant:
    return Participant(id="cpu", resources={"energy": energy}, **kwargs)


class DefensiveProvider(MockDecisionProvider):
    """Wants to deny everything, valuing cheaper cards more."""

    def evaluate_defensive(self, candidate, participant):
        return DefensiveAssessment(should_buy=True, value=10 - candidate.cost, reason="deny")


class TestPortfolio:
    """Test the default greedy portfolio."""

    def test_greedy_by_priority_within_budget(self):
        candidates = [card("a", 3, 3), card("b", 5, 2), card("c", 2, 1)]
        plan = MockDecisionProvider().plan_portfolio(candidates, player(6), 6)
        assert [c.id for c in plan] == ["a", "c"]

    def test_ties_prefer_cheaper(self):
        candidates = [card("dear", 4, 2), card("cheap", 2, 2)]
        plan = MockDecisionProvider().plan_portfolio(candidates, player(4), 4)
        assert [c.id for c in plan] == ["cheap"]


class TestBuildQueue:
    """Test queue construction."""

    def test_queue_from_portfolio(self):
        candidates = [card("a", 3, 3), card("b", 5, 2), card("c", 2, 1)]
        queue = build_purchase_queue(MockDecisionProvider(), candidates, player(6))
        assert [c.id for c in queue] == ["a", "c"]

    def test_no_budget_no_queue(self):
        queue = build_purchase_queue(MockDecisionProvider(), [card("a", 1)], player(0))
        assert queue == []

    def test_one_defensive_from_remaining_budget(self):
        candidates = [card("a", 3, 3), card("b", 2, 0), card("c", 1, 0), card("d", 9, 0)]

        class OnlyA(DefensiveProvider):
            def plan_portfolio(self, candidates, participant, budget):
                return [candidates[0]]

        queue = build_purchase_queue(OnlyA(), candidates, player(6))

        # a from the portfolio, then the best-valued affordable denial (c)
        assert [c.id for c in queue] == ["a", "c"]

    def test_planning_error_yields_empty(self):
        class Broken(MockDecisionProvider):
            def plan_portfolio(self, candidates, participant, budget):
                raise RuntimeError("no idea")

        assert build_purchase_queue(Broken(), [card("a", 1)], player(5)) == []

    def test_unknown_planned_items_dropped(self):
        class Inventive(MockDecisionProvider):
            def plan_portfolio(self, candidates, participant, budget):
                return [card("ghost", 1), candidates[0]]

        queue = build_purchase_queue(Inventive(), [card("a", 1)], player(5))
        assert [c.id for c in queue] == ["a"]

    def test_custom_currency(self):
        participant = Participant(id="cpu", resources={"gold": 4})
        queue = build_purchase_queue(MockDecisionProvider(), [card("a", 3)], participant, currency="gold")
        assert [c.id for c in queue] == ["a"]


class TestHeuristicProvider:
    """Test the seeded harness provider."""

    def request(self, faces, rolls_remaining=2, personality=None):
        return DecisionRequest(
            dice_faces=faces,
            rolls_remaining=rolls_remaining,
            participant=Participant(id="cpu", personality=personality or {}),
        )

    def test_keeps_personality_face(self):
        provider = HeuristicDecisionProvider(seed=1)
        result = provider.make_decision(self.request(
            ["claw", "1", "claw", "energy", "2", "3"],
            personality={"aggressive": 2},
        ))
        assert result.keep_indices == {0, 2}

    def test_ends_without_rolls(self):
        provider = HeuristicDecisionProvider(seed=1)
        result = provider.make_decision(self.request(["1"] * 6, rolls_remaining=0))
        assert result.action == DecisionAction.END_ROLL

    def test_ends_when_all_kept(self):
        provider = HeuristicDecisionProvider(seed=1)
        result = provider.make_decision(self.request(["energy"] * 6, personality={"greedy": 1}))
        assert result.action == DecisionAction.END_ROLL

    def test_async_when_thinking(self):
        provider = HeuristicDecisionProvider(seed=1, think_ms=5)
        result = asyncio.run(provider.make_decision(self.request(["1"] * 6)))
        assert 0.0 <= result.confidence <= 1.0

    def test_defensive_only_for_threats(self):
        provider = HeuristicDecisionProvider(seed=1)
        assert provider.evaluate_defensive(card("weak", 3, 1.0), player(5)).should_buy is False
        assert provider.evaluate_defensive(card("nova", 7, 4.5), player(5)).should_buy is True


class TestFactory:
    """Test create_provider."""

    def test_known_kinds(self):
        assert isinstance(create_provider("heuristic", seed=3), HeuristicDecisionProvider)
        assert isinstance(create_provider("mock"), MockDecisionProvider)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            create_provider("oracle")
