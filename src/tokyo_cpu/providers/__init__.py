"""Decision providers for CPU participants."""

import asyncio
from typing import Any

from ..state.schemas import DecisionRequest
from .base import DecisionProvider, RawDecision
from .heuristic import HeuristicDecisionProvider

__all__ = [
    "DecisionProvider",
    "RawDecision",
    "HeuristicDecisionProvider",
    "MockDecisionProvider",
    "create_provider",
]


# -----------------------------------------------------------------------------
# Mock Provider for Testing
# -----------------------------------------------------------------------------

class MockDecisionProvider(DecisionProvider):
    """
    Mock decision provider for testing.

    Allows configuring answers without any real decision logic.
    """

    def __init__(
        self,
        responses: list[Any] | None = None,
        delay_ms: float = 0.0,
        error: Exception | None = None,
    ):
        """
        Initialize mock provider.

        Args:
            responses: Answers to return in order (DecisionResult, dict,
                       legacy string action or None). Cycles through if
                       more calls than responses.
            delay_ms: When > 0, answer asynchronously after this delay.
            error: Raise this instead of answering.
        """
        self._responses = responses if responses is not None else [{"action": "end_roll"}]
        self._call_count = 0
        self.delay_ms = delay_ms
        self.error = error
        self.calls: list[DecisionRequest] = []  # Record of all calls made

    @property
    def name(self) -> str:
        return "mock"

    def make_decision(self, request: DecisionRequest):
        """Return next mock answer (or an awaitable of it)."""
        self.calls.append(request)
        if self.error is not None and self.delay_ms <= 0:
            raise self.error
        answer = self._next()
        if self.delay_ms > 0:
            return self._delayed(answer)
        return answer

    async def _delayed(self, answer: RawDecision) -> RawDecision:
        await asyncio.sleep(self.delay_ms / 1000.0)
        if self.error is not None:
            raise self.error
        return answer

    def _next(self) -> RawDecision:
        if not self._responses:
            return None
        answer = self._responses[self._call_count % len(self._responses)]
        self._call_count += 1
        if isinstance(answer, str):
            return {"action": answer}
        return answer

    def set_responses(self, responses: list[Any]) -> None:
        """Update the list of responses."""
        self._responses = responses
        self._call_count = 0

    def reset(self) -> None:
        """Reset call count and recorded calls."""
        self._call_count = 0
        self.calls.clear()


def create_provider(kind: str = "heuristic", seed: int | None = None, **kwargs: Any) -> DecisionProvider:
    """
    Create a decision provider by name.

    Args:
        kind: "heuristic" or "mock"
        seed: RNG seed (heuristic only)
    """
    if kind == "heuristic":
        return HeuristicDecisionProvider(seed=seed, **kwargs)
    if kind == "mock":
        return MockDecisionProvider(**kwargs)
    raise ValueError(f"Unknown provider: {kind}")
