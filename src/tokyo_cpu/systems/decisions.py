"""
Decision resolver — turns a provider's answer into a safe decision.

A CPU participant must never stall on a slow or broken provider. Every
call is raced against a timeout; on timeout or failure a deterministic
fallback is substituted:

    rolls remain  → REROLL
    no rolls left → END_ROLL

Whatever comes back is normalized so the orchestrator only ever sees the
three canonical actions. The outcome is returned as a DecisionOutcome
whose status records which path produced it.
"""

import asyncio
import inspect
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from ..providers.base import DecisionProvider
from ..state.schemas import (
    DecisionAction,
    DecisionOutcome,
    DecisionRequest,
    DecisionResult,
)

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT_MS = 1200
FALLBACK_CONFIDENCE = 0.2
DEFAULT_CONFIDENCE = 0.5

# Legacy spellings seen from older providers, matched case-insensitively
LEGACY_ACTIONS: dict[str, DecisionAction] = {
    "reroll": DecisionAction.REROLL,
    "re-roll": DecisionAction.REROLL,
    "re_roll": DecisionAction.REROLL,
    "roll": DecisionAction.REROLL,
    "roll_again": DecisionAction.REROLL,
    "keep": DecisionAction.KEEP,
    "hold": DecisionAction.KEEP,
    "keep_dice": DecisionAction.KEEP,
    "end_roll": DecisionAction.END_ROLL,
    "endroll": DecisionAction.END_ROLL,
    "end-roll": DecisionAction.END_ROLL,
    "end": DecisionAction.END_ROLL,
    "stop": DecisionAction.END_ROLL,
    "done": DecisionAction.END_ROLL,
    "pass": DecisionAction.END_ROLL,
    "resolve": DecisionAction.END_ROLL,
}

_MISSING = "<missing>"


@dataclass
class DecisionMetrics:
    """Outcome counters, for observability only."""
    resolved: int = 0
    timed_out: int = 0
    errored: int = 0

    @property
    def total(self) -> int:
        return self.resolved + self.timed_out + self.errored

    def snapshot(self) -> dict[str, int]:
        return {
            "resolved": self.resolved,
            "timed_out": self.timed_out,
            "errored": self.errored,
        }


class DecisionResolver:
    """
    Races a decision provider against a timeout and validates its answer.

    resolve() always settles and never raises (cancellation of the caller
    aside).
    """

    def __init__(
        self,
        default_timeout_ms: float = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], float] | None = None,
    ):
        self.default_timeout_ms = default_timeout_ms
        self.metrics = DecisionMetrics()
        self._clock = clock or (lambda: time.monotonic() * 1000.0)
        self._warned_actions: set[str] = set()

    async def resolve(
        self,
        request: DecisionRequest,
        provider: DecisionProvider,
        timeout_ms: float | None = None,
    ) -> DecisionOutcome:
        """
        Get a validated decision for request.

        Args:
            request: Dice and context for this roll
            provider: Who to ask
            timeout_ms: Budget for the provider; defaults to default_timeout_ms

        Returns:
            DecisionOutcome with status "resolved", "timed_out" or "errored"
        """
        budget = self.default_timeout_ms if timeout_ms is None else timeout_ms
        started = self._clock()

        try:
            raw = provider.make_decision(request)
            if inspect.isawaitable(raw):
                task = asyncio.ensure_future(raw)
                try:
                    done, _ = await asyncio.wait({task}, timeout=max(0.0, budget) / 1000.0)
                except asyncio.CancelledError:
                    task.cancel()
                    raise
                if not done:
                    task.cancel()
                    self.metrics.timed_out += 1
                    logger.warning(
                        "Decision provider %s timed out after %.0fms; using fallback",
                        _provider_name(provider), budget,
                    )
                    return self._fallback(request, "timed_out", started, f"no answer within {budget:.0f}ms")
                # A TimeoutError raised by the provider itself is an error
                raw = task.result()
        except Exception as e:
            self.metrics.errored += 1
            logger.warning("Decision provider %s failed: %s; using fallback", _provider_name(provider), e)
            return self._fallback(request, "errored", started, f"{type(e).__name__}: {e}")

        self.metrics.resolved += 1
        return DecisionOutcome(
            result=self.normalize(raw, request),
            status="resolved",
            elapsed_ms=self._clock() - started,
        )

    def fallback_result(self, request: DecisionRequest, tag: str) -> DecisionResult:
        """Deterministic low-confidence substitute decision."""
        action = DecisionAction.REROLL if request.rolls_remaining > 0 else DecisionAction.END_ROLL
        return DecisionResult(
            action=action,
            keep_indices=set(),
            confidence=FALLBACK_CONFIDENCE,
            reason=f"fallback:{tag}",
        )

    def _fallback(
        self,
        request: DecisionRequest,
        status: str,
        started: float,
        error: str,
    ) -> DecisionOutcome:
        tag = "timeout" if status == "timed_out" else "error"
        return DecisionOutcome(
            result=self.fallback_result(request, tag),
            status=status,
            elapsed_ms=self._clock() - started,
            error=error,
        )

    # ─── Normalization ───────────────────────────────────────────

    def normalize(self, raw: Any, request: DecisionRequest) -> DecisionResult:
        """
        Coerce a provider answer into a valid DecisionResult.

        Accepts a DecisionResult, a dict (canonical or legacy keys) or any
        object exposing the same attribute names.
        """
        if raw is None:
            return DecisionResult(
                action=self.normalize_action(None),
                confidence=DEFAULT_CONFIDENCE,
                reason="no decision returned",
            )

        if isinstance(raw, (str, DecisionAction)):
            return DecisionResult(
                action=self.normalize_action(raw),
                confidence=DEFAULT_CONFIDENCE,
            )

        if isinstance(raw, dict):
            action = raw.get("action")
            keep = _first_present(raw, "keep_indices", "keepIndices", "keepDice")
            confidence = raw.get("confidence")
            reason = raw.get("reason") or raw.get("rationale") or ""
        else:
            action = getattr(raw, "action", None)
            keep = getattr(raw, "keep_indices", None)
            confidence = getattr(raw, "confidence", None)
            reason = getattr(raw, "reason", "") or ""

        return DecisionResult(
            action=self.normalize_action(action),
            keep_indices=_valid_indices(keep, len(request.dice_faces)),
            confidence=_clamp_confidence(confidence),
            reason=str(reason),
        )

    def normalize_action(self, value: Any) -> DecisionAction:
        """
        Map a raw action onto the canonical enum.

        Missing or unknown values become END_ROLL; each distinct unknown
        value is warned about once per resolver.
        """
        if isinstance(value, DecisionAction):
            return value

        key = str(value).strip().lower() if value is not None else ""
        if key in LEGACY_ACTIONS:
            return LEGACY_ACTIONS[key]

        warn_key = key or _MISSING
        if warn_key not in self._warned_actions:
            self._warned_actions.add(warn_key)
            logger.warning("Unknown decision action %r; coercing to end_roll", value)
        return DecisionAction.END_ROLL

    def reset_warnings(self) -> None:
        """Forget which unknown actions have already been warned about."""
        self._warned_actions.clear()


def _first_present(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _valid_indices(value: Any, dice_count: int) -> set[int]:
    """Keep only integer positions that exist on the tray."""
    if value is None or isinstance(value, (str, bytes)):
        return set()
    if not isinstance(value, Iterable):
        return set()
    indices = set()
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            continue
        if 0 <= item < dice_count:
            indices.add(item)
    return indices


def _clamp_confidence(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(number):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, number))


def _provider_name(provider: Any) -> str:
    return getattr(provider, "name", None) or type(provider).__name__
