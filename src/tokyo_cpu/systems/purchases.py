"""
Purchase planning for the CPU purchase phase.

The queue is built once, when the turn enters Purchasing:
    1. the provider's portfolio pick, within budget
    2. at most one defensive buy from whatever budget is left

Affordability is re-checked against fresh resources for each item at
execution time, so the plan is only ever an upper bound.
"""

import logging
from typing import Any

from ..state.schemas import Participant, PurchaseCandidate

logger = logging.getLogger(__name__)


def build_purchase_queue(
    provider: Any,
    candidates: list[PurchaseCandidate],
    participant: Participant,
    currency: str = "energy",
) -> list[PurchaseCandidate]:
    """
    Build the ordered list of items to attempt this turn.

    Provider errors are logged and yield whatever was planned before the
    failure (possibly nothing).
    """
    budget = participant.budget(currency)
    if not candidates or budget <= 0:
        return []

    queue: list[PurchaseCandidate] = []
    try:
        plan = provider.plan_portfolio(list(candidates), participant, budget)
    except Exception as e:
        logger.warning("Portfolio planning failed for %s: %s", participant.id, e)
        return []

    known = {c.id for c in candidates}
    for item in plan or []:
        if item.id in known and item not in queue:
            queue.append(item)

    remaining = budget - sum(item.cost for item in queue)
    defensive = _pick_defensive(provider, candidates, queue, participant, remaining)
    if defensive is not None:
        queue.append(defensive)

    if queue:
        logger.info(
            "Purchase plan for %s: %s (budget %d)",
            participant.id, ", ".join(item.id for item in queue), budget,
        )
    return queue


def _pick_defensive(
    provider: Any,
    candidates: list[PurchaseCandidate],
    queue: list[PurchaseCandidate],
    participant: Participant,
    remaining: int,
) -> PurchaseCandidate | None:
    evaluate = getattr(provider, "evaluate_defensive", None)
    if evaluate is None or remaining <= 0:
        return None

    best: PurchaseCandidate | None = None
    best_value = 0.0
    planned = {item.id for item in queue}
    for item in candidates:
        if item.id in planned or item.cost > remaining:
            continue
        try:
            assessment = evaluate(item, participant)
        except Exception as e:
            logger.warning("Defensive evaluation of %s failed: %s", item.id, e)
            continue
        if assessment is None or not assessment.should_buy:
            continue
        if best is None or assessment.value > best_value:
            best, best_value = item, assessment.value

    if best is not None:
        logger.debug("Defensive buy for %s: %s", participant.id, best.id)
    return best
