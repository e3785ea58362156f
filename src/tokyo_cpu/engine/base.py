"""
Game engine abstraction.

The orchestrator never resolves dice, combat or occupancy itself. It
drives the rules engine through this interface and learns about
asynchronous progress (the dice settling, damage, eliminations) from the
event bus.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..state.schemas import DiceState, Participant, PurchaseCandidate, PurchaseOutcome


class GameEngine(ABC):
    """
    Abstract base class for game engines.

    All engines must implement:
    - get_current_participant(): Whose turn it is
    - start_roll(): Begin a roll; completion is announced with ROLL_COMPLETE
    - get_dice_state(): Current tray
    - apply_keep_selection(): Mark dice to keep for the next roll
    - list_purchase_candidates(): What is in the shop
    - attempt_purchase(): Buy an item
    - end_turn(): Hand the turn to the next participant
    """

    @abstractmethod
    def get_current_participant(self) -> Participant | None:
        """Participant whose turn it is, with fresh resources."""
        pass

    @abstractmethod
    def start_roll(self) -> None:
        """
        Roll every unkept die.

        Returns immediately; the engine emits ROLL_COMPLETE on the event
        bus once the dice have settled.
        """
        pass

    @abstractmethod
    def get_dice_state(self) -> DiceState:
        pass

    @abstractmethod
    def apply_keep_selection(self, indices: set[int]) -> None:
        """Keep the dice at indices for the next roll (others are rerolled)."""
        pass

    @abstractmethod
    def list_purchase_candidates(self) -> list[PurchaseCandidate]:
        pass

    @abstractmethod
    def attempt_purchase(self, participant_id: str, item_id: str) -> PurchaseOutcome | None:
        """
        Buy item_id for participant_id.

        Returns:
            PurchaseOutcome, or None when the engine could not answer
            (treated as a failure)
        """
        pass

    @abstractmethod
    def end_turn(self) -> None:
        pass

    def get_participant(self, participant_id: str) -> Participant | None:
        """Look up any participant; the default only knows the current one."""
        current = self.get_current_participant()
        if current is not None and current.id == participant_id:
            return current
        return None

    def get_game_snapshot(self) -> dict[str, Any]:
        """Read-only view of the game handed to decision providers."""
        return {}
