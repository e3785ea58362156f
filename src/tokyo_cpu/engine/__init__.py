"""Game engine interface and the simulated stand-in."""

from .base import GameEngine
from .simulated import SimulatedGameEngine, make_participants

__all__ = [
    "GameEngine",
    "SimulatedGameEngine",
    "make_participants",
]
