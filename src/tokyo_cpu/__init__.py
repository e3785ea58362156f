"""
tokyo-cpu: autonomous turn orchestration for dice-and-shop board games.

Drives CPU participants through roll, decide, reroll, purchase and
end-turn steps on top of an external rules engine and decision provider.
"""

__version__ = "0.1.0"
