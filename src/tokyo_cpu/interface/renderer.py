"""
Display and rendering helpers for the tokyo-cpu harness.

Thought bubbles are printed as they are admitted; a results table is
shown when the game ends.
"""

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..state.schemas import FeedbackCategory, FeedbackEvent, Participant
from ..systems.feedback import FeedbackSink


# Shared console instance
console = Console()

THEME = {
    "primary": "steel_blue",
    "dim": "dim",
    "warning": "dark_goldenrod",
    "danger": "dark_red",
    "accent": "cyan",
}

CATEGORY_STYLES: dict[FeedbackCategory, str] = {
    FeedbackCategory.PLANNING: THEME["dim"],
    FeedbackCategory.CONFIDENT: "green3",
    FeedbackCategory.CONSIDERING: THEME["primary"],
    FeedbackCategory.UNCERTAIN: THEME["warning"],
    FeedbackCategory.PURCHASE: THEME["accent"],
    FeedbackCategory.TURN_END: THEME["dim"],
    FeedbackCategory.DAMAGE: THEME["danger"],
    FeedbackCategory.ELIMINATION: "bold " + THEME["danger"],
}


class RichFeedbackSink(FeedbackSink):
    """Prints admitted thought bubbles to the console."""

    def __init__(self, names: dict[str, str] | None = None, out: Console | None = None):
        self.names = names or {}
        self.console = out or console
        self.shown = 0

    def on_feedback_event(self, event: FeedbackEvent) -> None:
        self.shown += 1
        style = CATEGORY_STYLES.get(event.category, "")
        line = Text()
        line.append(f"{self.names.get(event.entity_id, event.entity_id):>12} ", style="bold")
        line.append("💭 " if not event.is_priority else "❗ ")
        line.append(event.content, style=style)
        self.console.print(line)

    def on_feedback_expired(self, event_id: str) -> None:
        pass


def render_turns(turns: list[dict], names: dict[str, str]) -> Table:
    """One row per completed CPU turn."""
    table = Table(title="CPU turns", header_style=THEME["primary"])
    table.add_column("#", justify="right", style=THEME["dim"])
    table.add_column("Player")
    table.add_column("Rolls", justify="right")
    table.add_column("Decisions")
    table.add_column("Bought")
    table.add_column("Ended", style=THEME["dim"])

    for i, turn in enumerate(turns, 1):
        decisions = ", ".join(
            d["action"] + ("*" if d["status"] != "resolved" else "")
            for d in turn.get("decisions", [])
        )
        table.add_row(
            str(i),
            names.get(turn["participant_id"], turn["participant_id"]),
            str(turn.get("rolls", 0)),
            decisions or "-",
            ", ".join(turn.get("purchases", [])) or "-",
            turn.get("end_reason", ""),
        )
    return table


def render_standings(participants: list[Participant]) -> Table:
    table = Table(title="Standings", header_style=THEME["primary"])
    table.add_column("Player")
    table.add_column("VP", justify="right")
    table.add_column("Health", justify="right")
    table.add_column("Energy", justify="right")
    for p in participants:
        name = p.display_name + (" (out)" if p.eliminated else "")
        table.add_row(
            name,
            str(p.resources.get("vp", 0)),
            str(p.resources.get("health", 0)),
            str(p.resources.get("energy", 0)),
        )
    return table
