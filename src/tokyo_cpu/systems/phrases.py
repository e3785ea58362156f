"""
Phrase book for CPU feedback ("thought bubble") content.

Lines are Jinja2 templates grouped by feedback category and personality
tone. Built-in defaults can be overridden per category from a YAML file:

    purchase:
      greedy:
        - "{{ name }} can't resist {{ item }}."
      neutral:
        - "{{ item }} will do nicely."

Rendering returns tone → lines so the admission controller can weight
tones by the participant's personality.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from jinja2 import Environment, StrictUndefined, TemplateError

from ..state.schemas import FeedbackCategory

logger = logging.getLogger(__name__)


NEUTRAL_TONE = "neutral"

DEFAULT_PHRASES: dict[str, dict[str, list[str]]] = {
    FeedbackCategory.PLANNING.value: {
        "neutral": [
            "{{ name }} sizes up the board.",
            "Time to see what the dice say.",
            "{{ name }} cracks its knuckles.",
        ],
        "aggressive": [
            "Someone is getting smashed this turn.",
            "Claws first, questions later.",
        ],
        "cautious": [
            "Careful now. Health matters.",
            "{{ name }} weighs every option.",
        ],
        "greedy": [
            "Energy, energy, energy.",
            "The shop looks tempting today.",
        ],
    },
    FeedbackCategory.CONFIDENT.value: {
        "neutral": [
            "Those dice will do nicely.",
            "Exactly what I wanted.",
            "Roll {{ roll_number }} looks great.",
        ],
        "aggressive": ["Perfect. Time to hit hard."],
        "greedy": ["That's a lot of energy."],
    },
    FeedbackCategory.CONSIDERING.value: {
        "neutral": [
            "Hmm, could be better.",
            "Worth another look.",
            "Not bad, not great.",
        ],
        "cautious": ["Let's not get greedy."],
    },
    FeedbackCategory.UNCERTAIN.value: {
        "neutral": [
            "No idea where this is going.",
            "Let's just roll and hope.",
            "Well... that happened.",
        ],
        "aggressive": ["Whatever. Roll again!"],
    },
    FeedbackCategory.PURCHASE.value: {
        "neutral": [
            "{{ item }} is mine.",
            "Bought {{ item }}.",
        ],
        "greedy": ["{{ item }}! Worth every cube."],
        "cautious": ["{{ item }} should keep me safe."],
    },
    FeedbackCategory.TURN_END.value: {
        "neutral": [
            "Your move.",
            "That'll do for now.",
            "{{ name }} settles in.",
        ],
        "aggressive": ["Come at me."],
    },
    FeedbackCategory.DAMAGE.value: {
        "neutral": [
            "Ouch!",
            "That one hurt.",
            "{{ name }} takes {{ amount }} damage.",
        ],
        "aggressive": ["You'll pay for that!"],
    },
    FeedbackCategory.ELIMINATION.value: {
        "neutral": [
            "{{ name }} is out!",
            "Farewell, {{ name }}.",
        ],
    },
}


class PhraseBook:
    """
    Renders feedback lines for a category.

    Templates are compiled once and cached; a line that fails to render
    (missing variable, syntax error) is skipped with a warning.
    """

    def __init__(self, phrases: dict[str, dict[str, list[str]]] | None = None):
        self._phrases = {
            category: {tone: list(lines) for tone, lines in tones.items()}
            for category, tones in (phrases or DEFAULT_PHRASES).items()
        }
        self._env = Environment(undefined=StrictUndefined, autoescape=False)
        self._cache: dict[str, Any] = {}

    @classmethod
    def from_yaml(cls, path: Path | str) -> "PhraseBook":
        """
        Load overrides from YAML on top of the built-in defaults.

        Categories present in the file replace the defaults for that
        category; everything else keeps the built-in lines.
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Phrase file {path} must contain a mapping")

        merged = {category: dict(tones) for category, tones in DEFAULT_PHRASES.items()}
        for category, tones in data.items():
            if isinstance(tones, list):
                tones = {NEUTRAL_TONE: tones}
            if not isinstance(tones, dict):
                logger.warning("Ignoring phrases for %s: expected mapping or list", category)
                continue
            merged[str(category)] = {
                str(tone): [str(line) for line in (lines or [])]
                for tone, lines in tones.items()
            }
        return cls(merged)

    def categories(self) -> list[str]:
        return sorted(self._phrases)

    def render(
        self,
        category: FeedbackCategory | str,
        context: dict[str, Any] | None = None,
    ) -> dict[str, list[str]]:
        """
        Render every line of category with context.

        Returns:
            Mapping of tone to rendered lines (tones with no renderable
            lines are dropped)
        """
        key = category.value if isinstance(category, FeedbackCategory) else str(category)
        context = context or {}
        rendered: dict[str, list[str]] = {}
        for tone, lines in self._phrases.get(key, {}).items():
            out = []
            for line in lines:
                text = self._render_line(line, context)
                if text:
                    out.append(text)
            if out:
                rendered[tone] = out
        return rendered

    def _render_line(self, line: str, context: dict[str, Any]) -> str | None:
        try:
            template = self._cache.get(line)
            if template is None:
                template = self._env.from_string(line)
                self._cache[line] = template
            return template.render(**context).strip()
        except TemplateError as e:
            logger.warning("Skipping phrase %r: %s", line, e)
            return None
