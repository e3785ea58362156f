"""
Command-line harness for tokyo-cpu.

Plays a game of autonomous participants against the simulated engine
and shows what the CPU orchestrator did. Useful for tuning timings and
feedback pacing, and for checking pause/resume by hand.
"""

import argparse
import asyncio
import json
import logging
import random
import sys
from pathlib import Path
from typing import Any

from ..engine import SimulatedGameEngine, make_participants
from ..providers import create_provider
from ..state.event_bus import EventBus, EventType, GameEvent
from ..state.schemas import Participant
from ..systems import (
    BusFeedbackSink,
    CpuTurnOrchestrator,
    DecisionResolver,
    FeedbackAdmissionController,
    PhraseBook,
    SPEED_SCALES,
    TimerRegistry,
)
from .config import Config, ConfigError, load_config
from .renderer import RichFeedbackSink, console, render_standings, render_turns

logger = logging.getLogger(__name__)


async def run_harness(
    config: Config,
    players: int = 4,
    turns: int = 8,
    seed: int | None = None,
    pause_after_ms: float | None = None,
    resume_after_ms: float | None = None,
    show_feedback: bool = True,
    max_wall_s: float | None = None,
) -> dict[str, Any]:
    """
    Play one simulated game of CPU participants.

    Args:
        config: Loaded configuration
        players: Number of seats (all autonomous)
        turns: Stop after this many turns
        seed: Seed for dice, provider and feedback selection
        pause_after_ms: Pause the game this long after it starts
        resume_after_ms: Resume this long after the pause
        show_feedback: Print thought bubbles as they are admitted
        max_wall_s: Give up after this many seconds

    Returns:
        Result dict: completed turns, decision metrics, standings, log
    """
    speed = config["cpu_speed"]
    scale = SPEED_SCALES[speed]
    bus = EventBus()
    participants = make_participants(players)
    names = {p.id: p.display_name for p in participants}

    engine = SimulatedGameEngine(
        participants,
        seed=seed,
        max_turns=turns,
        roll_ms=config["roll_ms"] * scale,
        bus=bus,
    )
    timers = TimerRegistry()

    feedback = FeedbackAdmissionController(
        timers=timers,
        limits=config["pacing"],
        speed_multiplier=1.0 / scale,
        enabled=config["feedback_enabled"],
        rng=random.Random(seed),
    )
    feedback.add_sink(BusFeedbackSink(bus))
    if show_feedback:
        feedback.add_sink(RichFeedbackSink(names))

    phrases_path = config.get("phrases_path")
    phrases = PhraseBook.from_yaml(phrases_path) if phrases_path else PhraseBook()

    resolver = DecisionResolver(default_timeout_ms=config["decision_timeout_ms"])
    orchestrator = CpuTurnOrchestrator(
        engine,
        create_provider("heuristic", seed=seed),
        timers=timers,
        resolver=resolver,
        feedback=feedback,
        phrases=phrases,
        bus=bus,
        timings=config["timings"],
        cpu_speed=speed,
        currency=config["currency"],
        rng=random.Random(seed),
    )
    orchestrator.attach()

    completed: list[dict] = []
    bus.on(EventType.CPU_TURN_COMPLETED, lambda event: completed.append(dict(event.data)))

    def log_pause(event: GameEvent) -> None:
        logger.info("Game %s", "paused" if event.type == EventType.GAME_PAUSED else "resumed")

    bus.on(EventType.GAME_PAUSED, log_pause)
    bus.on(EventType.GAME_RESUMED, log_pause)

    loop = asyncio.get_running_loop()
    if pause_after_ms is not None:
        loop.call_later(pause_after_ms / 1000.0, lambda: bus.emit(EventType.GAME_PAUSED))
        if resume_after_ms is not None:
            loop.call_later(
                (pause_after_ms + resume_after_ms) / 1000.0,
                lambda: bus.emit(EventType.GAME_RESUMED),
            )

    engine.begin()
    finished = True
    try:
        if max_wall_s is None:
            await engine.finished.wait()
        else:
            await asyncio.wait_for(engine.finished.wait(), timeout=max_wall_s)
    except asyncio.TimeoutError:
        finished = False
        logger.error("Game did not finish within %.0fs", max_wall_s)
    finally:
        orchestrator.detach()
        feedback.clear()

    return {
        "finished": finished,
        "turns": completed,
        "metrics": resolver.metrics.snapshot(),
        "participants": [p.model_dump() for p in engine.participants()],
        "log": list(engine.log),
    }


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="tokyo-cpu - CPU turn orchestration harness")
    parser.add_argument("--players", type=int, default=4, help="Number of CPU players")
    parser.add_argument("--turns", type=int, default=8, help="Turns to play")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible game")
    parser.add_argument(
        "--speed",
        choices=sorted(SPEED_SCALES),
        default=None,
        help="CPU speed preset (overrides config)",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to JSON config")
    parser.add_argument("--pause-after-ms", type=float, default=None, help="Pause the game after this long")
    parser.add_argument("--resume-after-ms", type=float, default=None, help="Resume this long after pausing")
    parser.add_argument("--timeout-ms", type=float, default=None, help="Decision timeout (overrides config)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log orchestrator steps")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(message)s',
    )

    if args.players < 1:
        parser.error("--players must be at least 1")
    if args.resume_after_ms is not None and args.pause_after_ms is None:
        parser.error("--resume-after-ms requires --pause-after-ms")

    try:
        config = load_config(args.config)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        return 2

    if args.speed:
        config["cpu_speed"] = args.speed
    if args.timeout_ms is not None:
        config["decision_timeout_ms"] = args.timeout_ms

    result = asyncio.run(run_harness(
        config,
        players=args.players,
        turns=args.turns,
        seed=args.seed,
        pause_after_ms=args.pause_after_ms,
        resume_after_ms=args.resume_after_ms,
        show_feedback=not args.json,
        max_wall_s=max(60.0, args.turns * 30.0),
    ))

    if args.json:
        print(json.dumps(result, indent=2, default=str))
    else:
        names = {p["id"]: p["name"] or p["id"] for p in result["participants"]}
        console.print()
        console.print(render_turns(result["turns"], names))
        standings = [Participant.model_validate(p) for p in result["participants"]]
        console.print(render_standings(standings))
        metrics = result["metrics"]
        console.print(
            f"[dim]Decisions: {metrics['resolved']} resolved, "
            f"{metrics['timed_out']} timed out, {metrics['errored']} errored[/dim]"
        )
        if not result["finished"]:
            console.print("[yellow]Game stopped before finishing[/yellow]")

    return 0 if result["finished"] else 1


if __name__ == "__main__":
    sys.exit(main())
