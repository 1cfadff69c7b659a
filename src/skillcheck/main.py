"""
Command line entry point for skillcheck.

    skillcheck list
    skillcheck config thermite -d hard
    skillcheck play code_cracker -d easy --seed 7
"""

import argparse
import asyncio
import json
import logging
import os
import random
import sys
import threading
from typing import List, Optional

from pydantic import ValidationError

from skillcheck.config.minigames import resolve_config
from skillcheck.config.settings import get_settings
from skillcheck.core.clock import Scheduler, SystemClock
from skillcheck.core.events import (
    Event,
    EventType,
    cell_click_event,
    dial_event,
    exit_event,
    rotate_event,
    slot_event,
    submit_event,
)
from skillcheck.errors import UnknownMinigameError
from skillcheck.minigames import MinigameHost, Phase
from skillcheck.minigames.base import BaseMinigame, Effect, EffectKind
from skillcheck.minigames.circuit_solver import CircuitSolverGame
from skillcheck.minigames.thermite import ThermiteGame

logger = logging.getLogger(__name__)

HELP_TEXT = """commands:
  click N            memory_sequence: click cell N (row*size+col)
  rotate R C         circuit_solver: rotate piece at row R, col C
  grab DEG           safe_cracker: grab the dial at pointer angle DEG
  drag DEG           safe_cracker: move the pointer to DEG
  release            safe_cracker: let go of the dial
  slot I COLOR       code_cracker: set slot I (colours: red green blue yellow purple orange cyan pink)
  clear I            code_cracker: clear slot I
  submit             code_cracker: submit the current guess
  select R C         thermite: select cell at row R, col C
  exit               abort the session"""


def setup_logging(debug: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S"
    )


def parse_command(line: str) -> Optional[Event]:
    """Turn one line of player input into an input event.

    Raises:
        ValueError: the line is not a recognised command
    """
    parts = line.split()
    if not parts:
        return None
    command, args = parts[0].lower(), parts[1:]

    if command == "click" and len(args) == 1:
        return cell_click_event(int(args[0]), source="cli")
    if command == "rotate" and len(args) == 2:
        return rotate_event(int(args[0]), int(args[1]), source="cli")
    if command in ("grab", "drag") and len(args) == 1:
        event_type = EventType.DIAL_GRAB if command == "grab" else EventType.DIAL_DRAG
        return dial_event(event_type, angle=float(args[0]), source="cli")
    if command == "release" and not args:
        return dial_event(EventType.DIAL_RELEASE, source="cli")
    if command == "slot" and len(args) == 2:
        return slot_event(int(args[0]), args[1].lower(), source="cli")
    if command == "clear" and len(args) == 1:
        return slot_event(int(args[0]), source="cli")
    if command == "submit" and not args:
        return submit_event(source="cli")
    if command == "select" and len(args) == 2:
        return Event(
            EventType.CELL_CLICK,
            data={"row": int(args[0]), "col": int(args[1])},
            source="cli",
        )
    if command in ("exit", "quit", "esc") and not args:
        return exit_event(source="cli")
    raise ValueError(f"unrecognised command: {line.strip()!r}")


def describe_board(game: BaseMinigame) -> List[str]:
    """Plain-text projection for the terminal."""
    lines: List[str] = []
    if isinstance(game, CircuitSolverGame):
        board = game.board
        for r in range(board.size):
            row = []
            for c in range(board.size):
                piece = board.piece_at(r, c)
                names = "".join(d.name[0] for d in sorted(piece.connections, key=lambda d: d.name))
                mark = "*" if piece.powered else " "
                row.append(f"{names or '.':>4}{mark}")
            lines.append(" ".join(row))
    elif isinstance(game, ThermiteGame) and game.phase == Phase.MEMORIZE:
        size = game.config.grid_size
        for r in range(size):
            lines.append(" ".join("#" if (r, c) in game.pattern else "." for c in range(size)))
    return lines


def _print_effect(effect: Effect) -> None:
    if effect.kind in (EffectKind.TIMER, EffectKind.SOUND):
        return
    if effect.kind == EffectKind.HIGHLIGHT and effect.data.get("lit"):
        print(f"  tile {effect.data['cell']} lights up")
    elif effect.kind == EffectKind.FEEDBACK:
        print(f"  correct={effect.data['correct']} misplaced={effect.data['misplaced']}")
    elif effect.kind == EffectKind.ZONE_FOUND:
        print(f"  zone found ({effect.data['found']})")
    elif effect.kind == EffectKind.PHASE_CHANGED:
        print(f"  phase: {effect.data['new']}")
    elif effect.kind == EffectKind.REJECTED:
        print(f"  rejected: {effect.data['reason']}")


async def play(minigame_type: str, difficulty: str, duration: Optional[int], seed: Optional[int]) -> bool:
    """Run one interactive session on the asyncio scheduler."""
    settings = get_settings()
    scheduler = Scheduler(SystemClock(), settings.tick_interval_ms)
    host = MinigameHost(scheduler=scheduler, settings=settings, rng=random.Random(seed))
    loop = asyncio.get_running_loop()
    done: asyncio.Future = loop.create_future()
    lines: asyncio.Queue = asyncio.Queue()

    def on_result(success: bool, data: dict) -> None:
        if not done.done():
            done.set_result((success, data))

    def on_effect(effect: Effect) -> None:
        _print_effect(effect)
        game = host.current_game
        if effect.kind == EffectKind.PHASE_CHANGED and game is not None:
            for line in describe_board(game):
                print(f"  {line}")

    def read_stdin() -> None:
        # Daemon thread: a blocked readline must not hold up interpreter exit
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, "")
        except RuntimeError:
            return

    host.set_on_effect(on_effect)
    ok, error = host.start_minigame(minigame_type, difficulty, duration, on_result)
    if not ok:
        print(f"cannot start: {error}")
        return False

    print(HELP_TEXT)
    threading.Thread(target=read_stdin, name="stdin-reader", daemon=True).start()
    ticker = asyncio.create_task(scheduler.run())
    try:
        while not done.done():
            reader = asyncio.ensure_future(lines.get())
            finished, _ = await asyncio.wait({reader, done}, return_when=asyncio.FIRST_COMPLETED)
            if done in finished:
                reader.cancel()
                break
            line = reader.result()
            if not line:
                host.exit()
                break
            try:
                event = parse_command(line)
            except ValueError as e:
                print(e)
                continue
            if event is None:
                continue
            host.handle_input(event)
            game = host.current_game
            if game is not None and not game.is_terminal:
                for board_line in describe_board(game):
                    print(f"  {board_line}")
                print(game.get_lcd_text())
        success, data = await done
    finally:
        host.shutdown()
        await ticker

    print(json.dumps({"success": success, "data": data}))
    return success


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="skillcheck", description="Timed skill minigames")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="list available minigames")

    config_cmd = sub.add_parser("config", help="print the resolved configuration")
    config_cmd.add_argument("minigame")
    config_cmd.add_argument("-d", "--difficulty", default=None)
    config_cmd.add_argument("--duration", type=int, default=None)

    play_cmd = sub.add_parser("play", help="play a minigame in the terminal")
    play_cmd.add_argument("minigame")
    play_cmd.add_argument("-d", "--difficulty", default=None)
    play_cmd.add_argument("--duration", type=int, default=None)
    play_cmd.add_argument("--seed", type=int, default=None)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    from dotenv import load_dotenv

    load_dotenv()

    args = build_parser().parse_args(argv)
    debug = args.debug or os.getenv("SKILLCHECK_DEBUG", "false").lower() == "true"
    setup_logging(debug)
    settings = get_settings()

    if args.command == "list":
        for info in MinigameHost(settings=settings).describe_minigames():
            print(f"{info['name']:<16} {info['description']}")
        return 0

    difficulty = args.difficulty or settings.default_difficulty

    if args.command == "config":
        try:
            config = resolve_config(args.minigame, difficulty, args.duration, settings.sound_enabled)
        except (UnknownMinigameError, ValidationError) as e:
            print(e, file=sys.stderr)
            return 2
        print(json.dumps(config.model_dump(by_alias=True), indent=2))
        return 0

    try:
        success = asyncio.run(play(args.minigame, difficulty, args.duration, args.seed))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
