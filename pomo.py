#!/usr/bin/env -S uv run
# /// script
# dependencies = ["rich"]
# ///

"""
pomo.py – terminal pomodoro timer with a live progress bar and clock.

Usage:
    pomo [-t MINUTES | -s SECONDS] [-m TEXT] [-w CELLS] [--utc-offset HOURS]
"""

from __future__ import annotations

import abc
import argparse
import math
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Callable, NamedTuple

from rich.console import Console
from rich.control import Control, ControlType
from rich.markup import escape
from rich.text import Text

DEFAULT_MINUTES = 25
DEFAULT_BAR_WIDTH = 30
DEFAULT_MESSAGE = "Time's up!"
DEFAULT_UTC_OFFSET = -4.0  # EDT; fixed, no DST handling

UPDATE_INTERVAL = 0.5  # seconds between repaints
POLL_INTERVAL = 0.05

BANNER = "WORKING COMMENCE NOW!!!"
BAR_GLYPHS = (" ", "▏", "▎", "▍", "▌", "▋", "▊", "▉", "█")
STEPS_PER_CELL = len(BAR_GLYPHS) - 1

console = Console()
err_console = Console(stderr=True, highlight=False)


@dataclass(frozen=True)
class TimerConfig:
    duration_seconds: float = DEFAULT_MINUTES * 60.0
    completion_message: str = DEFAULT_MESSAGE
    bar_width: int = DEFAULT_BAR_WIDTH
    utc_offset_hours: float = DEFAULT_UTC_OFFSET

    def __post_init__(self) -> None:
        if not math.isfinite(self.duration_seconds) or self.duration_seconds <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration_seconds}")
        if self.bar_width <= 0:
            raise ValueError(f"Bar width must be positive, got {self.bar_width}")


# ── formatting ───────────────────────────────────────────────────────────
def progress_bar(fill_ratio: float, width: int = DEFAULT_BAR_WIDTH) -> str:
    """
    Return the inside of the bar: *width* cells, each one of 9 fill levels.
    The cell right after the full ones shows the partial level; the rest are blank.
    """
    fill_ratio = min(max(fill_ratio, 0.0), 1.0)
    total_steps = int(fill_ratio * width * STEPS_PER_CELL)
    full_blocks, partial_level = divmod(total_steps, STEPS_PER_CELL)

    cells = []
    for i in range(width):
        if i < full_blocks:
            cells.append(BAR_GLYPHS[-1])
        elif i == full_blocks:
            cells.append(BAR_GLYPHS[partial_level])
        else:
            cells.append(" ")
    return "".join(cells)


def format_remaining(seconds_left: float) -> str:
    m, s = divmod(int(max(seconds_left, 0)), 60)
    return f"{m:02d}:{s:02d}"


def format_clock(moment: datetime, with_seconds: bool = False) -> str:
    """12-hour clock with AM/PM, independent of the current locale."""
    hour_12 = moment.hour % 12 or 12
    am_pm = "PM" if moment.hour >= 12 else "AM"
    if with_seconds:
        return f"{hour_12:02d}:{moment.minute:02d}:{moment.second:02d} {am_pm}"
    return f"{hour_12:02d}:{moment.minute:02d} {am_pm}"


def wall_clock(utc_offset_hours: float = DEFAULT_UTC_OFFSET) -> datetime:
    return datetime.now(timezone(timedelta(hours=utc_offset_hours)))


def bar_line(bar: str, percent: float) -> Text:
    return Text.assemble("[", (bar, "green"), f"] {percent:.1f}%")


class RenderState(NamedTuple):
    elapsed_seconds: float
    fill_ratio: float
    remaining_seconds: float
    wall_clock: datetime

    @classmethod
    def at(cls, elapsed: float, duration: float, moment: datetime) -> RenderState:
        ratio = min(max(elapsed / duration, 0.0), 1.0)
        return cls(elapsed, ratio, max(duration - elapsed, 0.0), moment)

    def lines(self, width: int = DEFAULT_BAR_WIDTH) -> tuple[Text, Text]:
        status = Text(
            f"Time: {format_clock(self.wall_clock)} | "
            f"{format_remaining(self.remaining_seconds)} left"
        )
        return status, bar_line(progress_bar(self.fill_ratio, width), self.fill_ratio * 100)


def final_lines(moment: datetime, width: int = DEFAULT_BAR_WIDTH) -> tuple[Text, Text]:
    # always 00:00 and a full bar
    status = Text(f"Time: {format_clock(moment, with_seconds=True)} | 00:00 left")
    return status, bar_line(BAR_GLYPHS[-1] * width, 100.0)


# ── terminal output ──────────────────────────────────────────────────────
class TerminalRenderer(abc.ABC):
    """Two reserved lines below a banner, repainted in place."""

    rows = 2

    @abc.abstractmethod
    def begin(self, banner: str) -> None: ...

    @abc.abstractmethod
    def clear_reserved_region(self) -> None: ...

    @abc.abstractmethod
    def write_line(self, row: int, text: Text) -> None: ...

    @abc.abstractmethod
    def write_message(self, text: str) -> None: ...


class ConsoleRenderer(TerminalRenderer):
    """Repaints through a rich console using cursor-movement control codes."""

    def __init__(self, console: Console, rows: int = 2):
        self.console = console
        self.rows = rows
        self._row = rows  # cursor sits on the line below the region

    def _move_to(self, row: int) -> None:
        if row != self._row:
            self.console.control(Control.move(0, row - self._row))
            self._row = row

    def _erase_line(self) -> None:
        self.console.control(Control((ControlType.ERASE_IN_LINE, 2)))

    def begin(self, banner: str) -> None:
        self.console.print(banner, style="bold yellow", highlight=False)
        self.console.line(self.rows)
        self._row = self.rows

    def clear_reserved_region(self) -> None:
        for row in range(self.rows):
            self._move_to(row)
            self._erase_line()
        self._move_to(0)

    def write_line(self, row: int, text: Text) -> None:
        if not 0 <= row < self.rows:
            raise IndexError(f"row {row} outside the reserved region")
        self._move_to(row)
        self._erase_line()
        self.console.print(text, soft_wrap=True, highlight=False)
        self._row = row + 1

    def write_message(self, text: str) -> None:
        self._move_to(self.rows)
        self.console.print(text, markup=False, highlight=False)


# ── render loop ──────────────────────────────────────────────────────────
def _paint(renderer: TerminalRenderer, lines: tuple[Text, Text]) -> None:
    renderer.clear_reserved_region()
    for row, line in enumerate(lines):
        renderer.write_line(row, line)


def run_timer(
    config: TimerConfig,
    renderer: TerminalRenderer,
    *,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    now: Callable[[], datetime] | None = None,
) -> None:
    if now is None:
        now = partial(wall_clock, config.utc_offset_hours)

    duration = config.duration_seconds
    renderer.begin(BANNER)

    start = clock()
    last_update = 0.0

    while True:
        elapsed = clock() - start
        if elapsed >= duration:
            break

        if elapsed - last_update >= UPDATE_INTERVAL:
            state = RenderState.at(elapsed, duration, now())
            _paint(renderer, state.lines(config.bar_width))
            last_update = elapsed

        sleep(POLL_INTERVAL)

    _paint(renderer, final_lines(now(), config.bar_width))
    renderer.write_message(config.completion_message)


# ── CLI glue ─────────────────────────────────────────────────────────────
class PomoArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
        self.exit(2)


class _ValueAction(argparse.Action):
    """Store the value, run through `convert`."""

    def convert(self, value: str):
        return value

    def __call__(self, parser, namespace, values, option_string=None):
        if isinstance(values, list):
            # some argparse versions strip a "--" value, even from --flag=--
            values = "--"
        setattr(namespace, self.dest, self.convert(values))


class _DurationAction(_ValueAction):
    """Positive float scaled to seconds; -t and -s share a dest so the last one wins."""

    def __init__(self, option_strings, dest, scale: float = 1.0, unit: str = "seconds", **kwargs):
        self.scale = scale
        self.unit = unit
        super().__init__(option_strings, dest, **kwargs)

    def convert(self, value: str) -> float:
        try:
            number = float(value) * self.scale
        except ValueError:
            number = math.nan
        if not math.isfinite(number):
            raise argparse.ArgumentError(None, f"Invalid {self.unit} value '{value}'")
        if number <= 0:
            raise argparse.ArgumentError(None, f"{self.unit.capitalize()} must be positive")
        return number


class _WidthAction(_ValueAction):
    def convert(self, value: str) -> int:
        try:
            width = int(value)
        except ValueError:
            raise argparse.ArgumentError(None, f"Invalid width value '{value}'")
        if width <= 0:
            raise argparse.ArgumentError(None, "Width must be positive")
        return width


class _OffsetAction(_ValueAction):
    def convert(self, value: str) -> float:
        try:
            hours = float(value)
        except ValueError:
            raise argparse.ArgumentError(None, f"Invalid UTC offset '{value}'")
        if not -24 < hours < 24:
            raise argparse.ArgumentError(None, "UTC offset must be between -24 and 24 hours")
        return hours


EXAMPLES = """\
examples:
  pomo -t 15                    # 15 minute timer
  pomo -s 90                    # 90 second timer
  pomo -t 5 -m "Break time!"    # 5 minutes with custom message
"""


def build_parser() -> PomoArgumentParser:
    parser = PomoArgumentParser(
        prog="pomo",
        description="Simple terminal Pomodoro timer.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument(
        "-t", "--time",
        dest="duration_seconds",
        action=_DurationAction,
        scale=60.0,
        unit="minutes",
        metavar="MINUTES",
        default=DEFAULT_MINUTES * 60.0,
        help=f"Length of the timer in minutes (default: {DEFAULT_MINUTES})",
    )
    parser.add_argument(
        "-s", "--seconds",
        dest="duration_seconds",
        action=_DurationAction,
        unit="seconds",
        metavar="SECONDS",
        help="Length of the timer in seconds (overrides --time)",
    )
    parser.add_argument(
        "-m", "--message",
        dest="completion_message",
        action=_ValueAction,
        metavar="TEXT",
        default=DEFAULT_MESSAGE,
        help=f"Message printed when the timer ends (default: {DEFAULT_MESSAGE!r})",
    )
    parser.add_argument(
        "-w", "--width",
        dest="bar_width",
        action=_WidthAction,
        metavar="CELLS",
        default=DEFAULT_BAR_WIDTH,
        help=f"Width of the progress bar (default: {DEFAULT_BAR_WIDTH})",
    )
    parser.add_argument(
        "--utc-offset",
        dest="utc_offset_hours",
        action=_OffsetAction,
        metavar="HOURS",
        default=DEFAULT_UTC_OFFSET,
        help=(
            "Fixed UTC offset of the displayed clock, no DST handling "
            f"(default: {DEFAULT_UTC_OFFSET:g})"
        ),
    )
    return parser


HELP_FLAGS = ("-h", "--help")
# every other option takes exactly one value, whatever it looks like
VALUE_FLAGS = {
    "-t": "--time",
    "--time": "--time",
    "-s": "--seconds",
    "--seconds": "--seconds",
    "-m": "--message",
    "--message": "--message",
    "-w": "--width",
    "--width": "--width",
    "--utc-offset": "--utc-offset",
}


class _Stop(NamedTuple):
    token: str
    missing_value: bool


def _tokens_in_order(argv: list[str]) -> tuple[list[str], _Stop | None]:
    """
    Rewrite ``FLAG VALUE`` pairs as ``--long=VALUE`` so argparse takes the value
    literally, even when it starts with a dash. Scanning stops at the first
    unknown token or at a flag with nothing after it; everything before that
    point is still handed to argparse, so earlier errors (and -h) win.
    """
    tokens: list[str] = []
    it = iter(argv)
    for token in it:
        flag, sep, attached = token.partition("=") if token.startswith("--") else (token, "", "")
        if token in HELP_FLAGS:
            tokens.append(token)
        elif flag in VALUE_FLAGS:
            if not sep:
                attached = next(it, None)
                if attached is None:
                    return tokens, _Stop(VALUE_FLAGS[flag], missing_value=True)
            tokens.append(f"{VALUE_FLAGS[flag]}={attached}")
        else:
            return tokens, _Stop(token, missing_value=False)
    return tokens, None


def parse_config(argv: list[str] | None = None) -> TimerConfig:
    parser = build_parser()
    tokens, stop = _tokens_in_order(sys.argv[1:] if argv is None else list(argv))
    args = parser.parse_args(tokens)

    if stop is not None and stop.missing_value:
        parser.error(f"{stop.token} requires a value")
    if stop is not None:
        err_console.print(
            f"[bold red]Error:[/bold red] Unknown argument '{escape(stop.token)}'"
        )
        parser.print_help(sys.stderr)
        parser.exit(2)
    return TimerConfig(**vars(args))


def main(argv: list[str] | None = None) -> None:
    config = parse_config(argv)
    try:
        run_timer(config, ConsoleRenderer(console))
    except KeyboardInterrupt:
        console.print("\nTimer cancelled.")
        return


if __name__ == "__main__":
    main()
