#!/usr/bin/env python3
"""
  D I G I T A L   R A I N
  Falling columns of glyphs in a rotating 3D arena, for dark terminals.

  Strips of katakana (or DNA, binary, hex, decimal) drift toward the
  glass while a bright spinner writes them in from the top and later
  wipes them out again. Waves of brightness wash down each strip, far
  strips sink into the fog, and every so often the camera swings
  slowly to a new angle.

  Controls:
    q         quit               SPACE     pause / resume
    r         reseed the rain    m         cycle glyph mode
    +/-       speed              s         toggle stats overlay

  Stats are always logged to rain_stats.csv beside this script.
"""

from __future__ import annotations

import argparse
import curses
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, ClassVar

from rain_engine import MatrixState, RandomSource, valid_speed
from rain_glyphs import (
    DEF_DENSITY,
    DEF_SPEED,
    DEF_TIMEFMT,
    GlyphMode,
    glyph_char,
)
from rain_projection import DrawCommand, compose_frame

# ── Palette ─────────────────────────────────────────────────────────────
# Trail glyphs: near-black green → phosphor green
TRAIL_GRADIENT: list[int] = [
    22, 22, 28, 34,
    40, 46, 82, 120,
]
# Spinners: pale green → white
SPINNER_GRADIENT: list[int] = [65, 108, 151, 194, 231]

# Glyphs bigger than this many terminal cells are drawn bold
BOLD_SIZE: float = 1.5
DIM_BRIGHTNESS: float = 0.3

DEF_DELAY_MS: float = 30.0
MIN_DELAY_MS: float = 10.0
MAX_DELAY_MS: float = 500.0

MODE_CYCLE: list[GlyphMode] = list(GlyphMode)

LOG_PATH = Path(__file__).resolve().parent / "rain_stats.csv"


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes animation telemetry to CSV for post-hoc tuning."""

    HEADER: ClassVar[str] = (
        "tick,time_s,strips,visible,erasing,"
        "splashes,erasures,view_x,view_y,event\n"
    )

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    def log(self, state: MatrixState, event: str = "") -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        self._fh.write(
            f"{state.tick_count},{t:.1f},{len(state.strips)},"
            f"{state.visible_glyphs()},{state.erasing_strips()},"
            f"{state.splash_count},{state.erase_count},"
            f"{state.view_x:.2f},{state.view_y:.2f},{event}\n"
        )
        # Flush on events or periodically
        if event or state.tick_count % 50 == 0:
            try:
                self._fh.flush()
            except OSError:
                pass

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Color management
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class ColorMap:
    """Manages curses color pairs for trail and spinner glyphs."""

    n_trail: int = 0
    n_spinner: int = 0
    _trail_pairs: dict[int, int] = field(default_factory=dict)
    _spinner_pairs: dict[int, int] = field(default_factory=dict)

    def setup(self) -> None:
        curses.start_color()
        curses.use_default_colors()

        max_pairs = curses.COLOR_PAIRS - 1
        max_colors = curses.COLORS
        pair_id = 1

        for i, c in enumerate(TRAIL_GRADIENT):
            if pair_id > max_pairs:
                break
            # 8-colour terminals only get plain green
            curses.init_pair(pair_id, c if c < max_colors else curses.COLOR_GREEN, -1)
            self._trail_pairs[i] = pair_id
            pair_id += 1

        for i, c in enumerate(SPINNER_GRADIENT):
            if pair_id > max_pairs:
                break
            curses.init_pair(pair_id, c if c < max_colors else curses.COLOR_WHITE, -1)
            self._spinner_pairs[i] = pair_id
            pair_id += 1

        self.n_trail = len(TRAIL_GRADIENT)
        self.n_spinner = len(SPINNER_GRADIENT)

    def trail(self, color_idx: int) -> int:
        return self._trail_pairs.get(color_idx, 0)

    def spinner(self, color_idx: int) -> int:
        return self._spinner_pairs.get(color_idx, 0)


def brightness_to_color_idx(brightness: float, n: int) -> int:
    if n <= 1 or brightness <= 0.0:
        return 0
    return max(0, min(int(brightness * n), n - 1))


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def cell_of(cmd: DrawCommand) -> tuple[int, int]:
    """Terminal (row, col) of a draw; a cell is one pixel wide, two tall."""
    return int(cmd.y) // 2, int(cmd.x)


def render(
    stdscr: curses.window,
    state: MatrixState,
    cmap: ColorMap,
    show_stats: bool = False,
    delay_ms: float = DEF_DELAY_MS,
) -> int:
    """Draw one frame of rain plus the status bar. Returns glyphs drawn.

    Works from a snapshot, so it never touches the simulation. Draws
    arrive back to front; nearer glyphs simply overwrite the cell.
    """
    max_y, max_x = stdscr.getmaxyx()
    rows = max_y - 1  # last row is the status bar
    if rows <= 0 or max_x <= 0:
        return 0

    snap = state.snapshot()
    commands = compose_frame(snap, max_x, rows * 2)

    # Local references (avoid attribute lookups in tight loop)
    _addstr = stdscr.addstr
    _color_pair = curses.color_pair
    _BOLD = curses.A_BOLD
    _DIM = curses.A_DIM
    _trail = cmap.trail
    _spinner = cmap.spinner
    nt = cmap.n_trail
    ns = cmap.n_spinner

    drawn = 0
    for cmd in commands:
        row, col = cell_of(cmd)
        if not (0 <= row < rows and 0 <= col < max_x):
            continue
        if cmd.spinner:
            attr = _color_pair(_spinner(brightness_to_color_idx(cmd.brightness, ns)))
        else:
            attr = _color_pair(_trail(brightness_to_color_idx(cmd.brightness, nt)))
        if cmd.size >= BOLD_SIZE or cmd.spinner:
            attr |= _BOLD
        elif cmd.brightness < DIM_BRIGHTNESS:
            attr |= _DIM
        try:
            _addstr(row, col, glyph_char(cmd.glyph), attr)
            drawn += 1
        except curses.error:
            pass

    # ── Stats overlay ───────────────────────────────────────────────
    if show_stats:
        _draw_stats_overlay(stdscr, state, drawn, max_y, max_x)

    # ── Status bar ──────────────────────────────────────────────────
    paused = "  [paused]" if state.paused else ""
    left = (
        f"  {state.mode.value}  tick {state.tick_count:,}  "
        f"strips {len(state.strips):,}  glyphs {drawn:,}{paused}"
    )
    right = f"{1000.0 / max(delay_ms, 1.0):.0f}fps  q r spc +/- m s  "
    gap = max_x - len(left) - len(right) - 1
    status = left + " " * max(gap, 1) + right if gap > 0 else left
    try:
        stdscr.addstr(max_y - 1, 0, status[: max_x - 1], curses.A_DIM)
    except curses.error:
        pass
    return drawn


def _draw_stats_overlay(
    stdscr: curses.window, state: MatrixState, drawn: int, max_y: int, max_x: int
) -> None:
    """Draw the engine telemetry panel in the bottom-right."""
    panel_w = 36
    panel_h = 9
    x0 = max_x - panel_w - 2
    y0 = max_y - panel_h - 2

    if x0 < 0 or y0 < 0:
        return

    track = f"{state.last_view} -> {state.target_view}" if state.auto_tracking else "idle"
    lines = [
        f"{'':─<{panel_w - 2}}",
        " rain engine",
        f" erasing     : {state.erasing_strips():,}/{len(state.strips):,}",
        f" splashes    : {state.splash_count:,}",
        f" erasures    : {state.erase_count:,}",
        f" view        : {state.view_x:+6.1f} {state.view_y:+6.1f}",
        f" tracking    : {track}",
        f" last event  : {state.last_event or 'none'}",
        f" drawn       : {drawn:,}",
    ]

    style = curses.A_DIM
    for i, line in enumerate(lines):
        row = y0 + i
        if 0 <= row < max_y - 1:
            padded = f" {line:<{panel_w - 1}}"[: panel_w]
            try:
                stdscr.addstr(row, x0, padded, style)
            except curses.error:
                pass


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def build_state(args: argparse.Namespace, mode: GlyphMode) -> MatrixState:
    return MatrixState(
        speed=args.speed,
        density=args.density,
        do_fog=not args.no_fog,
        do_waves=not args.no_waves,
        do_rotate=not args.no_rotate,
        mode=mode,
        do_clock=args.clock,
        time_format=args.time_format,
        rng=RandomSource(args.seed),
    )


def next_mode(mode: GlyphMode) -> GlyphMode:
    return MODE_CYCLE[(MODE_CYCLE.index(mode) + 1) % len(MODE_CYCLE)]


def main(stdscr: curses.window, args: argparse.Namespace) -> None:
    curses.curs_set(0)
    stdscr.nodelay(True)
    stdscr.timeout(0)

    cmap = ColorMap()
    cmap.setup()

    mode = GlyphMode(args.mode)
    state = build_state(args, mode)
    delay = float(args.delay)

    logger = StatsLogger(LOG_PATH)
    logger.open()

    show_stats = False

    try:
        while True:
            # ── Input ──────────────────────────────────────────────
            try:
                key = stdscr.getch()
            except curses.error:
                key = -1

            if key in (ord("q"), ord("Q")):
                break
            elif key in (ord("r"), ord("R")):
                args.seed = None
                state = build_state(args, mode)
            elif key == ord(" "):
                state.paused = not state.paused
            elif key in (ord("+"), ord("=")):
                delay = max(MIN_DELAY_MS, delay - 10)
            elif key in (ord("-"), ord("_")):
                delay = min(MAX_DELAY_MS, delay + 10)
            elif key in (ord("m"), ord("M")):
                mode = next_mode(mode)
                state = build_state(args, mode)
            elif key in (ord("s"), ord("S")):
                show_stats = not show_stats

            # ── Simulate ───────────────────────────────────────────
            event = state.tick()

            # ── Log ────────────────────────────────────────────────
            if not state.paused and (event or state.tick_count % 10 == 0):
                logger.log(state, event)

            # ── Render ─────────────────────────────────────────────
            stdscr.erase()
            render(stdscr, state, cmap, show_stats=show_stats, delay_ms=delay)
            stdscr.refresh()

            time.sleep(delay / 1000.0)

    finally:
        logger.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Digital rain for the terminal")
    parser.add_argument("--speed", type=float, default=DEF_SPEED,
                        help=f"Animation speed multiplier (default: {DEF_SPEED})")
    parser.add_argument("--density", type=float, default=DEF_DENSITY,
                        help=f"Strip density; strips = density * 2.2 (default: {DEF_DENSITY})")
    parser.add_argument("--mode", choices=[m.value for m in GlyphMode],
                        default=GlyphMode.MATRIX.value,
                        help="Glyph set (default: matrix)")
    parser.add_argument("--no-fog", action="store_true",
                        help="Disable depth fog")
    parser.add_argument("--no-waves", action="store_true",
                        help="Disable brightness waves")
    parser.add_argument("--no-rotate", action="store_true",
                        help="Keep the camera still")
    parser.add_argument("--clock", action="store_true",
                        help="Occasionally write the time into a strip")
    parser.add_argument("--time-format", type=str, default=DEF_TIMEFMT,
                        help="strftime format for --clock")
    parser.add_argument("--delay", type=float, default=DEF_DELAY_MS,
                        help=f"Milliseconds between frames (default: {DEF_DELAY_MS:.0f})")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for a reproducible run")
    args = parser.parse_args(argv)
    if not valid_speed(args.speed):
        parser.error("--speed must be a positive number")
    if not MIN_DELAY_MS <= args.delay <= MAX_DELAY_MS:
        parser.error(f"--delay must be between {MIN_DELAY_MS:.0f} and {MAX_DELAY_MS:.0f} ms")
    return args


def run() -> None:
    args = parse_args()
    try:
        curses.wrapper(main, args)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
