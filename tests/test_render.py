import copy
import curses

import pytest

import rain
from rain import (
    ColorMap,
    StatsLogger,
    brightness_to_color_idx,
    next_mode,
    parse_args,
    render,
)
from rain_bench import FakeWindow, simulate_render_work
from rain_engine import MatrixState, RandomSource
from rain_glyphs import GlyphMode


class RecordingWindow(FakeWindow):
    """FakeWindow that keeps every addstr call."""

    def __init__(self, rows: int, cols: int) -> None:
        super().__init__(rows, cols)
        self.calls: list[tuple] = []

    def addstr(self, *args: object) -> None:
        super().addstr(*args)
        self.calls.append(args)


@pytest.fixture(autouse=True)
def no_terminal(monkeypatch):
    # color_pair needs an initialised screen
    monkeypatch.setattr(curses, "color_pair", lambda n: n << 8)


def _running_state(ticks: int = 400) -> MatrixState:
    state = MatrixState(density=10, rng=RandomSource(23))
    for _ in range(ticks):
        state.tick()
    return state


def test_render_draws_inside_the_window():
    state = _running_state()
    win = RecordingWindow(40, 120)
    drawn = render(win, state, ColorMap())
    assert drawn > 0
    *glyph_calls, status = win.calls
    for row, col, text, _attr in glyph_calls:
        assert 0 <= row < 39
        assert 0 <= col < 120
        assert len(text) == 1
    assert status[0] == 39


def test_render_does_not_touch_the_simulation():
    state = _running_state()
    before = copy.deepcopy(state.strips)
    tick = state.tick_count
    render(RecordingWindow(40, 120), state, ColorMap(), show_stats=True)
    assert state.strips == before
    assert state.tick_count == tick


def test_paused_frames_are_identical():
    state = _running_state()
    state.paused = True
    frames = []
    for _ in range(3):
        state.tick()
        win = RecordingWindow(40, 120)
        render(win, state, ColorMap())
        frames.append(win.calls)
    assert frames[0] == frames[1] == frames[2]
    assert "[paused]" in frames[0][-1][2]


def test_tiny_window_draws_nothing():
    state = _running_state(10)
    assert render(RecordingWindow(1, 80), state, ColorMap()) == 0


def test_stats_overlay_mentions_telemetry():
    state = _running_state()
    win = RecordingWindow(40, 120)
    render(win, state, ColorMap(), show_stats=True)
    text = "".join(str(c[2]) for c in win.calls)
    assert "splashes" in text
    assert "tracking" in text


def test_bench_render_work_reports_components():
    state = _running_state(50)
    timings = simulate_render_work(state, FakeWindow(40, 120), ColorMap())
    assert {"snapshot", "compose_frame", "draw_loop", "_draws"} <= set(timings)
    assert timings["_draws"] >= 0


@pytest.mark.parametrize(
    "brightness, n, expected",
    [(0.0, 8, 0), (-1.0, 8, 0), (0.5, 8, 4), (0.99, 8, 7), (1.0, 8, 7), (0.7, 1, 0)],
)
def test_brightness_to_color_idx(brightness, n, expected):
    assert brightness_to_color_idx(brightness, n) == expected


def test_empty_color_map_falls_back_to_default_pair():
    cmap = ColorMap()
    assert cmap.trail(3) == 0
    assert cmap.spinner(1) == 0


def test_mode_cycle_visits_every_mode():
    mode = GlyphMode.MATRIX
    seen = []
    for _ in range(len(GlyphMode)):
        seen.append(mode)
        mode = next_mode(mode)
    assert mode is GlyphMode.MATRIX
    assert set(seen) == set(GlyphMode)


def test_stats_logger_writes_csv(tmp_path):
    path = tmp_path / "stats.csv"
    state = _running_state(20)
    logger = StatsLogger(path)
    logger.open()
    logger.log(state)
    logger.log(state, "track:3")
    logger.close()

    lines = path.read_text().splitlines()
    assert lines[0] == StatsLogger.HEADER.strip()
    assert len(lines) == 3
    fields = lines[2].split(",")
    assert len(fields) == len(lines[0].split(","))
    assert fields[0] == str(state.tick_count)
    assert fields[-1] == "track:3"


def test_stats_logger_unwritable_path_is_silent(tmp_path):
    logger = StatsLogger(tmp_path / "missing" / "stats.csv")
    logger.open()
    logger.log(_running_state(1), "track:0")
    logger.close()


def test_parse_args_defaults():
    args = parse_args([])
    assert args.speed == 1.0
    assert args.density == 20.0
    assert args.mode == "matrix"
    assert not args.no_fog and not args.no_waves and not args.no_rotate
    assert not args.clock
    assert args.seed is None


def test_parse_args_builds_matching_state():
    args = parse_args(["--mode", "dna", "--density", "5", "--no-rotate", "--seed", "4"])
    state = rain.build_state(args, GlyphMode(args.mode))
    assert state.mode is GlyphMode.DNA
    assert len(state.strips) == 11
    assert not state.do_rotate


@pytest.mark.parametrize("speed", ["0", "-2", "1e-320", "inf", "nan"])
def test_parse_args_rejects_bad_speed(speed):
    with pytest.raises(SystemExit):
        parse_args(["--speed", speed])


def test_parse_args_rejects_unknown_mode():
    with pytest.raises(SystemExit):
        parse_args(["--mode", "morse"])


@pytest.mark.parametrize("delay", ["-5", "0", "9", "501"])
def test_parse_args_rejects_out_of_range_delay(delay):
    with pytest.raises(SystemExit):
        parse_args(["--delay", delay])


@pytest.mark.parametrize("delay", ["10", "30", "500"])
def test_parse_args_accepts_delay_limits(delay):
    assert parse_args(["--delay", delay]).delay == float(delay)
