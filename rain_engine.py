"""
Simulation core for the digital rain.

A fixed population of strips falls through a 3D arena. Each strip is a
column of GRID_SIZE glyph slots revealed top-down by a "spinner" cursor,
then erased again at half speed, while the whole column drifts towards
the viewer. When a strip finishes erasing or splashes into the glass it
is reset in place with fresh random parameters, so the population never
grows or shrinks.

Architecture:
  MatrixState owns every mutable piece of the animation. The driver
  calls tick() once per frame, then takes a frozen RainSnapshot and
  hands that to the renderer, so rendering can never disturb the
  simulation (and repeated renders while paused are identical).
  advance() is the pure form of tick() for callers that want to keep
  the previous state around.
"""

from __future__ import annotations

import copy
import math
import random
import time
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from rain_glyphs import (
    DEF_CLOCK,
    DEF_DENSITY,
    DEF_FOG,
    DEF_ROTATE,
    DEF_SPEED,
    DEF_TIMEFMT,
    DEF_WAVES,
    ENCODINGS,
    GRID_DEPTH,
    GRID_SIZE,
    MAX_STRIPS,
    NICE_VIEWS,
    SPLASH_Z,
    STRIPS_PER_DENSITY,
    WAVE_SIZE,
    GlyphMode,
    brightness_ramp,
    char_to_glyph,
)


# ═══════════════════════════════════════════════════════════════════════
#  Randomness
# ═══════════════════════════════════════════════════════════════════════

class RandomSource:
    """Random numbers for strip placement and behaviour.

    Every draw the simulation makes goes through random(), so a subclass
    that overrides it makes a whole run reproducible.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        return self._rng.random()

    def uniform(self, n: float) -> float:
        """Uniform float in [0, n)."""
        return self.random() * n

    def bell(self, n: float) -> float:
        """Bell-shaped float in [0, n), weighted towards n/2."""
        return (self.uniform(n) + self.uniform(n) + self.uniform(n)) / 3.0

    def below(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        return min(int(self.uniform(n)), n - 1)

    def chance(self, n: int) -> bool:
        """True roughly once in n calls."""
        return self.below(n) == 0


# ═══════════════════════════════════════════════════════════════════════
#  Strips
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Glyph:
    """One occupied slot: an atlas identifier, possibly still spinning."""
    identifier: int
    spinning: bool = False


def _empty_slots() -> list[Glyph | None]:
    return [None] * GRID_SIZE


def _no_highlight() -> list[bool]:
    return [False] * GRID_SIZE


@dataclass
class Strip:
    """A single falling column of glyphs."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    dx: float = 0.0
    dy: float = 0.0
    dz: float = 0.0

    # On its way out: the revealed glyphs retract behind the spinner
    erasing: bool = False

    # The leading glyph and where on the strip it currently is
    spinner_glyph: Glyph = field(default_factory=lambda: Glyph(0, spinning=True))
    spinner_position: float = 0.0
    spinner_speed: float = 0.0

    # None = empty slot
    glyphs: list[Glyph | None] = field(default_factory=_empty_slots)
    highlight: list[bool] = field(default_factory=_no_highlight)

    # Spinning glyphs re-roll every spin_cycle ticks
    spin_cycle: int = 1
    spin_counter: int = 0

    # Brightness wave moves one slot every wave_cycle ticks
    wave_phase: int = 0
    wave_cycle: int = 1
    wave_counter: int = 0


def slot_visible(strip: Strip | StripSnapshot, index: int) -> bool:
    """Whether slot ``index`` is revealed.

    Slots above the spinner are shown while drawing in; once erasing the
    sense flips and the tail retracts. Empty slots are never shown.
    """
    if strip.glyphs[index] is None:
        return False
    return (strip.spinner_position >= index) != strip.erasing


# ═══════════════════════════════════════════════════════════════════════
#  Brightness
# ═══════════════════════════════════════════════════════════════════════

def wave_index(slot_index: int, wave_phase: int) -> int:
    """Ramp index of the brightness wave at a slot, always in [0, WAVE_SIZE)."""
    return (WAVE_SIZE - ((slot_index + (GRID_SIZE - wave_phase)) % WAVE_SIZE)) % WAVE_SIZE


def glyph_brightness(
    ramp: NDArray[np.float64],
    wave_phase: int,
    slot_index: int,
    glyph: Glyph,
    highlight: bool,
    z: float,
    do_waves: bool = True,
    do_fog: bool = True,
) -> float:
    """Brightness of one glyph in [0, 1].

    Combines the travelling wave, the spinner and highlight boosts, depth
    fog, and the fade-out of strips about to splash into the glass.
    """
    if do_waves:
        brightness = float(ramp[wave_index(slot_index, wave_phase)])
    else:
        brightness = 1.0

    if glyph.spinning:
        brightness *= 1.5
    if highlight:
        brightness *= 2.0

    if do_fog:
        depth = (z / GRID_DEPTH) + 0.5    # 0 at the back, 1 at the front
        depth = 0.2 + depth * 0.8         # so no strip goes all black
        brightness *= depth

    half = GRID_DEPTH / 2.0
    if z > half:
        ratio = (z - half) / (SPLASH_Z - half)
        i = max(0, min(int(math.floor(ratio * WAVE_SIZE)), WAVE_SIZE - 1))
        brightness *= float(ramp[i])

    return max(0.0, min(brightness, 1.0))


# ═══════════════════════════════════════════════════════════════════════
#  Read-only views for the renderer
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StripSnapshot:
    """Immutable copy of one strip's drawable state."""
    x: float
    y: float
    z: float
    erasing: bool
    spinner_glyph: Glyph
    spinner_position: float
    glyphs: tuple[Glyph | None, ...]
    highlight: tuple[bool, ...]
    wave_phase: int

    @classmethod
    def of(cls, s: Strip) -> StripSnapshot:
        return cls(
            x=s.x,
            y=s.y,
            z=s.z,
            erasing=s.erasing,
            spinner_glyph=s.spinner_glyph,
            spinner_position=s.spinner_position,
            glyphs=tuple(s.glyphs),
            highlight=tuple(s.highlight),
            wave_phase=s.wave_phase,
        )


@dataclass(frozen=True)
class RainSnapshot:
    """Everything a renderer needs for one frame."""
    strips: tuple[StripSnapshot, ...]
    view_x: float
    view_y: float
    ramp: NDArray[np.float64]
    do_fog: bool
    do_waves: bool
    paused: bool
    tick: int

    def brightness(
        self, strip: StripSnapshot, slot_index: int, glyph: Glyph, highlight: bool
    ) -> float:
        return glyph_brightness(
            self.ramp, strip.wave_phase, slot_index, glyph, highlight, strip.z,
            do_waves=self.do_waves, do_fog=self.do_fog,
        )


# ═══════════════════════════════════════════════════════════════════════
#  The animation
# ═══════════════════════════════════════════════════════════════════════

def valid_speed(speed: float) -> bool:
    """Whether every per-tick rate derived from ``speed`` stays finite."""
    if not speed > 0 or math.isinf(speed):
        return False
    # the slowest derived rate is the 350-tick camera move
    return not math.isinf(350.0 / speed)


def strip_count(density: float) -> int:
    """Number of strips for a density setting, clamped to [1, MAX_STRIPS]."""
    if math.isnan(density):
        raise ValueError("density must be a number")
    raw = density * STRIPS_PER_DENSITY
    if raw >= MAX_STRIPS:
        return MAX_STRIPS
    if raw <= 1:
        return 1
    return round(raw)


class MatrixState:
    """
    The whole digital rain: strips, glyph table, camera and pause state.

    Configuration is fixed at construction. The only mutators meant for
    outside use are ``paused`` and ``tick()``.
    """

    def __init__(
        self,
        speed: float = DEF_SPEED,
        density: float = DEF_DENSITY,
        do_fog: bool = DEF_FOG,
        do_waves: bool = DEF_WAVES,
        do_rotate: bool = DEF_ROTATE,
        mode: GlyphMode = GlyphMode.MATRIX,
        do_clock: bool = DEF_CLOCK,
        time_format: str = DEF_TIMEFMT,
        rng: RandomSource | None = None,
    ) -> None:
        if not valid_speed(speed):
            raise ValueError(f"speed must be a positive number, got {speed!r}")

        self.speed: float = float(speed)
        self.density: float = float(density)
        self.do_fog: bool = do_fog
        self.do_waves: bool = do_waves
        self.do_rotate: bool = do_rotate
        self.do_clock: bool = do_clock
        self.time_format: str = time_format
        self.mode: GlyphMode = mode
        self.rng: RandomSource = rng if rng is not None else RandomSource()

        self.glyph_table: tuple[int, ...] = ENCODINGS[mode]
        self.brightness_ramp: NDArray[np.float64] = brightness_ramp()

        self.paused: bool = False

        # ── Telemetry (read by the status bar and the stats logger) ───
        self.tick_count: int = 0
        self.splash_count: int = 0    # resets from hitting the glass
        self.erase_count: int = 0     # resets from finishing an erase pass
        self.last_event: str = ""
        self.last_event_tick: int = 0

        # ── Camera ──
        self.last_view: int = 0
        self.target_view: int = 0
        self.view_x: float = 0.0
        self.view_y: float = 0.0
        self.view_steps: int = 100
        self.view_tick: int = 0
        self.auto_tracking: bool = False
        self.track_tick: int = 0
        self._auto_track_init()

        self.strips: list[Strip] = [Strip() for _ in range(strip_count(density))]
        for s in self.strips:
            self.reset_strip(s)
            # Starting every strip from the top at once makes the first
            # seconds much denser than the steady state. Start them all
            # mid-erase with nothing left to erase instead; they die off
            # at random and come back staggered.
            s.erasing = True
            s.spinner_position = self.rng.uniform(GRID_SIZE)
            s.glyphs[:] = _empty_slots()
            s.highlight[:] = _no_highlight()

    # ── Random picks ────────────────────────────────────────────────

    def _random_glyph(self, spinning: bool = False) -> Glyph:
        table = self.glyph_table
        return Glyph(table[self.rng.below(len(table))], spinning=spinning)

    def _clock_text(self) -> str:
        return time.strftime(self.time_format, time.localtime())

    # ── Strip lifecycle ─────────────────────────────────────────────

    def reset_strip(self, s: Strip) -> None:
        """Re-randomize one strip in place and start it from the top."""
        rng = self.rng
        speed = self.speed

        s.x = rng.uniform(GRID_SIZE) - GRID_SIZE / 2.0
        s.y = GRID_SIZE / 2.0 + rng.bell(0.5)   # shift the top slightly
        s.z = GRID_DEPTH * 0.2 - rng.uniform(GRID_DEPTH * 0.7)
        s.spinner_position = 0.0

        s.dx = 0.0
        s.dy = 0.0
        s.dz = rng.bell(0.02) * speed

        s.spinner_speed = rng.bell(0.3) * speed

        s.spin_cycle = int(rng.bell(2.0 / speed)) + 1
        s.spin_counter = 0

        s.wave_phase = 0
        s.wave_cycle = int(rng.bell(3.0 / speed)) + 1
        s.wave_counter = 0

        s.erasing = False

        clock_shown = False  # never show the time twice in one strip
        i = 0
        while i < GRID_SIZE:
            if (
                self.do_clock
                and not clock_shown
                and i < GRID_SIZE - 5
                and rng.chance((GRID_SIZE - 5) * 5)   # about once per 5 strips
            ):
                for ch in self._clock_text():
                    if i >= GRID_SIZE:
                        break
                    s.glyphs[i] = Glyph(char_to_glyph(ch))
                    s.highlight[i] = True
                    i += 1
                clock_shown = True
                continue

            draw = not rng.chance(7)
            if draw:
                spinning = rng.chance(20)
                s.glyphs[i] = self._random_glyph(spinning)
            else:
                s.glyphs[i] = None
            s.highlight[i] = False
            i += 1

        s.spinner_glyph = self._random_glyph(spinning=True)

    def tick_strip(self, s: Strip) -> None:
        """Advance one strip by one frame, resetting it when it is done."""
        if self.paused:
            return

        s.x += s.dx
        s.y += s.dy
        s.z += s.dz

        if s.z > SPLASH_Z:
            # splashed into the glass
            self.splash_count += 1
            self.reset_strip(s)
            return

        s.spinner_position += s.spinner_speed
        if s.spinner_position >= GRID_SIZE:
            if s.erasing:
                self.erase_count += 1
                self.reset_strip(s)
                return
            s.erasing = True
            s.spinner_position = 0.0
            s.spinner_speed /= 2.0   # erase slower than we drew it

        # Spin the spinners
        s.spin_counter += 1
        if s.spin_counter > s.spin_cycle:
            s.spin_counter = 0
            s.spinner_glyph = self._random_glyph(spinning=True)
            for i, g in enumerate(s.glyphs):
                if g is not None and g.spinning:
                    fresh = self._random_glyph(spinning=True)
                    if self.rng.chance(800):
                        # sometimes they stop spinning
                        fresh = Glyph(fresh.identifier)
                    s.glyphs[i] = fresh

        # Move the brightness wave
        s.wave_counter += 1
        if s.wave_counter > s.wave_cycle:
            s.wave_counter = 0
            s.wave_phase = (s.wave_phase + 1) % WAVE_SIZE

    # ── Camera ──────────────────────────────────────────────────────

    def _auto_track_init(self) -> None:
        self.last_view = 0
        self.target_view = 0
        self.view_x, self.view_y = NICE_VIEWS[self.last_view]
        self.view_steps = 100
        self.view_tick = 0
        self.auto_tracking = False

    def auto_track(self) -> str:
        """Ease the camera between preset views. Returns event string."""
        if not self.do_rotate or self.paused:
            return ""

        event = ""
        # If we're not moving, maybe start moving. Otherwise, do nothing.
        if not self.auto_tracking:
            self.track_tick += 1
            if self.track_tick < int(20 / self.speed):
                return ""
            self.track_tick = 0
            if not self.rng.chance(20):
                return ""
            self.auto_tracking = True
            event = f"track:{self.target_view}"

        ox, oy = NICE_VIEWS[self.last_view]
        tx, ty = NICE_VIEWS[self.target_view]

        # Sinusoidal ease-out so the camera doesn't jerk to a stop
        th = math.sin((math.pi / 2) * self.view_tick / self.view_steps)
        self.view_x = ox + (tx - ox) * th
        self.view_y = oy + (ty - oy) * th
        self.view_tick += 1

        if self.view_tick >= self.view_steps:
            self.view_tick = 0
            self.view_steps = max(1, int(350.0 / self.speed))
            self.last_view = self.target_view
            self.target_view = self.rng.below(len(NICE_VIEWS) - 1) + 1
            self.auto_tracking = False

        return event

    # ── Frame ───────────────────────────────────────────────────────

    def tick(self) -> str:
        """Advance every strip, then the camera. Returns event string (empty if none)."""
        if self.paused:
            return ""

        for s in self.strips:
            self.tick_strip(s)
        event = self.auto_track()
        self.tick_count += 1

        if event:
            self.last_event = event
            self.last_event_tick = self.tick_count
        return event

    # ── Read surface ────────────────────────────────────────────────

    def compute_brightness(
        self, s: Strip, slot_index: int, glyph: Glyph, highlight: bool, z: float
    ) -> float:
        return glyph_brightness(
            self.brightness_ramp, s.wave_phase, slot_index, glyph, highlight, z,
            do_waves=self.do_waves, do_fog=self.do_fog,
        )

    def snapshot(self) -> RainSnapshot:
        """Frozen copy of the drawable state for this frame."""
        return RainSnapshot(
            strips=tuple(StripSnapshot.of(s) for s in self.strips),
            view_x=self.view_x,
            view_y=self.view_y,
            ramp=self.brightness_ramp,
            do_fog=self.do_fog,
            do_waves=self.do_waves,
            paused=self.paused,
            tick=self.tick_count,
        )

    def visible_glyphs(self) -> int:
        """Number of glyphs currently revealed, spinners included."""
        total = 0
        for s in self.strips:
            for i in range(GRID_SIZE):
                if slot_visible(s, i):
                    total += 1
            if not s.erasing:
                total += 1
        return total

    def erasing_strips(self) -> int:
        return sum(1 for s in self.strips if s.erasing)


def advance(state: MatrixState, ticks: int = 1) -> MatrixState:
    """Return a copy of ``state`` advanced by ``ticks`` frames.

    The argument is left untouched, random source included, so the same
    state can be advanced twice with identical results.
    """
    nxt = copy.deepcopy(state)
    for _ in range(ticks):
        nxt.tick()
    return nxt
