"""
Glyph tables and arena constants for the digital rain.

Everything here is fixed for the lifetime of the process: the arena
dimensions, the five glyph encodings, the character atlas lookup, the
preset camera views and the brightness ramp. The simulation only ever
moves integer atlas identifiers around; turning an identifier into
something drawable is done through ``glyph_char``.
"""

from __future__ import annotations

import math
from enum import Enum

import numpy as np
from numpy.typing import NDArray

# ── Arena ───────────────────────────────────────────────────────────────
GRID_SIZE: int = 70        # width and height of the arena (slots per strip)
GRID_DEPTH: int = 35       # depth of the arena
WAVE_SIZE: int = 22        # periodicity of the brightness waves
SPLASH_RATIO: float = 0.7  # fraction of GRID_DEPTH where glyphs hit the glass

SPLASH_Z: float = GRID_DEPTH * SPLASH_RATIO

# ── Atlas ───────────────────────────────────────────────────────────────
CHAR_COLS: int = 16
CHAR_ROWS: int = 13
CURSOR_GLYPH: int = 97

# ── Defaults ────────────────────────────────────────────────────────────
DEF_SPEED: float = 1.0
DEF_DENSITY: float = 20.0
DEF_CLOCK: bool = False
DEF_FOG: bool = True
DEF_WAVES: bool = True
DEF_ROTATE: bool = True
DEF_TIMEFMT: str = " %l%M%p "

MAX_STRIPS: int = 2000
STRIPS_PER_DENSITY: float = 2.2


class GlyphMode(Enum):
    """Character set the strips are filled from."""
    MATRIX = "matrix"
    DNA = "dna"
    BINARY = "binary"
    HEXADECIMAL = "hexadecimal"
    DECIMAL = "decimal"


# ── Encodings (atlas identifiers) ───────────────────────────────────────
MATRIX_ENCODING: tuple[int, ...] = (
    16, 17, 18, 19, 20, 21, 22, 23, 24, 25,
    160, 161, 162, 163, 164, 165, 166, 167,
    168, 169, 170, 171, 172, 173, 174, 175,
)
DNA_ENCODING: tuple[int, ...] = (33, 35, 39, 52)  # A C G T
BINARY_ENCODING: tuple[int, ...] = (16, 17)
HEX_ENCODING: tuple[int, ...] = (
    16, 17, 18, 19, 20, 21, 22, 23, 24, 25, 33, 34, 35, 36, 37, 38,
)
DECIMAL_ENCODING: tuple[int, ...] = (16, 17, 18, 19, 20, 21, 22, 23, 24, 25)

ENCODINGS: dict[GlyphMode, tuple[int, ...]] = {
    GlyphMode.MATRIX: MATRIX_ENCODING,
    GlyphMode.DNA: DNA_ENCODING,
    GlyphMode.BINARY: BINARY_ENCODING,
    GlyphMode.HEXADECIMAL: HEX_ENCODING,
    GlyphMode.DECIMAL: DECIMAL_ENCODING,
}

# ── ASCII → atlas identifier (used by the clock overlay) ────────────────
CHAR_MAP: tuple[int, ...] = (
    96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96,   #   0
    96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96,   #  16
    0, 1, 2, 96, 4, 5, 6, 7, 8, 9, 10, 11, 12, 13, 14, 15,            #  32
    16, 17, 18, 19, 20, 21, 22, 23, 24, 25, 26, 27, 28, 29, 30, 31,   #  48
    32, 33, 34, 35, 36, 37, 38, 39, 40, 41, 42, 43, 44, 45, 46, 47,   #  64
    48, 49, 50, 51, 52, 53, 54, 55, 56, 57, 58, 59, 60, 61, 62, 63,   #  80
    64, 65, 66, 67, 68, 69, 70, 71, 72, 73, 74, 75, 76, 77, 78, 79,   #  96
    80, 81, 82, 83, 84, 85, 86, 87, 88, 89, 90, 91, 92, 93, 94, 95,   # 112
    96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96,   # 128
    96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96,   # 144
    96, 97, 98, 99, 100, 101, 102, 103, 104, 105, 106, 107, 108, 109, 110, 111,    # 160
    112, 113, 114, 115, 116, 117, 118, 119, 120, 121, 122, 123, 124, 125, 126, 127,  # 176
    128, 129, 130, 131, 132, 133, 134, 135, 136, 137, 138, 139, 140, 141, 142, 143,  # 192
    144, 145, 146, 147, 148, 149, 150, 151, 152, 153, 154, 155, 156, 157, 158, 159,  # 208
    96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96,   # 224
    96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96, 96,   # 240
)


def char_to_glyph(ch: str) -> int:
    """Atlas identifier for a single character (blank for anything non-Latin-1)."""
    code = ord(ch)
    if code >= len(CHAR_MAP):
        return CHAR_MAP[0]
    return CHAR_MAP[code]


# ── Atlas identifier → displayable symbol ──────────────────────────────
# Rows 0-5 follow ASCII 32..127, slot 96 is the blank cell, the rest of
# the atlas holds katakana. The Matrix rows (160-175) must be half-width
# forms: terminals draw those in a single cell, which keeps columns aligned.
_ASCII_ROWS = "".join(chr(c) for c in range(32, 127)) + " "
_KATAKANA_FULL = "".join(
    chr(c) for c in (
        0x30A2, 0x30A4, 0x30A6, 0x30A8, 0x30AA, 0x30AB, 0x30AD, 0x30AF,
        0x30B1, 0x30B3, 0x30B5, 0x30B7, 0x30B9, 0x30BB, 0x30BD, 0x30BF,
        0x30C1, 0x30C4, 0x30C6, 0x30C8, 0x30CA, 0x30CB, 0x30CC,
    )
)
_KATAKANA_HALF = "".join(chr(c) for c in range(0xFF66, 0xFF9E))
GLYPH_CHARS: str = _ASCII_ROWS + " " + _KATAKANA_FULL + _KATAKANA_HALF


def glyph_char(identifier: int) -> str:
    """Displayable symbol for an atlas identifier."""
    if 0 <= identifier < len(GLYPH_CHARS):
        return GLYPH_CHARS[identifier]
    return " "


# ── Preset camera views (pitch, yaw) in degrees ────────────────────────
# Every now and then the camera eases to one of these. Index 0 is only
# used at start-up; the repeated straight-on entries bias the choice.
NICE_VIEWS: tuple[tuple[float, float], ...] = (
    (0.0, 0.0),
    (0.0, -20.0),
    (0.0, 20.0),
    (25.0, 0.0),
    (-25.0, 0.0),
    (25.0, 20.0),
    (-25.0, 20.0),
    (25.0, -20.0),
    (-25.0, -20.0),
    (10.0, 0.0),
    (-10.0, 0.0),
    (0.0, 0.0),
    (0.0, 0.0),
    (0.0, 0.0),
    (0.0, 0.0),
    (0.0, 0.0),
)


def brightness_ramp() -> NDArray[np.float64]:
    """Easing curve from 1.0 down to 0.2 over WAVE_SIZE steps.

    Used both for the travelling brightness wave and for fading glyphs
    out as they approach the glass.
    """
    i = np.arange(WAVE_SIZE, dtype=np.float64)
    j = (WAVE_SIZE - i) / (WAVE_SIZE - 1) * (math.pi / 2)
    ramp = 0.2 + 0.8 * np.sin(j)
    ramp.flags.writeable = False
    return ramp
