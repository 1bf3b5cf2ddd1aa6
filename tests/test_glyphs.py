import math

import pytest

from rain_glyphs import (
    CHAR_MAP,
    ENCODINGS,
    GLYPH_CHARS,
    NICE_VIEWS,
    WAVE_SIZE,
    GlyphMode,
    brightness_ramp,
    char_to_glyph,
    glyph_char,
)


def test_ramp_matches_easing_curve():
    ramp = brightness_ramp()
    assert ramp.shape == (WAVE_SIZE,)
    for i in range(WAVE_SIZE):
        expected = 0.2 + 0.8 * math.sin((WAVE_SIZE - i) / (WAVE_SIZE - 1) * math.pi / 2)
        assert ramp[i] == pytest.approx(expected)


def test_ramp_range_and_direction():
    ramp = brightness_ramp()
    assert ramp.min() >= 0.2
    assert ramp.max() <= 1.0
    # bright at the head of the wave, dim at the tail
    assert ramp[1] > ramp[WAVE_SIZE - 1]
    assert all(ramp[i] >= ramp[i + 1] for i in range(1, WAVE_SIZE - 1))


def test_ramp_is_read_only():
    ramp = brightness_ramp()
    with pytest.raises(ValueError):
        ramp[0] = 0.0


def test_every_mode_has_an_encoding():
    assert set(ENCODINGS) == set(GlyphMode)
    assert ENCODINGS[GlyphMode.BINARY] == (16, 17)
    assert len(ENCODINGS[GlyphMode.DNA]) == 4
    assert len(ENCODINGS[GlyphMode.HEXADECIMAL]) == 16
    assert len(ENCODINGS[GlyphMode.DECIMAL]) == 10


def test_encodings_map_to_expected_symbols():
    assert "".join(glyph_char(g) for g in ENCODINGS[GlyphMode.DNA]) == "ACGT"
    assert "".join(glyph_char(g) for g in ENCODINGS[GlyphMode.HEXADECIMAL]) == "0123456789ABCDEF"
    assert "".join(glyph_char(g) for g in ENCODINGS[GlyphMode.DECIMAL]) == "0123456789"


def test_matrix_glyphs_are_half_width_katakana():
    for g in ENCODINGS[GlyphMode.MATRIX][10:]:
        assert 0xFF66 <= ord(glyph_char(g)) <= 0xFF9D


def test_atlas_covers_all_encodings():
    assert len(GLYPH_CHARS) == 176
    for table in ENCODINGS.values():
        assert all(0 <= g < len(GLYPH_CHARS) for g in table)


def test_glyph_char_out_of_range_is_blank():
    assert glyph_char(-1) == " "
    assert glyph_char(10_000) == " "


def test_char_map_round_trips_ascii():
    assert len(CHAR_MAP) == 256
    for ch in "0123456789:APM":
        assert glyph_char(char_to_glyph(ch)) == ch
    assert char_to_glyph("☃") == CHAR_MAP[0]


def test_nice_views():
    assert len(NICE_VIEWS) == 16
    assert NICE_VIEWS[0] == (0.0, 0.0)
