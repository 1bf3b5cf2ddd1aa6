"""
Perspective projection and frame composition for the digital rain.

Pure functions only: given a frozen RainSnapshot and a viewport size,
produce the list of glyph draws for the frame, back to front. The
camera sits CAMERA_Z units in front of the arena looking at the
origin with an 80 degree vertical field of view, and the whole arena
is rotated by the current (pitch, yaw) view angles first.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from rain_engine import Glyph, RainSnapshot, StripSnapshot, slot_visible
from rain_glyphs import GRID_SIZE

# ── Camera ──────────────────────────────────────────────────────────────
CAMERA_Z: float = 25.0
NEAR_PLANE: float = 1.0
FOV_Y_DEG: float = 80.0
FOCAL: float = 1.0 / math.tan(math.radians(FOV_Y_DEG / 2.0))

# Colour of a fully bright glyph (r, g, b); scaled by brightness
SPINNER_RGB: tuple[float, float, float] = (0.8, 1.0, 0.8)
TRAIL_RGB: tuple[float, float, float] = (0.2, 1.0, 0.2)


@dataclass(frozen=True)
class Projection:
    """Where a world point lands on screen."""
    x: float
    y: float
    size: float   # on-screen size of a unit glyph quad, in pixels
    depth: float  # distance in front of the camera


@dataclass(frozen=True)
class DrawCommand:
    """One glyph quad to draw."""
    x: float
    y: float
    size: float
    depth: float
    glyph: int
    brightness: float
    spinner: bool
    color: tuple[float, float, float, float]


def rotation_matrix(pitch_deg: float, yaw_deg: float) -> NDArray[np.float64]:
    """Rotation about X by pitch, composed with rotation about Y by yaw."""
    p = math.radians(pitch_deg)
    y = math.radians(yaw_deg)
    cp, sp = math.cos(p), math.sin(p)
    cy, sy = math.cos(y), math.sin(y)
    rx = np.array([[1.0, 0.0, 0.0], [0.0, cp, -sp], [0.0, sp, cp]])
    ry = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    return rx @ ry


def project_point(
    x: float,
    y: float,
    z: float,
    pitch_deg: float,
    yaw_deg: float,
    width: float,
    height: float,
) -> Projection | None:
    """Project one world point. None when it is at or behind the near plane."""
    rx, ry, rz = rotation_matrix(pitch_deg, yaw_deg) @ np.array([x, y, z], dtype=np.float64)
    depth = CAMERA_Z - float(rz)
    if depth <= NEAR_PLANE:
        return None

    aspect = width / height
    ndc_x = FOCAL * float(rx) / depth / aspect
    ndc_y = FOCAL * float(ry) / depth
    return Projection(
        x=(ndc_x + 1.0) * width / 2.0,
        y=(1.0 - ndc_y) * height / 2.0,
        size=FOCAL / depth * min(width, height) / 2.0,
        depth=depth,
    )


def project_points(
    points: NDArray[np.float64],
    pitch_deg: float,
    yaw_deg: float,
    width: float,
    height: float,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64],
           NDArray[np.float64], NDArray[np.bool_]]:
    """Vectorised project_point over an (N, 3) array.

    Returns screen x, screen y, size, depth and a visibility mask. Entries
    where the mask is False hold NaN.
    """
    if len(points) == 0:
        empty = np.empty(0, dtype=np.float64)
        return empty, empty, empty, empty, np.empty(0, dtype=np.bool_)

    cam = points @ rotation_matrix(pitch_deg, yaw_deg).T
    depth = CAMERA_Z - cam[:, 2]
    visible = depth > NEAR_PLANE
    safe_depth = np.where(visible, depth, np.nan)

    aspect = width / height
    ndc_x = FOCAL * cam[:, 0] / safe_depth / aspect
    ndc_y = FOCAL * cam[:, 1] / safe_depth
    sx = (ndc_x + 1.0) * width / 2.0
    sy = (1.0 - ndc_y) * height / 2.0
    size = FOCAL / safe_depth * min(width, height) / 2.0
    return sx, sy, size, safe_depth, visible


def glyph_color(brightness: float, spinner: bool) -> tuple[float, float, float, float]:
    """RGBA for a glyph; the leading spinners are whiter than the trail."""
    r, g, b = SPINNER_RGB if spinner else TRAIL_RGB
    return (r * brightness, g * brightness, b * brightness, brightness)


def _strip_draws(
    snap: RainSnapshot, s: StripSnapshot
) -> list[tuple[float, float, Glyph]]:
    """(world y, brightness, glyph) for every revealed glyph of a strip."""
    out: list[tuple[float, float, Glyph]] = []
    for i in range(GRID_SIZE):
        if not slot_visible(s, i):
            continue
        g = s.glyphs[i]
        if g is None:
            continue
        out.append((s.y - i, snap.brightness(s, i, g, s.highlight[i]), g))

    if not s.erasing:
        slot = max(0, min(int(s.spinner_position), GRID_SIZE - 1))
        g = s.spinner_glyph
        out.append((s.y - s.spinner_position, snap.brightness(s, slot, g, False), g))
    return out


def compose_frame(snap: RainSnapshot, width: int, height: int) -> list[DrawCommand]:
    """All glyph draws for one frame, farthest first.

    Glyphs that are behind the camera, fully dark, or entirely off screen
    are dropped.
    """
    if width <= 0 or height <= 0:
        return []

    points: list[tuple[float, float, float]] = []
    meta: list[tuple[float, Glyph]] = []
    # Draw the strips farthest from the camera first
    for s in sorted(snap.strips, key=lambda st: st.z):
        for wy, brightness, g in _strip_draws(snap, s):
            if brightness <= 0.0:
                continue
            points.append((s.x, wy, s.z))
            meta.append((brightness, g))

    sx, sy, size, depth, visible = project_points(
        np.array(points, dtype=np.float64).reshape(-1, 3),
        snap.view_x, snap.view_y, width, height,
    )

    # Pre-extract as Python lists (avoids numpy scalar overhead in the loop)
    xs = sx.tolist()
    ys = sy.tolist()
    sizes = size.tolist()
    depths = depth.tolist()
    vis = visible.tolist()

    commands: list[DrawCommand] = []
    for k in range(len(meta)):
        if not vis[k]:
            continue
        half = sizes[k] / 2.0
        if xs[k] + half < 0 or xs[k] - half > width or ys[k] + half < 0 or ys[k] - half > height:
            continue
        brightness, g = meta[k]
        commands.append(DrawCommand(
            x=xs[k],
            y=ys[k],
            size=sizes[k],
            depth=depths[k],
            glyph=g.identifier,
            brightness=brightness,
            spinner=g.spinning,
            color=glyph_color(brightness, g.spinning),
        ))
    return commands
