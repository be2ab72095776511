"""Deterministic, per-graph distinct node colors."""

import colorsys
import hashlib
import logging
from typing import Iterable, Optional

import config

logger = logging.getLogger("tracelens")

GOLDEN_RATIO_CONJUGATE = 0.6180339887498949

_HASH_RANGE = float(2 ** 32)


def seed_hue(identity: str) -> float:
    """Stable hue in [0, 1) for *identity* (same across processes)."""
    digest = hashlib.sha1(identity.encode("utf-8")).hexdigest()
    return int(digest[:8], 16) / _HASH_RANGE


def hue_to_hex(hue: float, saturation: float, lightness: float) -> str:
    r, g, b = colorsys.hls_to_rgb(hue % 1.0, lightness, saturation)
    return "#{:02x}{:02x}{:02x}".format(round(r * 255), round(g * 255), round(b * 255))


def assign_colors(
    nodes: Iterable,
    saturation: Optional[float] = None,
    lightness: Optional[float] = None,
    max_attempts: Optional[int] = None,
) -> dict[str, str]:
    """Map each node id to a color, pairwise distinct within *nodes*.

    *nodes* are objects with ``id`` and ``label`` attributes, processed in
    the given order. A node's base hue comes from its id (label if the id
    is empty), so the same id starts from the same color on every render.
    On a clash the hue steps by the golden-ratio conjugate divided by the
    attempt number until a free color turns up. After ``max_attempts`` the
    clashing color is kept; only graphs approaching the size of the color
    space get there.
    """
    if saturation is None:
        saturation = config.COLOR_SATURATION
    if lightness is None:
        lightness = config.COLOR_LIGHTNESS
    if max_attempts is None:
        max_attempts = config.COLOR_MAX_ATTEMPTS

    colors: dict[str, str] = {}
    used: set[str] = set()
    for node in nodes:
        identity = node.id or (node.label or "")
        hue = seed_hue(identity)
        color = hue_to_hex(hue, saturation, lightness)
        attempt = 0
        while color in used and attempt < max_attempts:
            attempt += 1
            hue = (hue + GOLDEN_RATIO_CONJUGATE / attempt) % 1.0
            color = hue_to_hex(hue, saturation, lightness)
        if color in used:
            logger.warning(f"[Colors] No free color for node {identity!r} after {attempt} attempts")
        used.add(color)
        colors[node.id] = color
    return colors
