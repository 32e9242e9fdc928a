#!/usr/bin/python3
# -*- coding: UTF-8 -*-
# scoring.py — Score formula for Dead Stop
# Pure functions only: no side effects, no I/O. Exact Fraction arithmetic throughout.

from __future__ import annotations

import math
from fractions import Fraction
from typing import Iterable

from errors import EmptyTargetList

# ---------------------------------------------------------------------------
# Score table
# ---------------------------------------------------------------------------

# (largest delta in the bucket, base score), checked in order
BASE_SCORES: tuple[tuple[int, int], ...] = (
    (0, 100),
    (5, 80),
    (10, 60),
    (20, 40),
    (50, 20),
)
MISS_BASE: int = 0             # delta > 50


# ---------------------------------------------------------------------------
# Per-target scoring
# ---------------------------------------------------------------------------

def distance(counter_value: int, target: int) -> int:
    """Return |counter_value - target|."""
    return abs(counter_value - target)


def base_score(delta: int) -> int:
    """Return the bucketed base score for a distance from the target."""
    if delta < 0:
        raise ValueError(f"delta must be non-negative, got {delta}")
    for ceiling, base in BASE_SCORES:
        if delta <= ceiling:
            return base
    return MISS_BASE


def score(delta: int, miss: int, strength: int) -> Fraction:
    """Raw score for one target: (base + strength) / (miss + 1), kept exact.

    >>> score(0, 0, 10)
    Fraction(110, 1)
    >>> score(3, 2, 0)
    Fraction(80, 3)
    """
    if miss < 0:
        raise ValueError(f"miss must be non-negative, got {miss}")
    if strength < 0:
        raise ValueError(f"strength must be non-negative, got {strength}")
    return Fraction(base_score(delta) + strength, miss + 1)


def target_score(counter_value: int, target: int, miss: int, strength: int) -> Fraction:
    """Raw score for a counter frozen at counter_value against target."""
    return score(distance(counter_value, target), miss, strength)


# ---------------------------------------------------------------------------
# Turn aggregation
# ---------------------------------------------------------------------------

def mean_score(raw_scores: Iterable[Fraction]) -> Fraction:
    """Exact mean of a turn's raw scores. Raises EmptyTargetList for an empty turn."""
    scores = list(raw_scores)
    if not scores:
        raise EmptyTargetList("cannot average a turn with no targets")
    return sum(scores, Fraction(0)) / len(scores)


def turn_score(raw_scores: Iterable[Fraction]) -> int:
    """Ceiling of the mean raw score. Rounds fractional averages up, in the player's favour."""
    return math.ceil(mean_score(raw_scores))
