"""Candidate scores and border exclusion.
"""
from __future__ import annotations

import numpy as np

from .core import NoCandidatesError

SCORE_MIN = 0.1
SCORE_MAX = 1.0


def suppress_self_match(raw: np.ndarray) -> np.ndarray:
    """Replaces the top correlation value (the template's own location)
    by the runner-up.
    """
    scores = np.array(raw, dtype=np.float64)
    if scores.size < 2:
        return scores

    ordered = np.sort(scores)
    scores[scores == ordered[-1]] = ordered[-2]
    return scores


def normalize_scores(raw: np.ndarray) -> np.ndarray:
    scores = suppress_self_match(raw)
    if scores.size == 0:
        raise NoCandidatesError('No candidates found, reselect the template')

    lo, hi = scores.min(), scores.max()
    if hi - lo <= 0:
        # All equal
        return np.full_like(scores, SCORE_MAX)

    return SCORE_MIN + (SCORE_MAX - SCORE_MIN) * (scores - lo) / (hi - lo)


def border_mask(xs: np.ndarray,
                ys: np.ndarray,
                shape: tuple,
                th: int,
                tw: int) -> np.ndarray:
    """True for centers whose (2th+1) x (2tw+1) crop leaves the image.

    Coordinates are 0-based, the crop spans rows [y - th, y + th] and
    columns [x - tw, x + tw], both inclusive.
    """
    h, w = shape[:2]
    xs = np.asarray(xs)
    ys = np.asarray(ys)
    return (ys - th < 0) | (ys >= h - th) | (xs - tw < 0) | (xs >= w - tw)
