"""Selection state of the candidates.

Holds the score threshold, the manual overrides and the in-progress
drag offsets for one set of candidates. Every mutation goes through
the methods below, which notify subscribed listeners afterwards.
"""
from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from .core import Candidates
from .scoring import border_mask

SLIDER_SCALE = 100


def score_to_slider(score: float) -> int:
    return int(round(score * SLIDER_SCALE))


def slider_to_score(value: float) -> float:
    return value / SLIDER_SCALE


class SelectionState:
    def __init__(self,
                 candidates: Candidates,
                 shape: tuple,
                 th: int,
                 tw: int,
                 threshold: Optional[float] = None) -> None:
        n = len(candidates)
        self._xs = np.array(candidates.xs, dtype=np.int64)
        self._ys = np.array(candidates.ys, dtype=np.int64)
        self._scores = np.array(candidates.scores, dtype=np.float64)
        self._bad = np.array(candidates.bad, dtype=bool)
        self._manual_good = np.zeros(n, dtype=bool)
        self._manual_bad = np.zeros(n, dtype=bool)
        self._offsets = np.zeros((n, 2), dtype=np.int64)
        self._shape = tuple(shape[:2])
        self._th = th
        self._tw = tw

        if threshold is None:
            threshold = float(np.median(self._scores)) if n else 0.0
        self._threshold = self._clamp(threshold)

        self._drag: Optional[tuple[int, tuple[int, int]]] = None
        self._listeners: list[Callable[[SelectionState], None]] = []

    def __len__(self) -> int:
        return len(self._xs)

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def xs(self) -> np.ndarray:
        return self._xs.copy()

    @property
    def ys(self) -> np.ndarray:
        return self._ys.copy()

    @property
    def scores(self) -> np.ndarray:
        return self._scores.copy()

    @property
    def bad(self) -> np.ndarray:
        return self._bad.copy()

    @property
    def manual_good(self) -> np.ndarray:
        return self._manual_good.copy()

    @property
    def manual_bad(self) -> np.ndarray:
        return self._manual_bad.copy()

    @property
    def offsets(self) -> np.ndarray:
        return self._offsets.copy()

    @property
    def th(self) -> int:
        return self._th

    @property
    def tw(self) -> int:
        return self._tw

    @property
    def dragging(self) -> Optional[int]:
        return None if self._drag is None else self._drag[0]

    # Listeners

    def subscribe(self, callback: Callable[[SelectionState], None]):
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[SelectionState], None]):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self):
        for callback in list(self._listeners):
            callback(self)

    # Derived state

    def inclusion_mask(self) -> np.ndarray:
        above = self._scores >= self._threshold
        excluded = self._bad | self._manual_bad
        return (above & ~excluded) | self._manual_good

    def exclusion_mask(self) -> np.ndarray:
        return ~self.inclusion_mask()

    def is_included(self, index: int) -> bool:
        return bool(self.inclusion_mask()[index])

    def positions(self) -> np.ndarray:
        """(n, 2) array of displayed (x, y) centers, drag offsets included."""
        return np.stack([self._xs, self._ys], axis=1) + self._offsets

    def nearest(self, pos: tuple, max_dist: float) -> Optional[int]:
        if len(self) == 0:
            return None

        dists = np.hypot(*(self.positions() - np.asarray(pos)).T)
        near = np.flatnonzero(dists < max_dist)
        if near.size == 0:
            return None

        return int(near[np.argmin(dists[near])])

    # Commands

    def set_threshold(self, threshold: float):
        self._threshold = self._clamp(threshold)
        self._notify()

    apply_threshold = set_threshold

    def toggle(self, index: int) -> bool:
        """Flips the manual override of a candidate.

        Returns False, changing nothing, for border-excluded candidates.
        """
        if self._bad[index]:
            return False

        included = self.is_included(index)
        self._manual_bad[index] = included
        self._manual_good[index] = not included
        self._notify()
        return True

    toggle_manual = toggle

    def begin_drag(self, index: int, start: tuple):
        if self._drag is not None:
            self.cancel_drag(self._drag[0])

        self._drag = (index, (int(start[0]), int(start[1])))
        self._offsets[index] = 0
        self._notify()

    def update_drag(self, index: int, pos: tuple):
        if self._drag is None or self._drag[0] != index:
            return

        x0, y0 = self._drag[1]
        self._offsets[index] = (int(pos[0]) - x0, int(pos[1]) - y0)
        self._notify()

    def commit_drag(self, index: int):
        if self._drag is None or self._drag[0] != index:
            return

        dx, dy = self._offsets[index]
        self._xs[index] += dx
        self._ys[index] += dy
        self._offsets[index] = 0
        self._drag = None

        # The moved center must still fit a full crop
        bad = border_mask(self._xs[index:index + 1],
                          self._ys[index:index + 1],
                          self._shape,
                          self._th,
                          self._tw)[0]
        self._bad[index] = bad
        if bad:
            self._manual_good[index] = False

        self._notify()

    def cancel_drag(self, index: int):
        if self._drag is None or self._drag[0] != index:
            return

        self._offsets[index] = 0
        self._drag = None
        self._notify()

    def drag(self, index: int, start: tuple, end: tuple):
        self.begin_drag(index, start)
        self.update_drag(index, end)
        self.commit_drag(index)

    # Persistence

    def state_dict(self) -> dict[str, np.ndarray]:
        return {'xs': self.xs,
                'ys': self.ys,
                'scores': self.scores,
                'bad': self.bad,
                'manual_good': self.manual_good,
                'manual_bad': self.manual_bad,
                'threshold': np.array(self._threshold)}

    def load_state_dict(self, state: dict):
        n = len(state['xs'])
        assert all(len(state[k]) == n for k in ('ys', 'scores', 'bad',
                                                'manual_good', 'manual_bad'))
        assert not np.any(np.asarray(state['manual_good']) &
                          np.asarray(state['manual_bad']))
        self._xs = np.array(state['xs'], dtype=np.int64)
        self._ys = np.array(state['ys'], dtype=np.int64)
        self._scores = np.array(state['scores'], dtype=np.float64)
        self._bad = np.array(state['bad'], dtype=bool)
        self._manual_good = np.array(state['manual_good'], dtype=bool)
        self._manual_bad = np.array(state['manual_bad'], dtype=bool)
        self._offsets = np.zeros((n, 2), dtype=np.int64)
        self._threshold = self._clamp(float(state['threshold']))
        self._drag = None
        self._notify()

    @staticmethod
    def _clamp(threshold: float) -> float:
        return min(max(0.0, float(threshold)), 1.0)
