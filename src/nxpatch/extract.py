"""Patch extraction.
"""
from __future__ import annotations

import numpy as np
from tqdm import tqdm

from .core import EmptySelectionError, Patches
from .scoring import border_mask
from .selection import SelectionState


def crop_patch(image: np.ndarray, x: int, y: int, th: int, tw: int) -> np.ndarray:
    # 0-based center, inclusive half extents: (2th+1) x (2tw+1)
    return image[y - th:y + th + 1,
                 x - tw:x + tw + 1].copy()


def extract_patches(image: np.ndarray,
                    state: SelectionState,
                    progress: bool = True) -> Patches:
    """Crops every included candidate, best score first.

    Ties keep the candidates' original order.
    """
    mask = state.inclusion_mask()

    # Border-excluded candidates never reach the mask through the state
    assert not np.any(mask & state.bad)

    # A drag in progress is not border checked until it is committed
    positions = state.positions()
    mask &= ~border_mask(positions[:, 0], positions[:, 1],
                         image.shape, state.th, state.tw)
    if not mask.any():
        raise EmptySelectionError('No candidates selected, lower the '
                                  'threshold or reselect the template')

    idx = np.flatnonzero(mask)
    scores = state.scores[idx]
    perm = np.argsort(-scores, kind='stable')
    idx, scores = idx[perm], scores[perm]
    centers = positions[idx]

    patches = []
    for x, y in tqdm(centers,
                     desc='extracting patches',
                     disable=not progress,
                     leave=False):
        patches.append(crop_patch(image, int(x), int(y), state.th, state.tw))

    return Patches(patches=patches,
                   scores=scores,
                   centers=centers)
