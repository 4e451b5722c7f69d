"""Local maxima of a correlation map.
"""
from __future__ import annotations

import cv2
import numpy as np


def local_maxima(corr: np.ndarray, th: int, tw: int) -> np.ndarray:
    """Boolean mask of non-strict local maxima over a (th x tw) window.

    A pixel is marked when no other value inside the window centered on it
    is larger, so plateaus mark every pixel they contain. Pixels outside the
    map count as zeros.
    """
    assert len(corr.shape) == 2
    assert th % 2 == 1 and tw % 2 == 1

    corr = np.ascontiguousarray(corr, dtype=np.float32)
    kernel = np.ones((th, tw), dtype=np.uint8)
    neighborhood_max = cv2.dilate(corr,
                                  kernel,
                                  borderType=cv2.BORDER_CONSTANT,
                                  borderValue=0)
    return corr >= neighborhood_max


def find_candidates(corr: np.ndarray,
                    th: int,
                    tw: int) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Returns xs, ys and correlation values of every local maximum."""
    mask = local_maxima(corr, th, tw)
    ys, xs = np.nonzero(mask)
    return xs.astype(np.int64), ys.astype(np.int64), corr[ys, xs].astype(np.float64)
