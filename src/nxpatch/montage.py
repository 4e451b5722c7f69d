"""Montage of extracted patches,
with and without score annotations.
"""
from __future__ import annotations

import math

import cv2
import numpy as np
from tqdm import tqdm

from .core import Patches
from .selection import SLIDER_SCALE

FONT = cv2.FONT_HERSHEY_SIMPLEX


def font_size(template_shape: tuple,
              min_size: int = 10,
              max_size: int = 20) -> int:
    height, width = template_shape[:2]
    return min(max_size, max(min_size, round(min(height, width) / 10)))


def annotate(patch: np.ndarray, score: float, size: int) -> np.ndarray:
    """Upscales a patch 2x and writes its score in the bottom-left corner."""
    big = cv2.resize(patch, None, fx=2, fy=2, interpolation=cv2.INTER_LINEAR)
    big = np.ascontiguousarray(big)
    scale = cv2.getFontScaleFromHeight(FONT, size, 1)
    color = (1.0,) * (big.shape[2] if big.ndim == 3 else 1)
    cv2.putText(big,
                f'{score * SLIDER_SCALE:3.2f}',
                (1, big.shape[0] - 2),
                FONT,
                scale,
                color,
                1,
                cv2.LINE_AA)
    return big


def collage(images: list[np.ndarray],
            border_width: int = 3,
            border_value: float = 0.0) -> np.ndarray:
    """Tiles images row by row on a near-square grid."""
    assert len(images) > 0
    n = len(images)
    cols = math.ceil(math.sqrt(n))
    rows = math.ceil(n / cols)
    cell_h = max(img.shape[0] for img in images)
    cell_w = max(img.shape[1] for img in images)

    shape = (rows * cell_h + (rows + 1) * border_width,
             cols * cell_w + (cols + 1) * border_width) + images[0].shape[2:]
    canvas = np.full(shape, border_value, dtype=images[0].dtype)

    for i, img in enumerate(images):
        r, c = divmod(i, cols)
        y = border_width + r * (cell_h + border_width)
        x = border_width + c * (cell_w + border_width)
        canvas[y:y + img.shape[0], x:x + img.shape[1]] = img

    return canvas


def montage(patches: Patches,
            size: int,
            progress: bool = True) -> tuple[np.ndarray, np.ndarray]:
    """Returns the annotated and the plain collage."""
    annotated = [annotate(p, s, size)
                 for p, s in tqdm(zip(patches.patches, patches.scores),
                                  total=len(patches),
                                  desc='annotating patches',
                                  disable=not progress,
                                  leave=False)]
    return collage(annotated), collage(patches.patches)
