"""Normalized Cross-Correlation between
a template and a whole image.
"""
from __future__ import annotations

import cv2
import numpy as np


class NCC:
    def __init__(self, template: np.ndarray, eps: float = 1e-6) -> None:
        assert len(template.shape) == 2
        h, w = template.shape
        if h < 3 or w < 3:
            raise ValueError(f'Template must be at least 3x3, got {h}x{w}')

        self._template = np.ascontiguousarray(template, dtype=np.float32)
        if self._template.std() <= eps * np.abs(self._template).max():
            raise ValueError('Template has no contrast, '
                             'select a region with some structure')
        self._eps = eps

    @property
    def shape(self) -> tuple[int, int]:
        return self._template.shape

    def full(self, image: np.ndarray) -> np.ndarray:
        """Correlation for every overlap of template and zero-padded image.

        The result has shape (h + th - 1, w + tw - 1); entry (r, c) belongs to
        the template placed with its top-left corner at image pixel
        (r - th + 1, c - tw + 1).
        """
        assert len(image.shape) == 2
        th, tw = self.shape
        padded = cv2.copyMakeBorder(np.ascontiguousarray(image,
                                                         dtype=np.float32),
                                    th - 1, th - 1, tw - 1, tw - 1,
                                    cv2.BORDER_CONSTANT,
                                    value=0)
        res = cv2.matchTemplate(padded, self._template, cv2.TM_CCOEFF_NORMED)

        # Coefficient is undefined where the window has no energy, relative
        # to the busiest window
        std = np.sqrt(np.maximum(self._window_variance(padded), 0.0))
        res[std <= self._eps * std.max()] = 0.0
        np.nan_to_num(res, copy=False)
        return np.clip(res, -1.0, 1.0)

    def correlate(self, image: np.ndarray) -> np.ndarray:
        """Correlation map aligned with the image.

        Entry (y, x) is the coefficient of the template centered on image
        pixel (x, y), the center being ((tw - 1) // 2, (th - 1) // 2) inside
        the template.
        """
        h, w = image.shape[:2]
        th, tw = self.shape
        if th > h or tw > w:
            raise ValueError(f'Template ({th}x{tw}) is larger '
                             f'than the image ({h}x{w})')

        res = self.full(image)

        # Remove the padding, keeping one row/column per image pixel
        y0, x0 = th // 2, tw // 2
        return res[y0:y0 + h, x0:x0 + w]

    def _window_variance(self, padded: np.ndarray) -> np.ndarray:
        th, tw = self.shape
        s, sq = cv2.integral2(padded, sdepth=cv2.CV_64F, sqdepth=cv2.CV_64F)

        def box(t: np.ndarray) -> np.ndarray:
            return t[th:, tw:] - t[:-th, tw:] - t[th:, :-tw] + t[:-th, :-tw]

        n = th * tw
        mean = box(s) / n
        return box(sq) / n - mean ** 2
