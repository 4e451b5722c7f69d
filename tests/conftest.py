"""Pytest configuration and shared fixtures for nxpatch tests."""

import cv2
import numpy as np
import pytest

from nxpatch.core import Candidates, Region
from nxpatch.scoring import border_mask
from nxpatch.selection import SelectionState


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def square_image():
    """100x100 black RGB image with a bright 21x21 square centered on (50, 50)."""
    img = np.zeros((100, 100, 3), dtype=np.float32)
    img[40:61, 40:61] = 1.0
    return img


@pytest.fixture
def square_region():
    """43x43 region centered on the square: half size 21, patches 43x43."""
    return Region(29, 29, 43, 43)


@pytest.fixture
def square_png(tmp_path, square_image):
    path = tmp_path / "square.png"
    cv2.imwrite(str(path), (square_image * 255).astype(np.uint8))
    return path


@pytest.fixture
def small_candidates():
    """Four candidates on a 50x50 image, the last one in the corner."""
    xs = np.array([10, 20, 30, 2])
    ys = np.array([10, 20, 30, 2])
    return Candidates(xs=xs,
                      ys=ys,
                      raw=np.array([0.2, 0.4, 0.6, 0.7]),
                      scores=np.array([0.1, 0.55, 0.8, 0.9]),
                      bad=border_mask(xs, ys, (50, 50), 5, 5))


@pytest.fixture
def small_state(small_candidates):
    return SelectionState(small_candidates, (50, 50), 5, 5)
