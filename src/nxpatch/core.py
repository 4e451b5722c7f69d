"""Entities.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import cv2
import numpy as np


class NoCandidatesError(ValueError):
    """No usable candidate was found for the selected template."""


class EmptySelectionError(ValueError):
    """Extraction was requested with nothing selected."""


@dataclass(frozen=True)
class Region:
    x: int
    y: int
    w: int
    h: int

    def as_bounding_rect(self) -> tuple[int, int, int, int]:
        return self.x, self.y, self.w, self.h

    def clip(self, shape: tuple) -> Region:
        height, width = shape[:2]
        x = min(max(0, self.x), width)
        y = min(max(0, self.y), height)
        w = max(0, min(self.x + self.w, width) - x)
        h = max(0, min(self.y + self.h, height) - y)
        return Region(x, y, w, h)

    def crop(self, image: np.ndarray) -> np.ndarray:
        return image[self.y:self.y + self.h,
                     self.x:self.x + self.w]

    @classmethod
    def centered(cls, shape: tuple, size: int) -> Region:
        """Square region of side `size` in the middle of an image."""
        height, width = shape[:2]
        x = max(0, width // 2 - size // 2)
        y = max(0, height // 2 - size // 2)
        return cls(x, y, size, size).clip(shape)


def half_size(n: int) -> int:
    """Odd half extent of a template side (floor to even, plus one)."""
    return (n // 4) * 2 + 1


@dataclass(frozen=True)
class Template:
    region: Region
    pixels: np.ndarray

    @property
    def th(self) -> int:
        return half_size(self.pixels.shape[0])

    @property
    def tw(self) -> int:
        return half_size(self.pixels.shape[1])

    @property
    def patch_shape(self) -> tuple[int, int]:
        return 2 * self.th + 1, 2 * self.tw + 1

    @classmethod
    def from_image(cls, gray: np.ndarray, region: Region) -> Template:
        assert gray.ndim == 2
        region = region.clip(gray.shape)
        return cls(region=region,
                   pixels=region.crop(gray).copy())


@dataclass
class Candidates:
    """One entry per local maximum of the correlation map.

    `raw` holds the correlation values with the self match already replaced
    by the runner-up, `scores` their rescaled version.
    """
    xs: np.ndarray
    ys: np.ndarray
    raw: np.ndarray
    scores: np.ndarray
    bad: np.ndarray

    def __len__(self) -> int:
        return len(self.xs)


@dataclass
class Patches:
    patches: list[np.ndarray] = field(default_factory=list)
    scores: np.ndarray = field(default_factory=lambda: np.zeros(0))
    centers: np.ndarray = field(
        default_factory=lambda: np.zeros((0, 2), dtype=np.int64))

    def __len__(self) -> int:
        return len(self.patches)


@dataclass(frozen=True)
class GeneratorConfig:
    template_size: int = 40
    resizable_template: bool = False
    inspect_template: bool = False
    output_dir: str = './patches/'
    dist_thresh: float = 10.0
    max_font_size: int = 20
    min_font_size: int = 10
    pattern_types: tuple[str, ...] = ('type1', 'type2')


def load_image(path) -> np.ndarray:
    """Reads an image and scales it to float32 in [0, 1]."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f'Image not found: {p}')

    img = cv2.imread(str(p), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError(f'Could not decode image: {p}')

    return img.astype(np.float32) / 255.0


def to_gray(image: np.ndarray) -> np.ndarray:
    # Unweighted mean across channels
    if image.ndim == 2:
        return image.astype(np.float32)
    return image.mean(axis=2).astype(np.float32)


class ImageFolder:
    def __init__(self, directory, pattern: str = '*.jpg'):
        self._dir = Path(directory).resolve()
        self._pattern = pattern

        if not self._dir.is_dir():
            raise FileNotFoundError(f'Input directory not found: {self._dir}')

        self._paths = sorted(p for p in self._dir.glob(pattern)
                             if p.is_file())

    @property
    def name(self) -> str:
        return self._dir.name

    @property
    def paths(self) -> list[Path]:
        return list(self._paths)

    def n_images(self) -> int:
        return len(self._paths)

    def __len__(self) -> int:
        return self.n_images()

    def image(self, index: int) -> np.ndarray:
        assert 0 <= index < len(self._paths)
        return load_image(self._paths[index])
