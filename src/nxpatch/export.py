"""Writing patches to disk.
"""
from __future__ import annotations

from pathlib import Path

import cv2
import numpy as np
from tqdm import tqdm

from .core import Patches
from .selection import SLIDER_SCALE

PATCH_TEMPLATE = ('{base}_type{type}_patch{index:04d}'
                  '_centerx{cx:04d}_centery{cy:04d}_score{score:6.2f}{ext}')


def patch_filename(base: str,
                   pattern_type: str,
                   index: int,
                   center: tuple[int, int],
                   score: float,
                   ext: str) -> str:
    """File name of the `index`-th (1-based) patch of an image."""
    cx, cy = center
    return PATCH_TEMPLATE.format(base=base,
                                 type=pattern_type,
                                 index=index,
                                 cx=int(cx),
                                 cy=int(cy),
                                 score=score * SLIDER_SCALE,
                                 ext=ext)


def to_uint8(patch: np.ndarray) -> np.ndarray:
    return np.clip(np.round(patch * 255.0), 0, 255).astype(np.uint8)


def write_patches(patches: Patches,
                  image_path,
                  output_dir,
                  pattern_type: str,
                  progress: bool = True) -> list[Path]:
    image_path = Path(image_path)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    items = zip(patches.patches, patches.scores, patches.centers)
    for ii, (patch, score, center) in enumerate(tqdm(items,
                                                     total=len(patches),
                                                     desc='writing patches',
                                                     disable=not progress,
                                                     leave=False),
                                                start=1):
        name = patch_filename(image_path.stem,
                              pattern_type,
                              ii,
                              tuple(center),
                              float(score),
                              image_path.suffix)
        p = output_dir.joinpath(name)
        try:
            ok = cv2.imwrite(str(p), to_uint8(patch))
        except cv2.error as e:
            raise OSError(f'Could not write patch {p}: {e}') from e
        if not ok:
            raise OSError(f'Could not write patch {p}')
        written.append(p)

    return written
