"""Sample generator.

Runs the whole pipeline for one image: template selection,
correlation, candidate detection, scoring, border exclusion,
and then extraction, export and montage of the selected
patches.
"""
from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Optional

import numpy as np

from .core import (Candidates, GeneratorConfig, NoCandidatesError, Patches,
                   Region, Template, load_image, to_gray)
from .export import write_patches
from .extract import extract_patches
from .montage import font_size, montage
from .ncc import NCC
from .peaks import find_candidates
from .scoring import border_mask, normalize_scores, suppress_self_match
from .selection import SelectionState


class SampleGenerator:
    def __init__(self,
                 image: np.ndarray,
                 image_path: Optional[str] = None,
                 config: Optional[GeneratorConfig] = None) -> None:
        assert image.ndim in (2, 3)
        self._image = image.copy()
        self._image.flags.writeable = False
        self._gray = to_gray(image)
        self._path = None if image_path is None else Path(image_path)
        self._config = config or GeneratorConfig()

        self._region = Region.centered(image.shape, self._config.template_size)
        self._template: Optional[Template] = None
        self._corr: Optional[np.ndarray] = None
        self._candidates: Optional[Candidates] = None
        self._state: Optional[SelectionState] = None

    @classmethod
    def from_file(cls, path,
                  config: Optional[GeneratorConfig] = None) -> SampleGenerator:
        return cls(load_image(path), image_path=path, config=config)

    @property
    def image(self) -> np.ndarray:
        return self._image

    @property
    def gray(self) -> np.ndarray:
        return self._gray

    @property
    def image_path(self) -> Optional[Path]:
        return self._path

    @property
    def config(self) -> GeneratorConfig:
        return self._config

    @property
    def h(self) -> int:
        return self._image.shape[0]

    @property
    def w(self) -> int:
        return self._image.shape[1]

    @property
    def region(self) -> Region:
        return self._region

    @property
    def template(self) -> Optional[Template]:
        return self._template

    @property
    def correlation(self) -> Optional[np.ndarray]:
        return self._corr

    @property
    def candidates(self) -> Optional[Candidates]:
        return self._candidates

    @property
    def state(self) -> Optional[SelectionState]:
        return self._state

    def select_template(self, region: Region) -> Template:
        """Sets the template, discarding the current candidates."""
        self._region = region.clip(self._gray.shape)
        self._template = Template.from_image(self._gray, self._region)
        self._corr = None
        self._candidates = None
        self._state = None
        return self._template

    def compute(self) -> SelectionState:
        if self._template is None:
            self.select_template(self._region)
        template = self._template
        th, tw = template.th, template.tw

        corr = NCC(template.pixels).correlate(self._gray)
        xs, ys, raw = find_candidates(corr, th, tw)
        raw = suppress_self_match(raw)
        scores = normalize_scores(raw)
        bad = border_mask(xs, ys, self._gray.shape, th, tw)
        if bad.all():
            raise NoCandidatesError('Every candidate is too close to the '
                                    'image border, select a smaller template')

        self._corr = corr
        self._candidates = Candidates(xs=xs, ys=ys, raw=raw,
                                      scores=scores, bad=bad)
        self._state = SelectionState(self._candidates,
                                     self._gray.shape, th, tw)
        return self._state

    def extract(self, progress: bool = True) -> Patches:
        return extract_patches(self._image, self._require_state(), progress)

    def write_patches(self,
                      pattern_type: str,
                      output_dir=None,
                      progress: bool = True) -> list[Path]:
        if pattern_type not in self._config.pattern_types:
            raise ValueError(f'Unknown pattern type {pattern_type!r}, '
                             f'expected one of {self._config.pattern_types}')
        if self._path is None:
            raise ValueError('Patches can only be written for an image '
                             'loaded from a file')

        output_dir = Path(output_dir or self._config.output_dir)
        patches = self.extract(progress)
        written = write_patches(patches, self._path, output_dir,
                                pattern_type, progress)
        print(f'[INFO] wrote {len(written)} patches to {output_dir}.')
        return written

    def show_patches(self, progress: bool = True) -> tuple[np.ndarray,
                                                          np.ndarray]:
        patches = self.extract(progress)
        size = font_size(self._template.pixels.shape,
                         self._config.min_font_size,
                         self._config.max_font_size)
        return montage(patches, size, progress)

    def save(self, path) -> Path:
        state = self._require_state()
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savez_compressed(
            path,
            image_path=np.array('' if self._path is None else str(self._path)),
            config=np.array(json.dumps(dataclasses.asdict(self._config))),
            region=np.array(self._region.as_bounding_rect()),
            raw=self._candidates.raw,
            **state.state_dict())
        # savez appends the suffix when missing
        return path if path.suffix == '.npz' else path.with_name(path.name + '.npz')

    @classmethod
    def load(cls, path,
             image: Optional[np.ndarray] = None) -> SampleGenerator:
        """Restores a generator written by `save`.

        The image is read again from its recorded path unless given.
        """
        with np.load(path, allow_pickle=False) as data:
            saved = {k: data[k] for k in data.files}

        entries = json.loads(str(saved['config']))
        entries['pattern_types'] = tuple(entries['pattern_types'])
        config = GeneratorConfig(**entries)
        image_path = str(saved['image_path']) or None

        if image is not None:
            gen = cls(image, image_path=image_path, config=config)
        elif image_path is not None:
            gen = cls.from_file(image_path, config)
        else:
            raise ValueError('Session has no image path, pass the image')

        gen.select_template(Region(*map(int, saved['region'])))
        th, tw = gen.template.th, gen.template.tw
        gen._candidates = Candidates(xs=saved['xs'],
                                     ys=saved['ys'],
                                     raw=saved['raw'],
                                     scores=saved['scores'],
                                     bad=saved['bad'])
        gen._state = SelectionState(gen._candidates, gen.gray.shape, th, tw)
        gen._state.load_state_dict(saved)
        return gen

    def _require_state(self) -> SelectionState:
        if self._state is None:
            raise RuntimeError('No candidates yet, call compute() first')
        return self._state
