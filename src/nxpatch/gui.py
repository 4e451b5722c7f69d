"""OpenCV front end.

Usage:
    session = InteractiveSession(SampleGenerator.from_file('0001.jpg'))
    session.run()

Controls, once the template rectangle is confirmed (Enter/Space):
    trackbar        score threshold
    left drag       move a candidate center
    right click     include / exclude a candidate
    e               extract, reporting the number of patches
    s               show a montage of the patches
    w               write the patches (then 1, 2, ... picks the type)
    t               select a new template
    q / Esc         done with this image
"""
from __future__ import annotations

from typing import Optional

import cv2
import numpy as np

from .core import EmptySelectionError, NoCandidatesError, Region
from .export import to_uint8
from .generator import SampleGenerator
from .selection import (SLIDER_SCALE, SelectionState, score_to_slider,
                        slider_to_score)

WINDOW = 'nxpatch'
TEMPLATE_WINDOW = 'template'
MONTAGE_WINDOW = 'patches (annotated)'
PLAIN_MONTAGE_WINDOW = 'patches'
TRACKBAR = 'threshold x100'

# BGR
COLOR_GREEN = (0, 255, 0)
COLOR_RED = (0, 0, 255)
COLOR_BLUE = (255, 0, 0)
COLOR_YELLOW = (0, 255, 255)
COLOR_WHITE = (255, 255, 255)
COLOR_BLACK = (0, 0, 0)

KEY_ESC = 27
KEY_NONE = 255


def to_display(image: np.ndarray) -> np.ndarray:
    """8-bit BGR copy of a [0, 1] image."""
    img = to_uint8(image)
    if img.ndim == 2:
        img = cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    return img


def marker_radius(score: float, scale: float = 6.0) -> int:
    return max(2, int(round(scale * np.sqrt(score))))


def draw_text_with_background(img: np.ndarray,
                              text: str,
                              position: tuple[int, int],
                              font_scale: float = 0.6,
                              thickness: int = 1,
                              padding: int = 4) -> None:
    font = cv2.FONT_HERSHEY_SIMPLEX
    (text_w, text_h), baseline = cv2.getTextSize(text, font, font_scale,
                                                 thickness)
    x, y = position
    cv2.rectangle(img,
                  (x - padding, y - text_h - padding),
                  (x + text_w + padding, y + baseline + padding),
                  COLOR_BLACK,
                  -1)
    cv2.putText(img, text, (x, y), font, font_scale, COLOR_WHITE, thickness,
                cv2.LINE_AA)


def draw_candidates(img: np.ndarray,
                    state: SelectionState,
                    hover: Optional[int] = None) -> np.ndarray:
    """Draws every candidate on `img` (in place).

    Filled gray disc sized and shaded by score, a thick green ring when
    included, a thin red ring otherwise, and a yellow square on `hover`.
    """
    included = state.inclusion_mask()
    scores = state.scores
    for i, (x, y) in enumerate(state.positions()):
        center = (int(x), int(y))
        r = marker_radius(scores[i])
        shade = int(round(255 * scores[i]))
        cv2.circle(img, center, r, (shade, shade, shade), -1)
        if included[i]:
            cv2.circle(img, center, r + 3, COLOR_GREEN, 3)
        else:
            cv2.circle(img, center, r + 2, COLOR_RED, 1)

    if hover is not None and hover < len(state):
        x, y = state.positions()[hover]
        r = marker_radius(scores[hover], 8.0) + 4
        cv2.rectangle(img, (int(x) - r, int(y) - r), (int(x) + r, int(y) + r),
                      COLOR_YELLOW, 2)
    return img


class InteractiveSession:
    def __init__(self,
                 generator: SampleGenerator,
                 window: str = WINDOW) -> None:
        self._gen = generator
        self._window = window
        self._base = to_display(generator.image)
        self._hover: Optional[int] = None
        self._choosing_type = False
        self._trackbar = False

    @property
    def generator(self) -> SampleGenerator:
        return self._gen

    @property
    def choosing_type(self) -> bool:
        return self._choosing_type

    def run(self):
        cv2.namedWindow(self._window, cv2.WINDOW_NORMAL)
        try:
            if not (self.select_template() and self.compute()):
                return

            while True:
                key = cv2.waitKey(20) & 0xFF
                if key != KEY_NONE and not self.on_key(key):
                    break
                if cv2.getWindowProperty(self._window,
                                         cv2.WND_PROP_VISIBLE) < 1:
                    break
        finally:
            cv2.destroyAllWindows()

    def select_template(self) -> bool:
        """Lets the user draw the template rectangle.

        Returns False when the selection was cancelled.
        """
        preview = self._base.copy()
        r = self._gen.region
        cv2.rectangle(preview, (r.x, r.y), (r.x + r.w, r.y + r.h),
                      COLOR_BLUE, 1)
        x, y, w, h = map(int, cv2.selectROI(self._window, preview,
                                            showCrosshair=True,
                                            fromCenter=False))
        if w == 0 or h == 0:
            return False

        region = Region(x, y, w, h)
        if not self._gen.config.resizable_template:
            # Fixed size square around the chosen center
            size = self._gen.config.template_size
            region = Region(x + w // 2 - size // 2,
                            y + h // 2 - size // 2,
                            size, size)

        template = self._gen.select_template(region)
        if self._gen.config.inspect_template:
            cv2.imshow(TEMPLATE_WINDOW, to_display(template.region.crop(
                self._gen.image)))
        return True

    def compute(self) -> bool:
        try:
            state = self._gen.compute()
        except (NoCandidatesError, ValueError) as e:
            self.notify(str(e))
            return False

        state.subscribe(self._on_change)
        self._hover = None
        value = score_to_slider(state.threshold)
        if self._trackbar:
            cv2.setTrackbarPos(TRACKBAR, self._window, value)
        else:
            cv2.createTrackbar(TRACKBAR, self._window, value, SLIDER_SCALE,
                               self.on_trackbar)
            self._trackbar = True
        cv2.setMouseCallback(self._window, self.on_mouse)
        self.render()
        return True

    def notify(self, message: str):
        """Shows a message on top of the image until a key is pressed."""
        print(f'[WARNING] {message}')
        canvas = self.render(show=False)
        draw_text_with_background(canvas, message, (10, 30))
        draw_text_with_background(canvas, 'press any key', (10, 60))
        cv2.imshow(self._window, canvas)
        cv2.waitKey(0)
        self.render()

    def render(self, show: bool = True) -> np.ndarray:
        canvas = self._base.copy()
        state = self._gen.state
        if state is not None:
            draw_candidates(canvas, state, self._hover)
        if self._choosing_type:
            types = ', '.join(f'{i}: {t}' for i, t in
                              enumerate(self._gen.config.pattern_types, 1))
            draw_text_with_background(canvas, f'pattern type? {types}',
                                      (10, 30))
        if show:
            cv2.imshow(self._window, canvas)
        return canvas

    def _on_change(self, state: SelectionState):
        self.render()

    # Event handlers

    def on_trackbar(self, value: int):
        state = self._gen.state
        if state is not None:
            state.set_threshold(slider_to_score(value))

    def on_mouse(self, event: int, x: int, y: int, flags: int = 0,
                 param=None):
        state = self._gen.state
        if state is None:
            return

        pos = (x, y)
        dist = self._gen.config.dist_thresh
        if event == cv2.EVENT_LBUTTONDOWN:
            index = state.nearest(pos, dist)
            if index is not None:
                state.begin_drag(index, pos)
        elif event == cv2.EVENT_MOUSEMOVE:
            self._hover = state.nearest(pos, dist)
            if state.dragging is not None:
                state.update_drag(state.dragging, pos)
            else:
                self.render()
        elif event == cv2.EVENT_LBUTTONUP:
            if state.dragging is not None:
                state.commit_drag(state.dragging)
        elif event == cv2.EVENT_RBUTTONDOWN:
            index = state.nearest(pos, dist)
            if index is not None:
                state.toggle(index)

    def on_key(self, key: int) -> bool:
        """Handles a key press, returns False when the session is over."""
        if self._choosing_type:
            self._choosing_type = False
            self._write(key)
            self.render()
            return True

        ch = chr(key).lower()
        if key == KEY_ESC or ch == 'q':
            return False
        if ch == 'e':
            try:
                patches = self._gen.extract()
            except EmptySelectionError as e:
                self.notify(str(e))
            else:
                print(f'[INFO] {len(patches)} patches selected.')
        elif ch == 's':
            try:
                annotated, plain = self._gen.show_patches()
            except EmptySelectionError as e:
                self.notify(str(e))
            else:
                cv2.imshow(MONTAGE_WINDOW, to_display(annotated))
                cv2.imshow(PLAIN_MONTAGE_WINDOW, to_display(plain))
        elif ch == 'w':
            self._choosing_type = True
            self.render()
        elif ch == 't':
            if self.select_template():
                self.compute()
            else:
                self.render()
        return True

    def _write(self, key: int):
        types = self._gen.config.pattern_types
        index = key - ord('1')
        if not 0 <= index < len(types):
            return

        try:
            self._gen.write_patches(types[index])
        except (EmptySelectionError, OSError) as e:
            self.notify(str(e))
