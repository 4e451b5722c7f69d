"""Tests for patch extraction."""

import numpy as np
import pytest

from nxpatch.core import Candidates, EmptySelectionError
from nxpatch.extract import crop_patch, extract_patches
from nxpatch.scoring import border_mask
from nxpatch.selection import SelectionState


@pytest.fixture
def image(rng):
    return rng.random((50, 50, 3)).astype(np.float32)


class TestExtractPatches:

    def test_sorted_by_descending_score(self, image, small_state):
        small_state.set_threshold(0.0)
        patches = extract_patches(image, small_state, progress=False)
        assert len(patches) == 3
        np.testing.assert_allclose(patches.scores, [0.8, 0.55, 0.1])
        np.testing.assert_array_equal(patches.centers,
                                      [[30, 30], [20, 20], [10, 10]])

    def test_crop_size_and_content(self, image, small_state):
        small_state.set_threshold(0.0)
        patches = extract_patches(image, small_state, progress=False)
        for patch in patches.patches:
            assert patch.shape == (11, 11, 3)
        np.testing.assert_array_equal(patches.patches[0],
                                      image[25:36, 25:36])

    def test_ties_keep_original_order(self, image):
        xs = np.array([30, 10, 20, 40])
        ys = np.array([10, 20, 30, 40])
        state = SelectionState(Candidates(xs=xs,
                                          ys=ys,
                                          raw=np.zeros(4),
                                          scores=np.array([0.5, 0.5, 0.7, 0.5]),
                                          bad=border_mask(xs, ys, (50, 50),
                                                          5, 5)),
                               (50, 50), 5, 5, threshold=0.0)
        patches = extract_patches(image, state, progress=False)
        np.testing.assert_array_equal(patches.centers,
                                      [[20, 30], [30, 10], [10, 20], [40, 40]])

    def test_manual_overrides(self, image, small_state):
        small_state.set_threshold(0.95)
        small_state.toggle(0)
        patches = extract_patches(image, small_state, progress=False)
        np.testing.assert_array_equal(patches.centers, [[10, 10]])

    def test_uses_committed_drag(self, image, small_state):
        small_state.drag(2, (30, 30), (33, 28))
        patches = extract_patches(image, small_state, progress=False)
        np.testing.assert_array_equal(patches.centers, [[33, 28]])
        np.testing.assert_array_equal(patches.patches[0],
                                      image[23:34, 28:39])

    def test_uncommitted_drag_into_border_is_skipped(self, image, small_state):
        small_state.set_threshold(0.0)
        small_state.begin_drag(2, (30, 30))
        small_state.update_drag(2, (47, 30))
        patches = extract_patches(image, small_state, progress=False)
        np.testing.assert_array_equal(patches.centers, [[20, 20], [10, 10]])
        for patch in patches.patches:
            assert patch.shape == (11, 11, 3)

    def test_uncommitted_drag_inside_is_used(self, image, small_state):
        small_state.begin_drag(2, (30, 30))
        small_state.update_drag(2, (33, 28))
        patches = extract_patches(image, small_state, progress=False)
        np.testing.assert_array_equal(patches.centers, [[33, 28]])
        assert patches.patches[0].shape == (11, 11, 3)

    def test_only_candidate_dragged_into_border(self, image, small_state):
        small_state.begin_drag(2, (30, 30))
        small_state.update_drag(2, (30, 2))
        with pytest.raises(EmptySelectionError):
            extract_patches(image, small_state, progress=False)

    def test_empty_selection_raises(self, image, small_state):
        small_state.set_threshold(0.95)
        with pytest.raises(EmptySelectionError):
            extract_patches(image, small_state, progress=False)

    def test_bad_candidate_in_mask_is_fatal(self, image, small_state):
        saved = small_state.state_dict()
        saved["manual_good"][3] = True
        small_state.load_state_dict(saved)
        with pytest.raises(AssertionError):
            extract_patches(image, small_state, progress=False)

    def test_grayscale_image(self, image, small_state):
        gray = image.mean(axis=2)
        patches = extract_patches(gray, small_state, progress=False)
        assert patches.patches[0].shape == (11, 11)


def test_crop_patch_is_a_copy(image):
    patch = crop_patch(image, 20, 20, 2, 3)
    assert patch.shape == (5, 7, 3)
    patch[:] = 0
    assert image[18:23, 17:24].any()
