"""End-to-end tests of the sample generator on synthetic images."""

import numpy as np
import pytest

from nxpatch.core import GeneratorConfig, NoCandidatesError, Region
from nxpatch.generator import SampleGenerator


@pytest.fixture
def square_gen(square_image, square_png, square_region, tmp_path):
    config = GeneratorConfig(output_dir=str(tmp_path / "patches"))
    gen = SampleGenerator(square_image, image_path=square_png, config=config)
    gen.select_template(square_region)
    return gen


class TestSquareScenario:

    def test_half_sizes(self, square_gen):
        assert (square_gen.template.th, square_gen.template.tw) == (21, 21)

    def test_correlation_peaks_on_square(self, square_gen):
        square_gen.compute()
        corr = square_gen.correlation
        assert corr.shape == (100, 100)
        assert np.unravel_index(np.argmax(corr), corr.shape) == (50, 50)
        assert corr.min() >= -1.0 and corr.max() <= 1.0

    def test_peak_is_a_good_candidate(self, square_gen):
        state = square_gen.compute()
        index = state.nearest((50, 50), 0.5)
        assert index is not None
        assert not state.bad[index]
        assert state.is_included(index)

    def test_self_match_suppressed(self, square_gen):
        state = square_gen.compute()
        cands = square_gen.candidates
        peak = state.nearest((50, 50), 0.5)
        # the self match ties with the runner-up instead of standing alone
        assert cands.raw[peak] == cands.raw.max()
        assert np.count_nonzero(cands.raw == cands.raw.max()) >= 2
        assert cands.raw[peak] < square_gen.correlation[50, 50]
        assert state.scores[peak] == state.scores.max()
        assert np.count_nonzero(state.scores == state.scores.max()) >= 2
        assert np.all((state.scores >= 0.1) & (state.scores <= 1.0))

    def test_extract_everything_at_zero(self, square_gen):
        state = square_gen.compute()
        state.set_threshold(0.0)
        patches = square_gen.extract(progress=False)
        assert len(patches) == np.count_nonzero(~state.bad)
        for patch in patches.patches:
            assert patch.shape == (43, 43, 3)
        top = patches.centers[patches.scores == patches.scores[0]]
        assert [50, 50] in top.tolist()
        assert np.all(np.diff(patches.scores) <= 0)

    def test_peak_patch_content(self, square_gen, square_image):
        square_gen.compute()
        patches = square_gen.extract(progress=False)
        i = patches.centers.tolist().index([50, 50])
        np.testing.assert_array_equal(patches.patches[i],
                                      square_image[29:72, 29:72])

    def test_border_candidates_never_extracted(self, square_gen):
        state = square_gen.compute()
        state.set_threshold(0.0)
        patches = square_gen.extract(progress=False)
        h, w = square_gen.h, square_gen.w
        for x, y in patches.centers:
            assert 21 <= x < w - 21 and 21 <= y < h - 21


class TestLifecycle:

    def test_default_template_region(self, square_image):
        gen = SampleGenerator(square_image,
                              config=GeneratorConfig(template_size=32))
        assert gen.region == Region(34, 34, 32, 32)

    def test_compute_uses_default_region(self, square_image):
        gen = SampleGenerator(square_image)
        state = gen.compute()
        assert gen.template.region == Region(30, 30, 40, 40)
        assert len(state) > 0

    def test_new_template_discards_candidates(self, square_gen):
        square_gen.compute()
        square_gen.select_template(Region(20, 20, 30, 30))
        assert square_gen.state is None
        assert square_gen.candidates is None

    def test_extract_before_compute(self, square_gen):
        with pytest.raises(RuntimeError):
            square_gen.extract()

    def test_image_is_read_only(self, square_gen, square_image):
        assert not square_gen.image.flags.writeable
        square_image[:] = 0.5
        assert square_gen.image.max() == 1.0

    def test_all_candidates_on_border(self, rng):
        gen = SampleGenerator(rng.random((30, 30)).astype(np.float32))
        gen.select_template(Region(0, 0, 29, 29))
        with pytest.raises(NoCandidatesError):
            gen.compute()

    def test_template_too_narrow(self, rng):
        gen = SampleGenerator(rng.random((30, 30)).astype(np.float32))
        gen.select_template(Region(0, 0, 2, 29))
        with pytest.raises(ValueError):
            gen.compute()


class TestOutputs:

    def test_write_patches(self, square_gen, tmp_path):
        square_gen.compute()
        written = square_gen.write_patches("type2", progress=False)
        assert len(written) == len(square_gen.extract(progress=False))
        assert all(p.parent == tmp_path / "patches" for p in written)
        assert written[0].name.startswith("square_typetype2_patch0001_")

    def test_write_unknown_type(self, square_gen):
        square_gen.compute()
        with pytest.raises(ValueError, match="pattern type"):
            square_gen.write_patches("type9")

    def test_write_needs_image_path(self, square_image, square_region):
        gen = SampleGenerator(square_image)
        gen.select_template(square_region)
        gen.compute()
        with pytest.raises(ValueError):
            gen.write_patches("type1")

    def test_show_patches(self, square_gen):
        square_gen.compute()
        annotated, plain = square_gen.show_patches(progress=False)
        assert annotated.ndim == 3 and plain.ndim == 3


class TestSession:

    def test_save_and_load(self, square_gen, tmp_path):
        state = square_gen.compute()
        index = state.nearest((50, 50), 0.5)
        state.toggle(index)
        state.set_threshold(0.3)

        path = square_gen.save(tmp_path / "sessions" / "square")
        assert path.name == "square.npz" and path.is_file()

        loaded = SampleGenerator.load(path)
        assert loaded.config == square_gen.config
        assert loaded.template.region == square_gen.template.region
        assert loaded.state.threshold == pytest.approx(0.3)
        assert loaded.state.manual_bad[index]
        np.testing.assert_array_equal(loaded.state.inclusion_mask(),
                                      state.inclusion_mask())
        np.testing.assert_array_equal(loaded.image, square_gen.image)

    def test_save_before_compute(self, square_gen, tmp_path):
        with pytest.raises(RuntimeError):
            square_gen.save(tmp_path / "s")
