"""Tests for the image normalizer, its steps and the quality score."""

import time

import numpy as np
import pytest

from normalization import (
    InputError,
    NormalizationOptions,
    RasterImage,
    normalize,
    quality_score,
)
from normalization import orientation
from normalization import steps as ops


def _make_img(h: int = 120, w: int = 80) -> RasterImage:
    arr = np.full((h, w, 3), 245, dtype=np.uint8)
    arr[20:24, 10:w - 10] = 0
    arr[50:54, 10:w - 10] = 0
    arr[80:84, 10:w // 2] = 30
    return RasterImage(arr)


# ---------------------------------------------------------------------------
# RasterImage
# ---------------------------------------------------------------------------

def test_raster_image_dimensions():
    img = _make_img(120, 80)
    assert (img.width, img.height, img.channels) == (80, 120, 3)


@pytest.mark.parametrize("arr", [
    np.zeros((0, 5), dtype=np.uint8),
    np.zeros((5, 5), dtype=np.float32),
    np.zeros((5, 5, 5), dtype=np.uint8),
    np.zeros((2, 2, 2, 2), dtype=np.uint8),
])
def test_raster_image_rejects_malformed_buffers(arr):
    with pytest.raises(InputError):
        RasterImage(arr)


def test_from_array_rejects_none():
    with pytest.raises(InputError, match="None"):
        RasterImage.from_array(None)


def test_from_file_round_trip(tmp_path):
    img = _make_img()
    path = tmp_path / "receipt.png"
    img.save(path)
    loaded = RasterImage.from_file(path)
    assert loaded.equals(img)


def test_from_file_missing(tmp_path):
    with pytest.raises(InputError, match="not found"):
        RasterImage.from_file(tmp_path / "nope.png")


# ---------------------------------------------------------------------------
# normalize()
# ---------------------------------------------------------------------------

def test_all_options_disabled_returns_equal_copy():
    img = _make_img()
    res = normalize(img, NormalizationOptions.disabled())
    assert res.steps == []
    assert res.processed_image.equals(img)
    assert res.processed_image.pixels is not img.pixels
    assert res.quality_score == pytest.approx(quality_score(img.pixels))


def test_default_steps_in_order_and_bounds():
    res = normalize(_make_img())
    assert [s.name for s in res.steps] == [
        "Perspective Correction",
        "Grayscale Conversion",
        "Noise Reduction",
        "Contrast Enhancement",
        "Sharpening",
    ]
    assert all(s.applied for s in res.steps)
    assert all(0.0 <= s.confidence <= 1.0 for s in res.steps)
    assert res.processed_image.width >= 1 and res.processed_image.height >= 1
    assert 0.0 <= res.quality_score <= 1.0
    assert res.processed_image.channels == 1
    assert res.elapsed_ms >= 0.0


def test_normalize_does_not_modify_input():
    img = _make_img()
    before = img.pixels.copy()
    normalize(img, NormalizationOptions(binarization=True, resolution_scaling=True))
    assert np.array_equal(img.pixels, before)


def test_failing_step_falls_back_to_its_input(monkeypatch):
    def boom(arr, amount=1.5):
        raise RuntimeError("kaboom")

    monkeypatch.setattr(ops, "sharpen", boom)
    opts = NormalizationOptions(
        perspective_correction=False, noise_reduction=False, contrast_enhancement=False,
    )
    res = normalize(_make_img(), opts)

    by_name = {s.name: s for s in res.steps}
    assert by_name["Sharpening"].applied is False
    assert by_name["Sharpening"].confidence == 0.0
    assert by_name["Grayscale Conversion"].applied is True
    # Output is exactly the grayscale image, untouched by the failed step
    assert np.array_equal(res.processed_image.pixels, ops.to_grayscale(_make_img().pixels))


def test_normalize_rejects_non_raster():
    with pytest.raises(InputError):
        normalize(np.zeros((10, 10), dtype=np.uint8))


def test_resolution_scaling_changes_size():
    opts = NormalizationOptions(
        perspective_correction=False, grayscale=False, noise_reduction=False,
        contrast_enhancement=False, sharpening=False,
        resolution_scaling=True, scale_factor=0.5,
    )
    res = normalize(_make_img(120, 80), opts)
    assert (res.processed_image.width, res.processed_image.height) == (40, 60)


def test_scaling_never_below_one_pixel():
    arr = np.full((2, 2), 128, dtype=np.uint8)
    out = ops.scale_resolution(arr, 0.01)
    assert out.shape == (1, 1)


def test_binarization_is_two_level():
    opts = NormalizationOptions(binarization=True)
    res = normalize(_make_img(), opts)
    assert set(np.unique(res.processed_image.pixels)).issubset({0, 255})
    assert res.steps[-1].name == "Binarization"
    assert res.steps[-1].confidence == pytest.approx(0.9)


def test_clahe_contrast_keeps_shape_and_dtype():
    arr = _make_img().pixels
    out = ops.enhance_contrast(arr, method="clahe")
    assert out.shape == arr.shape
    assert out.dtype == np.uint8


def test_linear_contrast_pivots_at_mid_grey():
    arr = np.array([[100, 128, 156]], dtype=np.uint8)
    out = ops.enhance_contrast(arr, factor=1.5)
    assert out.tolist() == [[86, 128, 170]]


def test_unknown_contrast_method_is_recorded_as_failed_step():
    opts = NormalizationOptions(contrast_method="bogus")
    res = normalize(_make_img(), opts)
    step = next(s for s in res.steps if s.name == "Contrast Enhancement")
    assert step.applied is False


def test_sharpen_clamps_to_byte_range():
    arr = np.zeros((9, 9), dtype=np.uint8)
    arr[4, 4] = 255
    out = ops.sharpen(arr)
    assert out.dtype == np.uint8
    assert out.max() == 255
    assert out.min() == 0


def test_options_from_dict_ignores_unknown_keys():
    opts = NormalizationOptions.from_dict({"binarization": True, "nonsense": 1})
    assert opts.binarization is True
    assert opts.grayscale is True


# ---------------------------------------------------------------------------
# Orientation
# ---------------------------------------------------------------------------

def test_aspect_score_tiers():
    assert orientation.aspect_score(100, 100) == 0.8
    assert orientation.aspect_score(150, 100) == 0.9
    assert orientation.aspect_score(300, 100) == 0.5


def test_aspect_bands_are_not_symmetric_under_quarter_turn():
    assert orientation.aspect_score(100, 75) == 0.9
    assert orientation.aspect_score(75, 100) == 0.8


def test_choose_rotation_ties_keep_original():
    tall = np.zeros((300, 100), dtype=np.uint8)
    assert orientation.choose_rotation(tall) == 0
    square = np.zeros((100, 100), dtype=np.uint8)
    assert orientation.choose_rotation(square) == 0


def test_choose_rotation_picks_better_candidate():
    # 72/100 scores 0.8 upright; rotated 100/72 scores 0.9
    arr = np.zeros((72, 100), dtype=np.uint8)
    assert orientation.choose_rotation(arr) == 90


def test_orientation_timeout_keeps_original(monkeypatch):
    def slow(arr, degrees):
        time.sleep(0.3)
        return 0.5

    monkeypatch.setattr(orientation, "_score_candidate", slow)
    arr = np.zeros((72, 100), dtype=np.uint8)
    assert orientation.choose_rotation(arr, timeout_s=0.01) is None

    outcome = orientation.correct_orientation(arr, timeout_s=0.01)
    assert outcome.timed_out is True
    assert np.array_equal(outcome.image, arr)


def test_estimate_skew_on_blank_image_has_zero_confidence():
    skew = orientation.estimate_skew(np.full((64, 64), 255, dtype=np.uint8))
    assert skew["skew_confidence"] == 0.0


# ---------------------------------------------------------------------------
# Quality
# ---------------------------------------------------------------------------

def test_quality_of_flat_image_is_zero():
    assert quality_score(np.full((32, 32), 128, dtype=np.uint8)) == 0.0


def test_quality_increases_with_structure():
    checker = (np.indices((32, 32)).sum(axis=0) % 2 * 255).astype(np.uint8)
    flat = np.full((32, 32), 128, dtype=np.uint8)
    q = quality_score(checker)
    assert 0.0 < q <= 1.0
    assert q > quality_score(flat)


def test_quality_tiny_image():
    assert 0.0 <= quality_score(np.zeros((1, 1), dtype=np.uint8)) <= 1.0
