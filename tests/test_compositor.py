"""
Tests for blur region expansion, render mapping and burn-in.
"""

import time

import numpy as np
import pytest

from privacy_redaction.compositor import (
    blur_kernel,
    burn_in,
    expand_detection,
    expansion_multipliers,
    regions_to_render_space,
    to_render_space,
)
from privacy_redaction.config import BlurConfig
from privacy_redaction.detection import BlurRegion, Category, Detection
from privacy_redaction.render_mapper import compute_render_geometry


def _det(x, y, w, h, category=Category.FACE):
    return Detection(x=x, y=y, width=w, height=h, confidence=0.9, category=category)


def test_face_tiers_follow_area_share():
    """Close, medium and distant faces get progressively smaller expansion."""
    image_area = 1000 * 1000
    close = _det(0, 0, 150, 150)     # 2.25%
    medium = _det(0, 0, 100, 100)    # 1%
    distant = _det(0, 0, 50, 50)     # 0.25%

    assert expansion_multipliers(close, image_area) == (2.5, 3.0)
    assert expansion_multipliers(medium, image_area) == (2.0, 2.5)
    assert expansion_multipliers(distant, image_area) == (1.5, 2.0)


def test_plate_and_person_multipliers():
    assert expansion_multipliers(_det(0, 0, 100, 25, Category.PLATE), 1e6) == (1.2, 1.3)
    assert expansion_multipliers(_det(0, 0, 100, 300, Category.PERSON), 1e6) == (1.0, 1.0)


def test_expand_face_is_centered():
    face = _det(100, 100, 50, 50)  # 0.25% of 1000x1000 → distant tier
    region = expand_detection(face, 1000, 1000)

    assert region.width == pytest.approx(75)
    assert region.height == pytest.approx(100)
    assert region.x + region.width / 2 == pytest.approx(125)
    assert region.y + region.height / 2 == pytest.approx(125)
    assert region.source is face


def test_person_region_is_head_band():
    person = _det(100, 100, 100, 400, Category.PERSON)
    region = expand_detection(person, 1000, 1000)

    head_h = 400 * 0.18
    head_w = min(100 * 0.5, head_h * 0.9)
    assert region.y == pytest.approx(100)
    assert region.height == pytest.approx(head_h)
    assert region.width == pytest.approx(head_w)
    assert region.x + region.width / 2 == pytest.approx(150)

    full = expand_detection(person, 1000, 1000, BlurConfig(person_region="full"))
    assert (full.width, full.height) == pytest.approx((100, 400))


def test_render_space_clamps_to_container():
    geometry = compute_render_geometry(2000, 1000, 500, 500)  # offset_x = -250
    region = BlurRegion(x=0, y=0, width=800, height=200, category=Category.FACE)

    rendered = to_render_space(region, geometry)
    assert rendered.x == pytest.approx(0)
    assert rendered.width == pytest.approx(150)  # 800 * 0.5 - 250
    assert rendered.height == pytest.approx(100)


def test_render_space_drops_invisible_regions():
    geometry = compute_render_geometry(2000, 1000, 500, 500)
    cropped_away = BlurRegion(x=0, y=0, width=200, height=200, category=Category.FACE)
    visible = BlurRegion(x=900, y=400, width=200, height=200, category=Category.FACE)

    assert to_render_space(cropped_away, geometry) is None
    assert regions_to_render_space([cropped_away, visible], geometry) == [
        to_render_space(visible, geometry)
    ]
    assert regions_to_render_space([visible], None) == []


def test_burn_in_returns_new_buffer():
    """The input is untouched; pixels inside the region change, outside do not."""
    rng = np.random.default_rng(0)
    frame = rng.integers(0, 256, size=(200, 200, 3), dtype=np.uint8)
    original = frame.copy()
    region = BlurRegion(x=50, y=50, width=60, height=60, category=Category.FACE)

    output = burn_in(frame, [region])

    assert output is not frame
    assert np.array_equal(frame, original)
    assert not np.array_equal(output[50:110, 50:110], original[50:110, 50:110])
    assert np.array_equal(output[:50], original[:50])
    assert np.array_equal(output[:, 110:], original[:, 110:])


def test_burn_in_clips_regions_outside_image():
    frame = np.full((100, 100, 3), 128, dtype=np.uint8)
    outside = BlurRegion(x=-50, y=-50, width=20, height=20, category=Category.PLATE)
    partial = BlurRegion(x=90, y=90, width=40, height=40, category=Category.PLATE)

    output = burn_in(frame, [outside, partial])
    assert output.shape == frame.shape
    assert np.array_equal(output, frame)  # uniform image stays uniform


def test_blur_kernel_follows_short_side_up_to_cap():
    assert blur_kernel(60, 80) == (31, 1.0)
    assert blur_kernel(2, 2) == (3, 1.0)

    kernel, scale = blur_kernel(400, 400, BlurConfig(max_kernel=50))
    assert kernel == 51
    assert scale == pytest.approx(51 / 200)


def test_burn_in_close_face_on_large_photo():
    """A close face on a 12 MP photo blurs with a capped kernel in bounded time."""
    width, height = 4032, 3024
    region = expand_detection(_det(1600, 900, 700, 700), width, height)
    assert min(region.width, region.height) >= 1500

    kernel, scale = blur_kernel(int(region.width), int(region.height))
    assert kernel <= BlurConfig().max_kernel
    assert scale < 1.0

    rng = np.random.default_rng(1)
    frame = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)

    start = time.perf_counter()
    output = burn_in(frame, [region])
    elapsed = time.perf_counter() - start

    assert elapsed < 5.0
    x1, y1 = int(region.x), int(region.y)
    center = output[y1 + 200:y1 + 400, x1 + 200:x1 + 400].astype(np.float32)
    assert center.std() < frame[y1 + 200:y1 + 400, x1 + 200:x1 + 400].std() / 4
    assert np.array_equal(output[:, :x1], frame[:, :x1])
