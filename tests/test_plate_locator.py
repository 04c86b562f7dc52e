"""
Tests for the heuristic plate locator.
"""

import numpy as np
import pytest

from privacy_redaction.config import PlateLocatorConfig
from privacy_redaction.detection import Category
from privacy_redaction.plate_locator import (
    HeuristicPlateLocator,
    band_confidence,
    edge_map,
    is_plate_shaped,
    window_edge_density,
)

PLATE_W, PLATE_H = 120, 30


def _draw_plate(frame, x, y):
    """White plate with dark vertical strokes standing in for characters."""
    frame[y:y + PLATE_H, x:x + PLATE_W] = 255
    for bar_x in range(x + 5, x + PLATE_W - 3, 10):
        frame[y + 6:y + 25, bar_x:bar_x + 3] = 0
    return frame


def _overlaps(det, x, y, w, h, margin=2):
    return (
        det.x < x + w + margin and det.x2 > x - margin
        and det.y < y + h + margin and det.y2 > y - margin
    )


def test_plate_shape_band():
    """An 8:1 window is rejected; a 4:1 window is accepted."""
    config = PlateLocatorConfig()
    assert not is_plate_shaped(160, 20, config)
    assert is_plate_shaped(120, 30, config)
    assert not is_plate_shaped(30, 30, config)
    assert not is_plate_shaped(0, 10, config)


def test_window_sizes_respect_constraints():
    locator = HeuristicPlateLocator()
    sizes = locator.window_sizes(640, 480)

    assert (120, 30) in sizes
    for w, h in sizes:
        assert 1.5 <= w / h <= 6.0
        assert w * h <= 0.02 * 640 * 480


def test_band_confidence():
    """1.0 at the middle of the density band, 0.0 at its edges."""
    config = PlateLocatorConfig()
    assert band_confidence(0.375, config) == pytest.approx(1.0)
    assert band_confidence(0.15, config) == pytest.approx(0.0)
    assert band_confidence(0.60, config) == pytest.approx(0.0)
    assert 0.0 < band_confidence(0.3, config) < 1.0


def test_edge_density_of_synthetic_plate():
    """The synthetic plate sits inside the accepted density band."""
    frame = _draw_plate(np.zeros((480, 640, 3), dtype=np.uint8), 260, 380)
    edges = edge_map(frame, 30.0)

    density = window_edge_density(edges, 260, 380, PLATE_W, PLATE_H)
    assert 0.15 < density < 0.60


def test_blank_image_has_no_plates(blank_frame):
    assert HeuristicPlateLocator().locate(blank_frame) == []


def test_finds_synthetic_plate():
    """A plate in the lower half is found, and every hit touches it."""
    frame = _draw_plate(np.zeros((480, 640, 3), dtype=np.uint8), 260, 380)

    plates = HeuristicPlateLocator().locate(frame)

    assert 1 <= len(plates) <= 10
    for plate in plates:
        assert plate.category is Category.PLATE
        assert 0.0 <= plate.confidence <= 1.0
        assert _overlaps(plate, 260, 380, PLATE_W, PLATE_H)
    assert plates == sorted(plates, key=lambda p: -p.confidence)


def test_upper_half_is_not_searched():
    """Without vehicle hints only the lower half of the frame is scanned."""
    frame = _draw_plate(np.zeros((480, 640, 3), dtype=np.uint8), 260, 60)
    assert HeuristicPlateLocator().locate(frame) == []


def test_vehicle_hints_redirect_search():
    """With a vehicle box, its lower part is scanned instead of the lower frame."""
    frame = _draw_plate(np.zeros((480, 640, 3), dtype=np.uint8), 260, 60)
    vehicle = (200, 0, 240, 120)

    plates = HeuristicPlateLocator().locate(frame, vehicle_boxes=[vehicle])

    assert plates
    for plate in plates:
        assert _overlaps(plate, 260, 60, PLATE_W, PLATE_H)


def test_candidate_limit():
    """No more than max_candidates plates are returned."""
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    for x in (20, 170, 320, 470):
        _draw_plate(frame, x, 380)

    locator = HeuristicPlateLocator(PlateLocatorConfig(max_candidates=2))
    assert len(locator.locate(frame)) == 2


def test_disabled_locator(blank_frame):
    frame = _draw_plate(blank_frame, 260, 380)
    assert HeuristicPlateLocator(PlateLocatorConfig(enabled=False)).locate(frame) == []


def test_search_regions():
    locator = HeuristicPlateLocator()
    assert locator.search_regions(640, 480) == [(0, 240, 640, 480)]
    assert locator.search_regions(640, 480, [(100, 100, 200, 100)]) == [(100, 140, 300, 200)]
