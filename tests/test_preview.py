"""
Tests for the live preview overlay renderer.
"""

import pytest

from privacy_redaction.detection import Category, Detection
from privacy_redaction.preview import PreviewRenderer


def _face():
    return Detection(x=1800, y=900, width=400, height=200, confidence=0.9, category=Category.FACE)


def test_overlays_follow_layout_events():
    emitted = []
    renderer = PreviewRenderer(listener=emitted.append)

    assert renderer.set_detections([_face()]) == []       # no image yet
    assert renderer.image_loaded(4000, 2000) == []        # no container yet

    overlays = renderer.container_resized(400, 400)
    assert len(overlays) == 1
    first = overlays[0]
    assert first.category is Category.FACE

    # A new container size changes the scale; overlays are recomputed
    rotated = renderer.orientation_changed(800, 800)
    assert len(rotated) == 1
    assert rotated[0].width == pytest.approx(first.width * 2)

    assert len(emitted) == 4
    assert emitted[-1] == rotated
    assert renderer.overlays == rotated


def test_zero_container_clears_overlays():
    renderer = PreviewRenderer()
    renderer.image_loaded(4000, 2000)
    renderer.container_resized(400, 400)
    renderer.set_detections([_face()])

    assert renderer.container_resized(0, 400) == []
    assert renderer.geometry is None


def test_clear_forgets_image_and_detections():
    renderer = PreviewRenderer()
    renderer.image_loaded(4000, 2000)
    renderer.container_resized(400, 400)
    renderer.set_detections([_face()])

    assert renderer.clear() == []
    assert renderer.overlays == []
    assert renderer.image_loaded(4000, 2000) == []
