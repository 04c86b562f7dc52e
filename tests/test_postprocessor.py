"""
Tests for SSD output parsing.
"""

import numpy as np
import pytest

from privacy_redaction.postprocessor import postprocess


def _ssd(*rows):
    """Pack [batch, class, conf, x1, y1, x2, y2] rows into a (1, 1, N, 7) tensor."""
    return np.array([[list(rows)]], dtype=np.float32)


def test_face_row_scaled_to_pixels():
    # res10 reports class 1 for faces
    tensor = _ssd([0, 1, 0.95, 0.25, 0.5, 0.5, 0.75])

    faces = postprocess(tensor, frame_width=640, frame_height=480, confidence_floor=0.3)

    assert len(faces) == 1
    face = faces[0]
    assert face.confidence == pytest.approx(0.95, abs=1e-5)
    assert (face.x, face.y) == (pytest.approx(160), pytest.approx(240))
    assert (face.width, face.height) == (pytest.approx(160), pytest.approx(120))


def test_floor_is_inclusive():
    tensor = _ssd(
        [0, 1, 0.3, 0.0, 0.0, 0.2, 0.2],
        [0, 1, 0.29, 0.5, 0.5, 0.7, 0.7],
    )

    kept = postprocess(tensor, 100, 100, confidence_floor=0.3)

    assert [round(d.confidence, 2) for d in kept] == [0.3]


def test_voc_class_filter():
    tensor = _ssd(
        [0, 15, 0.9, 0.1, 0.1, 0.3, 0.6],   # person
        [0, 7, 0.8, 0.5, 0.5, 0.9, 0.9],    # car
        [0, 12, 0.85, 0.0, 0.6, 0.2, 0.9],  # dog
    )

    people = postprocess(tensor, 100, 100, confidence_floor=0.2, class_ids={15})
    vehicles = postprocess(tensor, 100, 100, confidence_floor=0.2, class_ids=(2, 6, 7, 14))

    assert len(people) == 1
    assert people[0].height == pytest.approx(50)
    assert [round(d.confidence, 1) for d in vehicles] == [0.8]
    assert len(postprocess(tensor, 100, 100, confidence_floor=0.2)) == 3


def test_corners_clamped_to_frame():
    tensor = _ssd([0, 15, 0.9, -0.1, 0.4, 1.2, 1.5])

    (person,) = postprocess(tensor, 200, 100, confidence_floor=0.5)

    assert person.x == 0
    assert person.y == pytest.approx(40)
    assert person.width == pytest.approx(200)
    assert person.height == pytest.approx(60)


@pytest.mark.parametrize("corners", [
    (0.5, 0.5, 0.4, 0.4),    # inverted
    (0.5, 0.2, 0.5, 0.6),    # zero width
    (1.1, 0.0, 1.3, 0.5),    # entirely right of the frame
])
def test_degenerate_boxes_dropped(corners):
    tensor = _ssd([0, 1, 0.9, *corners])
    assert postprocess(tensor, 100, 100, confidence_floor=0.5) == []


def test_ordered_by_confidence_stable_on_ties():
    tensor = _ssd(
        [0, 1, 0.6, 0.0, 0.0, 0.2, 0.2],
        [0, 1, 0.9, 0.5, 0.5, 0.7, 0.7],
        [0, 1, 0.6, 0.3, 0.3, 0.4, 0.4],
    )

    detections = postprocess(tensor, 100, 100, confidence_floor=0.5)

    assert [round(d.confidence, 1) for d in detections] == [0.9, 0.6, 0.6]
    assert detections[1].x == pytest.approx(0)
    assert detections[2].x == pytest.approx(30)


def test_empty_output():
    assert postprocess(np.zeros((1, 1, 0, 7), dtype=np.float32), 10, 10, 0.1) == []
