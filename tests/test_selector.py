"""
Tests for per-category redaction selection.
"""

from privacy_redaction.detection import Category, Detection
from privacy_redaction.selector import RedactionPolicy, select_for_redaction


def _det(x, y, w, h, category=Category.FACE, conf=0.9):
    return Detection(x=x, y=y, width=w, height=h, confidence=conf, category=category)


def test_largest_only_keeps_biggest():
    """Areas 100 and 400 under largest-only: only the area-400 detection remains."""
    small = _det(0, 0, 10, 10)
    large = _det(100, 100, 20, 20)

    selected = select_for_redaction([small, large], {"face": "largest_only"})
    assert selected == [large]


def test_all_policy_keeps_everything():
    dets = [_det(0, 0, 10, 10), _det(100, 100, 20, 20)]
    assert select_for_redaction(dets, {"face": RedactionPolicy.ALL}) == dets


def test_largest_only_tie_keeps_first():
    first = _det(0, 0, 10, 10)
    second = _det(50, 50, 10, 10)
    assert select_for_redaction([first, second], {"face": "largest_only"}) == [first]


def test_policies_are_per_category():
    """Largest-only faces do not thin out plates that use 'all'."""
    face_small = _det(0, 0, 10, 10)
    face_large = _det(20, 0, 30, 30)
    plate_a = _det(0, 200, 60, 15, Category.PLATE)
    plate_b = _det(200, 200, 60, 15, Category.PLATE)

    selected = select_for_redaction(
        [face_small, plate_a, face_large, plate_b],
        {"face": "largest_only", "plate": "all"},
    )
    assert selected == [plate_a, face_large, plate_b]


def test_default_policy_applies_to_missing_categories():
    a = _det(0, 0, 10, 10, Category.PERSON)
    b = _det(50, 0, 20, 40, Category.PERSON)
    assert select_for_redaction([a, b], {}, default_policy="largest_only") == [b]


def test_person_fallback_only():
    """People are dropped only when a face is being redacted."""
    face = _det(0, 0, 10, 10)
    person = _det(0, 0, 40, 100, Category.PERSON)
    plate = _det(0, 200, 60, 15, Category.PLATE)

    assert select_for_redaction([face, person, plate], person_fallback_only=True) == [face, plate]
    assert select_for_redaction([person, plate], person_fallback_only=True) == [person, plate]
    assert select_for_redaction([face, person], person_fallback_only=False) == [face, person]


def test_empty_input():
    assert select_for_redaction([], {"face": "largest_only"}) == []
