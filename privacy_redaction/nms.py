"""
Cross-detection deduplication.

Greedy non-maximum suppression over candidates from every detector, scale
and category. Candidates are visited in descending confidence; each one
that survives suppresses every later candidate whose IoU with it exceeds
the threshold.

Ties in confidence keep input order (the sort is stable), so the first
seen candidate wins and the output is deterministic.
"""

from typing import Iterable, List, Mapping, Optional, Protocol, Sequence


class Box(Protocol):
    x: float
    y: float
    width: float
    height: float


def iou(a: Box, b: Box) -> float:
    """Intersection-over-union of two axis-aligned rectangles.

    Returns 0.0 when the union is empty.
    """
    ix1 = max(a.x, b.x)
    iy1 = max(a.y, b.y)
    ix2 = min(a.x + a.width, b.x + b.width)
    iy2 = min(a.y + a.height, b.y + b.height)

    intersection = max(0.0, ix2 - ix1) * max(0.0, iy2 - iy1)
    union = a.width * a.height + b.width * b.height - intersection
    if union <= 0:
        return 0.0
    return intersection / union


def _pair_threshold(a, b, default: float, overrides: Mapping[str, float]) -> float:
    """IoU threshold for a pair; symmetric in a and b."""
    category = getattr(a, "category", None)
    if category is not None and category == getattr(b, "category", None):
        key = getattr(category, "value", category)
        return overrides.get(key, default)
    return default


def non_max_suppression(
    candidates: Iterable,
    iou_threshold: float = 0.3,
    category_thresholds: Optional[Mapping[str, float]] = None,
    cross_category: bool = True,
) -> List:
    """Deduplicate candidates with greedy NMS.

    Args:
        candidates: Detections (anything with x, y, width, height,
                    confidence and optionally category).
        iou_threshold: Default IoU above which a lower-confidence candidate
                       is suppressed.
        category_thresholds: Overrides keyed by category value, used when
                             both candidates share that category.
        cross_category: When False, only same-category candidates suppress
                        each other.

    Returns:
        Surviving candidates in descending confidence order.
    """
    overrides = dict(category_thresholds or {})
    ordered: Sequence = sorted(candidates, key=lambda d: -d.confidence)

    kept: List = []
    suppressed = [False] * len(ordered)

    for i, current in enumerate(ordered):
        if suppressed[i]:
            continue
        kept.append(current)

        for j in range(i + 1, len(ordered)):
            if suppressed[j]:
                continue
            other = ordered[j]
            if not cross_category and getattr(current, "category", None) != getattr(other, "category", None):
                continue
            threshold = _pair_threshold(current, other, iou_threshold, overrides)
            if iou(current, other) > threshold:
                suppressed[j] = True

    return kept
