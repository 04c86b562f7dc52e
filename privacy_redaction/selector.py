"""
Redaction selection.

Decides which deduplicated detections get redacted, per category:

    all           — every detection of the category is kept.
    largest_only  — only the greatest-area detection of the category is
                    kept (ties: first seen). This avoids over-redacting
                    incidental background subjects while the dominant
                    subject stays protected. It is a product policy, not a
                    correctness requirement, so it is configured per
                    category (plates default to 'all').

Optionally, person detections act only as a fallback: when any face
survives, people are dropped.
"""

import logging
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Union

from privacy_redaction.detection import Category, Detection

logger = logging.getLogger(__name__)


class RedactionPolicy(str, Enum):
    ALL = "all"
    LARGEST_ONLY = "largest_only"


PolicyMap = Mapping[Union[str, Category], Union[str, RedactionPolicy]]


def _normalize(policies: Optional[PolicyMap]) -> Dict[Category, RedactionPolicy]:
    normalized: Dict[Category, RedactionPolicy] = {}
    for category, policy in (policies or {}).items():
        normalized[Category(category)] = RedactionPolicy(policy)
    return normalized


def select_for_redaction(
    detections: Sequence[Detection],
    policies: Optional[PolicyMap] = None,
    default_policy: Union[str, RedactionPolicy] = RedactionPolicy.ALL,
    person_fallback_only: bool = False,
) -> List[Detection]:
    """Apply per-category redaction policies.

    Args:
        detections: Deduplicated detections.
        policies: Policy per category; missing categories use default_policy.
        default_policy: Policy for categories without an entry.
        person_fallback_only: Drop person detections when a face survives.

    Returns:
        The detections to redact, in input order.
    """
    policy_map = _normalize(policies)
    default = RedactionPolicy(default_policy)

    keep = [True] * len(detections)
    largest: Dict[Category, int] = {}
    for index, det in enumerate(detections):
        if policy_map.get(det.category, default) is not RedactionPolicy.LARGEST_ONLY:
            continue
        best = largest.get(det.category)
        if best is None or det.area > detections[best].area:
            if best is not None:
                keep[best] = False
            largest[det.category] = index
        else:
            keep[index] = False

    selected = [det for det, flag in zip(detections, keep) if flag]

    if person_fallback_only and any(d.category is Category.FACE for d in selected):
        dropped = sum(1 for d in selected if d.category is Category.PERSON)
        if dropped:
            logger.debug("Dropping %d person detection(s): faces already covered", dropped)
        selected = [d for d in selected if d.category is not Category.PERSON]

    return selected
