"""
Detection data transfer objects.

This module defines the records that flow through the redaction pipeline:

    RawDetection     — what a detector adapter returns (adapter pixel space).
    Detection        — a calibrated candidate in base-image pixel space.
    BlurRegion       — an expanded rectangle that gets redacted.
    DetectionCounts  — per-category summary surfaced to the user.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No coordinate transformation methods (that belongs in multiscale,
      compositor and render_mapper).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple


class Category(str, Enum):
    """What a detection protects."""

    FACE = "face"
    PERSON = "person"
    PLATE = "plate"


@dataclass(frozen=True)
class RawDetection:
    """A box and score as returned by a detector adapter.

    Coordinates are in the pixel space of the buffer handed to the adapter,
    which for the multi-scale runner is a resampled copy of the base image.
    """

    x: float
    y: float
    width: float
    height: float
    confidence: float


@dataclass(frozen=True)
class Detection:
    """A single candidate region in base-image pixel space.

    Attributes:
        x: Left edge (base-image pixels).
        y: Top edge (base-image pixels).
        width: Box width, always > 0.
        height: Box height, always > 0.
        confidence: Calibrated confidence in [0.0, 1.0].
        category: What the box contains.
        source_scale: Resample factor of the pass that produced the box.
        source_detector: Name of the detector that produced the box.
    """

    x: float
    y: float
    width: float
    height: float
    confidence: float
    category: Category
    source_scale: float = 1.0
    source_detector: str = ""

    def __post_init__(self) -> None:
        if not (self.width > 0 and self.height > 0):
            raise ValueError(
                f"Detection width and height must be positive, "
                f"got {self.width}x{self.height}."
            )
        if not (0.0 <= self.confidence <= 1.0):
            raise ValueError(
                f"Detection confidence must be in [0.0, 1.0], got {self.confidence}."
            )
        # Accept plain strings for convenience.
        if not isinstance(self.category, Category):
            object.__setattr__(self, "category", Category(self.category))

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        """Bounding box area in square pixels."""
        return self.width * self.height

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    def to_dict(self) -> dict:
        """Return a plain dict suitable for JSON serialization."""
        return {
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "width": round(self.width, 2),
            "height": round(self.height, 2),
            "confidence": round(self.confidence, 4),
            "category": self.category.value,
            "source_scale": self.source_scale,
            "source_detector": self.source_detector,
        }


@dataclass(frozen=True)
class BlurRegion:
    """A rectangle to obscure, derived from a Detection.

    The coordinate space depends on who produced it: base-image pixels for
    the burn-in path, container pixels for the live preview.
    """

    x: float
    y: float
    width: float
    height: float
    category: Category
    source: Optional[Detection] = None

    @property
    def x2(self) -> float:
        return self.x + self.width

    @property
    def y2(self) -> float:
        return self.y + self.height

    def to_dict(self) -> dict:
        return {
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "width": round(self.width, 2),
            "height": round(self.height, 2),
            "category": self.category.value,
        }


@dataclass(frozen=True)
class DetectionCounts:
    """Per-category counts of redacted detections."""

    faces_detected: int = 0
    people_detected: int = 0
    plates_detected: int = 0

    @classmethod
    def from_detections(cls, detections: Iterable[Detection]) -> "DetectionCounts":
        faces = people = plates = 0
        for det in detections:
            if det.category is Category.FACE:
                faces += 1
            elif det.category is Category.PERSON:
                people += 1
            elif det.category is Category.PLATE:
                plates += 1
        return cls(faces_detected=faces, people_detected=people, plates_detected=plates)

    @property
    def total(self) -> int:
        return self.faces_detected + self.people_detected + self.plates_detected

    def to_dict(self) -> dict:
        """Return the summary using the keys the report form consumes."""
        return {
            "facesDetected": self.faces_detected,
            "peopleDetected": self.people_detected,
            "platesDetected": self.plates_detected,
            "totalBlurred": self.total,
        }
