"""
Shared test fixtures.

FakeAdapter stands in for the DNN detectors so pipeline behavior can be
tested without model files.
"""

import numpy as np
import pytest

from privacy_redaction.detection import RawDetection
from privacy_redaction.detector import DetectorAdapter, DetectorUnavailableError
from privacy_redaction.model_loader import clear_shared_models


class FakeAdapter(DetectorAdapter):
    """Returns whatever `respond(frame)` returns; records the widths it saw."""

    def __init__(self, name, category, respond=None, available=True):
        super().__init__(name, category)
        self._respond = respond or (lambda frame: [])
        self._available = available
        self.widths_seen = []

    def ensure_ready(self):
        if not self._available:
            raise DetectorUnavailableError(f"{self.name}: model files missing")

    def _infer(self, frame):
        self.widths_seen.append(frame.shape[1])
        return list(self._respond(frame))


def fixed_boxes(*boxes, base_width=None):
    """Respond with the same base-space boxes at every scale.

    Each box is (x, y, w, h, confidence) in base pixels; it is scaled to the
    frame the adapter receives so it maps back to the same base box.
    """
    def respond(frame):
        scale = frame.shape[1] / base_width if base_width else 1.0
        return [
            RawDetection(x * scale, y * scale, w * scale, h * scale, conf)
            for x, y, w, h, conf in boxes
        ]
    return respond


@pytest.fixture
def blank_frame():
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture(autouse=True)
def _isolated_model_registry():
    clear_shared_models()
    yield
    clear_shared_models()
