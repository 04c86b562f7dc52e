"""
Tests for the detector adapters.
"""

from pathlib import Path

import numpy as np
import pytest

from conftest import FakeAdapter
from privacy_redaction.config import AppConfig, ModelConfig
from privacy_redaction.detection import Category
from privacy_redaction.detector import (
    DetectorUnavailableError,
    SSDDetectorAdapter,
    build_adapters,
)
from privacy_redaction.model_loader import SharedModel

# Skip integration tests if model files are missing
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_MODEL_EXISTS = (
    (_PROJECT_ROOT / "models/deploy.prototxt").exists() and
    (_PROJECT_ROOT / "models/res10_300x300_ssd_iter_140000.caffemodel").exists()
)


class _StubNet:
    """Mimics cv2.dnn.Net with a canned SSD output tensor."""

    def __init__(self, output):
        self.output = output
        self.blob_shapes = []

    def setInput(self, blob):
        self.blob_shapes.append(blob.shape)

    def forward(self):
        return self.output


def test_adapter_input_validation():
    """Test strict input validation."""
    adapter = FakeAdapter("fake", Category.FACE)

    # 1. Wrong type
    with pytest.raises(TypeError):
        adapter.detect("not a frame")

    # 2. Empty frame
    with pytest.raises(ValueError):
        adapter.detect(np.array([]))

    # 3. Wrong shape (grayscale)
    gray = np.zeros((100, 100), dtype=np.uint8)
    with pytest.raises(ValueError, match="3-dimensional"):
        adapter.detect(gray)

    # 4. Wrong channels (BGRA)
    bgra = np.zeros((100, 100, 4), dtype=np.uint8)
    with pytest.raises(ValueError, match="3 channels"):
        adapter.detect(bgra)


def test_ssd_adapter_maps_boxes_to_frame_pixels():
    """Normalized SSD boxes come back in the pixel space of the given frame."""
    output = np.array([[[
        [0, 1, 0.9, 0.25, 0.25, 0.5, 0.75],
        [0, 1, 0.1, 0.0, 0.0, 0.1, 0.1],     # below the floor
    ]]], dtype=np.float32)
    net = _StubNet(output)
    config = AppConfig()
    adapter = SSDDetectorAdapter(
        "face-ssd", Category.FACE, SharedModel(lambda: net), config.model.face,
    )

    boxes = adapter.detect(np.zeros((200, 400, 3), dtype=np.uint8))

    assert len(boxes) == 1
    assert boxes[0].x == pytest.approx(100)
    assert boxes[0].y == pytest.approx(50)
    assert boxes[0].width == pytest.approx(100)
    assert boxes[0].height == pytest.approx(100)
    # Face network runs at the frame's native size
    assert net.blob_shapes == [(1, 3, 200, 400)]


def test_ssd_adapter_unavailable():
    """Load failures surface as DetectorUnavailableError from ensure_ready."""
    def failing_loader():
        raise FileNotFoundError("Model weights not found.")

    adapter = SSDDetectorAdapter(
        "face-ssd", Category.FACE, SharedModel(failing_loader), AppConfig().model.face,
    )
    with pytest.raises(DetectorUnavailableError, match="face-ssd"):
        adapter.ensure_ready()


def test_build_adapters_roles():
    """Default config builds face and person; vehicle hints share the person model."""
    adapters = build_adapters(AppConfig())
    assert sorted(adapters) == ["face", "person"]
    assert adapters["face"].category is Category.FACE
    assert adapters["person"].category is Category.PERSON

    config = AppConfig(model=ModelConfig(enable_person=False, enable_vehicle_hints=True))
    adapters = build_adapters(config)
    assert sorted(adapters) == ["face", "vehicle"]

    config = AppConfig(model=ModelConfig(enable_vehicle_hints=True))
    adapters = build_adapters(config)
    assert adapters["person"]._model is adapters["vehicle"]._model
    assert adapters["face"]._model is not adapters["person"]._model


@pytest.mark.skipif(not _MODEL_EXISTS, reason="Model files not found")
def test_face_adapter_integration_smoke():
    """Smoke test: the real face network loads and runs on a dummy frame."""
    adapter = build_adapters(AppConfig())["face"]
    adapter.ensure_ready()

    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    boxes = adapter.detect(frame)
    assert isinstance(boxes, list)
