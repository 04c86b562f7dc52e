"""
Detector adapters — a uniform wrapper around opaque pretrained detectors.

Public contract:
    adapter.ensure_ready() -> None
    adapter.detect(frame: np.ndarray) -> list[RawDetection]

An adapter knows nothing about scales, calibration or categories beyond
the one it is tagged with. Boxes come back in the pixel space of the frame
it was handed.

Constraints:
    - Input must be a BGR numpy array (as returned by OpenCV).
    - Networks are shared process-wide through model_loader.SharedModel;
      forward passes on one network are serialized.

Non-goals:
    - No file reading, camera access, or I/O of any kind.
    - No visualization or output writing.
"""

import logging
from typing import Collection, Dict, List, Optional

import numpy as np

from privacy_redaction.config import AppConfig, NetworkConfig
from privacy_redaction.detection import Category, RawDetection
from privacy_redaction.model_loader import SharedModel, get_shared_model
from privacy_redaction.postprocessor import postprocess
from privacy_redaction.preprocessor import preprocess

logger = logging.getLogger(__name__)


class DetectorUnavailableError(RuntimeError):
    """The underlying model could not be loaded or initialized."""


class DetectorAdapter:
    """Base class for anything that turns an image buffer into boxes.

    Subclasses implement `_infer`; `detect` validates the frame first.
    """

    def __init__(self, name: str, category: Category) -> None:
        self.name = name
        self.category = Category(category)

    def ensure_ready(self) -> None:
        """Load whatever the adapter needs. Raises DetectorUnavailableError."""

    def detect(self, frame: np.ndarray) -> List[RawDetection]:
        """Detect objects in a single BGR frame.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame has incorrect shape or is empty.
        """
        self._validate_frame(frame)
        return self._infer(frame)

    def _infer(self, frame: np.ndarray) -> List[RawDetection]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, category={self.category.value!r})"

    @staticmethod
    def _validate_frame(frame: np.ndarray) -> None:
        """Validate that the input frame meets the API contract.

        Raises:
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame is empty or has wrong dimensions.
        """
        if not isinstance(frame, np.ndarray):
            raise TypeError(
                f"Expected frame to be a numpy ndarray, "
                f"got {type(frame).__name__}. "
                f"Use cv2.imread() or cv2.imdecode() to obtain frames."
            )

        if frame.size == 0:
            raise ValueError(
                "Frame is empty (zero size). "
                "Ensure the input source is providing valid frames."
            )

        if frame.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional frame (H, W, C), "
                f"got {frame.ndim} dimensions with shape {frame.shape}. "
                f"Grayscale images must be converted to BGR first."
            )

        if frame.shape[2] != 3:
            raise ValueError(
                f"Expected 3 channels (BGR), got {frame.shape[2]} channels. "
                f"Input must be a BGR image as returned by OpenCV."
            )


class SSDDetectorAdapter(DetectorAdapter):
    """Adapter for a Caffe SSD network run through OpenCV DNN.

    Usage:
        handle = get_shared_model(config.model.face, config.model.backend)
        adapter = SSDDetectorAdapter("face-ssd", Category.FACE, handle, config.model.face)
        adapter.ensure_ready()
        boxes = adapter.detect(frame)
    """

    def __init__(
        self,
        name: str,
        category: Category,
        model: SharedModel,
        network: NetworkConfig,
        class_ids: Optional[Collection[int]] = None,
        confidence_floor: float = 0.2,
    ) -> None:
        super().__init__(name, category)
        self._model = model
        self._network = network
        self._class_ids = frozenset(class_ids if class_ids is not None else network.class_ids)
        self._confidence_floor = confidence_floor

    def ensure_ready(self) -> None:
        try:
            self._model.get()
        except Exception as e:  # FileNotFoundError, RuntimeError, cv2.error
            raise DetectorUnavailableError(f"{self.name}: {e}") from e

    def _infer(self, frame: np.ndarray) -> List[RawDetection]:
        net = self._model.get()
        blob = preprocess(frame, self._network)

        with self._model.inference_lock:
            net.setInput(blob)
            output = net.forward()

        h, w = frame.shape[:2]
        return postprocess(
            network_output=output,
            frame_width=w,
            frame_height=h,
            confidence_floor=self._confidence_floor,
            class_ids=self._class_ids,
        )


def build_adapters(config: AppConfig) -> Dict[str, DetectorAdapter]:
    """Build the configured adapters, keyed by role.

    Roles: 'face' always; 'person' when enabled; 'vehicle' when vehicle
    hints are enabled. Person and vehicle adapters share one network handle.
    Nothing is loaded here; loading happens on ensure_ready() or first use.
    """
    model_cfg = config.model
    adapters: Dict[str, DetectorAdapter] = {
        "face": SSDDetectorAdapter(
            name="face-ssd",
            category=Category.FACE,
            model=get_shared_model(model_cfg.face, model_cfg.backend),
            network=model_cfg.face,
            confidence_floor=model_cfg.confidence_floor,
        ),
    }

    if model_cfg.enable_person or model_cfg.enable_vehicle_hints:
        object_model = get_shared_model(model_cfg.person, model_cfg.backend)
        if model_cfg.enable_person:
            adapters["person"] = SSDDetectorAdapter(
                name="person-ssd",
                category=Category.PERSON,
                model=object_model,
                network=model_cfg.person,
                confidence_floor=model_cfg.confidence_floor,
            )
        if model_cfg.enable_vehicle_hints:
            # Vehicles only steer the plate search; the category tag is unused.
            adapters["vehicle"] = SSDDetectorAdapter(
                name="vehicle-ssd",
                category=Category.PLATE,
                model=object_model,
                network=model_cfg.person,
                class_ids=model_cfg.vehicle_class_ids,
                confidence_floor=model_cfg.confidence_floor,
            )

    logger.debug("Built detector adapters: %s", list(adapters))
    return adapters
