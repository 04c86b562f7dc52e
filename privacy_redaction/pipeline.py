"""
RedactionPipeline — the single public API for privacy redaction.

Public contract:
    RedactionPipeline.detect(frame)       -> DetectionOutcome
    RedactionPipeline.redact(frame)       -> RedactionResult
    RedactionPipeline.redact_bytes(data)  -> RedactionResult
    RedactionPipeline.redact_file(path)   -> RedactionResult

Flow:
    frame → {multi-scale face pass, multi-scale person pass, plate heuristic}
          → acceptance thresholds → NMS → per-category selection
          → blur regions → burn-in (new buffer)

Failure behavior:
    Redaction is a best-effort enhancement and never a gate on the report
    it is attached to. Unavailable detectors and unexpected errors degrade
    to fewer (or zero) detections plus a warning string. The only errors a
    caller sees are ImageReadError (the input could not be decoded) and
    TypeError/ValueError for a malformed frame passed in directly.
    DetectionCancelled propagates so that a session can abandon stale work.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from privacy_redaction.compositor import burn_in, expand_all
from privacy_redaction.config import AppConfig, load_config
from privacy_redaction.detection import BlurRegion, Detection, DetectionCounts
from privacy_redaction.detector import DetectorAdapter, DetectorUnavailableError, build_adapters
from privacy_redaction.input_handler import decode_image, read_image
from privacy_redaction.multiscale import (
    CancelCheck,
    DetectionCancelled,
    MultiScaleRunner,
    check_cancelled,
)
from privacy_redaction.nms import non_max_suppression
from privacy_redaction.plate_locator import HeuristicPlateLocator
from privacy_redaction.selector import select_for_redaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionOutcome:
    """Selected detections for one image and how they were obtained."""

    detections: Tuple[Detection, ...] = ()
    counts: DetectionCounts = field(default_factory=DetectionCounts)
    warnings: Tuple[str, ...] = ()
    candidates_found: int = 0
    elapsed_ms: float = 0.0


@dataclass(frozen=True)
class RedactionResult:
    """A redacted image and the summary handed to the report form.

    Attributes:
        image: New BGR buffer with every region blurred (a copy of the
               input when nothing was found).
        detections: Detections that were redacted (base-image space).
        regions: Base-space rectangles that were blurred.
        counts: Per-category summary for user-facing messaging.
        warnings: Non-fatal problems (e.g. a detector was unavailable).
    """

    image: np.ndarray
    detections: Tuple[Detection, ...]
    regions: Tuple[BlurRegion, ...]
    counts: DetectionCounts
    warnings: Tuple[str, ...] = ()
    elapsed_ms: float = 0.0

    @property
    def redacted(self) -> bool:
        return bool(self.regions)

    def to_dict(self) -> dict:
        """Summary without pixel data, suitable for JSON."""
        return {
            "counts": self.counts.to_dict(),
            "detections": [d.to_dict() for d in self.detections],
            "regions": [r.to_dict() for r in self.regions],
            "warnings": list(self.warnings),
            "elapsed_ms": round(self.elapsed_ms, 1),
        }


class RedactionPipeline:
    """Finds faces, people and plates in a photograph and blurs them.

    Usage:
        pipeline = RedactionPipeline()                   # Uses safe defaults
        pipeline = RedactionPipeline(config=my_config)    # Custom config
        result = pipeline.redact(frame)                   # BGR numpy array
        result.image, result.counts

    Models load lazily on first use (or on preload()) and are shared with
    every other pipeline in the process.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        adapters: Optional[Dict[str, DetectorAdapter]] = None,
        plate_locator: Optional[HeuristicPlateLocator] = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Application configuration. If None, safe defaults
                    are used (no config file required).
            adapters: Detector adapters keyed by role ('face', 'person',
                      'vehicle'). Built from config when None.
            plate_locator: Plate heuristic. Built from config when None.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._adapters = adapters if adapters is not None else build_adapters(config)
        self._runner = MultiScaleRunner(config.multiscale)
        self._plate_locator = plate_locator or HeuristicPlateLocator(config.plates)

        logger.info(
            "RedactionPipeline initialized (detectors=%s, plates=%s, policies=%s)",
            sorted(self._adapters),
            "on" if config.plates.enabled else "off",
            config.redaction.policies,
        )

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    def preload(self) -> bool:
        """Load every detector now instead of on first use.

        Returns:
            True when all detectors are ready. Failures are logged only;
            detection still runs (degraded) without them.
        """
        ready = True
        for role, adapter in self._adapters.items():
            try:
                adapter.ensure_ready()
            except DetectorUnavailableError as e:
                logger.warning("Preload failed for %s detector: %s", role, e)
                ready = False
        return ready

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect(
        self,
        frame: np.ndarray,
        should_cancel: Optional[CancelCheck] = None,
    ) -> DetectionOutcome:
        """Find the detections to redact in a single BGR frame.

        Raises:
            TypeError / ValueError: If frame is not a valid BGR array.
            DetectionCancelled: If should_cancel reports the work is stale.
        """
        DetectorAdapter._validate_frame(frame)
        start = time.perf_counter()
        warnings: List[str] = []

        try:
            candidates = self._gather_candidates(frame, warnings, should_cancel)
            detections = self._filter_and_select(candidates)
        except DetectionCancelled:
            raise
        except Exception as e:
            logger.exception("Detection failed, continuing without redaction: %s", e)
            warnings.append(f"Privacy detection failed: {e}")
            candidates, detections = [], []

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        counts = DetectionCounts.from_detections(detections)
        logger.info(
            "Detection finished in %.0fms: %d candidate(s) → %d to redact "
            "(faces=%d, people=%d, plates=%d)",
            elapsed_ms, len(candidates), len(detections),
            counts.faces_detected, counts.people_detected, counts.plates_detected,
        )
        return DetectionOutcome(
            detections=tuple(detections),
            counts=counts,
            warnings=tuple(warnings),
            candidates_found=len(candidates),
            elapsed_ms=elapsed_ms,
        )

    def _gather_candidates(
        self,
        frame: np.ndarray,
        warnings: List[str],
        should_cancel: Optional[CancelCheck],
    ) -> List[Detection]:
        ms = self._config.multiscale
        candidates: List[Detection] = []

        for role, scales in (("face", ms.face_scales), ("person", ms.person_scales)):
            adapter = self._adapters.get(role)
            if adapter is None:
                continue
            result = self._runner.run(frame, adapter, scales, should_cancel)
            if not result.detector_available:
                warnings.append(f"{role.capitalize()} detector unavailable; {role}s were not redacted.")
            candidates.extend(result.candidates)

        if self._config.plates.enabled:
            vehicle_boxes = self._vehicle_hints(frame, warnings, should_cancel)
            try:
                candidates.extend(
                    self._plate_locator.locate(frame, vehicle_boxes, should_cancel)
                )
            except DetectionCancelled:
                raise
            except Exception as e:
                logger.warning("Plate heuristic failed: %s", e)
                warnings.append("License plate search failed; plates were not redacted.")

        return candidates

    def _vehicle_hints(
        self,
        frame: np.ndarray,
        warnings: List[str],
        should_cancel: Optional[CancelCheck],
    ) -> Optional[List[Tuple[float, float, float, float]]]:
        """Vehicle boxes that steer the plate search, or None to search the lower frame."""
        adapter = self._adapters.get("vehicle")
        if adapter is None:
            return None

        check_cancelled(should_cancel)
        try:
            adapter.ensure_ready()
            boxes = adapter.detect(frame)
        except DetectorUnavailableError as e:
            logger.warning("Vehicle detector unavailable: %s", e)
            warnings.append("Vehicle detector unavailable; searched the lower frame for plates.")
            return None
        except Exception as e:
            logger.warning("Vehicle detection failed: %s", e)
            return None

        logger.debug("Vehicle hints: %d box(es)", len(boxes))
        return [(b.x, b.y, b.width, b.height) for b in boxes]

    def _filter_and_select(self, candidates: Sequence[Detection]) -> List[Detection]:
        det_cfg = self._config.detection
        red_cfg = self._config.redaction

        accepted = [
            c for c in candidates
            if c.confidence >= det_cfg.acceptance_thresholds.get(c.category.value, 0.0)
        ]
        deduplicated = non_max_suppression(
            accepted,
            iou_threshold=det_cfg.nms_threshold,
            category_thresholds=det_cfg.nms_category_thresholds,
            cross_category=det_cfg.cross_category_nms,
        )
        selected = select_for_redaction(
            deduplicated,
            policies=red_cfg.policies,
            default_policy=red_cfg.default_policy,
            person_fallback_only=red_cfg.person_fallback_only,
        )
        logger.debug(
            "Candidates: %d raw → %d accepted → %d after NMS → %d selected",
            len(candidates), len(accepted), len(deduplicated), len(selected),
        )
        return selected

    # ------------------------------------------------------------------
    # Redaction
    # ------------------------------------------------------------------

    def redact(
        self,
        frame: np.ndarray,
        should_cancel: Optional[CancelCheck] = None,
    ) -> RedactionResult:
        """Detect and burn the blur into a copy of the frame."""
        outcome = self.detect(frame, should_cancel)
        check_cancelled(should_cancel)

        h, w = frame.shape[:2]
        regions = expand_all(outcome.detections, w, h, self._config.blur)
        warnings = list(outcome.warnings)

        try:
            image = burn_in(frame, regions, self._config.blur)
        except Exception as e:
            logger.exception("Blur compositing failed, returning the unredacted image: %s", e)
            warnings.append(f"Blur could not be applied: {e}")
            image, regions = frame.copy(), []

        return RedactionResult(
            image=image,
            detections=outcome.detections,
            regions=tuple(regions),
            counts=outcome.counts,
            warnings=tuple(warnings),
            elapsed_ms=outcome.elapsed_ms,
        )

    def redact_bytes(
        self,
        data: bytes,
        should_cancel: Optional[CancelCheck] = None,
    ) -> RedactionResult:
        """Decode encoded image bytes and redact them.

        Raises:
            ImageReadError: If the bytes cannot be decoded.
        """
        return self.redact(decode_image(data), should_cancel)

    def redact_file(
        self,
        path: Union[str, Path],
        should_cancel: Optional[CancelCheck] = None,
    ) -> RedactionResult:
        """Read an image file and redact it.

        Raises:
            ImageReadError: If the file is missing or cannot be decoded.
        """
        return self.redact(read_image(path), should_cancel)
