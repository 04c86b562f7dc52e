"""
Multi-scale detection runner.

Responsibility:
    Run a detector adapter over several resampled copies of the base image,
    map every box back to base-image coordinates, and calibrate confidences
    to compensate for detectors underweighting small/distant subjects.

Failure behavior:
    - A scale whose resampled size exceeds the memory cap is skipped.
    - A scale whose inference raises is logged and discarded; the other
      scales still run.
    - An adapter that cannot be made ready yields an empty result with
      detector_available=False. The runner itself never raises for
      detector problems; redaction must fail open.
    - A cancellation check, when supplied, is consulted before each scale
      and raises DetectionCancelled.

Non-goals:
    - No filtering, deduplication or policy (that belongs downstream).
    - No parallel scale passes; scales run one after another.
"""

import logging
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from privacy_redaction.config import MultiScaleConfig
from privacy_redaction.detection import Detection, RawDetection
from privacy_redaction.detector import DetectorAdapter, DetectorUnavailableError
from privacy_redaction.preprocessor import resample, scaled_size

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], bool]


class DetectionCancelled(Exception):
    """Raised internally when the image under detection was superseded."""


class MultiScaleResult(NamedTuple):
    """Outcome of one multi-scale run."""

    candidates: List[Detection]
    scales_run: Tuple[float, ...]
    scales_skipped: Tuple[float, ...]
    scales_failed: Tuple[float, ...]
    detector_available: bool


def calibrate_confidence(
    confidence: float,
    scale: float,
    boost: float = 0.05,
    cap: float = 0.99,
) -> float:
    """Adjust a raw score for the scale it was produced at.

    Upscaled passes get `boost` per unit of scale above 1.0. The result is
    never above `cap` and never below 0.
    """
    adjusted = confidence + boost * (scale - 1.0) if scale > 1.0 else confidence
    return max(0.0, min(adjusted, cap))


def map_to_base(box: RawDetection, scale: float) -> Tuple[float, float, float, float]:
    """Map a box found on a frame resampled by `scale` back to base pixels."""
    return box.x / scale, box.y / scale, box.width / scale, box.height / scale


def check_cancelled(should_cancel: Optional[CancelCheck]) -> None:
    if should_cancel is not None and should_cancel():
        raise DetectionCancelled()


class MultiScaleRunner:
    """Runs one adapter across a list of scales.

    Usage:
        runner = MultiScaleRunner(config.multiscale)
        result = runner.run(frame, adapter, scales=(1.0, 1.5, 2.0))
        candidates = result.candidates
    """

    def __init__(self, config: Optional[MultiScaleConfig] = None) -> None:
        self._config = config or MultiScaleConfig()

    @property
    def config(self) -> MultiScaleConfig:
        return self._config

    def run(
        self,
        frame: np.ndarray,
        adapter: DetectorAdapter,
        scales: Optional[Sequence[float]] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> MultiScaleResult:
        """Detect at every scale and aggregate into one candidate list.

        Args:
            frame: Base BGR image.
            adapter: Detector to run.
            scales: Ascending resample factors. Defaults to the face scales
                    of the runner's config.
            should_cancel: Optional callable; when it returns True the run
                           is abandoned with DetectionCancelled.

        Returns:
            A MultiScaleResult. Candidates are unfiltered and keep the
            order in which they were produced (scale by scale).
        """
        cfg = self._config
        scales = tuple(scales) if scales is not None else cfg.face_scales

        check_cancelled(should_cancel)
        try:
            adapter.ensure_ready()
        except DetectorUnavailableError as e:
            logger.warning("Detector %s unavailable, skipping: %s", adapter.name, e)
            return MultiScaleResult([], (), (), (), False)

        candidates: List[Detection] = []
        run: List[float] = []
        skipped: List[float] = []
        failed: List[float] = []

        for scale in scales:
            check_cancelled(should_cancel)

            scaled_w, scaled_h = scaled_size(frame, scale)
            if scaled_w > cfg.max_dimension or scaled_h > cfg.max_dimension:
                logger.debug(
                    "Skipping scale %.2fx for %s: %dx%d exceeds %dpx cap",
                    scale, adapter.name, scaled_w, scaled_h, cfg.max_dimension,
                )
                skipped.append(scale)
                continue

            try:
                boxes = adapter.detect(resample(frame, scale))
            except Exception as e:
                logger.warning("Inference failed for %s at scale %.2fx: %s", adapter.name, scale, e)
                logger.debug("Scale failure details", exc_info=True)
                failed.append(scale)
                continue

            run.append(scale)
            for box in boxes:
                x, y, w, h = map_to_base(box, scale)
                if w <= 0 or h <= 0:
                    continue
                candidates.append(Detection(
                    x=x, y=y, width=w, height=h,
                    confidence=calibrate_confidence(
                        box.confidence, scale, cfg.confidence_boost, cfg.confidence_cap,
                    ),
                    category=adapter.category,
                    source_scale=scale,
                    source_detector=adapter.name,
                ))

            logger.debug(
                "Scale %.2fx (%dx%d): %d box(es) from %s",
                scale, scaled_w, scaled_h, len(boxes), adapter.name,
            )

        logger.info(
            "%s: %d raw candidate(s) across %d scale(s) (%d skipped, %d failed)",
            adapter.name, len(candidates), len(run), len(skipped), len(failed),
        )
        return MultiScaleResult(candidates, tuple(run), tuple(skipped), tuple(failed), True)
