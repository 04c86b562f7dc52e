"""
Output handling for the privacy redaction pipeline.

Responsibility:
    Route redaction results to configured output sinks: a display window,
    redacted images, annotated debug images, JSON, or CSV. Supports
    multiple orthogonal outputs simultaneously.

Non-goals:
    - No detection logic.
    - No input acquisition.
"""

import logging
from pathlib import Path
from typing import Dict, Set

import cv2
import numpy as np

from privacy_redaction.config import AppConfig, get_project_root
from privacy_redaction.pipeline import RedactionResult
from privacy_redaction.serializer import save_csv, save_json
from privacy_redaction.visualizer import draw_detections, show_frame

logger = logging.getLogger(__name__)

_FILE_MODES = {"save_image", "save_annotated", "save_json", "save_csv"}


def output_basename(name: str) -> str:
    """Base for output file names: 'photo.jpg' becomes 'photo_jpg'."""
    path = Path(name)
    suffix = path.suffix.lstrip(".").lower()
    return f"{path.stem}_{suffix}" if suffix else path.stem


class OutputHandler:
    """Routes redaction results to configured output sinks.

    Supports orthogonal outputs - multiple modes can be active simultaneously:
        - 'display': Show the redacted image in an OpenCV window.
        - 'save_image': Write the redacted image (what would be uploaded).
        - 'save_annotated': Write the original with detection boxes drawn.
        - 'save_json': Accumulate summaries, write JSON on finalize.
        - 'save_csv': Accumulate detections, write CSV on finalize.

    Usage:
        handler = OutputHandler(config)
        handler.process_image(name, frame, result)
        ...
        handler.finalize()  # Flush any buffered output
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._modes: Set[str] = set(m.strip() for m in config.output.mode.split(','))
        self._summaries: Dict[str, dict] = {}

        save_path = Path(config.output.save_path)
        if not save_path.is_absolute():
            save_path = get_project_root() / save_path
        self._save_path = save_path

        if self._modes & _FILE_MODES:
            self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s",
                    self._modes, self._save_path)

    @property
    def save_path(self) -> Path:
        return self._save_path

    def process_image(
        self,
        name: str,
        frame: np.ndarray,
        result: RedactionResult,
    ) -> bool:
        """Send one image's result through every active sink.

        Args:
            name: Image file name. Output files are named after it with the
                  extension folded in, so photo.jpg and photo.png do not
                  overwrite each other.
            frame: Original BGR frame, used for annotated output.
            result: Redaction result for the frame.

        Returns:
            True to continue processing, False when the user asked to stop
            (pressed 'q' or ESC in display mode).
        """
        should_continue = True
        base = output_basename(name)

        if 'display' in self._modes:
            key = show_frame(result.image, result.detections, self._config.visualization)
            if key == ord("q") or key == 27:  # 'q' or ESC
                logger.info("Quit signal received (key press).")
                should_continue = False

        if 'save_image' in self._modes:
            self._write(f"{base}_redacted.jpg", result.image)

        if 'save_annotated' in self._modes:
            annotated = draw_detections(frame, result.detections, self._config.visualization)
            self._write(f"{base}_annotated.jpg", annotated)

        if 'save_json' in self._modes or 'save_csv' in self._modes:
            # Summaries only; frames are released once their images are written
            self._summaries[name] = result.to_dict()

        return should_continue

    def _write(self, filename: str, image: np.ndarray) -> None:
        output_file = self._save_path / filename
        if not cv2.imwrite(str(output_file), image):
            logger.error("Failed to write image: %s", output_file)
            return
        logger.debug("Saved %s", output_file)

    def finalize(self) -> None:
        """Flush buffered output and release resources.

        Must be called after all images have been processed.
        """
        if 'save_json' in self._modes and self._summaries:
            save_json(self._summaries, str(self._save_path / "redactions.json"))

        if 'save_csv' in self._modes and self._summaries:
            save_csv(self._summaries, str(self._save_path / "redactions.csv"))

        if 'display' in self._modes:
            cv2.destroyAllWindows()

        self._summaries.clear()
        logger.info("OutputHandler finalized.")
