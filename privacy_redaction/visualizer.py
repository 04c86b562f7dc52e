"""
Debug visualization for the privacy redaction pipeline.

Responsibility:
    Draw detection boxes, colored by category, with optional
    "category confidence" labels onto a frame. Used to inspect what the
    pipeline found; the redacted output itself never carries these marks.

Non-goals:
    - No file writing.
    - No detection or blur logic.
"""

from typing import Sequence, Tuple

import cv2
import numpy as np

from privacy_redaction.config import VisualizationConfig
from privacy_redaction.detection import Detection

# Hard-coded rendering constants (cosmetic internals, not user-facing)
_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4
_FALLBACK_COLOR = (255, 255, 255)
_WINDOW_NAME = "Privacy Redaction"


def _pixel_box(det: Detection, width: int, height: int) -> Tuple[int, int, int, int]:
    x1 = max(0, min(width - 1, int(round(det.x))))
    y1 = max(0, min(height - 1, int(round(det.y))))
    x2 = max(0, min(width - 1, int(round(det.x2))))
    y2 = max(0, min(height - 1, int(round(det.y2))))
    return x1, y1, x2, y2


def draw_detections(
    frame: np.ndarray,
    detections: Sequence[Detection],
    config: VisualizationConfig,
) -> np.ndarray:
    """Draw bounding boxes and labels onto a copy of the frame.

    Args:
        frame: Input BGR image (not modified; a copy is returned).
        detections: Detections in the frame's pixel space.
        config: Visualization parameters (colors, thickness, labels).

    Returns:
        A new BGR numpy array with detections drawn.
    """
    annotated = frame.copy()
    height, width = annotated.shape[:2]

    for det in detections:
        color = config.category_colors.get(det.category.value, _FALLBACK_COLOR)
        x1, y1, x2, y2 = _pixel_box(det, width, height)

        cv2.rectangle(annotated, (x1, y1), (x2, y2), color=color, thickness=config.thickness)

        if config.show_confidence:
            label = f"{det.category.value} {det.confidence:.2f}"
            (text_w, text_h), _ = cv2.getTextSize(label, _FONT, _FONT_SCALE, _FONT_THICKNESS)

            # Above the box, or below if too close to the top
            label_y = y1 - _LABEL_PADDING
            if label_y - text_h - _LABEL_PADDING < 0:
                label_y = y2 + text_h + _LABEL_PADDING

            cv2.rectangle(
                annotated,
                (x1, label_y - text_h - _LABEL_PADDING),
                (x1 + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
                color=color,
                thickness=cv2.FILLED,
            )
            cv2.putText(
                annotated,
                label,
                (x1 + _LABEL_PADDING // 2, label_y),
                _FONT,
                _FONT_SCALE,
                (0, 0, 0),
                _FONT_THICKNESS,
                cv2.LINE_AA,
            )

    return annotated


def show_frame(
    frame: np.ndarray,
    detections: Sequence[Detection],
    config: VisualizationConfig,
) -> int:
    """Show the annotated frame and wait for a key.

    Returns:
        The key code pressed, or -1 (masked to 255) if none.
    """
    cv2.imshow(_WINDOW_NAME, draw_detections(frame, detections, config))
    return cv2.waitKey(0) & 0xFF
