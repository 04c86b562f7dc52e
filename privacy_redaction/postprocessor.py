"""
Postprocessing for SSD detector output.

Responsibility:
    Parse the raw SSD network output tensor into RawDetection records:
    class filtering, confidence floor, clamping of the normalized corners
    and conversion to pixel (x, y, width, height) boxes.

Non-goals:
    - No drawing, saving, or display logic.
    - No model loading or inference.
    - No calibration or acceptance thresholds (the multi-scale runner and
      the pipeline own those).

Hard-coded:
    - SSD output tensor layout: [1, 1, N, 7] where each row is
      [batch_id, class_id, confidence, x1, y1, x2, y2] with
      coordinates normalized to [0, 1].
"""

from typing import Collection, List, Optional

import numpy as np

from privacy_redaction.detection import RawDetection


def postprocess(
    network_output: np.ndarray,
    frame_width: int,
    frame_height: int,
    confidence_floor: float,
    class_ids: Optional[Collection[int]] = None,
) -> List[RawDetection]:
    """Parse raw SSD output into a list of RawDetection objects.

    Args:
        network_output: Raw output from net.forward(), expected shape
                        (1, 1, N, 7).
        frame_width: Width in pixels of the frame the network saw.
        frame_height: Height in pixels of the frame the network saw.
        confidence_floor: Minimum raw confidence to keep a box.
        class_ids: SSD class ids to keep. None keeps every class.

    Returns:
        RawDetections sorted by confidence (descending). Empty if nothing
        passes the floor.
    """
    rows = np.asarray(network_output, dtype=np.float32).reshape(-1, 7)

    keep = rows[:, 2] >= confidence_floor
    if class_ids is not None:
        keep &= np.isin(rows[:, 1].astype(np.int64), list(class_ids))
    rows = rows[keep]
    if rows.size == 0:
        return []

    corners = np.clip(rows[:, 3:7], 0.0, 1.0) * np.array(
        [frame_width, frame_height, frame_width, frame_height], dtype=np.float32
    )
    widths = corners[:, 2] - corners[:, 0]
    heights = corners[:, 3] - corners[:, 1]

    detections = [
        RawDetection(
            x=float(corners[i, 0]),
            y=float(corners[i, 1]),
            width=float(widths[i]),
            height=float(heights[i]),
            confidence=min(float(rows[i, 2]), 1.0),
        )
        for i in range(rows.shape[0])
        if widths[i] > 0 and heights[i] > 0   # inverted or zero-area boxes
    ]

    # Stable sort keeps network order among equal scores
    detections.sort(key=lambda d: d.confidence, reverse=True)
    return detections
