"""
Preprocessing for the privacy redaction pipeline.

Responsibility:
    Convert a raw BGR frame (numpy array) into a 4D DNN-compatible
    input blob using cv2.dnn.blobFromImage, and resample frames for
    multi-scale passes.

Non-goals:
    - No frame acquisition or I/O.
    - No inference or coordinate mapping.
    - No model-awareness beyond the blob parameters.

Hard-coded:
    - Channel order is BGR (mandated by the Caffe models).
    - swapRB is False (input is already BGR from OpenCV).
"""

from typing import Tuple

import cv2
import numpy as np

from privacy_redaction.config import NetworkConfig


def preprocess(frame: np.ndarray, network: NetworkConfig) -> np.ndarray:
    """Convert a raw BGR frame into a DNN input blob.

    Args:
        frame: Input image as a BGR numpy array (H, W, 3).
        network: NetworkConfig providing input_size, scale_factor, and mean_values.
                 An input_size of None keeps the frame's own dimensions.

    Returns:
        A 4D numpy array of shape (1, 3, H, W) with dtype float32,
        ready to be passed to net.setInput().

    Raises:
        ValueError: If the frame is empty or has unexpected dimensions.
    """
    if frame is None or frame.size == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the input source is providing valid frames."
        )

    if network.input_size is None:
        h, w = frame.shape[:2]
        size = (w, h)
    else:
        size = network.input_size

    blob = cv2.dnn.blobFromImage(
        image=frame,
        scalefactor=network.scale_factor,
        size=size,
        mean=network.mean_values,
        swapRB=False,   # Hard-coded: input is BGR, model expects BGR
        crop=False,
    )

    return blob


def scaled_size(frame: np.ndarray, scale: float) -> Tuple[int, int]:
    """Return the (width, height) a frame would have after resampling."""
    h, w = frame.shape[:2]
    return int(round(w * scale)), int(round(h * scale))


def resample(frame: np.ndarray, scale: float) -> np.ndarray:
    """Return a resampled copy of the frame; scale 1.0 returns the frame itself.

    Upscaling uses bilinear interpolation, downscaling uses area averaging.
    """
    if frame is None or frame.size == 0:
        raise ValueError("Cannot resample an empty frame.")
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}.")
    if scale == 1.0:
        return frame

    new_w, new_h = scaled_size(frame, scale)
    interpolation = cv2.INTER_LINEAR if scale > 1.0 else cv2.INTER_AREA
    return cv2.resize(frame, (max(1, new_w), max(1, new_h)), interpolation=interpolation)
