"""
Input handling for the privacy redaction pipeline.

Responsibility:
    Decode still images from bytes or files into BGR arrays, and iterate
    over an image file or a directory of images for batch use.

Non-goals:
    - No detection, drawing, or output writing.
    - No video or webcam streams (single still frames only).

Robustness:
    - decode_image / read_image raise ImageReadError on undecodable input;
      callers must be able to tell "could not read image" apart from
      "no detections".
    - The batch iterator logs and skips unreadable files (never crashes
      the run).
"""

import logging
import os
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Image extensions recognized by this handler
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


class ImageReadError(ValueError):
    """The image could not be read or decoded."""


def decode_image(data: Union[bytes, bytearray, memoryview]) -> np.ndarray:
    """Decode encoded image bytes (JPEG, PNG, ...) into a BGR array.

    Raises:
        ImageReadError: If the bytes are empty or not a decodable image.
    """
    if not data:
        raise ImageReadError("Could not read image: no data.")

    buffer = np.frombuffer(data, dtype=np.uint8)
    frame = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if frame is None or frame.size == 0:
        raise ImageReadError(
            f"Could not read image: {len(buffer)} bytes are not a supported image format."
        )
    return frame


def read_image(path: Union[str, Path]) -> np.ndarray:
    """Read an image file into a BGR array.

    Raises:
        ImageReadError: If the file is missing or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise ImageReadError(f"Could not read image: file not found: {path}")
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImageReadError(f"Could not read image: {path}: {e}") from e
    return decode_image(data)


def maybe_resize(frame: np.ndarray, resize_width: Optional[int]) -> np.ndarray:
    """Downscale frame to resize_width if it is wider, preserving aspect ratio."""
    if resize_width is None:
        return frame

    h, w = frame.shape[:2]
    if w <= resize_width:
        return frame

    scale = resize_width / w
    new_w = resize_width
    new_h = max(1, int(h * scale))
    return cv2.resize(frame, (new_w, new_h), interpolation=cv2.INTER_AREA)


class InputHandler:
    """Uniform image iterator for a single file or a directory.

    The source type is auto-detected at initialization:
        - File with image extension → single image
        - Directory path → all images in directory (sorted)

    Usage:
        handler = InputHandler(source="photos/")
        for name, frame in handler:
            # process frame

    Unreadable images are logged and skipped.
    """

    def __init__(
        self,
        source: Union[str, Path],
        resize_width: Optional[int] = None,
    ) -> None:
        """Initialize the input handler and validate the source.

        Args:
            source: Image file path or directory path.
            resize_width: Optional width to downscale frames. Aspect ratio
                          is preserved. None means no resizing.

        Raises:
            FileNotFoundError: If the source does not exist.
            ValueError: If the source is not an image or holds no images.
        """
        self._resize_width = resize_width
        source_str = str(source).strip()

        if os.path.isfile(source_str):
            ext = Path(source_str).suffix.lower()
            if ext not in _IMAGE_EXTENSIONS:
                raise ValueError(
                    f"Unrecognized file extension: '{ext}' for source '{source_str}'. "
                    f"Supported images: {_IMAGE_EXTENSIONS}."
                )
            self._mode = "image"
            self._image_paths = [source_str]
        elif os.path.isdir(source_str):
            self._mode = "directory"
            self._image_paths = sorted(
                str(p)
                for p in Path(source_str).iterdir()
                if p.suffix.lower() in _IMAGE_EXTENSIONS
            )
            if not self._image_paths:
                raise ValueError(
                    f"No image files found in directory: '{source_str}'. "
                    f"Supported extensions: {_IMAGE_EXTENSIONS}."
                )
            logger.info("Found %d images in directory: %s", len(self._image_paths), source_str)
        else:
            raise FileNotFoundError(
                f"Input source not found: '{source_str}'. "
                f"Provide a valid image file or directory."
            )

        logger.info("InputHandler initialized: mode=%s, source=%s", self._mode, source_str)

    def __len__(self) -> int:
        return len(self._image_paths)

    def __iter__(self) -> Iterator[Tuple[str, np.ndarray]]:
        """Iterate over readable images.

        Yields:
            Tuples of (file name, BGR frame). File names are unique within a
            directory, unlike stems (photo.jpg and photo.png).
        """
        for idx, path in enumerate(self._image_paths):
            try:
                frame = read_image(path)
            except ImageReadError as e:
                logger.warning("Skipping unreadable image (index=%d): %s", idx, e)
                continue

            yield Path(path).name, maybe_resize(frame, self._resize_width)
