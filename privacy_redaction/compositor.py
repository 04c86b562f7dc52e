"""
Blur compositing.

Responsibility:
    Turn selected detections into redaction rectangles and apply them:

    - expand_detection: base-space BlurRegion around a detection. Detectors
      underestimate how far a subject extends, and more so for close
      subjects, so faces are expanded by a multiplier chosen from their
      share of the image area. Plates get a small padding. People are
      reduced to their head band unless the full box is configured.
    - to_render_space: map a base-space region through a RenderGeometry
      for the live preview, clamped to the container; regions entirely
      outside the container are dropped.
    - burn_in: return a new image with every region blurred. The input
      buffer is never modified, so preview and capture paths never alias.
      Kernel size is capped so a close face on a large photo blurs in
      bounded time.

Non-goals:
    - No detection or selection logic.
    - No display or file writing.
"""

import logging
from typing import Iterable, List, Optional, Tuple

import cv2
import numpy as np

from privacy_redaction.config import BlurConfig
from privacy_redaction.detection import BlurRegion, Category, Detection
from privacy_redaction.render_mapper import RenderGeometry

logger = logging.getLogger(__name__)


def expansion_multipliers(
    detection: Detection,
    image_area: float,
    config: Optional[BlurConfig] = None,
) -> Tuple[float, float]:
    """(width, height) multipliers for a detection.

    Faces: > close_face_area_pct of the image → close tier, > medium → medium
    tier, otherwise distant tier. Plates and people use fixed multipliers.
    """
    config = config or BlurConfig()

    if detection.category is Category.PLATE:
        return config.plate_multipliers
    if detection.category is Category.PERSON:
        return config.person_multipliers

    percent = (detection.area / image_area) * 100 if image_area > 0 else 0.0
    if percent > config.close_face_area_pct:
        return config.close_multipliers
    if percent > config.medium_face_area_pct:
        return config.medium_multipliers
    return config.distant_multipliers


def _head_box(detection: Detection, head_fraction: float) -> Tuple[float, float, float, float]:
    """Head band of a person box: top slice, roughly as wide as tall, centered."""
    head_h = detection.height * head_fraction
    head_w = min(detection.width * 0.5, head_h * 0.9)
    head_x = detection.x + (detection.width - head_w) / 2
    return head_x, detection.y, head_w, head_h


def expand_detection(
    detection: Detection,
    image_width: float,
    image_height: float,
    config: Optional[BlurConfig] = None,
) -> BlurRegion:
    """Base-space redaction rectangle for a detection.

    The rectangle is centered on the (possibly reduced) detection box and
    is not clipped; burn_in and to_render_space clip for their own space.
    """
    config = config or BlurConfig()

    if detection.category is Category.PERSON and config.person_region == "head":
        x, y, w, h = _head_box(detection, config.head_fraction)
    else:
        x, y, w, h = detection.x, detection.y, detection.width, detection.height

    width_mult, height_mult = expansion_multipliers(
        detection, image_width * image_height, config
    )
    center_x = x + w / 2
    center_y = y + h / 2
    blur_w = w * width_mult
    blur_h = h * height_mult

    return BlurRegion(
        x=center_x - blur_w / 2,
        y=center_y - blur_h / 2,
        width=blur_w,
        height=blur_h,
        category=detection.category,
        source=detection,
    )


def expand_all(
    detections: Iterable[Detection],
    image_width: float,
    image_height: float,
    config: Optional[BlurConfig] = None,
) -> List[BlurRegion]:
    return [expand_detection(d, image_width, image_height, config) for d in detections]


def to_render_space(region: BlurRegion, geometry: RenderGeometry) -> Optional[BlurRegion]:
    """Map a base-space region into container pixels.

    Returns:
        The region clamped to the container, or None when it lies entirely
        outside the container.
    """
    left, top = geometry.to_render(region.x, region.y)
    right = left + region.width * geometry.scale_x
    bottom = top + region.height * geometry.scale_y

    clamped_left = max(0.0, left)
    clamped_top = max(0.0, top)
    clamped_right = min(geometry.container_width, right)
    clamped_bottom = min(geometry.container_height, bottom)

    if clamped_right <= clamped_left or clamped_bottom <= clamped_top:
        return None

    return BlurRegion(
        x=clamped_left,
        y=clamped_top,
        width=clamped_right - clamped_left,
        height=clamped_bottom - clamped_top,
        category=region.category,
        source=region.source,
    )


def regions_to_render_space(
    regions: Iterable[BlurRegion],
    geometry: Optional[RenderGeometry],
) -> List[BlurRegion]:
    """Map many regions, dropping invisible ones. No geometry → no overlays."""
    if geometry is None:
        return []
    mapped = []
    for region in regions:
        rendered = to_render_space(region, geometry)
        if rendered is not None:
            mapped.append(rendered)
    return mapped


def _pixel_bounds(region: BlurRegion, width: int, height: int) -> Optional[Tuple[int, int, int, int]]:
    x1 = max(0, int(np.floor(region.x)))
    y1 = max(0, int(np.floor(region.y)))
    x2 = min(width, int(np.ceil(region.x2)))
    y2 = min(height, int(np.ceil(region.y2)))
    if x2 <= x1 or y2 <= y1:
        return None
    return x1, y1, x2, y2


def _odd(n: int) -> int:
    return n if n % 2 == 1 else n + 1


def blur_kernel(
    width: int,
    height: int,
    config: Optional[BlurConfig] = None,
) -> Tuple[int, float]:
    """Pick the Gaussian kernel and working scale for a region.

    The kernel follows the region's short side until it reaches
    config.max_kernel. Past that, the region is blurred at a reduced scale
    so the kernel stays at the cap while the blur keeps the same strength
    relative to the region.

    Returns:
        (kernel, scale): odd kernel size and the factor the region is
        resized by before blurring (1.0 means full resolution).
    """
    config = config or BlurConfig()
    wanted = max(3, int(min(width, height) * config.kernel_fraction))
    cap = _odd(config.max_kernel)
    if wanted <= cap:
        return _odd(wanted), 1.0
    return cap, cap / wanted


def burn_in(
    frame: np.ndarray,
    regions: Iterable[BlurRegion],
    config: Optional[BlurConfig] = None,
) -> np.ndarray:
    """Return a copy of the frame with every base-space region blurred.

    Each region is clipped to the image. The Gaussian kernel grows with the
    region's short side up to config.max_kernel; larger regions are blurred
    at reduced resolution and scaled back (see blur_kernel).
    """
    config = config or BlurConfig()
    output = frame.copy()
    height, width = output.shape[:2]

    for region in regions:
        bounds = _pixel_bounds(region, width, height)
        if bounds is None:
            continue
        x1, y1, x2, y2 = bounds

        region_w, region_h = x2 - x1, y2 - y1
        kernel, scale = blur_kernel(region_w, region_h, config)

        roi = output[y1:y2, x1:x2]
        if scale < 1.0:
            small_size = (max(1, round(region_w * scale)), max(1, round(region_h * scale)))
            roi = cv2.resize(roi, small_size, interpolation=cv2.INTER_AREA)
        for _ in range(config.passes):
            roi = cv2.GaussianBlur(roi, (kernel, kernel), 0)
        if scale < 1.0:
            roi = cv2.resize(roi, (region_w, region_h), interpolation=cv2.INTER_LINEAR)
        output[y1:y2, x1:x2] = roi

        logger.debug(
            "Blurred %s region %dx%d at (%d, %d), kernel=%d, scale=%.3f",
            region.category.value, region_w, region_h, x1, y1, kernel, scale,
        )

    return output
