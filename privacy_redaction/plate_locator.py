"""
Heuristic license plate locator.

Responsibility:
    Find plate-like windows without a trained plate model. Printed
    characters on a rectangular plate produce a recognizable signature:
    a plate-shaped window whose share of edge pixels sits in a middle band
    (not flat background, not dense texture) and whose middle row crosses
    several character strokes.

Algorithm:
    1. Grayscale → Sobel gradient magnitude → binary edge map.
    2. Integral images of the edge map (whole-window and per-row) so every
       window density is an O(1) lookup, evaluated with numpy over a grid
       of positions for each window size.
    3. Windows are scanned only inside the search regions: the lower part
       of the frame, or the lower part of each vehicle box when hints are
       supplied.
    4. Accepted windows are scored by how centrally their edge density
       sits in the accepted band, overlapping windows are thinned greedily,
       and the best `max_candidates` are returned as plate Detections.

All thresholds live in PlateLocatorConfig. They are empirical.

Non-goals:
    - No character recognition.
    - No perspective rectification.
"""

import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from privacy_redaction.config import PlateLocatorConfig
from privacy_redaction.detection import Category, Detection
from privacy_redaction.multiscale import CancelCheck, check_cancelled
from privacy_redaction.nms import iou

logger = logging.getLogger(__name__)

SOURCE_NAME = "plate-heuristic"

# (x0, y0, x1, y1) in base pixels, exclusive upper bounds
Region = Tuple[int, int, int, int]


def is_plate_shaped(width: float, height: float, config: PlateLocatorConfig) -> bool:
    """Whether a window's aspect ratio falls inside the plate band."""
    if width <= 0 or height <= 0:
        return False
    aspect = width / height
    return config.min_aspect <= aspect <= config.max_aspect


def density_in_band(density: float, config: PlateLocatorConfig) -> bool:
    return config.min_edge_density < density < config.max_edge_density


def band_confidence(density: float, config: PlateLocatorConfig) -> float:
    """Score a density by its distance from the middle of the accepted band.

    1.0 at the exact middle, falling linearly to 0.0 at either bound.
    """
    low, high = config.min_edge_density, config.max_edge_density
    middle = (low + high) / 2
    half_width = (high - low) / 2
    score = 1.0 - abs(density - middle) / half_width
    return max(0.0, min(score, 1.0))


def edge_map(frame: np.ndarray, threshold: float) -> np.ndarray:
    """Return a uint8 map with 1 where the Sobel magnitude exceeds threshold."""
    if frame.ndim == 3:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    else:
        gray = frame
    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = cv2.magnitude(gx, gy)
    return (magnitude > threshold).astype(np.uint8)


def window_edge_density(edges: np.ndarray, x: int, y: int, w: int, h: int) -> float:
    """Fraction of edge pixels inside one window (direct sum, for callers and tests)."""
    window = edges[y:y + h, x:x + w]
    if window.size == 0:
        return 0.0
    return float(window.mean())


class HeuristicPlateLocator:
    """Sliding-window plate finder driven by edge density.

    Usage:
        locator = HeuristicPlateLocator(config.plates)
        plates = locator.locate(frame)
        plates = locator.locate(frame, vehicle_boxes=[(x, y, w, h), ...])
    """

    def __init__(self, config: Optional[PlateLocatorConfig] = None) -> None:
        self._config = config or PlateLocatorConfig()

    @property
    def config(self) -> PlateLocatorConfig:
        return self._config

    # ------------------------------------------------------------------
    # Geometry of the scan
    # ------------------------------------------------------------------

    def window_sizes(self, image_width: int, image_height: int) -> List[Tuple[int, int]]:
        """Candidate (width, height) pairs for an image, plate-shaped ones only."""
        cfg = self._config
        stride = self.stride(image_width)

        min_w = max(cfg.min_width_px, image_width * cfg.min_width_fraction)
        max_w = min(cfg.max_width_px, image_width * cfg.max_width_fraction)
        min_h = max(cfg.min_height_px, image_height * cfg.min_height_fraction)
        max_h = min(cfg.max_height_px, image_height * cfg.max_height_fraction)
        max_area = cfg.max_area_fraction * image_width * image_height

        sizes = []
        for w in np.arange(min_w, max_w + 1e-9, stride * 3):
            for h in np.arange(min_h, max_h + 1e-9, max(stride, 15)):
                w_i, h_i = int(w), int(h)
                if w_i <= 0 or h_i <= 0:
                    continue
                if w_i * h_i > max_area:
                    continue
                if not is_plate_shaped(w_i, h_i, cfg):
                    continue
                sizes.append((w_i, h_i))
        return sizes

    def stride(self, image_width: int) -> int:
        return max(self._config.min_stride_px, image_width // self._config.stride_divisor)

    def search_regions(
        self,
        image_width: int,
        image_height: int,
        vehicle_boxes: Optional[Iterable[Sequence[float]]] = None,
    ) -> List[Region]:
        """Regions to scan: lower frame, or lower part of each vehicle box."""
        cfg = self._config
        regions: List[Region] = []
        for box in vehicle_boxes or ():
            vx, vy, vw, vh = box
            region = (
                max(0, int(math.floor(vx))),
                max(0, int(math.floor(vy + vh * cfg.vehicle_search_start))),
                min(image_width, int(math.ceil(vx + vw))),
                min(image_height, int(math.ceil(vy + vh))),
            )
            if region[2] > region[0] and region[3] > region[1]:
                regions.append(region)

        if not regions:
            regions.append((0, int(image_height * cfg.search_start), image_width, image_height))
        return regions

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def locate(
        self,
        frame: np.ndarray,
        vehicle_boxes: Optional[Iterable[Sequence[float]]] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> List[Detection]:
        """Return up to `max_candidates` plate detections, best first.

        An image with no qualifying window yields an empty list.
        """
        cfg = self._config
        if not cfg.enabled:
            return []
        if frame is None or frame.size == 0:
            raise ValueError("Cannot search an empty frame for plates.")

        height, width = frame.shape[:2]
        edges = edge_map(frame, cfg.edge_threshold)
        integral = cv2.integral(edges)
        row_cumsum = np.zeros((height, width + 1), dtype=np.int32)
        row_cumsum[:, 1:] = np.cumsum(edges, axis=1, dtype=np.int32)

        stride = self.stride(width)
        sizes = self.window_sizes(width, height)
        regions = self.search_regions(width, height, vehicle_boxes)

        scored: List[Tuple[float, int, int, int, int]] = []
        for x0, y0, x1, y1 in regions:
            for w, h in sizes:
                check_cancelled(should_cancel)
                ys = np.arange(y0, y1 - h + 1, stride)
                xs = np.arange(x0, x1 - w + 1, stride)
                if ys.size == 0 or xs.size == 0:
                    continue

                ys_grid, xs_grid = np.meshgrid(ys, xs, indexing="ij")
                sums = (
                    integral[ys_grid + h, xs_grid + w]
                    - integral[ys_grid, xs_grid + w]
                    - integral[ys_grid + h, xs_grid]
                    + integral[ys_grid, xs_grid]
                )
                density = sums / float(w * h)

                mid_rows = ys_grid + h // 2
                row_density = (
                    row_cumsum[mid_rows, xs_grid + w] - row_cumsum[mid_rows, xs_grid]
                ) / float(w)

                accepted = (
                    (density > cfg.min_edge_density)
                    & (density < cfg.max_edge_density)
                    & (row_density >= cfg.min_row_density)
                )
                for i, j in zip(*np.nonzero(accepted)):
                    scored.append((
                        band_confidence(float(density[i, j]), cfg),
                        int(xs_grid[i, j]), int(ys_grid[i, j]), w, h,
                    ))

        plates = self._select(scored)
        logger.info(
            "Plate heuristic: %d window(s) accepted, %d candidate(s) kept",
            len(scored), len(plates),
        )
        return plates

    def _select(self, scored: List[Tuple[float, int, int, int, int]]) -> List[Detection]:
        """Greedily keep the best non-overlapping windows."""
        cfg = self._config
        scored.sort(key=lambda s: -s[0])

        kept: List[Detection] = []
        for confidence, x, y, w, h in scored:
            candidate = Detection(
                x=float(x), y=float(y), width=float(w), height=float(h),
                confidence=confidence,
                category=Category.PLATE,
                source_scale=1.0,
                source_detector=SOURCE_NAME,
            )
            if any(iou(candidate, other) > cfg.overlap_iou for other in kept):
                continue
            kept.append(candidate)
            if len(kept) >= cfg.max_candidates:
                break
        return kept
