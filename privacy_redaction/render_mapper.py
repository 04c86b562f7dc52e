"""
Render-space mapping for fill-and-crop (cover) display.

Responsibility:
    Compute the affine mapping between base-image pixels and the way the
    image is drawn inside a container that it must completely fill. The
    constrained axis fits the container exactly; the other axis overflows
    and is cropped symmetrically.

The mapping depends on three inputs that arrive at different times: the
natural image size (known only once the image has loaded), the container
size (changes on resize) and orientation changes (which change the
container). RenderSpaceMapper treats these as an event stream and
recomputes from scratch on every event.

Zero or negative sizes produce no geometry rather than a division fault.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderGeometry:
    """How a natural-size image is laid out inside its container.

    Base-space point (x, y) maps to container point
    (x * scale_x + offset_x, y * scale_y + offset_y).
    """

    container_width: float
    container_height: float
    rendered_width: float
    rendered_height: float
    offset_x: float
    offset_y: float
    scale_x: float
    scale_y: float

    def to_render(self, x: float, y: float) -> Tuple[float, float]:
        return x * self.scale_x + self.offset_x, y * self.scale_y + self.offset_y

    def to_base(self, x: float, y: float) -> Tuple[float, float]:
        return (x - self.offset_x) / self.scale_x, (y - self.offset_y) / self.scale_y


def compute_render_geometry(
    natural_width: float,
    natural_height: float,
    container_width: float,
    container_height: float,
) -> Optional[RenderGeometry]:
    """Fill-and-crop layout of an image inside a container.

    Returns:
        The RenderGeometry, or None when any dimension is not positive.
    """
    if min(natural_width, natural_height, container_width, container_height) <= 0:
        return None

    image_aspect = natural_width / natural_height
    container_aspect = container_width / container_height

    if image_aspect > container_aspect:
        # Wider than the container: height fits, width overflows.
        rendered_height = float(container_height)
        rendered_width = container_height * image_aspect
        offset_x = (container_width - rendered_width) / 2
        offset_y = 0.0
    else:
        # Taller (or equal): width fits, height overflows.
        rendered_width = float(container_width)
        rendered_height = container_width / image_aspect
        offset_x = 0.0
        offset_y = (container_height - rendered_height) / 2

    return RenderGeometry(
        container_width=float(container_width),
        container_height=float(container_height),
        rendered_width=rendered_width,
        rendered_height=rendered_height,
        offset_x=offset_x,
        offset_y=offset_y,
        scale_x=rendered_width / natural_width,
        scale_y=rendered_height / natural_height,
    )


class RenderSpaceMapper:
    """Tracks image and container size events and keeps geometry current.

    Each event handler returns the freshly computed geometry (or None when
    the layout is not yet known or degenerate). Nothing is carried over
    from the previous geometry.
    """

    def __init__(self) -> None:
        self._natural: Optional[Tuple[float, float]] = None
        self._container: Optional[Tuple[float, float]] = None
        self._geometry: Optional[RenderGeometry] = None

    @property
    def geometry(self) -> Optional[RenderGeometry]:
        return self._geometry

    @property
    def natural_size(self) -> Optional[Tuple[float, float]]:
        return self._natural

    def image_loaded(self, natural_width: float, natural_height: float) -> Optional[RenderGeometry]:
        self._natural = (natural_width, natural_height)
        return self._recompute("image_loaded")

    def container_resized(self, width: float, height: float) -> Optional[RenderGeometry]:
        self._container = (width, height)
        return self._recompute("container_resized")

    def orientation_changed(self, width: float, height: float) -> Optional[RenderGeometry]:
        self._container = (width, height)
        return self._recompute("orientation_changed")

    def image_unloaded(self) -> None:
        self._natural = None
        self._geometry = None

    def _recompute(self, event: str) -> Optional[RenderGeometry]:
        if self._natural is None or self._container is None:
            self._geometry = None
        else:
            self._geometry = compute_render_geometry(*self._natural, *self._container)
        logger.debug("Render geometry after %s: %s", event, self._geometry)
        return self._geometry
