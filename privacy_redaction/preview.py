"""
Live preview overlay.

PreviewRenderer owns the render geometry for one displayed image. The host
UI forwards three kinds of events (image loaded, container resized,
orientation changed) and receives, after every one of them, the complete
list of render-space blur rectangles to draw. The base image itself is
never touched on this path.
"""

import logging
from typing import Callable, List, Optional, Sequence

from privacy_redaction.compositor import expand_all, regions_to_render_space
from privacy_redaction.config import BlurConfig
from privacy_redaction.detection import BlurRegion, Detection
from privacy_redaction.render_mapper import RenderGeometry, RenderSpaceMapper

logger = logging.getLogger(__name__)

OverlayListener = Callable[[List[BlurRegion]], None]


class PreviewRenderer:
    """Re-emits overlay rectangles whenever the layout changes.

    Usage:
        renderer = PreviewRenderer(listener=draw_boxes)
        renderer.image_loaded(4032, 3024)
        renderer.container_resized(390, 520)
        renderer.set_detections(result.detections)
    """

    def __init__(
        self,
        listener: Optional[OverlayListener] = None,
        config: Optional[BlurConfig] = None,
    ) -> None:
        self._listener = listener
        self._config = config or BlurConfig()
        self._mapper = RenderSpaceMapper()
        self._detections: List[Detection] = []
        self._overlays: List[BlurRegion] = []

    @property
    def geometry(self) -> Optional[RenderGeometry]:
        return self._mapper.geometry

    @property
    def overlays(self) -> List[BlurRegion]:
        return list(self._overlays)

    # --- Events -----------------------------------------------------------

    def image_loaded(self, natural_width: float, natural_height: float) -> List[BlurRegion]:
        self._mapper.image_loaded(natural_width, natural_height)
        return self._emit()

    def container_resized(self, width: float, height: float) -> List[BlurRegion]:
        self._mapper.container_resized(width, height)
        return self._emit()

    def orientation_changed(self, width: float, height: float) -> List[BlurRegion]:
        self._mapper.orientation_changed(width, height)
        return self._emit()

    def set_detections(self, detections: Sequence[Detection]) -> List[BlurRegion]:
        """Replace the detections being previewed (base-image space)."""
        self._detections = list(detections)
        return self._emit()

    def clear(self) -> List[BlurRegion]:
        """Forget the image and its detections (source changed or view torn down)."""
        self._detections = []
        self._mapper.image_unloaded()
        return self._emit()

    # --- Internals --------------------------------------------------------

    def _emit(self) -> List[BlurRegion]:
        natural = self._mapper.natural_size
        geometry = self._mapper.geometry
        if natural is None or geometry is None or not self._detections:
            self._overlays = []
        else:
            base_regions = expand_all(self._detections, natural[0], natural[1], self._config)
            self._overlays = regions_to_render_space(base_regions, geometry)

        if self._listener is not None:
            self._listener(list(self._overlays))
        return list(self._overlays)
