"""
Privacy Redaction — client-side face, person and license plate blurring.

Public API:
    - RedactionPipeline: The single entry point for detecting and blurring.
    - RedactionSession: Last-request-wins wrapper for a changing image.
    - PreviewRenderer: Render-space overlays for a live preview.
    - Detection, BlurRegion, DetectionCounts, Category: Result records.
    - RenderGeometry: Fill-and-crop layout of an image in its container.
    - RedactionPolicy: Per-category selection policy.
    - ImageReadError: Raised when an input image cannot be decoded.

All other modules in this package are internal implementation details
and should not be imported directly by consumers.

Usage:
    from privacy_redaction import RedactionPipeline

    pipeline = RedactionPipeline()
    result = pipeline.redact(frame)
    result.image, result.counts
"""

from privacy_redaction.detection import BlurRegion, Category, Detection, DetectionCounts
from privacy_redaction.input_handler import ImageReadError
from privacy_redaction.pipeline import RedactionPipeline, RedactionResult
from privacy_redaction.preview import PreviewRenderer
from privacy_redaction.render_mapper import RenderGeometry
from privacy_redaction.selector import RedactionPolicy
from privacy_redaction.session import RedactionSession

__all__ = [
    "BlurRegion",
    "Category",
    "Detection",
    "DetectionCounts",
    "ImageReadError",
    "PreviewRenderer",
    "RedactionPipeline",
    "RedactionPolicy",
    "RedactionResult",
    "RedactionSession",
    "RenderGeometry",
]
