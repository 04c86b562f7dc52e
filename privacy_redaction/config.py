"""
Configuration management for the privacy redaction pipeline.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The system MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection logic, I/O, or model loading belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: privacy_redaction/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent

CATEGORIES = ("face", "person", "plate")
POLICIES = ("all", "largest_only")


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NetworkConfig:
    """A single Caffe SSD network and its blob parameters.

    Attributes:
        prototxt_path: Path to the .prototxt network definition (relative to project root).
        weights_path: Path to the .caffemodel weights file (relative to project root).
        input_size: Spatial dimensions (width, height) for the DNN input blob.
                    None feeds the frame at its own size (fully convolutional nets only).
        mean_values: Per-channel mean subtraction values (BGR order).
        scale_factor: Pixel value scale factor applied during blob creation.
        class_ids: SSD class ids accepted from this network.
    """

    prototxt_path: str
    weights_path: str
    input_size: Optional[Tuple[int, int]] = (300, 300)
    mean_values: Tuple[float, float, float] = (104.0, 177.0, 123.0)
    scale_factor: float = 1.0
    class_ids: Tuple[int, ...] = (1,)


def _default_face_network() -> NetworkConfig:
    return NetworkConfig(
        prototxt_path="models/deploy.prototxt",
        weights_path="models/res10_300x300_ssd_iter_140000.caffemodel",
        input_size=None,
        mean_values=(104.0, 177.0, 123.0),
        scale_factor=1.0,
        class_ids=(1,),
    )


def _default_person_network() -> NetworkConfig:
    # MobileNet-SSD trained on VOC: class 15 is "person".
    return NetworkConfig(
        prototxt_path="models/MobileNetSSD_deploy.prototxt",
        weights_path="models/MobileNetSSD_deploy.caffemodel",
        input_size=(300, 300),
        mean_values=(127.5, 127.5, 127.5),
        scale_factor=0.007843,
        class_ids=(15,),
    )


@dataclass(frozen=True)
class ModelConfig:
    """Model-related configuration.

    Attributes:
        backend: Compute backend — 'cpu' or 'cuda'.
        face: Face SSD network.
        person: Object SSD network used for people (and vehicle hints).
        vehicle_class_ids: Classes of the person network treated as vehicles
                           (VOC: bicycle, bus, car, motorbike).
        confidence_floor: Raw scores below this are dropped by the adapters.
        enable_person: Run the person detector at all.
        enable_vehicle_hints: Restrict the plate search to detected vehicles
                              when any are found.
    """

    backend: str = "cpu"
    face: NetworkConfig = field(default_factory=_default_face_network)
    person: NetworkConfig = field(default_factory=_default_person_network)
    vehicle_class_ids: Tuple[int, ...] = (2, 6, 7, 14)
    confidence_floor: float = 0.2
    enable_person: bool = True
    enable_vehicle_hints: bool = False


@dataclass(frozen=True)
class MultiScaleConfig:
    """Multi-scale inference settings.

    Attributes:
        face_scales: Ascending resample factors for the face detector.
        person_scales: Ascending resample factors for the person detector.
        max_dimension: Scales whose resampled width or height exceeds this
                       are skipped (bounds memory).
        confidence_boost: Added per unit of scale above 1.0.
        confidence_cap: Upper bound for any calibrated confidence.
    """

    face_scales: Tuple[float, ...] = (1.0, 1.5, 2.0, 2.5, 3.0)
    person_scales: Tuple[float, ...] = (1.0,)
    max_dimension: int = 2000
    confidence_boost: float = 0.05
    confidence_cap: float = 0.99


@dataclass(frozen=True)
class DetectionConfig:
    """Acceptance and suppression thresholds.

    Attributes:
        acceptance_thresholds: Minimum calibrated confidence per category,
                               applied before deduplication.
        nms_threshold: Default IoU threshold for non-maximum suppression.
        nms_category_thresholds: Per-category IoU overrides.
        cross_category_nms: Whether candidates of different categories
                            suppress each other.
    """

    acceptance_thresholds: Dict[str, float] = field(
        default_factory=lambda: {"face": 0.55, "person": 0.5, "plate": 0.0}
    )
    nms_threshold: float = 0.3
    nms_category_thresholds: Dict[str, float] = field(default_factory=dict)
    cross_category_nms: bool = True


@dataclass(frozen=True)
class PlateLocatorConfig:
    """Heuristic plate locator constants.

    These values are empirical and have not been validated against a labeled
    dataset.

    Attributes:
        min_aspect / max_aspect: Accepted width/height ratio band.
        min_edge_density / max_edge_density: Accepted fraction of edge pixels
            inside a window (exclusive bounds).
        min_row_density: Minimum edge fraction along the window's middle row.
        edge_threshold: Sobel magnitude above which a pixel counts as an edge.
        search_start: Fraction of the frame height where the search begins.
        vehicle_search_start: Fraction of a vehicle box height where the
            search begins when vehicle hints are supplied.
        max_area_fraction: Windows larger than this share of the image are skipped.
        min_width_px / min_width_fraction: Smallest window width is the larger of both.
        max_width_px / max_width_fraction: Largest window width is the smaller of both.
        min_height_px / min_height_fraction / max_height_px / max_height_fraction:
            Same for heights.
        min_stride_px / stride_divisor: Window stride is max(min_stride_px, width // divisor).
        overlap_iou: Candidates overlapping a better one above this IoU are dropped.
        max_candidates: Number of candidates returned.
    """

    min_aspect: float = 1.5
    max_aspect: float = 6.0
    min_edge_density: float = 0.15
    max_edge_density: float = 0.60
    min_row_density: float = 0.2
    edge_threshold: float = 30.0
    search_start: float = 0.5
    vehicle_search_start: float = 0.4
    max_area_fraction: float = 0.02
    min_width_px: int = 60
    min_width_fraction: float = 0.05
    max_width_px: int = 300
    max_width_fraction: float = 0.25
    min_height_px: int = 15
    min_height_fraction: float = 0.015
    max_height_px: int = 100
    max_height_fraction: float = 0.08
    min_stride_px: int = 10
    stride_divisor: int = 100
    overlap_iou: float = 0.3
    max_candidates: int = 10
    enabled: bool = True


@dataclass(frozen=True)
class RedactionConfig:
    """Which detections get redacted.

    Attributes:
        policies: 'all' or 'largest_only' per category.
        default_policy: Policy for categories missing from `policies`.
        person_fallback_only: Drop person detections when any face survives.
    """

    policies: Dict[str, str] = field(
        default_factory=lambda: {"face": "largest_only", "person": "all", "plate": "all"}
    )
    default_policy: str = "all"
    person_fallback_only: bool = True


@dataclass(frozen=True)
class BlurConfig:
    """Blur region expansion and strength.

    Attributes:
        close_face_area_pct: Faces above this share of the image (percent) are "close".
        medium_face_area_pct: Faces above this share are "medium".
        close_multipliers / medium_multipliers / distant_multipliers:
            (width, height) expansion per face tier.
        plate_multipliers: (width, height) expansion for plates.
        person_multipliers: (width, height) expansion for person regions.
        person_region: 'head' blurs the head band only, 'full' the whole box.
        head_fraction: Share of the person box height treated as the head.
        kernel_fraction: Gaussian kernel size relative to the region's short side.
        max_kernel: Largest Gaussian kernel applied; bigger regions are blurred
                    at reduced resolution instead.
        passes: Number of blur passes.
    """

    close_face_area_pct: float = 2.0
    medium_face_area_pct: float = 0.5
    close_multipliers: Tuple[float, float] = (2.5, 3.0)
    medium_multipliers: Tuple[float, float] = (2.0, 2.5)
    distant_multipliers: Tuple[float, float] = (1.5, 2.0)
    plate_multipliers: Tuple[float, float] = (1.2, 1.3)
    person_multipliers: Tuple[float, float] = (1.0, 1.0)
    person_region: str = "head"
    head_fraction: float = 0.18
    kernel_fraction: float = 0.5
    max_kernel: int = 99
    passes: int = 3


@dataclass(frozen=True)
class InputConfig:
    """Input source configuration.

    Attributes:
        source: Input source — image file path or directory of images.
        resize_width: Optional width to downscale input images before detection.
                      None means no resizing.
    """

    source: str = "images/"
    resize_width: Optional[int] = None


@dataclass(frozen=True)
class OutputConfig:
    """Output behavior configuration.

    Attributes:
        mode: Output mode(s). Supports multiple comma-separated values:
              'display', 'save_image', 'save_annotated', 'save_json', 'save_csv'.
              Example: "save_image,save_json"
        save_path: Directory where output artifacts are written.
    """

    mode: str = "save_image"
    save_path: str = "output/"


@dataclass(frozen=True)
class VisualizationConfig:
    """Visualization rendering parameters.

    Attributes:
        category_colors: BGR color tuple per category for debug boxes.
        thickness: Line thickness in pixels.
        show_confidence: Whether to render the confidence score label.
    """

    category_colors: Dict[str, Tuple[int, int, int]] = field(
        default_factory=lambda: {
            "face": (0, 255, 0),
            "person": (255, 128, 0),
            "plate": (0, 200, 255),
        }
    )
    thickness: int = 2
    show_confidence: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    model: ModelConfig = field(default_factory=ModelConfig)
    multiscale: MultiScaleConfig = field(default_factory=MultiScaleConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    plates: PlateLocatorConfig = field(default_factory=PlateLocatorConfig)
    redaction: RedactionConfig = field(default_factory=RedactionConfig)
    blur: BlurConfig = field(default_factory=BlurConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"cpu", "cuda"}
_VALID_OUTPUT_MODES = {"display", "save_image", "save_annotated", "save_json", "save_csv"}
_VALID_PERSON_REGIONS = {"head", "full"}


def _validate_unit(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be in [0.0, 1.0], got {value}.")


def _validate_categories(name: str, mapping: Dict[str, object]) -> None:
    unknown = set(mapping) - set(CATEGORIES)
    if unknown:
        raise ValueError(
            f"{name} has unknown categories: {sorted(unknown)}. "
            f"Valid categories: {list(CATEGORIES)}."
        )


def _validate_network(name: str, network: NetworkConfig) -> None:
    if network.input_size is not None:
        if len(network.input_size) != 2:
            raise ValueError(
                f"model.{name}.input_size must be a (width, height) tuple, "
                f"got {network.input_size}."
            )
        if any(d <= 0 for d in network.input_size):
            raise ValueError(
                f"model.{name}.input_size dimensions must be positive, "
                f"got {network.input_size}."
            )

    if network.scale_factor <= 0:
        raise ValueError(
            f"model.{name}.scale_factor must be positive, "
            f"got {network.scale_factor}."
        )

    if not network.class_ids:
        raise ValueError(f"model.{name}.class_ids must not be empty.")


def _validate_scales(name: str, scales: Tuple[float, ...]) -> None:
    if not scales:
        raise ValueError(f"multiscale.{name} must contain at least one factor.")
    if any(s <= 0 for s in scales):
        raise ValueError(f"multiscale.{name} factors must be positive, got {scales}.")
    if list(scales) != sorted(scales):
        raise ValueError(f"multiscale.{name} must be ascending, got {scales}.")


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    if config.model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{config.model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    _validate_network("face", config.model.face)
    _validate_network("person", config.model.person)
    _validate_unit("model.confidence_floor", config.model.confidence_floor)

    # Validate each mode in comma-separated list
    modes = set(m.strip() for m in config.output.mode.split(','))
    invalid_modes = modes - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}. "
            f"Use comma-separated values for multiple outputs."
        )

    ms = config.multiscale
    _validate_scales("face_scales", ms.face_scales)
    _validate_scales("person_scales", ms.person_scales)
    if ms.max_dimension <= 0:
        raise ValueError(
            f"multiscale.max_dimension must be positive, got {ms.max_dimension}."
        )
    if ms.confidence_boost < 0:
        raise ValueError(
            f"multiscale.confidence_boost must be non-negative, "
            f"got {ms.confidence_boost}."
        )
    _validate_unit("multiscale.confidence_cap", ms.confidence_cap)

    det = config.detection
    _validate_categories("detection.acceptance_thresholds", det.acceptance_thresholds)
    _validate_categories("detection.nms_category_thresholds", det.nms_category_thresholds)
    for category, value in det.acceptance_thresholds.items():
        _validate_unit(f"detection.acceptance_thresholds.{category}", value)
    for category, value in det.nms_category_thresholds.items():
        _validate_unit(f"detection.nms_category_thresholds.{category}", value)
    _validate_unit("detection.nms_threshold", det.nms_threshold)

    plates = config.plates
    if not (0 < plates.min_aspect < plates.max_aspect):
        raise ValueError(
            f"plates aspect band must satisfy 0 < min_aspect < max_aspect, "
            f"got [{plates.min_aspect}, {plates.max_aspect}]."
        )
    if not (0.0 <= plates.min_edge_density < plates.max_edge_density <= 1.0):
        raise ValueError(
            f"plates edge density band must satisfy 0 <= min < max <= 1, "
            f"got ({plates.min_edge_density}, {plates.max_edge_density})."
        )
    _validate_unit("plates.search_start", plates.search_start)
    _validate_unit("plates.vehicle_search_start", plates.vehicle_search_start)
    _validate_unit("plates.max_area_fraction", plates.max_area_fraction)
    _validate_unit("plates.overlap_iou", plates.overlap_iou)
    if plates.max_candidates <= 0:
        raise ValueError(
            f"plates.max_candidates must be positive, got {plates.max_candidates}."
        )
    if plates.min_stride_px <= 0 or plates.stride_divisor <= 0:
        raise ValueError("plates stride settings must be positive.")

    red = config.redaction
    _validate_categories("redaction.policies", red.policies)
    for category, policy in list(red.policies.items()) + [("default", red.default_policy)]:
        if policy not in POLICIES:
            raise ValueError(
                f"Invalid redaction policy for {category}: '{policy}'. "
                f"Must be one of {POLICIES}."
            )

    blur = config.blur
    if blur.person_region not in _VALID_PERSON_REGIONS:
        raise ValueError(
            f"Invalid blur.person_region: '{blur.person_region}'. "
            f"Must be one of {_VALID_PERSON_REGIONS}."
        )
    if blur.medium_face_area_pct > blur.close_face_area_pct:
        raise ValueError(
            "blur.medium_face_area_pct must not exceed blur.close_face_area_pct."
        )
    for name in ("close_multipliers", "medium_multipliers", "distant_multipliers",
                 "plate_multipliers", "person_multipliers"):
        if any(m <= 0 for m in getattr(blur, name)):
            raise ValueError(f"blur.{name} must be positive, got {getattr(blur, name)}.")
    _validate_unit("blur.head_fraction", blur.head_fraction)
    if blur.passes <= 0:
        raise ValueError(f"blur.passes must be positive, got {blur.passes}.")
    if not 0 < blur.kernel_fraction <= 1:
        raise ValueError(
            f"blur.kernel_fraction must be in (0, 1], got {blur.kernel_fraction}."
        )
    if blur.max_kernel < 3:
        raise ValueError(f"blur.max_kernel must be at least 3, got {blur.max_kernel}.")

    if config.input.resize_width is not None and config.input.resize_width <= 0:
        raise ValueError(
            f"input.resize_width must be positive or None, "
            f"got {config.input.resize_width}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: Optional[int], cast_type=float):
    """Convert a list from YAML into a tuple of the expected type and length."""
    if isinstance(value, (list, tuple)):
        if expected_len is not None and len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    if isinstance(value, str):
        return tuple(cast_type(v.strip()) for v in value.split(",") if v.strip())
    return value


def _parse_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _build_network_config(raw: dict, default: NetworkConfig) -> NetworkConfig:
    """Build NetworkConfig from a raw YAML dict on top of a default."""
    kwargs = {
        "prototxt_path": default.prototxt_path,
        "weights_path": default.weights_path,
        "input_size": default.input_size,
        "mean_values": default.mean_values,
        "scale_factor": default.scale_factor,
        "class_ids": default.class_ids,
    }
    if "prototxt_path" in raw:
        kwargs["prototxt_path"] = str(raw["prototxt_path"])
    if "weights_path" in raw:
        kwargs["weights_path"] = str(raw["weights_path"])
    if "input_size" in raw:
        val = raw["input_size"]
        kwargs["input_size"] = _parse_tuple(val, 2, int) if val is not None else None
    if "mean_values" in raw:
        kwargs["mean_values"] = _parse_tuple(raw["mean_values"], 3, float)
    if "scale_factor" in raw:
        kwargs["scale_factor"] = float(raw["scale_factor"])
    if "class_ids" in raw:
        kwargs["class_ids"] = _parse_tuple(raw["class_ids"], None, int)
    return NetworkConfig(**kwargs)


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "backend" in raw:
        kwargs["backend"] = str(raw["backend"]).lower()
    if "face" in raw:
        kwargs["face"] = _build_network_config(raw["face"] or {}, _default_face_network())
    if "person" in raw:
        kwargs["person"] = _build_network_config(raw["person"] or {}, _default_person_network())
    if "vehicle_class_ids" in raw:
        kwargs["vehicle_class_ids"] = _parse_tuple(raw["vehicle_class_ids"], None, int)
    if "confidence_floor" in raw:
        kwargs["confidence_floor"] = float(raw["confidence_floor"])
    if "enable_person" in raw:
        kwargs["enable_person"] = _parse_bool(raw["enable_person"])
    if "enable_vehicle_hints" in raw:
        kwargs["enable_vehicle_hints"] = _parse_bool(raw["enable_vehicle_hints"])
    return ModelConfig(**kwargs)


def _build_multiscale_config(raw: dict) -> MultiScaleConfig:
    """Build MultiScaleConfig from a raw YAML dict."""
    kwargs = {}
    if "face_scales" in raw:
        kwargs["face_scales"] = _parse_tuple(raw["face_scales"], None, float)
    if "person_scales" in raw:
        kwargs["person_scales"] = _parse_tuple(raw["person_scales"], None, float)
    if "max_dimension" in raw:
        kwargs["max_dimension"] = int(raw["max_dimension"])
    if "confidence_boost" in raw:
        kwargs["confidence_boost"] = float(raw["confidence_boost"])
    if "confidence_cap" in raw:
        kwargs["confidence_cap"] = float(raw["confidence_cap"])
    return MultiScaleConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    if "acceptance_thresholds" in raw:
        thresholds = dict(DetectionConfig().acceptance_thresholds)
        thresholds.update({str(k): float(v) for k, v in (raw["acceptance_thresholds"] or {}).items()})
        kwargs["acceptance_thresholds"] = thresholds
    if "nms_threshold" in raw:
        kwargs["nms_threshold"] = float(raw["nms_threshold"])
    if "nms_category_thresholds" in raw:
        kwargs["nms_category_thresholds"] = {
            str(k): float(v) for k, v in (raw["nms_category_thresholds"] or {}).items()
        }
    if "cross_category_nms" in raw:
        kwargs["cross_category_nms"] = _parse_bool(raw["cross_category_nms"])
    return DetectionConfig(**kwargs)


def _build_plate_config(raw: dict) -> PlateLocatorConfig:
    """Build PlateLocatorConfig from a raw YAML dict.

    Every field is a scalar, so values are cast to the type of the default.
    """
    defaults = PlateLocatorConfig()
    kwargs = {}
    for key, value in raw.items():
        if not hasattr(defaults, key):
            raise ValueError(f"Unknown plates setting: '{key}'.")
        default = getattr(defaults, key)
        if isinstance(default, bool):
            kwargs[key] = _parse_bool(value)
        else:
            kwargs[key] = type(default)(value)
    return PlateLocatorConfig(**kwargs)


def _build_redaction_config(raw: dict) -> RedactionConfig:
    """Build RedactionConfig from a raw YAML dict."""
    kwargs = {}
    if "policies" in raw:
        policies = dict(RedactionConfig().policies)
        policies.update({str(k): str(v).lower() for k, v in (raw["policies"] or {}).items()})
        kwargs["policies"] = policies
    if "default_policy" in raw:
        kwargs["default_policy"] = str(raw["default_policy"]).lower()
    if "person_fallback_only" in raw:
        kwargs["person_fallback_only"] = _parse_bool(raw["person_fallback_only"])
    return RedactionConfig(**kwargs)


def _build_blur_config(raw: dict) -> BlurConfig:
    """Build BlurConfig from a raw YAML dict."""
    kwargs = {}
    for key in ("close_face_area_pct", "medium_face_area_pct", "head_fraction", "kernel_fraction"):
        if key in raw:
            kwargs[key] = float(raw[key])
    for key in ("close_multipliers", "medium_multipliers", "distant_multipliers",
                "plate_multipliers", "person_multipliers"):
        if key in raw:
            kwargs[key] = _parse_tuple(raw[key], 2, float)
    if "person_region" in raw:
        kwargs["person_region"] = str(raw["person_region"]).lower()
    if "passes" in raw:
        kwargs["passes"] = int(raw["passes"])
    if "max_kernel" in raw:
        kwargs["max_kernel"] = int(raw["max_kernel"])
    return BlurConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    """Build InputConfig from a raw YAML dict."""
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    if "resize_width" in raw:
        val = raw["resize_width"]
        kwargs["resize_width"] = int(val) if val is not None else None
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    """Build OutputConfig from a raw YAML dict."""
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    """Build VisualizationConfig from a raw YAML dict."""
    kwargs = {}
    if "category_colors" in raw:
        colors = dict(VisualizationConfig().category_colors)
        colors.update({
            str(k): _parse_tuple(v, 3, int) for k, v in (raw["category_colors"] or {}).items()
        })
        kwargs["category_colors"] = colors
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_confidence" in raw:
        kwargs["show_confidence"] = _parse_bool(raw["show_confidence"])
    return VisualizationConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "PRIVACY_REDACT_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        PRIVACY_REDACT_MODEL_BACKEND=cuda
        PRIVACY_REDACT_DETECTION_NMS_THRESHOLD=0.4
        PRIVACY_REDACT_REDACTION_POLICY_FACE=all

    Only the keys listed below are recognized.
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}MODEL_CONFIDENCE_FLOOR": ("model", "confidence_floor"),
        f"{_ENV_PREFIX}MODEL_ENABLE_PERSON": ("model", "enable_person"),
        f"{_ENV_PREFIX}MULTISCALE_FACE_SCALES": ("multiscale", "face_scales"),
        f"{_ENV_PREFIX}MULTISCALE_MAX_DIMENSION": ("multiscale", "max_dimension"),
        f"{_ENV_PREFIX}DETECTION_NMS_THRESHOLD": ("detection", "nms_threshold"),
        f"{_ENV_PREFIX}PLATES_ENABLED": ("plates", "enabled"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}INPUT_RESIZE_WIDTH": ("input", "resize_width"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    # Per-category maps
    for category in CATEGORIES:
        threshold = os.environ.get(f"{_ENV_PREFIX}DETECTION_ACCEPT_{category.upper()}")
        if threshold is not None:
            section = raw.setdefault("detection", {})
            section.setdefault("acceptance_thresholds", {})[category] = threshold
            logger.debug("Config override from env: acceptance %s=%s", category, threshold)

        policy = os.environ.get(f"{_ENV_PREFIX}REDACTION_POLICY_{category.upper()}")
        if policy is not None:
            section = raw.setdefault("redaction", {})
            section.setdefault("policies", {})[category] = policy
            logger.debug("Config override from env: policy %s=%s", category, policy)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate application configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the system runs entirely on defaults (safe for
                     programmatic usage).

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model", {})),
        multiscale=_build_multiscale_config(raw.get("multiscale", {})),
        detection=_build_detection_config(raw.get("detection", {})),
        plates=_build_plate_config(raw.get("plates", {})),
        redaction=_build_redaction_config(raw.get("redaction", {})),
        blur=_build_blur_config(raw.get("blur", {})),
        input=_build_input_config(raw.get("input", {})),
        output=_build_output_config(raw.get("output", {})),
        visualization=_build_visualization_config(raw.get("visualization", {})),
    )

    # --- Validate ---
    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
