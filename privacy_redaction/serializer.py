"""
Serialization for the privacy redaction pipeline.

Responsibility:
    Export redaction summaries (counts, detections, warnings) to JSON and
    CSV for auditing a batch run. Pixel data is never serialized.

Non-goals:
    - No rendering, display, or detection logic.
    - No streaming output — writes complete files on finalize.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Mapping

from privacy_redaction.detection import DetectionCounts

logger = logging.getLogger(__name__)

CSV_FIELDS = [
    "image", "category", "x", "y", "width", "height",
    "confidence", "source_scale", "source_detector",
]


def save_json(
    summaries: Mapping[str, dict],
    output_path: str,
) -> None:
    """Export every image's redaction summary to a JSON file.

    Args:
        summaries: RedactionResult.to_dict() output keyed by image name.
        output_path: Destination file.

    Output schema:
        {
            "images": [
                {
                    "image": "IMG_0001.jpg",
                    "counts": {"facesDetected": 1, ..., "totalBlurred": 2},
                    "detections": [{"x": ..., "category": "face", ...}],
                    "regions": [...],
                    "warnings": [],
                    "elapsed_ms": 412.3
                }
            ],
            "total_images": N,
            "totals": {"facesDetected": ..., "totalBlurred": ...}
        }

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    images = []
    faces = people = plates = 0
    for name in sorted(summaries):
        summary = summaries[name]
        counts = summary["counts"]
        faces += counts["facesDetected"]
        people += counts["peopleDetected"]
        plates += counts["platesDetected"]
        images.append({"image": name, **summary})

    totals = DetectionCounts(faces_detected=faces, people_detected=people, plates_detected=plates)
    payload = {
        "images": images,
        "total_images": len(images),
        "totals": totals.to_dict(),
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info(
        "JSON output saved: %s (%d images, %d regions blurred)",
        output_path, len(images), totals.total,
    )


def save_csv(
    summaries: Mapping[str, dict],
    output_path: str,
) -> None:
    """Export one row per redacted detection to a CSV file.

    Columns: image, category, x, y, width, height, confidence,
    source_scale, source_detector

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()

        total = 0
        for name in sorted(summaries):
            for det in summaries[name]["detections"]:
                writer.writerow({"image": name, **det})
                total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    """Create parent directories if they don't exist."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
