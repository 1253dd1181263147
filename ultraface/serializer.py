"""
Serialization of detection results for the command-line tool.

Responsibility:
    Render FaceBox lists as JSON (one line per image, or a single
    aggregated file) and CSV.

Non-goals:
    - No detection, rendering or display logic.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Sequence

from ultraface.detection import FaceBox

logger = logging.getLogger(__name__)


def image_record(image_path: str, faces: Sequence[FaceBox]) -> dict:
    """Build the {"image": ..., "faces": [...]} record for one image."""
    return {"image": image_path, "faces": [face.to_dict() for face in faces]}


def image_to_json(image_path: str, faces: Sequence[FaceBox]) -> str:
    """Serialize one image's results as a single-line JSON object."""
    return json.dumps(image_record(image_path, faces))


def save_json(faces_by_image: Dict[str, List[FaceBox]], output_path: str) -> None:
    """Export all results to a JSON file.

    Output schema:
        {
            "images": [
                {"image": "a.jpg", "faces": [{"x": .., "y": .., "width": .., "height": .., "score": ..}]}
            ],
            "total_images": N,
            "total_faces": M
        }

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    images = [image_record(image, faces) for image, faces in faces_by_image.items()]
    total_faces = sum(len(faces) for faces in faces_by_image.values())

    payload = {
        "images": images,
        "total_images": len(images),
        "total_faces": total_faces,
    }

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    logger.info("JSON output saved: %s (%d images, %d faces)", output_path, len(images), total_faces)


def save_csv(faces_by_image: Dict[str, List[FaceBox]], output_path: str) -> None:
    """Export all results to a CSV file.

    Columns: image, x, y, width, height, score

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    fieldnames = ["image", "x", "y", "width", "height", "score"]
    total = 0

    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for image, faces in faces_by_image.items():
            for face in faces:
                writer.writerow({"image": image, **face.to_dict()})
                total += 1

    logger.info("CSV output saved: %s (%d rows)", output_path, total)


def _ensure_parent_dir(path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
