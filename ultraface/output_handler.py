"""
Output routing for the command-line tool.

Responsibility:
    Send per-image detection results to the configured sinks. Several
    modes can be active at once:
        - 'print': one JSON line per image on stdout.
        - 'save_image': annotated copy of each image.
        - 'save_json' / 'save_csv': aggregated files written on finalize.
"""

import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, TextIO

import cv2
import numpy as np

from ultraface.config import AppConfig, get_project_root, parse_output_modes
from ultraface.detection import FaceBox
from ultraface.serializer import image_to_json, save_csv, save_json
from ultraface.visualizer import draw_faces

logger = logging.getLogger(__name__)

_FILE_MODES = {"save_image", "save_json", "save_csv"}


class OutputHandler:
    """Routes detection results to the configured output sinks.

    Usage:
        handler = OutputHandler(config)
        handler.process_image(image_path, frame, faces)
        ...
        handler.finalize()
    """

    def __init__(self, config: AppConfig, stream: Optional[TextIO] = None) -> None:
        self._config = config
        self._stream = stream if stream is not None else sys.stdout
        self._modes = parse_output_modes(config.output.mode)
        self._results: Dict[str, List[FaceBox]] = {}

        save_path = Path(config.output.save_path)
        if not save_path.is_absolute():
            save_path = get_project_root() / save_path
        self._save_path = save_path

        if self._modes & _FILE_MODES:
            self._save_path.mkdir(parents=True, exist_ok=True)

        logger.info("OutputHandler initialized: modes=%s, save_path=%s", sorted(self._modes), self._save_path)

    def process_image(self, image_path: str, frame: np.ndarray, faces: List[FaceBox]) -> None:
        """Route one image's results to every active sink."""
        if "print" in self._modes:
            print(image_to_json(image_path, faces), file=self._stream)

        if "save_image" in self._modes:
            annotated = draw_faces(frame, faces, self._config.visualization)
            output_file = self._save_path / f"{Path(image_path).stem}_faces.jpg"
            if not cv2.imwrite(str(output_file), annotated):
                logger.warning("Failed to write annotated image: %s", output_file)
            else:
                logger.debug("Saved annotated image: %s", output_file)

        if self._modes & {"save_json", "save_csv"}:
            self._results[image_path] = faces

    def finalize(self) -> None:
        """Write aggregated outputs. Call once after the last image."""
        if "save_json" in self._modes and self._results:
            save_json(self._results, str(self._save_path / "detections.json"))

        if "save_csv" in self._modes and self._results:
            save_csv(self._results, str(self._save_path / "detections.csv"))

        self._results.clear()
        logger.info("OutputHandler finalized.")
