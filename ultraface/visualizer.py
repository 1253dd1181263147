"""
Visualization of detected faces.

Responsibility:
    Draw face boxes and optional score labels onto a copy of a frame.
    Pure rendering; performs no I/O.
"""

from typing import Sequence

import cv2
import numpy as np

from ultraface.config import VisualizationConfig
from ultraface.detection import FaceBox

_FONT = cv2.FONT_HERSHEY_SIMPLEX
_FONT_SCALE = 0.5
_FONT_THICKNESS = 1
_LABEL_PADDING = 4


def draw_faces(
    frame: np.ndarray,
    faces: Sequence[FaceBox],
    config: VisualizationConfig,
) -> np.ndarray:
    """Return a copy of frame with the faces drawn on it.

    Coordinates are truncated to integer pixels, as in FaceBox.to_dict().
    """
    annotated = frame.copy()

    for face in faces:
        box = face.to_dict()
        x1, y1 = box["x"], box["y"]
        x2, y2 = x1 + box["width"], y1 + box["height"]

        cv2.rectangle(annotated, (x1, y1), (x2, y2), color=config.box_color, thickness=config.thickness)

        if not config.show_score:
            continue

        label = f"{face.score:.2f}"
        (text_w, text_h), _ = cv2.getTextSize(label, _FONT, _FONT_SCALE, _FONT_THICKNESS)

        # Above the box, or inside its bottom edge when too close to the top
        label_y = y1 - _LABEL_PADDING
        if label_y - text_h - _LABEL_PADDING < 0:
            label_y = y2 - _LABEL_PADDING

        cv2.rectangle(
            annotated,
            (x1, label_y - text_h - _LABEL_PADDING),
            (x1 + text_w + _LABEL_PADDING, label_y + _LABEL_PADDING),
            color=config.box_color,
            thickness=cv2.FILLED,
        )
        cv2.putText(
            annotated,
            label,
            (x1 + _LABEL_PADDING // 2, label_y),
            _FONT,
            _FONT_SCALE,
            (0, 0, 0),
            _FONT_THICKNESS,
            cv2.LINE_AA,
        )

    return annotated
