"""
Decoding of raw UltraFace outputs into candidate face boxes.

Responsibility:
    Pair each anchor with its slot in the flat score and box tensors,
    drop anchors whose face score does not exceed the threshold, apply
    the variance regression, convert to pixel rectangles of the original
    image and square them inside the frame.

Non-goals:
    - No duplicate suppression (see nms).
    - No integer rounding; FaceBox.to_dict() truncates at the boundary.

Hard-coded:
    - Score layout: 2 floats per anchor (background, face).
    - Box layout: 4 floats per anchor (dx, dy, dw, dh).
"""

from typing import List, Sequence, Union

import numpy as np

from ultraface.anchors import Anchor, anchors_to_array
from ultraface.config import DetectionConfig
from ultraface.detection import FaceBox
from ultraface.errors import TensorLengthMismatchError

_ZERO = np.float32(0.0)
_HALF = np.float32(0.5)
_ONE = np.float32(1.0)


def _clip(values: np.ndarray, low, high) -> np.ndarray:
    """Clamp into [low, high]; the lower bound wins if high < low."""
    return np.maximum(np.minimum(values, high), low)


def flatten_outputs(
    scores: np.ndarray,
    boxes: np.ndarray,
    num_anchors: int,
) -> tuple:
    """Flatten raw tensors to float32 and check them against the anchor count.

    Raises:
        TensorLengthMismatchError: If either tensor has the wrong length.
    """
    score_flat = np.asarray(scores, dtype=np.float32).reshape(-1)
    box_flat = np.asarray(boxes, dtype=np.float32).reshape(-1)

    if score_flat.size != 2 * num_anchors:
        raise TensorLengthMismatchError(
            f"Score tensor has {score_flat.size} values, expected "
            f"{2 * num_anchors} (2 per anchor for {num_anchors} anchors)."
        )
    if box_flat.size != 4 * num_anchors:
        raise TensorLengthMismatchError(
            f"Box tensor has {box_flat.size} values, expected "
            f"{4 * num_anchors} (4 per anchor for {num_anchors} anchors)."
        )
    return score_flat, box_flat


def decode(
    anchors: Union[Sequence[Anchor], np.ndarray],
    scores: np.ndarray,
    boxes: np.ndarray,
    image_width: int,
    image_height: int,
    config: DetectionConfig,
) -> List[FaceBox]:
    """Decode raw network outputs into square candidate boxes.

    Args:
        anchors: Anchor records, or an (N, 4) array of (cx, cy, w, h).
        scores: Score tensor of any shape holding 2*N floats.
        boxes: Box regression tensor of any shape holding 4*N floats.
        image_width: Width of the original image in pixels.
        image_height: Height of the original image in pixels.
        config: Score threshold and regression variances.

    Returns:
        Candidate FaceBox objects in ascending anchor order (not sorted
        by score). Empty if no anchor passes the threshold.

    Raises:
        TensorLengthMismatchError: If a tensor length disagrees with
                                   the number of anchors.
    """
    if isinstance(anchors, np.ndarray):
        priors = anchors.astype(np.float32, copy=False).reshape(-1, 4)
    else:
        priors = anchors_to_array(anchors)

    score_flat, box_flat = flatten_outputs(scores, boxes, priors.shape[0])

    face_scores = score_flat[1::2]
    keep = np.flatnonzero(face_scores > np.float32(config.score_threshold))
    if keep.size == 0:
        return []

    p = priors[keep]
    d = box_flat.reshape(-1, 4)[keep]
    center_variance = np.float32(config.center_variance)
    size_variance = np.float32(config.size_variance)

    # Normalized center and size
    cx = d[:, 0] * center_variance * p[:, 2] + p[:, 0]
    cy = d[:, 1] * center_variance * p[:, 3] + p[:, 1]
    w = np.exp(d[:, 2] * size_variance) * p[:, 2]
    h = np.exp(d[:, 3] * size_variance) * p[:, 3]

    # Pixel rectangle of the original image
    img_w = np.float32(image_width)
    img_h = np.float32(image_height)
    x = _clip(cx - w / 2, _ZERO, _ONE) * img_w
    y = _clip(cy - h / 2, _ZERO, _ONE) * img_h
    w = _clip(w, _ZERO, _ONE) * img_w
    h = _clip(h, _ZERO, _ONE) * img_h

    # Square around the same center, capped so it always fits the frame
    side = np.minimum(np.maximum(w, h), np.minimum(img_w, img_h))
    x = _clip(x + _HALF * w - _HALF * side, _ZERO, img_w - side)
    y = _clip(y + _HALF * h - _HALF * side, _ZERO, img_h - side)

    face_scores = _clip(face_scores[keep], _ZERO, _ONE)

    return [
        FaceBox(x=bx, y=by, width=s, height=s, score=sc)
        for bx, by, s, sc in zip(
            x.tolist(), y.tolist(), side.tolist(), face_scores.tolist()
        )
    ]
