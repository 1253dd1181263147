"""
Anchor generation for the UltraFace detection head.

Responsibility:
    Produce the ordered list of prior boxes the network regresses
    against. The order is a binding contract with the model output:
    anchor i pairs with slot i of the flat score and box tensors.

Ordering:
    stride-major, then grid rows (y outer, x inner), then the stride's
    min-box sizes in the given order.

All arithmetic is float32 so the anchors match the values the model
was exported with bit for bit.
"""

import logging
import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Anchor:
    """A prior box, normalized to [0, 1] of the model input size."""

    cx: float
    cy: float
    w: float
    h: float


def _clip_unit(values: np.ndarray) -> np.ndarray:
    return np.clip(values, np.float32(0.0), np.float32(1.0))


def _grid_size(extent: int, stride: float) -> int:
    return int(math.ceil(np.float32(extent) / np.float32(stride)))


def generate_anchors(
    width: int,
    height: int,
    min_boxes: Sequence[Sequence[float]],
    strides: Sequence[float],
) -> Tuple[Anchor, ...]:
    """Generate the anchor list for a model input of width x height.

    Args:
        width: Model input width in pixels.
        height: Model input height in pixels.
        min_boxes: One sequence of box sizes (pixels) per stride.
        strides: Grid spacing in pixels, one per detection scale.

    Returns:
        An immutable, ordered tuple of Anchor records.

    Raises:
        ValueError: If min_boxes and strides differ in length, or a
                    dimension or stride is not positive.
    """
    if len(min_boxes) != len(strides):
        raise ValueError(
            f"min_boxes must have one entry per stride: "
            f"got {len(min_boxes)} entries for {len(strides)} strides."
        )
    if width <= 0 or height <= 0:
        raise ValueError(f"Input size must be positive, got {width}x{height}.")
    if any(s <= 0 for s in strides):
        raise ValueError(f"Strides must be positive, got {tuple(strides)}.")

    w = np.float32(width)
    h = np.float32(height)
    half = np.float32(0.5)
    anchors = []

    for stride, sizes in zip(strides, min_boxes):
        stride32 = np.float32(stride)
        num_x = _grid_size(width, stride)
        num_y = _grid_size(height, stride)

        centers_x = _clip_unit((np.arange(num_x, dtype=np.float32) + half) * stride32 / w)
        centers_y = _clip_unit((np.arange(num_y, dtype=np.float32) + half) * stride32 / h)
        sizes32 = np.asarray(sizes, dtype=np.float32)
        box_w = _clip_unit(sizes32 / w)
        box_h = _clip_unit(sizes32 / h)

        for cy in centers_y.tolist():
            for cx in centers_x.tolist():
                for bw, bh in zip(box_w.tolist(), box_h.tolist()):
                    anchors.append(Anchor(cx=cx, cy=cy, w=bw, h=bh))

    logger.debug("Generated %d anchors for %dx%d input", len(anchors), width, height)
    return tuple(anchors)


def anchors_to_array(anchors: Sequence[Anchor]) -> np.ndarray:
    """Stack anchors into an (N, 4) float32 array of (cx, cy, w, h)."""
    if not anchors:
        return np.zeros((0, 4), dtype=np.float32)
    return np.array(
        [(a.cx, a.cy, a.w, a.h) for a in anchors],
        dtype=np.float32,
    )
