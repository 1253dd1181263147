"""
Greedy non-maximum suppression.

Responsibility:
    Collapse overlapping candidate boxes to the highest-scoring one.

Rules:
    - Candidates are visited by descending score; equal scores keep
      their input order, so the earlier anchor wins.
    - A candidate is discarded only when its IoU with an accepted box
      is strictly greater than the threshold.
    - IoU of two boxes whose union area is zero is 0.
"""

from typing import List, Sequence

from ultraface.detection import FaceBox


def iou(a: FaceBox, b: FaceBox) -> float:
    """Intersection over union of two boxes, 0.0 for an empty union."""
    inter_w = max(0.0, min(a.x2, b.x2) - max(a.x, b.x))
    inter_h = max(0.0, min(a.y2, b.y2) - max(a.y, b.y))
    inter = inter_w * inter_h

    union = a.area + b.area - inter
    if union <= 0.0:
        return 0.0
    return inter / union


def suppress(candidates: Sequence[FaceBox], iou_threshold: float) -> List[FaceBox]:
    """Run greedy NMS over candidate boxes.

    Args:
        candidates: Boxes in anchor order, as produced by decode().
        iou_threshold: Overlap above which the lower-scoring box is dropped.

    Returns:
        Surviving boxes, ordered by descending score.
    """
    # sorted() is stable: ties stay in input order
    remaining = sorted(candidates, key=lambda box: box.score, reverse=True)
    kept: List[FaceBox] = []

    while remaining:
        best = remaining[0]
        kept.append(best)
        remaining = [box for box in remaining[1:] if iou(best, box) <= iou_threshold]

    return kept
