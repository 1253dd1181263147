"""
FaceBox data transfer object.

This module defines FaceBox, the single output type returned by
FaceDetector.detect(). Values are kept as floats in pixel space; the
conversion to integer pixels happens only at the output boundary
(to_dict), by truncation toward zero.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No coordinate transformation (that belongs in the decoder).
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FaceBox:
    """A single detected face as an axis-aligned box plus score.

    Attributes:
        x: Left edge in pixels of the original image.
        y: Top edge in pixels of the original image.
        width: Box width in pixels.
        height: Box height in pixels.
        score: Face confidence in [0.0, 1.0].
    """

    x: float
    y: float
    width: float
    height: float
    score: float

    def to_dict(self) -> dict:
        """Return a plain dict with integer pixel coordinates."""
        return {
            "x": int(self.x),
            "y": int(self.y),
            "width": int(self.width),
            "height": int(self.height),
            "score": float(self.score),
        }

    @property
    def x2(self) -> float:
        """Right edge in pixels."""
        return self.x + self.width

    @property
    def y2(self) -> float:
        """Bottom edge in pixels."""
        return self.y + self.height

    @property
    def area(self) -> float:
        """Box area in square pixels."""
        return self.width * self.height
