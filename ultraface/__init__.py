"""
UltraFace: face detection post-processing for the RFB-320 model family.

Public API:
    - FaceDetector: lifecycle wrapper (init, detect).
    - FaceBox: a detected face in pixel coordinates.
    - generate_anchors, decode, suppress: the post-processing stages.
    - FileModelSource, BundledModelSource: model locations for init().
    - FaceDetectionError and its subclasses.

Usage:
    from ultraface import FaceDetector

    detector = FaceDetector()
    detector.init("models/version-RFB-320.onnx")
    faces = detector.detect(frame)
"""

from ultraface.anchors import Anchor, generate_anchors
from ultraface.decoder import decode
from ultraface.detection import FaceBox
from ultraface.detector import DetectorState, FaceDetector
from ultraface.errors import (
    EmptyImageError,
    FaceDetectionError,
    ModelLoadError,
    NotInitializedError,
    OutputTensorMissingError,
    SessionCreateError,
    TensorLengthMismatchError,
)
from ultraface.model_source import BundledModelSource, FileModelSource, ModelSourceProvider
from ultraface.nms import iou, suppress

__all__ = [
    "Anchor",
    "BundledModelSource",
    "DetectorState",
    "EmptyImageError",
    "FaceBox",
    "FaceDetectionError",
    "FaceDetector",
    "FileModelSource",
    "ModelLoadError",
    "ModelSourceProvider",
    "NotInitializedError",
    "OutputTensorMissingError",
    "SessionCreateError",
    "TensorLengthMismatchError",
    "decode",
    "generate_anchors",
    "iou",
    "suppress",
]
