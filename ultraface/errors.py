"""
Error types for the face detection pipeline.

Every failure the library reports is a FaceDetectionError subclass. Each
class also derives from the builtin exception the failure most resembles,
so callers may catch either the library type or the builtin.

Recoverability:
    - init failures (ModelLoadError, SessionCreateError) leave the detector
      uninitialized; calling init again is always allowed.
    - detect failures never change detector state.
"""


class FaceDetectionError(Exception):
    """Base class for all face detection errors."""

    code = "FaceDetectionError"


class ModelLoadError(FaceDetectionError, RuntimeError):
    """The model file could not be located or parsed."""

    code = "ModelLoadFailure"


class SessionCreateError(FaceDetectionError, RuntimeError):
    """The inference session could not be configured for the model input."""

    code = "SessionCreationFailed"


class NotInitializedError(FaceDetectionError, RuntimeError):
    """detect() was called before a successful init()."""

    code = "NotInitialized"


class EmptyImageError(FaceDetectionError, ValueError):
    """The input image is missing or has zero size."""

    code = "EmptyImage"


class OutputTensorMissingError(FaceDetectionError, RuntimeError):
    """The inference outputs do not provide both score and box tensors."""

    code = "OutputTensorMissing"


class TensorLengthMismatchError(FaceDetectionError, ValueError):
    """An output tensor length disagrees with the anchor count."""

    code = "TensorLengthMismatch"
