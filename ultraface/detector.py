"""
FaceDetector: the public API for UltraFace face detection.

Lifecycle:
    UNINITIALIZED --init()--> READY

    A detector starts UNINITIALIZED. init() loads the model through the
    inference backend, configures a session for the fixed model input,
    builds the anchor list once and moves to READY. A failed init()
    leaves the state unchanged, so init() can simply be retried.

Public contract:
    FaceDetector.init(model_source) -> None
    FaceDetector.detect(frame: np.ndarray) -> list[FaceBox]

Constraints:
    - Input must be a BGR numpy array (as returned by OpenCV).
    - One detector owns one inference session. Concurrent detect() calls
      on the same instance must be serialized by the caller; separate
      instances may run in parallel.
    - A failed detect() never changes detector state.
"""

import enum
import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

from ultraface.anchors import Anchor, anchors_to_array, generate_anchors
from ultraface.config import AppConfig, load_config
from ultraface.decoder import decode, flatten_outputs
from ultraface.detection import FaceBox
from ultraface.errors import EmptyImageError, ModelLoadError, NotInitializedError
from ultraface.model_loader import InferenceBackend, OpenCVBackend, resolve_output_tensors
from ultraface.model_source import ModelSourceProvider, as_model_source
from ultraface.nms import suppress
from ultraface.preprocessor import preprocess

logger = logging.getLogger(__name__)


class DetectorState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class FaceDetector:
    """UltraFace detector: inference plus anchor decoding and NMS.

    Usage:
        detector = FaceDetector()                    # RFB-320 defaults
        detector.init("models/version-RFB-320.onnx")
        faces = detector.detect(frame)               # BGR numpy array

    Construction is cheap and never touches the filesystem; all model
    work happens in init().
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        backend: Optional[InferenceBackend] = None,
    ) -> None:
        """Create an uninitialized detector.

        Args:
            config: Configuration. If None, defaults (plus any
                    ULTRAFACE_* environment overrides) are used.
            backend: Inference backend. If None, an OpenCVBackend for
                     config.model.backend is created.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._backend = backend if backend is not None else OpenCVBackend(config.model.backend)
        self._session = None
        self._anchors: Tuple[Anchor, ...] = ()
        self._priors = np.zeros((0, 4), dtype=np.float32)
        self._state = DetectorState.UNINITIALIZED

    def init(self, model_source: Union[str, Path, ModelSourceProvider]) -> None:
        """Load the model and prepare the detector for detect().

        Args:
            model_source: Model file path or a ModelSourceProvider.

        Raises:
            ModelLoadError: If the model cannot be located or loaded.
            SessionCreateError: If the inference session cannot be created.
        """
        source = as_model_source(model_source)
        model = self._config.model
        logger.info("Initializing FaceDetector from %r", source)

        try:
            path = source.model_path()
        except OSError as e:
            raise ModelLoadError(f"Model source {source!r} is unavailable: {e}") from e

        session = self._backend.load_model(path)
        width, height = model.input_size
        self._backend.configure_session(session, (1, 3, height, width), model.num_threads)

        if not self._anchors:
            self._anchors = generate_anchors(width, height, model.min_boxes, model.strides)
            self._priors = anchors_to_array(self._anchors)
            logger.info("Generated %d anchors", len(self._anchors))

        self._session = session
        self._state = DetectorState.READY
        logger.info(
            "FaceDetector initialized (input=%dx%d, score_threshold=%.2f, iou_threshold=%.2f)",
            width,
            height,
            self._config.detection.score_threshold,
            self._config.detection.iou_threshold,
        )

    def detect(self, frame: np.ndarray) -> List[FaceBox]:
        """Detect faces in a single BGR frame.

        Args:
            frame: A BGR image with shape (H, W, 3), as returned by
                   cv2.imread() or VideoCapture.read().

        Returns:
            FaceBox objects in pixel coordinates of the frame, sorted by
            score (descending). Empty if no face is found.

        Raises:
            NotInitializedError: If init() has not succeeded.
            EmptyImageError: If frame is None or has zero size.
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame is not a 3-channel image.
            OutputTensorMissingError: If score/box outputs cannot be found.
            TensorLengthMismatchError: If outputs disagree with the anchors.
        """
        if self._state is not DetectorState.READY:
            raise NotInitializedError("FaceDetector.detect() called before a successful init().")

        self._validate_frame(frame)

        blob = preprocess(frame, self._config.model)
        outputs = self._backend.run(self._session, blob)
        logger.debug("Inference outputs: %s", {k: np.shape(v) for k, v in outputs.items()})

        raw_scores, raw_boxes = resolve_output_tensors(outputs)
        scores, boxes = flatten_outputs(raw_scores, raw_boxes, len(self._anchors))

        h, w = frame.shape[:2]
        candidates = decode(self._priors, scores, boxes, w, h, self._config.detection)
        faces = suppress(candidates, self._config.detection.iou_threshold)

        logger.debug("Detected %d faces (%d candidates)", len(faces), len(candidates))
        return faces

    @property
    def state(self) -> DetectorState:
        """Current lifecycle state."""
        return self._state

    @property
    def anchors(self) -> Tuple[Anchor, ...]:
        """The anchor list (empty until the first successful init())."""
        return self._anchors

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @staticmethod
    def _validate_frame(frame: np.ndarray) -> None:
        """Validate that the input frame meets the API contract.

        Raises:
            EmptyImageError: If frame is None or has zero size.
            TypeError: If frame is not a numpy ndarray.
            ValueError: If frame has wrong dimensions.
        """
        if frame is None:
            raise EmptyImageError("Frame is None.")

        if not isinstance(frame, np.ndarray):
            raise TypeError(
                f"Expected frame to be a numpy ndarray, "
                f"got {type(frame).__name__}. "
                f"Use cv2.imread() to obtain frames."
            )

        if frame.size == 0:
            raise EmptyImageError(
                f"Frame is empty (shape {frame.shape}). "
                "Ensure the input source is providing valid frames."
            )

        if frame.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional frame (H, W, C), "
                f"got {frame.ndim} dimensions with shape {frame.shape}. "
                f"Grayscale images must be converted to BGR first."
            )

        if frame.shape[2] != 3:
            raise ValueError(
                f"Expected 3 channels (BGR), got {frame.shape[2]} channels. "
                f"Input must be a BGR image as returned by OpenCV."
            )
