"""
Model loading and inference for the UltraFace pipeline.

Responsibility:
    Define the inference collaborator contract the detector depends on,
    provide an OpenCV DNN implementation of it, and map the model's
    output tensors onto the score and box roles.

Contract on the collaborator:
    - load_model(path) returns an opaque session handle.
    - configure_session(session, input_shape, thread_count) prepares it
      for a fixed (1, 3, height, width) input.
    - run(session, blob) returns output tensors keyed by name, in the
      model's declared output order.
    - Outputs are named "scores" and "boxes", or, when they are not, are
      declared in the order boxes, scores.

Failure behavior:
    - Unreadable or unparsable model files raise ModelLoadError.
    - Backend/target or warm-up failures raise SessionCreateError.
"""

import logging
from typing import Any, Dict, Mapping, Protocol, Sequence, Tuple

import cv2
import numpy as np

from ultraface.errors import ModelLoadError, OutputTensorMissingError, SessionCreateError

logger = logging.getLogger(__name__)

SCORES_OUTPUT = "scores"
BOXES_OUTPUT = "boxes"


class InferenceBackend(Protocol):
    """Inference engine used by FaceDetector."""

    def load_model(self, path: str) -> Any:
        ...

    def configure_session(
        self,
        session: Any,
        input_shape: Sequence[int],
        thread_count: int,
    ) -> None:
        ...

    def run(self, session: Any, blob: np.ndarray) -> Mapping[str, np.ndarray]:
        ...


class OpenCVBackend:
    """InferenceBackend running ONNX models through cv2.dnn."""

    def __init__(self, backend: str = "cpu") -> None:
        self._backend = backend

    def load_model(self, path: str) -> cv2.dnn.Net:
        """Read the network from disk.

        Raises:
            ModelLoadError: If OpenCV cannot parse the file.
        """
        logger.info("Loading model: %s", path)
        try:
            net = cv2.dnn.readNet(path)
        except cv2.error as e:
            raise ModelLoadError(f"Failed to load model '{path}': {e}") from e

        if net.empty():
            raise ModelLoadError(f"Model '{path}' loaded as an empty network.")

        logger.debug("Model outputs: %s", list(net.getUnconnectedOutLayersNames()))
        return net

    def configure_session(
        self,
        session: cv2.dnn.Net,
        input_shape: Sequence[int],
        thread_count: int,
    ) -> None:
        """Select backend/target and confirm the network runs on input_shape.

        Raises:
            SessionCreateError: If the backend is unavailable or the
                                warm-up forward pass fails.
        """
        # OpenCV's thread pool is process-wide, not per network.
        cv2.setNumThreads(thread_count)

        try:
            if self._backend == "cuda":
                logger.info("Setting CUDA backend and target.")
                session.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
                session.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
            else:
                logger.info("Using CPU backend.")
                session.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
                session.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)

            session.setInput(np.zeros(tuple(input_shape), dtype=np.float32))
            session.forward(session.getUnconnectedOutLayersNames())
        except cv2.error as e:
            raise SessionCreateError(
                f"Failed to create an inference session for input shape "
                f"{tuple(input_shape)} on backend '{self._backend}': {e}"
            ) from e

    def run(self, session: cv2.dnn.Net, blob: np.ndarray) -> Dict[str, np.ndarray]:
        """Run one forward pass and return the outputs keyed by name."""
        names = session.getUnconnectedOutLayersNames()
        session.setInput(blob)
        outputs = session.forward(names)
        return dict(zip(names, outputs))


def resolve_output_tensors(
    outputs: Mapping[str, np.ndarray],
) -> Tuple[np.ndarray, np.ndarray]:
    """Pick the score and box tensors out of the model outputs.

    Lookup is by name first. Any role still unfilled is then taken from
    the outputs not yet claimed, in declared order: the first becomes
    boxes, the next becomes scores.

    Returns:
        (scores, boxes)

    Raises:
        OutputTensorMissingError: If either role cannot be filled.
    """
    scores = outputs.get(SCORES_OUTPUT)
    boxes = outputs.get(BOXES_OUTPUT)

    if scores is None or boxes is None:
        unclaimed = [
            (name, tensor)
            for name, tensor in outputs.items()
            if name not in (SCORES_OUTPUT, BOXES_OUTPUT)
        ]
        logger.warning(
            "Named outputs not found (have %s), assigning by output order.",
            list(outputs.keys()),
        )
        if boxes is None and unclaimed:
            name, boxes = unclaimed.pop(0)
            logger.warning("Using output '%s' as boxes.", name)
        if scores is None and unclaimed:
            name, scores = unclaimed.pop(0)
            logger.warning("Using output '%s' as scores.", name)

    if scores is None or boxes is None:
        raise OutputTensorMissingError(
            f"Model outputs {list(outputs.keys())} do not provide both "
            f"'{SCORES_OUTPUT}' and '{BOXES_OUTPUT}' tensors."
        )

    return scores, boxes
