"""
Tests for the detector module.

A FakeBackend stands in for the inference engine so the lifecycle and
the decode/NMS wiring can be exercised without a model file.
"""

from pathlib import Path

import numpy as np
import pytest

from ultraface.config import AppConfig, DetectionConfig, get_project_root
from ultraface.decoder import decode
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
from ultraface.model_source import BundledModelSource

NUM_ANCHORS = 4420

_MODEL_PATH = get_project_root() / "models/version-RFB-320.onnx"
_MODEL_EXISTS = _MODEL_PATH.exists()


def _raw_outputs(face_scores=None):
    """Score/box tensors shaped like the RFB-320 outputs, all background."""
    scores = np.zeros((1, NUM_ANCHORS, 2), dtype=np.float32)
    scores[..., 0] = 1.0
    for index, score in (face_scores or {}).items():
        scores[0, index] = (1.0 - score, score)
    boxes = np.zeros((1, NUM_ANCHORS, 4), dtype=np.float32)
    return {"scores": scores, "boxes": boxes}


class FakeBackend:
    """In-memory InferenceBackend returning canned outputs."""

    def __init__(self, outputs=None, fail_session=False):
        self.outputs = outputs if outputs is not None else _raw_outputs()
        self.fail_session = fail_session
        self.loaded = []
        self.sessions = []
        self.blobs = []

    def load_model(self, path):
        if Path(path).read_bytes() != b"fake-model":
            raise ModelLoadError(f"Unparsable model: {path}")
        self.loaded.append(path)
        return object()

    def configure_session(self, session, input_shape, thread_count):
        if self.fail_session:
            raise SessionCreateError("no backend")
        self.sessions.append((tuple(input_shape), thread_count))

    def run(self, session, blob):
        self.blobs.append(blob)
        return self.outputs


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "model.onnx"
    path.write_bytes(b"fake-model")
    return path


@pytest.fixture
def frame():
    return np.full((240, 320, 3), 127, dtype=np.uint8)


def _ready_detector(model_file, backend):
    detector = FaceDetector(AppConfig(), backend=backend)
    detector.init(model_file)
    return detector


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def test_new_detector_is_uninitialized():
    detector = FaceDetector(AppConfig(), backend=FakeBackend())
    assert detector.state is DetectorState.UNINITIALIZED
    assert detector.anchors == ()


def test_detect_before_init_raises_not_initialized(frame):
    """detect() without init() is a reported error, not a crash."""
    detector = FaceDetector(AppConfig(), backend=FakeBackend())

    with pytest.raises(NotInitializedError):
        detector.detect(frame)
    assert detector.state is DetectorState.UNINITIALIZED


def test_init_builds_anchors_and_session(model_file):
    backend = FakeBackend()
    detector = _ready_detector(model_file, backend)

    assert detector.state is DetectorState.READY
    assert len(detector.anchors) == NUM_ANCHORS
    assert backend.loaded == [str(model_file)]
    assert backend.sessions == [((1, 3, 240, 320), 2)]


def test_init_missing_model_then_retry(tmp_path, model_file):
    """A failed init leaves the detector retryable."""
    detector = FaceDetector(AppConfig(), backend=FakeBackend())

    with pytest.raises(ModelLoadError, match="unavailable"):
        detector.init(tmp_path / "missing.onnx")
    assert detector.state is DetectorState.UNINITIALIZED

    detector.init(model_file)
    assert detector.state is DetectorState.READY


def test_init_unparsable_model(tmp_path):
    bad = tmp_path / "bad.onnx"
    bad.write_bytes(b"garbage")
    detector = FaceDetector(AppConfig(), backend=FakeBackend())

    with pytest.raises(ModelLoadError):
        detector.init(bad)
    assert detector.state is DetectorState.UNINITIALIZED
    assert detector.anchors == ()


def test_init_session_failure(model_file):
    detector = FaceDetector(AppConfig(), backend=FakeBackend(fail_session=True))

    with pytest.raises(SessionCreateError):
        detector.init(model_file)
    assert detector.state is DetectorState.UNINITIALIZED


def test_init_from_bundled_source(tmp_path):
    assets = tmp_path / "assets"
    assets.mkdir()
    (assets / "version-RFB-320.onnx").write_bytes(b"fake-model")
    source = BundledModelSource(assets, tmp_path / "cache")
    backend = FakeBackend()

    FaceDetector(AppConfig(), backend=backend).init(source)

    assert backend.loaded == [str(tmp_path / "cache" / "version-RFB-320.onnx")]


def test_reinit_keeps_anchor_list(model_file):
    detector = _ready_detector(model_file, FakeBackend())
    anchors = detector.anchors

    detector.init(model_file)

    assert detector.anchors is anchors


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "image",
    [None, np.zeros((0, 0, 3), dtype=np.uint8), np.array([])],
)
def test_empty_image(model_file, image):
    detector = _ready_detector(model_file, FakeBackend())

    with pytest.raises(EmptyImageError):
        detector.detect(image)
    assert detector.state is DetectorState.READY


def test_invalid_image_type(model_file):
    detector = _ready_detector(model_file, FakeBackend())
    with pytest.raises(TypeError):
        detector.detect("not a frame")


def test_invalid_image_shape(model_file):
    detector = _ready_detector(model_file, FakeBackend())

    with pytest.raises(ValueError, match="3-dimensional"):
        detector.detect(np.zeros((100, 100), dtype=np.uint8))
    with pytest.raises(ValueError, match="3 channels"):
        detector.detect(np.zeros((100, 100, 4), dtype=np.uint8))


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def test_no_face_is_empty_list(model_file, frame):
    backend = FakeBackend()
    detector = _ready_detector(model_file, backend)

    assert detector.detect(frame) == []
    assert backend.blobs[0].shape == (1, 3, 240, 320)
    assert backend.blobs[0].dtype == np.float32


def test_single_face_matches_decoder(model_file, frame):
    outputs = _raw_outputs({1000: 0.99})
    detector = _ready_detector(model_file, FakeBackend(outputs))

    faces = detector.detect(frame)

    expected = decode(
        detector.anchors, outputs["scores"], outputs["boxes"], 320, 240, DetectionConfig()
    )
    assert faces == expected
    assert len(faces) == 1
    assert faces[0].score == pytest.approx(0.99, abs=1e-6)


def test_coordinates_follow_input_frame_size(model_file):
    """Boxes are in pixels of the original frame, not the model input."""
    outputs = _raw_outputs({1000: 0.99})
    detector = _ready_detector(model_file, FakeBackend(outputs))

    small = detector.detect(np.zeros((240, 320, 3), dtype=np.uint8))[0]
    large = detector.detect(np.zeros((480, 640, 3), dtype=np.uint8))[0]

    assert large.width == pytest.approx(2 * small.width, rel=1e-4)
    assert large.x == pytest.approx(2 * small.x, rel=1e-4)


def test_overlapping_anchors_collapse(model_file, frame):
    """Anchors 0 and 1 share a center (sizes 10 and 16); NMS keeps the best."""
    detector = _ready_detector(model_file, FakeBackend(_raw_outputs({0: 0.97, 1: 0.99})))

    faces = detector.detect(frame)

    assert len(faces) == 1
    assert faces[0].score == pytest.approx(0.99, abs=1e-6)


@pytest.mark.parametrize("shape", [(240, 320, 3), (480, 640, 3), (300, 200, 3)])
def test_results_inside_frame_and_sorted(model_file, shape):
    """Boxes from any anchor, even grown by large dw/dh, stay inside the frame."""
    rng = np.random.default_rng(0)
    picked = rng.choice(NUM_ANCHORS, 200, replace=False).tolist() + [NUM_ANCHORS - 1]
    outputs = _raw_outputs({int(i): 0.96 + 0.03 * rng.random() for i in picked})
    regressions = rng.normal(0.0, 1.0, size=(1, NUM_ANCHORS, 4))
    regressions[..., 2:] = rng.uniform(0.0, 10.0, size=(1, NUM_ANCHORS, 2))
    outputs["boxes"] = regressions.astype(np.float32)
    detector = _ready_detector(model_file, FakeBackend(outputs))
    height, width = shape[:2]

    faces = detector.detect(np.zeros(shape, dtype=np.uint8))

    assert faces
    assert [f.score for f in faces] == sorted((f.score for f in faces), reverse=True)
    for face in faces:
        assert face.x >= 0 and face.y >= 0
        assert face.x + face.width <= width + 1e-3
        assert face.y + face.height <= height + 1e-3
        assert 0.0 <= face.score <= 1.0


def test_largest_anchor_fits_model_sized_frame(model_file, frame):
    """The 256 px stride-64 anchor is capped to the 240 px frame height."""
    detector = _ready_detector(model_file, FakeBackend(_raw_outputs({NUM_ANCHORS - 1: 0.99})))

    faces = detector.detect(frame)

    assert len(faces) == 1
    face = faces[0]
    assert face.width == face.height == pytest.approx(240.0, abs=1e-3)
    assert face.y == 0.0
    assert face.y + face.height <= 240 + 1e-3
    assert face.x + face.width <= 320 + 1e-3


def test_positional_output_fallback(model_file, frame):
    """Unnamed outputs are taken as boxes then scores."""
    named = _raw_outputs({1000: 0.99})
    outputs = {"output0": named["boxes"], "output1": named["scores"]}
    detector = _ready_detector(model_file, FakeBackend(outputs))

    assert len(detector.detect(frame)) == 1


def test_missing_output_tensor(model_file, frame):
    outputs = {"scores": _raw_outputs()["scores"]}
    detector = _ready_detector(model_file, FakeBackend(outputs))

    with pytest.raises(OutputTensorMissingError):
        detector.detect(frame)


def test_length_mismatch_does_not_break_detector(model_file, frame):
    """A failed detect() leaves the detector usable."""
    backend = FakeBackend()
    good = backend.outputs
    backend.outputs = {"scores": good["scores"][:, :-1], "boxes": good["boxes"]}
    detector = _ready_detector(model_file, backend)

    with pytest.raises(TensorLengthMismatchError):
        detector.detect(frame)
    assert detector.state is DetectorState.READY

    backend.outputs = good
    assert detector.detect(frame) == []


def test_errors_are_catchable_as_library_and_builtin(frame):
    detector = FaceDetector(AppConfig(), backend=FakeBackend())

    with pytest.raises(FaceDetectionError):
        detector.detect(frame)
    with pytest.raises(RuntimeError):
        detector.detect(frame)


@pytest.mark.skipif(not _MODEL_EXISTS, reason="Model file not found")
def test_detector_integration_smoke():
    """Smoke test: real model initializes and runs on a blank frame."""
    detector = FaceDetector(AppConfig())
    detector.init(_MODEL_PATH)

    faces = detector.detect(np.zeros((480, 640, 3), dtype=np.uint8))
    assert isinstance(faces, list)
