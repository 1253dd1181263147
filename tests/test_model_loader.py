"""
Tests for the model_loader module.
"""

import numpy as np
import pytest

from ultraface.errors import ModelLoadError, OutputTensorMissingError
from ultraface.model_loader import OpenCVBackend, resolve_output_tensors

SCORES = np.zeros((1, 4, 2), dtype=np.float32)
BOXES = np.ones((1, 4, 4), dtype=np.float32)


def test_resolve_by_name():
    """Named outputs win regardless of their order."""
    scores, boxes = resolve_output_tensors({"boxes": BOXES, "scores": SCORES, "extra": SCORES})
    assert scores is SCORES
    assert boxes is BOXES


def test_resolve_by_declared_order():
    """Unnamed outputs: first is boxes, second is scores."""
    scores, boxes = resolve_output_tensors({"out_a": BOXES, "out_b": SCORES})
    assert boxes is BOXES
    assert scores is SCORES


def test_resolve_fills_only_missing_role():
    """A named scores output stays; boxes comes from the first other output."""
    scores, boxes = resolve_output_tensors({"scores": SCORES, "loc": BOXES})
    assert scores is SCORES
    assert boxes is BOXES


def test_resolve_missing_tensor():
    with pytest.raises(OutputTensorMissingError, match="scores"):
        resolve_output_tensors({"only": BOXES})

    with pytest.raises(OutputTensorMissingError):
        resolve_output_tensors({})


def test_opencv_backend_rejects_unknown_file(tmp_path):
    """Files OpenCV cannot parse surface as ModelLoadError."""
    bad = tmp_path / "model.unknown"
    bad.write_bytes(b"not a network")

    with pytest.raises(ModelLoadError, match="Failed to load model"):
        OpenCVBackend().load_model(str(bad))
