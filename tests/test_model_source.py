"""
Tests for the model_source module.
"""

import pytest

from ultraface.config import get_project_root
from ultraface.model_source import BundledModelSource, FileModelSource, as_model_source


def test_file_source_existing(tmp_path):
    path = tmp_path / "m.onnx"
    path.write_bytes(b"x")
    assert FileModelSource(path).model_path() == str(path)


def test_file_source_missing(tmp_path):
    with pytest.raises(FileNotFoundError, match="Model file not found"):
        FileModelSource(tmp_path / "missing.onnx").model_path()


def test_file_source_relative_to_project_root():
    source = FileModelSource("config.yaml")
    assert source.model_path() == str(get_project_root() / "config.yaml")


def test_bundled_source_extracts_once(tmp_path):
    assets = tmp_path / "assets"
    assets.mkdir()
    (assets / "face.onnx").write_bytes(b"weights")
    cache = tmp_path / "cache"
    source = BundledModelSource(assets, cache, model_name="face.onnx")

    assert not source.is_ready()
    path = source.model_path()

    assert path == str(cache / "face.onnx")
    assert source.is_ready()
    assert (cache / "face.onnx").read_bytes() == b"weights"

    # Cached copy is reused even if the asset disappears
    (assets / "face.onnx").unlink()
    assert source.model_path() == path


def test_bundled_source_missing_asset(tmp_path):
    source = BundledModelSource(tmp_path / "assets", tmp_path / "cache")
    with pytest.raises(FileNotFoundError, match="Bundled model not found"):
        source.model_path()
    assert not source.is_ready()


def test_as_model_source():
    provider = FileModelSource("x.onnx")
    assert as_model_source(provider) is provider
    assert isinstance(as_model_source("x.onnx"), FileModelSource)
    with pytest.raises(TypeError):
        as_model_source(42)
