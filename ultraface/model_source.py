"""
Model source providers.

Responsibility:
    Tell the detector where the model file lives. The location is an
    explicit value handed to FaceDetector.init(); there is no
    process-wide "current model path".

Providers:
    - FileModelSource: a model file already on disk.
    - BundledModelSource: a model shipped in an asset directory and
      copied into a writable cache directory on first use.
"""

import logging
import shutil
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from ultraface.config import get_project_root

logger = logging.getLogger(__name__)


@runtime_checkable
class ModelSourceProvider(Protocol):
    """Anything that can hand out a local model file path."""

    def model_path(self) -> str:
        """Return the path of a readable model file.

        Raises:
            FileNotFoundError: If the model cannot be made available.
        """
        ...


class FileModelSource:
    """A model file on the local filesystem.

    Relative paths are resolved against the project root, like every
    other path in the configuration.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        path = Path(path)
        if not path.is_absolute():
            path = get_project_root() / path
        self._path = path

    def model_path(self) -> str:
        if not self._path.is_file():
            raise FileNotFoundError(
                f"Model file not found.\n"
                f"  Expected: {self._path}\n"
                f"  Download the model and place it at the path above,\n"
                f"  or update 'model.model_path' in your config."
            )
        return str(self._path)

    def __repr__(self) -> str:
        return f"FileModelSource({str(self._path)!r})"


class BundledModelSource:
    """A model bundled with an application, extracted to a cache directory.

    The first call to model_path() copies the asset into cache_dir;
    later calls reuse the cached copy.
    """

    def __init__(
        self,
        asset_dir: Union[str, Path],
        cache_dir: Union[str, Path],
        model_name: str = "version-RFB-320.onnx",
    ) -> None:
        self._asset = Path(asset_dir) / model_name
        self._cached = Path(cache_dir) / model_name

    def is_ready(self) -> bool:
        """Return True if the model has already been extracted."""
        return self._cached.is_file()

    def model_path(self) -> str:
        if self.is_ready():
            logger.info("Model already extracted: %s", self._cached)
            return str(self._cached)

        if not self._asset.is_file():
            raise FileNotFoundError(f"Bundled model not found: {self._asset}")

        logger.info("Extracting model %s to %s", self._asset, self._cached)
        self._cached.parent.mkdir(parents=True, exist_ok=True)
        partial = self._cached.with_name(self._cached.name + ".part")
        try:
            shutil.copyfile(self._asset, partial)
            partial.replace(self._cached)
        except OSError:
            partial.unlink(missing_ok=True)
            raise
        return str(self._cached)

    def __repr__(self) -> str:
        return f"BundledModelSource(asset={str(self._asset)!r}, cache={str(self._cached)!r})"


def as_model_source(source: Union[str, Path, ModelSourceProvider]) -> ModelSourceProvider:
    """Wrap a plain path in a FileModelSource; pass providers through."""
    if isinstance(source, (str, Path)):
        return FileModelSource(source)
    if isinstance(source, ModelSourceProvider):
        return source
    raise TypeError(
        f"Expected a path or ModelSourceProvider, got {type(source).__name__}."
    )
