"""
Image input for the command-line tool.

Responsibility:
    Turn a source path (a single image or a directory of images) into
    an iterator of (image_path, frame) tuples.

Robustness:
    - Validates the source at initialization time.
    - Logs and skips unreadable images (never crashes the run).
"""

import logging
from pathlib import Path
from typing import Iterator, List, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# Image extensions recognized by this handler
_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp"}


class InputHandler:
    """Iterate over the images of a file or directory source.

    Usage:
        for image_path, frame in InputHandler("photos/"):
            faces = detector.detect(frame)
    """

    def __init__(self, source: Union[str, Path]) -> None:
        """Resolve the image list for source.

        Raises:
            FileNotFoundError: If the source does not exist.
            ValueError: If the source is not an image or holds no images.
        """
        path = Path(str(source).strip())

        if path.is_file():
            if path.suffix.lower() not in _IMAGE_EXTENSIONS:
                raise ValueError(
                    f"Unrecognized image extension: '{path.suffix}' for source '{path}'. "
                    f"Supported: {sorted(_IMAGE_EXTENSIONS)}."
                )
            self._image_paths: List[Path] = [path]
        elif path.is_dir():
            self._image_paths = sorted(
                p for p in path.iterdir() if p.suffix.lower() in _IMAGE_EXTENSIONS
            )
            if not self._image_paths:
                raise ValueError(
                    f"No image files found in directory: '{path}'. "
                    f"Supported extensions: {sorted(_IMAGE_EXTENSIONS)}."
                )
        else:
            raise FileNotFoundError(
                f"Input source not found: '{path}'. "
                f"Provide an image file or a directory of images."
            )

        logger.info("InputHandler initialized: %d image(s) from %s", len(self._image_paths), path)

    def __len__(self) -> int:
        return len(self._image_paths)

    def __iter__(self) -> Iterator[Tuple[str, np.ndarray]]:
        for path in self._image_paths:
            frame = cv2.imread(str(path))
            if frame is None:
                logger.warning("Skipping unreadable image: %s", path)
                continue
            yield str(path), frame
