"""
Preprocessing for the UltraFace pipeline.

Responsibility:
    Convert a raw BGR frame (numpy array) into the 4D NCHW float32
    blob the model expects: resized to the model input size, converted
    to RGB, mean-subtracted and scaled per channel.

Non-goals:
    - No frame acquisition or I/O.
    - No inference or coordinate mapping.

Hard-coded:
    - Source channel order is BGR (as returned by OpenCV).
    - The model consumes RGB.
"""

import cv2
import numpy as np

from ultraface.config import ModelConfig


def preprocess(frame: np.ndarray, config: ModelConfig) -> np.ndarray:
    """Convert a raw BGR frame into a model input blob.

    Args:
        frame: Input image as a BGR numpy array (H, W, 3).
        config: ModelConfig providing input_size, mean_values and norm_values.

    Returns:
        A numpy array of shape (1, 3, input_height, input_width) with
        dtype float32, computed as (rgb - mean) * norm.

    Raises:
        ValueError: If the frame is empty.
    """
    if frame is None or frame.size == 0:
        raise ValueError(
            "Cannot preprocess an empty frame. "
            "Ensure the input source is providing valid frames."
        )

    resized = cv2.resize(frame, tuple(config.input_size))
    rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB).astype(np.float32)

    mean = np.asarray(config.mean_values, dtype=np.float32)
    norm = np.asarray(config.norm_values, dtype=np.float32)
    normalized = (rgb - mean) * norm

    # HWC → NCHW
    return np.ascontiguousarray(normalized.transpose(2, 0, 1)[np.newaxis, ...])
