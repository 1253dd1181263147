"""
Configuration management for the UltraFace post-processing library.

Provides a layered configuration system with the following precedence
(highest to lowest):

    CLI arguments > Environment variables > YAML config file > Defaults

Design constraints:
    - The library MUST run with zero configuration (the RFB-320 model
      constants are the defaults).
    - Missing or invalid values fail early and loudly.
    - Configuration objects are frozen; nothing mutates them after
      construction.
    - No detection logic, I/O, or model loading belongs here.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: ultraface/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelConfig:
    """Model and anchor-grid configuration.

    These values form the contract of the UltraFace model family; the
    anchor grid they describe must match the exported network exactly.

    Attributes:
        model_path: Path to the ONNX model file (relative to project root).
        backend: Compute backend, 'cpu' or 'cuda'.
        num_threads: Worker threads for the inference engine.
        input_size: Model input (width, height).
        mean_values: Per-channel values subtracted before scaling.
        norm_values: Per-channel scale applied after mean subtraction.
        strides: Anchor grid spacing per detection scale.
        min_boxes: Anchor sizes in pixels, one tuple per stride.
    """

    model_path: str = "models/version-RFB-320.onnx"
    backend: str = "cpu"
    num_threads: int = 2
    input_size: Tuple[int, int] = (320, 240)
    mean_values: Tuple[float, float, float] = (127.0, 127.0, 127.0)
    norm_values: Tuple[float, float, float] = (1.0 / 128.0, 1.0 / 128.0, 1.0 / 128.0)
    strides: Tuple[int, ...] = (8, 16, 32, 64)
    min_boxes: Tuple[Tuple[float, ...], ...] = (
        (10.0, 16.0, 24.0),
        (32.0, 48.0),
        (64.0, 96.0),
        (128.0, 192.0, 256.0),
    )


@dataclass(frozen=True)
class DetectionConfig:
    """Decoding and suppression parameters.

    Attributes:
        score_threshold: A face score must exceed this to become a candidate.
        iou_threshold: Overlap above which NMS drops the weaker box.
        center_variance: Scale applied to the (dx, dy) regression.
        size_variance: Scale applied to the (dw, dh) regression.
    """

    score_threshold: float = 0.95
    iou_threshold: float = 0.3
    center_variance: float = 0.1
    size_variance: float = 0.2


@dataclass(frozen=True)
class InputConfig:
    """CLI input source.

    Attributes:
        source: Image file or directory of images.
    """

    source: str = "images/"


@dataclass(frozen=True)
class OutputConfig:
    """CLI output behavior.

    Attributes:
        mode: Comma-separated output modes:
              'print', 'save_json', 'save_csv', 'save_image'.
        save_path: Directory where output artifacts are written.
    """

    mode: str = "print"
    save_path: str = "output/"


@dataclass(frozen=True)
class VisualizationConfig:
    """Box rendering parameters for 'save_image' output.

    Attributes:
        box_color: BGR color tuple for boxes.
        thickness: Line thickness in pixels.
        show_score: Whether to render the score label.
    """

    box_color: Tuple[int, int, int] = (0, 255, 0)
    thickness: int = 2
    show_score: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration aggregating all sections."""

    model: ModelConfig = field(default_factory=ModelConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    input: InputConfig = field(default_factory=InputConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    visualization: VisualizationConfig = field(default_factory=VisualizationConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_VALID_BACKENDS = {"cpu", "cuda"}
_VALID_OUTPUT_MODES = {"print", "save_json", "save_csv", "save_image"}


def parse_output_modes(mode: str) -> set:
    """Split a comma-separated output mode string into a set."""
    return {m.strip() for m in mode.split(",") if m.strip()}


def validate_config(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""
    model = config.model
    detection = config.detection

    if model.backend not in _VALID_BACKENDS:
        raise ValueError(
            f"Invalid model.backend: '{model.backend}'. "
            f"Must be one of {_VALID_BACKENDS}."
        )

    if model.num_threads <= 0:
        raise ValueError(f"model.num_threads must be positive, got {model.num_threads}.")

    if len(model.input_size) != 2 or any(d <= 0 for d in model.input_size):
        raise ValueError(
            f"model.input_size must be a positive (width, height) pair, "
            f"got {model.input_size}."
        )

    for name in ("mean_values", "norm_values"):
        values = getattr(model, name)
        if len(values) != 3:
            raise ValueError(f"model.{name} needs 3 values, got {values}.")

    if not model.strides or any(s <= 0 for s in model.strides):
        raise ValueError(f"model.strides must be positive, got {model.strides}.")

    if len(model.min_boxes) != len(model.strides):
        raise ValueError(
            f"model.min_boxes needs one entry per stride: "
            f"{len(model.min_boxes)} entries for {len(model.strides)} strides."
        )

    if any(not sizes or any(b <= 0 for b in sizes) for sizes in model.min_boxes):
        raise ValueError(
            f"model.min_boxes entries must be non-empty and positive, "
            f"got {model.min_boxes}."
        )

    for name in ("score_threshold", "iou_threshold"):
        value = getattr(detection, name)
        if not (0.0 <= value <= 1.0):
            raise ValueError(f"detection.{name} must be in [0.0, 1.0], got {value}.")

    for name in ("center_variance", "size_variance"):
        value = getattr(detection, name)
        if value <= 0:
            raise ValueError(f"detection.{name} must be positive, got {value}.")

    invalid_modes = parse_output_modes(config.output.mode) - _VALID_OUTPUT_MODES
    if invalid_modes:
        raise ValueError(
            f"Invalid output.mode(s): {invalid_modes}. "
            f"Valid modes: {_VALID_OUTPUT_MODES}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_tuple(value, expected_len: Optional[int], cast_type=float):
    """Convert a YAML list into a tuple of the expected type and length."""
    if isinstance(value, str):
        value = [v for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        if expected_len is not None and len(value) != expected_len:
            raise ValueError(
                f"Expected {expected_len} values, got {len(value)}: {value}"
            )
        return tuple(cast_type(v) for v in value)
    raise ValueError(f"Expected a list of values, got {value!r}")


def _build_model_config(raw: dict) -> ModelConfig:
    """Build ModelConfig from a raw YAML dict."""
    kwargs = {}
    if "model_path" in raw:
        kwargs["model_path"] = str(raw["model_path"])
    if "backend" in raw:
        kwargs["backend"] = str(raw["backend"]).lower()
    if "num_threads" in raw:
        kwargs["num_threads"] = int(raw["num_threads"])
    if "input_size" in raw:
        kwargs["input_size"] = _parse_tuple(raw["input_size"], 2, int)
    if "mean_values" in raw:
        kwargs["mean_values"] = _parse_tuple(raw["mean_values"], 3, float)
    if "norm_values" in raw:
        kwargs["norm_values"] = _parse_tuple(raw["norm_values"], 3, float)
    if "strides" in raw:
        kwargs["strides"] = _parse_tuple(raw["strides"], None, int)
    if "min_boxes" in raw:
        kwargs["min_boxes"] = tuple(
            _parse_tuple(sizes, None, float) for sizes in raw["min_boxes"]
        )
    return ModelConfig(**kwargs)


def _build_detection_config(raw: dict) -> DetectionConfig:
    """Build DetectionConfig from a raw YAML dict."""
    kwargs = {}
    for key in ("score_threshold", "iou_threshold", "center_variance", "size_variance"):
        if key in raw:
            kwargs[key] = float(raw[key])
    return DetectionConfig(**kwargs)


def _build_input_config(raw: dict) -> InputConfig:
    kwargs = {}
    if "source" in raw:
        kwargs["source"] = str(raw["source"])
    return InputConfig(**kwargs)


def _build_output_config(raw: dict) -> OutputConfig:
    kwargs = {}
    if "mode" in raw:
        kwargs["mode"] = str(raw["mode"]).lower()
    if "save_path" in raw:
        kwargs["save_path"] = str(raw["save_path"])
    return OutputConfig(**kwargs)


def _build_visualization_config(raw: dict) -> VisualizationConfig:
    kwargs = {}
    if "box_color" in raw:
        kwargs["box_color"] = _parse_tuple(raw["box_color"], 3, int)
    if "thickness" in raw:
        kwargs["thickness"] = int(raw["thickness"])
    if "show_score" in raw:
        kwargs["show_score"] = bool(raw["show_score"])
    return VisualizationConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "ULTRAFACE_"


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Environment variables follow the pattern:
        ULTRAFACE_MODEL_BACKEND=cuda
        ULTRAFACE_DETECTION_SCORE_THRESHOLD=0.9
    """
    env_map = {
        f"{_ENV_PREFIX}MODEL_PATH": ("model", "model_path"),
        f"{_ENV_PREFIX}MODEL_BACKEND": ("model", "backend"),
        f"{_ENV_PREFIX}MODEL_NUM_THREADS": ("model", "num_threads"),
        f"{_ENV_PREFIX}DETECTION_SCORE_THRESHOLD": ("detection", "score_threshold"),
        f"{_ENV_PREFIX}DETECTION_IOU_THRESHOLD": ("detection", "iou_threshold"),
        f"{_ENV_PREFIX}INPUT_SOURCE": ("input", "source"),
        f"{_ENV_PREFIX}OUTPUT_MODE": ("output", "mode"),
        f"{_ENV_PREFIX}OUTPUT_SAVE_PATH": ("output", "save_path"),
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            raw.setdefault(section, {})[key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None, the
                     defaults are used (safe for programmatic usage).

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute() and not resolved.is_file():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        model=_build_model_config(raw.get("model") or {}),
        detection=_build_detection_config(raw.get("detection") or {}),
        input=_build_input_config(raw.get("input") or {}),
        output=_build_output_config(raw.get("output") or {}),
        visualization=_build_visualization_config(raw.get("visualization") or {}),
    )

    validate_config(config)

    logger.debug("Configuration loaded: %s", config)
    return config
