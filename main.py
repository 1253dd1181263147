"""
UltraFace CLI Entrypoint.

Responsibility:
    Parse command-line arguments, build the configuration, initialize the
    detector and run it over every image of the input source.

Usage:
    python main.py --source photo.jpg                          # JSON to stdout
    python main.py --source photos/ --output-mode save_json,save_image
    python main.py --model models/version-RFB-320.onnx --config my_config.yaml

This module is the executable entry point. It should not be imported
by other modules.
"""

import argparse
import dataclasses
import logging
import sys
import time

# Configure logging before importing local modules
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger("main")

from ultraface.config import AppConfig, load_config, validate_config
from ultraface.detector import FaceDetector
from ultraface.errors import FaceDetectionError
from ultraface.input_handler import InputHandler
from ultraface.output_handler import OutputHandler


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="UltraFace face detection",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--source", type=str, help="Image file or directory of images.")
    parser.add_argument("--model", type=str, help="Path to the ONNX model. Overrides config.")
    parser.add_argument("--config", type=str, help="Path to YAML configuration file.")
    parser.add_argument(
        "--score-threshold",
        type=float,
        help="Face score threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--iou-threshold",
        type=float,
        help="NMS IoU threshold (0.0 - 1.0). Overrides config.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend preference. Overrides config.",
    )
    parser.add_argument(
        "--output-mode",
        type=str,
        help="Comma-separated output modes: print, save_json, save_csv, save_image. "
             "Overrides config.",
    )
    parser.add_argument("--output-path", type=str, help="Directory for output files. Overrides config.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    return parser.parse_args()


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of config with the command-line flags applied."""
    model = config.model
    if args.model is not None:
        model = dataclasses.replace(model, model_path=args.model)
    if args.backend is not None:
        model = dataclasses.replace(model, backend=args.backend)

    detection = config.detection
    if args.score_threshold is not None:
        detection = dataclasses.replace(detection, score_threshold=args.score_threshold)
    if args.iou_threshold is not None:
        detection = dataclasses.replace(detection, iou_threshold=args.iou_threshold)

    input_config = config.input
    if args.source is not None:
        input_config = dataclasses.replace(input_config, source=args.source)

    output = config.output
    if args.output_mode is not None:
        output = dataclasses.replace(output, mode=args.output_mode.lower())
    if args.output_path is not None:
        output = dataclasses.replace(output, save_path=args.output_path)

    config = dataclasses.replace(
        config, model=model, detection=detection, input=input_config, output=output
    )
    validate_config(config)
    return config


def main() -> int:
    """Main execution loop."""
    args = parse_args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # 1. Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_cli_overrides(load_config(args.config), args)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Components
    try:
        detector = FaceDetector(config)
        detector.init(config.model.model_path)
        input_handler = InputHandler(config.input.source)
        output_handler = OutputHandler(config)
    except (FaceDetectionError, FileNotFoundError, ValueError) as e:
        logger.error("Initialization failed: %s", e)
        return 1

    # 3. Processing loop
    image_count = 0
    face_count = 0
    failures = 0
    start_time = time.perf_counter()

    try:
        for image_path, frame in input_handler:
            try:
                faces = detector.detect(frame)
            except FaceDetectionError as e:
                logger.error("Detection failed for %s: %s", image_path, e)
                failures += 1
                continue

            image_count += 1
            face_count += len(faces)
            logger.info("%s: %d face(s)", image_path, len(faces))
            output_handler.process_image(image_path, frame, faces)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    finally:
        output_handler.finalize()
        elapsed = time.perf_counter() - start_time
        logger.info(
            "Processing finished. Images: %d, faces: %d, failures: %d, elapsed: %.2fs.",
            image_count, face_count, failures, elapsed,
        )

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
