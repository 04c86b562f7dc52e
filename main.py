"""
Privacy Redaction CLI Entrypoint.

Responsibility:
    Parse command-line arguments, configure the application, wire together
    the redaction pipeline and I/O handlers, and run the processing loop.

Usage:
    python main.py --source photo.jpg                   # Single image
    python main.py --source images/                     # Directory of images
    python main.py --source images/ --output-mode save_image,save_json
    python main.py --source images/ --policy all        # Blur every subject
    python main.py --config my_config.yaml

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
)
logger = logging.getLogger("main")

from privacy_redaction.config import CATEGORIES, POLICIES, AppConfig, load_config, validate_config
from privacy_redaction.input_handler import InputHandler
from privacy_redaction.output_handler import OutputHandler
from privacy_redaction.pipeline import RedactionPipeline


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Privacy Redaction — blur faces, people and license plates",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--source",
        type=str,
        help="Input source: path to an image file or a directory of images.",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--policy",
        type=str,
        choices=list(POLICIES),
        help="Redaction policy applied to every category. Overrides config.",
    )
    parser.add_argument(
        "--confidence",
        type=float,
        help="Face acceptance threshold (0.0 - 1.0). Overrides config.",
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
        help="Output mode(s). Use comma-separated values for multiple outputs: "
             "display, save_image, save_annotated, save_json, save_csv. "
             "Example: 'save_image,save_json'. Overrides config.",
    )
    parser.add_argument(
        "--output-path",
        type=str,
        help="Directory for output artifacts. Overrides config.",
    )

    return parser.parse_args(argv)


def apply_cli_overrides(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a new config with CLI arguments layered on top, validated."""
    replace = dataclasses.replace

    if args.source is not None:
        config = replace(config, input=replace(config.input, source=args.source))

    if args.policy is not None:
        policies = {category: args.policy for category in CATEGORIES}
        config = replace(config, redaction=replace(config.redaction, policies=policies))

    if args.confidence is not None:
        thresholds = dict(config.detection.acceptance_thresholds)
        thresholds["face"] = args.confidence
        config = replace(
            config, detection=replace(config.detection, acceptance_thresholds=thresholds)
        )

    if args.backend is not None:
        config = replace(config, model=replace(config.model, backend=args.backend))

    if args.output_mode is not None:
        config = replace(config, output=replace(config.output, mode=args.output_mode))

    if args.output_path is not None:
        config = replace(config, output=replace(config.output, save_path=args.output_path))

    validate_config(config)
    return config


def main(argv=None) -> int:
    """Main execution loop."""
    args = parse_args(argv)

    # 1. Load Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = apply_cli_overrides(load_config(args.config), args)
        logger.info("Configuration active for this run.")
    except Exception as e:
        logger.error("Configuration error: %s", e)
        return 1

    # 2. Initialize Components
    try:
        pipeline = RedactionPipeline(config)
        input_handler = InputHandler(
            source=config.input.source,
            resize_width=config.input.resize_width,
        )
        output_handler = OutputHandler(config)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error("Initialization failed: %s", e)
        return 1
    except Exception as e:
        logger.exception("Unexpected initialization error: %s", e)
        return 1

    if not pipeline.preload():
        logger.warning("Some detectors are unavailable; redaction will be partial.")

    # 3. Processing Loop
    logger.info("Processing %d image(s).", len(input_handler))

    image_count = 0
    blurred = 0
    start_time = time.perf_counter()

    try:
        for name, frame in input_handler:
            image_count += 1

            result = pipeline.redact(frame)
            blurred += result.counts.total
            for warning in result.warnings:
                logger.warning("%s: %s", name, warning)

            logger.info(
                "%s: %d face(s), %d person(s), %d plate(s) blurred",
                name,
                result.counts.faces_detected,
                result.counts.people_detected,
                result.counts.plates_detected,
            )

            if not output_handler.process_image(name, frame, result):
                logger.info("Stopping loop per user request.")
                break

    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
    except Exception as e:
        logger.exception("Runtime error during processing: %s", e)
        return 1
    finally:
        # 4. Cleanup
        elapsed = time.perf_counter() - start_time
        output_handler.finalize()

        logger.info(
            "Processing finished. Images: %d. Regions blurred: %d. Elapsed: %.1fs.",
            image_count, blurred, elapsed,
        )

    return 0


if __name__ == "__main__":
    sys.exit(main())
