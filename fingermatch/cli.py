"""
Command line interface.

Subcommands:
    match    Match a probe image against candidate images
    segment  Segment the finger in a captured photo
    ridges   Extract the binary ridge image (and skeleton)

Usage:
    fingermatch match probe.jpg gallery/ --output report.json
    fingermatch segment photo.jpg --output-dir out/
    fingermatch ridges photo.jpg --output-dir out/ --skeleton
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from fingermatch.enhancement.pipeline import ToneEnhancementPipeline
from fingermatch.enhancement.ridge_enhancer import RidgeEnhancer
from fingermatch.enhancement.skeleton import skeletonize
from fingermatch.matching.registry import create_matcher, get_registry
from fingermatch.preprocessing.region_refinement import FingerSegmenter
from fingermatch.utils.config import Config, load_config
from fingermatch.utils.io import load_candidates, load_image, save_image, save_json
from fingermatch.utils.logger import setup_logger

logger = logging.getLogger(__name__)


def run_match(args: argparse.Namespace, config: Config) -> int:
    """
    Match a probe against candidate files or directories.

    Args:
        args: Parsed arguments
        config: Loaded configuration

    Returns:
        Exit code
    """
    probe = load_image(args.probe)
    candidates = load_candidates(args.candidates)
    if not candidates:
        logger.warning("No candidate images found")

    matcher = create_matcher(args.matcher, config)
    logger.info(f"Matching {args.probe} against {len(candidates)} candidates with {matcher.name}")

    result = matcher.match(probe, candidates, threshold=args.threshold)

    report = result.to_dict()
    report["probe"] = Path(args.probe).name
    report["matcher"] = args.matcher

    if args.output:
        output_path = save_json(report, args.output)
        logger.info(f"Report saved to {output_path}")

    print(json.dumps(report, indent=2))
    return 0


def run_segment(args: argparse.Namespace, config: Config) -> int:
    """
    Segment the finger in a photo and write mask, segmented and ROI images.

    Args:
        args: Parsed arguments
        config: Loaded configuration

    Returns:
        Exit code (1 if segmentation is unavailable)
    """
    image = load_image(args.image)
    segmenter = FingerSegmenter.from_config(config.segmentation)
    result = segmenter.segment(image)

    if result is None:
        logger.error("Segmentation unavailable for this input")
        return 1

    output_dir = Path(args.output_dir)
    stem = Path(args.image).stem
    save_image(result.mask, output_dir / f"{stem}_mask.png")
    save_image(result.segmented, output_dir / f"{stem}_segmented.png")
    save_image(result.roi_image, output_dir / f"{stem}_roi.png")
    logger.info(f"Segmentation written to {output_dir}")

    print(json.dumps({"image": Path(args.image).name, "roi": result.roi.to_dict()}, indent=2))
    return 0


def run_ridges(args: argparse.Namespace, config: Config) -> int:
    """
    Enhance an image and write its binary ridge image.

    Args:
        args: Parsed arguments
        config: Loaded configuration

    Returns:
        Exit code
    """
    image = load_image(args.image)
    enhanced = ToneEnhancementPipeline().enhance(image)
    for step in enhanced.steps:
        logger.debug(f"{step.name}: {step.duration_ms:.1f} ms")

    enhancer = RidgeEnhancer.from_config(config.ridges)
    ridges = enhancer.extract_ridges(enhanced.image)

    output_dir = Path(args.output_dir)
    stem = Path(args.image).stem
    written = [save_image(ridges, output_dir / f"{stem}_ridges.png")]

    if args.skeleton:
        written.append(save_image(skeletonize(ridges), output_dir / f"{stem}_skeleton.png"))

    for path in written:
        print(path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fingermatch",
        description="Contactless-to-contact fingerprint matching"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides the configuration)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    match_parser = subparsers.add_parser("match", help="Match a probe against candidates")
    match_parser.add_argument("probe", type=str, help="Probe image")
    match_parser.add_argument(
        "candidates",
        type=str,
        nargs="+",
        help="Candidate images or directories"
    )
    match_parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Threshold echoed in the report"
    )
    match_parser.add_argument(
        "--matcher",
        type=str,
        default="hybrid",
        choices=sorted(info.id for info in get_registry().list_matchers()),
        help="Matcher implementation"
    )
    match_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Path of the JSON report"
    )
    match_parser.set_defaults(handler=run_match)

    segment_parser = subparsers.add_parser("segment", help="Segment a finger photo")
    segment_parser.add_argument("image", type=str, help="Input photo")
    segment_parser.add_argument(
        "--output-dir",
        type=str,
        required=True,
        help="Directory for mask, segmented and ROI images"
    )
    segment_parser.set_defaults(handler=run_segment)

    ridges_parser = subparsers.add_parser("ridges", help="Extract the binary ridge image")
    ridges_parser.add_argument("image", type=str, help="Input image")
    ridges_parser.add_argument(
        "--output-dir",
        type=str,
        required=True,
        help="Directory for the ridge images"
    )
    ridges_parser.add_argument(
        "--skeleton",
        action="store_true",
        help="Also write the ridge skeleton"
    )
    ridges_parser.set_defaults(handler=run_ridges)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else Config()
    setup_logger(
        "fingermatch",
        level=args.log_level or config.logging.level,
        log_dir=config.logging.log_dir
    )

    return args.handler(args, config)


if __name__ == "__main__":
    sys.exit(main())
