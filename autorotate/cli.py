"""
Command-line interface for auto-rotation.

Usage:
    python -m autorotate detect <image_path>... [--format png] [--apply] [-o json|text]
    python -m autorotate languages [-o json|text]
    python -m autorotate set-language <tag|index>
    python -m autorotate --help
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import cv2

from .config.autorotate_config import AutoRotateConfig
from .imaging.codec import OutputFormat
from .recognition.base import RecognizerFactory
from .recognition.tesseract import TesseractRecognizerFactory
from .rotation.correction import correct_orientation
from .service import AutoRotatorService
from .settings.store import AppSetting, SettingsStore

logger = logging.getLogger(__name__)


def setup_argparse() -> argparse.ArgumentParser:
    """Set up argument parser."""
    parser = argparse.ArgumentParser(
        prog="autorotate",
        description="Detect and fix the orientation of scanned pages",
    )
    parser.add_argument(
        "--settings",
        type=str,
        help="Settings file holding the language preference (default: in memory)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # detect command
    detect_parser = subparsers.add_parser(
        "detect",
        help="Recommend a rotation for each image",
    )
    detect_parser.add_argument(
        "image_paths",
        nargs="+",
        type=str,
        help="Paths to the scanned images",
    )
    detect_parser.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        default=None,
        help="Format the scans will be saved as (default: from config, png)",
    )
    detect_parser.add_argument(
        "--language",
        type=str,
        help="Recognizer language tag for this run only (not persisted)",
    )
    detect_parser.add_argument(
        "--min-text-length",
        type=int,
        default=None,
        help="Characters the best rotation must reach (default: 50)",
    )
    detect_parser.add_argument(
        "--apply",
        action="store_true",
        help="Write corrected copies of the images",
    )
    detect_parser.add_argument(
        "--output-dir",
        type=str,
        help="Directory for corrected images (default: next to each input)",
    )
    detect_parser.add_argument(
        "--output",
        "-o",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)",
    )

    # languages command
    languages_parser = subparsers.add_parser(
        "languages",
        help="List installed recognizer languages",
    )
    languages_parser.add_argument(
        "--output",
        "-o",
        choices=["json", "text"],
        default="text",
        help="Output format (default: text)",
    )

    # set-language command
    set_language_parser = subparsers.add_parser(
        "set-language",
        help="Persist the recognizer language preference",
    )
    set_language_parser.add_argument(
        "language",
        type=str,
        help="Language tag (e.g. en-US) or index from 'languages'",
    )

    return parser


def create_factory(config: AutoRotateConfig) -> RecognizerFactory:
    """Build the recognition factory for a CLI run."""
    return TesseractRecognizerFactory.from_settings(config.recognition)


def load_config(args) -> AutoRotateConfig:
    """Load config from --config, with --settings taking precedence."""
    config = AutoRotateConfig.from_yaml(args.config) if args.config else AutoRotateConfig()
    if args.settings:
        config.settings_path = args.settings
    if getattr(args, "min_text_length", None) is not None:
        config.min_text_length = args.min_text_length
        config._validate()
    return config


def build_service(args, config: AutoRotateConfig) -> AutoRotatorService:
    """Create the service for a CLI run."""
    if getattr(args, "language", None) and args.command == "detect":
        # One-off language: start from a throwaway copy of the settings
        settings = SettingsStore(defaults=SettingsStore(config.settings_path).to_dict())
        settings.set(AppSetting.AUTO_ROTATE_LANGUAGE, args.language)
    else:
        settings = SettingsStore(config.settings_path)

    return AutoRotatorService(settings, factory=create_factory(config), config=config)


def corrected_path(image_path: Path, output_dir: Optional[str]) -> Path:
    """Where --apply writes the corrected copy of an image."""
    directory = Path(output_dir) if output_dir else image_path.parent
    return directory / f"{image_path.stem}_upright{image_path.suffix}"


def cmd_detect(args, service: AutoRotatorService) -> int:
    """Handle detect command."""
    image_paths = [Path(p) for p in args.image_paths]
    missing = [p for p in image_paths if not p.exists()]
    if missing:
        for path in missing:
            print(f"Error: Image not found: {path}", file=sys.stderr)
        return 1

    output_format = args.format or service.config.output_format
    results = []

    for image_path in image_paths:
        result = asyncio.run(service.evaluate(image_path, output_format))
        entry = {"image": str(image_path), **result.to_dict()}

        if args.apply and result.needs_rotation:
            image = cv2.imread(str(image_path))
            if image is None:
                print(f"Error: Could not load image: {image_path}", file=sys.stderr)
                return 1
            target = corrected_path(image_path, args.output_dir)
            target.parent.mkdir(parents=True, exist_ok=True)
            if not cv2.imwrite(str(target), correct_orientation(image, result)):
                print(f"Error: Could not write image: {target}", file=sys.stderr)
                return 1
            entry["corrected_path"] = str(target)

        results.append(entry)

    language = service.current_language
    if args.output == "json":
        output = {
            "language": language.to_dict() if language else None,
            "results": results,
        }
        print(json.dumps(output, indent=2))
    else:
        if language is None:
            print("Auto-rotation unavailable: no recognizer language could be loaded")
        for entry in results:
            line = f"{entry['image']}: {entry['degrees']}° ({entry['reason']})"
            if "corrected_path" in entry:
                line += f" -> {entry['corrected_path']}"
            print(line)

    return 0


def cmd_languages(args, service: AutoRotatorService) -> int:
    """Handle languages command."""
    languages = service.available_languages
    default = service.default_language
    current = service.current_language

    if args.output == "json":
        output = {
            "available": [language.to_dict() for language in languages],
            "default": default.to_dict() if default else None,
            "current": current.to_dict() if current else None,
        }
        print(json.dumps(output, indent=2))
        return 0

    if not languages:
        print("No recognizer languages installed")
    for index, language in enumerate(languages):
        markers = []
        if current is not None and language.tag == current.tag:
            markers.append("current")
        if default is not None and language.tag == default.tag:
            markers.append("default")
        suffix = f" [{', '.join(markers)}]" if markers else ""
        print(f"{index:3d}  {language.tag:<12} {language.display_name}{suffix}")

    return 0


def cmd_set_language(args, service: AutoRotatorService) -> int:
    """Handle set-language command."""
    selection = int(args.language) if args.language.isdigit() else args.language
    service.select_language(selection)

    current = service.current_language
    if current is None:
        print("Auto-rotation unavailable: no recognizer language could be loaded")
        return 1

    if current.tag.lower() != str(args.language).lower() and not isinstance(selection, int):
        print(f"Language {args.language!r} unavailable, using {current.tag}")
    else:
        print(f"Using {current.tag} ({current.display_name})")
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if not provided)

    Returns:
        Exit code (0 for success)
    """
    parser = setup_argparse()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    # Configure logging
    log_level = logging.DEBUG if parsed.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        config = load_config(parsed)
    except (OSError, ValueError) as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return 1

    with build_service(parsed, config) as service:
        if parsed.command == "detect":
            return cmd_detect(parsed, service)
        if parsed.command == "languages":
            return cmd_languages(parsed, service)
        if parsed.command == "set-language":
            return cmd_set_language(parsed, service)

    return 0


if __name__ == "__main__":
    sys.exit(main())
