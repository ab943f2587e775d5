"""Command-line interface for batch rendering folders of images."""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import uuid
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import yaml

from .parameters import AdjustmentParameters, PRESETS, SLIDER_FIELDS, resolve_preset
from .pipeline import (
    _process_image_worker,
    _wrap_with_progress,
    collect_images,
    ensure_output_path,
    process_single_image,
)
from .profiles import DEFAULT_PROFILE_NAME, PROCESSING_PROFILES

LOGGER = logging.getLogger("adjustment_engine")

SLIDER_HELP = {
    "brightness": "Brightness (-100 to 100)",
    "contrast": "Contrast (-100 to 100)",
    "exposure": "Exposure (-100 to 100)",
    "highlights": "Highlight recovery or boost (-100 to 100)",
    "shadows": "Shadow lift or crush (-100 to 100)",
    "whites": "White point (-100 to 100)",
    "blacks": "Black point (-100 to 100)",
    "clarity": "Local contrast; negative values soften (-100 to 100)",
    "sharpness": "Sharpening; negative values blur (-100 to 100)",
    "dehaze": "Haze removal; negative values add haze (-100 to 100)",
    "temperature": "Cool to warm (-100 to 100)",
    "tint": "Green to magenta (-100 to 100)",
    "saturation": "Saturation (-100 to 100)",
    "vibrance": "Vibrance (-100 to 100)",
    "vignette_amount": "Vignette strength (0-100)",
    "vignette_size": "Vignette size (0-100)",
    "vignette_feather": "Vignette edge softness (0-100)",
    "grain_amount": "Film grain strength (0-100)",
    "grain_size": "Film grain size (0-100)",
    "fade_amount": "Faded film look (0-100)",
}


def _load_config_data(path: Path) -> Mapping[str, Any]:
    """Load configuration from a JSON or YAML file.

    Args:
        path: Path to configuration file (.json, .yaml, or .yml).

    Returns:
        Dictionary mapping configuration keys to values.

    Raises:
        FileNotFoundError: If the configuration file doesn't exist.
        ValueError: If the file cannot be parsed or is not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(path.read_text())
        else:
            data = json.loads(path.read_text())
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValueError(f"Unable to parse configuration file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Configuration file {path} must contain a mapping of option names to values")
    return data


def _build_parser_aliases(parser: argparse.ArgumentParser) -> tuple[dict[str, argparse.Action], dict[str, str]]:
    """Map argument destinations and option spellings to parser actions."""
    dest_to_action: dict[str, argparse.Action] = {}
    alias_to_dest: dict[str, str] = {}
    actions = list(parser._get_positional_actions()) + list(parser._get_optional_actions())
    for action in actions:
        if action.dest in {argparse.SUPPRESS, "help", "config"}:
            continue
        dest_to_action[action.dest] = action
        alias_to_dest[action.dest.replace("-", "_")] = action.dest
        for option_string in action.option_strings:
            alias = option_string.lstrip("-").replace("-", "_")
            alias_to_dest[alias] = action.dest
    return dest_to_action, alias_to_dest


def _coerce_bool(value: Any, *, source: Path, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    raise ValueError(f"Invalid boolean for '{key}' in {source}: expected true/false value, got {value!r}")


def _coerce_config_value(action: argparse.Action, value: Any, *, source: Path, key: str) -> Any:
    """Convert configuration values so they match argparse expectations."""

    if value is None:
        return None

    if isinstance(action, argparse._StoreTrueAction):
        return _coerce_bool(value, source=source, key=key)

    if action.type is not None:
        try:
            converted = action.type(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid value for '{key}' in {source}: {exc}") from exc
    else:
        converted = value

    if action.choices is not None and converted not in action.choices:
        raise ValueError(
            f"Invalid value for '{key}' in {source}: {converted!r} (choose from {sorted(action.choices)})"
        )

    return converted


def default_output_folder(input_folder: Path) -> Path:
    """Return the default output folder for a given input directory."""

    if input_folder.name:
        return input_folder.parent / f"{input_folder.name}_adjusted"
    return input_folder / "adjusted_output"


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Apply non-destructive photo adjustments to a folder of images.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional configuration file (JSON, or YAML for .yaml/.yml)",
    )
    parser.add_argument("input", type=Path, help="Folder that contains source images")
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=None,
        help="Folder where rendered files will be written. Defaults to '<input>_adjusted' next to the input folder.",
    )
    parser.add_argument(
        "--preset",
        default="neutral",
        choices=sorted(PRESETS.keys()),
        help="Adjustment preset that provides a starting point",
    )
    parser.add_argument(
        "--profile",
        default=DEFAULT_PROFILE_NAME,
        choices=sorted(PROCESSING_PROFILES.keys()),
        help="Processing profile balancing fidelity and speed",
    )
    parser.add_argument(
        "--recursive",
        action="store_true",
        help="Process folders recursively and mirror the directory tree in the output",
    )
    parser.add_argument(
        "--suffix",
        default="_adjusted",
        help="Filename suffix appended before the extension for rendered files",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Allow overwriting existing files in the destination",
    )
    parser.add_argument("--dry-run", action="store_true", help="Preview the work without writing any files")
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress reporting (useful for minimal or non-interactive environments)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes for parallel image processing",
    )

    # Per-slider overrides applied on top of the preset.
    for name in SLIDER_FIELDS:
        parser.add_argument(
            f"--{name.replace('_', '-')}",
            type=float,
            default=None,
            dest=name,
            help=SLIDER_HELP[name],
        )
    parser.add_argument("--grain-seed", type=int, default=None, dest="grain_seed", help="Seed for the grain noise")

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )

    argv_list = list(argv) if argv is not None else None

    config_probe, _ = parser.parse_known_args(argv_list)
    if config_probe.config is not None:
        try:
            raw_config = _load_config_data(config_probe.config)
            dest_to_action, alias_to_dest = _build_parser_aliases(parser)

            converted_defaults: dict[str, Any] = {}
            for key, value in raw_config.items():
                if not isinstance(key, str):
                    raise ValueError("Configuration keys must be strings")
                dest = alias_to_dest.get(key.replace("-", "_"))
                if dest is None:
                    raise ValueError(f"Unknown configuration option '{key}' in {config_probe.config}")
                action = dest_to_action[dest]
                converted_defaults[dest] = _coerce_config_value(
                    action, value, source=config_probe.config, key=key
                )

            parser.set_defaults(**converted_defaults)
        except (OSError, ValueError) as exc:
            parser.error(str(exc))

    args = parser.parse_args(argv_list)
    if args.workers < 1:
        parser.error("--workers must be a positive integer")
    if args.output is None:
        args.output = default_output_folder(args.input)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s: %(message)s")
    return args


def build_parameters(args: argparse.Namespace) -> AdjustmentParameters:
    """Construct adjustment parameters from the preset and CLI overrides."""
    base = resolve_preset(args.preset)
    overrides = {
        field.name: getattr(args, field.name)
        for field in dataclasses.fields(base)
        if getattr(args, field.name, None) is not None
    }
    params = dataclasses.replace(base, **overrides)
    LOGGER.debug("Using parameters: %s", params)
    return params


def _ensure_non_overlapping(input_root: Path, output_root: Path) -> None:
    if output_root.is_relative_to(input_root) or input_root.is_relative_to(output_root):
        raise SystemExit(
            f"Input folder {input_root} and output folder {output_root} must not overlap; "
            "choose separate directories."
        )


def run_pipeline(args: argparse.Namespace) -> int:
    """Render every image of the input folder and return the number written."""

    run_id = uuid.uuid4().hex
    params = build_parameters(args)
    profile = PROCESSING_PROFILES[args.profile]
    input_root = args.input.resolve()
    output_root = args.output.resolve()

    if not input_root.is_dir():
        raise SystemExit(f"Input folder '{input_root}' does not exist or is not a directory")

    _ensure_non_overlapping(input_root, output_root)

    LOGGER.info("Starting batch run %s for %s using '%s' profile", run_id, input_root, profile.name)
    images = list(collect_images(input_root, args.recursive))
    if not images:
        LOGGER.warning("No images found in %s (run %s)", input_root, run_id)
        return 0

    if not args.dry_run:
        output_root.mkdir(parents=True, exist_ok=True)

    LOGGER.info("Found %s image(s) to process", len(images))
    processed = 0
    workers = getattr(args, "workers", 1)
    show_progress = not getattr(args, "no_progress", False)

    if workers <= 1:
        for image_path in _wrap_with_progress(
            images, total=len(images), description="Rendering images", enabled=show_progress
        ):
            destination = ensure_output_path(
                input_root, output_root, image_path, args.suffix, args.recursive, create=not args.dry_run
            )
            if destination.exists() and not args.overwrite and not args.dry_run:
                LOGGER.warning("Skipping %s (exists, use --overwrite to replace)", destination)
                continue
            if args.dry_run:
                LOGGER.info("Dry run: would process %s -> %s", image_path, destination)
            if process_single_image(image_path, destination, params, dry_run=args.dry_run, profile=profile):
                processed += 1
    else:
        progress_iterator = iter(
            _wrap_with_progress(
                range(len(images)), total=len(images), description="Rendering images", enabled=show_progress
            )
        )

        def advance_progress() -> None:
            next(progress_iterator, None)

        futures = []
        with ProcessPoolExecutor(max_workers=workers) as executor:
            for image_path in images:
                destination = ensure_output_path(
                    input_root, output_root, image_path, args.suffix, args.recursive, create=not args.dry_run
                )
                if destination.exists() and not args.overwrite and not args.dry_run:
                    LOGGER.warning("Skipping %s (exists, use --overwrite to replace)", destination)
                    advance_progress()
                    continue
                if args.dry_run:
                    LOGGER.info("Dry run: would process %s -> %s", image_path, destination)
                futures.append(
                    executor.submit(
                        _process_image_worker,
                        image_path,
                        destination,
                        params,
                        profile=profile,
                        dry_run=args.dry_run,
                    )
                )

            for future in as_completed(futures):
                try:
                    wrote_output = future.result()
                finally:
                    advance_progress()
                if wrote_output:
                    processed += 1

    LOGGER.info("Finished batch run %s; processed %s image(s)", run_id, processed)
    return processed


def main(argv: Optional[Iterable[str]] = None) -> None:
    args = parse_args(argv)
    run_pipeline(args)


__all__ = [
    "build_parameters",
    "default_output_folder",
    "main",
    "parse_args",
    "run_pipeline",
]
