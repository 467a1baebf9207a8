"""
Command line entry point for MovSense inventory detection.

Usage:
  movsense-inventory detect https://.../1.jpg https://.../2.jpg --bedrooms 2 --out inventory.json
  movsense-inventory detect photos.txt --whole-photo
  movsense-inventory estimate inventory.json mapping.json --crew 3 --rate 55 --stairs

`detect` accepts photo URLs directly or text files with one URL per line.
`estimate` accepts either a detection list or a saved `detect` result.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError as ModelValidationError

from movsense.config.settings import settings
from movsense.config.errors import ErrorCode, MovSenseError, ValidationError
from movsense.models.detection import Detection
from movsense.models.estimate import EstimateParams, load_mapping_table
from movsense.models.property import PropertyContext
from movsense.services.estimate_calculator import calculate_estimate
from movsense.services.model_client import ModelClient
from movsense.services.pipeline import InventoryPipeline
from movsense.services.reconciliation import fill_physical_estimates

EXIT_INPUT_ERROR = 2


def configure_logging(level: Optional[str] = None) -> None:
    level = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


def _read_json(path: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Cannot read JSON from {path}: {e}", field=path, code=ErrorCode.INVALID_FIELD)


def collect_photo_refs(sources: List[str]) -> List[str]:
    """Expand arguments into photo references. Existing files are read line by line."""
    refs: List[str] = []
    for source in sources:
        if os.path.isfile(source):
            with open(source, "r", encoding="utf-8") as f:
                refs.extend(line.strip() for line in f if line.strip() and not line.startswith("#"))
        else:
            refs.append(source)
    return refs


def load_detections(data: Any) -> List[Detection]:
    """Accept a bare detection list or a saved inventory result."""
    if isinstance(data, dict):
        data = data.get("detections", [])
    if not isinstance(data, list):
        raise ValidationError("Expected a list of detections", field="detections", code=ErrorCode.INVALID_FIELD)
    return fill_physical_estimates(data)


def _write_output(payload: Dict[str, Any], out_path: Optional[str]) -> None:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if out_path:
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Wrote {out_path}")
    else:
        print(text)


async def _run_detect(args: argparse.Namespace) -> Dict[str, Any]:
    settings.validate()
    photos = collect_photo_refs(args.photos)
    context = PropertyContext(
        bedrooms=args.bedrooms,
        bathrooms=args.bathrooms,
        sqft=args.sqft,
        property_type=args.property_type,
    )
    pipeline = InventoryPipeline(client=ModelClient())
    if args.whole_photo:
        result = await pipeline.run_whole_photo(photos, context)
    else:
        result = await pipeline.run(photos, context)
    return result.to_api_dict()


def _run_estimate(args: argparse.Namespace) -> Dict[str, Any]:
    detections = load_detections(_read_json(args.detections))
    mapping_data = _read_json(args.mapping)
    if not isinstance(mapping_data, dict):
        raise ValidationError("Mapping table must be a JSON object", field="mapping", code=ErrorCode.INVALID_FIELD)

    params = EstimateParams(
        crew=args.crew,
        rate=args.rate,
        travel_mins=args.travel_mins,
        stairs=args.stairs,
        elevator=args.elevator,
        wrapping=args.wrapping,
        safety_pct=args.safety_pct,
    )
    return calculate_estimate(detections, load_mapping_table(mapping_data), params).to_api_dict()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="movsense-inventory",
        description="Detect a moving inventory from property photos and price it",
    )
    parser.add_argument("--log-level", required=False, help="Overrides LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    detect = subparsers.add_parser("detect", help="Detect furniture in property photos")
    detect.add_argument("photos", nargs="+", help="Photo URLs, or files listing one URL per line")
    detect.add_argument("--bedrooms", type=int, required=False)
    detect.add_argument("--bathrooms", type=float, required=False)
    detect.add_argument("--sqft", type=int, required=False)
    detect.add_argument("--property-type", default="SINGLE_FAMILY")
    detect.add_argument(
        "--whole-photo",
        action="store_true",
        help="Skip room classification and analyze each photo independently",
    )
    detect.add_argument("--out", required=False, help="Output file path (defaults to stdout)")

    estimate = subparsers.add_parser("estimate", help="Price a detected inventory")
    estimate.add_argument("detections", help="JSON file with detections or a saved detect result")
    estimate.add_argument("mapping", help="JSON file mapping labels to {cubicFeet, minutes, requiresWrap}")
    estimate.add_argument("--crew", type=int, default=2)
    estimate.add_argument("--rate", type=float, default=0.0, help="Hourly rate per crew member")
    estimate.add_argument("--travel-mins", type=float, default=0.0)
    estimate.add_argument("--stairs", action="store_true")
    estimate.add_argument("--elevator", action="store_true")
    estimate.add_argument("--wrapping", action="store_true")
    estimate.add_argument("--safety-pct", type=float, default=0.0)
    estimate.add_argument("--out", required=False, help="Output file path (defaults to stdout)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.command == "detect":
            payload = asyncio.run(_run_detect(args))
        else:
            payload = _run_estimate(args)
    except ValidationError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return EXIT_INPUT_ERROR
    except (ModelValidationError, ValueError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except MovSenseError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 1

    _write_output(payload, args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
