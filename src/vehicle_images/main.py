"""Main module for the vehicle images CLI."""

import argparse
import json
import sys
from typing import List, Optional

from . import __version__
from .core.exceptions import VehicleImagesError
from .core.factories import ImagePipelineFactory, ImageServices
from .core.logging_config import get_logger
from .core.settings import ServiceSettings


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``vehicle-images`` command."""
    parser = argparse.ArgumentParser(
        prog="vehicle-images",
        description="Vehicle Images - normalize, watermark and serve dealership photos",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Re-apply resize and watermark to every vehicle photo
  vehicle-images reprocess --workers 4

  # Process an uploaded object and attach it to a vehicle
  vehicle-images ingest --upload-url https://s3.example.com/vehicle-images/uploads/abc \\
                        --vehicle-id 42

  # Issue a presigned upload URL
  vehicle-images upload-url
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    reprocess_parser = subparsers.add_parser(
        "reprocess", help="Reprocess all images referenced by vehicles"
    )
    reprocess_parser.add_argument(
        "--workers", type=int, default=None, help="Worker threads (default: BATCH_WORKERS)"
    )
    reprocess_parser.add_argument(
        "--db", default=None, help="SQLite vehicle database (default: VEHICLE_DB_PATH)"
    )
    reprocess_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    ingest_parser = subparsers.add_parser(
        "ingest", help="Process an uploaded image and optionally attach it to a vehicle"
    )
    ingest_parser.add_argument("--upload-url", required=True, help="URL the image was uploaded to")
    ingest_parser.add_argument("--vehicle-id", default=None, help="Vehicle to attach the image to")
    ingest_parser.add_argument(
        "--db", default=None, help="SQLite vehicle database (default: VEHICLE_DB_PATH)"
    )
    ingest_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("upload-url", help="Issue a presigned upload URL for a new image")
    subparsers.add_parser("version", help="Show version information")

    return parser


def _load_services(args: argparse.Namespace) -> ImageServices:
    settings = ServiceSettings.from_env()
    overrides = {}
    if getattr(args, "debug", False):
        overrides["log_level"] = "DEBUG"
    if getattr(args, "workers", None):
        overrides["batch_workers"] = max(1, args.workers)
    if getattr(args, "db", None):
        overrides["vehicle_db_path"] = args.db
    if overrides:
        settings = settings.model_copy(update=overrides)
    return ImagePipelineFactory.create_services(settings=settings)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the ``vehicle-images`` command-line interface.

    Prints JSON results to stdout and exits non-zero on pipeline errors.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = get_logger("vehicle-images.cli")

    if args.command == "version":
        print("Vehicle Images CLI")
        print(f"Version {__version__}")
        sys.exit(0)
        return

    if args.command not in ("reprocess", "ingest", "upload-url"):
        parser.print_help()
        sys.exit(1)
        return

    try:
        services = _load_services(args)

        if args.command == "reprocess":
            report = services.reprocessor.reprocess_all()
            print(json.dumps(report.model_dump(by_alias=True)))
        elif args.command == "ingest":
            path = services.ingestion.ingest_upload(args.upload_url, args.vehicle_id)
            print(json.dumps({"normalizedPath": path}))
        else:
            upload_url, ref = services.ingestion.issue_upload_url()
            print(
                json.dumps(
                    {"uploadURL": upload_url, "normalizedPath": services.scheme.path_for(ref)}
                )
            )
    except KeyboardInterrupt:
        logger.warning("Interrupted by user.")
        sys.exit(130)
    except VehicleImagesError as e:
        logger.error(f"{args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
