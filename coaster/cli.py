"""Command-line entry point: ``gcode-coast``.

Examples::

    gcode-coast --coast 1.0 --prime-pillar-coast 0.5 --file part.gcode
    gcode-coast --file part.gcode --workers 4 --backup --overwrite
    gcode-coast --profile my_printer.yaml --file part.gcode --verbose

Settings precedence: packaged defaults < ``--profile`` YAML < flags.

Exit codes:
    0  success
    1  a worker or the scratch directory failed
    2  bad configuration or missing input file
"""

from __future__ import annotations

import argparse
import logging
import sys
import uuid
from typing import Any

from coaster import TOOL_NAME, __version__
from coaster.configs.loader import ConfigError, load_config
from coaster.dispatch.coordinator import WorkerFailure
from coaster.pipeline import InputNotFoundError, coast_file
from coaster.utils.fs import ScratchAreaError
from coaster.utils.logging_config import install_excepthook, setup_logging, shutdown

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gcode-coast",
        description="Stop extrusion a set distance before the end of each KISSlicer path",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output:
  <file>_out next to the input, or the input itself with --overwrite.
  Every line is CRLF-terminated; a header with the settings used and a
  trailing block of coasted/skipped counts are added.

Examples:
  gcode-coast --coast 1.0 --prime-pillar-coast 0.5 --file part.gcode
  gcode-coast --file part.gcode --workers 4 --backup --overwrite
""",
    )

    parser.add_argument(
        "--file",
        required=True,
        help="G-code file to coast",
    )

    # Coasting
    parser.add_argument(
        "--coast",
        type=float,
        help="Coast distance before a destring, mm (0-100)",
    )
    parser.add_argument(
        "--prime-pillar-coast",
        "--primePillarCoast",
        dest="prime_pillar_coast",
        type=float,
        help="Coast distance on prime pillar paths, mm (0-100)",
    )
    parser.add_argument(
        "--min-extrusion",
        "--minExtrusionLength",
        dest="min_extrusion",
        type=float,
        help="Printed length always kept on a coasted path, mm",
    )

    # Dispatch
    parser.add_argument(
        "--workers",
        "--processes",
        dest="workers",
        type=int,
        help="Number of parallel workers (1-128, 1 = single pass)",
    )
    parser.add_argument(
        "--executor",
        choices=("process", "thread"),
        help="Worker pool flavour (default: process)",
    )

    # Output
    parser.add_argument(
        "--backup",
        action="store_true",
        default=None,
        help="Copy the input to <file>_backup first",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        default=None,
        help="Write over the input instead of <file>_out",
    )
    parser.add_argument(
        "--keep-intermediate",
        action="store_true",
        default=None,
        help="Keep the per-chunk scratch directory of a parallel run",
    )

    # Configuration and logging
    parser.add_argument(
        "--profile",
        help="Coast profile YAML (default: packaged coast.yaml)",
    )
    parser.add_argument(
        "--log-file",
        help="Also write logs to this file",
    )
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Write the log file as JSON lines",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every path decision (DEBUG)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{TOOL_NAME} {__version__}",
    )
    return parser


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Map parsed flags onto the profile structure; unset flags stay ``None``."""
    return {
        "coast": {
            "coast_distance_mm": args.coast,
            "prime_pillar_coast_distance_mm": args.prime_pillar_coast,
            "min_extrusion_length_mm": args.min_extrusion,
        },
        "dispatch": {
            "worker_count": args.workers,
            "executor": args.executor,
        },
        "output": {
            "backup": args.backup,
            "overwrite": args.overwrite,
            "keep_intermediate_artifacts": args.keep_intermediate,
        },
    }


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    args = build_parser().parse_args(argv)

    setup_logging(
        log_level="DEBUG" if args.verbose else "INFO",
        log_file=args.log_file,
        json=args.json_log,
        context={"run": uuid.uuid4().hex[:8]},
    )
    install_excepthook()

    try:
        profile = load_config(args.profile, overrides_from_args(args))
        output = coast_file(args.file, profile)
    except (ConfigError, InputNotFoundError, FileNotFoundError) as exc:
        # FileNotFoundError here is a missing --profile
        logger.error("%s", exc)
        return 2
    except (WorkerFailure, ScratchAreaError) as exc:
        logger.error("%s", exc)
        return 1
    finally:
        shutdown()

    print(f"Coasted program written to {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
