"""
kustokit command line.

Usage:
    # Review the changes for a database across all registered clusters
    kustokit --mode diff --path deployments --cluster prod --db Telemetry

    # Apply them
    kustokit --mode apply --path deployments --cluster prod --db Telemetry

    # Write the live state of the first cluster to YAML
    kustokit --mode import --path deployments --cluster prod --db Telemetry --include-columns

    # Compare the declared capacity policy with the live clusters
    kustokit --mode cluster-diff --path deployments --cluster prod

Diff output is written as ``diff=<json>`` to the file named by
``GITHUB_OUTPUT`` when it is set, and printed otherwise. The exit code is 0
for a valid run and 2 otherwise.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from kustokit.config import EngineSettings
from kustokit.models import RunMode
from kustokit.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 2


def write_output(report: str, valid: bool) -> None:
    """Publish a report for the calling workflow."""
    payload = json.dumps({"markDown": report, "isValid": valid})
    output_file = os.getenv("GITHUB_OUTPUT")
    if output_file:
        logger.info(f"Using the output file: {output_file}")
        with open(output_file, "a", encoding="utf-8") as f:
            f.write(f"diff={payload}\n")
    else:
        print(report)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Reconcile Kusto databases with their YAML definitions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mode",
        "-m",
        required=True,
        choices=["diff", "apply", "import", "cluster-diff"],
        help="What to do",
    )
    parser.add_argument(
        "--path",
        "-p",
        type=Path,
        required=True,
        help="Base path of all deployments",
    )
    parser.add_argument(
        "--cluster",
        "-c",
        required=True,
        help="Deployment folder below the base path",
    )
    parser.add_argument(
        "--db",
        "-d",
        help="Database folder below the deployment (not needed for cluster-diff)",
    )
    parser.add_argument(
        "--include-columns",
        "-i",
        action="store_true",
        help="Keep table columns on import",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    deployment = args.path / args.cluster
    if args.mode != "cluster-diff" and not args.db:
        logger.error(f"--db is required in {args.mode} mode")
        return EXIT_FAILED

    orchestrator = Orchestrator(settings=EngineSettings.from_env())
    try:
        if args.mode == "import":
            path = orchestrator.import_database(deployment, args.db, args.include_columns)
            print(f"Imported {args.db} to {path}")
            return EXIT_OK
        if args.mode == "cluster-diff":
            report, valid = orchestrator.diff_clusters(deployment)
        else:
            report, valid = orchestrator.run(deployment, args.db, RunMode(args.mode))
    except Exception as e:
        logger.error(f"Failed to run {args.mode}: {e}")
        return EXIT_FAILED

    write_output(report, valid)
    return EXIT_OK if valid else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
