"""CLI entrypoint for check-links."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config
from .errors import ConfigError, NoInputError
from .logging import configure_logging
from .orchestrator import EXIT_FATAL, LinkChecker, exit_code
from .report import ReportRenderer


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="check-links",
        description="Check the links in your project's documentation.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="File or directory to check (defaults to current directory).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="List passing links in the report; repeat (-vv) for debug logging.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=False,
        help="Only log warnings and errors; the report is still printed.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug logs to this file.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a .checklinks.yml file (defaults to the one in PATH).",
    )
    parser.add_argument(
        "-d",
        "--depth",
        type=int,
        default=None,
        help="Set the maximum directory depth to recurse.",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Report format written to stdout.",
    )
    parser.add_argument("--concurrency", type=int, default=None, help="Maximum parallel checks.")
    parser.add_argument(
        "--timeout", type=float, default=None, help="Per-request timeout in seconds."
    )
    parser.add_argument(
        "--run-timeout",
        type=float,
        default=None,
        help="Deadline for the whole run; unchecked links are reported as skipped.",
    )
    parser.add_argument("--max-retries", type=int, default=None, help="Retries for transient failures.")
    parser.add_argument(
        "--per-host-interval",
        type=float,
        default=None,
        help="Minimum seconds between two requests to the same host.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        default=None,
        help="Only check local links; skip every HTTP link.",
    )
    parser.add_argument(
        "--strict-fragments",
        action="store_true",
        default=None,
        help="Count links whose #fragment cannot be found as broken.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for check-links."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=args.verbose >= 2, quiet=bool(args.quiet), log_file=args.log_file
    )

    target = Path(args.path)
    try:
        config = load_config(args.config or target)
        config = config.merged(
            max_depth=args.depth,
            concurrency=args.concurrency,
            request_timeout=args.timeout,
            run_timeout=args.run_timeout,
            max_retries=args.max_retries,
            per_host_interval=args.per_host_interval,
            offline=args.offline,
            strict_fragments=args.strict_fragments,
        )
        report = LinkChecker(config).check_path(target)
    except (ConfigError, NoInputError, FileNotFoundError) as exc:
        parser.exit(EXIT_FATAL, f"check-links: {exc}\n")

    renderer = ReportRenderer(base=Path.cwd())
    sys.stdout.write(renderer.render(report, fmt=args.format, verbose=args.verbose >= 1))
    if args.format == "json":
        sys.stdout.write("\n")
    parser.exit(exit_code(report))


if __name__ == "__main__":
    main(sys.argv[1:])
