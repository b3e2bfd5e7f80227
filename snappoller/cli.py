"""CLI entrypoints for snappoller commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .directory import DirectoryError
from .errors import PollerError
from .logging import configure_logging
from .models import FAILED, NEEDSBUILD, SKIPPED, UNCHANGED
from .runtime import build_runtime


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=".",
        help="Path to .snappoller.yml or the directory containing it.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snappoller",
        description="Rebuild snaps whose repository or git parts changed since the last build.",
    )
    _add_verbose_option(parser)
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    poll_parser = subparsers.add_parser(
        "poll",
        help="Run one poll cycle over every tracked repository.",
    )
    _add_verbose_option(poll_parser, suppress_default=True)
    _add_config_option(poll_parser)
    poll_parser.add_argument(
        "--wait",
        action="store_true",
        help="Wait for a running cycle to finish instead of skipping.",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Check a single repository and its parts for changes.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_config_option(check_parser)
    check_parser.add_argument("owner", help="Repository owner.")
    check_parser.add_argument("name", help="Repository name.")
    check_parser.add_argument(
        "--since",
        required=True,
        help="Watermark: ISO-8601 timestamp or epoch milliseconds.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service so an external scheduler can trigger polls.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_config_option(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for snappoller commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "serve":
        from .service import run_service

        run_service(args.host, args.port, config_path=Path(args.config))
        return

    try:
        config = load_config(Path(args.config))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    runtime = build_runtime(config)

    if args.command == "poll":
        try:
            cycle = runtime.build_cycle()
            report = cycle.run(blocking=bool(getattr(args, "wait", False)))
        except (ConfigError, DirectoryError) as exc:
            parser.exit(1, f"snappoller poll failed: {exc}\n")
        finally:
            runtime.close()
        if report is None:
            print("Another poll cycle is in progress; nothing to do.")
            return
        for outcome in report.outcomes:
            if outcome.status != SKIPPED:
                print(outcome.describe())
        print(
            f"{report.count(NEEDSBUILD)} needs build, {report.count(UNCHANGED)} unchanged, "
            f"{report.count(FAILED)} failed, {report.count(SKIPPED)} skipped"
        )
    elif args.command == "check":
        try:
            changed = runtime.checker.needs_build(args.owner, args.name, _watermark_arg(args.since))
        except PollerError as exc:
            parser.exit(1, f"{args.owner}/{args.name}: {FAILED} ({exc})\n")
        finally:
            runtime.close()
        print(f"{args.owner}/{args.name}: {NEEDSBUILD if changed else UNCHANGED}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _watermark_arg(value: str) -> int | str:
    stripped = value.strip()
    return int(stripped) if stripped.isdigit() else stripped


if __name__ == "__main__":
    main(sys.argv[1:])
