"""
Command-line interface for vcon-wtf.

Subcommands:
- vcon-wtf serve: run the HTTP API under uvicorn
- vcon-wtf transcribe: transcribe one vCon file and print the enriched document
- vcon-wtf providers: list ASR backends (optionally probing their health)

Configuration comes from the environment (see ``ServerConfig.from_env``);
command-line flags override it.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from . import __version__
from .config import LOG_LEVELS, PROVIDER_IDS, ServerConfig
from .exceptions import WtfServerError
from .providers import ProviderRegistry
from .transcription import TranscriptionOptions, transcribe_vcon
from .vcon_parser import format_validation_errors

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _python_level(level: str) -> int:
    return logging.WARNING if level.lower() == "warn" else getattr(logging, level.upper())


def configure_logging(level: str = "info") -> None:
    """Set the root log format (first call only) and level (every call)."""
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(_python_level(level))


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="vcon-wtf",
        description="Transcribe vCon audio dialogs into WTF analysis entries.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ============================================================================
    # serve subcommand
    # ============================================================================
    p_serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    p_serve.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0).")
    p_serve.add_argument(
        "--port", type=int, default=None, help="Listen port (default: PORT or 3000)."
    )
    p_serve.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Log level (default: LOG_LEVEL or info).",
    )

    # ============================================================================
    # transcribe subcommand
    # ============================================================================
    p_trans = subparsers.add_parser("transcribe", help="Transcribe a single vCon file.")
    p_trans.add_argument("file", type=Path, help="Path to a vCon JSON document.")
    p_trans.add_argument(
        "--provider",
        choices=PROVIDER_IDS,
        default=None,
        help="ASR backend (default: ASR_PROVIDER or nvidia).",
    )
    p_trans.add_argument("--model", default=None, help="Backend model override.")
    p_trans.add_argument("--language", default=None, help="BCP-47 language tag, e.g. en-US.")
    p_trans.add_argument(
        "--no-word-timestamps",
        dest="word_timestamps",
        action="store_false",
        help="Do not request word-level timestamps.",
    )
    p_trans.add_argument(
        "--speaker-diarization",
        action="store_true",
        help="Request speaker diarization.",
    )
    p_trans.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the enriched vCon here instead of stdout.",
    )

    # ============================================================================
    # providers subcommand
    # ============================================================================
    p_prov = subparsers.add_parser("providers", help="List ASR backends.")
    p_prov.add_argument(
        "--check",
        action="store_true",
        help="Probe the health of every configured backend.",
    )

    return parser


def _handle_serve(args: argparse.Namespace, config: ServerConfig) -> int:
    import uvicorn

    from .service import create_app

    overrides = {
        key: value
        for key, value in (("host", args.host), ("port", args.port), ("log_level", args.log_level))
        if value is not None
    }
    config = dataclasses.replace(config, **overrides)
    configure_logging(config.log_level)

    uvicorn_level = "warning" if config.log_level == "warn" else config.log_level
    uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=uvicorn_level)
    return 0


def _handle_transcribe(args: argparse.Namespace, config: ServerConfig) -> int:
    try:
        document = json.loads(args.file.read_text(encoding="utf-8"))
    except OSError as e:
        print(f"Error: cannot read {args.file}: {e}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: {args.file} is not valid JSON: {e}", file=sys.stderr)
        return 1

    options = TranscriptionOptions(
        provider=args.provider,
        model=args.model,
        language=args.language,
        word_timestamps=args.word_timestamps,
        speaker_diarization=args.speaker_diarization,
    )
    registry = ProviderRegistry(config)
    result = asyncio.run(transcribe_vcon(document, options, registry=registry))

    if not result.success:
        print(f"Error: {result.error} ({result.reason.value})", file=sys.stderr)
        if result.details:
            print(format_validation_errors(result.details), file=sys.stderr)
        return 1

    output = json.dumps(result.vcon, indent=2, ensure_ascii=False)
    if args.output is not None:
        args.output.write_text(output + "\n", encoding="utf-8")
        print(f"[done] Wrote {args.output}", file=sys.stderr)
    else:
        print(output)

    stats = result.stats
    print(
        f"[stats] processed={stats.dialogs_processed} skipped={stats.dialogs_skipped} "
        f"failed={stats.dialogs_failed} provider={stats.provider} "
        f"time={stats.total_processing_time_ms:.0f}ms",
        file=sys.stderr,
    )
    return 0


def _handle_providers(args: argparse.Namespace, config: ServerConfig) -> int:
    registry = ProviderRegistry(config)
    for name in PROVIDER_IDS:
        provider = registry.get(name)
        marker = "*" if name == registry.default_provider else " "
        state = "configured" if provider.is_configured() else "not configured"
        print(f"{marker} {name:<14} {provider.model:<32} {state}")

    if not args.check:
        return 0

    report = asyncio.run(registry.health_report())
    print()
    for name, health in report.items():
        suffix = f" ({health.message})" if health.message else ""
        print(f"  {name:<14} {health.status}{suffix}")
    return 0 if all(h.is_ok for h in report.values()) else 1


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main CLI entry point.

    Returns:
        0 on success, 1 on a handled failure, 2 on unexpected error.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ServerConfig.from_env()
        configure_logging(config.log_level)

        if args.command == "serve":
            return _handle_serve(args, config)
        if args.command == "transcribe":
            return _handle_transcribe(args, config)
        if args.command == "providers":
            return _handle_providers(args, config)
        parser.error(f"Unknown command: {args.command}")

    except WtfServerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except Exception as e:
        logger.debug("Unexpected CLI failure", exc_info=True)
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
