"""Command line entry point for syncing and translating JSON locale files.

Examples:
    json-locale-sync translate locales/en.json locales/pt-BR.json --mode missing
    json-locale-sync models --provider gemini
    json-locale-sync reset locales/en.json locales/pt-BR.json
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from common.config import settings
from common.logging_config import setup_service_logging
from common.schemas import ProgressEvent, RunPhase, TranslationMode
from translator.cancellation import CancellationToken, install_signal_handlers
from translator.error_handler import describe_translation_error
from translator.exceptions import (
    ConfigurationError,
    DocumentLoadError,
    NoWorkError,
    PersistenceError,
)
from translator.file_operations import load_translation_entries, reset_target_to_base
from translator.rate_model import get_batch_cooldown_ms
from translator.schemas import TranslationRunRequest
from translator.translation_orchestrator import TranslationOrchestrator
from translator.translation_service import fetch_gemini_models, fetch_openai_models

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NOT_STARTED = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="json-locale-sync",
        description="Keep a target JSON locale file in sync with its base file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL from the environment.",
    )
    parser.add_argument(
        "--log-file",
        action="store_true",
        help="Also write a dated log file under ./logs.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    translate = subparsers.add_parser(
        "translate", help="Translate missing or all entries of the target file."
    )
    translate.add_argument("base", help="Base (source language) JSON file.")
    translate.add_argument("target", help="Target JSON file, rewritten after every batch.")
    translate.add_argument(
        "--mode",
        choices=[mode.value for mode in TranslationMode],
        default=TranslationMode.MISSING.value,
        help=(
            "'missing' translates absent, empty or untranslated entries; "
            "'all' retranslates every text entry. Default: missing"
        ),
    )
    translate.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help=f"Keys per request. Default: {settings.translation_batch_size}",
    )
    translate.add_argument(
        "--model",
        default=None,
        help="Model override for the active provider.",
    )

    models = subparsers.add_parser("models", help="List models available to the configured keys.")
    models.add_argument(
        "--provider",
        choices=["gemini", "openai"],
        default=None,
        help="Only list models of one provider.",
    )

    reset = subparsers.add_parser("reset", help="Overwrite the target file with the base file.")
    reset.add_argument("base", help="Base JSON file.")
    reset.add_argument("target", help="Target JSON file to overwrite.")

    return parser


def print_progress(event: ProgressEvent) -> None:
    print(f"[{event.progress_percent:3d}%] {event.status_text}", flush=True)


async def run_translate(args: argparse.Namespace) -> int:
    """Run one translation and map its outcome to an exit code."""
    try:
        entries = await load_translation_entries(args.base, args.target)
        request = TranslationRunRequest.from_settings(
            settings,
            mode=args.mode,
            target_path=args.target,
            model=args.model,
            batch_size=args.batch_size,
        )
    except DocumentLoadError as e:
        print(describe_translation_error(e), file=sys.stderr)
        return EXIT_NOT_STARTED

    token = CancellationToken()
    install_signal_handlers(asyncio.get_running_loop(), token)

    print(
        f"Using {request.model} ({request.provider}), cooldown "
        f"{round(get_batch_cooldown_ms(request.model, request.min_cooldown_ms) / 1000)}s "
        f"between batches. Press Ctrl+C to stop after the current batch."
    )

    orchestrator = TranslationOrchestrator()
    try:
        result = await orchestrator.run(entries, request, token, print_progress)
    except (ConfigurationError, NoWorkError) as e:
        print(describe_translation_error(e), file=sys.stderr)
        return EXIT_NOT_STARTED

    print(
        f"Translated {len(result.translations)}/{result.candidate_count} keys in "
        f"{result.completed_batches}/{result.total_batches} batches "
        f"({result.failed_batches} skipped). Output: {result.checkpoint_path}"
    )

    if result.status == RunPhase.FAILED:
        print(result.error, file=sys.stderr)
        return EXIT_FAILED
    if result.status == RunPhase.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_OK


async def run_models(args: argparse.Namespace) -> int:
    """Print the models available to each configured key."""
    providers = [args.provider] if args.provider else ["gemini", "openai"]
    for provider in providers:
        if provider == "gemini":
            models = await fetch_gemini_models(settings.gemini_api_key)
        else:
            models = await fetch_openai_models(settings.openai_api_key)

        if not models:
            print(f"{provider}: no API key configured")
            continue
        print(f"{provider}:")
        for model in models:
            print(f"  {model}")
    return EXIT_OK


async def run_reset(args: argparse.Namespace) -> int:
    try:
        output_path = await reset_target_to_base(args.base, args.target)
    except (DocumentLoadError, PersistenceError) as e:
        print(describe_translation_error(e), file=sys.stderr)
        return EXIT_FAILED
    print(f"Reset complete: {output_path}")
    return EXIT_OK


COMMANDS = {
    "translate": run_translate,
    "models": run_models,
    "reset": run_reset,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logger = setup_service_logging(
        "cli", enable_file_logging=args.log_file, log_level=args.log_level
    )
    logger.debug(f"Running command: {args.command}")

    return asyncio.run(COMMANDS[args.command](args))


if __name__ == "__main__":
    raise SystemExit(main())
