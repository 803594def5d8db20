"""Command-line entry point: upload a video and stream its analysis.

Usage:
    media-client VIDEO [--prompt TEXT] [--model NAME]

Logs go to stderr as structured JSON; analysis text goes to stdout.
SIGINT/SIGTERM cancel the in-flight upload or stream.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from media_client.analysis.prompts import INITIAL_ANALYSIS_PROMPT
from media_client.config import ClientConfig
from media_client.observability.logger import setup_logging
from media_client.retry.executor import RetryExecutor
from media_client.service import MediaAnalysisService
from media_client.utils.errors import MediaClientError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="media-client",
        description="Upload a video and stream its analysis.",
    )
    parser.add_argument("video", help="Path to the local video file")
    parser.add_argument("--prompt", default=INITIAL_ANALYSIS_PROMPT, help="Analysis prompt")
    parser.add_argument("--model", default=None, help="Model name (default: GEMINI_MODEL)")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    return parser.parse_args(argv)


def _print_progress(fraction: float) -> None:
    sys.stderr.write(f"\rUploading: {fraction * 100:5.1f}%")
    if fraction >= 1.0:
        sys.stderr.write("\n")
    sys.stderr.flush()


async def _run(
    service: MediaAnalysisService, video: str, prompt: str, executor: RetryExecutor
) -> int:
    """Upload and analyze one video, cancelling on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()

    def _shutdown() -> None:
        logger.info("Received shutdown signal")
        executor.cancel()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _shutdown)

    try:
        reference = await service.upload_video(
            video, _print_progress, executor=executor
        )
        async for chunk in service.analyze_video(reference, prompt, executor=executor):
            sys.stdout.write(chunk.text)
            sys.stdout.flush()
        sys.stdout.write("\n")
    except MediaClientError as exc:
        if exc.silent:
            return EXIT_CANCELLED
        sys.stderr.write(f"{exc.user_message}\n")
        logger.error("Run failed: %s", exc, extra={"error": type(exc).__name__})
        return EXIT_FAILED
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
    return EXIT_OK


async def _main_async(args: argparse.Namespace) -> int:
    config = ClientConfig.from_env(model=args.model)
    executor = RetryExecutor(name="media-client")
    async with MediaAnalysisService(config=config) as service:
        return await _run(service, args.video, args.prompt, executor)


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the upload and analysis, return the exit code."""
    args = _parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)
    return asyncio.run(_main_async(args))


if __name__ == "__main__":
    sys.exit(main())
