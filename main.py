#!/usr/bin/env python3
"""
audiogist - turn a long audio episode into a short spoken summary
Main entry point
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Ensure the package can be imported when run directly
sys.path.insert(0, str(Path(__file__).parent))

from audiogist.app import create_pipeline
from audiogist.errors import AudioGistError
from audiogist.models import ProcessingStatus
from audiogist.utils.cancellation import CancellationToken
from audiogist.utils.logging import get_logger, setup_logging

logger = get_logger("audiogist.main")

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def parse_arguments(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="audiogist",
        description="Download, transcribe, summarize and narrate an audio episode",
    )
    parser.add_argument('source', help='Episode URL, or the cache key of an episode processed before')
    parser.add_argument('--json', action='store_true', help='Print progress as JSON lines')
    parser.add_argument('--log-file', default='audiogist.log', help='Log file path (default: audiogist.log)')
    parser.add_argument('--mock', action='store_true', help='Use mock AI services instead of the API')
    return parser.parse_args(argv)


def print_status(status: ProcessingStatus, as_json: bool):
    """Render one progress update on stdout"""
    if as_json:
        print(json.dumps(status.to_dict()), flush=True)
    elif status.is_error:
        print(f"❌ {status.message}: {status.error_message}", flush=True)
    else:
        print(f"[{status.progress:3d}%] {status.message}", flush=True)


async def run(args: argparse.Namespace) -> int:
    """Process one episode; returns the process exit code"""
    pipeline = create_pipeline(use_mock=True if args.mock else None)
    cancel_token = CancellationToken()

    try:
        summary_path = await pipeline.run(
            args.source,
            progress=lambda status: print_status(status, args.json),
            cancel_token=cancel_token,
        )
    except AudioGistError as e:
        logger.error(f"❌ Processing failed: {e}")
        return EXIT_FAILURE
    finally:
        await pipeline.close()

    if not args.json:
        print(f"✅ Summary audio: {summary_path}")
    return 0


def main(argv=None) -> int:
    args = parse_arguments(argv)
    setup_logging(args.log_file or None)

    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        exit_code = EXIT_INTERRUPTED
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
