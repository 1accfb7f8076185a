"""Command line — run the API server or inspect the record store.

Usage:
    email-subscribe serve [--host H] [--port P] [-D/--wipe]
    email-subscribe list

Invariants:
    - --wipe never runs without an explicit "y" at the interactive prompt
    - Failing to open the store exits non-zero before the server starts
"""

import argparse
import asyncio
import logging
import sys
from typing import Callable

import uvicorn

from email_subscribe.config import Settings, get_settings
from email_subscribe.core.errors import StorageError
from email_subscribe.core.record_codec import encode_record
from email_subscribe.infrastructure.observability import setup_logging
from email_subscribe.infrastructure.record_store import RecordStore
from email_subscribe.main import create_app

logger = logging.getLogger(__name__)

WIPE_PROMPT = "Do you really want to delete the entire database?"


def ask_for_confirmation(
    prompt: str, read_line: Callable[[str], str] | None = None,
) -> bool:
    """Ask a y/n question until the answer is one of them. EOF counts as no."""
    read_line = read_line or input
    while True:
        try:
            answer = read_line(f"{prompt} [y/n]: ").strip().lower()
        except EOFError:
            return False
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False


async def _open_store(settings: Settings) -> RecordStore:
    return await RecordStore.open(
        settings.store_path,
        bucket=settings.store_bucket,
        busy_timeout_seconds=settings.store_busy_timeout_seconds,
    )


async def wipe_store(settings: Settings) -> int:
    store = await _open_store(settings)
    try:
        return await store.reset_bucket()
    finally:
        await store.close()


async def list_store(settings: Settings) -> int:
    """Log every stored record. Returns how many were found."""
    store = await _open_store(settings)
    count = 0
    try:
        async with store.read() as txn:
            async for key, subscription in txn.scan():
                logger.info(f"key={key}, value={encode_record(subscription)}")
                count += 1
    finally:
        await store.close()
    return count


def _serve(args: argparse.Namespace, settings: Settings) -> int:
    if args.wipe:
        if ask_for_confirmation(WIPE_PROMPT):
            removed = asyncio.run(wipe_store(settings))
            logger.warning(
                f"Store has been deleted and will be recreated ({removed} records removed)",
            )
        else:
            logger.info("Wipe cancelled, keeping existing data")

    logger.info(f"Starting server on {settings.host}:{settings.port}")
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
    return 0


def _list(args: argparse.Namespace, settings: Settings) -> int:
    count = asyncio.run(list_store(settings))
    logger.info(f"{count} record(s) in bucket '{settings.store_bucket}'")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="email-subscribe", description="Email subscription collection service.",
    )
    parser.add_argument("--store-path", help="Backing store file (overrides STORE_PATH).")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", help="Listen address (overrides HOST).")
    serve.add_argument("--port", type=int, help="Listen port (overrides PORT).")
    serve.add_argument(
        "-D", "--wipe", action="store_true",
        help="Clear all entries from the store before starting (asks first).",
    )
    serve.set_defaults(handler=_serve)

    listing = sub.add_parser("list", help="Log every stored record.")
    listing.set_defaults(handler=_list)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {
        name: value
        for name, value in (
            ("store_path", args.store_path),
            ("host", getattr(args, "host", None)),
            ("port", getattr(args, "port", None)),
        )
        if value is not None
    }
    settings = get_settings().model_copy(update=overrides)
    setup_logging(settings.log_level, settings.log_format)
    try:
        return args.handler(args, settings)
    except StorageError as e:
        logger.error(f"{e.message}", extra={"error_code": e.code})
        return 1


if __name__ == "__main__":
    sys.exit(main())
