"""CLI entry point and orchestrator."""

import argparse
import asyncio
import logging
import os
import sys
from collections import deque
from typing import Optional

from dotenv import load_dotenv

from . import __version__
from .config import AppConfig, load_config
from .crawl import crawl_tree, fetch_root
from .downloader import Downloader
from .errors import ConfigError, FilesystemError, OdGetError
from .fetch import Continue, DownloadTask, LimitCounts, download_recursive
from .logger import setup_logger
from .models import Complete, CrawledDir, File, NotStarted, Partial, PendingDir, walk
from .state import StateStore

logger = logging.getLogger("od_get")

NAME = "od-get"
LICENSE = "Licensed under the GNU AGPL v3.0 or later"


def checkpoint(state: StateStore, state_path: Optional[str]):
    """Best-effort state write used on the way out of a failure."""
    if not state_path:
        return
    try:
        state.save(state_path)
        logger.info(f"Wrote state store to {state_path}")
    except FilesystemError as e:
        logger.error(f"Could not write state store: {e}")


async def ensure_crawled(state: StateStore, config: AppConfig, downloader: Downloader) -> CrawledDir:
    """Return a crawled root, crawling or resuming a partial crawl if needed."""
    state_path = config.state_store_path

    if state.is_complete:
        logger.info("Using the completed crawl from the state store")
        return state.root

    root = state.root
    if root is None:
        # Nothing to checkpoint yet if this fails
        root = await fetch_root(config.url, downloader)
        state.crawling_state = Partial(root)
        if state_path:
            state.save(state_path)
    else:
        logger.info(f"Resuming partial crawl of {root.url}")

    def on_level(r: CrawledDir):
        state.crawling_state = Partial(r)
        if state_path:
            state.save(state_path)

    try:
        complete = await crawl_tree(root, downloader, config.max_depth, on_level)
    except FilesystemError:
        # The level checkpoint itself failed; don't try writing again
        raise
    except Exception:
        state.crawling_state = Partial(root)
        checkpoint(state, state_path)
        raise

    state.crawling_state = Complete(root) if complete else Partial(root)
    if state_path:
        state.save(state_path)
    return root


async def download_all(state: StateStore, root: CrawledDir, config: AppConfig,
                       downloader: Downloader) -> LimitCounts:
    """Drive download_recursive over the continuation queue until it drains."""
    counters = LimitCounts()
    done = state.downloaded_urls
    queue = deque([DownloadTask(root, config, downloader)])

    while queue:
        if counters.exhausted(config.download):
            logger.info(f"Download limit reached, {len(queue)} subtrees left for the next run")
            break

        node, options, client = queue.popleft()
        if isinstance(node, PendingDir):
            logger.warning(f"Skipping uncrawled directory: {node.url}")
            continue

        try:
            status = await download_recursive(node, options, client, counters, done)
        except Exception:
            checkpoint(state, config.state_store_path)
            raise

        if isinstance(status, Continue):
            queue.extend(status.tasks)
        if config.state_store_path:
            state.save(config.state_store_path)

    return counters


async def run(config: AppConfig, downloader: Optional[Downloader] = None) -> StateStore:
    """Crawl (or resume) and then download. Returns the final state."""
    if config.state_store_path:
        state = StateStore.load(config.state_store_path)
    else:
        state = StateStore()

    if state.root is not None and config.url and state.root.url != config.url:
        logger.warning(f"State store was made for {state.root.url}, not {config.url}")

    downloader = downloader or Downloader(config)
    try:
        root = await ensure_crawled(state, config, downloader)

        if config.no_download:
            logger.info("Skipping downloads (--no-download)")
            return state

        counters = await download_all(state, root, config, downloader)
        logger.info(f"Downloaded {counters.files} files ({_format_bytes(counters.bytes)})")
    finally:
        await downloader.close()

    return state


def validate(config: AppConfig):
    if not config.url:
        raise ConfigError("No URL given (pass it on the command line or set url in the config)")
    if config.no_download and not config.state_store_path:
        raise ConfigError("Cannot use --no-download without --state-store")


def show_stats(state: StateStore):
    """Display crawl and download statistics for a state store."""
    phase = {NotStarted: "not started", Partial: "partial", Complete: "complete"}[type(state.crawling_state)]
    dirs = pending = files = 0
    if state.root is not None:
        for node in walk(state.root):
            if isinstance(node, CrawledDir):
                dirs += 1
            elif isinstance(node, PendingDir):
                pending += 1
            elif isinstance(node, File):
                files += 1

    print("\n" + "=" * 50)
    print("  STATE STORE")
    print("=" * 50)
    if state.root is not None:
        print(f"{'Root':<24} {state.root.url}")
    print(f"{'Crawl phase':<24} {phase}")
    print(f"{'Crawled directories':<24} {dirs:>8}")
    print(f"{'Pending directories':<24} {pending:>8}")
    print(f"{'Files':<24} {files:>8}")
    print(f"{'Downloaded':<24} {len(state.downloaded_urls):>8}")
    print(f"{'Last modified':<24} {state.last_modified or '-'}")
    print()


def _format_bytes(n: int) -> str:
    if n < 1024:
        return f"{n} B"
    elif n < 1024 ** 2:
        return f"{n / 1024:.1f} KB"
    elif n < 1024 ** 3:
        return f"{n / 1024 ** 2:.1f} MB"
    else:
        return f"{n / 1024 ** 3:.2f} GB"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=NAME, description="Crawl and download open directories (Apache 'Index of' pages)")
    parser.add_argument("url", nargs="?", default=None,
                        help="Root URL of the open directory")
    parser.add_argument("--config", type=str,
                        default=os.environ.get("OD_GET_CONFIG", "config.yaml"),
                        help="Path to config file")
    parser.add_argument("-s", "--state-store", type=str, default=None,
                        help="JSON file to persist crawl and download progress in")
    parser.add_argument("-o", "--output", type=str, default=None,
                        help="Directory to mirror files into")
    parser.add_argument("--no-download", action="store_true",
                        help="Only crawl; requires --state-store")
    parser.add_argument("--max-files", type=int, default=None,
                        help="Stop after downloading this many files (0 = unlimited)")
    parser.add_argument("--max-bytes", type=int, default=None,
                        help="Stop after downloading this many bytes (0 = unlimited)")
    parser.add_argument("--max-depth", type=int, default=None,
                        help="Crawl at most this many directory levels (0 = unlimited)")
    parser.add_argument("--stats", action="store_true",
                        help="Show statistics for the state store and exit")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log every discovered entry")
    return parser


def apply_args(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    if args.url:
        config.url = args.url
    if args.state_store:
        config.state_store_path = args.state_store
    if args.output:
        config.data_dir = args.output
    if args.no_download:
        config.no_download = True
    if args.max_files is not None:
        config.download.max_files = args.max_files
    if args.max_bytes is not None:
        config.download.max_bytes = args.max_bytes
    if args.max_depth is not None:
        config.max_depth = args.max_depth
    return config


def main(argv=None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    config = apply_args(load_config(args.config), args)
    setup_logger(config.log_dir, logging.DEBUG if args.verbose else logging.INFO)

    print(f"{NAME} {__version__}")
    print(f"{LICENSE}\n")

    if args.stats:
        if not config.state_store_path:
            logger.error("--stats needs --state-store")
            return 2
        show_stats(StateStore.load(config.state_store_path))
        return 0

    try:
        validate(config)
    except ConfigError as e:
        logger.error(str(e))
        return 2

    print(f"Root URL: {config.url}")
    print(f"Output directory: {config.data_dir}")
    print(f"State store: {config.state_store_path or '(none)'}")

    try:
        asyncio.run(run(config))
    except OdGetError as e:
        logger.error(f"Aborted: {e}")
        return 1

    print("Download done." if not config.no_download else "Crawl done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
