"""Bounded-depth download traversal over a crawled tree.

Each call handles the children of one node plus `levels` further directory
levels. Anything deeper, anything not crawled yet, and whatever is left when
a limit is hit comes back as a Continue so the caller can checkpoint before
driving the next call.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Union
from urllib.parse import unquote, urlsplit

from .config import AppConfig, DownloadConfig
from .downloader import Downloader
from .models import CrawledDir, File, Node, PendingDir
from .state import DoneSet

logger = logging.getLogger("od_get")


@dataclass
class LimitCounts:
    files: int = 0
    bytes: int = 0

    def exhausted(self, limits: DownloadConfig) -> bool:
        if limits.max_files and self.files >= limits.max_files:
            return True
        if limits.max_bytes and self.bytes >= limits.max_bytes:
            return True
        return False


class DownloadTask(NamedTuple):
    node: Node
    options: AppConfig
    downloader: Downloader


@dataclass
class Done:
    pass


@dataclass
class Continue:
    tasks: List[DownloadTask] = field(default_factory=list)


DownloadStatus = Union[Done, Continue]


def local_path(url: str, options: AppConfig) -> str:
    """Map a file URL to its place in the local mirror under data_dir."""
    root = urlsplit(options.url)
    target = urlsplit(url)

    root_path = root.path if root.path.endswith("/") else root.path + "/"
    if target.netloc == root.netloc and target.path.startswith(root_path):
        rel = target.path[len(root_path):]
        base = options.data_dir
    else:
        rel = target.path
        base = os.path.join(options.data_dir, target.netloc)

    segments = [unquote(s).replace("/", "_") for s in rel.split("/")]
    segments = [s for s in segments if s not in ("", ".", "..")]
    if not segments:
        segments = ["index"]
    return os.path.join(base, *segments)


def _remainder(nodes: Sequence[Node], options: AppConfig, downloader: Downloader,
               done: DoneSet) -> List[DownloadTask]:
    return [
        DownloadTask(node, options, downloader)
        for node in nodes
        if not (isinstance(node, File) and node.url in done)
    ]


async def download_file(node: File, options: AppConfig, downloader: Downloader,
                        counters: LimitCounts, done: DoneSet):
    dest = local_path(node.url, options)
    logger.info(f"Downloading {node.name} ({node.meta.size.strip()}) -> {dest}")
    size = await downloader.download_file(node.url, dest)
    done.add(node.url)
    counters.files += 1
    counters.bytes += size


async def download_recursive(node: Node, options: AppConfig, downloader: Downloader,
                             counters: LimitCounts, done: DoneSet,
                             levels: Optional[int] = None) -> DownloadStatus:
    """Download the files below node, descending at most `levels` directories.

    Files already in done are skipped. Errors from a single file propagate
    immediately; files before it stay recorded in done.
    """
    if levels is None:
        levels = options.download.levels_per_call

    if isinstance(node, PendingDir):
        logger.warning(f"Directory was never crawled, deferring: {node.url}")
        return Continue([DownloadTask(node, options, downloader)])

    children: List[Node] = node.children if isinstance(node, CrawledDir) else [node]
    deferred: List[DownloadTask] = []

    for i, child in enumerate(children):
        if isinstance(child, File):
            if child.url in done:
                continue
            if counters.exhausted(options.download):
                logger.info(f"Download limit reached ({counters.files} files, {counters.bytes:,} bytes)")
                deferred.extend(_remainder(children[i:], options, downloader, done))
                return Continue(deferred)
            await download_file(child, options, downloader, counters, done)

        elif isinstance(child, PendingDir):
            logger.warning(f"Directory was never crawled, deferring: {child.url}")
            deferred.append(DownloadTask(child, options, downloader))

        elif levels > 0:
            status = await download_recursive(child, options, downloader, counters, done, levels - 1)
            if isinstance(status, Continue):
                deferred.extend(status.tasks)
            if counters.exhausted(options.download):
                deferred.extend(_remainder(children[i + 1:], options, downloader, done))
                return Continue(deferred) if deferred else Done()

        else:
            deferred.append(DownloadTask(child, options, downloader))

    return Continue(deferred) if deferred else Done()
