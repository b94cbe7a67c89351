"""Lazy expansion of the directory tree.

Nodes are advanced PendingDir -> CrawledDir by replacing them in their
parent's children list; nothing holds a reference back to a parent.
"""

import logging
from typing import Callable, List, Optional

from .downloader import Downloader
from .models import CrawledDir, DirMeta, Node, PendingDir, walk
from .parser import parse_listing, sanitize_html

logger = logging.getLogger("od_get")


def _workers(downloader: Downloader) -> int:
    return downloader.config.download.parse_workers


async def fetch_root(url: str, downloader: Downloader) -> CrawledDir:
    """Fetch and parse the root listing. Always hits the network."""
    logger.info(f"Fetching root listing: {url}")
    text = sanitize_html(await downloader.fetch_page(url))
    title, children = parse_listing(text, url, _workers(downloader))
    logger.info(f"Root {title}: {len(children)} entries")
    return CrawledDir(DirMeta(url=url, name=title), children)


async def expand_node(children: List[Node], index: int, downloader: Downloader):
    """Replace children[index], a PendingDir, with its CrawledDir.

    On any failure the node is left untouched.
    """
    node = children[index]
    if not isinstance(node, PendingDir):
        raise TypeError(f"Can only expand a PendingDir, got {type(node).__name__}")

    logger.info(f"Now crawling: {node.name}")
    text = sanitize_html(await downloader.fetch_page(node.url))
    title, grandchildren = parse_listing(text, node.url, _workers(downloader))

    # The parent's listing describes this directory; the child page has no
    # description or date of its own.
    children[index] = CrawledDir(
        DirMeta(
            url=node.url,
            name=title,
            last_modified=node.meta.last_modified,
            description=node.meta.description,
        ),
        grandchildren,
    )


async def expand_children(children: List[Node], downloader: Downloader):
    """Expand every PendingDir among children. Does not descend further."""
    for index, child in enumerate(children):
        if isinstance(child, PendingDir):
            await expand_node(children, index, downloader)


def pending_count(root: Node) -> int:
    return sum(1 for node in walk(root) if isinstance(node, PendingDir))


async def crawl_tree(root: CrawledDir, downloader: Downloader, max_depth: int = 0,
                     on_level: Optional[Callable[[CrawledDir], None]] = None) -> bool:
    """Expand the pending frontier one level at a time.

    Stops once no PendingDir remains, or after max_depth levels when
    max_depth > 0. on_level(root) runs after every completed level.
    Returns True if the tree is fully expanded.
    """
    depth = 0
    while True:
        parents = [
            node for node in walk(root)
            if isinstance(node, CrawledDir)
            and any(isinstance(c, PendingDir) for c in node.children)
        ]
        if not parents:
            return True
        if max_depth and depth >= max_depth:
            logger.info(f"Reached crawl depth {max_depth}, {pending_count(root)} directories left pending")
            return False

        for parent in parents:
            await expand_children(parent.children, downloader)

        depth += 1
        logger.info(f"Crawl level {depth} done, {pending_count(root)} directories pending")
        if on_level is not None:
            on_level(root)
