"""Parser for Apache-style "Index of" listing pages.

Rows are matched line by line against a fixed record pattern; anything that
does not match (the Parent Directory row, headers, blank lines) is skipped.
"""

import html
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import List, Optional, Tuple, Union
from urllib.parse import urljoin, urlsplit, urlunsplit

from .errors import EncodingError, MalformedListing
from .models import DirMeta, File, FileMeta, Node, PendingDir

logger = logging.getLogger("od_get")

# Size column the server prints for directories
DIR_SIZE_PLACEHOLDER = "  - "

# Upper bound on trailing empty path segments removed from file URLs
MAX_TRAILING_SLASHES = 17

RX_TITLE = re.compile(r"<h1>Index of (.+?)</h1>")
RX_ROW = re.compile(
    r'</td><td><a href="(.+?)">(.+?)</a></td>'
    r'<td align="right">(.+?)  </td>'
    r'<td align="right">(.+?)</td>'
    r"<td>(.+?)</td></tr>"
)


def sanitize_html(body: Union[bytes, str]) -> str:
    """Decode HTML entities, making sure the result is valid UTF-8 text."""
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(f"Listing is not valid UTF-8: {e}") from e

    text = html.unescape(body)
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(f"Decoded listing contains invalid characters: {e}") from e
    return text


def clean_url(url: str) -> str:
    """Strip up to MAX_TRAILING_SLASHES trailing empty path segments."""
    parts = urlsplit(url)
    segments = parts.path.split("/")
    for _ in range(MAX_TRAILING_SLASHES):
        if len(segments) > 1 and segments[-1] == "":
            segments.pop()
        else:
            break
    path = "/".join(segments) or "/"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def parse_title(text: str) -> str:
    match = RX_TITLE.search(text)
    if match is None:
        raise MalformedListing("Couldn't parse the directory name")
    return match.group(1)


def parse_row(line: str, base_url: str) -> Optional[Node]:
    """Turn one table row into a PendingDir or File, or None if it isn't one."""
    match = RX_ROW.search(line)
    if match is None:
        return None

    href, name, last_modified, size, description = match.groups()
    try:
        url = urljoin(base_url, href)
        if size != DIR_SIZE_PLACEHOLDER:
            url = clean_url(url)
    except ValueError as e:
        logger.debug(f"Skipping row with unusable href {href!r}: {e}")
        return None

    if size == DIR_SIZE_PLACEHOLDER:
        logger.debug(f"Got directory: {name}")
        return PendingDir(DirMeta(
            url=url, name=name, last_modified=last_modified, description=description,
        ))

    logger.debug(f"Got file: {name} ({url})")
    return File(FileMeta(
        url=url, name=name, last_modified=last_modified, size=size, description=description,
    ))


def parse_listing(text: str, base_url: str, workers: int = 1) -> Tuple[str, List[Node]]:
    """Extract the directory title and its entries from a listing page.

    Not recursive and makes no requests. With workers > 1 the rows are
    matched on a thread pool; the result keeps the original line order.
    """
    title = parse_title(text)

    # Only \n separates rows; names may contain other line-break characters
    lines = [line.rstrip("\r") for line in text.split("\n")]
    process = partial(parse_row, base_url=base_url)
    if workers > 1 and len(lines) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            rows = list(pool.map(process, lines))
    else:
        rows = [process(line) for line in lines]

    return title, [node for node in rows if node is not None]
