"""JSON checkpoint of crawl progress and downloaded URLs."""

import json
import logging
from datetime import datetime, timezone
from typing import Iterable, Iterator, Optional

from .errors import FilesystemError
from .models import (Complete, CrawledDir, CrawlPhase, NotStarted, Partial,
                     phase_from_json, phase_to_json)

logger = logging.getLogger("od_get")


class DoneSet:
    """Set of downloaded URLs that remembers insertion order."""

    def __init__(self, urls: Iterable[str] = ()):
        self._urls = dict.fromkeys(urls)

    def add(self, url: str):
        self._urls[url] = None

    def __contains__(self, url) -> bool:
        return url in self._urls

    def __iter__(self) -> Iterator[str]:
        return iter(self._urls)

    def __len__(self) -> int:
        return len(self._urls)

    def __eq__(self, other) -> bool:
        if isinstance(other, DoneSet):
            return list(self) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"DoneSet({list(self._urls)!r})"


class StateStore:
    def __init__(self, crawling_state: Optional[CrawlPhase] = None,
                 downloaded_urls: Iterable[str] = (), last_modified: str = ""):
        self.crawling_state: CrawlPhase = crawling_state or NotStarted()
        self.downloaded_urls = DoneSet(downloaded_urls)
        self.last_modified = last_modified

    @classmethod
    def load(cls, path: str) -> "StateStore":
        """Load a checkpoint. Missing or unreadable files start fresh."""
        try:
            with open(path, encoding="utf-8") as f:
                return cls.from_dict(json.load(f))
        except FileNotFoundError:
            logger.info(f"No state store at {path}, starting fresh")
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable state store {path}: {e}")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> "StateStore":
        if not isinstance(data, dict):
            raise ValueError("State store must be a JSON object")
        urls = data.get("downloaded_urls", [])
        if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
            raise ValueError("downloaded_urls must be a list of strings")
        return cls(
            crawling_state=phase_from_json(data["crawling_state"]),
            downloaded_urls=urls,
            last_modified=str(data.get("last_modified", "")),
        )

    def to_dict(self) -> dict:
        return {
            "crawling_state": phase_to_json(self.crawling_state),
            "downloaded_urls": list(self.downloaded_urls),
            "last_modified": self.last_modified,
        }

    def update_modified_time(self):
        self.last_modified = datetime.now(timezone.utc).isoformat()

    def save(self, path: str):
        """Overwrite path with the current state."""
        self.update_modified_time()
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
        except OSError as e:
            raise FilesystemError(path, str(e)) from e
        logger.debug(f"Wrote state store to {path}")

    @property
    def root(self) -> Optional[CrawledDir]:
        if isinstance(self.crawling_state, (Partial, Complete)):
            return self.crawling_state.root
        return None

    @property
    def is_complete(self) -> bool:
        return isinstance(self.crawling_state, Complete)
