"""Data models for the mirrored directory tree and crawl phase."""

from dataclasses import asdict, dataclass, field
from typing import Iterator, List, Union


@dataclass(frozen=True)
class DirMeta:
    url: str
    name: str
    last_modified: str = ""
    description: str = ""


@dataclass(frozen=True)
class FileMeta:
    url: str
    name: str
    last_modified: str = ""
    size: str = ""  # opaque, as reported by the server
    description: str = ""


@dataclass
class PendingDir:
    """A directory link that has not been fetched yet."""
    meta: DirMeta

    @property
    def url(self) -> str:
        return self.meta.url

    @property
    def name(self) -> str:
        return self.meta.name


@dataclass
class CrawledDir:
    """A directory whose listing has been fetched and parsed."""
    meta: DirMeta
    children: List["Node"] = field(default_factory=list)

    @property
    def url(self) -> str:
        return self.meta.url

    @property
    def name(self) -> str:
        return self.meta.name


@dataclass(frozen=True)
class File:
    meta: FileMeta

    @property
    def url(self) -> str:
        return self.meta.url

    @property
    def name(self) -> str:
        return self.meta.name


Node = Union[PendingDir, CrawledDir, File]


def walk(node: Node) -> Iterator[Node]:
    """Yield node and all its descendants in depth-first listing order."""
    yield node
    if isinstance(node, CrawledDir):
        for child in node.children:
            yield from walk(child)


def node_to_dict(node: Node) -> dict:
    if isinstance(node, CrawledDir):
        return {"CrawledDir": [asdict(node.meta), [node_to_dict(c) for c in node.children]]}
    if isinstance(node, PendingDir):
        return {"PendingDir": asdict(node.meta)}
    if isinstance(node, File):
        return {"File": asdict(node.meta)}
    raise TypeError(f"Not a node: {node!r}")


def node_from_dict(data: dict) -> Node:
    """Rebuild a node tree. Raises ValueError on anything unrecognised."""
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"Expected a single-key node object, got {data!r}")

    (tag, value), = data.items()
    try:
        if tag == "CrawledDir":
            meta, children = value
            return CrawledDir(DirMeta(**meta), [node_from_dict(c) for c in children])
        if tag == "PendingDir":
            return PendingDir(DirMeta(**value))
        if tag == "File":
            return File(FileMeta(**value))
    except TypeError as e:
        raise ValueError(f"Bad fields for {tag}: {e}") from e
    raise ValueError(f"Unknown node tag: {tag}")


# --- Crawl phase ---

@dataclass
class NotStarted:
    pass


@dataclass
class Partial:
    """Crawl stopped early; root may still contain PendingDir nodes."""
    root: CrawledDir


@dataclass
class Complete:
    root: CrawledDir


CrawlPhase = Union[NotStarted, Partial, Complete]


def phase_to_json(phase: CrawlPhase):
    if isinstance(phase, NotStarted):
        return "None"
    if isinstance(phase, Partial):
        return {"Partial": node_to_dict(phase.root)}
    if isinstance(phase, Complete):
        return {"Complete": node_to_dict(phase.root)}
    raise TypeError(f"Not a crawl phase: {phase!r}")


def phase_from_json(data) -> CrawlPhase:
    if data == "None":
        return NotStarted()
    if isinstance(data, dict) and len(data) == 1:
        (tag, value), = data.items()
        root = node_from_dict(value)
        if not isinstance(root, CrawledDir):
            raise ValueError(f"{tag} crawl root must be a CrawledDir")
        if tag == "Partial":
            return Partial(root)
        if tag == "Complete":
            return Complete(root)
    raise ValueError(f"Unknown crawling state: {data!r}")
