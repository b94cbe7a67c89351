import httpx
import pytest

from od_get.config import AppConfig
from od_get.downloader import Downloader

ROOT = "http://od.test/pub/"

FAIL = object()  # page value that makes the transport raise


def row(href, name, size="  - ", date="2021-03-04 10:11", desc="&nbsp;"):
    icon = "folder.gif" if size == "  - " else "generic.gif"
    return (
        f'<tr><td valign="top"><img src="/icons/{icon}" alt="[   ]"></td>'
        f'<td><a href="{href}">{name}</a></td>'
        f'<td align="right">{date}  </td>'
        f'<td align="right">{size}</td>'
        f"<td>{desc}</td></tr>"
    )


def listing(title, rows, parent="/"):
    return "\n".join([
        "<!DOCTYPE HTML PUBLIC \"-//W3C//DTD HTML 3.2 Final//EN\">",
        "<html>",
        f" <head>\n  <title>Index of {title}</title>\n </head>",
        " <body>",
        f"<h1>Index of {title}</h1>",
        "  <table>",
        '   <tr><th valign="top"><img src="/icons/blank.gif" alt="[ICO]"></th>'
        '<th><a href="?C=N;O=D">Name</a></th><th><a href="?C=M;O=A">Last modified</a></th>'
        '<th><a href="?C=S;O=A">Size</a></th><th><a href="?C=D;O=A">Description</a></th></tr>',
        '   <tr><th colspan="5"><hr></th></tr>',
        f'<tr><td valign="top"><img src="/icons/back.gif" alt="[PARENTDIR]"></td>'
        f'<td><a href="{parent}">Parent Directory</a>       </td><td>&nbsp;</td>'
        f'<td align="right">  - </td><td>&nbsp;</td></tr>',
        *rows,
        '   <tr><th colspan="5"><hr></th></tr>',
        "</table>",
        "<address>Apache/2.4.41 (Ubuntu) Server at od.test Port 80</address>",
        "</body></html>",
        "",
    ])


class FakeSite:
    """In-memory web server for httpx.MockTransport."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        body = self.pages.get(url)
        if body is FAIL:
            raise httpx.ConnectError("connection refused", request=request)
        if body is None:
            return httpx.Response(404, content=b"not found")
        if isinstance(body, str):
            body = body.encode("utf-8")
        return httpx.Response(200, content=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def config(tmp_path):
    cfg = AppConfig(url=ROOT, data_dir=str(tmp_path / "mirror"), log_dir=str(tmp_path / "logs"))
    cfg.download.parse_workers = 1
    return cfg


@pytest.fixture
def downloader(config, site):
    return Downloader(config, client_factory=site.client)


@pytest.fixture
def three_level_site(site):
    """/pub/ -> a.txt, sub/ ; /pub/sub/ -> b.txt, deeper/ ; /pub/sub/deeper/ -> c.txt"""
    site.pages.update({
        ROOT: listing("/pub", [
            row("a.txt", "a.txt", size="5"),
            row("sub/", "sub/", desc="Sub things"),
        ]),
        ROOT + "sub/": listing("/pub/sub", [
            row("b.txt", "b.txt", size="6"),
            row("deeper/", "deeper/"),
        ], parent="/pub/"),
        ROOT + "sub/deeper/": listing("/pub/sub/deeper", [
            row("c.txt", "c.txt", size="7"),
        ], parent="/pub/sub/"),
        ROOT + "a.txt": b"alpha",
        ROOT + "sub/b.txt": b"bravo!",
        ROOT + "sub/deeper/c.txt": b"charlie",
    })
    return site
