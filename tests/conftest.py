"""
Pytest configuration and fixtures
"""

import tarfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock

import httpx
import pytest

from exporter.base import TextExtractor
from exporter.extractors.zendesk_client import ZendeskClient
from exporter.loaders.archive_store import ArchiveStore, ExportSession


class PassthroughTextExtractor(TextExtractor):
    """Returns bodies unchanged"""

    def extract_plain_text(self, html: Optional[str]) -> str:
        return html or ""


class FakeZendeskAPI:
    """
    MockTransport handler serving canned Zendesk responses.

    Routes are keyed by path ("/forums.json") or path plus page
    ("/users.json?page=1"). Values are JSON payloads, ready-made
    httpx.Response objects, or callables taking the request. Pages that are
    not routed come back empty; everything else is a 404.
    """

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        page = request.url.params.get("page")
        key = path if page is None else f"{path}?page={page}"

        if key not in self.routes:
            if page is not None:
                return httpx.Response(200, json={"posts": []} if path.endswith("/posts.json") else [])
            return httpx.Response(404, json={"error": "RecordNotFound"})

        route = self.routes[key]
        if callable(route):
            route = route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    def paths(self) -> List[str]:
        return [str(request.url.raw_path, "ascii") for request in self.requests]


@pytest.fixture
def session(tmp_path):
    """Write-through export session in a temporary directory"""
    return ExportSession.create("tacotown", tmp_path)


@pytest.fixture
def store(session):
    return ArchiveStore(session)


@pytest.fixture
def buffered_store(tmp_path):
    return ArchiveStore(ExportSession.create("tacotown", tmp_path / "buffered", buffered=True))


@pytest.fixture
def text_extractor():
    return PassthroughTextExtractor()


@pytest.fixture
def zendesk_api():
    """Factory for FakeZendeskAPI handlers"""
    return FakeZendeskAPI


@pytest.fixture
def make_client() -> Callable[..., ZendeskClient]:
    """Build a ZendeskClient talking to a FakeZendeskAPI; ``sleep`` is an AsyncMock"""

    def factory(api: FakeZendeskAPI, **kwargs) -> ZendeskClient:
        kwargs.setdefault("sleep", AsyncMock())
        return ZendeskClient(
            "tacotown",
            "agent@tacotown.com",
            "secret",
            transport=httpx.MockTransport(api),
            **kwargs
        )

    return factory


@pytest.fixture
def read_archive() -> Callable[[Path], Dict[str, bytes]]:
    """Return the files of a .tgz keyed by path relative to the export root"""

    def reader(path: Path) -> Dict[str, bytes]:
        contents = {}
        with tarfile.open(path, "r:gz") as tar:
            for member in tar.getmembers():
                if member.isfile():
                    name = member.name[2:] if member.name.startswith("./") else member.name
                    contents[name] = tar.extractfile(member).read()
        return contents

    return reader


@pytest.fixture
def mock_zendesk_data():
    """A small Zendesk site: two users, one forum with one thread, one open ticket"""
    return {
        "/users.json?page=1": [
            {
                "id": 1,
                "name": "Frank",
                "email": "frank@tacotown.com",
                "roles": 2,
                "created_at": "2010/05/12 10:00:00 -0700",
                "updated_at": "2010/05/13 10:00:00 -0700",
            },
            {
                "id": 2,
                "name": "Bob",
                "email": "bob@bobfoo.com",
                "roles": 0,
                "created_at": "2010/06/01 09:00:00 -0700",
                "updated_at": "2010/06/01 09:00:00 -0700",
            },
        ],
        "/forums.json": [
            {"id": 10, "name": "Tacos", "description": "All about tacos"},
        ],
        "/forums/10/entries.json?page=1": [
            {
                "id": 100,
                "title": "your tacos",
                "body": "<p>They are not so good.</p>",
                "submitter_id": 2,
                "created_at": "2010/07/01 12:00:00 -0700",
                "updated_at": "2010/07/01 12:00:00 -0700",
            },
        ],
        "/entries/100/posts.json?page=1": {
            "posts": [
                {
                    "body": "<p>You have terrible taste in tacos.</p>",
                    "user_id": 1,
                    "created_at": "2010/07/01 13:00:00 -0700",
                    "updated_at": "2010/07/01 13:00:00 -0700",
                },
            ]
        },
        "/search.json?page=1": [
            {
                "nice_id": 7,
                "subject": "Where is my order?",
                "is_locked": False,
                "is_public": False,
                "submitter_id": 2,
                "created_at": "2010/08/01 08:00:00 -0700",
                "updated_at": "2010/08/02 08:00:00 -0700",
                "comments": [
                    {
                        "value": "It has been three weeks.",
                        "author_id": 2,
                        "created_at": "2010/08/01 08:00:00 -0700",
                        "updated_at": "2010/08/01 08:00:00 -0700",
                    },
                    {
                        "value": "On its way.",
                        "author_id": 1,
                        "created_at": "2010/08/02 08:00:00 -0700",
                        "updated_at": "2010/08/02 08:00:00 -0700",
                    },
                ],
            },
        ],
    }
