"""Shared fakes for onedrive_fs tests.

FakeGraphClient stands in for GraphClient: it records every request and
answers from scripted routes with real requests.Response objects, so the
code under test sees the same case-insensitive headers and .json() behaviour
as in production.
"""
import json
from collections import namedtuple

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from onedrive_fs.monitoring import RequestMonitor
from onedrive_fs.path_resolver import PathResolver

DRIVE = "https://graph.microsoft.com/v1.0/me/drive"
ROOT = f"{DRIVE}/items/root"
UPLOAD_URL = "https://upload.example.com/session/abc123"

Call = namedtuple("Call", "method url headers json_data data params authenticate max_retries operation")


def make_response(status=200, json_payload=None, headers=None, content=None):
    headers = dict(headers or {})
    if json_payload is not None:
        content = json.dumps(json_payload).encode("utf-8")
        headers.setdefault("Content-Type", "application/json")
    response = requests.Response()
    response.status_code = status
    response._content = content if content is not None else b""
    response._content_consumed = True
    response.headers = CaseInsensitiveDict(headers)
    response.encoding = "utf-8"
    return response


def graph_error(status, code="generalException", message="error"):
    return make_response(status, {"error": {"code": code, "message": message}})


def path_url(path):
    """By-path item URL under the default drive root."""
    return f"{ROOT}:/{path}"


def file_item(name, parent="/drive/root:", size=10, item_id=None, mime="text/plain",
              modified="2024-01-02T03:04:05Z"):
    return {
        "id": item_id or f"id-{name}",
        "name": name,
        "size": size,
        "lastModifiedDateTime": modified,
        "file": {"mimeType": mime},
        "parentReference": {"path": parent},
        "webUrl": f"https://contoso-my.sharepoint.com/{name}",
    }


def folder_item(name, parent="/drive/root:", item_id=None, child_count=0,
                modified="2024-01-02T03:04:05Z"):
    return {
        "id": item_id or f"id-{name}",
        "name": name,
        "size": 0,
        "lastModifiedDateTime": modified,
        "folder": {"childCount": child_count},
        "parentReference": {"path": parent},
    }


class FakeGraphClient:
    """Records requests and replays scripted responses per (method, url)."""

    def __init__(self):
        self.calls = []
        self.routes = []
        self.monitor = RequestMonitor()

    def on(self, method, url, *responses):
        """
        Script responses for an exact method and URL.

        Responses are consumed in order; the last one repeats. Exception
        instances are raised instead of returned.
        """
        self.routes.append((method, url, list(responses)))
        return self

    def request(self, method, url, headers=None, json_data=None, data=None, params=None,
                authenticate=True, max_retries=None, operation=None, stream=False):
        self.calls.append(Call(method, url, headers or {}, json_data, data, params,
                               authenticate, max_retries, operation))
        for route_method, route_url, responses in self.routes:
            if route_method == method and route_url == url:
                response = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(response, Exception):
                    raise response
                return response
        return graph_error(404, "itemNotFound", f"no route for {method} {url}")

    def calls_to(self, method, url=None):
        return [c for c in self.calls if c.method == method and (url is None or c.url == url)]

    def close(self):
        pass


@pytest.fixture
def client():
    return FakeGraphClient()


@pytest.fixture
def resolver():
    return PathResolver(DRIVE)


@pytest.fixture
def sleeps():
    recorded = []

    def sleep(seconds):
        recorded.append(seconds)

    sleep.calls = recorded
    return sleep


@pytest.fixture(autouse=True)
def quiet_debug(monkeypatch):
    monkeypatch.delenv("DEBUG", raising=False)
    monkeypatch.delenv("DEBUG_METADATA", raising=False)
