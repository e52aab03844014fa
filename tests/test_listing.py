"""Tests for paginated, optionally recursive directory listing."""
import pytest
import requests

from conftest import DRIVE, ROOT, file_item, folder_item, graph_error, make_response, path_url
from onedrive_fs.exceptions import ListingError
from onedrive_fs.listing import DirectoryLister
from onedrive_fs.path_resolver import PathResolver

ROOT_CHILDREN = f"{ROOT}/children"
DOCS_CHILDREN = f"{path_url('Docs')}:/children"


def page(items, next_link=None):
    body = {"value": items}
    if next_link:
        body["@odata.nextLink"] = next_link
    return make_response(200, body)


@pytest.fixture
def lister(client, resolver):
    return DirectoryLister(client, resolver)


@pytest.fixture
def small_tree(client):
    """Root holds a.txt and Docs/; Docs holds b.txt and c.txt."""
    client.on("GET", ROOT_CHILDREN, page([file_item("a.txt"), folder_item("Docs", child_count=2)]))
    client.on("GET", DOCS_CHILDREN, page([
        file_item("b.txt", parent="/drive/root:/Docs"),
        file_item("c.txt", parent="/drive/root:/Docs"),
    ]))
    return client


def test_recursive_listing_returns_every_item(lister, small_tree):
    records = list(lister.list_contents("", recursive=True))

    assert [r.path for r in records] == ["a.txt", "Docs", "Docs/b.txt", "Docs/c.txt"]
    assert len([r for r in records if r.is_file()]) == 3
    assert [r.kind for r in records] == ["file", "dir", "file", "file"]


def test_shallow_listing_does_not_descend(lister, small_tree):
    records = list(lister.list_contents(""))

    assert [r.path for r in records] == ["a.txt", "Docs"]
    assert [c.url for c in small_tree.calls] == [ROOT_CHILDREN]


def test_listing_a_subfolder(lister, small_tree):
    assert [r.path for r in lister.list_contents("/Docs/")] == ["Docs/b.txt", "Docs/c.txt"]


def test_breadth_first_order(client, lister):
    client.on("GET", ROOT_CHILDREN, page([folder_item("A"), folder_item("B")]))
    client.on("GET", f"{path_url('A')}:/children", page([folder_item("A1", parent="/drive/root:/A")]))
    client.on("GET", f"{path_url('B')}:/children", page([file_item("b.txt", parent="/drive/root:/B")]))
    client.on("GET", f"{path_url('A/A1')}:/children", page([file_item("deep.txt", parent="/drive/root:/A/A1")]))

    paths = [r.path for r in lister.list_contents("", recursive=True)]

    assert paths == ["A", "B", "A/A1", "B/b.txt", "A/A1/deep.txt"]


def test_pages_are_followed_in_order(client, lister):
    next_link = f"{ROOT_CHILDREN}?$skiptoken=page2"
    client.on("GET", ROOT_CHILDREN, page([file_item("1.txt"), file_item("2.txt")], next_link))
    client.on("GET", next_link, page([file_item("3.txt")]))

    paths = [r.path for r in lister.list_contents("")]

    assert paths == ["1.txt", "2.txt", "3.txt"]
    assert [c.url for c in client.calls] == [ROOT_CHILDREN, next_link]
    assert all(c.operation == "listing" for c in client.calls)


def test_failed_page_fails_the_whole_listing(client, lister):
    next_link = f"{ROOT_CHILDREN}?$skiptoken=page2"
    client.on("GET", ROOT_CHILDREN, page([file_item("1.txt")], next_link))
    client.on("GET", next_link, graph_error(500, "serviceNotAvailable"))

    results = lister.list_contents("")
    yielded = []
    with pytest.raises(ListingError) as exc_info:
        for record in results:
            yielded.append(record)

    assert yielded == []
    assert exc_info.value.status == 500
    assert exc_info.value.path == ""


def test_failed_subfolder_fails_the_whole_listing(client, lister):
    client.on("GET", ROOT_CHILDREN, page([file_item("a.txt"), folder_item("Docs")]))
    client.on("GET", DOCS_CHILDREN, graph_error(403, "accessDenied"))

    with pytest.raises(ListingError) as exc_info:
        list(lister.list_contents("", recursive=True))
    assert exc_info.value.path == "Docs"
    assert exc_info.value.status == 403


def test_transport_error_is_a_listing_error(client, lister):
    client.on("GET", ROOT_CHILDREN, requests.exceptions.ConnectionError("reset by peer"))

    with pytest.raises(ListingError) as exc_info:
        list(lister.list_contents(""))
    assert exc_info.value.status is None


def test_malformed_item_is_a_listing_error(client, lister):
    client.on("GET", ROOT_CHILDREN, page([{"id": "x", "name": "odd", "lastModifiedDateTime": "2024-01-02T03:04:05Z"}]))

    with pytest.raises(ListingError):
        list(lister.list_contents(""))


def test_listing_is_lazy_and_repeatable(lister, small_tree):
    results = lister.list_contents("")
    assert small_tree.calls == []

    list(results)
    list(lister.list_contents(""))
    assert len(small_tree.calls) == 2


def test_item_without_parent_reference_uses_listed_folder(client, lister):
    item = file_item("b.txt")
    del item["parentReference"]
    client.on("GET", DOCS_CHILDREN, page([item]))

    assert [r.path for r in lister.list_contents("Docs")] == ["Docs/b.txt"]


def test_root_path_is_hidden_from_listed_paths(client):
    resolver = PathResolver(DRIVE, root_path="Apps/backup")
    lister = DirectoryLister(client, resolver)
    client.on("GET", f"{path_url('Apps/backup')}:/children",
              page([folder_item("db", parent="/drive/root:/Apps/backup")]))
    client.on("GET", f"{path_url('Apps/backup/db')}:/children",
              page([file_item("dump.sql", parent="/drive/root:/Apps/backup/db")]))

    paths = [r.path for r in lister.list_contents("", recursive=True)]

    assert paths == ["db", "db/dump.sql"]


def test_folder_anchor_paths_are_relative_to_the_anchor(client):
    resolver = PathResolver(DRIVE, root="01FOLDER")
    lister = DirectoryLister(client, resolver)
    client.on("GET", f"{DRIVE}/items/01FOLDER/children", page([
        folder_item("Sub", parent="/drive/root:/Docs"),
        file_item("x.txt", parent="/drive/root:/Docs"),
    ]))
    client.on("GET", f"{DRIVE}/items/01FOLDER:/Sub:/children",
              page([file_item("y.txt", parent="/drive/root:/Docs/Sub")]))

    records = list(lister.list_contents("", recursive=True))

    assert [r.path for r in records] == ["Sub", "x.txt", "Sub/y.txt"]
    assert resolver.resolve(records[2].path).url == f"{DRIVE}/items/01FOLDER:/Sub/y.txt"


def test_listing_by_item_id(client):
    resolver = PathResolver(DRIVE, use_path=False)
    lister = DirectoryLister(client, resolver)
    client.on("GET", f"{DRIVE}/items/01DOCS/children",
              page([folder_item("Sub", item_id="01SUB"), file_item("a.txt", item_id="01A")]))
    client.on("GET", f"{DRIVE}/items/01SUB/children", page([file_item("b.txt", item_id="01B")]))

    paths = [r.path for r in lister.list_contents("01DOCS", recursive=True)]

    assert paths == ["01DOCS/01SUB", "01DOCS/01A", "01DOCS/01SUB/01B"]
