# -*- coding: utf-8 -*-
"""
Logical path <-> Graph drive item URL translation.

Two addressing modes are supported:

- by path (default): items are addressed relative to the root anchor with the
  colon syntax, e.g. ``/me/drive/items/root:/Reports/2024.xlsx``. Actions are
  appended after a closing colon: ``.../items/root:/Reports:/children``.
- by id: the last segment of a logical path is a drive item ID, e.g.
  ``/me/drive/items/01ABCDEF``. Actions are appended with a slash.

A PathResolver holds no mutable state; one instance is shared by every
component built from the same Config.
"""

from dataclasses import dataclass
from urllib.parse import quote, unquote

from .utils import join_path, normalize_path, split_path

# Marker in Graph parentReference.path separating the drive from the item path
ROOT_MARKER = 'root:'


@dataclass(frozen=True)
class RemoteReference:
    """
    Addressable Graph URL for a drive item.

    Attributes:
        url (str): Absolute item URL
        path_addressed (bool): True when the URL ends in a colon-delimited path segment
    """
    url: str
    path_addressed: bool = False

    def action(self, name):
        """
        Build the URL of an item action or navigation property.

        Args:
            name (str): Action name, e.g. 'children', 'content', 'createUploadSession', 'copy'

        Returns:
            str: Absolute action URL
        """
        if self.path_addressed:
            return f"{self.url}:/{name}"
        return f"{self.url}/{name}"

    def __str__(self):
        return self.url


class PathResolver:
    """Translate logical paths to drive item references and back."""

    def __init__(self, drive_url, root="root", use_path=True, root_path=""):
        """
        Args:
            drive_url (str): Absolute drive URL, e.g. 'https://graph.microsoft.com/v1.0/me/drive'
            root (str): Item anchor, 'root' or a folder item ID
            use_path (bool): Path addressing (True) or item ID addressing (False)
            root_path (str): Drive folder under which logical paths live (path addressing only)
        """
        self.drive_url = drive_url.rstrip('/')
        self.root = root or "root"
        self.use_path = use_path
        self.root_path = normalize_path(root_path)

    @classmethod
    def from_config(cls, config):
        return cls(config.drive_url, root=config.root, use_path=config.use_path,
                   root_path=config.root_path)

    def root_reference(self):
        """Reference to the root anchor item itself"""
        return RemoteReference(f"{self.drive_url}/items/{quote(self.root, safe='')}")

    def resolve(self, path):
        """
        Resolve a logical path to a drive item reference.

        Args:
            path (str): Logical path; '' is the configured root

        Returns:
            RemoteReference: Reference usable for GET/PATCH/DELETE and item actions
        """
        path = normalize_path(path)

        if self.use_path:
            full_path = join_path(self.root_path, path)
            if not full_path:
                return self.root_reference()
            return RemoteReference(
                f"{self.drive_url}/items/{quote(self.root, safe='')}:/{quote(full_path)}",
                path_addressed=True
            )

        if not path:
            return self.root_reference()
        _, item_id = split_path(path)
        return RemoteReference(f"{self.drive_url}/items/{quote(item_id, safe='')}")

    def resolve_child(self, parent, name):
        """
        Resolve a (possibly not yet existing) child by name.

        Needed for uploads in ID mode, where the destination has no ID yet:
        ``/items/{parent-id}:/{name}:/content``.

        Args:
            parent (str): Logical path of the parent folder
            name (str): Child name

        Returns:
            RemoteReference: Reference to the named child
        """
        if self.use_path:
            return self.resolve(join_path(parent, name))
        parent_ref = self.resolve(parent)
        return RemoteReference(f"{parent_ref.url}:/{quote(name, safe='')}", path_addressed=True)

    def resolve_destination(self, path):
        """Resolve the upload/write destination for a logical path."""
        parent, name = split_path(path)
        return self.resolve_child(parent, name)

    def unresolve(self, parent_path, item_name):
        """
        Build the logical path of an item reported by the service.

        In path mode, parent_path is the item's parentReference.path, e.g.
        '/drive/root:/Reports/2024'; everything up to and including 'root:' and
        the configured root_path is stripped. Only meaningful when the anchor
        is the drive root. In ID mode, parent_path is the
        logical path of the folder being listed and item_name the child ID.

        Args:
            parent_path (str): Service-reported parent path (path mode) or parent logical path (ID mode)
            item_name (str): Item name (path mode) or item ID (ID mode)

        Returns:
            str: Logical path relative to the configured root

        Raises:
            ValueError: If the parent path lies outside the configured root
        """
        if not self.use_path:
            return join_path(normalize_path(parent_path), item_name)

        parent_path = parent_path or ""
        marker = parent_path.find(ROOT_MARKER)
        if marker == -1:
            raise ValueError(f"Parent path has no drive root marker: '{parent_path}'")
        relative = normalize_path(unquote(parent_path[marker + len(ROOT_MARKER):]))

        if self.root_path:
            if relative == self.root_path:
                relative = ""
            elif relative.startswith(self.root_path + '/'):
                relative = relative[len(self.root_path) + 1:]
            else:
                raise ValueError(f"Item parent '{relative}' is outside root path '{self.root_path}'")

        return join_path(relative, item_name)

    @staticmethod
    def parent_of(path):
        """
        Logical parent of a path. Top-level items have the root ('') as parent.
        """
        return split_path(path)[0]
