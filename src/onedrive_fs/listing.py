# -*- coding: utf-8 -*-
"""
Directory listing for OneDrive folders.

Lists the children of a folder, following @odata.nextLink pagination, and
optionally descends into subfolders breadth first. A listing either completes
or fails as a whole: nothing is yielded until every page of every folder has
been fetched, so a truncated listing can never be mistaken for a complete one.
"""

from collections import deque

import requests

from .exceptions import ListingError, MetadataError
from .graph_api import error_detail
from .metadata import to_attributes
from .thread_utils import thread_safe_print
from .utils import is_debug_enabled, join_path, normalize_path


class DirectoryLister:
    """Enumerate folder contents as AttributeRecords."""

    def __init__(self, client, resolver):
        """
        Args:
            client (GraphClient): Transport
            resolver (PathResolver): Shared path resolver
        """
        self.client = client
        self.resolver = resolver

    def list_contents(self, path="", recursive=False):
        """
        List the contents of a folder.

        No request is made until iteration starts; each iteration re-issues
        every query.

        Args:
            path (str): Logical folder path ('' is the root)
            recursive (bool): Descend into subfolders

        Yields:
            AttributeRecord: One record per file or folder, parents before their
                children, in service order within a folder

        Raises:
            ListingError: If any page could not be fetched or an item is malformed
        """
        records = self._collect(normalize_path(path), recursive)
        yield from records

    def _collect(self, path, recursive):
        records = []
        pending = deque([path])

        while pending:
            folder = pending.popleft()
            for item in self._fetch_children(folder):
                item_path = self._item_path(folder, item)
                try:
                    record = to_attributes(item, item_path)
                except MetadataError as e:
                    raise ListingError(f"Malformed item while listing '{folder}': {e}", path=folder) from e
                records.append(record)

                if recursive and record.is_dir():
                    pending.append(item_path)

        if is_debug_enabled():
            thread_safe_print(f"[DEBUG] Listed {len(records)} items under '{path}' (recursive={recursive})")

        return records

    def _item_path(self, folder, item):
        """Logical path of a child item of the listed folder."""
        if not self.resolver.use_path:
            return self.resolver.unresolve(folder, item.get('id', ''))

        # parentReference.path is relative to the drive root, not to a folder anchor
        if self.resolver.root != "root":
            return join_path(folder, item.get('name', ''))

        parent_path = (item.get('parentReference') or {}).get('path')
        if parent_path:
            try:
                return self.resolver.unresolve(parent_path, item.get('name', ''))
            except ValueError as e:
                raise ListingError(f"Cannot map item path while listing '{folder}': {e}", path=folder) from e
        return join_path(folder, item.get('name', ''))

    def _fetch_children(self, folder):
        """
        Fetch every child of one folder across all result pages.

        Returns:
            list: Drive item descriptors
        """
        url = self.resolver.resolve(folder).action('children')
        children = []
        page = 0

        while url:
            page += 1
            try:
                response = self.client.request('GET', url, operation='listing')
            except requests.exceptions.RequestException as e:
                thread_safe_print(f"[!] Error listing folder '{folder}': {e}")
                raise ListingError(f"Listing '{folder}' failed: {str(e)[:200]}", path=folder) from e

            if response.status_code != 200:
                thread_safe_print(f"[!] Error listing folder '{folder}': {response.status_code}")
                raise ListingError(
                    f"Listing '{folder}' failed: HTTP {response.status_code} - {error_detail(response)}",
                    path=folder, status=response.status_code
                )

            try:
                body = response.json()
            except ValueError as e:
                raise ListingError(f"Listing '{folder}' returned invalid JSON", path=folder,
                                   status=response.status_code) from e

            children.extend(body.get('value', []))
            url = body.get('@odata.nextLink')

        if is_debug_enabled():
            thread_safe_print(f"[DEBUG] Found {len(children)} children in folder '{folder}' ({page} page(s))")

        return children
