# -*- coding: utf-8 -*-
"""
Single-request drive operations.

Delete, move, copy, folder creation, downloads, metadata and existence checks.
Each operation resolves the logical path, issues one Graph request and maps any
non-2xx response to OperationError. The exception is ensure_directory_exists,
which walks the path from the root and creates missing folders parent first.
"""

import tempfile
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests

from .exceptions import OneDriveError, OperationError
from .graph_api import error_detail, is_success
from .metadata import to_attributes
from .thread_utils import thread_safe_print
from .utils import is_debug_enabled, join_path, normalize_path, split_path

# Downloads larger than this spill from memory to a temporary file
SPOOL_MAX_SIZE = 8 * 1024 * 1024


class LookupStatus(Enum):
    FOUND = 'found'
    NOT_FOUND = 'not_found'
    ERROR = 'error'


@dataclass(frozen=True)
class ItemLookup:
    """Outcome of a drive item lookup; existence checks read this instead of catching errors."""
    status: LookupStatus
    item: Optional[dict] = None
    error: Optional[Exception] = None

    @property
    def found(self):
        return self.status is LookupStatus.FOUND

    def is_folder(self):
        return self.found and isinstance(self.item, dict) and 'folder' in self.item

    def is_file(self):
        return self.found and isinstance(self.item, dict) and 'file' in self.item


class SimpleOperations:
    """Single-request operations on a drive, addressed by logical path."""

    def __init__(self, client, resolver):
        """
        Args:
            client (GraphClient): Transport
            resolver (PathResolver): Shared path resolver
        """
        self.client = client
        self.resolver = resolver

    def _call(self, operation, path, method, url, **kwargs):
        """Issue a request, wrapping transport failures in OperationError."""
        try:
            return self.client.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise OperationError(operation, path, detail=str(e)[:200]) from e

    def _check(self, operation, path, response):
        if not is_success(response):
            thread_safe_print(f"[!] {operation} failed for '{path}': {response.status_code}")
            raise OperationError(operation, path, response.status_code, error_detail(response))
        return response

    # ------------------------------------------------------------------
    # Lookups and existence checks
    # ------------------------------------------------------------------

    def lookup(self, path):
        """
        Look up a drive item without raising.

        Args:
            path (str): Logical path

        Returns:
            ItemLookup: FOUND with the descriptor, NOT_FOUND on 404, ERROR otherwise
        """
        path = normalize_path(path)
        try:
            response = self._call('lookup', path, 'GET', self.resolver.resolve(path).url)
        except OneDriveError as e:
            return ItemLookup(LookupStatus.ERROR, error=e)
        except Exception as e:
            # e.g. msal rejecting the authority, or a malformed response header
            error = OperationError('lookup', path, detail=f"{type(e).__name__}: {str(e)[:200]}")
            error.__cause__ = e
            return ItemLookup(LookupStatus.ERROR, error=error)

        if response.status_code == 404:
            return ItemLookup(LookupStatus.NOT_FOUND)
        if response.status_code != 200:
            return ItemLookup(LookupStatus.ERROR,
                              error=OperationError('lookup', path, response.status_code, error_detail(response)))
        try:
            item = response.json()
        except ValueError as e:
            return ItemLookup(LookupStatus.ERROR, error=OperationError('lookup', path, 200, f"invalid JSON: {e}"))
        if not isinstance(item, dict):
            return ItemLookup(LookupStatus.ERROR,
                              error=OperationError('lookup', path, 200, "item descriptor is not a JSON object"))
        return ItemLookup(LookupStatus.FOUND, item=item)

    def get_item(self, path):
        """
        Fetch a drive item descriptor.

        Raises:
            OperationError: If the item does not exist or the lookup failed
        """
        result = self.lookup(path)
        if result.status is LookupStatus.NOT_FOUND:
            raise OperationError('get_item', normalize_path(path), 404, "item not found")
        if result.status is LookupStatus.ERROR:
            raise result.error
        return result.item

    def file_exists(self, path):
        """True if path is an existing file; any failure counts as 'does not exist'."""
        return self.lookup(path).is_file()

    def directory_exists(self, path):
        """True if path is an existing folder; any failure counts as 'does not exist'."""
        return self.lookup(path).is_folder()

    def get_metadata(self, path):
        """
        Get normalized attributes of a file or folder.

        Returns:
            AttributeRecord: Attributes of the item

        Raises:
            OperationError: If the item cannot be fetched
            MetadataError: If the descriptor is malformed
        """
        path = normalize_path(path)
        return to_attributes(self.get_item(path), path)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def delete(self, path):
        """
        Delete a file or folder (folders are deleted with their contents).

        Raises:
            OperationError: If the item could not be deleted
        """
        path = normalize_path(path)
        if is_debug_enabled():
            thread_safe_print(f"[×] Deleting: {path}")
        response = self._call('delete', path, 'DELETE', self.resolver.resolve(path).url)
        self._check('delete', path, response)

    def delete_directory(self, path):
        self.delete(path)

    def create_directory(self, path):
        """
        Create a folder and any missing ancestors.

        Returns:
            dict: Descriptor of the folder
        """
        return self.ensure_directory_exists(path)

    def _create_folder(self, parent, name, path):
        """
        Create one folder under an existing parent.

        A 409 means the folder was created concurrently; it is looked up and returned.
        """
        if is_debug_enabled():
            thread_safe_print(f"[+] Creating folder: {path}")

        body = {
            "name": name,
            "folder": {},
            "@microsoft.graph.conflictBehavior": "fail"
        }
        url = self.resolver.resolve(parent).action('children')
        response = self._call('create_directory', path, 'POST', url, json_data=body)

        if response.status_code == 409:
            existing = self.lookup(path)
            if existing.is_folder():
                if is_debug_enabled():
                    thread_safe_print(f"[!] Folder already exists (race condition): {path}")
                return existing.item

        self._check('create_directory', path, response)
        return response.json()

    def ensure_directory_exists(self, path):
        """
        Make sure every folder of a logical path exists, creating missing ones root to leaf.

        Folders that already exist cost one lookup and no create call. Once a
        segment is missing, deeper segments cannot exist and are created
        without a lookup.

        Args:
            path (str): Logical folder path ('' is the root)

        Returns:
            dict: Descriptor of the leaf folder

        Raises:
            OperationError: If a lookup or creation fails, or a segment is a file
        """
        path = normalize_path(path)

        # Item IDs cannot be created, only verified
        if not path or not self.resolver.use_path:
            item = self.get_item(path)
            if path and 'folder' not in item:
                raise OperationError('ensure_directory_exists', path, detail="item is not a folder")
            return item

        current = ""
        item = None
        missing = False
        for name in path.split('/'):
            parent = current
            current = join_path(current, name)

            if not missing:
                result = self.lookup(current)
                if result.status is LookupStatus.ERROR:
                    raise result.error
                if result.found:
                    if 'folder' not in result.item:
                        raise OperationError('ensure_directory_exists', current,
                                             detail="path exists and is not a folder")
                    item = result.item
                    continue
                missing = True

            item = self._create_folder(parent, name, current)

        return item

    def _move_body(self, destination):
        parent, name = split_path(destination)
        parent_item = self.ensure_directory_exists(parent)
        return {
            "parentReference": {"id": parent_item['id']},
            "name": name
        }

    def move(self, source, destination):
        """
        Move or rename an item. Missing destination folders are created first.

        Returns:
            dict: Descriptor of the moved item
        """
        source = normalize_path(source)
        destination = normalize_path(destination)
        body = self._move_body(destination)

        if is_debug_enabled():
            thread_safe_print(f"[→] Moving {source} -> {destination}")

        response = self._call('move', source, 'PATCH', self.resolver.resolve(source).url, json_data=body)
        self._check('move', source, response)
        return response.json() if response.content else {}

    def copy(self, source, destination):
        """
        Copy an item. Missing destination folders are created first.

        The service copies asynchronously and answers 202 Accepted.

        Returns:
            str: Monitor URL from the Location header, if any
        """
        source = normalize_path(source)
        destination = normalize_path(destination)
        body = self._move_body(destination)

        if is_debug_enabled():
            thread_safe_print(f"[→] Copying {source} -> {destination}")

        url = self.resolver.resolve(source).action('copy')
        response = self._call('copy', source, 'POST', url, json_data=body)
        self._check('copy', source, response)
        return response.headers.get('Location')

    # ------------------------------------------------------------------
    # Downloads
    # ------------------------------------------------------------------

    def read(self, path):
        """
        Download a file's contents.

        Returns:
            bytes: File contents
        """
        path = normalize_path(path)
        url = self.resolver.resolve(path).action('content')
        response = self._call('read', path, 'GET', url)
        self._check('read', path, response)
        return response.content

    def read_stream(self, path, chunk_size=1024 * 1024):
        """
        Download a file into a spooled temporary file.

        Returns:
            file object: Binary file positioned at offset 0; the caller closes it
        """
        path = normalize_path(path)
        url = self.resolver.resolve(path).action('content')
        response = self._call('read_stream', path, 'GET', url, stream=True)
        try:
            self._check('read_stream', path, response)
            stream = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
            try:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if chunk:
                        stream.write(chunk)
            except requests.exceptions.RequestException as e:
                stream.close()
                raise OperationError('read_stream', path, detail=str(e)[:200]) from e
        finally:
            response.close()
        stream.seek(0)
        return stream
