# -*- coding: utf-8 -*-
"""
Upload operations for OneDrive.

Small payloads (up to 4 MiB) are sent with a single PUT to the item's content
endpoint. Larger payloads go through a resumable upload session:

    SESSION_PENDING -> UPLOADING -> COMPLETED
                       UPLOADING -> FAILED    (unexpected status, conflict, retries exhausted)
                       UPLOADING -> ABORTED   (upload URL returned 404, session expired)

Chunks are sent strictly in order with a Content-Range header. A chunk that
is rate limited (429) or hits a server error (5xx) is re-sent with the exact
same byte range; the offset only advances when the service acknowledges it.
An aborted session cannot be resumed: the caller starts a new upload.
"""

import io
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import requests

from .config import DEFAULT_CHUNK_SIZE, validate_chunk_size
from .exceptions import (
    ConflictError,
    OneDriveError,
    SessionExpiredError,
    UploadError,
    UploadFailedError,
)
from .graph_api import error_detail, is_success
from .monitoring import format_bytes
from .thread_utils import thread_safe_print
from .utils import is_debug_enabled, normalize_path

# Payloads up to this size are uploaded with a single PUT
SMALL_FILE_THRESHOLD = 4 * 1024 * 1024

# Retries allowed per chunk for 429 and 5xx responses combined
MAX_CHUNK_RETRIES = 10

# Microsoft recommends chunks no larger than 60 MiB
MAX_RECOMMENDED_CHUNK_SIZE = 60 * 1024 * 1024

DEFAULT_RETRY_AFTER = 1


class UploadState(Enum):
    SESSION_PENDING = 'session_pending'
    UPLOADING = 'uploading'
    COMPLETED = 'completed'
    FAILED = 'failed'
    ABORTED = 'aborted'


@dataclass
class UploadSession:
    """
    In-progress resumable upload. Owned by the upload call that created it.

    Attributes:
        path (str): Logical destination path
        total_length (int): Declared payload length in bytes
        chunk_size (int): Bytes per chunk (multiple of 320 KiB)
        upload_url (str): Pre-authenticated, time-limited URL assigned by the service
        offset (int): Next byte to send
        expiration (str): Session expiration reported by the service
        state (UploadState): Current state
        history (list): Every state entered, in order
    """
    path: str
    total_length: int
    chunk_size: int
    upload_url: Optional[str] = None
    offset: int = 0
    expiration: Optional[str] = None
    state: UploadState = UploadState.SESSION_PENDING
    history: List[UploadState] = field(default_factory=lambda: [UploadState.SESSION_PENDING])

    def transition(self, state):
        self.state = state
        self.history.append(state)


class ContentSource:
    """Random access reader over bytes, str or a seekable binary file object."""

    def __init__(self, content):
        if isinstance(content, str):
            content = content.encode('utf-8')
        if isinstance(content, (bytes, bytearray, memoryview)):
            self._buffer = memoryview(content)
            self._file = None
            self.length = len(self._buffer)
        elif hasattr(content, 'read') and hasattr(content, 'seek'):
            self._buffer = None
            self._file = content
            self.length = content.seek(0, io.SEEK_END)
            content.seek(0)
        else:
            raise TypeError(f"Unsupported upload content type: {type(content).__name__}")

    def read(self, offset, size):
        if self._buffer is not None:
            return bytes(self._buffer[offset:offset + size])
        self._file.seek(offset)
        return self._file.read(size)


def parse_retry_after(response, default=DEFAULT_RETRY_AFTER):
    """
    Seconds to wait from a Retry-After header (delta-seconds form).

    Args:
        response (requests.Response): 429 response
        default (int): Value used when the header is absent or not numeric

    Returns:
        float: Seconds to wait
    """
    value = response.headers.get('Retry-After')
    if value is None:
        return default
    try:
        return max(float(value), 0)
    except ValueError:
        return default


class UploadEngine:
    """Single-shot and resumable uploads to a drive."""

    def __init__(self, client, resolver, operations, chunk_size=DEFAULT_CHUNK_SIZE,
                 conflict_behavior="replace", max_chunk_retries=MAX_CHUNK_RETRIES, sleep=time.sleep):
        """
        Args:
            client (GraphClient): Transport
            resolver (PathResolver): Shared path resolver
            operations (SimpleOperations): Used to create missing parent folders
            chunk_size (int): Resumable chunk size, positive multiple of 327,680 bytes
            conflict_behavior (str): fail, replace or rename
            max_chunk_retries (int): Retry budget per chunk for 429/5xx
            sleep (callable): Sleep function used between chunk retries

        Raises:
            ConfigurationError: If chunk_size is not a positive multiple of 320 KiB
        """
        validate_chunk_size(chunk_size)

        if chunk_size > MAX_RECOMMENDED_CHUNK_SIZE and is_debug_enabled():
            thread_safe_print(f"[!] Chunk size {chunk_size:,} exceeds the recommended 60 MiB maximum")

        self.client = client
        self.resolver = resolver
        self.operations = operations
        self.chunk_size = chunk_size
        self.conflict_behavior = conflict_behavior
        self.max_chunk_retries = max_chunk_retries
        self.sleep = sleep

    def upload(self, path, content):
        """
        Upload content to a logical path, choosing single-shot or resumable upload by size.

        Args:
            path (str): Logical destination path
            content (bytes | str | file object): Payload; file objects must be seekable

        Returns:
            dict: Drive item descriptor of the uploaded file

        Raises:
            UploadError: Unexpected status (status attribute holds the code)
            SessionExpiredError: Session expired mid-transfer; restart the upload
            UploadFailedError: Chunk retries exhausted
            ConflictError: Destination name collision on the final chunk
        """
        path = normalize_path(path)
        if not path:
            raise UploadError("Cannot upload to the root folder", path=path)

        source = ContentSource(content)

        if source.length <= SMALL_FILE_THRESHOLD:
            return self.upload_small(path, source)

        session = self.create_session(path, source.length)
        return self.upload_session(session, source)

    def upload_small(self, path, source):
        """
        Upload a payload of at most 4 MiB with one PUT.

        Any non-2xx status is final; transport retries are disabled so exactly
        one request is made.
        """
        if not isinstance(source, ContentSource):
            source = ContentSource(source)

        url = self.resolver.resolve_destination(path).action('content')

        if is_debug_enabled():
            thread_safe_print(f"[→] Uploading {path} ({source.length:,} bytes)")

        try:
            response = self.client.request(
                'PUT', url,
                headers={'Content-Type': 'application/octet-stream'},
                data=source.read(0, source.length),
                params={'@microsoft.graph.conflictBehavior': self.conflict_behavior},
                max_retries=0,
                operation='file_upload',
            )
        except requests.exceptions.RequestException as e:
            raise UploadError(f"Upload of '{path}' failed: {str(e)[:200]}", path=path) from e

        if not is_success(response):
            thread_safe_print(f"[!] Upload failed for {path}: {response.status_code}")
            raise UploadError(
                f"Upload of '{path}' failed: HTTP {response.status_code} - {error_detail(response)}",
                path=path, status=response.status_code
            )

        self.client.monitor.record_upload_bytes(source.length)
        if is_debug_enabled():
            thread_safe_print(f"[✓] Uploaded {path}")
        return response.json() if response.content else {}

    def create_session(self, path, total_length):
        """
        Request a new upload session, creating missing parent folders first.

        Args:
            path (str): Logical destination path
            total_length (int): Payload length in bytes

        Returns:
            UploadSession: Session in UPLOADING state at offset 0

        Raises:
            UploadError: If parent folders or the session could not be created
        """
        path = normalize_path(path)
        session = UploadSession(path=path, total_length=total_length, chunk_size=self.chunk_size)

        parent = self.resolver.parent_of(path)
        if parent:
            try:
                self.operations.ensure_directory_exists(parent)
            except OneDriveError as e:
                session.transition(UploadState.FAILED)
                raise UploadError(f"Cannot create parent folders for '{path}': {e}", path=path,
                                  status=getattr(e, 'status', None)) from e

        url = self.resolver.resolve_destination(path).action('createUploadSession')
        body = {
            "item": {
                "@microsoft.graph.conflictBehavior": self.conflict_behavior
            }
        }

        try:
            response = self.client.request('POST', url, json_data=body, operation='session_create')
        except requests.exceptions.RequestException as e:
            session.transition(UploadState.FAILED)
            raise UploadError(f"Upload session for '{path}' failed: {str(e)[:200]}", path=path) from e

        if not is_success(response):
            session.transition(UploadState.FAILED)
            raise UploadError(
                f"Upload session for '{path}' failed: HTTP {response.status_code} - {error_detail(response)}",
                path=path, status=response.status_code
            )

        data = response.json()
        if not data.get('uploadUrl'):
            session.transition(UploadState.FAILED)
            raise UploadError(f"Upload session for '{path}' has no uploadUrl", path=path,
                              status=response.status_code)

        session.upload_url = data['uploadUrl']
        session.expiration = data.get('expirationDateTime')
        session.transition(UploadState.UPLOADING)

        if is_debug_enabled():
            thread_safe_print(f"[→] Upload session created for {path} ({total_length:,} bytes, "
                              f"chunk size {self.chunk_size:,})")
        return session

    def upload_session(self, session, content):
        """
        Send every chunk of the payload to an upload session.

        Args:
            session (UploadSession): Session in UPLOADING state
            content (bytes | str | file object | ContentSource): Payload of session.total_length bytes

        Returns:
            dict: Drive item descriptor returned with the final chunk
        """
        source = content if isinstance(content, ContentSource) else ContentSource(content)
        if source.length != session.total_length:
            session.transition(UploadState.FAILED)
            raise UploadError(f"Content length {source.length} does not match session length "
                              f"{session.total_length}", path=session.path)

        while True:
            chunk = source.read(session.offset, session.chunk_size)
            if not chunk:
                session.transition(UploadState.FAILED)
                raise UploadError(f"Content ended at offset {session.offset} before "
                                  f"{session.total_length} bytes", path=session.path)

            result = self._send_chunk(session, chunk)
            self.client.monitor.record_upload_bytes(len(chunk))
            if session.state is UploadState.COMPLETED:
                return result

            session.offset += len(chunk)
            if is_debug_enabled():
                thread_safe_print(f"Uploaded {format_bytes(session.offset)} of {format_bytes(session.total_length)} "
                                  f"... {session.offset / session.total_length * 100:.2f}%")

    def _send_chunk(self, session, chunk):
        """
        PUT one chunk, retrying 429 and 5xx at the same offset.

        Returns:
            dict: Final drive item on the last chunk (session COMPLETED), else None
        """
        first = session.offset
        last = first + len(chunk) - 1
        is_last_chunk = last == session.total_length - 1
        headers = {
            'Content-Length': str(len(chunk)),
            'Content-Range': f"bytes {first}-{last}/{session.total_length}"
        }

        retries = 0
        while True:
            status = None
            try:
                response = self.client.request(
                    'PUT', session.upload_url,
                    headers=headers,
                    data=chunk,
                    authenticate=False,
                    max_retries=0,
                    operation='chunk_upload',
                )
                status = response.status_code
            except (requests.exceptions.SSLError, requests.exceptions.ProxyError) as e:
                session.transition(UploadState.FAILED)
                raise UploadError(f"Chunk {first}-{last} of '{session.path}' failed: {str(e)[:200]}",
                                  path=session.path) from e
            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                # Treated like a server error: the chunk was not acknowledged
                response = None
                if is_debug_enabled():
                    thread_safe_print(f"[!] Network error on chunk {first}-{last}: {str(e)[:100]}")
            except requests.exceptions.RequestException as e:
                session.transition(UploadState.FAILED)
                raise UploadError(f"Chunk {first}-{last} of '{session.path}' failed: {str(e)[:200]}",
                                  path=session.path) from e

            if status == 404:
                session.transition(UploadState.ABORTED)
                thread_safe_print(f"[!] Upload session expired for {session.path} at offset {first}")
                raise SessionExpiredError(
                    f"Upload session for '{session.path}' expired at offset {first}; restart the upload",
                    path=session.path, status=404
                )

            if status == 429:
                wait_seconds = parse_retry_after(response)
                reason = "Rate limited (429)"
            elif status is None or status >= 500:
                wait_seconds = 2 ** retries
                reason = f"Server error ({status})" if status else "Network error"
            else:
                break

            if retries >= self.max_chunk_retries:
                session.transition(UploadState.FAILED)
                thread_safe_print(f"[!] {reason} on chunk {first}-{last} of {session.path}: "
                                  f"retries exhausted")
                raise UploadFailedError(
                    f"Chunk {first}-{last} of '{session.path}' failed after {retries} retries: {reason}",
                    path=session.path, status=status, retries=retries
                )

            if is_debug_enabled():
                thread_safe_print(f"[!] {reason} on chunk {first}-{last}. Retrying in {wait_seconds} seconds... "
                                  f"({retries + 1}/{self.max_chunk_retries})")
            self.sleep(wait_seconds)
            retries += 1
            self.client.monitor.record_retry()

        if is_last_chunk:
            if status == 409:
                session.transition(UploadState.FAILED)
                thread_safe_print(f"[!] Name conflict uploading {session.path}")
                raise ConflictError(f"An item named '{session.path}' already exists", path=session.path,
                                    status=409)
            if status in (200, 201):
                session.transition(UploadState.COMPLETED)
                if is_debug_enabled():
                    thread_safe_print(f"[✓] Large file upload complete: {session.path}")
                return response.json() if response.content else {}
            session.transition(UploadState.FAILED)
            raise UploadError(
                f"Final chunk of '{session.path}' failed: HTTP {status} - {error_detail(response)}",
                path=session.path, status=status
            )

        if status != 202:
            session.transition(UploadState.FAILED)
            raise UploadError(
                f"Chunk {first}-{last} of '{session.path}' failed: HTTP {status} - {error_detail(response)}",
                path=session.path, status=status
            )
        return None

    def cancel_session(self, session):
        """
        Cancel an upload session on the service (best effort).

        Args:
            session (UploadSession): Session to cancel

        Returns:
            bool: True if the service acknowledged the cancellation
        """
        if not session.upload_url:
            return False
        try:
            response = self.client.request('DELETE', session.upload_url, authenticate=False, max_retries=0,
                                           operation='other')
        except requests.exceptions.RequestException as e:
            thread_safe_print(f"[!] Could not cancel upload session for {session.path}: {str(e)[:100]}")
            return False
        if session.state is UploadState.UPLOADING:
            session.transition(UploadState.ABORTED)
        return is_success(response)

