# -*- coding: utf-8 -*-
"""
OneDrive Filesystem Adapter Package
===================================

This package exposes a Microsoft Graph drive (OneDrive or a SharePoint
document library) through a filesystem-like contract, with resumable chunked
uploads for large files and recursive directory listing.

Modules:
--------
- config: Configuration value and environment parsing
- auth: Microsoft authentication (MSAL client credentials)
- graph_api: Graph API transport with retry handling
- path_resolver: Logical path <-> drive item URL translation
- metadata: Drive item -> AttributeRecord normalization
- listing: Paginated, optionally recursive directory listing
- uploader: Single-shot and resumable chunked uploads
- operations: Delete, move, copy, mkdir, download, existence checks
- adapter: Filesystem-style facade composing the above
- monitoring: Request statistics and throttling monitoring
- exceptions: Error taxonomy

Usage Example:
-------------
    from onedrive_fs import create_adapter

    adapter = create_adapter()  # reads AZURE_ACCESS_TOKEN, ONEDRIVE_ROOT, ...
    adapter.write("Backups/db.dump", open("db.dump", "rb"))
    for item in adapter.list_contents("Backups", deep=True):
        print(item.path, item.size, item.kind)
"""

__version__ = "1.0.0"

from .config import Config, parse_config, CHUNK_ALIGNMENT
from .auth import acquire_token
from .graph_api import GraphClient
from .path_resolver import PathResolver, RemoteReference
from .metadata import AttributeRecord, to_attributes
from .listing import DirectoryLister
from .uploader import UploadEngine, UploadSession, UploadState, SMALL_FILE_THRESHOLD
from .operations import SimpleOperations, ItemLookup, LookupStatus
from .adapter import OneDriveAdapter, create_adapter
from .monitoring import RequestMonitor, print_request_summary
from .exceptions import (
    OneDriveError,
    ConfigurationError,
    AuthenticationError,
    MetadataError,
    ListingError,
    OperationError,
    UploadError,
    SessionExpiredError,
    UploadFailedError,
    ConflictError,
)

__all__ = [
    # Configuration
    'Config',
    'parse_config',
    'CHUNK_ALIGNMENT',
    # Authentication
    'acquire_token',
    # Transport
    'GraphClient',
    # Components
    'PathResolver',
    'RemoteReference',
    'AttributeRecord',
    'to_attributes',
    'DirectoryLister',
    'UploadEngine',
    'UploadSession',
    'UploadState',
    'SMALL_FILE_THRESHOLD',
    'SimpleOperations',
    'ItemLookup',
    'LookupStatus',
    # Facade
    'OneDriveAdapter',
    'create_adapter',
    # Monitoring
    'RequestMonitor',
    'print_request_summary',
    # Errors
    'OneDriveError',
    'ConfigurationError',
    'AuthenticationError',
    'MetadataError',
    'ListingError',
    'OperationError',
    'UploadError',
    'SessionExpiredError',
    'UploadFailedError',
    'ConflictError',
]
