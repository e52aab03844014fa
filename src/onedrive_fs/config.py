# -*- coding: utf-8 -*-
"""
Configuration management for OneDrive filesystem operations.

This module holds the explicit configuration value passed into every component
at construction time, and the helper that builds it from the environment
(optionally loaded from a .env file).
"""

import os

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Graph API requires upload chunks to be multiples of 320 KiB
CHUNK_ALIGNMENT = 327680

DEFAULT_CHUNK_SIZE = 10 * CHUNK_ALIGNMENT  # 3,276,800 bytes

# directory_type -> whether a directory_id is required to build the drive URL
DIRECTORY_TYPES = {
    'me': False,
    'users': True,
    'groups': True,
    'sites': True,
    'drives': True,
}

CONFLICT_BEHAVIORS = ('fail', 'replace', 'rename')


def validate_chunk_size(chunk_size):
    """
    Check that a chunk size is a positive multiple of 320 KiB.

    Args:
        chunk_size (int): Chunk size in bytes

    Raises:
        ConfigurationError: If the chunk size is not a positive multiple of 327,680
    """
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise ConfigurationError(f"chunk_size must be an integer, got {chunk_size!r}")
    if chunk_size <= 0 or chunk_size % CHUNK_ALIGNMENT != 0:
        raise ConfigurationError(
            f"chunk_size must be a positive multiple of {CHUNK_ALIGNMENT} bytes (320 KiB), got {chunk_size}"
        )


class Config:
    """Configuration for OneDrive filesystem operations"""

    def __init__(self, access_token=None, tenant_id=None, client_id=None, client_secret=None,
                 login_endpoint="login.microsoftonline.com", graph_endpoint="graph.microsoft.com",
                 root="root", root_path="", directory_type="me", directory_id=None, use_path=True,
                 chunk_size=DEFAULT_CHUNK_SIZE, request_timeout=300, max_retry=3,
                 conflict_behavior="replace"):
        """
        Initialize configuration.

        Args:
            access_token (str): Pre-acquired bearer token (takes precedence over client credentials)
            tenant_id (str): Azure AD tenant ID
            client_id (str): App registration client ID
            client_secret (str): App registration client secret
            login_endpoint (str): Azure AD endpoint (default: login.microsoftonline.com)
            graph_endpoint (str): Graph API endpoint (default: graph.microsoft.com)
            root (str): Item anchor for all paths, 'root' or a folder item ID
            root_path (str): Drive folder under which logical paths live (path addressing only)
            directory_type (str): Drive namespace: me, users, groups, sites or drives
            directory_id (str): User/group/site/drive ID for non-'me' namespaces
            use_path (bool): Address items by path (True) or by item ID (False)
            chunk_size (int): Resumable upload chunk size, multiple of 327,680 bytes
            request_timeout (int): Per-request timeout in seconds
            max_retry (int): Transport retry attempts for metadata/listing calls
            conflict_behavior (str): Upload conflict behavior: fail, replace or rename
        """
        self.access_token = access_token
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.login_endpoint = login_endpoint
        self.graph_endpoint = graph_endpoint
        self.root = root or "root"
        self.root_path = (root_path or "").replace('\\', '/').strip('/')
        self.directory_type = (directory_type or "me").lower()
        self.directory_id = directory_id
        self.use_path = use_path
        self.chunk_size = chunk_size
        self.request_timeout = request_timeout
        self.max_retry = max_retry
        self.conflict_behavior = conflict_behavior

    @property
    def graph_base_url(self):
        """Versioned Graph API base URL"""
        return f"https://{self.graph_endpoint}/v1.0"

    @property
    def drive_url(self):
        """Absolute URL of the configured drive namespace"""
        if self.directory_type == 'me':
            return f"{self.graph_base_url}/me/drive"
        if self.directory_type == 'drives':
            return f"{self.graph_base_url}/drives/{self.directory_id}"
        return f"{self.graph_base_url}/{self.directory_type}/{self.directory_id}/drive"

    def has_client_credentials(self):
        return bool(self.tenant_id and self.client_id and self.client_secret)

    def validate(self):
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if self.directory_type not in DIRECTORY_TYPES:
            raise ConfigurationError(
                f"directory_type must be one of {', '.join(DIRECTORY_TYPES)}, got '{self.directory_type}'"
            )
        if DIRECTORY_TYPES[self.directory_type] and not self.directory_id:
            raise ConfigurationError(f"directory_id is required for directory_type '{self.directory_type}'")
        if not self.graph_endpoint:
            raise ConfigurationError("graph_endpoint cannot be empty")
        validate_chunk_size(self.chunk_size)
        if self.request_timeout is None or self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive")
        if self.max_retry < 0:
            raise ConfigurationError("max_retry must be non-negative")
        if self.conflict_behavior not in CONFLICT_BEHAVIORS:
            raise ConfigurationError(
                f"conflict_behavior must be one of {', '.join(CONFLICT_BEHAVIORS)}, got '{self.conflict_behavior}'"
            )
        if not self.use_path and self.root_path:
            raise ConfigurationError("root_path is only supported with path addressing (use_path=True)")
        if not self.access_token and not self.has_client_credentials():
            raise ConfigurationError(
                "No credentials configured: set access_token or tenant_id, client_id and client_secret"
            )

    def __repr__(self):
        return (f"<Config drive={self.drive_url} root={self.root} root_path='{self.root_path}' "
                f"use_path={self.use_path} chunk_size={self.chunk_size}>")


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_int(name, default):
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'")


def parse_config(**overrides):
    """
    Build configuration from environment variables (and a .env file if present).

    Environment variables:
        AZURE_ACCESS_TOKEN, AZURE_TENANT_ID, AZURE_CLIENT_ID, AZURE_CLIENT_SECRET,
        AZURE_LOGIN_ENDPOINT, GRAPH_ENDPOINT, ONEDRIVE_ROOT, ONEDRIVE_ROOT_PATH,
        ONEDRIVE_DIR_TYPE, ONEDRIVE_DIR_ID, ONEDRIVE_USE_PATH, ONEDRIVE_CHUNK_SIZE,
        ONEDRIVE_REQUEST_TIMEOUT, ONEDRIVE_MAX_RETRY, ONEDRIVE_CONFLICT_BEHAVIOR

    Args:
        **overrides: Explicit values that take precedence over the environment

    Returns:
        Config: Validated Config object

    Raises:
        ConfigurationError: If configuration is invalid
    """
    load_dotenv()

    values = {
        'access_token': os.environ.get('AZURE_ACCESS_TOKEN') or None,
        'tenant_id': os.environ.get('AZURE_TENANT_ID') or None,
        'client_id': os.environ.get('AZURE_CLIENT_ID') or None,
        'client_secret': os.environ.get('AZURE_CLIENT_SECRET') or None,
        'login_endpoint': os.environ.get('AZURE_LOGIN_ENDPOINT') or "login.microsoftonline.com",
        'graph_endpoint': os.environ.get('GRAPH_ENDPOINT') or "graph.microsoft.com",
        'root': os.environ.get('ONEDRIVE_ROOT') or "root",
        'root_path': os.environ.get('ONEDRIVE_ROOT_PATH', ""),
        'directory_type': os.environ.get('ONEDRIVE_DIR_TYPE') or "me",
        'directory_id': os.environ.get('ONEDRIVE_DIR_ID') or None,
        'use_path': _env_bool('ONEDRIVE_USE_PATH', True),
        'chunk_size': _env_int('ONEDRIVE_CHUNK_SIZE', DEFAULT_CHUNK_SIZE),
        'request_timeout': _env_int('ONEDRIVE_REQUEST_TIMEOUT', 300),
        'max_retry': _env_int('ONEDRIVE_MAX_RETRY', 3),
        'conflict_behavior': os.environ.get('ONEDRIVE_CONFLICT_BEHAVIOR') or "replace",
    }
    values.update(overrides)

    config = Config(**values)
    config.validate()
    return config
