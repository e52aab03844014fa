# -*- coding: utf-8 -*-
"""
Filesystem-style facade over a OneDrive / SharePoint drive.

OneDriveAdapter wires one PathResolver into the lister, the upload engine and
the single-request operations, and exposes them under filesystem names.
"""

import time

from .config import parse_config
from .graph_api import GraphClient
from .listing import DirectoryLister
from .metadata import to_attributes
from .operations import SimpleOperations
from .path_resolver import PathResolver
from .uploader import UploadEngine
from .utils import normalize_path


class OneDriveAdapter:
    """
    Filesystem operations on a Graph drive, addressed by logical path.

    Example:
        adapter = create_adapter()
        adapter.write("Reports/2024/summary.pdf", pdf_bytes)
        for item in adapter.list_contents("Reports", deep=True):
            print(item.path, item.size)
    """

    def __init__(self, config, client=None, sleep=time.sleep):
        """
        Args:
            config (Config): Validated configuration
            client (GraphClient): Optional transport, built from config by default
            sleep (callable): Sleep function for retry waits
        """
        self.config = config
        self.client = client or GraphClient(config, sleep=sleep)
        self.resolver = PathResolver.from_config(config)
        self.operations = SimpleOperations(self.client, self.resolver)
        self.lister = DirectoryLister(self.client, self.resolver)
        self.uploader = UploadEngine(
            self.client, self.resolver, self.operations,
            chunk_size=config.chunk_size,
            conflict_behavior=config.conflict_behavior,
            sleep=sleep,
        )

    def file_exists(self, path):
        return self.operations.file_exists(path)

    def directory_exists(self, path):
        return self.operations.directory_exists(path)

    def write(self, path, contents):
        """
        Write bytes or text to a file, replacing it according to conflict_behavior.

        Returns:
            AttributeRecord: Attributes of the written file
        """
        path = normalize_path(path)
        item = self.uploader.upload(path, contents)
        if not item:
            return None
        if not self.resolver.use_path:
            # In ID mode the written file is addressed by its new item ID
            path = self.resolver.unresolve(self.resolver.parent_of(path), item['id'])
        return to_attributes(item, path)

    def write_stream(self, path, stream):
        """Write a seekable binary file object to a file."""
        return self.write(path, stream)

    def read(self, path):
        return self.operations.read(path)

    def read_stream(self, path):
        return self.operations.read_stream(path)

    def delete(self, path):
        self.operations.delete(path)

    def delete_directory(self, path):
        self.operations.delete_directory(path)

    def create_directory(self, path):
        return self.operations.create_directory(path)

    def list_contents(self, path="", deep=False):
        return self.lister.list_contents(path, recursive=deep)

    def move(self, source, destination):
        return self.operations.move(source, destination)

    def copy(self, source, destination):
        return self.operations.copy(source, destination)

    def get_metadata(self, path):
        return self.operations.get_metadata(path)

    def file_size(self, path):
        return self.get_metadata(path).size

    def mime_type(self, path):
        return self.get_metadata(path).mime_type

    def last_modified(self, path):
        return self.get_metadata(path).last_modified

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self):
        return f"<OneDriveAdapter {self.config!r}>"


def create_adapter(**overrides):
    """
    Build an adapter from the environment (and .env file).

    Args:
        **overrides: Config values taking precedence over the environment

    Returns:
        OneDriveAdapter: Ready-to-use adapter

    Raises:
        ConfigurationError: If configuration is invalid
    """
    return OneDriveAdapter(parse_config(**overrides))
