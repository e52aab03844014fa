# -*- coding: utf-8 -*-
"""
Shared utility functions for OneDrive filesystem operations.

This module provides debug flag helpers and logical path handling used
across the resolver, lister and operations modules.
"""

import os


def is_debug_metadata_enabled():
    """
    Check if debug metadata mode is enabled via DEBUG_METADATA environment variable.

    This is for detailed Graph API debugging: response bodies, headers and
    raw drive item descriptors.

    Returns:
        bool: True if debug metadata mode is enabled, False otherwise
    """
    return os.environ.get('DEBUG_METADATA', 'false').lower() == 'true'


def is_debug_enabled():
    """
    Check if general debug mode is enabled via DEBUG environment variable.

    This controls per-request messages, folder creation, chunk progress and
    listing traces. Error messages are always shown.

    Returns:
        bool: True if general debug mode is enabled, False otherwise
    """
    return os.environ.get('DEBUG', 'false').lower() == 'true'


def normalize_path(path):
    """
    Normalize a logical path.

    Converts backslashes to forward slashes, drops empty segments and strips
    leading/trailing separators. The root is the empty string.

    Args:
        path (str): User supplied path (e.g. '/Reports//2024/')

    Returns:
        str: Normalized logical path (e.g. 'Reports/2024')
    """
    if not path:
        return ""
    path = path.replace('\\', '/')
    return '/'.join(part for part in path.split('/') if part)


def split_path(path):
    """
    Split a logical path into its parent path and final segment.

    Args:
        path (str): Logical path

    Returns:
        tuple: (parent, name); top-level items have parent ''
    """
    path = normalize_path(path)
    if '/' not in path:
        return "", path
    parent, name = path.rsplit('/', 1)
    return parent, name


def join_path(*parts):
    """Join logical path segments, ignoring empty ones."""
    return normalize_path('/'.join(p for p in parts if p))
