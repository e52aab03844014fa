# -*- coding: utf-8 -*-
"""
Normalization of Graph drive item descriptors into attribute records.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping, Optional

from .exceptions import MetadataError

KIND_FILE = 'file'
KIND_DIR = 'dir'

# Graph timestamps may carry up to 7 fractional digits; fromisoformat wants 6
_FRACTION_RE = re.compile(r'\.(\d+)')


@dataclass(frozen=True)
class AttributeRecord:
    """Normalized attributes of a file or folder."""
    path: str
    size: int
    last_modified: int
    kind: str
    mime_type: Optional[str] = None
    web_url: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def is_file(self):
        return self.kind == KIND_FILE

    def is_dir(self):
        return self.kind == KIND_DIR


def parse_timestamp(value):
    """
    Parse an ISO 8601 timestamp into seconds since the epoch.

    Args:
        value (str): e.g. '2024-03-01T10:15:30Z' or '2024-03-01T10:15:30.1234567+01:00'

    Returns:
        int: Seconds since epoch (UTC)

    Raises:
        MetadataError: If the value is missing or not a valid timestamp
    """
    if not isinstance(value, str) or not value:
        raise MetadataError(f"Missing modification time: {value!r}")

    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    text = _FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise MetadataError(f"Unparsable modification time: {value!r}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def to_attributes(descriptor, path):
    """
    Convert a Graph drive item descriptor to an AttributeRecord.

    Args:
        descriptor (dict): Drive item JSON from the Graph API
        path (str): Logical path of the item

    Returns:
        AttributeRecord: Normalized, immutable attributes

    Raises:
        MetadataError: If the descriptor is neither a file nor a folder, or its
            modification time cannot be parsed
    """
    if not isinstance(descriptor, Mapping):
        raise MetadataError(f"Drive item for '{path}' is not an object: {type(descriptor).__name__}")

    if 'folder' in descriptor:
        kind = KIND_DIR
        mime_type = None
    elif 'file' in descriptor:
        kind = KIND_FILE
        mime_type = (descriptor.get('file') or {}).get('mimeType')
    else:
        raise MetadataError(f"Drive item '{path}' is neither a file nor a folder")

    try:
        timestamp = parse_timestamp(descriptor.get('lastModifiedDateTime'))
    except MetadataError as e:
        raise MetadataError(f"Drive item '{path}': {e}") from e

    return AttributeRecord(
        path=path,
        size=int(descriptor.get('size') or 0),
        last_modified=timestamp,
        kind=kind,
        mime_type=mime_type,
        web_url=descriptor.get('webUrl'),
        extra=MappingProxyType(dict(descriptor)),
    )
