"""Tool-private metadata stored as a structured comment above a Host line.

Fields with no ssh_config directive (label, sftp_path, icon) are written as

    # hostbook: {"icon":"server","label":"My Server","v":1}

ssh ignores the line, so a plain text editor round trip still leaves a valid
config. Files without the line simply have empty metadata. Keys this
version does not know are kept and written back unchanged.
"""

import json
import logging
from typing import Any

from hostbook.types import HostRecord

logger = logging.getLogger(__name__)

METADATA_PREFIX = "# hostbook:"
METADATA_VERSION = 1
METADATA_FIELDS = ("label", "sftp_path", "icon")


def decode_metadata(line: str) -> dict[str, Any] | None:
    """Decode a metadata comment. Returns None if the line is not valid metadata."""
    stripped = line.strip()
    if not stripped.startswith(METADATA_PREFIX):
        return None

    payload = stripped[len(METADATA_PREFIX):].strip()
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.debug(f"Ignoring malformed metadata comment: {e}")
        return None

    if not isinstance(data, dict):
        return None
    return data


def apply_metadata(record: HostRecord, data: dict[str, Any]) -> None:
    """Copy decoded metadata onto a record."""
    extra: dict[str, Any] = {}
    for key, value in data.items():
        if key == "v":
            continue
        if key in METADATA_FIELDS and isinstance(value, str):
            setattr(record, key, value)
        else:
            extra[key] = value
    record.metadata_extra = extra


def encode_metadata(record: HostRecord) -> str | None:
    """Encode a record's tool-private fields. Returns None when there is nothing to store."""
    data: dict[str, Any] = dict(record.metadata_extra)
    for key in METADATA_FIELDS:
        value = getattr(record, key)
        if value:
            data[key] = value

    if not data:
        return None

    data["v"] = METADATA_VERSION
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return f"{METADATA_PREFIX} {payload}"
