"""Object id helpers."""

import hashlib
import re

OID_LENGTH = 40
ZERO_OID = '0' * OID_LENGTH

_OID_RE = re.compile(r'^[0-9a-f]{40}$')


def object_header(obj_type: str, size: int) -> bytes:
    """Return the ``<type> <size>\\0`` header git prepends before hashing."""
    return f"{obj_type} {size}\0".encode()


def hash_object(obj_type: str, data: bytes) -> str:
    """
    Compute the object id of a payload.

    Args:
        obj_type: 'blob', 'tree' or 'commit'
        data: Serialized payload without header

    Returns:
        40-character hex SHA-1
    """
    return hashlib.sha1(object_header(obj_type, len(data)) + data).hexdigest()


def is_oid(value: str) -> bool:
    """True if value is a full lowercase hex object id."""
    return bool(_OID_RE.match(value or ''))


def short_oid(oid: str) -> str:
    return oid[:7]
