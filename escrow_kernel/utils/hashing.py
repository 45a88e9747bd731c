"""
Canonical encodings and SHA-256 hashes for ledger keys and events.

Everything here is deterministic: the same input always produces the same
string or digest, on any machine, so a stored event trail can be re-hashed
and checked at any time.
"""

import hashlib
import json
from datetime import datetime
from enum import Enum
from typing import Any

# Stand-in for prev_hash on the first event of the chain
GENESIS_LINK = "GENESIS"


def _encode_value(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"Cannot canonicalize {type(obj).__name__}")


def canonicalize_json(data: Any) -> str:
    """Compact JSON with sorted keys; enums by value, datetimes as ISO-8601."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_encode_value)


def record_key(*parts: Any) -> str:
    """
    Single string for a (possibly composite) record key.

    Parts are encoded as a JSON array, so ``("a-b", "c")`` and
    ``("a", "b-c")`` stay distinct and ``1`` never equals ``"1"``.
    """
    return canonicalize_json(list(parts))


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def hash_payload(payload: dict) -> str:
    return _sha256(canonicalize_json(payload))


def hash_ledger_event(
    entity_type: str,
    entity_key: str,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Chain hash of one ledger event.

    Covers the record identity, the action, the payload digest and the
    previous event's hash, so altering any stored event breaks every link
    after it.
    """
    return _sha256(
        "|".join((entity_type, entity_key, action, payload_hash, prev_hash or GENESIS_LINK))
    )
