"""
Deterministic hashing for audit records and stored snapshots.

The same payload always renders to the same canonical JSON (sorted keys,
no whitespace, Decimal/date/UUID as strings), so its SHA-256 is stable
across processes and databases.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        # Normalised so 1.50 and 1.5 hash the same
        return format(obj.normalize(), "f")
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """Canonical JSON: sorted keys, compact separators."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_json_default)


def to_json_safe(data: Any) -> Any:
    """Round-trip through canonical JSON so the result fits a JSON column."""
    return json.loads(canonicalize_json(data))


def hash_payload(payload: Any) -> str:
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()


def hash_audit_record(
    tenant_id: str,
    seq: int,
    action: str,
    entity_type: str,
    entity_id: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Chain hash of one audit record.

    Includes the previous record's hash so altering or deleting any row
    breaks every hash after it.
    """
    components = [
        tenant_id,
        str(seq),
        action,
        entity_type,
        entity_id,
        payload_hash,
        prev_hash or "GENESIS",
    ]
    return hashlib.sha256("|".join(components).encode("utf-8")).hexdigest()
