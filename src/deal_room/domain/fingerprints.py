"""Content fingerprints for tamper evidence.

Hashes here are SHA-256 hex digests. None of them verify a signature or a
transaction; they only make the stored material auditable later.
"""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import uuid
    from datetime import datetime
    from decimal import Decimal


def content_hash(value: str | bytes | None) -> str:
    """SHA-256 of a string payload (None hashes as the empty string)."""
    if value is None:
        value = b""
    if isinstance(value, str):
        value = value.encode()
    return hashlib.sha256(value).hexdigest()


def canonical_json(payload: Any) -> str:
    """Stable JSON encoding: sorted keys, no whitespace, str() for non-JSON types."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def terms_hash(terms: dict[str, Any]) -> str:
    """Hash of an escrow policy submission, reproducible from the same terms."""
    return content_hash(canonical_json(terms))


def pof_challenge(
    deal_id: uuid.UUID,
    requester_name: str,
    property_address: str,
    requested_at: datetime,
    requested_amount: Decimal | str | None,
) -> str:
    """Build the proof-of-funds challenge a party must sign.

    Every component is stored alongside the request, so the challenge can be
    rebuilt and compared during an audit.
    """
    return " | ".join(
        [
            f"DealID:{deal_id}",
            f"Buyer:{requester_name or ''}",
            f"Property:{property_address or ''}",
            f"Timestamp:{requested_at.isoformat()}",
            f"RequestedAmount:{'' if requested_amount is None else requested_amount}",
        ]
    )
