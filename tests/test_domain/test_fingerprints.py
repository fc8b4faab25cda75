"""Tests for content hashes and the proof-of-funds challenge format."""

from __future__ import annotations

import hashlib
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from deal_room.domain.fingerprints import canonical_json, content_hash, pof_challenge, terms_hash


class TestContentHash:
    def test_sha256_hex(self) -> None:
        assert content_hash("psbt") == hashlib.sha256(b"psbt").hexdigest()

    def test_none_hashes_as_empty(self) -> None:
        assert content_hash(None) == hashlib.sha256(b"").hexdigest()


class TestTermsHash:
    def test_key_order_does_not_matter(self) -> None:
        a = {"descriptor": "wsh(...)", "address": "bc1q", "refund_timelock": None}
        b = {"refund_timelock": None, "address": "bc1q", "descriptor": "wsh(...)"}
        assert terms_hash(a) == terms_hash(b)

    def test_any_change_changes_hash(self) -> None:
        assert terms_hash({"address": "bc1qa"}) != terms_hash({"address": "bc1qb"})

    def test_canonical_json_is_compact(self) -> None:
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


class TestPofChallenge:
    def test_format(self) -> None:
        deal_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
        at = datetime(2026, 3, 1, 12, 30, tzinfo=UTC)
        challenge = pof_challenge(deal_id, "Alice", "1 Main St", at, Decimal("0.5"))
        assert challenge == (
            "DealID:12345678-1234-5678-1234-567812345678 | Buyer:Alice | Property:1 Main St"
            " | Timestamp:2026-03-01T12:30:00+00:00 | RequestedAmount:0.5"
        )

    def test_missing_amount_is_blank(self) -> None:
        at = datetime(2026, 3, 1, tzinfo=UTC)
        assert pof_challenge(uuid.uuid4(), "Alice", "1 Main St", at, None).endswith("RequestedAmount:")

