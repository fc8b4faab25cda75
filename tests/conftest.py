"""Shared test fixtures for the Deal Room test suite.

Provides:
    - An on-disk SQLite database per test (aiosqlite), schema created from the ORM
    - Async sessions and a session factory for multi-session tests
    - Factory fixtures for deals and parties
    - A helper that drives a deal forward through the real workflows
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from deal_room.domain.enums import DealStatus, SessionType
from deal_room.infrastructure.database.orm_models import Base
from deal_room.logging_config import setup_logging
from deal_room.services.deal_service import DealService
from deal_room.services.escrow_service import EscrowService
from deal_room.services.party_service import PartyService
from deal_room.services.pof_service import PofService
from deal_room.services.signing_service import SigningService

if TYPE_CHECKING:
    from deal_room.infrastructure.database.orm_models import Deal, Party


@pytest.fixture(scope="session", autouse=True)
def _configure_logging() -> None:
    setup_logging(log_level="WARNING", json_logs=True)


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh SQLite database file with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'deal_room.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:  # noqa: ANN001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_deal_data() -> dict:
    """Return a valid deal creation data dict."""
    return {
        "property_address": "742 Evergreen Terrace, Springfield",
        "purchase_price": Decimal("525000.00"),
        "emd_amount": Decimal("0.25000000"),
        "jurisdiction": "CA",
    }


@pytest_asyncio.fixture
async def deal(session, sample_deal_data) -> Deal:
    return await DealService(session).create_deal(**sample_deal_data)


@pytest_asyncio.fixture
async def buyer(session, deal) -> Party:
    return await PartyService(session).invite(
        deal.id, role="buyer", display_name="Alice Buyer", email="alice@example.com"
    )


@pytest_asyncio.fixture
async def seller(session, deal) -> Party:
    return await PartyService(session).invite(
        deal.id, role="seller", display_name="Bob Seller", email="bob@example.com"
    )


@pytest_asyncio.fixture
async def title(session, deal) -> Party:
    return await PartyService(session).invite(
        deal.id,
        role="title",
        display_name="Carol Title",
        email="carol@titleco.example",
        company_name="First Title Co",
    )


@pytest.fixture
def advance_deal(session):
    """Return a coroutine that walks a deal up to the requested status."""

    async def _advance(deal: Deal, party: Party, target: DealStatus) -> Deal:
        steps = [
            (DealStatus.POF_PENDING, lambda: PofService(session).request_proof(deal.id, "Alice Buyer")),
            (DealStatus.POF_VERIFIED, lambda: _attest_and_verify(session, deal, party)),
            (DealStatus.ESCROW_CREATED, lambda: EscrowService(session).create_policy(deal.id)),
            (
                DealStatus.FUNDED,
                lambda: EscrowService(session).record_funding(deal.id, "ab" * 32, Decimal("0.25")),
            ),
            (
                DealStatus.CLOSING,
                lambda: SigningService(session).create_session(
                    deal.id, SessionType.RELEASE.value, "cHNidP8BAHECAAAAAQ=="
                ),
            ),
        ]
        for status, step in steps:
            if deal.status == target:
                break
            await step()
            assert deal.status == status
        return deal

    return _advance


async def _attest_and_verify(session: AsyncSession, deal: Deal, party: Party) -> None:
    svc = PofService(session)
    await svc.attest(
        deal.id,
        party_id=party.id,
        proof_type="bip322_message",
        address_or_descriptor="bc1qbuyerwallet",
        signature="H3x4mpl3S1gn4tur3==",
    )
    await svc.verify(deal.id)
