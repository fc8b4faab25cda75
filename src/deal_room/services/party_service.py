"""Party Registry — deal participants and their wallet material."""

from __future__ import annotations

from typing import TYPE_CHECKING

from deal_room.domain.enums import SIGNING_ROLES, EventType
from deal_room.domain.exceptions import EntityNotFoundError
from deal_room.infrastructure.database.orm_models import Party
from deal_room.infrastructure.database.repositories import PartyRepository
from deal_room.logging_config import get_logger
from deal_room.services.audit_ledger import AuditLedger, entity_payload
from deal_room.services.deal_service import DealService

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class PartyService:
    """Invites participants into a deal and tracks their keys."""

    def __init__(self, session: AsyncSession) -> None:
        self._party_repo = PartyRepository(session)
        self._deals = DealService(session)
        self._ledger = AuditLedger(session)

    async def invite(
        self,
        deal_id: uuid.UUID,
        role: str,
        display_name: str,
        email: str,
        phone: str | None = None,
        company_name: str | None = None,
        license_number: str | None = None,
        signing_authority: bool | None = None,
        wallet_descriptor: str | None = None,
        pubkey: str | None = None,
    ) -> Party:
        """Add a participant to a deal.

        Buyer, seller and title parties sign by default; every other role
        does not unless `signing_authority` says otherwise.
        """
        deal = await self._deals.get_deal(deal_id)
        if signing_authority is None:
            signing_authority = role in SIGNING_ROLES

        party = Party(
            deal_id=deal.id,
            role=role,
            display_name=display_name,
            email=email,
            phone=phone,
            company_name=company_name,
            license_number=license_number,
            signing_authority=signing_authority,
            wallet_descriptor=wallet_descriptor,
            pubkey=pubkey,
        )
        deal.parties.append(party)
        party = await self._party_repo.create(party)

        await self._ledger.record(
            deal_id=deal.id,
            event_type=EventType.PARTY_INVITED,
            payload=entity_payload("party", after=party),
            actor_party_id=party.id,
        )

        logger.info(
            "party.invited",
            deal_id=deal.id,
            party_id=party.id,
            role=role,
            signing_authority=signing_authority,
        )
        return party

    async def attach_wallet(
        self,
        party_id: uuid.UUID,
        wallet_descriptor: str | None = None,
        pubkey: str | None = None,
    ) -> Party:
        """Set a party's wallet descriptor and/or public key. Nothing else is mutable."""
        party = await self.get_party(party_id)
        before = party.to_snapshot()

        if wallet_descriptor is not None:
            party.wallet_descriptor = wallet_descriptor
        if pubkey is not None:
            party.pubkey = pubkey
        await self._party_repo.save(party)

        await self._ledger.record(
            deal_id=party.deal_id,
            event_type=EventType.PARTY_UPDATED,
            payload=entity_payload("party", before=before, after=party),
            actor_party_id=party.id,
        )

        logger.info("party.wallet_attached", party_id=party.id, has_pubkey=party.pubkey is not None)
        return party

    async def list_parties(self, deal_id: uuid.UUID) -> list[Party]:
        deal = await self._deals.get_deal(deal_id)
        return await self._party_repo.list_for_deal(deal.id)

    async def get_party(self, party_id: uuid.UUID) -> Party:
        """Get a party or raise."""
        party = await self._party_repo.get_by_id(party_id)
        if party is None:
            raise EntityNotFoundError("Party", party_id)
        return party

    async def require_party_in_deal(
        self, deal_id: uuid.UUID, party_id: uuid.UUID | None
    ) -> Party | None:
        """Resolve an optional party reference, rejecting parties of other deals."""
        if party_id is None:
            return None
        party = await self._party_repo.get_by_id(party_id)
        if party is None or party.deal_id != deal_id:
            raise EntityNotFoundError("Party", party_id)
        return party
