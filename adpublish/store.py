"""Ad record store and transition log.

The only code in the publishing core that reads or writes the ``ads``,
``campaigns``, ``meta_connections`` and ``ad_status_transitions`` tables.
Every write commits immediately so a subsequent read in the same process
observes it.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from adpublish.models import Ad, AdStatusTransition, Campaign, MetaConnection, utcnow


def parse_id(value: uuid.UUID | str | None) -> uuid.UUID | None:
    """Return *value* as a UUID, or None when it is not a well-formed key."""
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return uuid.UUID(value.strip())
    except ValueError:
        return None


class AdStore:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def load_ad(self, ad_id: uuid.UUID | str) -> Ad | None:
        key = parse_id(ad_id)
        if key is None:
            return None
        return await self.db.get(Ad, key, populate_existing=True)

    async def load_ad_by_remote_id(self, remote_ad_id: str) -> Ad | None:
        result = await self.db.execute(select(Ad).where(Ad.remote_ad_id == remote_ad_id))
        return result.scalars().first()

    async def load_campaign(self, campaign_id: uuid.UUID | str) -> Campaign | None:
        key = parse_id(campaign_id)
        if key is None:
            return None
        return await self.db.get(Campaign, key, populate_existing=True)

    async def load_connection(self, campaign_id: uuid.UUID | str) -> MetaConnection | None:
        key = parse_id(campaign_id)
        if key is None:
            return None
        result = await self.db.execute(
            select(MetaConnection).where(MetaConnection.campaign_id == key)
        )
        return result.scalars().first()

    async def list_published_ads(self, campaign_id: uuid.UUID | str) -> list[Ad]:
        key = parse_id(campaign_id)
        if key is None:
            return []
        result = await self.db.execute(
            select(Ad)
            .where(Ad.campaign_id == key, Ad.remote_ad_id.is_not(None))
            .order_by(Ad.created_at)
        )
        return list(result.scalars().all())

    async def list_campaigns_with_published_ads(self) -> list[uuid.UUID]:
        result = await self.db.execute(
            select(Ad.campaign_id).where(Ad.remote_ad_id.is_not(None)).distinct()
        )
        return list(result.scalars().all())

    async def list_transitions(self, ad_id: uuid.UUID | str) -> list[AdStatusTransition]:
        key = parse_id(ad_id)
        if key is None:
            return []
        result = await self.db.execute(
            select(AdStatusTransition)
            .where(AdStatusTransition.ad_id == key)
            .order_by(AdStatusTransition.created_at)
        )
        return list(result.scalars().all())

    async def save_ad(self, ad: Ad, *transitions: AdStatusTransition) -> Ad:
        """Whole-row upsert of *ad*, committed together with any *transitions*."""
        ad.updated_at = utcnow()
        self.db.add(ad)
        for transition in transitions:
            self.db.add(transition)
        await self.db.commit()
        return ad

    async def save_campaign(self, campaign: Campaign) -> Campaign:
        campaign.updated_at = utcnow()
        self.db.add(campaign)
        await self.db.commit()
        return campaign

    async def rollback(self) -> None:
        await self.db.rollback()
