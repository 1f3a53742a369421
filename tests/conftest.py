from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from adpublish import models  # noqa: F401  -- ensure all models are registered
from adpublish.db import Base
from adpublish.models import Ad, Campaign, MetaConnection

OWNER_ID = "user-owner"


# ---------------------------------------------------------------------------
# Async test DB
# ---------------------------------------------------------------------------


def setup_async_test_db():
    """Create an in-memory async SQLite engine and session factory."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingAsyncSession = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False
    )
    return engine, TestingAsyncSession


@pytest.fixture
async def session_factory():
    engine, SessionFactory = setup_async_test_db()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SessionFactory
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Record factories
# ---------------------------------------------------------------------------


async def make_campaign(db: AsyncSession, **overrides: Any) -> Campaign:
    values: dict[str, Any] = {
        "user_id": OWNER_ID,
        "name": "Spring Sale",
        "goal": "website",
        "daily_budget": Decimal("20.00"),
        "currency": "USD",
        "location_targeting": [{"type": "country", "key": "US"}],
    }
    values.update(overrides)
    campaign = Campaign(**values)
    db.add(campaign)
    await db.commit()
    return campaign


async def make_connection(db: AsyncSession, campaign: Campaign, **overrides: Any) -> MetaConnection:
    values: dict[str, Any] = {
        "campaign_id": campaign.id,
        "access_token": "test-token",
        "token_expires_at": datetime.now(tz=timezone.utc) + timedelta(days=30),
        "selected_ad_account_id": "act_123",
        "selected_page_id": "page_456",
        "payment_connected": True,
        "status": "active",
    }
    values.update(overrides)
    connection = MetaConnection(**values)
    db.add(connection)
    await db.commit()
    return connection


async def make_ad(db: AsyncSession, campaign: Campaign, **overrides: Any) -> Ad:
    values: dict[str, Any] = {
        "campaign_id": campaign.id,
        "name": "Spring Sale - Ad 1",
        "status": "draft",
        "creative_data": {"image_url": "https://cdn.example.com/creative.png"},
        "copy_data": {
            "headline": "20% off everything",
            "primary_text": "Our spring sale starts today.",
            "cta_text": "Learn more",
        },
        "destination_data": {
            "type": "website_url",
            "data": {"website_url": "https://shop.example.com/sale"},
        },
    }
    values.update(overrides)
    ad = Ad(**values)
    db.add(ad)
    await db.commit()
    return ad


async def make_publishable_ad(db: AsyncSession, **ad_overrides: Any) -> tuple[Campaign, Ad]:
    """Campaign with a live connection and a draft ad that passes validation."""
    campaign = await make_campaign(db)
    await make_connection(db, campaign)
    ad = await make_ad(db, campaign, **ad_overrides)
    return campaign, ad
