"""Credential lookup for publishing.

The consent flow that obtains platform tokens lives outside this service; it
leaves a ``meta_connections`` row per campaign.  Publishing and status sync
receive a :class:`CredentialProvider` through their constructors and never
resolve tokens on their own.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from adpublish.store import AdStore


@dataclass(frozen=True)
class Credential:
    token: str
    selected_account_id: str | None = None
    page_id: str | None = None
    instagram_actor_id: str | None = None
    expires_at: datetime | None = None
    payment_connected: bool = False

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            # SQLite drops tzinfo; stored values are UTC
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= datetime.now(tz=timezone.utc)


class CredentialProvider(Protocol):
    async def get_credential(self, campaign_id: uuid.UUID | str) -> Credential | None:
        ...


class ConnectionCredentialProvider:
    """Reads the campaign's stored platform connection."""

    def __init__(self, store: AdStore) -> None:
        self.store = store

    async def get_credential(self, campaign_id: uuid.UUID | str) -> Credential | None:
        connection = await self.store.load_connection(campaign_id)
        if connection is None or not connection.access_token:
            return None
        if connection.status not in ("active", "connected"):
            return None
        return Credential(
            token=connection.access_token,
            selected_account_id=connection.selected_ad_account_id,
            page_id=connection.selected_page_id,
            instagram_actor_id=connection.selected_instagram_id,
            expires_at=connection.token_expires_at,
            payment_connected=connection.payment_connected,
        )
