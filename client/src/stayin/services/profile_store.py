"""Supabase-backed profile store."""

import logging
from datetime import datetime, UTC
from enum import Enum
from typing import Any, Protocol

from supabase import AsyncClient

from stayin.models.identity import Profile

logger = logging.getLogger(__name__)


class ProfileStore(Protocol):
    """Key-value store of profiles keyed by identity id."""

    async def get(self, identity_id: str) -> Profile | None: ...

    async def set(self, identity_id: str, fields: dict[str, Any]) -> Profile: ...

    async def update(self, identity_id: str, fields: dict[str, Any]) -> None: ...


def _to_row(fields: dict[str, Any]) -> dict[str, Any]:
    """Make field values JSON-safe for the REST layer."""
    row: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, datetime):
            row[key] = value.isoformat()
        elif isinstance(value, Enum):
            row[key] = value.value
        else:
            row[key] = value
    return row


class SupabaseProfileStore:
    """Profile documents stored in a Supabase table keyed by identity id."""

    def __init__(self, client: AsyncClient, table: str = "profiles") -> None:
        self.client = client
        self.table = table

    async def get(self, identity_id: str) -> Profile | None:
        """Get the profile for an identity.

        Args:
            identity_id: The identity id (also the profile primary key)

        Returns:
            The profile, or None if no document exists
        """
        result = await (
            self.client.table(self.table)
            .select("*")
            .eq("id", identity_id)
            .execute()
        )

        if result.data:
            return Profile(**result.data[0])
        return None

    async def set(self, identity_id: str, fields: dict[str, Any]) -> Profile:
        """Create or replace the profile document for an identity.

        Args:
            identity_id: The identity id
            fields: Full profile fields (the id is taken from identity_id)

        Returns:
            The stored profile
        """
        row = _to_row({**fields, "id": identity_id})
        result = await self.client.table(self.table).upsert(row).execute()
        logger.debug(f"Stored profile {identity_id}")
        return Profile(**(result.data[0] if result.data else row))

    async def update(self, identity_id: str, fields: dict[str, Any]) -> None:
        """Merge fields into an existing profile and stamp updated_at.

        Args:
            identity_id: The identity id
            fields: Partial profile fields
        """
        data = _to_row({**fields, "updated_at": datetime.now(UTC)})
        data.pop("id", None)

        await (
            self.client.table(self.table)
            .update(data)
            .eq("id", identity_id)
            .execute()
        )
        logger.debug(f"Updated profile {identity_id}: {sorted(data)}")
