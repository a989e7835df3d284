"""Audit log repository."""
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from agencytax.models.audit_log import AuditLog
from agencytax.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, AuditLog)

    async def record(
        self,
        actor_user_id: UUID,
        action: str,
        metadata: dict[str, Any],
        table_name: str | None = None,
        record_id: UUID | None = None,
    ) -> AuditLog:
        """Write one audit entry. Callers treat failures as non-critical."""
        entry = AuditLog(
            actor_user_id=actor_user_id,
            action=action,
            table_name=table_name,
            record_id=record_id,
            event_metadata=metadata,
        )
        return await self.create(entry)
