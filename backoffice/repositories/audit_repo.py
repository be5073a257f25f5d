"""
Audit log repository — append and list only.
"""

from typing import List, Optional

from sqlalchemy.future import select

from backoffice.models.audit_log import AuditLogEntry
from backoffice.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLogEntry]):
    """Concrete repository for :class:`AuditLogEntry` entities."""

    async def list_recent(
        self,
        limit: int = 100,
        module: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> List[AuditLogEntry]:
        """Newest entries first."""

        async def _list() -> List[AuditLogEntry]:
            stmt = select(self.model)
            if module is not None:
                stmt = stmt.where(self.model.module == module)
            if reference_id is not None:
                stmt = stmt.where(self.model.reference_id == reference_id)
            stmt = stmt.order_by(self.model.timestamp.desc()).limit(limit)
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_list)
