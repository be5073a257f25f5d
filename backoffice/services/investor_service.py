"""
Investor service — business logic layer for investor operations.

Client ids are issued by the repository inside the insert transaction, so
the service never computes "next id" itself and two concurrent creates can
never receive the same one.

``investment_amount`` is not a column.  Every read sums the investor's
investments, so the figure cannot drift from the rows it summarises.

Caching:
    ``list_investors`` and ``get_investor`` are cache-backed under the
    ``investors`` entity.  Every command invalidates the investor's keys
    and all investor list keys.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from backoffice.core.cache import LIST_SCOPE, cache, cache_key
from backoffice.core.exceptions import (
    NotFoundException,
    PartialWriteException,
    translate_integrity_error,
)
from backoffice.models.investment import Investment
from backoffice.models.investor import Investor, InvestorStatus
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.schemas.investor import (
    InvestorCreate,
    InvestorResponse,
    InvestorUpdate,
)
from backoffice.services.audit_service import (
    ACTION_INVESTOR_CREATED,
    ACTION_INVESTOR_DELETED,
    ACTION_INVESTOR_UPDATED,
    ACTION_STATUS_CHANGED,
    MODULE_INVESTORS,
    AuditService,
)

logger = logging.getLogger(__name__)

CACHE_ENTITY = "investors"


class InvestorService:
    """Encapsulates CRUD + lifecycle rules for :class:`Investor`."""

    def __init__(
        self,
        investor_repo: InvestorRepository,
        investment_repo: InvestmentRepository,
        audit: AuditService,
    ):
        self._repo = investor_repo
        self._investment_repo = investment_repo
        self._audit = audit

    # ── Queries ──

    async def list_investors(
        self,
        status: Optional[InvestorStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[InvestorResponse]:
        """Return investors with their invested totals, newest first (cache-backed)."""
        key = cache_key(CACHE_ENTITY, LIST_SCOPE, status, search, skip, limit)
        cached = cache.get(key)
        if cached is not None:
            return cached

        rows = await self._repo.list_with_totals(
            status=status, search=search, skip=skip, limit=limit
        )
        investors = [InvestorResponse.from_investor(inv, total) for inv, total in rows]
        cache.set(key, investors)
        return investors

    async def get_investor(self, investor_id: UUID) -> InvestorResponse:
        """Retrieve one investor with its invested total (cache-backed)."""
        key = cache_key(CACHE_ENTITY, investor_id)
        cached = cache.get(key)
        if cached is not None:
            return cached

        investor = await self.get_or_404(investor_id)
        total = await self._investment_repo.sum_for_investor(investor_id)
        response = InvestorResponse.from_investor(investor, total)
        cache.set(key, response)
        return response

    async def get_or_404(self, investor_id: UUID) -> Investor:
        """Load the investor row uncached; raise :class:`NotFoundException` if missing."""
        investor = await self._repo.get(investor_id)
        if investor is None:
            raise NotFoundException("Investor", investor_id)
        return investor

    # ── Commands ──

    async def create_investor(self, investor_in: InvestorCreate) -> InvestorResponse:
        """
        Create an investor, and their first investment when an amount is given.

        The two inserts commit separately.  If the investment insert fails
        after the investor was created, :class:`PartialWriteException`
        reports the new investor's id instead of hiding the half-done write.
        """
        fields = investor_in.model_dump(exclude={"investment_amount"})
        investor = Investor(**fields)
        try:
            created = await self._repo.create(investor)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            logger.warning("IntegrityError creating investor '%s': %s", investor_in.full_name, exc)
            raise translate_integrity_error(exc, "Investor could not be created")

        cache.invalidate_entity(CACHE_ENTITY)
        logger.info("Created investor %s (%s)", created.client_id, created.id)
        await self._audit.record(
            ACTION_INVESTOR_CREATED,
            created.client_id,
            MODULE_INVESTORS,
            f"Created investor {created.full_name}",
        )

        total = investor_in.investment_amount
        if total is None:
            return InvestorResponse.from_investor(created, Decimal("0"))

        investment = Investment(
            investor_id=created.id,
            amount=total,
            invested_date=created.joining_date or date.today(),
            promised_return=created.promised_return,
            notes="Initial investment",
        )
        try:
            await self._investment_repo.create(investment)
        except SQLAlchemyError as exc:
            await self._investment_repo.db.rollback()
            logger.error(
                "Investor %s created but initial investment failed: %s", created.id, exc
            )
            raise PartialWriteException(
                "Investor was created but the initial investment could not be recorded",
                details={"investor_id": str(created.id), "client_id": created.client_id},
            ) from exc
        return InvestorResponse.from_investor(created, total)

    async def update_investor(
        self, investor_id: UUID, update_in: InvestorUpdate
    ) -> InvestorResponse:
        """Apply the fields present in ``update_in``; status and client id are untouched."""
        investor = await self.get_or_404(investor_id)
        changes = update_in.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(investor, field, value)
        investor.updated_at = datetime.now(timezone.utc)

        try:
            updated = await self._repo.update(investor)
        except IntegrityError as exc:
            await self._repo.db.rollback()
            raise translate_integrity_error(exc, "Investor could not be updated")

        cache.invalidate_entity(CACHE_ENTITY, investor_id)
        await self._audit.record(
            ACTION_INVESTOR_UPDATED,
            updated.client_id,
            MODULE_INVESTORS,
            f"Updated {', '.join(sorted(changes)) or 'nothing'} for {updated.full_name}",
        )
        total = await self._investment_repo.sum_for_investor(investor_id)
        return InvestorResponse.from_investor(updated, total)

    async def change_status(
        self, investor_id: UUID, new_status: InvestorStatus
    ) -> InvestorResponse:
        """
        Move an investor to ``new_status``.

        Entering ``waiting_period`` stamps ``waiting_period_start``; the
        maturation sweep moves the investor on to ``inactive`` once that
        timestamp is 60 days old.  Setting the current status again is a
        no-op.
        """
        investor = await self.get_or_404(investor_id)
        old_status = investor.status
        if old_status != new_status:
            now = datetime.now(timezone.utc)
            investor.status = new_status
            if new_status == InvestorStatus.WAITING_PERIOD:
                investor.waiting_period_start = now
            investor.updated_at = now
            investor = await self._repo.update(investor)

            cache.invalidate_entity(CACHE_ENTITY, investor_id)
            logger.info(
                "Investor %s status %s -> %s", investor_id, old_status.value, new_status.value
            )
            await self._audit.record(
                ACTION_STATUS_CHANGED,
                investor.client_id,
                MODULE_INVESTORS,
                f"{investor.full_name}: {old_status.value} -> {new_status.value}",
            )
        total = await self._investment_repo.sum_for_investor(investor_id)
        return InvestorResponse.from_investor(investor, total)

    async def delete_investor(self, investor_id: UUID) -> None:
        """
        Delete an investor.

        Investments, waiting-period entries and monthly returns go with it
        through ``ON DELETE CASCADE``.
        """
        investor = await self.get_or_404(investor_id)
        client_id, full_name = investor.client_id, investor.full_name
        deleted = await self._repo.delete(investor_id)
        if not deleted:
            raise NotFoundException("Investor", investor_id)

        cache.invalidate_entity(CACHE_ENTITY, investor_id)
        logger.info("Deleted investor %s (%s)", client_id, investor_id)
        await self._audit.record(
            ACTION_INVESTOR_DELETED, client_id, MODULE_INVESTORS, f"Deleted investor {full_name}"
        )

