"""
Monthly return service — payouts on an investor's remaining capital.

The payout amount is fixed when the return is created:

    amount = round_half_up(remaining_capital * return_percent / 100)

so a later capital return does not rewrite history.  One payout per
investor per month; the composite unique constraint backs the pre-check.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from backoffice.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
    translate_integrity_error,
)
from backoffice.models.monthly_return import MonthlyReturn, ReturnStatus
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.repositories.monthly_return_repo import MonthlyReturnRepository
from backoffice.repositories.waiting_period_repo import WaitingPeriodRepository
from backoffice.schemas.monthly_return import MonthlyReturnCreate
from backoffice.services import capital
from backoffice.services.audit_service import (
    ACTION_MONTHLY_RETURN_ADDED,
    ACTION_RETURN_STATUS_UPDATED,
    MODULE_RETURNS,
    AuditService,
)

logger = logging.getLogger(__name__)


class ReturnService:
    """Encapsulates the rules for :class:`MonthlyReturn`."""

    def __init__(
        self,
        return_repo: MonthlyReturnRepository,
        investor_repo: InvestorRepository,
        investment_repo: InvestmentRepository,
        entry_repo: WaitingPeriodRepository,
        audit: AuditService,
    ):
        self._return_repo = return_repo
        self._investor_repo = investor_repo
        self._investment_repo = investment_repo
        self._entry_repo = entry_repo
        self._audit = audit

    # ── Queries ──

    async def list_returns(
        self,
        investor_id: Optional[UUID] = None,
        status: Optional[ReturnStatus] = None,
    ) -> List[MonthlyReturn]:
        if investor_id is not None:
            investor = await self._investor_repo.get(investor_id)
            if investor is None:
                raise NotFoundException("Investor", investor_id)
        return await self._return_repo.list_returns(investor_id=investor_id, status=status)

    # ── Commands ──

    async def create_return(self, investor_id: UUID, return_in: MonthlyReturnCreate) -> MonthlyReturn:
        """
        Create the payout of ``return_in.month`` for an investor.

        ``return_percent`` falls back to the investor's promised return; with
        neither there is nothing to compute and a 422 is raised.
        """
        investor = await self._investor_repo.get(investor_id)
        if investor is None:
            raise NotFoundException("Investor", investor_id)

        percent = return_in.return_percent
        if percent is None:
            percent = investor.promised_return
        if percent is None:
            raise ValidationException(
                "return_percent is required because the investor has no promised return"
            )

        existing = await self._return_repo.get_by_investor_month(investor_id, return_in.month)
        if existing:
            raise ConflictException(
                f"A monthly return for {return_in.month} already exists for this investor"
            )

        investments = await self._investment_repo.list_by_investor(investor_id)
        entries = await self._entry_repo.list_entries(investor_id)
        remaining = capital.remaining_capital(investments, entries)

        monthly_return = MonthlyReturn(
            investor_id=investor_id,
            month=return_in.month,
            amount=capital.monthly_return_amount(remaining, percent),
            return_percent=percent,
        )
        try:
            created = await self._return_repo.create(monthly_return)
        except IntegrityError as exc:
            await self._return_repo.db.rollback()
            logger.warning(
                "IntegrityError creating return %s for %s (concurrent duplicate?): %s",
                return_in.month,
                investor_id,
                exc,
            )
            raise translate_integrity_error(exc, "Monthly return could not be created")

        logger.info(
            "Created monthly return %s for %s: %s at %s%%",
            created.month,
            investor_id,
            created.amount,
            percent,
        )
        await self._audit.record(
            ACTION_MONTHLY_RETURN_ADDED,
            investor.client_id,
            MODULE_RETURNS,
            f"Added {created.month} return of {created.amount} for {investor.full_name}",
        )
        return created

    async def update_status(self, return_id: UUID, status: ReturnStatus) -> MonthlyReturn:
        """
        Change the payout status.

        Moving to ``paid`` stamps ``paid_at``; moving away from it clears it.
        """
        monthly_return = await self._return_repo.get(return_id)
        if monthly_return is None:
            raise NotFoundException("Monthly return", return_id)

        old_status = monthly_return.status
        if old_status == status:
            return monthly_return

        monthly_return.status = status
        monthly_return.paid_at = datetime.now(timezone.utc) if status == ReturnStatus.PAID else None
        updated = await self._return_repo.update(monthly_return)

        await self._audit.record(
            ACTION_RETURN_STATUS_UPDATED,
            updated.investor_id,
            MODULE_RETURNS,
            f"{updated.month}: {old_status.value} -> {status.value}",
        )
        return updated
