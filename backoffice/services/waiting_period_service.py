"""
Waiting-period service — initialising and delivering capital returns.

A capital return is recorded as a :class:`WaitingPeriodEntry`.  It counts
as returned once it matures (see ``backoffice.services.ledger``): either
after 60 days or when an operator marks it delivered.

Invariant kept on every write:
    the sum of an investor's entries (pending and delivered) never exceeds
    the sum of their investments.

``initialize_return`` checks the amount against the returnable capital
while holding the investor row lock, then re-reads the persisted totals
after flushing the new entry and rolls back if they no longer add up.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from backoffice.core.exceptions import (
    AppException,
    ConflictException,
    NotFoundException,
    PartialWriteException,
    ValidationException,
    translate_integrity_error,
)
from backoffice.models.investor import InvestorStatus
from backoffice.models.waiting_period import WaitingPeriodEntry
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.repositories.waiting_period_repo import WaitingPeriodRepository
from backoffice.schemas.waiting_period import EntryState
from backoffice.services import capital, ledger
from backoffice.services.audit_service import (
    ACTION_RETURN_DELIVERED,
    ACTION_RETURN_INITIALIZED,
    MODULE_WAITING_PERIOD,
    AuditService,
)
from backoffice.services.investor_service import InvestorService

logger = logging.getLogger(__name__)


class WaitingPeriodService:
    """Business rules for :class:`WaitingPeriodEntry`."""

    def __init__(
        self,
        entry_repo: WaitingPeriodRepository,
        investor_repo: InvestorRepository,
        investment_repo: InvestmentRepository,
        investor_service: InvestorService,
        audit: AuditService,
    ):
        self._entry_repo = entry_repo
        self._investor_repo = investor_repo
        self._investment_repo = investment_repo
        self._investor_service = investor_service
        self._audit = audit

    # ── Queries ──

    async def list_entries(
        self,
        investor_id: Optional[UUID] = None,
        state: Optional[EntryState] = None,
        as_of: Optional[datetime] = None,
    ) -> List[WaitingPeriodEntry]:
        """
        Entries, most recently initialised first, optionally filtered.

        ``state`` filters through :func:`ledger.classify` at ``as_of``, the
        same rule every capital figure uses.
        """
        if investor_id is not None:
            investor = await self._investor_repo.get(investor_id)
            if investor is None:
                raise NotFoundException("Investor", investor_id)

        entries = await self._entry_repo.list_entries(investor_id)
        if state is None:
            return entries
        partition = ledger.classify(entries, as_of)
        return partition.pending if state == EntryState.PENDING else partition.delivered

    # ── Commands ──

    async def initialize_return(
        self,
        investor_id: UUID,
        amount: Decimal,
        initialized_date: Optional[datetime] = None,
        notes: Optional[str] = None,
        transition_investor: bool = False,
    ) -> WaitingPeriodEntry:
        """
        Start returning ``amount`` of an investor's capital.

        Raises:
            NotFoundException: the investor does not exist.
            ValidationException: ``amount`` is not positive or exceeds the
                returnable capital.  Nothing is written.
            ConflictException: a concurrent write changed the totals between
                the check and the insert.  Nothing is written.
            PartialWriteException: ``transition_investor`` was requested, the
                entry was committed, but the status change failed.
        """
        if amount <= 0:
            raise ValidationException(
                "Amount must be positive", details={"amount": float(amount)}
            )

        db = self._entry_repo.db
        initialized = ledger.as_utc(initialized_date) if initialized_date else ledger.utcnow()

        try:
            investor = await self._investor_repo.get_for_update(investor_id)
            if investor is None:
                raise NotFoundException("Investor", investor_id)

            investments = await self._investment_repo.list_by_investor(investor_id)
            entries = await self._entry_repo.list_entries(investor_id)
            returnable = capital.returnable_capital(investments, entries)
            if amount > returnable:
                remaining = capital.remaining_capital(investments, entries)
                raise ValidationException(
                    f"Amount {amount} exceeds the returnable capital of {returnable}",
                    details={
                        "returnable_capital": float(returnable),
                        "remaining_capital": float(remaining),
                    },
                )

            entry = WaitingPeriodEntry(
                investor_id=investor_id,
                amount=amount,
                initialized_date=initialized,
                notes=notes,
            )
            await self._entry_repo.add(entry)

            invested = await self._investment_repo.sum_for_investor(investor_id)
            committed = await self._entry_repo.sum_for_investor(investor_id)
            if committed > invested:
                logger.warning(
                    "Returns for investor %s would reach %s against %s invested; rolling back",
                    investor_id,
                    committed,
                    invested,
                )
                raise ConflictException(
                    "Capital return could not be initialized: the investor's capital "
                    "changed concurrently. Reload and try again."
                )
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            logger.warning("IntegrityError initializing return for %s: %s", investor_id, exc)
            raise translate_integrity_error(exc, "Capital return could not be initialized")
        except (AppException, SQLAlchemyError):
            await db.rollback()
            raise

        logger.info(
            "Initialized capital return %s: investor %s amount %s", entry.id, investor_id, amount
        )
        await self._audit.record(
            ACTION_RETURN_INITIALIZED,
            investor.client_id,
            MODULE_WAITING_PERIOD,
            f"Initialized return of {amount} for {investor.full_name}",
        )

        if transition_investor:
            try:
                await self._investor_service.change_status(
                    investor_id, InvestorStatus.WAITING_PERIOD
                )
            except (AppException, SQLAlchemyError) as exc:
                logger.error(
                    "Capital return %s recorded but investor %s status update failed: %s",
                    entry.id,
                    investor_id,
                    exc,
                )
                raise PartialWriteException(
                    "Capital return was recorded but the investor status could not be updated",
                    details={"entry_id": str(entry.id), "investor_id": str(investor_id)},
                ) from exc
        return entry

    async def mark_delivered(self, entry_id: UUID) -> Tuple[WaitingPeriodEntry, bool]:
        """
        Manually deliver an entry ahead of (or after) its 60 days.

        Returns ``(entry, changed)``.  ``changed`` is ``False`` when the entry
        was already delivered: delivery is one-way and repeating it is a
        successful no-op that writes no audit record.
        """
        entry = await self._entry_repo.get(entry_id)
        if entry is None:
            raise NotFoundException("Waiting period entry", entry_id)
        if entry.delivered:
            return entry, False

        changed = await self._entry_repo.mark_delivered(entry_id, ledger.utcnow())
        entry = await self._entry_repo.refetch(entry_id)
        if entry is None:
            raise NotFoundException("Waiting period entry", entry_id)

        if changed:
            logger.info("Capital return %s delivered manually", entry_id)
            investor = await self._investor_repo.get(entry.investor_id)
            await self._audit.record(
                ACTION_RETURN_DELIVERED,
                investor.client_id if investor else entry.investor_id,
                MODULE_WAITING_PERIOD,
                f"Waiting Period moved to Delivered Amounts manually ({entry.amount})",
            )
        return entry, changed
