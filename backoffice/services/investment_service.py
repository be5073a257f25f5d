"""
Investment service — business logic layer for capital contributions.

Investments are immutable once recorded.  Their sum is an investor's gross
contributed capital, the base of every capital figure.

Caching:
    Investment lists are not cached.  Recording an investment changes the
    investor's ``investment_amount``, so it invalidates that investor's
    cached reads.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from backoffice.core.cache import cache
from backoffice.core.exceptions import NotFoundException, translate_integrity_error
from backoffice.models.investment import Investment
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.schemas.investment import InvestmentCreate
from backoffice.services.audit_service import (
    ACTION_INVESTMENT_ADDED,
    MODULE_INVESTMENTS,
    AuditService,
)
from backoffice.services.investor_service import CACHE_ENTITY as INVESTOR_CACHE_ENTITY

logger = logging.getLogger(__name__)


class InvestmentService:
    """
    Encapsulates the rules for :class:`Investment`.

    Requires the investor repository because an investment must reference
    an existing investor.
    """

    def __init__(
        self,
        invest_repo: InvestmentRepository,
        investor_repo: InvestorRepository,
        audit: AuditService,
    ):
        self._invest_repo = invest_repo
        self._investor_repo = investor_repo
        self._audit = audit

    # ── Queries ──

    async def list_investments(
        self, investor_id: UUID, skip: int = 0, limit: int = 100
    ) -> List[Investment]:
        """
        Return an investor's investments, most recent first.

        The investor is validated first so the caller gets a clear 404
        instead of an empty list.
        """
        investor = await self._investor_repo.get(investor_id)
        if not investor:
            raise NotFoundException("Investor", investor_id)
        return await self._invest_repo.list_by_investor(investor_id, skip=skip, limit=limit)

    # ── Commands ──

    async def create_investment(
        self, investor_id: UUID, invest_in: InvestmentCreate
    ) -> Investment:
        """
        Record a new contribution from an investor.

        1. The investor must exist -> 404 if not.
        2. Persist.  An ``IntegrityError`` here means the investor was deleted
           between the check and the insert (FK) or a CHECK constraint fired.
        """
        investor = await self._investor_repo.get(investor_id)
        if not investor:
            raise NotFoundException("Investor", investor_id)

        investment = Investment(investor_id=investor_id, **invest_in.model_dump())
        try:
            created = await self._invest_repo.create(investment)
        except IntegrityError as exc:
            await self._invest_repo.db.rollback()
            logger.warning("IntegrityError creating investment for %s: %s", investor_id, exc)
            raise translate_integrity_error(exc, "Investment could not be created")

        cache.invalidate_entity(INVESTOR_CACHE_ENTITY, investor_id)
        logger.info("Recorded investment %s: investor %s (%s)", created.id, investor_id, created.amount)
        await self._audit.record(
            ACTION_INVESTMENT_ADDED,
            investor.client_id,
            MODULE_INVESTMENTS,
            f"Added investment of {created.amount} for {investor.full_name}",
        )
        return created
