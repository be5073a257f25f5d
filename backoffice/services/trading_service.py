"""
Trading service — trading accounts and their daily P&L.

These rows only feed the firm-wide figures (allocated capital, total P&L,
equity curve); no trading analytics are computed here.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from backoffice.core.exceptions import NotFoundException, translate_integrity_error
from backoffice.models.trading import DailyPnL, TradingAccount
from backoffice.repositories.trading_repo import DailyPnLRepository, TradingAccountRepository
from backoffice.schemas.trading import DailyPnLCreate, TradingAccountCreate
from backoffice.services.audit_service import (
    ACTION_ACCOUNT_CREATED,
    ACTION_PNL_ADDED,
    MODULE_TRADING,
    AuditService,
)

logger = logging.getLogger(__name__)


class TradingService:
    def __init__(
        self,
        account_repo: TradingAccountRepository,
        pnl_repo: DailyPnLRepository,
        audit: AuditService,
    ):
        self._account_repo = account_repo
        self._pnl_repo = pnl_repo
        self._audit = audit

    async def _get_account(self, account_id: UUID) -> TradingAccount:
        account = await self._account_repo.get(account_id)
        if account is None:
            raise NotFoundException("Trading account", account_id)
        return account

    # ── Queries ──

    async def list_accounts(self) -> List[TradingAccount]:
        return await self._account_repo.list_accounts()

    async def list_pnl(self, account_id: UUID) -> List[DailyPnL]:
        """An account's P&L rows in date order."""
        await self._get_account(account_id)
        return await self._pnl_repo.list_ordered(account_id)

    # ── Commands ──

    async def create_account(self, account_in: TradingAccountCreate) -> TradingAccount:
        account = TradingAccount(**account_in.model_dump())
        try:
            created = await self._account_repo.create(account)
        except IntegrityError as exc:
            await self._account_repo.db.rollback()
            raise translate_integrity_error(exc, "Trading account could not be created")

        logger.info("Created trading account %s (%s)", created.name, created.id)
        await self._audit.record(
            ACTION_ACCOUNT_CREATED,
            created.id,
            MODULE_TRADING,
            f"Created account {created.name} with {created.capital_allocated} allocated",
        )
        return created

    async def record_pnl(self, account_id: UUID, pnl_in: DailyPnLCreate) -> DailyPnL:
        account = await self._get_account(account_id)
        pnl = DailyPnL(account_id=account_id, **pnl_in.model_dump())
        try:
            created = await self._pnl_repo.create(pnl)
        except IntegrityError as exc:
            await self._pnl_repo.db.rollback()
            raise translate_integrity_error(exc, "Daily P&L could not be recorded")

        await self._audit.record(
            ACTION_PNL_ADDED,
            account_id,
            MODULE_TRADING,
            f"{account.name} {created.date}: {created.pnl_amount}",
        )
        return created
