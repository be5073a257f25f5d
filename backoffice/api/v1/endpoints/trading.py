"""
Trading API endpoints.

- GET   /trading-accounts                    — List accounts
- POST  /trading-accounts                    — Create an account
- GET   /trading-accounts/{account_id}/pnl   — List an account's daily P&L
- POST  /trading-accounts/{account_id}/pnl   — Record a day's P&L
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_audit_service
from backoffice.db.session import get_db
from backoffice.models.trading import DailyPnL, TradingAccount
from backoffice.repositories.trading_repo import DailyPnLRepository, TradingAccountRepository
from backoffice.schemas.common import ErrorResponse, ValidationErrorResponse
from backoffice.schemas.trading import (
    DailyPnLCreate,
    DailyPnLResponse,
    TradingAccountCreate,
    TradingAccountResponse,
)
from backoffice.services.audit_service import AuditService
from backoffice.services.trading_service import TradingService

router = APIRouter()


def _get_trading_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
) -> TradingService:
    return TradingService(
        account_repo=TradingAccountRepository(TradingAccount, db),
        pnl_repo=DailyPnLRepository(DailyPnL, db),
        audit=audit,
    )


@router.get("", response_model=List[TradingAccountResponse], summary="List trading accounts")
async def list_accounts(
    service: TradingService = Depends(_get_trading_service),
) -> List[TradingAccountResponse]:
    return await service.list_accounts()


@router.post(
    "",
    response_model=TradingAccountResponse,
    status_code=201,
    summary="Create a trading account",
    responses={422: {"model": ValidationErrorResponse, "description": "Validation error"}},
)
async def create_account(
    account: TradingAccountCreate,
    service: TradingService = Depends(_get_trading_service),
) -> TradingAccountResponse:
    return await service.create_account(account)


@router.get(
    "/{account_id}/pnl",
    response_model=List[DailyPnLResponse],
    summary="List daily P&L",
    description="Oldest first.",
    responses={404: {"model": ErrorResponse, "description": "Trading account not found"}},
)
async def list_pnl(
    account_id: UUID,
    service: TradingService = Depends(_get_trading_service),
) -> List[DailyPnLResponse]:
    return await service.list_pnl(account_id)


@router.post(
    "/{account_id}/pnl",
    response_model=DailyPnLResponse,
    status_code=201,
    summary="Record daily P&L",
    responses={
        404: {"model": ErrorResponse, "description": "Trading account not found"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def record_pnl(
    account_id: UUID,
    pnl: DailyPnLCreate,
    service: TradingService = Depends(_get_trading_service),
) -> DailyPnLResponse:
    return await service.record_pnl(account_id, pnl)
