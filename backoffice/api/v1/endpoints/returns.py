"""
Monthly return API endpoints.

- GET   /investors/{investor_id}/monthly-returns  — List an investor's payouts
- POST  /investors/{investor_id}/monthly-returns  — Create the payout for a month
- GET   /monthly-returns                          — List all payouts
- PUT   /monthly-returns/{return_id}/status       — Update payout status
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_audit_service
from backoffice.db.session import get_db
from backoffice.models.investment import Investment
from backoffice.models.investor import Investor
from backoffice.models.monthly_return import MonthlyReturn, ReturnStatus
from backoffice.models.waiting_period import WaitingPeriodEntry
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.repositories.monthly_return_repo import MonthlyReturnRepository
from backoffice.repositories.waiting_period_repo import WaitingPeriodRepository
from backoffice.schemas.common import ErrorResponse, ValidationErrorResponse
from backoffice.schemas.monthly_return import (
    MonthlyReturnCreate,
    MonthlyReturnResponse,
    MonthlyReturnStatusUpdate,
)
from backoffice.services.audit_service import AuditService
from backoffice.services.return_service import ReturnService

router = APIRouter()


def _get_return_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
) -> ReturnService:
    return ReturnService(
        return_repo=MonthlyReturnRepository(MonthlyReturn, db),
        investor_repo=InvestorRepository(Investor, db),
        investment_repo=InvestmentRepository(Investment, db),
        entry_repo=WaitingPeriodRepository(WaitingPeriodEntry, db),
        audit=audit,
    )


@router.get(
    "/investors/{investor_id}/monthly-returns",
    response_model=List[MonthlyReturnResponse],
    summary="List an investor's monthly returns",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def list_investor_returns(
    investor_id: UUID,
    service: ReturnService = Depends(_get_return_service),
) -> List[MonthlyReturnResponse]:
    return await service.list_returns(investor_id=investor_id)


@router.post(
    "/investors/{investor_id}/monthly-returns",
    response_model=MonthlyReturnResponse,
    status_code=201,
    summary="Create a monthly return",
    description=(
        "The amount is the investor's remaining capital times ``return_percent`` "
        "(default: the promised return), rounded to a whole unit."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Investor not found"},
        409: {"model": ErrorResponse, "description": "Month already has a return"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_return(
    investor_id: UUID,
    body: MonthlyReturnCreate,
    service: ReturnService = Depends(_get_return_service),
) -> MonthlyReturnResponse:
    return await service.create_return(investor_id, body)


@router.get(
    "/monthly-returns",
    response_model=List[MonthlyReturnResponse],
    summary="List all monthly returns",
)
async def list_returns(
    status: Optional[ReturnStatus] = Query(None, description="Only returns in this status"),
    service: ReturnService = Depends(_get_return_service),
) -> List[MonthlyReturnResponse]:
    return await service.list_returns(status=status)


@router.put(
    "/monthly-returns/{return_id}/status",
    response_model=MonthlyReturnResponse,
    summary="Update payout status",
    description="Moving to ``paid`` stamps ``paid_at``.",
    responses={404: {"model": ErrorResponse, "description": "Monthly return not found"}},
)
async def update_return_status(
    return_id: UUID,
    body: MonthlyReturnStatusUpdate,
    service: ReturnService = Depends(_get_return_service),
) -> MonthlyReturnResponse:
    return await service.update_status(return_id, body.status)
