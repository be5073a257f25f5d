"""
Investment API endpoints.

Investments are scoped under investors:
- GET   /investors/{investor_id}/investments  — List an investor's investments
- POST  /investors/{investor_id}/investments  — Record a new investment
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_audit_service
from backoffice.db.session import get_db
from backoffice.models.investment import Investment
from backoffice.models.investor import Investor
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.schemas.common import ErrorResponse, ValidationErrorResponse
from backoffice.schemas.investment import InvestmentCreate, InvestmentResponse
from backoffice.services.audit_service import AuditService
from backoffice.services.investment_service import InvestmentService

router = APIRouter()


# ── Dependency injection ──


def _get_investment_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
) -> InvestmentService:
    """Build an InvestmentService wired to the current request's DB session."""
    return InvestmentService(
        invest_repo=InvestmentRepository(Investment, db),
        investor_repo=InvestorRepository(Investor, db),
        audit=audit,
    )


# ── Endpoints ──
# Full paths are given because the router is mounted at the API-version root.


@router.get(
    "/investors/{investor_id}/investments",
    response_model=List[InvestmentResponse],
    summary="List an investor's investments",
    description="Most recent first.  Use ``skip`` and ``limit`` to paginate.",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def list_investments(
    investor_id: UUID,
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: InvestmentService = Depends(_get_investment_service),
) -> List[InvestmentResponse]:
    return await service.list_investments(investor_id, skip=skip, limit=limit)


@router.post(
    "/investors/{investor_id}/investments",
    response_model=InvestmentResponse,
    status_code=201,
    summary="Record an investment",
    responses={
        404: {"model": ErrorResponse, "description": "Investor not found"},
        409: {"model": ErrorResponse, "description": "Investor removed concurrently"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def create_investment(
    investor_id: UUID,
    investment: InvestmentCreate,
    service: InvestmentService = Depends(_get_investment_service),
) -> InvestmentResponse:
    return await service.create_investment(investor_id, investment)
