"""
Investor API endpoints.

- GET     /investors               — List investors (status filter, search)
- POST    /investors               — Create an investor
- GET     /investors/{id}          — Retrieve an investor
- PATCH   /investors/{id}          — Update contact details / promised return
- DELETE  /investors/{id}          — Delete an investor and everything it owns
- PUT     /investors/{id}/status   — Status transition
- GET     /investors/{id}/summary  — Capital summary
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from backoffice.api.deps import get_capital_service, get_investor_service
from backoffice.models.investor import InvestorStatus
from backoffice.schemas.capital import InvestorSummaryResponse
from backoffice.schemas.common import ErrorResponse, ValidationErrorResponse
from backoffice.schemas.investor import (
    InvestorCreate,
    InvestorResponse,
    InvestorStatusUpdate,
    InvestorUpdate,
)
from backoffice.services.capital_service import CapitalService
from backoffice.services.investor_service import InvestorService

router = APIRouter()


@router.get(
    "",
    response_model=List[InvestorResponse],
    summary="List investors",
    description=(
        "Returns investors newest first, each with ``investment_amount`` summed "
        "from their investments.  Filter with ``status`` and ``search`` (name or "
        "client id); page with ``skip`` and ``limit``."
    ),
)
async def list_investors(
    status: Optional[InvestorStatus] = Query(None, description="Only investors in this status"),
    search: Optional[str] = Query(None, max_length=100, description="Name or client id fragment"),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    service: InvestorService = Depends(get_investor_service),
) -> List[InvestorResponse]:
    return await service.list_investors(status=status, search=search, skip=skip, limit=limit)


@router.post(
    "",
    response_model=InvestorResponse,
    status_code=201,
    summary="Create an investor",
    description=(
        "Registers an investor and assigns the next ``S91-INV-NNN`` client id.  "
        "When ``investment_amount`` is given it is recorded as the first investment."
    ),
    responses={
        409: {"model": ErrorResponse, "description": "Constraint conflict"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
        500: {"model": ErrorResponse, "description": "Investor created, investment not"},
    },
)
async def create_investor(
    investor: InvestorCreate,
    service: InvestorService = Depends(get_investor_service),
) -> InvestorResponse:
    return await service.create_investor(investor)


@router.get(
    "/{investor_id}",
    response_model=InvestorResponse,
    summary="Get an investor",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def get_investor(
    investor_id: UUID,
    service: InvestorService = Depends(get_investor_service),
) -> InvestorResponse:
    return await service.get_investor(investor_id)


@router.patch(
    "/{investor_id}",
    response_model=InvestorResponse,
    summary="Update an investor",
    description="Changes only the fields present in the body.",
    responses={
        404: {"model": ErrorResponse, "description": "Investor not found"},
        422: {"model": ValidationErrorResponse, "description": "Validation error"},
    },
)
async def update_investor(
    investor_id: UUID,
    update: InvestorUpdate,
    service: InvestorService = Depends(get_investor_service),
) -> InvestorResponse:
    return await service.update_investor(investor_id, update)


@router.delete(
    "/{investor_id}",
    status_code=204,
    summary="Delete an investor",
    description="Also deletes the investor's investments, capital returns and monthly returns.",
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def delete_investor(
    investor_id: UUID,
    service: InvestorService = Depends(get_investor_service),
) -> Response:
    await service.delete_investor(investor_id)
    return Response(status_code=204)


@router.put(
    "/{investor_id}/status",
    response_model=InvestorResponse,
    summary="Change investor status",
    description=(
        "Moving to ``waiting_period`` stamps ``waiting_period_start``; the "
        "maturation sweep later moves the investor to ``inactive``."
    ),
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def change_status(
    investor_id: UUID,
    body: InvestorStatusUpdate,
    service: InvestorService = Depends(get_investor_service),
) -> InvestorResponse:
    return await service.change_status(investor_id, body.status)


@router.get(
    "/{investor_id}/summary",
    response_model=InvestorSummaryResponse,
    summary="Investor capital summary",
    description=(
        "Total invested, remaining, returnable, returned and pending capital, "
        "with waiting-period entries split into pending and delivered at ``as_of`` "
        "(default: now)."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Investor not found"},
        503: {"model": ErrorResponse, "description": "A required read failed"},
    },
)
async def investor_summary(
    investor_id: UUID,
    as_of: Optional[datetime] = Query(None, description="Evaluate maturation at this instant"),
    service: CapitalService = Depends(get_capital_service),
) -> InvestorSummaryResponse:
    return await service.investor_summary(investor_id, as_of=as_of)
