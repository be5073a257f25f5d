"""
Capital return / waiting-period API endpoints.

- POST  /investors/{investor_id}/capital-returns   — Initialize a capital return
- GET   /waiting-period-entries                    — List entries (filters below)
- POST  /waiting-period-entries/{entry_id}/deliver — Deliver an entry manually
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_audit_service, get_investor_service
from backoffice.db.session import get_db
from backoffice.models.investment import Investment
from backoffice.models.investor import Investor
from backoffice.models.waiting_period import WaitingPeriodEntry
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.repositories.waiting_period_repo import WaitingPeriodRepository
from backoffice.schemas.common import ErrorResponse, ValidationErrorResponse
from backoffice.schemas.waiting_period import (
    CapitalReturnCreate,
    DeliverResponse,
    EntryState,
    WaitingPeriodEntryResponse,
)
from backoffice.services import ledger
from backoffice.services.audit_service import AuditService
from backoffice.services.investor_service import InvestorService
from backoffice.services.waiting_period_service import WaitingPeriodService

router = APIRouter()


# ── Dependency injection ──


def _get_waiting_period_service(
    db: AsyncSession = Depends(get_db),
    investor_service: InvestorService = Depends(get_investor_service),
    audit: AuditService = Depends(get_audit_service),
) -> WaitingPeriodService:
    return WaitingPeriodService(
        entry_repo=WaitingPeriodRepository(WaitingPeriodEntry, db),
        investor_repo=InvestorRepository(Investor, db),
        investment_repo=InvestmentRepository(Investment, db),
        investor_service=investor_service,
        audit=audit,
    )


# ── Endpoints ──


@router.post(
    "/investors/{investor_id}/capital-returns",
    response_model=WaitingPeriodEntryResponse,
    status_code=201,
    summary="Initialize a capital return",
    description=(
        "Starts a 60-day waiting period for ``amount`` of the investor's capital.  "
        "The amount may not exceed the returnable capital (invested minus every "
        "earlier return).  With ``transition_investor`` the investor is also moved "
        "to ``waiting_period``."
    ),
    responses={
        404: {"model": ErrorResponse, "description": "Investor not found"},
        409: {"model": ErrorResponse, "description": "Capital changed concurrently"},
        422: {"model": ValidationErrorResponse, "description": "Amount exceeds returnable capital"},
        500: {"model": ErrorResponse, "description": "Entry created, status change failed"},
    },
)
async def initialize_return(
    investor_id: UUID,
    body: CapitalReturnCreate,
    service: WaitingPeriodService = Depends(_get_waiting_period_service),
) -> WaitingPeriodEntryResponse:
    entry = await service.initialize_return(
        investor_id,
        body.amount,
        initialized_date=body.initialized_date,
        notes=body.notes,
        transition_investor=body.transition_investor,
    )
    return WaitingPeriodEntryResponse.from_entry(entry)


@router.get(
    "/waiting-period-entries",
    response_model=List[WaitingPeriodEntryResponse],
    summary="List waiting-period entries",
    description=(
        "Most recently initialised first.  ``state`` keeps only pending or only "
        "delivered entries as of ``as_of`` (default: now)."
    ),
    responses={404: {"model": ErrorResponse, "description": "Investor not found"}},
)
async def list_entries(
    investor_id: Optional[UUID] = Query(None, description="Only this investor's entries"),
    state: Optional[EntryState] = Query(None, description="pending or delivered"),
    as_of: Optional[datetime] = Query(None, description="Evaluate maturation at this instant"),
    service: WaitingPeriodService = Depends(_get_waiting_period_service),
) -> List[WaitingPeriodEntryResponse]:
    now = ledger.utcnow() if as_of is None else ledger.as_utc(as_of)
    entries = await service.list_entries(investor_id=investor_id, state=state, as_of=now)
    return [WaitingPeriodEntryResponse.from_entry(e, now) for e in entries]


@router.post(
    "/waiting-period-entries/{entry_id}/deliver",
    response_model=DeliverResponse,
    summary="Deliver a capital return manually",
    description=(
        "Marks the entry delivered now, before its 60 days have elapsed.  "
        "Repeating the call is harmless and reports ``already_delivered``."
    ),
    responses={404: {"model": ErrorResponse, "description": "Entry not found"}},
)
async def deliver_entry(
    entry_id: UUID,
    service: WaitingPeriodService = Depends(_get_waiting_period_service),
) -> DeliverResponse:
    entry, changed = await service.mark_delivered(entry_id)
    return DeliverResponse(
        entry=WaitingPeriodEntryResponse.from_entry(entry),
        already_delivered=not changed,
    )
