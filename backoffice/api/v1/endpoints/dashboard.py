"""
Dashboard and audit trail endpoints.

- GET  /dashboard   — Firm-wide capital figures
- GET  /audit-logs  — Audit trail, newest first
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from backoffice.api.deps import get_audit_service, get_capital_service
from backoffice.schemas.audit import AuditLogResponse
from backoffice.schemas.capital import DashboardResponse
from backoffice.schemas.common import ErrorResponse
from backoffice.services.audit_service import AuditService
from backoffice.services.capital_service import CapitalService

router = APIRouter()


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Firm-wide capital figures",
    description=(
        "Investor counts, allocated and delivered capital, P&L, firm capital "
        "split into investor and internal capital, and the equity curve.  "
        "Computed fresh on every call."
    ),
    responses={503: {"model": ErrorResponse, "description": "A required read failed"}},
)
async def dashboard(
    as_of: Optional[datetime] = Query(None, description="Evaluate maturation at this instant"),
    service: CapitalService = Depends(get_capital_service),
) -> DashboardResponse:
    return await service.dashboard(as_of=as_of)


@router.get(
    "/audit-logs",
    response_model=List[AuditLogResponse],
    summary="Audit trail",
)
async def list_audit_logs(
    limit: int = Query(100, ge=1, le=1000, description="Max records to return"),
    module: Optional[str] = Query(None, max_length=40, description="Only this module"),
    reference_id: Optional[str] = Query(None, max_length=64, description="Only this reference"),
    service: AuditService = Depends(get_audit_service),
) -> List[AuditLogResponse]:
    return await service.list_recent(limit=limit, module=module, reference_id=reference_id)
