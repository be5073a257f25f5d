"""
Job endpoints for an external scheduler.

- POST  /jobs/maturation-sweep  — Move investors whose waiting period has elapsed to inactive
"""

from fastapi import APIRouter, Depends

from backoffice.api.deps import get_maturation_sweep
from backoffice.schemas.audit import SweepResponse
from backoffice.schemas.common import ErrorResponse
from backoffice.services.maturation_sweep import MaturationSweep

router = APIRouter()


@router.post(
    "/maturation-sweep",
    response_model=SweepResponse,
    summary="Run the maturation sweep",
    description=(
        "Transitions every investor 60 or more days into ``waiting_period`` to "
        "``inactive``.  Safe to repeat; investors that failed are listed in "
        "``failed_ids`` for a retry."
    ),
    responses={503: {"model": ErrorResponse, "description": "Candidate query failed"}},
)
async def run_maturation_sweep(
    sweep: MaturationSweep = Depends(get_maturation_sweep),
) -> SweepResponse:
    result = await sweep.run()
    return SweepResponse(
        as_of=result.as_of,
        count=result.count,
        investor_ids=result.investor_ids,
        failed_ids=result.failed_ids,
    )
