"""
V1 API router aggregation.

All versioned endpoint routers are mounted here under a common prefix.
The top-level ``main.py`` mounts this router at ``/api/v1``.
"""

from fastapi import APIRouter

from backoffice.api.v1.endpoints import (
    dashboard,
    investments,
    investors,
    jobs,
    returns,
    trading,
    waiting_period,
)

api_router = APIRouter()

api_router.include_router(investors.router, prefix="/investors", tags=["Investors"])
api_router.include_router(trading.router, prefix="/trading-accounts", tags=["Trading"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["Jobs"])

# These routers define their own full paths (/investors/{id}/investments,
# /waiting-period-entries, ...) and are mounted at the v1 root.
api_router.include_router(investments.router, tags=["Investments"])
api_router.include_router(waiting_period.router, tags=["Capital Returns"])
api_router.include_router(returns.router, tags=["Monthly Returns"])
api_router.include_router(dashboard.router, tags=["Dashboard"])
