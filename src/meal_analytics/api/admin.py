"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from meal_analytics.config import parse_tenant_id
from meal_analytics.domain.buckets import Granularity  # noqa: TC001

if TYPE_CHECKING:
    from meal_analytics.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.post("/analytics/rebuild", dependencies=[Depends(require_admin)])
async def rebuild_analytics(
    request: Request, x_tenant_id: str | None = Header(default=None)
) -> dict[str, object]:
    """Rebuild every analytics bucket from the raw meal logs."""
    container: AppContainer = request.app.state.container
    tenant_id = (
        parse_tenant_id(x_tenant_id) if container.settings.tenant_scoped else None
    )
    return {"rebuilt": container.admin_service.rebuild_analytics(tenant_id)}


@router.get("/analytics/buckets/{granularity}", dependencies=[Depends(require_admin)])
async def list_buckets(
    granularity: Granularity,
    request: Request,
    x_tenant_id: str | None = Header(default=None),
) -> dict[str, object]:
    """Return stored buckets of one granularity."""
    container: AppContainer = request.app.state.container
    tenant_id = (
        parse_tenant_id(x_tenant_id) if container.settings.tenant_scoped else None
    )
    return {"buckets": container.admin_service.list_buckets(granularity, tenant_id)}
