"""FastAPI application factory."""

import logging
from datetime import date
from uuid import UUID

from fastapi import FastAPI, Header, Request, status
from fastapi.responses import JSONResponse

from meal_analytics.api.admin import router as admin_router
from meal_analytics.api.models import (
    MealLogBulkCreate,
    MealLogCreate,
    MealLogUpdate,
    RelogRequest,
)
from meal_analytics.app_logging import configure_logging
from meal_analytics.config import parse_tenant_id
from meal_analytics.containers import AppContainer
from meal_analytics.domain.analytics import (
    AggregateResult,
    CalorieExtreme,
    MacroAverages,
)
from meal_analytics.domain.entries import RawEntry
from meal_analytics.domain.errors import (
    EntryNotFoundError,
    InvalidTenantError,
    InvalidWindowError,
    StorageError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    app.include_router(admin_router)

    def tenant_for(request: Request, raw: str | None) -> UUID | None:
        state_container: AppContainer = request.app.state.container
        if not state_container.settings.tenant_scoped:
            return None
        return parse_tenant_id(raw)

    @app.exception_handler(StorageError)
    async def storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Storage temporarily unavailable", "retryable": True},
        )

    @app.exception_handler(EntryNotFoundError)
    async def entry_not_found(
        request: Request, exc: EntryNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)}
        )

    @app.exception_handler(InvalidWindowError)
    async def invalid_window(
        request: Request, exc: InvalidWindowError
    ) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(InvalidTenantError)
    async def invalid_tenant(
        request: Request, exc: InvalidTenantError
    ) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/analytics")
    async def analytics(
        request: Request,
        days_back: int | None = None,
        x_tenant_id: str | None = Header(default=None),
    ) -> dict[str, object]:
        """Return averages, extremes and counts from the analytics buckets."""
        state_container: AppContainer = request.app.state.container
        result = state_container.analytics_service.get_aggregate(
            days_back=days_back, tenant_id=tenant_for(request, x_tenant_id)
        )
        return _serialize_aggregate(result)

    @app.post("/meal-logs", status_code=status.HTTP_201_CREATED)
    async def create_meal_log(
        payload: MealLogCreate,
        request: Request,
        x_tenant_id: str | None = Header(default=None),
    ) -> dict[str, object]:
        """Log a meal and update analytics in the same unit of work."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.meal_log_service.log_meal(
            payload.to_draft(tenant_for(request, x_tenant_id))
        )
        return _serialize_entry(entry)

    @app.get("/meal-logs")
    async def list_meal_logs(
        request: Request,
        eaten_on: date | None = None,
        x_tenant_id: str | None = Header(default=None),
    ) -> dict[str, object]:
        """List logged meals, optionally for a single day."""
        state_container: AppContainer = request.app.state.container
        entries = state_container.meal_log_service.list_meals(
            eaten_on,
            tenant_for(request, x_tenant_id),
            all_tenants=not state_container.settings.tenant_scoped,
        )
        return {"meal_logs": [_serialize_entry(entry) for entry in entries]}

    @app.post("/meal-logs/bulk", status_code=status.HTTP_201_CREATED)
    async def create_meal_logs(
        payload: MealLogBulkCreate,
        request: Request,
        x_tenant_id: str | None = Header(default=None),
    ) -> dict[str, object]:
        """Log several meals atomically."""
        state_container: AppContainer = request.app.state.container
        tenant_id = tenant_for(request, x_tenant_id)
        entries = state_container.meal_log_service.log_meals(
            [meal.to_draft(tenant_id) for meal in payload.meals]
        )
        return {"meal_logs": [_serialize_entry(entry) for entry in entries]}

    @app.get("/meal-logs/{entry_id}")
    async def get_meal_log(entry_id: UUID, request: Request) -> dict[str, object]:
        """Return a logged meal."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.meal_log_service.get_meal(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Meal log {entry_id} not found")
        return _serialize_entry(entry)

    @app.patch("/meal-logs/{entry_id}")
    async def update_meal_log(
        entry_id: UUID, payload: MealLogUpdate, request: Request
    ) -> dict[str, object]:
        """Update a logged meal and recompute both affected days."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.meal_log_service.update_meal(
            entry_id, payload.to_changes()
        )
        return _serialize_entry(entry)

    @app.delete("/meal-logs/{entry_id}")
    async def delete_meal_log(entry_id: UUID, request: Request) -> dict[str, object]:
        """Delete a logged meal."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.meal_log_service.delete_meal(entry_id)
        return {"deleted": str(entry.id)}

    @app.post("/meal-logs/{entry_id}/relog", status_code=status.HTTP_201_CREATED)
    async def relog_meal_log(
        entry_id: UUID, payload: RelogRequest, request: Request
    ) -> dict[str, object]:
        """Log a copy of an existing meal."""
        state_container: AppContainer = request.app.state.container
        entry = state_container.meal_log_service.relog_meal(
            entry_id,
            multiplier=payload.multiplier,
            notes=payload.notes,
            eaten_on=payload.eaten_on,
        )
        return _serialize_entry(entry)

    return app


def _serialize_entry(entry: RawEntry) -> dict[str, object]:
    macros = None
    if entry.macros is not None:
        macros = {
            "calories": float(entry.macros.calories),
            "protein": float(entry.macros.protein),
            "carbs": float(entry.macros.carbs),
            "fat": float(entry.macros.fat),
        }
    return {
        "id": str(entry.id),
        "eaten_on": entry.eaten_on.isoformat(),
        "macros": macros,
        "meal_name": entry.meal_name,
        "items": entry.items,
        "notes": entry.notes,
        "rating": entry.rating,
        "created_at": entry.created_at.isoformat(),
        "tenant_id": str(entry.tenant_id) if entry.tenant_id else None,
    }


def _serialize_averages(averages: MacroAverages, count_name: str) -> dict[str, int]:
    return {
        "calories": averages.calories,
        "protein": averages.protein,
        "carbs": averages.carbs,
        "fat": averages.fat,
        count_name: averages.count,
    }


def _serialize_extreme(extreme: CalorieExtreme | None) -> dict[str, object] | None:
    if extreme is None:
        return None
    return {"date": extreme.day.isoformat(), "calories": extreme.calories}


def _serialize_aggregate(result: AggregateResult) -> dict[str, object]:
    return {
        "daily_average": _serialize_averages(result.daily_average, "days_count"),
        "weekly_average": _serialize_averages(result.weekly_average, "weeks_count"),
        "monthly_average": _serialize_averages(
            result.monthly_average, "months_count"
        ),
        "calorie_extremes": {
            "highest": _serialize_extreme(result.calorie_extremes.highest),
            "lowest": _serialize_extreme(result.calorie_extremes.lowest),
        },
        "summary": {
            "total_entries": result.summary.total_entries,
            "days_with_data": result.summary.days_with_data,
        },
    }
