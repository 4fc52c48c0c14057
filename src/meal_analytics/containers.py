"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from meal_analytics.adapters.memory_store import InMemoryUnitOfWork
from meal_analytics.adapters.supabase_bucket_store import SupabaseBucketStore
from meal_analytics.adapters.supabase_unit_of_work import SupabaseUnitOfWork
from meal_analytics.config import Settings
from meal_analytics.services.admin import AdminService
from meal_analytics.services.analytics import AnalyticsService
from meal_analytics.services.buckets import BucketStore
from meal_analytics.services.dispatcher import ChangeDispatcher
from meal_analytics.services.meals import MealLogService
from meal_analytics.services.recompute import RecomputeEngine
from meal_analytics.services.transactions import UnitOfWork


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    unit_of_work: UnitOfWork
    bucket_store: BucketStore
    recompute_engine: RecomputeEngine
    dispatcher: ChangeDispatcher
    meal_log_service: MealLogService
    analytics_service: AnalyticsService
    admin_service: AdminService


def build_storage(settings: Settings) -> tuple[UnitOfWork, BucketStore]:
    """Create the unit of work and the read-side bucket store for a backend."""
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required "
                "for the supabase storage backend"
            )
        supabase_client = create_client(
            settings.supabase_url, settings.supabase_service_key
        )
        return SupabaseUnitOfWork(supabase_client), SupabaseBucketStore(
            supabase_client
        )
    unit_of_work = InMemoryUnitOfWork()
    return unit_of_work, unit_of_work.buckets


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    unit_of_work, bucket_store = build_storage(resolved_settings)
    recompute_engine = RecomputeEngine(tenant_scoped=resolved_settings.tenant_scoped)
    dispatcher = ChangeDispatcher(recompute_engine)
    meal_log_service = MealLogService(
        unit_of_work=unit_of_work,
        dispatcher=dispatcher,
    )
    analytics_service = AnalyticsService(
        buckets=bucket_store,
        timezone_name=resolved_settings.analytics_timezone,
    )
    admin_service = AdminService(
        unit_of_work=unit_of_work,
        engine=recompute_engine,
        buckets=bucket_store,
    )
    return AppContainer(
        settings=resolved_settings,
        unit_of_work=unit_of_work,
        bucket_store=bucket_store,
        recompute_engine=recompute_engine,
        dispatcher=dispatcher,
        meal_log_service=meal_log_service,
        analytics_service=analytics_service,
        admin_service=admin_service,
    )
