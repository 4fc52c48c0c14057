"""Shared helpers for Supabase repositories."""

from collections.abc import Callable
from typing import Any
from uuid import UUID

import httpx
from supabase import PostgrestAPIError

from meal_analytics.domain.errors import StorageError

PAGE_SIZE = 1000


def execute(query: Any, action: str) -> Any:
    """Run a PostgREST query, surfacing failures as retryable storage errors."""
    try:
        return query.execute()
    except (PostgrestAPIError, httpx.HTTPError) as exc:
        raise StorageError(f"Supabase {action} failed: {exc}") from exc


def match_tenant(query: Any, tenant_id: UUID | None) -> Any:
    """Filter on ``user_id``; ``None`` selects the global aggregate rows."""
    if tenant_id is None:
        return query.is_("user_id", "null")
    return query.eq("user_id", str(tenant_id))


def fetch_all(build_query: Callable[[], Any], action: str) -> list[dict[str, Any]]:
    """Read every row of a query page by page."""
    rows: list[dict[str, Any]] = []
    offset = 0
    while True:
        response = execute(
            build_query().range(offset, offset + PAGE_SIZE - 1), action
        )
        page = response.data or []
        rows.extend(page)
        if len(page) < PAGE_SIZE:
            return rows
        offset += PAGE_SIZE
