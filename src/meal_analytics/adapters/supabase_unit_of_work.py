"""Unit of work over the Supabase REST API."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from supabase import Client

from meal_analytics.adapters.supabase_bucket_store import SupabaseBucketStore
from meal_analytics.adapters.supabase_meal_log_repository import (
    SupabaseMealLogRepository,
)
from meal_analytics.services.transactions import Journal, StorageUnit, UnitOfWork

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseUnitOfWork(UnitOfWork):
    """Groups meal log and bucket writes, compensating them on failure.

    PostgREST commits every request on its own, so each repository records the
    row it is about to overwrite and the journal writes those rows back if any
    later step raises.
    """

    client: Client

    @contextmanager
    def transaction(self) -> Iterator[StorageUnit]:
        journal = Journal()
        unit = StorageUnit(
            entries=SupabaseMealLogRepository(self.client, journal=journal),
            buckets=SupabaseBucketStore(self.client, journal=journal),
        )
        try:
            yield unit
        except Exception:
            _logger.warning("Compensating failed transaction: writes=%s", len(journal))
            journal.rollback()
            raise
        journal.discard()
