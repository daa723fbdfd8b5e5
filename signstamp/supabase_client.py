"""
Supabase-backed audit store.

The audit trail is one append-only table (default ``signing_audit``). The
connection is created once at startup (``connect``) and dropped at shutdown
(``close``); requests never reconnect. If the store is not connected when a
request reaches its persistence step, that request fails.
"""
import logging
from typing import Dict, List, Optional, Protocol

import httpx
from postgrest.exceptions import APIError
from starlette.concurrency import run_in_threadpool
from supabase import create_client, Client

from signstamp.config import get_settings, Settings
from signstamp.models import AuditRecord
from signstamp.pdf.errors import PersistenceError
from signstamp.utils.datetime_utils import parse_db_timestamp

logger = logging.getLogger(__name__)


class AuditStore(Protocol):
    connected: bool

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def append(self, record: AuditRecord) -> None:
        """Raises PersistenceError."""
        ...

    async def find_by_signed_hash(self, signed_hash: str) -> List[AuditRecord]:
        ...


def _record_from_row(row: Dict) -> AuditRecord:
    row = dict(row)
    row["signed_at"] = parse_db_timestamp(row.get("signed_at"))
    return AuditRecord.model_validate(row)


class SupabaseAuditStore:
    """Audit store backed by a Supabase (PostgREST) table, using the service key."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.table_name = self.settings.audit_table
        self._client: Optional[Client] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        """Create the Supabase client. Called once from the app lifespan."""
        if self._client is not None:
            return
        self._client = await run_in_threadpool(
            create_client,
            self.settings.supabase_url,
            self.settings.supabase_service_key,
        )
        logger.info(f"Audit store connected (table={self.table_name})")

    async def close(self) -> None:
        self._client = None
        logger.info("Audit store closed")

    def _table(self):
        if self._client is None:
            raise PersistenceError("Audit store is not connected")
        return self._client.table(self.table_name)

    def _insert(self, row: Dict) -> None:
        self._table().insert(row).execute()

    async def append(self, record: AuditRecord) -> None:
        try:
            await run_in_threadpool(self._insert, record.to_row())
        except PersistenceError:
            raise
        except (APIError, httpx.HTTPError) as e:
            logger.error(f"Audit append FAILED for document {record.document_id}: {e}")
            raise PersistenceError(f"Failed to write audit record: {e}")
        except Exception as e:
            logger.exception(f"Audit append FAILED for document {record.document_id}: {e}")
            raise PersistenceError(f"Failed to write audit record: {e}") from e
        logger.info(
            f"Audit record written: document={record.document_id}, "
            f"signed_hash={record.signed_hash[:12]}..."
        )

    def _select_by_signed_hash(self, signed_hash: str) -> List[Dict]:
        result = (
            self._table()
            .select("*")
            .eq("signed_hash", signed_hash)
            .order("signed_at", desc=True)
            .execute()
        )
        return result.data or []

    async def find_by_signed_hash(self, signed_hash: str) -> List[AuditRecord]:
        try:
            rows = await run_in_threadpool(self._select_by_signed_hash, signed_hash)
        except PersistenceError:
            raise
        except (APIError, httpx.HTTPError) as e:
            raise PersistenceError(f"Failed to read audit records: {e}")
        except Exception as e:
            logger.exception(f"Audit lookup FAILED: {e}")
            raise PersistenceError(f"Failed to read audit records: {e}") from e
        return [_record_from_row(row) for row in rows]


class InMemoryAuditStore:
    """
    Process-local audit store for development and tests.
    Records are lost on restart.
    """

    def __init__(self):
        self.records: List[AuditRecord] = []
        self.connected = False

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def append(self, record: AuditRecord) -> None:
        if not self.connected:
            raise PersistenceError("Audit store is not connected")
        self.records.append(record)

    async def find_by_signed_hash(self, signed_hash: str) -> List[AuditRecord]:
        if not self.connected:
            raise PersistenceError("Audit store is not connected")
        matches = [r for r in self.records if r.signed_hash == signed_hash]
        return sorted(matches, key=lambda r: r.signed_at, reverse=True)


def create_audit_store(settings: Optional[Settings] = None) -> AuditStore:
    settings = settings or get_settings()
    if settings.audit_backend == "memory":
        return InMemoryAuditStore()
    return SupabaseAuditStore(settings)
