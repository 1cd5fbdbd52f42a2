"""Remote replica client for packlog.

Mirrors records into a hosted Supabase table::

    create table bills (
        id text primary key,
        data jsonb not null,
        updated_at bigint not null
    );

Zero merge logic here: the client upserts, deletes and lists rows. Deciding
what to push and which copy wins belongs to the sync engine.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import urlparse

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from packlog.protocols import RemoteConfigError, RemoteReadError, RemoteWriteError
from packlog.types import Record

from .local import LocalStore

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "bills"
DEFAULT_PAGE_SIZE = 1000

# What a Supabase call raises when the service answers with an error
# (APIError) or cannot be reached at all (httpx).
REMOTE_EXCEPTIONS = (APIError, httpx.HTTPError)

ClientFactory = Callable[[str, str], Awaitable[AsyncClient]]


def validate_endpoint(url: str, *, allow_localhost_http: bool = True) -> Optional[str]:
    """Validate a remote endpoint before sending the credential to it.

    Rejects non-http(s) schemes, URLs without a host, and plaintext HTTP to
    anything but localhost.

    Returns:
        The URL without a trailing slash, or ``None`` if rejected.
    """
    if not url:
        return None
    parsed = urlparse(url.strip())
    if parsed.scheme not in {"https", "http"}:
        logger.warning("Invalid remote endpoint scheme; only http/https allowed.")
        return None
    if not parsed.netloc:
        logger.warning("Invalid remote endpoint; missing host.")
        return None
    if parsed.scheme == "http":
        host = parsed.hostname or ""
        if not allow_localhost_http or host not in {"localhost", "127.0.0.1"}:
            logger.warning("Refusing non-local http endpoint for security.")
            return None
    return url.strip().rstrip("/")


class RemoteReplicaClient:
    """Best-effort async mirror of the local store.

    Args:
        store: Local store used to persist the connection config.
        table: Remote table name.
        client_factory: Coroutine creating a Supabase client from
            ``(endpoint, credential)``. Defaults to ``supabase.acreate_client``.
        page_size: Rows per request when listing.
    """

    def __init__(
        self,
        store: LocalStore,
        table: str = DEFAULT_TABLE,
        client_factory: Optional[ClientFactory] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._store = store
        self.table = table
        self.page_size = page_size
        self._client_factory = client_factory or acreate_client
        self._client: Optional[AsyncClient] = None
        self.endpoint: Optional[str] = None

    # === Session ===

    async def configure(self, endpoint: str, credential: str) -> bool:
        """Open a session and persist its config.

        Returns:
            True when connected. On failure nothing is kept (no session, no
            persisted config) and the reason is logged; this never raises.
        """
        try:
            client = await self._open(endpoint, credential)
            self._store.save_remote_config(self.endpoint_for(endpoint), credential)
        except RemoteConfigError as e:
            logger.error(f"Remote connection failed: {e}")
            return False
        except Exception as e:
            logger.error(f"Remote connection failed: {e}", exc_info=True)
            return False

        self._client = client
        self.endpoint = self.endpoint_for(endpoint)
        logger.info(f"Connected to remote table '{self.table}' at {self.endpoint}")
        return True

    async def restore(self) -> bool:
        """Reconnect from the persisted config, if any."""
        config = self._store.load_remote_config()
        if not config:
            return False
        try:
            self._client = await self._open(config["endpoint"], config["credential"])
        except Exception as e:
            logger.warning(f"Could not restore remote session: {e}")
            return False
        self.endpoint = config["endpoint"]
        logger.info(f"Restored remote session for {self.endpoint}")
        return True

    @staticmethod
    def endpoint_for(endpoint: str) -> str:
        return endpoint.strip().rstrip("/")

    async def _open(self, endpoint: str, credential: str) -> AsyncClient:
        url = validate_endpoint(endpoint)
        if not url:
            raise RemoteConfigError(f"Invalid endpoint: {endpoint!r}")
        if not credential or not credential.strip():
            raise RemoteConfigError("Credential cannot be empty")
        try:
            return await self._client_factory(url, credential.strip())
        except REMOTE_EXCEPTIONS as e:
            raise RemoteConfigError(f"Could not reach {url}: {e}") from e

    def is_connected(self) -> bool:
        return self._client is not None

    def disconnect(self) -> None:
        """Drop the session and forget the persisted config. Records stay."""
        self._client = None
        self.endpoint = None
        self._store.clear_remote_config()
        logger.info("Disconnected from remote")

    def _require_client(self) -> AsyncClient:
        if self._client is None:
            raise RemoteConfigError("Remote replica is not configured")
        return self._client

    # === Rows ===

    @staticmethod
    def to_row(record: Record) -> Dict[str, Any]:
        return {"id": record.id, "data": record.to_dict(), "updated_at": record.updated_at}

    async def list_all(self) -> List[Record]:
        """Every remote record, paging through the table.

        Raises:
            RemoteReadError: the table could not be listed.
        """
        client = self._require_client()
        records: List[Record] = []
        start = 0
        while True:
            end = start + self.page_size - 1
            try:
                response = (
                    await client.table(self.table)
                    .select("*")
                    .order("id")
                    .range(start, end)
                    .execute()
                )
            except REMOTE_EXCEPTIONS as e:
                raise RemoteReadError(f"Failed to list remote '{self.table}': {e}") from e

            rows = response.data or []
            for row in rows:
                try:
                    records.append(Record.from_dict(row.get("data")))
                except (ValueError, AttributeError) as e:
                    logger.warning(f"Skipping malformed remote row {row!r:.80}: {e}")
            if len(rows) < self.page_size:
                break
            start += self.page_size

        logger.debug(f"Listed {len(records)} remote records")
        return records

    async def upsert(self, record: Record) -> None:
        """Write one record. Idempotent for an unchanged record.

        Raises:
            RemoteWriteError: the write did not go through.
        """
        client = self._require_client()
        try:
            await client.table(self.table).upsert(self.to_row(record)).execute()
        except REMOTE_EXCEPTIONS as e:
            raise RemoteWriteError(f"Upload failed for {record.id}: {e}", record.id) from e

    async def delete(self, record_id: str) -> None:
        """Delete one row. A missing row is not an error.

        Raises:
            RemoteWriteError: the delete did not go through.
        """
        client = self._require_client()
        try:
            await client.table(self.table).delete().eq("id", record_id).execute()
        except REMOTE_EXCEPTIONS as e:
            raise RemoteWriteError(f"Delete failed for {record_id}: {e}", record_id) from e
