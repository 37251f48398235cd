"""Query executors for the managed REST service and direct Postgres.

Exactly one backend is active per process, picked by ``create_backend``
from the environment. Clients are created lazily on first use, so a
missing credential surfaces as a ConfigurationError on the first query
rather than at startup.
"""

import threading
from collections.abc import Sequence
from typing import Any, Protocol

import httpx
import psycopg
import structlog
from psycopg import sql
from psycopg.rows import dict_row

from podsearch.config import Settings
from podsearch.errors import BackendError, ConfigurationError
from podsearch.predicate import Expression
from podsearch.render import to_postgrest, to_sql

logger = structlog.get_logger(__name__)


class Backend(Protocol):
    """Read-only access to the article table."""

    name: str

    def select(
        self,
        columns: Sequence[str],
        where: Expression | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    def count(self) -> int: ...

    def close(self) -> None: ...


class PostgrestBackend:
    """Runs queries through a PostgREST endpoint (as exposed by Supabase)."""

    name = "postgrest"

    def __init__(
        self,
        url: str | None,
        key: str | None,
        table: str = "article",
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            url: Service base URL; the REST API lives under ``/rest/v1``.
            key: Service credential sent as ``apikey`` and bearer token.
            table: Table to query.
            timeout_seconds: HTTP request timeout.
            transport: Optional httpx transport, used by tests.
        """
        self.url = url
        self.key = key
        self.table = table
        self.timeout = timeout_seconds
        self._transport = transport
        self._client: httpx.Client | None = None
        self._lock = threading.Lock()
        self.logger = logger.bind(component="postgrest_backend", table=table)

    @property
    def client(self) -> httpx.Client:
        """Lazy-initialize the HTTP client, once across handler threads."""
        with self._lock:
            if self._client is None:
                if not self.url or not self.key:
                    raise ConfigurationError(
                        "Supabase is not configured: set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY"
                    )
                self._client = httpx.Client(
                    base_url=f"{self.url.rstrip('/')}/rest/v1",
                    headers={"apikey": self.key, "Authorization": f"Bearer {self.key}"},
                    timeout=self.timeout,
                    transport=self._transport,
                )
            return self._client

    def select(
        self,
        columns: Sequence[str],
        where: Expression | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows matching ``where``.

        Raises:
            ConfigurationError: If the service URL or key is missing.
            BackendError: If the request fails or the service rejects it.
        """
        params = {"select": ",".join(columns)}
        if where is not None:
            params.update(to_postgrest(where))
        if limit is not None:
            params["limit"] = str(limit)

        self.logger.debug("Querying PostgREST", params=params)
        response = self._request("GET", params=params)
        return response.json()

    def count(self) -> int:
        """Count all rows in the table using an exact-count HEAD request."""
        response = self._request("HEAD", params={"select": "*"}, headers={"Prefer": "count=exact"})
        total = response.headers.get("content-range", "").rpartition("/")[2]
        if not total.isdigit():
            raise BackendError(f"Missing row count in response: {response.headers.get('content-range')!r}")
        return int(total)

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    def _request(
        self,
        method: str,
        params: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        client = self.client
        try:
            response = client.request(method, f"/{self.table}", params=params, headers=headers)
        except httpx.HTTPError as e:
            self.logger.error("PostgREST request failed", error=str(e))
            raise BackendError(str(e)) from e

        if response.is_error:
            message = _error_message(response)
            self.logger.error("PostgREST returned an error", status=response.status_code, error=message)
            raise BackendError(message)
        return response


def _error_message(response: httpx.Response) -> str:
    """Extract PostgREST's error message, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return response.text or f"HTTP {response.status_code}"


class PostgresBackend:
    """Runs parameterized SQL over a single direct Postgres connection."""

    name = "postgres"

    def __init__(self, dsn: str | None, table: str = "article") -> None:
        self.dsn = dsn
        self.table = table
        self._connection: psycopg.Connection | None = None
        self._lock = threading.Lock()
        self.logger = logger.bind(component="postgres_backend", table=table)

    @property
    def connection(self) -> psycopg.Connection:
        """Lazy-open the connection, reopening it if the server dropped it."""
        with self._lock:
            if self._connection is None or self._connection.closed:
                if not self.dsn:
                    raise ConfigurationError("Local PostgreSQL is not configured: set LOCAL_POSTGRES_DSN")
                try:
                    self._connection = psycopg.connect(self.dsn, autocommit=True, row_factory=dict_row)
                except psycopg.Error as e:
                    self.logger.error("Could not connect to Postgres", error=str(e))
                    raise BackendError(str(e)) from e
            return self._connection

    def select(
        self,
        columns: Sequence[str],
        where: Expression | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch rows matching ``where``.

        Raises:
            ConfigurationError: If no DSN is configured.
            BackendError: If connecting or executing fails.
        """
        query = sql.SQL("SELECT {columns} FROM {table}").format(
            columns=sql.SQL(", ").join(sql.Identifier(column) for column in columns),
            table=sql.Identifier(self.table),
        )
        params: list[Any] = []
        if where is not None:
            fragment, params = to_sql(where)
            query += sql.SQL(" WHERE {}").format(fragment)
        if limit is not None:
            query += sql.SQL(" LIMIT {}").format(sql.Placeholder())
            params.append(limit)

        return self._fetch(query, params)

    def count(self) -> int:
        query = sql.SQL("SELECT count(*) AS total FROM {}").format(sql.Identifier(self.table))
        return self._fetch(query, [])[0]["total"]

    def close(self) -> None:
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def _fetch(self, query: sql.Composable, params: list[Any]) -> list[dict[str, Any]]:
        connection = self.connection
        self.logger.debug("Executing SQL", params=params)
        try:
            with connection.cursor() as cursor:
                cursor.execute(query, params)
                return cursor.fetchall()
        except psycopg.Error as e:
            self.logger.error("SQL query failed", error=str(e))
            raise BackendError(str(e)) from e


def create_backend(settings: Settings) -> Backend:
    """Pick the backend for this process from configuration.

    A local Postgres DSN selects direct SQL; otherwise the managed REST
    service is used. Credentials are not checked here.
    """
    db = settings.database
    if db.use_local_postgres:
        backend: Backend = PostgresBackend(db.local_postgres_dsn, table=settings.search.table)
    else:
        backend = PostgrestBackend(
            db.supabase_url,
            db.supabase_service_role_key,
            table=settings.search.table,
            timeout_seconds=db.database_timeout_seconds,
        )
    logger.info("Backend selected", backend=backend.name)
    return backend
