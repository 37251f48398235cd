"""Tests for the PostgREST and Postgres backends."""

import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import httpx
import psycopg
import pytest

from podsearch.backends import PostgresBackend, PostgrestBackend, create_backend
from podsearch.config import DatabaseSettings
from podsearch.errors import BackendError, ConfigurationError
from podsearch.predicate import compile_filter, simple_search
from podsearch.query import FilterRequest

URL = "https://project.supabase.co"
KEY = "service-role-key"


def _postgrest(handler) -> PostgrestBackend:
    return PostgrestBackend(URL, KEY, transport=httpx.MockTransport(handler))


class TestPostgrestBackend:
    def test_client_not_created_on_init(self):
        backend = PostgrestBackend(None, None)
        assert backend._client is None

    @pytest.mark.parametrize("url,key", [(None, KEY), (URL, None), ("", "")])
    def test_missing_credentials_raise_on_first_use(self, url, key):
        backend = PostgrestBackend(url, key)
        with pytest.raises(ConfigurationError):
            backend.select(["url"])

    def test_client_reused(self):
        backend = _postgrest(lambda request: httpx.Response(200, json=[]))
        assert backend.client is backend.client

    def test_select_sends_filter_and_headers(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["request"] = request
            return httpx.Response(200, json=[{"title": "Scaling Kafka", "url": "a"}])

        backend = _postgrest(handler)
        where = compile_filter(FilterRequest(or_groups=["kafka"], excludes=["deprecated"]))
        rows = backend.select(["title", "url"], where)

        request = seen["request"]
        assert rows == [{"title": "Scaling Kafka", "url": "a"}]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/article"
        assert request.url.params["select"] == "title,url"
        assert request.url.params["and"] == "(or(and(text.ilike.%kafka%)),text.not.ilike.%deprecated%)"
        assert request.headers["apikey"] == KEY
        assert request.headers["authorization"] == f"Bearer {KEY}"

    def test_select_with_limit_and_no_filter(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[])

        _postgrest(handler).select(["url"], limit=200)
        assert seen["params"] == {"select": "url", "limit": "200"}

    def test_simple_search_uses_or(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=[])

        _postgrest(handler).select(["title", "url"], simple_search("database"))
        assert seen["params"]["or"] == "(title.ilike.%database%,text.ilike.%database%)"

    def test_error_message_passed_through(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                400,
                json={"code": "PGRST100", "message": "failed to parse logic tree", "details": None},
            )

        with pytest.raises(BackendError, match="failed to parse logic tree"):
            _postgrest(handler).select(["url"])

    def test_non_json_error_uses_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(BackendError, match="Bad Gateway"):
            _postgrest(handler).select(["url"])

    def test_transport_error_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(BackendError, match="connection refused"):
            _postgrest(handler).select(["url"])
        assert len(calls) == 1

    def test_count_parses_content_range(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "HEAD"
            assert request.headers["prefer"] == "count=exact"
            return httpx.Response(200, headers={"Content-Range": "*/1234"})

        assert _postgrest(handler).count() == 1234

    def test_count_without_range_fails(self):
        backend = _postgrest(lambda request: httpx.Response(200))
        with pytest.raises(BackendError):
            backend.count()

    def test_close_resets_client(self):
        backend = _postgrest(lambda request: httpx.Response(200, json=[]))
        _ = backend.client
        backend.close()
        assert backend._client is None

    def test_concurrent_first_use_creates_one_client(self):
        def slow_client(**kwargs):
            time.sleep(0.05)
            return MagicMock()

        backend = PostgrestBackend(URL, KEY)
        with patch("podsearch.backends.httpx.Client", side_effect=slow_client) as mock_client:
            with ThreadPoolExecutor(max_workers=8) as pool:
                clients = list(pool.map(lambda _: backend.client, range(8)))

        mock_client.assert_called_once()
        assert all(client is clients[0] for client in clients)


@pytest.fixture
def mock_connection():
    connection = MagicMock()
    connection.closed = False
    cursor = connection.cursor.return_value.__enter__.return_value
    cursor.fetchall.return_value = [{"title": "Scaling Kafka", "url": "a"}]
    with patch("podsearch.backends.psycopg.connect", return_value=connection) as mock_connect:
        yield mock_connect, connection, cursor


class TestPostgresBackend:
    def test_missing_dsn_raises_on_first_use(self):
        with pytest.raises(ConfigurationError):
            PostgresBackend(None).select(["url"])

    def test_connection_is_lazy_and_reused(self, mock_connection):
        mock_connect, connection, _ = mock_connection
        backend = PostgresBackend("postgresql://localhost/articles")
        mock_connect.assert_not_called()

        backend.select(["url"])
        backend.select(["url"])
        mock_connect.assert_called_once()
        assert mock_connect.call_args.args == ("postgresql://localhost/articles",)
        assert mock_connect.call_args.kwargs["autocommit"] is True

    def test_concurrent_first_use_opens_one_connection(self, mock_connection):
        mock_connect, connection, _ = mock_connection

        def slow_connect(*args, **kwargs):
            time.sleep(0.05)
            return connection

        mock_connect.side_effect = slow_connect
        backend = PostgresBackend("postgresql://localhost/articles")
        with ThreadPoolExecutor(max_workers=8) as pool:
            connections = list(pool.map(lambda _: backend.connection, range(8)))

        mock_connect.assert_called_once()
        assert all(conn is connection for conn in connections)

    def test_select_binds_every_value(self, mock_connection):
        _, _, cursor = mock_connection
        backend = PostgresBackend("postgresql://localhost/articles")
        where = compile_filter(FilterRequest(or_groups=["kafka|latency"], title="scal"))

        rows = backend.select(["title", "url"], where, limit=10)

        assert rows == [{"title": "Scaling Kafka", "url": "a"}]
        query, params = cursor.execute.call_args.args
        assert query.as_string(None) == (
            'SELECT "title", "url" FROM "article"'
            ' WHERE ((("text" ILIKE %s AND "text" ILIKE %s)) AND "title" ILIKE %s) LIMIT %s'
        )
        assert params == ["%kafka%", "%latency%", "%scal%", 10]

    def test_count(self, mock_connection):
        _, _, cursor = mock_connection
        cursor.fetchall.return_value = [{"total": 42}]
        assert PostgresBackend("postgresql://localhost/articles").count() == 42

    def test_query_error_becomes_backend_error(self, mock_connection):
        _, _, cursor = mock_connection
        cursor.execute.side_effect = psycopg.errors.UndefinedTable('relation "article" does not exist')
        with pytest.raises(BackendError, match='relation "article" does not exist'):
            PostgresBackend("postgresql://localhost/articles").select(["url"])

    def test_connect_error_becomes_backend_error(self):
        with patch(
            "podsearch.backends.psycopg.connect",
            side_effect=psycopg.OperationalError("connection refused"),
        ):
            with pytest.raises(BackendError, match="connection refused"):
                PostgresBackend("postgresql://localhost/articles").select(["url"])

    def test_reconnects_after_connection_closed(self, mock_connection):
        mock_connect, connection, _ = mock_connection
        backend = PostgresBackend("postgresql://localhost/articles")
        backend.select(["url"])
        connection.closed = True
        backend.select(["url"])
        assert mock_connect.call_count == 2


class TestCreateBackend:
    def test_dsn_selects_postgres(self, settings):
        settings.database = DatabaseSettings(
            _env_file=None, local_postgres_dsn="postgresql://localhost/articles"
        )
        backend = create_backend(settings)
        assert isinstance(backend, PostgresBackend)
        assert backend.dsn == "postgresql://localhost/articles"

    def test_no_dsn_selects_postgrest(self, settings):
        settings.database = DatabaseSettings(
            _env_file=None,
            local_postgres_dsn=None,
            supabase_url=URL,
            supabase_service_role_key=KEY,
        )
        backend = create_backend(settings)
        assert isinstance(backend, PostgrestBackend)
        assert backend.url == URL

    def test_unconfigured_postgrest_is_created_without_error(self, settings):
        backend = create_backend(settings)
        assert isinstance(backend, PostgrestBackend)
        with pytest.raises(ConfigurationError):
            backend.count()
