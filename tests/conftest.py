"""Pytest configuration and shared fixtures."""

import pytest

from podsearch.config import DatabaseSettings, SearchSettings, Settings
from podsearch.predicate import evaluate


class InMemoryBackend:
    """Backend double that evaluates expressions over a list of rows."""

    name = "memory"

    def __init__(self, rows: list[dict]) -> None:
        self.rows = rows
        self.calls: list[dict] = []
        self.closed = False

    def select(self, columns, where=None, limit=None):
        self.calls.append({"columns": list(columns), "where": where, "limit": limit})
        matched = [row for row in self.rows if where is None or evaluate(where, row)]
        if limit is not None:
            matched = matched[:limit]
        return [{column: row.get(column) for column in columns} for row in matched]

    def count(self) -> int:
        return len(self.rows)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def articles() -> list[dict]:
    """Sample articles covering podcasts and company blogs."""
    return [
        {
            "title": "Scaling Kafka",
            "text": "Notes on kafka latency tuning for large clusters",
            "url": "a",
        },
        {
            "title": "gRPC scale",
            "text": "grpc internals, deprecated API",
            "url": "b",
        },
        {
            "title": "Unrelated",
            "text": "nothing relevant",
            "url": "c",
        },
        {
            "title": "Episode 512: Postgres at scale",
            "text": "A conversation about database internals and Kafka",
            "url": "https://changelog.com/podcast/512",
        },
        {
            "title": "Streaming pipelines",
            "text": "Kafka and Flink in production",
            "url": "https://www.dataengineeringpodcast.com/streaming-episode-300",
        },
        {
            "title": "Cell-based architecture",
            "text": "How we use cells to limit blast radius; Kafka is not involved",
            "url": "https://aws.amazon.com/blogs/architecture/cells",
        },
    ]


@pytest.fixture
def backend(articles) -> InMemoryBackend:
    return InMemoryBackend(articles)


@pytest.fixture
def settings() -> Settings:
    """Settings with no backend credentials, independent of any .env file."""
    return Settings(
        _env_file=None,
        database=DatabaseSettings(
            _env_file=None,
            local_postgres_dsn=None,
            supabase_url=None,
            supabase_service_role_key=None,
        ),
        search=SearchSettings(_env_file=None),
    )
