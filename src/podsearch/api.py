"""FastAPI endpoints for searching articles."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from podsearch import __version__
from podsearch.backends import Backend, create_backend
from podsearch.config import Settings, get_settings
from podsearch.errors import BackendError, ConfigurationError, SearchValidationError
from podsearch.predicate import compile_filter, simple_search
from podsearch.query import FilterRequest
from podsearch.registry import COMPANIES, PODCASTS
from podsearch.responses import failure, success

logger = structlog.get_logger(__name__)

SEARCH_COLUMNS = ("title", "url")


def get_backend(request: Request) -> Backend:
    return request.app.state.backend


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def create_app(settings: Settings | None = None, backend: Backend | None = None) -> FastAPI:
    """Build the API with an explicitly provided (or configured) backend.

    Args:
        settings: Application settings (loaded from the environment if None).
        backend: Backend to query (selected from settings if None).

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.backend.close()

    app = FastAPI(
        title="Podsearch",
        description="Keyword search over podcast transcripts and engineering blogs",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.backend = backend or create_backend(settings)
    app.state.podcasts = PODCASTS.with_empty_selection(settings.search.podcast_empty_selection)
    app.state.companies = COMPANIES.with_empty_selection(settings.search.company_empty_selection)

    app.add_exception_handler(SearchValidationError, _handle_validation_error)
    app.add_exception_handler(BackendError, _handle_backend_error)
    app.add_exception_handler(ConfigurationError, _handle_configuration_error)

    register_routes(app)
    return app


async def _handle_validation_error(request: Request, exc: SearchValidationError) -> JSONResponse:
    return failure(str(exc), status_code=400)


async def _handle_backend_error(request: Request, exc: BackendError) -> JSONResponse:
    return failure(str(exc), status_code=500)


async def _handle_configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Backend is not configured", error=str(exc), path=request.url.path)
    return failure(str(exc), status_code=500)


def register_routes(app: FastAPI) -> None:
    """Attach the search endpoints to ``app``."""

    @app.get("/api/health")
    def health(
        backend: Backend = Depends(get_backend),
        settings: Settings = Depends(get_app_settings),
    ):
        """Liveness probe returning a sample of article urls."""
        rows = backend.select(["url"], limit=settings.search.health_limit)
        return success(rows, key="data")

    @app.get("/api/search")
    def search(request: Request, backend: Backend = Depends(get_backend)):
        """Advanced search: OR-groups, excludes, field filters and company domains."""
        filters = FilterRequest.from_params(request.query_params).model_copy(
            update={"podcasts": []}
        )
        if filters.is_empty():
            logger.info("Empty search, skipping backend", endpoint="search")
            return success([])

        where = compile_filter(filters, companies=request.app.state.companies)
        return success(backend.select(SEARCH_COLUMNS, where))

    @app.get("/api/search/simple")
    def search_simple(
        q: str | None = Query(default=None, description="Search term"),
        backend: Backend = Depends(get_backend),
    ):
        """Match articles whose title or text contains ``q``."""
        if not q:
            raise SearchValidationError('Missing query parameter "q"')
        return success(backend.select(SEARCH_COLUMNS, simple_search(q)))

    @app.get("/api/search/fielded")
    def search_fielded(
        title: str | None = None,
        text: str | None = None,
        url: str | None = None,
        backend: Backend = Depends(get_backend),
    ):
        """Match articles containing every given title, text and url substring."""
        filters = FilterRequest(title=title, text=text, url=url)
        if filters.is_empty():
            raise SearchValidationError(
                'Provide at least one of the query parameters "title", "text" or "url"'
            )
        return success(backend.select(SEARCH_COLUMNS, compile_filter(filters)))

    @app.get("/api/podcasts")
    def search_podcasts(request: Request, backend: Backend = Depends(get_backend)):
        """Search podcast transcripts, restricted to the selected (or all) podcasts."""
        filters = FilterRequest.from_params(request.query_params).model_copy(
            update={"text": None, "url": None, "companies": []}
        )
        if filters.is_empty():
            logger.info("Empty search, skipping backend", endpoint="podcasts")
            return success([])

        where = compile_filter(filters, podcasts=request.app.state.podcasts)
        return success(backend.select(SEARCH_COLUMNS, where))

    @app.get("/api/podcasts/catalog")
    def podcast_catalog(request: Request):
        """List the podcasts that can be selected."""
        return success(request.app.state.podcasts.catalog())

