"""Command-line interface for Podsearch.

Provides commands for running the API and checking the configured backend.
"""

import argparse
import json
import sys

from podsearch.config import get_settings
from podsearch.errors import BackendError, ConfigurationError
from podsearch.logging import setup_logging
from podsearch.predicate import compile_filter
from podsearch.query import FilterRequest
from podsearch.registry import COMPANIES, PODCASTS
from podsearch.render import to_postgrest, to_sql

SAMPLE_SIZE = 5


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the FastAPI server."""
    import uvicorn

    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_format=settings.environment == "production")

    host = args.host
    port = args.port
    print(f"\nStarting Podsearch API on {host}:{port}")
    uvicorn.run("podsearch.api:create_app", factory=True, host=host, port=port, reload=args.reload)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Check the configured backend by fetching sample articles and a row count."""
    setup_logging(log_level="WARNING")
    settings = get_settings()
    db = settings.database

    print("\nEnvironment variables:")
    for name, value in (
        ("LOCAL_POSTGRES_DSN", db.local_postgres_dsn),
        ("SUPABASE_URL", db.supabase_url),
        ("SUPABASE_SERVICE_ROLE_KEY", db.supabase_service_role_key),
    ):
        print(f"  {name}: {'SET' if value else 'NOT SET'}")

    from podsearch.backends import create_backend

    backend = create_backend(settings)
    print(f"\nBackend: {backend.name}")

    try:
        rows = backend.select(["title", "url"], limit=SAMPLE_SIZE)
        total = backend.count()
    except (ConfigurationError, BackendError) as e:
        print(f"\nError: {e}")
        return 1
    finally:
        backend.close()

    print(f"Connection successful, found {len(rows)} sample articles:")
    for i, row in enumerate(rows[:3], 1):
        print(f"  {i}. {row.get('title')}")
        print(f"     {row.get('url')}")
    print(f"\nTotal articles: {total}")

    return 0


def cmd_compile(args: argparse.Namespace) -> int:
    """Print the backend queries a search would run, without running them."""
    filters = FilterRequest(
        or_groups=args.or_group,
        excludes=args.exclude,
        title=args.title,
        text=args.text,
        url=args.url,
        podcasts=args.podcast,
        companies=args.company,
    )
    if filters.is_empty():
        print("Empty search: no query would be sent.")
        return 0

    settings = get_settings()
    if args.podcasts_endpoint:
        podcasts = PODCASTS.with_empty_selection(settings.search.podcast_empty_selection)
        where = compile_filter(filters, podcasts=podcasts)
    else:
        companies = COMPANIES.with_empty_selection(settings.search.company_empty_selection)
        where = compile_filter(filters, companies=companies)

    fragment, params = to_sql(where)
    print("PostgREST parameters:")
    print(json.dumps(to_postgrest(where), indent=2))
    print("\nSQL:")
    print(f"  WHERE {fragment.as_string(None)}")
    print(f"  params: {json.dumps(params)}")

    return 0


def cmd_podcasts(args: argparse.Namespace) -> int:
    """List the podcasts that can be selected."""
    for entry in PODCASTS.catalog():
        print(f"  {entry['key']:<30} {entry['name']:<30} {', '.join(entry['domains'])}")
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="podsearch",
        description="Article search over podcast transcripts and engineering blogs",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    sv_parser = subparsers.add_parser("serve", help="Start the FastAPI search API")
    sv_parser.add_argument("--host", default="127.0.0.1", help="Host to bind (default: 127.0.0.1)")
    sv_parser.add_argument("--port", "-p", type=int, default=8000, help="Port (default: 8000)")
    sv_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    sv_parser.set_defaults(func=cmd_serve)

    # check command
    ck_parser = subparsers.add_parser("check", help="Check the configured database backend")
    ck_parser.set_defaults(func=cmd_check)

    # compile command
    cp_parser = subparsers.add_parser("compile", help="Show the queries a search compiles to")
    cp_parser.add_argument(
        "--or-group", "-g", action="append", default=[], help="Keywords joined by '|' (repeatable)"
    )
    cp_parser.add_argument("--exclude", "-x", action="append", default=[], help="Excluded keyword (repeatable)")
    cp_parser.add_argument("--title", help="Title substring")
    cp_parser.add_argument("--text", help="Text substring")
    cp_parser.add_argument("--url", help="URL substring")
    cp_parser.add_argument("--podcast", action="append", default=[], help="Podcast key (repeatable)")
    cp_parser.add_argument("--company", action="append", default=[], help="Company key (repeatable)")
    cp_parser.add_argument(
        "--podcasts-endpoint",
        action="store_true",
        help="Compile as /api/podcasts does (podcast domains instead of companies)",
    )
    cp_parser.set_defaults(func=cmd_compile)

    # podcasts command
    pc_parser = subparsers.add_parser("podcasts", help="List selectable podcasts")
    pc_parser.set_defaults(func=cmd_podcasts)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
