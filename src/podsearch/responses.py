"""Uniform JSON envelopes for API responses."""

from typing import Any

from fastapi.responses import JSONResponse


def success(results: list[Any], key: str = "results") -> JSONResponse:
    """Wrap rows as ``{"ok": true, <key>: rows}`` with status 200."""
    return JSONResponse({"ok": True, key: results}, status_code=200)


def failure(message: str, status_code: int = 500) -> JSONResponse:
    """Wrap an error message as ``{"ok": false, "error": message}``."""
    return JSONResponse({"ok": False, "error": message}, status_code=status_code)
