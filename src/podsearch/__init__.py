"""Podsearch - article search over podcast transcripts and engineering blogs.

A small FastAPI service that compiles compound keyword filters into
PostgREST or parameterized SQL queries against a single article table.
"""

__version__ = "0.1.0"
