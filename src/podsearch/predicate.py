"""Boolean filter expressions over article fields.

Searches are compiled into a small expression tree of case-insensitive
substring tests combined with AND/OR/NOT. The same tree is rendered for
either backend (see ``podsearch.render``) and can be evaluated in memory.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Literal, Union

from podsearch.query import FilterRequest
from podsearch.registry import DomainRegistry

FieldName = Literal["title", "text", "url"]


@dataclass(frozen=True)
class Ilike:
    """``field ILIKE '%value%'``.

    ``*`` in the value is a wildcard, the same as ``%``, on every backend.
    """

    field: FieldName
    value: str

    @property
    def pattern(self) -> str:
        return f"%{self.value.replace('*', '%')}%"


@dataclass(frozen=True)
class And:
    terms: tuple["Expression", ...] = ()


@dataclass(frozen=True)
class Or:
    terms: tuple["Expression", ...] = ()


@dataclass(frozen=True)
class Not:
    term: "Expression"


Expression = Union[Ilike, And, Or, Not]


def compile_filter(
    request: FilterRequest,
    *,
    podcasts: DomainRegistry | None = None,
    companies: DomainRegistry | None = None,
) -> And:
    """Compile a filter request into an expression tree.

    The result is the AND of, in order: the OR-groups term, one negated text
    match per exclude, the title/text/url substring filters, and a url
    allow-list per registry passed in. Parts with nothing to filter are left
    out, so an empty request compiles to ``And(())``.

    Args:
        request: Normalized search filters.
        podcasts: Registry used to expand ``request.podcasts``, if the
            endpoint searches podcasts.
        companies: Registry used to expand ``request.companies``, if the
            endpoint searches company blogs.

    Returns:
        Top-level conjunction of the filter terms.
    """
    terms: list[Expression] = []

    if request.or_groups:
        terms.append(Or(tuple(
            And(tuple(Ilike("text", keyword) for keyword in group.split("|")))
            for group in request.or_groups
        )))

    terms.extend(Not(Ilike("text", keyword)) for keyword in request.excludes)

    if request.title:
        terms.append(Ilike("title", request.title))
    if request.text:
        terms.append(Ilike("text", request.text))
    if request.url:
        terms.append(Ilike("url", request.url))

    for registry, selected in ((podcasts, request.podcasts), (companies, request.companies)):
        if registry is None:
            continue
        domains = registry.expand(selected)
        if domains:
            terms.append(Or(tuple(Ilike("url", domain) for domain in domains)))

    return And(tuple(terms))


def simple_search(query: str) -> Or:
    """Match articles whose title or text contains ``query``."""
    return Or((Ilike("title", query), Ilike("text", query)))


def evaluate(expr: Expression, row: Mapping[str, Any]) -> bool:
    """Evaluate an expression against a row the way Postgres would.

    NULL fields make ILIKE unknown, and unknown results do not select a row.
    """
    return _evaluate(expr, row) is True


def _evaluate(expr: Expression, row: Mapping[str, Any]) -> bool | None:
    if isinstance(expr, Ilike):
        value = row.get(expr.field)
        if value is None:
            return None
        return _like_regex(expr.pattern).fullmatch(str(value)) is not None
    if isinstance(expr, Not):
        result = _evaluate(expr.term, row)
        return None if result is None else not result
    if isinstance(expr, And):
        results = [_evaluate(term, row) for term in expr.terms]
        if False in results:
            return False
        return None if None in results else True
    if isinstance(expr, Or):
        results = [_evaluate(term, row) for term in expr.terms]
        if True in results:
            return True
        return None if None in results else False
    raise TypeError(f"Unknown expression node: {expr!r}")


@lru_cache(maxsize=256)
def _like_regex(pattern: str) -> re.Pattern:
    """Translate a LIKE pattern (``%``, ``_``, backslash escape) to a regex."""
    parts = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            parts.append(re.escape(next(chars, "\\")))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)
