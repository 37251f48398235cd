"""Renderers turning filter expressions into backend query syntax.

``to_postgrest`` produces PostgREST logic-tree query parameters and
``to_sql`` a psycopg SQL fragment with every literal bound as a parameter.
Both use ``%`` as the wildcard so patterns behave the same on each backend.
"""

from psycopg import sql

from podsearch.predicate import And, Expression, Ilike, Not, Or

# Characters with meaning inside a PostgREST logic tree
POSTGREST_RESERVED = frozenset(',.:()"\\')


def quote_postgrest(value: str) -> str:
    """Double-quote a PostgREST value when it contains reserved characters."""
    if not any(char in POSTGREST_RESERVED or char.isspace() for char in value):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def to_postgrest(expr: Expression) -> dict[str, str]:
    """Render an expression as PostgREST query parameters.

    The expression always becomes a single logic-tree parameter, e.g.
    ``{"and": "(or(and(text.ilike.%kafka%)),text.not.ilike.%foo%)"}``.
    An empty conjunction renders no parameters at all.

    Args:
        expr: Expression to render.

    Returns:
        Mapping of query parameter name to value.
    """
    if isinstance(expr, And) and not expr.terms:
        return {}
    if isinstance(expr, And):
        return {"and": f"({_postgrest_terms(expr.terms)})"}
    if isinstance(expr, Or):
        return {"or": f"({_postgrest_terms(expr.terms)})"}
    if isinstance(expr, Not) and isinstance(expr.term, (And, Or)):
        operator = "and" if isinstance(expr.term, And) else "or"
        return {f"not.{operator}": f"({_postgrest_terms(expr.term.terms)})"}
    return {"and": f"({_postgrest(expr)})"}


def _postgrest_terms(terms: tuple[Expression, ...]) -> str:
    if not terms:
        raise ValueError("PostgREST cannot express an empty AND/OR group")
    return ",".join(_postgrest(term) for term in terms)


def _postgrest(expr: Expression, negated: bool = False) -> str:
    prefix = "not." if negated else ""
    if isinstance(expr, Ilike):
        return f"{expr.field}.{prefix}ilike.{quote_postgrest(expr.pattern)}"
    if isinstance(expr, Not):
        return _postgrest(expr.term, negated=not negated)
    if isinstance(expr, And):
        return f"{prefix}and({_postgrest_terms(expr.terms)})"
    if isinstance(expr, Or):
        return f"{prefix}or({_postgrest_terms(expr.terms)})"
    raise TypeError(f"Unknown expression node: {expr!r}")


def to_sql(expr: Expression) -> tuple[sql.Composable, list[str]]:
    """Render an expression as a parameterized SQL boolean fragment.

    Returns:
        The fragment, with one ``%s`` placeholder per literal, and the
        parameter values in placeholder order.
    """
    params: list[str] = []
    return _sql(expr, params), params


def _sql(expr: Expression, params: list[str]) -> sql.Composable:
    if isinstance(expr, Ilike):
        params.append(expr.pattern)
        return sql.SQL("{} ILIKE {}").format(sql.Identifier(expr.field), sql.Placeholder())
    if isinstance(expr, Not):
        return sql.SQL("NOT ({})").format(_sql(expr.term, params))
    if isinstance(expr, (And, Or)):
        if not expr.terms:
            return sql.SQL("TRUE" if isinstance(expr, And) else "FALSE")
        joiner = sql.SQL(" AND " if isinstance(expr, And) else " OR ")
        return sql.SQL("({})").format(joiner.join(_sql(term, params) for term in expr.terms))
    raise TypeError(f"Unknown expression node: {expr!r}")
