"""Extraction of search filters from request query parameters."""

from typing import Protocol

from pydantic import BaseModel, Field


class MultiParams(Protocol):
    """A multi-valued parameter mapping such as starlette's QueryParams."""

    def getlist(self, key: str) -> list[str]: ...


class FilterRequest(BaseModel):
    """Normalized shape of one article search.

    Each entry of ``or_groups`` is a ``|``-delimited list of keywords that
    must all appear in the article text; groups are OR'd together.
    """

    or_groups: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)
    title: str | None = None
    text: str | None = None
    url: str | None = None
    podcasts: list[str] = Field(default_factory=list)
    companies: list[str] = Field(default_factory=list)

    @classmethod
    def from_params(cls, params: MultiParams) -> "FilterRequest":
        """Build a request from raw query parameters.

        Repeatable parameters (orGroup, exclude, podcast, company) keep every
        occurrence in order. Single-valued ones (title, text, url) take the
        last occurrence, or None when absent.
        """
        return cls(
            or_groups=params.getlist("orGroup"),
            excludes=params.getlist("exclude"),
            title=_last(params, "title"),
            text=_last(params, "text"),
            url=_last(params, "url"),
            podcasts=params.getlist("podcast"),
            companies=params.getlist("company"),
        )

    def is_empty(self) -> bool:
        """True when no filter is set. Empty strings count as absent."""
        return not (
            self.or_groups
            or self.excludes
            or self.title
            or self.text
            or self.url
            or self.podcasts
            or self.companies
        )


def _last(params: MultiParams, key: str) -> str | None:
    values = params.getlist(key)
    return values[-1] if values else None
