"""Curated domain registries for podcast and company URL filters.

A registry maps a short user-facing key to the literal URL substrings that
identify that source's articles. Keys that are not registered are dropped
silently when expanding a selection.
"""

from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType

from podsearch.config import EmptySelection


class DomainRegistry:
    """Immutable lookup from registry keys to URL substrings."""

    def __init__(
        self,
        name: str,
        domains: Mapping[str, str | Sequence[str]],
        display_names: Mapping[str, str] | None = None,
        empty_selection: EmptySelection = "none",
    ) -> None:
        """Initialize the registry.

        Args:
            name: Registry name used in logs (e.g. "podcast").
            domains: Key to one domain, or to a sequence of domains.
            display_names: Optional key to human-readable name.
            empty_selection: What an empty selection expands to, every
                registered domain ("all") or nothing ("none").
        """
        self.name = name
        self._domains = MappingProxyType({
            key: (value,) if isinstance(value, str) else tuple(value)
            for key, value in domains.items()
        })
        self._display_names = MappingProxyType(dict(display_names or {}))
        self.empty_selection = empty_selection

    def __contains__(self, key: object) -> bool:
        return key in self._domains

    def __len__(self) -> int:
        return len(self._domains)

    def keys(self) -> list[str]:
        return list(self._domains)

    def lookup(self, key: str) -> tuple[str, ...]:
        """Return the domains registered for a key, or () if unknown."""
        return self._domains.get(key, ())

    def expand(self, keys: Iterable[str]) -> list[str]:
        """Expand selected keys into domains, applying the empty-selection policy.

        Args:
            keys: Selected registry keys, in request order.

        Returns:
            Domains for every known key, in order. Unknown keys contribute
            nothing.
        """
        selected = list(keys)
        if not selected and self.empty_selection == "all":
            selected = self.keys()
        return [domain for key in selected for domain in self.lookup(key)]

    def display_name(self, key: str) -> str:
        return self._display_names.get(key, key)

    def catalog(self) -> list[dict]:
        """List registered keys with display names and domains."""
        return [
            {"key": key, "name": self.display_name(key), "domains": list(domains)}
            for key, domains in self._domains.items()
        ]

    def with_empty_selection(self, policy: EmptySelection) -> "DomainRegistry":
        """Return a copy of this registry using a different empty-selection policy."""
        return DomainRegistry(
            self.name,
            self._domains,
            display_names=self._display_names,
            empty_selection=policy,
        )


PODCASTS = DomainRegistry(
    "podcast",
    {
        "data-engineering-podcast": "dataengineeringpodcast.com",
        "software-engineering-radio": "se-radio.net",
        "software-engineering-daily": "softwareengineeringdaily",
        "changelog": "changelog.com",
    },
    display_names={
        "data-engineering-podcast": "Data Engineering Podcast",
        "software-engineering-radio": "Software Engineering Radio",
        "software-engineering-daily": "Software Engineering Daily",
        "changelog": "Changelog",
    },
    empty_selection="all",
)

COMPANIES = DomainRegistry(
    "company",
    {
        "amazon": ("aws.amazon.com/blogs", "amazon.science", "allthingsdistributed.com"),
        "google": ("research.google", "cloud.google.com/blog", "developers.googleblog.com"),
        "meta": ("engineering.fb.com", "ai.meta.com/blog"),
        "netflix": ("netflixtechblog.com", "netflixtechblog.medium.com"),
        "uber": ("uber.com/blog",),
        "airbnb": ("medium.com/airbnb-engineering", "airbnb.tech"),
        "stripe": ("stripe.com/blog",),
        "cloudflare": ("blog.cloudflare.com",),
        "shopify": ("shopify.engineering",),
        "linkedin": ("linkedin.com/blog/engineering", "engineering.linkedin.com"),
    },
    display_names={
        "amazon": "Amazon",
        "google": "Google",
        "meta": "Meta",
        "netflix": "Netflix",
        "uber": "Uber",
        "airbnb": "Airbnb",
        "stripe": "Stripe",
        "cloudflare": "Cloudflare",
        "shopify": "Shopify",
        "linkedin": "LinkedIn",
    },
    empty_selection="none",
)
