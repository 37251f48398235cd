"""Tests for query parameter extraction."""

from starlette.datastructures import QueryParams

from podsearch.query import FilterRequest


def _extract(query_string: str) -> FilterRequest:
    return FilterRequest.from_params(QueryParams(query_string))


class TestFromParams:
    def test_repeatable_params_keep_order_and_duplicates(self):
        req = _extract("orGroup=kafka|latency&orGroup=grpc&orGroup=grpc&exclude=a&exclude=b")
        assert req.or_groups == ["kafka|latency", "grpc", "grpc"]
        assert req.excludes == ["a", "b"]

    def test_selection_params(self):
        req = _extract("podcast=changelog&podcast=bogus&company=amazon")
        assert req.podcasts == ["changelog", "bogus"]
        assert req.companies == ["amazon"]

    def test_single_params_take_last(self):
        req = _extract("title=first&title=second&url=example.com")
        assert req.title == "second"
        assert req.url == "example.com"

    def test_absent_single_params_are_none(self):
        req = _extract("orGroup=kafka")
        assert req.title is None
        assert req.text is None
        assert req.url is None

    def test_explicit_empty_is_kept_as_empty_string(self):
        req = _extract("title=")
        assert req.title == ""


class TestIsEmpty:
    def test_no_params(self):
        assert _extract("").is_empty()

    def test_unrelated_params(self):
        assert _extract("q=kafka&page=2").is_empty()

    def test_empty_strings_count_as_absent(self):
        assert _extract("title=&text=&url=").is_empty()

    def test_any_filter_makes_it_non_empty(self):
        for query in ("orGroup=a", "exclude=a", "title=a", "text=a", "url=a", "podcast=a", "company=a"):
            assert not _extract(query).is_empty(), query

    def test_empty_or_group_is_still_a_filter(self):
        assert not _extract("orGroup=").is_empty()
