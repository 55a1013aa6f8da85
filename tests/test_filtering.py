"""Tests for imagetrace.filtering: thresholds, spam visibility and sorting."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from imagetrace.categorize import TWO_TIER_THRESHOLDS
from imagetrace.enrich import enrich
from imagetrace.filtering import (
    clamp_confidence,
    default_options,
    filter_results,
    merge_options,
    sort_matches,
)
from imagetrace.models import FilteredData, FilterOptions, ImageMatch, MatchResult, PageMatch

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _page(url, score, title="A fine page", page_type=None, is_spam=False, **kw):
    return PageMatch(url=url, score=score, page_title=title, page_type=page_type,
                     is_spam=is_spam, **kw)


class TestClampConfidence:
    @pytest.mark.parametrize("value,expected", [
        (-5, 0), (0, 0), (70, 70), (100, 100), (250, 100), ("80", 80), (None, 0), (69.6, 70),
    ])
    def test_clamp(self, value, expected):
        assert clamp_confidence(value) == expected


class TestMergeOptions:
    def test_merge_partial(self):
        opts = merge_options(default_options(), sort_by="date", show_spam=True)
        assert opts.sort_by == "date"
        assert opts.show_spam is True
        assert opts.sort_order == "desc"

    def test_merge_returns_new_object(self):
        base = default_options()
        merged = merge_options(base, min_confidence=90)
        assert base.min_confidence == 65
        assert merged.min_confidence == 90

    def test_merge_clamps_confidence(self):
        assert merge_options(default_options(), min_confidence=140).min_confidence == 100

    def test_unknown_option_rejected(self):
        with pytest.raises(TypeError, match="colour"):
            merge_options(default_options(), colour="red")

    def test_defaults(self):
        opts = default_options()
        assert opts == FilterOptions()
        assert (opts.sort_by, opts.sort_order, opts.group_by) == ("confidence", "desc", "domain")


class TestFilterResults:
    def test_concrete_scenario(self):
        result = MatchResult(
            visually_similar_images=[
                ImageMatch(url="https://a.com/1.jpg", score=0.95),
                ImageMatch(url="https://b.com/2.jpg", score=0.75),
            ],
            pages_with_matching_images=[_page("https://shop.com/product/42", 0.65)],
        )
        opts = merge_options(default_options(), min_confidence=70)
        data = filter_results(result, opts, now=NOW)
        assert len(data.exact_matches) == 1
        assert len(data.partial_matches) == 1
        assert len(data.product_pages) == 0

    def test_page_above_structural_floor_kept_at_low_user_floor(self):
        result = MatchResult(pages_with_matching_images=[_page("https://shop.com/product/42", 0.65)])
        opts = merge_options(default_options(), min_confidence=0)
        data = filter_results(result, opts, now=NOW)
        assert len(data.product_pages) == 1

    def test_user_floor_above_tier_empties_it(self):
        result = MatchResult(visually_similar_images=[ImageMatch(url="https://a.com/1", score=0.8)])
        opts = merge_options(default_options(), min_confidence=85)
        assert filter_results(result, opts, now=NOW).partial_matches == []

    def test_similar_tier(self):
        result = MatchResult(visually_similar_images=[ImageMatch(url="https://a.com/1", score=0.67)])
        data = filter_results(result, default_options(), now=NOW)
        assert len(data.similar_matches) == 1
        data = filter_results(result, default_options(), thresholds=TWO_TIER_THRESHOLDS, now=NOW)
        assert data.similar_matches == []

    def test_spam_hidden_by_default(self):
        result = MatchResult(pages_with_matching_images=[
            _page("https://a.com/x", 0.9, is_spam=True),
            _page("https://b.com/x", 0.9),
        ])
        data = filter_results(result, default_options(), now=NOW)
        assert [p.url for p in data.all_pages] == ["https://b.com/x"]

    def test_show_spam(self):
        result = MatchResult(pages_with_matching_images=[_page("https://a.com/x", 0.9, is_spam=True)])
        opts = merge_options(default_options(), show_spam=True)
        assert len(filter_results(result, opts, now=NOW).all_pages) == 1

    def test_unflagged_page_included(self):
        result = MatchResult(pages_with_matching_images=[_page("https://a.com/x", 0.9, is_spam=None)])
        assert len(filter_results(result, default_options(), now=NOW).all_pages) == 1

    def test_cdn_page_excluded(self):
        result = MatchResult(pages_with_matching_images=[_page("https://i.imgur.com/a", 0.99)])
        assert filter_results(result, default_options(), now=NOW).all_pages == []

    def test_all_pages_is_union_of_buckets(self):
        result = MatchResult(pages_with_matching_images=[
            _page("https://a.com/product/1", 0.80),
            _page("https://b.com/category/1", 0.95),
            _page("https://c.com/x", 0.70, page_type="search"),
            _page("https://d.com/about", 0.85),
        ])
        data = filter_results(result, default_options(), now=NOW)
        union = [p.url for _, bucket in data.page_buckets() for p in bucket]
        assert sorted(union) == sorted(p.url for p in data.all_pages)
        # all_pages is sorted on its own, not concatenated
        assert [p.score for p in data.all_pages] == [0.95, 0.85, 0.80, 0.70]

    def test_none_and_empty(self):
        assert filter_results(None, default_options()) == FilteredData()
        assert filter_results(MatchResult(), default_options()) == FilteredData()

    def test_out_of_range_confidence_clamped(self):
        result = MatchResult(visually_similar_images=[ImageMatch(url="https://a.com/1", score=1.0)])
        opts = FilterOptions(min_confidence=500)
        assert len(filter_results(result, opts, now=NOW).exact_matches) == 1
        opts = FilterOptions(min_confidence=-20)
        assert len(filter_results(result, opts, now=NOW).exact_matches) == 1


class TestSortMatches:
    def _images(self):
        return [
            ImageMatch(url="https://b.com/1", score=0.7, date_found=NOW - timedelta(days=3)),
            ImageMatch(url="https://a.com/1", score=0.9, date_found=NOW - timedelta(days=1)),
            ImageMatch(url="https://c.com/1", score=0.8, date_found=None),
            ImageMatch(url="https://a.com/2", score=0.6, date_found=NOW - timedelta(days=2)),
        ]

    def test_confidence_desc(self):
        out = sort_matches(self._images(), default_options(), NOW)
        assert [m.score for m in out] == [0.9, 0.8, 0.7, 0.6]

    def test_confidence_asc_is_reverse(self):
        desc = sort_matches(self._images(), default_options(), NOW)
        asc = sort_matches(self._images(), FilterOptions(sort_order="asc"), NOW)
        assert asc == list(reversed(desc))

    def test_date_missing_counts_as_now(self):
        out = sort_matches(self._images(), FilterOptions(sort_by="date"), NOW)
        assert out[0].url == "https://c.com/1"
        assert [m.url for m in out[1:]] == ["https://a.com/1", "https://a.com/2", "https://b.com/1"]

    def test_domain(self):
        out = sort_matches(self._images(), FilterOptions(sort_by="domain", sort_order="asc"), NOW)
        assert [m.url for m in out] == [
            "https://a.com/1", "https://a.com/2", "https://b.com/1", "https://c.com/1",
        ]

    def test_domain_ignores_www(self):
        items = [ImageMatch(url="https://www.zeta.com/1", score=0.9),
                 ImageMatch(url="https://alpha.com/1", score=0.9)]
        out = sort_matches(items, FilterOptions(sort_by="domain", sort_order="asc"), NOW)
        assert out[0].url == "https://alpha.com/1"

    def test_count_desc_is_stable(self):
        out = sort_matches(self._images(), FilterOptions(sort_by="count"), NOW)
        assert [m.url for m in out] == [
            "https://a.com/1", "https://a.com/2", "https://b.com/1", "https://c.com/1",
        ]

    def test_count_asc_keeps_tie_order(self):
        out = sort_matches(self._images(), FilterOptions(sort_by="count", sort_order="asc"), NOW)
        assert [m.url for m in out] == [
            "https://b.com/1", "https://c.com/1", "https://a.com/1", "https://a.com/2",
        ]

    def test_unknown_sort_keeps_order(self):
        items = self._images()
        assert sort_matches(items, FilterOptions(sort_by="colour"), NOW) == items

    def test_does_not_mutate_input(self):
        items = self._images()
        snapshot = list(items)
        sort_matches(items, default_options(), NOW)
        assert items == snapshot


class TestNaiveDatetimes:
    def test_naive_now_with_parsed_dates(self):
        raw = MatchResult.from_dict({
            "visuallySimilarImages": [
                {"url": "https://a.com/1.jpg", "score": 0.95, "dateFound": "2024-05-01T00:00:00Z"},
                {"url": "https://b.com/2.jpg", "score": 0.96},
            ],
        })
        naive_now = datetime(2024, 6, 1)
        processed = enrich(raw, naive_now, rng=random.Random(3))
        out = filter_results(processed, FilterOptions(sort_by="date"), now=naive_now)
        assert [m.url for m in out.exact_matches] == ["https://b.com/2.jpg", "https://a.com/1.jpg"]

    def test_naive_record_with_default_now(self):
        items = [
            ImageMatch(url="https://a.com/1.jpg", score=0.95, date_found=datetime(2024, 5, 1)),
            ImageMatch(url="https://b.com/2.jpg", score=0.95),
        ]
        out = sort_matches(items, FilterOptions(sort_by="date", sort_order="asc"))
        assert [m.url for m in out] == ["https://a.com/1.jpg", "https://b.com/2.jpg"]

    def test_mixed_naive_and_aware_records(self):
        items = [
            ImageMatch(url="https://a.com/1.jpg", score=0.95, date_found=datetime(2024, 5, 3)),
            ImageMatch(url="https://b.com/2.jpg", score=0.95,
                       date_found=datetime(2024, 5, 2, tzinfo=timezone.utc)),
        ]
        out = sort_matches(items, FilterOptions(sort_by="date"), NOW)
        assert [m.url for m in out] == ["https://a.com/1.jpg", "https://b.com/2.jpg"]
