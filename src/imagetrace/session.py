"""Cached derived state for one search: processed, filtered and summary views."""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Optional

from imagetrace.categorize import DEFAULT_THRESHOLDS, Thresholds
from imagetrace.dashboard import calculate_counts, summarize
from imagetrace.enrich import enrich
from imagetrace.filtering import default_options, filter_results, merge_options
from imagetrace.models import (
    DashboardData,
    FilteredData,
    FilterOptions,
    MatchCounts,
    MatchResult,
    parse_timestamp,
)


class ResultsSession:
    """Holds the current MatchResult and FilterOptions.

    Derived views are computed on first access and cached until the result
    (by identity) or the options (by value) change.
    """

    def __init__(
        self,
        result: Optional[MatchResult] = None,
        options: Optional[FilterOptions] = None,
        *,
        thresholds: Thresholds = DEFAULT_THRESHOLDS,
        now: Optional[datetime] = None,
        rng: Optional[random.Random] = None,
    ):
        self.thresholds = thresholds
        self.now = parse_timestamp(now) or datetime.now(timezone.utc)
        self.rng = rng or random.Random()
        self._result = result
        self._options = options or default_options()
        self._processed: Optional[MatchResult] = None
        self._filtered: Optional[FilteredData] = None
        self._dashboard: Optional[DashboardData] = None
        self._counts: Optional[MatchCounts] = None

    @property
    def result(self) -> Optional[MatchResult]:
        return self._result

    @property
    def options(self) -> FilterOptions:
        return self._options

    def set_result(self, result: Optional[MatchResult]) -> None:
        if result is self._result:
            return
        self._result = result
        self._processed = None
        self._invalidate_filtered()

    def change_options(self, **changes) -> FilterOptions:
        """Merge a partial update into the current options."""
        self._set_options(merge_options(self._options, **changes))
        return self._options

    def clear_options(self) -> FilterOptions:
        self._set_options(default_options())
        return self._options

    def _set_options(self, options: FilterOptions) -> None:
        if options == self._options:
            return
        self._options = options
        self._invalidate_filtered()

    def _invalidate_filtered(self) -> None:
        self._filtered = None
        self._dashboard = None
        self._counts = None

    @property
    def processed(self) -> Optional[MatchResult]:
        if self._result is None:
            return None
        if self._processed is None:
            self._processed = enrich(self._result, self.now, rng=self.rng)
        return self._processed

    @property
    def filtered(self) -> Optional[FilteredData]:
        if self._result is None:
            return None
        if self._filtered is None:
            self._filtered = filter_results(
                self.processed, self._options, thresholds=self.thresholds, now=self.now
            )
        return self._filtered

    @property
    def dashboard(self) -> Optional[DashboardData]:
        if self._result is None:
            return None
        if self._dashboard is None:
            self._dashboard = summarize(self.filtered)
        return self._dashboard

    @property
    def counts(self) -> MatchCounts:
        if self._counts is None:
            processed = self.processed
            spam = 0
            if processed is not None:
                spam = sum(1 for p in processed.pages_with_matching_images if p.is_spam)
            self._counts = calculate_counts(self.filtered, spam)
        return self._counts
