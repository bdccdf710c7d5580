"""Tests for core/practice_analytics/trends.py — accuracy and frequency trend summaries."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import FROZEN_NOW, make_session

from core.practice_analytics.trends import accuracy_trend, frequency_trend, summarize_trends


def _daily(accuracies: list[int]) -> list:
    return [make_session(FROZEN_NOW - timedelta(days=len(accuracies) - n), accuracy=a) for n, a in enumerate(accuracies)]


class TestAccuracyTrend:
    def test_large_rise(self) -> None:
        trend = accuracy_trend(_daily([50] * 5 + [60] * 5))
        assert trend is not None
        assert trend.metric == "Accuracy"
        assert trend.direction == "up"
        assert trend.magnitude == pytest.approx(20.0)
        assert trend.significance == "high"
        assert trend.timeframe == "Last 10 sessions"

    def test_small_drop(self) -> None:
        trend = accuracy_trend(_daily([80] * 5 + [74] * 5))
        assert trend is not None
        assert trend.direction == "down"
        assert trend.magnitude == pytest.approx(7.5)
        assert trend.significance == "medium"

    def test_within_band_is_stable(self) -> None:
        trend = accuracy_trend(_daily([80] * 5 + [81] * 5))
        assert trend is not None
        assert trend.direction == "stable"
        assert trend.significance == "low"

    def test_no_prior_window(self) -> None:
        assert accuracy_trend(_daily([80] * 5)) is None

    def test_zero_prior_accuracy(self) -> None:
        assert accuracy_trend(_daily([0] * 5 + [50] * 5)) is None


class TestFrequencyTrend:
    def test_more_sessions_this_week(self) -> None:
        sessions = [make_session(FROZEN_NOW - timedelta(days=d)) for d in (10, 12, 1, 2, 3, 4)]
        trend = frequency_trend(sessions, FROZEN_NOW)
        assert trend is not None
        assert trend.metric == "Practice Frequency"
        assert trend.direction == "up"
        assert trend.magnitude == pytest.approx(100.0)
        assert trend.significance == "high"
        assert trend.timeframe == "Last 2 weeks"

    def test_fewer_sessions_this_week(self) -> None:
        sessions = [make_session(FROZEN_NOW - timedelta(days=d)) for d in (8, 9, 10, 11, 1, 2, 3)]
        trend = frequency_trend(sessions, FROZEN_NOW)
        assert trend is not None
        assert trend.direction == "down"
        assert trend.magnitude == pytest.approx(25.0)
        assert trend.significance == "low"

    def test_empty_week_gives_none(self) -> None:
        sessions = [make_session(FROZEN_NOW - timedelta(days=d)) for d in (1, 2, 3)]
        assert frequency_trend(sessions, FROZEN_NOW) is None

    def test_sessions_older_than_two_weeks_ignored(self) -> None:
        sessions = [make_session(FROZEN_NOW - timedelta(days=d)) for d in (20, 9, 1)]
        trend = frequency_trend(sessions, FROZEN_NOW)
        assert trend is not None
        assert trend.direction == "stable"


class TestSummarizeTrends:
    def test_fewer_than_five_sessions(self) -> None:
        assert summarize_trends(_daily([50, 60, 70, 80]), FROZEN_NOW) == ()

    def test_both_trends(self) -> None:
        trends = summarize_trends(_daily([50] * 5 + [60] * 5), FROZEN_NOW)
        assert [t.metric for t in trends] == ["Accuracy", "Practice Frequency"]

    def test_missing_trends_are_skipped(self) -> None:
        # five sessions in the last week only: no prior window for either trend
        trends = summarize_trends(_daily([70] * 5), FROZEN_NOW)
        assert trends == ()
