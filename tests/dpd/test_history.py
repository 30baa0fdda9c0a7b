"""Tests for weight history sampling."""

import pytest

from aenea.dpd.history import sample_history


class TestSampleHistory:
    """Tests for sample_history strategies."""

    @pytest.mark.parametrize("limit", [0, -3])
    def test_non_positive_limit_returns_nothing(self, limit):
        assert sample_history(list(range(10)), limit) == []

    def test_empty_history(self):
        assert sample_history([], 5) == []

    @pytest.mark.parametrize("strategy", ["all", "recent"])
    def test_latest_entries_in_ascending_order(self, strategy):
        """all and recent both take the newest entries."""
        assert sample_history(list(range(10)), 3, strategy) == [7, 8, 9]

    def test_sampled_small_history_returns_everything(self):
        """Histories within the limit come back whole."""
        assert sample_history(list(range(4)), 10, "sampled") == [0, 1, 2, 3]

    def test_sampled_medium_history_uses_even_stride(self):
        """Up to five times the limit is thinned with an even stride."""
        assert sample_history(list(range(20)), 5, "sampled") == [3, 7, 11, 15, 19]

    def test_sampled_large_history_keeps_recent_half(self):
        """Large histories keep the newest half and stride through older entries."""
        result = sample_history(list(range(100)), 10, "sampled")
        assert len(result) == 10
        assert result[-5:] == [95, 96, 97, 98, 99]
        assert result[:5] == [18, 37, 56, 75, 94]
        assert result == sorted(result)

    def test_unknown_strategy_acts_as_sampled(self):
        """An unrecognized strategy falls back to sampling."""
        entries = list(range(20))
        assert sample_history(entries, 5, "bogus") == sample_history(entries, 5, "sampled")
