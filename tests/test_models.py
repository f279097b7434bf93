"""
Tests for the weight table and the per-window / per-day records.
"""

import numpy as np
import pytest

from event_window_sim import ConfigError, EventSpec, WeightTable, RestartWindow, DayResult


# =============================================================================
# EventSpec / buckets
# =============================================================================


class TestBuckets:
    def test_buckets_are_ceiled_percentages(self):
        table = WeightTable.from_pairs([("Aurora", 0.85), ("Blizzard", 0.10)])
        assert table.buckets() == [85, 10]

    def test_fractional_percent_rounds_up(self):
        table = WeightTable.from_pairs([("A", 0.001), ("B", 0.005), ("C", 0.0)])
        assert table.buckets() == [1, 1, 0]

    def test_bucket_property(self):
        assert EventSpec("Fog", 0.25).bucket == 25

    def test_order_is_preserved(self):
        table = WeightTable.from_pairs([("Zephyr", 0.2), ("Aurora", 0.5), ("Mist", 0.3)])
        assert table.names == ["Zephyr", "Aurora", "Mist"]
        assert table.buckets() == [20, 50, 30]


# =============================================================================
# Base probabilities (three-tier fallback)
# =============================================================================


class TestBaseProbabilities:
    @pytest.mark.parametrize(
        "pairs",
        [
            [("A", 1.0)],
            [("A", 0.85), ("B", 0.10)],
            [("A", 0.5), ("B", 0.3), ("C", 0.2)],
            [("A", 3.0), ("B", 7.5), ("C", 0.01), ("D", 0.0)],
            [("A", 0.0), ("B", 0.0), ("C", 0.0)],
            [("A", 0.333), ("B", 0.333), ("C", 0.333)],
        ],
    )
    def test_sums_to_one(self, pairs):
        p = WeightTable.from_pairs(pairs).base_probabilities()
        assert abs(float(p.sum()) - 1.0) < 1e-9
        assert np.all(p >= 0)

    def test_bucket_share(self):
        p = WeightTable.from_pairs([("Aurora", 0.85), ("Blizzard", 0.10)]).base_probabilities()
        assert p[0] == pytest.approx(85 / 95)
        assert p[1] == pytest.approx(10 / 95)
        assert p[0] == pytest.approx(0.8947, abs=1e-4)
        assert p[1] == pytest.approx(0.1053, abs=1e-4)

    def test_all_zero_is_uniform(self):
        p = WeightTable.from_pairs([("A", 0.0), ("B", 0.0), ("C", 0.0), ("D", 0.0)]).base_probabilities()
        assert np.allclose(p, 0.25)

    def test_chance_share_when_no_tickets(self):
        class NoTickets(WeightTable):
            def buckets(self):
                return [0] * len(self)

        p = NoTickets.from_pairs([("A", 0.3), ("B", 0.1)]).base_probabilities()
        assert p[0] == pytest.approx(0.75)
        assert p[1] == pytest.approx(0.25)

    def test_weighted_selection_uses_exact_chances(self):
        table = WeightTable.from_pairs([("A", 0.004), ("B", 0.006)])
        # buckets are 1 and 1, exact shares are 0.4 / 0.6
        assert np.allclose(table.selection_probabilities("bucket"), [0.5, 0.5])
        assert np.allclose(table.selection_probabilities("weighted"), [0.4, 0.6])

    def test_selection_probabilities_unknown_policy(self):
        with pytest.raises(ConfigError):
            WeightTable.from_pairs([("A", 1.0)]).selection_probabilities("roulette")


# =============================================================================
# Validation
# =============================================================================


class TestValidation:
    def test_empty_table_rejected(self):
        with pytest.raises(ConfigError):
            WeightTable([])

    def test_negative_chance_rejected(self):
        with pytest.raises(ConfigError):
            WeightTable.from_pairs([("A", 0.5), ("B", -0.1)])

    def test_nan_chance_rejected(self):
        with pytest.raises(ConfigError):
            WeightTable.from_pairs([("A", float("nan"))])

    def test_duplicates_allowed(self):
        table = WeightTable.from_pairs([("A", 0.5), ("B", 0.2), ("A", 0.3)])
        assert len(table) == 3
        assert table.distinct_names() == ["A", "B"]
        assert table.zero_counts() == {"A": 0, "B": 0}


# =============================================================================
# Records
# =============================================================================


class TestRecords:
    def test_restart_window_counts(self):
        w = RestartWindow(idx=2, start_s=43200.0, length_s=21600.0)
        w.record(100.0, "Rain")
        w.record(1900.0, "Fog")
        w.record(4000.0, "Rain")
        assert w.counts() == {"Rain": 2, "Fog": 1}
        assert len(w) == 3
        assert w.end_s == 64800.0

    def test_restart_window_rejects_empty_length(self):
        with pytest.raises(ValueError):
            RestartWindow(idx=0, start_s=0.0, length_s=0.0)

    def test_day_total(self):
        assert DayResult(day=1, counts={"A": 3, "B": 4}).total == 7
