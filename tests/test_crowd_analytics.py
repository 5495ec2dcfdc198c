"""
Crowd Analytics Engine tests.
"""
from datetime import datetime, timedelta, timezone

import pytest

from kumbh_alert.services.crowd_analytics import CrowdAnalyticsEngine, CrowdLevel, classify_crowd_level
from kumbh_alert.store import get_registration_store


NOW = datetime(2026, 1, 14, 12, 0, tzinfo=timezone.utc)


def register(destination, group_size, minutes_ago, luggage_count=1):
    return get_registration_store().create({
        "intended_destination": destination,
        "group_size": group_size,
        "luggage_count": luggage_count,
        "registered_at": NOW - timedelta(minutes=minutes_ago),
    })


@pytest.fixture
def engine():
    return CrowdAnalyticsEngine()


class TestClassifyCrowdLevel:
    @pytest.mark.parametrize("people, level", [
        (0, CrowdLevel.LOW),
        (500, CrowdLevel.LOW),
        (501, CrowdLevel.MODERATE),
        (1000, CrowdLevel.MODERATE),
        (1001, CrowdLevel.HIGH),
    ])
    def test_boundaries(self, people, level):
        assert classify_crowd_level(people) == level


class TestCrowdStatus:
    def test_two_recent_groups_make_a_moderate_crowd(self, engine):
        register("Tapovan", 300, minutes_ago=30)
        register("Tapovan", 250, minutes_ago=10)

        status = engine.crowd_status("Tapovan", now=NOW)

        assert status["estimated_people"] == 550
        assert status["crowd_level"] == "moderate"
        assert status["groups_in_last_hour"] == 2
        assert status["destination"] == "Tapovan"
        assert status["timestamp"] == NOW

    def test_only_trailing_hour_counts(self, engine):
        register("Tapovan", 40, minutes_ago=59)
        register("Tapovan", 900, minutes_ago=61)

        status = engine.crowd_status("Tapovan", now=NOW)

        assert status["estimated_people"] == 40
        assert status["crowd_level"] == "low"

    def test_other_destinations_ignored(self, engine):
        register("Tapovan", 40, minutes_ago=5)
        register("Ramkund", 1200, minutes_ago=5)

        assert engine.crowd_status("Tapovan", now=NOW)["estimated_people"] == 40
        assert engine.crowd_status("Ramkund", now=NOW)["crowd_level"] == "high"

    def test_empty_destination(self, engine):
        status = engine.crowd_status("Sita Gufa", now=NOW)

        assert status["estimated_people"] == 0
        assert status["groups_in_last_hour"] == 0
        assert status["crowd_level"] == "low"

    def test_naive_reference_time_is_treated_as_utc(self, engine):
        register("Tapovan", 10, minutes_ago=5)

        status = engine.crowd_status("Tapovan", now=NOW.replace(tzinfo=None))

        assert status["estimated_people"] == 10


class TestAggregateByDestination:
    def test_totals_per_destination(self, engine):
        register("Tapovan", 4, minutes_ago=30, luggage_count=2)
        register("Tapovan", 6, minutes_ago=10, luggage_count=3)
        register("Ramkund", 20, minutes_ago=5, luggage_count=10)

        rows = engine.aggregate_by_destination()

        assert [row["destination"] for row in rows] == ["Ramkund", "Tapovan"]
        tapovan = rows[1]
        assert tapovan["total_groups"] == 2
        assert tapovan["total_people"] == 10
        assert tapovan["total_luggage"] == 5
        assert tapovan["last_registration"] == NOW - timedelta(minutes=10)

    def test_sums_are_preserved(self, engine):
        sizes = [3, 7, 12, 1, 9]
        destinations = ["Tapovan", "Ramkund", "Tapovan", "Kalaram", "Ramkund"]
        for minutes, (size, destination) in enumerate(zip(sizes, destinations)):
            register(destination, size, minutes_ago=minutes)

        rows = engine.aggregate_by_destination()

        assert sum(row["total_people"] for row in rows) == sum(sizes)
        assert sum(row["total_groups"] for row in rows) == len(sizes)

    def test_destination_filter(self, engine):
        register("Tapovan", 4, minutes_ago=5)
        register("Ramkund", 20, minutes_ago=5)

        rows = engine.aggregate_by_destination(destination="Tapovan")

        assert len(rows) == 1
        assert rows[0]["total_people"] == 4

    def test_time_range_filter(self, engine):
        register("Tapovan", 4, minutes_ago=300)
        register("Tapovan", 6, minutes_ago=30)

        rows = engine.aggregate_by_destination(start=NOW - timedelta(hours=2), end=NOW)

        assert rows[0]["total_people"] == 6

    def test_no_registrations(self, engine):
        assert engine.aggregate_by_destination() == []


class TestRegistrationAnalytics:
    def test_recent_count_uses_trailing_window(self, engine):
        register("Tapovan", 4, minutes_ago=300)
        register("Tapovan", 6, minutes_ago=30)
        register("Ramkund", 2, minutes_ago=10)

        result = engine.registration_analytics(now=NOW)

        assert result["recent_registrations"] == 2
        assert result["timestamp"] == NOW
        assert {row["destination"] for row in result["analytics"]} == {"Tapovan", "Ramkund"}

    def test_destination_scoped(self, engine):
        register("Tapovan", 6, minutes_ago=30)
        register("Ramkund", 2, minutes_ago=10)

        result = engine.registration_analytics(destination="Ramkund", now=NOW)

        assert result["recent_registrations"] == 1
        assert [row["destination"] for row in result["analytics"]] == ["Ramkund"]
