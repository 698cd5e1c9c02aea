#!/usr/bin/env python3
"""Tests for the pure calculation helpers."""

from datetime import date, datetime

import pytest

from fleet import Difficulty, MaintenanceStatus, Priority, Settings, TripStatus
from fleet.calculations import (
    average_speed,
    calc_km_until_due,
    calc_mileage_at_last_maintenance,
    classify_difficulty,
    classify_priority,
    estimate_fuel,
    estimate_travel_time,
    experience_level,
    format_hours,
    is_maintenance_due,
    trip_efficiency,
    trip_is_delayed,
    trip_progress,
)

TODAY = date(2025, 3, 10)
START = datetime(2025, 3, 10, 8, 0)

# =============================================================================
# Routes
# =============================================================================


class TestAverageSpeed:
    """Tests for average_speed."""

    def test_distance_over_duration(self):
        assert average_speed(200, 4) == 50.0

    def test_rounded_to_two_places(self):
        assert average_speed(100, 3) == 33.33

    def test_zero_duration_is_zero(self):
        assert average_speed(100, 0) == 0.0
        assert average_speed(100, -1) == 0.0


class TestClassifyDifficulty:
    """Tests for classify_difficulty thresholds."""

    def test_very_hard_over_500_km(self):
        assert classify_difficulty(600, 10) == Difficulty.VERY_HARD

    def test_hard_over_300_km(self):
        assert classify_difficulty(350, 4) == Difficulty.HARD

    def test_hard_when_slow(self):
        # 33 km/h
        assert classify_difficulty(100, 3) == Difficulty.HARD

    def test_moderate_over_150_km(self):
        assert classify_difficulty(200, 2.5) == Difficulty.MODERATE

    def test_moderate_below_60_kmh(self):
        assert classify_difficulty(100, 2) == Difficulty.MODERATE

    def test_easy(self):
        assert classify_difficulty(120, 1.5) == Difficulty.EASY

    def test_thresholds_come_from_settings(self):
        settings = Settings(very_hard_distance_km=100)
        assert classify_difficulty(120, 1.5, settings) == Difficulty.VERY_HARD


class TestRouteHelpers:
    """Tests for fuel, duration formatting and travel time estimation."""

    def test_fuel_35_liters_per_100_km(self):
        assert estimate_fuel(200) == 70.0

    def test_format_hours_and_minutes(self):
        assert format_hours(2.5) == "2h 30m"

    def test_format_whole_hours(self):
        assert format_hours(3) == "3h"

    def test_format_minutes_only(self):
        assert format_hours(0.75) == "45m"

    def test_format_none(self):
        assert format_hours(None) is None

    def test_travel_time_good_conditions_unchanged(self):
        assert estimate_travel_time(4) == 4

    def test_travel_time_weather_and_traffic(self):
        assert estimate_travel_time(4, "rain", "heavy") == pytest.approx(5.52)

    def test_travel_time_rush_hour(self):
        departure = datetime(2025, 3, 10, 8, 0)
        assert estimate_travel_time(4, departure=departure) == pytest.approx(4.6)

    def test_travel_time_outside_rush_hour(self):
        departure = datetime(2025, 3, 10, 11, 0)
        assert estimate_travel_time(4, departure=departure) == 4

    def test_travel_time_load(self):
        assert estimate_travel_time(10, load="hazardous") == pytest.approx(12.0)
        assert estimate_travel_time(10, load="light") == pytest.approx(9.5)

    def test_unknown_condition_raises(self):
        with pytest.raises(ValueError, match="Unknown weather condition 'hail'"):
            estimate_travel_time(4, weather="hail")


# =============================================================================
# Maintenance
# =============================================================================


class TestMileageAtLastMaintenance:
    """Tests for calc_mileage_at_last_maintenance."""

    def test_fresh_at_zero_without_completed_maintenance(self):
        assert calc_mileage_at_last_maintenance(5200, 5000, False) == 0

    def test_approximated_as_current_minus_interval(self):
        assert calc_mileage_at_last_maintenance(5200, 5000, True) == 200

    def test_snapshot_wins_when_present(self):
        assert calc_mileage_at_last_maintenance(5200, 5000, True, snapshot=4800) == 4800

    def test_snapshot_ignored_without_completed_maintenance(self):
        assert calc_mileage_at_last_maintenance(5200, 5000, False, snapshot=4800) == 0


class TestMaintenanceDue:
    """Tests for calc_km_until_due and is_maintenance_due."""

    def test_km_until_due_never_negative(self):
        assert calc_km_until_due(5200, 5000, 0) == 0

    def test_km_until_due_remaining(self):
        assert calc_km_until_due(3000, 5000, 0) == 2000

    def test_due_at_exact_interval(self):
        assert is_maintenance_due(5000, 5000, 0)

    def test_not_due_below_interval(self):
        assert not is_maintenance_due(4999, 5000, 0)

    @pytest.mark.parametrize("current", [0, 2500, 4999, 5000, 5200, 12000])
    def test_due_iff_nothing_left(self, current):
        due = is_maintenance_due(current, 5000, 0)
        assert due == (calc_km_until_due(current, 5000, 0) <= 0)


class TestClassifyPriority:
    """Tests for classify_priority."""

    def test_overdue_is_urgent(self):
        result = classify_priority(MaintenanceStatus.SCHEDULED, date(2025, 3, 9), TODAY)
        assert result == Priority.URGENT

    def test_today_is_high(self):
        result = classify_priority(MaintenanceStatus.SCHEDULED, TODAY, TODAY)
        assert result == Priority.HIGH

    def test_within_a_week_is_high(self):
        result = classify_priority(MaintenanceStatus.SCHEDULED, date(2025, 3, 17), TODAY)
        assert result == Priority.HIGH

    def test_within_two_weeks_is_medium(self):
        for day in (18, 24):
            result = classify_priority(
                MaintenanceStatus.SCHEDULED, date(2025, 3, day), TODAY
            )
            assert result == Priority.MEDIUM

    def test_later_is_low(self):
        result = classify_priority(MaintenanceStatus.SCHEDULED, date(2025, 3, 25), TODAY)
        assert result == Priority.LOW

    def test_not_scheduled_is_not_applicable(self):
        for status in (
            MaintenanceStatus.IN_PROGRESS,
            MaintenanceStatus.COMPLETED,
            MaintenanceStatus.CANCELED,
        ):
            assert classify_priority(status, date(2025, 3, 1), TODAY) == (
                Priority.NOT_APPLICABLE
            )


# =============================================================================
# Trips
# =============================================================================


class TestTripProgress:
    """Tests for trip_progress and trip_is_delayed."""

    def test_progress_half_way(self):
        now = datetime(2025, 3, 10, 10, 0)
        assert trip_progress(TripStatus.IN_PROGRESS, START, now, 4) == 50.0

    def test_progress_capped_at_100(self):
        now = datetime(2025, 3, 10, 20, 0)
        assert trip_progress(TripStatus.IN_PROGRESS, START, now, 4) == 100.0

    def test_progress_zero_outside_in_progress(self):
        now = datetime(2025, 3, 10, 10, 0)
        for status in (TripStatus.SCHEDULED, TripStatus.COMPLETED, TripStatus.CANCELED):
            assert trip_progress(status, START, now, 4) == 0.0

    def test_delayed_after_estimated_duration(self):
        assert trip_is_delayed(
            TripStatus.IN_PROGRESS, START, datetime(2025, 3, 10, 12, 1), 4
        )

    def test_not_delayed_at_estimated_arrival(self):
        assert not trip_is_delayed(
            TripStatus.IN_PROGRESS, START, datetime(2025, 3, 10, 12, 0), 4
        )

    def test_only_running_trips_are_delayed(self):
        assert not trip_is_delayed(
            TripStatus.SCHEDULED, START, datetime(2025, 3, 11, 12, 0), 4
        )


class TestTripEfficiency:
    """Tests for trip_efficiency."""

    def test_slower_than_estimate(self):
        assert trip_efficiency(4, 5) == 80.0

    def test_faster_than_estimate(self):
        assert trip_efficiency(4, 3.2) == 125.0

    def test_no_actual_duration(self):
        assert trip_efficiency(4, 0) is None
        assert trip_efficiency(4, None) is None


class TestExperienceLevel:
    """Tests for experience_level."""

    @pytest.mark.parametrize(
        "completed, level",
        [
            (0, "New"),
            (4, "New"),
            (5, "Beginner"),
            (20, "Intermediate"),
            (49, "Intermediate"),
            (50, "Advanced"),
            (100, "Expert"),
            (250, "Expert"),
        ],
    )
    def test_levels(self, completed, level):
        assert experience_level(completed) == level
