#!/usr/bin/env python3
"""Tests for the fleetctl command line interface."""

from datetime import date, datetime

import pytest
import yaml

from fleetctl import (
    build_parser,
    format_cost,
    format_datetime,
    format_km,
    format_percent,
    main,
    parse_date,
    parse_datetime,
    truncate,
)

# =============================================================================
# Formatting helpers
# =============================================================================


class TestFormatting:
    def test_format_km(self):
        assert format_km(1234567.4) == "1,234,567"
        assert format_km(None) == "-"

    def test_format_cost(self):
        assert format_cost(1500) == "$1,500.00"
        assert format_cost(None) == "-"

    def test_format_datetime(self):
        assert format_datetime(datetime(2025, 3, 10, 8, 5)) == "2025-03-10 08:05"
        assert format_datetime(None) == "-"

    def test_format_percent(self):
        assert format_percent(80) == "80.0%"
        assert format_percent(None) == "-"

    def test_truncate(self):
        assert truncate("short") == "short"
        assert truncate("a" * 40, 10) == "aaaaaaa..."
        assert truncate(None) == "-"

    def test_parse(self):
        assert parse_date("2025-03-10") == date(2025, 3, 10)
        assert parse_datetime("2025-03-10T08:30") == datetime(2025, 3, 10, 8, 30)


class TestParser:
    def test_requires_command(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["fleet.yaml"])

    def test_schedule_trip_parses_start(self):
        args = build_parser().parse_args(
            ["fleet.yaml", "schedule-trip", "1", "2", "3", "2025-03-10T08:00"]
        )
        assert (args.vehicle_id, args.driver_id, args.route_id) == (1, 2, 3)
        assert args.start == datetime(2025, 3, 10, 8, 0)


# =============================================================================
# Commands
# =============================================================================


@pytest.fixture
def fleet_file(tmp_path):
    path = tmp_path / "fleet.yaml"
    assert main([str(path), "init"]) == 0
    return path


def run(path, *argv):
    return main([str(path), *argv])


class TestCommands:
    def test_init_refuses_existing_file(self, fleet_file, capsys):
        assert run(fleet_file, "init") == 1
        assert "already exists" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        assert run(tmp_path / "nope.yaml", "vehicles") == 1
        assert "File not found" in capsys.readouterr().out

    def test_register_and_list(self, fleet_file, capsys):
        assert run(fleet_file, "add-vehicle", "p1", "volvo", "fh", "2020", "--mileage", "100") == 0
        assert run(fleet_file, "add-driver", "ana", "lopez", "L1", "--phone", "55512345") == 0
        assert run(fleet_file, "add-route", "A", "B", "120", "2") == 0
        capsys.readouterr()

        assert run(fleet_file, "vehicles") == 0
        out = capsys.readouterr().out
        assert "P1" in out
        assert "Volvo Fh" in out

        assert run(fleet_file, "drivers") == 0
        assert "Ana Lopez" in capsys.readouterr().out

        data = yaml.safe_load(fleet_file.read_text())
        assert data["vehicles"][0]["maintenanceIntervalKm"] == 5000
        assert data["routes"][0]["origin"] == "A"

    def test_trip_lifecycle(self, fleet_file, capsys):
        run(fleet_file, "add-vehicle", "P1", "Volvo", "Fh", "2020", "--mileage", "1000")
        run(fleet_file, "add-driver", "Ana", "Lopez", "L1")
        run(fleet_file, "add-route", "A", "B", "120", "2")
        assert run(fleet_file, "schedule-trip", "1", "1", "1", "2099-01-01T08:00") == 0
        assert run(fleet_file, "start-trip", "1", "--at", "2020-01-01T08:00") == 0
        assert run(fleet_file, "complete-trip", "1", "1120") == 0
        out = capsys.readouterr().out
        assert "Trip 1 completed: 120 km" in out

        data = yaml.safe_load(fleet_file.read_text())
        assert data["vehicles"][0]["currentMileage"] == 1120
        assert data["trips"][0]["status"] == "completed"

    def test_rejected_operation_prints_error(self, fleet_file, capsys):
        run(fleet_file, "add-vehicle", "P1", "Volvo", "Fh", "2020", "--mileage", "1000")
        capsys.readouterr()
        assert run(fleet_file, "update-mileage", "1", "500") == 1
        assert "Error: New mileage 500" in capsys.readouterr().out

        assert run(fleet_file, "set-status", "vehicle", "9", "inactive") == 1
        assert "Vehicle 9 not found" in capsys.readouterr().out

    def test_maintenance_and_due(self, fleet_file, capsys):
        run(fleet_file, "add-vehicle", "P1", "Volvo", "Fh", "2020", "--interval", "500")
        run(fleet_file, "update-mileage", "1", "800")
        capsys.readouterr()

        assert run(fleet_file, "due", "--due-only") == 0
        out = capsys.readouterr().out
        assert "P1" in out
        assert "DUE" in out

        assert run(fleet_file, "schedule-maintenance", "1", "oil change", "2099-01-01") == 0
        assert run(fleet_file, "complete-maintenance", "1", "--cost", "90") == 0
        out = capsys.readouterr().out
        assert "completed at 800 km" in out
        assert "is active" in out

    def test_report_and_stats(self, fleet_file, capsys):
        assert run(fleet_file, "report", "2025-03-01", "2025-03-31") == 0
        assert "No trips in this period." in capsys.readouterr().out
        assert run(fleet_file, "report", "2025-03-31", "2025-03-01") == 1
        assert run(fleet_file, "stats") == 0
        assert "Vehicles:" in capsys.readouterr().out

    def test_settings_file(self, fleet_file, tmp_path):
        settings = tmp_path / "settings.yaml"
        settings.write_text("defaultMaintenanceIntervalKm: 8000\n")
        assert run(fleet_file, "--settings", str(settings), "add-vehicle", "P1", "Volvo", "Fh", "2020") == 0
        data = yaml.safe_load(fleet_file.read_text())
        assert data["vehicles"][0]["maintenanceIntervalKm"] == 8000
