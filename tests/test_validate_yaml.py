#!/usr/bin/env python3
"""Tests for validate_yaml schema and reference checks."""

from fleet.loader import load_schema
from validate_yaml import check_references, main, validate_fleet_file

VALID = """
vehicles:
  - id: 1
    plate: P1
    make: Volvo
    model: Fh
    year: 2020
    maintenanceIntervalKm: 5000
drivers:
  - id: 1
    firstName: Ana
    lastName: Lopez
    licenseNumber: L1
routes:
  - id: 1
    origin: A
    destination: B
    distanceKm: 100
    estimatedHours: 2
trips:
  - id: 1
    vehicleId: 1
    driverId: 1
    routeId: 1
    initialMileage: 0
    startTime: '2025-03-10T08:00:00'
"""


class TestValidateFleetFile:
    """Tests for validate_fleet_file function."""

    def test_valid_file_returns_no_errors(self, tmp_path):
        path = tmp_path / "valid.yaml"
        path.write_text(VALID)
        assert validate_fleet_file(path, load_schema()) == []

    def test_missing_required_field(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("drivers:\n  - id: 1\n    firstName: Ana\n    lastName: Lopez\n")
        errors = validate_fleet_file(path, load_schema())
        assert any("licenseNumber" in e for e in errors)

    def test_bad_status_reports_path(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text(VALID.replace("routeId: 1", "routeId: 1\n    status: driving"))
        errors = validate_fleet_file(path, load_schema())
        assert errors[0].startswith("Schema validation error")
        assert "at path: trips.0.status" in errors[1]

    def test_yaml_parse_error(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("vehicles: [\n")
        errors = validate_fleet_file(path, load_schema())
        assert errors[0].startswith("YAML parse error")

    def test_missing_file(self, tmp_path):
        errors = validate_fleet_file(tmp_path / "nope.yaml", load_schema())
        assert errors[0].startswith("Error:")


class TestCheckReferences:
    def test_no_dangling_references(self, tmp_path):
        path = tmp_path / "valid.yaml"
        path.write_text(VALID)
        assert check_references(path) == []

    def test_unknown_driver(self, tmp_path):
        path = tmp_path / "dangling.yaml"
        path.write_text(VALID.replace("driverId: 1", "driverId: 9"))
        assert check_references(path) == ["Trip 1: unknown driverId 9"]


class TestMain:
    def test_ok_and_fail(self, tmp_path, capsys):
        good = tmp_path / "good.yaml"
        good.write_text(VALID)
        bad = tmp_path / "bad.yaml"
        bad.write_text(VALID.replace("vehicleId: 1", "vehicleId: 3"))

        assert main([str(good)]) == 0
        assert main([str(good), str(bad)]) == 1
        out = capsys.readouterr().out
        assert "OK: good.yaml" in out
        assert "FAIL: bad.yaml" in out
        assert "unknown vehicleId 3" in out

    def test_scans_fleets_directory(self, tmp_path, monkeypatch, capsys):
        (tmp_path / "fleets").mkdir()
        (tmp_path / "fleets" / "main.yaml").write_text(VALID)
        monkeypatch.chdir(tmp_path)
        assert main([]) == 0
        assert "OK: main.yaml" in capsys.readouterr().out

    def test_missing_fleets_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert main([]) == 1
