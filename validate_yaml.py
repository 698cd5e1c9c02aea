#!/usr/bin/env python3
"""Validate fleet YAML files against the schema."""
import sys
from pathlib import Path

import yaml
from jsonschema import validate, ValidationError

from fleet.loader import load_schema


def validate_fleet_file(filepath: Path, schema: dict) -> list[str]:
    """Validate a single fleet YAML file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
        validate(instance=data or {}, schema=schema)
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def check_references(filepath: Path) -> list[str]:
    """Report trips and maintenance events pointing at missing records."""
    with open(filepath) as f:
        data = yaml.safe_load(f) or {}

    ids = {
        table: {item["id"] for item in data.get(table) or []}
        for table in ("vehicles", "drivers", "routes")
    }
    errors = []
    for trip in data.get("trips") or []:
        for key, table in (
            ("vehicleId", "vehicles"),
            ("driverId", "drivers"),
            ("routeId", "routes"),
        ):
            if trip[key] not in ids[table]:
                errors.append(f"Trip {trip['id']}: unknown {key} {trip[key]}")
    for event in data.get("maintenance") or []:
        if event["vehicleId"] not in ids["vehicles"]:
            errors.append(
                f"Maintenance {event['id']}: unknown vehicleId {event['vehicleId']}"
            )
    return errors


def main(argv=None):
    """Validate the given fleet files, or every YAML file in fleets/."""
    schema = load_schema()
    args = sys.argv[1:] if argv is None else argv

    if args:
        yaml_files = [Path(a) for a in args]
    else:
        fleets_dir = Path.cwd() / "fleets"
        if not fleets_dir.exists():
            print(f"Error: fleets directory not found: {fleets_dir}")
            return 1
        yaml_files = list(fleets_dir.glob("*.yaml")) + list(fleets_dir.glob("*.yml"))
        if not yaml_files:
            print(f"Warning: No YAML files found in {fleets_dir}")
            return 0

    all_valid = True
    for filepath in sorted(yaml_files):
        errors = validate_fleet_file(filepath, schema)
        if not errors:
            errors = check_references(filepath)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
