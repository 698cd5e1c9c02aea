"""Tunable business thresholds, loadable from YAML."""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

SETTINGS_ENV_VAR = "FLEET_SETTINGS"

DUE_BASIS_APPROXIMATE = "approximate"
DUE_BASIS_SNAPSHOT = "snapshot"

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z0-9])")


@dataclass
class Settings:
    """Thresholds used by the derived calculations.

    Defaults reproduce the behaviour of the fleet's existing rules; a YAML
    file only needs to list the keys it overrides (camelCase or snake_case).
    """

    # Route difficulty
    very_hard_distance_km: float = 500
    hard_distance_km: float = 300
    hard_speed_kmh: float = 40
    moderate_distance_km: float = 150
    moderate_speed_kmh: float = 60
    long_route_km: float = 200
    fuel_liters_per_100km: float = 35

    # Maintenance
    default_maintenance_interval_km: int = 5000
    high_priority_days: int = 7
    medium_priority_days: int = 14
    suggestion_lead_days: int = 3
    due_basis: str = DUE_BASIS_APPROXIMATE

    # Drivers: minimum completed trips per experience level
    experience_levels: Dict[str, int] = field(
        default_factory=lambda: {
            "Expert": 100,
            "Advanced": 50,
            "Intermediate": 20,
            "Beginner": 5,
        }
    )

    # Reports: efficiency at or above this counts as on time
    on_time_efficiency: float = 95

    def __post_init__(self):
        if self.due_basis not in (DUE_BASIS_APPROXIMATE, DUE_BASIS_SNAPSHOT):
            raise ValueError(f"Unknown due basis '{self.due_basis}'")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """Build settings from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            name = _snake_case(key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, filename: Union[str, Path]) -> "Settings":
        with open(filename, "r") as fp:
            return cls.from_dict(yaml.safe_load(fp))

    @classmethod
    def from_env(cls) -> "Settings":
        """Load from the file named by FLEET_SETTINGS, or use defaults."""
        path = os.environ.get(SETTINGS_ENV_VAR)
        if path:
            return cls.from_yaml(path)
        return cls()


def _snake_case(key: str) -> str:
    """'fuelLitersPer100km' -> 'fuel_liters_per_100km'."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()
