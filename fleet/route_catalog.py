"""Route catalog: route definitions, status and lookups."""

import logging
from typing import List, Optional

from .errors import InvalidRoute, InvalidTransition
from .locks import KeyedLocks, route_key
from .normalize import title_case
from .route import Route
from .status import RouteStatus, TripStatus
from .store import FleetStore

logger = logging.getLogger(__name__)

_UPDATABLE = ("origin", "destination", "distance_km", "estimated_hours", "description")

SIMILARITY_TOLERANCE = {"distance": 50, "time": 2}


class RouteCatalog:
    """Creates, queries and updates routes."""

    def __init__(self, store: FleetStore, locks: KeyedLocks):
        self.store = store
        self.locks = locks

    def get(self, route_id: int) -> Route:
        return self.store.get("routes", route_id)

    def list(self, status=None) -> List[Route]:
        routes = self.store.all("routes")
        if status is not None:
            status = RouteStatus(status)
            routes = [r for r in routes if r.status == status]
        return routes

    def is_active(self, route_id: int) -> bool:
        return self.get(route_id).status == RouteStatus.ACTIVE

    @staticmethod
    def _validate(origin: str, destination: str, distance_km, estimated_hours) -> None:
        if origin == destination:
            raise InvalidRoute(f"Origin and destination are both '{origin}'")
        if distance_km is None or distance_km <= 0:
            raise InvalidRoute(f"Distance must be positive, got {distance_km}")
        if estimated_hours is None or estimated_hours <= 0:
            raise InvalidRoute(f"Estimated duration must be positive, got {estimated_hours}")

    def _trips_on(self, route_id: int, statuses=None):
        return [
            t
            for t in self.store.all("trips")
            if t.route_id == route_id and (statuses is None or t.status in statuses)
        ]

    def create(
        self,
        origin: str,
        destination: str,
        distance_km: float,
        estimated_hours: float,
        description: Optional[str] = None,
    ) -> Route:
        origin, destination = title_case(origin), title_case(destination)
        self._validate(origin, destination, distance_km, estimated_hours)
        route = Route(None, origin, destination, distance_km, estimated_hours, description)
        with self.store.transaction():
            self.store.insert("routes", route)
        logger.info("Created route %s (%s)", route.id, route.name)
        return route

    def update(self, route_id: int, **fields) -> Route:
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise TypeError(f"Cannot update route field(s): {', '.join(sorted(unknown))}")

        with self.locks.hold(route_key(route_id)), self.store.transaction():
            route = self.get(route_id)
            for name in ("origin", "destination"):
                if name in fields:
                    fields[name] = title_case(fields[name])
            merged = {name: getattr(route, name) for name in _UPDATABLE}
            merged.update(fields)
            self._validate(
                merged["origin"],
                merged["destination"],
                merged["distance_km"],
                merged["estimated_hours"],
            )
            self.store.modify(route)
            for name, value in fields.items():
                setattr(route, name, value)
        logger.info("Updated route %s", route_id)
        return route

    def delete(self, route_id: int) -> None:
        with self.locks.hold(route_key(route_id)), self.store.transaction():
            self.get(route_id)
            if self._trips_on(route_id):
                raise InvalidTransition(
                    f"Route {route_id} is referenced by trips and cannot be deleted"
                )
            self.store.remove("routes", route_id)
        logger.info("Deleted route %s", route_id)

    def set_status(self, route_id: int, status) -> Route:
        status = RouteStatus(status)
        with self.locks.hold(route_key(route_id)), self.store.transaction():
            route = self.get(route_id)
            if status == RouteStatus.INACTIVE and self._trips_on(
                route_id, (TripStatus.SCHEDULED, TripStatus.IN_PROGRESS)
            ):
                raise InvalidTransition(
                    f"Route {route_id} has scheduled or running trips and cannot be "
                    f"deactivated"
                )
            if route.status != status:
                self.store.modify(route)
                route.status = status
                logger.info("Route %s status -> %s", route_id, status.value)
        return route

    def reverse_route(self, route_id: int) -> Route:
        """Create the return route with swapped endpoints."""
        route = self.get(route_id)
        description = f"Return of {route.name}"
        return self.create(
            route.destination,
            route.origin,
            route.distance_km,
            route.estimated_hours,
            description,
        )

    def similar_routes(
        self, route_id: int, criterion: str = "distance", tolerance: Optional[float] = None
    ) -> List[Route]:
        """
        Other active routes resembling this one.

        criterion is one of:
        - origin: same origin
        - destination: same destination
        - distance: distance within tolerance km (default 50)
        - time: estimated duration within tolerance hours (default 2)
        """
        route = self.get(route_id)
        if criterion in SIMILARITY_TOLERANCE and tolerance is None:
            tolerance = SIMILARITY_TOLERANCE[criterion]

        if criterion == "origin":
            match = lambda r: r.origin == route.origin
        elif criterion == "destination":
            match = lambda r: r.destination == route.destination
        elif criterion == "distance":
            match = lambda r: abs(r.distance_km - route.distance_km) <= tolerance
        elif criterion == "time":
            match = lambda r: abs(r.estimated_hours - route.estimated_hours) <= tolerance
        else:
            raise ValueError(f"Unknown similarity criterion '{criterion}'")

        return [
            r
            for r in self.list(RouteStatus.ACTIVE)
            if r.id != route_id and match(r)
        ]
