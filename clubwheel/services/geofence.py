# clubwheel/services/geofence.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from clubwheel.config import Settings
from clubwheel.database.models import Account, Club
from clubwheel.errors import MissingLocation, TooFarFromClub
from clubwheel.utils.geo import coerce_coordinate, distance_meters
from clubwheel.utils.phone import normalize_phone

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Location:
    latitude: float | None = None
    longitude: float | None = None


@dataclass(frozen=True, slots=True)
class GeofenceVerdict:
    checked: bool
    distance_m: float | None = None
    bypassed: bool = False


class GeofenceGate:
    def __init__(self, settings: Settings) -> None:
        self.radius_m = float(settings.geofence_radius_m)
        self.bypass_phone = (
            normalize_phone(settings.geofence_bypass_phone)
            if settings.geofence_bypass_enabled and settings.geofence_bypass_phone
            else None
        )

    def is_bypassed(self, account: Account) -> bool:
        return self.bypass_phone is not None and account.phone == self.bypass_phone

    def check(self, club: Club, account: Account, location: Location | None) -> GeofenceVerdict:
        """
        Raises MissingLocation / TooFarFromClub. Clubs without coordinates
        are not geofenced. Boundary is inclusive (<= radius).
        """
        if self.is_bypassed(account):
            log.info("Geofence bypassed: account=%s club=%s", account.id, club.id)
            return GeofenceVerdict(checked=False, bypassed=True)

        if not club.has_coordinates:
            return GeofenceVerdict(checked=False)

        lat = coerce_coordinate(location.latitude if location else None, limit=90.0)
        lon = coerce_coordinate(location.longitude if location else None, limit=180.0)
        if lat is None or lon is None:
            raise MissingLocation()

        dist = distance_meters(float(club.latitude), float(club.longitude), lat, lon)
        if dist > self.radius_m:
            raise TooFarFromClub(distance_m=dist, radius_m=self.radius_m)

        return GeofenceVerdict(checked=True, distance_m=dist)
