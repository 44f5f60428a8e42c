# clubwheel/errors.py
from __future__ import annotations

from typing import Any


class WheelError(Exception):
    """
    Base for every error a service surfaces to its caller.

    `code` is a stable machine-readable identifier; `message` is safe to show.
    """

    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"message": self.message, "code": self.code}


# --- validation ---

class ValidationError(WheelError):
    code = "validation_error"
    default_message = "Invalid request"


# --- state conflicts ---

class StateConflict(WheelError):
    code = "state_conflict"


class RouletteBusy(StateConflict):
    code = "roulette_busy"

    def __init__(self, retry_after_seconds: int) -> None:
        self.retry_after_seconds = int(retry_after_seconds)
        super().__init__(f"Roulette is busy, try again in {self.retry_after_seconds}s")

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["retryAfterSeconds"] = self.retry_after_seconds
        return payload


class PrizeExhausted(StateConflict):
    code = "prize_exhausted"
    default_message = "Prize is out of stock"


class InsufficientBalance(StateConflict):
    code = "insufficient_balance"
    default_message = "Not enough points to spin"


# --- not found ---

class NotFound(WheelError):
    code = "not_found"
    default_message = "Not found"


class ClubNotFound(NotFound):
    code = "club_not_found"
    default_message = "Club not found"


class PrizeNotFound(NotFound):
    code = "prize_not_found"
    default_message = "Prize not found"


class ClaimNotFound(NotFound):
    code = "claim_not_found"
    default_message = "Prize claim not found"


# --- authorization ---

class AuthorizationError(WheelError):
    code = "forbidden"
    default_message = "Access denied"


class AccountBanned(AuthorizationError):
    code = "account_banned"

    def __init__(self, until=None, reason: str | None = None) -> None:
        self.until = until
        self.reason = reason
        if until is not None:
            msg = f"Account is banned until {until:%Y-%m-%d %H:%M} UTC"
        else:
            msg = "Account is banned indefinitely"
        super().__init__(msg)


class RoleForbidden(AuthorizationError):
    code = "role_forbidden"


# --- club / catalog state ---

class ClubInactive(WheelError):
    code = "club_inactive"
    default_message = "Club is not active"


class NoPrizesAvailable(WheelError):
    code = "no_prizes_available"
    default_message = "No active prizes in the catalog"


# --- geofence ---

class GeofenceFailed(WheelError):
    code = "geofence_failed"
    reason = "geofence"

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["reason"] = self.reason
        return payload


class MissingLocation(GeofenceFailed):
    code = "missing_location"
    reason = "missing_location"
    default_message = "Share your location to spin at this club"


class TooFarFromClub(GeofenceFailed):
    code = "too_far_from_club"
    reason = "too_far"

    def __init__(self, distance_m: float, radius_m: float) -> None:
        self.distance_m = distance_m
        self.radius_m = radius_m
        super().__init__(f"You are {distance_m:.0f} m away, spin is allowed within {radius_m:.0f} m")
