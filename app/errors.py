class SeatLockError(Exception):
    """Base class for errors surfaced to API callers"""

    def __init__(self, message: str, status_code: int, error_code: str) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class SeatUnavailable(SeatLockError):
    """The seat is not AVAILABLE, or another request won the race for it"""

    def __init__(self, message: str = "Seat was just taken. Please pick another seat.") -> None:
        super().__init__(message, 409, "seat_unavailable")


class HoldExpired(SeatLockError):
    """The hold is missing, no longer ACTIVE, or past its expiry"""

    def __init__(self, message: str = "Your hold has expired. Please select your seat again.") -> None:
        super().__init__(message, 410, "hold_expired")


class ConsistencyFault(SeatLockError):
    """Settlement found the seat no longer linked to the hold being confirmed"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 500, "consistency_fault")


class IdempotencyConflict(SeatLockError):
    """The idempotency key was already used to settle a different hold"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 409, "idempotency_conflict")


class HolderHasActiveHold(SeatLockError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409, "holder_has_active_hold")


class CatalogConflict(SeatLockError):
    """A catalog load tried to change a seat that is already loaded"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 409, "catalog_conflict")


class NotFound(SeatLockError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404, "not_found")


class StoreUnavailable(SeatLockError):
    """Transient backend failure; the request is safe to retry"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 503, "store_unavailable")
