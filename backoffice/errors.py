"""Error taxonomy for schedule generation, reconciliation and pricing.

Cache-layer errors are always absorbed by the engine; authoritative-layer
errors always propagate to the caller.
"""


class BackofficeError(Exception):
    """Base exception for engine errors"""
    pass


class MissingAnchorDates(BackofficeError):
    """Neither the roster nor the booking carries usable dates yet."""
    pass


class TemplateNotFound(BackofficeError):
    def __init__(self, tour_type_code: str, kind: str):
        super().__init__(f"No {kind} template for tour type {tour_type_code}")
        self.tour_type_code = tour_type_code
        self.kind = kind


class CacheUnavailable(BackofficeError):
    pass


class AuthoritativeStoreError(BackofficeError):
    """The authoritative store could not be read."""
    pass


class AuthoritativeWriteFailed(AuthoritativeStoreError):
    pass


class BookingNotFound(BackofficeError):
    def __init__(self, booking_id: int):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class RowNotFound(BackofficeError):
    def __init__(self, booking_id: int, row_id: int):
        super().__init__(f"Schedule row {row_id} not found for booking {booking_id}")
        self.booking_id = booking_id
        self.row_id = row_id


class NoPricingDataAvailable(BackofficeError):
    def __init__(self, tour_type_code: str, tier_id: str):
        super().__init__(f"No pricing data for {tour_type_code} tier {tier_id}")
        self.tour_type_code = tour_type_code
        self.tier_id = tier_id
