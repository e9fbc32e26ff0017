"""
Recoverable booking failures.

Each error knows how it is reported to the client (``error_type`` and
``status_code``) so the API layer can turn any of them into a typed result.
"""


class BookingError(Exception):
    error_type = "booking_error"
    status_code = 400
    default_detail = "The booking could not be completed."

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def as_dict(self):
        return {"detail": self.detail, "error_type": self.error_type}


class SlotUnavailable(BookingError):
    error_type = "slot_already_booked"
    status_code = 409
    default_detail = "This slot is already booked for this date."


class DuplicateBooking(BookingError):
    error_type = "duplicate_booking"
    status_code = 409
    default_detail = "You already have a booking for this amenity on this date."


class ConsecutiveDayLimitExceeded(BookingError):
    error_type = "consecutive_days_limit"
    status_code = 400

    def __init__(self, streak, limit):
        self.streak = streak
        self.limit = limit
        super().__init__(
            f"You can only book guest parking for a maximum of {limit} consecutive days. "
            f"This booking would make it {streak} consecutive days."
        )

    def as_dict(self):
        data = super().as_dict()
        data.update(streak=self.streak, limit=self.limit)
        return data


class InvalidTransition(BookingError):
    error_type = "invalid_transition"
    status_code = 400

    def __init__(self, current, target, detail=None):
        self.current = current
        self.target = target
        super().__init__(detail or f"A {current} booking cannot become {target}.")


class UnknownAmenityType(BookingError):
    error_type = "no_slots"
    status_code = 400

    def __init__(self, amenity_type):
        self.amenity_type = amenity_type
        super().__init__("No slots available for this amenity, please contact the admin.")
