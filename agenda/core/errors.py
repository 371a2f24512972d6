"""Typed scheduling errors.

Business-rule failures are expected outcomes, so the engine returns a
``SchedulingError`` value instead of raising. Only the HTTP layer turns it into
an ``HTTPException``.
"""

from dataclasses import dataclass

from fastapi import HTTPException, status


DEFAULT_MESSAGES = {
    "invalid_calendar": "Calendar not found.",
    "calendar_inactive": "This calendar is not accepting bookings.",
    "consent_required": "You must accept the terms to book an appointment.",
    "missing_fields": "Please fill in all required fields.",
    "invalid_date": "Invalid date.",
    "invalid_time": "Invalid time.",
    "cpf_rf_required": "CPF or RF is required.",
    "invalid_cpf_rf": "Invalid CPF or RF.",
    "login_required": "You must be logged in to book on this calendar.",
    "past_date": "Cannot book an appointment in the past.",
    "booking_window_min": "This time is too close to book.",
    "booking_window_max": "This date is too far in the future to book.",
    "date_blocked": "This date is not available for booking.",
    "slot_full": "This time slot is fully booked.",
    "daily_limit": "You have reached the daily booking limit for this calendar.",
    "booking_too_soon": "You already have an upcoming appointment on this calendar.",
    "outside_working_hours": "The selected time is outside working hours.",
    "invalid_slot": "The selected time is not one of the calendar slots.",
    "creation_failed": "Could not create the appointment. Please try again.",
    "not_found": "Appointment not found.",
    "already_cancelled": "This appointment is already cancelled.",
    "unauthorized": "You are not allowed to change this appointment.",
    "cancellation_not_allowed": "This calendar does not allow cancellations.",
    "cancellation_window_closed": "It is too late to cancel this appointment.",
    "invalid_status": "The appointment cannot be changed in its current status.",
}

STATUS_CODES = {
    "invalid_calendar": status.HTTP_404_NOT_FOUND,
    "not_found": status.HTTP_404_NOT_FOUND,
    "unauthorized": status.HTTP_403_FORBIDDEN,
    "login_required": status.HTTP_401_UNAUTHORIZED,
    "slot_full": status.HTTP_409_CONFLICT,
    "daily_limit": status.HTTP_409_CONFLICT,
    "booking_too_soon": status.HTTP_409_CONFLICT,
    "already_cancelled": status.HTTP_409_CONFLICT,
    "creation_failed": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@dataclass(frozen=True)
class SchedulingError:
    code: str
    message: str = ""

    def __post_init__(self):
        if not self.message:
            object.__setattr__(self, "message", DEFAULT_MESSAGES.get(self.code, self.code))

    @property
    def status_code(self) -> int:
        return STATUS_CODES.get(self.code, status.HTTP_400_BAD_REQUEST)

    def to_http(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={"code": self.code, "message": self.message},
        )


def is_error(value) -> bool:
    return isinstance(value, SchedulingError)
