from typing import Optional


class BookingAPIError(Exception):
    """
    Base error for the booking API.
    `message` is safe to show to clients; `detail` is internal and only
    returned when the service runs in development mode.
    """
    status_code: int = 500
    message: str = "An unexpected error occurred. Please try again."

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        if message:
            self.message = message
        self.detail = detail
        super().__init__(detail or self.message)


class ServiceUnavailableError(BookingAPIError):
    status_code = 503
    message = "Database not available. Please try again later."


class BookingValidationError(BookingAPIError):
    status_code = 400
    message = "Invalid booking data provided."


class DuplicateBookingError(BookingAPIError):
    status_code = 409
    message = "Duplicate booking detected. Please try again."


class BookingReadError(BookingAPIError):
    status_code = 500
    message = "Failed to fetch bookings"
