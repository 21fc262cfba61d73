import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from rental_api.core.config import settings
from rental_api.core.exceptions import (
    BookingReadError,
    BookingValidationError,
    DuplicateBookingError,
    ServiceUnavailableError,
)
from rental_api.core.logger import logger
from rental_api.models.booking import BookingRecord
from rental_api.services.booking_id import generate_booking_id
from rental_api.services.db_service import BookingRepository

REQUIRED_FIELDS = ("name", "email", "phone", "carModel")

# Request keys the service understands; anything else is kept in `extensions`
KNOWN_FIELDS = {
    "name", "email", "phone", "carModel", "carId",
    "pickupDate", "returnDate", "location", "pickupLocation",
    "requests", "specialRequests", "dailyRate", "rentalDays", "totalAmount",
}

# Assigned by the server, never taken from the client
SERVER_FIELDS = {"_id", "id", "bookingId", "status", "createdAt", "extensions"}

# BSON stores integers as at most 8 bytes
INT64_MIN, INT64_MAX = -(2 ** 63), 2 ** 63 - 1

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_int(value: Any, default: int) -> int:
    """Leading-integer parse ("3 days" -> 3). Missing, unparseable or zero values give `default`."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return default
        result = int(value)
    elif isinstance(value, str):
        match = _LEADING_INT.match(value)
        if not match:
            return default
        result = int(match.group(1))
    else:
        return default
    if not INT64_MIN <= result <= INT64_MAX:
        return default
    return result or default


def parse_float(value: Any, default: float) -> float:
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        match = _LEADING_FLOAT.match(value)
        if not match:
            return default
        result = float(match.group(1))
    else:
        return default
    if not math.isfinite(result):
        return default
    return result or default


def parse_date(field: str, value: Any) -> Optional[datetime]:
    """
    ISO-8601 date/datetime string or epoch milliseconds -> aware UTC datetime.
    Empty values mean "not given"; anything unparseable is rejected.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    try:
        if isinstance(value, bool):
            raise ValueError("boolean is not a date")
        if isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str):
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        else:
            raise ValueError(f"unsupported type {type(value).__name__}")
    except (ValueError, OverflowError, OSError) as e:
        raise BookingValidationError(
            message=f"Invalid date for {field}: {value!r}",
            detail=str(e),
        ) from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    return value.strip()


class BookingService:
    def __init__(self, repository: BookingRepository, max_attempts: int = None, list_limit: int = None):
        self.repository = repository
        self.max_attempts = max(1, max_attempts or settings.BOOKING_ID_MAX_ATTEMPTS)
        self.list_limit = list_limit or settings.BOOKING_LIST_LIMIT

    def validate_required(self, payload: Mapping[str, Any]):
        # Numbers are accepted as text ("phone": 5551234); objects and arrays are not
        not_text = [
            field for field in REQUIRED_FIELDS
            if isinstance(payload.get(field), (dict, list, bool))
        ]
        if not_text:
            logger.info(f"Validation failed: Non-text required fields {not_text}")
            raise BookingValidationError(
                message=f"Fields must be text: {', '.join(not_text)}",
                detail=f"Wrong type: {', '.join(not_text)}",
            )

        missing = [field for field in REQUIRED_FIELDS if not _clean_text(payload.get(field))]
        if missing:
            logger.info(f"Validation failed: Missing required fields {missing}")
            raise BookingValidationError(
                message="Please provide all required fields: name, email, phone, car model",
                detail=f"Missing or empty: {', '.join(missing)}",
            )

    def normalize(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Turn a raw request body into stored-record fields (camelCase keys).
        Assumes `validate_required` already passed.
        """
        location = payload.get("location", payload.get("pickupLocation"))
        requests = payload.get("requests", payload.get("specialRequests"))

        extensions = {
            key: value for key, value in payload.items()
            if key not in KNOWN_FIELDS and key not in SERVER_FIELDS
        }

        return {
            "name": _clean_text(payload["name"]),
            "email": _clean_text(payload["email"]),
            "phone": _clean_text(payload["phone"]),
            "carModel": _clean_text(payload["carModel"]),
            "carId": parse_int(payload.get("carId"), 1),
            "pickupDate": parse_date("pickupDate", payload.get("pickupDate")),
            "returnDate": parse_date("returnDate", payload.get("returnDate")),
            "pickupLocation": _clean_text(location),
            "specialRequests": _clean_text(requests) or "",
            "dailyRate": parse_float(payload.get("dailyRate"), 0.0),
            "rentalDays": parse_int(payload.get("rentalDays"), 1),
            "totalAmount": parse_float(payload.get("totalAmount"), 0.0),
            "status": "confirmed",
            "extensions": extensions,
        }

    def create_booking(self, payload: Mapping[str, Any]) -> BookingRecord:
        """
        Validate, normalize and store a booking.

        The booking ID is regenerated on a duplicate-key collision, up to
        `max_attempts` inserts in total, with a wider random range each time.
        """
        # Fail fast before looking at the payload or touching the store
        if not self.repository.connection.is_connected:
            logger.error("Database not connected!")
            raise ServiceUnavailableError(detail="Database disconnected")

        self.validate_required(payload)
        booking_data = self.normalize(payload)

        for attempt in range(self.max_attempts):
            booking_data["bookingId"] = generate_booking_id(attempt)
            logger.info(f"Generated Booking ID: {booking_data['bookingId']}")
            try:
                return self.repository.create(booking_data)
            except DuplicateBookingError:
                if attempt + 1 >= self.max_attempts:
                    logger.error(f"❌ Booking ID collision persisted after {self.max_attempts} attempts")
                    raise
                logger.warning(f"⚠️ Booking ID {booking_data['bookingId']} already taken, retrying")

    def list_bookings(self) -> List[BookingRecord]:
        try:
            return self.repository.list_recent(self.list_limit)
        except Exception as e:
            logger.error(f"❌ Failed to fetch bookings: {e}")
            raise BookingReadError(detail=str(e)) from e
