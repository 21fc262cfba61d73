from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from rental_api.core.exceptions import (
    BookingReadError,
    BookingValidationError,
    DuplicateBookingError,
    ServiceUnavailableError,
)
from rental_api.services.booking_service import (
    BookingService,
    parse_date,
    parse_float,
    parse_int,
)


@pytest.mark.parametrize("value,expected", [
    (2, 2),
    ("3", 3),
    ("4 days", 4),
    (2.9, 2),
    ("abc", 1),
    (None, 1),
    ("", 1),
    ("123456789012345678901234567890", 1),
    (2 ** 63, 1),
    (0, 1),
    (True, 1),
])
def test_parse_int(value, expected):
    assert parse_int(value, 1) == expected


@pytest.mark.parametrize("value,expected", [
    (50, 50.0),
    ("49.99", 49.99),
    ("12.5 EUR", 12.5),
    ("free", 0.0),
    (None, 0.0),
    (float("nan"), 0.0),
])
def test_parse_float(value, expected):
    assert parse_float(value, 0.0) == expected


def test_parse_date_formats():
    assert parse_date("pickupDate", "2024-01-01") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_date("pickupDate", "2024-01-01T10:30:00Z") == datetime(2024, 1, 1, 10, 30, tzinfo=timezone.utc)
    assert parse_date("pickupDate", "2024-01-01T12:00:00+02:00") == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert parse_date("pickupDate", 1704067200000) == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_date("pickupDate", None) is None
    assert parse_date("pickupDate", "  ") is None


@pytest.mark.parametrize("value", ["31/02/2024", "tomorrow", {"day": 1}, True])
def test_parse_date_rejects_garbage(value):
    with pytest.raises(BookingValidationError):
        parse_date("returnDate", value)


def test_normalize_maps_request_fields():
    service = BookingService(MagicMock())
    data = service.normalize({
        "name": " A ",
        "email": "a@x.com",
        "phone": "123",
        "carModel": "Sedan",
        "location": " Airport ",
        "requests": "Child seat",
        "referral": "friend",
        "_id": "forged",
    })

    assert data["name"] == "A"
    assert data["pickupLocation"] == "Airport"
    assert data["specialRequests"] == "Child seat"
    assert data["extensions"] == {"referral": "friend"}
    assert data["pickupDate"] is None
    assert data["status"] == "confirmed"


def test_create_fails_fast_when_disconnected():
    repository = MagicMock()
    repository.connection.is_connected = False
    service = BookingService(repository)

    with pytest.raises(ServiceUnavailableError):
        service.create_booking({"name": "A"})
    repository.create.assert_not_called()


def test_create_retry_is_bounded():
    repository = MagicMock()
    repository.connection.is_connected = True
    repository.create.side_effect = DuplicateBookingError()
    service = BookingService(repository, max_attempts=3)

    with patch("rental_api.services.booking_service.generate_booking_id", return_value="CR1") as mock_generate:
        with pytest.raises(DuplicateBookingError):
            service.create_booking({"name": "A", "email": "a@x.com", "phone": "1", "carModel": "S"})

    assert repository.create.call_count == 3
    assert [c.args for c in mock_generate.call_args_list] == [(0,), (1,), (2,)]


def test_list_failures_become_read_errors():
    repository = MagicMock()
    repository.list_recent.side_effect = RuntimeError("socket closed")
    service = BookingService(repository, list_limit=10)

    with pytest.raises(BookingReadError):
        service.list_bookings()
    repository.list_recent.assert_called_once_with(10)
