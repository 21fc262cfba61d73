import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from rental_api.api.deps import get_booking_service, get_mongo
from rental_api.core.exceptions import BookingValidationError, ServiceUnavailableError
from rental_api.core.logger import logger
from rental_api.models.booking import (
    BookingCreatedResponse,
    BookingListItem,
    BookingListResponse,
    BookingSummary,
)
from rental_api.services.booking_service import BookingService
from rental_api.services.db_service import MongoConnection

router = APIRouter()


async def read_booking_payload(request: Request, mongo: MongoConnection = Depends(get_mongo)) -> Dict[str, Any]:
    """
    Read the body by hand so that missing fields become our 400 response
    rather than FastAPI's 422 validation report. A disconnected store is
    reported before the body is looked at.
    """
    if not mongo.is_connected:
        raise ServiceUnavailableError(detail="Database disconnected")

    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BookingValidationError(message="Request body must be valid JSON", detail=str(e)) from e

    if not isinstance(payload, dict):
        raise BookingValidationError(message="Request body must be a JSON object")
    return payload


@router.post("/bookings", status_code=201, response_model=BookingCreatedResponse)
def create_booking(
    payload: Dict[str, Any] = Depends(read_booking_payload),
    booking_service: BookingService = Depends(get_booking_service),
):
    logger.info("=== NEW BOOKING REQUEST ===")
    logger.debug(f"Request body: {payload}")

    booking = booking_service.create_booking(payload)

    logger.info(f"✅ Booking {booking.booking_id} confirmed")
    return BookingCreatedResponse(
        booking_id=booking.booking_id,
        booking=BookingSummary.from_record(booking),
    )


@router.get("/bookings", response_model=BookingListResponse)
def list_bookings(booking_service: BookingService = Depends(get_booking_service)):
    bookings = booking_service.list_bookings()
    return BookingListResponse(
        count=len(bookings),
        bookings=[BookingListItem.from_record(b) for b in bookings],
    )
