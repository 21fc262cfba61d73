from fastapi import Depends, Request

from rental_api.services.booking_service import BookingService
from rental_api.services.db_service import BookingRepository, MongoConnection


def get_mongo(request: Request) -> MongoConnection:
    """The connection context opened in the application lifespan."""
    return request.app.state.mongo


def get_booking_repository(mongo: MongoConnection = Depends(get_mongo)) -> BookingRepository:
    return BookingRepository(mongo)


def get_booking_service(repository: BookingRepository = Depends(get_booking_repository)) -> BookingService:
    return BookingService(repository)
