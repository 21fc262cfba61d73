from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from rental_api.api.deps import get_booking_repository, get_mongo
from rental_api.core.config import settings
from rental_api.core.logger import logger
from rental_api.services.db_service import BookingRepository, ConnectionState, MongoConnection

router = APIRouter()


@router.get("/")
def health_check(mongo: MongoConnection = Depends(get_mongo)):
    return {
        "success": True,
        "message": f"🚗 {settings.PROJECT_NAME}",
        "status": "running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": "connected" if mongo.is_connected else "disconnected",
        "version": settings.VERSION,
    }


@router.get("/api/db-status")
def db_status(
    mongo: MongoConnection = Depends(get_mongo),
    repository: BookingRepository = Depends(get_booking_repository),
):
    """Always 200; `success` tells whether the store is usable."""
    state = mongo.state
    if state is not ConnectionState.CONNECTED:
        return {
            "success": False,
            "message": f"Database is {state.value}",
            "state": state.value,
        }

    # The count is only a probe, a failure here is reported as -1
    try:
        count = repository.count()
    except Exception as e:
        logger.warning(f"⚠️ Booking count probe failed: {e}")
        count = -1

    return {
        "success": True,
        "message": "Database is connected and responsive",
        "state": state.value,
        "bookingCount": count,
        "database": mongo.database_name,
    }
