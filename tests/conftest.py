import os

# Keep test runs from writing the error log file
os.environ.setdefault("LOG_FILE", "")

import mongomock
import pytest
from fastapi.testclient import TestClient

from rental_api.main import app
from rental_api.services.db_service import BookingRepository, MongoConnection


@pytest.fixture
def mongo():
    connection = MongoConnection.from_client(mongomock.MongoClient(), database="car_rental_test")
    BookingRepository(connection).ensure_indexes()
    return connection


@pytest.fixture
def repository(mongo):
    return BookingRepository(mongo)


@pytest.fixture
def client(mongo):
    # No `with` block: the lifespan would open a real MongoDB connection
    app.state.mongo = mongo
    yield TestClient(app, raise_server_exceptions=False)
    del app.state.mongo


@pytest.fixture
def booking_payload():
    return {
        "name": "A",
        "email": "a@x.com",
        "phone": "123",
        "carModel": "Sedan",
        "carId": 2,
        "pickupDate": "2024-01-01",
        "returnDate": "2024-01-03",
        "location": "Downtown",
        "dailyRate": 50,
        "rentalDays": 2,
        "totalAmount": 100,
    }
