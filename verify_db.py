import sys

from rental_api.core.logger import setup_logging
from rental_api.services.db_service import BookingRepository, MongoConnection, redact_uri

setup_logging(log_file="")

def verify_db() -> bool:
    print("Testing MongoDB connection...")
    mongo = MongoConnection()
    print(f"URI: {redact_uri(mongo.uri)}")

    mongo.connect()
    if not mongo.is_connected:
        print(f"❌ Failed: database is {mongo.state.value}")
        return False

    try:
        repository = BookingRepository(mongo)
        indexed = repository.ensure_indexes()
        print(f"✅ Connected to '{mongo.database_name}', indexes {'ok' if indexed else 'missing'}")
        print(f"📊 Bookings stored: {repository.count()}")
        return True
    finally:
        mongo.close()

if __name__ == "__main__":
    sys.exit(0 if verify_db() else 1)
