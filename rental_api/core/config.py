from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Car Rental Backend API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 5001
    ENVIRONMENT: str = "production"

    # MongoDB
    MONGODB_URI: str = "mongodb://localhost:27017/car_rental"
    MONGODB_DB: str = "car_rental"
    MONGODB_COLLECTION: str = "bookings"
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = 10000
    MONGODB_SOCKET_TIMEOUT_MS: int = 45000

    # Bookings
    BOOKING_LIST_LIMIT: int = 10
    BOOKING_ID_MAX_ATTEMPTS: int = 2

    # CORS
    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    CORS_ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: list[str] = ["Content-Type", "Authorization", "Accept"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/errors.log"

    @property
    def debug(self) -> bool:
        """Error detail is only exposed to clients in development."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
