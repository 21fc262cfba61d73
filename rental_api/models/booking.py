from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    # Stored documents and JSON bodies use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Stored record ---

class BookingRecord(CamelModel):
    """
    One reservation as stored in the `bookings` collection.

    Known fields are declared here; anything else the client sent lives in
    `extensions`. Fields are optional on read so that older or hand-edited
    documents still load.
    """
    id: Optional[str] = None
    booking_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    car_model: Optional[str] = None
    car_id: int = 1
    pickup_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    pickup_location: Optional[str] = None
    special_requests: str = ""
    daily_rate: float = 0
    rental_days: int = 1
    total_amount: float = 0
    status: str = "confirmed"
    created_at: datetime = Field(default_factory=utcnow)
    extensions: Dict[str, Any] = Field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "BookingRecord":
        """
        Build a record from a raw Mongo document, tolerating schema drift:
        unknown top-level keys and values of the wrong type are moved into
        `extensions` instead of failing the read.
        """
        data = dict(document)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))

        known = {field.alias or to_camel(name) for name, field in cls.model_fields.items()}
        extensions = dict(data.pop("extensions", None) or {})
        for key in list(data):
            if key not in known:
                extensions[key] = data.pop(key)
        data["extensions"] = extensions

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            for error in exc.errors():
                key = error["loc"][0] if error["loc"] else None
                if key in data and key != "extensions":
                    extensions[key] = data.pop(key)
            return cls.model_validate(data)


# --- Outgoing response models ---

class BookingSummary(CamelModel):
    id: Optional[str] = None
    name: Optional[str] = None
    car_model: Optional[str] = None
    pickup_date: Optional[datetime] = None
    total_amount: float = 0

    @classmethod
    def from_record(cls, record: BookingRecord) -> "BookingSummary":
        return cls(
            id=record.id,
            name=record.name,
            car_model=record.car_model,
            pickup_date=record.pickup_date,
            total_amount=record.total_amount,
        )


class BookingListItem(CamelModel):
    id: Optional[str] = None
    booking_id: Optional[str] = None
    name: Optional[str] = None
    car_model: Optional[str] = None
    status: str = "confirmed"
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: BookingRecord) -> "BookingListItem":
        return cls(
            id=record.id,
            booking_id=record.booking_id,
            name=record.name,
            car_model=record.car_model,
            status=record.status,
            created_at=record.created_at,
        )


class BookingCreatedResponse(CamelModel):
    success: bool = True
    message: str = "🎉 Booking confirmed successfully!"
    booking_id: str
    booking: BookingSummary
    timestamp: datetime = Field(default_factory=utcnow)


class BookingListResponse(CamelModel):
    success: bool = True
    message: str = "Bookings fetched successfully"
    count: int
    bookings: List[BookingListItem]
