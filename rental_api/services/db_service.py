import re
import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from bson.errors import InvalidDocument
from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING, MongoClient, monitoring
from pymongo.errors import DuplicateKeyError, PyMongoError

from rental_api.core.config import settings
from rental_api.core.exceptions import (
    BookingValidationError,
    DuplicateBookingError,
    ServiceUnavailableError,
)
from rental_api.models.booking import BookingRecord, utcnow

logger = logging.getLogger("app")


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTING = "disconnecting"


def redact_uri(uri: str) -> str:
    """Hide the password part of a connection string for logging."""
    return re.sub(r"(//[^:/@]+):[^@]*@", r"\1:****@", uri)


class _TopologyStateListener(monitoring.TopologyListener):
    """Feeds pymongo topology changes back into the owning MongoConnection."""

    def __init__(self, connection: "MongoConnection"):
        self._connection = connection

    def opened(self, event):
        pass

    def description_changed(self, event):
        self._connection._on_topology_changed(event.new_description.has_readable_server())

    def closed(self, event):
        pass


class _HeartbeatErrorListener(monitoring.ServerHeartbeatListener):
    """Logs the first failed heartbeat per server as an error, repeats only at debug."""

    def __init__(self):
        self._failing = set()

    def started(self, event):
        pass

    def succeeded(self, event):
        self._failing.discard(event.connection_id)

    def failed(self, event):
        if event.connection_id in self._failing:
            logger.debug(f"MongoDB heartbeat still failing ({event.connection_id}): {event.reply}")
            return
        self._failing.add(event.connection_id)
        logger.error(f"❌ MongoDB connection error ({event.connection_id}): {event.reply}")


class MongoConnection:
    """
    Connection context for the document store.

    Owns the MongoClient and tracks its state. Created once per process (see
    the application lifespan) and handed to handlers explicitly, never read
    from a module global.
    """

    def __init__(
        self,
        uri: str = None,
        database: str = None,
        server_selection_timeout_ms: int = None,
        socket_timeout_ms: int = None,
    ):
        self.uri = uri or settings.MONGODB_URI
        self.database_name = database or settings.MONGODB_DB
        self.server_selection_timeout_ms = server_selection_timeout_ms or settings.MONGODB_SERVER_SELECTION_TIMEOUT_MS
        self.socket_timeout_ms = socket_timeout_ms or settings.MONGODB_SOCKET_TIMEOUT_MS
        self.client: Optional[MongoClient] = None
        self.db = None
        self._state = ConnectionState.DISCONNECTED
        self._was_connected = False
        self._lock = threading.Lock()

    @classmethod
    def from_client(cls, client, database: str = None) -> "MongoConnection":
        """Wrap an already-open client (tests, scripts). The state starts as connected."""
        connection = cls(database=database)
        connection.client = client
        connection.db = client[connection.database_name]
        connection._set_state(ConnectionState.CONNECTED)
        return connection

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def _set_state(self, state: ConnectionState):
        with self._lock:
            previous = self._state
            self._state = state
            if state is ConnectionState.CONNECTED:
                reconnected = self._was_connected and previous is not ConnectionState.CONNECTED
                self._was_connected = True
            else:
                reconnected = False

        if previous is state:
            return
        if reconnected:
            logger.info("🔄 MongoDB reconnected")
        elif previous is ConnectionState.CONNECTED and state is ConnectionState.DISCONNECTED:
            logger.warning("⚠️ MongoDB disconnected")
        else:
            logger.debug(f"MongoDB state: {previous.value} -> {state.value}")

    def _on_topology_changed(self, has_readable_server: bool):
        # Ignore monitoring noise while we are opening or closing the client
        if self._state in (ConnectionState.CONNECTING, ConnectionState.DISCONNECTING):
            return
        self._set_state(ConnectionState.CONNECTED if has_readable_server else ConnectionState.DISCONNECTED)

    def connect(self, client_factory: Callable[..., MongoClient] = MongoClient) -> ConnectionState:
        """
        Open the client and ping once. A failed ping is logged and leaves the
        connection disconnected; pymongo keeps monitoring in the background and
        the state flips to connected as soon as a server becomes reachable.
        """
        logger.info("Connecting to MongoDB...")
        logger.info(f"Connection string: {redact_uri(self.uri)}")
        self._set_state(ConnectionState.CONNECTING)

        try:
            self.client = client_factory(
                self.uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                socketTimeoutMS=self.socket_timeout_ms,
                tz_aware=True,
                event_listeners=[_TopologyStateListener(self), _HeartbeatErrorListener()],
            )
            self.db = self.client.get_default_database(default=self.database_name)
            self.database_name = self.db.name
            self.client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"❌ MongoDB connection failed: {e}")
            self._set_state(ConnectionState.DISCONNECTED)
            return self._state

        self._set_state(ConnectionState.CONNECTED)
        logger.info(f"✅ MongoDB connected successfully! Database: {self.database_name}")
        return self._state

    def close(self):
        if self.client is None:
            self._set_state(ConnectionState.DISCONNECTED)
            return
        self._set_state(ConnectionState.DISCONNECTING)
        try:
            self.client.close()
        finally:
            self.client = None
            self.db = None
            self._set_state(ConnectionState.DISCONNECTED)
            logger.info("🛑 MongoDB connection closed")


class BookingRepository:
    """Create, list and count booking records in a single collection."""

    def __init__(self, connection: MongoConnection, collection_name: str = None):
        self.connection = connection
        self.collection_name = collection_name or settings.MONGODB_COLLECTION

    @property
    def collection(self):
        if not self.connection.is_connected or self.connection.db is None:
            raise ServiceUnavailableError(detail=f"Database is {self.connection.state.value}")
        return self.connection.db[self.collection_name]

    def ensure_indexes(self) -> bool:
        """
        Unique index on bookingId plus a createdAt index for listing.
        Uniqueness stays advisory: if the index cannot be built the service
        still runs and relies on booking ID retries alone.
        """
        try:
            self.collection.create_index([("bookingId", ASCENDING)], unique=True, sparse=True)
            self.collection.create_index([("createdAt", DESCENDING)])
            return True
        except (PyMongoError, ServiceUnavailableError) as e:
            logger.warning(f"⚠️ Could not ensure booking indexes: {e}")
            return False

    def create(self, record: Union[BookingRecord, Mapping[str, Any]]) -> BookingRecord:
        collection = self.collection

        if not isinstance(record, BookingRecord):
            try:
                record = BookingRecord.model_validate(dict(record))
            except ValidationError as e:
                raise BookingValidationError(detail=str(e)) from e

        record = record.model_copy(update={"created_at": utcnow(), "id": None})
        document = record.to_document()

        try:
            result = collection.insert_one(document)
        except DuplicateKeyError as e:
            raise DuplicateBookingError(detail=f"bookingId {record.booking_id} already exists") from e
        except (OverflowError, InvalidDocument) as e:
            # e.g. an extension value that does not fit in BSON
            raise BookingValidationError(detail=f"Booking cannot be stored: {e}") from e

        logger.info(f"✅ Booking saved successfully: {result.inserted_id}")
        return record.model_copy(update={"id": str(result.inserted_id)})

    def list_recent(self, limit: int) -> List[BookingRecord]:
        cursor = (
            self.collection.find()
            .sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            .limit(limit)
        )
        return [BookingRecord.from_document(doc) for doc in cursor]

    def count(self) -> int:
        return self.collection.count_documents({})

    def find_by_booking_id(self, booking_id: str) -> Optional[BookingRecord]:
        document: Optional[Dict[str, Any]] = self.collection.find_one({"bookingId": booking_id})
        if document is None:
            return None
        return BookingRecord.from_document(document)
