import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from message_api.models import Base, MessageRecord
from message_api.schemas import Message
from message_api.utils import as_utc, new_message_id, utc_now

logger = logging.getLogger(__name__)


class MessageStore(ABC):
    """
    Keyed container of messages, scoped by the organization id on each record.

    Implementations hold no business rules and must be safe to call from
    many threads at once. Returned messages are copies: mutating them has
    no effect until they are passed back through update().
    """

    @abstractmethod
    def get_by_id(self, organization_id: UUID, message_id: UUID) -> Optional[Message]:
        raise NotImplementedError

    @abstractmethod
    def get_all_by_organization(self, organization_id: UUID) -> list[Message]:
        """Messages of the organization, newest created first."""
        raise NotImplementedError

    @abstractmethod
    def get_by_title(self, organization_id: UUID, title: str) -> Optional[Message]:
        """First message of the organization whose title matches, ignoring case."""
        raise NotImplementedError

    @abstractmethod
    def create(self, message: Message) -> Message:
        """Store a message under a fresh id and creation timestamp."""
        raise NotImplementedError

    @abstractmethod
    def update(self, message: Message) -> Optional[Message]:
        """Replace the stored record with the same id. None if there is none."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, organization_id: UUID, message_id: UUID) -> bool:
        raise NotImplementedError

    def check_health(self) -> bool:
        return True


# =============================================================================
# In-Memory Store
# =============================================================================

class InMemoryMessageStore(MessageStore):
    """
    Dict-backed store. One lock guards every read and write, so each
    call observes a consistent snapshot of the map.
    """

    def __init__(self) -> None:
        self._messages: dict[UUID, Message] = {}
        self._lock = threading.Lock()

    def get_by_id(self, organization_id: UUID, message_id: UUID) -> Optional[Message]:
        with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.organization_id != organization_id:
                return None
            return message.model_copy()

    def get_all_by_organization(self, organization_id: UUID) -> list[Message]:
        with self._lock:
            # Newest inserted first so the stable sort keeps equal timestamps newest-first
            matches = [
                message.model_copy()
                for message in reversed(list(self._messages.values()))
                if message.organization_id == organization_id
            ]
        matches.sort(key=lambda m: m.created_at, reverse=True)
        logger.debug(f"Listed {len(matches)} messages for organization {organization_id}")
        return matches

    def get_by_title(self, organization_id: UUID, title: str) -> Optional[Message]:
        wanted = title.lower()
        with self._lock:
            for message in self._messages.values():
                if message.organization_id == organization_id and message.title.lower() == wanted:
                    return message.model_copy()
        return None

    def create(self, message: Message) -> Message:
        now = utc_now()
        stored = message.model_copy(
            update={"id": new_message_id(), "created_at": now, "updated_at": now}
        )
        with self._lock:
            self._messages[stored.id] = stored
        logger.debug(
            f"Stored message: id={stored.id}, organization_id={stored.organization_id}, title={stored.title}"
        )
        return stored.model_copy()

    def update(self, message: Message) -> Optional[Message]:
        with self._lock:
            if message.id not in self._messages:
                return None
            stored = message.model_copy(update={"updated_at": utc_now()})
            self._messages[stored.id] = stored
            return stored.model_copy()

    def delete(self, organization_id: UUID, message_id: UUID) -> bool:
        with self._lock:
            message = self._messages.get(message_id)
            if message is None or message.organization_id != organization_id:
                return False
            del self._messages[message_id]
            return True


# =============================================================================
# SQLAlchemy Store
# =============================================================================

def _to_message(record: MessageRecord) -> Message:
    return Message(
        id=UUID(record.id),
        organization_id=UUID(record.organization_id),
        title=record.title,
        content=record.content,
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
        is_active=record.is_active,
    )


class SqlAlchemyMessageStore(MessageStore):
    """
    Store backed by a SQLAlchemy engine.

    Calls are serialized with a lock, which also keeps SQLite's single
    connection safe when the database lives in memory.
    """

    def __init__(self, database_url: str) -> None:
        url = make_url(database_url)
        engine_kwargs = {}
        if url.get_backend_name() == "sqlite":
            # check_same_thread=False is required for SQLite under FastAPI's threadpool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # Share one connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        self._engine = create_engine(database_url, echo=False, **engine_kwargs)
        self._session_factory = sessionmaker(autoflush=False, bind=self._engine)
        self._lock = threading.Lock()

    def init_db(self) -> None:
        """Create the messages table if it does not exist yet."""
        logger.debug(f"Initializing database with URL: {self._engine.url!r}")
        try:
            Base.metadata.create_all(bind=self._engine)
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with self._lock:
            db = self._session_factory()
            try:
                yield db
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def check_health(self) -> bool:
        """
        Check if the database is reachable and schema is applied.

        Returns:
            True if DB is healthy and the messages table exists, False otherwise.
        """
        try:
            with self._session() as db:
                db.execute(text("SELECT 1"))
                has_table = inspect(db.connection()).has_table(MessageRecord.__tablename__)
            if not has_table:
                logger.error("Database schema not applied: 'messages' table not found")
                return False
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def get_by_id(self, organization_id: UUID, message_id: UUID) -> Optional[Message]:
        with self._session() as db:
            record = (
                db.query(MessageRecord)
                .filter(
                    MessageRecord.id == str(message_id),
                    MessageRecord.organization_id == str(organization_id),
                )
                .first()
            )
            return _to_message(record) if record else None

    def get_all_by_organization(self, organization_id: UUID) -> list[Message]:
        with self._session() as db:
            records = (
                db.query(MessageRecord)
                .filter(MessageRecord.organization_id == str(organization_id))
                .order_by(MessageRecord.created_at.desc(), MessageRecord.row_id.desc())
                .all()
            )
            logger.debug(f"Listed {len(records)} messages for organization {organization_id}")
            return [_to_message(record) for record in records]

    def get_by_title(self, organization_id: UUID, title: str) -> Optional[Message]:
        wanted = title.lower()
        with self._session() as db:
            records = (
                db.query(MessageRecord)
                .filter(MessageRecord.organization_id == str(organization_id))
                .order_by(MessageRecord.row_id.asc())
                .all()
            )
            for record in records:
                if record.title.lower() == wanted:
                    return _to_message(record)
        return None

    def create(self, message: Message) -> Message:
        now = utc_now()
        stored = message.model_copy(
            update={"id": new_message_id(), "created_at": now, "updated_at": now}
        )
        with self._session() as db:
            db.add(
                MessageRecord(
                    id=str(stored.id),
                    organization_id=str(stored.organization_id),
                    title=stored.title,
                    content=stored.content,
                    created_at=stored.created_at,
                    updated_at=stored.updated_at,
                    is_active=stored.is_active,
                )
            )
            db.commit()
        logger.debug(
            f"Stored message: id={stored.id}, organization_id={stored.organization_id}, title={stored.title}"
        )
        return stored

    def update(self, message: Message) -> Optional[Message]:
        with self._session() as db:
            record = db.query(MessageRecord).filter(MessageRecord.id == str(message.id)).first()
            if record is None:
                return None
            stored = message.model_copy(update={"updated_at": utc_now()})
            record.organization_id = str(stored.organization_id)
            record.title = stored.title
            record.content = stored.content
            record.created_at = stored.created_at
            record.updated_at = stored.updated_at
            record.is_active = stored.is_active
            db.commit()
            return stored

    def delete(self, organization_id: UUID, message_id: UUID) -> bool:
        with self._session() as db:
            removed = (
                db.query(MessageRecord)
                .filter(
                    MessageRecord.id == str(message_id),
                    MessageRecord.organization_id == str(organization_id),
                )
                .delete(synchronize_session=False)
            )
            db.commit()
            return removed > 0


def build_store(backend: str, database_url: str) -> MessageStore:
    """
    Construct the store selected by configuration.

    Raises:
        ValueError: if the backend name is unknown
    """
    backend = backend.strip().lower()
    if backend == "memory":
        logger.info("Using in-memory message store")
        return InMemoryMessageStore()
    if backend == "sql":
        logger.info("Using SQL message store")
        store = SqlAlchemyMessageStore(database_url)
        store.init_db()
        return store
    raise ValueError(f"Unknown STORE_BACKEND: {backend!r} (expected 'memory' or 'sql')")
