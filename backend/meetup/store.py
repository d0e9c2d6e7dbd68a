"""Registration persistence and the additive schema migration."""

import logging
import threading
from typing import Any, Callable, Dict, List, Set, Tuple

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import Boolean, Column, Text, inspect, select, text, true
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.expression import false

from .db import create_session_factory
from .errors import StoreError, ValidationError
from .models import Base, Registration
from .schemas import RegistrationSubmission

logger = logging.getLogger(__name__)

TABLE_NAME = Registration.__tablename__

# Version 1 is the original table (id, timestamp, name, email). Every later
# version adds one nullable or defaulted column, never anything destructive.
MIGRATIONS: List[Tuple[int, Callable[[], Column]]] = [
    (2, lambda: Column("is_speaker", Boolean, nullable=False, server_default=false())),
    (3, lambda: Column("topic", Text, nullable=True)),
    (4, lambda: Column("profile_pic", Text, nullable=True)),
]
SCHEMA_VERSION = MIGRATIONS[-1][0]


class RegistrationStore:
    """
    The only component that talks to the registrations table.

    Reads select just the columns present in the live schema, so a database
    created before the speaker columns existed can still be listed.
    """

    def __init__(self, engine: Engine):
        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    @property
    def engine(self) -> Engine:
        return self._engine

    def available_columns(self) -> Set[str]:
        """Column names of the registrations table, empty if it does not exist."""
        inspector = inspect(self._engine)
        if not inspector.has_table(TABLE_NAME):
            return set()
        return {column["name"] for column in inspector.get_columns(TABLE_NAME)}

    def ensure_schema(self) -> List[str]:
        """
        Create the table or add any columns it is missing.

        Safe to call repeatedly and from several threads. Returns the names
        of the columns added by this call (empty when nothing changed or
        the table was created from scratch).
        """
        if self._schema_ready:
            return []

        with self._schema_lock:
            if self._schema_ready:
                return []

            added: List[str] = []
            try:
                existing = self.available_columns()
                if not existing:
                    Base.metadata.create_all(bind=self._engine, tables=[Registration.__table__])
                    logger.info(f"Created table {TABLE_NAME} at schema version {SCHEMA_VERSION}")
                else:
                    with self._engine.begin() as conn:
                        op = Operations(MigrationContext.configure(conn))
                        for version, make_column in MIGRATIONS:
                            column = make_column()
                            if column.name in existing:
                                continue
                            op.add_column(TABLE_NAME, column)
                            added.append(column.name)
                            logger.info(
                                f"Applied schema migration: version={version}, "
                                f"table={TABLE_NAME}, column={column.name}"
                            )
            except SQLAlchemyError as e:
                logger.error(f"Schema migration failed: {type(e).__name__}: {e}")
                raise StoreError("Could not prepare the registrations table") from e

            self._schema_ready = True
            return added

    def insert(self, registration: RegistrationSubmission) -> int:
        """Store one registration and return its new id."""
        if not registration.name or not registration.email:
            raise ValidationError("Name and email are required")
        if registration.is_speaker and not registration.topic:
            raise ValidationError("Topic is required for speakers")

        self.ensure_schema()
        try:
            with self._session_factory() as db:
                row = Registration(
                    name=registration.name,
                    email=registration.email,
                    is_speaker=registration.is_speaker,
                    topic=registration.topic if registration.is_speaker else None,
                    profile_pic=registration.profile_pic if registration.is_speaker else None,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return row.id
        except SQLAlchemyError as e:
            raise StoreError("Failed to insert registration") from e

    def list_all(self) -> List[Dict[str, Any]]:
        """All registrations, most recent first."""
        return self._select(speakers_only=False)

    def list_speakers(self) -> List[Dict[str, Any]]:
        """Registrations flagged as speakers, most recent first."""
        return self._select(speakers_only=True)

    def ping(self) -> None:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreError("Database unreachable") from e

    def _select(self, speakers_only: bool) -> List[Dict[str, Any]]:
        try:
            present = self.available_columns()
            if not present:
                raise StoreError(f"Table {TABLE_NAME} does not exist")
            if speakers_only and "is_speaker" not in present:
                return []

            table = Registration.__table__
            stmt = select(*[c for c in table.columns if c.name in present]).order_by(
                table.c.timestamp.desc(), table.c.id.desc()
            )
            if speakers_only:
                stmt = stmt.where(table.c.is_speaker == true())

            with self._engine.connect() as conn:
                return [dict(row) for row in conn.execute(stmt).mappings()]
        except SQLAlchemyError as e:
            raise StoreError("Failed to read registrations") from e
