from __future__ import annotations

import logging
import ssl
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from store.models import Base, Prospect


logger = logging.getLogger("prospect_demo.store")

_SSL_MODES = {"require", "verify-ca", "verify-full"}


def _insecure_ssl_context() -> ssl.SSLContext:
    # encrypted, no certificate verification
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def build_engine(database_url: str, use_ssl: bool = False) -> Engine:
    """Create an engine for ``database_url``.

    ``postgres://`` and ``postgresql://`` URLs are pinned to the pg8000 driver.
    A ``sslmode`` query parameter is translated into an SSL context because
    pg8000 does not understand it.
    """
    url = make_url(database_url)
    connect_args = {}

    if url.drivername in ("postgres", "postgresql"):
        url = url.set(drivername="postgresql+pg8000")

    if url.drivername.startswith("postgresql"):
        sslmode = url.query.get("sslmode")
        if sslmode:
            url = url.difference_update_query(["sslmode"])
            use_ssl = use_ssl or sslmode in _SSL_MODES
        if use_ssl:
            connect_args["ssl_context"] = _insecure_ssl_context()
        connect_args["timeout"] = 10
        logger.info("[DB] Connecting to Postgres host=%s db=%s ssl=%s", url.host, url.database, use_ssl)
    elif url.drivername.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        logger.info("[DB] Using SQLite URL: %s", url)

    return create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)


class ProspectStore:
    """Data access for the ``prospects`` table. No business logic lives here."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessionmaker = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
            future=True,
        )

    @classmethod
    def from_url(cls, database_url: str, use_ssl: bool = False) -> "ProspectStore":
        return cls(build_engine(database_url, use_ssl=use_ssl))

    def init_schema(self) -> bool:
        """Create the table if missing. Failure is logged, never raised."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError:
            logger.exception("Error initializing database")
            return False
        logger.info('Database table "prospects" is ready.')
        return True

    def create(self, name: str, prompt: str) -> str:
        unique_id = str(uuid4())
        with self._sessionmaker() as session, session.begin():
            session.add(Prospect(name=name, system_prompt=prompt, unique_id=unique_id))
        logger.info("Created prospect %s (%s)", unique_id, name)
        return unique_id

    def get(self, unique_id: str) -> Optional[Prospect]:
        with self._sessionmaker() as session:
            return session.scalars(
                select(Prospect).where(Prospect.unique_id == unique_id)
            ).first()

    def list(self) -> List[Prospect]:
        with self._sessionmaker() as session:
            return list(session.scalars(select(Prospect).order_by(Prospect.id.desc())))
