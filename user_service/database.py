"""
User Service — Relational Store Client
=======================================

What:  Async SQLAlchemy engine wrapper that health-checks the database at
       startup and lists users per request.
How:   `UserStore` owns one async engine (and its connection pool) for the
       lifetime of the process. It is built by the application factory and
       stored on `app.state`; there is no module-level engine.
When:  `connect()` runs in the lifespan startup, `dispose()` on shutdown,
       `list_users()` on every GET /users.

Concurrency:
    The engine's pool hands out one connection per concurrent session, so
    the single UserStore is shared by all requests without extra locking.
    No statement timeout is configured.
"""

import logging
from typing import List

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from user_service.exceptions import StorageConnectError, StorageQueryError
from user_service.schemas.user import UserRecord

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


class UserStore:
    """
    Long-lived handle on the relational store.

    Lifecycle:
        1. Constructed from the configured connection string (engine only,
           no connection is opened yet)
        2. connect(): opens a connection and runs SELECT 1
        3. list_users(): one session per call
        4. dispose(): closes every pooled connection
    """

    def __init__(self, connection_string: str, echo: bool = False):
        try:
            self.engine: AsyncEngine = create_async_engine(
                connection_string,
                # Why pre-ping: the pool outlives database restarts; stale
                # connections are replaced before a query fails on them
                pool_pre_ping=True,
                echo=echo,
            )
        except (SQLAlchemyError, ValueError, ImportError) as e:
            # Unparseable URL or missing DBAPI driver
            raise StorageConnectError(
                message="Error connecting to the database",
                context={"error": str(e)},
            ) from e

        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def connect(self) -> None:
        """
        Open a connection and verify the database answers.

        Raises:
            StorageConnectError: the connection or the ping failed. The
            lifespan lets this propagate so the server never starts.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error("Cannot ping the database: %s", str(e))
            raise StorageConnectError(
                message="Cannot ping the database",
                context={"error": str(e)},
            ) from e

        logger.info("Successfully connected to the database")

    async def list_users(self) -> List[UserRecord]:
        """
        Return every row of the users table.

        Query: SELECT * FROM users, with no ORDER BY. Row order is whatever
        the store returns and callers must not depend on it.

        Raises:
            StorageQueryError: the query failed or a row could not be mapped
            into a UserRecord. Nothing is returned in that case.
        """
        # Why local: models.user imports Base from this module
        from user_service.models.user import User

        try:
            async with self._session_factory() as session:
                result = await session.execute(select(User))
                rows = result.scalars().all()

                return [
                    UserRecord(
                        id=row.id,
                        name=row.name,
                        email=row.email,
                        link=row.link,
                        created_at=row.created_at,
                    )
                    for row in rows
                ]

        except (SQLAlchemyError, OSError, ValueError) as e:
            # What: Driver, connection and row-mapping failures all become one error
            # Why ValueError: pydantic rejects rows it cannot map (e.g. NULL name)
            # Trade-off: the client only sees "Error fetching users"; details stay in the log
            logger.error("Error fetching users from database: %s", str(e))
            raise StorageQueryError(
                context={"error_type": type(e).__name__, "error": str(e)},
            ) from e

    async def dispose(self) -> None:
        """Close all pooled connections. Called from the lifespan shutdown."""
        await self.engine.dispose()
        logger.info("Database connections released")

