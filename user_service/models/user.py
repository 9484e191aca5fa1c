"""
User Service — User SQLAlchemy Model
=====================================

What:  ORM model representing the `users` table.
Who:   Read by UserStore.list_users(). This service never inserts rows; the
       downstream queue consumer owns writes to this table.

Table Layout:
    id          BIGINT identity   assigned by the store
    name        NVARCHAR(255)
    email       NVARCHAR(255)
    link        NVARCHAR(1024)    blob reference, e.g. profile-pictures/me.png
    created_at  DATETIMEOFFSET    assigned by the store on insert
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from user_service.database import Base


class User(Base):
    """A persisted user row."""

    __tablename__ = "users"

    # SQLite only autoincrements INTEGER PRIMARY KEY columns
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    link: Mapped[str] = mapped_column(String(1024), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
