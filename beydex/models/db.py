"""
SQLAlchemy ORM models for persistent storage.

Models mirror the dataclass models but add database persistence.
"""

from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CatalogEntryDB(Base):
    """
    A shared catalog entry.

    Name is unique: concurrent first-time identifications of the same
    Beyblade collide on insert instead of producing duplicate rows.
    """

    __tablename__ = "beyblade_catalog"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name_hasbro: Mapped[str | None] = mapped_column(String(255), nullable=True)
    series: Mapped[str] = mapped_column(String(100), index=True)
    generation: Mapped[str] = mapped_column(String(100))
    type: Mapped[str] = mapped_column(String(50))

    # Variant component mapping and ratings stored as JSON
    components: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    specs: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    wiki_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    items: Mapped[list["CollectionItemDB"]] = relationship(
        back_populates="beyblade", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<CatalogEntryDB(id={self.id}, name={self.name})>"


class CollectionItemDB(Base):
    """
    One Beyblade owned by one user.

    References the catalog by id; the catalog entry is shared, never copied.
    """

    __tablename__ = "user_collection"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    beyblade_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("beyblade_catalog.id", ondelete="CASCADE"), index=True
    )
    custom_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    condition: Mapped[str] = mapped_column(String(50), default="new")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    acquired_at: Mapped[date | None] = mapped_column(Date, nullable=True)
    spin_direction: Mapped[str | None] = mapped_column(String(3), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )

    beyblade: Mapped["CatalogEntryDB"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<CollectionItemDB(user={self.user_id}, beyblade_id={self.beyblade_id})>"
