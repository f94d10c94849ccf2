"""
SQLAlchemy ORM models backing the calendar collaborators
"""
from datetime import datetime
from sqlalchemy import JSON, String, Text, TIMESTAMP, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from calendar_sync.infrastructure.db.session import Base


class TaskModel(Base):
    """Materialized tasks (one-off and stored series occurrences)"""
    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    series_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    plant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # due_at_local keeps the wall time + offset as written; due_at_utc is the range key
    due_at_local: Mapped[str] = mapped_column(String(64), nullable=False)
    due_at_utc: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, index=True)
    timezone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")  # pending/completed
    metadata_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)


class SeriesModel(Base):
    """Recurring task definitions (rule expansion lives outside this package)"""
    __tablename__ = "series"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rrule: Mapped[str | None] = mapped_column(Text, nullable=True)
    dtstart_local: Mapped[str] = mapped_column(String(64), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    plant_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)


class OccurrenceOverrideModel(Base):
    """Per-occurrence status of a series (completed/skipped)"""
    __tablename__ = "occurrence_overrides"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    series_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    occurrence_local_date: Mapped[str] = mapped_column(String(10), nullable=False)  # yyyy-MM-dd
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("series_id", "occurrence_local_date", name="uq_override_series_date"),
    )


class PlantModel(Base):
    __tablename__ = "plants"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
