from __future__ import annotations

import uuid
from datetime import datetime, date
from enum import Enum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from eventhub.extensions import db, bcrypt

JSONType = JSON().with_variant(JSONB, 'postgresql')


class TimestampedBase(db.Model):
    """Abstract base providing id/created/updated columns."""

    __abstract__ = True

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class UserRole(Enum):
    CLIENT = "client"
    ADMIN = "admin"


class MediaType(Enum):
    IMAGE = "image"
    VIDEO = "video"
    OTHER = "other"


class DocumentSlot(Enum):
    """The six document fields of an event, in notification order."""

    RENDERS = "renders"
    CONTRACT = "contract"
    INVOICE = "invoice"
    EQUIPMENT_LIST = "equipment_list"
    OTHER_DOCUMENTS = "other_documents"
    SIGNED_CONTRACT = "signed_contract"

    @property
    def url_field(self) -> str:
        return f"{self.value}_url"

    @property
    def key_field(self) -> str:
        return f"{self.value}_key"

    @property
    def label(self) -> str:
        return self.value.replace('_', ' ').title()


class User(TimestampedBase):
    __tablename__ = "user"

    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column('is_active', Boolean, nullable=False, default=True)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)

    profile: Mapped["Profile | None"] = relationship(
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    audit_logs: Mapped[list["AuditLog"]] = relationship(back_populates="user")

    def set_password(self, password: str) -> None:
        self.password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))
        except ValueError:
            return False

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_active(self) -> bool:  # Flask-Login compatibility
        return bool(self.active)

    @property
    def is_anonymous(self) -> bool:
        return False

    def get_id(self) -> str:
        return self.id


class Chapter(TimestampedBase):
    __tablename__ = "chapters"

    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    profiles: Mapped[list["Profile"]] = relationship(back_populates="chapter")
    events: Mapped[list["Event"]] = relationship(back_populates="chapter")


class Profile(TimestampedBase):
    """Per-identity profile; ``id`` is the owning user's id."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="CASCADE"),
        primary_key=True,
    )
    school: Mapped[str | None] = mapped_column(String(255))
    fraternity: Mapped[str | None] = mapped_column(String(255))
    first_name: Mapped[str | None] = mapped_column(String(120))
    last_name: Mapped[str | None] = mapped_column(String(120))
    avatar_url: Mapped[str | None] = mapped_column(String(1024))
    avatar_key: Mapped[str | None] = mapped_column(String(512))
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=UserRole.CLIENT.value)
    chapter_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("chapters.id", ondelete="SET NULL"),
        index=True,
    )

    user: Mapped[User] = relationship(back_populates="profile")
    chapter: Mapped[Chapter | None] = relationship(back_populates="profiles")

    @property
    def display_name(self) -> str:
        return f"{self.school or ''} {self.fraternity or ''}".strip()


class Event(TimestampedBase):
    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_user_date", "user_id", "event_date"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    chapter_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("chapters.id", ondelete="SET NULL"),
        index=True,
    )
    event_name: Mapped[str | None] = mapped_column(String(255))
    event_date: Mapped[date] = mapped_column(Date, nullable=False)
    artist_name: Mapped[str | None] = mapped_column(String(255))
    budget: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    contact_phone: Mapped[str] = mapped_column(String(32), nullable=False)

    # Document slots: public URL plus the canonical storage key
    renders_url: Mapped[str | None] = mapped_column(String(1024))
    renders_key: Mapped[str | None] = mapped_column(String(512))
    contract_url: Mapped[str | None] = mapped_column(String(1024))
    contract_key: Mapped[str | None] = mapped_column(String(512))
    invoice_url: Mapped[str | None] = mapped_column(String(1024))
    invoice_key: Mapped[str | None] = mapped_column(String(512))
    equipment_list_url: Mapped[str | None] = mapped_column(String(1024))
    equipment_list_key: Mapped[str | None] = mapped_column(String(512))
    other_documents_url: Mapped[str | None] = mapped_column(String(1024))
    other_documents_key: Mapped[str | None] = mapped_column(String(512))
    signed_contract_url: Mapped[str | None] = mapped_column(String(1024))
    signed_contract_key: Mapped[str | None] = mapped_column(String(512))

    owner: Mapped[User] = relationship()
    chapter: Mapped[Chapter | None] = relationship(back_populates="events")
    media: Mapped[list["Media"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Media.created_at.desc()",
    )

    def slot_url(self, slot: DocumentSlot) -> str | None:
        return getattr(self, slot.url_field)

    def slot_key(self, slot: DocumentSlot) -> str | None:
        return getattr(self, slot.key_field)

    def slot_snapshot(self) -> dict[str, str | None]:
        return {slot.url_field: self.slot_url(slot) for slot in DocumentSlot}

    @property
    def display_name(self) -> str:
        return self.event_name or 'Untitled Event'


class Media(TimestampedBase):
    __tablename__ = "media"
    __table_args__ = (
        Index("ix_media_event_created", "event_id", "created_at"),
    )

    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    storage_key: Mapped[str | None] = mapped_column(String(512))
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=MediaType.OTHER.value)
    original_name: Mapped[str | None] = mapped_column(String(255))
    mime_type: Mapped[str | None] = mapped_column(String(128))
    uploaded_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="SET NULL"),
        index=True,
    )

    event: Mapped[Event] = relationship(back_populates="media")
    uploader: Mapped[User | None] = relationship()


class Lead(TimestampedBase):
    __tablename__ = "leads"
    __table_args__ = (
        Index("ix_leads_created", "created_at"),
    )

    school: Mapped[str] = mapped_column(String(255), nullable=False)
    fraternity: Mapped[str] = mapped_column(String(255), nullable=False)
    # Nullable because CSV-imported rows carry an email instead of a phone
    contact_phone: Mapped[str | None] = mapped_column(String(32))
    contact_email: Mapped[str | None] = mapped_column(String(255))
    instagram_handle: Mapped[str | None] = mapped_column(String(255))
    contact_name: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="contacted")
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="SET NULL"),
        index=True,
    )

    creator: Mapped[User | None] = relationship()


class AuditLog(TimestampedBase):
    __tablename__ = "audit_log"

    user_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("user.id", ondelete="SET NULL"),
        index=True,
    )
    action: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(36))
    meta: Mapped[dict | None] = mapped_column(JSONType, default=dict)

    user: Mapped[User | None] = relationship(back_populates="audit_logs")
