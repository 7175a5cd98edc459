from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from push_contact.models.base import Base, BigIntPK, TimestampMixin


class PushContact(TimestampMixin, Base):
    __tablename__ = "push_contacts"
    __table_args__ = (
        Index("ix_push_contact_domain", "domain"),
        Index("ix_push_contact_email_hash", "email_hash", mysql_length=32),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    device_token: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    enc_email: Mapped[bytes | None] = mapped_column(LargeBinary)
    email_hash: Mapped[bytes | None] = mapped_column(LargeBinary)
    modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PushMessage(Base):
    __tablename__ = "push_messages"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    message_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    on_click_link: Mapped[str | None] = mapped_column(String(2048))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PushHistoryEvent(Base):
    """발송 결과 이력. append-only 이며 (message_id, device_token) 중복을 허용한다."""

    __tablename__ = "push_history_events"
    __table_args__ = (
        Index("ix_history_message_id", "message_id"),
        Index("ix_history_device_token", "device_token"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    message_id: Mapped[str] = mapped_column(String(64), nullable=False)
    device_token: Mapped[str] = mapped_column(String(512), nullable=False)
    sent_success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    details: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class PushMessageStats(TimestampMixin, Base):
    __tablename__ = "push_message_stats"
    __table_args__ = (Index("ix_stats_domain_message", "domain", "message_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    message_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    not_delivered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
