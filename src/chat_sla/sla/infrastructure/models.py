"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for chats, their messages and the key/value
system settings the SLA configuration is read from.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_sla.config import MessageRole
from chat_sla.infrastructure.database import Base


class ChatModel(Base):
    """
    Database model for a support chat and its derived SLA columns.

    Maps to the 'chats' table.
    """
    __tablename__ = "chats"

    # Primary key, also the keyset pagination cursor
    id: Mapped[str] = mapped_column(String(255), primary_key=True)

    # Override keys
    provider: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    priority: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Lifecycle timestamps
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    first_agent_assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    picked_up_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    response_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Wall clock SLA (seconds / nullable flags)
    time_to_pickup: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    first_response_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avg_response_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    resolution_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pickup_sla: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    first_response_sla: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    avg_response_sla: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    resolution_sla: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    overall_sla: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True, index=True)

    # Business hours SLA
    time_to_pickup_bh: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    first_response_time_bh: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avg_response_time_bh: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    resolution_time_bh: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pickup_sla_bh: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    first_response_sla_bh: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    avg_response_sla_bh: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    resolution_sla_bh: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    overall_sla_bh: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    messages: Mapped[List["MessageModel"]] = relationship(
        back_populates="chat",
        order_by="MessageModel.created_at",
        cascade="all, delete-orphan",
    )


class MessageModel(Base):
    """
    Database model for a chat message.

    Maps to the 'messages' table.
    """
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    chat_id: Mapped[str] = mapped_column(ForeignKey("chats.id", ondelete="CASCADE"), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=MessageRole.CUSTOMER)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    chat: Mapped[ChatModel] = relationship(back_populates="messages")

    __table_args__ = (
        Index("ix_messages_chat_id_created_at", "chat_id", "created_at"),
    )


class SystemSettingModel(Base):
    """
    Key/value application setting.

    Maps to the 'system_settings' table. Values are strings: plain numbers,
    HH:mm clock times or JSON documents depending on the key.
    """
    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )
