"""Database schema definition and ORM models.

Timestamps are stored as fixed-width ISO-8601 strings (see
utils.timestamps.STORAGE_FORMAT) so the sweeper can compare them with plain
string comparison in SQL.
"""

import json
import logging

from sqlalchemy import Column, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from notification_delivery.domain.models import (
    DeliveryLogEntry,
    QueueItem,
    SuppressionEntry,
)
from notification_delivery.utils.timestamps import format_for_storage, parse_from_storage

logger = logging.getLogger(__name__)

Base = declarative_base()


class QueueItemModel(Base):
    """ORM model for the delivery_queue table."""

    __tablename__ = "delivery_queue"

    id = Column(String(36), primary_key=True, nullable=False)
    channel = Column(String(10), nullable=False)
    recipient = Column(Text, nullable=False)
    payload = Column(Text, nullable=False, default="{}")

    retry_count = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=False, default=3)
    next_retry_at = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    last_error = Column(Text, nullable=True)

    tenant_id = Column(String(64), nullable=True)
    created_at = Column(String(30), nullable=False)
    updated_at = Column(String(30), nullable=False)

    __table_args__ = (
        Index("idx_queue_status_due", "status", "next_retry_at"),
        Index("idx_queue_created", "created_at"),
        Index("idx_queue_tenant", "tenant_id"),
    )

    def to_domain(self) -> QueueItem:
        return QueueItem(
            id=self.id,
            channel=self.channel,
            recipient=self.recipient,
            payload=json.loads(self.payload) if self.payload else {},
            retry_count=self.retry_count,
            max_retries=self.max_retries,
            next_retry_at=parse_from_storage(self.next_retry_at),
            status=self.status,
            last_error=self.last_error,
            tenant_id=self.tenant_id,
            created_at=parse_from_storage(self.created_at),
            updated_at=parse_from_storage(self.updated_at),
        )

    @classmethod
    def from_domain(cls, item: QueueItem) -> "QueueItemModel":
        return cls(
            id=item.id,
            channel=item.channel.value,
            recipient=item.recipient,
            payload=item.payload_json(),
            retry_count=item.retry_count,
            max_retries=item.max_retries,
            next_retry_at=format_for_storage(item.next_retry_at),
            status=item.status.value,
            last_error=item.last_error,
            tenant_id=item.tenant_id,
            created_at=format_for_storage(item.created_at),
            updated_at=format_for_storage(item.updated_at),
        )


class DeliveryLogModel(Base):
    """ORM model for the append-only delivery_log table."""

    __tablename__ = "delivery_log"

    id = Column(String(36), primary_key=True, nullable=False)
    channel = Column(String(10), nullable=False)
    recipient = Column(Text, nullable=False)
    status = Column(String(20), nullable=False)
    message_type = Column(String(64), nullable=True)
    subject = Column(Text, nullable=True)
    error_code = Column(String(64), nullable=True)
    error_message = Column(Text, nullable=True)
    external_message_id = Column(String(255), nullable=True)
    tenant_id = Column(String(64), nullable=True)
    created_at = Column(String(30), nullable=False)

    __table_args__ = (
        Index("idx_log_tenant_created", "tenant_id", "created_at"),
        Index("idx_log_status", "status"),
    )

    def to_domain(self) -> DeliveryLogEntry:
        return DeliveryLogEntry(
            id=self.id,
            channel=self.channel,
            recipient=self.recipient,
            status=self.status,
            message_type=self.message_type,
            subject=self.subject,
            error_code=self.error_code,
            error_message=self.error_message,
            external_message_id=self.external_message_id,
            tenant_id=self.tenant_id,
            created_at=parse_from_storage(self.created_at),
        )

    @classmethod
    def from_domain(cls, entry: DeliveryLogEntry) -> "DeliveryLogModel":
        return cls(
            id=entry.id,
            channel=entry.channel.value,
            recipient=entry.recipient,
            status=entry.status.value,
            message_type=entry.message_type,
            subject=entry.subject,
            error_code=entry.error_code,
            error_message=entry.error_message,
            external_message_id=entry.external_message_id,
            tenant_id=entry.tenant_id,
            created_at=format_for_storage(entry.created_at),
        )


class SuppressionModel(Base):
    """ORM model for the suppression_list table."""

    __tablename__ = "suppression_list"

    id = Column(String(36), primary_key=True, nullable=False)
    recipient = Column(String(320), nullable=False, unique=True)
    tenant_id = Column(String(64), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(String(30), nullable=False)

    def to_domain(self) -> SuppressionEntry:
        return SuppressionEntry(
            id=self.id,
            recipient=self.recipient,
            tenant_id=self.tenant_id,
            reason=self.reason,
            created_at=parse_from_storage(self.created_at),
        )

    @classmethod
    def from_domain(cls, entry: SuppressionEntry) -> "SuppressionModel":
        return cls(
            id=entry.id,
            recipient=entry.recipient,
            tenant_id=entry.tenant_id,
            reason=entry.reason,
            created_at=format_for_storage(entry.created_at),
        )


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes that do not exist yet (idempotent)."""
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
