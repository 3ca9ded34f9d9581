"""Unit tests for the persistence layer."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from notification_delivery.domain.models import (
    Channel,
    DeliveryLogEntry,
    DeliveryStatus,
    QueueItem,
    QueueStatus,
    SuppressionEntry,
)
from notification_delivery.persistence import (
    DatabaseConnectionError,
    DataIntegrityError,
    DeliveryLogRepository,
    PersistenceError,
    QueueRepository,
    RecordNotFoundError,
    SuppressionRepository,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from notification_delivery.persistence.database import _redact_url
from notification_delivery.persistence.schema import QueueItemModel

NOW = datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc)


def make_item(**overrides) -> QueueItem:
    defaults = dict(
        id=str(uuid.uuid4()),
        channel=Channel.EMAIL,
        recipient="a@example.com,b@example.com",
        payload={"subject": "Hello", "html": "<p>Hi</p>"},
        retry_count=0,
        max_retries=3,
        next_retry_at=NOW,
        status=QueueStatus.PENDING,
        created_at=NOW,
        updated_at=NOW,
    )
    defaults.update(overrides)
    return QueueItem(**defaults)


def make_log_entry(**overrides) -> DeliveryLogEntry:
    defaults = dict(
        id=str(uuid.uuid4()),
        channel=Channel.SMS,
        recipient="+15551234567",
        status=DeliveryStatus.SUCCESS,
        tenant_id="artist-1",
        created_at=NOW,
    )
    defaults.update(overrides)
    return DeliveryLogEntry(**defaults)


class TestDatabaseInitialization:
    def test_init_database_creates_file_and_parents(self, tmp_path):
        db_file = tmp_path / "nested" / "deliveries.db"

        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        close_database()

    def test_tables_created(self):
        init_database("sqlite:///:memory:")

        with get_session() as session:
            rows = session.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
            tables = {row[0] for row in rows}

        assert {"delivery_queue", "delivery_log", "suppression_list"} <= tables
        close_database()

    def test_init_twice_is_idempotent(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'twice.db'}"
        init_database(url)
        init_database(url)

        with get_session() as session:
            assert session.execute(text("SELECT COUNT(*) FROM delivery_queue")).scalar() == 0
        close_database()

    @pytest.mark.parametrize("url", ["", None])
    def test_invalid_url(self, url):
        with pytest.raises(DatabaseConnectionError):
            init_database(url)

    def test_session_before_init_raises(self):
        close_database()
        with pytest.raises(DatabaseConnectionError):
            with get_session():
                pass
        with pytest.raises(DatabaseConnectionError):
            get_engine()

    def test_redact_url_hides_password(self):
        assert _redact_url("postgresql://svc:s3cret@db:5432/app") == "postgresql://svc:***@db:5432/app"
        assert _redact_url("sqlite:///./data/x.db") == "sqlite:///./data/x.db"


@pytest.fixture
def database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


class TestSessionManagement:
    def test_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            with get_session() as session:
                QueueRepository(session).add(make_item(id="rolled-back"))
                raise RuntimeError("boom")

        with get_session() as session:
            assert QueueRepository(session).get("rolled-back") is None

    def test_commits_on_success(self, database):
        with get_session() as session:
            QueueRepository(session).add(make_item(id="kept"))

        with get_session() as session:
            assert QueueRepository(session).get("kept") is not None

    def test_commit_failure_raises_persistence_error(self, database):
        locked = OperationalError("COMMIT", {}, Exception("database is locked"))

        with patch.object(Session, "commit", side_effect=locked):
            with pytest.raises(PersistenceError, match="database is locked") as exc_info:
                with get_session() as session:
                    QueueRepository(session).add(make_item(id="never-committed"))

        assert isinstance(exc_info.value.__cause__, OperationalError)
        with get_session() as session:
            assert QueueRepository(session).get("never-committed") is None

    def test_statement_error_in_block_is_wrapped(self, database):
        with pytest.raises(PersistenceError):
            with get_session() as session:
                session.execute(text("SELECT * FROM no_such_table"))


class TestQueueRepository:
    def test_add_and_get_round_trips_fields(self, database):
        item = make_item(tenant_id="artist-9", payload={"subject": "Café", "html": "<b>x</b>"})

        with get_session() as session:
            QueueRepository(session).add(item)

        with get_session() as session:
            loaded = QueueRepository(session).get(item.id)

        assert loaded == item

    def test_duplicate_id_raises_integrity_error(self, database):
        item = make_item()
        with get_session() as session:
            QueueRepository(session).add(item)

        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                QueueRepository(session).add(item)

    def test_select_due_filters_and_orders(self, database):
        older = make_item(id="older", created_at=NOW - timedelta(hours=2))
        newer = make_item(id="newer", created_at=NOW - timedelta(hours=1))
        future = make_item(id="future", next_retry_at=NOW + timedelta(minutes=5))
        done = make_item(id="done", status=QueueStatus.COMPLETED)
        failed = make_item(id="failed", status=QueueStatus.FAILED, retry_count=3)

        with get_session() as session:
            repo = QueueRepository(session)
            for item in (newer, future, done, failed, older):
                repo.add(item)

        with get_session() as session:
            due = QueueRepository(session).select_due(NOW, limit=100)

        assert [item.id for item in due] == ["older", "newer"]

    def test_select_due_respects_limit(self, database):
        with get_session() as session:
            repo = QueueRepository(session)
            for n in range(5):
                repo.add(make_item(created_at=NOW - timedelta(minutes=n)))

        with get_session() as session:
            assert len(QueueRepository(session).select_due(NOW, limit=3)) == 3

    def test_claim_only_succeeds_once(self, database):
        item = make_item()
        with get_session() as session:
            QueueRepository(session).add(item)

        with get_session() as session:
            first = QueueRepository(session).claim(item.id, NOW)
        with get_session() as session:
            second = QueueRepository(session).claim(item.id, NOW)

        assert first is True
        assert second is False
        with get_session() as session:
            assert QueueRepository(session).get(item.id).status == QueueStatus.PROCESSING

    def test_reschedule_and_fail(self, database):
        item = make_item()
        later = NOW + timedelta(seconds=2)
        with get_session() as session:
            repo = QueueRepository(session)
            repo.add(item)
            repo.reschedule(item.id, 1, later, "HTTP 503", NOW)

        with get_session() as session:
            loaded = QueueRepository(session).get(item.id)
        assert loaded.status == QueueStatus.PENDING
        assert loaded.retry_count == 1
        assert loaded.next_retry_at == later
        assert loaded.last_error == "HTTP 503"

        with get_session() as session:
            QueueRepository(session).mark_failed(item.id, 3, "HTTP 500", NOW)
        with get_session() as session:
            loaded = QueueRepository(session).get(item.id)
        assert loaded.status == QueueStatus.FAILED
        assert loaded.retry_count == 3

    def test_update_missing_item_raises(self, database):
        with pytest.raises(RecordNotFoundError):
            with get_session() as session:
                QueueRepository(session).mark_completed("missing", NOW)

    def test_count_by_status_includes_zero_buckets(self, database):
        with get_session() as session:
            repo = QueueRepository(session)
            repo.add(make_item())
            repo.add(make_item())
            repo.add(make_item(status=QueueStatus.COMPLETED))

        with get_session() as session:
            counts = QueueRepository(session).count_by_status()

        assert counts == {"pending": 2, "processing": 0, "completed": 1, "failed": 0}

    def test_payload_stored_as_json_text(self, database):
        item = make_item(payload={"message": "hi", "message_type": "broadcast"})
        with get_session() as session:
            QueueRepository(session).add(item)

        with get_session() as session:
            raw = session.get(QueueItemModel, item.id).payload
        assert raw == '{"message": "hi", "message_type": "broadcast"}'


class TestDeliveryLogRepository:
    def test_add_and_list(self, database):
        with get_session() as session:
            repo = DeliveryLogRepository(session)
            repo.add(make_log_entry(recipient="+15550000001", created_at=NOW - timedelta(minutes=1)))
            repo.add(make_log_entry(recipient="+15550000001", status=DeliveryStatus.FAILED))
            repo.add(make_log_entry(recipient="+15550000002"))

        with get_session() as session:
            entries = DeliveryLogRepository(session).list_entries(recipient="+15550000001")

        assert [e.status for e in entries] == [DeliveryStatus.FAILED, DeliveryStatus.SUCCESS]

    def test_stats_counts_window_and_tenant(self, database):
        with get_session() as session:
            repo = DeliveryLogRepository(session)
            repo.add(make_log_entry())
            repo.add(make_log_entry(status=DeliveryStatus.FAILED))
            repo.add(make_log_entry(status=DeliveryStatus.BOUNCED, channel=Channel.EMAIL))
            repo.add(make_log_entry(created_at=NOW - timedelta(days=40)))
            repo.add(make_log_entry(tenant_id="someone-else"))

        since = NOW - timedelta(days=30)
        with get_session() as session:
            stats = DeliveryLogRepository(session).stats("artist-1", since)
            sms_only = DeliveryLogRepository(session).stats("artist-1", since, channel=Channel.SMS)

        assert (stats.total_sent, stats.success_count, stats.failure_count) == (3, 1, 2)
        assert (sms_only.total_sent, sms_only.success_count, sms_only.failure_count) == (2, 1, 1)

    def test_stats_empty(self, database):
        with get_session() as session:
            stats = DeliveryLogRepository(session).stats("nobody", NOW)
        assert stats.total_sent == 0
        assert stats.success_count == 0
        assert stats.failure_count == 0


class TestSuppressionRepository:
    def entry(self, recipient, **kwargs):
        return SuppressionEntry(id=str(uuid.uuid4()), recipient=recipient, created_at=NOW, **kwargs)

    def test_add_is_idempotent(self, database):
        with get_session() as session:
            repo = SuppressionRepository(session)
            assert repo.add(self.entry("fan@example.com", reason="clicked unsubscribe")) is True
            assert repo.add(self.entry("fan@example.com")) is False

        with get_session() as session:
            stored = SuppressionRepository(session).get("fan@example.com")
        assert stored.reason == "clicked unsubscribe"

    def test_filter_suppressed_handles_large_inputs(self, database):
        with get_session() as session:
            repo = SuppressionRepository(session)
            repo.add(self.entry("user5@example.com"))
            repo.add(self.entry("user1200@example.com"))

        recipients = [f"user{n}@example.com" for n in range(1500)]
        with get_session() as session:
            suppressed = SuppressionRepository(session).filter_suppressed(recipients)

        assert suppressed == {"user5@example.com", "user1200@example.com"}

    def test_remove(self, database):
        with get_session() as session:
            SuppressionRepository(session).add(self.entry("gone@example.com"))

        with get_session() as session:
            repo = SuppressionRepository(session)
            assert repo.remove("gone@example.com") is True
            assert repo.remove("gone@example.com") is False
            assert repo.exists("gone@example.com") is False
