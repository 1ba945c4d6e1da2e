"""
SQLite Database Adapter.

Implements the subscriber and campaign repository ports using SQLite.
Designed to be Postgres-compatible where practical (standard SQL, JSON
preferences queried through json_each).

Datetimes are stored as UTC ISO-8601 strings with a fixed precision so
that string comparison orders them correctly.
"""

from __future__ import annotations

import builtins
import json
import sqlite3
from collections.abc import Collection, Iterable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from newsdesk.components.campaigns.models import Campaign, CampaignStats, CampaignStatus
from newsdesk.components.subscribers.models import (
    CampaignHistoryEntry,
    DuplicateSubscriberError,
    RecipientCriteria,
    Subscriber,
    SubscriberDeliveryUpdate,
    SubscriberStatus,
)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_dt(dt: datetime | None) -> str | None:
    """Serialize a datetime as fixed-precision UTC ISO string."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    return datetime.fromisoformat(s) if s else None


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Subscriber Repository
# -----------------------------------------------------------------------------


class SQLiteSubscriberRepo(SQLiteRepoBase):
    """SQLite implementation of SubscriberRepoPort."""

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        return self._get_one("SELECT * FROM subscribers WHERE id = ?", (str(subscriber_id),))

    def get_by_email(self, email: str) -> Subscriber | None:
        return self._get_one("SELECT * FROM subscribers WHERE email = ?", (email.lower(),))

    def get_by_verification_token(self, token_hash: str) -> Subscriber | None:
        return self._get_one(
            "SELECT * FROM subscribers WHERE verification_token = ?", (token_hash,)
        )

    def save(self, subscriber: Subscriber) -> Subscriber:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO subscribers (
                    id, email, first_name, last_name, status, is_verified,
                    preferences, source, verification_token,
                    verification_token_expiry, unsubscribe_token,
                    subscribed_at, last_email_sent, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    email=excluded.email,
                    first_name=excluded.first_name,
                    last_name=excluded.last_name,
                    status=excluded.status,
                    is_verified=excluded.is_verified,
                    preferences=excluded.preferences,
                    source=excluded.source,
                    verification_token=excluded.verification_token,
                    verification_token_expiry=excluded.verification_token_expiry,
                    unsubscribe_token=excluded.unsubscribe_token,
                    last_email_sent=excluded.last_email_sent,
                    updated_at=excluded.updated_at
                """,
                (
                    str(subscriber.id),
                    subscriber.email.lower(),
                    subscriber.first_name,
                    subscriber.last_name,
                    subscriber.status.value,
                    subscriber.is_verified,
                    json.dumps(subscriber.preferences),
                    subscriber.source,
                    subscriber.verification_token,
                    format_dt(subscriber.verification_token_expiry),
                    subscriber.unsubscribe_token,
                    format_dt(subscriber.subscribed_at),
                    format_dt(subscriber.last_email_sent),
                    format_dt(subscriber.created_at),
                    format_dt(subscriber.updated_at),
                ),
            )
            if self._should_close():
                conn.commit()
            return subscriber
        except sqlite3.IntegrityError as e:
            if "subscribers.email" in str(e):
                raise DuplicateSubscriberError(subscriber.email) from e
            raise
        finally:
            if self._should_close():
                conn.close()

    def delete(self, subscriber_id: UUID) -> bool:
        conn = self._get_conn()
        try:
            cursor = conn.execute("DELETE FROM subscribers WHERE id = ?", (str(subscriber_id),))
            if self._should_close():
                conn.commit()
            return cursor.rowcount > 0
        finally:
            if self._should_close():
                conn.close()

    def list(
        self,
        status: SubscriberStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> builtins.list[Subscriber]:
        conn = self._get_conn()
        try:
            if status is None:
                rows = conn.execute(
                    "SELECT * FROM subscribers ORDER BY subscribed_at DESC LIMIT ? OFFSET ?",
                    (limit, offset),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM subscribers WHERE status = ?
                    ORDER BY subscribed_at DESC LIMIT ? OFFSET ?
                    """,
                    (status.value, limit, offset),
                ).fetchall()
            history = self._load_history(conn, [r["id"] for r in rows])
            return [self._map_row(r, history.get(r["id"], [])) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def count(self, status: SubscriberStatus | None = None) -> int:
        conn = self._get_conn()
        try:
            if status is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM subscribers").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM subscribers WHERE status = ?", (status.value,)
                ).fetchone()
            return int(row["n"])
        finally:
            if self._should_close():
                conn.close()

    def find_emails(self, criteria: RecipientCriteria) -> builtins.list[str]:
        """
        Emails matching the recipient criteria.

        With `any_of_groups` set, a subscriber needs at least one of those
        preference keys set to true.
        """
        sql = "SELECT email FROM subscribers WHERE status = ? AND is_verified = ?"
        params: builtins.list[Any] = [criteria.status.value, criteria.is_verified]

        if criteria.any_of_groups is not None:
            if not criteria.any_of_groups:
                return []
            sql += f"""
                AND EXISTS (
                    SELECT 1 FROM json_each(subscribers.preferences) AS pref
                    WHERE pref.key IN ({_placeholders(len(criteria.any_of_groups))})
                      AND pref.value = 1
                )
            """
            params.extend(criteria.any_of_groups)

        sql += " ORDER BY created_at ASC"

        conn = self._get_conn()
        try:
            rows = conn.execute(sql, params).fetchall()
            return [r["email"] for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def bulk_record_delivery(self, updates: Iterable[SubscriberDeliveryUpdate]) -> int:
        """Stamp last_email_sent and append history for many subscribers in one transaction."""
        batch = builtins.list(updates)
        if not batch:
            return 0

        conn = self._get_conn()
        try:
            cursor = conn.executemany(
                "UPDATE subscribers SET last_email_sent = ?, updated_at = ? WHERE email = ?",
                [
                    (format_dt(u.last_email_sent), format_dt(u.last_email_sent), u.email.lower())
                    for u in batch
                ],
            )
            updated = cursor.rowcount
            conn.executemany(
                """
                INSERT INTO subscriber_campaigns (subscriber_id, campaign_id, sent_at)
                SELECT id, ?, ? FROM subscribers WHERE email = ?
                """,
                [
                    (
                        str(u.history_entry.campaign_id),
                        format_dt(u.history_entry.sent_at),
                        u.email.lower(),
                    )
                    for u in batch
                ],
            )
            if self._should_close():
                conn.commit()
            return updated
        except sqlite3.Error:
            if self._should_close():
                conn.rollback()
            raise
        finally:
            if self._should_close():
                conn.close()

    def _get_one(self, sql: str, params: tuple[Any, ...]) -> Subscriber | None:
        conn = self._get_conn()
        try:
            row = conn.execute(sql, params).fetchone()
            if not row:
                return None
            history = self._load_history(conn, [row["id"]])
            return self._map_row(row, history.get(row["id"], []))
        finally:
            if self._should_close():
                conn.close()

    def _load_history(
        self, conn: sqlite3.Connection, subscriber_ids: builtins.list[str]
    ) -> dict[str, builtins.list[CampaignHistoryEntry]]:
        if not subscriber_ids:
            return {}
        rows = conn.execute(
            f"""
            SELECT subscriber_id, campaign_id, sent_at FROM subscriber_campaigns
            WHERE subscriber_id IN ({_placeholders(len(subscriber_ids))})
            ORDER BY id ASC
            """,
            subscriber_ids,
        ).fetchall()
        history: dict[str, builtins.list[CampaignHistoryEntry]] = {}
        for r in rows:
            history.setdefault(r["subscriber_id"], []).append(
                CampaignHistoryEntry(
                    campaign_id=UUID(r["campaign_id"]),
                    sent_at=datetime.fromisoformat(r["sent_at"]),
                )
            )
        return history

    def _map_row(
        self, row: dict[str, Any], history: builtins.list[CampaignHistoryEntry]
    ) -> Subscriber:
        return Subscriber(
            id=UUID(row["id"]),
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            status=SubscriberStatus(row["status"]),
            is_verified=bool(row["is_verified"]),
            preferences=json.loads(row["preferences"]) if row["preferences"] else {},
            source=row["source"],
            verification_token=row["verification_token"],
            verification_token_expiry=parse_dt(row["verification_token_expiry"]),
            unsubscribe_token=row["unsubscribe_token"],
            subscribed_at=datetime.fromisoformat(row["subscribed_at"]),
            last_email_sent=parse_dt(row["last_email_sent"]),
            campaigns=history,
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


# -----------------------------------------------------------------------------
# Campaign Repository
# -----------------------------------------------------------------------------


class SQLiteCampaignRepo(SQLiteRepoBase):
    """SQLite implementation of CampaignRepoPort."""

    def get_by_id(self, campaign_id: UUID) -> Campaign | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM campaigns WHERE id = ?", (str(campaign_id),)
            ).fetchone()
            return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def add(self, campaign: Campaign) -> Campaign:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO campaigns (
                    id, name, subject, content, created_by, target_groups,
                    status, scheduled_for, sent_at, total_sent,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(campaign.id),
                    campaign.name,
                    campaign.subject,
                    campaign.content,
                    str(campaign.created_by),
                    json.dumps(campaign.target_groups),
                    campaign.status.value,
                    format_dt(campaign.scheduled_for),
                    format_dt(campaign.sent_at),
                    campaign.stats.total_sent,
                    format_dt(campaign.created_at),
                    format_dt(campaign.updated_at),
                ),
            )
            if self._should_close():
                conn.commit()
            return campaign
        finally:
            if self._should_close():
                conn.close()

    def update_content(
        self,
        campaign_id: UUID,
        expected: Collection[CampaignStatus],
        *,
        name: str,
        subject: str,
        content: str,
        target_groups: dict[str, bool],
        now_utc: datetime,
    ) -> bool:
        """Conditional content update; status and delivery columns are untouched."""
        expected_values = [s.value for s in expected]
        if not expected_values:
            return False

        conn = self._get_conn()
        try:
            cursor = conn.execute(
                f"""
                UPDATE campaigns
                SET name = ?, subject = ?, content = ?, target_groups = ?, updated_at = ?
                WHERE id = ? AND status IN ({_placeholders(len(expected_values))})
                """,
                (
                    name,
                    subject,
                    content,
                    json.dumps(target_groups),
                    format_dt(now_utc),
                    str(campaign_id),
                    *expected_values,
                ),
            )
            if self._should_close():
                conn.commit()
            return cursor.rowcount == 1
        finally:
            if self._should_close():
                conn.close()

    def transition_status(
        self,
        campaign_id: UUID,
        expected: Collection[CampaignStatus],
        new_status: CampaignStatus,
        now_utc: datetime,
        *,
        scheduled_for: datetime | None = None,
        sent_at: datetime | None = None,
        total_sent: int | None = None,
    ) -> bool:
        """Conditional status update; True only if this call changed the row."""
        expected_values = [s.value for s in expected]
        if not expected_values:
            return False

        assignments = ["status = ?", "updated_at = ?"]
        params: list[Any] = [new_status.value, format_dt(now_utc)]
        if scheduled_for is not None:
            assignments.append("scheduled_for = ?")
            params.append(format_dt(scheduled_for))
        if sent_at is not None:
            assignments.append("sent_at = ?")
            params.append(format_dt(sent_at))
        if total_sent is not None:
            assignments.append("total_sent = ?")
            params.append(total_sent)

        conn = self._get_conn()
        try:
            cursor = conn.execute(
                f"""
                UPDATE campaigns SET {", ".join(assignments)}
                WHERE id = ? AND status IN ({_placeholders(len(expected_values))})
                """,
                (*params, str(campaign_id), *expected_values),
            )
            if self._should_close():
                conn.commit()
            return cursor.rowcount == 1
        finally:
            if self._should_close():
                conn.close()

    def delete(self, campaign_id: UUID, expected: Collection[CampaignStatus]) -> bool:
        expected_values = [s.value for s in expected]
        if not expected_values:
            return False

        conn = self._get_conn()
        try:
            cursor = conn.execute(
                f"""
                DELETE FROM campaigns
                WHERE id = ? AND status IN ({_placeholders(len(expected_values))})
                """,
                (str(campaign_id), *expected_values),
            )
            if self._should_close():
                conn.commit()
            return cursor.rowcount == 1
        finally:
            if self._should_close():
                conn.close()

    def list(
        self,
        status: CampaignStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> builtins.list[Campaign]:
        conn = self._get_conn()
        try:
            if status is None:
                rows = conn.execute(
                    "SELECT * FROM campaigns ORDER BY created_at DESC LIMIT ? OFFSET ?",
                    (limit, offset),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT * FROM campaigns WHERE status = ?
                    ORDER BY created_at DESC LIMIT ? OFFSET ?
                    """,
                    (status.value, limit, offset),
                ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def count(self, status: CampaignStatus | None = None) -> int:
        conn = self._get_conn()
        try:
            if status is None:
                row = conn.execute("SELECT COUNT(*) AS n FROM campaigns").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS n FROM campaigns WHERE status = ?", (status.value,)
                ).fetchone()
            return int(row["n"])
        finally:
            if self._should_close():
                conn.close()

    def find_due(self, now_utc: datetime) -> builtins.list[Campaign]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT * FROM campaigns
                WHERE status = 'scheduled' AND scheduled_for <= ?
                ORDER BY scheduled_for ASC
                """,
                (format_dt(now_utc),),
            ).fetchall()
            return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Campaign:
        return Campaign(
            id=UUID(row["id"]),
            name=row["name"],
            subject=row["subject"],
            content=row["content"],
            created_by=UUID(row["created_by"]),
            target_groups=json.loads(row["target_groups"]) if row["target_groups"] else {},
            status=CampaignStatus(row["status"]),
            scheduled_for=parse_dt(row["scheduled_for"]),
            sent_at=parse_dt(row["sent_at"]),
            stats=CampaignStats(total_sent=row["total_sent"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
