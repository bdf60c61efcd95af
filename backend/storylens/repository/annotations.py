"""One row per processed image."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storylens.errors import InputError, RecordNotFound, StorageError
from storylens.models.annotation_record import STATUS_ACTIVE, STATUS_DELETED, AnnotationRecord

logger = logging.getLogger(__name__)

MAX_STATS_DAYS = 366

_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")


def parse_utc_offset(value: str) -> timezone:
    """``"+08:00"`` → ``timezone(timedelta(hours=8))``."""
    if value.upper() in ("Z", "UTC"):
        return timezone.utc
    match = _OFFSET_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid UTC offset {value!r}")
    sign = -1 if match.group(1) == "-" else 1
    return timezone(sign * timedelta(hours=int(match.group(2)), minutes=int(match.group(3))))


def as_utc(moment: datetime) -> datetime:
    # Naive values are UTC (SQLite)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _day_key(day: date) -> str:
    return f"{day.year:04d}{day.month:02d}{day.day:02d}"


def _utc_bound(day: date, clock: time, tz: timezone, fallback: datetime) -> datetime:
    """Local ``day`` at ``clock`` in UTC, clamped to ``fallback`` at the ends of the calendar."""
    try:
        return datetime.combine(day, clock, tzinfo=tz).astimezone(timezone.utc)
    except OverflowError:
        return fallback.replace(tzinfo=timezone.utc)


class AnnotationRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    @contextmanager
    def _db_errors(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Database error while trying to %s: %s", action, e)
            raise StorageError(f"Failed to {action}") from e

    def create(
        self,
        *,
        record_id: str,
        owner_id: str,
        image_key: str,
        main_audio_key: str,
        caption_payload: dict[str, Any],
        tier_metadata: dict[str, Any],
        challenge_data: dict[str, Any],
        object_audio: list[dict[str, Any]],
        uploaded_at: datetime | None = None,
    ) -> AnnotationRecord:
        record = AnnotationRecord(
            record_id=record_id,
            owner_id=owner_id,
            image_key=image_key,
            main_audio_key=main_audio_key,
            caption_payload=caption_payload,
            tier_metadata=tier_metadata,
            challenge_data=challenge_data,
            object_audio=object_audio,
            status=STATUS_ACTIVE,
            is_bookmarked=False,
            challenge_completed=False,
            uploaded_at=uploaded_at or datetime.now(timezone.utc),
        )
        with self._db_errors("save annotation record"):
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        return record

    def get_active(self, record_id: str) -> AnnotationRecord | None:
        with self._db_errors("load annotation record"):
            return (
                self.db.query(AnnotationRecord)
                .filter(AnnotationRecord.record_id == record_id, AnnotationRecord.status == STATUS_ACTIVE)
                .first()
            )

    def get_for_requester(
        self,
        record_id: str,
        requester_id: str,
        is_linked: Callable[[str, str], bool],
    ) -> AnnotationRecord:
        """Active record readable by the owner or an account linked to the owner."""
        record = self.get_active(record_id)
        if record is None:
            raise RecordNotFound(f"No active record {record_id}")
        if record.owner_id != requester_id and not is_linked(requester_id, record.owner_id):
            logger.warning("Account %s denied access to record %s", requester_id, record_id)
            raise RecordNotFound(f"Account {requester_id} may not read record {record_id}")
        return record

    def _get_owned(self, record_id: str, owner_id: str) -> AnnotationRecord:
        record = self.get_active(record_id)
        if record is None or record.owner_id != owner_id:
            raise RecordNotFound(f"No active record {record_id} owned by {owner_id}")
        return record

    def list_active(self, owner_id: str) -> list[AnnotationRecord]:
        """Bookmarked first, then newest first."""
        with self._db_errors("list annotation records"):
            return (
                self.db.query(AnnotationRecord)
                .filter(AnnotationRecord.owner_id == owner_id, AnnotationRecord.status == STATUS_ACTIVE)
                .order_by(AnnotationRecord.is_bookmarked.desc(), AnnotationRecord.uploaded_at.desc())
                .all()
            )

    def toggle_bookmark(self, record_id: str, owner_id: str) -> bool:
        record = self._get_owned(record_id, owner_id)
        with self._db_errors("update bookmark"):
            record.is_bookmarked = not record.is_bookmarked
            self.db.commit()
        return bool(record.is_bookmarked)

    def mark_challenge_complete(self, record_id: str) -> None:
        record = self.get_active(record_id)
        if record is None:
            raise RecordNotFound(f"No active record {record_id}")
        with self._db_errors("complete the challenge"):
            record.challenge_completed = True
            self.db.commit()

    def soft_delete(self, record_id: str, owner_id: str) -> None:
        record = self._get_owned(record_id, owner_id)
        with self._db_errors("delete annotation record"):
            record.status = STATUS_DELETED
            self.db.commit()

    def daily_upload_counts(
        self,
        owner_id: str,
        date_start: date,
        date_end: date,
        tz: timezone = timezone.utc,
    ) -> dict[str, int]:
        """Non-deleted uploads per local day, ``{"YYYYMMDD": count}``, every day in range present.

        At most ``MAX_STATS_DAYS`` days per call; only rows inside the local range are loaded.
        """
        if date_start > date_end:
            raise InputError("Start date cannot be after end date.")
        span = (date_end - date_start).days + 1
        if span > MAX_STATS_DAYS:
            raise InputError(f"Date range cannot exceed {MAX_STATS_DAYS} days.")

        counts = {_day_key(date_start + timedelta(days=offset)): 0 for offset in range(span)}
        lower = _utc_bound(date_start, time.min, tz, datetime.min)
        upper = _utc_bound(date_end, time.max, tz, datetime.max)

        with self._db_errors("load upload statistics"):
            rows = (
                self.db.query(AnnotationRecord.uploaded_at)
                .filter(
                    AnnotationRecord.owner_id == owner_id,
                    AnnotationRecord.status != STATUS_DELETED,
                    AnnotationRecord.uploaded_at >= lower,
                    AnnotationRecord.uploaded_at <= upper,
                )
                .all()
            )

        for (uploaded_at,) in rows:
            try:
                key = _day_key(as_utc(uploaded_at).astimezone(tz))
            except OverflowError:
                continue
            if key in counts:
                counts[key] += 1
        return counts
