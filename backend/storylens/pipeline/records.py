"""Read-side operations on stored annotation records."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy.orm import Session

from storylens.accounts import AccountDirectory
from storylens.config import Settings, settings as default_settings
from storylens.errors import ChallengeUnavailable, PermissionDenied, StorageError
from storylens.media.normalizer import encode_base64
from storylens.models.annotation_record import AnnotationRecord
from storylens.models.responses import (
    CaptionResponse,
    CaptionSegment,
    ChallengeResponse,
    ObjectAudio,
    RecordSummary,
)
from storylens.pipeline.formatter import format_caption
from storylens.pipeline.markers import split_segments
from storylens.repository.annotations import AnnotationRepository, parse_utc_offset
from storylens.storage.base import AssetStore

logger = logging.getLogger(__name__)


class RecordService:
    def __init__(
        self,
        store: AssetStore,
        db: Session,
        accounts: AccountDirectory,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.repository = AnnotationRepository(db)
        self.accounts = accounts
        self.settings = settings or default_settings

    def _tier(self, record: AnnotationRecord) -> int:
        return int((record.tier_metadata or {}).get("complexity_tier", self.settings.default_complexity_tier))

    def get_record(self, record_id: str, requester_id: str) -> CaptionResponse:
        record = self.repository.get_for_requester(record_id, requester_id, self.accounts.is_linked)
        payload = record.caption_payload or {}
        tier = self._tier(record)
        narrative = payload.get("narrative_caption", "")

        image = self.store.read(record.image_key)
        main_audio = self.store.read(record.main_audio_key)

        object_audio: list[ObjectAudio] = []
        for entry in record.object_audio or []:
            try:
                audio = self.store.read(entry["audio_key"])
            except StorageError as e:
                logger.error("Object audio %s for record %s unavailable: %s", entry.get("audio_key"), record_id, e)
                continue
            object_audio.append(
                ObjectAudio(
                    object_id=entry.get("object_id"),
                    label=entry.get("object_label", ""),
                    audio=encode_base64(audio),
                )
            )

        return CaptionResponse(
            record_id=record.record_id,
            narrative_caption=narrative,
            segments=[CaptionSegment(**s) for s in split_segments(narrative)],
            objects=format_caption(payload.get("raw_objects"), tier),
            complexity_tier=tier,
            image=encode_base64(image),
            main_audio=encode_base64(main_audio),
            object_audio=object_audio,
        )

    def _ensure_can_view(self, owner_id: str, requester_id: str | None, message: str) -> None:
        if requester_id is None or requester_id == owner_id:
            return
        if not self.accounts.is_linked(requester_id, owner_id):
            logger.warning("Account %s denied access to account %s", requester_id, owner_id)
            raise PermissionDenied(message)

    def list_records(self, owner_id: str, requester_id: str | None = None) -> list[RecordSummary]:
        """Upload history of ``owner_id``, readable by the owner or a linked account."""
        self._ensure_can_view(owner_id, requester_id, "You do not have permission to view this user's uploads.")
        summaries = []
        for record in self.repository.list_active(owner_id):
            summaries.append(
                RecordSummary(
                    record_id=record.record_id,
                    image=encode_base64(self.store.read(record.image_key)),
                    narrative_caption=(record.caption_payload or {}).get("narrative_caption", ""),
                    uploaded_at=record.uploaded_at,
                    is_bookmarked=bool(record.is_bookmarked),
                    challenge_completed=bool(record.challenge_completed),
                )
            )
        return summaries

    def get_challenge(self, record_id: str, requester_id: str) -> ChallengeResponse:
        record = self.repository.get_for_requester(record_id, requester_id, self.accounts.is_linked)
        challenge = record.challenge_data or {}
        answer = challenge.get("correct_answer_label")
        if not challenge.get("objects") or not answer:
            raise ChallengeUnavailable(f"Record {record_id} has no detected objects")

        return ChallengeResponse(
            record_id=record.record_id,
            image=encode_base64(self.store.read(record.image_key)),
            whole_image_label=(record.caption_payload or {}).get("whole_image_label", ""),
            objects=format_caption(challenge["objects"], 1),
            correct_answer_label=answer,
            challenge_completed=bool(record.challenge_completed),
        )

    def toggle_bookmark(self, record_id: str, requester_id: str) -> bool:
        return self.repository.toggle_bookmark(record_id, requester_id)

    def mark_challenge_complete(self, record_id: str, requester_id: str) -> None:
        self.repository.get_for_requester(record_id, requester_id, self.accounts.is_linked)
        self.repository.mark_challenge_complete(record_id)

    def soft_delete(self, record_id: str, requester_id: str) -> None:
        self.repository.soft_delete(record_id, requester_id)
        logger.info("Record %s soft-deleted by %s", record_id, requester_id)

    def daily_upload_counts(
        self,
        user_id: str,
        date_start: date,
        date_end: date,
        requester_id: str | None = None,
    ) -> dict[str, int]:
        self._ensure_can_view(user_id, requester_id, "You do not have permission to access this user's statistics.")
        tz = parse_utc_offset(self.settings.stats_timezone)
        return self.repository.daily_upload_counts(user_id, date_start, date_end, tz)
