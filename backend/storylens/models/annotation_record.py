from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from storylens.database import Base

STATUS_ACTIVE = "active"
STATUS_DELETED = "deleted"


class AnnotationRecord(Base):
    __tablename__ = "annotation_records"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(String(36), unique=True, index=True, nullable=False)  # caller-visible
    owner_id = Column(String, index=True, nullable=False)

    image_key = Column(String, nullable=False)
    main_audio_key = Column(String, nullable=False)

    # {"raw_objects": [...], "narrative_caption": str, "whole_image_label": str, "generated_at": iso}
    caption_payload = Column(JSON, nullable=False)
    # {"complexity_tier": 1|2|3, "model": str}
    tier_metadata = Column(JSON, nullable=False)
    # {"objects": [...], "correct_answer_label": str | None}
    challenge_data = Column(JSON, nullable=False)
    # [{"object_id": int, "object_label": str, "audio_key": str}, ...]
    object_audio = Column(JSON, nullable=False, default=list)

    status = Column(String(16), nullable=False, default=STATUS_ACTIVE, index=True)
    is_bookmarked = Column(Boolean, nullable=False, default=False)
    challenge_completed = Column(Boolean, nullable=False, default=False)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
