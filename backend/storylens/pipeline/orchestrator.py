"""Pipeline orchestrator — one full captioning run per upload.

normalize → analyze → bounding boxes (only with ≥1 object) → narrative caption
→ speech (caption + one per object) → assets → record → response.

Stages that depend on each other run sequentially. A fatal error in any stage
aborts the run; nothing is retried. Asset writes and the record insert are not
one transaction: if a later write fails, assets already written in this run are
deleted best-effort, and anything left behind is an orphan for operational cleanup.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from storylens.accounts import MAX_TIER, MIN_TIER, ROLE_CHILD, AccountDirectory
from storylens.config import Settings, settings as default_settings
from storylens.errors import AuthenticationRequired, PermissionDenied, StoryLensError
from storylens.llm.client import VisionModel
from storylens.media.normalizer import decode_base64_image, encode_base64, normalize_image
from storylens.models.caption import DetectedObject
from storylens.models.responses import CaptionResponse, CaptionSegment, ObjectAudio
from storylens.pipeline.analysis import analyze_image
from storylens.pipeline.bbox import locate_objects
from storylens.pipeline.formatter import format_caption
from storylens.pipeline.markers import split_segments, strip_markup
from storylens.pipeline.narrative import generate_narrative
from storylens.repository.annotations import AnnotationRepository
from storylens.speech.synthesizer import SpeechSynthesizer
from storylens.storage.base import AssetStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


def choose_challenge_answer(objects: list[DetectedObject], rng: random.Random) -> str | None:
    """Pick one object label as the quiz answer. None when nothing was detected."""
    if not objects:
        return None
    return rng.choice(objects).label


def ensure_can_upload(accounts: AccountDirectory, user_id: str) -> None:
    if not accounts.can_upload(user_id):
        raise PermissionDenied(
            "This account is not allowed to upload images. Please contact your parent/guardian."
        )


def resolve_tier(accounts: AccountDirectory, user_id: str, role: str, default: int) -> int:
    """Children use their own setting; everyone else gets the default."""
    if role != ROLE_CHILD:
        return default
    tier = accounts.complexity_tier_for(user_id)
    if tier is None:
        logger.warning("No complexity tier for account %s, defaulting to %d", user_id, default)
        return default
    if not MIN_TIER <= tier <= MAX_TIER:
        logger.warning("Complexity tier %r for account %s is out of range, defaulting to %d", tier, user_id, default)
        return default
    return tier


class CaptionPipeline:
    def __init__(
        self,
        model: VisionModel,
        speech: SpeechSynthesizer,
        store: AssetStore,
        db: Session,
        accounts: AccountDirectory,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.model = model
        self.speech = speech
        self.store = store
        self.repository = AnnotationRepository(db)
        self.accounts = accounts
        self.settings = settings or default_settings
        self.rng = rng or random.Random()

    async def _in_thread(self, fn: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def process_upload(self, image_b64: str, owner_id: str, role: str) -> CaptionResponse:
        if not owner_id:
            raise AuthenticationRequired()
        raw = decode_base64_image(image_b64)
        ensure_can_upload(self.accounts, owner_id)

        start = time.perf_counter()
        image = await self._in_thread(normalize_image, raw, self.settings.canonical_long_side)
        tier = resolve_tier(self.accounts, owner_id, role, self.settings.default_complexity_tier)
        logger.info("Upload from %s: %dx%d image, tier %d", owner_id, image.width, image.height, tier)

        analysis = await analyze_image(self.model, image)
        objects: list[DetectedObject] = []
        if analysis.objects:
            objects = await locate_objects(self.model, image, analysis.objects)

        narrative = await generate_narrative(self.model, image, objects, tier)
        formatted = format_caption(objects, tier)

        main_audio = await self.speech.synthesize(strip_markup(narrative))
        object_audio: list[tuple[DetectedObject, bytes]] = []
        for obj in objects:
            object_audio.append((obj, await self.speech.synthesize(obj.label)))

        record_id = str(uuid.uuid4())
        written: list[str] = []
        try:
            image_key = await self._in_thread(self.store.save_image, image.data)
            written.append(image_key)
            main_audio_key = await self._in_thread(self.store.save_audio, main_audio)
            written.append(main_audio_key)
            audio_keys = await asyncio.gather(
                *(self._in_thread(self.store.save_audio, audio) for _, audio in object_audio),
                return_exceptions=True,
            )
            written.extend(k for k in audio_keys if isinstance(k, str))
            for result in audio_keys:
                if isinstance(result, BaseException):
                    raise result

            await self._in_thread(
                lambda: self.repository.create(
                    record_id=record_id,
                    owner_id=owner_id,
                    image_key=image_key,
                    main_audio_key=main_audio_key,
                    caption_payload={
                        "raw_objects": [obj.model_dump(mode="json") for obj in objects],
                        "narrative_caption": narrative,
                        "whole_image_label": analysis.whole_image_label,
                        "generated_at": datetime.now(timezone.utc).isoformat(),
                    },
                    tier_metadata={"complexity_tier": tier, "model": self.settings.model_caption},
                    challenge_data={
                        "objects": [obj.model_dump(mode="json") for obj in objects],
                        "correct_answer_label": choose_challenge_answer(objects, self.rng),
                    },
                    object_audio=[
                        {"object_id": obj.id, "object_label": obj.label, "audio_key": key}
                        for (obj, _), key in zip(object_audio, audio_keys)
                    ],
                )
            )
        except StoryLensError:
            await self._discard(written)
            raise

        elapsed = (time.perf_counter() - start) * 1000
        logger.info("Record %s created with %d objects in %.0fms", record_id, len(objects), elapsed)

        return CaptionResponse(
            record_id=record_id,
            narrative_caption=narrative,
            segments=[CaptionSegment(**s) for s in split_segments(narrative)],
            objects=formatted,
            complexity_tier=tier,
            image=encode_base64(image.data),
            main_audio=encode_base64(main_audio),
            object_audio=[
                ObjectAudio(object_id=obj.id, label=obj.label, audio=encode_base64(audio))
                for obj, audio in object_audio
            ],
        )

    async def _discard(self, keys: list[str]) -> None:
        if keys:
            logger.warning("Upload failed; removing %d assets written in this run", len(keys))
        for key in keys:
            try:
                await self._in_thread(self.store.delete, key)
            except StoryLensError as e:
                logger.error("Could not remove orphaned asset %s: %s", key, e)