"""End-to-end tests for one captioning run (scripted model, silent speech, local storage)."""

from __future__ import annotations

import asyncio
import base64
import random
import threading

import pytest

from storylens.errors import (
    AuthenticationRequired,
    InputError,
    PermissionDenied,
    StorageError,
    UnsupportedImageError,
    UpstreamGenerationError,
)
from storylens.models.annotation_record import AnnotationRecord
from storylens.pipeline.markers import find_marker_ids
from storylens.pipeline.orchestrator import CaptionPipeline, choose_challenge_answer, resolve_tier
from storylens.speech.synthesizer import SILENT_MP3, SpeechSynthesizer
from storylens.storage.local import LocalAssetStore
from tests.conftest import ScriptedVisionModel, analysis_reply, caption_reply, make_image_bytes


def _upload() -> str:
    return base64.b64encode(make_image_bytes(1600, 1200)).decode()


def _stored_files(store: LocalAssetStore) -> list[str]:
    return sorted(str(p.relative_to(store.root)) for p in store.root.rglob("*") if p.is_file())


@pytest.fixture
def make_pipeline(db_session, store, accounts, test_settings):
    def _make(model, asset_store=None):
        return CaptionPipeline(
            model=model,
            speech=SpeechSynthesizer(test_settings),
            store=asset_store or store,
            db=db_session,
            accounts=accounts,
            settings=test_settings,
            rng=random.Random(7),
        )

    return _make


def test_three_objects_at_default_tier(make_pipeline, three_object_model, db_session, store):
    pipeline = make_pipeline(three_object_model)
    result = asyncio.run(pipeline.process_upload(_upload(), "parent-1", "adult"))

    assert three_object_model.tasks == ["analyze", "bbox", "caption"]
    assert result.complexity_tier == 2
    assert [o.id for o in result.objects] == [1, 2, 3]
    assert [o.text for o in result.objects] == [
        "A ripe red apple",
        "Sunlight streams through pane",
        "Sleepy orange tabby cat",
    ]
    assert all(o.box is not None for o in result.objects)
    assert set(find_marker_ids(result.narrative_caption)) <= {1, 2, 3}
    assert [s.object_id for s in result.segments if s.object_id is not None] == [3, 1, 2]

    assert base64.b64decode(result.main_audio) == SILENT_MP3
    assert [(a.object_id, a.label) for a in result.object_audio] == [(1, "apple"), (2, "window"), (3, "cat")]

    record = db_session.query(AnnotationRecord).filter_by(record_id=result.record_id).one()
    assert record.owner_id == "parent-1"
    assert record.tier_metadata["complexity_tier"] == 2
    assert len(record.caption_payload["raw_objects"]) == 3
    assert record.caption_payload["whole_image_label"] == "Kitchen still life"
    assert record.challenge_data["correct_answer_label"] in {"apple", "window", "cat"}
    assert [e["object_id"] for e in record.object_audio] == [1, 2, 3]

    # image + caption audio + one clip per object
    assert len(_stored_files(store)) == 5
    assert store.read(record.image_key) == base64.b64decode(result.image)


def test_image_is_normalized_before_storage(make_pipeline, three_object_model):
    from io import BytesIO

    from PIL import Image

    result = asyncio.run(make_pipeline(three_object_model).process_upload(_upload(), "u1", "adult"))
    with Image.open(BytesIO(base64.b64decode(result.image))) as img:
        assert img.format == "JPEG"
        assert img.size == (1024, 768)


def test_no_objects_skips_bbox_and_challenge(make_pipeline, db_session):
    model = ScriptedVisionModel(
        {
            "analyze": analysis_reply(objects=[], label="Abstract swirl"),
            "caption": caption_reply("Colours swirl together."),
        }
    )
    result = asyncio.run(make_pipeline(model).process_upload(_upload(), "u1", "adult"))

    assert model.tasks == ["analyze", "caption"]
    assert result.objects == []
    assert result.object_audio == []
    record = db_session.query(AnnotationRecord).filter_by(record_id=result.record_id).one()
    assert record.challenge_data == {"objects": [], "correct_answer_label": None}


def test_blank_object_label_does_not_abort_upload(make_pipeline):
    model = ScriptedVisionModel(
        {
            "analyze": analysis_reply(objects=[("  ", "shiny", "table")]),
            "caption": caption_reply("A shiny table."),
        }
    )
    result = asyncio.run(make_pipeline(model).process_upload(_upload(), "u1", "adult"))

    assert model.tasks == ["analyze", "caption"]
    assert result.objects == []
    assert result.narrative_caption == "A shiny table."


def test_normalization_runs_off_the_event_loop(make_pipeline, three_object_model, monkeypatch):
    from storylens.pipeline import orchestrator

    threads = []
    real_normalize = orchestrator.normalize_image

    def recording_normalize(*args):
        threads.append(threading.get_ident())
        return real_normalize(*args)

    monkeypatch.setattr(orchestrator, "normalize_image", recording_normalize)
    asyncio.run(make_pipeline(three_object_model).process_upload(_upload(), "u1", "adult"))

    assert len(threads) == 1
    assert threads[0] != threading.get_ident()


def test_child_gets_own_tier(make_pipeline, three_object_model, accounts):
    accounts.tiers["kid"] = 1
    result = asyncio.run(make_pipeline(three_object_model).process_upload(_upload(), "kid", "child"))
    assert result.complexity_tier == 1
    assert [o.text for o in result.objects] == ["apple", "window", "cat"]


def test_invalid_child_tier_falls_back(accounts):
    accounts.tiers["kid"] = 5
    assert resolve_tier(accounts, "kid", "child", 2) == 2
    assert resolve_tier(accounts, "nobody", "child", 2) == 2
    accounts.tiers["adult"] = 3
    assert resolve_tier(accounts, "adult", "adult", 2) == 2


def test_upload_permission_denied(make_pipeline, three_object_model, accounts, store):
    accounts.upload_blocked.add("kid")
    with pytest.raises(PermissionDenied):
        asyncio.run(make_pipeline(three_object_model).process_upload(_upload(), "kid", "child"))
    assert three_object_model.calls == []
    assert _stored_files(store) == []


def test_missing_owner(make_pipeline, three_object_model):
    with pytest.raises(AuthenticationRequired):
        asyncio.run(make_pipeline(three_object_model).process_upload(_upload(), "", "adult"))


def test_bad_uploads(make_pipeline, three_object_model):
    pipeline = make_pipeline(three_object_model)
    with pytest.raises(InputError):
        asyncio.run(pipeline.process_upload("", "u1", "adult"))
    with pytest.raises(UnsupportedImageError):
        asyncio.run(pipeline.process_upload(base64.b64encode(b"not an image").decode(), "u1", "adult"))
    assert three_object_model.calls == []


def test_caption_failure_writes_nothing(make_pipeline, store, db_session):
    model = ScriptedVisionModel({"analyze": analysis_reply(objects=[]), "caption": "no delimiters"})
    with pytest.raises(UpstreamGenerationError):
        asyncio.run(make_pipeline(model).process_upload(_upload(), "u1", "adult"))
    assert _stored_files(store) == []
    assert db_session.query(AnnotationRecord).count() == 0


def test_record_failure_removes_written_assets(make_pipeline, three_object_model, store, monkeypatch):
    pipeline = make_pipeline(three_object_model)

    def fail(**kwargs):
        raise StorageError("database unavailable")

    monkeypatch.setattr(pipeline.repository, "create", fail)
    with pytest.raises(StorageError):
        asyncio.run(pipeline.process_upload(_upload(), "u1", "adult"))
    assert _stored_files(store) == []


class FlakyAudioStore(LocalAssetStore):
    """Fails every audio write from the Nth on."""

    def __init__(self, root, fail_on: int) -> None:
        super().__init__(root)
        self.fail_on = fail_on
        self.audio_writes = 0

    def put(self, key, data, content_type):
        if content_type == "audio/mpeg":
            self.audio_writes += 1
            if self.audio_writes >= self.fail_on:
                raise StorageError("disk full")
        super().put(key, data, content_type)


def test_asset_failure_removes_written_assets(make_pipeline, three_object_model, tmp_path, db_session):
    flaky = FlakyAudioStore(tmp_path / "flaky", fail_on=2)
    with pytest.raises(StorageError):
        asyncio.run(make_pipeline(three_object_model, asset_store=flaky).process_upload(_upload(), "u1", "adult"))
    assert _stored_files(flaky) == []
    assert db_session.query(AnnotationRecord).count() == 0


def test_choose_challenge_answer():
    from storylens.models.caption import DetectedObject

    objects = [DetectedObject(label=name, descriptor="", context="", id=i) for i, name in enumerate("abc", 1)]
    assert choose_challenge_answer(objects, random.Random(1)) in {"a", "b", "c"}
    assert choose_challenge_answer([], random.Random(1)) is None
